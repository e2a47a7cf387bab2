# farmrelay

`farmrelay` holds the logic of a relay gateway for a small sensor network. Sensors produce readings, each made of an id, a data type and a float value. A gateway takes readings in from ESP-NOW frames, JSON lines on a serial link, or its own code. It then passes them on according to routing rules that you configure. Every radio, serial port and broker is reached through an object or callback you supply, so the package runs anywhere.

## Modules

- `farmrelay.datatypes`
  - Packed little-endian wire formats:
    - `DataReading`, 7 bytes: `d`, `id`, `t`.
    - `SystemPacket`, 5 bytes: `cmd`, `param`.
    - Both have `pack()` and `unpack()`.
  - `pack_readings` and `unpack_readings` handle arrays of readings. Trailing partial bytes are ignored.
  - Enumerations: `Command`, `Event`, `PingKind`, `CommState`, `CrcResult`, `TmNetIf`, `TmSource` and the reading type codes `DataType`.
  - Dataclasses: `FDRSPeer`, `TimeSource`, `Ping`.
- `farmrelay.debug`
  - `DebugLogger` with `dbg`, `dbg1` (level 1 and above) and `dbg2` (level 2 and above).
  - `dbg` messages can also go to a display callback.
- `farmrelay.scheduler`
  - `Scheduler` runs functions at millisecond intervals from a fixed table, 16 slots by default.
  - `schedule` returns the slot index, or raises `ScheduleFullError` when the table is full.
  - `handle` runs the functions that are due and returns how many ran.
- `farmrelay.config`
  - `parse_config` and `load_config` read `#define`/`#undef` style configuration headers. Comments are stripped.
  - They return a `Config` with these methods:
    - `has`
    - `get`, which removes the quotes from string literals
    - `get_int`, which evaluates integer constant expressions such as `(STD_OFFSET + 1)` and may refer to other defines
- `farmrelay.checkconfig`
  - `check_config(config)` returns a configuration overview as a list of lines. It covers the device type, the enabled protocols, LoRa, ESP-NOW, WiFi/MQTT and logging.
  - It warns about problems, for example ESP-NOW and WiFi enabled together, or LoRa retries outside 0 to 3.
  - Passwords are shown as asterisks (`obfuscate_password`).
  - The individual sections are also available: `activated_protocols`, `lora_details`, `espnow_details`, `wifi_details` and `logging_information`.
- `farmrelay.uart`
  - JSON lines for the serial link:
    - `decode_serial` returns a list of `DataReading` or a `SystemPacket`. It raises `SerialDecodeError` on bad input.
    - `encode_readings` and `encode_time` write the lines.
  - `gps_timestamp` returns the UTC Unix time from a `$GNZDA` or `$GNRMC` sentence of at least 38 characters, or `None`.
- `farmrelay.espnow`
  - `PeerTable` keeps a fixed number of peer slots. Peers expire after 300000 ms.
  - `chunk_readings` packs readings into payloads of at most 250 bytes, which is 35 readings.
  - `EspNowInterface` works through a radio object that provides `add_peer`, `del_peer`, `peer_exists` and `send`. It handles:
    - decoding incoming frames
    - peer registration
    - ping replies
    - sending to neighbours, to peers and to an address
    - sending time, and choosing which node to accept time from
  - Failures raise `EspNowError`.
- `farmrelay.gateway`
  - `parse_actions` reads routing rules such as `sendESPNowNbr(2); sendSerial();`.
  - `format_readings` returns a debug listing of readings.
  - `Gateway` ties the other modules together:
    - `load` and `send_internal` queue the gateway's own readings.
    - `receive_serial` and `receive_espnow` take incoming data.
    - `handle_commands` carries out the pending command.
    - `handle_actions` runs the routing for the current event.
    - `loop` runs scheduled tasks, then commands, then routing.
- `farmrelay.display`
  - `DisplaySurface` is an in-memory monochrome display with a page-organised buffer.
  - `display()` returns the region that changed since the previous refresh, or `None`.
- `farmrelay.ui`
  - `DisplayUi` cycles through frame callbacks on a `DisplaySurface`.
  - It supports sliding transitions, page indicators, overlays and a loading screen (`run_loading_process`).

## Checking a configuration

```
farmrelay-checkconfig path/to/gateway_config.h
```

This prints the overview, one line at a time, each indented by four spaces. It exits with status 1 and prints a message if the file cannot be read or evaluated.

## Using the library

```python
from farmrelay.datatypes import DataReading, Event, pack_readings, unpack_readings
from farmrelay.gateway import Gateway
from farmrelay.scheduler import Scheduler

frame = pack_readings([DataReading(d=21.5, id=3, t=1)])
assert unpack_readings(frame)[0].id == 3

scheduler = Scheduler()
scheduler.schedule(lambda: print("tick"), 1000)
scheduler.handle()

gateway = Gateway(actions={Event.INTERNAL: "sendSerial();"}, serial_write=print)
gateway.load(21.5, 1, 3)
gateway.send_internal()
gateway.loop()   # prints [{"id":3,"type":1,"data":21.5}]
```

## What it does not do

- **No drivers.** There are no radio, serial-port, network or display drivers. ESP-NOW goes through the radio object you pass to `EspNowInterface`. Serial output goes to the `serial_write` callback, and MQTT publishing to the `mqtt` callback of `Gateway`.
- **No LoRa.** There is no LoRa interface. The `sendLoRaNbr` and `broadcastLoRa` routing actions are accepted but do nothing.
- **No network services.** There is no MQTT client, NTP time fetching, WiFi connection handling or over-the-air updating.
- **No text rendering.** `DisplaySurface` records text and progress bars without rasterising them. Only images are drawn into the pixel buffer.

## Running the tests

```
pip install .[test]
pytest
```