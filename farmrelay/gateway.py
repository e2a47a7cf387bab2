"""Gateway core: buffering readings, dispatching commands and routing data between interfaces."""

from __future__ import annotations

import re
import sys
import time
from typing import Callable, Iterable, Mapping, Optional, Union

from .datatypes import Command, DataReading, Event, SystemPacket, TimeSource, TmNetIf, TmSource
from .debug import DebugLogger
from .espnow import EspNowError, EspNowInterface
from .scheduler import Scheduler
from .uart import decode_serial, encode_readings

BUFFER_SIZE = 256
_FLUSH_THRESHOLD = 253
_MASK32 = 0xFFFFFFFF

_CALL = re.compile(r"([A-Za-z_]\w*)\s*\(([^()]*)\)")
_ACTION_ARITY = {
    "sendESPNowNbr": 1,
    "sendESPNowPeers": 0,
    "sendESPNow": 1,
    "sendLoRaNbr": 1,
    "broadcastLoRa": 0,
    "sendSerial": 0,
    "sendMQTT": 0,
}

Action = tuple[str, tuple[int, ...]]


def _millis() -> int:
    return int(time.monotonic() * 1000) & _MASK32


def parse_actions(text: str) -> list[Action]:
    """Parse a routing line such as 'sendESPNowNbr(2); sendSerial();' into (name, args) pairs."""
    actions: list[Action] = []
    for statement in text.split(";"):
        statement = statement.strip()
        if not statement:
            continue
        match = _CALL.fullmatch(statement)
        if not match:
            raise ValueError(f"not a routing action: {statement!r}")
        name, inner = match.group(1), match.group(2).strip()
        if name not in _ACTION_ARITY:
            raise ValueError(f"unknown routing action: {name}")
        try:
            args = tuple(int(part.strip(), 0) for part in inner.split(",")) if inner else ()
        except ValueError as exc:
            raise ValueError(f"bad argument in {statement!r}") from exc
        if len(args) != _ACTION_ARITY[name]:
            raise ValueError(f"{name} takes {_ACTION_ARITY[name]} argument(s), got {len(args)}")
        if name in ("sendESPNowNbr", "sendLoRaNbr") and args[0] not in (1, 2):
            raise ValueError(f"{name} neighbor must be 1 or 2, got {args[0]}")
        actions.append((name, args))
    return actions


def format_readings(readings: Iterable[DataReading]) -> list[str]:
    """Debug listing of readings, one string per line."""
    readings = list(readings)
    lines = [f"----- printFDRS: {len(readings)} records -----"]
    lines.extend(
        f"Index: {index}| id: {r.id}| type: {r.t}| data: {r.d:.2f}"
        for index, r in enumerate(readings)
    )
    lines.append("----- End printFDRS -----")
    return lines


def _write_line(line: str) -> None:
    sys.stdout.write(line + "\n")


class Gateway:
    """Holds the current readings and pending command and routes them by event."""

    def __init__(
        self,
        espnow: Optional[EspNowInterface] = None,
        actions: Optional[Mapping[Event, str]] = None,
        serial_write: Callable[[str], None] = _write_line,
        mqtt: Optional[Callable[[list[DataReading]], None]] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], int] = _millis,
        logger: Optional[DebugLogger] = None,
        min_timestamp: int = 0,
        set_time: Optional[Callable[[int], bool]] = None,
    ) -> None:
        self.espnow = espnow
        self.actions: dict[Event, list[Action]] = {
            Event(event): parse_actions(text) for event, text in (actions or {}).items()
        }
        self.serial_write = serial_write
        self.mqtt = mqtt
        self.clock = clock
        self.scheduler = scheduler if scheduler is not None else Scheduler(clock=clock)
        self.log = logger if logger is not None else DebugLogger(enabled=False)
        self.min_timestamp = min_timestamp
        self._set_time = set_time if set_time is not None else self._store_time
        self.readings: list[DataReading] = []
        self.pending: list[DataReading] = []
        self.event = Event.CLEAR
        self.command = SystemPacket(Command.CLEAR, 0)
        self.command_mac = bytes(6)
        self.time_source = TimeSource()
        self.current_time: Optional[int] = None

    def _store_time(self, value: int) -> bool:
        self.current_time = value
        return True

    def load(self, d: float, t: int, id: int) -> None:
        """Queue a locally produced reading; flushes first if the buffer is nearly full."""
        if len(self.pending) > _FLUSH_THRESHOLD:
            self.send_internal()
        self.log.dbg(f"Id: {id} - Type: {t} - Data loaded: {d:.2f}")
        self.pending.append(DataReading(d=d, id=id, t=t))

    def send_internal(self) -> int:
        """Make the queued readings the current data as an internal event; return how many."""
        if not self.pending:
            return 0
        self.readings = self.pending
        self.pending = []
        self.event = Event.INTERNAL
        self.log.dbg("Entered internal data.")
        return len(self.readings)

    def receive_serial(self, line: str) -> Union[list[DataReading], SystemPacket]:
        """Take one JSON line from the serial link; readings become a serial event."""
        message = decode_serial(line)
        if isinstance(message, list):
            self.readings = message
            self.event = Event.SERIAL
            self.log.dbg("Incoming Serial")
            self.log.dbg1("DR data: " + encode_readings(message))
            return message
        if message.cmd == Command.TIME and message.param > self.min_timestamp:
            source = self.time_source
            if source.net_if < TmNetIf.SERIAL:
                source.net_if = TmNetIf.SERIAL
                source.source = TmSource.NET
                source.address = 0xFFFF
                self.log.dbg1("Time source is now Serial peer")
            if source.net_if == TmNetIf.SERIAL:
                self.log.dbg1("Incoming Serial: time")
                if self._set_time(message.param):
                    source.last_time_set = self.clock()
            else:
                self.log.dbg2("Did not set time from incoming serial.")
        elif message.cmd == Command.TIME and message.param == 0:
            pass
        else:
            self.log.dbg2(f"Incoming Serial: unknown cmd: {message.cmd}")
        return message

    def receive_espnow(
        self, mac: bytes, payload: bytes
    ) -> Union[SystemPacket, tuple[Event, list[DataReading]]]:
        """Take one ESP-NOW frame; commands wait for handle_commands, readings set an event."""
        if self.espnow is None:
            raise EspNowError("ESP-NOW is not enabled on this gateway")
        result = self.espnow.receive(mac, payload)
        if isinstance(result, SystemPacket):
            self.command = result
            self.command_mac = bytes(mac)
        else:
            self.event, self.readings = result
        return result

    def handle_commands(self) -> SystemPacket:
        """Carry out the pending command, then clear it; return the command handled."""
        packet, mac = self.command, self.command_mac
        try:
            if self.espnow is not None:
                if packet.cmd == Command.PING:
                    self.espnow.pingback(mac)
                elif packet.cmd == Command.ADD:
                    self.espnow.add_peer(mac, self.clock(), self.current_time)
                elif packet.cmd == Command.TIME:
                    if packet.param > self.min_timestamp:
                        if self.espnow.accepts_time_from(self.time_source, mac):
                            if self._set_time(packet.param):
                                self.time_source.last_time_set = self.clock()
                    elif packet.param == 0:
                        self.espnow.send_time_to(mac, self.current_time or 0)
        finally:
            self.command = SystemPacket(Command.CLEAR, 0)
        return packet

    def handle_actions(self) -> list[Action]:
        """Run the routing actions for the current event, then clear it; return them."""
        if self.event == Event.CLEAR:
            return []
        actions = list(self.actions.get(self.event, []))
        try:
            for name, args in actions:
                self._run(name, args)
        finally:
            self.event = Event.CLEAR
        return actions

    def _run(self, name: str, args: tuple[int, ...]) -> None:
        readings = list(self.readings)
        if name == "sendSerial":
            self.log.dbg("Sending Serial.")
            self.serial_write(encode_readings(readings))
        elif name == "sendMQTT":
            if self.mqtt is not None:
                self.mqtt(readings)
        elif name == "sendESPNowNbr":
            if self.espnow is not None:
                self.espnow.send_to_neighbor(args[0], readings)
        elif name == "sendESPNowPeers":
            if self.espnow is not None:
                self.espnow.send_to_peers(readings, self.clock())
        elif name == "sendESPNow":
            if self.espnow is not None:
                self.espnow.send_to_address(args[0], readings)
        # LoRa actions have no interface here and do nothing.

    def loop(self) -> list[Action]:
        """One pass of the main loop: scheduled tasks, commands, then routing."""
        self.scheduler.handle()
        self.handle_commands()
        return self.handle_actions()