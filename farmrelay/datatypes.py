"""Wire structures, enumerations and reading type codes shared by gateways and nodes."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable

_READING_FORMAT = struct.Struct("<fHB")
_PACKET_FORMAT = struct.Struct("<BI")

UINT32_MAX = 0xFFFFFFFF


@dataclass
class DataReading:
    """A single sensor value: a 32-bit float, a 16-bit id and an 8-bit type."""

    d: float
    id: int
    t: int

    SIZE = _READING_FORMAT.size

    def pack(self) -> bytes:
        """Encode as the 7-byte packed little-endian layout."""
        try:
            return _READING_FORMAT.pack(self.d, self.id, self.t)
        except struct.error as exc:
            raise ValueError(f"reading does not fit the wire format: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "DataReading":
        """Decode exactly one packed reading."""
        if len(data) != cls.SIZE:
            raise ValueError(f"a reading is {cls.SIZE} bytes, got {len(data)}")
        d, ident, kind = _READING_FORMAT.unpack(data)
        return cls(d=d, id=ident, t=kind)


@dataclass
class SystemPacket:
    """A command packet: an 8-bit command and a 32-bit parameter."""

    cmd: int
    param: int = 0

    SIZE = _PACKET_FORMAT.size

    def pack(self) -> bytes:
        """Encode as the 5-byte packed little-endian layout."""
        try:
            return _PACKET_FORMAT.pack(int(self.cmd), self.param)
        except struct.error as exc:
            raise ValueError(f"packet does not fit the wire format: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "SystemPacket":
        """Decode exactly one packed system packet."""
        if len(data) != cls.SIZE:
            raise ValueError(f"a system packet is {cls.SIZE} bytes, got {len(data)}")
        cmd, param = _PACKET_FORMAT.unpack(data)
        return cls(cmd=cmd, param=param)


@dataclass
class FDRSPeer:
    """A registered peer and the time (ms) it was last seen; 0 means unused."""

    mac: bytes = bytes(6)
    last_seen: int = 0


class CrcResult(IntEnum):
    NULL = 0
    OK = 1
    BAD = 2


class Command(IntEnum):
    CLEAR = 0
    PING = 1
    ADD = 2
    ACK = 3
    TIME = 4


class PingKind(IntEnum):
    REQUEST = 0
    REPLY = 1


class CommState(IntEnum):
    READY = 0
    IN_PROCESS = 1
    CRC_MISMATCH = 2
    CRC_MATCH = 3
    INTER_MESSAGE_DELAY = 4
    COMPLETED = 5


class Event(IntEnum):
    CLEAR = 0
    ESPNOWG = 1
    ESPNOW1 = 2
    ESPNOW2 = 3
    SERIAL = 4
    MQTT = 5
    LORAG = 6
    LORA1 = 7
    LORA2 = 8
    INTERNAL = 9


class TmNetIf(IntEnum):
    """Interface that supplies the time; a higher value takes precedence."""

    NONE = 0
    LORA = 1
    ESPNOW = 2
    SERIAL = 3
    LOCAL = 4


class TmSource(IntEnum):
    """Local source that sets the time."""

    NONE = 0
    NET = 1
    RTC = 2
    NTP = 3
    GPS = 4


class DataType(IntEnum):
    STATUS = 0
    TEMP = 1
    TEMP2 = 2
    HUMIDITY = 3
    PRESSURE = 4
    LIGHT = 5
    SOIL = 6
    SOIL2 = 7
    SOILR = 8
    SOILR2 = 9
    OXYGEN = 10
    CO2 = 11
    WINDSPD = 12
    WINDHDG = 13
    RAINFALL = 14
    MOTION = 15
    VOLTAGE = 16
    VOLTAGE2 = 17
    CURRENT = 18
    CURRENT2 = 19
    IT = 20
    LATITUDE = 21
    LONGITUDE = 22
    ALTITUDE = 23
    HDOP = 24
    LEVEL = 25
    UV = 26
    PM1 = 27
    PM2_5 = 28
    PM10 = 29
    POWER = 30
    POWER2 = 31
    ENERGY = 32
    ENERGY2 = 33
    WEIGHT = 34
    WEIGHT2 = 35


@dataclass
class TimeSource:
    """Where the current time came from and when it was last set."""

    net_if: TmNetIf = TmNetIf.NONE
    address: int = 0
    source: TmSource = TmSource.NONE
    last_time_set: int = 0


@dataclass
class Ping:
    """State of an outstanding ping."""

    status: CommState = CommState.READY
    start: int = 0
    timeout: int = 0
    address: int = 0
    response: int = field(default=UINT32_MAX)


def pack_readings(readings: Iterable[DataReading]) -> bytes:
    """Concatenate the packed form of each reading."""
    return b"".join(reading.pack() for reading in readings)


def unpack_readings(data: bytes) -> list[DataReading]:
    """Decode as many whole readings as the data holds; trailing bytes are ignored."""
    usable = len(data) - len(data) % DataReading.SIZE
    return [
        DataReading(d=d, id=ident, t=kind)
        for d, ident, kind in _READING_FORMAT.iter_unpack(data[:usable])
    ]