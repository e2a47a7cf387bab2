"""Serial link messages: JSON readings and commands, and GPS time sentences."""

from __future__ import annotations

import calendar
import json
import re
from typing import Iterable, Optional, Union

from .datatypes import Command, DataReading, SystemPacket

_GPS_MIN_LENGTH = 38
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class SerialDecodeError(ValueError):
    """Raised when a serial line is not valid JSON or not a known message."""


def _to_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def gps_timestamp(line: str) -> Optional[int]:
    """UTC Unix time from a $GNZDA or $GNRMC sentence, or None if there is none.

    The line is taken as read, including any trailing carriage return; lines
    shorter than 38 characters are ignored.
    """
    if len(line) < _GPS_MIN_LENGTH:
        return None
    if line.startswith("$GNZDA"):
        pos = line.find(",")
        time_text = line[pos + 1:pos + 7]
        pos = line.find(",", pos + 5)
        if pos < 0:
            return None
        date = line[pos:pos + 11].replace(",", "")
        year = _to_int(date[4:8])
    elif line.startswith("$GNRMC"):
        pos = line.find(",")
        time_text = line[pos + 1:pos + 7]
        for _ in range(8):
            pos = line.find(",", pos + 1)
            if pos < 0:
                return None
        date = line[pos:pos + 9].replace(",", "")
        year = 2000 + _to_int(date[4:6])
    else:
        return None
    hour = _to_int(time_text[0:2])
    minute = _to_int(time_text[2:4])
    second = _to_int(time_text[4:6])
    day = _to_int(date[0:2])
    month = _to_int(date[2:4])
    try:
        return calendar.timegm((year, month, day, hour, minute, second, 0, 0, 0))
    except (ValueError, OverflowError):
        return None


def _number(entry: object, key: str) -> Union[int, float]:
    if not isinstance(entry, dict):
        return 0
    value = entry.get(key)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return 0


def decode_serial(line: str) -> Union[list[DataReading], SystemPacket]:
    """Decode a JSON array of readings, or a command array, from the serial link."""
    try:
        doc = json.loads(line)
    except json.JSONDecodeError as exc:
        raise SerialDecodeError(f"json parse err: {line!r}") from exc
    if not isinstance(doc, list) or not doc or not isinstance(doc[0], dict):
        raise SerialDecodeError(f"Incoming Serial: unknown: {line!r}")
    first = doc[0]
    if "type" in first:
        return [
            DataReading(
                d=float(_number(entry, "data")),
                id=int(_number(entry, "id")),
                t=int(_number(entry, "type")),
            )
            for entry in doc
        ]
    if "cmd" in first:
        return SystemPacket(cmd=int(_number(first, "cmd")), param=int(_number(first, "param")))
    raise SerialDecodeError(f"Incoming Serial: unknown: {line!r}")


def encode_readings(readings: Iterable[DataReading]) -> str:
    """The JSON line a gateway writes to the serial link for these readings."""
    doc = [{"id": r.id, "type": r.t, "data": r.d} for r in readings]
    if not doc:
        return "null"
    return json.dumps(doc, separators=(",", ":"))


def encode_time(now: int) -> str:
    """The JSON line that sends the current time over the serial link."""
    return json.dumps([{"cmd": int(Command.TIME), "param": now}], separators=(",", ":"))