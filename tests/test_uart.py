from datetime import datetime, timezone

import pytest

from farmrelay.datatypes import Command, DataReading, SystemPacket
from farmrelay.uart import (
    SerialDecodeError,
    decode_serial,
    encode_readings,
    encode_time,
    gps_timestamp,
)


def _utc(*parts):
    return int(datetime(*parts, tzinfo=timezone.utc).timestamp())


def test_gps_zda_sentence():
    line = "$GNZDA,154230.000,11,02,2024,00,00*4F\r"
    assert gps_timestamp(line) == _utc(2024, 2, 11, 15, 42, 30)


def test_gps_rmc_sentence():
    line = "$GNRMC,154230.000,A,,,,,,,110224,,,A,V*19"
    assert gps_timestamp(line) == _utc(2024, 2, 11, 15, 42, 30)


def test_gps_short_line_ignored():
    assert gps_timestamp("$GNZDA,154230.000,11,02,2024,00,00*4F") is None


def test_gps_other_sentence_ignored():
    assert gps_timestamp("$GPGGA,154230.000,1234.5678,N,01234.5678,E,1,08") is None


def test_gps_invalid_month_ignored():
    assert gps_timestamp("$GNZDA,154230.000,11,13,2024,00,00*4F\r") is None


def test_readings_round_trip():
    readings = [DataReading(d=21.5, id=1, t=1), DataReading(d=-3.25, id=300, t=3)]
    assert decode_serial(encode_readings(readings)) == readings


def test_encode_readings_format():
    line = encode_readings([DataReading(d=1.5, id=2, t=3)])
    assert line == '[{"id":2,"type":3,"data":1.5}]'


def test_encode_no_readings():
    assert encode_readings([]) == "null"


def test_time_round_trip():
    packet = decode_serial(encode_time(1700000000))
    assert packet == SystemPacket(cmd=Command.TIME, param=1700000000)


def test_encode_time_format():
    assert encode_time(1700000000) == '[{"cmd":4,"param":1700000000}]'


def test_missing_fields_default_to_zero():
    readings = decode_serial('[{"type":5}]')
    assert readings == [DataReading(d=0.0, id=0, t=5)]


def test_command_without_param():
    assert decode_serial('[{"cmd":1}]') == SystemPacket(cmd=1, param=0)


@pytest.mark.parametrize("line", ["not json", "", "{\"a\":1}", "[]", '[{"foo":1}]', "[5]"])
def test_decode_errors(line):
    with pytest.raises(SerialDecodeError):
        decode_serial(line)