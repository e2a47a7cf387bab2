import pytest

from farmrelay.datatypes import (
    Command,
    DataReading,
    Event,
    PingKind,
    SystemPacket,
    TimeSource,
    TmNetIf,
    TmSource,
    unpack_readings,
)
from farmrelay.espnow import (
    MAX_PAYLOAD,
    PEER_TIMEOUT,
    EspNowError,
    EspNowInterface,
    PeerTable,
    chunk_readings,
)

PREFIX = b"\x02\x00\x00\x00\x00"


class FakeRadio:
    def __init__(self, add_ok=True, send_ok=True):
        self.add_ok = add_ok
        self.send_ok = send_ok
        self.registered = set()
        self.sent = []
        self.log = []

    def add_peer(self, mac):
        self.log.append(("add", mac))
        if self.add_ok:
            self.registered.add(mac)
        return self.add_ok

    def del_peer(self, mac):
        self.log.append(("del", mac))
        self.registered.discard(mac)

    def peer_exists(self, mac):
        return mac in self.registered

    def send(self, mac, data):
        self.sent.append((mac, data))
        return self.send_ok


def make(radio=None, n1=0x01, n2=0x04):
    radio = radio or FakeRadio()
    return radio, EspNowInterface(radio, 0x02, PREFIX, n1, n2)


def readings(n):
    return [DataReading(d=float(i) + 0.5, id=i, t=1) for i in range(n)]


def test_chunks_round_trip_and_fit_frame():
    data = readings(100)
    chunks = list(chunk_readings(data))
    assert all(len(c) <= MAX_PAYLOAD for c in chunks)
    decoded = [r for c in chunks for r in unpack_readings(c)]
    assert decoded == data


def test_chunks_empty():
    assert list(chunk_readings([])) == []


def test_peer_table_free_and_index():
    table = PeerTable()
    assert table.find_free(5) == 0
    index, evicted = table.register(b"\x01" * 6, 100)
    assert (index, evicted) == (0, None)
    assert table.index_of(b"\x01" * 6) == 0
    assert table.find_free(200) == 1


def test_peer_table_full_and_recycle():
    table = PeerTable()
    for i in range(16):
        table.register(bytes([9, 9, 9, 9, 9, i]), 1000)
    with pytest.raises(EspNowError):
        table.find_free(2000)
    later = 1000 + PEER_TIMEOUT + 10
    assert table.find_free(later) == 0
    index, evicted = table.register(b"\x07" * 6, later)
    assert index == 0
    assert evicted == bytes([9, 9, 9, 9, 9, 0])


def test_active_peers_expire():
    table = PeerTable()
    table.register(b"\x01" * 6, 1000)
    assert [p.mac for p in table.active_peers(2000)] == [b"\x01" * 6]
    assert table.active_peers(1000 + PEER_TIMEOUT + 1) == []


def test_receive_readings_from_neighbor_two():
    _, iface = make()
    data = readings(3)
    payload = b"".join(r.pack() for r in data)
    event, got = iface.receive(PREFIX + b"\x04", payload)
    assert event == Event.ESPNOW2
    assert got == data
    event, _ = iface.receive(b"\x0a" * 6, payload)
    assert event == Event.ESPNOWG


def test_receive_system_packet():
    _, iface = make()
    packet = SystemPacket(Command.PING, PingKind.REQUEST)
    got = iface.receive(b"\x0a" * 6, packet.pack())
    assert got == packet
    assert iface.last_mac == b"\x0a" * 6


def test_add_peer_sends_ack_and_time():
    radio, iface = make()
    mac = b"\x0b" * 6
    index = iface.add_peer(mac, 100, 1700000000)
    assert index == 0
    assert radio.sent == [
        (mac, SystemPacket(Command.ADD, PEER_TIMEOUT).pack()),
        (mac, SystemPacket(Command.TIME, 1700000000).pack()),
    ]
    assert ("add", mac) in radio.log


def test_add_peer_failure_raises():
    radio, iface = make(FakeRadio(add_ok=False))
    with pytest.raises(EspNowError):
        iface.add_peer(b"\x0b" * 6, 100)
    assert radio.sent == []


def test_pingback_temporary_peer():
    radio, iface = make()
    mac = b"\x0c" * 6
    iface.pingback(mac)
    assert radio.sent == [(mac, SystemPacket(Command.PING, PingKind.REPLY).pack())]
    assert radio.log == [("add", mac), ("del", mac)]


def test_send_to_neighbor():
    radio, iface = make()
    data = readings(40)
    iface.send_to_neighbor(1, data)
    assert {mac for mac, _ in radio.sent} == {PREFIX + b"\x01"}
    assert [r for _, c in radio.sent for r in unpack_readings(c)] == data
    with pytest.raises(ValueError):
        iface.send_to_neighbor(3, data)


def test_send_to_peers_only_active():
    radio, iface = make()
    iface.add_peer(b"\x0d" * 6, 1000)
    radio.sent.clear()
    sent = iface.send_to_peers(readings(2), 2000)
    assert sent == [b"\x0d" * 6]
    assert len(radio.sent) == 1
    assert iface.send_to_peers(readings(2), 1000 + PEER_TIMEOUT + 5) == []


def test_send_time_skips_source_and_zero_neighbor():
    radio, iface = make(n1=0x00, n2=0x04)
    source = TimeSource(address=0x0004)
    iface.send_time(source, 1700000000)
    assert radio.sent == [(None, SystemPacket(Command.TIME, 1700000000).pack())]


def test_send_packet_failure_raises():
    _, iface = make(FakeRadio(send_ok=False))
    with pytest.raises(EspNowError):
        iface.send_packet(b"\x0e" * 6, SystemPacket(Command.TIME, 0))


def test_accepts_time_from():
    _, iface = make()
    source = TimeSource()
    mac = b"\x00\x00\x00\x00\x01\x05"
    assert iface.accepts_time_from(source, mac) is True
    assert source.net_if == TmNetIf.ESPNOW
    assert source.source == TmSource.NET
    assert iface.accepts_time_from(source, b"\x00" * 4 + b"\x01\x06") is False
    assert iface.accepts_time_from(TimeSource(net_if=TmNetIf.SERIAL), mac) is False