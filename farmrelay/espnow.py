"""ESP-NOW side of a gateway: peer registration, packet routing and time distribution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Protocol, Union

from .datatypes import (
    Command,
    DataReading,
    Event,
    FDRSPeer,
    PingKind,
    SystemPacket,
    TimeSource,
    TmNetIf,
    TmSource,
    pack_readings,
    unpack_readings,
)
from .debug import DebugLogger

PEER_TIMEOUT = 300000
PEER_CAPACITY = 16
MAX_PAYLOAD = 250
MAX_READINGS = MAX_PAYLOAD // DataReading.SIZE
BROADCAST_MAC = b"\xff" * 6

_MASK32 = 0xFFFFFFFF


class EspNowError(Exception):
    """Raised when a peer cannot be added or a packet cannot be sent."""


class Radio(Protocol):
    """The ESP-NOW driver the interface talks through."""

    def add_peer(self, mac: bytes) -> bool: ...

    def del_peer(self, mac: bytes) -> None: ...

    def peer_exists(self, mac: bytes) -> bool: ...

    def send(self, mac: Optional[bytes], data: bytes) -> bool: ...


def _elapsed(now: int, since: int) -> int:
    return (now - since) & _MASK32


def _short_address(mac: bytes) -> int:
    return mac[4] << 8 | mac[5]


@dataclass
class PeerTable:
    """A fixed number of peer slots; a slot with last_seen 0 is unused."""

    capacity: int = PEER_CAPACITY
    timeout: int = PEER_TIMEOUT
    peers: list[FDRSPeer] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.peers:
            self.peers = [FDRSPeer() for _ in range(self.capacity)]

    def find_free(self, now: int) -> int:
        """Index of an unused slot, or else of the first expired one."""
        for index, peer in enumerate(self.peers):
            if peer.last_seen == 0:
                return index
        for index, peer in enumerate(self.peers):
            if _elapsed(now, peer.last_seen) > self.timeout:
                return index
        raise EspNowError("No open peers")

    def index_of(self, mac: bytes) -> Optional[int]:
        """Index of the slot holding mac, or None."""
        mac = bytes(mac)
        for index, peer in enumerate(self.peers):
            if peer.mac == mac:
                return index
        return None

    def register(self, mac: bytes, now: int) -> tuple[int, Optional[bytes]]:
        """Store or refresh mac; return its slot and the MAC of an evicted peer, if any."""
        mac = bytes(mac)
        index = self.index_of(mac)
        if index is not None:
            self.peers[index].last_seen = now
            return index, None
        index = self.find_free(now)
        old = self.peers[index]
        evicted = old.mac if old.last_seen != 0 else None
        self.peers[index] = FDRSPeer(mac=mac, last_seen=now)
        return index, evicted

    def active_peers(self, now: int) -> list[FDRSPeer]:
        """Peers seen within the timeout."""
        return [
            peer
            for peer in self.peers
            if peer.last_seen != 0 and _elapsed(now, peer.last_seen) < self.timeout
        ]


def chunk_readings(readings: Iterable[DataReading]) -> Iterator[bytes]:
    """Packed payloads holding at most as many readings as fit one ESP-NOW frame."""
    batch: list[DataReading] = []
    for reading in readings:
        batch.append(reading)
        if len(batch) == MAX_READINGS:
            yield pack_readings(batch)
            batch = []
    if batch:
        yield pack_readings(batch)


class EspNowInterface:
    """Gateway logic for one ESP-NOW radio."""

    def __init__(
        self,
        radio: Radio,
        unit_mac: int,
        mac_prefix: bytes,
        neighbor1: int = 0,
        neighbor2: int = 0,
        peers: Optional[PeerTable] = None,
        logger: Optional[DebugLogger] = None,
    ) -> None:
        mac_prefix = bytes(mac_prefix)
        if len(mac_prefix) != 5:
            raise ValueError("the MAC prefix must be 5 bytes")
        self.radio = radio
        self.mac_prefix = mac_prefix
        self.self_address = mac_prefix + bytes([unit_mac])
        self.neighbor1 = mac_prefix + bytes([neighbor1])
        self.neighbor2 = mac_prefix + bytes([neighbor2])
        self.peers = peers if peers is not None else PeerTable()
        self.log = logger if logger is not None else DebugLogger(enabled=False)
        self.last_mac: bytes = bytes(6)

    def _add(self, mac: bytes) -> None:
        if not self.radio.add_peer(mac):
            self.log.dbg("Failed to add peer")
            raise EspNowError(f"failed to add peer {mac.hex(':')}")

    def _send_readings_to(self, mac: bytes, readings: Iterable[DataReading]) -> None:
        self._add(mac)
        try:
            for payload in chunk_readings(readings):
                self.radio.send(mac, payload)
        finally:
            self.radio.del_peer(mac)

    def receive(
        self, mac: bytes, payload: bytes
    ) -> Union[SystemPacket, tuple[Event, list[DataReading]]]:
        """Decode an incoming frame into a command packet or an event with readings."""
        mac = bytes(mac)
        self.last_mac = mac
        if len(payload) < DataReading.SIZE:
            self.log.dbg1(f"Incoming ESP-NOW System Packet from 0x{mac[5]:x}")
            raw = bytes(payload[: SystemPacket.SIZE]).ljust(SystemPacket.SIZE, b"\0")
            return SystemPacket.unpack(raw)
        self.log.dbg(f"Incoming ESP-NOW DataReading from 0x{mac[5]:x}")
        readings = unpack_readings(bytes(payload))
        if mac == self.neighbor1:
            event = Event.ESPNOW1
        elif mac == self.neighbor2:
            event = Event.ESPNOW2
        else:
            event = Event.ESPNOWG
        return event, readings

    def add_peer(self, mac: bytes, now: int, current_time: Optional[int] = None) -> int:
        """Register or refresh a peer, acknowledge it and send it the time if known."""
        mac = bytes(mac)
        self.log.dbg1("Device requesting peer registration")
        is_new = self.peers.index_of(mac) is None
        index, evicted = self.peers.register(mac, now)
        if is_new:
            if evicted is not None:
                self.log.dbg1(f"Recycling peer entry {index}")
                self.radio.del_peer(evicted)
            self.log.dbg(f"Registering new peer. Slot: {index}")
            self._add(mac)
        else:
            self.log.dbg1("Refreshing existing peer registration")
        self.radio.send(mac, SystemPacket(Command.ADD, PEER_TIMEOUT).pack())
        if current_time is not None:
            self.radio.send(mac, SystemPacket(Command.TIME, current_time).pack())
        return index

    def pingback(self, mac: bytes) -> None:
        """Answer a ping request from mac."""
        mac = bytes(mac)
        self.log.dbg("Sending ESP-NOW Ping Reply")
        reply = SystemPacket(Command.PING, PingKind.REPLY).pack()
        if self.radio.peer_exists(mac):
            self.radio.send(mac, reply)
            return
        self._add(mac)
        self.radio.send(mac, reply)
        self.radio.del_peer(mac)

    def send_to_neighbor(self, number: int, readings: Iterable[DataReading]) -> None:
        """Forward readings to neighbour 1 or 2."""
        if number == 1:
            mac = self.neighbor1
        elif number == 2:
            mac = self.neighbor2
        else:
            raise ValueError(f"no ESP-NOW neighbor {number}")
        self.log.dbg(f"Sending DR to ESP-NOW Neighbor #{number}")
        self._send_readings_to(mac, readings)

    def send_to_peers(self, readings: Iterable[DataReading], now: int) -> list[bytes]:
        """Send readings to every active registered peer; return their MACs."""
        self.log.dbg("Sending DR to ESP-NOW peers.")
        payloads = list(chunk_readings(readings))
        sent = []
        for peer in self.peers.active_peers(now):
            for payload in payloads:
                self.radio.send(peer.mac, payload)
            sent.append(peer.mac)
        return sent

    def send_to_address(self, address: int, readings: Iterable[DataReading]) -> None:
        """Send readings to the gateway with the given one-byte address."""
        self.log.dbg("Sending ESP-NOW DR.")
        self._send_readings_to(self.mac_prefix + bytes([address]), readings)

    def send_packet(self, dest: Optional[bytes], packet: SystemPacket) -> None:
        """Send a system packet to dest, or to all registered peers when dest is None."""
        data = packet.pack()
        if dest is not None:
            dest = bytes(dest)
            if not self.radio.peer_exists(dest):
                self._add(dest)
                try:
                    ok = self.radio.send(dest, data)
                finally:
                    self.radio.del_peer(dest)
                if not ok:
                    raise EspNowError(f"send to {dest.hex(':')} failed")
                return
        if not self.radio.send(dest, data):
            raise EspNowError("send failed")

    def send_time(self, time_source: TimeSource, current_time: int) -> None:
        """Send the time to both neighbours (except the time source) and all peers."""
        packet = SystemPacket(Command.TIME, current_time)
        failures = []
        targets: list[Optional[bytes]] = []
        for number, mac in ((1, self.neighbor1), (2, self.neighbor2)):
            if time_source.address != _short_address(mac) and mac[5] != 0:
                self.log.dbg1(f"Sending time to ESP-NOW Peer {number}")
                targets.append(mac)
        targets.append(None)
        for mac in targets:
            try:
                self.send_packet(mac, packet)
            except EspNowError as exc:
                failures.append(str(exc))
        if failures:
            raise EspNowError("; ".join(failures))

    def send_time_to(self, mac: bytes, current_time: int) -> None:
        """Send the time to one node."""
        mac = bytes(mac)
        self.log.dbg1(f"Sending time to ESP-NOW address 0x{mac[5]:x}")
        self.send_packet(mac, SystemPacket(Command.TIME, current_time))

    def accepts_time_from(self, time_source: TimeSource, mac: bytes) -> bool:
        """Whether time from mac should be used; adopts mac as source if none better is set."""
        mac = bytes(mac)
        if time_source.net_if > TmNetIf.ESPNOW:
            self.log.dbg2(f"ESP-NOW 0x{mac[5]:x} is not time source, discarding request")
            return False
        self.log.dbg1(f"Received time via ESP-NOW from 0x{mac[5]:x}")
        if time_source.net_if < TmNetIf.ESPNOW:
            time_source.net_if = TmNetIf.ESPNOW
            time_source.address = _short_address(mac)
            time_source.source = TmSource.NET
            self.log.dbg1(f"ESP-NOW time source is 0x{mac[5]:x}")
        return time_source.address == _short_address(mac)