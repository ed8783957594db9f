"""Reachability checks: ICMP echo requests and TCP port probes."""

from __future__ import annotations

import random
import socket
import struct
import time

from sshpoller.config import GlobalConfig

PING_COUNT = 3
PING_INTERVAL = 1.0

_PAYLOAD = b"sshpoller-echo".ljust(24, b"\0")
_HEADER = struct.Struct("!BBHHH")
# family -> (protocol, echo request type, echo reply type)
_ICMP = {
    socket.AF_INET: (socket.IPPROTO_ICMP, 8, 0),
    socket.AF_INET6: (socket.IPPROTO_ICMPV6, 128, 129),
}


class CheckError(Exception):
    """A reachability check failed."""


def icmp_checksum(data: bytes) -> int:
    """Return the internet checksum of ``data``."""
    if len(data) % 2:
        data += b"\0"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def _icmp_packet(kind: int, identifier: int, sequence: int, payload: bytes) -> bytes:
    identifier &= 0xFFFF
    sequence &= 0xFFFF
    checksum = icmp_checksum(_HEADER.pack(kind, 0, 0, identifier, sequence) + payload)
    return _HEADER.pack(kind, 0, checksum, identifier, sequence) + payload


def build_echo_request(identifier: int, sequence: int, payload: bytes) -> bytes:
    """Build an ICMPv4 echo request carrying ``payload``."""
    return _icmp_packet(8, identifier, sequence, payload)


def _ping_once(ip: str, timeout: float) -> int:
    """Send up to ``PING_COUNT`` echo requests and return the number of replies."""
    try:
        family, _, _, _, sockaddr = socket.getaddrinfo(ip, None)[0]
    except (OSError, UnicodeError, IndexError) as exc:
        raise CheckError(f"create pinger: {exc}") from exc
    proto, request_kind, reply_kind = _ICMP[family]
    try:
        sock = socket.socket(family, socket.SOCK_RAW, proto)
    except OSError as exc:
        raise CheckError(f"ping run failed: {exc}") from exc

    identifier = random.getrandbits(16)
    received: set[int] = set()
    sent = 0
    try:
        with sock:
            now = time.monotonic()
            deadline, next_send = now + timeout, now
            while len(received) < PING_COUNT and now < deadline:
                if sent < PING_COUNT and now >= next_send:
                    sock.sendto(_icmp_packet(request_kind, identifier, sent, _PAYLOAD), sockaddr)
                    sent += 1
                    next_send = now + PING_INTERVAL
                wake = min(deadline, next_send) if sent < PING_COUNT else deadline
                sock.settimeout(max(wake - time.monotonic(), 0.001))
                try:
                    data, address = sock.recvfrom(65535)
                except socket.timeout:
                    data, address = b"", (None,)
                now = time.monotonic()
                if address[0] != sockaddr[0]:
                    continue
                if family == socket.AF_INET:
                    data = data[(data[0] & 0x0F) * 4:] if len(data) >= 20 else b""
                if len(data) < _HEADER.size:
                    continue
                kind, _, _, ident, sequence = _HEADER.unpack(data[: _HEADER.size])
                if kind == reply_kind and ident == identifier and sequence < sent:
                    received.add(sequence)
    except OSError as exc:
        raise CheckError(f"ping run failed: {exc}") from exc
    return len(received)


def ping(ip: str, config: GlobalConfig) -> bool:
    """Return True if ``ip`` answers an ICMP echo; raise ``CheckError`` otherwise."""
    last_error = CheckError("no ping attempts made")
    for _ in range(config.ping_retries):
        try:
            if _ping_once(ip, config.ping_timeout):
                return True
            last_error = CheckError("no packets received")
        except CheckError as exc:
            last_error = exc
        time.sleep(config.retry_backoff)
    raise last_error


def port_open(ip: str, port: int, config: GlobalConfig) -> bool:
    """Return True if a TCP connection to ``ip:port`` succeeds; raise ``CheckError`` otherwise."""
    last_error = CheckError("no port attempts made")
    for _ in range(config.port_retries):
        try:
            with socket.create_connection((ip, port), timeout=config.port_timeout):
                return True
        except (OSError, OverflowError) as exc:
            last_error = CheckError(f"dial timeout: {exc}")
        time.sleep(config.retry_backoff)
    raise last_error