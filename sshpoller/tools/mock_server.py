"""Mock SSH servers that answer the metric commands with canned output."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import threading
import time
from typing import Sequence

import paramiko

from sshpoller.tools.generate_input import mock_addresses

log = logging.getLogger(__name__)

USERNAME = "username"
PASSWORD = "password"
DEFAULT_PORT = 2222
MAX_SERVERS = 1024
START_INTERVAL = 0.003

_POLL_INTERVAL = 0.2
# Lets the reply to the exec request go out before the channel is closed.
_REPLY_GRACE = 0.01

_RESPONSES = (
    (("Cpu(s)",), "15.5"),
    (("free", "awk"), "68.23"),
    (("df /",), "42%"),
    (("uptime",), "up 1 hour, 32 minutes"),
    (("uname",), "Linux mock-host 5.15.0-virtual #1 SMP"),
)


def mock_response(command: str) -> str:
    """Return the canned output for ``command``."""
    for needles, response in _RESPONSES:
        if all(needle in command for needle in needles):
            return response
    return f"mock-output-for: {command}"


def _answer(channel: paramiko.Channel, command: str) -> None:
    time.sleep(_REPLY_GRACE)
    try:
        channel.sendall(mock_response(command).encode("utf-8"))
        channel.send_exit_status(0)
    except (OSError, EOFError, paramiko.SSHException):
        pass
    finally:
        channel.close()


class _SessionInterface(paramiko.ServerInterface):
    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    def get_allowed_auths(self, username: str) -> str:
        return "password"

    def check_auth_password(self, username: str, password: str) -> int:
        if username == self._username and password == self._password:
            return paramiko.AUTH_SUCCESSFUL
        return paramiko.AUTH_FAILED

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_UNKNOWN_CHANNEL_TYPE

    def check_channel_exec_request(self, channel: paramiko.Channel, command) -> bool:
        if isinstance(command, (bytes, bytearray)):
            text = bytes(command).decode("utf-8", errors="replace")
        else:
            text = str(command)
        threading.Thread(target=_answer, args=(channel, text), daemon=True).start()
        return True


class MockSSHServer:
    """An SSH server on one address that accepts a single user and password.

    Port 0 picks a free port; ``port`` holds the bound port once started.
    """

    def __init__(self, ip: str, port: int, username: str, password: str) -> None:
        self.ip = ip
        self.port = port
        self.username = username
        self.password = password
        self._host_key: paramiko.PKey | None = None
        self._listener: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._transports: set[paramiko.Transport] = set()

    def start(self) -> None:
        """Bind the listening socket and serve connections in the background.

        Raises ``OSError`` if the address cannot be bound.
        """
        if self._listener is not None:
            raise RuntimeError("server already started")
        self._host_key = paramiko.RSAKey.generate(2048)
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.ip, self.port))
            listener.listen(128)
        except OSError:
            listener.close()
            raise
        listener.settimeout(_POLL_INTERVAL)
        self.port = listener.getsockname()[1]
        self._listener = listener
        self._stopped.clear()
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()
        log.info("Mock SSH server on %s:%d", self.ip, self.port)

    def stop(self) -> None:
        """Stop accepting connections and close the open ones."""
        self._stopped.set()
        if self._listener is not None:
            self._listener.close()
        if self._thread is not None:
            self._thread.join()
        with self._lock:
            transports = list(self._transports)
        for transport in transports:
            transport.close()
        self._listener = None
        self._thread = None

    def _accept_loop(self) -> None:
        listener = self._listener
        assert listener is not None
        while not self._stopped.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._stopped.is_set():
                    break
                continue
            conn.settimeout(None)
            threading.Thread(target=self._serve, args=(conn,), daemon=True).start()

    def _serve(self, conn: socket.socket) -> None:
        transport = paramiko.Transport(conn)
        with self._lock:
            self._transports.add(transport)
        try:
            assert self._host_key is not None
            transport.add_server_key(self._host_key)
            transport.start_server(server=_SessionInterface(self.username, self.password))
            while transport.is_active() and not self._stopped.is_set():
                transport.accept(timeout=_POLL_INTERVAL)
        except (paramiko.SSHException, EOFError, OSError):
            pass
        finally:
            transport.close()
            with self._lock:
                self._transports.discard(transport)


def parse_excluded(text: str) -> set[str]:
    """Parse a comma-separated list of addresses to leave out."""
    if not text:
        return set()
    return {part.strip() for part in text.split(",")}


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Start mock SSH servers on 127.10.x.y.")
    parser.add_argument("--exclude", default="", help="Comma-separated list of IPs to exclude")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port on every address")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    excluded = parse_excluded(args.exclude)
    servers: list[MockSSHServer] = []
    count = 0
    for address in mock_addresses():
        if address in excluded:
            log.info("Skipping excluded IP %s", address)
            continue
        server = MockSSHServer(address, args.port, USERNAME, PASSWORD)
        try:
            server.start()
        except OSError as exc:
            log.warning("Failed to listen on %s:%d: %s", address, args.port, exc)
        else:
            servers.append(server)
        count += 1
        if count >= MAX_SERVERS:
            break
        time.sleep(START_INTERVAL)

    print("All mock SSH servers started (excluding specified IPs)")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        for server in servers:
            server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())