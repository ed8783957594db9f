"""Running metric commands on remote hosts over SSH."""

from __future__ import annotations

import time

import paramiko

from sshpoller.config import GlobalConfig

METRIC_COMMANDS: dict[str, str] = {
    "cpu_usage": """top -bn1 | grep "Cpu(s)" | awk '{print $2 + $4}'""",
    "memory_usage": """free | awk '/Mem:/ { printf("%.2f", $3/$2 * 100.0) }'""",
    "disk_usage": """df / | awk 'NR==2 { print $5 }'""",
    "uptime": "uptime -p",
    "uname": "uname -a",
    "up": 'echo "up"',
}

_NETWORK_ERRORS = (paramiko.SSHException, OSError, EOFError)


class SSHCommandError(Exception):
    """A remote command could not be run or did not succeed."""


def metric_command(metric: str) -> str | None:
    """Return the shell command for ``metric`` (case-insensitive), or None if unsupported."""
    return METRIC_COMMANDS.get(metric.lower())


def _read_all(channel: paramiko.Channel) -> bytes:
    chunks = []
    while True:
        data = channel.recv(32768)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


def _execute(
    ip: str, port: int, username: str, password: str, command: str, config: GlobalConfig
) -> str:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        try:
            client.connect(
                ip,
                port=port,
                username=username,
                password=password,
                timeout=config.ssh_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except _NETWORK_ERRORS as exc:
            raise SSHCommandError(f"ssh dial error: {exc}") from exc

        transport = client.get_transport()
        if transport is None:
            raise SSHCommandError("ssh new session error: connection is closed")
        try:
            channel = transport.open_session()
        except _NETWORK_ERRORS as exc:
            raise SSHCommandError(f"ssh new session error: {exc}") from exc

        try:
            channel.set_combine_stderr(True)
            channel.exec_command(command)
            output = _read_all(channel)
            status = channel.recv_exit_status()
        except _NETWORK_ERRORS as exc:
            raise SSHCommandError(f"ssh command error: {exc}") from exc
        finally:
            channel.close()
    finally:
        client.close()

    if status == -1:
        raise SSHCommandError(
            "ssh command error: wait: remote command exited without exit status or exit signal"
        )
    if status != 0:
        raise SSHCommandError(f"ssh command error: Process exited with status {status}")
    return output.decode("utf-8", errors="replace")


def run_ssh_command(
    ip: str, port: int, username: str, password: str, command: str, config: GlobalConfig
) -> str:
    """Run ``command`` with password authentication and return its combined output.

    Each failed attempt is followed by the retry backoff; the error of the last
    attempt is raised once all retries are used.
    """
    last_error = SSHCommandError("no ssh attempts made")
    for _ in range(config.ssh_retries):
        try:
            return _execute(ip, port, username, password, command, config)
        except SSHCommandError as exc:
            last_error = exc
        time.sleep(config.retry_backoff)
    raise last_error