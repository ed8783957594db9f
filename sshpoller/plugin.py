"""Discovery and polling of devices over SSH."""

from __future__ import annotations

import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from sshpoller.checks import CheckError, ping, port_open
from sshpoller.config import GlobalConfig, apply_optional_config, default_config
from sshpoller.models import Device, FailedResult, SSHInput, SuccessfulResult
from sshpoller.sinks import FileSink, ZmqSink
from sshpoller.sshexec import SSHCommandError, metric_command, run_ssh_command

log = logging.getLogger(__name__)

Runner = Callable[[str, int, str, str, str, GlobalConfig], str]
Result = SuccessfulResult | FailedResult


class Mode(str, Enum):
    """How a job treats its devices."""

    DISCOVERY = "DISCOVERY"
    POLLING = "POLLING"


def process_device(device: Device, metric_ids: Sequence[str], mode: Mode | str,
                   config: GlobalConfig, runner: Runner | None = None) -> Result:
    """Check one device and collect the requested metrics.

    In discovery mode the device must answer a ping and have its port open first.
    """
    runner = runner or run_ssh_command
    if Mode(mode) is Mode.DISCOVERY:
        try:
            ping(device.ip, config)
        except CheckError as exc:
            return FailedResult.for_device(device, f"ping-check-failed: {exc}")
        try:
            port_open(device.ip, device.port, config)
        except CheckError as exc:
            return FailedResult.for_device(device, f"port-check-failed: {exc}")

    username = device.credential.get("username", "")
    password = device.credential.get("password", "")
    metrics: dict[str, str] = {}
    for metric in metric_ids:
        command = metric_command(metric)
        if command is None:
            metrics[metric] = "unsupported-metric"
            continue
        try:
            metrics[metric] = runner(device.ip, device.port, username, password, command, config).strip()
        except SSHCommandError as exc:
            metrics[metric] = f"error: {exc}"
    return SuccessfulResult.for_device(device, metrics)


def process_device_with_timeout(device: Device, metric_ids: Sequence[str], mode: Mode | str,
                                config: GlobalConfig, runner: Runner | None = None) -> Result:
    """Process a device, failing it if it ran past the device timeout or raised."""
    start = time.monotonic()
    try:
        result = process_device(device, metric_ids, mode, config, runner)
    except Exception as exc:  # noqa: BLE001 - one device must not stop the run
        log.error("Recovered from panic in device processing: %s", exc)
        return FailedResult.for_device(device, f"internal-error: panic recovered: {exc}")
    if time.monotonic() - start >= config.device_timeout:
        return FailedResult.for_device(device, "device-timeout")
    return result


def process_devices(ssh_input: SSHInput, mode: Mode | str, config: GlobalConfig,
                    sink, runner: Runner | None = None) -> None:
    """Process all devices of a job concurrently, handing each result to ``sink``."""
    mode = Mode(mode)
    with ThreadPoolExecutor(max_workers=max(1, config.concurrency)) as pool:
        futures = [
            pool.submit(process_device_with_timeout, device, ssh_input.metric_ids, mode, config, runner)
            for device in ssh_input.devices
        ]
        for future in as_completed(futures):
            result = future.result()
            if isinstance(result, FailedResult):
                sink.failure(result)
            else:
                sink.success(result)


def _prepare(raw: str | bytes) -> tuple[SSHInput, GlobalConfig]:
    try:
        ssh_input = SSHInput.from_json(raw)
    except ValueError as exc:
        raise ValueError(f"Failed to parse input JSON: {exc}") from exc
    return ssh_input, apply_optional_config(default_config(), ssh_input.config)


def run_discovery(input_path: str | Path, output_path: str | Path) -> None:
    """Discover the devices listed in ``input_path`` and write the results to ``output_path``."""
    ssh_input, config = _prepare(Path(input_path).read_bytes())
    with FileSink(output_path) as sink:
        process_devices(ssh_input, Mode.DISCOVERY, config, sink)


def run_polling(raw_json: str) -> None:
    """Poll the devices of a JSON job and push each result over ZeroMQ."""
    ssh_input, config = _prepare(raw_json)
    with ZmqSink(config.zmq_endpoint, config.zmq_publisher_wait_time, config.zmq_high_water_mark) as sink:
        process_devices(ssh_input, Mode.POLLING, config, sink)


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        sys.stdout.write("Usage:\n  sshpoller DISCOVERY <input.json> <output.json>\n"
                         "  sshpoller POLLING <json-string>\n")
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    mode = args[0].upper()
    try:
        if mode == Mode.DISCOVERY.value:
            if len(args) < 3:
                print("DISCOVERY mode requires input and output file paths", file=sys.stderr)
                return 1
            run_discovery(args[1], args[2])
        elif mode == Mode.POLLING.value:
            run_polling(args[1])
        else:
            print(f"Invalid MODE: {mode} (must be DISCOVERY or POLLING)", file=sys.stderr)
            return 1
    except OSError as exc:
        print(f"Failed to read input file: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())