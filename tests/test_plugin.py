import json
import threading

import pytest
import zmq

from sshpoller.config import GlobalConfig
from sshpoller.models import Device, FailedResult, SSHInput, SuccessfulResult
from sshpoller.plugin import (
    Mode,
    main,
    process_device,
    process_device_with_timeout,
    process_devices,
    run_discovery,
    run_polling,
)
from sshpoller.sinks import FileSink
from sshpoller.sshexec import METRIC_COMMANDS, SSHCommandError

FAST = GlobalConfig(retry_backoff=0.0, ping_retries=0, port_retries=0, ssh_retries=1)


def make_device(ip="192.0.2.10", port=22, device_id=7):
    password = "password"
    return Device(
        device_type_id=3,
        device_id=device_id,
        metric_group_id=5,
        ip=ip,
        port=port,
        protocol="ssh",
        credential={"username": "user", "password": password},
    )


class RecordingRunner:
    def __init__(self, output="  value \n", error=None):
        self.output = output
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, ip, port, username, password, command, config):
        with self._lock:
            self.calls.append((ip, port, username, password, command))
        if self.error is not None:
            raise self.error
        return self.output


def test_polling_collects_trimmed_metrics():
    runner = RecordingRunner(output="\n Linux host \n")
    result = process_device(make_device(), ["uname"], Mode.POLLING, FAST, runner)
    assert isinstance(result, SuccessfulResult)
    assert result.metrics == {"uname": "Linux host"}
    assert result.ip == "192.0.2.10"
    assert result.device_id == 7


def test_polling_passes_credentials_and_command():
    runner = RecordingRunner()
    process_device(make_device(), ["UNAME"], "POLLING", FAST, runner)
    assert runner.calls == [("192.0.2.10", 22, "user", "password", METRIC_COMMANDS["uname"])]


def test_metric_name_case_is_kept_in_result():
    runner = RecordingRunner(output="up")
    result = process_device(make_device(), ["UP"], Mode.POLLING, FAST, runner)
    assert result.metrics == {"UP": "up"}


def test_unsupported_metric_is_reported_without_running():
    runner = RecordingRunner()
    result = process_device(make_device(), ["bogus"], Mode.POLLING, FAST, runner)
    assert result.metrics == {"bogus": "unsupported-metric"}
    assert runner.calls == []


def test_runner_error_is_recorded_per_metric():
    runner = RecordingRunner(error=SSHCommandError("ssh dial error: refused"))
    result = process_device(make_device(), ["uptime"], Mode.POLLING, FAST, runner)
    assert isinstance(result, SuccessfulResult)
    assert result.metrics == {"uptime": "error: ssh dial error: refused"}


def test_discovery_fails_when_ping_check_fails():
    runner = RecordingRunner()
    result = process_device(make_device(), ["uname"], Mode.DISCOVERY, FAST, runner)
    assert isinstance(result, FailedResult)
    assert result.error == "ping-check-failed: no ping attempts made"
    assert runner.calls == []


def test_invalid_mode_is_rejected():
    with pytest.raises(ValueError):
        process_device(make_device(), [], "SCANNING", FAST, RecordingRunner())


def test_timeout_wrapper_passes_through_success():
    result = process_device_with_timeout(
        make_device(), ["up"], Mode.POLLING, FAST, RecordingRunner(output="up")
    )
    assert isinstance(result, SuccessfulResult)
    assert result.metrics == {"up": "up"}


def test_timeout_wrapper_reports_device_timeout():
    config = GlobalConfig(device_timeout=0.0, retry_backoff=0.0)
    result = process_device_with_timeout(
        make_device(), ["up"], Mode.POLLING, config, RecordingRunner()
    )
    assert isinstance(result, FailedResult)
    assert result.error == "device-timeout"
    assert result.device_type_id == 3


def test_timeout_wrapper_recovers_from_unexpected_error():
    runner = RecordingRunner(error=RuntimeError("kaboom"))
    result = process_device_with_timeout(make_device(), ["up"], Mode.POLLING, FAST, runner)
    assert isinstance(result, FailedResult)
    assert result.error == "internal-error: panic recovered: kaboom"
    assert result.metric_group_id == 5


def test_process_devices_hands_every_result_to_sink(tmp_path):
    devices = [make_device(ip=f"192.0.2.{n}", device_id=n) for n in range(1, 6)]
    ssh_input = SSHInput(metric_ids=["up"], devices=devices)
    out = tmp_path / "out.json"
    with FileSink(out) as sink:
        process_devices(ssh_input, Mode.POLLING, FAST, sink, RecordingRunner(output="up"))
    data = json.loads(out.read_text())
    assert "failed" not in data
    assert sorted(item["ip"] for item in data["successful"]) == sorted(d.ip for d in devices)
    assert all(item["metrics"] == {"up": "up"} for item in data["successful"])


def test_process_devices_splits_failures(tmp_path):
    devices = [make_device(ip="192.0.2.1"), make_device(ip="192.0.2.2")]
    ssh_input = SSHInput(metric_ids=["up"], devices=devices)
    out = tmp_path / "out.json"
    with FileSink(out) as sink:
        process_devices(ssh_input, Mode.DISCOVERY, FAST, sink, RecordingRunner())
    data = json.loads(out.read_text())
    assert "successful" not in data
    assert len(data["failed"]) == 2
    assert {item["error"] for item in data["failed"]} == {
        "ping-check-failed: no ping attempts made"
    }


def test_run_discovery_with_no_devices_writes_empty_object(tmp_path):
    source = tmp_path / "in.json"
    source.write_text(json.dumps({"metric_ids": ["up"], "devices": []}))
    out = tmp_path / "out.json"
    run_discovery(source, out)
    assert out.read_text() == "{}\n"


def test_run_discovery_rejects_bad_json(tmp_path):
    source = tmp_path / "in.json"
    source.write_text("{not json")
    with pytest.raises(ValueError, match="Failed to parse input JSON"):
        run_discovery(source, tmp_path / "out.json")


def test_run_discovery_missing_input(tmp_path):
    with pytest.raises(OSError):
        run_discovery(tmp_path / "absent.json", tmp_path / "out.json")


def test_run_polling_rejects_bad_json():
    with pytest.raises(ValueError, match="Failed to parse input JSON"):
        run_polling("[1, 2")


def test_run_polling_pushes_results():
    context = zmq.Context()
    puller = context.socket(zmq.PULL)
    try:
        port = puller.bind_to_random_port("tcp://127.0.0.1")
        puller.setsockopt(zmq.RCVTIMEO, 5000)
        job = {
            "metric_ids": ["bogus"],
            "devices": [{"device_id": 9, "ip": "192.0.2.9", "port": 22, "protocol": "ssh"}],
            "config": {
                "zmq_endpoint": f"tcp://127.0.0.1:{port}",
                "zmq_publisher_wait_time_ms": 10,
            },
        }
        run_polling(json.dumps(job))
        message = puller.recv_string()
    finally:
        puller.close(linger=0)
        context.term()
    topic, _, body = message.partition(" ")
    assert topic == "success"
    payload = json.loads(body)
    assert payload["device_id"] == 9
    assert payload["metrics"] == {"bogus": "unsupported-metric"}


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_main_rejects_unknown_mode(capsys):
    assert main(["scan", "x"]) == 1
    assert "Invalid MODE: SCAN" in capsys.readouterr().err


def test_main_discovery_requires_output_path(capsys):
    assert main(["DISCOVERY", "in.json"]) == 1
    assert "requires input and output" in capsys.readouterr().err


def test_main_runs_discovery_case_insensitively(tmp_path):
    source = tmp_path / "in.json"
    source.write_text(json.dumps({"devices": []}))
    out = tmp_path / "out.json"
    assert main(["discovery", str(source), str(out)]) == 0
    assert json.loads(out.read_text()) == {}


def test_main_reports_unreadable_input(tmp_path, capsys):
    assert main(["DISCOVERY", str(tmp_path / "absent.json"), str(tmp_path / "o.json")]) == 1
    assert "Failed to read input file" in capsys.readouterr().err