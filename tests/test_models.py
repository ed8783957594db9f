import json

import pytest

from sshpoller.models import (
    Device,
    FailedResult,
    ResultOutput,
    SSHInput,
    SuccessfulResult,
)

DEVICE_DATA = {
    "device_type_id": 1,
    "device_id": 7,
    "metric_group_id": 3,
    "ip": "127.10.0.1",
    "port": 2222,
    "protocol": "ssh",
    "credential": {"username": "testuser", "password": "password"},
}


def test_device_from_dict():
    device = Device.from_dict(DEVICE_DATA)
    assert device.device_id == 7
    assert device.ip == "127.10.0.1"
    assert device.port == 2222
    assert device.credential["username"] == "testuser"


def test_device_missing_fields_default():
    device = Device.from_dict({"ip": "127.0.0.1"})
    assert device.port == 0
    assert device.protocol == ""
    assert device.credential == {}


@pytest.mark.parametrize(
    "data",
    [
        {"port": "22"},
        {"ip": 5},
        {"credential": {"username": 1}},
        {"credential": ["username"]},
    ],
)
def test_device_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        Device.from_dict(data)


def test_input_from_json_with_config():
    document = {
        "job_id": "job-1",
        "metric_ids": ["cpu_usage", "uptime"],
        "devices": [DEVICE_DATA],
        "config": {"concurrency": 4},
    }
    parsed = SSHInput.from_json(json.dumps(document))
    assert parsed.job_id == "job-1"
    assert parsed.metric_ids == ["cpu_usage", "uptime"]
    assert parsed.devices == [Device.from_dict(DEVICE_DATA)]
    assert parsed.config.concurrency == 4


def test_input_without_config_or_lists():
    parsed = SSHInput.from_json("{}")
    assert parsed.config is None
    assert parsed.devices == []
    assert parsed.metric_ids == []


@pytest.mark.parametrize("text", ["not json", "[1]", '{"devices": 3}', '{"metric_ids": [1]}'])
def test_input_rejects_bad_documents(text):
    with pytest.raises(ValueError):
        SSHInput.from_json(text)


def test_successful_result_copies_device_identity():
    device = Device.from_dict(DEVICE_DATA)
    result = SuccessfulResult.for_device(device, {"up": "up"})
    data = result.to_dict()
    assert data["device_id"] == device.device_id
    assert data["ip"] == device.ip
    assert data["metrics"] == {"up": "up"}
    assert list(data) == [
        "device_type_id",
        "device_id",
        "metric_group_id",
        "ip",
        "port",
        "protocol",
        "metrics",
    ]


def test_zero_ids_are_omitted():
    device = Device.from_dict({"ip": "127.0.0.1", "port": 22, "protocol": "ssh"})
    data = FailedResult.for_device(device, "device-timeout").to_dict()
    assert data == {"ip": "127.0.0.1", "port": 22, "protocol": "ssh", "error": "device-timeout"}


def test_metrics_are_sorted():
    device = Device.from_dict(DEVICE_DATA)
    result = SuccessfulResult.for_device(device, {"uptime": "a", "cpu_usage": "b"})
    assert list(result.to_dict()["metrics"]) == ["cpu_usage", "uptime"]


def test_empty_output_json():
    assert ResultOutput().to_json() == "{}\n"


def test_output_json_round_trip():
    device = Device.from_dict(DEVICE_DATA)
    output = ResultOutput(
        successful=[SuccessfulResult.for_device(device, {"up": "up"})],
        failed=[FailedResult.for_device(device, "device-timeout")],
    )
    text = output.to_json()
    assert text.endswith("\n")
    assert json.loads(text) == output.to_dict()
    assert "\n  " in text


def test_output_json_escapes_html():
    device = Device.from_dict(DEVICE_DATA)
    output = ResultOutput(failed=[FailedResult.for_device(device, "a<b>&c")])
    text = output.to_json()
    assert "<" not in text and ">" not in text and "&" not in text
    assert json.loads(text)["failed"][0]["error"] == "a<b>&c"


def test_failed_only_output_omits_successful():
    device = Device.from_dict(DEVICE_DATA)
    data = ResultOutput(failed=[FailedResult.for_device(device, "x")]).to_dict()
    assert list(data) == ["failed"]