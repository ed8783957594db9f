import dataclasses

import pytest

from sshpoller.config import (
    GlobalConfig,
    apply_optional_config,
    default_config,
    parse_custom_config,
)


def test_default_config_values():
    config = default_config()
    assert config.concurrency == 100
    assert config.device_timeout == 30
    assert config.ping_timeout == 2
    assert config.port_timeout == 2
    assert config.ssh_timeout == 5
    assert config.ping_retries == 2
    assert config.port_retries == 2
    assert config.ssh_retries == 2
    assert config.retry_backoff == 0.5
    assert config.zmq_endpoint == "tcp://127.0.0.1:5555"
    assert config.zmq_publisher_wait_time == 5
    assert config.zmq_high_water_mark == 1000


def test_parse_none_is_none():
    assert parse_custom_config(None) is None


def test_apply_none_returns_same_config():
    config = default_config()
    assert apply_optional_config(config, None) == config


def test_parse_missing_fields_are_zero():
    custom = parse_custom_config({})
    assert custom.concurrency == 0
    assert custom.device_timeout == 0
    assert custom.retry_backoff == 0
    assert custom.zmq_endpoint == ""


def test_parse_timeouts_in_seconds():
    custom = parse_custom_config({"device_timeout": 10, "ssh_timeout": 7, "concurrency": 3})
    assert custom.device_timeout == 10
    assert custom.ssh_timeout == 7
    assert custom.concurrency == 3


def test_parse_backoff_in_milliseconds():
    custom = parse_custom_config({"retry_backoff": 1000, "zmq_publisher_wait_time_ms": 2000})
    assert custom.retry_backoff == 1
    assert custom.zmq_publisher_wait_time == 2


def test_apply_overrides_positive_values_only():
    base = default_config()
    custom = parse_custom_config({"concurrency": 4, "ping_retries": 0, "ssh_retries": -1})
    result = apply_optional_config(base, custom)
    assert result.concurrency == 4
    assert result.ping_retries == base.ping_retries
    assert result.ssh_retries == base.ssh_retries


def test_apply_endpoint_when_not_empty():
    base = default_config()
    changed = apply_optional_config(base, parse_custom_config({"zmq_endpoint": "tcp://localhost:6000"}))
    assert changed.zmq_endpoint == "tcp://localhost:6000"
    unchanged = apply_optional_config(base, parse_custom_config({"zmq_endpoint": ""}))
    assert unchanged.zmq_endpoint == base.zmq_endpoint


def test_high_water_mark_is_not_applied():
    base = default_config()
    custom = parse_custom_config({"zmq_high_watermark": 5})
    assert custom.zmq_high_water_mark == 5
    assert apply_optional_config(base, custom).zmq_high_water_mark == base.zmq_high_water_mark


def test_apply_leaves_original_untouched():
    base = default_config()
    apply_optional_config(base, parse_custom_config({"concurrency": 9}))
    assert base == GlobalConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        base.concurrency = 1


@pytest.mark.parametrize(
    "data",
    [
        {"concurrency": "5"},
        {"device_timeout": 1.5},
        {"ping_retries": True},
        {"zmq_endpoint": 5},
    ],
)
def test_parse_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        parse_custom_config(data)


def test_parse_rejects_non_object():
    with pytest.raises(ValueError):
        parse_custom_config([1, 2])