"""Runtime configuration for device discovery and polling."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

DEFAULT_ZMQ_ENDPOINT = "tcp://127.0.0.1:5555"

# Fields that a custom configuration overrides when its value is positive.
# The ZMQ high-water mark is parsed but deliberately never applied.
_POSITIVE_FIELDS = (
    "concurrency",
    "device_timeout",
    "ping_timeout",
    "port_timeout",
    "ssh_timeout",
    "ping_retries",
    "port_retries",
    "ssh_retries",
    "retry_backoff",
    "zmq_publisher_wait_time",
)


@dataclass(frozen=True)
class GlobalConfig:
    """Settings shared by all device checks. Durations are in seconds."""

    concurrency: int = 100
    device_timeout: float = 30.0
    ping_timeout: float = 2.0
    port_timeout: float = 2.0
    ssh_timeout: float = 5.0
    ping_retries: int = 2
    port_retries: int = 2
    ssh_retries: int = 2
    retry_backoff: float = 0.5
    zmq_endpoint: str = DEFAULT_ZMQ_ENDPOINT
    zmq_publisher_wait_time: float = 5.0
    zmq_high_water_mark: int = 1000


def default_config() -> GlobalConfig:
    """Return the built-in configuration."""
    return GlobalConfig()


def _int_field(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"config field {key!r} must be an integer, got {value!r}")
    return value


def parse_custom_config(data: Any) -> GlobalConfig | None:
    """Parse the optional ``config`` object of an input document.

    Missing fields are zero. Timeouts are given in whole seconds, the retry
    backoff and publisher wait time in milliseconds.
    """
    if data is None:
        return None
    if not isinstance(data, Mapping):
        raise ValueError("config must be a JSON object")

    endpoint = data.get("zmq_endpoint")
    if endpoint is None:
        endpoint = ""
    elif not isinstance(endpoint, str):
        raise ValueError(f"config field 'zmq_endpoint' must be a string, got {endpoint!r}")

    return GlobalConfig(
        concurrency=_int_field(data, "concurrency"),
        device_timeout=float(_int_field(data, "device_timeout")),
        ping_timeout=float(_int_field(data, "ping_timeout")),
        port_timeout=float(_int_field(data, "port_timeout")),
        ssh_timeout=float(_int_field(data, "ssh_timeout")),
        ping_retries=_int_field(data, "ping_retries"),
        port_retries=_int_field(data, "port_retries"),
        ssh_retries=_int_field(data, "ssh_retries"),
        retry_backoff=_int_field(data, "retry_backoff") / 1000,
        zmq_endpoint=endpoint,
        zmq_publisher_wait_time=_int_field(data, "zmq_publisher_wait_time_ms") / 1000,
        zmq_high_water_mark=_int_field(data, "zmq_high_watermark"),
    )


def apply_optional_config(config: GlobalConfig, custom: GlobalConfig | None) -> GlobalConfig:
    """Return ``config`` with the positive and non-empty values of ``custom`` applied."""
    if custom is None:
        return config
    changes: dict[str, Any] = {
        name: getattr(custom, name) for name in _POSITIVE_FIELDS if getattr(custom, name) > 0
    }
    if custom.zmq_endpoint:
        changes["zmq_endpoint"] = custom.zmq_endpoint
    return replace(config, **changes)