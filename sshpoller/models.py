"""Input documents and per-device results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from sshpoller.config import GlobalConfig, parse_custom_config

_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026", "\u2028": "\\u2028", "\u2029": "\\u2029"}


def _escape_html(text: str) -> str:
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text


def _field(data: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r} has the wrong type: {value!r}")
    return value


def _object(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return value


@dataclass
class Device:
    """One device to check."""

    device_type_id: int = 0
    device_id: int = 0
    metric_group_id: int = 0
    ip: str = ""
    port: int = 0
    protocol: str = ""
    credential: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Device:
        data = _object(data, "device")
        credential = dict(_object(data.get("credential") or {}, "credential"))
        if not all(isinstance(value, str) for value in credential.values()):
            raise ValueError("credential values must be strings")
        return cls(
            device_type_id=_field(data, "device_type_id", int, 0),
            device_id=_field(data, "device_id", int, 0),
            metric_group_id=_field(data, "metric_group_id", int, 0),
            ip=_field(data, "ip", str, ""),
            port=_field(data, "port", int, 0),
            protocol=_field(data, "protocol", str, ""),
            credential=credential,
        )


@dataclass
class SSHInput:
    """A discovery or polling job."""

    discovery_profile_id: int = 0
    job_id: str = ""
    device_type_id: int = 0
    metric_group_id: int = 0
    metric_ids: list[str] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)
    config: GlobalConfig | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SSHInput:
        data = _object(data, "input")
        metric_ids = _field(data, "metric_ids", list, [])
        if not all(isinstance(metric, str) for metric in metric_ids):
            raise ValueError("metric_ids must be strings")
        return cls(
            discovery_profile_id=_field(data, "discovery_profile_id", int, 0),
            job_id=_field(data, "job_id", str, ""),
            device_type_id=_field(data, "device_type_id", int, 0),
            metric_group_id=_field(data, "metric_group_id", int, 0),
            metric_ids=list(metric_ids),
            devices=[Device.from_dict(item) for item in _field(data, "devices", list, [])],
            config=parse_custom_config(data.get("config")),
        )

    @classmethod
    def from_json(cls, text: str | bytes) -> SSHInput:
        """Parse a JSON document; raises ``ValueError`` if it is malformed."""
        return cls.from_dict(json.loads(text))


def _identity(result: SuccessfulResult | FailedResult) -> dict[str, Any]:
    out: dict[str, Any] = {
        key: getattr(result, key)
        for key in ("device_type_id", "device_id", "metric_group_id")
        if getattr(result, key)
    }
    out.update(ip=result.ip, port=result.port, protocol=result.protocol)
    return out


def _device_fields(device: Device) -> dict[str, Any]:
    return {
        "device_type_id": device.device_type_id,
        "device_id": device.device_id,
        "metric_group_id": device.metric_group_id,
        "ip": device.ip,
        "port": device.port,
        "protocol": device.protocol,
    }


@dataclass
class SuccessfulResult:
    """Collected metrics of a device."""

    device_type_id: int = 0
    device_id: int = 0
    metric_group_id: int = 0
    ip: str = ""
    port: int = 0
    protocol: str = ""
    metrics: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_device(cls, device: Device, metrics: Mapping[str, str]) -> SuccessfulResult:
        return cls(**_device_fields(device), metrics=dict(metrics))

    def to_dict(self) -> dict[str, Any]:
        return {**_identity(self), "metrics": dict(sorted(self.metrics.items()))}


@dataclass
class FailedResult:
    """The reason a device could not be checked."""

    device_type_id: int = 0
    device_id: int = 0
    metric_group_id: int = 0
    ip: str = ""
    port: int = 0
    protocol: str = ""
    error: str = ""

    @classmethod
    def for_device(cls, device: Device, reason: str) -> FailedResult:
        return cls(**_device_fields(device), error=reason)

    def to_dict(self) -> dict[str, Any]:
        return {**_identity(self), "error": self.error}


@dataclass
class ResultOutput:
    """All results of a run."""

    successful: list[SuccessfulResult] = field(default_factory=list)
    failed: list[FailedResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.successful:
            out["successful"] = [result.to_dict() for result in self.successful]
        if self.failed:
            out["failed"] = [result.to_dict() for result in self.failed]
        return out

    def to_json(self) -> str:
        """Indented JSON with HTML-sensitive characters escaped, ending in a newline."""
        return _escape_html(json.dumps(self.to_dict(), indent=2, ensure_ascii=False)) + "\n"