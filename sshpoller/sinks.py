"""Destinations for device results: a JSON file or a ZeroMQ PUSH socket."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Any, Mapping

import zmq

from sshpoller.models import FailedResult, ResultOutput, SuccessfulResult, _escape_html

log = logging.getLogger(__name__)

# How long closing the socket may wait for queued messages to be delivered.
_LINGER_MS = 5000


def format_message(topic: str, payload: SuccessfulResult | FailedResult | Mapping[str, Any]) -> str:
    """Return ``topic`` followed by a space and the compact JSON of ``payload``."""
    data = payload.to_dict() if isinstance(payload, (SuccessfulResult, FailedResult)) else dict(payload)
    return f"{topic} {_escape_html(json.dumps(data, separators=(',', ':'), ensure_ascii=False))}"


class _Sink:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._finish()

    def _finish(self) -> None:
        raise NotImplementedError


class FileSink(_Sink):
    """Collects results and writes them as one JSON document when closed."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self.path = path
        self._output = ResultOutput()

    def success(self, result: SuccessfulResult) -> None:
        with self._lock:
            self._output.successful.append(result)

    def failure(self, result: FailedResult) -> None:
        with self._lock:
            self._output.failed.append(result)

    def close(self) -> None:
        """Write the collected results; later calls do nothing."""
        super().close()

    def _finish(self) -> None:
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(self._output.to_json())
            handle.flush()
            os.fsync(handle.fileno())

    def __enter__(self) -> FileSink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZmqSink(_Sink):
    """Pushes each result as a ``<topic> <json>`` message over a ZeroMQ PUSH socket."""

    def __init__(self, endpoint: str, wait_time: float, high_water_mark: int) -> None:
        super().__init__()
        self.endpoint = endpoint
        self._context = zmq.Context()
        self._socket = self._context.socket(zmq.PUSH)
        try:
            self._socket.setsockopt(zmq.SNDHWM, high_water_mark)
        except zmq.ZMQError as exc:
            log.warning("Failed to set send HWM: %s", exc)
        self._socket.setsockopt(zmq.LINGER, _LINGER_MS)
        try:
            self._socket.connect(endpoint)
        except zmq.ZMQError:
            self._socket.close(linger=0)
            self._context.term()
            raise
        # Give the pulling side time to connect before the first push.
        time.sleep(wait_time)

    def _send(self, topic: str, result: SuccessfulResult | FailedResult) -> None:
        message = format_message(topic, result)
        with self._lock:
            try:
                self._socket.send_string(message)
            except zmq.ZMQError as exc:
                log.error("Failed to publish %s result: %s", topic, exc)
            else:
                log.info("Sent %s result: %s to %s", topic, result, self.endpoint)

    def success(self, result: SuccessfulResult) -> None:
        self._send("success", result)

    def failure(self, result: FailedResult) -> None:
        self._send("failure", result)

    def close(self) -> None:
        """Close the socket, waiting a bounded time for queued messages."""
        super().close()

    def _finish(self) -> None:
        self._socket.close()
        self._context.term()

    def __enter__(self) -> ZmqSink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()