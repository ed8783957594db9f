"""Small ZeroMQ PUSH/PULL tools for exercising the result pipeline by hand."""

from __future__ import annotations

import argparse
import itertools
import sys
import time
from contextlib import contextmanager
from typing import Iterable, Iterator, Sequence

import zmq

CONNECT_ENDPOINT = "tcp://127.0.0.1:5555"
BIND_ENDPOINT = "tcp://localhost:5555"
CONNECT_WAIT = 2.0
SEND_INTERVAL = 1.0

_LINGER_MS = 1000


def split_message(message: str) -> tuple[str | None, str]:
    """Split ``"<topic> <content>"``; without a space the topic is None."""
    topic, separator, content = message.partition(" ")
    if not separator:
        return None, message
    return topic, content


def publisher_messages(counter: int) -> tuple[str, str]:
    """Return the success and failure test messages for ``counter``."""
    success = f'success {{"id":{counter},"status":"ok","data":"test data {counter}"}}'
    failure = f'failure {{"id":{counter},"status":"error","reason":"test error {counter}"}}'
    return success, failure


def _rounds(count: int | None) -> Iterable[int]:
    if count is None:
        return itertools.count(1)
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    return range(1, count + 1)


@contextmanager
def _socket(kind: int) -> Iterator[zmq.Socket]:
    context = zmq.Context()
    sock = context.socket(kind)
    sock.setsockopt(zmq.LINGER, _LINGER_MS)
    try:
        yield sock
    finally:
        sock.close()
        context.term()


def _pause_unless_last(counter: int, count: int | None) -> None:
    if count is None or counter < count:
        time.sleep(SEND_INTERVAL)


def run_publisher(endpoint: str = CONNECT_ENDPOINT, count: int | None = None) -> int:
    """Connect a PUSH socket and send ``count`` pairs of test messages (forever if None)."""
    rounds = _rounds(count)
    sent = 0
    with _socket(zmq.PUSH) as pusher:
        pusher.connect(endpoint)
        print(f"Publisher connected to {endpoint}")
        print("Waiting for subscribers to connect...")
        time.sleep(CONNECT_WAIT)
        for counter in rounds:
            for message in publisher_messages(counter):
                pusher.send_string(message)
                print(f"Published: {message}")
                sent += 1
            _pause_unless_last(counter, count)
    return sent


def run_pusher(endpoint: str = BIND_ENDPOINT, count: int | None = None) -> int:
    """Bind a PUSH socket and send ``count`` numbered messages (forever if None)."""
    rounds = _rounds(count)
    sent = 0
    with _socket(zmq.PUSH) as pusher:
        pusher.bind(endpoint)
        print(f"PUSH socket bound to {endpoint}")
        print("Waiting for receivers to connect...")
        time.sleep(CONNECT_WAIT)
        for counter in rounds:
            message = f"Message #{counter} from PUSH socket"
            try:
                pusher.send_string(message)
            except zmq.ZMQError as exc:
                print(f"Error sending: {exc}")
            else:
                print(f"Sent: {message}")
                sent += 1
            _pause_unless_last(counter, count)
    return sent


def _receive(puller: zmq.Socket, count: int | None) -> Iterator[str]:
    for _ in _rounds(count):
        while True:
            try:
                yield puller.recv_string()
                break
            except zmq.ZMQError as exc:
                print(f"Error receiving: {exc}")


def run_puller(endpoint: str = BIND_ENDPOINT, count: int | None = None) -> int:
    """Bind a PULL socket and print ``count`` messages (forever if None)."""
    received = 0
    with _socket(zmq.PULL) as puller:
        puller.bind(endpoint)
        print(f"PULL socket bound to {endpoint}")
        print("Listening for messages...")
        start = time.monotonic()
        for message in _receive(puller, count):
            elapsed = int(time.monotonic() - start)
            print(
                f"Received: {message} total-messages received: {received} "
                f"at time:  {elapsed} secs"
            )
            received += 1
    return received


def run_subscriber(endpoint: str = CONNECT_ENDPOINT, count: int | None = None) -> int:
    """Connect a PULL socket and print ``count`` messages split into topic and content."""
    received = 0
    with _socket(zmq.PULL) as puller:
        puller.connect(endpoint)
        print(f"Subscriber connected to {endpoint}")
        print("Listening for messages...")
        for message in _receive(puller, count):
            topic, content = split_message(message)
            if topic is None:
                print(f"Received: {content}")
            else:
                print(f"Received [{topic}]: {content}")
            received += 1
    return received


_COMMANDS = {
    "publisher": (run_publisher, CONNECT_ENDPOINT),
    "pull": (run_puller, BIND_ENDPOINT),
    "push": (run_pusher, BIND_ENDPOINT),
    "subscriber": (run_subscriber, CONNECT_ENDPOINT),
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="ZeroMQ PUSH/PULL test tools.")
    parser.add_argument("tool", choices=sorted(_COMMANDS))
    parser.add_argument("--endpoint", help="endpoint to bind or connect to")
    parser.add_argument("--count", type=int, help="stop after this many rounds")
    args = parser.parse_args(argv)
    run, default_endpoint = _COMMANDS[args.tool]
    endpoint = args.endpoint or default_endpoint
    try:
        run(endpoint, args.count)
    except zmq.ZMQError as exc:
        print(f"Error on {endpoint}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())