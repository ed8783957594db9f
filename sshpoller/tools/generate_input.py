"""Generate a discovery input document listing local mock SSH devices."""

from __future__ import annotations

import argparse
import itertools
import json
import os
import sys
from typing import Any, Iterator, Sequence

DEFAULT_LIMIT = 1024
DEFAULT_OUTPUT = "input.json"
MOCK_USERNAME = "testuser"
MOCK_PASSWORD = "password"


def mock_addresses(limit: int = DEFAULT_LIMIT) -> Iterator[str]:
    """Yield at most ``limit`` addresses of the form ``127.10.<block>.<host>``."""
    if limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    addresses = (f"127.10.{block}.{host}" for block in range(4) for host in range(1, 255))
    return itertools.islice(addresses, limit)


def generate_devices(limit: int = DEFAULT_LIMIT) -> list[dict[str, Any]]:
    """Return device entries for the mock SSH servers."""
    creds = {"password": MOCK_PASSWORD, "username": MOCK_USERNAME}
    return [
        {"ip": address, "port": 2222, "protocol": "ssh", "creds": dict(creds)}
        for address in mock_addresses(limit)
    ]


def write_input(path: str | os.PathLike[str] = DEFAULT_OUTPUT, limit: int = DEFAULT_LIMIT) -> int:
    """Write the input document to ``path`` and return the number of devices in it."""
    devices = generate_devices(limit)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(json.dumps({"devices": devices}, indent=2) + "\n")
    return len(devices)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write an input file of mock SSH devices.")
    parser.add_argument("output", nargs="?", default=DEFAULT_OUTPUT)
    parser.add_argument("--count", type=int, default=DEFAULT_LIMIT)
    args = parser.parse_args(argv)
    try:
        count = write_input(args.output, args.count)
    except (OSError, ValueError) as exc:
        print(f"Failed to write {args.output}: {exc}", file=sys.stderr)
        return 1
    print(f"{args.output} generated with {count} mock SSH devices")
    return 0


if __name__ == "__main__":
    sys.exit(main())