# sshpoller

`sshpoller` connects to Linux hosts over SSH, runs a small set of shell
commands on each, and reports the results. It works in two modes:

* **DISCOVERY** – reads a job from a JSON file, checks that each host answers
  an ICMP echo and that its SSH port accepts a TCP connection, collects the
  requested metrics and writes all results to one indented JSON file.
* **POLLING** – takes the same job as a JSON string on the command line,
  skips the reachability checks, and pushes each result to a ZeroMQ PUSH
  socket as soon as the device is done.

Devices are processed concurrently in a thread pool.

## Installation

```
pip install .
```

The ping check sends ICMP echo requests over a raw socket, so DISCOVERY needs
the privileges to open one.

## Usage

```
sshpoller DISCOVERY input.json output.json
sshpoller POLLING '<json-string>'
```

The mode is matched case-insensitively. With too few arguments the usage text
is printed and the exit status is 1; an unreadable input file, malformed JSON
or an unknown mode are reported on standard error with exit status 1.

### Input

```json
{
  "discovery_profile_id": 1,
  "job_id": "job-1",
  "device_type_id": 1,
  "metric_group_id": 1,
  "metric_ids": ["cpu_usage", "memory_usage", "disk_usage", "uptime", "uname", "up"],
  "devices": [
    {
      "device_type_id": 1,
      "device_id": 10,
      "metric_group_id": 1,
      "ip": "127.0.0.1",
      "port": 22,
      "protocol": "ssh",
      "credential": {"username": "testuser", "password": "password"}
    }
  ],
  "config": {"concurrency": 50, "device_timeout": 20}
}
```

Supported metrics (matched case-insensitively): `cpu_usage`, `memory_usage`,
`disk_usage`, `uptime`, `uname`, `up`. Any other name is reported as
`unsupported-metric`; a command that cannot be run or exits non-zero is
reported as `error: ...`. Command output is trimmed of surrounding whitespace.

SSH logins use password authentication only, and any host key is accepted.

### Optional `config` block

Only positive (or non-empty) values override the defaults.

| key                          | unit         | default                |
|------------------------------|--------------|------------------------|
| `concurrency`                | devices      | 100                    |
| `device_timeout`             | seconds      | 30                     |
| `ping_timeout`               | seconds      | 2                      |
| `port_timeout`               | seconds      | 2                      |
| `ssh_timeout`                | seconds      | 5                      |
| `ping_retries`               | attempts     | 2                      |
| `port_retries`               | attempts     | 2                      |
| `ssh_retries`                | attempts     | 2                      |
| `retry_backoff`              | milliseconds | 500                    |
| `zmq_endpoint`               |              | `tcp://127.0.0.1:5555` |
| `zmq_publisher_wait_time_ms` | milliseconds | 5000                   |

A `zmq_high_watermark` key is accepted but not applied; the send high-water
mark stays at 1000 messages.

Each failed attempt of a ping, port or SSH check is followed by the retry
backoff. A device whose processing took `device_timeout` or longer is reported
as `device-timeout` once it has finished; its work is not interrupted.

### Output

DISCOVERY writes one document with `successful` and `failed` lists (an empty
list is left out). Each entry carries the device's non-zero ids, `ip`, `port`
and `protocol`, plus `metrics` on success or `error` on failure
(`ping-check-failed: ...`, `port-check-failed: ...`, `device-timeout`,
`internal-error: panic recovered: ...`).

POLLING connects to the endpoint, waits `zmq_publisher_wait_time_ms` for the
receiving side, then sends one message per device: the topic `success` or
`failure`, a space, then the result as compact JSON.

## Library use

The pieces can be used directly: `sshpoller.models.SSHInput.from_json` parses
a job, `sshpoller.config.apply_optional_config` merges its `config` block into
`default_config()`, and `sshpoller.plugin.process_devices` runs the job against
a sink — `sshpoller.sinks.FileSink` or `sshpoller.sinks.ZmqSink`, both context
managers with `success` and `failure` methods. `process_device` accepts a
`runner` callable in place of `sshpoller.sshexec.run_ssh_command`.

## Testing tools

A few helpers are installed for trying the poller locally:

```
sshpoller-generate-input [output] [--count N]
sshpoller-mock-server [--exclude 127.10.0.5,127.10.0.6] [--port 2222]
sshpoller-zmq {publisher,pull,push,subscriber} [--endpoint E] [--count N]
```

* `sshpoller-generate-input` writes `input.json` (by default) listing up to
  1024 devices at `127.10.<0-3>.<1-254>`, port 2222. Their login details are
  stored under a `creds` key with the user `testuser`; the poller reads
  `credential`, so edit the file before feeding it to `sshpoller`.
* `sshpoller-mock-server` starts an SSH server on every `127.10.x.y` address
  (up to 1024, skipping excluded ones), each accepting the user `username`
  with the password `password` and answering the metric commands with fixed
  values. It runs until interrupted.
* `sshpoller-zmq` runs a simple PUSH or PULL client. `publisher` and
  `subscriber` connect to `tcp://127.0.0.1:5555`; `push` and `pull` bind
  `tcp://localhost:5555`. Without `--count` they run until interrupted.

## Running the tests

```
pip install .[test]
pytest
```