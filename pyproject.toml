[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sshpoller"
version = "0.1.0"
description = "Discover and poll Linux hosts over SSH, collecting system metrics to a JSON file or a ZeroMQ PUSH socket."
requires-python = ">=3.10"
keywords = ["ssh", "monitoring", "metrics", "polling", "discovery", "zeromq"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "paramiko",
    "pyzmq",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sshpoller = "sshpoller.plugin:main"
sshpoller-generate-input = "sshpoller.tools.generate_input:main"
sshpoller-mock-server = "sshpoller.tools.mock_server:main"
sshpoller-zmq = "sshpoller.tools.zmq_tools:main"

[tool.hatch.build.targets.wheel]
packages = ["sshpoller"]

[tool.pytest.ini_options]
addopts = "-ra"
