"""Discover and poll hosts over SSH, reporting metrics to a JSON file or ZeroMQ."""

__version__ = "0.1.0"