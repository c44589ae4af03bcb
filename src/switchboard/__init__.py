"""Switchboard: task queue and agent dispatch service for the brand agent platform."""

__version__ = "0.1.0"
