"""Relay gateway logic for small sensor networks: wire formats, configuration, routing and display UI."""

__version__ = "0.1.0"
__all__ = [
    "checkconfig",
    "config",
    "datatypes",
    "debug",
    "display",
    "espnow",
    "gateway",
    "scheduler",
    "uart",
    "ui",
]