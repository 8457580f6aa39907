"""Mill alert escalation, multi-channel notification and action tracking."""

__version__ = "0.1.0"
