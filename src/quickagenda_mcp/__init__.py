"""One-day event agenda: session scheduling, publication and calendar export."""

__version__ = "0.1.0"
