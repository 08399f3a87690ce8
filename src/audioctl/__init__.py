"""Client-side control surface for a remote audio-control service."""

__version__ = "0.3.0"
