"""Memory Safe Guard: persistence and synchronization core for a password manager."""

__version__ = "0.1.0"
