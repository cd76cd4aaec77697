"""Core infrastructure: configuration and the embedded database."""
