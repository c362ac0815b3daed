"""Build and execute command lines from structured input."""

__version__ = "0.2.0"
