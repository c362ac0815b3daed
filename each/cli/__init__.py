"""CLI interface for the each command.

This package provides the command line entry point: option parsing,
configuration files, logging setup, error display and exit codes.
"""
