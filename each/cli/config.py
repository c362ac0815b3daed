"""Configuration file loading and validation.

This module handles loading configuration from JSON and YAML files, merging
CLI arguments with file-based configuration (with CLI taking precedence), and
validating the values before any input is read.

Configuration files can specify any of the keys in CONFIG_KEYS, for example:

    format: csv
    max_procs: 4
    csv_delimiter: ";"
    log_level: info
"""

import json
from pathlib import Path
from typing import Any

import yaml

from each.core.exceptions import ConfigError

CONFIG_KEYS = {
    "format": str,
    "output_format": str,
    "max_procs": int,
    "interactive": bool,
    "prompt_stdin": bool,
    "stdin": str,
    "stdin_file": str,
    "csv_delimiter": str,
    "csv_quote": str,
    "csv_escape": str,
    "log_level": str,
}
"""Recognized keys and the type their values must have."""


def load_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON or YAML file.

    Format is determined by file extension (.json, .yaml, .yml); any other
    extension is tried as JSON first, then as YAML.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary (empty for an empty YAML file)

    Raises:
        ConfigError: If file cannot be read, parsed, or is not a mapping

    Example:
        >>> from pathlib import Path
        >>> from each.cli.config import load_config
        >>>
        >>> config = load_config(Path("each.yaml"))
        >>> print(config["format"])  # "csv"
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", config_path=str(path))

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read config from {path}: {e}", config_path=str(path)) from e

    try:
        if path.suffix == ".json":
            data = json.loads(content)
        elif path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                data = yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", config_path=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", config_path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration in {path} must be a mapping, got {type(data).__name__}",
            config_path=str(path),
        )
    return data


def merge_config(base: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """Merge CLI arguments into base configuration.

    CLI arguments take precedence over config file values. Only non-None
    override values are applied, so config file values are used when an
    argument is not given.

    Args:
        base: Base configuration from file
        **overrides: CLI argument overrides (format, max_procs, etc.)

    Returns:
        Merged configuration dictionary

    Example:
        >>> from each.cli.config import merge_config
        >>>
        >>> merged = merge_config({"format": "csv", "max_procs": 2}, max_procs=8)
        >>> print(merged)  # {"format": "csv", "max_procs": 8}
    """
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any], format_ids: list[str] | None = None) -> list[str]:
    """Validate configuration keys and values.

    Checks that:
    - Every key is recognized and its value has the expected type
    - Referenced formats exist (when ``format_ids`` is given)
    - max_procs is at least 1

    Args:
        config: Configuration dictionary to validate
        format_ids: Registered format ids

    Returns:
        List of validation error messages (empty list if valid)

    Example:
        >>> from each.cli.config import validate_config
        >>>
        >>> validate_config({"format": "xml"}, ["json", "csv"])
        ["Unknown format 'xml'. Available: json, csv"]
    """
    errors = []

    for key, value in config.items():
        expected = CONFIG_KEYS.get(key)
        if expected is None:
            errors.append(f"Unknown configuration key '{key}'")
        # bool is a subclass of int, so max_procs: true must be rejected explicitly
        elif not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            errors.append(f"'{key}' must be of type {expected.__name__}, got {type(value).__name__}")

    if format_ids is not None:
        for key in ("format", "output_format"):
            value = config.get(key)
            if isinstance(value, str) and value not in format_ids:
                errors.append(f"Unknown format '{value}'. Available: {', '.join(format_ids)}")

    max_procs = config.get("max_procs")
    if isinstance(max_procs, int) and not isinstance(max_procs, bool) and max_procs < 1:
        errors.append(f"'max_procs' must be at least 1, got {max_procs}")

    return errors
