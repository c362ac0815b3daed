"""Format registry.

This module provides a registry pattern for discovery and instantiation of
record formats. Formats are registered by id and retrieved at runtime, so the
CLI can accept any registered id for --format and --output-format.

Registration order is significant: it is the priority order used by content
sniffing and extension matching when more than one format could apply. The
registry is a plain dict, which preserves insertion order.

The built-in formats are registered when this module is imported.
"""

from typing import Any

from each.core.protocols import Format
from each.formats import BUILTIN_FORMATS

# Registry mapping format ids to their classes, in priority order
FORMATS: dict[str, type[Format]] = {}


def register_format(name: str, cls: type[Format]) -> None:
    """Register a format implementation.

    Re-registering an existing id replaces the class but keeps its position
    in the priority order.

    Args:
        name: Id to register the format under (e.g., "csv", "json")
        cls: Format class to register

    Example:
        >>> from each.cli.registry import register_format
        >>>
        >>> class LinesFormat:
        ...     id = "lines"
        ...     # ... implementation ...
        >>>
        >>> register_format("lines", LinesFormat)
    """
    FORMATS[name] = cls


def available_formats() -> str:
    """Return the registered ids as a comma separated string."""
    return ", ".join(FORMATS) if FORMATS else "none"


def get_format(name: str, **options: Any) -> Format:
    """Get a configured format instance by id.

    Args:
        name: Id of the format to retrieve
        **options: Format options passed to ``configure``

    Returns:
        Configured instance of the requested format

    Raises:
        KeyError: If the id is not registered, with message listing
                 available formats
        UsageError: If an option value is invalid for the format

    Example:
        >>> from each.cli.registry import get_format
        >>> fmt = get_format("csv", csv_delimiter=";")
    """
    if name not in FORMATS:
        raise KeyError(f"Unknown format '{name}'. Available: {available_formats()}")
    instance = FORMATS[name]()
    instance.configure(**options)
    return instance


def load_formats(**options: Any) -> dict[str, Format]:
    """Instantiate and configure every registered format.

    Args:
        **options: Format options passed to each format's ``configure``

    Returns:
        Dictionary mapping ids to configured instances, in priority order

    Raises:
        UsageError: If an option value is invalid for one of the formats
    """
    return {name: get_format(name, **options) for name in FORMATS}


def list_formats() -> dict[str, tuple[str, str]]:
    """List registered formats with extensions and descriptions.

    Returns:
        Dictionary mapping format ids to ``(extensions, description)``, in
        priority order. The description is the class docstring.

    Example:
        >>> from each.cli.registry import list_formats
        >>> for name, (extensions, desc) in list_formats().items():
        ...     print(f"{name}: {extensions} {desc}")
    """
    return {
        name: (
            ", ".join(sorted(getattr(cls, "extensions", ()))),
            cls.__doc__ or "No description",
        )
        for name, cls in FORMATS.items()
    }


for _cls in BUILTIN_FORMATS:
    register_format(_cls.id, _cls)
