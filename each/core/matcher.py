"""Format resolution for a single input.

resolve() picks the format for one input in this order:

1. the explicit id given by the operator (unknown ids are usage errors);
2. the input's file extension, first matching format in priority order;
3. content sniffing: the first ``cache_len`` bytes are peeked through the
   ReplayBuffer, which is rewound so the chosen format decodes from byte 0.

None means no format applies; the caller reports that as a data error.
"""

import logging
from collections.abc import Mapping

from each.core.exceptions import UsageError
from each.core.protocols import Format
from each.core.replay import ReplayBuffer

logger = logging.getLogger(__name__)


def normalize_extension(extension: str | None) -> str | None:
    """Lower-case an extension and strip its leading dot (".CSV" -> "csv")."""
    if not extension:
        return None
    return extension.lower().lstrip(".") or None


def lookup(explicit_id: str, registry: Mapping[str, Format], option: str = "--format") -> Format:
    """Return the format registered under ``explicit_id``.

    Raises:
        UsageError: If the id is not registered
    """
    if explicit_id not in registry:
        available = ", ".join(registry) if registry else "none"
        raise UsageError(
            f"Unknown format '{explicit_id}'. Available: {available}",
            option=option,
        )
    return registry[explicit_id]


def match_extension(extension: str | None, registry: Mapping[str, Format]) -> Format | None:
    extension = normalize_extension(extension)
    if extension is None:
        return None
    for fmt in registry.values():
        if extension in fmt.extensions:
            return fmt
    return None


def sniff(prefix: bytes, registry: Mapping[str, Format]) -> Format | None:
    """Return the first format whose header check accepts ``prefix``.

    Exceptions raised by a format's check count as "no".
    """
    if not prefix:
        return None
    for fmt in registry.values():
        try:
            if fmt.looks_like_header(prefix):
                return fmt
        except Exception as e:  # noqa: BLE001
            logger.debug("Header check of %s failed: %s", fmt.id, e)
    return None


def resolve(
    explicit_id: str | None,
    extension_hint: str | None,
    buffer: ReplayBuffer,
    registry: Mapping[str, Format],
) -> Format | None:
    """Resolve the format for one input.

    Args:
        explicit_id: Format id chosen by the operator, if any
        extension_hint: File extension of the input, if any (with or
                        without the leading dot, any case)
        buffer: The input wrapped in a ReplayBuffer; left rewound at byte 0
        registry: Configured formats in priority order

    Returns:
        The chosen format, or None if none applies

    Raises:
        UsageError: If explicit_id is not registered
    """
    if explicit_id is not None:
        return lookup(explicit_id, registry)

    fmt = match_extension(extension_hint, registry)
    if fmt is not None:
        logger.info("Format %s chosen by extension %r", fmt.id, extension_hint)
        return fmt

    prefix = buffer.peek()
    fmt = sniff(prefix, registry)
    if fmt is not None:
        logger.info("Format %s chosen by content (%d byte prefix)", fmt.id, len(prefix))
    return fmt
