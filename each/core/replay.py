"""Replay buffer for sniffing the head of a single-pass byte stream.

Standard input is generally not seekable, yet format detection has to look at
the first bytes of an input before the real parser reads it from byte 0. The
ReplayBuffer retains the first ``cache_len`` bytes that pass through it, can
rewind to the start once, replays the retained bytes and then falls through
to the live source. Bytes beyond the retained window are never kept, so
memory stays bounded regardless of input size.

Example:
    >>> import io
    >>> buffer = ReplayBuffer(io.BytesIO(b"name,email\\nBart,bart@example.com\\n"))
    >>> buffer.peek(4)
    b'name'
    >>> buffer.read()
    b'name,email\\nBart,bart@example.com\\n'
"""

import io
import logging
from typing import BinaryIO

from each.core.exceptions import ReplayError

logger = logging.getLogger(__name__)

CACHE_LEN = 4096
"""Default number of bytes retained for replay."""


class ReplayBuffer(io.RawIOBase):
    """Read-through byte stream that can rewind over its first bytes.

    Reads below ``len(retained)`` are served from the cache; reads at the end
    of the cache go to the source, and the bytes they return are appended to
    the cache while it has room. The wrapped source is never closed by this
    object.
    """

    def __init__(self, source: BinaryIO, cache_len: int = CACHE_LEN) -> None:
        """Wrap a binary source.

        Args:
            source: Any object with a ``read(n) -> bytes`` method
            cache_len: Maximum number of bytes retained for replay

        Raises:
            ValueError: If cache_len is not positive
        """
        super().__init__()
        if cache_len < 1:
            raise ValueError(f"cache_len must be positive, got {cache_len}")
        self._source = source
        self._cache_len = cache_len
        self._cache = bytearray()
        self._cursor = 0

    @property
    def cache_len(self) -> int:
        return self._cache_len

    @property
    def retained(self) -> bytes:
        """Bytes currently held for replay."""
        return bytes(self._cache)

    @property
    def position(self) -> int:
        """Number of bytes handed out since the last rewind."""
        return self._cursor

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int | None:  # type: ignore[override]
        view = memoryview(b).cast("B")
        if not len(view):
            return 0

        if self._cursor < len(self._cache):
            count = min(len(view), len(self._cache) - self._cursor)
            view[:count] = self._cache[self._cursor:self._cursor + count]
            self._cursor += count
            return count

        # State is only touched after the source read succeeded.
        data = self._source.read(len(view))
        if data is None:
            return None
        count = len(data)
        view[:count] = data

        room = self._cache_len - len(self._cache)
        if room > 0 and self._cursor == len(self._cache):
            self._cache += data[:room]
        self._cursor += count
        return count

    def rewind(self) -> None:
        """Move the cursor back to byte 0.

        Raises:
            ReplayError: If bytes past the retained window were already read,
                        so the start of the stream can no longer be replayed
        """
        if self._cursor > len(self._cache):
            raise ReplayError(
                "Cannot rewind past the retained window",
                context={"position": self._cursor, "retained": len(self._cache)},
            )
        self._cursor = 0

    def peek(self, size: int | None = None) -> bytes:
        """Return up to ``size`` bytes from the start of the stream.

        Reads repeatedly until ``size`` bytes (capped at ``cache_len``) are
        available or the source is exhausted, then rewinds so the next read
        starts again at byte 0.

        Args:
            size: Number of bytes wanted (default: cache_len)

        Returns:
            The prefix, shorter than requested only at end of stream
        """
        size = self._cache_len if size is None else min(size, self._cache_len)
        self.rewind()

        chunks: list[bytes] = []
        total = 0
        while total < size:
            chunk = self.read(size - total)
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)

        self.rewind()
        logger.debug("Peeked %d bytes (requested %d)", total, size)
        return b"".join(chunks)
