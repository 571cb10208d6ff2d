"""Fixed-capacity shared byte region for handing the in-flight query to the supervisor.

The region is an anonymous shared ``mmap`` created before any worker is
forked, so parent and children map the same pages.

Access discipline (no lock is needed because of it):
    - exactly one writer: the running worker, which writes a query BEFORE
      handing it to the parse target
    - one sequential reader: the supervisor, which reads only after the
      worker has terminated and been reaped

Contents are a NUL-terminated UTF-8 string. Queries longer than
``capacity - 1`` bytes are truncated; the region is always NUL-terminated
and writes never go past its bounds.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
import mmap

from sqlfuzz.constants import SHARED_REGION_SIZE
from sqlfuzz.errors import SharedRegionError

__all__ = ["SharedRegion"]

logger = logging.getLogger(__name__)


class SharedRegion:
    """Single-writer / sequential-reader byte buffer shared across fork().

    Example:
        >>> region = SharedRegion(8)
        >>> region.write("SELECT 1")
        7
        >>> region.read()
        'SELECT '
    """

    __slots__ = ("_buffer", "_capacity")

    def __init__(self, capacity: int = SHARED_REGION_SIZE) -> None:
        """Allocate a zero-initialised shared region.

        Raises:
            ValueError: If capacity is smaller than 2 bytes
            SharedRegionError: If the mapping cannot be created
        """
        if capacity < 2:
            msg = "capacity must be at least 2 bytes"
            raise ValueError(msg)
        try:
            self._buffer = mmap.mmap(-1, capacity, flags=mmap.MAP_SHARED)
        except OSError as e:
            msg = f"Unable to create shared memory: {e}"
            raise SharedRegionError(msg) from e
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._buffer.closed

    def write(self, query: str) -> int:
        """Publish query, truncated to capacity - 1 bytes.

        Returns:
            Number of payload bytes written (excluding the NUL)
        """
        data = query.encode("utf-8", errors="replace")
        limit = self._capacity - 1
        if len(data) > limit:
            logger.debug("Query truncated from %d to %d bytes", len(data), limit)
            data = data[:limit]
        self._buffer[: len(data)] = data
        self._buffer[len(data)] = 0
        self._buffer[limit] = 0
        return len(data)

    def read(self) -> str:
        """Return the published query (up to the first NUL).

        A multi-byte character cut by truncation decodes as U+FFFD.
        """
        raw = self._buffer[: self._capacity]
        end = raw.find(b"\0")
        if end < 0:
            end = self._capacity - 1
        return raw[:end].decode("utf-8", errors="replace")

    def read_bytes(self) -> bytes:
        """Raw region contents including padding."""
        return self._buffer[: self._capacity]

    def clear(self) -> None:
        """Reset the region to all zero bytes."""
        self._buffer[:] = b"\0" * self._capacity

    def close(self) -> None:
        self._buffer.close()

    def __enter__(self) -> SharedRegion:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
