"""In-memory render cache with fingerprint invalidation.

Entries are keyed by (zone, permalink) and carry the fingerprint of the
source file they were built from. A lookup only hits when the fingerprint
matches exactly; anything else is a miss and the next ``put`` overwrites the
stale entry.

Three modes:
- ``none``: never stores, always misses.
- ``markup``: stores the parsed Document; highlighting still runs per render.
- ``full``: stores the final HTML, returned verbatim on a hit.

The cache is the only mutable structure shared between concurrent renders.
A lock guards the dict; two renders that miss at once both compute and the
last write wins, which is harmless because renders are deterministic.
"""

from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from .parser import Document

log = structlog.get_logger()


class CacheMode(StrEnum):
    NONE = "none"
    MARKUP = "markup"
    FULL = "full"


class FingerprintStrategy(StrEnum):
    MTIME = "mtime"
    SHA256 = "sha256"


def fingerprint_file(path: Path, strategy: str = FingerprintStrategy.MTIME) -> str:
    """Compute the fingerprint of a content file.

    Args:
        path: File to fingerprint.
        strategy: ``mtime`` (modification time in ns plus size) or ``sha256``
            (digest of the file bytes).

    Returns:
        Fingerprint string.

    Raises:
        OSError: If the file cannot be inspected or read.
        ValueError: For an unknown strategy.
    """
    strategy = FingerprintStrategy(strategy)
    if strategy is FingerprintStrategy.SHA256:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    stat = path.stat()
    return f"{stat.st_mtime_ns}-{stat.st_size}"


@dataclass(frozen=True)
class CacheEntry:
    """A cached render.

    Attributes:
        zone: Zone name.
        permalink: Document permalink within the zone.
        fingerprint: Fingerprint of the source the entry was built from.
        html: Final HTML (``full`` mode).
        document: Parsed document before highlighting (``markup`` mode).
        frontmatter: Document metadata, kept alongside the HTML.
        cached_at: When the entry was stored (UTC).
    """

    zone: str
    permalink: str
    fingerprint: str
    html: str | None = None
    document: Document | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)
    cached_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RenderCache:
    """Process-local render cache implementing RenderCacheStore.

    Construct one per process (or per test) and hand it to the content
    service; nothing reaches it through module globals.
    """

    def __init__(self, mode: str = CacheMode.NONE):
        """Initialize the cache.

        Args:
            mode: One of ``none``, ``markup``, ``full``.

        Raises:
            ValueError: For an unknown mode.
        """
        self.mode = CacheMode(mode)
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, zone: str, permalink: str, fingerprint: str) -> CacheEntry | None:
        """Look up an entry.

        Args:
            zone: Zone name.
            permalink: Document permalink.
            fingerprint: Current fingerprint of the source file.

        Returns:
            The entry when one exists with exactly this fingerprint, else None.
        """
        if self.mode is CacheMode.NONE:
            return None
        with self._lock:
            entry = self._entries.get((zone, permalink))
        if entry is None:
            log.debug("cache.miss", zone=zone, permalink=permalink)
            return None
        if entry.fingerprint != fingerprint:
            log.debug("cache.stale", zone=zone, permalink=permalink)
            return None
        log.debug("cache.hit", zone=zone, permalink=permalink, mode=str(self.mode))
        return entry

    def put(
        self,
        zone: str,
        permalink: str,
        fingerprint: str,
        *,
        html: str | None = None,
        document: Document | None = None,
        frontmatter: dict[str, Any] | None = None,
    ) -> None:
        """Store a render result according to the cache mode.

        ``full`` keeps ``html`` (and ``frontmatter``), ``markup`` keeps
        ``document``, ``none`` keeps nothing. A put without the value the mode
        needs is ignored.

        Args:
            zone: Zone name.
            permalink: Document permalink.
            fingerprint: Fingerprint of the source that was rendered.
            html: Final HTML.
            document: Parsed document.
            frontmatter: Document metadata.
        """
        if self.mode is CacheMode.FULL and html is not None:
            entry = CacheEntry(
                zone, permalink, fingerprint, html=html, frontmatter=dict(frontmatter or {})
            )
        elif self.mode is CacheMode.MARKUP and document is not None:
            entry = CacheEntry(
                zone,
                permalink,
                fingerprint,
                document=document,
                frontmatter=dict(document.frontmatter),
            )
        else:
            return
        with self._lock:
            self._entries[(zone, permalink)] = entry

    def invalidate(self, zone: str, permalink: str) -> None:
        """Drop the entry for one document, if present."""
        with self._lock:
            self._entries.pop((zone, permalink), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
