"""Protocol definitions for Folio.

This module defines the interfaces (protocols) used at Folio's seams, so
renderers, content readers and caches can be swapped in tests or extended
without modifying the pipeline.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .cache import CacheEntry
    from .nodes import Element
    from .parser import Document
    from .renderers import RenderContext


@runtime_checkable
class NodeRenderer(Protocol):
    """Protocol for rendering one element type to HTML.

    Implementations receive only their own node and the ambient render
    context. They must not mutate the node.
    """

    @abstractmethod
    def render(self, node: Element, context: RenderContext) -> str:
        """Render an element to HTML.

        Args:
            node: The element selected for this renderer.
            context: Theme, site URL, highlighter, and recursion helpers.

        Returns:
            HTML string for the element, including its children.
        """
        ...


@runtime_checkable
class ContentReader(Protocol):
    """Protocol for reading content files.

    This is the filesystem collaborator of the content service.
    """

    @abstractmethod
    def fingerprint(self, path: Path) -> str:
        """Return a value that changes whenever the file content changes.

        Raises:
            OSError: If the file cannot be inspected.
        """
        ...

    @abstractmethod
    def read(self, path: Path) -> str:
        """Read the file as text.

        Raises:
            OSError: If the file cannot be read.
        """
        ...


@runtime_checkable
class RenderCacheStore(Protocol):
    """Protocol for render caches keyed by (zone, permalink, fingerprint)."""

    @abstractmethod
    def get(self, zone: str, permalink: str, fingerprint: str) -> CacheEntry | None:
        """Return the entry for an exact fingerprint match, or None."""
        ...

    @abstractmethod
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
        """Store a render result according to the cache mode."""
        ...
