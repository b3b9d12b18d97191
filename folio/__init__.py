"""Folio documentation content renderer.

This package turns documentation URLs into HTML: it resolves a URL through
per-zone navigation manifests, parses the Markdown file behind it, renders
the tree through an ordered set of node renderers (images, links, code
blocks, code groups, callouts), highlights code with Pygments, and caches
the result.

The main entry point is ``folio.content.ContentService``; an HTTP layer calls
``render(zone, url)`` and maps the result to a response.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
