"""HTML utility functions for Folio.

This module provides the string-level HTML helpers shared by the serializer
and the node renderers: escaping, attribute rendering, and URL checks.

Functions:
    escape_html: Escape special HTML characters in a string.
    attribute_name: Map a node property name to its HTML attribute name.
    render_attributes: Render a property map as an attribute string.
    join_root_url: Join a base URL with a path.
    url_host: Extract the lowercase host of a URL.
    is_external_url: Check whether a link leaves the site.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

# Property names that do not follow the camelCase-to-kebab rule
_ATTRIBUTE_ALIASES = {
    "className": "class",
    "htmlFor": "for",
}

# Elements that never have content or a closing tag
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts the following characters to their HTML entity equivalents:
    - & becomes &amp;
    - < becomes &lt;
    - > becomes &gt;
    - " becomes &quot;

    Args:
        text: The string to escape.

    Returns:
        The escaped string, safe for inclusion in HTML.

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def attribute_name(name: str) -> str:
    """Map a node property name to an HTML attribute name.

    Examples:
        >>> attribute_name("className")
        'class'

        >>> attribute_name("dataLineNumbers")
        'data-line-numbers'
    """
    if name in _ATTRIBUTE_ALIASES:
        return _ATTRIBUTE_ALIASES[name]
    return _CAMEL_RE.sub("-", name).lower()


def render_attributes(properties: Mapping[str, Any]) -> str:
    """Render a property map as an HTML attribute string.

    Lists are joined with spaces, ``True`` renders a bare attribute, and
    ``None`` / ``False`` values are omitted. The result starts with a space
    when non-empty.

    Args:
        properties: Element properties.

    Returns:
        Attribute string, e.g. ``' class="a b" href="/x"'``.
    """
    parts: list[str] = []
    for key, value in properties.items():
        if value is None or value is False:
            continue
        name = attribute_name(key)
        if value is True:
            parts.append(f" {name}")
            continue
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            value = " ".join(str(item) for item in value)
        parts.append(f' {name}="{escape_html(str(value))}"')
    return "".join(parts)


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com/docs).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com', '/about')
        'https://example.com/about'

        >>> join_root_url('/guides/', 'intro')
        '/guides/intro'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def url_host(url: str) -> str:
    """Return the lowercase host of a URL, or an empty string."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_external_url(href: str, site_host: str) -> bool:
    """Check whether a link points away from the site.

    A link is external when it names a host and that host differs from the
    site's own host. Relative, root-relative, fragment and mailto links are
    internal.

    Args:
        href: Link target.
        site_host: Host of the site being rendered (may be empty).

    Returns:
        True for external links.

    Examples:
        >>> is_external_url('https://example.org/x', 'docs.example.com')
        True

        >>> is_external_url('/guides/other', 'docs.example.com')
        False
    """
    host = url_host(href)
    if not host:
        return False
    return host != site_host.lower()
