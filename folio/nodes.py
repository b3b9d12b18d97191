"""Document tree nodes for Folio.

The Markdown parser produces a tree of these nodes and the HTML serializer
consumes it. Nodes are plain dataclasses so two parses of the same input
compare equal.

Key classes:
- Element: An HTML element with properties and children.
- Text: A run of text (escaped on output).
- Comment: An HTML comment.
- Raw: HTML copied verbatim from the Markdown source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass
class Text:
    """A text node."""

    value: str


@dataclass
class Comment:
    """An HTML comment node."""

    value: str


@dataclass
class Raw:
    """Embedded HTML, serialized as-is."""

    value: str


@dataclass
class Element:
    """An HTML element.

    Attributes:
        tag_name: Lowercase tag name (e.g. "pre", "a").
        properties: Attribute map. ``className`` holds a list of classes,
            camelCase keys are serialized as kebab-case attributes.
        children: Child nodes in document order.
    """

    tag_name: str
    properties: dict[str, Any] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)

    @property
    def class_names(self) -> list[str]:
        """Return the element's classes as a list."""
        value = self.properties.get("className")
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        return list(value)

    def has_class(self, name: str) -> bool:
        return name in self.class_names


Node = Union[Element, Text, Comment, Raw]


def text_content(node: Node) -> str:
    """Concatenate the text of a node and its descendants.

    Args:
        node: Node to read.

    Returns:
        The plain text value. Comments contribute nothing.
    """
    if isinstance(node, Text):
        return node.value
    if isinstance(node, Element):
        return "".join(text_content(child) for child in node.children)
    return ""


def find_child(node: Element, tag_name: str) -> Element | None:
    """Return the first immediate child element with the given tag."""
    for child in node.children:
        if isinstance(child, Element) and child.tag_name == tag_name:
            return child
    return None
