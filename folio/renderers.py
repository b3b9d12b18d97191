"""Node renderers for Folio.

This module turns a document tree into HTML. Every element is offered to an
ordered list of ``(predicate, renderer)`` rules before generic serialization;
the first matching rule renders the element, otherwise it is serialized as
plain HTML.

Key classes:
- ImageRenderer, LinkRenderer, CodeRenderer, TableRenderer,
  CodeGroupRenderer, AlertRenderer: Implementations of NodeRenderer.
- NodeRendererRegistry: Ordered rules with first-match-wins dispatch.
- HtmlSerializer: Walks the tree and produces the HTML string.
- RenderConfig / RenderContext: Ambient settings handed to renderers.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from markupsafe import Markup

from .html_utils import (
    VOID_ELEMENTS,
    escape_html,
    is_external_url,
    join_root_url,
    render_attributes,
    url_host,
)
from .nodes import Comment, Element, Node, Raw, Text, find_child, text_content
from .parser import parse_line_numbers

if TYPE_CHECKING:
    from .highlight import Highlighter
    from .protocols import NodeRenderer
    from .templates import TemplateEngine

# Elements followed by a newline in the output
BLOCK_ELEMENTS = frozenset(
    {
        "blockquote",
        "div",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "li",
        "ol",
        "p",
        "pre",
        "table",
        "tbody",
        "thead",
        "tr",
        "ul",
    }
)

_TAB_LABEL_RE = re.compile(
    r"^\s*(?://|#|<!--)\s*title:\s*(?P<label>.+?)\s*(?:-->)?\s*$", re.IGNORECASE
)

_SKIP_IMAGE_PREFIXES = ("http://", "https://", "//", "/", "data:")


class NodeRenderError(Exception):
    """Error raised when a custom renderer fails on a node.

    Attributes:
        tag_name: Tag of the element being rendered.
        renderer: Class name of the failing renderer.
        original_error: The exception raised by the renderer.
    """

    def __init__(self, tag_name: str, renderer: str, original_error: Exception):
        self.tag_name = tag_name
        self.renderer = renderer
        self.original_error = original_error
        super().__init__(
            f"{renderer} failed on <{tag_name}>: "
            f"{type(original_error).__name__}: {original_error}"
        )


@dataclass(frozen=True)
class RenderConfig:
    """Ambient render settings.

    Attributes:
        theme_id: Code block theme id.
        site_url: The site's own URL; its host marks links as internal.
        image_base: Prefix for relative image sources. Empty keeps them as-is.
    """

    theme_id: str
    site_url: str = ""
    image_base: str = "/assets/images/"

    @property
    def site_host(self) -> str:
        return url_host(self.site_url)


@dataclass(frozen=True)
class RenderContext:
    """What a node renderer may use: settings, collaborators, recursion.

    Created once per render call; renderers never see other global state.
    """

    config: RenderConfig
    highlighter: Highlighter
    templates: TemplateEngine
    serializer: HtmlSerializer

    @property
    def theme_id(self) -> str:
        return self.config.theme_id

    @property
    def site_host(self) -> str:
        return self.config.site_host

    def render_node(self, node: Node) -> str:
        """Render a node through the registry, as the serializer would."""
        return self.serializer.render_node(node, self)

    def render_children(self, node: Element) -> str:
        return "".join(self.serializer.render_node(child, self) for child in node.children)

    def render_generic(self, node: Element) -> str:
        """Serialize the element itself as plain HTML; children still dispatch."""
        return self.serializer.render_element(node, self)


def resolve_image_src(src: str, image_base: str) -> str:
    """Rewrite a relative image source onto the image base path.

    Args:
        src: Original image source.
        image_base: Prefix such as ``/assets/images/``.

    Returns:
        The rewritten source; absolute, root-relative and data URLs are kept.
    """
    if not image_base or not src or src.startswith(_SKIP_IMAGE_PREFIXES):
        return src
    return join_root_url(image_base, src.removeprefix("./"))


class ImageRenderer:
    """Renders images with lazy loading inside a responsive container."""

    def render(self, node: Element, context: RenderContext) -> str:
        properties = dict(node.properties)
        properties["src"] = resolve_image_src(
            str(properties.get("src", "")), context.config.image_base
        )
        properties.setdefault("alt", "")
        properties["loading"] = "lazy"
        properties["decoding"] = "async"
        return context.templates.render(
            "img",
            attributes=Markup(render_attributes(properties)),
            caption=properties.get("title"),
        )


class LinkRenderer:
    """Renders anchors, marking links to other hosts as external."""

    def render(self, node: Element, context: RenderContext) -> str:
        properties = dict(node.properties)
        if is_external_url(str(properties.get("href", "")), context.site_host):
            properties["target"] = "_blank"
            properties["rel"] = "noopener noreferrer"
        return context.templates.render(
            "a",
            attributes=Markup(render_attributes(properties)),
            children=Markup(context.render_children(node)),
        )


def code_language(code: Element) -> str | None:
    """Return the language from a ``language-*`` class, if any."""
    for name in code.class_names:
        if name.startswith("language-"):
            return name[len("language-") :] or None
    return None


class CodeRenderer:
    """Renders ``pre`` blocks through the syntax highlighter."""

    def render(self, node: Element, context: RenderContext) -> str:
        code = find_child(node, "code")
        if code is None:
            return context.render_generic(node)
        language = code_language(code)
        lines = parse_line_numbers(str(code.properties.get("dataLineNumbers", "")))
        highlighted = context.highlighter.highlight(
            text_content(code), language, context.theme_id, lines
        )
        return context.templates.render(
            "code",
            code=Markup(highlighted),
            title=code.properties.get("title"),
            language=language,
        )


class TableRenderer:
    """Wraps tables in a horizontally scrollable container."""

    def render(self, node: Element, context: RenderContext) -> str:
        return context.templates.render(
            "table", table=Markup(context.render_generic(node))
        )


@dataclass
class CodeTab:
    """One tab of a code group."""

    label: str
    body: Markup


def split_tab_label(pre: Element, index: int) -> tuple[str, Element]:
    """Work out the tab label for a code block.

    The label is the code ``title``, else a leading ``title:`` comment line
    (which is removed from the code), else the language, else ``Tab N``.

    Args:
        pre: The ``pre`` element of the code block.
        index: 1-based position of the block within its group.

    Returns:
        Tuple of (label, pre element to render). The input is never modified.
    """
    code = find_child(pre, "code")
    if code is None:
        return f"Tab {index}", pre
    title = code.properties.get("title")
    if title:
        return str(title), pre

    source = text_content(code)
    first_line, newline, rest = source.partition("\n")
    match = _TAB_LABEL_RE.match(first_line)
    if match:
        stripped_code = Element("code", dict(code.properties), [Text(rest)])
        children = [stripped_code if child is code else child for child in pre.children]
        return match.group("label"), Element(pre.tag_name, dict(pre.properties), children)

    return code_language(code) or f"Tab {index}", pre


class CodeGroupRenderer:
    """Restructures a code group into tab buttons and panels.

    Each immediate code block becomes one tab and one panel, in source order.
    Anything else inside the group is rendered ahead of the tabs.
    """

    def render(self, node: Element, context: RenderContext) -> str:
        tabs: list[CodeTab] = []
        prefix: list[str] = []
        for child in node.children:
            if isinstance(child, Element) and child.tag_name == "pre":
                label, pre = split_tab_label(child, len(tabs) + 1)
                tabs.append(CodeTab(label=label, body=Markup(context.render_node(pre))))
            else:
                prefix.append(context.render_node(child))
        return context.templates.render(
            "codegroup",
            attributes=Markup(render_attributes(node.properties)),
            prefix=Markup("".join(prefix)),
            tabs=tabs,
        )


class AlertRenderer:
    """Renders callout boxes (note, tip, warning, ...)."""

    def render(self, node: Element, context: RenderContext) -> str:
        properties = dict(node.properties)
        title = properties.pop("title", None)
        return context.templates.render(
            "alert",
            attributes=Markup(render_attributes(properties)),
            title=title,
            children=Markup(context.render_children(node)),
        )


def tag_is(tag_name: str) -> Callable[[Element], bool]:
    """Predicate matching elements by tag name."""
    return lambda node: node.tag_name == tag_name


def has_class(class_name: str) -> Callable[[Element], bool]:
    """Predicate matching elements carrying a class."""
    return lambda node: node.has_class(class_name)


@dataclass(frozen=True)
class RendererRule:
    """An ordered dispatch rule.

    Attributes:
        name: Rule name, used to insert other rules relative to it.
        predicate: Decides whether the rule applies to an element.
        renderer: Renderer used when the predicate matches.
    """

    name: str
    predicate: Callable[[Element], bool]
    renderer: NodeRenderer


def default_rules() -> list[RendererRule]:
    """Return the built-in rules in priority order."""
    return [
        RendererRule("image", tag_is("img"), ImageRenderer()),
        RendererRule("link", tag_is("a"), LinkRenderer()),
        RendererRule("code", tag_is("pre"), CodeRenderer()),
        RendererRule("table", tag_is("table"), TableRenderer()),
        RendererRule("codegroup", has_class("codegroup"), CodeGroupRenderer()),
        RendererRule("alert", has_class("alert"), AlertRenderer()),
    ]


class NodeRendererRegistry:
    """Ordered renderer rules; the first matching rule wins.

    Rules are set up at startup and only read while rendering.
    """

    def __init__(self, rules: Iterable[RendererRule] | None = None):
        """Initialize the registry.

        Args:
            rules: Rules in priority order. Defaults to ``default_rules()``.
        """
        self._rules: list[RendererRule] = list(
            default_rules() if rules is None else rules
        )

    def register(self, rule: RendererRule, before: str | None = None) -> None:
        """Add a rule at the end, or ahead of the rule named ``before``.

        Args:
            rule: Rule to add.
            before: Name of an existing rule to insert ahead of.

        Raises:
            KeyError: If ``before`` names no registered rule.
        """
        if before is None:
            self._rules.append(rule)
            return
        for index, existing in enumerate(self._rules):
            if existing.name == before:
                self._rules.insert(index, rule)
                return
        raise KeyError(before)

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    def select_renderer(self, node: Node) -> NodeRenderer | None:
        """Pick the renderer for a node.

        Args:
            node: Any tree node.

        Returns:
            The renderer of the first matching rule, or None for generic
            serialization (always None for non-element nodes).
        """
        if not isinstance(node, Element):
            return None
        for rule in self._rules:
            if rule.predicate(node):
                return rule.renderer
        return None


@dataclass
class HtmlSerializer:
    """Serializes a document tree to HTML, dispatching through a registry.

    Attributes:
        registry: Renderer rules consulted for every element, pre-order.
    """

    registry: NodeRendererRegistry = field(default_factory=NodeRendererRegistry)

    def serialize(self, nodes: Iterable[Node], context: RenderContext) -> str:
        return "".join(self.render_node(node, context) for node in nodes)

    def render_node(self, node: Node, context: RenderContext) -> str:
        if isinstance(node, Text):
            return escape_html(node.value)
        if isinstance(node, Raw):
            return node.value
        if isinstance(node, Comment):
            return f"<!--{node.value}-->"

        renderer = self.registry.select_renderer(node)
        if renderer is None:
            html = self.render_element(node, context)
        else:
            try:
                html = renderer.render(node, context)
            except NodeRenderError:
                raise
            except Exception as exc:
                raise NodeRenderError(
                    node.tag_name, type(renderer).__name__, exc
                ) from exc
        return f"{html}\n" if node.tag_name in BLOCK_ELEMENTS else html

    def render_element(self, node: Element, context: RenderContext) -> str:
        """Serialize an element as plain HTML."""
        attributes = render_attributes(node.properties)
        if node.tag_name in VOID_ELEMENTS:
            html = f"<{node.tag_name}{attributes}>"
        else:
            inner = "".join(self.render_node(child, context) for child in node.children)
            html = f"<{node.tag_name}{attributes}>{inner}</{node.tag_name}>"
        return html
