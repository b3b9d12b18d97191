"""Markdown parsing for Folio.

This module turns Markdown text into a Folio document tree. Parsing is done by
mistune in AST mode; the token stream is then converted into ``Element`` /
``Text`` nodes shaped like the HTML they will become.

Key pieces:
- MarkdownParser: Parses Markdown into a Document.
- container_plugin: mistune block plugin for ``:::name`` ... ``:::`` containers.
- extract_frontmatter: Splits a leading YAML block from the body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import mistune
import yaml

from .nodes import Element, Node, Raw, Text, text_content

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)

CONTAINER_PATTERN = (
    r"^ {0,3}:::(?P<container_name>[A-Za-z][\w-]*)"
    r"(?P<container_title>[^\n]*)(?:\n|$)"
)
_CONTAINER_OPEN_RE = re.compile(r"^ {0,3}:::[A-Za-z]")
_CONTAINER_CLOSE_RE = re.compile(r"^ {0,3}:::[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")

ALERT_CONTAINERS = ("note", "tip", "info", "warning", "danger", "important")

_LANG_RE = re.compile(r"[^\s{]+")
_TITLE_RE = re.compile(r"""title=(?:"([^"]*)"|'([^']*)'|(\S+))""")
_LINES_RE = re.compile(r"\{([\d,\s-]+)\}")

MISTUNE_PLUGINS = ["table", "strikethrough", "url"]


@dataclass
class Document:
    """A parsed Markdown document.

    Attributes:
        children: Top-level nodes of the document tree.
        frontmatter: Metadata from the leading YAML block, if any.
    """

    children: list[Node] = field(default_factory=list)
    frontmatter: dict[str, Any] = field(default_factory=dict)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
        if not isinstance(data, dict):
            return {}, text
        return data, text[match.end() :]
    except yaml.YAMLError:
        return {}, text


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def parse_line_numbers(value: str) -> list[int]:
    """Expand a line list such as ``1,3-5`` into ``[1, 3, 4, 5]``.

    Malformed parts are skipped.
    """
    lines: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        start, _, end = part.partition("-")
        if not start.isdigit() or (end and not end.isdigit()):
            continue
        first = int(start)
        last = int(end) if end else first
        for number in range(first, last + 1):
            if number not in lines:
                lines.append(number)
    return lines


def parse_code_info(info: str | None) -> tuple[str | None, str | None, list[int]]:
    """Split a fence info string into language, title, and highlighted lines.

    Args:
        info: Text after the opening fence, e.g. ``ts title="app.ts" {2-3}``.

    Returns:
        Tuple of (language or None, title or None, line numbers).
    """
    if not info:
        return None, None, []
    info = info.strip()
    language = None
    match = _LANG_RE.match(info)
    if match and "=" not in match.group(0):
        language = match.group(0)
    title = None
    title_match = _TITLE_RE.search(info)
    if title_match:
        title = next(g for g in title_match.groups() if g is not None)
    lines_match = _LINES_RE.search(info)
    lines = parse_line_numbers(lines_match.group(1)) if lines_match else []
    return language, title, lines


def find_container_close(src: str, start: int) -> tuple[int, int] | None:
    """Locate the ``:::`` line closing a container whose body starts at ``start``.

    Nested ``:::name`` openers must be closed first, and lines inside
    ``` or ~~~ code fences are never treated as container fences.

    Args:
        src: Source text.
        start: Offset of the first line of the container body.

    Returns:
        Tuple of (start, end) offsets of the closing line without its
        newline, or None when the container is never closed.
    """
    depth = 1
    fence = None
    pos = start
    while pos < len(src):
        newline = src.find("\n", pos)
        end = len(src) if newline == -1 else newline
        line = src[pos:end]
        pos = end + 1
        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence) and not stripped.strip(fence[0]):
                fence = None
            continue
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            fence = fence_match.group(1)
        elif _CONTAINER_OPEN_RE.match(line):
            depth += 1
        elif _CONTAINER_CLOSE_RE.match(line):
            depth -= 1
            if depth == 0:
                return end - len(line), end
    return None


def parse_container(block, m: re.Match, state) -> int:
    """Parse a ``:::name`` container into a ``container`` token.

    An opening fence without a matching ``:::`` line is kept as a literal
    paragraph; everything after it parses as usual.
    """
    name = m.group("container_name").lower()
    title = m.group("container_title").strip()
    close = find_container_close(state.src, m.end())
    if close is None:
        state.add_paragraph(m.group(0))
        return m.end()

    close_start, end = close
    child = state.child_state(state.src[m.end() : close_start])
    block.parse(child)
    state.append_token(
        {
            "type": "container",
            "children": child.tokens,
            "attrs": {"name": name, "title": title},
        }
    )
    if state.src[end : end + 1] == "\n":
        end += 1
    return end


def container_plugin(md: mistune.Markdown) -> None:
    """Register the triple-colon container syntax on a mistune instance."""
    md.block.register(
        "container", CONTAINER_PATTERN, parse_container, before="fenced_code"
    )


class _TreeBuilder:
    """Converts mistune AST tokens into Folio nodes.

    One builder is used per parse so heading ID de-duplication never leaks
    between documents.
    """

    def __init__(self):
        self._heading_id_counts: dict[str, int] = {}

    def build(self, tokens: list[dict[str, Any]]) -> list[Node]:
        nodes: list[Node] = []
        for token in tokens:
            nodes.extend(self._build_token(token))
        return nodes

    def _build_token(self, token: dict[str, Any]) -> list[Node]:
        method = getattr(self, f"_build_{token['type']}", None)
        if method is not None:
            return method(token)
        # Unknown token types keep their content.
        if "children" in token:
            return self.build(token["children"])
        if "raw" in token:
            return [Text(token["raw"])]
        return []

    def _children(self, token: dict[str, Any]) -> list[Node]:
        return self.build(token.get("children") or [])

    def _element(self, tag: str, token: dict[str, Any], **properties) -> list[Node]:
        return [Element(tag, properties, self._children(token))]

    # Block tokens

    def _build_blank_line(self, token):
        return []

    def _build_paragraph(self, token):
        return self._element("p", token)

    def _build_block_text(self, token):
        return self._children(token)

    def _build_heading(self, token):
        level = token.get("attrs", {}).get("level", 1)
        children = self._children(token)
        text = "".join(text_content(child) for child in children)
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        properties = {"id": heading_id} if heading_id else {}
        return [Element(f"h{level}", properties, children)]

    def _build_thematic_break(self, token):
        return [Element("hr")]

    def _build_block_quote(self, token):
        return self._element("blockquote", token)

    def _build_block_code(self, token):
        info = (token.get("attrs") or {}).get("info")
        language, title, lines = parse_code_info(info)
        properties: dict[str, Any] = {}
        if language:
            properties["className"] = [f"language-{language}"]
        if title:
            properties["title"] = title
        if lines:
            properties["dataLineNumbers"] = ",".join(str(n) for n in lines)
        code = Element("code", properties, [Text(token.get("raw", ""))])
        return [Element("pre", {}, [code])]

    def _build_block_html(self, token):
        return [Raw(token.get("raw", ""))]

    def _build_list(self, token):
        attrs = token.get("attrs") or {}
        if attrs.get("ordered"):
            start = attrs.get("start")
            properties = {"start": str(start)} if start not in (None, 1) else {}
            return self._element("ol", token, **properties)
        return self._element("ul", token)

    def _build_list_item(self, token):
        return self._element("li", token)

    def _build_table(self, token):
        return self._element("table", token)

    def _build_table_head(self, token):
        children = self._children(token)
        if children and all(
            isinstance(c, Element) and c.tag_name == "tr" for c in children
        ):
            return [Element("thead", {}, children)]
        return [Element("thead", {}, [Element("tr", {}, children)])]

    def _build_table_body(self, token):
        return self._element("tbody", token)

    def _build_table_row(self, token):
        return self._element("tr", token)

    def _build_table_cell(self, token):
        attrs = token.get("attrs") or {}
        tag = "th" if attrs.get("head") else "td"
        align = attrs.get("align")
        properties = {"style": f"text-align:{align}"} if align else {}
        return self._element(tag, token, **properties)

    def _build_container(self, token):
        attrs = token.get("attrs") or {}
        name = attrs.get("name", "")
        title = attrs.get("title") or None
        if name in ALERT_CONTAINERS:
            properties: dict[str, Any] = {"className": ["alert", f"alert-{name}"]}
            if title:
                properties["title"] = title
        else:
            properties = {"className": [name]}
        return self._element("div", token, **properties)

    # Inline tokens

    def _build_text(self, token):
        return [Text(token.get("raw", ""))]

    def _build_emphasis(self, token):
        return self._element("em", token)

    def _build_strong(self, token):
        return self._element("strong", token)

    def _build_strikethrough(self, token):
        return self._element("del", token)

    def _build_codespan(self, token):
        return [Element("code", {}, [Text(token.get("raw", ""))])]

    def _build_linebreak(self, token):
        return [Element("br")]

    def _build_softbreak(self, token):
        return [Text("\n")]

    def _build_inline_html(self, token):
        return [Raw(token.get("raw", ""))]

    def _build_link(self, token):
        attrs = token.get("attrs") or {}
        properties = {"href": attrs.get("url", "")}
        if attrs.get("title"):
            properties["title"] = attrs["title"]
        return self._element("a", token, **properties)

    def _build_image(self, token):
        attrs = token.get("attrs") or {}
        alt = "".join(text_content(child) for child in self._children(token))
        properties = {"src": attrs.get("url", ""), "alt": alt}
        if attrs.get("title"):
            properties["title"] = attrs["title"]
        return [Element("img", properties)]


class MarkdownParser:
    """Parses Markdown text into a Document.

    Parsing is pure: no I/O happens here and the same text always yields an
    equal Document. A fresh mistune instance is created per call.
    """

    def __init__(self, plugins: list[str] | None = None):
        self.plugins = list(plugins) if plugins is not None else MISTUNE_PLUGINS

    def _create_markdown(self) -> mistune.Markdown:
        markdown = mistune.create_markdown(renderer="ast", plugins=self.plugins)
        container_plugin(markdown)
        return markdown

    def parse(self, text: str) -> Document:
        """Parse Markdown into a Document.

        Args:
            text: Markdown source, already read from disk.

        Returns:
            Document with the node tree and any frontmatter.
        """
        frontmatter, body = extract_frontmatter(text)
        if not body.strip():
            return Document(children=[], frontmatter=frontmatter)
        tokens = self._create_markdown()(body)
        return Document(children=_TreeBuilder().build(tokens), frontmatter=frontmatter)


def parse(text: str) -> Document:
    """Parse Markdown with the default plugin set."""
    return MarkdownParser().parse(text)
