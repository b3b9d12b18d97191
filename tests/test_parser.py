from folio.nodes import Element, Text, text_content
from folio.parser import (
    Document,
    MarkdownParser,
    _generate_heading_id,
    extract_frontmatter,
    find_container_close,
    parse,
    parse_code_info,
    parse_line_numbers,
)


def iter_elements(nodes):
    for node in nodes:
        if isinstance(node, Element):
            yield node
            yield from iter_elements(node.children)


def find_all(document: Document, tag_name: str) -> list[Element]:
    return [el for el in iter_elements(document.children) if el.tag_name == tag_name]


RICH_MARKDOWN = """# Getting started

Some *emphasis*, **strong** and `code`.

- one
- two

> quoted

```ts
const a = 1
```

:::note
Remember this.
:::
"""


def test_empty_input_yields_empty_document():
    assert parse("") == Document()
    assert parse("   \n\n").children == []


def test_parse_is_deterministic():
    assert parse(RICH_MARKDOWN) == parse(RICH_MARKDOWN)
    assert MarkdownParser().parse(RICH_MARKDOWN) == MarkdownParser().parse(RICH_MARKDOWN)


def test_headings_get_unique_ids():
    document = parse("# Hello World\n\n## Hello World\n")
    h1 = find_all(document, "h1")[0]
    h2 = find_all(document, "h2")[0]
    assert h1.properties["id"] == "hello-world"
    assert h2.properties["id"] == "hello-world-1"
    assert text_content(h1) == "Hello World"


def test_heading_ids_do_not_leak_between_parses():
    parser = MarkdownParser()
    first = parser.parse("# Intro\n")
    second = parser.parse("# Intro\n")
    assert find_all(first, "h1")[0].properties["id"] == "intro"
    assert find_all(second, "h1")[0].properties["id"] == "intro"


def test_inline_elements():
    document = parse("Some *emphasis*, **strong** and `code`.\n")
    assert find_all(document, "em")
    assert find_all(document, "strong")
    code = find_all(document, "code")[0]
    assert code.children == [Text("code")]


def test_code_fence_language_title_and_lines():
    document = parse('```ts title="app.ts" {1,3}\nconst a = 1\n  indented\n```\n')
    pre = find_all(document, "pre")[0]
    code = pre.children[0]
    assert isinstance(code, Element) and code.tag_name == "code"
    assert code.properties["className"] == ["language-ts"]
    assert code.properties["title"] == "app.ts"
    assert code.properties["dataLineNumbers"] == "1,3"
    assert text_content(code) == "const a = 1\n  indented\n"


def test_code_fence_without_language():
    document = parse("```\nplain\n```\n")
    code = find_all(document, "code")[0]
    assert "className" not in code.properties
    assert text_content(code) == "plain\n"


def test_links_and_images():
    document = parse('[Docs](https://example.org/x "Title") ![Alt text](shot.png)\n')
    link = find_all(document, "a")[0]
    assert link.properties["href"] == "https://example.org/x"
    assert link.properties["title"] == "Title"
    assert text_content(link) == "Docs"
    image = find_all(document, "img")[0]
    assert image.properties["src"] == "shot.png"
    assert image.properties["alt"] == "Alt text"


def test_lists():
    document = parse("1. a\n2. b\n\n- x\n- y\n- z\n")
    ordered = find_all(document, "ol")[0]
    unordered = find_all(document, "ul")[0]
    assert len(ordered.children) == 2
    assert len(unordered.children) == 3
    assert "start" not in ordered.properties
    assert [text_content(li) for li in unordered.children] == ["x", "y", "z"]


def test_ordered_list_start():
    document = parse("3. three\n4. four\n")
    assert find_all(document, "ol")[0].properties["start"] == "3"


def test_blockquote_and_thematic_break():
    document = parse("> quoted\n\n---\n")
    assert text_content(find_all(document, "blockquote")[0]).strip() == "quoted"
    assert find_all(document, "hr")


def test_tables():
    document = parse("| a | b |\n|---|:-:|\n| 1 | 2 |\n")
    table = find_all(document, "table")[0]
    assert [text_content(th) for th in find_all(Document([table]), "th")] == ["a", "b"]
    cells = find_all(Document([table]), "td")
    assert [text_content(td) for td in cells] == ["1", "2"]
    assert cells[1].properties["style"] == "text-align:center"


def test_alert_container():
    document = parse(":::note\nRemember this.\n:::\n")
    div = document.children[0]
    assert isinstance(div, Element)
    assert div.tag_name == "div"
    assert div.class_names == ["alert", "alert-note"]
    assert text_content(div).strip() == "Remember this."


def test_alert_container_title():
    document = parse(":::warning Careful now\nText\n:::\n")
    div = document.children[0]
    assert div.properties["title"] == "Careful now"


def test_codegroup_container_keeps_code_blocks_in_order():
    source = ":::codegroup\n```sh\nnpm i\n```\n\n```sh\nyarn add\n```\n:::\n"
    document = parse(source)
    group = document.children[0]
    assert group.class_names == ["codegroup"]
    blocks = [child for child in group.children if isinstance(child, Element)]
    assert [block.tag_name for block in blocks] == ["pre", "pre"]
    assert [text_content(block) for block in blocks] == ["npm i\n", "yarn add\n"]


def test_content_after_container_parses_normally():
    document = parse(":::tip\nInside\n:::\n\nAfter\n")
    assert document.children[0].class_names == ["alert", "alert-tip"]
    assert text_content(document.children[-1]) == "After"


def test_unterminated_container_degrades_to_text():
    document = parse(":::note\nNever closed\n\n# Heading\n")
    assert not [el for el in iter_elements(document.children) if el.has_class("alert")]
    paragraph = document.children[0]
    assert paragraph.tag_name == "p"
    assert ":::note" in text_content(paragraph)
    assert "Never closed" in text_content(paragraph)
    assert find_all(document, "h1")


def test_frontmatter_is_extracted():
    document = parse("---\ntitle: Introduction\n---\n# Hi\n")
    assert document.frontmatter == {"title": "Introduction"}
    assert find_all(document, "h1")


def test_invalid_frontmatter_is_left_in_place():
    data, body = extract_frontmatter("---\n: [\n---\nBody")
    assert data == {}
    assert body.startswith("---")


def test_parse_line_numbers():
    assert parse_line_numbers("1,3-5") == [1, 3, 4, 5]
    assert parse_line_numbers("2, 2, x, 4-") == [2, 4]
    assert parse_line_numbers("") == []


def test_parse_code_info():
    assert parse_code_info(None) == (None, None, [])
    assert parse_code_info("python") == ("python", None, [])
    assert parse_code_info("ts{2}") == ("ts", None, [2])
    assert parse_code_info("title='x.js'") == (None, "x.js", [])


def test_generate_heading_id():
    assert _generate_heading_id("Hello, World!") == "hello-world"
    assert _generate_heading_id("  Spaces  and--dashes ") == "spaces-and-dashes"


def test_container_close_inside_code_fence_is_ignored():
    source = ":::tip\nUse this:\n\n```md\n:::note\nhi\n:::\n```\n:::\n\nAfter\n"
    document = parse(source)
    tip = document.children[0]
    assert tip.class_names == ["alert", "alert-tip"]
    code = find_all(Document([tip]), "code")[0]
    assert text_content(code) == ":::note\nhi\n:::\n"
    assert text_content(document.children[-1]) == "After"
    assert not [pre for pre in find_all(document, "pre") if "After" in text_content(pre)]


def test_tilde_fence_inside_container():
    document = parse(":::note\n~~~\n:::\n~~~\n:::\n")
    assert len(document.children) == 1
    assert text_content(find_all(document, "code")[0]) == ":::\n"


def test_nested_containers():
    source = ":::note\nIntro\n\n:::codegroup\n```js\na\n```\n:::\n\n:::\n"
    document = parse(source)
    assert len(document.children) == 1
    note = document.children[0]
    assert note.class_names == ["alert", "alert-note"]
    groups = [el for el in iter_elements(note.children) if el.has_class("codegroup")]
    assert len(groups) == 1
    assert [text_content(pre) for pre in find_all(Document([groups[0]]), "pre")] == ["a\n"]
    assert ":::" not in text_content(note)


def test_find_container_close_tracks_depth():
    src = "a\n:::tip\nb\n:::\n:::\nrest\n"
    start, end = find_container_close(src, 0)
    assert src[start:end] == ":::"
    assert src[end:] == "\nrest\n"
    assert find_container_close("a\n```\n:::\n", 0) is None
