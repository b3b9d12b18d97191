from folio.html_utils import (
    attribute_name,
    escape_html,
    is_external_url,
    join_root_url,
    render_attributes,
    url_host,
)


def test_escape_html():
    assert escape_html('<a href="x">Tom & Jerry</a>') == (
        "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&lt;/a&gt;"
    )


def test_attribute_name():
    assert attribute_name("className") == "class"
    assert attribute_name("htmlFor") == "for"
    assert attribute_name("dataLineNumbers") == "data-line-numbers"
    assert attribute_name("href") == "href"


def test_render_attributes():
    rendered = render_attributes(
        {
            "className": ["alert", "alert-note"],
            "title": 'Say "hi"',
            "hidden": True,
            "open": False,
            "missing": None,
            "empty": [],
            "dataTab": 2,
        }
    )
    assert rendered == ' class="alert alert-note" title="Say &quot;hi&quot;" hidden data-tab="2"'
    assert render_attributes({}) == ""


def test_join_root_url():
    assert join_root_url("https://example.com/", "about") == "https://example.com/about"
    assert join_root_url("/guides", "/intro") == "/guides/intro"
    assert join_root_url("", "/x") == "/x"


def test_url_host():
    assert url_host("https://Docs.Example.com:8080/a") == "docs.example.com"
    assert url_host("/guides/intro") == ""
    assert url_host("mailto:a@b.c") == ""


def test_is_external_url():
    site = "docs.example.com"
    assert is_external_url("https://example.org/x", site)
    assert is_external_url("//cdn.example.net/lib.js", site)
    assert not is_external_url("https://docs.example.com/guides", site)
    assert not is_external_url("/guides/other", site)
    assert not is_external_url("#section", site)
    assert not is_external_url("mailto:team@example.com", site)
    assert is_external_url("https://example.org", "")
