import pytest

from folio.build import build_static
from folio.content import ContentService
from folio.manifest import ManifestIndex

MANIFEST = {
    "name": "root",
    "categories": [
        {
            "name": "Start",
            "docs": [
                {"title": "Intro", "permalink": "intro", "contentPath": "intro.md"},
                {"title": "Nested", "permalink": "setup/linux", "contentPath": "linux.md"},
                {"title": "Ghost", "permalink": "ghost", "contentPath": "ghost.md"},
            ],
        }
    ],
}


@pytest.fixture
def service(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "intro.md").write_text("# Intro\n", encoding="utf-8")
    (content / "linux.md").write_text("# Linux\n", encoding="utf-8")
    manifest = ManifestIndex()
    manifest.add_zone("guides", "/guides", content, MANIFEST)
    return ContentService(manifest)


def test_build_writes_pages_and_records_failures(service, tmp_path):
    output = tmp_path / "public"
    result = build_static(service, output)

    assert result.written == [
        output / "guides" / "intro.html",
        output / "guides" / "setup" / "linux.html",
    ]
    assert '<h1 id="intro">Intro</h1>' in (output / "guides" / "intro.html").read_text(
        encoding="utf-8"
    )
    assert not result.ok
    assert list(result.failed) == ["/guides/ghost"]
    assert "ghost.md" in result.failed["/guides/ghost"]


def test_build_cleans_output_dir(service, tmp_path):
    output = tmp_path / "public"
    output.mkdir()
    (output / "stale.html").write_text("old", encoding="utf-8")
    build_static(service, output)
    assert not (output / "stale.html").exists()


def test_build_can_keep_existing_files(service, tmp_path):
    output = tmp_path / "public"
    output.mkdir()
    (output / "keep.html").write_text("old", encoding="utf-8")
    build_static(service, output, clean_output=False)
    assert (output / "keep.html").exists()
    assert (output / "guides" / "intro.html").exists()
