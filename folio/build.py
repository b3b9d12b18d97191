"""Static export for Folio.

Renders every document listed in the manifests and writes it to
``<output_dir>/<url>.html``. A document that fails to render is logged and
recorded; the export carries on with the rest.

Key function:
- build_static: Export all documents of a ContentService.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from .content import ContentService

log = structlog.get_logger()


@dataclass
class BuildResult:
    """Result of a static export.

    Attributes:
        output_dir: Directory the site was written to.
        written: Paths of the HTML files written.
        failed: Map of document URL to error detail.
    """

    output_dir: Path
    written: list[Path] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def build_static(
    service: ContentService, output_dir: Path, clean_output: bool = True
) -> BuildResult:
    """Render every manifest document to an HTML file.

    Args:
        service: Content service to render with.
        output_dir: Target directory.
        clean_output: Whether to wipe the output directory first.

    Returns:
        BuildResult with written files and failures.
    """
    if clean_output and output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    result = BuildResult(output_dir=output_dir)
    for zone, doc in service.manifest.iter_docs():
        url = service.manifest.url_for(zone, doc.permalink)
        rendered = service.render(zone, doc.permalink)
        if not rendered.ok:
            log.warning(
                "build.failed", url=url, error_kind=str(rendered.error_kind), detail=rendered.detail
            )
            result.failed[url] = rendered.detail
            continue
        result.written.append(_write_page(output_dir, url, rendered.html or ""))
        log.info("build.created", url=url)
    return result


def _write_page(output_dir: Path, url: str, html: str) -> Path:
    """Write a rendered document to ``<output_dir>/<url>.html``.

    Args:
        output_dir: Base output directory.
        url: Site URL of the document.
        html: Rendered HTML content.

    Returns:
        Path of the written file.
    """
    target = output_dir / f"{url.strip('/')}.html"
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(html)
    return target
