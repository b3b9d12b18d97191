"""Content service for Folio.

This module is the single entry point of the rendering pipeline. A request
for (zone, url) goes through these stages:

    RESOLVING -> CACHE_CHECK -> READING -> PARSING -> TRANSFORMING
    (highlighting happens inside) -> SERIALIZING -> CACHING -> DONE

and ends either with HTML or with one of three failures: NOT_FOUND,
READ_ERROR, RENDER_ERROR. Failures are returned as values, never raised, so
an HTTP layer can map them to 404 / 500 responses.

Key classes:
- ContentService: Runs the pipeline.
- RenderResult: Outcome of a render.
- FileContentReader: Filesystem implementation of the ContentReader protocol.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar

import structlog

from .cache import FingerprintStrategy, RenderCache, fingerprint_file
from .config import (
    grammar_definitions,
    load_config,
    resolve_cache_mode,
    resolve_fingerprint_strategy,
    zone_settings,
)
from .highlight import DEFAULT_GRAMMARS, GrammarRegistry, Highlighter, ThemeDefinition
from .log import configure_logging
from .manifest import ManifestIndex, normalize_permalink
from .parser import Document, MarkdownParser
from .protocols import ContentReader, RenderCacheStore
from .renderers import (
    HtmlSerializer,
    NodeRenderError,
    NodeRendererRegistry,
    RenderConfig,
    RenderContext,
)
from .templates import TemplateEngine

log = structlog.get_logger()

T = TypeVar("T")


class ErrorKind(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    READ_ERROR = "READ_ERROR"
    RENDER_ERROR = "RENDER_ERROR"


# Stages whose failures are reported as RENDER_ERROR
class RenderStage(StrEnum):
    CACHE_CHECK = "cache_check"
    PARSING = "parsing"
    TRANSFORMING = "transforming"
    SERIALIZING = "serializing"
    CACHING = "caching"


_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.READ_ERROR: 500,
    ErrorKind.RENDER_ERROR: 500,
}


class ContentReadError(Exception):
    """Error reading a content file that the manifest resolved.

    Attributes:
        zone: Zone of the document.
        permalink: Permalink of the document.
        path: File that could not be read.
        original_error: The underlying exception.
    """

    def __init__(self, zone: str, permalink: str, path: Path, original_error: Exception):
        self.zone = zone
        self.permalink = permalink
        self.path = path
        self.original_error = original_error
        super().__init__(f"Cannot read {path}: {original_error}")


class RenderError(Exception):
    """Unexpected failure while turning Markdown into HTML.

    Attributes:
        zone: Zone of the document.
        permalink: Permalink of the document.
        stage: Pipeline stage that failed.
        original_error: The underlying exception.
    """

    def __init__(
        self,
        zone: str,
        permalink: str,
        stage: RenderStage,
        original_error: Exception,
    ):
        self.zone = zone
        self.permalink = permalink
        self.stage = stage
        self.original_error = original_error
        super().__init__(
            f"{zone}/{permalink}: {stage} failed: "
            f"{type(original_error).__name__}: {original_error}"
        )


@dataclass(frozen=True)
class RenderResult:
    """Outcome of a render: either HTML or an error kind with detail.

    Attributes:
        html: Rendered HTML on success.
        frontmatter: Document metadata on success.
        error_kind: Failure kind, None on success.
        detail: Failure description.
    """

    html: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)
    error_kind: ErrorKind | None = None
    detail: str = ""

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str) -> RenderResult:
        return cls(error_kind=kind, detail=detail)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @property
    def status_code(self) -> int:
        """HTTP status equivalent: 200, 404, or 500."""
        if self.error_kind is None:
            return 200
        return _STATUS_CODES[self.error_kind]


class FileContentReader:
    """Reads content files from disk.

    Attributes:
        strategy: Fingerprint strategy, ``mtime`` or ``sha256``.
    """

    def __init__(self, strategy: str = FingerprintStrategy.MTIME):
        self.strategy = FingerprintStrategy(strategy)

    def fingerprint(self, path: Path) -> str:
        return fingerprint_file(path, self.strategy)

    def read(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")


class ContentService:
    """Renders documents for (zone, url) requests.

    Collaborators are injected so tests can pass a fresh cache, a fake
    reader, or a custom renderer registry. Nothing here keeps per-request
    state, so one service can serve concurrent requests.

    Attributes:
        manifest: Permalink lookup across zones.
        render_config: Theme, site URL and image base for renderers.
        highlighter: Syntax highlighter.
        serializer: Tree serializer with the renderer registry.
        cache: Render cache.
        reader: Content file reader.
        parser: Markdown parser.
        templates: Element template engine.
    """

    def __init__(
        self,
        manifest: ManifestIndex,
        *,
        render_config: RenderConfig | None = None,
        highlighter: Highlighter | None = None,
        registry: NodeRendererRegistry | None = None,
        cache: RenderCacheStore | None = None,
        reader: ContentReader | None = None,
        parser: MarkdownParser | None = None,
        templates: TemplateEngine | None = None,
    ):
        self.manifest = manifest
        self.highlighter = highlighter or Highlighter()
        self.render_config = render_config or RenderConfig(
            theme_id=self.highlighter.registry.theme_ids[0]
        )
        self.serializer = HtmlSerializer(registry or NodeRendererRegistry())
        self.cache = cache if cache is not None else RenderCache()
        self.reader = reader or FileContentReader()
        self.parser = parser or MarkdownParser()
        self.templates = templates or TemplateEngine()

    @classmethod
    def from_project(
        cls, project_root: Path, environ: Mapping[str, str] | None = None
    ) -> ContentService:
        """Load folio.yaml, configure logging, and wire a service.

        Args:
            project_root: Directory holding folio.yaml.
            environ: Environment mapping; defaults to ``os.environ``.

        Returns:
            A ready ContentService.
        """
        config = load_config(project_root, environ)
        configure_logging(str(config["log_level"]), str(config["log_format"]))
        return cls.from_config(config)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ContentService:
        """Wire a service from a loaded configuration.

        This is the startup step: manifests, grammars and themes are loaded
        here and nowhere else.

        Args:
            config: Result of ``folio.config.load_config``.

        Returns:
            A ready ContentService.

        Raises:
            ManifestError: If a manifest is invalid.
            GrammarError: If a grammar or the theme cannot be loaded.
            ConfigError: If the config is invalid.
        """
        manifest = ManifestIndex()
        for zone in zone_settings(config):
            manifest.add_zone(zone.name, zone.base_url, zone.content_dir, zone.manifest)

        theme_id = str(config.get("theme"))
        registry = GrammarRegistry(
            grammars=[*DEFAULT_GRAMMARS, *grammar_definitions(config)],
            themes=[ThemeDefinition(theme_id)],
        )
        return cls(
            manifest,
            render_config=RenderConfig(
                theme_id=theme_id,
                site_url=str(config.get("site_url") or ""),
                image_base=str(config.get("image_base") or ""),
            ),
            highlighter=Highlighter(registry),
            cache=RenderCache(resolve_cache_mode(config)),
            reader=FileContentReader(resolve_fingerprint_strategy(config)),
        )

    def render(self, zone: str, url: str) -> RenderResult:
        """Render the document at ``url`` in ``zone``.

        Args:
            zone: Zone name.
            url: Permalink within the zone.

        Returns:
            RenderResult with HTML, or with NOT_FOUND / READ_ERROR /
            RENDER_ERROR and a detail message.
        """
        path = self.manifest.resolve(zone, url)
        if path is None:
            log.debug("render.not_found", zone=zone, url=url)
            return RenderResult.failure(
                ErrorKind.NOT_FOUND, f"Unable to lookup '{url}' in zone '{zone}'"
            )

        permalink = normalize_permalink(url)
        try:
            return self._render_file(zone, permalink, path)
        except ContentReadError as exc:
            log.error(
                "render.read_error",
                zone=zone,
                permalink=permalink,
                path=str(path),
                error=str(exc.original_error),
            )
            return RenderResult.failure(ErrorKind.READ_ERROR, str(exc))
        except RenderError as exc:
            log.error(
                "render.failed",
                zone=zone,
                permalink=permalink,
                stage=str(exc.stage),
                exc_info=exc.original_error,
            )
            return RenderResult.failure(ErrorKind.RENDER_ERROR, str(exc))

    def render_url(self, url: str) -> RenderResult:
        """Render a site URL such as ``/guides/introduction``.

        The zone is found from the zone base URLs; a URL outside every zone
        is NOT_FOUND.
        """
        match = self.manifest.match_url(url)
        if match is None:
            log.debug("render.not_found", url=url)
            return RenderResult.failure(ErrorKind.NOT_FOUND, f"Unable to lookup '{url}'")
        zone, permalink = match
        return self.render(zone, permalink)

    async def arender(self, zone: str, url: str) -> RenderResult:
        """Async variant of ``render``; the pipeline runs in a worker thread."""
        return await asyncio.to_thread(self.render, zone, url)

    def _render_file(self, zone: str, permalink: str, path: Path) -> RenderResult:
        try:
            fingerprint = self.reader.fingerprint(path)
        except OSError as exc:
            raise ContentReadError(zone, permalink, path, exc) from exc

        entry = self._stage(
            zone, permalink, RenderStage.CACHE_CHECK, self.cache.get, zone, permalink, fingerprint
        )
        if entry is not None and entry.html is not None:
            return RenderResult(html=entry.html, frontmatter=dict(entry.frontmatter))

        if entry is not None and entry.document is not None:
            document = entry.document
            cached_document = True
        else:
            try:
                text = self.reader.read(path)
            except (OSError, UnicodeDecodeError) as exc:
                raise ContentReadError(zone, permalink, path, exc) from exc
            document = self._stage(zone, permalink, RenderStage.PARSING, self.parser.parse, text)
            cached_document = False

        html = self._serialize(zone, permalink, document)
        if not cached_document:
            self._stage(
                zone,
                permalink,
                RenderStage.CACHING,
                self.cache.put,
                zone,
                permalink,
                fingerprint,
                html=html,
                document=document,
                frontmatter=document.frontmatter,
            )
        return RenderResult(html=html, frontmatter=dict(document.frontmatter))

    def _serialize(self, zone: str, permalink: str, document: Document) -> str:
        context = RenderContext(
            config=self.render_config,
            highlighter=self.highlighter,
            templates=self.templates,
            serializer=self.serializer,
        )
        try:
            return self.serializer.serialize(document.children, context)
        except NodeRenderError as exc:
            raise RenderError(zone, permalink, RenderStage.TRANSFORMING, exc) from exc
        except Exception as exc:
            raise RenderError(zone, permalink, RenderStage.SERIALIZING, exc) from exc

    def _stage(
        self,
        zone: str,
        permalink: str,
        stage: RenderStage,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            raise RenderError(zone, permalink, stage, exc) from exc
