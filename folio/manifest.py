"""Navigation manifests for Folio.

Each zone (guides, reference, cookbooks, ...) owns a manifest: a JSON tree of
groups, categories and docs, where every doc maps a permalink to a Markdown
file inside the zone's content directory. The ManifestIndex is built once at
startup and only read afterwards.

Key classes:
- ManifestEntry / Category / Group: The manifest tree.
- Zone: A loaded zone with its permalink lookup table.
- ManifestIndex: Resolves (zone, permalink) pairs and URLs to files.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import structlog

from .html_utils import join_root_url

log = structlog.get_logger()

# Groups and categories with this name only structure the tree
STRUCTURAL_NAME = "root"


class ManifestError(Exception):
    """Error raised when a manifest is invalid.

    Attributes:
        zone: Zone whose manifest failed to load.
        message: Human-readable error message.
        permalink: The offending permalink, when there is one.
    """

    def __init__(self, zone: str, message: str, permalink: str | None = None):
        self.zone = zone
        self.message = message
        self.permalink = permalink
        super().__init__(f"{zone}: {message}")


@dataclass(frozen=True)
class ManifestEntry:
    """A document listed in a manifest."""

    title: str
    permalink: str
    content_path: str


@dataclass(frozen=True)
class Category:
    name: str
    docs: tuple[ManifestEntry, ...] = ()


@dataclass(frozen=True)
class Group:
    name: str
    categories: tuple[Category, ...] = ()


@dataclass(frozen=True)
class NavLink:
    title: str
    url: str


@dataclass(frozen=True)
class NavCategory:
    label: str | None
    links: tuple[NavLink, ...]


@dataclass(frozen=True)
class NavGroup:
    """A sidebar group. ``label`` is None for structural ``root`` groups."""

    label: str | None
    categories: tuple[NavCategory, ...]


def normalize_permalink(value: str) -> str:
    """Strip surrounding slashes and whitespace from a permalink."""
    return value.strip().strip("/")


def _nav_label(name: str) -> str | None:
    return None if name.strip().lower() == STRUCTURAL_NAME else name


def _require_list(zone: str, value: Any, what: str) -> list:
    if not isinstance(value, list):
        raise ManifestError(zone, f"Expected a list of {what}, got {type(value).__name__}")
    return value


def _parse_doc(zone: str, raw: Any) -> ManifestEntry:
    if not isinstance(raw, dict):
        raise ManifestError(zone, f"Expected a doc object, got {type(raw).__name__}")
    permalink = raw.get("permalink")
    content_path = raw.get("contentPath")
    if not isinstance(permalink, str) or not normalize_permalink(permalink):
        raise ManifestError(zone, f"Doc is missing a permalink: {raw!r}")
    if not isinstance(content_path, str) or not content_path.strip():
        raise ManifestError(
            zone, "Doc is missing a contentPath", normalize_permalink(permalink)
        )
    permalink = normalize_permalink(permalink)
    return ManifestEntry(
        title=str(raw.get("title") or permalink),
        permalink=permalink,
        content_path=content_path.strip(),
    )


def _parse_group(zone: str, raw: Any) -> Group:
    if not isinstance(raw, dict):
        raise ManifestError(zone, f"Expected a group object, got {type(raw).__name__}")
    categories = []
    for raw_category in _require_list(zone, raw.get("categories", []), "categories"):
        if not isinstance(raw_category, dict):
            raise ManifestError(zone, "Expected a category object")
        docs = tuple(
            _parse_doc(zone, doc)
            for doc in _require_list(zone, raw_category.get("docs", []), "docs")
        )
        categories.append(Category(name=str(raw_category.get("name", "")), docs=docs))
    return Group(name=str(raw.get("name", "")), categories=tuple(categories))


def load_manifest(zone: str, source: Path | str | list | dict) -> tuple[Group, ...]:
    """Load and validate a zone manifest.

    Args:
        zone: Zone name, used in error messages.
        source: Path to a JSON file, or an already decoded manifest. The
            manifest is either one group object or a list of groups.

    Returns:
        The manifest groups.

    Raises:
        ManifestError: If the file cannot be read, is not valid JSON, has the
            wrong shape, or lists a permalink twice.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise ManifestError(zone, f"Cannot read manifest {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ManifestError(zone, f"Invalid JSON in {path}: {exc}") from exc
    else:
        data = source

    raw_groups = data if isinstance(data, list) else [data]
    groups = tuple(_parse_group(zone, raw) for raw in raw_groups)

    seen: set[str] = set()
    for group in groups:
        for category in group.categories:
            for doc in category.docs:
                if doc.permalink in seen:
                    raise ManifestError(
                        zone, f"Duplicate permalink '{doc.permalink}'", doc.permalink
                    )
                seen.add(doc.permalink)
    return groups


@dataclass
class Zone:
    """A content zone with its manifest and lookup table.

    Attributes:
        name: Zone name (e.g. "guides").
        base_url: URL prefix of the zone (e.g. "/guides").
        content_dir: Directory holding the zone's Markdown files.
        groups: Manifest tree.
    """

    name: str
    base_url: str
    content_dir: Path
    groups: tuple[Group, ...] = ()
    _entries: dict[str, ManifestEntry] = field(default_factory=dict, repr=False)
    _paths: dict[str, Path] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        root = self.content_dir.resolve()
        for doc in self.docs():
            path = (self.content_dir / doc.content_path).resolve()
            if not path.is_relative_to(root):
                raise ManifestError(
                    self.name,
                    f"contentPath '{doc.content_path}' leaves the content directory",
                    doc.permalink,
                )
            self._entries[doc.permalink] = doc
            self._paths[doc.permalink] = path

    def docs(self) -> Iterator[ManifestEntry]:
        for group in self.groups:
            for category in group.categories:
                yield from category.docs

    def __len__(self) -> int:
        return len(self._entries)


class ManifestIndex:
    """Permalink-to-file lookup across zones.

    Built at startup; every method afterwards is a read, so the index is
    shared by concurrent renders without locking.
    """

    def __init__(self, zones: Iterable[Zone] = ()):
        self._zones: dict[str, Zone] = {}
        for zone in zones:
            self._add(zone)

    def _add(self, zone: Zone) -> None:
        if zone.name in self._zones:
            raise ManifestError(zone.name, "Zone registered twice")
        self._zones[zone.name] = zone
        log.info("manifest.loaded", zone=zone.name, docs=len(zone))

    def add_zone(
        self,
        name: str,
        base_url: str,
        content_dir: Path,
        manifest: Path | str | list | dict,
    ) -> Zone:
        """Load a manifest and register it as a zone.

        Args:
            name: Zone name.
            base_url: URL prefix of the zone.
            content_dir: Directory of the zone's content files.
            manifest: Manifest path or decoded manifest.

        Returns:
            The registered Zone.

        Raises:
            ManifestError: If the manifest is invalid or the zone exists.
        """
        zone = Zone(
            name=name,
            base_url="/" + base_url.strip("/") if base_url.strip("/") else "",
            content_dir=Path(content_dir),
            groups=load_manifest(name, manifest),
        )
        self._add(zone)
        return zone

    @property
    def zones(self) -> list[str]:
        return list(self._zones)

    def zone(self, name: str) -> Zone | None:
        return self._zones.get(name)

    def entry(self, zone: str, permalink: str) -> ManifestEntry | None:
        found = self._zones.get(zone)
        if found is None:
            return None
        return found._entries.get(normalize_permalink(permalink))

    def resolve(self, zone: str, url: str) -> Path | None:
        """Resolve a permalink to its content file.

        Only an exact permalink match resolves; surrounding slashes are
        ignored. There is no prefix or partial matching.

        Args:
            zone: Zone name.
            url: Permalink within the zone.

        Returns:
            Path to the content file, or None when the zone or permalink is
            unknown.
        """
        found = self._zones.get(zone)
        if found is None:
            return None
        return found._paths.get(normalize_permalink(url))

    def match_url(self, url: str) -> tuple[str, str] | None:
        """Split a site URL into (zone, permalink) using zone base URLs.

        Query strings and fragments are ignored. The zone with the longest
        matching base URL wins.

        Args:
            url: Request URL or path, e.g. ``/guides/introduction``.

        Returns:
            Tuple of (zone name, permalink), or None when no zone matches.
        """
        path = "/" + urlsplit(url).path.strip("/")
        for zone in sorted(self._zones.values(), key=lambda z: len(z.base_url), reverse=True):
            base = zone.base_url
            if base and path != base and not path.startswith(base + "/"):
                continue
            permalink = normalize_permalink(path[len(base) :])
            if permalink:
                return zone.name, permalink
        return None

    def url_for(self, zone: str, permalink: str) -> str:
        """Build the site URL of a document."""
        found = self._zones[zone]
        return join_root_url(found.base_url or "/", normalize_permalink(permalink))

    def iter_docs(self) -> Iterator[tuple[str, ManifestEntry]]:
        """Yield (zone, entry) for every document, in manifest order."""
        for zone in self._zones.values():
            for doc in zone.docs():
                yield zone.name, doc

    def navigation(self, zone: str) -> list[NavGroup]:
        """Build the sidebar tree of a zone.

        Groups and categories named ``root`` get a None label so they are
        never shown as headings.

        Raises:
            KeyError: If the zone is unknown.
        """
        found = self._zones[zone]
        return [
            NavGroup(
                label=_nav_label(group.name),
                categories=tuple(
                    NavCategory(
                        label=_nav_label(category.name),
                        links=tuple(
                            NavLink(doc.title, self.url_for(zone, doc.permalink))
                            for doc in category.docs
                        ),
                    )
                    for category in group.categories
                ),
            )
            for group in found.groups
        ]
