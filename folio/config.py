"""Configuration loading for Folio.

Settings are loaded in priority order (highest first):
  1. Environment variables (FOLIO_CACHE, FOLIO_ENV, FOLIO_THEME, ...)
  2. folio.yaml at the project root
  3. DEFAULT_CONFIG

Key functions:
- load_config: Load and merge configuration for a project.
- resolve_cache_mode: Pick the cache mode from the config and environment.
- zone_settings / grammar_definitions: Typed views of the list settings.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .cache import CacheMode, FingerprintStrategy
from .highlight import DEFAULT_THEME, GrammarDefinition

CONFIG_FILENAME = "folio.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "site_url": "",
    "theme": DEFAULT_THEME,
    "cache": None,
    "production": False,
    "fingerprint": FingerprintStrategy.MTIME.value,
    "image_base": "/assets/images/",
    "zones": [],
    "grammars": [],
    "log_level": "INFO",
    "log_format": "text",
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "FOLIO_CACHE": "cache",
    "FOLIO_THEME": "theme",
    "FOLIO_SITE_URL": "site_url",
    "FOLIO_LOG_LEVEL": "log_level",
}


class ConfigError(Exception):
    """Error raised for invalid configuration."""


@dataclass(frozen=True)
class ZoneSettings:
    """Configuration of one content zone.

    Attributes:
        name: Zone name.
        base_url: URL prefix of the zone.
        content_dir: Directory with the zone's Markdown files.
        manifest: Path to the zone's manifest JSON.
    """

    name: str
    base_url: str
    content_dir: Path
    manifest: Path


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"Expected a mapping in {path}")
    return loaded


def load_config(
    project_root: Path, environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Load configuration from folio.yaml and the environment.

    Args:
        project_root: Root directory of the project.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Dictionary containing configuration values, with defaults applied.
        ``project_root`` is added so relative paths can be resolved later.

    Raises:
        ConfigError: If folio.yaml is not a valid YAML mapping.
    """
    environ = os.environ if environ is None else environ
    config = DEFAULT_CONFIG.copy()
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        config.update(_read_yaml(config_path))

    for variable, key in ENV_OVERRIDES.items():
        if environ.get(variable):
            config[key] = environ[variable]
    if environ.get("FOLIO_ENV"):
        config["production"] = environ["FOLIO_ENV"].strip().lower() == "production"

    config["project_root"] = project_root
    config["cache"] = resolve_cache_mode(config)
    config["fingerprint"] = resolve_fingerprint_strategy(config)
    return config


def resolve_cache_mode(config: Mapping[str, Any]) -> CacheMode:
    """Pick the cache mode.

    An explicit ``cache`` setting wins; otherwise production uses ``full``
    and development uses ``markup``.

    Raises:
        ConfigError: For an unknown mode.
    """
    value = config.get("cache")
    if value in (None, ""):
        return CacheMode.FULL if config.get("production") else CacheMode.MARKUP
    try:
        return CacheMode(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(mode.value for mode in CacheMode)
        raise ConfigError(f"Unknown cache mode '{value}' (expected one of: {choices})") from None


def resolve_fingerprint_strategy(config: Mapping[str, Any]) -> FingerprintStrategy:
    """Validate the ``fingerprint`` setting; unset means ``mtime``.

    Raises:
        ConfigError: For an unknown strategy.
    """
    value = config.get("fingerprint")
    if value in (None, ""):
        return FingerprintStrategy.MTIME
    try:
        return FingerprintStrategy(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(strategy.value for strategy in FingerprintStrategy)
        raise ConfigError(
            f"Unknown fingerprint strategy '{value}' (expected one of: {choices})"
        ) from None


def _resolve_path(project_root: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else project_root / path


def zone_settings(config: Mapping[str, Any]) -> list[ZoneSettings]:
    """Return the configured zones.

    Raises:
        ConfigError: If a zone lacks a name, content path, or manifest.
    """
    project_root = Path(config.get("project_root", "."))
    zones: list[ZoneSettings] = []
    for raw in config.get("zones") or []:
        if not isinstance(raw, dict):
            raise ConfigError(f"Expected a zone mapping, got {raw!r}")
        missing = [key for key in ("name", "content_path", "manifest") if not raw.get(key)]
        if missing:
            raise ConfigError(f"Zone {raw.get('name', '?')} is missing: {', '.join(missing)}")
        zones.append(
            ZoneSettings(
                name=str(raw["name"]),
                base_url=str(raw.get("base_url", f"/{raw['name']}")),
                content_dir=_resolve_path(project_root, raw["content_path"]),
                manifest=_resolve_path(project_root, raw["manifest"]),
            )
        )
    return zones


def grammar_definitions(config: Mapping[str, Any]) -> list[GrammarDefinition]:
    """Return the extra grammars declared in the config.

    Each entry has ``id``, ``scopeName``, and optionally ``path`` (a file
    defining a Pygments lexer), ``lexer`` and ``aliases``.

    Raises:
        ConfigError: If an entry lacks an id or scope name.
    """
    project_root = Path(config.get("project_root", "."))
    definitions: list[GrammarDefinition] = []
    for raw in config.get("grammars") or []:
        if not isinstance(raw, dict) or not raw.get("id") or not raw.get("scopeName"):
            raise ConfigError(f"Grammar entries need an id and a scopeName: {raw!r}")
        path = raw.get("path")
        definitions.append(
            GrammarDefinition(
                id=str(raw["id"]),
                scope_name=str(raw["scopeName"]),
                source_path=_resolve_path(project_root, path) if path else None,
                lexer_name=raw.get("lexer"),
                aliases=tuple(raw.get("aliases") or ()),
            )
        )
    return definitions
