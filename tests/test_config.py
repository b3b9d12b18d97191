from pathlib import Path

import pytest

from folio.cache import CacheMode, FingerprintStrategy
from folio.config import (
    DEFAULT_CONFIG,
    ConfigError,
    grammar_definitions,
    load_config,
    resolve_cache_mode,
    resolve_fingerprint_strategy,
    zone_settings,
)


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path, environ={})
    assert config["theme"] == DEFAULT_CONFIG["theme"]
    assert config["project_root"] == tmp_path
    assert config["cache"] is CacheMode.MARKUP
    assert zone_settings(config) == []
    assert grammar_definitions(config) == []


def test_yaml_overrides_defaults(tmp_path):
    (tmp_path / "folio.yaml").write_text(
        "theme: monokai\nsite_url: https://docs.example.com\nproduction: true\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path, environ={})
    assert config["theme"] == "monokai"
    assert config["site_url"] == "https://docs.example.com"
    assert config["cache"] is CacheMode.FULL


def test_environment_overrides_yaml(tmp_path):
    (tmp_path / "folio.yaml").write_text("theme: monokai\n", encoding="utf-8")
    config = load_config(
        tmp_path, environ={"FOLIO_THEME": "friendly", "FOLIO_ENV": "production"}
    )
    assert config["theme"] == "friendly"
    assert config["production"] is True
    assert config["cache"] is CacheMode.FULL


def test_explicit_cache_mode_wins(tmp_path):
    config = load_config(tmp_path, environ={"FOLIO_ENV": "production", "FOLIO_CACHE": "none"})
    assert config["cache"] is CacheMode.NONE


def test_resolve_cache_mode():
    assert resolve_cache_mode({}) is CacheMode.MARKUP
    assert resolve_cache_mode({"production": True}) is CacheMode.FULL
    assert resolve_cache_mode({"cache": " Markup "}) is CacheMode.MARKUP
    with pytest.raises(ConfigError) as excinfo:
        resolve_cache_mode({"cache": "sometimes"})
    assert "sometimes" in str(excinfo.value)


def test_invalid_yaml(tmp_path):
    (tmp_path / "folio.yaml").write_text("theme: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})
    (tmp_path / "folio.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path, environ={})


def test_zone_settings_resolve_paths(tmp_path):
    config = {
        "project_root": tmp_path,
        "zones": [
            {"name": "guides", "content_path": "content/guides", "manifest": "guides.json"},
            {
                "name": "reference",
                "base_url": "/api",
                "content_path": "/srv/reference",
                "manifest": "reference.json",
            },
        ],
    }
    guides, reference = zone_settings(config)
    assert guides.base_url == "/guides"
    assert guides.content_dir == tmp_path / "content" / "guides"
    assert guides.manifest == tmp_path / "guides.json"
    assert reference.base_url == "/api"
    assert reference.content_dir == Path("/srv/reference")


def test_zone_settings_require_fields():
    with pytest.raises(ConfigError) as excinfo:
        zone_settings({"zones": [{"name": "guides", "content_path": "c"}]})
    assert "manifest" in str(excinfo.value)
    with pytest.raises(ConfigError):
        zone_settings({"zones": ["guides"]})


def test_grammar_definitions(tmp_path):
    config = {
        "project_root": tmp_path,
        "grammars": [
            {
                "id": "proto",
                "scopeName": "source.proto",
                "path": "grammars/proto.py",
                "lexer": "ProtoLexer",
                "aliases": ["protobuf"],
            },
            {"id": "rs", "scopeName": "source.rust", "lexer": "rust"},
        ],
    }
    proto, rust = grammar_definitions(config)
    assert proto.source_path == tmp_path / "grammars" / "proto.py"
    assert proto.lexer_name == "ProtoLexer"
    assert proto.aliases == ("protobuf",)
    assert rust.source_path is None
    assert rust.lexer_name == "rust"


def test_grammar_definitions_require_id_and_scope():
    with pytest.raises(ConfigError):
        grammar_definitions({"grammars": [{"id": "x"}]})


def test_fingerprint_strategy_is_validated(tmp_path):
    assert load_config(tmp_path, environ={})["fingerprint"] is FingerprintStrategy.MTIME
    (tmp_path / "folio.yaml").write_text("fingerprint: SHA256\n", encoding="utf-8")
    assert load_config(tmp_path, environ={})["fingerprint"] is FingerprintStrategy.SHA256
    (tmp_path / "folio.yaml").write_text("fingerprint: crc32\n", encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path, environ={})
    assert "crc32" in str(excinfo.value)


def test_resolve_fingerprint_strategy():
    assert resolve_fingerprint_strategy({}) is FingerprintStrategy.MTIME
    with pytest.raises(ConfigError):
        resolve_fingerprint_strategy({"fingerprint": "md5"})
