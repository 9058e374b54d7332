"""Unit tests for config.py"""

import pytest
from pydantic import ValidationError

from blockgen.config import load_config
from blockgen.core.errors import ConfigError


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Run from an empty directory with no BLOCKGEN_* variables set."""
    monkeypatch.chdir(tmp_path)
    for name in ("DB_URL", "OUTPUT_DIR", "NAMESPACE", "USAGE_CACHE_TTL", "PENDING_TTL", "LOG_LEVEL"):
        monkeypatch.delenv(f"BLOCKGEN_{name}", raising=False)


def test_load_config_defaults():
    """Settings defaults apply when no config.yaml, env var, or CLI override exists."""
    settings = load_config()
    assert settings.db_url == "sqlite:///blockgen.db"
    assert settings.output_dir == "generated-blocks"
    assert settings.namespace == "blockgen"
    assert settings.usage_cache_ttl == 600
    assert settings.pending_ttl == 300


def test_load_config_reads_config_yaml(tmp_path):
    (tmp_path / "config.yaml").write_text("namespace: acme\npending_ttl: 120\n")
    settings = load_config()
    assert settings.namespace == "acme"
    assert settings.pending_ttl == 120


def test_load_config_env_overrides_config_yaml(tmp_path, monkeypatch):
    """BLOCKGEN_DB_URL takes precedence over config.yaml db_url."""
    (tmp_path / "config.yaml").write_text("db_url: 'sqlite:///project.db'\n")
    monkeypatch.setenv("BLOCKGEN_DB_URL", "sqlite:///override.db")
    assert load_config().db_url == "sqlite:///override.db"


def test_load_config_env_coerces_int(monkeypatch):
    monkeypatch.setenv("BLOCKGEN_USAGE_CACHE_TTL", "30")
    assert load_config().usage_cache_ttl == 30


def test_load_config_cli_overrides_env(monkeypatch):
    """A non-None CLI override beats the env var; None overrides are ignored."""
    monkeypatch.setenv("BLOCKGEN_OUTPUT_DIR", "env-out")
    assert load_config(overrides={"output_dir": "cli-out"}).output_dir == "cli-out"
    assert load_config(overrides={"output_dir": None}).output_dir == "env-out"


def test_load_config_invalid_yaml(tmp_path):
    """load_config raises ValueError when config.yaml contains invalid YAML."""
    (tmp_path / "config.yaml").write_text("key: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        load_config()


@pytest.mark.parametrize("field,value", [
    ("namespace", "Bad Name"),
    ("pending_ttl", 0),
    ("usage_cache_ttl", -1),
    ("log_level", "LOUD"),
])
def test_load_config_rejects_invalid_values(field, value):
    with pytest.raises(ValidationError):
        load_config(overrides={field: value})


def test_load_config_rejects_non_mapping_yaml(tmp_path):
    (tmp_path / "config.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ConfigError, match="expected a mapping"):
        load_config()


def test_load_config_empty_yaml_uses_defaults(tmp_path):
    (tmp_path / "config.yaml").write_text("")
    assert load_config().namespace == "blockgen"
