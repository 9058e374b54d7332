"""Application configuration: settings schema and layered loader.

Sources, later wins: config.yaml in the working directory, BLOCKGEN_<FIELD>
environment variables, then explicit (non-None) overrides from the CLI.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from blockgen.core.errors import ConfigError


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "BLOCKGEN_"


class Settings(BaseModel):
    app_name:        str = "blockgen"
    db_url:          str = "sqlite:///blockgen.db"
    output_dir:      str = Field(default="generated-blocks", description="Root directory for generated block files")
    namespace:       str = Field(default="blockgen", pattern="^[a-z0-9-]+$", description="Block name prefix and textdomain")
    usage_cache_ttl: int = Field(default=600, ge=0, description="Seconds the partial usage scan is cached; 0 disables")
    pending_ttl:     int = Field(default=300, ge=1, description="Seconds a pending recompile work item lives")
    log_level:       str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid {path.name}: {e}") from e
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Invalid {path.name}: expected a mapping, got {type(loaded).__name__}")
    return loaded


def _read_env() -> dict[str, str]:
    found = {}
    for name in Settings.model_fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value:
            found[name] = value
    return found


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Merge every configuration source into one validated Settings.

    Raises ConfigError (a ValueError) for an unreadable config.yaml and
    pydantic's ValidationError for out-of-range values.
    """
    data = _read_yaml(Path(CONFIG_FILE))
    data.update(_read_env())
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return Settings(**data)
