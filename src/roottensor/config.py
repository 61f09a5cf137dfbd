"""Configuration management for RootTensor."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

_logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    # Empty or invalid values fall back to the provider's built-in defaults
    base_url: str = ""
    model: str = ""
    timeout: float = 60.0
    connect_timeout: float = 5.0
    keepalive_expiry: float = 30.0


class LoggingConfig(BaseModel):
    level: str = "WARNING"


class RootTensorConfig(BaseModel):
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


CONFIG_FILENAME = "roottensor.yaml"

# Environment variable -> ProviderConfig field
_ENV_OVERRIDES = {
    "ROOTTENSOR_BASE_URL": "base_url",
    "ROOTTENSOR_MODEL": "model",
}


def _search_paths() -> list[Path]:
    return [
        Path.cwd() / CONFIG_FILENAME,
        Path.home() / ".config" / "roottensor" / "config.yaml",
    ]


def _apply_env(config: RootTensorConfig) -> RootTensorConfig:
    updates: dict[str, Any] = {}
    for var, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            updates[field_name] = value
    if not updates:
        return config
    _logger.debug("Environment overrides: %s", ", ".join(sorted(updates)))
    provider = config.provider.model_copy(update=updates)
    return config.model_copy(update={"provider": provider})


def load_config(
    config_path: str | Path | None = None,
) -> tuple[RootTensorConfig, Path | None]:
    """Load configuration from a YAML file plus environment overrides.

    Returns (config, resolved_path).  *resolved_path* is ``None`` when
    no file was found and built-in defaults are used.

    Search order (first match wins):
      1. Explicit ``--config`` path (missing file raises FileNotFoundError)
      2. ``./roottensor.yaml``
      3. ``~/.config/roottensor/config.yaml``

    ``ROOTTENSOR_BASE_URL`` / ``ROOTTENSOR_MODEL`` override the file.
    """
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        resolved = next((p for p in _search_paths() if p.exists()), None)

    if resolved is None:
        _logger.info("No config file found, using defaults")
        return _apply_env(RootTensorConfig()), None

    _logger.info("Loading config from %s", resolved)
    with open(resolved) as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    config = RootTensorConfig.model_validate(raw)
    return _apply_env(config), resolved.resolve()
