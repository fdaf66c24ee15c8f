"""Load autofetch configuration from YAML."""
from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from autofetch.schemas.config import AutofetchConfigSchema

LOGGER = logging.getLogger(__name__)


class ConfigLoader:
    """Load and validate configuration files."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path

    def resolve(self, filename: str | Path) -> Path:
        path = Path(filename)
        if not path.is_absolute():
            path = self._base_path / path
        return path

    def load(self, filename: str | Path) -> AutofetchConfigSchema:
        """Load *filename*; a missing file yields the default configuration."""

        path = self.resolve(filename)
        if not path.exists():
            LOGGER.debug("Config file %s not found; using defaults", path)
            return AutofetchConfigSchema()

        with path.open("r", encoding="utf-8") as handle:
            raw_config = yaml.safe_load(handle)

        if raw_config is not None and not isinstance(raw_config, dict):
            raise ValueError(f"Config file {path} must contain a mapping.")
        config = AutofetchConfigSchema.parse_obj(raw_config)
        _expand_env_vars(config)
        return config


def load_config(path: str | Path) -> AutofetchConfigSchema:
    return ConfigLoader(Path.cwd()).load(path)


def _expand_env_vars(config: AutofetchConfigSchema) -> None:
    if config.logging.logfile is not None:
        config.logging.logfile = Path(os.path.expandvars(str(config.logging.logfile)))


__all__ = ["ConfigLoader", "load_config"]
