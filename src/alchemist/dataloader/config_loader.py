# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ConfigLoader:
    """
    @brief
    Reads config.yaml into a validated `Config`.

    @details
    The file may override any subset of settings; everything absent keeps
    the schema default. Every failure (path, syntax, shape, schema) ends
    as a `ConfigError` naming the offending file.
    """

    def load(self, path: Path) -> Config:
        """
        @brief
        Load and validate configuration from a YAML file.

        @raises
            ConfigError
                Raised if the file is missing, unreadable, malformed, or
                fails schema validation.
        """
        # (1) Path sanity, then raw mapping
        self._check_path(path)
        data = self._read_yaml(path)

        # (2) Schema validation
        cfg = self._validate(data, path)
        logger.info("Configuration loaded: %s", path)
        return cfg

    def load_or_default(self, path: Path | None) -> Config:
        """Like `load`, but an absent file (or no path) yields the defaults."""
        if path is None or (isinstance(path, Path) and not path.exists()):
            logger.info("No configuration file at %s; using defaults", path)
            return Config()
        return self.load(path)

    def _check_path(self, path: Path) -> None:
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Config path must be a pathlib.Path, got {type(path).__name__}",
                source="ConfigLoader._check_path",
                suggested_action="Wrap the path in pathlib.Path.",
            )
        if not path.exists():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._check_path",
                suggested_action="Pass --config with an existing file or omit it for defaults.",
            )
        if path.suffix.lower() not in _YAML_SUFFIXES:
            raise ConfigError(
                message=f"Config file must be .yaml or .yml, got '{path.suffix}'",
                source="ConfigLoader._check_path",
                suggested_action="Rename the file or point at the YAML config.",
            )

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """
        @brief
        Parse the file into a top-level mapping.

        @raises
            ConfigError
                Raised on I/O error, YAML syntax error, empty document, or a
                root that is not a mapping.
        """
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed in {path.name}: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check quoting and indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Cannot read {path}: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions.",
            ) from e

        if data is None:
            raise ConfigError(
                message=f"Configuration file is empty: {path.name}",
                source="ConfigLoader._read_yaml",
                suggested_action="Add settings or remove the file to use defaults.",
            )
        if not isinstance(data, Mapping):
            raise ConfigError(
                message=f"Top level of {path.name} must be a mapping, got {type(data).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use 'key: value' pairs at the top level.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any], path: Path) -> Config:
        try:
            return Config.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration in {path.name}: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check section names (validation, export), value types and "
                    "that min bounds do not exceed max bounds."
                ),
            ) from e


__all__ = ["ConfigLoader"]
