# src/cleansheet/dataloader/config_loader.py
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from cleansheet.errors import ConfigError
from cleansheet.schemas.models import Config
from cleansheet.schemas.rules import RulesConfig


class ConfigLoader:
    """
    @brief
    Loader responsible for reading and validating runtime configuration.

    @details
    Reads YAML from disk, parses it into a mapping, validates it against the
    Pydantic `Config` schema and raises structured `ConfigError` instances for
    every failure mode. The advisory API key is resolved here, once, from the
    environment variable named by `advisory.api_key_env` when it is not set
    inline; the resulting Config is then injected wherever it is needed.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def load(self, path: Path) -> Config:
        """
        @brief
        Load and validate configuration from YAML file.

        @returns
            Validated Config instance.

        @raises
            ConfigError
                Raised if file is missing, malformed, or fails schema validation.
        """
        # (1) Read and parse YAML configuration file
        data = self._read_yaml(path)

        # (2) Validate mapping against Pydantic schema
        cfg = self._validate(data)

        # (3) Resolve the advisory key from the environment
        if not cfg.advisory.api_key:
            env_key = self._environ.get(cfg.advisory.api_key_env)
            if env_key:
                cfg.advisory.api_key = env_key
        return cfg

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """
        @brief
        Read YAML file into Python mapping with strict checks.

        @raises
            ConfigError
                Raised on invalid path type, missing file, wrong extension,
                I/O error, syntax error, empty file, or non-mapping structure.
        """
        # (1) Validate path type and existence
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass a pathlib.Path object pointing to config.yaml.",
            )

        if not path.exists():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure config.yaml exists and the path is correct.",
            )

        # (2) Enforce correct file extension
        if path.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError(
                message=f"Invalid configuration file extension: {path.suffix}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use .yaml or .yml extension for configuration files.",
            )

        # (3) Read and parse YAML content
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax/indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions and path accessibility.",
            ) from e

        # (4) Validate structural integrity of parsed data
        if data is None:
            raise ConfigError(
                message="Configuration file is empty.",
                source="ConfigLoader._read_yaml",
                suggested_action="Populate config.yaml with required parameters.",
            )

        if not isinstance(data, Mapping):
            raise ConfigError(
                message="Configuration root must be a mapping (key: value pairs).",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure top-level YAML structure uses key: value mappings.",
            )

        return dict(data)

    def _validate(self, data: dict[str, Any]) -> Config:
        try:
            return Config(**data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names, types, and bounds in config.yaml. "
                    "Remove unknown keys (extra fields are forbidden)."
                ),
            ) from e


class RulesLoader:
    """Imports a rules.json document previously written by the exporter."""

    def load(self, path: Path) -> RulesConfig:
        if not isinstance(path, Path) or not path.exists():
            raise ConfigError(
                message=f"Rules file not found: {path}",
                source="RulesLoader.load",
                suggested_action="Pass the path of an exported rules.json.",
            )
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(
                message=f"Rules file is not valid JSON: {e}",
                source="RulesLoader.load",
                suggested_action="Re-export the rules or fix the JSON syntax.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read rules file: {e}",
                source="RulesLoader.load",
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                message="Rules document root must be a JSON object.",
                source="RulesLoader.load",
            )
        try:
            return RulesConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid rules document: {e}",
                source="RulesLoader.load",
                suggested_action="Check rule types, weights (0-100) and toggle names.",
            ) from e


__all__ = ["ConfigLoader", "RulesLoader"]
