"""Config loader utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config_settings import Config
from .error_codes import ErrorCode
from .exceptions import ConfigError
from .utils.logging import get_logger

CONFIG_ENV_VAR = "AI_NEXUS_CONFIG"

_config: Config | None = None


def _candidate_paths(config_path: Path | None) -> list[Path]:
    if config_path:
        return [config_path.expanduser()]
    candidates: list[Path] = []
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(Path.cwd() / "config.yaml")
    return candidates


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from environment, .env and an optional config.yaml.

    Keys in the YAML file override environment values.

    Raises:
        ConfigError: If an explicit config file is missing, or the YAML or its
            values are invalid
    """
    logger = get_logger(__name__)

    candidates = _candidate_paths(config_path)
    resolved_path = next((p for p in candidates if p.exists()), None)

    if config_path and resolved_path is None:
        msg = f"Config file not found: {config_path}"
        raise ConfigError(
            msg,
            suggestion="Check the path passed with --config",
            error_code=ErrorCode.CFG_FILE_INVALID.value,
        )
    if resolved_path is None:
        logger.debug("config_file_not_found", searched_paths=[str(p) for p in candidates])

    yaml_data: dict[str, Any] = {}
    if resolved_path:
        try:
            with open(resolved_path, encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(
                "config_yaml_load_error",
                config_path=str(resolved_path),
                error=str(e),
            )
            msg = f"Failed to parse config file: {resolved_path}"
            raise ConfigError(
                msg,
                suggestion=(
                    "Check YAML syntax (indentation, colons, quotes). "
                    f"Original error: {e}"
                ),
                error_code=ErrorCode.CFG_FILE_INVALID.value,
            ) from e
        if not isinstance(yaml_data, dict):
            msg = f"Config file must contain a mapping: {resolved_path}"
            raise ConfigError(msg, error_code=ErrorCode.CFG_FILE_INVALID.value)
        logger.debug(
            "config_yaml_loaded",
            config_path=str(resolved_path),
            keys_count=len(yaml_data),
        )

    try:
        config = Config(**yaml_data)
    except ValidationError as e:
        logger.error(
            "config_validation_error",
            error=str(e),
            config_path=str(resolved_path) if resolved_path else None,
        )
        msg = "Invalid configuration"
        raise ConfigError(
            msg,
            suggestion=str(e),
            error_code=ErrorCode.CFG_FILE_INVALID.value,
        ) from e

    logger.info(
        "config_loaded",
        config_path=str(resolved_path) if resolved_path else None,
        vector_store=config.vector_store,
        has_default_key=bool(config.gemini_api_key),
    )
    return config


def get_config() -> Config:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set singleton config instance (for testing)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset global config instance (for testing only)."""
    global _config
    _config = None
