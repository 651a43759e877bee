"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from rentvest.core.config.models import AppConfig, ServicesConfig
from rentvest.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "RENTVEST_"


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("rentvest.json")
        'json'
        >>> detect_format("rentvest.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            with path.open("r", encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                # safe_load returns None for empty files
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping in {path}")
    return content


def _env_overrides(raw: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Apply ``RENTVEST_*`` environment variables on top of the raw config."""
    raw = dict(raw)

    env_name = environ.get(f"{ENV_PREFIX}ENV")
    if env_name:
        logger.debug(f"Environment overridden by {ENV_PREFIX}ENV={env_name}")
        raw["environment"] = env_name.lower()

    token_store = environ.get(f"{ENV_PREFIX}TOKEN_STORE")
    if token_store:
        raw["token_store_path"] = token_store

    level = environ.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level:
        raw["logging"] = {**(raw.get("logging") or {}), "level": level.upper()}

    services = dict(raw.get("services") or {})
    for backend in ServicesConfig.model_fields:
        url = environ.get(f"{ENV_PREFIX}{backend.upper()}_URL")
        if url:
            logger.debug(f"Base URL for {backend} overridden from environment")
            services[backend] = url
    if services:
        raw["services"] = services

    return raw


def load_app_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load and validate application configuration.

    A missing file is not an error: defaults are used. Environment variables
    (``RENTVEST_ENV``, ``RENTVEST_TOKEN_STORE``, ``RENTVEST_LOG_LEVEL``,
    ``RENTVEST_<BACKEND>_URL``) override file values.

    Args:
        path: Path to app config file (.json, .yaml, or .yml).
              Defaults to rentvest.yaml
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated AppConfig instance with defaults for missing values

    Raises:
        ValidationError: If config is invalid
        ValueError: If the file exists but cannot be parsed
    """
    path = Path(path) if path is not None else AppConfig.default_path()
    environ = os.environ if environ is None else environ

    if path.exists():
        raw = load_config(path)
        logger.debug(f"Loaded app config from {path}")
    else:
        raw = {}

    return AppConfig.model_validate(_env_overrides(raw, environ))


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config.

    Args:
        config: AppConfig instance (loads default if None)
    """
    if config is None:
        config = load_app_config()

    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )
