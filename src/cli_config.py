"""Runtime settings resolution for the CLI.

Precedence, highest first: CLI flags, environment variables, the YAML config
file (``--config`` or a default location), then ``Constants`` defaults.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft7Validator

from constants import Constants, _load_yaml_config
from common.errors import ConfigError
from package_managers import RunSettings

logger = logging.getLogger(__name__)

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "package_manager": {"type": "string", "enum": list(Constants.SUPPORTED_PACKAGES)},
        "project_dir": {"type": "string", "minLength": 1},
        "deps_dir": {"type": "string", "minLength": 1},
        "batch_size": {"type": "integer", "minimum": 1},
        "encoding": {"type": "string", "minLength": 1},
        "oracle": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "max_retries": {"type": "integer", "minimum": 1},
                "retry_delay": {"type": "number", "minimum": 0},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "jar": {"type": "string", "minLength": 1},
                "command": {
                    "type": "array",
                    "minItems": 1,
                    "items": {"type": "string"},
                },
            },
        },
    },
}

# env var -> (settings field, converter)
ENV_OVERRIDES = {
    "PROJECT_COPY_DIR": ("project_dir", str),
    "DEPS_DIR": ("deps_dir", str),
    "BATCH_SIZE": ("batch_size", int),
    "MAX_RETRIES": ("max_retries", int),
    "RETRY_DELAY": ("retry_delay", float),
    "DASH_LICENSES": ("oracle_jar", str),
    "ENCODING": ("encoding", str),
}


def validate_config(data: Dict[str, Any]) -> None:
    """Validate a config mapping; raise ConfigError on the first problem."""
    validator = Draft7Validator(CONFIG_SCHEMA)
    errs = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise ConfigError(f"Invalid config at '{path}': {first.message}")


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load and validate the YAML config.

    Args:
        path: Explicit config file; when omitted the default locations are used.

    Raises:
        ConfigError: If an explicit file is unreadable or any config is invalid.
    """
    if path:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Could not load config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a mapping")
    else:
        data = _load_yaml_config()
    validate_config(data)
    return data


def _settings_from_config(cfg: Mapping[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key in ("project_dir", "deps_dir", "batch_size", "encoding"):
        if key in cfg:
            values[key] = cfg[key]
    oracle = cfg.get("oracle") or {}
    for key, field_name in (
        ("max_retries", "max_retries"),
        ("retry_delay", "retry_delay"),
        ("timeout", "oracle_timeout"),
        ("jar", "oracle_jar"),
        ("command", "oracle_command"),
    ):
        if key in oracle:
            values[field_name] = oracle[key]
    return values


def _settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for var, (field_name, convert) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or not raw.strip():
            continue
        try:
            values[field_name] = convert(raw.strip())
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {var}: {raw!r}") from exc
    return values


def _settings_from_args(args) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for attr, field_name in (
        ("PROJECT_DIR", "project_dir"),
        ("DEPS_DIR", "deps_dir"),
        ("BATCH_SIZE", "batch_size"),
        ("MAX_RETRIES", "max_retries"),
        ("RETRY_DELAY", "retry_delay"),
        ("ORACLE_TIMEOUT", "oracle_timeout"),
        ("DASH_LICENSES", "oracle_jar"),
    ):
        value = getattr(args, attr, None)
        if value is not None:
            values[field_name] = value
    values["check"] = bool(getattr(args, "CHECK", False))
    values["debug"] = bool(getattr(args, "DEBUG", False))
    return values


def _check_ranges(settings: RunSettings) -> None:
    if settings.batch_size < 1:
        raise ConfigError(f"batch size must be a positive integer, got {settings.batch_size}")
    if settings.max_retries < 1:
        raise ConfigError(f"max retries must be a positive integer, got {settings.max_retries}")
    if settings.retry_delay < 0:
        raise ConfigError(f"retry delay must not be negative, got {settings.retry_delay}")
    if settings.oracle_timeout is not None and settings.oracle_timeout <= 0:
        raise ConfigError(f"oracle timeout must be positive, got {settings.oracle_timeout}")


def build_settings(args, environ: Optional[Mapping[str, str]] = None,
                   config: Optional[Dict[str, Any]] = None) -> RunSettings:
    """Merge config, environment and CLI values into RunSettings.

    Raises:
        ConfigError: On invalid config files or values.
    """
    environ = os.environ if environ is None else environ
    if config is None:
        config = load_config(getattr(args, "CONFIG", None))

    values: Dict[str, Any] = {}
    values.update(_settings_from_config(config))
    values.update(_settings_from_env(environ))
    values.update(_settings_from_args(args))

    settings = RunSettings(**values)
    _check_ranges(settings)
    logger.debug("Settings: %s", settings)
    return settings


def resolve_package_manager(args, config: Mapping[str, Any]) -> Optional[str]:
    """CLI ``--type`` wins over the config file; None means auto-detect."""
    return getattr(args, "PACKAGE_TYPE", None) or config.get("package_manager")
