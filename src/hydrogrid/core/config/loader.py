# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

from __future__ import annotations

import logging
import os
from difflib import get_close_matches
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from hydrogrid.core.config.models import (
    ExecutionConfig,
    HydroGridConfig,
    LoggingConfig,
    PathsConfig,
    ThresholdConfig,
)
from hydrogrid.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "HYDROGRID_"

ALIAS_MAP = {
    "WORKERS": "MAX_WORKERS",
    "NUM_WORKERS": "MAX_WORKERS",
    "TEST_FRACTION": "TEST_PERCENTAGE",
    "SEED": "RANDOM_SEED",
    "RANGES": "PARAMETER_RANGES",
}


def known_keys() -> set:
    """All flat configuration keys recognised by the models."""
    keys = {"PARAMETER_RANGES"}
    for section in (PathsConfig, ExecutionConfig, ThresholdConfig, LoggingConfig):
        keys.update(field.alias for field in section.model_fields.values())
    return keys


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    use_env: bool = True,
) -> HydroGridConfig:
    """
    Load configuration with precedence: overrides > ENV vars > Config file > Defaults

    Args:
        path: Optional path to a YAML configuration file
        overrides: Dictionary of CLI/programmatic overrides
        use_env: Whether to read HYDROGRID_* environment variables (default: True)

    Returns:
        Validated, frozen HydroGridConfig

    Raises:
        FileNotFoundError: If a config path is given but does not exist
        ConfigurationError: If the file cannot be parsed or values are invalid
    """
    config: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse configuration file {path}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping, got {type(file_config).__name__}"
            )
        config.update({_normalize_key(k): v for k, v in file_config.items()})
        logger.debug(f"Loaded {len(file_config)} settings from {path}")

    if use_env:
        config.update(_load_env_overrides())

    if overrides:
        config.update({_normalize_key(k): v for k, v in overrides.items() if v is not None})

    return config_from_mapping(config)


def config_from_mapping(config: Mapping[str, Any]) -> HydroGridConfig:
    """
    Validate a flat mapping of settings.

    Raises:
        ConfigurationError: With a field-by-field report if validation fails
    """
    # None means "not set" so the model default applies
    clean_config = {_normalize_key(k): v for k, v in config.items() if v is not None}

    try:
        return HydroGridConfig.from_flat(clean_config)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e, clean_config)) from e


def _load_env_overrides() -> Dict[str, Any]:
    """
    Load configuration overrides from environment variables.
    """
    env_overrides = {}

    for env_key, env_value in os.environ.items():
        if env_key.startswith(ENV_PREFIX):
            config_key = _normalize_key(env_key[len(ENV_PREFIX):])
            value = _coerce_value(env_value)
            if value is not None:
                env_overrides[config_key] = value

    return env_overrides


def _normalize_key(key: str) -> str:
    key_upper = str(key).upper()
    return ALIAS_MAP.get(key_upper, key_upper)


def _coerce_value(value: Any) -> Any:
    """Decode an environment string as a YAML scalar or collection."""
    if not isinstance(value, str):
        return value

    stripped = value.strip()
    if stripped.lower() in ('none', 'null', ''):
        return None

    try:
        return yaml.safe_load(stripped)
    except yaml.YAMLError:
        return stripped


def _format_validation_error(error: ValidationError, config: Dict[str, Any]) -> str:
    """
    Format Pydantic ValidationError with helpful suggestions.

    Args:
        error: Pydantic ValidationError
        config: Flat configuration dict that failed validation

    Returns:
        Formatted error message with suggestions
    """
    error_lines = ["=" * 70]
    error_lines.append("Configuration Validation Failed")
    error_lines.append("=" * 70)

    invalid_values = []
    other_errors = []

    for err in error.errors():
        loc = [str(part) for part in err['loc']]
        # Section names are an internal grouping; report the flat key
        if len(loc) > 1 and loc[0] in HydroGridConfig.model_fields:
            loc = loc[1:]
        field_name = ".".join(loc) if loc else 'unknown'
        error_type = err['type']

        if 'literal' in error_type or 'parsing' in error_type or 'type' in error_type:
            invalid_values.append((field_name, err['msg'], err.get('ctx', {})))
        else:
            other_errors.append((field_name, err['msg']))

    if invalid_values:
        error_lines.append("\nInvalid Field Values:")
        error_lines.append("-" * 70)
        for field, msg, ctx in invalid_values:
            error_lines.append(f"  ✗ {field}: {msg}")
            if 'expected' in ctx:
                error_lines.append(f"    Expected: {ctx['expected']}")
            if field in config:
                error_lines.append(f"    Got: {config[field]}")

    if other_errors:
        error_lines.append("\nValidation Errors:")
        error_lines.append("-" * 70)
        for field, msg in other_errors:
            error_lines.append(f"  ✗ {field}: {msg}")
            if field in config:
                error_lines.append(f"    Current value: {config[field]}")

    valid_fields = known_keys()
    unknown_keys = set(config.keys()) - valid_fields
    suggestions = {}
    for unknown in unknown_keys:
        matches = get_close_matches(unknown, valid_fields, n=3, cutoff=0.6)
        if matches:
            suggestions[unknown] = matches

    if suggestions:
        error_lines.append("\nPossible Typos (Did you mean?):")
        error_lines.append("-" * 70)
        for wrong_key, correct_options in sorted(suggestions.items()):
            options_display = ", ".join([f"'{opt}'" for opt in correct_options])
            error_lines.append(f"  '{wrong_key}' → {options_display}")

    error_lines.append("")
    error_lines.append("=" * 70)

    return "\n".join(error_lines)
