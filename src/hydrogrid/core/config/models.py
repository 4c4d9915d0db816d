# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Configuration models for a HYDROGRID run.

Each section is a frozen pydantic model whose fields carry the flat
UPPER_CASE key used in YAML files, environment variables and CLI overrides.
HydroGridConfig aggregates the sections and is built from one flat mapping.
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hydrogrid.core.constants import Sources, WindDirections

# Standard ConfigDict for all config models. Sections are validated from the
# same flat mapping, so keys that belong to other sections are ignored.
FROZEN_CONFIG = ConfigDict(extra='ignore', populate_by_name=True, frozen=True)


def _default_input_files() -> Dict[str, str]:
    return {
        'palmas': 'palmas.csv',
        'itu': 'itu.csv',
        'ba': 'ba.csv',
        'ram': 'ram.csv',
        'vientos': 'vientos-crudos.csv',
    }


class PathsConfig(BaseModel):
    """Input and output locations"""
    model_config = FROZEN_CONFIG

    data_dir: Path = Field(default=Path('./datos'), alias='DATA_DIR')
    results_dir: Path = Field(default=Path('./resultados_parciales'), alias='RESULTS_DIR')
    final_file: Path = Field(default=Path('./resultados_finales.csv'), alias='FINAL_FILE')
    checkpoint_dir: Path = Field(default=Path('./checkpoints'), alias='CHECKPOINT_DIR')
    input_files: Dict[str, str] = Field(default_factory=_default_input_files, alias='INPUT_FILES')

    @field_validator('data_dir', 'results_dir', 'final_file', 'checkpoint_dir')
    @classmethod
    def expand_paths(cls, v):
        """Expand user home references."""
        return Path(v).expanduser()

    @field_validator('input_files')
    @classmethod
    def complete_input_files(cls, v):
        """Fill in default file names for sources the user did not override."""
        unknown = set(v) - set(Sources.ALL)
        if unknown:
            raise ValueError(f"Unknown input sources: {sorted(unknown)}")
        files = _default_input_files()
        files.update(v)
        return files

    def input_path(self, source: str) -> Path:
        """Absolute location of one source file."""
        return self.data_dir / self.input_files[source]


class ExecutionConfig(BaseModel):
    """Worker pool sizing, chunking and side-effect cadences"""
    model_config = FROZEN_CONFIG

    max_workers: int = Field(default=2, alias='MAX_WORKERS', ge=1)
    chunk_size: int = Field(default=250, alias='CHUNK_SIZE', ge=1)
    test_percentage: float = Field(default=0.3, alias='TEST_PERCENTAGE', ge=0.0, lt=1.0)
    progress_interval: int = Field(default=1000, alias='PROGRESS_INTERVAL', ge=1)
    checkpoint_interval: int = Field(default=10000, alias='CHECKPOINT_INTERVAL', ge=1)
    memory_clean_interval: int = Field(default=10000, alias='MEMORY_CLEAN_INTERVAL', ge=1)
    max_file_size: int = Field(default=50 * 1024 * 1000, alias='MAX_FILE_SIZE', ge=1)
    poll_interval: float = Field(default=0.01, alias='POLL_INTERVAL', gt=0, le=5.0)
    random_seed: Optional[int] = Field(default=None, alias='RANDOM_SEED')


class ThresholdConfig(BaseModel):
    """Accuracy thresholds that mark a result as relevant"""
    model_config = FROZEN_CONFIG

    min_r2: float = Field(default=0.85, alias='MIN_R2')
    max_rmse: float = Field(default=0.10, alias='MAX_RMSE', ge=0)


def _default_weights() -> Dict[str, List[float]]:
    return {
        'palmas': [1.0, 1.5, 2.0, 2.5, 3.0],
        'itu': [0.5, 1.0, 1.5, 2.0],
        'ba': [0.5, 1.0, 1.5],
        'vientos': [0.5, 1.0, 1.5, 2.0],
    }


def _default_lags() -> Dict[str, List[float]]:
    return {
        'palmas': [8, 9, 10, 11, 12],
        'itu': [6, 7, 8, 9],
        'ba': [0, 1, 2],
        'vientos': [0, 1, 2],
    }


def _default_wind_coefficients() -> Dict[str, List[float]]:
    return {
        'N': [-0.02, -0.015, -0.01, -0.005],
        'NE': [-0.015, -0.01, -0.005, 0],
        'E': [0.005, 0.01, 0.015, 0.02],
        'SE': [0.01, 0.015, 0.02, 0.025],
        'S': [-0.005, 0, 0.005, 0.01],
        'SW': [-0.01, -0.005, 0, 0.005],
        'W': [-0.02, -0.015, -0.01, -0.005],
        'NW': [-0.025, -0.02, -0.015, -0.01],
    }


class ParameterRangesConfig(BaseModel):
    """Candidate values enumerated by the grid search"""
    model_config = FROZEN_CONFIG

    weights: Dict[str, List[float]] = Field(default_factory=_default_weights)
    lags: Dict[str, List[float]] = Field(default_factory=_default_lags)
    wind_coefficients: Dict[str, List[float]] = Field(default_factory=_default_wind_coefficients)
    wind_factor: List[float] = Field(default_factory=lambda: [0.8, 0.9, 1.0, 1.1, 1.2])
    offset: List[float] = Field(default_factory=lambda: [-0.2, -0.1, 0, 0.1, 0.2])

    @field_validator('weights', 'lags')
    @classmethod
    def validate_source_lists(cls, v, info):
        """Every lagged source needs a non-empty candidate list."""
        missing = [s for s in Sources.LAGGED if not v.get(s)]
        if missing:
            raise ValueError(f"{info.field_name} missing candidates for: {missing}")
        return {source: list(v[source]) for source in Sources.LAGGED}

    @field_validator('wind_coefficients')
    @classmethod
    def validate_directions(cls, v):
        """All eight compass directions need a non-empty candidate list."""
        normalized = {str(k).upper(): values for k, values in v.items()}
        missing = [d for d in WindDirections.ALL if not normalized.get(d)]
        if missing:
            raise ValueError(f"wind_coefficients missing candidates for: {missing}")
        return {d: list(normalized[d]) for d in WindDirections.ALL}

    @field_validator('wind_factor', 'offset')
    @classmethod
    def validate_non_empty(cls, v, info):
        """Scalar dimensions need at least one candidate."""
        if not v:
            raise ValueError(f"{info.field_name} must contain at least one value")
        return v

    @property
    def base_dimensions(self) -> List[List[float]]:
        """Candidate lists in enumeration order (outermost first)."""
        return (
            [self.weights[s] for s in Sources.LAGGED]
            + [self.lags[s] for s in Sources.LAGGED]
            + [self.wind_factor, self.offset]
        )

    @property
    def size(self) -> int:
        """Number of parameter sets in the enumerated space."""
        total = 1
        for values in self.base_dimensions:
            total *= len(values)
        return total


class LoggingConfig(BaseModel):
    """Log level and optional log file"""
    model_config = FROZEN_CONFIG

    log_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(default='INFO', alias='LOG_LEVEL')
    log_file: Optional[Path] = Field(default=None, alias='LOG_FILE')

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_level(cls, v):
        return str(v).upper()


class HydroGridConfig(BaseModel):
    """Complete configuration of a grid search run."""
    model_config = FROZEN_CONFIG

    paths: PathsConfig = Field(default_factory=PathsConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    ranges: ParameterRangesConfig = Field(default_factory=ParameterRangesConfig, alias='PARAMETER_RANGES')
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode='before')
    @classmethod
    def build_sections_from_flat(cls, data: Any) -> Any:
        """Route flat UPPER_CASE keys into their sections."""
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for name, section in (
            ('paths', PathsConfig),
            ('execution', ExecutionConfig),
            ('thresholds', ThresholdConfig),
            ('logging', LoggingConfig),
        ):
            if name in data:
                continue
            aliases = {field.alias for field in section.model_fields.values()}
            flat = {k: v for k, v in data.items() if k in aliases}
            data[name] = flat
        return data

    @classmethod
    def from_flat(cls, flat: Mapping[str, Any]) -> 'HydroGridConfig':
        """Build a validated configuration from a flat key mapping."""
        return cls.model_validate(dict(flat))

    def to_flat(self) -> Dict[str, Any]:
        """Flat UPPER_CASE view of every setting (round-trips through from_flat)."""
        flat: Dict[str, Any] = {}
        for section in (self.paths, self.execution, self.thresholds, self.logging):
            flat.update(section.model_dump(by_alias=True))
        flat['PARAMETER_RANGES'] = self.ranges.model_dump()
        return flat
