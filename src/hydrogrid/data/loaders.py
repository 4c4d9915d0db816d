# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Loaders for the semicolon-delimited input series.

Every file is headerless. Scalar files hold ``timestamp;value`` and the wind
file holds ``timestamp;speed;degrees``. Decimal commas are accepted. Rows
that cannot be parsed are logged and skipped; only a missing or empty target
series stops the run.
"""

import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Union

import numpy as np
import pandas as pd

from hydrogrid.core.constants import Sources, WindDirections
from hydrogrid.core.exceptions import DataLoadError
from hydrogrid.data.series import ScalarSeries, SeriesBundle, WindSeries, split_time_for

logger = logging.getLogger(__name__)

ZERO_WIDTH_PATTERN = '[\u200b-\u200d\ufeff]'
EPOCH = pd.Timestamp('1970-01-01', tz='UTC')
EXTREME_VALUE = 1e6

_SECTOR_BOUNDS = np.array([bound for bound, _ in WindDirections.SECTOR_UPPER_BOUNDS])
_SECTOR_LABELS = np.array([label for _, label in WindDirections.SECTOR_UPPER_BOUNDS] + ['N'], dtype=object)


class InputData(NamedTuple):
    """Loaded series and their train/test split."""
    full: SeriesBundle
    train: SeriesBundle
    test: SeriesBundle
    split_time: float


def degrees_to_cardinal(degrees) -> str:
    """
    Map compass degrees to one of the eight sectors.

    Values are normalised to [0, 360). Each sector includes its upper edge
    (22.5 is N, 67.5 is NE, ...) and anything above 337.5 wraps to N.
    Unparseable input maps to N.
    """
    return str(cardinal_directions(np.array([_to_float(degrees)]))[0])


def cardinal_directions(degrees: np.ndarray) -> np.ndarray:
    """Vectorised :func:`degrees_to_cardinal` over a float array."""
    degrees = np.asarray(degrees, dtype=float)
    normalized = np.where(np.isfinite(degrees), np.mod(degrees, 360.0), 0.0)
    return _SECTOR_LABELS[np.searchsorted(_SECTOR_BOUNDS, normalized, side='left')]


def _to_float(value) -> float:
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    try:
        return float(str(value).strip().replace(',', '.'))
    except ValueError:
        return float('nan')


def parse_timestamps(raw: pd.Series) -> pd.Series:
    """
    Parse timestamp strings to epoch seconds (float, NaN when unparseable).

    Accepts ``YYYY-MM-DD HH:MM``, ISO-8601 (with or without offset) and
    date-only strings. Naive times are taken as UTC.
    """
    cleaned = (
        raw.fillna('')
        .astype(str)
        .str.replace(ZERO_WIDTH_PATTERN, '', regex=True)
        .str.strip()
    )
    parsed = pd.to_datetime(cleaned, utc=True, errors='coerce', format='mixed')
    return (parsed - EPOCH) / pd.Timedelta(seconds=1)


def parse_decimals(raw: pd.Series) -> pd.Series:
    """Parse numbers that may use a decimal comma (NaN when unparseable)."""
    cleaned = raw.fillna('').astype(str).str.strip().str.replace(',', '.', regex=False)
    return pd.to_numeric(cleaned, errors='coerce').astype(float)


def _read_table(path: Path, columns: List[str]) -> pd.DataFrame:
    def report_bad_line(fields: List[str]) -> Optional[List[str]]:
        logger.warning(f"{path.name}: skipping malformed row {';'.join(fields)!r}")
        return None

    try:
        return pd.read_csv(
            path,
            sep=';',
            header=None,
            names=columns,
            dtype=str,
            skip_blank_lines=True,
            encoding='utf-8-sig',
            engine='python',
            on_bad_lines=report_bad_line,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=columns, dtype=str)


def _drop_invalid(frame: pd.DataFrame, valid: pd.Series, path: Path, what: str) -> pd.DataFrame:
    invalid = int((~valid).sum())
    if invalid:
        logger.warning(f"{path.name}: skipped {invalid} row(s) with invalid {what}")
        for _, row in frame.loc[~valid].head(5).iterrows():
            logger.debug(f"{path.name}: rejected row {';'.join(str(v) for v in row.values)!r}")
    return frame.loc[valid]


def load_scalar_series(path: Union[str, Path], name: Optional[str] = None) -> ScalarSeries:
    """
    Load a ``timestamp;value`` file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    name = name or path.stem
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    frame = _read_table(path, ['timestamp', 'value'])
    frame = frame.assign(
        seconds=parse_timestamps(frame['timestamp']),
        number=parse_decimals(frame['value']),
    )
    frame = _drop_invalid(frame, frame['seconds'].notna(), path, 'timestamp')
    frame = _drop_invalid(frame, np.isfinite(frame['number']), path, 'value')

    series = ScalarSeries(name, frame['seconds'].to_numpy(), frame['number'].to_numpy())
    logger.info(f"{path.name} loaded: {len(series)} valid rows")
    return series


def load_wind_series(path: Union[str, Path], name: str = Sources.WIND) -> WindSeries:
    """
    Load a ``timestamp;speed;degrees`` wind file.

    Degrees are bucketed into the eight compass sectors at load time.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    frame = _read_table(path, ['timestamp', 'speed', 'degrees'])
    frame = frame.assign(
        seconds=parse_timestamps(frame['timestamp']),
        number=parse_decimals(frame['speed']),
        angle=parse_decimals(frame['degrees']),
    )
    frame = _drop_invalid(frame, frame['seconds'].notna(), path, 'timestamp')
    frame = _drop_invalid(frame, np.isfinite(frame['number']), path, 'speed')

    series = WindSeries(
        name,
        frame['seconds'].to_numpy(),
        frame['number'].to_numpy(),
        cardinal_directions(frame['angle'].to_numpy()),
    )
    logger.info(f"{path.name} loaded: {len(series)} valid rows")
    if len(series):
        first = next(iter(series))
        logger.debug(
            f"First wind record: {pd.Timestamp(first.timestamp, unit='s', tz='UTC').isoformat()} "
            f"speed={first.speed} direction={first.direction}"
        )
    return series


def _load_optional(source: str, path: Path):
    loader = load_wind_series if source == Sources.WIND else load_scalar_series
    try:
        return loader(path, name=source)
    except FileNotFoundError:
        logger.warning(f"Input file for '{source}' not found at {path}; using an empty series")
        return WindSeries(source) if source == Sources.WIND else ScalarSeries(source)


def load_input_data(paths, test_fraction: float) -> InputData:
    """
    Load all five series and split them into train and test bundles.

    The split timestamp is the target sample at index
    floor(n * (1 - test_fraction)); train holds t <= split, test holds t > split.

    Args:
        paths: PathsConfig with the data directory and file names
        test_fraction: Share of the target series held out for testing

    Raises:
        DataLoadError: If the target series is missing or has no valid rows
    """
    series: Dict[str, ScalarSeries] = {}
    for source in Sources.ALL:
        path = paths.input_path(source)
        if source == Sources.TARGET:
            try:
                series[source] = load_scalar_series(path, name=source)
            except FileNotFoundError as e:
                raise DataLoadError(f"Target series '{source}' could not be loaded: {e}") from e
        else:
            series[source] = _load_optional(source, path)

    full = SeriesBundle(**series)
    split_time = split_time_for(full.target, test_fraction)
    if split_time is None:
        raise DataLoadError(
            f"Target series '{Sources.TARGET}' has no valid rows in {paths.input_path(Sources.TARGET)}"
        )

    train, test = full.split(split_time)
    logger.info(
        f"Split at {pd.Timestamp(split_time, unit='s', tz='UTC').isoformat()}: "
        f"{len(train.target)} train / {len(test.target)} test target points"
    )
    return InputData(full=full, train=train, test=test, split_time=split_time)


def summarize_series(bundle: SeriesBundle) -> pd.DataFrame:
    """
    Log min/max per series and warn about extreme magnitudes.

    Returns:
        DataFrame indexed by source with ``count``, ``min`` and ``max`` columns
    """
    rows = {}
    for source, series in bundle.items():
        if series.empty:
            rows[source] = {'count': 0, 'min': np.nan, 'max': np.nan}
        else:
            rows[source] = {
                'count': len(series),
                'min': float(series.values.min()),
                'max': float(series.values.max()),
            }
    stats = pd.DataFrame.from_dict(rows, orient='index', columns=['count', 'min', 'max'])

    logger.info(f"Input data statistics:\n{stats.to_string()}")
    for source, row in stats.iterrows():
        if row['count'] and max(abs(row['min']), abs(row['max'])) > EXTREME_VALUE:
            logger.warning(f"Extreme values in {source}: min={row['min']}, max={row['max']}")
    return stats
