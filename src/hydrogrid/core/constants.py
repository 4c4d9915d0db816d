# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Constants shared across HYDROGRID.

Centralizes the source names, the compass sectors and the fixed result
schema so the model, the sink and the merger agree on a single definition.
"""

from typing import Tuple


class UnitConversion:
    """Time conversion factors used when shifting series by a lag."""

    SECONDS_PER_HOUR = 3600
    """Seconds in one hour."""


class Sources:
    """Names of the input series."""

    SCALAR: Tuple[str, ...] = ('palmas', 'itu', 'ba')
    """Scalar sources combined linearly by the model."""

    WIND = 'vientos'
    """Directional wind source."""

    TARGET = 'ram'
    """Observed series the model is calibrated against."""

    ALL: Tuple[str, ...] = SCALAR + (WIND, TARGET)

    LAGGED: Tuple[str, ...] = SCALAR + (WIND,)
    """Sources that carry a weight and a lag in a parameter set."""


class WindDirections:
    """Eight-sector compass used to bucket wind observations."""

    ALL: Tuple[str, ...] = ('N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW')

    SECTOR_UPPER_BOUNDS: Tuple[Tuple[float, str], ...] = (
        (22.5, 'N'),
        (67.5, 'NE'),
        (112.5, 'E'),
        (157.5, 'SE'),
        (202.5, 'S'),
        (247.5, 'SW'),
        (292.5, 'W'),
        (337.5, 'NW'),
    )
    """Inclusive upper edge of each sector in degrees; anything above wraps to N."""

    PESO_RANGE: Tuple[float, float] = (0.3, 1.0)
    """Half-open interval the auxiliary per-direction weight is drawn from."""


class ResultSchema:
    """
    Fixed column layout of every partial and final result file.

    The order is part of the file format: 10 base parameters, 8 directions
    times (factor, peso), then 4 metrics, 30 columns in total.
    """

    DELIMITER = ';'

    BASE_COLUMNS: Tuple[str, ...] = (
        'pesoPalmas', 'pesoItu', 'pesoBa', 'pesoVientos',
        'lagPalmas', 'lagItu', 'lagBa', 'lagVientos',
        'factorViento', 'offset',
    )

    WIND_COLUMNS: Tuple[str, ...] = tuple(
        column
        for direction in WindDirections.ALL
        for column in (f'coef_{direction}_factor', f'coef_{direction}_peso')
    )

    METRIC_COLUMNS: Tuple[str, ...] = ('trainR2', 'testR2', 'trainRmse', 'testRmse')

    COLUMNS: Tuple[str, ...] = BASE_COLUMNS + WIND_COLUMNS + METRIC_COLUMNS

    HEADER = DELIMITER.join(COLUMNS) + '\n'

    @classmethod
    def default_for(cls, column: str) -> float:
        """Return the value substituted when a column is absent from a record."""
        if column in cls.METRIC_COLUMNS:
            return float('-inf') if 'R2' in column else float('inf')
        if column.endswith('_peso'):
            return 0.5
        return 0


class MetricDefaults:
    """Numerical conventions of the metrics evaluator."""

    DECIMALS = 4
    """Both R² and RMSE are rounded to this many decimal places."""

    MIN_TOTAL_VARIANCE = 1e-10
    """At or below this total sum of squares R² is defined as 0."""
