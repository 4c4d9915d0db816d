"""
Input series for HYDROGRID.

Provides the immutable series containers and the CSV loaders that build them.
"""

from .series import (
    ScalarSeries,
    SeriesBundle,
    TimeSeriesPoint,
    WindPoint,
    WindSeries,
    split_time_for,
)
from .loaders import (
    InputData,
    cardinal_directions,
    degrees_to_cardinal,
    load_input_data,
    load_scalar_series,
    load_wind_series,
    parse_timestamps,
    summarize_series,
)

__all__ = [
    'InputData',
    'ScalarSeries',
    'SeriesBundle',
    'TimeSeriesPoint',
    'WindPoint',
    'WindSeries',
    'cardinal_directions',
    'degrees_to_cardinal',
    'load_input_data',
    'load_scalar_series',
    'load_wind_series',
    'parse_timestamps',
    'split_time_for',
    'summarize_series',
]
