# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Immutable time series containers.

Series are backed by read-only numpy arrays sorted by timestamp (epoch
seconds). They are built once by the loaders and then shared by every worker
without being modified.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from hydrogrid.core.constants import Sources


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One scalar sample."""
    timestamp: float
    value: float


@dataclass(frozen=True)
class WindPoint:
    """One wind sample; ``value`` mirrors ``speed``."""
    timestamp: float
    speed: float
    direction: str

    @property
    def value(self) -> float:
        return self.speed


def _frozen_array(values, dtype) -> np.ndarray:
    array = np.array(values, dtype=dtype)
    array.setflags(write=False)
    return array


def _finite_order(times: np.ndarray) -> np.ndarray:
    """Stable sort order of the samples whose timestamp is finite."""
    finite = np.flatnonzero(np.isfinite(times))
    return finite[np.argsort(times[finite], kind='stable')]


class ScalarSeries:
    """
    Time-ordered scalar series.

    Samples without a finite timestamp cannot be placed in time and are
    dropped.
    """

    def __init__(self, name: str, times: Sequence[float] = (), values: Sequence[float] = ()):
        times_arr = np.asarray(times, dtype=float)
        values_arr = np.asarray(values, dtype=float)
        if times_arr.shape != values_arr.shape:
            raise ValueError(
                f"Series '{name}' has {times_arr.size} timestamps but {values_arr.size} values"
            )
        order = _finite_order(times_arr)
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'times', _frozen_array(times_arr[order], float))
        object.__setattr__(self, 'values', _frozen_array(values_arr[order], float))

    def __setattr__(self, key, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __len__(self) -> int:
        return int(self.times.size)

    def __iter__(self) -> Iterator[TimeSeriesPoint]:
        for t, v in zip(self.times.tolist(), self.values.tolist()):
            yield TimeSeriesPoint(t, v)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, points={len(self)})"

    @property
    def empty(self) -> bool:
        return self.times.size == 0

    def _mask_split(self, split_time: float) -> Tuple[np.ndarray, np.ndarray]:
        train = self.times <= split_time
        return train, ~train

    def split(self, split_time: float) -> Tuple['ScalarSeries', 'ScalarSeries']:
        """Return (t <= split_time, t > split_time) halves."""
        train, test = self._mask_split(split_time)
        return (
            ScalarSeries(self.name, self.times[train], self.values[train]),
            ScalarSeries(self.name, self.times[test], self.values[test]),
        )


class WindSeries(ScalarSeries):
    """Time-ordered wind series; ``values`` holds the speed."""

    def __init__(
        self,
        name: str,
        times: Sequence[float] = (),
        speeds: Sequence[float] = (),
        directions: Sequence[str] = (),
    ):
        super().__init__(name, times, speeds)
        times_arr = np.asarray(times, dtype=float)
        directions_arr = np.asarray(directions, dtype=object)
        if directions_arr.size != times_arr.size:
            raise ValueError(
                f"Series '{name}' has {times_arr.size} timestamps but {directions_arr.size} directions"
            )
        order = _finite_order(times_arr)
        object.__setattr__(self, 'directions', _frozen_array(directions_arr[order], object))

    @property
    def speeds(self) -> np.ndarray:
        return self.values

    def __iter__(self) -> Iterator[WindPoint]:
        for t, s, d in zip(self.times.tolist(), self.values.tolist(), self.directions.tolist()):
            yield WindPoint(t, s, d)

    def split(self, split_time: float) -> Tuple['WindSeries', 'WindSeries']:
        train, test = self._mask_split(split_time)
        return (
            WindSeries(self.name, self.times[train], self.values[train], self.directions[train]),
            WindSeries(self.name, self.times[test], self.values[test], self.directions[test]),
        )


@dataclass(frozen=True)
class SeriesBundle:
    """The five input series of one calibration run."""
    palmas: ScalarSeries = field(default_factory=lambda: ScalarSeries('palmas'))
    itu: ScalarSeries = field(default_factory=lambda: ScalarSeries('itu'))
    ba: ScalarSeries = field(default_factory=lambda: ScalarSeries('ba'))
    vientos: WindSeries = field(default_factory=lambda: WindSeries('vientos'))
    ram: ScalarSeries = field(default_factory=lambda: ScalarSeries('ram'))

    def get(self, source: str) -> ScalarSeries:
        if source not in Sources.ALL:
            raise KeyError(f"Unknown source '{source}'")
        return getattr(self, source)

    def items(self):
        return [(source, self.get(source)) for source in Sources.ALL]

    def split(self, split_time: float) -> Tuple['SeriesBundle', 'SeriesBundle']:
        """Split every series at the same timestamp into (train, test) bundles."""
        halves = {source: series.split(split_time) for source, series in self.items()}
        train = SeriesBundle(**{source: pair[0] for source, pair in halves.items()})
        test = SeriesBundle(**{source: pair[1] for source, pair in halves.items()})
        return train, test

    @property
    def target(self) -> ScalarSeries:
        return self.ram


def split_time_for(target: ScalarSeries, test_fraction: float) -> Optional[float]:
    """
    Timestamp of the target sample at index floor(n * (1 - test_fraction)).

    The index is clamped to the last sample, so a zero test fraction keeps
    every point in the training split. Returns None for an empty target.
    """
    n = len(target)
    if n == 0:
        return None
    index = min(int(np.floor(n * (1.0 - test_fraction))), n - 1)
    return float(target.times[index])
