# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Result sink writing evaluated parameter sets to rotating partial files.

Every row is normalised to the fixed 30-column schema before it is written,
so a partial record can never produce a short row.
"""

import csv
import io
import itertools
import logging
import math
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from hydrogrid.core.constants import ResultSchema
from hydrogrid.core.exceptions import ResultWriteError

logger = logging.getLogger(__name__)

RESULT_FILE_PATTERN = 'results_{index}.csv'


def format_value(value: Any) -> str:
    """Render a cell: integral numbers without decimals, infinities as ±Infinity."""
    if isinstance(value, str):
        return value.strip()
    number = float(value)
    if math.isinf(number):
        return 'Infinity' if number > 0 else '-Infinity'
    if number.is_integer():
        return str(int(number))
    return repr(number)


DEFAULT_CELLS = [format_value(ResultSchema.default_for(column)) for column in ResultSchema.COLUMNS]


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return math.isnan(float(value))
    except (TypeError, ValueError):
        return True


def normalize_record(record: Any) -> List[str]:
    """
    Cells of one row in schema order.

    Accepts a mapping keyed by column name or any object with a
    ``to_record()`` method. Absent, blank or NaN values get the column
    default.
    """
    if hasattr(record, 'to_record'):
        record = record.to_record()
    cells = []
    for column, default in zip(ResultSchema.COLUMNS, DEFAULT_CELLS):
        value = record.get(column) if isinstance(record, Mapping) else None
        cells.append(default if _is_absent(value) else format_value(value))
    return cells


def normalize_fields(fields: Sequence[str]) -> List[str]:
    """Pad or truncate split cells to the schema width, filling blanks with defaults."""
    cells = []
    for index, default in enumerate(DEFAULT_CELLS):
        value = fields[index] if index < len(fields) else ''
        cells.append(default if value.strip() == '' else value)
    return cells


def result_writer(f):
    """csv writer producing the result file dialect."""
    return csv.writer(f, delimiter=ResultSchema.DELIMITER, lineterminator='\n')


def format_rows(rows: Iterable[Sequence[str]]) -> str:
    """Render rows of cells as result file text."""
    buffer = io.StringIO()
    result_writer(buffer).writerows(rows)
    return buffer.getvalue()


class ResultSink:
    """
    Appends result rows to ``results_<n>.csv`` files of one owner.

    A new file, starting with the schema header, is opened when the current
    one already holds rows and the next batch would push it past
    ``max_file_size`` bytes. File numbers come from ``next_index`` so several
    sinks can share one run-wide sequence.

    Args:
        results_dir: Directory receiving the partial files
        max_file_size: Size limit in bytes for one partial file
        next_index: Callable returning the next unused file number
    """

    def __init__(
        self,
        results_dir: Path,
        max_file_size: int,
        next_index: Optional[Callable[[], int]] = None,
    ):
        self.results_dir = Path(results_dir)
        self.max_file_size = max_file_size
        self.next_index = next_index or itertools.count(1).__next__
        self.current_path: Optional[Path] = None
        self.current_size = 0
        self.current_rows = 0
        self.files: List[Path] = []

    def open_new_file(self) -> Path:
        """Start the next partial file and write its header."""
        path = self.results_dir / RESULT_FILE_PATTERN.format(index=self.next_index())
        try:
            self.results_dir.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8', newline='') as f:
                result_writer(f).writerow(ResultSchema.COLUMNS)
        except OSError as e:
            raise ResultWriteError(f"Could not create partial result file {path}: {e}") from e

        self.current_path = path
        self.current_size = len(ResultSchema.HEADER.encode('utf-8'))
        self.current_rows = 0
        self.files.append(path)
        logger.debug(f"Opened partial result file {path.name}")
        return path

    def write(self, results: Iterable[Any]) -> int:
        """
        Normalise and append a batch of results.

        Returns:
            Number of rows written

        Raises:
            ResultWriteError: If the partial file cannot be written
        """
        rows = [normalize_record(result) for result in results]
        if not rows:
            return 0

        # Rendered up front so rotation is decided on the exact byte size
        payload = format_rows(rows)
        size = len(payload.encode('utf-8'))
        needs_rotation = self.current_rows > 0 and self.current_size + size > self.max_file_size
        if self.current_path is None or needs_rotation:
            self.open_new_file()

        try:
            with open(self.current_path, 'a', encoding='utf-8', newline='') as f:
                f.write(payload)
        except OSError as e:
            raise ResultWriteError(f"Could not append to {self.current_path}: {e}") from e

        self.current_size += size
        self.current_rows += len(rows)
        return len(rows)
