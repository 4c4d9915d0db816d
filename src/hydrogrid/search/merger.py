# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""Merge partial result files into the final result file."""

import csv
import logging
import re
from pathlib import Path
from typing import List, Union

from hydrogrid.core.constants import ResultSchema
from hydrogrid.core.exceptions import ResultWriteError
from hydrogrid.search.sink import normalize_fields, result_writer

logger = logging.getLogger(__name__)

RESULT_FILE_REGEX = re.compile(r'^results_(\d+)\.csv$')


def partial_files(results_dir: Union[str, Path]) -> List[Path]:
    """Partial result files ordered by the number in their name."""
    results_dir = Path(results_dir)
    if not results_dir.is_dir():
        return []
    numbered = []
    for path in results_dir.iterdir():
        match = RESULT_FILE_REGEX.match(path.name)
        if match and path.is_file():
            numbered.append((int(match.group(1)), path))
    return [path for _, path in sorted(numbered)]


def merge_results(results_dir: Union[str, Path], final_file: Union[str, Path]) -> int:
    """
    Concatenate every partial file into ``final_file`` under one header.

    Header rows and blank rows are skipped. Every other row is padded or
    truncated to the schema width with the column defaults. The row count is
    not filtered by any accuracy threshold.

    Returns:
        Number of data rows written

    Raises:
        ResultWriteError: If the final file cannot be written
    """
    final_file = Path(final_file)
    header_prefix = ResultSchema.COLUMNS[0]
    files = partial_files(results_dir)
    rows = 0

    try:
        final_file.parent.mkdir(parents=True, exist_ok=True)
        with open(final_file, 'w', encoding='utf-8', newline='') as output:
            writer = result_writer(output)
            writer.writerow(ResultSchema.COLUMNS)
            for path in files:
                file_rows = 0
                with open(path, 'r', encoding='utf-8', newline='') as partial:
                    for fields in csv.reader(partial, delimiter=ResultSchema.DELIMITER):
                        if not any(cell.strip() for cell in fields) or fields[0].startswith(header_prefix):
                            continue
                        writer.writerow(normalize_fields(fields))
                        file_rows += 1
                logger.debug(f"Merged {file_rows} rows from {path.name}")
                rows += file_rows
    except OSError as e:
        raise ResultWriteError(f"Could not merge partial results into {final_file}: {e}") from e

    logger.info(f"Merged {rows} rows from {len(files)} partial file(s) into {final_file}")
    return rows
