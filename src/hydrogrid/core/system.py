# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
HYDROGRID Core System Module.

Provides the HydroGrid class, the entry point that runs a complete grid
search: prepare directories, load and split the input series, enumerate the
parameter space across the worker pool and merge the partial results.

Example:
    >>> from hydrogrid import HydroGrid
    >>> summary = HydroGrid("hydrogrid.yaml").run()
    >>> summary.merged_rows
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from hydrogrid.core.config import HydroGridConfig, config_from_mapping, load_config
from hydrogrid.core.exceptions import ResultWriteError, hydrogrid_error_handler
from hydrogrid.core.logging_setup import configure_logging
from hydrogrid.data.loaders import InputData, load_input_data, summarize_series
from hydrogrid.search.dispatcher import GridSearchDispatcher, PeriodicTrigger
from hydrogrid.search.merger import merge_results, partial_files
from hydrogrid.search.monitoring import CheckpointWriter, RunMonitor, format_elapsed
from hydrogrid.search.parameters import ParameterSpace
from hydrogrid.search.worker import WorkerContext


@dataclass
class RunSummary:
    """Totals reported at the end of a run."""
    processed: int
    relevant: int
    merged_rows: Optional[int]
    final_file: Path
    elapsed: float
    chunks_failed: int = 0
    pool_broken: bool = False

    @property
    def relevant_fraction(self) -> float:
        return self.relevant / self.processed if self.processed else 0.0


class HydroGrid:
    """
    Coordinates one calibration grid search.

    Args:
        config_input: Path to a YAML configuration file, a HydroGridConfig
            instance, or None for defaults plus environment variables
        config_overrides: Flat overrides applied on top of the configuration
        debug_mode: Force DEBUG logging
        setup_logging: Install the console/file handlers on the package logger
    """

    def __init__(
        self,
        config_input: Union[Path, str, HydroGridConfig, None] = None,
        config_overrides: Dict[str, Any] = None,
        debug_mode: bool = False,
        setup_logging: bool = True,
    ):
        self.debug_mode = debug_mode
        self.config_overrides = dict(config_overrides or {})
        if self.debug_mode:
            self.config_overrides['LOG_LEVEL'] = 'DEBUG'

        if isinstance(config_input, HydroGridConfig):
            self.config_path = None
            self.config = config_input
            if self.config_overrides:
                flat_config = self.config.to_flat()
                flat_config.update(self.config_overrides)
                self.config = config_from_mapping(flat_config)
        else:
            self.config_path = Path(config_input) if config_input is not None else None
            self.config = load_config(self.config_path, self.config_overrides)

        if setup_logging:
            configure_logging(self.config.logging.log_level, self.config.logging.log_file)
        self.logger = logging.getLogger(__name__)

        self.logger.info("HYDROGRID initialized")
        if self.config_path:
            self.logger.info(f"Config path: {self.config_path}")
        if self.config_overrides:
            self.logger.info(f"Configuration overrides applied: {list(self.config_overrides.keys())}")

    def build_space(self) -> ParameterSpace:
        """A fresh parameter space seeded from RANDOM_SEED (unseeded if unset)."""
        return ParameterSpace(self.config.ranges, seed=self.config.execution.random_seed)

    def prepare_directories(self) -> int:
        """
        Create output directories and remove partial files of earlier runs.

        Returns:
            Number of stale partial files removed
        """
        paths = self.config.paths
        for directory in (paths.results_dir, paths.checkpoint_dir, paths.final_file.parent):
            directory.mkdir(parents=True, exist_ok=True)

        stale = partial_files(paths.results_dir)
        for path in stale:
            path.unlink()
        if stale:
            self.logger.info(f"Removed {len(stale)} partial result file(s) from a previous run")
        return len(stale)

    def load_data(self) -> InputData:
        execution = self.config.execution
        data = load_input_data(self.config.paths, execution.test_percentage)
        self.logger.info("Training split:")
        summarize_series(data.train)
        self.logger.info("Test split:")
        summarize_series(data.test)
        return data

    def merge(self) -> int:
        """Merge the partial files currently in RESULTS_DIR into FINAL_FILE."""
        paths = self.config.paths
        return merge_results(paths.results_dir, paths.final_file)

    def run(self) -> RunSummary:
        """
        Execute the complete grid search.

        Raises:
            DataLoadError: If the target series cannot be loaded
        """
        start = time.monotonic()
        paths = self.config.paths
        execution = self.config.execution
        thresholds = self.config.thresholds

        self.logger.info("Starting HYDROGRID grid search")
        self.logger.info(f"Relevance thresholds: R² >= {thresholds.min_r2}, RMSE <= {thresholds.max_rmse}")

        self.prepare_directories()
        data = self.load_data()

        space = self.build_space()
        self.logger.info(f"Parameter space: {space.total:,} combinations")

        monitor = RunMonitor(total=space.total, logger=self.logger)
        checkpoints = CheckpointWriter(paths.checkpoint_dir)
        triggers = [
            PeriodicTrigger('memory', execution.memory_clean_interval, monitor.reclaim_memory),
            PeriodicTrigger('progress', execution.progress_interval, monitor.report_progress),
            PeriodicTrigger('checkpoint', execution.checkpoint_interval, checkpoints.write),
        ]

        context = WorkerContext(
            train=data.train,
            test=data.test,
            results_dir=paths.results_dir,
            max_file_size=execution.max_file_size,
            min_r2=thresholds.min_r2,
            max_rmse=thresholds.max_rmse,
            log_level=self.config.logging.log_level,
        )
        dispatcher = GridSearchDispatcher(
            context,
            max_workers=execution.max_workers,
            chunk_size=execution.chunk_size,
            poll_interval=execution.poll_interval,
            triggers=triggers,
        )
        counters = dispatcher.run(space)

        merged_rows = None
        with hydrogrid_error_handler("merging partial results", self.logger, reraise=False, error_type=ResultWriteError):
            merged_rows = self.merge()

        elapsed = time.monotonic() - start
        summary = RunSummary(
            processed=counters.processed,
            relevant=counters.relevant,
            merged_rows=merged_rows,
            final_file=paths.final_file,
            elapsed=elapsed,
            chunks_failed=dispatcher.chunks_failed,
            pool_broken=dispatcher.pool_broken,
        )

        if summary.pool_broken:
            self.logger.warning("Grid search stopped early because the worker pool broke")
        self.logger.info("Grid search completed")
        self.logger.info(f"Total time: {format_elapsed(elapsed)}")
        self.logger.info(f"Processed: {summary.processed:,} combinations")
        self.logger.info(f"Relevant: {summary.relevant:,} ({summary.relevant_fraction:.2%})")
        if merged_rows is not None:
            self.logger.info(f"Final file: {paths.final_file} ({merged_rows:,} rows)")
        return summary
