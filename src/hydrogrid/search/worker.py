# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""Chunk evaluation inside worker processes.

Provides the ``WorkerContext`` handed to every worker at spawn, the
``ChunkOutcome`` message sent back per chunk, and the module-level
``initialize_worker`` / ``process_chunk`` pair used as the process pool
initializer and task function.
"""

import logging
import multiprocessing
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from hydrogrid.core.exceptions import ResultWriteError, WorkerExecutionError
from hydrogrid.core.logging_setup import configure_worker_logging
from hydrogrid.data.series import SeriesBundle
from hydrogrid.model.prediction import AlignedInputs, RiverModel
from hydrogrid.search.parameters import EvaluationResult, ParameterSet
from hydrogrid.search.sink import ResultSink

logger = logging.getLogger(__name__)


class SharedCounter:
    """Process-safe increasing counter backed by ``multiprocessing.Value``.

    Passed to workers through the pool initializer so every worker draws
    partial file numbers from one run-wide sequence.
    """

    def __init__(self, start: int = 0, mp_context=None):
        ctx = mp_context or multiprocessing.get_context()
        self._value = ctx.Value('i', start)

    def next(self) -> int:
        with self._value.get_lock():
            self._value.value += 1
            return self._value.value

    @property
    def value(self) -> int:
        return self._value.value


@dataclass
class WorkerContext:
    """Read-only inputs every worker receives once at spawn."""
    train: SeriesBundle
    test: SeriesBundle
    results_dir: Path
    max_file_size: int
    min_r2: float
    max_rmse: float
    log_level: str = 'INFO'

    def __post_init__(self):
        if isinstance(self.results_dir, str):
            self.results_dir = Path(self.results_dir)

    def is_relevant(self, result: EvaluationResult) -> bool:
        return result.train_r2 >= self.min_r2 and result.train_rmse <= self.max_rmse


@dataclass
class ChunkOutcome:
    """Completion message for one chunk: counter deltas + error info."""
    chunk_id: int
    processed: int = 0
    relevant: int = 0
    written: int = 0
    failed: int = 0
    worker_id: Optional[int] = None
    error: Optional[str] = None
    runtime: Optional[float] = None

    @property
    def success(self) -> bool:
        """Check if the chunk's results were persisted."""
        return self.error is None

    @classmethod
    def failure(cls, chunk_id: int, error: str, worker_id: Optional[int] = None) -> 'ChunkOutcome':
        return cls(chunk_id=chunk_id, worker_id=worker_id, error=error)


class ChunkEvaluator:
    """
    Evaluates parameter sets against the train and test splits.

    Holds the memoised lookups of both splits and the worker's own result
    sink, so it lives for the whole lifetime of a worker.
    """

    def __init__(
        self,
        context: WorkerContext,
        next_file_index: Callable[[], int],
        worker_id: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        self.context = context
        self.worker_id = worker_id
        self.logger = logger or logging.getLogger(__name__)
        self.train_inputs = AlignedInputs(context.train)
        self.test_inputs = AlignedInputs(context.test)
        self.sink = ResultSink(context.results_dir, context.max_file_size, next_file_index)

    def evaluate(self, params: ParameterSet) -> EvaluationResult:
        model = RiverModel(params.to_model_config())
        train = model.evaluate(self.train_inputs)
        test = model.evaluate(self.test_inputs)
        return EvaluationResult(
            params=params,
            train_r2=train.r2,
            test_r2=test.r2,
            train_rmse=train.rmse,
            test_rmse=test.rmse,
        )

    def process(self, chunk_id: int, chunk: Sequence[ParameterSet]) -> ChunkOutcome:
        """
        Evaluate and persist one chunk.

        A parameter set that raises is logged and left out of the written
        rows but still counts as processed. A failing sink turns the whole
        chunk into a failure outcome.
        """
        start = time.perf_counter()
        results: List[EvaluationResult] = []
        failed = 0

        for params in chunk:
            try:
                results.append(self.evaluate(params))
            except Exception as e:
                failed += 1
                self.logger.error(f"Evaluation failed in chunk {chunk_id} for {params}: {e}")

        try:
            written = self.sink.write(results)
        except ResultWriteError as e:
            self.logger.error(f"Chunk {chunk_id}: {e}")
            return ChunkOutcome.failure(chunk_id, str(e), self.worker_id)

        relevant = sum(1 for result in results if self.context.is_relevant(result))
        runtime = time.perf_counter() - start
        self.logger.debug(
            f"Chunk {chunk_id}: {len(chunk)} evaluated, {relevant} relevant, "
            f"{written} written in {runtime:.2f}s"
        )
        return ChunkOutcome(
            chunk_id=chunk_id,
            processed=len(chunk),
            relevant=relevant,
            written=written,
            failed=failed,
            worker_id=self.worker_id,
            runtime=runtime,
        )


# Per-process state installed by the pool initializer
_EVALUATOR: Optional[ChunkEvaluator] = None


def initialize_worker(context: WorkerContext, file_counter: SharedCounter, worker_counter: SharedCounter) -> None:
    """Pool initializer: build this process's evaluator once."""
    global _EVALUATOR
    worker_id = worker_counter.next()
    worker_logger = configure_worker_logging(worker_id, context.log_level)
    _EVALUATOR = ChunkEvaluator(context, file_counter.next, worker_id=worker_id, logger=worker_logger)
    worker_logger.debug(
        f"Worker {worker_id} ready: {len(_EVALUATOR.train_inputs)} train / "
        f"{len(_EVALUATOR.test_inputs)} test target points"
    )


def process_chunk(chunk_id: int, chunk: Sequence[ParameterSet]) -> ChunkOutcome:
    """Pool task: evaluate one chunk with this process's evaluator."""
    if _EVALUATOR is None:
        raise WorkerExecutionError("Worker received a chunk before initialize_worker ran")
    return _EVALUATOR.process(chunk_id, chunk)
