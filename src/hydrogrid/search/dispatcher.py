# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Grid search dispatcher.

Pulls fixed-size chunks from a parameter space, keeps at most one chunk in
flight per worker, aggregates the counter deltas the workers report and
fires periodic side effects as the processed counter advances.
"""

import logging
import multiprocessing
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from hydrogrid.core.exceptions import require
from hydrogrid.search.parameters import ParameterSet, iter_chunks
from hydrogrid.search.worker import (
    ChunkEvaluator,
    ChunkOutcome,
    SharedCounter,
    WorkerContext,
    initialize_worker,
    process_chunk,
)

logger = logging.getLogger(__name__)


@dataclass
class Counters:
    """Run-wide totals, owned by the dispatcher and only ever increased."""
    processed: int = 0
    relevant: int = 0

    def add(self, outcome: ChunkOutcome) -> None:
        self.processed += outcome.processed
        self.relevant += outcome.relevant


class PeriodicTrigger:
    """
    Calls ``action(counters)`` each time ``processed`` crosses a multiple of
    ``interval``.

    Chunks move the counter in steps, so an exact-multiple test could skip
    a boundary; crossing several boundaries in one step fires once.
    """

    def __init__(self, name: str, interval: int, action: Callable[[Counters], object]):
        require(interval >= 1, f"{name} interval must be at least 1, got {interval}")
        self.name = name
        self.interval = interval
        self.action = action
        self.fired = 0
        self._last_bucket = 0

    def check(self, counters: Counters) -> bool:
        bucket = counters.processed // self.interval
        if bucket <= self._last_bucket:
            return False
        self._last_bucket = bucket
        self.fired += 1
        try:
            self.action(counters)
        except Exception as e:
            logger.warning(f"{self.name} hook failed at {counters.processed} processed: {e}")
        return True


class GridSearchDispatcher:
    """
    Distributes parameter chunks over a pool of worker processes.

    Args:
        context: Read-only inputs installed in every worker
        max_workers: Pool size; 1 evaluates chunks in the calling process
        chunk_size: Parameter sets per chunk
        poll_interval: Seconds to wait for a completion before re-checking
        triggers: Periodic side effects fired on the processed counter
        mp_context: multiprocessing context for the pool (platform default if None)
    """

    def __init__(
        self,
        context: WorkerContext,
        max_workers: int = 2,
        chunk_size: int = 250,
        poll_interval: float = 0.01,
        triggers: Sequence[PeriodicTrigger] = (),
        mp_context=None,
    ):
        require(max_workers >= 1, f"max_workers must be at least 1, got {max_workers}")
        require(chunk_size >= 1, f"chunk_size must be at least 1, got {chunk_size}")
        self.context = context
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval
        self.triggers = list(triggers)
        self.mp_context = mp_context or multiprocessing.get_context()
        self.logger = logging.getLogger(__name__)

        self.counters = Counters()
        self.chunks_dispatched = 0
        self.chunks_completed = 0
        self.chunks_failed = 0
        self.files_opened = 0
        self.pool_broken = False

    @property
    def use_parallel(self) -> bool:
        return self.max_workers > 1

    def run(self, space: Iterable[ParameterSet]) -> Counters:
        """
        Evaluate every parameter set of ``space`` and return the totals.

        Completes only when the space is exhausted and no chunk is
        outstanding. Chunks that fail are logged and dropped. If a worker
        process dies the pool is unusable: outstanding chunks are dropped,
        dispatch stops and ``pool_broken`` is set.
        """
        chunks = enumerate(iter_chunks(space, self.chunk_size), start=1)
        mode = f"{self.max_workers} worker processes" if self.use_parallel else "sequential mode"
        self.logger.info(f"Dispatching chunks of {self.chunk_size} parameter sets in {mode}")

        if self.use_parallel:
            self._run_parallel(chunks)
        else:
            self._run_sequential(chunks)

        self.logger.info(
            f"Dispatch complete: {self.chunks_completed} chunks completed, "
            f"{self.chunks_failed} dropped, {self.counters.processed} parameter sets processed"
        )
        return self.counters

    def _run_sequential(self, chunks: Iterable[Tuple[int, List[ParameterSet]]]) -> None:
        file_counter = SharedCounter(mp_context=self.mp_context)
        evaluator = ChunkEvaluator(self.context, file_counter.next, worker_id=0)

        for chunk_id, chunk in chunks:
            self.chunks_dispatched += 1
            try:
                outcome = evaluator.process(chunk_id, chunk)
            except Exception as e:
                self._drop(chunk_id, str(e))
                continue
            self._complete(outcome)

        self.files_opened = file_counter.value

    def _submit(self, executor: ProcessPoolExecutor, chunk_id: int, chunk: List[ParameterSet]) -> Optional[Future]:
        self.chunks_dispatched += 1
        try:
            return executor.submit(process_chunk, chunk_id, chunk)
        except BrokenProcessPool as e:
            self._mark_broken(chunk_id, e)
            self._drop(chunk_id, "worker pool broken")
            return None

    def _run_parallel(self, chunks: Iterable[Tuple[int, List[ParameterSet]]]) -> None:
        file_counter = SharedCounter(mp_context=self.mp_context)
        worker_counter = SharedCounter(mp_context=self.mp_context)
        in_flight: Dict[Future, int] = {}
        exhausted = False

        executor = ProcessPoolExecutor(
            max_workers=self.max_workers,
            mp_context=self.mp_context,
            initializer=initialize_worker,
            initargs=(self.context, file_counter, worker_counter),
        )
        try:
            while True:
                # One chunk in flight per worker
                while not (exhausted or self.pool_broken) and len(in_flight) < self.max_workers:
                    next_chunk = next(chunks, None)
                    if next_chunk is None:
                        exhausted = True
                        break
                    chunk_id, chunk = next_chunk
                    future = self._submit(executor, chunk_id, chunk)
                    if future is not None:
                        in_flight[future] = chunk_id

                if (exhausted or self.pool_broken) and not in_flight:
                    break

                done, _ = wait(in_flight, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    chunk_id = in_flight.pop(future)
                    self._collect(future, chunk_id)
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        self.files_opened = file_counter.value

    def _collect(self, future: Future, chunk_id: int) -> None:
        try:
            outcome = future.result()
        except BrokenProcessPool as e:
            self._mark_broken(chunk_id, e)
            self._drop(chunk_id, "worker pool broken")
            return
        except Exception as e:
            self._drop(chunk_id, str(e))
            return
        self._complete(outcome)

    def _mark_broken(self, chunk_id: int, error: BaseException) -> None:
        if self.pool_broken:
            return
        self.pool_broken = True
        self.logger.error(
            f"Worker pool broke while processing chunk {chunk_id}, "
            f"no further chunks will be dispatched: {error}"
        )

    def _complete(self, outcome: ChunkOutcome) -> None:
        if not outcome.success:
            self._drop(outcome.chunk_id, outcome.error, outcome.worker_id)
            return

        self.chunks_completed += 1
        self.counters.add(outcome)
        for trigger in self.triggers:
            trigger.check(self.counters)

    def _drop(self, chunk_id: int, error: Optional[str], worker_id: Optional[int] = None) -> None:
        self.chunks_failed += 1
        where = f" on worker {worker_id}" if worker_id is not None else ""
        self.logger.error(f"Chunk {chunk_id} failed{where}, dropping its results: {error}")
