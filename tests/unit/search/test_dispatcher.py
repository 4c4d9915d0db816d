"""
Unit tests for the grid search dispatcher.

Covers completeness of the counters, periodic trigger cadence, dropping of
failed chunks, and a real two-process pool run.
"""

import multiprocessing
import os

import pytest

from hydrogrid.core.exceptions import ConfigurationError
from hydrogrid.search.dispatcher import Counters, GridSearchDispatcher, PeriodicTrigger
from hydrogrid.search.merger import merge_results, partial_files
from hydrogrid.search.parameters import ParameterSpace
from hydrogrid.search.worker import ChunkEvaluator, ChunkOutcome

pytestmark = [pytest.mark.unit, pytest.mark.search]

HAS_FORK = "fork" in multiprocessing.get_all_start_methods()


class TestCounters:

    def test_add_outcome(self):
        counters = Counters()
        counters.add(ChunkOutcome(chunk_id=1, processed=3, relevant=1))
        counters.add(ChunkOutcome(chunk_id=2, processed=2, relevant=0))
        assert (counters.processed, counters.relevant) == (5, 1)


class TestPeriodicTrigger:

    def test_fires_on_crossing(self):
        seen = []
        trigger = PeriodicTrigger("progress", 5, lambda c: seen.append(c.processed))
        for processed in (3, 6, 9, 12, 13):
            trigger.check(Counters(processed=processed))
        assert seen == [6, 12]
        assert trigger.fired == 2

    def test_multiple_boundaries_in_one_step_fire_once(self):
        seen = []
        trigger = PeriodicTrigger("checkpoint", 2, lambda c: seen.append(c.processed))
        trigger.check(Counters(processed=7))
        assert seen == [7]
        assert not trigger.check(Counters(processed=7))

    def test_exact_multiple_fires(self):
        trigger = PeriodicTrigger("memory", 4, lambda c: None)
        assert trigger.check(Counters(processed=4))

    def test_failing_hook_is_contained(self, caplog):
        def explode(counters):
            raise OSError("read-only filesystem")

        trigger = PeriodicTrigger("checkpoint", 1, explode)
        assert trigger.check(Counters(processed=1))
        assert "checkpoint hook failed" in caplog.text

    def test_invalid_interval(self):
        with pytest.raises(ConfigurationError):
            PeriodicTrigger("progress", 0, lambda c: None)


class TestSequentialDispatch:

    @pytest.mark.parametrize("chunk_size, chunks", [(1, 8), (3, 3), (8, 1), (20, 1)])
    def test_every_parameter_set_is_processed_once(self, worker_context, ranges_config, chunk_size, chunks):
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=chunk_size)
        counters = dispatcher.run(ParameterSpace(ranges_config, seed=1))

        assert counters.processed == 8
        assert counters.relevant == 1
        assert dispatcher.chunks_dispatched == chunks
        assert dispatcher.chunks_completed == chunks
        assert dispatcher.chunks_failed == 0

    def test_rows_written_match_processed(self, worker_context, ranges_config, tmp_path):
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=3)
        dispatcher.run(ParameterSpace(ranges_config, seed=1))
        assert dispatcher.files_opened == len(partial_files(worker_context.results_dir)) == 1
        assert merge_results(worker_context.results_dir, tmp_path / "final.csv") == 8

    def test_triggers_follow_processed_counter(self, worker_context, ranges_config):
        seen = []
        trigger = PeriodicTrigger("progress", 4, lambda c: seen.append(c.processed))
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=3, triggers=[trigger])
        dispatcher.run(ParameterSpace(ranges_config, seed=1))
        # Chunks of 3, 3, 2 move the counter to 3, 6, 8
        assert seen == [6, 8]

    def test_failed_chunk_is_dropped(self, worker_context, ranges_config, monkeypatch):
        original = ChunkEvaluator.process

        def failing_second_chunk(self, chunk_id, chunk):
            if chunk_id == 2:
                raise RuntimeError("worker crashed")
            return original(self, chunk_id, chunk)

        monkeypatch.setattr(ChunkEvaluator, "process", failing_second_chunk)
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=3)
        counters = dispatcher.run(ParameterSpace(ranges_config, seed=1))

        assert counters.processed == 5
        assert dispatcher.chunks_completed == 2
        assert dispatcher.chunks_failed == 1

    def test_failure_outcome_does_not_touch_counters(self, worker_context, ranges_config, monkeypatch):
        monkeypatch.setattr(
            ChunkEvaluator, "process",
            lambda self, chunk_id, chunk: ChunkOutcome.failure(chunk_id, "disk full"),
        )
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=3)
        counters = dispatcher.run(ParameterSpace(ranges_config, seed=1))
        assert (counters.processed, counters.relevant) == (0, 0)
        assert dispatcher.chunks_failed == 3

    def test_empty_space(self, worker_context):
        dispatcher = GridSearchDispatcher(worker_context, max_workers=1, chunk_size=3)
        assert dispatcher.run([]).processed == 0
        assert dispatcher.chunks_dispatched == 0


@pytest.mark.parallel
class TestParallelDispatch:

    def test_two_workers_complete_the_space(self, worker_context, ranges_config, tmp_path):
        seen = []
        trigger = PeriodicTrigger("progress", 4, lambda c: seen.append(c.processed))
        dispatcher = GridSearchDispatcher(
            worker_context, max_workers=2, chunk_size=3, triggers=[trigger],
        )
        counters = dispatcher.run(ParameterSpace(ranges_config, seed=1))

        assert counters.processed == 8
        assert counters.relevant == 1
        assert dispatcher.chunks_dispatched == dispatcher.chunks_completed == 3
        assert dispatcher.chunks_failed == 0
        assert seen and seen[-1] == 8

        files = partial_files(worker_context.results_dir)
        assert 1 <= len(files) <= 2
        assert len(files) == dispatcher.files_opened
        assert merge_results(worker_context.results_dir, tmp_path / "final.csv") == 8

    @pytest.mark.skipif(not HAS_FORK, reason="needs the fork start method")
    def test_dead_worker_stops_dispatch_without_raising(self, worker_context, ranges_config, monkeypatch, tmp_path):
        original = ChunkEvaluator.process

        def exit_on_second_chunk(self, chunk_id, chunk):
            if chunk_id == 2:
                os._exit(1)
            return original(self, chunk_id, chunk)

        monkeypatch.setattr(ChunkEvaluator, "process", exit_on_second_chunk)
        dispatcher = GridSearchDispatcher(
            worker_context, max_workers=2, chunk_size=3,
            mp_context=multiprocessing.get_context("fork"),
        )
        counters = dispatcher.run(ParameterSpace(ranges_config, seed=1))

        assert dispatcher.pool_broken
        assert dispatcher.chunks_failed >= 1
        assert dispatcher.chunks_completed + dispatcher.chunks_failed == dispatcher.chunks_dispatched
        assert counters.processed < 8
        assert merge_results(worker_context.results_dir, tmp_path / "final.csv") >= counters.processed
