"""
Grid search engine: parameter space, workers, dispatcher, sink and merger.
"""

from .parameters import EvaluationResult, ParameterSet, ParameterSpace, iter_chunks
from .sink import ResultSink, format_value, normalize_fields, normalize_record
from .merger import merge_results, partial_files
from .monitoring import CheckpointWriter, RunMonitor, format_elapsed
from .worker import ChunkEvaluator, ChunkOutcome, SharedCounter, WorkerContext
from .dispatcher import Counters, GridSearchDispatcher, PeriodicTrigger

__all__ = [
    'ChunkEvaluator',
    'ChunkOutcome',
    'CheckpointWriter',
    'Counters',
    'EvaluationResult',
    'GridSearchDispatcher',
    'ParameterSet',
    'ParameterSpace',
    'PeriodicTrigger',
    'ResultSink',
    'RunMonitor',
    'SharedCounter',
    'WorkerContext',
    'format_elapsed',
    'format_value',
    'iter_chunks',
    'merge_results',
    'normalize_fields',
    'normalize_record',
    'partial_files',
]
