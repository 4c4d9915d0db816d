"""
Command handlers for the HYDROGRID CLI.

Each handler receives the parsed namespace and returns a process exit code.
"""

import sys
from argparse import Namespace
from enum import IntEnum
from typing import Any, Dict


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130


# CLI flag (namespace attribute) -> configuration key
OVERRIDE_KEYS = {
    'workers': 'MAX_WORKERS',
    'chunk_size': 'CHUNK_SIZE',
    'seed': 'RANDOM_SEED',
    'data_dir': 'DATA_DIR',
    'results_dir': 'RESULTS_DIR',
    'final_file': 'FINAL_FILE',
}


def collect_overrides(args: Namespace) -> Dict[str, Any]:
    """Configuration overrides for every CLI flag the user actually passed."""
    overrides = {}
    for attribute, key in OVERRIDE_KEYS.items():
        value = getattr(args, attribute, None)
        if value is not None:
            overrides[key] = value
    return overrides


class GridSearchCommands:
    """Handlers for ``run``, ``merge`` and ``space``."""

    @staticmethod
    def _system(args: Namespace):
        from hydrogrid.core import HydroGrid

        return HydroGrid(
            getattr(args, 'config', None),
            config_overrides=collect_overrides(args),
            debug_mode=getattr(args, 'debug', False),
        )

    @staticmethod
    def run(args: Namespace) -> int:
        summary = GridSearchCommands._system(args).run()
        print(
            f"Processed {summary.processed:,} combinations, "
            f"{summary.relevant:,} relevant ({summary.relevant_fraction:.2%})"
        )
        if summary.pool_broken:
            print(
                f"Worker pool broke; {summary.chunks_failed} chunk(s) dropped and the "
                f"rest of the parameter space was not evaluated",
                file=sys.stderr,
            )
        if summary.merged_rows is None:
            print(f"Merging into {summary.final_file} failed; partial files were kept", file=sys.stderr)
            return ExitCode.FAILURE
        print(f"Final file: {summary.final_file} ({summary.merged_rows:,} rows)")
        return ExitCode.SUCCESS

    @staticmethod
    def merge(args: Namespace) -> int:
        system = GridSearchCommands._system(args)
        rows = system.merge()
        print(f"Merged {rows:,} rows into {system.config.paths.final_file}")
        return ExitCode.SUCCESS

    @staticmethod
    def space(args: Namespace) -> int:
        from hydrogrid.core.config import load_config
        from hydrogrid.core.constants import ResultSchema

        config = load_config(getattr(args, 'config', None))
        ranges = config.ranges
        print(f"Parameter space: {ranges.size:,} combinations")
        for name, values in zip(ResultSchema.BASE_COLUMNS, ranges.base_dimensions):
            print(f"  {name:<14} {len(values):>3} values: {values}")
        return ExitCode.SUCCESS
