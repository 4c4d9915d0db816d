# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Run monitoring: memory reclamation, progress lines and checkpoint snapshots.

These are the side effects the dispatcher fires at counter cadences. The
checkpoint files are write-only; no run is ever resumed from them.
"""

import gc
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import psutil

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """Elapsed seconds as hh:mm:ss."""
    seconds = int(max(seconds, 0))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class RunMonitor:
    """Memory and progress reporting for one grid search run.

    Args:
        total: Size of the parameter space, for percentages (optional)
        logger: Logger instance (defaults to the module logger)
    """

    def __init__(self, total: Optional[int] = None, logger: Optional[logging.Logger] = None):
        self.total = total
        self.logger = logger or logging.getLogger(__name__)
        self.start_time = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def reclaim_memory(self, counters) -> float:
        """Run the garbage collector and log resident memory before and after.

        Returns:
            Resident set size after collection, in MB
        """
        process = psutil.Process()
        memory_before = process.memory_info().rss / 1024**2
        collected = gc.collect()
        memory_after = process.memory_info().rss / 1024**2
        self.logger.debug(
            f"GC at {counters.processed} processed: collected {collected} objects | "
            f"Memory: {memory_before:.1f} MB -> {memory_after:.1f} MB "
            f"(delta: {memory_after - memory_before:+.1f} MB)"
        )
        return memory_after

    def progress_message(self, counters) -> str:
        """Format: "Processed: n/total (%) | Relevant: r (%) | Rate: x/s | Elapsed: hh:mm:ss" """
        elapsed = self.elapsed()
        processed = counters.processed

        if self.total:
            msg_parts = [f"Processed: {processed:,}/{self.total:,} ({processed / self.total:.1%})"]
        else:
            msg_parts = [f"Processed: {processed:,}"]

        relevant_pct = counters.relevant / processed if processed else 0.0
        msg_parts.append(f"Relevant: {counters.relevant:,} ({relevant_pct:.2%})")

        rate = processed / elapsed if elapsed > 0 else 0.0
        msg_parts.append(f"Rate: {rate:,.1f}/s")
        msg_parts.append(f"Elapsed: {format_elapsed(elapsed)}")
        return " | ".join(msg_parts)

    def report_progress(self, counters) -> None:
        self.logger.info(self.progress_message(counters))


class CheckpointWriter:
    """Writes ``checkpoint_<epoch-ms>.json`` counter snapshots."""

    def __init__(self, checkpoint_dir: Path):
        self.checkpoint_dir = Path(checkpoint_dir)
        self.last_path: Optional[Path] = None

    def write(self, counters) -> Path:
        now = datetime.now(timezone.utc)
        stamp = int(now.timestamp() * 1000)
        path = self.checkpoint_dir / f"checkpoint_{stamp}.json"
        # Snapshots within the same millisecond get the next free stamp
        while path.exists():
            stamp += 1
            path = self.checkpoint_dir / f"checkpoint_{stamp}.json"

        payload = {
            'totalProcessed': counters.processed,
            'totalRelevant': counters.relevant,
            'timestamp': now.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
        }
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)

        self.last_path = path
        logger.debug(f"Checkpoint written to {path}")
        return path
