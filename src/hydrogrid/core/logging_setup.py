# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HYDROGRID Team

"""
Logging configuration for the coordinator and for worker processes.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s'

NOISY_LOGGERS = ('matplotlib', 'urllib3', 'numexpr', 'asyncio')


def configure_logging(
    level: Union[str, int] = 'INFO',
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the ``hydrogrid`` logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        level: Log level name or number
        log_file: Optional file receiving the same records as the console

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger('hydrogrid')
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # Silence noisy libraries
    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    return package_logger


def configure_worker_logging(worker_id: int, level: Union[str, int] = 'INFO') -> logging.Logger:
    """
    Logger for one worker process.

    A freshly spawned process has no handlers, so a prefixed stream handler is
    installed. Forked workers inherit the coordinator's handlers and keep them.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger('hydrogrid')
    worker_logger = logging.getLogger(f'hydrogrid.worker.{worker_id}')
    worker_logger.setLevel(level)

    if not package_logger.handlers and not worker_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(f'[W{worker_id:02d}] %(levelname)s: %(message)s'))
        worker_logger.addHandler(handler)
        worker_logger.propagate = False

    return worker_logger
