# ratewatch/config/logging_config.py

"""Logging for ratewatch runs.

Every CLI invocation writes its own ``run_<stamp>.log`` under the logs
directory, so a reconstruction or comparison can be traced afterwards.
Only warnings and errors reach the terminal; stdout is kept for command
output (tables and JSON).
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from ratewatch.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_STDERR_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _run_log_path(directory: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return directory / f"run_{stamp}.log"


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the run-file and stderr handlers to the ``ratewatch`` logger.

    Args:
        logs_dir: Where to create the run log. Defaults to
            ``Settings.LOGS_DIR``.

    Returns:
        Path of this run's log file.
    """
    directory = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = _run_log_path(directory)

    app_logger = logging.getLogger("ratewatch")
    app_logger.setLevel(logging.DEBUG)

    # Already configured in this process
    if app_logger.handlers:
        return log_file

    run_file = logging.FileHandler(log_file, encoding="utf-8")
    run_file.setLevel(logging.DEBUG)
    run_file.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))

    stderr = logging.StreamHandler(sys.stderr)
    stderr.setLevel(logging.WARNING)
    stderr.setFormatter(logging.Formatter(_STDERR_FORMAT))

    app_logger.addHandler(run_file)
    app_logger.addHandler(stderr)
    app_logger.debug("Run log: %s", log_file)
    return log_file
