from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def setup_logger(
    level: int | str = logging.INFO,
    *,
    log_dir: str | Path | None = None,
    log_name: str = "erosion_run",
) -> logging.Logger:
    """Configure the root logger for scripts.

    Console output is always enabled. When ``log_dir`` is given, a
    timestamped log file is written there as well. Library modules only
    create module loggers and never call this.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Re-running a script in the same interpreter must not duplicate output.
    if logger.hasHandlers():
        logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = log_dir / f"{log_name}_{timestamp}.log"

        file_handler = logging.FileHandler(filename, mode="w")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.info("Logging initialized. Writing to: %s", filename)

    return logger
