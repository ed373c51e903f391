import logging
from pathlib import Path

DEFAULT_LOG_PATH = Path("/tmp/avify/avify.log")

def setup_logging(log_file: Path = DEFAULT_LOG_PATH, debug: bool = False) -> logging.Logger:
    """
    Setup logging configuration for avify.

    Logs go to a file only; the terminal belongs to the progress display.
    Returns configured logger instance.

    Args:
        log_file: Path of the log file (parent directories are created)
        debug: If True, enable DEBUG level logging with per-task timings
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file)],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
