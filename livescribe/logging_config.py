import logging
from pathlib import Path

from .config import get_config

# Global variables to store the logging configuration
_logging_initialized = False
_log_filename = None


def setup_logging():
    """Set up logging to the console and, when a log directory is configured, a fixed file."""
    global _logging_initialized, _log_filename

    if _logging_initialized:
        return _log_filename

    config = get_config().logging
    handlers = [logging.StreamHandler()]

    if config.log_dir:
        logs_dir = Path(config.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        # Fixed filename, overwritten on every run
        _log_filename = logs_dir / config.log_file
        _log_filename.write_text("", encoding="utf-8")
        handlers.insert(0, logging.FileHandler(_log_filename, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )

    logging.getLogger("livescribe").setLevel(config.level.upper())
    # The OpenAI client logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _logging_initialized = True

    logger = logging.getLogger(__name__)
    if _log_filename:
        logger.info(f"📝 Centralized logging initialized - writing to {_log_filename}")
    else:
        logger.info("📝 Centralized logging initialized - console only")

    return _log_filename


def get_logger(name=None):
    """Get a logger with the centralized configuration."""
    if not _logging_initialized:
        setup_logging()

    if name is None:
        name = __name__

    return logging.getLogger(name)
