import sys
import os
from pathlib import Path
from typing import Optional
from loguru import logger

# Flag to track if logging has been configured
_logging_configured = False

# loguru level names mapped to the short tags printed on stderr
LEVEL_TAGS = {
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "SUCCESS": "INFO",
    "WARNING": "WARN",
    "ERROR": "ERROR",
    "CRITICAL": "ERROR",
}


def format_record(record) -> str:
    """
    Build the loguru format template for a single record.

    Every diagnostic line starts with its severity tag (INFO/WARN/ERROR),
    so scripts wrapping git-splice can grep stderr reliably.
    """
    tag = LEVEL_TAGS.get(record["level"].name, record["level"].name)
    template = f"<level>{tag}</level>: {{message}}\n"
    if record["exception"] is not None:
        template += "{exception}\n"
    return template


def setup_logging(level=None, suppress_console=None, enable_file_logging=None, log_dir: Optional[Path] = None, force=False):
    """
    Configures the global logger.

    Console logging goes to stderr. File logging is opt-in via
    SPLICE_FILE_LOGGING=1 environment variable or enable_file_logging=True.

    Args:
        level: Logging level (default: SPLICE_LOG_LEVEL or INFO)
        suppress_console: If True, suppress console logging. If None, check SPLICE_QUIET env var.
        enable_file_logging: If True, enable file logging. If None, check SPLICE_FILE_LOGGING env var.
        log_dir: Directory for the log file (required for file logging)
        force: Reconfigure even if logging was already set up (used by the CLI)
    """
    global _logging_configured

    # Only configure once to avoid duplicate handlers
    if _logging_configured and not force:
        return
    _logging_configured = True

    logger.remove()

    if level is None:
        level = os.getenv("SPLICE_LOG_LEVEL", "INFO").upper()

    if suppress_console is None:
        suppress_console = os.getenv("SPLICE_QUIET", "").lower() in ("1", "true", "yes")

    # Stream 1: severity-tagged console output
    if not suppress_console:
        logger.add(
            sys.stderr,
            level=level,
            format=format_record,
            colorize=sys.stderr.isatty(),
        )

    # Stream 2: File logging is OPT-IN only (disabled by default)
    if enable_file_logging is None:
        enable_file_logging = os.getenv("SPLICE_FILE_LOGGING", "").lower() in ("1", "true", "yes")

    if enable_file_logging and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "splice.log",
            level="DEBUG",
            rotation="10 MB",       # Rotate at 10MB
            retention="7 days",
            compression="gz",       # Compress old logs
            catch=True,
            serialize=False
        )


# Configure the logger on import (will check env vars)
setup_logging()
