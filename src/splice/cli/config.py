"""
CLI Configuration

Centralized configuration for the splice command line.
"""

import os
from typing import Optional


class CLIConfig:
    """Configuration for CLI commands"""

    PROG_NAME = "git-splice"

    # Output modes
    _json_output: bool = False
    _quiet: Optional[bool] = None

    # Set once the command body starts; parser errors happen before that
    _invoked: bool = False

    @classmethod
    def set_json_output(cls, enabled: bool) -> None:
        """Emit results as JSON on stdout"""
        cls._json_output = enabled

    @classmethod
    def is_json_output(cls) -> bool:
        return cls._json_output

    @classmethod
    def set_quiet(cls, enabled: bool) -> None:
        """Suppress INFO messages and summary tables"""
        cls._quiet = enabled

    @classmethod
    def is_quiet(cls) -> bool:
        """
        Check if quiet mode is active.

        The --quiet flag wins; otherwise SPLICE_QUIET decides.
        """
        if cls._quiet is not None:
            return cls._quiet
        return os.getenv("SPLICE_QUIET", "").lower() in ("1", "true", "yes")

    @classmethod
    def log_level(cls, verbose: bool) -> str:
        if verbose:
            return "DEBUG"
        if cls.is_quiet():
            return "WARNING"
        return os.getenv("SPLICE_LOG_LEVEL", "INFO").upper()

    @classmethod
    def mark_invoked(cls) -> None:
        cls._invoked = True

    @classmethod
    def was_invoked(cls) -> bool:
        return cls._invoked

    @classmethod
    def reset(cls) -> None:
        """Restore defaults (between CLI invocations in one process)"""
        cls._json_output = False
        cls._quiet = None
        cls._invoked = False
