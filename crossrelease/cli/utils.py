"""
Shared utilities for CLI commands.
"""

import logging

from crossrelease.config.parser import ReleaseConfig, load_config

logger = logging.getLogger(__name__)


def load_release_config(args, **overrides) -> ReleaseConfig:
    """
    Load the effective configuration for a command.

    Args:
        args: Parsed arguments carrying the global ``config`` and
            ``project_root`` options
        **overrides: Command-line values; None means "not given"

    Raises:
        ConfigError: If the configuration is invalid
    """
    return load_config(
        config_path=getattr(args, "config", None),
        project_root=getattr(args, "project_root", None),
        **overrides,
    )


def safe_print(message: str, file=None):
    """
    Print message, falling back to ASCII when the console can't encode it.
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        print(message.encode("ascii", errors="replace").decode("ascii"), file=file)
