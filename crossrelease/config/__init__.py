"""Configuration management for crossrelease."""

from crossrelease.config.parser import (
    ReleaseConfig,
    load_config,
    parse_config_file,
    aux_file_paths,
    DEFAULT_CONFIG_FILE,
    DEFAULT_TAG,
)

__all__ = [
    "ReleaseConfig",
    "load_config",
    "parse_config_file",
    "aux_file_paths",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_TAG",
]
