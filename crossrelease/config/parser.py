"""Configuration loading for crossrelease.

Configuration comes from four layers, highest precedence first:

1. Explicit overrides (command-line flags)
2. Environment variables ``TARGET`` and ``TAG``
3. The YAML file (``crossrelease.yaml`` in the project root by default)
4. Built-in defaults (native triple, tag ``latest``)

Example ``crossrelease.yaml``::

    name: tunein
    source: .
    output: dist
    aux_files: [README.md, LICENSE]
    mirror: http://deb.debian.org/debian
    target: aarch64-unknown-linux-gnu
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from crossrelease.core.exceptions import ConfigError
from crossrelease.cross.packages import DEFAULT_MIRROR
from crossrelease.cross.targets import NATIVE_TRIPLE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "crossrelease.yaml"
DEFAULT_TAG = "latest"
DEFAULT_AUX_FILES = ("README.md", "LICENSE")
DEFAULT_EXCLUDES = ("target", ".git", ".devbox", ".fluentci")

TARGET_ENV = "TARGET"
TAG_ENV = "TAG"

_KNOWN_KEYS = {
    "name",
    "target",
    "tag",
    "source",
    "output",
    "aux_files",
    "exclude",
    "mirror",
    "cache_dir",
}


@dataclass(frozen=True)
class ReleaseConfig:
    """Settings for one release invocation."""

    name: str
    target: str = NATIVE_TRIPLE
    tag: str = DEFAULT_TAG
    source_dir: Path = field(default_factory=Path.cwd)
    output_dir: Path = field(default_factory=Path.cwd)
    aux_files: tuple = DEFAULT_AUX_FILES
    exclude: tuple = DEFAULT_EXCLUDES
    mirror: str = DEFAULT_MIRROR
    cache_dir: Optional[Path] = None


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(str(config_path), f"invalid YAML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(str(config_path), f"cannot read file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(config_path), "top level must be a mapping")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(str(config_path), f"unknown keys: {', '.join(unknown)}")

    return data


def _string_list(data: Dict[str, Any], key: str, config_path: Path) -> Optional[tuple]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(str(config_path), f"'{key}' must be a list of strings")
    return tuple(value)


def _resolve_path(value: Optional[str], base: Path) -> Optional[Path]:
    if not value:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def parse_config_file(config_path: Path) -> ReleaseConfig:
    """
    Parse a crossrelease.yaml file on its own (no environment, no overrides).

    Relative paths in the file are resolved against the file's directory.

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    config_path = Path(config_path)
    data = _read_yaml(config_path)
    base = config_path.resolve().parent

    source_dir = _resolve_path(data.get("source"), base) or base
    output_dir = _resolve_path(data.get("output"), base) or base

    config = ReleaseConfig(
        name=str(data.get("name") or source_dir.resolve().name),
        source_dir=source_dir,
        output_dir=output_dir,
        cache_dir=_resolve_path(data.get("cache_dir"), base),
    )

    updates = {}
    for key in ("target", "tag", "mirror"):
        if data.get(key):
            updates[key] = str(data[key])
    aux_files = _string_list(data, "aux_files", config_path)
    if aux_files is not None:
        updates["aux_files"] = aux_files
    exclude = _string_list(data, "exclude", config_path)
    if exclude is not None:
        updates["exclude"] = exclude

    return replace(config, **updates)


def load_config(
    config_path: Optional[Path] = None,
    project_root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> ReleaseConfig:
    """
    Build the effective configuration from all layers.

    Args:
        config_path: Explicit YAML file; must exist when given
        project_root: Directory searched for ``crossrelease.yaml`` when no
            explicit file is given (default: current directory)
        environ: Environment mapping (default: ``os.environ``); empty
            values count as unset
        **overrides: ReleaseConfig fields set explicitly; None values are ignored

    Raises:
        ConfigError: If the configuration is invalid

    Example:
        >>> config = load_config(environ={"TARGET": "aarch64-unknown-linux-gnu"})
        >>> config.tag
        'latest'
    """
    environ = os.environ if environ is None else environ
    project_root = Path(project_root) if project_root else Path.cwd()

    if config_path is not None:
        if not Path(config_path).exists():
            raise ConfigError(str(config_path), "configuration file not found")
        config = parse_config_file(Path(config_path))
    elif (project_root / DEFAULT_CONFIG_FILE).exists():
        config = parse_config_file(project_root / DEFAULT_CONFIG_FILE)
    else:
        logger.debug(f"No {DEFAULT_CONFIG_FILE} in {project_root}, using defaults")
        config = ReleaseConfig(
            name=project_root.resolve().name,
            source_dir=project_root,
            output_dir=project_root,
        )

    updates: Dict[str, Any] = {}
    if environ.get(TARGET_ENV):
        updates["target"] = environ[TARGET_ENV]
    if environ.get(TAG_ENV):
        updates["tag"] = environ[TAG_ENV]

    unknown = sorted(set(overrides) - set(ReleaseConfig.__dataclass_fields__))
    if unknown:
        raise ConfigError("overrides", f"unknown settings: {', '.join(unknown)}")
    updates.update({key: value for key, value in overrides.items() if value is not None})

    config = replace(config, **updates)
    _validate(config)
    logger.debug(f"Effective configuration: {config}")
    return config


def _validate(config: ReleaseConfig) -> None:
    if not config.name or "/" in config.name:
        raise ConfigError("name", f"invalid binary name: {config.name!r}")
    if not config.tag or "/" in config.tag:
        raise ConfigError("tag", f"invalid release tag: {config.tag!r}")
    if "/" in config.target:
        raise ConfigError("target", f"invalid target triple: {config.target!r}")


def aux_file_paths(config: ReleaseConfig) -> List[Path]:
    """Auxiliary files that exist in the source directory, in configured order."""
    paths = []
    for name in config.aux_files:
        path = Path(config.source_dir) / name
        if path.is_file():
            paths.append(path)
        else:
            logger.debug(f"Skipping missing auxiliary file: {name}")
    return paths
