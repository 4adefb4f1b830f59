"""
Cache directory layout for crossrelease.

Directory Structure:
    Global Cache (~/.crossrelease/ or $CROSSRELEASE_CACHE_DIR):
        - packages/            : Downloaded foreign packages (.deb), shared
                                 by every target
        - targets/<triple>/    : Per-target build cache namespace
        - lock/                : Concurrent access control files
"""

import os
import re
from pathlib import Path
from typing import Optional

CACHE_DIR_ENV = "CROSSRELEASE_CACHE_DIR"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._+-]")


class DirectoryError(Exception):
    """Base exception for directory-related errors."""

    pass


def get_global_cache_dir() -> Path:
    """
    Get the global cache directory path.

    ``$CROSSRELEASE_CACHE_DIR`` wins when set; otherwise ``~/.crossrelease``.

    Example:
        >>> get_global_cache_dir()
        PosixPath('/home/user/.crossrelease')
    """
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".crossrelease"


def safe_name(identifier: str) -> str:
    """Turn an identifier (triple, package file name) into a file name."""
    return _UNSAFE_NAME_CHARS.sub("-", identifier) or "_"


def ensure_cache_structure(cache_dir: Optional[Path] = None) -> Path:
    """
    Create the cache directory structure if it doesn't exist.

    Raises:
        DirectoryError: If a directory cannot be created
    """
    cache_dir = Path(cache_dir) if cache_dir else get_global_cache_dir()

    for subdir in (cache_dir, cache_dir / "packages", cache_dir / "targets", cache_dir / "lock"):
        try:
            subdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Failed to create cache directory {subdir}: {e}") from e

    return cache_dir


def target_cache_dir(cache_dir: Path, triple: str) -> Path:
    """
    Return the build cache namespace for one target triple.

    Namespaces are never shared between triples.

    Example:
        >>> target_cache_dir(Path('/cache'), 'aarch64-unknown-linux-gnu')
        PosixPath('/cache/targets/aarch64-unknown-linux-gnu')
    """
    path = Path(cache_dir) / "targets" / safe_name(triple)
    path.mkdir(parents=True, exist_ok=True)
    return path
