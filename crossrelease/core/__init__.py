"""
Core functionality for crossrelease.

This package contains the foundational modules that other components depend on.
"""

from .directory import (
    get_global_cache_dir,
    ensure_cache_structure,
    target_cache_dir,
    DirectoryError,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .exceptions import (
    CrossReleaseError,
    ConfigError,
    PackageFetchError,
    SysrootExtractionError,
    BuildError,
    PackagingError,
)

__all__ = [
    "get_global_cache_dir",
    "ensure_cache_structure",
    "target_cache_dir",
    "DirectoryError",
    "LockManager",
    "LockTimeout",
    "CrossReleaseError",
    "ConfigError",
    "PackageFetchError",
    "SysrootExtractionError",
    "BuildError",
    "PackagingError",
]
