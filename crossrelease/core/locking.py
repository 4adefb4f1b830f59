"""
Concurrent access control for crossrelease.

Several release invocations (one per target triple) may run at the same
time against one cache directory. File-based locks keep them apart where
they share state:

- Package cache entries: one lock per package file, held while the file
  is downloaded so a second invocation waits and then reuses it.
- Target build caches: one lock per triple, held for the whole build of
  that triple. Different triples never contend.

Usage:
    from crossrelease.core.locking import LockManager

    lock_manager = LockManager(cache_dir / "lock")
    with lock_manager.package_lock("libzstd1_1.4.8+dfsg-2.1_arm64.deb"):
        ...
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

from crossrelease.core.directory import safe_name

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages locks for crossrelease cache resources.

    Uses file-based locking with the `filelock` library for cross-process
    safety and automatic release on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _acquire(self, kind: str, identifier: str, timeout: int):
        lock_path = self.lock_dir / f"{kind}-{safe_name(identifier)}.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            lock.acquire()
        except LockTimeout as e:
            logger.error(
                f"Could not acquire {kind} lock for {identifier} after {timeout}s. "
                "Another crossrelease process may be holding it."
            )
            raise LockTimeout(str(lock_path)) from e

        logger.debug(f"Acquired {kind} lock: {lock_path}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Released {kind} lock: {lock_path}")

    def package_lock(self, package_file: str, timeout: int = 600):
        """
        Acquire the lock guarding one package cache entry.

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        return self._acquire("package", package_file, timeout)

    def target_lock(self, triple: str, timeout: int = 3600):
        """
        Acquire the lock guarding the build cache namespace of ``triple``.

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        return self._acquire("target", triple, timeout)


__all__ = ["LockManager", "LockTimeout"]
