"""
Foreign-architecture package catalog and fetching.

Foreign packages are Debian binary packages for the target architecture.
Every package is pinned to an exact version so that staging the same
profile twice downloads the same bytes. Packages are fetched from a
Debian mirror's pool and kept in a shared on-disk cache; the cache is
safe to use from several invocations at once.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import requests

from crossrelease.core.download import (
    DownloadProgress,
    download_file,
    format_progress,
    verify_checksum,
)
from crossrelease.core.locking import LockManager

logger = logging.getLogger(__name__)

DEFAULT_MIRROR = "http://deb.debian.org/debian"


@dataclass(frozen=True)
class ForeignPackage:
    """
    A pinned Debian binary package for a foreign architecture.

    Attributes:
        name: Binary package name (e.g., 'libasound2-dev')
        arch: Debian architecture (e.g., 'arm64', 'armhf')
        version: Exact Debian version, possibly with an epoch ('1:2.44-1+deb11u1')
        source: Source package name, which determines the pool directory
        sha256: Optional SHA-256 pin for the .deb file
    """

    name: str
    arch: str
    version: str
    source: str
    sha256: Optional[str] = None

    @property
    def filename(self) -> str:
        """Pool file name. Epochs are not part of Debian pool file names."""
        upstream = self.version.split(":", 1)[-1]
        return f"{self.name}_{upstream}_{self.arch}.deb"

    @property
    def pool_path(self) -> str:
        source = self.source
        prefix = source[:4] if source.startswith("lib") else source[0]
        return f"pool/main/{prefix}/{source}/{self.filename}"

    def url(self, mirror: str = DEFAULT_MIRROR) -> str:
        return f"{mirror.rstrip('/')}/{self.pool_path}"

    def __str__(self) -> str:
        return f"{self.name}:{self.arch}"


# (source, version, binary packages) for Debian 11 "bullseye", in staging order
BULLSEYE_LIBRARIES = (
    ("alsa-lib", "1.2.4-1.1", ("libasound2", "libasound2-dev")),
    ("dbus", "1.12.28-0+deb11u1", ("libdbus-1-dev", "libdbus-1-3")),
    ("systemd", "247.3-7+deb11u7", ("libsystemd-dev", "libsystemd0")),
    ("libcap2", "1:2.44-1+deb11u1", ("libcap2", "libcap-dev")),
    ("libgcrypt20", "1.8.7-6", ("libgcrypt20", "libgcrypt20-dev")),
    ("libgpg-error", "1.38-2", ("libgpg-error0", "libgpg-error-dev")),
    ("lz4", "1.9.3-2", ("liblz4-1", "liblz4-dev")),
    ("xxhash", "0.8.0-2", ("libxxhash0", "libxxhash-dev")),
    ("xz-utils", "5.2.5-2.1~deb11u1", ("liblzma5", "liblzma-dev")),
    ("libzstd", "1.4.8+dfsg-2.1", ("libzstd1", "libzstd-dev")),
)


def bullseye_packages(arch: str) -> Tuple[ForeignPackage, ...]:
    """
    Pinned bullseye library set for one Debian architecture.

    Example:
        >>> [str(p) for p in bullseye_packages("arm64")][:2]
        ['libasound2:arm64', 'libasound2-dev:arm64']
    """
    return tuple(
        ForeignPackage(name=name, arch=arch, version=version, source=source)
        for source, version, names in BULLSEYE_LIBRARIES
        for name in names
    )


class _ProgressLog:
    """Log a package download at DEBUG level, once per quarter of its size."""

    STEP = 25.0

    def __init__(self, filename: str):
        self.filename = filename
        self._next = self.STEP

    def __call__(self, progress: DownloadProgress) -> None:
        if progress.percentage < self._next:
            return
        logger.debug(f"{self.filename}: {format_progress(progress)}")
        while self._next <= progress.percentage:
            self._next += self.STEP


class DebianPackageFetcher:
    """
    Fetch pinned packages through a shared on-disk package cache.

    Instances are callables usable as the stager's download function::

        fetcher = DebianPackageFetcher(cache_dir)
        data = fetcher(package)

    A cached file is reused as is unless the package carries a SHA-256 pin
    the file fails. Downloads of the same file by concurrent invocations
    are serialized by a per-file lock; the download itself lands via an
    atomic rename.
    """

    def __init__(
        self,
        cache_dir: Path,
        mirror: str = DEFAULT_MIRROR,
        lock_manager: Optional[LockManager] = None,
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.packages_dir = self.cache_dir / "packages"
        self.packages_dir.mkdir(parents=True, exist_ok=True)
        self.mirror = mirror
        self.lock_manager = lock_manager or LockManager(self.cache_dir / "lock")
        self.timeout = timeout
        self.session = session

    def cached_path(self, package: ForeignPackage) -> Path:
        return self.packages_dir / package.filename

    def __call__(self, package: ForeignPackage) -> bytes:
        """
        Return the .deb bytes for ``package``, downloading on a cache miss.

        Raises:
            DownloadError: If the mirror request fails
            ChecksumError: If the download does not match the package pin
        """
        path = self.cached_path(package)

        with self.lock_manager.package_lock(package.filename):
            if path.exists() and package.sha256 and not verify_checksum(path, package.sha256):
                logger.warning(f"Cached {path.name} fails its checksum pin, re-downloading")
                path.unlink()

            if path.exists():
                logger.debug(f"Package cache hit: {path.name}")
            else:
                download_file(
                    url=package.url(self.mirror),
                    destination=path,
                    expected_sha256=package.sha256,
                    progress_callback=_ProgressLog(package.filename),
                    timeout=self.timeout,
                    session=self.session,
                )

        return path.read_bytes()
