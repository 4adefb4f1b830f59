"""
Sysroot staging for cross-compilation.

This module assembles the foreign-architecture libraries a target profile
requires into one shared staging directory (the sysroot), the way
``dpkg -x <package> <sysroot>`` would for each package in turn.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Tuple, Union

from crossrelease.core.exceptions import PackageFetchError, SysrootExtractionError
from crossrelease.core.filesystem import ArchiveExtractionError, extract_archive_bytes
from crossrelease.cross.packages import ForeignPackage
from crossrelease.cross.targets import TargetProfile

logger = logging.getLogger(__name__)

DownloadFn = Callable[[ForeignPackage], bytes]


@dataclass
class StagedSysroot:
    """
    A staged sysroot and what was extracted into it.

    Attributes:
        root_path: Sysroot root directory
        contents: Package -> relative paths it extracted, in extraction order
    """

    root_path: Path
    contents: Dict[ForeignPackage, Tuple[str, ...]] = field(default_factory=dict)

    def record(self, package: ForeignPackage, files) -> None:
        """Record an extracted package. Records are never removed."""
        self.contents[package] = tuple(files)

    @property
    def packages(self) -> Tuple[ForeignPackage, ...]:
        return tuple(self.contents)

    def files(self) -> Tuple[str, ...]:
        """All recorded paths, de-duplicated, sorted."""
        return tuple(sorted({path for paths in self.contents.values() for path in paths}))


class SysrootStager:
    """
    Stage the packages of a target profile into a sysroot directory.

    All packages of one build share a single root. Packages are extracted
    in profile order; when two packages ship the same path the one
    extracted last wins.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def stage(self, profile: TargetProfile, download_fn: DownloadFn) -> StagedSysroot:
        """
        Fetch and extract every required package of ``profile``.

        Args:
            profile: Resolved target profile
            download_fn: Returns the archive bytes of one package

        Returns:
            The staged sysroot

        Raises:
            PackageFetchError: If any package cannot be fetched (or fails
                its SHA-256 pin)
            SysrootExtractionError: If any package cannot be extracted

        Example:
            >>> from crossrelease.cross.packages import DebianPackageFetcher
            >>> stager = SysrootStager(Path("/build/sysroot"))
            >>> sysroot = stager.stage(resolve("aarch64-unknown-linux-gnu"),
            ...                        DebianPackageFetcher(cache_dir))
        """
        self.root.mkdir(parents=True, exist_ok=True)
        sysroot = StagedSysroot(root_path=self.root)

        total = len(profile.required_packages)
        logger.info(f"Staging {total} package(s) for {profile.triple} into {self.root}")

        for index, package in enumerate(profile.required_packages, 1):
            logger.info(f"[{index}/{total}] {package} {package.version}")
            data = self._fetch(package, download_fn)
            files = self._extract(package, data)
            sysroot.record(package, files)

        return sysroot

    def _fetch(self, package: ForeignPackage, download_fn: DownloadFn) -> bytes:
        try:
            data = download_fn(package)
        except Exception as e:
            raise PackageFetchError(str(package), str(e)) from e

        if package.sha256:
            actual = hashlib.sha256(data).hexdigest()
            if actual.lower() != package.sha256.lower():
                raise PackageFetchError(
                    str(package),
                    f"checksum mismatch: expected {package.sha256}, got {actual}",
                )
        return data

    def _extract(self, package: ForeignPackage, data: bytes) -> Tuple[str, ...]:
        try:
            files = extract_archive_bytes(data, self.root)
        except (ArchiveExtractionError, OSError) as e:
            raise SysrootExtractionError(str(package), str(e)) from e

        logger.debug(f"Extracted {len(files)} path(s) from {package}")
        return tuple(files)


def stage_sysroot(
    profile: TargetProfile, download_fn: DownloadFn, root: Union[str, Path]
) -> StagedSysroot:
    """Function form of ``SysrootStager(root).stage(profile, download_fn)``."""
    return SysrootStager(root).stage(profile, download_fn)
