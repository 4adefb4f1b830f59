"""
Release pipeline.

One invocation releases one target triple, strictly in sequence:

    resolve -> stage sysroot -> build environment -> build -> package

Every step needs the complete output of the previous one, so nothing
overlaps, and the first failure aborts the invocation. A sysroot is
staged fresh for every invocation and discarded when the build is over,
successful or not.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from crossrelease.config.parser import ReleaseConfig, aux_file_paths
from crossrelease.core.directory import ensure_cache_structure, target_cache_dir
from crossrelease.core.exceptions import SysrootExtractionError
from crossrelease.core.filesystem import FilesystemError, safe_rmtree
from crossrelease.core.locking import LockManager
from crossrelease.cross.environment import build_environment
from crossrelease.cross.packages import DebianPackageFetcher
from crossrelease.cross.sysroot import DownloadFn, SysrootStager
from crossrelease.cross.targets import resolve
from crossrelease.pipeline.executor import BuildExecutor, CargoExecutor
from crossrelease.pipeline.packager import Artifact, Packager

logger = logging.getLogger(__name__)


def sysroot_dir(cache_dir: Path, triple: str) -> Path:
    """
    Sysroot location for ``triple``.

    The path is fixed per triple so the compiler flags that embed it, and
    with them cargo's build cache, stay stable from one release to the next.
    """
    return target_cache_dir(cache_dir, triple) / "sysroot"


def _discard_sysroot(root: Path, triple: str) -> None:
    try:
        safe_rmtree(root)
    except FilesystemError as e:
        raise SysrootExtractionError(triple, f"cannot remove sysroot: {e}") from e


def run_release(
    config: ReleaseConfig,
    download_fn: Optional[DownloadFn] = None,
    executor: Optional[BuildExecutor] = None,
    packager: Optional[Packager] = None,
) -> Artifact:
    """
    Build and package one release.

    Args:
        config: Effective release configuration
        download_fn: Package fetcher (default: cached Debian mirror fetcher)
        executor: Build executor (default: local cargo)
        packager: Packager (default: tar.gz into ``config.output_dir``)

    Returns:
        The exported artifact

    Raises:
        PackageFetchError: If a foreign package cannot be fetched
        SysrootExtractionError: If a foreign package cannot be extracted
        BuildError: If the build fails
        PackagingError: If the archive or checksum cannot be produced
        LockTimeout: If another invocation holds this target's cache
    """
    cache_dir = ensure_cache_structure(config.cache_dir)
    lock_manager = LockManager(cache_dir / "lock")

    profile = resolve(config.target)
    triple = profile.triple
    logger.info(f"Releasing {config.name} {config.tag} for {triple}")

    if download_fn is None:
        download_fn = DebianPackageFetcher(
            cache_dir, mirror=config.mirror, lock_manager=lock_manager
        )
    if executor is None:
        executor = CargoExecutor(cache_dir, config.name, exclude=config.exclude)
    if packager is None:
        packager = Packager(config.name, config.output_dir)

    with lock_manager.target_lock(triple):
        root = sysroot_dir(cache_dir, triple)
        _discard_sysroot(root, triple)
        try:
            sysroot = SysrootStager(root).stage(profile, download_fn)
            environment = build_environment(profile, sysroot.root_path)
            binary = executor.build(environment, Path(config.source_dir), triple)
        finally:
            _discard_sysroot(root, triple)

        artifact = packager.package(binary, config.tag, triple, aux_file_paths(config))

    logger.info(f"Release complete: {artifact.archive_path.name}")
    return artifact


def run_tests(
    config: ReleaseConfig,
    options: Sequence[str] = (),
    executor: Optional[BuildExecutor] = None,
) -> str:
    """Run the project's test suite natively and return its output."""
    if executor is None:
        cache_dir = ensure_cache_structure(config.cache_dir)
        executor = CargoExecutor(cache_dir, config.name, exclude=config.exclude)
    return executor.test(Path(config.source_dir), options)
