"""
Release packaging.

Archives the built binary together with auxiliary files (README, LICENSE)
into ``<name>_<tag>_<triple>.tar.gz``, writes a SHA-256 checksum file for
the archive bytes, and exports both to the output directory.

Archives are reproducible: entries carry a fixed timestamp and owner, and
the gzip header carries no name or timestamp, so the same inputs always
produce the same archive and the same checksum.
"""

import gzip
import logging
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from crossrelease.core.exceptions import PackagingError
from crossrelease.core.filesystem import atomic_copy, temporary_directory
from crossrelease.core.verification import (
    CHECKSUM_SUFFIX,
    HashFormatError,
    HashVerificationError,
    verify_checksum_file,
    write_checksum_file,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """
    Result of one release invocation.

    Attributes:
        binary_path: The binary that was packaged
        archive_path: Exported archive
        checksum_path: Exported checksum file for the archive
    """

    binary_path: Path
    archive_path: Path
    checksum_path: Path


def archive_name(name: str, tag: str, triple: str) -> str:
    """
    Example:
        >>> archive_name("tunein", "latest", "x86_64-unknown-linux-gnu")
        'tunein_latest_x86_64-unknown-linux-gnu.tar.gz'
    """
    return f"{name}_{tag}_{triple}.tar.gz"


def _add_file(tar: tarfile.TarFile, path: Path, arcname: str, mode: int) -> None:
    info = tarfile.TarInfo(arcname)
    info.size = path.stat().st_size
    info.mode = mode
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    with open(path, "rb") as f:
        tar.addfile(info, f)


def create_archive(
    archive_path: Path, binary_path: Path, aux_files: Iterable[Path] = ()
) -> Path:
    """
    Write a reproducible tar.gz holding the binary and auxiliary files.

    All entries sit at the archive's top level under their base names.
    """
    archive_path = Path(archive_path)
    with open(archive_path, "wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
                _add_file(tar, Path(binary_path), Path(binary_path).name, 0o755)
                for aux in aux_files:
                    _add_file(tar, Path(aux), Path(aux).name, 0o644)
    return archive_path


def verify_artifact(archive_path: Path, checksum_path: Optional[Path] = None) -> str:
    """
    Check that an archive matches its checksum file.

    Args:
        archive_path: Archive to verify
        checksum_path: Checksum file (default: ``<archive>.sha256``)

    Returns:
        The verified hex digest

    Raises:
        PackagingError: If a file is missing or the digest does not match
    """
    archive_path = Path(archive_path)
    if checksum_path is None:
        checksum_path = archive_path.with_name(archive_path.name + CHECKSUM_SUFFIX)

    try:
        return verify_checksum_file(archive_path, Path(checksum_path))
    except (FileNotFoundError, HashFormatError, HashVerificationError) as e:
        raise PackagingError(archive_path.name, str(e)) from e


class Packager:
    """
    Package release binaries into the output directory.

    Example:
        >>> packager = Packager("tunein", Path("dist"))
        >>> artifact = packager.package(binary, "v0.4.0", "aarch64-unknown-linux-gnu",
        ...                             [Path("README.md"), Path("LICENSE")])
        >>> artifact.archive_path.name
        'tunein_v0.4.0_aarch64-unknown-linux-gnu.tar.gz'
    """

    def __init__(self, name: str, output_dir: Path):
        self.name = name
        self.output_dir = Path(output_dir)

    def package(
        self,
        binary_path: Path,
        tag: str,
        triple: str,
        aux_files: Iterable[Path] = (),
    ) -> Artifact:
        """
        Archive, checksum and export one binary.

        The archive and checksum are produced in a staging directory and
        copied out only after the checksum verifies; the exported pair is
        verified again in place. A failed export removes whatever part of
        the pair was already copied.

        Raises:
            PackagingError: If any step fails
        """
        binary_path = Path(binary_path)
        name = archive_name(self.name, tag, triple)
        archive_path = self.output_dir / name
        checksum_path = self.output_dir / (name + CHECKSUM_SUFFIX)

        if not binary_path.is_file():
            raise PackagingError(name, f"binary not found: {binary_path}")

        exporting = False
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with temporary_directory(prefix="crossrelease_pkg_") as staging:
                staged_archive = create_archive(staging / name, binary_path, aux_files)
                staged_checksum = write_checksum_file(staged_archive)
                verify_artifact(staged_archive, staged_checksum)

                exporting = True
                atomic_copy(staged_archive, archive_path)
                atomic_copy(staged_checksum, checksum_path)

            digest = verify_artifact(archive_path, checksum_path)
        except PackagingError:
            if exporting:
                _discard(archive_path, checksum_path)
            raise
        except OSError as e:
            if exporting:
                _discard(archive_path, checksum_path)
            raise PackagingError(name, str(e)) from e

        logger.info(f"Packaged {archive_path} (sha256 {digest})")

        return Artifact(
            binary_path=binary_path,
            archive_path=archive_path,
            checksum_path=checksum_path,
        )


def _discard(*paths: Path) -> None:
    """Remove the exported files of a failed packaging run."""
    for path in paths:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed partial export: {path}")
