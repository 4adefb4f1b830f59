"""
File system utilities for crossrelease.

This module provides the file operations the pipeline is built on:
- Package archive extraction (Debian .deb and tar, gz/xz/bz2/zstd compressed)
  into a shared root, with path traversal protection
- Safe file operations (atomic writes and copies, guarded deletion)
- File hashing and temporary directories
"""

import hashlib
import io
import logging
import posixpath
import shutil
import sys
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional, Union

import zstandard

logger = logging.getLogger(__name__)

AR_MAGIC = b"!<arch>\n"
AR_HEADER_SIZE = 60
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

# Compressions tarfile and zstandard can read between them
_PAYLOAD_SUFFIXES = ("", ".gz", ".xz", ".bz2", ".zst")


# ============================================================================
# Error Handling
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class ArchiveCollisionError(ArchiveExtractionError):
    """Archive member collides with an incompatible existing path."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/build/sysroot/usr/lib"), Path("/build/sysroot"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _normalize_member_name(name: str) -> str:
    """Strip the leading './' or '/' tar members commonly carry."""
    normalized = posixpath.normpath(name.lstrip("/"))
    return "" if normalized == "." else normalized


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def _rewrite_symlink(name: str, linkname: str) -> str:
    """
    Return a link target for member ``name`` that stays inside the root.

    Absolute targets (``/lib/x/liblzma.so.5``) are made relative to the
    link's directory so they resolve against the extraction root instead of
    the host.

    Raises:
        InsecureArchiveError: If a relative target escapes the root
    """
    link_dir = posixpath.dirname(name)

    if linkname.startswith("/"):
        target = posixpath.normpath(linkname.lstrip("/"))
        return posixpath.relpath(target, link_dir or ".")

    target = posixpath.normpath(posixpath.join(link_dir, linkname))
    if target == ".." or target.startswith("../"):
        raise InsecureArchiveError(
            f"Symlink '{name}' -> '{linkname}' points outside the extraction root"
        )
    return linkname


def _prepare_destination(member: tarfile.TarInfo, target: Path) -> None:
    """
    Clear the way for ``member`` at ``target`` (last extracted wins).

    Raises:
        ArchiveCollisionError: If a file would replace a directory or the
            other way around
    """
    if member.isdir():
        if target.is_symlink() or (target.exists() and not target.is_dir()):
            raise ArchiveCollisionError(
                f"Directory '{member.name}' collides with an existing file"
            )
        return

    if target.is_dir() and not target.is_symlink():
        raise ArchiveCollisionError(
            f"'{member.name}' collides with an existing directory"
        )

    if target.exists() or target.is_symlink():
        logger.debug(f"Overwriting existing path: {member.name}")
        target.unlink()


def _extract_tar(tar: tarfile.TarFile, destination: Path) -> List[str]:
    """Extract a tar archive into ``destination``, returning member paths."""
    safe_members = []
    extracted = []

    for member in tar.getmembers():
        name = _normalize_member_name(member.name)
        if not name:
            continue
        _validate_archive_path(name, destination)
        member.name = name

        if member.issym():
            member.linkname = _rewrite_symlink(name, member.linkname)
        elif member.islnk():
            member.linkname = _normalize_member_name(member.linkname)
            _validate_archive_path(member.linkname, destination)
        elif not (member.isfile() or member.isdir()):
            logger.debug(f"Skipping special archive member: {name}")
            continue

        _prepare_destination(member, destination / name)
        safe_members.append(member)
        if not member.isdir():
            extracted.append(name)

    # Paths were validated above; the data filter adds a second check on 3.12+
    if sys.version_info >= (3, 12):
        tar.extractall(destination, members=safe_members, filter="data")
    else:
        tar.extractall(destination, members=safe_members)

    return extracted


def read_ar_members(data: bytes) -> Dict[str, bytes]:
    """
    Split a Unix ``ar`` archive (the .deb container) into its members.

    Returns:
        Ordered mapping of member name to member bytes

    Raises:
        ArchiveExtractionError: If the archive is malformed or truncated

    Example:
        >>> members = read_ar_members(Path("libzstd1_1.4.8+dfsg-2.1_arm64.deb").read_bytes())
        >>> list(members)
        ['debian-binary', 'control.tar.xz', 'data.tar.xz']
    """
    if not data.startswith(AR_MAGIC):
        raise ArchiveExtractionError("Not an ar archive (bad magic)")

    members = {}
    offset = len(AR_MAGIC)

    while offset < len(data):
        header = data[offset : offset + AR_HEADER_SIZE]
        if len(header) < AR_HEADER_SIZE or header[58:60] != b"`\n":
            raise ArchiveExtractionError(f"Corrupt ar header at offset {offset}")

        name = header[0:16].decode("ascii", errors="replace").strip().rstrip("/")
        try:
            size = int(header[48:58].decode("ascii").strip())
        except ValueError as e:
            raise ArchiveExtractionError(
                f"Corrupt ar member size at offset {offset}"
            ) from e

        start = offset + AR_HEADER_SIZE
        end = start + size
        if end > len(data):
            raise ArchiveExtractionError(f"Truncated ar member: {name}")

        members[name] = data[start:end]
        # Members are aligned to even offsets
        offset = end + (size % 2)

    return members


def _deb_payload(data: bytes) -> bytes:
    """Return the data.tar member of a .deb package."""
    members = read_ar_members(data)
    for name, payload in members.items():
        if name.startswith("data.tar"):
            if name[len("data.tar"):] not in _PAYLOAD_SUFFIXES:
                raise UnsupportedArchiveFormat(
                    f"Unsupported package payload compression: {name}"
                )
            return payload
    raise ArchiveExtractionError("Package has no data.tar member")


def _decompress_zstd(data: bytes) -> bytes:
    """Decompress a zstd stream (frames without a content size included)."""
    output = io.BytesIO()
    dctx = zstandard.ZstdDecompressor()
    dctx.copy_stream(io.BytesIO(data), output)
    return output.getvalue()


def extract_archive_bytes(data: bytes, destination: Union[str, Path]) -> List[str]:
    """
    Extract an in-memory package archive into a destination directory.

    Supported formats:
    - Debian packages (.deb): the ``data.tar`` payload is extracted, which
      is what ``dpkg -x`` does
    - tar, .tar.gz, .tar.xz, .tar.bz2, .tar.zst

    The destination may already hold files from other archives. Existing
    files at a member's path are replaced (last extracted wins). A file
    that would replace a directory, or a directory that would replace a
    file, is an error.

    Args:
        data: Archive bytes
        destination: Directory to extract to

    Returns:
        Relative POSIX paths of the extracted non-directory members

    Raises:
        UnsupportedArchiveFormat: If the payload compression is unsupported
        InsecureArchiveError: If archive contains malicious paths or links
        ArchiveCollisionError: If a member collides with an incompatible path
        ArchiveExtractionError: If extraction fails for any other reason
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)

    try:
        payload = _deb_payload(data) if data.startswith(AR_MAGIC) else data
        if payload.startswith(ZSTD_MAGIC):
            payload = _decompress_zstd(payload)
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as tar:
            return _extract_tar(tar, destination)
    except ArchiveExtractionError:
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract archive: {e}") from e


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    Example:
        >>> atomic_write('tool_latest_x86_64-unknown-linux-gnu.tar.gz.sha256', 'ab12...  tool.tar.gz\\n')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def atomic_copy(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """Copy a file so that ``destination`` is either absent or complete."""
    source = Path(source)
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "wb") as dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst)
        temp_path.replace(destination)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise

    return destination


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


# ============================================================================
# File Hashing
# ============================================================================


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "sha256", chunk_size: int = 65536
) -> str:
    """
    Compute hash of a file, reading it in chunks.

    Example:
        >>> compute_file_hash('tool_latest_x86_64-unknown-linux-gnu.tar.gz')
        'a3d5f6e8...'
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FilesystemError(f"File not found: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


# ============================================================================
# Temporary File/Directory Management
# ============================================================================


@contextmanager
def temporary_directory(
    prefix: str = "crossrelease_",
    parent: Optional[Union[str, Path]] = None,
    cleanup: bool = True,
):
    """
    Context manager for temporary directory with automatic cleanup.

    Example:
        >>> with temporary_directory() as tmp:
        ...     (tmp / 'file.txt').write_text('test')
    """
    if parent is not None:
        Path(parent).mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))

    try:
        yield temp_dir
    finally:
        if cleanup and temp_dir.exists():
            safe_rmtree(temp_dir)


__all__ = [
    # Exceptions
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ArchiveCollisionError",
    # Path utilities
    "is_relative_to",
    # Archive extraction
    "read_ar_members",
    "extract_archive_bytes",
    # Safe file operations
    "atomic_write",
    "atomic_copy",
    "safe_rmtree",
    # Hashing
    "compute_file_hash",
    # Temporary files
    "temporary_directory",
]
