"""
Checksum file support for release artifacts.

This module reads and writes the conventional two-column checksum format
produced by ``shasum -a 256`` / ``sha256sum``::

    <hex digest>  <filename>

and verifies files against such checksum files using a timing-safe
comparison.
"""

import logging
import secrets
from pathlib import Path
from typing import Dict

from crossrelease.core.filesystem import atomic_write, compute_file_hash

logger = logging.getLogger(__name__)

CHECKSUM_ALGORITHM = "sha256"
CHECKSUM_SUFFIX = ".sha256"


class HashVerificationError(Exception):
    """Exception raised when hash verification fails."""

    pass


class HashFormatError(Exception):
    """Exception raised when hash format is invalid."""

    pass


def _is_valid_sha256(hash_str: str) -> bool:
    if len(hash_str) != 64:
        return False
    try:
        int(hash_str, 16)
    except ValueError:
        return False
    return True


def format_checksum_line(digest: str, filename: str) -> str:
    """
    Format one line of a checksum file.

    Example:
        >>> format_checksum_line("ab" * 32, "tool_latest_x86_64-unknown-linux-gnu.tar.gz")
        'abab...ab  tool_latest_x86_64-unknown-linux-gnu.tar.gz\\n'
    """
    if not _is_valid_sha256(digest):
        raise HashFormatError(f"Invalid SHA-256 digest: {digest!r}")
    return f"{digest.lower()}  {filename}\n"


def write_checksum_file(file_path: Path) -> Path:
    """
    Hash ``file_path`` and write ``<file_path>.sha256`` next to it.

    The checksum file names the file by its base name only, so it stays
    valid when both files are copied elsewhere together.

    Returns:
        Path to the written checksum file
    """
    file_path = Path(file_path)
    digest = compute_file_hash(file_path, CHECKSUM_ALGORITHM)
    checksum_path = file_path.with_name(file_path.name + CHECKSUM_SUFFIX)
    atomic_write(checksum_path, format_checksum_line(digest, file_path.name))
    logger.debug(f"Wrote checksum {digest} for {file_path.name}")
    return checksum_path


def parse_hash_file(hash_file_path: Path) -> Dict[str, str]:
    """
    Parse hash file (SHA256SUMS format).

    Supports formats:
    - hash  filename
    - hash *filename
    - hash filename (with multiple spaces/tabs)

    Path components in the filename column are dropped; entries are keyed
    by base name.

    Returns:
        Dict of filename -> hash

    Raises:
        FileNotFoundError: If hash file doesn't exist
    """
    if not hash_file_path.exists():
        raise FileNotFoundError(f"Hash file not found: {hash_file_path}")

    hashes = {}

    with open(hash_file_path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            parts = line.split(maxsplit=1)
            if len(parts) != 2:
                logger.warning(
                    f"Skipping invalid line {line_num} in {hash_file_path.name}: {line}"
                )
                continue

            hash_value = parts[0].strip()
            filename = parts[1].strip()

            # Binary mode indicator
            if filename.startswith("*"):
                filename = filename[1:].strip()

            hashes[Path(filename).name] = hash_value

    return hashes


def _constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.lower(), b.lower())


def verify_checksum_file(file_path: Path, checksum_path: Path) -> str:
    """
    Verify ``file_path`` against the entry for it in ``checksum_path``.

    Returns:
        The verified hex digest

    Raises:
        FileNotFoundError: If either file is missing
        HashFormatError: If the checksum file has no valid entry for the file
        HashVerificationError: If the digest does not match
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hashes = parse_hash_file(Path(checksum_path))
    expected = hashes.get(file_path.name)
    if expected is None:
        raise HashFormatError(f"{checksum_path} has no entry for {file_path.name}")
    if not _is_valid_sha256(expected):
        raise HashFormatError(f"Invalid SHA-256 digest for {file_path.name}: {expected}")

    actual = compute_file_hash(file_path, CHECKSUM_ALGORITHM)
    if not _constant_time_compare(actual, expected):
        raise HashVerificationError(
            f"Checksum mismatch for {file_path.name}: expected {expected}, got {actual}"
        )

    logger.debug(f"Checksum verified for {file_path.name}")
    return actual
