"""
Network download with progress tracking and checksum verification.

This module provides the HTTP layer behind the package cache:
- HTTP/HTTPS downloads with TLS verification
- Streaming into a temporary file that is renamed into place on success
- Progress reporting (bytes, percentage)
- Checksum verification during download

Failed downloads are never retried here. Retrying a release is the
caller's decision.
"""

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int

    @property
    def percentage(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.bytes_downloaded / self.total_bytes * 100

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


class DownloadError(Exception):
    """Exception raised when download fails."""

    pass


class ChecksumError(Exception):
    """Exception raised when checksum verification fails."""

    pass


class StreamingHasher:
    """Compute hash incrementally for streaming downloads."""

    def __init__(self, algorithm: str = "sha256"):
        """
        Initialize streaming hasher.

        Args:
            algorithm: Hash algorithm ('sha256')

        Raises:
            ValueError: If algorithm is not supported
        """
        self.algorithm = algorithm.lower()

        if self.algorithm != "sha256":
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        self.hasher = hashlib.sha256()

    def update(self, data: bytes):
        """Add data to hash computation."""
        self.hasher.update(data)

    def finalize(self) -> str:
        """Get final hash value as hex string."""
        return self.hasher.hexdigest()

    def verify(self, expected_hash: str) -> bool:
        """Check if computed hash matches expected value (case-insensitive)."""
        return self.finalize().lower() == expected_hash.lower()


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Download file from URL to destination with checksum verification.

    The body is streamed into a temporary file next to ``destination`` and
    renamed into place only after the whole body (and checksum, if given)
    checked out, so concurrent readers never observe a partial file.

    Args:
        url: URL to download from
        destination: Local path to save file
        expected_sha256: Expected SHA256 hash (verified during download)
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        session: Optional requests session to reuse connections

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the request fails or returns an error status
        ChecksumError: If checksum doesn't match expected value
        ValueError: If URL or destination is invalid

    Example:
        >>> url = "http://deb.debian.org/debian/pool/main/l/lz4/liblz4-1_1.9.3-2_arm64.deb"
        >>> download_file(url, Path("cache/liblz4-1_1.9.3-2_arm64.deb"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    http = session or requests
    logger.info(f"Downloading {url}")

    try:
        response = http.get(url, stream=True, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except RequestException as e:
        raise DownloadError(f"Download of {url} failed: {e}") from e

    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0
    hasher = StreamingHasher("sha256") if expected_sha256 else None

    temp_fd, temp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
    )
    temp_path = Path(temp_name)
    downloaded = 0

    try:
        with os.fdopen(temp_fd, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                f.write(chunk)
                downloaded += len(chunk)
                if hasher:
                    hasher.update(chunk)
                if progress_callback:
                    progress_callback(
                        DownloadProgress(
                            bytes_downloaded=downloaded,
                            total_bytes=total_size or downloaded,
                        )
                    )

        if hasher and not hasher.verify(expected_sha256):
            raise ChecksumError(
                f"Checksum mismatch for {destination.name}: "
                f"expected {expected_sha256}, got {hasher.finalize()}"
            )

        temp_path.replace(destination)
    except RequestException as e:
        temp_path.unlink(missing_ok=True)
        raise DownloadError(f"Download of {url} interrupted: {e}") from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def verify_checksum(file_path: Path, expected_sha256: str) -> bool:
    """
    Verify file SHA256 checksum.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = StreamingHasher("sha256")
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)

    return hasher.verify(expected_sha256)


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> print(format_progress(DownloadProgress(524288, 1048576)))
        0.5/1.0 MB (50.0%)
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024

    if progress.total_bytes > 0:
        return f"{mb_downloaded:.1f}/{mb_total:.1f} MB ({progress.percentage:.1f}%)"
    return f"{mb_downloaded:.1f} MB"
