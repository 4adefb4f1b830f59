"""
Unit tests for the download module.
"""

import hashlib

import pytest
import requests
import responses

from crossrelease.core.download import (
    ChecksumError,
    DownloadError,
    DownloadProgress,
    StreamingHasher,
    download_file,
    format_progress,
    verify_checksum,
)

URL = "http://deb.debian.org/debian/pool/main/l/lz4/liblz4-1_1.9.3-2_arm64.deb"


class TestStreamingHasher:
    """Tests for StreamingHasher."""

    def test_sha256_incremental(self):
        """Test incremental hashing equals one-shot hashing."""
        hasher = StreamingHasher("sha256")
        hasher.update(b"hello ")
        hasher.update(b"world")

        assert hasher.finalize() == hashlib.sha256(b"hello world").hexdigest()

    def test_verify_case_insensitive(self):
        """Test verification ignores hex case."""
        hasher = StreamingHasher()
        hasher.update(b"x")

        assert hasher.verify(hashlib.sha256(b"x").hexdigest().upper())

    def test_unsupported_algorithm(self):
        """Test unsupported algorithms are rejected."""
        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            StreamingHasher("md5")


class TestDownloadProgress:
    """Tests for progress reporting."""

    def test_percentage(self):
        """Test percentage calculation."""
        assert DownloadProgress(512, 1024).percentage == 50.0

    def test_unknown_total(self):
        """Test percentage when the size is unknown."""
        assert DownloadProgress(512, 0).percentage == 0.0

    def test_format(self):
        """Test display format."""
        assert format_progress(DownloadProgress(524288, 1048576)) == "0.5/1.0 MB (50.0%)"


class TestDownloadFile:
    """Tests for download_file."""

    @responses.activate
    def test_download(self, temp_dir):
        """Test a plain download."""
        responses.add(responses.GET, URL, body=b"package", status=200)
        destination = temp_dir / "liblz4-1.deb"

        result = download_file(URL, destination)

        assert result == destination
        assert destination.read_bytes() == b"package"

    @responses.activate
    def test_download_with_checksum(self, temp_dir):
        """Test a download with a matching checksum."""
        body = b"package"
        responses.add(responses.GET, URL, body=body, status=200)

        download_file(
            URL, temp_dir / "pkg.deb", expected_sha256=hashlib.sha256(body).hexdigest()
        )

        assert (temp_dir / "pkg.deb").read_bytes() == body

    @responses.activate
    def test_checksum_mismatch_leaves_nothing(self, temp_dir):
        """Test a checksum mismatch removes the partial download."""
        responses.add(responses.GET, URL, body=b"tampered", status=200)

        with pytest.raises(ChecksumError, match="Checksum mismatch"):
            download_file(URL, temp_dir / "pkg.deb", expected_sha256="0" * 64)

        assert list(temp_dir.iterdir()) == []

    @responses.activate
    def test_http_error(self, temp_dir):
        """Test an error status raises DownloadError."""
        responses.add(responses.GET, URL, status=404)

        with pytest.raises(DownloadError, match="404"):
            download_file(URL, temp_dir / "pkg.deb")

        assert list(temp_dir.iterdir()) == []

    @responses.activate
    def test_connection_error(self, temp_dir):
        """Test a connection failure raises DownloadError."""
        responses.add(
            responses.GET, URL, body=requests.exceptions.ConnectionError("refused")
        )

        with pytest.raises(DownloadError):
            download_file(URL, temp_dir / "pkg.deb")

    @responses.activate
    def test_not_retried(self, temp_dir):
        """Test that a failed download is attempted exactly once."""
        responses.add(responses.GET, URL, status=503)

        with pytest.raises(DownloadError):
            download_file(URL, temp_dir / "pkg.deb")

        assert len(responses.calls) == 1

    @responses.activate
    def test_progress_callback(self, temp_dir):
        """Test that progress reaches the full size."""
        body = b"x" * 200_000
        responses.add(responses.GET, URL, body=body, status=200)
        updates = []

        download_file(URL, temp_dir / "pkg.deb", progress_callback=updates.append)

        assert updates
        assert updates[-1].bytes_downloaded == len(body)
        assert updates[-1].percentage == 100.0

    @responses.activate
    def test_session_reused(self, temp_dir):
        """Test downloading through a caller's session."""
        responses.add(responses.GET, URL, body=b"package", status=200)

        with requests.Session() as session:
            download_file(URL, temp_dir / "pkg.deb", session=session)

        assert (temp_dir / "pkg.deb").exists()

    def test_empty_url(self, temp_dir):
        """Test argument validation."""
        with pytest.raises(ValueError):
            download_file("", temp_dir / "pkg.deb")


class TestVerifyChecksum:
    """Tests for verify_checksum."""

    def test_match_and_mismatch(self, temp_dir):
        """Test verification of an existing file."""
        path = temp_dir / "f"
        path.write_bytes(b"abc")

        assert verify_checksum(path, hashlib.sha256(b"abc").hexdigest())
        assert not verify_checksum(path, "0" * 64)

    def test_missing_file(self, temp_dir):
        """Test that a missing file raises."""
        with pytest.raises(FileNotFoundError):
            verify_checksum(temp_dir / "missing", "0" * 64)
