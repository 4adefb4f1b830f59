"""
Unit tests for checksum files.
"""

import hashlib

import pytest

from crossrelease.core.verification import (
    HashFormatError,
    HashVerificationError,
    format_checksum_line,
    parse_hash_file,
    verify_checksum_file,
    write_checksum_file,
)

ARCHIVE = "tunein_v0.4.0_aarch64-unknown-linux-gnu.tar.gz"


@pytest.fixture
def archive(temp_dir):
    path = temp_dir / ARCHIVE
    path.write_bytes(b"archive bytes")
    return path


class TestFormatChecksumLine:
    """Tests for format_checksum_line."""

    def test_sha256sum_format(self):
        """Test the two-space sha256sum layout."""
        digest = "AB" * 32

        assert format_checksum_line(digest, ARCHIVE) == f"{'ab' * 32}  {ARCHIVE}\n"

    @pytest.mark.parametrize("digest", ["", "abc", "zz" * 32, "ab" * 33])
    def test_invalid_digest(self, digest):
        """Test that malformed digests are refused."""
        with pytest.raises(HashFormatError):
            format_checksum_line(digest, ARCHIVE)


class TestWriteChecksumFile:
    """Tests for write_checksum_file."""

    def test_writes_sibling_file(self, archive):
        """Test the checksum file name and content."""
        checksum = write_checksum_file(archive)

        assert checksum.name == ARCHIVE + ".sha256"
        assert checksum.parent == archive.parent
        assert checksum.read_text() == (
            f"{hashlib.sha256(b'archive bytes').hexdigest()}  {ARCHIVE}\n"
        )


class TestParseHashFile:
    """Tests for parse_hash_file."""

    def test_formats(self, temp_dir):
        """Test text, binary and path-qualified entries."""
        path = temp_dir / "SHA256SUMS"
        path.write_text(
            "# release checksums\n"
            f"{'a' * 64}  one.tar.gz\n"
            f"{'b' * 64} *two.tar.gz\n"
            f"{'c' * 64}  dist/three.tar.gz\n"
            "\n"
            "garbage\n"
        )

        assert parse_hash_file(path) == {
            "one.tar.gz": "a" * 64,
            "two.tar.gz": "b" * 64,
            "three.tar.gz": "c" * 64,
        }

    def test_missing(self, temp_dir):
        """Test a missing hash file."""
        with pytest.raises(FileNotFoundError):
            parse_hash_file(temp_dir / "missing")


class TestVerifyChecksumFile:
    """Tests for verify_checksum_file."""

    def test_valid(self, archive):
        """Test verification of a freshly written checksum."""
        checksum = write_checksum_file(archive)

        assert verify_checksum_file(archive, checksum) == hashlib.sha256(b"archive bytes").hexdigest()

    def test_modified_archive(self, archive):
        """Test that changed bytes fail verification."""
        checksum = write_checksum_file(archive)
        archive.write_bytes(b"archive bytes!")

        with pytest.raises(HashVerificationError):
            verify_checksum_file(archive, checksum)

    def test_no_entry(self, archive, temp_dir):
        """Test a checksum file that does not mention the archive."""
        checksum = temp_dir / "other.sha256"
        checksum.write_text(f"{'a' * 64}  other.tar.gz\n")

        with pytest.raises(HashFormatError, match="no entry"):
            verify_checksum_file(archive, checksum)

    def test_malformed_entry(self, archive, temp_dir):
        """Test an entry whose digest is not SHA-256."""
        checksum = temp_dir / "bad.sha256"
        checksum.write_text(f"deadbeef  {ARCHIVE}\n")

        with pytest.raises(HashFormatError):
            verify_checksum_file(archive, checksum)

    def test_missing_archive(self, temp_dir):
        """Test that a missing archive raises."""
        checksum = temp_dir / "x.sha256"
        checksum.write_text(f"{'a' * 64}  x\n")

        with pytest.raises(FileNotFoundError):
            verify_checksum_file(temp_dir / "x", checksum)
