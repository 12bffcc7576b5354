"""
Unit tests for saving results and building the zip archive.
"""

import io
import zipfile

import pytest

from uploader.downloads import build_archive, safe_filename, save_bytes, unique_path


class TestSafeFilename:
    """Test cases for reducing names to a safe base name."""

    @pytest.mark.parametrize("name, expected", [
        ("a.jpg", "a.jpg"),
        ("../../etc/passwd", "passwd"),
        ("dir\\sub\\b.jpg", "b.jpg"),
        ("..", "download"),
        ("  ", "download"),
    ])
    def test_reduces_to_base_name(self, name, expected):
        """Test directory stripping and the fallback name."""
        assert safe_filename(name) == expected


class TestSaveBytes:
    """Test cases for writing results to a directory."""

    def test_writes_file(self, download_dir):
        """Test that content lands under the suggested name."""
        path = save_bytes(download_dir, "a.jpg", b"data")
        assert path == download_dir / "a.jpg"
        assert path.read_bytes() == b"data"

    def test_never_overwrites(self, download_dir):
        """Test the " (n)" suffix on name collisions."""
        first = save_bytes(download_dir, "a.jpg", b"one")
        second = save_bytes(download_dir, "a.jpg", b"two")
        third = save_bytes(download_dir, "a.jpg", b"three")

        assert first.name == "a.jpg"
        assert second.name == "a (1).jpg"
        assert third.name == "a (2).jpg"
        assert first.read_bytes() == b"one"

    def test_creates_directory(self, tmp_path):
        """Test that a missing target directory is created."""
        path = save_bytes(tmp_path / "new" / "dir", "a.jpg", b"data")
        assert path.exists()

    def test_unique_path_does_not_write(self, download_dir):
        """Test that unique_path only computes a path."""
        assert unique_path(download_dir, "a.jpg") == download_dir / "a.jpg"
        assert not (download_dir / "a.jpg").exists()


class TestBuildArchive:
    """Test cases for the zip archive."""

    def test_entries(self):
        """Test one entry per result with its content."""
        archive = build_archive([("a.jpg", b"A"), ("b.jpg", b"B")])
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == ["a.jpg", "b.jpg"]
            assert zf.read("a.jpg") == b"A"
            assert zf.read("b.jpg") == b"B"

    def test_repeated_names_kept_apart(self):
        """Test that repeated names inside the archive get a suffix."""
        archive = build_archive([("a.jpg", b"1"), ("a.jpg", b"2")])
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == ["a.jpg", "a (1).jpg"]
            assert zf.read("a (1).jpg") == b"2"
