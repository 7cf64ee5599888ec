"""Tests for the filesystem backend."""

import hashlib
from pathlib import Path
from unittest.mock import patch

import pytest

from fs_backend import BackendRemoveError, BackendWriteError, LocalBackend


class TestLocalBackend:
    """Test LocalBackend operations."""

    def test_write_creates_parents(self, temp_dir: Path):
        """Test that writes create missing directories."""
        backend = LocalBackend(str(temp_dir))

        backend.write_text('a/b/c.md', 'hello\n')

        assert (temp_dir / 'a' / 'b' / 'c.md').read_text() == 'hello\n'
        assert backend.is_file('a/b/c.md')

    def test_write_keeps_lf(self, temp_dir: Path):
        """Test that line endings are written as given."""
        LocalBackend(str(temp_dir)).write_text('x.md', 'one\ntwo\n')

        assert (temp_dir / 'x.md').read_bytes() == b'one\ntwo\n'

    def test_list_files_sorted_and_filtered(self, temp_dir: Path):
        """Test listing by pattern."""
        for name in ('b.md', 'a.md', 'c.txt'):
            (temp_dir / name).write_text('x')
        (temp_dir / 'd.md').mkdir()

        assert LocalBackend(str(temp_dir)).list_files('.', '*.md') == ['a.md', 'b.md']

    def test_list_missing_directory(self, temp_dir: Path):
        """Test that a missing directory lists nothing."""
        assert LocalBackend(str(temp_dir)).list_files('missing') == []

    def test_remove_file(self, temp_dir: Path):
        """Test removing existing and missing files."""
        backend = LocalBackend(str(temp_dir))
        (temp_dir / 'x.md').write_text('x')

        backend.remove_file('x.md')
        backend.remove_file('x.md')

        assert not backend.exists('x.md')

    def test_checksum(self, temp_dir: Path):
        """Test SHA256 checksum of a file."""
        (temp_dir / 'x.md').write_bytes(b'content')

        assert LocalBackend(str(temp_dir)).checksum('x.md') == hashlib.sha256(b'content').hexdigest()

    def test_absolute_paths(self, temp_dir: Path):
        """Test that absolute paths bypass the base path."""
        other = temp_dir / 'other'
        backend = LocalBackend(str(temp_dir / 'base'))

        backend.write_text(str(other / 'x.md'), 'x')

        assert (other / 'x.md').exists()

    def test_location_string(self, temp_dir: Path):
        assert LocalBackend(str(temp_dir)).get_location_string() == str(temp_dir)
        assert LocalBackend().get_location_string() == 'local'


class TestLocalBackendErrors:
    """Test error translation in LocalBackend."""

    def test_write_error(self, temp_dir: Path):
        """Test that OS errors on write become BackendWriteError."""
        (temp_dir / 'blocker').write_text('x')

        with pytest.raises(BackendWriteError):
            LocalBackend(str(temp_dir)).write_text('blocker/x.md', 'x')

    def test_remove_error(self, temp_dir: Path):
        """Test that OS errors on remove become BackendRemoveError."""
        (temp_dir / 'x.md').write_text('x')

        with patch.object(Path, 'unlink', side_effect=PermissionError("denied")):
            with pytest.raises(BackendRemoveError, match="denied"):
                LocalBackend(str(temp_dir)).remove_file('x.md')

    def test_mkdir_error(self, temp_dir: Path):
        """Test that OS errors on mkdir become BackendWriteError."""
        (temp_dir / 'blocker').write_text('x')

        with pytest.raises(BackendWriteError):
            LocalBackend(str(temp_dir)).mkdir('blocker/sub')
