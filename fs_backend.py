#!/usr/bin/env python3
"""
Filesystem backend abstraction layer.

Provides a unified interface for the file system operations Agent Sync performs
when it writes, lists and removes tool files. Paths are relative to the
backend's base path unless absolute.
"""

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional


class BackendError(Exception):
    """Base exception for backend errors."""
    pass


class BackendWriteError(BackendError):
    """Writing a file failed."""
    pass


class BackendRemoveError(BackendError):
    """Removing a file failed."""
    pass


class FileSystemBackend(ABC):
    """Abstract base class for file system operations."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if path exists."""
        pass

    @abstractmethod
    def is_file(self, path: str) -> bool:
        """Check if path is a regular file."""
        pass

    @abstractmethod
    def mkdir(self, path: str, parents: bool = True, exist_ok: bool = True):
        """Create directory."""
        pass

    @abstractmethod
    def write_text(self, path: str, content: str):
        """Write a UTF-8 text file, creating parent directories."""
        pass

    @abstractmethod
    def remove_file(self, path: str):
        """Remove a file."""
        pass

    @abstractmethod
    def list_files(self, directory: str, pattern: str = '*') -> List[str]:
        """List files directly inside directory matching pattern, sorted."""
        pass

    @abstractmethod
    def checksum(self, path: str) -> str:
        """Calculate SHA256 checksum of file."""
        pass

    @abstractmethod
    def get_location_string(self) -> str:
        """Get string representation of this location."""
        pass


class LocalBackend(FileSystemBackend):
    """Backend for local file system operations."""

    def __init__(self, base_path: Optional[str] = None):
        """Initialize local backend.

        Args:
            base_path: Optional base path for relative operations
        """
        self.base_path = Path(base_path).resolve() if base_path else None

    def _resolve_path(self, path: str) -> Path:
        """Resolve path to absolute Path object."""
        p = Path(path)
        if self.base_path and not p.is_absolute():
            return self.base_path / p
        return p.resolve() if p.is_absolute() else Path.cwd() / p

    def exists(self, path: str) -> bool:
        """Check if path exists."""
        return self._resolve_path(path).exists()

    def is_file(self, path: str) -> bool:
        """Check if path is a regular file."""
        return self._resolve_path(path).is_file()

    def mkdir(self, path: str, parents: bool = True, exist_ok: bool = True):
        """Create directory."""
        try:
            self._resolve_path(path).mkdir(parents=parents, exist_ok=exist_ok)
        except OSError as e:
            raise BackendWriteError(f"Could not create directory {path}: {e}") from e

    def write_text(self, path: str, content: str):
        """Write a UTF-8 text file, creating parent directories."""
        dest_path = self._resolve_path(path)
        try:
            # Ensure destination directory exists
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            # newline='' keeps LF endings on every platform
            with open(dest_path, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        except OSError as e:
            raise BackendWriteError(f"Could not write {dest_path}: {e}") from e

    def remove_file(self, path: str):
        """Remove a file."""
        p = self._resolve_path(path)
        try:
            if p.exists() or p.is_symlink():
                p.unlink()
        except OSError as e:
            raise BackendRemoveError(f"Could not remove {p}: {e}") from e

    def list_files(self, directory: str, pattern: str = '*') -> List[str]:
        """List files directly inside directory matching pattern, sorted."""
        dir_path = self._resolve_path(directory)
        if not dir_path.is_dir():
            return []
        return sorted(p.name for p in dir_path.glob(pattern) if p.is_file())

    def checksum(self, path: str) -> str:
        """Calculate SHA256 checksum of file."""
        sha256_hash = hashlib.sha256()
        file_path = self._resolve_path(path)
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def get_location_string(self) -> str:
        """Get string representation of this location."""
        return str(self.base_path) if self.base_path else "local"
