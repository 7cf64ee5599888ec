"""
Path resolution and sanitization for Agent Sync.

Adapters describe where their files live with ToolLocations. Any identifier
that ends up in a filename goes through sanitize_identifier, and every path
written or removed is checked with resolve_within.
"""

import re
from pathlib import Path, PurePosixPath
from typing import Optional

from .exceptions import ValidationError

_ALLOWED_CHARS = re.compile(r'[^A-Za-z0-9_-]')
_SEPARATORS = re.compile(r'[/\\]+')
_WHITESPACE = re.compile(r'\s+')
_HYPHENS = re.compile(r'-{2,}')


class ToolLocations:
    """Where a tool keeps one kind of artifact for a given scope.

    ``dir_path``/``file_path`` describe per-artifact files (``file_path`` is
    set for single-file artifacts such as ignore lists and MCP documents).
    ``root_dir_path``/``root_file_path`` describe the root entry point of
    rule-like artifacts.
    """

    def __init__(self, dir_path: Optional[str] = None, file_path: Optional[str] = None,
                 root_dir_path: Optional[str] = None, root_file_path: Optional[str] = None):
        self.dir_path = dir_path
        self.file_path = file_path
        self.root_dir_path = root_dir_path
        self.root_file_path = root_file_path

    @property
    def root_path(self) -> Optional[str]:
        if self.root_file_path is None:
            return None
        return join_relative(self.root_dir_path or '.', self.root_file_path)

    @property
    def single_file_path(self) -> Optional[str]:
        if self.file_path is None:
            return None
        return join_relative(self.dir_path or '.', self.file_path)

    def __eq__(self, other):
        if not isinstance(other, ToolLocations):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return (f"ToolLocations(dir_path={self.dir_path!r}, file_path={self.file_path!r}, "
                f"root_dir_path={self.root_dir_path!r}, root_file_path={self.root_file_path!r})")


def join_relative(relative_dir: str, relative_file: str) -> str:
    """Join a relative directory and filename into a POSIX relative path."""
    if not relative_dir or relative_dir == '.':
        return PurePosixPath(relative_file).as_posix()
    return (PurePosixPath(relative_dir) / relative_file).as_posix()


def split_relative(relative_path: str) -> tuple[str, str]:
    """Split a POSIX relative path into (directory, filename)."""
    path = PurePosixPath(relative_path)
    parent = path.parent.as_posix()
    return (parent if parent else '.'), path.name


def strip_extension(filename: str, extension: str) -> str:
    """Remove ``extension`` (which may span several suffixes) from ``filename``."""
    if extension and filename.endswith(extension):
        return filename[:-len(extension)]
    return PurePosixPath(filename).stem


def sanitize_identifier(value: str) -> str:
    """Reduce a user-supplied identifier to a safe filename stem.

    Path separators and ``..`` segments are removed, whitespace becomes a
    hyphen and anything outside ``[A-Za-z0-9_-]`` is dropped.

    Raises:
        ValidationError: If nothing is left after sanitization
    """
    if value is None:
        raise ValidationError("Identifier is empty")

    segments = [s for s in _SEPARATORS.split(str(value)) if s not in ('', '.', '..')]
    cleaned = '-'.join(_WHITESPACE.sub('-', s.strip()) for s in segments)
    cleaned = cleaned.replace('..', '')
    cleaned = _ALLOWED_CHARS.sub('', cleaned)
    cleaned = _HYPHENS.sub('-', cleaned).strip('-')

    if not cleaned:
        raise ValidationError(f"Identifier '{value}' is empty after sanitization")
    return cleaned


def normalize_filename(stem: str) -> str:
    """Convert PascalCase, camelCase and snake_case stems to kebab-case.

    ``MyRule`` -> ``my-rule``, ``api_v2_rules`` -> ``api-v2-rules``,
    ``HTTPServer2Go`` -> ``http-server2-go``. Already normalized stems are
    returned unchanged.
    """
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1-\2', stem)
    result = re.sub(r'([a-z0-9])([A-Z])', r'\1-\2', result)
    result = re.sub(r'[_\s]+', '-', result)
    return _HYPHENS.sub('-', result).strip('-').lower()


def derive_filename(value: str, extension: str) -> str:
    """Build a filename from a content-bearing field such as a sub-agent name."""
    return f"{sanitize_identifier(normalize_filename(str(value)))}{extension}"


def resolve_within(base_dir: Path, relative_path: str) -> Path:
    """Resolve ``relative_path`` under ``base_dir`` and refuse to escape it.

    Raises:
        ValidationError: If the resolved path lies outside ``base_dir``
    """
    base = Path(base_dir).resolve()
    target = (base / relative_path).resolve()
    if target != base and base not in target.parents:
        raise ValidationError(f"Path '{relative_path}' escapes base directory {base}")
    return target
