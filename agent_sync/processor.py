"""
Processor orchestration for Agent Sync.

A FeatureProcessor drives one (feature, tool, base directory) pass:
enumerate existing tool files, load canonical sources, convert, write and,
when asked to, delete orphans. Orphans are only removed after every
generated file has been written.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from fs_backend import BackendError, FileSystemBackend, LocalBackend

from .canonical import CanonicalFile
from .exceptions import ConflictError, FileOperationError, SyncError
from .hal import ToolAdapter, ToolFile
from .paths import join_relative, normalize_filename, resolve_within
from .utils import calculate_content_checksum

logger = logging.getLogger(__name__)

# Errors a malformed artifact may raise while being converted
CONVERSION_ERRORS = (SyncError, ValueError, TypeError, KeyError)


def source_key(name: str) -> str:
    """Stem shared by a canonical source and the tool files generated from it."""
    return normalize_filename(Path(str(name)).name.split('.')[0])


class FeatureProcessor:
    """Base processor shared by every feature."""

    FEATURE = ''

    def __init__(self, adapter: ToolAdapter, base_dir, source_dir=None, global_mode: bool = False,
                 dry_run: bool = False, backend: Optional[FileSystemBackend] = None):
        """Initialize the processor.

        Args:
            adapter: Adapter of the tool this pass targets
            base_dir: Directory tool files are written to and read from
            source_dir: Project root holding ``.agentsync/`` (defaults to base_dir)
            global_mode: Use the tool's user-scope locations
            dry_run: Log writes and deletions instead of performing them
            backend: Filesystem backend (defaults to a LocalBackend)
        """
        self.adapter = adapter
        self.base_dir = Path(base_dir).resolve()
        self.source_dir = Path(source_dir).resolve() if source_dir else self.base_dir
        self.global_mode = global_mode
        self.dry_run = dry_run
        self.backend = backend or LocalBackend(str(self.base_dir))
        self.errors: List[str] = []
        self.failed_sources: List[Tuple[str, ...]] = []
        self.existing: List[ToolFile] = []
        self.generated: List[ToolFile] = []

    @property
    def tool(self) -> str:
        return self.adapter.TOOL

    def _record(self, message: str, *sources):
        logger.error(message)
        self.errors.append(message)
        if sources:
            self.failed_sources.append(tuple(source_key(s) for s in sources if s))

    # Tool side

    def enumerate_tool_paths(self) -> List[str]:
        """Relative paths of the tool files currently on disk for this scope."""
        locations = self.adapter.get_locations(self.global_mode)
        paths = []

        for relative_path in (locations.root_path, locations.single_file_path):
            if relative_path and self.backend.is_file(str(self.base_dir / relative_path)):
                paths.append(relative_path)

        if locations.dir_path and locations.file_path is None:
            pattern = f'*{self.adapter.EXTENSION}'
            for name in self.backend.list_files(str(self.base_dir / locations.dir_path), pattern):
                relative_path = join_relative(locations.dir_path, name)
                if relative_path not in paths:
                    paths.append(relative_path)

        return paths

    def load_tool_files(self, for_deletion: bool = False) -> List[ToolFile]:
        """Load the tool files on disk.

        With ``for_deletion`` the files are only enumerated, not parsed, and
        carry the adapter's deletable flag.
        """
        paths = self.enumerate_tool_paths()

        if for_deletion:
            deletable = self.adapter.is_deletable(self.global_mode)
            return [ToolFile.for_deletion(self.tool, self.FEATURE, self.base_dir, p, deletable) for p in paths]

        tool_files = []
        for relative_path in paths:
            try:
                tool_file = self.adapter.load_from_file(self.base_dir, relative_path, self.global_mode)
            except CONVERSION_ERRORS as e:
                self._record(f"Failed to load {relative_path} for {self.tool}: {e}")
                continue

            result = self.adapter.validate(tool_file)
            if not result.ok:
                self._record(f"Invalid {self.tool} file {relative_path}: {result.error}")
                continue
            tool_files.append(tool_file)

        logger.debug(f"Found {len(tool_files)} {self.tool} {self.FEATURE} file(s) "
                     f"in {self.backend.get_location_string()}")
        return tool_files

    # Canonical side

    def load_canonical_files(self) -> List[CanonicalFile]:
        """Load every canonical source artifact of this feature."""
        raise NotImplementedError("Subclasses must implement load_canonical_files()")

    def _load_canonical_dir(self, canonical_class, relative_dir: str, pattern: str = '*.md') -> List[CanonicalFile]:
        files = []
        for name in self.backend.list_files(str(self.source_dir / relative_dir), pattern):
            try:
                files.append(canonical_class.from_file(self.source_dir, name, relative_dir))
            except SyncError as e:
                self._record(f"Skipping {join_relative(relative_dir, name)}: {e}", name)
        return files

    # Conversion

    @staticmethod
    def _source_names(canonical: CanonicalFile) -> Tuple[str, ...]:
        name = canonical.frontmatter.get('name')
        return (canonical.relative_file, str(name)) if name else (canonical.relative_file,)

    def convert_canonical_to_tool(self, canonical_files: List[CanonicalFile]) -> List[ToolFile]:
        """Convert eligible canonical artifacts; failures are recorded and skipped."""
        tool_files = []
        seen = {}

        for canonical in canonical_files:
            if not self.adapter.is_eligible(canonical):
                continue

            try:
                tool_file = self.adapter.from_canonical(canonical, self.base_dir, self.global_mode)
            except CONVERSION_ERRORS as e:
                self._record(f"Failed to convert {canonical.relative_path} for {self.tool}: {e}",
                             *self._source_names(canonical))
                continue

            result = self.adapter.validate(tool_file)
            if not result.ok:
                self._record(f"Invalid {self.tool} output for {canonical.relative_path}: {result.error}",
                             *self._source_names(canonical))
                continue

            if tool_file.relative_path in seen:
                error = ConflictError(f"{canonical.relative_path} and {seen[tool_file.relative_path]} "
                                      f"both map to {tool_file.relative_path}")
                self._record(f"Failed to convert {canonical.relative_path} for {self.tool}: {error}",
                             *self._source_names(canonical))
                continue

            seen[tool_file.relative_path] = canonical.relative_path
            tool_file.source = canonical
            tool_files.append(tool_file)

        return tool_files

    def convert_tool_to_canonical(self, tool_files: List[ToolFile]) -> List[CanonicalFile]:
        """Convert tool files back to canonical artifacts."""
        canonical_files = []
        for tool_file in tool_files:
            try:
                canonical_files.append(self.adapter.to_canonical(tool_file, self.source_dir))
            except CONVERSION_ERRORS as e:
                self._record(f"Failed to import {tool_file.relative_path} from {self.tool}: {e}")
        return canonical_files

    # Writing and deleting

    def _write(self, path: Path, content: str):
        if not content.endswith('\n'):
            content += '\n'

        if self.dry_run:
            logger.info(f"Would write {path}")
            return

        if self.backend.is_file(str(path)) and \
                self.backend.checksum(str(path)) == calculate_content_checksum(content):
            logger.debug(f"Up to date: {path}")
            return

        try:
            self.backend.write_text(str(path), content)
        except BackendError as e:
            raise FileOperationError(f"Could not write {path}: {e}") from e
        logger.debug(f"Wrote {path}")

    def write_files(self, tool_files: List[ToolFile]) -> int:
        """Write tool files under base_dir; returns the number written."""
        for tool_file in tool_files:
            self._write(resolve_within(self.base_dir, tool_file.relative_path), tool_file.content)
        return len(tool_files)

    def write_canonical_files(self, canonical_files: List[CanonicalFile]) -> int:
        """Write canonical artifacts under source_dir; returns the number written."""
        for canonical in canonical_files:
            self._write(resolve_within(self.source_dir, canonical.relative_path), canonical.to_text())
        return len(canonical_files)

    def _source_failed(self, tool_file: ToolFile) -> bool:
        if not self.failed_sources:
            return False

        locations = self.adapter.get_locations(self.global_mode)
        if tool_file.relative_path in (locations.root_path, locations.single_file_path):
            return True
        return source_key(tool_file.relative_file) in {key for keys in self.failed_sources for key in keys}

    def remove_orphan_files(self, existing: List[ToolFile], generated: List[ToolFile], keep=()) -> int:
        """Delete deletable files that existed before but were not generated.

        Paths in ``keep`` (written by another pass sharing the file) and files
        whose canonical source failed to convert are left in place.
        """
        generated_paths = {f.relative_path for f in generated} | set(keep)
        removed = 0

        for tool_file in existing:
            if tool_file.relative_path in generated_paths:
                continue
            if not tool_file.deletable:
                logger.debug(f"Keeping non-deletable {self.tool} file {tool_file.relative_path}")
                continue
            if self._source_failed(tool_file):
                logger.warning(f"Keeping {tool_file.relative_path} ({self.tool}): its source failed to convert")
                continue

            path = resolve_within(self.base_dir, tool_file.relative_path)
            if self.dry_run:
                logger.info(f"Would delete orphan {path}")
                removed += 1
                continue

            try:
                self.backend.remove_file(str(path))
            except BackendError as e:
                raise FileOperationError(f"Could not remove {path}: {e}") from e
            logger.info(f"Deleted orphan {tool_file.relative_path} ({self.tool})")
            removed += 1

        return removed

    # Passes

    def write_pass(self) -> int:
        """Enumerate existing files, convert and write; returns the number written."""
        self.existing = self.load_tool_files(for_deletion=True)
        canonical_files = self.load_canonical_files()
        self.generated = self.convert_canonical_to_tool(canonical_files)
        return self.write_files(self.generated)

    def remove_orphans(self, keep=()) -> int:
        """Remove orphans left by write_pass(); returns the number removed."""
        if len(self.failed_sources) < len(self.errors):
            logger.warning(f"Skipping orphan removal for {self.tool} {self.FEATURE}: "
                           f"{len(self.errors)} error(s) recorded")
            return 0
        return self.remove_orphan_files(self.existing, self.generated, keep)

    def generate(self, delete: bool = False, keep=()) -> int:
        """Run one generation pass; returns the number of files written.

        ``keep`` lists relative paths that orphan removal must not touch.
        """
        written = self.write_pass()
        if delete:
            self.remove_orphans(keep)
        return written

    def import_files(self) -> int:
        """Run one import pass; returns the number of canonical files written."""
        tool_files = self.load_tool_files()
        if not tool_files:
            logger.debug(f"No {self.tool} {self.FEATURE} files to import")
            return 0

        canonical_files = self.convert_tool_to_canonical(tool_files)
        return self.write_canonical_files(canonical_files)
