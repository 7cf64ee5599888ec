"""
Ignore-list adapters for Agent Sync.

The canonical ignore list is a gitignore-style text file. Most tools keep a
file of the same shape; Claude Code keeps ``Read(...)`` deny permissions in
its settings file, which is merged in place and never deleted.
"""

import logging
from pathlib import Path
from typing import List

from .canonical import CanonicalIgnore, ValidationResult
from .config import CANONICAL_DIR, CANONICAL_IGNORE_FILE, CANONICAL_LEGACY_IGNORE_PATH
from .exceptions import ValidationError
from .hal import ToolAdapter, ToolFile
from .paths import ToolLocations, join_relative, split_relative
from .processor import FeatureProcessor
from .utils import dump_json, load_json

logger = logging.getLogger(__name__)


class IgnoreAdapter(ToolAdapter):
    """Base class for single-file ignore adapters."""

    FEATURE = 'ignore'
    FILE_DIR = '.'
    FILE_NAME = ''

    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        return ToolLocations(dir_path=self.FILE_DIR, file_path=self.FILE_NAME)

    def from_canonical(self, canonical: CanonicalIgnore, base_dir, global_mode: bool = False) -> ToolFile:
        return ToolFile(self.TOOL, self.FEATURE, base_dir, self.FILE_DIR, self.FILE_NAME, body=canonical.body)

    def parse_tool_file(self, base_dir, relative_path: str, content: str, global_mode: bool = False) -> ToolFile:
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file, body=content)

    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalIgnore:
        return CanonicalIgnore(CANONICAL_DIR, CANONICAL_IGNORE_FILE, content=tool_file.body,
                               base_dir=output_base_dir)


class CursorIgnoreAdapter(IgnoreAdapter):
    """Cursor: .cursorignore at the project root."""

    TOOL = 'cursor'
    DOCS_URL = "https://cursor.com/docs/context/ignore-files"
    FILE_NAME = '.cursorignore'


class GeminiIgnoreAdapter(IgnoreAdapter):
    """Gemini CLI: .geminiignore at the project root."""

    TOOL = 'gemini'
    DOCS_URL = "https://github.com/google-gemini/gemini-cli/blob/main/docs/cli/gemini-ignore.md"
    FILE_NAME = '.geminiignore'


class WindsurfIgnoreAdapter(IgnoreAdapter):
    """Windsurf: .codeiumignore at the project root."""

    TOOL = 'windsurf'
    DOCS_URL = "https://docs.windsurf.com/context-awareness/windsurf-ignore"
    FILE_NAME = '.codeiumignore'


class KiroIgnoreAdapter(IgnoreAdapter):
    """Kiro: .aiignore at the project root."""

    TOOL = 'kiro'
    DOCS_URL = "https://kiro.dev/docs/"
    FILE_NAME = '.aiignore'


class ClaudeIgnoreAdapter(IgnoreAdapter):
    """Claude Code: ``permissions.deny`` in .claude/settings.local.json.

    Official Documentation: https://docs.anthropic.com/en/docs/claude-code/settings

    Each pattern becomes ``Read(<pattern>)``. Existing settings and deny
    entries are kept; the merged deny list is sorted and de-duplicated.
    """

    TOOL = 'claude'
    DOCS_URL = "https://docs.anthropic.com/en/docs/claude-code/settings"
    FILE_DIR = '.claude'
    FILE_NAME = 'settings.local.json'

    def is_deletable(self, global_mode: bool = False) -> bool:
        return False

    def from_canonical(self, canonical, base_dir, global_mode=False):
        relative_path = join_relative(self.FILE_DIR, self.FILE_NAME)
        path = Path(base_dir) / relative_path
        existing = load_json(path.read_text(encoding='utf-8'), relative_path) if path.is_file() else {}

        permissions = dict(existing.get('permissions') or {})
        deny = [d for d in (permissions.get('deny') or []) if isinstance(d, str)]
        denied = [f"Read({pattern})" for pattern in canonical.patterns]
        permissions['deny'] = sorted(set(deny + denied))

        data = dict(existing)
        data['permissions'] = permissions
        return ToolFile(self.TOOL, self.FEATURE, base_dir, self.FILE_DIR, self.FILE_NAME,
                        content=dump_json(data), data=data)

    def parse_tool_file(self, base_dir, relative_path, content, global_mode=False):
        data = load_json(content, relative_path)
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        content=content, data=data)

    def validate(self, tool_file: ToolFile) -> ValidationResult:
        permissions = (tool_file.data or {}).get('permissions') or {}
        if not isinstance(permissions, dict) or not isinstance(permissions.get('deny', []), list):
            return ValidationResult(False, ValidationError(
                f"Invalid {tool_file.relative_path}: 'permissions.deny' must be a list"))
        return ValidationResult(True)

    def to_canonical(self, tool_file, output_base_dir='.'):
        deny = ((tool_file.data or {}).get('permissions') or {}).get('deny') or []
        patterns = [entry[len('Read('):-1] for entry in deny
                    if isinstance(entry, str) and entry.startswith('Read(') and entry.endswith(')')]
        return CanonicalIgnore(CANONICAL_DIR, CANONICAL_IGNORE_FILE,
                               content='\n'.join(p for p in patterns if p), base_dir=output_base_dir)


IGNORE_ADAPTERS = {adapter.TOOL: adapter for adapter in [
    ClaudeIgnoreAdapter(),
    CursorIgnoreAdapter(),
    GeminiIgnoreAdapter(),
    KiroIgnoreAdapter(),
    WindsurfIgnoreAdapter(),
]}


class IgnoreProcessor(FeatureProcessor):
    """Processor for the shared ignore list."""

    FEATURE = 'ignore'

    def load_canonical_files(self) -> List[CanonicalIgnore]:
        if (self.source_dir / CANONICAL_DIR / CANONICAL_IGNORE_FILE).is_file():
            return [CanonicalIgnore.from_file(self.source_dir, CANONICAL_IGNORE_FILE, CANONICAL_DIR)]

        if (self.source_dir / CANONICAL_LEGACY_IGNORE_PATH).is_file():
            logger.warning(f"Using legacy {CANONICAL_LEGACY_IGNORE_PATH}; "
                           f"move it to {CANONICAL_DIR}/{CANONICAL_IGNORE_FILE}")
            return [CanonicalIgnore.from_file(self.source_dir, CANONICAL_LEGACY_IGNORE_PATH, '.')]

        return []
