"""
Slash-command adapters for Agent Sync.

Most tools keep one markdown file per command with an optional
``description``. Gemini CLI uses TOML files and Kiro uses JSON hook files
triggered manually by the user.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import toml

from .canonical import CanonicalCommand, ValidationResult
from .config import CANONICAL_COMMANDS_DIR
from .exceptions import ValidationError
from .hal import ToolAdapter, ToolFile, collect_passthrough, merge_tool_section, with_tool_section
from .paths import ToolLocations, normalize_filename, sanitize_identifier, split_relative, strip_extension
from .processor import FeatureProcessor
from .utils import dump_json, load_json, parse_frontmatter, strip_embedded_frontmatter, trim_body

logger = logging.getLogger(__name__)


class CommandAdapter(ToolAdapter):
    """Base class for markdown command adapters."""

    FEATURE = 'commands'
    SUPPORTED_FIELDS = ['description']

    COMMANDS_DIR: Optional[str] = None
    GLOBAL_COMMANDS_DIR: Optional[str] = None
    HAS_FRONTMATTER = True

    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        return ToolLocations(dir_path=self.GLOBAL_COMMANDS_DIR if global_mode else self.COMMANDS_DIR)

    def _directory(self, global_mode: bool) -> str:
        directory = self.get_locations(global_mode).dir_path
        if not directory:
            raise ValidationError(f"{self.TOOL} has no commands location in "
                                  f"{'global' if global_mode else 'project'} mode")
        return directory

    def native_frontmatter(self, command: CanonicalCommand) -> Dict[str, Any]:
        frontmatter = {}
        if command.description is not None:
            frontmatter['description'] = command.description
        return frontmatter

    def canonical_fields(self, frontmatter: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
        """Map native frontmatter back to (description, passthrough)."""
        return frontmatter.get('description'), collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)

    def from_canonical(self, canonical: CanonicalCommand, base_dir, global_mode: bool = False) -> ToolFile:
        frontmatter = {}
        if self.HAS_FRONTMATTER:
            frontmatter = merge_tool_section(self.native_frontmatter(canonical), canonical, self.TOOL)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, self._directory(global_mode),
                        self.tool_filename(canonical), frontmatter=frontmatter,
                        body=strip_embedded_frontmatter(canonical.body))

    def parse_tool_file(self, base_dir, relative_path: str, content: str, global_mode: bool = False) -> ToolFile:
        if self.HAS_FRONTMATTER:
            frontmatter, body = parse_frontmatter(content)
        else:
            frontmatter, body = {}, trim_body(content)
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        frontmatter=frontmatter, body=body)

    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalCommand:
        description, passthrough = self.canonical_fields(tool_file.frontmatter)
        frontmatter = {'targets': ['*']}
        if description is not None:
            frontmatter['description'] = description
        with_tool_section(frontmatter, self.TOOL, passthrough)
        return CanonicalCommand(CANONICAL_COMMANDS_DIR, self.canonical_filename(tool_file),
                                frontmatter=frontmatter, body=tool_file.body, base_dir=output_base_dir)


class ClaudeCommandAdapter(CommandAdapter):
    """Claude Code custom slash commands.

    Official Documentation: https://docs.anthropic.com/en/docs/claude-code/slash-commands

    Fields other than ``description`` (``argument-hint``, ``allowed-tools``,
    ``model``) travel through the ``claude`` section.
    """

    TOOL = 'claude'
    DOCS_URL = "https://docs.anthropic.com/en/docs/claude-code/slash-commands"
    COMMANDS_DIR = '.claude/commands'
    GLOBAL_COMMANDS_DIR = '.claude/commands'
    SUPPORTS_GLOBAL = True


class CursorCommandAdapter(CommandAdapter):
    """Cursor commands: plain markdown in .cursor/commands/."""

    TOOL = 'cursor'
    DOCS_URL = "https://cursor.com/docs/agent/chat/commands"
    SUPPORTED_FIELDS = []
    COMMANDS_DIR = '.cursor/commands'
    GLOBAL_COMMANDS_DIR = '.cursor/commands'
    HAS_FRONTMATTER = False
    SUPPORTS_GLOBAL = True


class CopilotCommandAdapter(CommandAdapter):
    """GitHub Copilot prompt files: .github/prompts/*.prompt.md."""

    TOOL = 'copilot'
    DOCS_URL = "https://code.visualstudio.com/docs/copilot/customization/prompt-files"
    EXTENSION = '.prompt.md'
    COMMANDS_DIR = '.github/prompts'


class OpenCodeCommandAdapter(CommandAdapter):
    """OpenCode commands: .opencode/command/*.md."""

    TOOL = 'opencode'
    DOCS_URL = "https://opencode.ai/docs/commands/"
    COMMANDS_DIR = '.opencode/command'


class GeminiCommandAdapter(CommandAdapter):
    """Gemini CLI custom commands: .gemini/commands/*.toml.

    Official Documentation: https://github.com/google-gemini/gemini-cli/blob/main/docs/cli/custom-commands.md

    Each file holds ``description`` and ``prompt``; the command body is the
    prompt.
    """

    TOOL = 'gemini'
    DOCS_URL = "https://github.com/google-gemini/gemini-cli/blob/main/docs/cli/custom-commands.md"
    SUPPORTED_FIELDS = ['description', 'prompt']
    EXTENSION = '.toml'
    COMMANDS_DIR = '.gemini/commands'
    GLOBAL_COMMANDS_DIR = '.gemini/commands'
    SUPPORTS_GLOBAL = True

    def from_canonical(self, canonical, base_dir, global_mode=False):
        data = {}
        if canonical.description is not None:
            data['description'] = canonical.description
        data['prompt'] = strip_embedded_frontmatter(canonical.body)
        merge_tool_section(data, canonical, self.TOOL)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, self._directory(global_mode),
                        self.tool_filename(canonical), content=toml.dumps(data), data=data)

    def parse_tool_file(self, base_dir, relative_path, content, global_mode=False):
        try:
            data = toml.loads(content)
        except toml.TomlDecodeError as e:
            raise ValidationError(f"Invalid TOML in {relative_path}: {e}") from e
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        body=str(data.get('prompt') or ''), content=content, data=data)

    def validate(self, tool_file):
        if not isinstance((tool_file.data or {}).get('prompt'), str):
            return ValidationResult(False, ValidationError(
                f"Missing required field 'prompt' in {tool_file.relative_path}"))
        return ValidationResult(True)

    def to_canonical(self, tool_file, output_base_dir='.'):
        data = dict(tool_file.data or {})
        description, passthrough = self.canonical_fields(data)
        frontmatter = {'targets': ['*']}
        if description is not None:
            frontmatter['description'] = description
        with_tool_section(frontmatter, self.TOOL, passthrough)
        return CanonicalCommand(CANONICAL_COMMANDS_DIR, self.canonical_filename(tool_file),
                                frontmatter=frontmatter, body=tool_file.body, base_dir=output_base_dir)


class KiroCommandAdapter(CommandAdapter):
    """Kiro manual hooks: .kiro/hooks/*.kiro.hook.

    Official Documentation: https://kiro.dev/docs/hooks/

    A command becomes a user-triggered hook that asks the agent to run the
    command body::

        {"enabled": true, "name": ..., "description": ..., "version": "1",
         "when": {"type": "userTriggered"},
         "then": {"type": "askAgent", "prompt": ...}}
    """

    TOOL = 'kiro'
    DOCS_URL = "https://kiro.dev/docs/hooks/"
    SUPPORTED_FIELDS = ['enabled', 'name', 'description', 'version', 'when', 'then']
    EXTENSION = '.kiro.hook'
    COMMANDS_DIR = '.kiro/hooks'

    HOOK_VERSION = '1'
    TRIGGER = {'type': 'userTriggered'}

    def tool_filename(self, canonical):
        return self._hook_name(canonical.relative_file) + self.EXTENSION

    @staticmethod
    def _hook_name(filename: str) -> str:
        return sanitize_identifier(normalize_filename(strip_extension(filename, '.md')))

    def from_canonical(self, canonical, base_dir, global_mode=False):
        data = {
            'enabled': True,
            'name': self._hook_name(canonical.relative_file),
            'description': canonical.description or '',
            'version': self.HOOK_VERSION,
            'when': dict(self.TRIGGER),
            'then': {'type': 'askAgent', 'prompt': strip_embedded_frontmatter(canonical.body)},
        }
        section = canonical.tool_section(self.TOOL)
        then = section.pop('then', None)
        data.update(section)
        if isinstance(then, dict):
            data['then'].update({k: v for k, v in then.items() if k != 'prompt'})
        return ToolFile(self.TOOL, self.FEATURE, base_dir, self._directory(global_mode),
                        self.tool_filename(canonical), content=dump_json(data), data=data)

    def parse_tool_file(self, base_dir, relative_path, content, global_mode=False):
        data = load_json(content, relative_path)
        then = data.get('then') if isinstance(data.get('then'), dict) else {}
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        body=str(then.get('prompt') or ''), content=content, data=data)

    def validate(self, tool_file):
        then = (tool_file.data or {}).get('then')
        if not isinstance(then, dict) or not isinstance(then.get('prompt'), str):
            return ValidationResult(False, ValidationError(
                f"Invalid hook {tool_file.relative_path}: 'then.prompt' must be a string"))
        return ValidationResult(True)

    def to_canonical(self, tool_file, output_base_dir='.'):
        data = dict(tool_file.data or {})
        passthrough = collect_passthrough(data, self.SUPPORTED_FIELDS)

        # Keep hook settings that differ from what generation writes
        stem = strip_extension(tool_file.relative_file, self.EXTENSION)
        defaults = {'enabled': True, 'name': stem, 'version': self.HOOK_VERSION, 'when': self.TRIGGER}
        for key, default in defaults.items():
            if key in data and data[key] != default:
                passthrough[key] = data[key]
        then = {k: v for k, v in data['then'].items() if k != 'prompt'}
        if then != {'type': 'askAgent'}:
            passthrough['then'] = then

        frontmatter = {'targets': ['*']}
        if data.get('description'):
            frontmatter['description'] = data['description']
        with_tool_section(frontmatter, self.TOOL, passthrough)
        return CanonicalCommand(CANONICAL_COMMANDS_DIR, stem + '.md', frontmatter=frontmatter,
                                body=tool_file.body, base_dir=output_base_dir)


COMMAND_ADAPTERS = {adapter.TOOL: adapter for adapter in [
    ClaudeCommandAdapter(),
    CursorCommandAdapter(),
    CopilotCommandAdapter(),
    GeminiCommandAdapter(),
    OpenCodeCommandAdapter(),
    KiroCommandAdapter(),
]}


class CommandsProcessor(FeatureProcessor):
    """Processor for slash-commands."""

    FEATURE = 'commands'

    def load_canonical_files(self) -> List[CanonicalCommand]:
        return self._load_canonical_dir(CanonicalCommand, CANONICAL_COMMANDS_DIR)
