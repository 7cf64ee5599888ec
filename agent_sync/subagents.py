"""
Sub-agent adapters for Agent Sync.

A sub-agent is a markdown file with ``name`` and ``description`` fields and
the agent's system prompt as its body. Tool filenames are derived from the
agent name.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .canonical import CanonicalSubagent
from .config import CANONICAL_SUBAGENTS_DIR
from .exceptions import ValidationError
from .hal import ToolAdapter, ToolFile, collect_passthrough, merge_tool_section, with_tool_section
from .paths import ToolLocations, split_relative, strip_extension
from .processor import FeatureProcessor
from .utils import parse_frontmatter, strip_embedded_frontmatter

logger = logging.getLogger(__name__)


class SubagentAdapter(ToolAdapter):
    """Base class for sub-agent adapters."""

    FEATURE = 'subagents'
    SUPPORTED_FIELDS = ['name', 'description']
    REQUIRED_FIELDS = ['name', 'description']
    FILENAME_FIELD = 'name'

    AGENTS_DIR: Optional[str] = None
    GLOBAL_AGENTS_DIR: Optional[str] = None

    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        return ToolLocations(dir_path=self.GLOBAL_AGENTS_DIR if global_mode else self.AGENTS_DIR)

    def native_frontmatter(self, subagent: CanonicalSubagent) -> Dict[str, Any]:
        return {'name': subagent.name, 'description': subagent.description}

    def canonical_fields(self, tool_file: ToolFile) -> Tuple[str, str, Dict[str, Any]]:
        """Map native frontmatter back to (name, description, passthrough)."""
        frontmatter = tool_file.frontmatter
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        return frontmatter.get('name'), frontmatter.get('description'), passthrough

    def from_canonical(self, canonical: CanonicalSubagent, base_dir, global_mode: bool = False) -> ToolFile:
        directory = self.get_locations(global_mode).dir_path
        if not directory:
            raise ValidationError(f"{self.TOOL} has no sub-agent location in "
                                  f"{'global' if global_mode else 'project'} mode")
        frontmatter = merge_tool_section(self.native_frontmatter(canonical), canonical, self.TOOL)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, directory, self.tool_filename(canonical),
                        frontmatter=frontmatter, body=strip_embedded_frontmatter(canonical.body))

    def parse_tool_file(self, base_dir, relative_path: str, content: str, global_mode: bool = False) -> ToolFile:
        frontmatter, body = parse_frontmatter(content)
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        frontmatter=frontmatter, body=body)

    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalSubagent:
        name, description, passthrough = self.canonical_fields(tool_file)
        frontmatter = {'targets': ['*'], 'name': name, 'description': description}
        with_tool_section(frontmatter, self.TOOL, passthrough)
        return CanonicalSubagent(CANONICAL_SUBAGENTS_DIR, self.canonical_filename(tool_file),
                                 frontmatter=frontmatter, body=tool_file.body, base_dir=output_base_dir)


class ClaudeSubagentAdapter(SubagentAdapter):
    """Claude Code sub-agents: .claude/agents/*.md.

    Official Documentation: https://docs.anthropic.com/en/docs/claude-code/sub-agents

    ``tools`` and ``model`` travel through the ``claude`` section.
    """

    TOOL = 'claude'
    DOCS_URL = "https://docs.anthropic.com/en/docs/claude-code/sub-agents"
    AGENTS_DIR = '.claude/agents'
    GLOBAL_AGENTS_DIR = '.claude/agents'
    SUPPORTS_GLOBAL = True


class CursorSubagentAdapter(SubagentAdapter):
    """Cursor sub-agents: .cursor/agents/*.md."""

    TOOL = 'cursor'
    DOCS_URL = "https://cursor.com/docs/context/subagents"
    AGENTS_DIR = '.cursor/agents'


class CopilotSubagentAdapter(SubagentAdapter):
    """GitHub Copilot custom agents: .github/agents/*.agent.md."""

    TOOL = 'copilot'
    DOCS_URL = "https://docs.github.com/en/copilot/how-tos/use-copilot-agents/coding-agent/create-custom-agents"
    EXTENSION = '.agent.md'
    AGENTS_DIR = '.github/agents'


class OpenCodeSubagentAdapter(SubagentAdapter):
    """OpenCode agents: .opencode/agent/*.md.

    Official Documentation: https://opencode.ai/docs/agents/

    OpenCode takes the agent name from the filename and needs
    ``mode: subagent``.
    """

    TOOL = 'opencode'
    DOCS_URL = "https://opencode.ai/docs/agents/"
    SUPPORTED_FIELDS = ['description', 'mode']
    REQUIRED_FIELDS = ['description']
    AGENTS_DIR = '.opencode/agent'

    MODE = 'subagent'

    def native_frontmatter(self, subagent):
        return {'description': subagent.description, 'mode': self.MODE}

    def canonical_fields(self, tool_file):
        frontmatter = tool_file.frontmatter
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        if frontmatter.get('mode', self.MODE) != self.MODE:
            passthrough['mode'] = frontmatter['mode']
        name = strip_extension(tool_file.relative_file, self.EXTENSION)
        return name, frontmatter.get('description'), passthrough


SUBAGENT_ADAPTERS = {adapter.TOOL: adapter for adapter in [
    ClaudeSubagentAdapter(),
    CursorSubagentAdapter(),
    CopilotSubagentAdapter(),
    OpenCodeSubagentAdapter(),
]}


class SubagentsProcessor(FeatureProcessor):
    """Processor for sub-agents."""

    FEATURE = 'subagents'

    def load_canonical_files(self) -> List[CanonicalSubagent]:
        return self._load_canonical_dir(CanonicalSubagent, CANONICAL_SUBAGENTS_DIR)
