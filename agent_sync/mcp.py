"""
MCP server-definition adapters for Agent Sync.

The canonical document is ``{"mcpServers": {name: server}}``. Tools differ in
the top-level key (``mcpServers``, ``servers``, ``mcp``, ``mcp_servers``),
in how a command is written (string plus args, or one array), in how
environment placeholders are spelled and in whether the file holds other
settings that must be preserved.
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import toml

from .canonical import CanonicalMcp, ValidationResult
from .config import CANONICAL_DIR, CANONICAL_LEGACY_MCP_FILE, CANONICAL_MCP_FILE, TOOL_IDS
from .exceptions import SyncError, ValidationError
from .hal import ToolAdapter, ToolFile
from .paths import ToolLocations, split_relative
from .processor import FeatureProcessor
from .utils import dump_json, load_json

logger = logging.getLogger(__name__)

# Server fields the canonical schema knows about; anything else a tool
# writes goes into that tool's passthrough bag on import
KNOWN_SERVER_FIELDS = [
    'type', 'command', 'args', 'url', 'httpUrl', 'headers', 'env', 'cwd',
    'disabled', 'timeout', 'description', 'enabledTools', 'disabledTools',
]

# Fields that may carry environment placeholders
PLACEHOLDER_FIELDS = ['command', 'args', 'env', 'environment', 'url', 'httpUrl', 'headers']

_VAR = r'([A-Za-z_][A-Za-z0-9_]*)'
_CANONICAL_PLACEHOLDER = re.compile(r'\$\{' + _VAR + r'\}')
_ENV_PREFIX_PLACEHOLDER = re.compile(r'\$\{env:' + _VAR + r'\}')
_OPENCODE_PLACEHOLDER = re.compile(r'(?<!\$)\{env:' + _VAR + r'\}')

PLACEHOLDER_STYLES = {
    # style: (pattern matching the tool's syntax, tool template)
    'env-prefix': (_ENV_PREFIX_PLACEHOLDER, '${{env:{}}}'),
    'opencode': (_OPENCODE_PLACEHOLDER, '{{env:{}}}'),
}


def _map_strings(value, func: Callable[[str], str]):
    if isinstance(value, str):
        return func(value)
    if isinstance(value, list):
        return [_map_strings(v, func) for v in value]
    if isinstance(value, dict):
        return {k: _map_strings(v, func) for k, v in value.items()}
    return value


def export_placeholders(server: Dict[str, Any], style: Optional[str]) -> Dict[str, Any]:
    """Rewrite canonical ``${VAR}`` placeholders into a tool's syntax."""
    if not style:
        return server
    _, template = PLACEHOLDER_STYLES[style]
    func = lambda s: _CANONICAL_PLACEHOLDER.sub(lambda m: template.format(m.group(1)), s)  # noqa: E731
    return {k: (_map_strings(v, func) if k in PLACEHOLDER_FIELDS else v) for k, v in server.items()}


def import_placeholders(server: Dict[str, Any], style: Optional[str]) -> Dict[str, Any]:
    """Rewrite a tool's placeholders back into canonical ``${VAR}``."""
    if not style:
        return server
    pattern, _ = PLACEHOLDER_STYLES[style]
    func = lambda s: pattern.sub(lambda m: '${' + m.group(1) + '}', s)  # noqa: E731
    return {k: (_map_strings(v, func) if k in PLACEHOLDER_FIELDS else v) for k, v in server.items()}


def split_command(server: Dict[str, Any]) -> Dict[str, Any]:
    """Collapse an array command into a head command plus trailing args."""
    command = server.get('command')
    if isinstance(command, list):
        if not command:
            raise ValidationError("Server command array is empty")
        server['command'] = command[0]
        server['args'] = list(command[1:]) + list(server.get('args') or [])
        if not server['args']:
            del server['args']
    return server


class McpAdapter(ToolAdapter):
    """Base class for MCP adapters writing one JSON document."""

    FEATURE = 'mcp'
    EXTENSION = '.json'

    FILE_DIR = '.'
    FILE_NAME = ''
    GLOBAL_FILE_DIR: Optional[str] = None
    GLOBAL_FILE_NAME: Optional[str] = None

    # Top-level key holding the servers
    SERVERS_KEY = 'mcpServers'

    # Placeholder syntax (see PLACEHOLDER_STYLES); None keeps ${VAR}
    PLACEHOLDER_STYLE: Optional[str] = None

    # Whether the file holds other settings that are kept on rewrite
    MERGE_EXISTING = False

    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        if global_mode:
            return ToolLocations(dir_path=self.GLOBAL_FILE_DIR, file_path=self.GLOBAL_FILE_NAME)
        return ToolLocations(dir_path=self.FILE_DIR, file_path=self.FILE_NAME)

    def merges_existing(self, global_mode: bool = False) -> bool:
        return self.MERGE_EXISTING

    def is_deletable(self, global_mode: bool = False) -> bool:
        return not self.merges_existing(global_mode)

    # Document encoding

    def render(self, data: Dict[str, Any]) -> str:
        return dump_json(data)

    def parse(self, content: str, relative_path: str) -> Dict[str, Any]:
        return load_json(content, relative_path)

    def read_existing(self, base_dir, relative_path: str) -> Dict[str, Any]:
        path = Path(base_dir) / relative_path
        if not path.is_file():
            return {}
        return self.parse(path.read_text(encoding='utf-8'), relative_path)

    # Server mapping

    def export_server(self, name: str, server: Dict[str, Any]) -> Dict[str, Any]:
        """Map one canonical server onto the tool's shape."""
        section = server.get(self.TOOL)
        server = {k: v for k, v in server.items() if k not in TOOL_IDS}
        server = export_placeholders(split_command(server), self.PLACEHOLDER_STYLE)
        if isinstance(section, dict):
            server.update(section)
        return server

    def import_server(self, name: str, native: Dict[str, Any]) -> Dict[str, Any]:
        """Map one native server back onto the canonical shape."""
        native = import_placeholders(native, self.PLACEHOLDER_STYLE)
        server = {k: v for k, v in native.items() if k in KNOWN_SERVER_FIELDS}
        passthrough = {k: v for k, v in native.items() if k not in KNOWN_SERVER_FIELDS}
        if passthrough:
            server[self.TOOL] = passthrough
        return server

    # Contract

    def from_canonical(self, canonical: CanonicalMcp, base_dir, global_mode: bool = False) -> ToolFile:
        relative_path = self.get_locations(global_mode).single_file_path
        servers = {name: self.export_server(name, server)
                   for name, server in canonical.servers_for(self.TOOL).items()}

        data = dict(self.read_existing(base_dir, relative_path)) if self.merges_existing(global_mode) else {}
        data[self.SERVERS_KEY] = servers

        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        content=self.render(data), data=data)

    def parse_tool_file(self, base_dir, relative_path: str, content: str, global_mode: bool = False) -> ToolFile:
        data = self.parse(content, relative_path)
        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        content=content, data=data)

    def validate(self, tool_file: ToolFile) -> ValidationResult:
        servers = (tool_file.data or {}).get(self.SERVERS_KEY, {})
        if not isinstance(servers, dict):
            return ValidationResult(False, ValidationError(
                f"Invalid {tool_file.relative_path}: '{self.SERVERS_KEY}' must be an object"))
        return ValidationResult(True)

    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalMcp:
        native_servers = (tool_file.data or {}).get(self.SERVERS_KEY) or {}
        servers = {name: self.import_server(name, dict(server))
                   for name, server in native_servers.items() if isinstance(server, dict)}
        return CanonicalMcp(CANONICAL_DIR, CANONICAL_MCP_FILE, data={'mcpServers': servers},
                            base_dir=output_base_dir)


class ClaudeMcpAdapter(McpAdapter):
    """Claude Code: .mcp.json, or ``mcpServers`` inside ~/.claude.json in global mode.

    Official Documentation: https://docs.anthropic.com/en/docs/claude-code/mcp
    """

    TOOL = 'claude'
    DOCS_URL = "https://docs.anthropic.com/en/docs/claude-code/mcp"
    FILE_NAME = '.mcp.json'
    GLOBAL_FILE_DIR = '.'
    GLOBAL_FILE_NAME = '.claude.json'
    SUPPORTS_GLOBAL = True

    def merges_existing(self, global_mode=False):
        return global_mode


class CursorMcpAdapter(McpAdapter):
    """Cursor: .cursor/mcp.json with ``${env:VAR}`` placeholders.

    Official Documentation: https://cursor.com/docs/context/mcp
    """

    TOOL = 'cursor'
    DOCS_URL = "https://cursor.com/docs/context/mcp"
    FILE_DIR = '.cursor'
    FILE_NAME = 'mcp.json'
    GLOBAL_FILE_DIR = '.cursor'
    GLOBAL_FILE_NAME = 'mcp.json'
    PLACEHOLDER_STYLE = 'env-prefix'
    SUPPORTS_GLOBAL = True


class CopilotMcpAdapter(McpAdapter):
    """GitHub Copilot in VS Code: ``servers`` in .vscode/mcp.json.

    Other top-level keys such as ``inputs`` are preserved. Each server gets a
    ``type`` of stdio or http unless one is given.
    """

    TOOL = 'copilot'
    DOCS_URL = "https://code.visualstudio.com/docs/copilot/chat/mcp-servers"
    FILE_DIR = '.vscode'
    FILE_NAME = 'mcp.json'
    SERVERS_KEY = 'servers'
    PLACEHOLDER_STYLE = 'env-prefix'
    MERGE_EXISTING = True

    @staticmethod
    def _default_type(server: Dict[str, Any]) -> str:
        return 'stdio' if server.get('command') else 'http'

    def export_server(self, name, server):
        native = super().export_server(name, server)
        if 'type' not in native:
            native = {'type': self._default_type(native), **native}
        return native

    def import_server(self, name, native):
        server = super().import_server(name, native)
        if server.get('type') == self._default_type(server):
            del server['type']
        return server


class GeminiMcpAdapter(McpAdapter):
    """Gemini CLI: ``mcpServers`` merged into .gemini/settings.json."""

    TOOL = 'gemini'
    DOCS_URL = "https://github.com/google-gemini/gemini-cli/blob/main/docs/tools/mcp-server.md"
    FILE_DIR = '.gemini'
    FILE_NAME = 'settings.json'
    GLOBAL_FILE_DIR = '.gemini'
    GLOBAL_FILE_NAME = 'settings.json'
    MERGE_EXISTING = True
    SUPPORTS_GLOBAL = True


class KiroMcpAdapter(McpAdapter):
    """Kiro: .kiro/settings/mcp.json."""

    TOOL = 'kiro'
    DOCS_URL = "https://kiro.dev/docs/mcp/configuration/"
    FILE_DIR = '.kiro/settings'
    FILE_NAME = 'mcp.json'
    GLOBAL_FILE_DIR = '.kiro/settings'
    GLOBAL_FILE_NAME = 'mcp.json'
    SUPPORTS_GLOBAL = True


class CodexMcpAdapter(McpAdapter):
    """Codex CLI: ``[mcp_servers.<name>]`` tables in .codex/config.toml.

    Official Documentation: https://github.com/openai/codex/blob/main/docs/config.md

    The rest of config.toml is preserved. ``disabled`` becomes
    ``enabled = false``, tool filters become ``enabled_tools`` and
    ``disabled_tools``, and ``headers`` become ``http_headers``.
    """

    TOOL = 'codex'
    DOCS_URL = "https://github.com/openai/codex/blob/main/docs/config.md"
    EXTENSION = '.toml'
    FILE_DIR = '.codex'
    FILE_NAME = 'config.toml'
    GLOBAL_FILE_DIR = '.codex'
    GLOBAL_FILE_NAME = 'config.toml'
    SERVERS_KEY = 'mcp_servers'
    MERGE_EXISTING = True
    SUPPORTS_GLOBAL = True

    # canonical name -> codex name
    RENAMED_FIELDS = {
        'enabledTools': 'enabled_tools',
        'disabledTools': 'disabled_tools',
        'headers': 'http_headers',
    }

    def render(self, data):
        return toml.dumps(data)

    def parse(self, content, relative_path):
        try:
            return toml.loads(content)
        except toml.TomlDecodeError as e:
            raise ValidationError(f"Invalid TOML in {relative_path}: {e}") from e

    def export_server(self, name, server):
        native = super().export_server(name, server)
        for canonical_name, codex_name in self.RENAMED_FIELDS.items():
            if canonical_name in native:
                native[codex_name] = native.pop(canonical_name)
        if 'disabled' in native:
            native['enabled'] = not native.pop('disabled')
        return native

    def import_server(self, name, native):
        native = dict(native)
        for canonical_name, codex_name in self.RENAMED_FIELDS.items():
            if codex_name in native:
                native[canonical_name] = native.pop(codex_name)
        if 'enabled' in native:
            native['disabled'] = not native.pop('enabled')
        return super().import_server(name, native)


class OpenCodeMcpAdapter(McpAdapter):
    """OpenCode: the ``mcp`` section of opencode.json.

    Official Documentation: https://opencode.ai/docs/mcp-servers/

    Local servers are ``{"type": "local", "command": [cmd, *args],
    "environment": {...}}``, remote ones ``{"type": "remote", "url": ...}``;
    ``enabled`` is the inverse of ``disabled`` and placeholders are written
    as ``{env:VAR}``.
    """

    TOOL = 'opencode'
    DOCS_URL = "https://opencode.ai/docs/mcp-servers/"
    FILE_NAME = 'opencode.json'
    GLOBAL_FILE_DIR = '.config/opencode'
    GLOBAL_FILE_NAME = 'opencode.json'
    SERVERS_KEY = 'mcp'
    PLACEHOLDER_STYLE = 'opencode'
    MERGE_EXISTING = True
    SUPPORTS_GLOBAL = True

    # Canonical fields consumed by the mapping below
    MAPPED_FIELDS = ['type', 'command', 'args', 'env', 'url', 'httpUrl', 'headers', 'disabled']

    def export_server(self, name, server):
        section = server.get(self.TOOL)
        server = export_placeholders(split_command({k: v for k, v in server.items() if k not in TOOL_IDS}),
                                     self.PLACEHOLDER_STYLE)
        dropped = [k for k in server if k not in self.MAPPED_FIELDS]
        if dropped:
            logger.debug(f"{self.TOOL} has no equivalent for {', '.join(dropped)} of server '{name}'; "
                         f"set them under the {self.TOOL} key to keep them")

        if server.get('command'):
            native = {'type': 'local', 'command': [server['command']] + list(server.get('args') or [])}
            if server.get('env'):
                native['environment'] = server['env']
        else:
            native = {'type': 'remote', 'url': server.get('url') or server.get('httpUrl')}
            if server.get('headers'):
                native['headers'] = server['headers']

        native['enabled'] = not server.get('disabled', False)
        if isinstance(section, dict):
            native.update(section)
        return native

    def import_server(self, name, native):
        native = import_placeholders(dict(native), self.PLACEHOLDER_STYLE)
        server: Dict[str, Any] = {}

        command = native.get('command')
        if command:
            command = command if isinstance(command, list) else [command]
            server['command'] = command[0]
            if len(command) > 1:
                server['args'] = list(command[1:])
            if native.get('environment'):
                server['env'] = native['environment']
        elif native.get('url'):
            server['url'] = native['url']
            if native.get('headers'):
                server['headers'] = native['headers']

        if native.get('enabled') is False:
            server['disabled'] = True

        consumed = {'type', 'command', 'environment', 'url', 'headers', 'enabled'}
        passthrough = {k: v for k, v in native.items() if k not in consumed}
        if passthrough:
            server[self.TOOL] = passthrough
        return server


MCP_ADAPTERS = {adapter.TOOL: adapter for adapter in [
    ClaudeMcpAdapter(),
    CursorMcpAdapter(),
    CopilotMcpAdapter(),
    GeminiMcpAdapter(),
    CodexMcpAdapter(),
    OpenCodeMcpAdapter(),
    KiroMcpAdapter(),
]}


class McpProcessor(FeatureProcessor):
    """Processor for MCP server definitions."""

    FEATURE = 'mcp'

    def load_canonical_files(self) -> List[CanonicalMcp]:
        for relative_file in (CANONICAL_MCP_FILE, CANONICAL_LEGACY_MCP_FILE):
            if not (self.source_dir / CANONICAL_DIR / relative_file).is_file():
                continue
            if relative_file == CANONICAL_LEGACY_MCP_FILE:
                logger.warning(f"Using legacy {CANONICAL_DIR}/{CANONICAL_LEGACY_MCP_FILE}; "
                               f"rename it to {CANONICAL_DIR}/{CANONICAL_MCP_FILE}")
            try:
                return [CanonicalMcp.from_file(self.source_dir, relative_file, CANONICAL_DIR)]
            except SyncError as e:
                self._record(f"Skipping {CANONICAL_DIR}/{relative_file}: {e}", relative_file)
                return []
        return []
