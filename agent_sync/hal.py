"""
Agent Sync Hardware Abstraction Layer (HAL).

This module defines the adapter contract every tool implementation satisfies,
the tool-native file type adapters produce, and the registry that maps a
(feature, tool) pair to its adapter.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .canonical import CanonicalFile, ValidationResult, is_targeted
from .config import FEATURES, TOOL_IDS
from .exceptions import InvalidTargetError, NotFoundError, ValidationError
from .paths import ToolLocations, derive_filename, join_relative, split_relative, strip_extension
from .utils import normalize_newlines, serialize_frontmatter, trim_body

CANONICAL_EXTENSION = '.md'


class ToolFile:
    """A tool-native artifact: one file in a tool's own layout and format.

    Markdown files keep ``frontmatter`` and ``body`` and render ``content``
    from them. JSON/TOML/plain files carry an explicit ``content`` and the
    parsed document in ``data``.
    """

    def __init__(self, tool: str, feature: str, base_dir, relative_dir: str, relative_file: str,
                 frontmatter: Optional[Dict[str, Any]] = None, body: str = '',
                 content: Optional[str] = None, data: Optional[Dict[str, Any]] = None,
                 is_root: bool = False, deletable: bool = True, source: Optional[CanonicalFile] = None):
        self.tool = tool
        self.feature = feature
        self.base_dir = Path(base_dir)
        self.relative_dir = relative_dir
        self.relative_file = relative_file
        self.frontmatter = frontmatter or {}
        self.body = trim_body(body or '')
        self.data = data
        self.is_root = is_root
        self.deletable = deletable
        # Canonical artifact this file was generated from, if any
        self.source = source
        self._content = content

    @property
    def relative_path(self) -> str:
        return join_relative(self.relative_dir, self.relative_file)

    @property
    def path(self) -> Path:
        return self.base_dir / self.relative_path

    @property
    def content(self) -> str:
        if self._content is not None:
            return self._content
        return serialize_frontmatter(self.frontmatter, self.body)

    def replace_body(self, body: str):
        """Replace the body of a markdown tool file."""
        self.body = trim_body(body)

    @classmethod
    def for_deletion(cls, tool: str, feature: str, base_dir, relative_path: str, deletable: bool) -> 'ToolFile':
        """A placeholder for an existing file that is only tracked for orphan removal."""
        relative_dir, relative_file = split_relative(relative_path)
        return cls(tool, feature, base_dir, relative_dir, relative_file, content='', deletable=deletable)

    def __repr__(self):
        return f"ToolFile({self.tool!r}, {self.relative_path!r})"


class ToolAdapter(ABC):
    """Base class for bidirectional converters between canonical and tool-native files."""

    # Tool id (see SyncConfig.TARGET_CONFIGS) and feature this adapter covers
    TOOL: str = ''
    FEATURE: str = ''

    # Official documentation URL for this tool's format
    DOCS_URL: Optional[str] = None

    # Native frontmatter fields this adapter maps explicitly
    SUPPORTED_FIELDS: List[str] = []

    # Native frontmatter fields that must be present
    REQUIRED_FIELDS: List[str] = []

    # Extension of per-artifact tool files
    EXTENSION: str = '.md'

    # Frontmatter field the filename is derived from; None keeps the canonical name
    FILENAME_FIELD: Optional[str] = None

    SUPPORTS_PROJECT = True
    SUPPORTS_GLOBAL = False

    @abstractmethod
    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        """Return where this tool keeps the artifact for the given scope."""

    @abstractmethod
    def from_canonical(self, canonical: CanonicalFile, base_dir, global_mode: bool = False) -> ToolFile:
        """Build the tool-native file for a canonical artifact."""

    @abstractmethod
    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalFile:
        """Build the canonical artifact for a tool-native file."""

    @abstractmethod
    def parse_tool_file(self, base_dir, relative_path: str, content: str,
                        global_mode: bool = False) -> ToolFile:
        """Parse the text of a tool-native file."""

    def is_eligible(self, canonical: CanonicalFile) -> bool:
        """Check whether the canonical artifact targets this tool."""
        return is_targeted(canonical.targets, self.TOOL)

    def supports_scope(self, global_mode: bool = False) -> bool:
        return self.SUPPORTS_GLOBAL if global_mode else self.SUPPORTS_PROJECT

    def is_deletable(self, global_mode: bool = False) -> bool:
        return True

    def load_from_file(self, base_dir, relative_path: str, global_mode: bool = False) -> ToolFile:
        """Read and parse one tool-native file.

        Raises:
            NotFoundError: If the file does not exist
        """
        path = Path(base_dir) / relative_path
        try:
            content = path.read_text(encoding='utf-8')
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundError(f"{self.TOOL} {self.FEATURE} file not found: {path}") from e
        return self.parse_tool_file(base_dir, relative_path, normalize_newlines(content), global_mode)

    def validate(self, tool_file: ToolFile) -> ValidationResult:
        """Check the native frontmatter shape. Never raises."""
        try:
            missing = [f for f in self.REQUIRED_FIELDS if tool_file.frontmatter.get(f) in (None, '')]
        except Exception as e:
            return ValidationResult(False, ValidationError(f"Invalid {tool_file.relative_path}: {e}"))
        if missing:
            return ValidationResult(False, ValidationError(
                f"Missing required field(s) {', '.join(missing)} in {tool_file.relative_path}"))
        return ValidationResult(True)

    def tool_filename(self, canonical: CanonicalFile) -> str:
        """Filename of the tool file produced for ``canonical``."""
        if self.FILENAME_FIELD:
            return derive_filename(canonical.frontmatter.get(self.FILENAME_FIELD) or '', self.EXTENSION)
        return strip_extension(canonical.relative_file, CANONICAL_EXTENSION) + self.EXTENSION

    def canonical_filename(self, tool_file: ToolFile) -> str:
        """Filename of the canonical artifact imported from ``tool_file``."""
        return strip_extension(tool_file.relative_file, self.EXTENSION) + CANONICAL_EXTENSION


def merge_tool_section(native: Dict[str, Any], canonical: CanonicalFile, tool: str) -> Dict[str, Any]:
    """Copy the tool's passthrough bag into native frontmatter."""
    native.update(canonical.tool_section(tool))
    return native


def collect_passthrough(native: Dict[str, Any], consumed: Iterable[str]) -> Dict[str, Any]:
    """Native fields that were not mapped onto a canonical field."""
    consumed = set(consumed)
    return {k: v for k, v in native.items() if k not in consumed}


def with_tool_section(frontmatter: Dict[str, Any], tool: str, passthrough: Dict[str, Any]) -> Dict[str, Any]:
    """Attach a non-empty passthrough bag under the tool's key."""
    if passthrough:
        frontmatter[tool] = passthrough
    return frontmatter


class AdapterHAL:
    """Hardware Abstraction Layer (HAL) for AI assistant configuration formats.

    Maps every (feature, tool) pair to its adapter and every feature to the
    processor that drives it.
    """

    def __init__(self):
        """Initialize the HAL with the feature adapters."""
        from . import commands, ignore, mcp, rules, subagents

        self._processors = {
            'rules': rules.RulesProcessor,
            'ignore': ignore.IgnoreProcessor,
            'mcp': mcp.McpProcessor,
            'commands': commands.CommandsProcessor,
            'subagents': subagents.SubagentsProcessor,
        }
        self._adapters: Dict[str, Dict[str, ToolAdapter]] = {
            'rules': rules.RULE_ADAPTERS,
            'ignore': ignore.IGNORE_ADAPTERS,
            'mcp': mcp.MCP_ADAPTERS,
            'commands': commands.COMMAND_ADAPTERS,
            'subagents': subagents.SUBAGENT_ADAPTERS,
        }

    def get_adapter(self, feature: str, tool: str) -> ToolAdapter:
        """Get the adapter for a feature and tool.

        Raises:
            InvalidTargetError: If the tool has no adapter for the feature
        """
        adapter = self._adapters.get(feature, {}).get(tool)
        if adapter is None:
            raise InvalidTargetError(f"Tool '{tool}' does not support feature '{feature}'")
        return adapter

    def get_processor_class(self, feature: str):
        if feature not in self._processors:
            raise ValidationError(f"Unknown feature '{feature}'. Available: {', '.join(FEATURES)}")
        return self._processors[feature]

    def has_adapter(self, feature: str, tool: str, global_mode: bool = False) -> bool:
        adapter = self._adapters.get(feature, {}).get(tool)
        return adapter is not None and adapter.supports_scope(global_mode)

    def tools_for(self, feature: str, global_mode: bool = False) -> List[str]:
        """Tools supporting a feature in the given scope, in registry order."""
        return [tool for tool in TOOL_IDS if self.has_adapter(feature, tool, global_mode)]

    def features_for(self, tool: str, global_mode: bool = False) -> List[str]:
        return [feature for feature in FEATURES if self.has_adapter(feature, tool, global_mode)]

    def supported_matrix(self, global_mode: bool = False) -> Dict[str, List[str]]:
        return {tool: self.features_for(tool, global_mode) for tool in TOOL_IDS}

    def get_docs_url(self, feature: str, tool: str) -> Optional[str]:
        return self.get_adapter(feature, tool).DOCS_URL


# Global HAL instance
_hal_instance = None


def get_hal() -> AdapterHAL:
    """Get the global HAL instance (singleton pattern)."""
    global _hal_instance
    if _hal_instance is None:
        _hal_instance = AdapterHAL()
    return _hal_instance
