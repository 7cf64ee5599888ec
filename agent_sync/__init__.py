"""
Agent Sync - One source of truth for AI coding assistant configuration.

This package keeps rules, ignore lists, MCP servers, slash-commands and
sub-agents in a canonical ``.agentsync/`` tree and converts them to and from
the native formats of Claude Code, Cursor, GitHub Copilot, Gemini CLI,
Codex CLI, OpenCode, Kiro and Windsurf.
"""

__version__ = "1.0.0"

# Import exceptions
from .exceptions import (
    ConflictError,
    FileOperationError,
    InvalidTargetError,
    NotFoundError,
    SyncError,
    ValidationError,
)

# Import canonical types
from .canonical import (
    CanonicalCommand,
    CanonicalFile,
    CanonicalIgnore,
    CanonicalMcp,
    CanonicalRule,
    CanonicalSubagent,
    ValidationResult,
    is_targeted,
)

# Import HAL
from .hal import AdapterHAL, ToolAdapter, ToolFile, get_hal

# Import manager
from .config import SyncConfig
from .manager import SyncManager, SyncResult

# Import utilities
from .paths import ToolLocations, normalize_filename, resolve_within, sanitize_identifier
from .utils import parse_frontmatter, serialize_frontmatter, strip_frontmatter

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "SyncError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "FileOperationError",
    "InvalidTargetError",
    # Canonical types
    "CanonicalFile",
    "CanonicalRule",
    "CanonicalIgnore",
    "CanonicalMcp",
    "CanonicalCommand",
    "CanonicalSubagent",
    "ValidationResult",
    "is_targeted",
    # HAL
    "ToolAdapter",
    "ToolFile",
    "AdapterHAL",
    "get_hal",
    # Manager
    "SyncConfig",
    "SyncManager",
    "SyncResult",
    # Utilities
    "ToolLocations",
    "sanitize_identifier",
    "normalize_filename",
    "resolve_within",
    "parse_frontmatter",
    "serialize_frontmatter",
    "strip_frontmatter",
]
