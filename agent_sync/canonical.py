"""
Canonical artifact types for Agent Sync.

Canonical artifacts live under ``.agentsync/`` and are the single source of
truth that every tool adapter converts from and to.
"""

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import (
    CANONICAL_COMMANDS_DIR,
    CANONICAL_DIR,
    CANONICAL_IGNORE_FILE,
    CANONICAL_MCP_FILE,
    CANONICAL_RULES_DIR,
    CANONICAL_SUBAGENTS_DIR,
)
from .exceptions import ConflictError, NotFoundError, ValidationError
from .paths import join_relative
from .utils import dump_json, load_json, normalize_newlines, parse_frontmatter, serialize_frontmatter, trim_body

WILDCARD_TARGET = '*'


class ValidationResult:
    """Outcome of a validate() call; never raised, always returned."""

    def __init__(self, ok: bool = True, error: Optional[Exception] = None):
        self.ok = ok
        self.error = error

    def __bool__(self):
        return self.ok

    def __repr__(self):
        return f"ValidationResult(ok={self.ok}, error={self.error!r})"


def is_targeted(targets, tool: str) -> bool:
    """Return True if an artifact with ``targets`` applies to ``tool``.

    Unset targets apply everywhere; an empty list applies nowhere.
    """
    if targets is None:
        return True
    if isinstance(targets, str):
        targets = [targets]
    return WILDCARD_TARGET in targets or tool in targets


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8')
    except FileNotFoundError as e:
        raise NotFoundError(f"File not found: {path}") from e


class CanonicalFile:
    """Base class for canonical artifacts (frontmatter + body)."""

    FEATURE = ''
    RELATIVE_DIR = CANONICAL_DIR

    # Known frontmatter fields, written first and in this order
    KNOWN_FIELDS: List[str] = ['targets']

    def __init__(self, relative_dir: str, relative_file: str, frontmatter: Optional[Dict[str, Any]] = None,
                 body: str = '', base_dir='.', validate: bool = True):
        self.base_dir = Path(base_dir)
        self.relative_dir = relative_dir
        self.relative_file = relative_file
        self._frontmatter = self._normalize(copy.deepcopy(dict(frontmatter or {})))
        self._body = trim_body(body or '')

        if validate:
            result = self.validate()
            if not result.ok:
                raise result.error

    @property
    def frontmatter(self) -> Dict[str, Any]:
        return copy.deepcopy(self._frontmatter)

    @property
    def body(self) -> str:
        return self._body

    @property
    def targets(self) -> Optional[List[str]]:
        return self._frontmatter.get('targets')

    @property
    def relative_path(self) -> str:
        return join_relative(self.relative_dir, self.relative_file)

    @property
    def path(self) -> Path:
        return self.base_dir / self.relative_path

    def tool_section(self, tool: str) -> Dict[str, Any]:
        """Return a copy of the tool-namespaced passthrough bag."""
        section = self._frontmatter.get(tool)
        return copy.deepcopy(section) if isinstance(section, dict) else {}

    def replace_body(self, body: str):
        """Replace the body; the only mutation a canonical artifact allows."""
        self._body = trim_body(body)

    def to_text(self) -> str:
        return serialize_frontmatter(self._frontmatter, self._body)

    def validate(self) -> ValidationResult:
        try:
            self._check()
        except ValidationError as e:
            return ValidationResult(False, e)
        except (TypeError, AttributeError) as e:
            return ValidationResult(False, ValidationError(f"Invalid {self.relative_path}: {e}"))
        return ValidationResult(True)

    def _normalize(self, frontmatter: Dict[str, Any]) -> Dict[str, Any]:
        targets = frontmatter.get('targets')
        if isinstance(targets, str):
            frontmatter['targets'] = [targets]
        elif targets is None:
            frontmatter['targets'] = [WILDCARD_TARGET]

        ordered = {k: frontmatter[k] for k in self.KNOWN_FIELDS if k in frontmatter}
        ordered.update((k, v) for k, v in frontmatter.items() if k not in ordered)
        return ordered

    def _check(self):
        targets = self._frontmatter.get('targets')
        if not isinstance(targets, list) or not all(isinstance(t, str) for t in targets):
            raise ValidationError(f"Invalid frontmatter in {self.relative_path}: 'targets' must be a list of strings")

    def _require_string(self, field: str, required: bool = True):
        value = self._frontmatter.get(field)
        if value is None and not required:
            return
        if not isinstance(value, str) or (required and not value.strip()):
            raise ValidationError(f"Invalid frontmatter in {self.relative_path}: '{field}' must be a non-empty string")

    @classmethod
    def from_file(cls, base_dir, relative_file: str, relative_dir: Optional[str] = None, validate: bool = True):
        """Load a canonical artifact from ``base_dir/relative_dir/relative_file``."""
        relative_dir = relative_dir or cls.RELATIVE_DIR
        content = _read_text(Path(base_dir) / join_relative(relative_dir, relative_file))
        try:
            frontmatter, body = parse_frontmatter(content)
        except ValidationError as e:
            raise ValidationError(f"{join_relative(relative_dir, relative_file)}: {e}") from e
        return cls(relative_dir, relative_file, frontmatter=frontmatter, body=body,
                   base_dir=base_dir, validate=validate)

    def __eq__(self, other):
        if not isinstance(other, CanonicalFile) or type(self) is not type(other):
            return NotImplemented
        return (self.relative_path == other.relative_path and
                self._frontmatter == other._frontmatter and
                self._body == other._body)

    def __repr__(self):
        return f"{type(self).__name__}({self.relative_path!r})"


class CanonicalRule(CanonicalFile):
    """A behavioral rule: ``.agentsync/rules/*.md``."""

    FEATURE = 'rules'
    RELATIVE_DIR = CANONICAL_RULES_DIR
    KNOWN_FIELDS = ['root', 'targets', 'description', 'globs']

    @property
    def root(self) -> bool:
        return bool(self._frontmatter.get('root'))

    @property
    def description(self) -> Optional[str]:
        return self._frontmatter.get('description')

    @property
    def globs(self) -> List[str]:
        return list(self._frontmatter.get('globs') or [])

    def _normalize(self, frontmatter):
        frontmatter.setdefault('root', False)
        globs = frontmatter.get('globs')
        if globs is None:
            frontmatter['globs'] = []
        elif isinstance(globs, str):
            frontmatter['globs'] = [g.strip() for g in globs.split(',') if g.strip()]
        if 'description' in frontmatter and frontmatter['description'] is None:
            del frontmatter['description']
        return super()._normalize(frontmatter)

    def _check(self):
        super()._check()
        if not isinstance(self._frontmatter.get('root'), bool):
            raise ValidationError(f"Invalid frontmatter in {self.relative_path}: 'root' must be a boolean")
        globs = self._frontmatter.get('globs')
        if not isinstance(globs, list) or not all(isinstance(g, str) for g in globs):
            raise ValidationError(f"Invalid frontmatter in {self.relative_path}: 'globs' must be a list of strings")
        self._require_string('description', required=False)


class CanonicalCommand(CanonicalFile):
    """A slash-command: ``.agentsync/commands/*.md``."""

    FEATURE = 'commands'
    RELATIVE_DIR = CANONICAL_COMMANDS_DIR
    KNOWN_FIELDS = ['targets', 'description']

    @property
    def description(self) -> Optional[str]:
        return self._frontmatter.get('description')

    def _check(self):
        super()._check()
        self._require_string('description', required=False)


class CanonicalSubagent(CanonicalFile):
    """A sub-agent definition: ``.agentsync/subagents/*.md``."""

    FEATURE = 'subagents'
    RELATIVE_DIR = CANONICAL_SUBAGENTS_DIR
    KNOWN_FIELDS = ['targets', 'name', 'description']

    @property
    def name(self) -> str:
        return self._frontmatter.get('name', '')

    @property
    def description(self) -> str:
        return self._frontmatter.get('description', '')

    def _check(self):
        super()._check()
        self._require_string('name')
        self._require_string('description')


class CanonicalIgnore(CanonicalFile):
    """The shared ignore list: ``.agentsync/.aiignore``. Applies to every tool."""

    FEATURE = 'ignore'

    def __init__(self, relative_dir: str = CANONICAL_DIR, relative_file: str = CANONICAL_IGNORE_FILE,
                 content: str = '', base_dir='.', validate: bool = True):
        super().__init__(relative_dir, relative_file, body=content, base_dir=base_dir, validate=validate)

    @property
    def patterns(self) -> List[str]:
        """Non-empty, non-comment lines."""
        return [line.strip() for line in self._body.split('\n')
                if line.strip() and not line.strip().startswith('#')]

    def to_text(self) -> str:
        return self._body

    @classmethod
    def from_file(cls, base_dir, relative_file: str = CANONICAL_IGNORE_FILE,
                  relative_dir: Optional[str] = None, validate: bool = True):
        relative_dir = relative_dir or cls.RELATIVE_DIR
        content = _read_text(Path(base_dir) / join_relative(relative_dir, relative_file))
        return cls(relative_dir, relative_file, content=normalize_newlines(content),
                   base_dir=base_dir, validate=validate)


class CanonicalMcp(CanonicalFile):
    """MCP server definitions: ``.agentsync/mcp.json``.

    Schema::

        {"mcpServers": {"<name>": {"command": ..., "args": [...], "env": {...}}}}

    A server may carry its own ``targets`` list; it is filtered per tool and
    never written to tool files.
    """

    FEATURE = 'mcp'

    def __init__(self, relative_dir: str = CANONICAL_DIR, relative_file: str = CANONICAL_MCP_FILE,
                 data: Optional[Dict[str, Any]] = None, base_dir='.', validate: bool = True):
        self._data = copy.deepcopy(data) if data is not None else {'mcpServers': {}}
        self._data.setdefault('mcpServers', {})
        super().__init__(relative_dir, relative_file, base_dir=base_dir, validate=validate)

    @property
    def data(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    @property
    def servers(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._data.get('mcpServers') or {})

    def servers_for(self, tool: str) -> Dict[str, Dict[str, Any]]:
        """Servers that apply to ``tool``, with their ``targets`` key removed."""
        selected = {}
        for name, server in self.servers.items():
            if not is_targeted(server.pop('targets', None), tool):
                continue
            selected[name] = server
        return selected

    def to_text(self) -> str:
        return dump_json(self._data)

    def _check(self):
        servers = self._data.get('mcpServers')
        if not isinstance(servers, dict):
            raise ValidationError(f"Invalid {self.relative_path}: 'mcpServers' must be an object")
        for name, server in servers.items():
            check_server(name, server, self.relative_path)

    @classmethod
    def from_file(cls, base_dir, relative_file: str = CANONICAL_MCP_FILE,
                  relative_dir: Optional[str] = None, validate: bool = True):
        relative_dir = relative_dir or cls.RELATIVE_DIR
        relative_path = join_relative(relative_dir, relative_file)
        data = load_json(_read_text(Path(base_dir) / relative_path), relative_path)
        return cls(relative_dir, relative_file, data=data, base_dir=base_dir, validate=validate)

    def __eq__(self, other):
        if not isinstance(other, CanonicalMcp):
            return NotImplemented
        return self.relative_path == other.relative_path and self._data == other._data


def check_server(name: str, server, source: str):
    """Validate one server definition.

    Raises:
        ValidationError: If the server has neither a command nor a URL
        ConflictError: If the server has both a local command and a remote URL
    """
    if not isinstance(server, dict):
        raise ValidationError(f"Invalid server '{name}' in {source}: expected an object")

    has_command = bool(server.get('command'))
    has_url = bool(server.get('url') or server.get('httpUrl'))
    if has_command and has_url:
        raise ConflictError(f"Server '{name}' in {source} defines both 'command' and 'url'")
    if not has_command and not has_url:
        raise ValidationError(f"Server '{name}' in {source} needs either 'command' or 'url'")

    targets = server.get('targets')
    if targets is not None and (not isinstance(targets, list) or not all(isinstance(t, str) for t in targets)):
        raise ValidationError(f"Server '{name}' in {source}: 'targets' must be a list of strings")
