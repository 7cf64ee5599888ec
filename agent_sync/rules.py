"""
Rule adapters for Agent Sync.

Every tool has one root rule location (the "always applies" entry point) and,
in project scope, a directory of non-root rules. Tools that do not discover
non-root rules on their own get a reference section prepended to the root
rule listing them.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .canonical import CanonicalRule
from .config import CANONICAL_DIR, CANONICAL_RULES_DIR
from .exceptions import ConflictError, ValidationError
from .hal import ToolAdapter, ToolFile, collect_passthrough, merge_tool_section, with_tool_section
from .paths import (
    ToolLocations,
    join_relative,
    normalize_filename,
    sanitize_identifier,
    split_relative,
    strip_extension,
)
from .processor import FeatureProcessor
from .utils import parse_frontmatter, strip_embedded_frontmatter, trim_body

logger = logging.getLogger(__name__)

ROOT_RULE_FILENAME = 'overview.md'
ROOT_RULE_GLOBS = ['**/*']
REFERENCE_SECTION_HEADER = ("Please also reference the following rules as needed. "
                            "Paths are relative to the project root.")


def strip_reference_section(body: str) -> str:
    """Remove a generated reference section from the start of a root rule body."""
    lines = body.split('\n')
    if not lines or lines[0].strip() != REFERENCE_SECTION_HEADER:
        return body

    index = 1
    while index < len(lines) and (not lines[index].strip() or lines[index].startswith('- @')):
        index += 1
    return '\n'.join(lines[index:]).strip()


def split_globs(value) -> List[str]:
    """Split a comma-separated glob string, keeping commas inside braces."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]

    globs, current, depth = [], '', 0
    for char in str(value):
        if char == '{':
            depth += 1
        elif char == '}':
            depth = max(0, depth - 1)
        if char == ',' and depth == 0:
            globs.append(current.strip())
            current = ''
            continue
        current += char
    globs.append(current.strip())
    return [g for g in globs if g]


class RuleAdapter(ToolAdapter):
    """Base class for rule adapters.

    Subclasses set the locations and override native_frontmatter() and
    canonical_fields() to map description/globs onto their own fields.
    """

    FEATURE = 'rules'

    ROOT_DIR = '.'
    ROOT_FILE: Optional[str] = None
    NON_ROOT_DIR: Optional[str] = None
    GLOBAL_ROOT_DIR: Optional[str] = None
    GLOBAL_ROOT_FILE: Optional[str] = None

    ROOT_HAS_FRONTMATTER = False
    NON_ROOT_HAS_FRONTMATTER = True

    # Whether non-root rules must be listed in the root rule
    REFERENCES_NON_ROOT = False

    # Whether non-root filenames are converted to kebab-case
    NORMALIZE_FILENAMES = False

    def get_locations(self, global_mode: bool = False) -> ToolLocations:
        if global_mode:
            return ToolLocations(root_dir_path=self.GLOBAL_ROOT_DIR, root_file_path=self.GLOBAL_ROOT_FILE)
        return ToolLocations(dir_path=self.NON_ROOT_DIR, root_dir_path=self.ROOT_DIR,
                             root_file_path=self.ROOT_FILE)

    def tool_filename(self, canonical) -> str:
        stem = strip_extension(canonical.relative_file, '.md')
        if self.NORMALIZE_FILENAMES:
            stem = sanitize_identifier(normalize_filename(stem))
        return stem + self.EXTENSION

    def native_frontmatter(self, rule: CanonicalRule) -> Dict[str, Any]:
        """Map canonical fields onto the tool's frontmatter."""
        frontmatter = {}
        if rule.description is not None:
            frontmatter['description'] = rule.description
        return frontmatter

    def canonical_fields(self, frontmatter: Dict[str, Any],
                         is_root: bool) -> Tuple[Optional[str], List[str], Dict[str, Any]]:
        """Map native frontmatter back to (description, globs, passthrough)."""
        return frontmatter.get('description'), [], collect_passthrough(frontmatter, ['description'])

    def from_canonical(self, canonical: CanonicalRule, base_dir, global_mode: bool = False) -> ToolFile:
        locations = self.get_locations(global_mode)

        if canonical.root:
            if not locations.root_file_path:
                raise ValidationError(f"{self.TOOL} has no root rule location")
            relative_dir = locations.root_dir_path or '.'
            relative_file = locations.root_file_path
            has_frontmatter = self.ROOT_HAS_FRONTMATTER
        else:
            if not locations.dir_path:
                scope = ' in global mode' if global_mode else ''
                raise ValidationError(f"{self.TOOL} does not support non-root rules{scope}")
            relative_dir = locations.dir_path
            relative_file = self.tool_filename(canonical)
            if join_relative(relative_dir, relative_file) == locations.root_path:
                raise ConflictError(f"{canonical.relative_path} collides with the {self.TOOL} root rule file")
            has_frontmatter = self.NON_ROOT_HAS_FRONTMATTER

        frontmatter = {}
        if has_frontmatter:
            frontmatter = merge_tool_section(self.native_frontmatter(canonical), canonical, self.TOOL)

        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        frontmatter=frontmatter, body=strip_embedded_frontmatter(canonical.body),
                        is_root=canonical.root)

    def parse_tool_file(self, base_dir, relative_path: str, content: str, global_mode: bool = False) -> ToolFile:
        locations = self.get_locations(global_mode)
        is_root = relative_path == locations.root_path
        has_frontmatter = self.ROOT_HAS_FRONTMATTER if is_root else self.NON_ROOT_HAS_FRONTMATTER

        if has_frontmatter:
            frontmatter, body = parse_frontmatter(content)
        else:
            frontmatter, body = {}, trim_body(content)
        if is_root and self.REFERENCES_NON_ROOT:
            body = strip_reference_section(body)

        relative_dir, relative_file = split_relative(relative_path)
        return ToolFile(self.TOOL, self.FEATURE, base_dir, relative_dir, relative_file,
                        frontmatter=frontmatter, body=body, is_root=is_root)

    def to_canonical(self, tool_file: ToolFile, output_base_dir='.') -> CanonicalRule:
        description, globs, passthrough = self.canonical_fields(tool_file.frontmatter, tool_file.is_root)

        if tool_file.is_root:
            relative_file = ROOT_RULE_FILENAME
            globs = globs or list(ROOT_RULE_GLOBS)
        else:
            relative_file = self.canonical_filename(tool_file)

        frontmatter = {'root': tool_file.is_root, 'targets': ['*']}
        if description is not None:
            frontmatter['description'] = description
        frontmatter['globs'] = globs
        with_tool_section(frontmatter, self.TOOL, passthrough)

        return CanonicalRule(CANONICAL_RULES_DIR, relative_file, frontmatter=frontmatter,
                             body=tool_file.body, base_dir=output_base_dir)


class ClaudeRuleAdapter(RuleAdapter):
    """Rule adapter for Claude Code.

    Official Documentation: https://docs.anthropic.com/en/docs/claude-code/memory

    The root rule is plain markdown in .claude/CLAUDE.md (~/.claude/CLAUDE.md
    in global mode). Non-root rules live in .claude/rules/ and use a ``paths``
    field holding comma-separated globs.
    """

    TOOL = 'claude'
    DOCS_URL = "https://docs.anthropic.com/en/docs/claude-code/memory"
    SUPPORTED_FIELDS = ['description', 'paths']
    ROOT_DIR = '.claude'
    ROOT_FILE = 'CLAUDE.md'
    NON_ROOT_DIR = '.claude/rules'
    GLOBAL_ROOT_DIR = '.claude'
    GLOBAL_ROOT_FILE = 'CLAUDE.md'
    SUPPORTS_GLOBAL = True

    def native_frontmatter(self, rule):
        frontmatter = super().native_frontmatter(rule)
        if rule.globs:
            frontmatter['paths'] = ', '.join(rule.globs)
        return frontmatter

    def canonical_fields(self, frontmatter, is_root):
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        return frontmatter.get('description'), split_globs(frontmatter.get('paths')), passthrough


class CursorRuleAdapter(RuleAdapter):
    """Rule adapter for Cursor.

    Official Documentation: https://cursor.com/docs/context/rules

    Cursor keeps every rule as an .mdc file in .cursor/rules/ with these fields:
    - description: Description of the rule
    - globs: Comma-separated file patterns
    - alwaysApply: Whether to always apply this rule (true for the root rule)
    """

    TOOL = 'cursor'
    DOCS_URL = "https://cursor.com/docs/context/rules"
    SUPPORTED_FIELDS = ['description', 'globs', 'alwaysApply']
    EXTENSION = '.mdc'
    ROOT_DIR = '.cursor/rules'
    ROOT_FILE = 'overview.mdc'
    NON_ROOT_DIR = '.cursor/rules'
    ROOT_HAS_FRONTMATTER = True

    def native_frontmatter(self, rule):
        frontmatter = super().native_frontmatter(rule)
        if rule.globs and not rule.root:
            frontmatter['globs'] = ','.join(rule.globs)
        frontmatter['alwaysApply'] = rule.root
        return frontmatter

    def canonical_fields(self, frontmatter, is_root):
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        always_apply = frontmatter.get('alwaysApply')
        if always_apply is not None and always_apply != is_root:
            passthrough['alwaysApply'] = always_apply
        return frontmatter.get('description'), split_globs(frontmatter.get('globs')), passthrough


class CopilotRuleAdapter(RuleAdapter):
    """Rule adapter for GitHub Copilot.

    Official Documentation: https://docs.github.com/en/copilot/customizing-copilot

    The root rule is .github/copilot-instructions.md; non-root rules are
    .github/instructions/*.instructions.md with ``applyTo`` globs.
    """

    TOOL = 'copilot'
    DOCS_URL = "https://docs.github.com/en/copilot/customizing-copilot"
    SUPPORTED_FIELDS = ['description', 'applyTo']
    EXTENSION = '.instructions.md'
    ROOT_DIR = '.github'
    ROOT_FILE = 'copilot-instructions.md'
    NON_ROOT_DIR = '.github/instructions'

    def native_frontmatter(self, rule):
        frontmatter = super().native_frontmatter(rule)
        if rule.globs:
            frontmatter['applyTo'] = ','.join(rule.globs)
        return frontmatter

    def canonical_fields(self, frontmatter, is_root):
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        return frontmatter.get('description'), split_globs(frontmatter.get('applyTo')), passthrough


class GeminiRuleAdapter(RuleAdapter):
    """Rule adapter for Gemini CLI.

    GEMINI.md is the root rule; non-root rules are plain markdown memories
    that Gemini only reads when the root rule points at them.
    """

    TOOL = 'gemini'
    DOCS_URL = "https://github.com/google-gemini/gemini-cli/blob/main/docs/cli/configuration.md"
    ROOT_FILE = 'GEMINI.md'
    NON_ROOT_DIR = '.gemini/memories'
    GLOBAL_ROOT_DIR = '.gemini'
    GLOBAL_ROOT_FILE = 'GEMINI.md'
    NON_ROOT_HAS_FRONTMATTER = False
    REFERENCES_NON_ROOT = True
    SUPPORTS_GLOBAL = True


class CodexRuleAdapter(RuleAdapter):
    """Rule adapter for Codex CLI: AGENTS.md plus .codex/memories/."""

    TOOL = 'codex'
    DOCS_URL = "https://github.com/openai/codex/blob/main/docs/getting-started.md"
    ROOT_FILE = 'AGENTS.md'
    NON_ROOT_DIR = '.codex/memories'
    GLOBAL_ROOT_DIR = '.codex'
    GLOBAL_ROOT_FILE = 'AGENTS.md'
    NON_ROOT_HAS_FRONTMATTER = False
    REFERENCES_NON_ROOT = True
    SUPPORTS_GLOBAL = True


class OpenCodeRuleAdapter(RuleAdapter):
    """Rule adapter for OpenCode: AGENTS.md plus .opencode/memories/."""

    TOOL = 'opencode'
    DOCS_URL = "https://opencode.ai/docs/rules/"
    ROOT_FILE = 'AGENTS.md'
    NON_ROOT_DIR = '.opencode/memories'
    GLOBAL_ROOT_DIR = '.config/opencode'
    GLOBAL_ROOT_FILE = 'AGENTS.md'
    NON_ROOT_HAS_FRONTMATTER = False
    REFERENCES_NON_ROOT = True
    SUPPORTS_GLOBAL = True


class KiroRuleAdapter(RuleAdapter):
    """Rule adapter for Kiro steering files.

    Official Documentation: https://kiro.dev/docs/steering/

    .kiro/steering/product.md is the root rule. Other steering files use
    ``inclusion`` (always, fileMatch, manual) and ``fileMatchPattern``;
    their filenames are kebab-case.
    """

    TOOL = 'kiro'
    DOCS_URL = "https://kiro.dev/docs/steering/"
    SUPPORTED_FIELDS = ['description', 'inclusion', 'fileMatchPattern']
    ROOT_DIR = '.kiro/steering'
    ROOT_FILE = 'product.md'
    NON_ROOT_DIR = '.kiro/steering'
    NORMALIZE_FILENAMES = True

    @staticmethod
    def _inclusion(globs: List[str]) -> str:
        return 'fileMatch' if globs else 'always'

    def native_frontmatter(self, rule):
        frontmatter = {'inclusion': self._inclusion(rule.globs)}
        if rule.globs:
            frontmatter['fileMatchPattern'] = ','.join(rule.globs)
        if rule.description is not None:
            frontmatter['description'] = rule.description
        return frontmatter

    def canonical_fields(self, frontmatter, is_root):
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        globs = split_globs(frontmatter.get('fileMatchPattern'))
        inclusion = frontmatter.get('inclusion')
        if inclusion is not None and inclusion != self._inclusion(globs):
            passthrough['inclusion'] = inclusion
        return frontmatter.get('description'), globs, passthrough


class WindsurfRuleAdapter(RuleAdapter):
    """Rule adapter for Windsurf.

    Official Documentation: https://docs.windsurf.com/windsurf/cascade/memories

    Rules live in .windsurf/rules/ with a ``trigger`` of always_on, glob,
    model_decision or manual.
    """

    TOOL = 'windsurf'
    DOCS_URL = "https://docs.windsurf.com/windsurf/cascade/memories"
    SUPPORTED_FIELDS = ['trigger', 'description', 'globs']
    ROOT_DIR = '.windsurf/rules'
    ROOT_FILE = 'overview.md'
    NON_ROOT_DIR = '.windsurf/rules'
    ROOT_HAS_FRONTMATTER = True

    @staticmethod
    def _trigger(is_root: bool, description: Optional[str], globs: List[str]) -> str:
        if is_root:
            return 'always_on'
        if globs:
            return 'glob'
        if description:
            return 'model_decision'
        return 'always_on'

    def native_frontmatter(self, rule):
        frontmatter = {'trigger': self._trigger(rule.root, rule.description, rule.globs)}
        if rule.description is not None:
            frontmatter['description'] = rule.description
        if rule.globs and not rule.root:
            frontmatter['globs'] = ','.join(rule.globs)
        return frontmatter

    def canonical_fields(self, frontmatter, is_root):
        passthrough = collect_passthrough(frontmatter, self.SUPPORTED_FIELDS)
        description = frontmatter.get('description')
        globs = split_globs(frontmatter.get('globs'))
        trigger = frontmatter.get('trigger')
        if trigger is not None and trigger != self._trigger(is_root, description, globs):
            passthrough['trigger'] = trigger
        return description, globs, passthrough


RULE_ADAPTERS = {adapter.TOOL: adapter for adapter in [
    ClaudeRuleAdapter(),
    CursorRuleAdapter(),
    CopilotRuleAdapter(),
    GeminiRuleAdapter(),
    CodexRuleAdapter(),
    OpenCodeRuleAdapter(),
    KiroRuleAdapter(),
    WindsurfRuleAdapter(),
]}


class RulesProcessor(FeatureProcessor):
    """Processor for rules.

    Enforces a single root rule, restricts global mode to the root rule and
    adds the reference section for tools that need one.
    """

    FEATURE = 'rules'

    def load_canonical_files(self) -> List[CanonicalRule]:
        rules = self._load_canonical_dir(CanonicalRule, CANONICAL_RULES_DIR)
        if not rules and not self.errors:
            rules = self._load_canonical_dir(CanonicalRule, CANONICAL_DIR)
            if rules:
                logger.warning(f"Rules found directly in {CANONICAL_DIR}/; "
                               f"move them to {CANONICAL_RULES_DIR}/")

        roots = [rule for rule in rules if rule.root]
        if len(roots) > 1:
            names = ', '.join(rule.relative_file for rule in roots)
            raise ValidationError(f"Multiple root rules found: {names}")

        if self.global_mode:
            ignored = len(rules) - len(roots)
            if ignored:
                logger.warning(f"{ignored} non-root rule(s) found, but global mode only uses the root rule")
            return roots

        return rules

    def convert_canonical_to_tool(self, canonical_files):
        tool_files = super().convert_canonical_to_tool(canonical_files)
        if not self.adapter.REFERENCES_NON_ROOT:
            return tool_files

        root = next((f for f in tool_files if f.is_root), None)
        non_root = [f for f in tool_files if not f.is_root]
        if root is None or not non_root:
            return tool_files

        section = self.generate_reference_section(non_root)
        root.replace_body(f"{section}\n\n{root.body}" if root.body else section)
        return tool_files

    @staticmethod
    def generate_reference_section(tool_files: List[ToolFile]) -> str:
        """List non-root rules so tools without auto-discovery can find them."""
        lines = [REFERENCE_SECTION_HEADER, ""]
        for tool_file in tool_files:
            line = f"- @{tool_file.relative_path}"
            rule = tool_file.source
            if rule is not None and rule.description:
                line += f": {rule.description}"
            if rule is not None and rule.globs:
                line += f" (applies to: {', '.join(rule.globs)})"
            lines.append(line)
        return "\n".join(lines)
