"""
Configuration management for Agent Sync.

Handles loading and saving ``agentsync.json`` and describes the supported
tools and features.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Canonical source layout, relative to the project root
CANONICAL_DIR = '.agentsync'
CANONICAL_RULES_DIR = f'{CANONICAL_DIR}/rules'
CANONICAL_COMMANDS_DIR = f'{CANONICAL_DIR}/commands'
CANONICAL_SUBAGENTS_DIR = f'{CANONICAL_DIR}/subagents'
CANONICAL_MCP_FILE = 'mcp.json'
CANONICAL_LEGACY_MCP_FILE = '.mcp.json'
CANONICAL_IGNORE_FILE = '.aiignore'
CANONICAL_LEGACY_IGNORE_PATH = '.agentsyncignore'

FEATURES = ['rules', 'ignore', 'mcp', 'commands', 'subagents']


class SyncConfig:
    """Configuration management for Agent Sync targets and paths."""

    # Supported tools with their display names and documentation
    TARGET_CONFIGS = {
        'claude': {
            'name': 'Claude Code',
            'docs_url': 'https://docs.anthropic.com/en/docs/claude-code/memory',
        },
        'cursor': {
            'name': 'Cursor',
            'docs_url': 'https://cursor.com/docs/context/rules',
        },
        'copilot': {
            'name': 'GitHub Copilot',
            'docs_url': 'https://docs.github.com/en/copilot/customizing-copilot',
        },
        'gemini': {
            'name': 'Gemini CLI',
            'docs_url': 'https://github.com/google-gemini/gemini-cli/blob/main/docs/cli/configuration.md',
        },
        'codex': {
            'name': 'Codex CLI',
            'docs_url': 'https://github.com/openai/codex/blob/main/docs/config.md',
        },
        'opencode': {
            'name': 'OpenCode',
            'docs_url': 'https://opencode.ai/docs/config/',
        },
        'kiro': {
            'name': 'Kiro',
            'docs_url': 'https://kiro.dev/docs/steering/',
        },
        'windsurf': {
            'name': 'Windsurf',
            'docs_url': 'https://docs.windsurf.com/windsurf/cascade/memories',
        },
    }

    CONFIG_FILE = 'agentsync.json'

    DEFAULTS = {
        'targets': ['*'],
        'features': ['*'],
        'baseDirs': ['.'],
        'delete': False,
        'global': False,
        'verbose': False,
        'jobs': 4,
    }

    def __init__(self, base_path: Path, config_file: Optional[Path] = None):
        self.base_path = Path(base_path).resolve()
        self.config_path = Path(config_file) if config_file else self.base_path / self.CONFIG_FILE
        self.canonical_dir = self.base_path / CANONICAL_DIR

        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """Load configuration from file or fall back to defaults."""
        config = dict(self.DEFAULTS)
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding='utf-8') as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError("top-level value must be an object")
                config.update(loaded)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load config file {self.config_path}: {e}")
        return config

    def save_config(self):
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2)
                f.write('\n')
        except OSError as e:
            raise RuntimeError(f"Could not save config file: {e}") from e

    @property
    def targets(self) -> List[str]:
        return _as_list(self.config.get('targets'))

    @property
    def features(self) -> List[str]:
        return _as_list(self.config.get('features'))

    @property
    def base_dirs(self) -> List[Path]:
        """Output directories, resolved against the project root."""
        return [(self.base_path / d).resolve() for d in _as_list(self.config.get('baseDirs'))]

    @property
    def delete(self) -> bool:
        return bool(self.config.get('delete', False))

    @property
    def global_mode(self) -> bool:
        return bool(self.config.get('global', False))

    @property
    def verbose(self) -> bool:
        return bool(self.config.get('verbose', False))

    @property
    def jobs(self) -> int:
        try:
            return max(1, int(self.config.get('jobs', 4)))
        except (TypeError, ValueError):
            return 1

    def get_available_targets(self) -> List[str]:
        """Get list of available target names."""
        return list(self.TARGET_CONFIGS.keys())

    def get_target_name(self, target: str) -> str:
        """Get the display name for a target."""
        return self.TARGET_CONFIGS.get(target, {}).get('name', target)


TOOL_IDS = list(SyncConfig.TARGET_CONFIGS.keys())


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return [str(v) for v in value]
