"""Tests for SyncConfig class."""

import json
import logging
from pathlib import Path

import pytest

from agent_sync.config import TOOL_IDS, SyncConfig, _as_list


class TestSyncConfig:
    """Test cases for SyncConfig."""

    def test_defaults_without_file(self, temp_dir: Path):
        """Test default configuration values."""
        config = SyncConfig(temp_dir)

        assert config.targets == ['*']
        assert config.features == ['*']
        assert config.base_dirs == [temp_dir]
        assert config.delete is False
        assert config.global_mode is False
        assert config.jobs == 4
        assert config.canonical_dir == temp_dir / '.agentsync'

    def test_load_from_file(self, temp_dir: Path):
        """Test values read from agentsync.json."""
        (temp_dir / 'agentsync.json').write_text(json.dumps({
            'targets': ['claude', 'cursor'],
            'features': 'rules,mcp',
            'baseDirs': ['.', 'packages/web'],
            'delete': True,
            'global': True,
            'jobs': 2,
        }))

        config = SyncConfig(temp_dir)

        assert config.targets == ['claude', 'cursor']
        assert config.features == ['rules', 'mcp']
        assert config.base_dirs == [temp_dir, temp_dir / 'packages' / 'web']
        assert config.delete is True
        assert config.global_mode is True
        assert config.jobs == 2

    def test_explicit_config_file(self, temp_dir: Path):
        """Test loading a config file from another location."""
        config_file = temp_dir / 'custom.json'
        config_file.write_text('{"targets": ["kiro"]}')

        assert SyncConfig(temp_dir, config_file).targets == ['kiro']

    def test_invalid_file_falls_back_to_defaults(self, temp_dir: Path, caplog):
        """Test that a broken config file only logs a warning."""
        (temp_dir / 'agentsync.json').write_text('[1, 2')

        with caplog.at_level(logging.WARNING):
            config = SyncConfig(temp_dir)

        assert config.targets == ['*']
        assert "Could not load config file" in caplog.text

    def test_non_object_rejected(self, temp_dir: Path):
        """Test that a JSON list is not accepted as configuration."""
        (temp_dir / 'agentsync.json').write_text('["claude"]')

        assert SyncConfig(temp_dir).targets == ['*']

    @pytest.mark.parametrize("value,expected", [(0, 1), ('3', 3), ('many', 1), (None, 1)])
    def test_jobs_sanitized(self, temp_dir: Path, value, expected):
        """Test that jobs is always a positive integer."""
        (temp_dir / 'agentsync.json').write_text(json.dumps({'jobs': value}))

        assert SyncConfig(temp_dir).jobs == expected

    def test_save_config(self, temp_dir: Path):
        """Test saving configuration to file."""
        config = SyncConfig(temp_dir)
        config.config['targets'] = ['gemini']

        config.save_config()

        assert json.loads((temp_dir / 'agentsync.json').read_text())['targets'] == ['gemini']

    def test_save_config_failure(self, temp_dir: Path):
        """Test that an unwritable config path raises RuntimeError."""
        config = SyncConfig(temp_dir, temp_dir / 'missing' / 'agentsync.json')

        with pytest.raises(RuntimeError, match="Could not save config file"):
            config.save_config()

    def test_available_targets(self, temp_dir: Path):
        """Test the known tools and their display names."""
        config = SyncConfig(temp_dir)

        assert config.get_available_targets() == TOOL_IDS
        assert config.get_target_name('copilot') == 'GitHub Copilot'
        assert config.get_target_name('unknown') == 'unknown'


class TestAsList:
    """Test list normalization of config values."""

    def test_string(self):
        assert _as_list('claude, cursor,,') == ['claude', 'cursor']

    def test_none(self):
        assert _as_list(None) == []

    def test_list(self):
        assert _as_list(['claude']) == ['claude']
