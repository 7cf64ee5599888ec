"""Tests for slash-command adapters and the commands processor."""

import json
from pathlib import Path

import pytest
import toml

from agent_sync.canonical import CanonicalCommand
from agent_sync.commands import COMMAND_ADAPTERS, CommandsProcessor


def make_command(name='review.md', body='Review the staged changes and list problems.', **frontmatter):
    return CanonicalCommand('.agentsync/commands', name, frontmatter=frontmatter, body=body)


def convert_back(adapter, tool_file, base_dir):
    parsed = adapter.parse_tool_file(base_dir, tool_file.relative_path, tool_file.content)
    return adapter.to_canonical(parsed, base_dir)


class TestMarkdownCommands:
    """Test markdown-based command adapters."""

    @pytest.mark.parametrize("tool,path", [
        ('claude', '.claude/commands/review.md'),
        ('cursor', '.cursor/commands/review.md'),
        ('copilot', '.github/prompts/review.prompt.md'),
        ('opencode', '.opencode/command/review.md'),
    ])
    def test_locations(self, temp_dir: Path, tool, path):
        """Test each tool's command file path."""
        assert COMMAND_ADAPTERS[tool].from_canonical(make_command(), temp_dir).relative_path == path

    def test_claude_frontmatter(self, temp_dir: Path):
        """Test description plus passthrough fields."""
        command = make_command(description='Review changes', claude={'allowed-tools': 'Bash(git diff:*)'})

        tool_file = COMMAND_ADAPTERS['claude'].from_canonical(command, temp_dir)

        assert tool_file.frontmatter == {'description': 'Review changes', 'allowed-tools': 'Bash(git diff:*)'}

    def test_cursor_is_plain(self, temp_dir: Path):
        """Test that Cursor commands have no frontmatter."""
        tool_file = COMMAND_ADAPTERS['cursor'].from_canonical(make_command(description='x'), temp_dir)

        assert tool_file.content == 'Review the staged changes and list problems.'

    def test_global_location(self, temp_dir: Path):
        """Test user-scope command directories."""
        adapter = COMMAND_ADAPTERS['claude']

        assert adapter.supports_scope(global_mode=True)
        assert adapter.from_canonical(make_command(), temp_dir, global_mode=True).relative_path == \
            '.claude/commands/review.md'
        assert not COMMAND_ADAPTERS['copilot'].supports_scope(global_mode=True)

    @pytest.mark.parametrize("tool", ['claude', 'copilot', 'opencode'])
    def test_idempotent_with_passthrough(self, temp_dir: Path, tool):
        """Test that description and the tool's bag survive two conversions."""
        adapter = COMMAND_ADAPTERS[tool]
        command = make_command(description='Review changes', **{tool: {'model': 'fast'}})

        first = adapter.from_canonical(command, temp_dir)
        back = convert_back(adapter, first, temp_dir)

        assert back == command
        assert adapter.from_canonical(back, temp_dir).content == first.content


class TestGeminiCommands:
    """Test Gemini CLI TOML commands."""

    def test_toml_output(self, temp_dir: Path):
        """Test description and prompt fields."""
        tool_file = COMMAND_ADAPTERS['gemini'].from_canonical(make_command(description='Review'), temp_dir)

        assert tool_file.relative_path == '.gemini/commands/review.toml'
        assert toml.loads(tool_file.content) == {
            'description': 'Review',
            'prompt': 'Review the staged changes and list problems.',
        }

    def test_round_trip(self, temp_dir: Path):
        """Test import of a generated TOML command."""
        adapter = COMMAND_ADAPTERS['gemini']
        command = make_command(description='Review', body="Line one\n\nLine two with \"quotes\"")

        back = convert_back(adapter, adapter.from_canonical(command, temp_dir), temp_dir)

        assert back == command

    def test_missing_prompt_invalid(self, temp_dir: Path):
        """Test that a TOML command needs a prompt."""
        adapter = COMMAND_ADAPTERS['gemini']
        tool_file = adapter.parse_tool_file(temp_dir, '.gemini/commands/x.toml', 'description = "x"\n')

        assert not adapter.validate(tool_file).ok


class TestKiroHooks:
    """Test Kiro manual hooks."""

    def test_hook_shape(self, temp_dir: Path):
        """Test the generated hook document."""
        tool_file = COMMAND_ADAPTERS['kiro'].from_canonical(make_command('CodeReview.md', description='Review'),
                                                             temp_dir)

        assert tool_file.relative_path == '.kiro/hooks/code-review.kiro.hook'
        assert json.loads(tool_file.content) == {
            'enabled': True,
            'name': 'code-review',
            'description': 'Review',
            'version': '1',
            'when': {'type': 'userTriggered'},
            'then': {'type': 'askAgent', 'prompt': 'Review the staged changes and list problems.'},
        }

    def test_round_trip(self, temp_dir: Path):
        """Test that a generated hook imports to the same command."""
        adapter = COMMAND_ADAPTERS['kiro']
        command = make_command('code-review.md', description='Review')

        back = convert_back(adapter, adapter.from_canonical(command, temp_dir), temp_dir)

        assert back == command

    def test_custom_settings_kept(self, temp_dir: Path):
        """Test that a disabled hook keeps its settings through the bag."""
        adapter = COMMAND_ADAPTERS['kiro']
        content = json.dumps({
            'enabled': False, 'name': 'Lint', 'description': 'Lint', 'version': '1',
            'when': {'type': 'userTriggered'},
            'then': {'type': 'askAgent', 'prompt': 'Run the linter'},
        })
        tool_file = adapter.parse_tool_file(temp_dir, '.kiro/hooks/lint.kiro.hook', content)

        command = adapter.to_canonical(tool_file, temp_dir)
        regenerated = json.loads(adapter.from_canonical(command, temp_dir).content)

        assert command.tool_section('kiro') == {'enabled': False, 'name': 'Lint'}
        assert command.body == 'Run the linter'
        assert regenerated == json.loads(content)


class TestCommandsProcessor:
    """Test CommandsProcessor."""

    def test_generate_and_delete_orphans(self, temp_dir: Path, write_file):
        """Test writing commands and removing stale ones."""
        write_file(temp_dir / '.agentsync' / 'commands' / 'review.md', "---\ndescription: Review\n---\n\nReview it")
        stale = write_file(temp_dir / '.claude' / 'commands' / 'old.md', "Old command")

        written = CommandsProcessor(COMMAND_ADAPTERS['claude'], temp_dir).generate(delete=True)

        assert written == 1
        assert (temp_dir / '.claude' / 'commands' / 'review.md').read_text() == \
            "---\ndescription: Review\n---\n\nReview it\n"
        assert not stale.exists()

    def test_import(self, temp_dir: Path, write_file):
        """Test importing Copilot prompt files."""
        write_file(temp_dir / '.github' / 'prompts' / 'explain.prompt.md',
                   "---\ndescription: Explain code\nmode: ask\n---\n\nExplain the selection.")

        imported = CommandsProcessor(COMMAND_ADAPTERS['copilot'], temp_dir).import_files()
        command = CanonicalCommand.from_file(temp_dir, 'explain.md')

        assert imported == 1
        assert command.description == 'Explain code'
        assert command.tool_section('copilot') == {'mode': 'ask'}
