"""
Test CLI main function by invoking it with different arguments.
"""

from pathlib import Path

import pytest

from agentsync import _split_values, create_parser, main


@pytest.fixture
def in_project(project_dir: Path, home_dir: Path, monkeypatch) -> Path:
    """Run the CLI from inside the sample project."""
    monkeypatch.chdir(project_dir)
    monkeypatch.setenv('AGENTSYNC_HOME', str(home_dir))
    return project_dir


class TestParser:
    """Test argument parsing."""

    def test_split_values(self):
        """Test repeated and comma-separated values."""
        assert _split_values(['claude,cursor', 'kiro']) == ['claude', 'cursor', 'kiro']
        assert _split_values(None) is None

    def test_generate_options(self):
        """Test generate flags."""
        args = create_parser().parse_args(['generate', '-t', 'claude', '--base-dir', '.', '--base-dir', 'web',
                                           '--delete', '--dry-run'])

        assert args.targets == ['claude']
        assert args.base_dirs == ['.', 'web']
        assert args.delete is True
        assert args.dry_run is True
        assert args.global_mode is None

    def test_defaults_left_to_config(self):
        """Test that unset flags do not override agentsync.json."""
        args = create_parser().parse_args(['generate'])

        assert args.targets is None
        assert args.delete is None

    def test_import_requires_target(self):
        """Test that import without -t is rejected."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(['import'])


class TestCLICommands:
    """Test commands via CLI main()."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without a command prints help."""
        assert main([]) == 1
        assert 'generate' in capsys.readouterr().out

    def test_init(self, temp_dir: Path, monkeypatch, capsys):
        """Test init in an empty directory."""
        monkeypatch.chdir(temp_dir)

        assert main(['init']) == 0

        out = capsys.readouterr().out
        assert 'Created .agentsync/rules/overview.md' in out
        assert (temp_dir / 'agentsync.json').exists()

    def test_init_twice(self, temp_dir: Path, monkeypatch, capsys):
        """Test that a second init reports the project as initialized."""
        monkeypatch.chdir(temp_dir)
        main(['init'])
        capsys.readouterr()

        assert main(['init']) == 0
        assert 'already initialized' in capsys.readouterr().out

    def test_generate(self, in_project: Path, capsys):
        """Test a successful generate."""
        assert main(['generate', '-t', 'claude', '-f', 'rules']) == 0

        assert 'Generated 1 file' in capsys.readouterr().out
        assert (in_project / '.claude' / 'CLAUDE.md').exists()

    def test_generate_dry_run(self, in_project: Path, capsys):
        """Test that dry run reports without writing."""
        assert main(['generate', '-t', 'claude', '-f', 'rules', '--dry-run']) == 0

        assert 'Would have generated 1 file' in capsys.readouterr().out
        assert not (in_project / '.claude').exists()

    def test_generate_global(self, in_project: Path, home_dir: Path):
        """Test that --global writes under AGENTSYNC_HOME."""
        assert main(['generate', '-t', 'gemini', '-f', 'rules', '--global']) == 0

        assert (home_dir / '.gemini' / 'GEMINI.md').exists()
        assert not (in_project / 'GEMINI.md').exists()

    def test_generate_without_agentsync_dir(self, temp_dir: Path, monkeypatch, capsys):
        """Test the error when the project is not initialized."""
        monkeypatch.chdir(temp_dir)

        assert main(['generate']) == 1
        assert "[ERROR]" in capsys.readouterr().err

    def test_generate_invalid_target(self, in_project: Path, capsys):
        """Test the error for an unknown tool."""
        assert main(['generate', '-t', 'augment']) == 1
        assert "Invalid target 'augment'" in capsys.readouterr().err

    def test_generate_with_errors_exits_nonzero(self, in_project: Path, write_file, capsys):
        """Test that recorded errors fail the run."""
        write_file(in_project / '.agentsync' / 'rules' / 'other.md', "---\nroot: true\n---\n\nSecond root")

        assert main(['generate', '-t', 'claude', '-f', 'rules']) == 1
        assert 'error(s) during generation' in capsys.readouterr().err

    def test_import(self, in_project: Path, write_file, capsys):
        """Test importing from one tool."""
        write_file(in_project / '.claude' / 'commands' / 'lint.md', "Run the linter")

        assert main(['import', '-t', 'claude', '-f', 'commands']) == 0

        assert 'Imported 1 file' in capsys.readouterr().out
        assert (in_project / '.agentsync' / 'commands' / 'lint.md').exists()

    def test_import_multiple_targets(self, in_project: Path, capsys):
        """Test that import refuses more than one tool."""
        assert main(['import', '-t', 'claude,cursor']) == 1
        assert 'exactly one target' in capsys.readouterr().err

    def test_targets(self, in_project: Path, capsys):
        """Test the support matrix output."""
        assert main(['targets']) == 0

        out = capsys.readouterr().out
        assert 'windsurf' in out
        assert 'subagents' in out
        assert 'global mode' in out
        assert 'GitHub Copilot' in out
