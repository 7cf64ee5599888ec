"""Tests for the shared FeatureProcessor pass logic."""

from pathlib import Path
from unittest.mock import patch

import pytest

from agent_sync.commands import COMMAND_ADAPTERS, CommandsProcessor
from agent_sync.exceptions import FileOperationError
from fs_backend import BackendWriteError, LocalBackend

COMMAND = "---\ndescription: Review\n---\n\nReview it"


class RecordingBackend(LocalBackend):
    """LocalBackend that records every write and removal."""

    def __init__(self, base_path=None):
        super().__init__(base_path)
        self.calls = []

    def write_text(self, path, content):
        self.calls.append(('write', Path(path).name))
        super().write_text(path, content)

    def remove_file(self, path):
        self.calls.append(('remove', Path(path).name))
        super().remove_file(path)


class FailingBackend(LocalBackend):
    """LocalBackend whose writes always fail."""

    def write_text(self, path, content):
        raise BackendWriteError(f"Could not write {path}: disk full")


@pytest.fixture
def commands_project(temp_dir: Path, write_file) -> Path:
    write_file(temp_dir / '.agentsync' / 'commands' / 'review.md', COMMAND)
    return temp_dir


def claude_processor(base_dir, **kwargs) -> CommandsProcessor:
    return CommandsProcessor(COMMAND_ADAPTERS['claude'], base_dir, **kwargs)


class TestOrphanRemoval:
    """Test orphan handling during generation."""

    def test_orphans_kept_without_delete(self, commands_project: Path, write_file):
        """Test that stale files survive a plain generate."""
        stale = write_file(commands_project / '.claude' / 'commands' / 'old.md', "Old")

        claude_processor(commands_project).generate()

        assert stale.exists()

    def test_orphan_of_failed_source_kept(self, commands_project: Path, write_file):
        """Test that only the files of a failed artifact survive orphan removal."""
        write_file(commands_project / '.agentsync' / 'commands' / 'broken.md', "---\ndescription: [\n---\n\nBody")
        previous = write_file(commands_project / '.claude' / 'commands' / 'broken.md', "Broken")
        stale = write_file(commands_project / '.claude' / 'commands' / 'old.md', "Old")
        processor = claude_processor(commands_project)

        written = processor.generate(delete=True)

        assert written == 1
        assert processor.errors
        assert previous.exists()
        assert not stale.exists()

    def test_orphans_kept_when_error_has_no_source(self, commands_project: Path, write_file):
        """Test that an error not tied to an artifact blocks orphan removal for the pass."""
        stale = write_file(commands_project / '.claude' / 'commands' / 'old.md', "Old")
        processor = claude_processor(commands_project)
        processor.write_pass()
        processor.errors.append("unrelated failure")

        assert processor.remove_orphans() == 0
        assert stale.exists()

    def test_keep_paths_not_removed(self, commands_project: Path, write_file):
        """Test that paths written by a sibling pass are left alone."""
        shared = write_file(commands_project / '.claude' / 'commands' / 'shared.md', "Shared")

        claude_processor(commands_project).generate(delete=True, keep={'.claude/commands/shared.md'})

        assert shared.exists()

    def test_writes_happen_before_removal(self, commands_project: Path, write_file):
        """Test that orphans are removed only after every write."""
        write_file(commands_project / '.claude' / 'commands' / 'old.md', "Old")
        backend = RecordingBackend(str(commands_project))

        claude_processor(commands_project, backend=backend).generate(delete=True)

        assert backend.calls == [('write', 'review.md'), ('remove', 'old.md')]

    def test_generated_file_never_removed(self, commands_project: Path):
        """Test that a regenerated file is not treated as an orphan."""
        claude_processor(commands_project).generate()
        claude_processor(commands_project).generate(delete=True)

        assert (commands_project / '.claude' / 'commands' / 'review.md').exists()


class TestWriting:
    """Test write behavior."""

    def test_unchanged_file_not_rewritten(self, commands_project: Path):
        """Test that a second generate leaves identical files alone."""
        target = commands_project / '.claude' / 'commands' / 'review.md'
        claude_processor(commands_project).generate()
        first = target.read_bytes()
        backend = RecordingBackend(str(commands_project))

        claude_processor(commands_project, backend=backend).generate()

        assert target.read_bytes() == first
        assert backend.calls == []

    def test_dry_run_changes_nothing(self, commands_project: Path, write_file):
        """Test that dry run neither writes nor deletes."""
        stale = write_file(commands_project / '.claude' / 'commands' / 'old.md', "Old")

        written = claude_processor(commands_project, dry_run=True).generate(delete=True)

        assert written == 1
        assert stale.exists()
        assert not (commands_project / '.claude' / 'commands' / 'review.md').exists()

    def test_backend_failure_raises_file_operation_error(self, commands_project: Path):
        """Test that backend errors surface as FileOperationError."""
        processor = claude_processor(commands_project, backend=FailingBackend(str(commands_project)))

        with pytest.raises(FileOperationError, match="disk full"):
            processor.generate()

    def test_trailing_newline_added(self, commands_project: Path):
        """Test that written files end with a newline."""
        claude_processor(commands_project).generate()

        assert (commands_project / '.claude' / 'commands' / 'review.md').read_text().endswith("Review it\n")


class TestImport:
    """Test import passes."""

    def test_no_tool_files_short_circuits(self, temp_dir: Path):
        """Test that conversion is skipped when the tool has no files."""
        adapter = COMMAND_ADAPTERS['claude']

        with patch.object(adapter, 'to_canonical') as to_canonical:
            imported = CommandsProcessor(adapter, temp_dir).import_files()

        assert imported == 0
        to_canonical.assert_not_called()
        assert not (temp_dir / '.agentsync').exists()

    def test_invalid_tool_file_recorded(self, temp_dir: Path, write_file):
        """Test that an unparseable tool file is skipped and recorded."""
        write_file(temp_dir / '.claude' / 'commands' / 'bad.md', "---\nkey: [\n---\n\nBody")
        write_file(temp_dir / '.claude' / 'commands' / 'good.md', "Do the thing")
        processor = CommandsProcessor(COMMAND_ADAPTERS['claude'], temp_dir)

        imported = processor.import_files()

        assert imported == 1
        assert len(processor.errors) == 1
        assert (temp_dir / '.agentsync' / 'commands' / 'good.md').read_text() == \
            "---\ntargets:\n- '*'\n---\n\nDo the thing\n"

    def test_source_dir_separate_from_base_dir(self, temp_dir: Path, write_file):
        """Test importing from a sub-directory into the project root."""
        write_file(temp_dir / 'pkg' / '.claude' / 'commands' / 'lint.md', "Run the linter")

        CommandsProcessor(COMMAND_ADAPTERS['claude'], temp_dir / 'pkg', source_dir=temp_dir).import_files()

        assert (temp_dir / '.agentsync' / 'commands' / 'lint.md').exists()
        assert not (temp_dir / 'pkg' / '.agentsync').exists()
