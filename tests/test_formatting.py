"""Tests for output formatting and logging setup."""

import io
import logging

from agent_sync.formatting import (
    Colors,
    StatusFormatter,
    colored_status,
    format_sync_summary,
    format_target_matrix,
    setup_logging,
)
from agent_sync.manager import SyncResult


class TestColoredStatus:
    """Test colored status strings."""

    def test_known_status(self):
        assert colored_status('SUCCESS', 'done') == f"{Colors.GREEN}[SUCCESS]{Colors.NC} done"

    def test_unknown_status(self):
        assert colored_status('OTHER') == f"{Colors.NC}[OTHER]{Colors.NC}"

    def test_only_used_statuses_colored(self):
        assert colored_status('DELETED') == f"{Colors.NC}[DELETED]{Colors.NC}"
        assert colored_status('TIP') == f"{Colors.CYAN}[TIP]{Colors.NC}"


class TestLogging:
    """Test the CLI log handler."""

    def test_plain_format(self):
        """Test the uncolored record format."""
        record = logging.LogRecord('agent_sync', logging.WARNING, __file__, 1, "careful", None, None)

        assert StatusFormatter(use_color=False).format(record) == "[WARNING] careful"

    def test_setup_logging_installs_one_handler(self):
        """Test that repeated setup does not duplicate output."""
        stream = io.StringIO()
        setup_logging(stream=stream)
        logger = setup_logging(verbose=True, stream=stream)

        logging.getLogger('agent_sync.processor').debug("hello")

        assert logger.level == logging.DEBUG
        assert stream.getvalue() == "[DEBUG] hello\n"

    def test_info_level_hides_debug(self):
        """Test the default level."""
        stream = io.StringIO()
        setup_logging(stream=stream)

        logging.getLogger('agent_sync.manager').debug("hidden")
        logging.getLogger('agent_sync.manager').info("shown")

        assert stream.getvalue() == "[INFO] shown\n"


class TestSummary:
    """Test run summaries."""

    def test_generated_summary(self):
        """Test per-feature counts."""
        result = SyncResult()
        result.add('rules', 3)
        result.add('mcp', 1)

        summary = format_sync_summary(result)

        assert summary.splitlines()[0] == colored_status('SUCCESS', 'Generated 4 files')
        assert "   rules: 3 files" in summary
        assert "   mcp: 1 file" in summary

    def test_dry_run_summary(self):
        """Test the dry-run header."""
        result = SyncResult()
        result.add('rules', 1)

        assert format_sync_summary(result, dry_run=True).startswith(
            colored_status('DRY RUN', 'Would have generated 1 file'))

    def test_empty_summary(self):
        """Test a run that touched nothing."""
        assert format_sync_summary(SyncResult(), action='Imported') == colored_status('SUCCESS', 'Imported 0 files')


class TestTargetMatrix:
    """Test the support matrix table."""

    def test_marks(self):
        table = format_target_matrix({'claude': ['rules'], 'kiro': []}, ['rules'])
        lines = table.splitlines()

        assert lines[0].split() == ['tool', 'rules']
        assert lines[1].split() == ['claude', '✓']
        assert lines[2].split() == ['kiro', '✗']
