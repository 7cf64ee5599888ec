"""
Output formatting utilities for Agent Sync.

Provides color codes, the log formatter and summary formatting for terminal
output.
"""

import logging
import sys
from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from agent_sync.manager import SyncResult


class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    MAGENTA = '\033[0;35m'
    CYAN = '\033[0;36m'
    NC = '\033[0m'  # No Color

    @staticmethod
    def colorize(text: str, color: str) -> str:
        """Wrap text in color codes."""
        return f"{color}{text}{Colors.NC}"


def colored_status(status_type: str, message: str = "") -> str:
    """Return a colored status message.

    Args:
        status_type: Type of status (SUCCESS, ERROR, WARNING, INFO, etc.)
        message: Optional message to append after the status

    Returns:
        Colored status string
    """
    color_map = {
        'SUCCESS': Colors.GREEN,
        'ERROR': Colors.RED,
        'WARNING': Colors.YELLOW,
        'INFO': Colors.BLUE,
        'DEBUG': Colors.MAGENTA,
        'DRY RUN': Colors.CYAN,
        'TIP': Colors.CYAN,
    }

    color = color_map.get(status_type, Colors.NC)
    status_text = Colors.colorize(f"[{status_type}]", color)

    if message:
        return f"{status_text} {message}"
    return status_text


class StatusFormatter(logging.Formatter):
    """Render log records as ``[LEVEL] message`` in the status colors."""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.use_color:
            return colored_status(record.levelname, message)
        return f"[{record.levelname}] {message}"


def setup_logging(verbose: bool = False, stream=None) -> logging.Logger:
    """Configure the ``agent_sync`` logger for CLI use.

    Calling it again only adjusts the level; handlers are installed once.
    """
    logger = logging.getLogger('agent_sync')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(getattr(h, '_agent_sync', False) for h in logger.handlers):
        stream = stream or sys.stderr
        handler = logging.StreamHandler(stream)
        handler._agent_sync = True
        handler.setFormatter(StatusFormatter(use_color=hasattr(stream, 'isatty') and stream.isatty()))
        logger.addHandler(handler)

    return logger


def format_sync_summary(result: 'SyncResult', action: str = 'Generated', dry_run: bool = False) -> str:
    """Format the per-feature counts of a generate or import run."""
    lines = []
    prefix = "Would have " + action.lower() if dry_run else action
    for feature, count in result.counts.items():
        noun = 'file' if count == 1 else 'files'
        lines.append(f"   {feature}: {count} {noun}")

    header = colored_status('DRY RUN' if dry_run else 'SUCCESS',
                            f"{prefix} {result.total} file{'s' if result.total != 1 else ''}")
    if not lines:
        return header
    return header + "\n" + "\n".join(lines)


def format_target_matrix(matrix: Dict[str, List[str]], features: List[str]) -> str:
    """Format which features each tool supports as a small table."""
    width = max((len(tool) for tool in matrix), default=4)
    header = f"   {'tool':<{width}}  " + "  ".join(f"{f:<9}" for f in features)
    rows = [header]
    for tool, supported in matrix.items():
        marks = "  ".join(f"{('✓' if f in supported else '✗'):<9}" for f in features)
        rows.append(f"   {tool:<{width}}  {marks}")
    return "\n".join(rows)
