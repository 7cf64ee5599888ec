"""Pytest configuration and fixtures for Agent Sync tests."""

import logging
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from agent_sync.manager import SyncManager

ROOT_RULE = """---
root: true
targets:
- '*'
description: Project overview
globs:
- '**/*'
---

# Project Overview

Use Python 3 and keep functions small.
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir).resolve()


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
    """Write a text file, creating parent directories."""
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def project_dir(temp_dir: Path, write_file) -> Path:
    """Create a project with a .agentsync/ tree holding a root rule."""
    project = temp_dir / "project"
    (project / ".agentsync" / "rules").mkdir(parents=True)
    write_file(project / ".agentsync" / "rules" / "overview.md", ROOT_RULE)
    return project


@pytest.fixture
def home_dir(temp_dir: Path) -> Path:
    """Create a stand-in home directory for global mode."""
    home = temp_dir / "home"
    home.mkdir()
    return home


@pytest.fixture
def manager(project_dir: Path, home_dir: Path) -> SyncManager:
    """Create a test manager for the sample project."""
    return SyncManager(project_dir, home_dir=home_dir)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the CLI log handler so it never outlives a captured stream."""
    yield
    logger = logging.getLogger('agent_sync')
    for handler in list(logger.handlers):
        if getattr(handler, '_agent_sync', False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def list_tool_files() -> Callable[[Path], list]:
    """List relative paths of generated files, skipping .agentsync/ and the config file."""
    def _list(base: Path) -> list:
        return sorted(
            p.relative_to(base).as_posix() for p in base.rglob('*')
            if p.is_file() and '.agentsync' not in p.relative_to(base).parts and p.name != 'agentsync.json'
        )
    return _list
