"""
Agent Sync exceptions.

This module contains all custom exception classes used throughout Agent Sync.
"""


class SyncError(Exception):
    """Base exception for Agent Sync errors."""
    pass


class NotFoundError(SyncError):
    """Raised when an expected tool or canonical file is absent."""
    pass


class ValidationError(SyncError):
    """Raised when frontmatter, a schema or an identifier is invalid."""
    pass


class ConflictError(ValidationError):
    """Raised when mutually exclusive fields are present together."""
    pass


class FileOperationError(SyncError):
    """Raised when file operations fail."""
    pass


class InvalidTargetError(SyncError):
    """Raised when an invalid target is specified."""
    pass
