"""Exceptions raised by the setup wizard.

Only PrerequisiteError and the write-path errors (SchemaError, WriteError,
ToolUnavailableError, BackupError, MergeError) end the program. ParseError
and DiscoveryError are always recovered by the caller.
"""

from __future__ import annotations


class SetupError(Exception):
    """Base class for all wizard errors."""
    pass


class PrerequisiteError(SetupError):
    """A mandatory runtime dependency is missing or too old."""

    def __init__(self, message: str, hints: list[str] | None = None):
        super().__init__(message)
        self.hints = hints or []


class ParseError(SetupError):
    """Existing settings bytes are not valid JSON."""
    pass


class SchemaError(SetupError):
    """Settings document has the wrong shape (root or `env` not an object)."""
    pass


class ToolUnavailableError(SetupError):
    """No usable merge strategy, or the destructive overwrite was declined."""
    pass


class BackupError(SetupError):
    """Copying the settings file to its .bak sibling failed."""
    pass


class MergeError(SetupError):
    """A merge strategy failed for a reason other than parse/schema errors."""
    pass


class DiscoveryError(SetupError):
    """A read-only cloud CLI query failed."""
    pass


class WriteError(SetupError):
    """Reading or rewriting the settings file failed at the OS level."""
    pass
