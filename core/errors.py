#!/usr/bin/env python3
"""
Error types for ChainClone.

Every failure in the clone pipeline is terminal. The category tells the
caller how far the run got before aborting.
"""

from typing import Optional


class CloneError(RuntimeError):
    """Base class for all clone failures."""

    def __init__(self, reason: str, stage: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.reason}"
        return self.reason


class InputError(CloneError):
    """Explorer metadata is ambiguous, unverified or uses an unsupported dialect."""


class ExplorerError(InputError):
    """The block explorer could not be queried or returned a bad payload."""


class LayoutError(CloneError):
    """The project tree cannot take the fetched sources without overwriting something."""


class ConfigurationError(CloneError):
    """Explorer settings cannot be expressed in the project configuration."""


class CompilationError(CloneError):
    """Compiling the cloned project or locating the target artifact failed."""


class VersionControlError(CloneError):
    """Staging or committing the cloned project failed."""
