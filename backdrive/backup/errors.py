"""
Error types raised by adapters.

Every failure inside an adapter surfaces as an AdapterError subclass that
carries the action being attempted, the exact command line and the full
output the tool produced, so an operator can diagnose without re-running.
"""

from typing import Optional


class AdapterError(Exception):
    """Base class for all adapter failures."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        command: Optional[str] = None,
        output: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.action = action
        self.command = command
        self.output = output

    def __str__(self) -> str:
        parts = [self.message]
        if self.action:
            parts.append(f"Action was: {self.action}")
        if self.command:
            parts.append(f"Command was: {self.command}")
        if self.output is not None:
            parts.append(f"Response was: {self.output}")
        return '\n'.join(parts)


class CommandConstructionError(AdapterError):
    """Raised when settings cannot be turned into a safe command line."""
    pass


class ExecutionError(AdapterError):
    """Raised when a utility could not be started at all."""
    pass


class ToolReportedFailure(AdapterError):
    """Raised when a utility ran but its output carries no success marker."""
    pass


class ArtifactNotFoundError(AdapterError):
    """Raised when the file a step should have produced is missing."""
    pass


class BootstrapAmbiguousError(AdapterError):
    """Raised when a bootstrap probe result matches no known state."""
    pass
