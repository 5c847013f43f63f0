"""
Backup module for backdrive.

This module drives external command-line tools to back up data sources:
- Command construction (quoted, injection-safe)
- Process execution
- Outcome classification from tool output
- Idempotent bootstrap of destinations
- Adapters (Redis dump copy, svnsync mirror)
- Artifact delivery with optional compression
"""

from .adapters import RedisAdapter, SVNSyncAdapter, create_adapter
from .bootstrap import BootstrapState, IdempotentBootstrap
from .commands import CommandBuilder, ToolInvocation
from .delivery import ArtifactSpec, deliver
from .errors import (
    AdapterError,
    ArtifactNotFoundError,
    BootstrapAmbiguousError,
    CommandConstructionError,
    ExecutionError,
    ToolReportedFailure
)
from .outcomes import DEFAULT_PATTERNS, OutcomePattern, PatternRegistry, classify
from .runner import ExecutionResult, ProcessRunner
from .utilities import UtilityResolver

__all__ = [
    'RedisAdapter',
    'SVNSyncAdapter',
    'create_adapter',
    'BootstrapState',
    'IdempotentBootstrap',
    'CommandBuilder',
    'ToolInvocation',
    'ArtifactSpec',
    'deliver',
    'AdapterError',
    'ArtifactNotFoundError',
    'BootstrapAmbiguousError',
    'CommandConstructionError',
    'ExecutionError',
    'ToolReportedFailure',
    'DEFAULT_PATTERNS',
    'OutcomePattern',
    'PatternRegistry',
    'classify',
    'ExecutionResult',
    'ProcessRunner',
    'UtilityResolver'
]
