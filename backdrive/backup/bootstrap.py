"""
One-time initialization of a destination before incremental work.

The destination is probed with a cheap status command and the probe's
output decides one of three states:

- UNINITIALIZED: the output matches a "not initialized" marker; the
  initialization steps run once, in order, stopping at the first failure.
- INITIALIZED: the probe exited 0 with nothing on stderr; nothing to do.
- UNKNOWN: anything else. Re-initializing a populated destination can
  destroy it, so this raises BootstrapAmbiguousError instead of guessing.

Initialization is attempted at most once per instance. After a failed
attempt every later call raises BootstrapAmbiguousError.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .commands import ToolInvocation
from .errors import AdapterError, BootstrapAmbiguousError, ExecutionError
from .outcomes import DEFAULT_PATTERNS, PatternRegistry, require_success
from .runner import ExecutionResult, ProcessRunner

logger = logging.getLogger(__name__)


class BootstrapState(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZED = 'initialized'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class BootstrapStep:
    """
    One initialization step.

    Either a command (``invocation`` plus the registry key of its outcome
    pattern) or a local filesystem ``action`` taking no arguments.
    """

    name: str
    invocation: Optional[ToolInvocation] = None
    pattern: Optional[str] = None
    action: Optional[Callable[[], None]] = None

    def __post_init__(self):
        if (self.invocation is None) == (self.action is None):
            raise ValueError(f"Bootstrap step {self.name} needs exactly one of invocation or action")
        if self.invocation is not None and self.pattern is None:
            raise ValueError(f"Bootstrap step {self.name} runs a command but has no outcome pattern")


class IdempotentBootstrap:
    """Probes a destination and initializes it at most once."""

    def __init__(
        self,
        runner: ProcessRunner,
        probe: ToolInvocation,
        not_initialized: Sequence[str],
        steps: Sequence[BootstrapStep],
        patterns: PatternRegistry = DEFAULT_PATTERNS
    ):
        self.runner = runner
        self.probe_invocation = probe
        self.not_initialized = list(not_initialized)
        self.steps = list(steps)
        self.patterns = patterns
        self.completed_steps: List[str] = []
        self._state: Optional[BootstrapState] = None
        self._failure: Optional[AdapterError] = None

    def probe(self) -> Tuple[BootstrapState, ExecutionResult]:
        """Run the probe command and interpret its output."""
        result = self.runner.run(self.probe_invocation)
        output = result.captured_output

        for marker in self.not_initialized:
            if re.search(marker, output):
                return BootstrapState.UNINITIALIZED, result

        if result.exit_status == 0 and not result.stderr.strip():
            return BootstrapState.INITIALIZED, result

        return BootstrapState.UNKNOWN, result

    def ensure_initialized(self) -> BootstrapState:
        """
        Make sure the destination is initialized.

        Returns:
            The state the probe found (later calls return it without probing)

        Raises:
            BootstrapAmbiguousError: If the probe result is not recognized, or
                an earlier initialization attempt in this instance failed
            ToolReportedFailure: If an initialization command fails
            ExecutionError: If a command or local step cannot run
        """
        if self._failure is not None:
            raise BootstrapAmbiguousError(
                f"Initialization of the destination failed earlier ({self._failure.message}); "
                "refusing to continue against a partly initialized destination",
                action=self._failure.action,
                command=self._failure.command,
                output=self._failure.output
            ) from self._failure

        if self._state is not None:
            return self._state

        state, result = self.probe()
        logger.debug(f"Bootstrap probe state: {state.value}")

        if state is BootstrapState.UNKNOWN:
            raise BootstrapAmbiguousError(
                "Could not determine whether the destination is initialized; "
                "refusing to initialize it",
                action='probe',
                command=self.probe_invocation.command_line,
                output=result.captured_output
            )

        # At most one initialization attempt per instance
        self._state = state
        if state is BootstrapState.UNINITIALIZED:
            try:
                self._initialize()
            except AdapterError as e:
                self._failure = e
                raise

        return state

    def _initialize(self):
        logger.info("Initializing destination")
        for step in self.steps:
            if step.invocation is not None:
                result = self.runner.run(step.invocation)
                require_success(
                    result,
                    self.patterns.get(step.pattern),
                    step.name,
                    step.invocation.command_line
                )
            else:
                try:
                    step.action()
                except OSError as e:
                    raise ExecutionError(f"Could not {step.name}: {e}", action=step.name) from e
            self.completed_steps.append(step.name)
