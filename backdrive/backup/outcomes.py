"""
Outcome classification from tool output.

Most utilities driven here exit 0 even when they failed, so success is
decided by looking for a tool specific marker in what they printed. The
markers are data (OutcomePattern entries in a PatternRegistry) keyed by
``<tool>.<operation>``; supporting a new tool version means registering a
pattern, not editing adapter code.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .errors import ToolReportedFailure
from .runner import ExecutionResult

STREAMS = ('output', 'stdout', 'stderr')


@dataclass(frozen=True)
class OutcomePattern:
    """
    Success rule for one tool operation.

    Attributes:
        name: Registry key, e.g. ``redis-cli.save``
        success: Regex that must be found for the operation to count as done
        failure: Optional regex that forces failure even if success matched
        stream: Which text ``success`` is searched in: stdout, stderr or
            the combined output
        flags: Regex flags; MULTILINE by default so ``$`` anchors at any line end
    """

    name: str
    success: str
    failure: Optional[str] = None
    stream: str = 'output'
    flags: int = re.MULTILINE

    def __post_init__(self):
        if self.stream not in STREAMS:
            raise ValueError(f"Invalid stream {self.stream!r}. Valid options: {list(STREAMS)}")
        re.compile(self.success, self.flags)
        if self.failure is not None:
            re.compile(self.failure, self.flags)

    def select(self, result: ExecutionResult) -> str:
        if self.stream == 'stdout':
            return result.stdout
        if self.stream == 'stderr':
            return result.stderr
        return result.captured_output


@dataclass(frozen=True)
class Outcome:
    success: bool
    reason: str = ''

    @classmethod
    def ok(cls) -> 'Outcome':
        return cls(True)

    @classmethod
    def failed(cls, reason: str) -> 'Outcome':
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.success


def _check(success_text: str, failure_text: str, pattern: OutcomePattern) -> Outcome:
    if pattern.failure is not None:
        match = re.search(pattern.failure, failure_text or '', pattern.flags)
        if match:
            return Outcome.failed(
                f"{pattern.name}: output contains failure marker {match.group(0).strip()!r}"
            )

    if re.search(pattern.success, success_text or '', pattern.flags):
        return Outcome.ok()

    return Outcome.failed(f"{pattern.name}: success marker not found in {pattern.stream}")


def classify(captured_output: str, pattern: OutcomePattern) -> Outcome:
    """
    Classify captured text against a pattern.

    Matching is position-insensitive across lines unless the pattern itself
    anchors. No marker means failure.
    """
    return _check(captured_output, captured_output, pattern)


def classify_result(result: ExecutionResult, pattern: OutcomePattern) -> Outcome:
    """
    Classify a finished process.

    A non-zero exit status is always a failure; a zero exit status still
    needs the success marker.
    """
    if result.exit_status != 0:
        return Outcome.failed(f"{pattern.name}: exited with status {result.exit_status}")
    return _check(pattern.select(result), result.captured_output, pattern)


def require_success(result: ExecutionResult, pattern: OutcomePattern, action: str, command: str):
    """
    Raise ToolReportedFailure unless the result classifies as a success.

    Raises:
        ToolReportedFailure: Carrying the action, command line and full output
    """
    outcome = classify_result(result, pattern)
    if not outcome:
        raise ToolReportedFailure(
            f"Could not {action} ({outcome.reason})",
            action=action,
            command=command,
            output=result.captured_output
        )


class PatternRegistry:
    """
    OutcomePatterns keyed by ``<tool>.<operation>``.

    A read-only registry rejects ``register``; ``copy()`` always returns a
    writable one.
    """

    def __init__(self, patterns: Iterable[OutcomePattern] = (), read_only: bool = False):
        self._patterns: Dict[str, OutcomePattern] = {pattern.name: pattern for pattern in patterns}
        self.read_only = read_only

    def register(self, pattern: OutcomePattern):
        """
        Add or replace a pattern.

        Raises:
            TypeError: If the registry is read-only
        """
        if self.read_only:
            raise TypeError("Pattern registry is read-only; register patterns on a copy()")
        self._patterns[pattern.name] = pattern

    def get(self, name: str) -> OutcomePattern:
        try:
            return self._patterns[name]
        except KeyError:
            raise KeyError(f"No outcome pattern registered for {name}") from None

    def copy(self) -> 'PatternRegistry':
        return PatternRegistry(self._patterns.values())

    def names(self):
        return sorted(self._patterns)

    def __contains__(self, name: str) -> bool:
        return name in self._patterns


EMPTY_OUTPUT = r'\A\s*\Z'

DEFAULT_PATTERNS = PatternRegistry([
    # redis-cli prints "OK" (or "+OK" in raw mode) after SAVE
    OutcomePattern('redis-cli.save', r'OK\s*$'),
    # newer redis-cli versions append the byte count
    OutcomePattern('redis-cli.rdb', r'Transfer finished with success(?: after \d+ bytes)?\.?\s*$'),
    OutcomePattern('svnadmin.create', EMPTY_OUTPUT),
    OutcomePattern('chmod.hook', EMPTY_OUTPUT),
    OutcomePattern('compressor.pipe', EMPTY_OUTPUT, stream='stderr'),
    OutcomePattern('svnsync.init', r'Copied properties for revision \d+\.'),
    # svnsync sync is silent when the mirror is already current
    OutcomePattern(
        'svnsync.sync',
        r'Committed revision \d+\.|Copied properties for revision \d+\.|' + EMPTY_OUTPUT,
        failure=r'^svnsync: E\d+',
        stream='stdout',
    ),
], read_only=True)
