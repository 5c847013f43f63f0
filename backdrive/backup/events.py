"""
Run log and lifecycle events emitted by adapters.

Adapters do not render or deliver notifications themselves. They append
timestamped lines to a RunLog and emit AdapterEvents (started, finished,
failed) that a listener supplied by the surrounding system can consume.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

PHASES = ('started', 'finished', 'failed')


@dataclass(frozen=True)
class AdapterEvent:
    phase: str
    adapter_label: str
    timestamp: datetime
    message: str = ''


class RunLog:
    """
    Collects log lines and lifecycle events for one adapter run.

    Every line is also passed to the module logger.
    """

    def __init__(self, listener: Optional[Callable[[AdapterEvent], None]] = None):
        """
        Args:
            listener: Optional callable receiving each AdapterEvent
        """
        self.listener = listener
        self.lines: List[str] = []
        self.events: List[AdapterEvent] = []

    def log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Level used for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.lines.append(f"[{timestamp}] {message}")
        logger.log(level, message)

    def emit(self, phase: str, adapter_label: str, message: str = '') -> AdapterEvent:
        """
        Record a lifecycle event and hand it to the listener.

        Raises:
            ValueError: If phase is not started, finished or failed
        """
        if phase not in PHASES:
            raise ValueError(f"Invalid phase: {phase}. Valid options: {list(PHASES)}")

        event = AdapterEvent(
            phase=phase,
            adapter_label=adapter_label,
            timestamp=datetime.now(timezone.utc),
            message=message
        )
        self.events.append(event)
        self.log(f"{adapter_label} {phase}" + (f": {message}" if message else ''),
                 logging.ERROR if phase == 'failed' else logging.INFO)

        if self.listener:
            self.listener(event)
        return event

    def text(self) -> str:
        return '\n'.join(self.lines)
