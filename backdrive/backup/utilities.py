"""
Resolution of utility names to executables.

A UtilityResolver is built once from configuration and handed to the
CommandBuilder. It is read-only afterwards: adapters never change which
executable a utility name maps to.
"""

import logging
import shutil
from types import MappingProxyType
from typing import Dict, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = 'BACKDRIVE_UTILITY_'


def env_key(utility: str) -> str:
    """
    Environment variable name that overrides a utility.

    Example: ``redis-cli`` -> ``BACKDRIVE_UTILITY_REDIS_CLI``
    """
    return ENV_PREFIX + utility.upper().replace('-', '_')


class UtilityResolver:
    """Maps utility names such as ``redis-cli`` to executable paths."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None, search_path: bool = True):
        """
        Args:
            overrides: Explicit name -> path mapping, takes precedence
            search_path: Look the utility up on PATH when not overridden
        """
        self._overrides = MappingProxyType(dict(overrides or {}))
        self._search_path = search_path

    @classmethod
    def from_environ(cls, environ, utilities) -> 'UtilityResolver':
        """Build a resolver from ``BACKDRIVE_UTILITY_*`` variables."""
        overrides = {}
        for utility in utilities:
            value = environ.get(env_key(utility))
            if value:
                overrides[utility] = value
        return cls(overrides)

    @property
    def overrides(self):
        return self._overrides

    def with_overrides(self, overrides: Dict[str, str]) -> 'UtilityResolver':
        """Return a new resolver with extra overrides layered on top."""
        merged = dict(self._overrides)
        merged.update(overrides)
        return UtilityResolver(merged, self._search_path)

    def resolve(self, utility: str) -> str:
        """
        Resolve a utility name.

        Overrides win, then PATH lookup; the bare name is returned when
        nothing is found so the failure shows up when the process is spawned.
        """
        if utility in self._overrides:
            return self._overrides[utility]

        if self._search_path:
            found = shutil.which(utility)
            if found:
                return found

        logger.debug(f"Utility {utility} not found on PATH, using bare name")
        return utility
