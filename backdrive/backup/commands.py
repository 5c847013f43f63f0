"""
Command construction for external utilities.

Commands are kept as argument vectors and executed without a shell. The
rendered ``command_line`` is what gets logged and embedded in error
messages; it single-quotes every value that came from settings, so
``shlex.split(invocation.command_line)`` gives back exactly ``argv``.
"""

import shlex
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union

from .errors import CommandConstructionError
from .utilities import UtilityResolver


class Flag(str):
    """A token written by the builder itself (``-a``, ``SAVE``), rendered unquoted."""
    pass


def quote(value: str) -> str:
    """
    Wrap a value in single quotes, escaping embedded single quotes.

    ``it's`` becomes ``'it'"'"'s'``.
    """
    return "'" + value.replace("'", "'\"'\"'") + "'"


def render_token(token: str) -> str:
    if isinstance(token, Flag):
        return str(token)
    return quote(token)


@dataclass(frozen=True)
class ToolInvocation:
    """A fully built command for one utility. Immutable once built."""

    utility_name: str
    executable: str
    subcommand_args: Tuple[str, ...] = ()
    credential_args: Tuple[str, ...] = ()
    connectivity_args: Tuple[str, ...] = ()
    extra_args: Tuple[str, ...] = ()
    positional_args: Tuple[str, ...] = ()

    @property
    def argv(self) -> Tuple[str, ...]:
        return (
            (self.executable,)
            + self.subcommand_args
            + self.credential_args
            + self.connectivity_args
            + self.extra_args
            + self.positional_args
        )

    @property
    def command_line(self) -> str:
        tokens = [shlex.quote(self.executable)]
        for token in self.argv[1:]:
            tokens.append(render_token(token))
        return ' '.join(tokens)

    def __str__(self) -> str:
        return self.command_line


def _value(value, what: str) -> str:
    text = str(value)
    if '\x00' in text:
        raise CommandConstructionError(f"{what} contains a NUL byte and cannot be passed to a utility")
    return text


def option(flag: str, value) -> Tuple[str, ...]:
    """
    A flag/value pair, or nothing when the value is unset.

    Args:
        flag: Option name, e.g. ``-a``
        value: Setting value; ``None`` contributes no tokens

    Returns:
        Tuple of zero or two tokens
    """
    if value is None:
        return ()
    return (Flag(flag), _value(value, flag))


def connectivity_options(host=None, port=None, socket=None) -> Tuple[str, ...]:
    """
    Host/port/socket options.

    A socket supersedes host and port entirely; the two cannot be combined.
    """
    if socket is not None:
        return option('-s', socket)
    return option('-h', host) + option('-p', port)


def split_extras(extras: Union[None, str, Iterable[str]]) -> Tuple[str, ...]:
    """
    Tokenize user supplied extra options.

    Each entry is split the way a shell would split it and every resulting
    token becomes one literal argument, so metacharacters like ``;`` or
    ``|`` stay inert.
    """
    if extras is None:
        return ()
    if isinstance(extras, str):
        extras = [extras]

    tokens = []
    for entry in extras:
        text = _value(entry, 'extra option')
        try:
            tokens.extend(shlex.split(text))
        except ValueError as e:
            raise CommandConstructionError(f"Cannot parse extra option {text!r}: {e}") from e
    return tuple(tokens)


class CommandBuilder:
    """Builds ToolInvocations against a read-only UtilityResolver."""

    def __init__(self, resolver: Optional[UtilityResolver] = None):
        self.resolver = resolver or UtilityResolver()

    def build(
        self,
        utility: str,
        subcommand: Sequence[str] = (),
        credentials: Sequence[str] = (),
        connectivity: Sequence[str] = (),
        extras: Union[None, str, Iterable[str]] = None,
        positional: Sequence[str] = ()
    ) -> ToolInvocation:
        """
        Assemble an invocation.

        Args:
            utility: Utility name, resolved through the resolver
            subcommand: Tokens placed right after the executable (``init <dest> <src>``)
            credentials: Credential tokens, usually from ``option()``
            connectivity: Connectivity tokens, usually from ``connectivity_options()``
            extras: User supplied extra options (strings, shell-tokenized)
            positional: Trailing tokens; use ``Flag`` for fixed words

        Returns:
            ToolInvocation

        Raises:
            CommandConstructionError: If a value cannot be passed safely
        """
        return ToolInvocation(
            utility_name=utility,
            executable=self.resolver.resolve(utility),
            subcommand_args=self._tokens(subcommand),
            credential_args=self._tokens(credentials),
            connectivity_args=self._tokens(connectivity),
            extra_args=split_extras(extras),
            positional_args=self._tokens(positional),
        )

    @staticmethod
    def _tokens(tokens: Sequence[str]) -> Tuple[str, ...]:
        result = []
        for token in tokens:
            if token is None:
                continue
            if isinstance(token, Flag):
                result.append(token)
            else:
                result.append(_value(token, 'argument'))
        return tuple(result)
