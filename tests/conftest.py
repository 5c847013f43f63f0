"""
Shared pytest fixtures for backdrive tests.

This module provides fixtures for:
- Command builder with a fixed (PATH independent) utility resolver
- Scripted process runner standing in for the real tools
- Redis dump directory and dump destination
- Credential cipher
"""

import re
from unittest.mock import MagicMock

import pytest

from backdrive.backup.commands import CommandBuilder
from backdrive.backup.runner import ExecutionResult, ProcessRunner
from backdrive.backup.utilities import UtilityResolver
from backdrive.utils.crypto import CredentialCipher


DUMP_BYTES = b'REDIS0009\xfa\tredis-ver\x057.2.4\xff\x00\x01binary'


@pytest.fixture
def resolver():
    """Resolver that never searches PATH, so commands render with bare names."""
    return UtilityResolver(search_path=False)


@pytest.fixture
def builder(resolver):
    return CommandBuilder(resolver)


class ScriptedRunner:
    """
    Builds a MagicMock runner answering by command line.

    ``responses`` maps a regex (searched in the command line) to an
    ExecutionResult or a callable ``(invocation, stdout) -> ExecutionResult``.
    Unmatched commands get an empty successful result.
    """

    def __init__(self):
        self.responses = []
        self.mock = MagicMock(spec=ProcessRunner)
        self.mock.run.side_effect = self._run

    def respond(self, pattern, result):
        self.responses.append((pattern, result))
        return self

    def _run(self, invocation, stdin=None, stdout=None):
        for pattern, result in self.responses:
            if re.search(pattern, invocation.command_line):
                if callable(result):
                    return result(invocation, stdout)
                return result
        return ExecutionResult(0)

    @property
    def command_lines(self):
        return [call.args[0].command_line for call in self.mock.run.call_args_list]


@pytest.fixture
def scripted_runner():
    return ScriptedRunner()


@pytest.fixture
def dump_bytes():
    return DUMP_BYTES


@pytest.fixture
def redis_dir(tmp_path):
    """
    Directory standing in for redis.conf ``dir`` with a ``dump.rdb``.
    """
    directory = tmp_path / 'redis'
    directory.mkdir()
    (directory / 'dump.rdb').write_bytes(DUMP_BYTES)
    return directory


@pytest.fixture
def dump_dir(tmp_path):
    directory = tmp_path / 'dumps'
    directory.mkdir()
    return directory


@pytest.fixture(scope='session')
def cipher():
    """
    CredentialCipher with a fixed salt.

    Passphrase: test_passphrase_123
    """
    return CredentialCipher('test_passphrase_123', salt=b'0123456789abcdef')

