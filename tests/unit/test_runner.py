"""
Unit tests for the process runner (backdrive/backup/runner.py).

Uses the running Python interpreter as a stand-in utility.
"""

import sys
from unittest.mock import patch

import pytest

from backdrive.backup.commands import CommandBuilder, Flag
from backdrive.backup.errors import ExecutionError
from backdrive.backup.runner import ExecutionResult, ProcessRunner
from backdrive.backup.utilities import UtilityResolver


@pytest.fixture
def python_builder():
    return CommandBuilder(UtilityResolver({'python': sys.executable}, search_path=False))


def python_script(builder, script):
    return builder.build('python', subcommand=(Flag('-c'), script))


class TestExecutionResult:
    """Test ExecutionResult."""

    def test_captured_output_combines_streams(self):
        result = ExecutionResult(0, 'out\n', 'err\n')

        assert result.captured_output == 'out\nerr\n'

    def test_captured_output_adds_missing_newline(self):
        result = ExecutionResult(0, 'out', 'err')

        assert result.captured_output == 'out\nerr'

    def test_captured_output_single_stream(self):
        assert ExecutionResult(0, 'out', '').captured_output == 'out'
        assert ExecutionResult(0, '', 'err').captured_output == 'err'
        assert ExecutionResult(0).captured_output == ''


class TestProcessRunner:
    """Test ProcessRunner.run."""

    def test_run_captures_stdout(self, python_builder):
        result = ProcessRunner().run(python_script(python_builder, "print('OK')"))

        assert result.exit_status == 0
        assert result.stdout.strip() == 'OK'
        assert result.stderr == ''

    def test_run_keeps_streams_separate(self, python_builder):
        script = "import sys; print('to stdout'); print('to stderr', file=sys.stderr)"

        result = ProcessRunner().run(python_script(python_builder, script))

        assert result.stdout.strip() == 'to stdout'
        assert result.stderr.strip() == 'to stderr'

    def test_run_returns_nonzero_exit_without_raising(self, python_builder):
        """Test the runner reports exit status but does not interpret it."""
        result = ProcessRunner().run(python_script(python_builder, "import sys; sys.exit(3)"))

        assert result.exit_status == 3

    def test_run_passes_arguments_literally(self, python_builder):
        """Test a value with shell metacharacters reaches the child unchanged."""
        value = "it's; echo pwned | sh $(id)"
        invocation = python_builder.build(
            'python',
            subcommand=(Flag('-c'), "import sys; print(sys.argv[1])"),
            positional=(value,)
        )

        result = ProcessRunner().run(invocation)

        assert result.stdout.rstrip('\n') == value

    def test_run_writes_stdout_to_file(self, python_builder, tmp_path):
        target = tmp_path / 'out.bin'

        with open(target, 'wb') as out:
            result = ProcessRunner().run(
                python_script(python_builder, "import sys; sys.stdout.buffer.write(b'\\x00\\x01')"),
                stdout=out
            )

        assert result.stdout == ''
        assert target.read_bytes() == b'\x00\x01'

    def test_run_missing_utility(self):
        builder = CommandBuilder(UtilityResolver({'redis-cli': '/nonexistent/bin/redis-cli'}, search_path=False))
        invocation = builder.build('redis-cli', positional=(Flag('SAVE'),))

        with pytest.raises(ExecutionError, match="Utility not found") as exc_info:
            ProcessRunner().run(invocation)

        assert exc_info.value.command == '/nonexistent/bin/redis-cli SAVE'

    @patch('backdrive.backup.runner.subprocess.run')
    def test_run_permission_denied(self, mock_run, builder):
        mock_run.side_effect = PermissionError("denied")

        with pytest.raises(ExecutionError, match="Permission denied"):
            ProcessRunner().run(builder.build('svnsync'))

    @patch('backdrive.backup.runner.subprocess.run')
    def test_run_other_os_error(self, mock_run, builder):
        mock_run.side_effect = OSError("exec format error")

        with pytest.raises(ExecutionError, match="Failed to start"):
            ProcessRunner().run(builder.build('svnsync'))

    @patch('backdrive.backup.runner.subprocess.run')
    def test_run_does_not_use_shell(self, mock_run, builder):
        mock_run.return_value.returncode = 0
        mock_run.return_value.stdout = b''
        mock_run.return_value.stderr = b''

        ProcessRunner().run(builder.build('svnadmin', subcommand=(Flag('create'), '/repo')))

        args, kwargs = mock_run.call_args
        assert args[0] == ['svnadmin', 'create', '/repo']
        assert kwargs.get('shell', False) is False
