"""
Backup adapters.

An adapter backs up one kind of source by driving its command-line tools.
Adapters share no base class; each provides:

- label: name used in events and dump file names
- prepare(): run the tool steps that produce or refresh the source
- verify(): check the expected result exists
- execute(): deliver or sync the backup
- perform(): prepare, verify, execute, emitting started/finished events

Supported:
- RedisAdapter: copies (optionally compresses) the Redis dump file,
  optionally after ``SAVE`` or ``--rdb``
- SVNSyncAdapter: mirrors a remote Subversion repository with svnsync,
  initializing the local mirror the first time
"""

import dataclasses
import re
from pathlib import Path
from typing import Optional

from backdrive.utils.crypto import CredentialError

from .bootstrap import BootstrapStep, IdempotentBootstrap
from .commands import CommandBuilder, Flag, ToolInvocation, connectivity_options, option
from .compression import CompressionTransform
from .delivery import ArtifactSpec, check_artifact, deliver
from .errors import AdapterError, ArtifactNotFoundError, CommandConstructionError, ExecutionError
from .events import RunLog
from .outcomes import DEFAULT_PATTERNS, PatternRegistry, require_success
from .runner import ProcessRunner
from .settings import RedisSettings, SVNSyncSettings


def dump_filename(label: str, database_id: Optional[str] = None) -> str:
    """
    Base name of a dump file: ``<Label>[-<id>]``.

    The id is reduced to letters, digits, ``-`` and ``_``.
    """
    if database_id is None:
        return label
    safe_id = re.sub(r'[^A-Za-z0-9_-]', '_', str(database_id))
    return f"{label}-{safe_id}"


def perform_adapter(adapter):
    """
    Run an adapter's steps in order.

    Emits ``started``, then ``finished`` or ``failed``. Any AdapterError
    aborts the run and is re-raised; there is no partial success.
    """
    run_log = adapter.run_log
    run_log.emit('started', adapter.label)
    try:
        adapter.prepare()
        adapter.verify()
        result = adapter.execute()
    except AdapterError as e:
        run_log.emit('failed', adapter.label, e.message)
        raise
    run_log.emit('finished', adapter.label)
    return result


class RedisAdapter:
    """
    Backs up a Redis dump file.

    The dump is delivered to::

        <dump_path>/Redis[-<database_id>].rdb[<compression extension>]
    """

    label = 'Redis'

    def __init__(
        self,
        settings: RedisSettings,
        dump_path: str,
        builder: Optional[CommandBuilder] = None,
        runner: Optional[ProcessRunner] = None,
        compression: Optional[CompressionTransform] = None,
        patterns: PatternRegistry = DEFAULT_PATTERNS,
        run_log: Optional[RunLog] = None,
        database_id: Optional[str] = None
    ):
        if not settings.path:
            raise CommandConstructionError("Redis settings need 'path' (the dump directory)")

        self.settings = settings
        self.dump_path = dump_path
        self.builder = builder or CommandBuilder()
        self.runner = runner or ProcessRunner()
        self.compression = compression
        self.patterns = patterns
        self.run_log = run_log or RunLog()
        self.database_id = database_id

    @property
    def dump_filename(self) -> str:
        return dump_filename(self.label, self.database_id)

    @property
    def source_path(self) -> Path:
        return Path(self.settings.path) / f"{self.settings.name}.rdb"

    @property
    def destination_path(self) -> Path:
        return Path(self.dump_path) / f"{self.dump_filename}.rdb"

    def _redis_cli(self, positional) -> ToolInvocation:
        settings = self.settings
        return self.builder.build(
            'redis-cli',
            credentials=option('-a', settings.password),
            connectivity=connectivity_options(settings.host, settings.port, settings.socket),
            extras=settings.additional_options,
            positional=positional
        )

    def save_invocation(self) -> ToolInvocation:
        """``redis-cli [-a] [-h -p | -s] [extras] SAVE``"""
        return self._redis_cli((Flag('SAVE'),))

    def rdb_invocation(self) -> ToolInvocation:
        """``redis-cli [-a] [-h -p | -s] [extras] --rdb <path>/<name>.rdb``"""
        return self._redis_cli((Flag('--rdb'), str(self.source_path)))

    def sync_remote(self):
        invocation = self.rdb_invocation()
        self.run_log.log("Fetching remote dump with redis-cli --rdb")
        result = self.runner.run(invocation)
        require_success(result, self.patterns.get('redis-cli.rdb'), 'sync_remote', invocation.command_line)

    def invoke_save(self):
        invocation = self.save_invocation()
        self.run_log.log("Invoking redis-cli SAVE")
        result = self.runner.run(invocation)
        require_success(result, self.patterns.get('redis-cli.save'), 'invoke_save', invocation.command_line)

    def prepare(self):
        if self.settings.sync_remote:
            self.sync_remote()
        if self.settings.invoke_save:
            self.invoke_save()

    def verify(self) -> Path:
        """
        Raises:
            ArtifactNotFoundError: If the dump file is missing
        """
        try:
            return check_artifact(self.source_path)
        except ArtifactNotFoundError as e:
            raise ArtifactNotFoundError(
                f"Redis database dump not found\nFile path was {self.source_path}",
                action='copy'
            ) from e

    def execute(self) -> Path:
        spec = ArtifactSpec(
            source_path=str(self.source_path),
            destination_path=str(self.destination_path),
            compression=self.compression
        )
        delivered = deliver(spec, runner=self.runner, builder=self.builder, patterns=self.patterns)
        self.run_log.log(f"Dump delivered to {delivered}")
        return delivered

    def perform(self) -> Path:
        return perform_adapter(self)


NOT_INITIALIZED_MARKERS = (
    r"is not a working copy",
    r"Can't open file '[^']*format'",
    r"E000002",
)

HOOK_SCRIPT = '#!/bin/sh\n'


class SVNSyncAdapter:
    """
    Mirrors a remote Subversion repository into a local one with svnsync.

    The local mirror is created and hooked up to the remote on the first
    run only (see IdempotentBootstrap); later runs just sync.
    """

    label = 'SVNSync'

    def __init__(
        self,
        settings: SVNSyncSettings,
        builder: Optional[CommandBuilder] = None,
        runner: Optional[ProcessRunner] = None,
        patterns: PatternRegistry = DEFAULT_PATTERNS,
        run_log: Optional[RunLog] = None
    ):
        if not settings.path:
            raise CommandConstructionError("SVNSync settings need 'path' (the local mirror)")
        if not settings.host:
            raise CommandConstructionError("SVNSync settings need 'host'")

        self.settings = settings
        self.builder = builder or CommandBuilder()
        self.runner = runner or ProcessRunner()
        self.patterns = patterns
        self.run_log = run_log or RunLog()
        self.bootstrap = IdempotentBootstrap(
            self.runner,
            self.probe_invocation(),
            NOT_INITIALIZED_MARKERS,
            self.initialize_steps(),
            patterns
        )

    @property
    def url(self) -> str:
        return self.settings.url

    @property
    def path(self) -> Path:
        return Path(self.settings.path)

    @property
    def mirror_url(self) -> str:
        return f"file://{self.settings.path}"

    @property
    def hook_path(self) -> Path:
        return self.path / 'hooks' / 'pre-revprop-change'

    def source_credentials(self):
        return (
            option('--source-username', self.settings.username)
            + option('--source-password', self.settings.password)
        )

    def probe_invocation(self) -> ToolInvocation:
        return self.builder.build('svnlook', subcommand=(Flag('uuid'), str(self.path)))

    def create_invocation(self) -> ToolInvocation:
        return self.builder.build('svnadmin', subcommand=(Flag('create'), str(self.path)))

    def chmod_invocation(self) -> ToolInvocation:
        return self.builder.build('chmod', subcommand=(Flag('+x'), str(self.hook_path)))

    def init_invocation(self) -> ToolInvocation:
        return self.builder.build(
            'svnsync',
            subcommand=(Flag('init'), self.mirror_url, self.url),
            credentials=self.source_credentials()
        )

    def sync_invocation(self) -> ToolInvocation:
        return self.builder.build(
            'svnsync',
            subcommand=(Flag('sync'), self.mirror_url),
            credentials=self.source_credentials(),
            positional=(Flag('--non-interactive'),)
        )

    def write_hook(self):
        # svnsync needs revprop changes allowed on the mirror
        self.hook_path.parent.mkdir(parents=True, exist_ok=True)
        self.hook_path.write_text(HOOK_SCRIPT)

    def initialize_steps(self):
        return [
            BootstrapStep('create repository', self.create_invocation(), 'svnadmin.create'),
            BootstrapStep('write pre-revprop-change hook', action=self.write_hook),
            BootstrapStep('make hook executable', self.chmod_invocation(), 'chmod.hook'),
            BootstrapStep('initialize svnsync', self.init_invocation(), 'svnsync.init'),
        ]

    def prepare(self):
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExecutionError(
                f"Cannot create local mirror directory {self.path}: {e}",
                action='prepare'
            ) from e
        state = self.bootstrap.ensure_initialized()
        self.run_log.log(f"Local mirror state: {state.value}")

    def verify(self) -> Path:
        if not self.path.is_dir():
            raise ArtifactNotFoundError(
                f"Local mirror not found\nDirectory was {self.path}",
                action='verify'
            )
        return self.path

    def execute(self) -> Path:
        self.run_log.log(
            f"{self.label} started syncing '{self.url}' '{self.settings.path}'."
        )
        invocation = self.sync_invocation()
        result = self.runner.run(invocation)
        require_success(result, self.patterns.get('svnsync.sync'), 'sync', invocation.command_line)
        return self.path

    def perform(self) -> Path:
        return perform_adapter(self)


ADAPTERS = {
    'redis': RedisAdapter,
    'svnsync': SVNSyncAdapter,
}


def resolve_password(settings, cipher=None):
    """
    Return settings with ``password_encrypted`` decrypted into ``password``.

    Raises:
        CommandConstructionError: If the password is encrypted and no cipher
            is available, or decryption fails
    """
    if not settings.password_encrypted:
        return settings

    if cipher is None:
        raise CommandConstructionError("Password is encrypted but no credential cipher was provided")

    try:
        password = cipher.decrypt(settings.password_encrypted)
    except CredentialError as e:
        raise CommandConstructionError(f"Failed to decrypt password: {e}") from e

    return dataclasses.replace(settings, password=password, password_encrypted=None)


def create_adapter(kind: str, settings, cipher=None, **kwargs):
    """
    Factory function to create the adapter for a source kind.

    Args:
        kind: 'redis' or 'svnsync'
        settings: RedisSettings or SVNSyncSettings
        cipher: CredentialCipher for encrypted passwords
        **kwargs: Passed to the adapter (builder, runner, dump_path, ...)

    Returns:
        RedisAdapter or SVNSyncAdapter instance

    Raises:
        ValueError: If kind is invalid
    """
    if kind not in ADAPTERS:
        raise ValueError(f"Invalid adapter kind: {kind}")

    settings = resolve_password(settings, cipher)
    return ADAPTERS[kind](settings, **kwargs)
