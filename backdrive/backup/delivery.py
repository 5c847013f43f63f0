"""
Artifact delivery into the dump directory.

Copies the produced artifact to its destination, or streams it through a
compression transform. Output is written to a temporary file beside the
destination and moved into place only once complete, so a failed delivery
never leaves a truncated file behind. With compression the uncompressed
bytes are never written anywhere.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .commands import CommandBuilder, Flag, ToolInvocation
from .compression import CompressionTransform
from .errors import ArtifactNotFoundError, ExecutionError
from .outcomes import DEFAULT_PATTERNS, PatternRegistry, require_success
from .runner import ProcessRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactSpec:
    source_path: str
    destination_path: str
    compression: Optional[CompressionTransform] = None

    @property
    def final_path(self) -> Path:
        if self.compression:
            return Path(self.destination_path + self.compression.extension)
        return Path(self.destination_path)


def check_artifact(source_path) -> Path:
    """
    Make sure an artifact exists and is readable.

    Raises:
        ArtifactNotFoundError: If it does not
    """
    source = Path(source_path)
    if not source.is_file() or not os.access(source, os.R_OK):
        raise ArtifactNotFoundError(
            f"Artifact not found\nFile path was {source}",
            action='deliver'
        )
    return source


def compress_invocation(builder: CommandBuilder, transform: CompressionTransform, source: Path) -> ToolInvocation:
    """``<compressor> [options] -c <source>``"""
    return builder.build(
        transform.utility,
        extras=transform.options,
        positional=(Flag('-c'), str(source))
    )


def deliver(
    spec: ArtifactSpec,
    runner: Optional[ProcessRunner] = None,
    builder: Optional[CommandBuilder] = None,
    patterns: PatternRegistry = DEFAULT_PATTERNS
) -> Path:
    """
    Deliver an artifact.

    Args:
        spec: Source, destination and optional compression
        runner: Runs the compressor (default ProcessRunner)
        builder: Builds the compressor command (default CommandBuilder)
        patterns: Outcome patterns; ``compressor.pipe`` judges the compressor

    Returns:
        Path of the delivered file

    Raises:
        ArtifactNotFoundError: If the source is missing (nothing is created)
        ToolReportedFailure: If the compressor fails
        ExecutionError: If the compressor cannot run, or the destination
            cannot be written
    """
    source = check_artifact(spec.source_path)
    final_path = spec.final_path

    invocation = None
    if spec.compression:
        invocation = compress_invocation(builder or CommandBuilder(), spec.compression, source)

    try:
        final_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{final_path.name}.",
            suffix='.part',
            dir=str(final_path.parent)
        )
    except OSError as e:
        raise ExecutionError(f"Cannot write to {final_path.parent}: {e}", action='deliver') from e

    try:
        if invocation is not None:
            with os.fdopen(fd, 'wb') as out:
                result = (runner or ProcessRunner()).run(invocation, stdout=out)
            require_success(
                result,
                patterns.get('compressor.pipe'),
                'compress artifact',
                invocation.command_line
            )
        else:
            os.close(fd)
            try:
                shutil.copy2(source, temp_path)
            except OSError as e:
                raise ExecutionError(f"Failed to copy {source} to {final_path}: {e}", action='deliver') from e

        try:
            os.replace(temp_path, final_path)
        except OSError as e:
            raise ExecutionError(f"Failed to move artifact into {final_path}: {e}", action='deliver') from e

    except Exception:
        # Remove the partial file on failure
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    logger.info(f"Delivered {source} to {final_path}")
    return final_path
