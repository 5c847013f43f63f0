"""
Compression transforms applied while delivering artifacts.

A transform is a command that reads a file and writes the compressed bytes
to stdout (``<command> -c <file>``) plus the extension its output gets.
Supported formats:
- gzip: .gz
- bzip2: .bz2
- xz: .xz
- none: no compression
"""

import shlex
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class CompressionTransform:
    """Command template and file extension of a compressor."""

    command: str
    extension: str

    @property
    def utility(self) -> str:
        return self.tokens[0]

    @property
    def options(self) -> Tuple[str, ...]:
        return self.tokens[1:]

    @property
    def tokens(self) -> Tuple[str, ...]:
        tokens = tuple(shlex.split(self.command))
        if not tokens:
            raise ValueError("Compression command is empty")
        return tokens


FORMATS = {
    'gzip': CompressionTransform('gzip', '.gz'),
    'bzip2': CompressionTransform('bzip2', '.bz2'),
    'xz': CompressionTransform('xz', '.xz'),
    'none': None,
}


def get_transform(compression_format: str, level: Optional[int] = None) -> Optional[CompressionTransform]:
    """
    Look up the transform for a compression format.

    Args:
        compression_format: One of gzip, bzip2, xz, none
        level: Optional compression level (1-9)

    Returns:
        CompressionTransform, or None for 'none'

    Raises:
        ValueError: If the format or level is invalid
    """
    if compression_format not in FORMATS:
        raise ValueError(
            f"Invalid compression format: {compression_format}. "
            f"Valid options: {list(FORMATS.keys())}"
        )

    transform = FORMATS[compression_format]
    if transform is None or level is None:
        return transform

    if not 1 <= level <= 9:
        raise ValueError(f"Invalid compression level: {level}. Must be between 1 and 9")

    return CompressionTransform(f"{transform.command} -{level}", transform.extension)
