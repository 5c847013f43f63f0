import os
import logging
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional


logger = logging.getLogger(__name__)


def configure_logging(config):
    """Configure package logging"""

    # Create logs directory if it doesn't exist
    log_dir = config.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    # Set log level based on environment
    if config.LOG_LEVEL:
        log_level = logging.getLevelName(config.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            raise ValueError(f"Invalid log level: {config.LOG_LEVEL}")
    else:
        log_level = logging.DEBUG if config.DEBUG else logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'backdrive.log'),
        maxBytes=config.LOG_MAX_BYTES,
        backupCount=config.LOG_BACKUP_COUNT
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    package_logger = logging.getLogger('backdrive')
    package_logger.setLevel(log_level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.addHandler(console_handler)
    package_logger.addHandler(file_handler)

    package_logger.info(f"Logging configured (level: {logging.getLevelName(log_level)})")


@dataclass
class Context:
    """Configuration plus the shared builder and runner adapters are created with."""

    config: type
    builder: object
    runner: object
    compression: object = None

    def adapter(self, kind: str, settings, cipher=None, **kwargs):
        """
        Create an adapter wired to this context.

        Redis adapters get ``DUMP_DIR`` and the configured compression
        unless given explicitly.
        """
        from backdrive.backup.adapters import create_adapter

        kwargs.setdefault('builder', self.builder)
        kwargs.setdefault('runner', self.runner)
        if kind == 'redis':
            kwargs.setdefault('dump_path', self.config.DUMP_DIR)
            kwargs.setdefault('compression', self.compression)
        return create_adapter(kind, settings, cipher=cipher, **kwargs)


def create_context(config_name: Optional[str] = None, configure_logs: bool = True) -> Context:
    """Context factory"""
    from backdrive.config import load_config
    from backdrive.backup.commands import CommandBuilder
    from backdrive.backup.compression import get_transform
    from backdrive.backup.runner import ProcessRunner

    config = load_config(config_name)

    if configure_logs:
        configure_logging(config)

    # Ensure required directories exist
    os.makedirs(config.DUMP_DIR, exist_ok=True)

    resolver = config.utility_resolver()
    if resolver.overrides:
        logger.info(f"Utility overrides: {dict(resolver.overrides)}")

    return Context(
        config=config,
        builder=CommandBuilder(resolver),
        runner=ProcessRunner(),
        compression=get_transform(config.COMPRESSION)
    )
