"""
Unit tests for configuration, logging setup and the context factory
(backdrive/config.py, backdrive/__init__.py).
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from backdrive import configure_logging, create_context
from backdrive.backup.adapters import RedisAdapter, SVNSyncAdapter
from backdrive.backup.settings import RedisSettings, SVNSyncSettings
from backdrive.config import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    load_config
)


@pytest.fixture
def testing_config(tmp_path, monkeypatch):
    monkeypatch.setattr(TestingConfig, 'DUMP_DIR', str(tmp_path / 'dumps'))
    monkeypatch.setattr(TestingConfig, 'LOG_DIR', str(tmp_path / 'logs'))
    return TestingConfig


@pytest.fixture
def restore_logging():
    package_logger = logging.getLogger('backdrive')
    level = package_logger.level
    yield package_logger
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(level)


class TestLoadConfig:
    """Test load_config."""

    def test_load_by_name(self):
        assert load_config('development') is DevelopmentConfig
        assert load_config('testing') is TestingConfig

    def test_load_from_environment(self, monkeypatch):
        monkeypatch.setenv('BACKDRIVE_ENV', 'testing')

        assert load_config() is TestingConfig

    def test_default_is_production(self, monkeypatch):
        monkeypatch.delenv('BACKDRIVE_ENV', raising=False)

        assert load_config() is ProductionConfig

    def test_invalid_name(self):
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config('staging')

    def test_utility_resolver_from_environment(self, monkeypatch):
        monkeypatch.setenv('BACKDRIVE_UTILITY_REDIS_CLI', '/opt/redis/bin/redis-cli')

        resolver = TestingConfig.utility_resolver()

        assert resolver.resolve('redis-cli') == '/opt/redis/bin/redis-cli'


class TestConfigureLogging:
    """Test configure_logging."""

    def test_handlers_and_level(self, testing_config, restore_logging, tmp_path):
        configure_logging(testing_config)

        handlers = restore_logging.handlers
        assert len(handlers) == 2
        assert any(isinstance(h, RotatingFileHandler) for h in handlers)
        assert restore_logging.level == logging.DEBUG
        assert (tmp_path / 'logs' / 'backdrive.log').exists()

    def test_reconfigure_replaces_handlers(self, testing_config, restore_logging):
        configure_logging(testing_config)
        configure_logging(testing_config)

        assert len(restore_logging.handlers) == 2

    def test_level_from_setting(self, testing_config, restore_logging, monkeypatch):
        monkeypatch.setattr(testing_config, 'LOG_LEVEL', 'warning')

        configure_logging(testing_config)

        assert restore_logging.level == logging.WARNING

    def test_invalid_level(self, testing_config, restore_logging, monkeypatch):
        monkeypatch.setattr(testing_config, 'LOG_LEVEL', 'LOUD')

        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(testing_config)


class TestCreateContext:
    """Test create_context."""

    def test_create_context(self, testing_config, restore_logging, tmp_path):
        context = create_context('testing')

        assert context.config is testing_config
        assert context.compression is None
        assert (tmp_path / 'dumps').is_dir()

    def test_context_without_logging(self, testing_config, restore_logging):
        create_context('testing', configure_logs=False)

        assert restore_logging.handlers == []

    def test_context_compression(self, testing_config, restore_logging, monkeypatch):
        monkeypatch.setattr(testing_config, 'COMPRESSION', 'bzip2')

        context = create_context('testing', configure_logs=False)

        assert context.compression.extension == '.bz2'

    def test_context_adapter_redis(self, testing_config, restore_logging, redis_dir, tmp_path):
        context = create_context('testing', configure_logs=False)

        adapter = context.adapter('redis', RedisSettings(path=str(redis_dir)))

        assert isinstance(adapter, RedisAdapter)
        assert adapter.dump_path == str(tmp_path / 'dumps')
        assert adapter.builder is context.builder
        assert adapter.runner is context.runner

    def test_context_adapter_svnsync(self, testing_config, restore_logging, tmp_path):
        context = create_context('testing', configure_logs=False)

        adapter = context.adapter('svnsync', SVNSyncSettings(path=str(tmp_path / 'mirror'), host='foo.com'))

        assert isinstance(adapter, SVNSyncAdapter)
        assert adapter.builder is context.builder
