import os

from backdrive.backup.utilities import UtilityResolver

KNOWN_UTILITIES = (
    'redis-cli',
    'svnadmin',
    'svnlook',
    'svnsync',
    'chmod',
    'gzip',
    'bzip2',
    'xz',
)


class Config:
    """Base configuration"""

    DEBUG = False

    # Where snapshot adapters deliver dump files
    DUMP_DIR = os.environ.get('BACKDRIVE_DUMP_DIR') or '/data/dumps'

    # Logging
    LOG_DIR = os.environ.get('BACKDRIVE_LOG_DIR') or '/data/logs'
    LOG_LEVEL = os.environ.get('BACKDRIVE_LOG_LEVEL')
    LOG_MAX_BYTES = 10485760  # 10MB
    LOG_BACKUP_COUNT = 10

    # Compression applied to dump files: gzip, bzip2, xz or none
    COMPRESSION = os.environ.get('BACKDRIVE_COMPRESSION') or 'gzip'

    @classmethod
    def utility_resolver(cls) -> UtilityResolver:
        """Resolver honoring BACKDRIVE_UTILITY_<NAME> overrides."""
        return UtilityResolver.from_environ(os.environ, KNOWN_UTILITIES)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    DUMP_DIR = os.path.join(DATA_DIR, 'dumps')
    LOG_DIR = os.path.join(DATA_DIR, 'logs')


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    COMPRESSION = 'none'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def load_config(config_name=None):
    """
    Pick a configuration class.

    Args:
        config_name: Key of ``config``; defaults to BACKDRIVE_ENV or 'production'

    Raises:
        ValueError: If the name is unknown
    """
    if config_name is None:
        config_name = os.environ.get('BACKDRIVE_ENV', 'production')

    if config_name not in config:
        raise ValueError(f"Invalid configuration: {config_name}. Valid options: {list(config.keys())}")

    return config[config_name]
