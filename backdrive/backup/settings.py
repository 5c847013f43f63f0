"""
Adapter settings.

Settings are plain frozen dataclasses. Values come from three layers, the
later ones winning:

1. dataclass field defaults
2. defaults registered on a SettingsDefaults instance
3. values given explicitly for one adapter instance

Legacy keys from older configuration files are rewritten by
``migrate_settings`` before settings are built, so adapters never see them.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedisSettings:
    """
    Settings for the Redis dump adapter.

    Attributes:
        name: dbfilename from redis.conf, without the .rdb extension
        path: dir from redis.conf, where the dump file lives
        password: Password for redis-cli (``-a``)
        password_encrypted: Encrypted password, decrypted at build time
        host, port, socket: Connectivity for SAVE and --rdb; socket wins
        invoke_save: Run ``redis-cli SAVE`` before copying
        sync_remote: Run ``redis-cli --rdb`` to fetch the dump first
        additional_options: Extra redis-cli options
    """

    name: str = 'dump'
    path: Optional[str] = None
    password: Optional[str] = None
    password_encrypted: Optional[str] = None
    host: Optional[str] = None
    port: Optional[Any] = None
    socket: Optional[str] = None
    invoke_save: bool = False
    sync_remote: bool = False
    additional_options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SVNSyncSettings:
    """
    Settings for the svnsync mirror adapter.

    ``path`` is the local mirror repository; the remote is built from
    protocol, host, port and repo_path.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    password_encrypted: Optional[str] = None
    protocol: str = 'http'
    host: Optional[str] = None
    port: Any = '80'
    repo_path: str = '/'
    path: Optional[str] = None

    @property
    def url(self) -> str:
        repo_path = self.repo_path if self.repo_path.startswith('/') else '/' + self.repo_path
        return f"{self.protocol}://{self.host}:{self.port}{repo_path}"


SETTINGS_CLASSES = {
    'redis': RedisSettings,
    'svnsync': SVNSyncSettings,
}


def field_names(settings_class) -> set:
    return {f.name for f in dataclasses.fields(settings_class)}


class SettingsDefaults:
    """Per settings class defaults, layered beneath per-instance values."""

    def __init__(self):
        self._defaults: Dict[type, Dict[str, Any]] = {}

    def set(self, settings_class, **values):
        """
        Register defaults for a settings class.

        Raises:
            ValueError: If a name is not a field of the class
        """
        unknown = set(values) - field_names(settings_class)
        if unknown:
            raise ValueError(f"Unknown {settings_class.__name__} fields: {sorted(unknown)}")
        self._defaults.setdefault(settings_class, {}).update(values)

    def get(self, settings_class) -> Dict[str, Any]:
        return dict(self._defaults.get(settings_class, {}))

    def clear(self, settings_class=None):
        if settings_class is None:
            self._defaults.clear()
        else:
            self._defaults.pop(settings_class, None)

    def build(self, settings_class, **values):
        """
        Build settings; ``None`` values count as unset and fall through to defaults.

        Raises:
            ValueError: If a name is not a field of the class
        """
        unknown = set(values) - field_names(settings_class)
        if unknown:
            raise ValueError(f"Unknown {settings_class.__name__} fields: {sorted(unknown)}")

        merged = self.get(settings_class)
        merged.update({key: value for key, value in values.items() if value is not None})

        if 'additional_options' in merged:
            merged['additional_options'] = _as_options(merged['additional_options'])

        return settings_class(**merged)


def _as_options(value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


# Settings migrations
#
# Each entry is (version, kind, key, migration). A migration rewrites the raw
# dict and the utility override dict in place.

def _redis_cli_override(raw: Dict[str, Any], overrides: Dict[str, str], key: str, version: str):
    logger.warning(
        f"Setting '{key}' is deprecated since {version}; "
        f"configure the redis-cli utility path instead"
    )
    overrides['redis-cli'] = raw.pop(key)


MIGRATIONS = [
    ('3.0.21', 'redis', 'utility_path', _redis_cli_override),
    ('3.3.0', 'redis', 'redis_cli_utility', _redis_cli_override),
]


def migrate_settings(kind: str, raw: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Rewrite deprecated settings keys.

    Args:
        kind: Adapter kind ('redis', 'svnsync')
        raw: Settings as loaded from configuration

    Returns:
        Tuple of (migrated settings dict, utility overrides)

    Raises:
        ValueError: If kind is invalid
    """
    if kind not in SETTINGS_CLASSES:
        raise ValueError(f"Invalid adapter kind: {kind}. Valid options: {list(SETTINGS_CLASSES.keys())}")

    migrated = dict(raw)
    overrides: Dict[str, str] = {}

    for version, migration_kind, key, migration in MIGRATIONS:
        if migration_kind != kind or key not in migrated:
            continue
        migration(migrated, overrides, key, version)

    return migrated, overrides
