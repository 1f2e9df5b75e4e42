# reviewsync Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from reviewsync.config.defaults import DEFAULT_CONFIG, generate_default_config, get_default_config
from reviewsync.config.loader import (
    ConfigError,
    get_config_path,
    load_config,
    validate_config_file,
    write_default_config,
)
from reviewsync.config.schema import (
    LinkedTableConfig,
    OutputConfig,
    PollingConfig,
    RemoteConfig,
    ReviewSyncConfig,
    ScopeRuleConfig,
    ViewConfig,
)

__all__ = [
    # Schema
    "ReviewSyncConfig",
    "RemoteConfig",
    "ScopeRuleConfig",
    "LinkedTableConfig",
    "PollingConfig",
    "ViewConfig",
    "OutputConfig",
    # Loader
    "ConfigError",
    "load_config",
    "get_config_path",
    "write_default_config",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "get_default_config",
    "generate_default_config",
]
