"""Config – settings loading and validation."""
from niespro_eventstore.config.settings import (
    DotenvSettingsLoader,
    EnvSettingsLoader,
    EventStoreSettings,
    Settings,
)
from niespro_eventstore.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
]
