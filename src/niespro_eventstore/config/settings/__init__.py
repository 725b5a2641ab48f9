"""Config settings."""
from niespro_eventstore.config.settings.base import EventStoreSettings, Settings
from niespro_eventstore.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader

__all__ = [
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "Settings",
    "SettingsLoader",
]
