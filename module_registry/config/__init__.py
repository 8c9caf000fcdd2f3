"""
Config Module
Process settings and the registry's module configuration.
"""

from .settings import ConfigManager, Config
from .hostname import Hostname
from .listeners import ListenerConfig, ListenerTLS
from .modules import (
    ConfigError,
    ModuleConfig,
    ModuleCoordinateMap,
    RegistryConfig,
    load_config,
)

__all__ = [
    "ConfigManager",
    "Config",
    "Hostname",
    "ListenerConfig",
    "ListenerTLS",
    # Modules
    "ConfigError",
    "ModuleConfig",
    "ModuleCoordinateMap",
    "RegistryConfig",
    "load_config",
]
