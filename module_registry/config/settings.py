"""
Settings
Process settings for the module registry server.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Server configuration."""
    environment: str = "development"
    log_level: str = "DEBUG"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class ConfigManager:
    """Configuration manager - loads and provides config."""

    _instance: Optional["ConfigManager"] = None

    def __init__(self):
        self._config: Optional[Config] = None

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def load(self) -> None:
        """Load configuration from environment (and a .env file, if present)."""
        load_dotenv()
        env = os.getenv("ENVIRONMENT", "development")
        self._config = Config(
            environment=env,
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env != "production" else "INFO"),
            host=os.getenv("REGISTRY_HOST", "0.0.0.0"),
            port=int(os.getenv("REGISTRY_PORT", "8000")),
        )

    def get(self) -> Config:
        """Get current configuration."""
        if self._config is None:
            # Create default config if not loaded
            self._config = Config()
        return self._config
