"""
Configuration management for Fleet Relay
"""

import os
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from ..exceptions.base import ConfigurationError


STORE_BACKENDS = ("memory", "database")


def read_value_from_file(value: Optional[str]) -> Optional[str]:
    """
    Resolve a value that may reference a file.

    Values starting with ``@`` are treated as a path and replaced by the
    stripped content of that file, so secrets can be mounted rather than
    passed on the command line.
    """
    if not value or not value.startswith("@"):
        return value

    path = Path(value[1:])
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigurationError(f"Can't read value from file '{path}': {e}")


@dataclass
class RelayConfig:
    """Fleet Relay configuration"""

    # OCM API
    ocm_url: str = field(default_factory=lambda: os.getenv("FLEETRELAY_OCM_URL", "https://api.openshift.com"))
    access_token: Optional[str] = field(default_factory=lambda: os.getenv("FLEETRELAY_ACCESS_TOKEN"))

    # Notification routing
    cluster_id: Optional[str] = field(default_factory=lambda: os.getenv("FLEETRELAY_CLUSTER_ID"))
    fleet_mode: bool = field(default_factory=lambda: os.getenv("FLEETRELAY_FLEET_MODE", "false").lower() == "true")
    notifications_path: Optional[str] = field(default_factory=lambda: os.getenv("FLEETRELAY_NOTIFICATIONS_PATH"))

    # Record store
    store_backend: str = field(default_factory=lambda: os.getenv("FLEETRELAY_STORE_BACKEND", "memory"))
    database_url: str = field(default_factory=lambda: os.getenv("FLEETRELAY_DATABASE_URL", "sqlite+aiosqlite:///fleetrelay.db"))

    # Web service
    host: str = field(default_factory=lambda: os.getenv("FLEETRELAY_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("FLEETRELAY_PORT", "8081")))

    # Timeouts and retries
    request_timeout: float = field(default_factory=lambda: float(os.getenv("FLEETRELAY_REQUEST_TIMEOUT", "10")))
    process_timeout: float = field(default_factory=lambda: float(os.getenv("FLEETRELAY_PROCESS_TIMEOUT", "30")))
    max_conflicts: int = field(default_factory=lambda: int(os.getenv("FLEETRELAY_MAX_CONFLICTS", "25")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("FLEETRELAY_LOG_LEVEL", "INFO"))
    debug_mode: bool = field(default_factory=lambda: os.getenv("FLEETRELAY_DEBUG", "false").lower() == "true")

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.access_token = read_value_from_file(self.access_token)
        self.cluster_id = read_value_from_file(self.cluster_id)

        if self.store_backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"store_backend must be one of {', '.join(STORE_BACKENDS)}",
                "store_backend"
            )
        if self.port <= 0 or self.port > 65535:
            raise ConfigurationError("port must be between 1 and 65535", "port")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive", "request_timeout")
        if self.process_timeout <= 0:
            raise ConfigurationError("process_timeout must be positive", "process_timeout")
        if self.max_conflicts < 1:
            raise ConfigurationError("max_conflicts must be at least 1", "max_conflicts")

    @classmethod
    def from_env(cls, **overrides) -> "RelayConfig":
        """Create configuration from environment variables with optional overrides"""
        config_dict = {}
        for key, value in overrides.items():
            if key not in cls.__dataclass_fields__:
                raise ConfigurationError(f"Unknown configuration key: {key}", key)
            config_dict[key] = value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "RelayConfig":
        """Create configuration from dictionary"""
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            field.name: getattr(self, field.name)
            for field in self.__dataclass_fields__.values()
        }

    def update(self, **updates) -> "RelayConfig":
        """Create new configuration with updates"""
        config_dict = self.to_dict()
        config_dict.update(updates)
        return self.from_dict(config_dict)

    @property
    def ocm_base_url(self) -> str:
        """Get base OCM URL without trailing slash"""
        return self.ocm_url.rstrip("/")

    def get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for OCM API requests"""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "fleet-relay/0.1.0"
        }

        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        return headers


class ConfigManager:
    """Global configuration manager"""

    _instance: Optional[RelayConfig] = None

    @classmethod
    def get_config(cls) -> RelayConfig:
        """Get global configuration instance"""
        if cls._instance is None:
            cls._instance = RelayConfig.from_env()
        return cls._instance

    @classmethod
    def set_config(cls, config: RelayConfig) -> None:
        """Set global configuration instance"""
        cls._instance = config

    @classmethod
    def reset_config(cls) -> None:
        """Reset configuration to default"""
        cls._instance = None


def get_config() -> RelayConfig:
    """Get the global Fleet Relay configuration"""
    return ConfigManager.get_config()


def set_config(config: RelayConfig) -> None:
    """Set the global Fleet Relay configuration"""
    ConfigManager.set_config(config)
