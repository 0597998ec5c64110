"""
Configuration management for webtop.

Loads configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional
import yaml


logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001


@dataclass
class CorsConfig:
    """Cross-origin settings for the dashboard client."""

    allow_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class CollectionConfig:
    """Metrics collection configuration."""

    command_timeout_seconds: float = 5.0
    process_limit: int = 50
    parallel: bool = True  # Run CPU, memory and process collectors concurrently
    max_workers: int = 3


@dataclass
class PollingConfig:
    """Refresh options advertised to the dashboard client."""

    default_interval_ms: int = 1000
    intervals_ms: List[int] = field(default_factory=lambda: [500, 1000, 2000, 5000])


@dataclass
class EnvironmentConfig:
    """Environment inspection endpoint configuration."""

    enabled: bool = True
    redact: bool = True
    redact_patterns: List[str] = field(default_factory=lambda: [
        "*SECRET*",
        "*TOKEN*",
        "*PASSWORD*",
        "*PASSWD*",
        "*API_KEY*",
        "*PRIVATE_KEY*",
        "*CREDENTIAL*",
    ])
    exclude: List[str] = field(default_factory=list)
    mask: str = "********"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


def _section(section_cls, data: Optional[dict]):
    """Build a config section, ignoring keys it does not know."""
    known = {f.name for f in fields(section_cls)}
    data = data or {}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown {section_cls.__name__} keys: {sorted(unknown)}")
    return section_cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            config = cls()
            config._apply_env_overrides()
            return config

        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()

        if "server" in data:
            config.server = _section(ServerConfig, data["server"])

        if "cors" in data:
            config.cors = _section(CorsConfig, data["cors"])

        if "collection" in data:
            config.collection = _section(CollectionConfig, data["collection"])

        if "polling" in data:
            config.polling = _section(PollingConfig, data["polling"])

        if "environment" in data:
            config.environment = _section(EnvironmentConfig, data["environment"])

        if "logging" in data:
            config.logging = _section(LoggingConfig, data["logging"])

        # Override with environment variables
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        # Server settings
        if os.getenv("WEBTOP_HOST"):
            self.server.host = os.getenv("WEBTOP_HOST")
        if os.getenv("WEBTOP_PORT"):
            self.server.port = int(os.getenv("WEBTOP_PORT"))

        # Collection settings
        if os.getenv("WEBTOP_PROCESS_LIMIT"):
            self.collection.process_limit = int(os.getenv("WEBTOP_PROCESS_LIMIT"))
        if os.getenv("WEBTOP_COMMAND_TIMEOUT"):
            self.collection.command_timeout_seconds = float(os.getenv("WEBTOP_COMMAND_TIMEOUT"))

        # Environment endpoint
        if os.getenv("WEBTOP_REDACT_ENV"):
            self.environment.redact = os.getenv("WEBTOP_REDACT_ENV").lower() == "true"

        # Logging
        if os.getenv("LOG_LEVEL"):
            self.logging.level = os.getenv("LOG_LEVEL")

    def to_yaml(self, path: str):
        """Save configuration to YAML file."""
        data = {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
            },
            "cors": {
                "allow_origins": self.cors.allow_origins,
            },
            "collection": {
                "command_timeout_seconds": self.collection.command_timeout_seconds,
                "process_limit": self.collection.process_limit,
                "parallel": self.collection.parallel,
                "max_workers": self.collection.max_workers,
            },
            "polling": {
                "default_interval_ms": self.polling.default_interval_ms,
                "intervals_ms": self.polling.intervals_ms,
            },
            "environment": {
                "enabled": self.environment.enabled,
                "redact": self.environment.redact,
                "redact_patterns": self.environment.redact_patterns,
                "exclude": self.environment.exclude,
                "mask": self.environment.mask,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path,
                "max_file_size_mb": self.logging.max_file_size_mb,
                "backup_count": self.logging.backup_count,
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    # Check common locations
    candidates = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path.home() / ".webtop" / "config.yaml",
        Path("/etc/webtop/config.yaml"),
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    # Return the first candidate as default
    return str(candidates[0])
