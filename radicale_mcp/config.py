"""Configuration management for the Radicale MCP adapter."""

import os
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
from urllib.parse import urlparse

from . import __version__
from .monitoring import ConfigurationError


@dataclass
class RadicaleConfig:
    """DAV server connection settings."""
    base_url: str
    username: str
    password: str
    # Discover collections of another user (shared calendars)
    calendar_owner: str = ""

    def __post_init__(self):
        """Validate configuration."""
        if not (self.base_url and self.username and self.password):
            raise ConfigurationError(
                "RADICALE_URL, RADICALE_USERNAME, and RADICALE_PASSWORD "
                "environment variables are required",
                details={'missing': [
                    name for name, value in (
                        ('RADICALE_URL', self.base_url),
                        ('RADICALE_USERNAME', self.username),
                        ('RADICALE_PASSWORD', self.password)
                    ) if not value
                ]}
            )

        # Normalize URL
        self.base_url = self.base_url.rstrip('/')

        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid RADICALE_URL format: {self.base_url}")

    @property
    def owner(self) -> str:
        """Principal whose collections are discovered."""
        return self.calendar_owner or self.username

    @property
    def principal_url(self) -> str:
        return f"{self.base_url}/{self.owner}/"

    def collection_url(self, slug: str) -> str:
        """URL for a new collection; always in the authenticated user's namespace."""
        return f"{self.base_url}/{self.username}/{slug}/"


@dataclass
class ServerConfig:
    """MCP server identity."""
    name: str = "radicale"
    version: str = __version__


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class Config:
    """Main application configuration."""
    radicale: RadicaleConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'Config':
        """Create configuration from environment variables."""
        radicale_config = RadicaleConfig(
            base_url=os.getenv('RADICALE_URL', ''),
            username=os.getenv('RADICALE_USERNAME', ''),
            password=os.getenv('RADICALE_PASSWORD', ''),
            calendar_owner=os.getenv('RADICALE_CALENDAR_OWNER', '')
        )

        logging_config = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            format=os.getenv('LOG_FORMAT', LoggingConfig.format),
            file_path=os.getenv('LOG_FILE'),
            max_bytes=int(os.getenv('LOG_MAX_BYTES', str(LoggingConfig.max_bytes))),
            backup_count=int(os.getenv('LOG_BACKUP_COUNT', str(LoggingConfig.backup_count)))
        )

        return cls(radicale=radicale_config, logging=logging_config)

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Create configuration from JSON file."""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            radicale_data = data.get('radicale', {})
            radicale_config = RadicaleConfig(
                base_url=radicale_data.get('url', ''),
                username=radicale_data.get('username', ''),
                password=radicale_data.get('password', ''),
                calendar_owner=radicale_data.get('calendar_owner', '')
            )

            logging_data = data.get('logging', {})
            logging_config = LoggingConfig(
                level=logging_data.get('level', 'INFO').upper(),
                format=logging_data.get('format', LoggingConfig.format),
                file_path=logging_data.get('file_path'),
                max_bytes=logging_data.get('max_bytes', LoggingConfig.max_bytes),
                backup_count=logging_data.get('backup_count', LoggingConfig.backup_count)
            )

            return cls(radicale=radicale_config, logging=logging_config)

        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, with the password masked."""
        return {
            'radicale': {
                'url': self.radicale.base_url,
                'username': self.radicale.username,
                'password': '***' if self.radicale.password else '',
                'calendar_owner': self.radicale.calendar_owner
            },
            'server': {
                'name': self.server.name,
                'version': self.server.version
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_bytes': self.logging.max_bytes,
                'backup_count': self.logging.backup_count
            }
        }

    def setup_logging(self) -> None:
        """Configure logging based on configuration.

        Output goes to stderr; stdout carries the MCP stdio transport.
        """
        log_level = getattr(logging, self.logging.level, logging.INFO)

        formatter = logging.Formatter(self.logging.format)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Clear existing handlers
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        # StreamHandler defaults to sys.stderr
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if self.logging.file_path:
            from logging.handlers import RotatingFileHandler
            file_handler = RotatingFileHandler(
                self.logging.file_path,
                maxBytes=self.logging.max_bytes,
                backupCount=self.logging.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)


def load_config() -> Config:
    """Load configuration from file or environment variables."""
    config_files = [
        os.getenv('RADICALE_MCP_CONFIG', ''),
        'config.json',
    ]

    for config_file in config_files:
        if config_file and os.path.exists(config_file):
            try:
                return Config.from_file(config_file)
            except (ConfigurationError, OSError) as e:
                logging.warning(f"Failed to load config from {config_file}: {e}")

    # Fall back to environment variables
    return Config.from_env()
