"""
Configuration dataclasses for the endpoint directory system.

This module defines the configuration structures used throughout the
system: cache storage, network probing, updater behaviour, and logging.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_CACHE_DIR = Path.home() / ".cache" / "endpoint_directory"


@dataclass
class StoreConfig:
    """Where the cached and builtin directories live."""

    cache_dir: Path = DEFAULT_CACHE_DIR
    cache_file_name: str = "serverlist.properties"
    builtin_path: Optional[Path] = None  # None: bundled package resource

    @property
    def cache_file_path(self) -> Path:
        """Full path of the cached directory file."""
        return self.cache_dir / self.cache_file_name


@dataclass
class NetworkConfig:
    """Network availability probing and offline mode."""

    probe_url: str = "https://connectivity-check.ubuntu.com/"
    probe_timeout_seconds: float = 5.0
    offline_mode: bool = False


@dataclass
class UpdaterConfig:
    """Refresh cycle behaviour."""

    response_timeout_seconds: float = 60.0
    endpoint_override: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    store: StoreConfig = field(default_factory=StoreConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    updater: UpdaterConfig = field(default_factory=UpdaterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    language: str = "de"  # 'de' or 'en'
