"""
Endpoint Directory - keeps a client's list of known servers up to date.

This package provides the endpoint and directory model, an on-disk store with a
bundled fallback list, endpoint resolution, and an event-driven updater that
refreshes the directory from a connected server.
"""

__version__ = "0.1.0"
__author__ = "Endpoint Directory Team"

from endpoint_directory.exceptions import (
    DirectoryError,
    ValidationError,
    EndpointError,
    ParseError,
    StoreError,
    CacheNotFoundError,
    EmptyResultError,
    NoEndpointAvailableError,
    UpdateTimeoutError,
)
from endpoint_directory.enums import (
    LogLevel,
    DirectorySource,
    UpdaterState,
    UpdateOutcome,
    DeliveryMode,
)
from endpoint_directory.config import (
    StoreConfig,
    NetworkConfig,
    UpdaterConfig,
    LoggingConfig,
    SystemConfig,
)
from endpoint_directory.endpoint import (
    Endpoint,
    DEFAULT_PORT,
)
from endpoint_directory.directory import (
    Directory,
)
from endpoint_directory.directory_store import (
    DirectoryStore,
)
from endpoint_directory.directory_cache import (
    DirectoryCache,
)
from endpoint_directory.resolver import (
    resolve_endpoint,
    require_endpoint,
)
from endpoint_directory.events import (
    Connected,
    ListReceived,
    ListRequest,
    Subscription,
    EventBus,
)
from endpoint_directory.network import (
    ConnectionService,
    NetworkOracle,
    HttpNetworkOracle,
)
from endpoint_directory.updater import (
    DirectoryUpdater,
    UpdaterListener,
    UpdateResult,
)
from endpoint_directory.logger import (
    StructuredLogger,
    LogEntry,
)
from endpoint_directory.i18n import (
    get_message,
    get_all_message_keys,
    has_translation,
    get_missing_translations,
    validate_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from endpoint_directory.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "DirectoryError",
    "ValidationError",
    "EndpointError",
    "ParseError",
    "StoreError",
    "CacheNotFoundError",
    "EmptyResultError",
    "NoEndpointAvailableError",
    "UpdateTimeoutError",
    # Enums
    "LogLevel",
    "DirectorySource",
    "UpdaterState",
    "UpdateOutcome",
    "DeliveryMode",
    # Configuration
    "StoreConfig",
    "NetworkConfig",
    "UpdaterConfig",
    "LoggingConfig",
    "SystemConfig",
    # Endpoint and Directory
    "Endpoint",
    "DEFAULT_PORT",
    "Directory",
    # Store and Cache
    "DirectoryStore",
    "DirectoryCache",
    # Resolver
    "resolve_endpoint",
    "require_endpoint",
    # Events
    "Connected",
    "ListReceived",
    "ListRequest",
    "Subscription",
    "EventBus",
    # Network
    "ConnectionService",
    "NetworkOracle",
    "HttpNetworkOracle",
    # Updater
    "DirectoryUpdater",
    "UpdaterListener",
    "UpdateResult",
    # Logger
    "StructuredLogger",
    "LogEntry",
    # I18n
    "get_message",
    "get_all_message_keys",
    "has_translation",
    "get_missing_translations",
    "validate_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
