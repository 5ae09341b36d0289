"""
Command-line interface for the endpoint directory system.

This module provides the main CLI entry point with commands for:
- show: Print the current best directory
- resolve: Print the server a client would contact
- reset: Delete the cached directory
- check-network: Run the network availability probe
- config: Configuration management
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .config import (
    DEFAULT_CACHE_DIR,
    LoggingConfig,
    NetworkConfig,
    StoreConfig,
    SystemConfig,
    UpdaterConfig,
)
from .directory_cache import DirectoryCache
from .directory_store import DirectoryStore
from .endpoint import Endpoint
from .enums import UpdateOutcome
from .exceptions import EndpointError, NoEndpointAvailableError, StoreError
from .i18n import get_message
from .logger import StructuredLogger
from .network import HttpNetworkOracle
from .resolver import require_endpoint
from .updater import UpdateResult


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "endpoint_directory" / "config.json"

ENV_PREFIX = "ENDPOINT_DIRECTORY_"


def create_default_config(
    language: str = "de",
    cache_dir: Optional[Path] = None,
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        language: Output language ('de' or 'en')
        cache_dir: Directory holding the cached server list

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig(
        store=StoreConfig(cache_dir=cache_dir or DEFAULT_CACHE_DIR),
        network=NetworkConfig(),
        updater=UpdaterConfig(),
        logging=LoggingConfig(level="info", output_format="text"),
        language=language,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        store_data = data.get("store", {})
        builtin_path = store_data.get("builtin_path")
        store = StoreConfig(
            cache_dir=Path(store_data.get("cache_dir") or DEFAULT_CACHE_DIR),
            cache_file_name=store_data.get("cache_file_name", "serverlist.properties"),
            builtin_path=Path(builtin_path) if builtin_path else None,
        )

        network_data = data.get("network", {})
        network = NetworkConfig(
            probe_url=network_data.get("probe_url", NetworkConfig.probe_url),
            probe_timeout_seconds=float(network_data.get("probe_timeout_seconds", 5.0)),
            offline_mode=bool(network_data.get("offline_mode", False)),
        )

        updater_data = data.get("updater", {})
        updater = UpdaterConfig(
            response_timeout_seconds=float(updater_data.get("response_timeout_seconds", 60.0)),
            endpoint_override=updater_data.get("endpoint_override") or None,
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        return SystemConfig(
            store=store,
            network=network,
            updater=updater,
            logging=logging_config,
            language=data.get("language", "de"),
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "store": {
                "cache_dir": str(config.store.cache_dir),
                "cache_file_name": config.store.cache_file_name,
                "builtin_path": str(config.store.builtin_path) if config.store.builtin_path else None,
            },
            "network": {
                "probe_url": config.network.probe_url,
                "probe_timeout_seconds": config.network.probe_timeout_seconds,
                "offline_mode": config.network.offline_mode,
            },
            "updater": {
                "response_timeout_seconds": config.updater.response_timeout_seconds,
                "endpoint_override": config.updater.endpoint_override,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "language": config.language,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(ENV_PREFIX + name, str(default)))
    except ValueError:
        return default


def apply_env_overrides(config: SystemConfig, dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Apply ENDPOINT_DIRECTORY_* environment variables on top of a config.

    Variables from a ``.env`` file are loaded first; real environment
    variables take precedence over it.

    Args:
        config: Base configuration
        dotenv_path: Explicit .env file, searched upwards from cwd if None

    Returns:
        New SystemConfig with overrides applied
    """
    load_dotenv(dotenv_path=dotenv_path, override=False)

    store = config.store
    cache_dir = os.getenv(ENV_PREFIX + "CACHE_DIR")
    if cache_dir:
        store = replace(store, cache_dir=Path(cache_dir))

    network = config.network
    offline = _env_flag("OFFLINE")
    if offline is not None:
        network = replace(network, offline_mode=offline)

    updater = replace(
        config.updater,
        response_timeout_seconds=_env_float("TIMEOUT", config.updater.response_timeout_seconds),
    )
    server = os.getenv(ENV_PREFIX + "SERVER")
    if server:
        updater = replace(updater, endpoint_override=server.strip())

    language = os.getenv(ENV_PREFIX + "LANGUAGE") or config.language

    return replace(config, store=store, network=network, updater=updater, language=language)


def _load_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load the config named on the command line, or the defaults."""
    config = None
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(get_message("config.invalid", args.language, path=args.config), file=sys.stderr)
            return None

    if config is None:
        config = create_default_config(language=args.language or "de")

    config = apply_env_overrides(config)
    if args.language:
        config = replace(config, language=args.language)
    return config


def _create_logger(config: SystemConfig, verbose: bool) -> StructuredLogger:
    level = "debug" if verbose else config.logging.level
    if not verbose and level == "info":
        # Keep plain CLI output readable unless asked for more
        level = "warn"
    return StructuredLogger.from_config(level, config.logging.output_format)


def create_directory_cache(config: SystemConfig, logger: Optional[StructuredLogger] = None) -> DirectoryCache:
    """Build the store and cache described by a configuration."""
    store = DirectoryStore(
        cache_path=config.store.cache_file_path,
        builtin_path=config.store.builtin_path,
    )
    return DirectoryCache(store, logger=logger)


def format_update_result(result: UpdateResult, language: str = "de") -> str:
    """
    Describe the outcome of a refresh cycle for the user.

    Args:
        result: Result returned by a DirectoryUpdater cycle
        language: Output language ('de' or 'en')

    Returns:
        Localized one-line message
    """
    outcome = result.outcome
    if outcome is UpdateOutcome.UPDATED:
        count = len(result.directory) if result.directory is not None else 0
        return get_message("update.updated", language, count=count)
    if outcome is UpdateOutcome.NO_DATA:
        return get_message("update.no_data", language)
    if outcome is UpdateOutcome.NETWORK_NOT_AVAILABLE:
        return get_message("update.network_not_available", language)
    if outcome is UpdateOutcome.OFFLINE_MODE:
        return get_message("update.offline_mode", language)
    if outcome is UpdateOutcome.TIMEOUT:
        return get_message("update.timeout", language)

    error = result.error
    description = getattr(error, "message", None) or (str(error) if error else "-")
    return get_message("update.error", language, error=description)


def cmd_show(args: argparse.Namespace) -> int:
    """Handle the 'show' command."""
    config = _load_config(args)
    if config is None:
        return 1
    language = config.language
    cache = create_directory_cache(config, _create_logger(config, args.verbose))

    directory = cache.current()
    if directory is None:
        print(get_message("directory.unavailable", language), file=sys.stderr)
        return 1

    source = get_message(f"source.{cache.source.value}", language)
    print(get_message(
        "directory.header",
        language,
        source=source,
        timestamp=directory.timestamp.isoformat(),
    ))
    if len(directory) == 0:
        print(get_message("directory.empty", language))
        return 0
    for index, endpoint in enumerate(directory, start=1):
        print(f"  {index}. {endpoint}")
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the 'resolve' command."""
    config = _load_config(args)
    if config is None:
        return 1
    language = config.language
    logger = _create_logger(config, args.verbose)
    cache = create_directory_cache(config, logger)

    override = args.server or config.updater.endpoint_override
    if override and args.strict:
        try:
            Endpoint.parse(override)
        except EndpointError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    try:
        endpoint = require_endpoint(override, cache.current(), logger=logger)
    except NoEndpointAvailableError:
        print(get_message("resolve.none", language), file=sys.stderr)
        return 1

    print(get_message("resolve.result", language, endpoint=str(endpoint)))
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    """Handle the 'reset' command."""
    config = _load_config(args)
    if config is None:
        return 1
    cache = create_directory_cache(config, _create_logger(config, args.verbose))

    try:
        cache.reset()
    except StoreError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(get_message("directory.reset", config.language, path=str(cache.store.cache_path)))
    return 0


def cmd_check_network(args: argparse.Namespace) -> int:
    """Handle the 'check-network' command."""
    config = _load_config(args)
    if config is None:
        return 1
    language = config.language
    oracle = HttpNetworkOracle(config.network, logger=_create_logger(config, args.verbose))

    available = asyncio.run(oracle.is_network_available())
    key = "network.available" if available else "network.unavailable"
    print(get_message(key, language, url=config.network.probe_url))
    print(get_message("network.offline_mode", language, enabled=oracle.is_offline_mode_enabled()))
    return 0 if available else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH
    language = args.language

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(get_message("config.not_found", language, path=config_path))
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Cache file: {config.store.cache_file_path}")
        print(f"  Builtin list: {config.store.builtin_path or '(bundled)'}")
        print(f"  Probe URL: {config.network.probe_url}")
        print(f"  Offline mode: {config.network.offline_mode}")
        print(f"  Response timeout: {config.updater.response_timeout_seconds}s")
        print(f"  Server override: {config.updater.endpoint_override or '-'}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(get_message("config.exists", language, path=config_path))
            return 1

        config = create_default_config(language=language)
        if save_config_to_file(config, config_path):
            print(get_message("config.created", language, path=config_path))
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(get_message("config.invalid", language, path=config_path), file=sys.stderr)
            return 1

        print(get_message("config.valid", language, path=config_path))
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        default=None,
        help="Output language (default: from config, else de)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="endpoint-directory",
        description="Resolve and inspect the server endpoint directory",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    show_parser = subparsers.add_parser(
        "show",
        help="Print the current best directory",
    )
    _add_common_arguments(show_parser)
    show_parser.set_defaults(func=cmd_show)

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Print the server a client would connect to",
    )
    resolve_parser.add_argument(
        "--server", "-s",
        help="Server override, [network|]host[:port]",
    )
    resolve_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on an invalid server override instead of ignoring it",
    )
    _add_common_arguments(resolve_parser)
    resolve_parser.set_defaults(func=cmd_resolve)

    reset_parser = subparsers.add_parser(
        "reset",
        help="Delete the cached directory",
    )
    _add_common_arguments(reset_parser)
    reset_parser.set_defaults(func=cmd_reset)

    network_parser = subparsers.add_parser(
        "check-network",
        help="Probe network availability",
    )
    _add_common_arguments(network_parser)
    network_parser.set_defaults(func=cmd_check_network)

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        default="de",
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
