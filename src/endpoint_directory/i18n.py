"""
Internationalization (i18n) module for the endpoint directory system.

Provides translations for all user-facing messages in German (de) and English (en).
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "de"


# Translation dictionary with all messages
# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Directory messages
    "directory.header": {
        "de": "Server-Verzeichnis ({source}), Stand {timestamp}",
        "en": "Server directory ({source}), as of {timestamp}",
    },
    "directory.empty": {
        "de": "Das Verzeichnis enthält keine Server",
        "en": "The directory contains no servers",
    },
    "directory.unavailable": {
        "de": "Kein Server-Verzeichnis verfügbar",
        "en": "No server directory available",
    },
    "directory.reset": {
        "de": "Zwischengespeichertes Verzeichnis gelöscht: {path}",
        "en": "Cached directory deleted: {path}",
    },

    # Source labels
    "source.builtin": {
        "de": "mitgeliefert",
        "en": "builtin",
    },
    "source.cached": {
        "de": "zwischengespeichert",
        "en": "cached",
    },
    "source.downloaded": {
        "de": "heruntergeladen",
        "en": "downloaded",
    },

    # Resolver messages
    "resolve.result": {
        "de": "Ausgewählter Server: {endpoint}",
        "en": "Selected server: {endpoint}",
    },
    "resolve.none": {
        "de": "Kein Server zum Verbinden verfügbar",
        "en": "No server available to connect to",
    },

    # Update outcomes
    "update.updated": {
        "de": "Server-Liste aktualisiert ({count} Server)",
        "en": "Server list updated ({count} servers)",
    },
    "update.no_data": {
        "de": "Keine Server-Liste vorhanden, aus der ein Server gewählt werden kann",
        "en": "No server list to pick a server from",
    },
    "update.network_not_available": {
        "de": "Netzwerk nicht verfügbar",
        "en": "Network not available",
    },
    "update.offline_mode": {
        "de": "Offline-Modus ist aktiv",
        "en": "Offline mode is enabled",
    },
    "update.error": {
        "de": "Aktualisierung der Server-Liste fehlgeschlagen: {error}",
        "en": "Server list update failed: {error}",
    },
    "update.timeout": {
        "de": "Zeitüberschreitung beim Warten auf die Server-Liste",
        "en": "Timed out waiting for the server list",
    },

    # Network messages
    "network.available": {
        "de": "Netzwerk erreichbar ({url})",
        "en": "Network reachable ({url})",
    },
    "network.unavailable": {
        "de": "Netzwerk nicht erreichbar ({url})",
        "en": "Network unreachable ({url})",
    },
    "network.offline_mode": {
        "de": "Offline-Modus: {enabled}",
        "en": "Offline mode: {enabled}",
    },

    # Configuration messages
    "config.created": {
        "de": "Konfiguration erstellt: {path}",
        "en": "Configuration created at: {path}",
    },
    "config.exists": {
        "de": "Konfiguration existiert bereits: {path} (--force zum Überschreiben)",
        "en": "Configuration already exists at: {path} (use --force to overwrite)",
    },
    "config.not_found": {
        "de": "Keine Konfiguration gefunden unter: {path}",
        "en": "No configuration found at: {path}",
    },
    "config.valid": {
        "de": "Konfiguration unter {path} ist gültig",
        "en": "Configuration at {path} is valid",
    },
    "config.invalid": {
        "de": "Konfiguration konnte nicht geladen werden: {path}",
        "en": "Could not load configuration from: {path}",
    },
}


class _KeepMissing(dict):
    """format_map mapping that leaves unknown placeholders in place."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Look up and format a user-facing message.

    Unknown languages fall back to DEFAULT_LANGUAGE, unknown keys are
    returned unchanged, and placeholders without an argument stay as
    ``{name}`` in the result.

    Examples:
        >>> get_message('source.cached', 'en')
        'cached'
        >>> get_message('resolve.result', 'de', endpoint='s1.example.net:5222')
        'Ausgewählter Server: s1.example.net:5222'
    """
    translations = TRANSLATIONS.get(key, {})
    template = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if template is None:
        return key
    return template.format_map(_KeepMissing(kwargs))


def get_all_message_keys() -> set[str]:
    return set(TRANSLATIONS)


def has_translation(key: str, language: str) -> bool:
    """True if ``key`` has a message in ``language``."""
    return language in TRANSLATIONS.get(key, {})


def get_missing_translations(language: str) -> set[str]:
    """Message keys that have no entry for ``language``."""
    return {key for key in TRANSLATIONS if not has_translation(key, language)}


def validate_translations() -> dict[str, set[str]]:
    """
    Check translation coverage.

    Returns:
        Missing message keys per supported language; all sets are empty
        when every message is translated.
    """
    return {language: get_missing_translations(language) for language in SUPPORTED_LANGUAGES}
