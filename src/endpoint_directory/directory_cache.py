"""
Directory Cache: the current best directory for one application lifetime.

The cache is created by the application object and handed to everything
that needs to resolve an endpoint. It reads the disk at most once until it
is invalidated, and swaps whole Directory objects so readers never observe
a partially built one.
"""

import threading
from typing import Optional

from .directory import Directory
from .directory_store import DirectoryStore
from .enums import DirectorySource, LogLevel
from .exceptions import CacheNotFoundError, DirectoryError
from .logger import StructuredLogger


class DirectoryCache:
    """
    Holds the newest known directory.

    Resolution policy on first access:
    1. Load the builtin directory and attempt the cached one
    2. If only the cached load fails, hold the builtin directory
    3. If both load, hold the strictly newer one; ties favour the cache
    4. If only the builtin load fails, hold the cached directory
    Builtin failures are always reported since nothing lies beneath them.
    """

    COMPONENT = "DirectoryCache"

    def __init__(
        self,
        store: DirectoryStore,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            store: Store used to load and persist directories
            logger: Optional logger, also used to report builtin failures
        """
        self._store = store
        self._logger = logger
        self._lock = threading.Lock()
        self._current: Optional[Directory] = None
        self._source: Optional[DirectorySource] = None
        self._builtin_error: Optional[DirectoryError] = None

    @property
    def store(self) -> DirectoryStore:
        """Get the underlying store."""
        return self._store

    @property
    def source(self) -> Optional[DirectorySource]:
        """Where the held directory came from, None when nothing is held."""
        return self._source

    @property
    def builtin_error(self) -> Optional[DirectoryError]:
        """The error from the last failed builtin load, if any."""
        return self._builtin_error

    def peek(self) -> Optional[Directory]:
        """Return the held directory without resolving."""
        return self._current

    def current(self) -> Optional[Directory]:
        """
        Return the current best directory, loading it if necessary.

        Returns:
            The held Directory, or None if neither builtin nor cache loaded
        """
        current = self._current
        if current is not None:
            return current

        with self._lock:
            if self._current is None:
                self._resolve()
            return self._current

    def replace(self, directory: Directory, source: DirectorySource = DirectorySource.DOWNLOADED) -> None:
        """Replace the held directory wholesale."""
        with self._lock:
            self._current = directory
            self._source = source
        self._log(
            LogLevel.INFO,
            "Directory replaced",
            {
                "source": source.value,
                "endpoints": len(directory),
                "timestamp": directory.timestamp.isoformat(),
            },
        )

    def invalidate(self) -> None:
        """Forget the held directory; the next access reads the disk again."""
        with self._lock:
            self._current = None
            self._source = None

    def reset(self) -> None:
        """Forget the held directory and delete the cache file (identity reset)."""
        with self._lock:
            self._store.delete_cached()
            self._current = None
            self._source = None
        self._log(LogLevel.INFO, "Cached directory deleted", {"path": str(self._store.cache_path)})

    def _resolve(self) -> None:
        builtin: Optional[Directory] = None
        cached: Optional[Directory] = None

        try:
            builtin = self._store.load_builtin()
            self._builtin_error = None
        except DirectoryError as e:
            self._builtin_error = e
            if self._logger:
                self._logger.log_error(self.COMPONENT, "Unable to load builtin directory", e)

        try:
            cached = self._store.load_cached()
        except DirectoryError as e:
            if builtin is None:
                # Both failed: report the cache error
                if self._logger:
                    self._logger.log_error(self.COMPONENT, "Unable to load cached directory", e)
            elif isinstance(e, CacheNotFoundError):
                self._log(LogLevel.DEBUG, "No cached directory yet", {"path": str(self._store.cache_path)})
            else:
                self._log(
                    LogLevel.WARN,
                    "Ignoring unreadable cached directory",
                    {"error_code": e.code, "error_message": e.message},
                )

        if cached is not None and (builtin is None or not builtin.is_newer_than(cached)):
            self._current = cached
            self._source = DirectorySource.CACHED
        elif builtin is not None:
            self._current = builtin
            self._source = DirectorySource.BUILTIN
        else:
            self._current = None
            self._source = None

        if self._current is not None:
            self._log(
                LogLevel.DEBUG,
                "Directory resolved",
                {
                    "source": self._source.value,
                    "endpoints": len(self._current),
                    "timestamp": self._current.timestamp.isoformat(),
                },
            )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        """Log a message if logger is available."""
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)
