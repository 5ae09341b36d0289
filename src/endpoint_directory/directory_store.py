"""
Directory Store module: persistence for builtin and cached directories.

The builtin directory ships inside the package and is read-only; the
cached directory is the last successfully downloaded list, written
atomically so that a reader never sees a different valid directory than
the one before or after a write.
"""

import os
import tempfile
from importlib import resources
from pathlib import Path
from typing import Optional

from .directory import Directory
from .exceptions import CacheNotFoundError, StoreError


BUILTIN_RESOURCE = "serverlist.properties"


def read_builtin_resource() -> bytes:
    """Read the directory bundled with the package."""
    return resources.files("endpoint_directory").joinpath("data").joinpath(BUILTIN_RESOURCE).read_bytes()


class DirectoryStore:
    """
    File-backed directory storage.

    Loads the builtin and cached directories and replaces or deletes the
    cache file. All methods do blocking I/O.
    """

    def __init__(self, cache_path: Path, builtin_path: Optional[Path] = None) -> None:
        """
        Initialize the store.

        Args:
            cache_path: Path of the cached directory file
            builtin_path: Alternative builtin directory file; the packaged
                resource is used when None
        """
        self._cache_path = Path(cache_path)
        self._builtin_path = Path(builtin_path) if builtin_path is not None else None

    @property
    def cache_path(self) -> Path:
        """Get the cache file path."""
        return self._cache_path

    def load_builtin(self) -> Directory:
        """
        Load the bundled default directory.

        Raises:
            StoreError: If the resource cannot be read
            ParseError: If the resource content is invalid
        """
        try:
            if self._builtin_path is not None:
                data = self._builtin_path.read_bytes()
            else:
                data = read_builtin_resource()
        except OSError as e:
            raise StoreError(
                code="io_error",
                message=f"Failed to read builtin directory: {e}",
                details={"path": str(self._builtin_path or BUILTIN_RESOURCE)},
            )
        return Directory.parse(data)

    def load_cached(self) -> Directory:
        """
        Load the cached directory.

        Raises:
            CacheNotFoundError: If no cache file exists
            StoreError: If the file cannot be read
            ParseError: If the file content is invalid
        """
        try:
            data = self._cache_path.read_bytes()
        except FileNotFoundError:
            raise CacheNotFoundError(
                code="not_found",
                message="No cached directory",
                details={"path": str(self._cache_path)},
            )
        except OSError as e:
            raise StoreError(
                code="io_error",
                message=f"Failed to read cached directory: {e}",
                details={"path": str(self._cache_path)},
            )
        return Directory.parse(data)

    def save_cached(self, directory: Directory) -> None:
        """
        Replace the cached directory.

        The content goes to a temporary sibling file which is flushed to disk
        and then renamed over the cache file.

        Raises:
            StoreError: If the file cannot be written
        """
        data = directory.serialize()
        tmp_path: Optional[str] = None
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._cache_path.name}.",
                suffix=".tmp",
                dir=self._cache_path.parent,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._cache_path)
            tmp_path = None
        except OSError as e:
            raise StoreError(
                code="io_error",
                message=f"Failed to write cached directory: {e}",
                details={"path": str(self._cache_path)},
            )
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass

    def delete_cached(self) -> None:
        """Remove the cache file; a missing file is not an error."""
        try:
            self._cache_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(
                code="io_error",
                message=f"Failed to delete cached directory: {e}",
                details={"path": str(self._cache_path)},
            )
