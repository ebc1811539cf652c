"""Key/value preference backends holding serialized JSON blobs."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from codeintel.observability.logger import get_logger
from codeintel.prompting.errors import StorageError

logger = get_logger(__name__)

_SAFE_KEY = re.compile(r"[A-Za-z0-9_.-]+")


class PreferenceStore(Protocol):
    """Protocol implemented by preference storage backends."""

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key`` or ``None`` when absent."""

    def put(self, key: str, value: str) -> None:
        """Replace the stored value for ``key`` with ``value``."""


class InMemoryPreferenceStore:
    """Process-local preference backend, used by tests and ephemeral hosts."""

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def put(self, key: str, value: str) -> None:
        self._values[key] = value


class FilePreferenceStore:
    """Persist each preference key as ``<directory>/<key>.json``.

    Writes go through a temporary file in the same directory followed by an
    atomic rename, so readers see either the old or the new blob.
    """

    def __init__(self, directory: str | Path, *, encoding: str = "utf-8") -> None:
        self._directory = Path(directory).expanduser()
        self._encoding = encoding

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.fullmatch(key):
            raise StorageError(key, "key contains unsupported characters")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding=self._encoding)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(key, f"cannot read {path}: {exc}") from exc

    def put(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{key}.", suffix=".tmp", dir=self._directory
            )
            try:
                with os.fdopen(fd, "w", encoding=self._encoding) as handle:
                    handle.write(value)
                os.replace(temp_name, path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(key, f"cannot write {path}: {exc}") from exc
        logger.debug("preference_written", key=key, path=str(path))


__all__ = ["FilePreferenceStore", "InMemoryPreferenceStore", "PreferenceStore"]
