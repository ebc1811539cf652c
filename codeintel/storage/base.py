"""Shared behaviour of stores that snapshot a single preference key."""

from __future__ import annotations

import json
import threading
from typing import Any, Callable, Generic, TypeVar

from codeintel.observability.logger import get_logger
from codeintel.prompting.errors import StorageError

from .preferences import PreferenceStore

logger = get_logger(__name__)

SnapshotT = TypeVar("SnapshotT")
Listener = Callable[[], None]


class SnapshotStore(Generic[SnapshotT]):
    """In-memory snapshot of one preference key with explicit load and save.

    The snapshot is loaded lazily on first access. ``load`` parses the whole
    blob before replacing the snapshot and ``save`` writes the whole snapshot,
    so a failure on either side leaves the in-memory state untouched.
    """

    def __init__(self, preferences: PreferenceStore, key: str) -> None:
        self._preferences = preferences
        self._key = key
        self._snapshot: SnapshotT | None = None
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    @property
    def key(self) -> str:
        return self._key

    # -- hooks -----------------------------------------------------------------

    def _empty(self) -> SnapshotT:
        raise NotImplementedError

    def _decode(self, payload: Any) -> SnapshotT:
        raise NotImplementedError

    def _encode(self, snapshot: SnapshotT) -> Any:
        raise NotImplementedError

    # -- persistence -----------------------------------------------------------

    def load(self) -> None:
        """Replace the snapshot with the persisted state.

        Raises
        ------
        StorageError
            If the stored blob cannot be read or decoded.
        """

        with self._lock:
            self._load_snapshot()
        self._notify()

    def save(self) -> None:
        """Persist the current snapshot, replacing the stored blob."""

        with self._lock:
            payload = self._encode(self._current())
            text = json.dumps(payload, ensure_ascii=False, indent=2)
            self._preferences.put(self._key, text)
            logger.info("preference_saved", key=self._key)

    # -- change notification ---------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -- helpers ---------------------------------------------------------------

    def _load_snapshot(self) -> None:
        raw = self._preferences.get(self._key)
        if raw is None or not raw.strip():
            snapshot = self._empty()
        else:
            try:
                payload = json.loads(raw)
                snapshot = self._decode(payload)
            except (ValueError, TypeError) as exc:
                logger.warning("preference_load_failed", key=self._key, error=str(exc))
                raise StorageError(self._key, f"malformed data: {exc}") from exc
        self._snapshot = snapshot
        logger.info("preference_loaded", key=self._key)

    def _current(self) -> SnapshotT:
        # First access loads silently; only an explicit load() notifies.
        if self._snapshot is None:
            self._load_snapshot()
        assert self._snapshot is not None
        return self._snapshot


__all__ = ["Listener", "SnapshotStore"]
