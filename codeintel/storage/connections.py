"""Read-only view of the configured API connections."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from codeintel.models.prompts import AiApiConnection, ApiType

from .base import SnapshotStore
from .preferences import PreferenceStore

DEFAULT_CONNECTIONS_KEY = "apiConnections"


class ConnectionRegistry(SnapshotStore[list[AiApiConnection]]):
    """Connections persisted by the host; this core only reads them."""

    def __init__(
        self, preferences: PreferenceStore, key: str = DEFAULT_CONNECTIONS_KEY
    ) -> None:
        super().__init__(preferences, key)

    def _empty(self) -> list[AiApiConnection]:
        return []

    def _decode(self, payload: Any) -> list[AiApiConnection]:
        if not isinstance(payload, list):
            raise TypeError("expected a JSON array of connections")
        return [AiApiConnection.model_validate(item) for item in payload]

    def _encode(self, snapshot: list[AiApiConnection]) -> Any:
        return [
            connection.model_dump(mode="json", by_alias=True)
            for connection in snapshot
        ]

    def connections(self) -> tuple[AiApiConnection, ...]:
        with self._lock:
            return tuple(self._current())

    def get(self, name: str) -> Optional[AiApiConnection]:
        for connection in self.connections():
            if connection.name == name:
                return connection
        return None

    def eligible_for_overlays(
        self, api_types: Optional[Iterable[ApiType]] = None
    ) -> list[AiApiConnection]:
        """Return enabled, named connections, optionally limited to ``api_types``."""

        allowed = set(api_types) if api_types is not None else None
        return [
            connection
            for connection in self.connections()
            if connection.enabled
            and connection.name.strip()
            and (allowed is None or connection.type in allowed)
        ]


__all__ = ["ConnectionRegistry", "DEFAULT_CONNECTIONS_KEY"]
