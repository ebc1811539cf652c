"""Persisted per-connection, per-request-type JSON overlays."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from codeintel.models.prompts import PromptType

from .base import SnapshotStore
from .preferences import PreferenceStore

DEFAULT_OVERLAYS_KEY = "customConfigurationParameters"

OverlayMap = dict[str, dict[str, str]]


def _type_key(prompt_type: PromptType | str) -> str:
    if isinstance(prompt_type, PromptType):
        return prompt_type.name
    return prompt_type


class ConfigOverlayStore(SnapshotStore[OverlayMap]):
    """Keyed CRUD over ``connection name -> request type -> JSON text``.

    Overlay text is stored verbatim. A blank overlay is never stored; setting
    one removes the entry, and a connection left without overlays is dropped.
    Entries for connections that no longer exist are kept.
    """

    def __init__(
        self, preferences: PreferenceStore, key: str = DEFAULT_OVERLAYS_KEY
    ) -> None:
        super().__init__(preferences, key)

    def _empty(self) -> OverlayMap:
        return {}

    def _decode(self, payload: Any) -> OverlayMap:
        if not isinstance(payload, dict):
            raise TypeError("expected a JSON object of connections")
        overlays: OverlayMap = {}
        for connection_name, per_type in payload.items():
            if per_type is None:
                continue
            if not isinstance(per_type, dict):
                raise TypeError(f"overlays of '{connection_name}' must be an object")
            entries: dict[str, str] = {}
            for type_name, text in per_type.items():
                if text is None:
                    continue
                if not isinstance(text, str):
                    raise TypeError(
                        f"overlay '{type_name}' of '{connection_name}' must be a string"
                    )
                if text.strip():
                    entries[str(type_name)] = text
            if entries:
                overlays[str(connection_name)] = entries
        return overlays

    def _encode(self, snapshot: OverlayMap) -> Any:
        return {name: dict(entries) for name, entries in snapshot.items()}

    def get(self, connection_name: str) -> Mapping[str, str]:
        """Return the overlays of ``connection_name`` keyed by request type name."""

        with self._lock:
            return dict(self._current().get(connection_name, {}))

    def get_overlay(
        self, connection_name: str, prompt_type: PromptType | str
    ) -> str | None:
        with self._lock:
            return self._current().get(connection_name, {}).get(_type_key(prompt_type))

    def set_overlay(
        self,
        connection_name: str,
        prompt_type: PromptType | str,
        text: str | None,
    ) -> None:
        """Store ``text`` for the pair; blank text removes the overlay."""

        if text is None or not text.strip():
            self.remove_overlay(connection_name, prompt_type)
            return
        with self._lock:
            self._current().setdefault(connection_name, {})[
                _type_key(prompt_type)
            ] = text
        self._notify()

    def remove_overlay(
        self, connection_name: str, prompt_type: PromptType | str
    ) -> bool:
        with self._lock:
            overlays = self._current()
            entries = overlays.get(connection_name)
            if not entries or entries.pop(_type_key(prompt_type), None) is None:
                return False
            if not entries:
                del overlays[connection_name]
        self._notify()
        return True

    def remove_connection(self, connection_name: str) -> bool:
        with self._lock:
            removed = self._current().pop(connection_name, None) is not None
        if removed:
            self._notify()
        return removed

    def connection_names(self) -> list[str]:
        with self._lock:
            return list(self._current())

    def orphaned(self, known_connections: Iterable[str]) -> list[str]:
        """Return connections with overlays that are not in ``known_connections``."""

        known = set(known_connections)
        return [name for name in self.connection_names() if name not in known]

    def as_dict(self) -> OverlayMap:
        with self._lock:
            return self._encode(self._current())

    def replace_all(self, overlays: Mapping[str, Mapping[str, str]]) -> None:
        replacement = self._decode({name: dict(entries) for name, entries in overlays.items()})
        with self._lock:
            self._snapshot = replacement
        self._notify()


__all__ = ["ConfigOverlayStore", "DEFAULT_OVERLAYS_KEY", "OverlayMap"]
