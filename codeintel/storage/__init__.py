"""Persistence of templates, overlays and connections."""

from .base import SnapshotStore
from .connections import ConnectionRegistry
from .overlays import ConfigOverlayStore
from .preferences import FilePreferenceStore, InMemoryPreferenceStore, PreferenceStore
from .templates import TemplateStore

__all__ = [
    "ConfigOverlayStore",
    "ConnectionRegistry",
    "FilePreferenceStore",
    "InMemoryPreferenceStore",
    "PreferenceStore",
    "SnapshotStore",
    "TemplateStore",
]
