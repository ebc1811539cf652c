"""Dependency providers wiring the preference stores to the FastAPI app."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from codeintel.config.settings import Settings, get_settings
from codeintel.prompting.service import PromptService
from codeintel.storage import (
    ConfigOverlayStore,
    ConnectionRegistry,
    FilePreferenceStore,
    PreferenceStore,
    TemplateStore,
)


@lru_cache
def get_preference_store() -> PreferenceStore:
    """Return the process-wide preference backend."""

    return FilePreferenceStore(get_settings().storage.directory)


@lru_cache
def get_template_store() -> TemplateStore:
    return TemplateStore(get_preference_store(), get_settings().storage.templates_key)


@lru_cache
def get_overlay_store() -> ConfigOverlayStore:
    return ConfigOverlayStore(
        get_preference_store(), get_settings().storage.overlays_key
    )


@lru_cache
def get_connection_registry() -> ConnectionRegistry:
    return ConnectionRegistry(
        get_preference_store(), get_settings().storage.connections_key
    )


def get_prompt_service(
    templates: TemplateStore = Depends(get_template_store),
    overlays: ConfigOverlayStore = Depends(get_overlay_store),
    settings: Settings = Depends(get_settings),
) -> PromptService:
    """Return a prompt service reading the live stores."""

    return PromptService(templates, overlays, settings)


__all__ = [
    "get_connection_registry",
    "get_overlay_store",
    "get_preference_store",
    "get_prompt_service",
    "get_template_store",
]
