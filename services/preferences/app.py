"""Preferences FastAPI application for prompt templates and request overlays."""

from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, Response, status
from pydantic import Field

from codeintel.config.settings import get_settings
from codeintel.http.errors import (
    ConnectionNotFoundError,
    PromptNotFoundError,
    register_exception_handlers,
)
from codeintel.models.prompts import (
    AiApiConnection,
    ApiType,
    CamelModel,
    PromptTemplate,
    PromptType,
)
from codeintel.observability.logger import configure_logging, get_logger
from codeintel.observability.middleware import (
    CorrelationIdMiddleware,
    RequestTimingMiddleware,
)
from codeintel.prompting.overlays import parse_overlay, suggest_overlay
from codeintel.prompting.preview import preview
from codeintel.prompting.renderer import compile_template, render
from codeintel.prompting.resolver import match_specificity
from codeintel.prompting.service import PromptService
from codeintel.storage import ConfigOverlayStore, ConnectionRegistry, TemplateStore

from .dependencies import (
    get_connection_registry,
    get_overlay_store,
    get_prompt_service,
    get_template_store,
)

SERVICE_NAME = "preferences"

_settings = get_settings()
configure_logging(
    service_name=SERVICE_NAME,
    level=_settings.logging.level,
    log_prompts=_settings.logging.debug_log_prompts,
)

logger = get_logger(__name__)

app = FastAPI(title="Code Intelligence Preferences Service")
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class TemplateCollectionResponse(CamelModel):
    """All stored templates in resolution order."""

    templates: list[PromptTemplate] = Field(default_factory=list)


class TemplateResponse(CamelModel):
    """A single template and its position in the stored list."""

    index: int
    template: PromptTemplate


class MoveTemplateRequest(CamelModel):
    direction: Literal["up", "down"]


class ResolveRequest(CamelModel):
    """Request context used to pick a template."""

    type: PromptType
    connection_name: Optional[str] = None
    model_id: Optional[str] = None


class ResolveResponse(CamelModel):
    template: PromptTemplate
    is_default: bool
    specificity: Optional[str] = None


class RenderRequest(ResolveRequest):
    """Render either ``prompt`` or the template resolved for the context."""

    prompt: Optional[str] = None
    variables: dict[str, Any] = Field(default_factory=dict)


class RenderResponse(CamelModel):
    text: str
    template_name: Optional[str] = None


class PreviewRequest(CamelModel):
    type: PromptType
    prompt: str = ""


class PreviewMessageModel(CamelModel):
    role: str
    html: str


class PreviewResponse(CamelModel):
    messages: list[PreviewMessageModel] = Field(default_factory=list)


class OverlayUpdateRequest(CamelModel):
    """Overlay JSON text; blank or missing text clears the overlay."""

    overlay: Optional[str] = None


class OverlayMergeRequest(CamelModel):
    connection_name: Optional[str] = None
    type: PromptType
    base: dict[str, Any] = Field(default_factory=dict)


class OverlayMergeResponse(CamelModel):
    body: dict[str, Any]


class OverlaySuggestionResponse(CamelModel):
    connection_name: str
    type: PromptType
    suggestion: Optional[str] = None


class ConnectionSummary(CamelModel):
    """Connection identity without credentials."""

    name: str
    type: ApiType
    base_uri: Optional[str] = None
    enabled: bool

    @classmethod
    def from_connection(cls, connection: AiApiConnection) -> "ConnectionSummary":
        return cls(
            name=connection.name,
            type=connection.type,
            base_uri=connection.base_uri,
            enabled=connection.enabled,
        )


class PreferencesStatusResponse(CamelModel):
    templates: int
    overlay_connections: int
    orphaned_overlays: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validate_template(template: PromptTemplate) -> None:
    compile_template(template.prompt.strip())


def _template_at(store: TemplateStore, index: int) -> PromptTemplate:
    try:
        return store.get(index)
    except IndexError:
        raise PromptNotFoundError(index) from None


def _require_connection(
    registry: ConnectionRegistry, connection_name: str
) -> AiApiConnection:
    connection = registry.get(connection_name)
    if connection is None:
        raise ConnectionNotFoundError(connection_name)
    return connection


def _status(
    templates: TemplateStore,
    overlays: ConfigOverlayStore,
    registry: ConnectionRegistry,
) -> PreferencesStatusResponse:
    known = [connection.name for connection in registry.connections()]
    return PreferencesStatusResponse(
        templates=len(templates),
        overlay_connections=len(overlays.connection_names()),
        orphaned_overlays=overlays.orphaned(known),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return a simple health payload for orchestration checks."""

    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/templates", response_model=TemplateCollectionResponse, tags=["templates"])
async def list_templates(
    store: TemplateStore = Depends(get_template_store),
) -> TemplateCollectionResponse:
    """Return all templates in stored order."""

    return TemplateCollectionResponse(templates=list(store.templates))


@app.post(
    "/templates",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["templates"],
)
async def create_template(
    template: PromptTemplate,
    position: Optional[int] = None,
    store: TemplateStore = Depends(get_template_store),
) -> TemplateResponse:
    """Append ``template``, or insert it at ``position`` when given."""

    _validate_template(template)
    if position is None:
        index = store.add(template)
    else:
        index = store.insert(position, template)
    logger.info("template_created", index=index, name=template.name)
    return TemplateResponse(index=index, template=template)


@app.get("/templates/{index}", response_model=TemplateResponse, tags=["templates"])
async def get_template(
    index: int,
    store: TemplateStore = Depends(get_template_store),
) -> TemplateResponse:
    return TemplateResponse(index=index, template=_template_at(store, index))


@app.put("/templates/{index}", response_model=TemplateResponse, tags=["templates"])
async def update_template(
    index: int,
    template: PromptTemplate,
    store: TemplateStore = Depends(get_template_store),
) -> TemplateResponse:
    """Replace the template at ``index`` after validating its text."""

    _template_at(store, index)
    _validate_template(template)
    store.update(index, template)
    logger.info("template_updated", index=index, name=template.name)
    return TemplateResponse(index=index, template=template)


@app.delete("/templates/{index}", response_model=TemplateResponse, tags=["templates"])
async def delete_template(
    index: int,
    store: TemplateStore = Depends(get_template_store),
) -> TemplateResponse:
    _template_at(store, index)
    removed = store.remove(index)
    logger.info("template_removed", index=index, name=removed.name)
    return TemplateResponse(index=index, template=removed)


@app.post(
    "/templates/{index}/move", response_model=TemplateResponse, tags=["templates"]
)
async def move_template(
    index: int,
    payload: MoveTemplateRequest,
    store: TemplateStore = Depends(get_template_store),
) -> TemplateResponse:
    """Move a template one step; moving past either end is a no-op."""

    template = _template_at(store, index)
    if payload.direction == "up":
        new_index = store.move_up(index)
    else:
        new_index = store.move_down(index)
    return TemplateResponse(index=new_index, template=template)


@app.post("/templates/resolve", response_model=ResolveResponse, tags=["templates"])
async def resolve_template(
    payload: ResolveRequest,
    service: PromptService = Depends(get_prompt_service),
) -> ResolveResponse:
    """Return the template that a request with this context would use."""

    template = service.resolver.resolve(
        payload.type, payload.connection_name, payload.model_id
    )
    if template is None:
        return ResolveResponse(
            template=service.select_template(payload.type), is_default=True
        )
    specificity = match_specificity(
        template, payload.connection_name, payload.model_id
    )
    return ResolveResponse(
        template=template,
        is_default=False,
        specificity=specificity.name if specificity is not None else None,
    )


@app.post("/templates/render", response_model=RenderResponse, tags=["templates"])
async def render_template(
    payload: RenderRequest,
    service: PromptService = Depends(get_prompt_service),
) -> RenderResponse:
    """Render submitted text strictly, or the resolved template fail-safe."""

    if payload.prompt is not None:
        return RenderResponse(text=render(payload.prompt.strip(), payload.variables))
    rendered = service.render_prompt(
        payload.type,
        payload.variables,
        connection_name=payload.connection_name,
        model_id=payload.model_id,
    )
    return RenderResponse(text=rendered.text, template_name=rendered.template.name)


@app.post("/templates/preview", response_model=PreviewResponse, tags=["templates"])
async def preview_template(payload: PreviewRequest) -> PreviewResponse:
    """Return HTML preview messages for a template being edited."""

    messages = preview(payload.type, payload.prompt)
    return PreviewResponse(
        messages=[
            PreviewMessageModel(role=message.role, html=message.html)
            for message in messages
        ]
    )


@app.get("/overlays", response_model=dict[str, dict[str, str]], tags=["overlays"])
async def list_overlays(
    store: ConfigOverlayStore = Depends(get_overlay_store),
) -> dict[str, dict[str, str]]:
    return store.as_dict()


@app.put(
    "/overlays/{connection_name}/{prompt_type}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["overlays"],
)
async def put_overlay(
    connection_name: str,
    prompt_type: PromptType,
    payload: OverlayUpdateRequest,
    store: ConfigOverlayStore = Depends(get_overlay_store),
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> Response:
    """Store overlay JSON for a connection; blank text clears it."""

    _require_connection(registry, connection_name)
    text = payload.overlay
    if text is not None and text.strip():
        parse_overlay(text, connection_name=connection_name, prompt_type=prompt_type)
    store.set_overlay(connection_name, prompt_type, text)
    logger.info(
        "overlay_updated",
        connection=connection_name,
        prompt_type=prompt_type.value,
        cleared=not (text and text.strip()),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete(
    "/overlays/{connection_name}/{prompt_type}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["overlays"],
)
async def delete_overlay(
    connection_name: str,
    prompt_type: PromptType,
    store: ConfigOverlayStore = Depends(get_overlay_store),
) -> Response:
    store.remove_overlay(connection_name, prompt_type)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/overlays/merge", response_model=OverlayMergeResponse, tags=["overlays"])
async def merge_overlay(
    payload: OverlayMergeRequest,
    service: PromptService = Depends(get_prompt_service),
) -> OverlayMergeResponse:
    """Show the effect of the stored overlay on ``base``; bad JSON is reported."""

    merged = service.config.merge(payload.base, payload.connection_name, payload.type)
    return OverlayMergeResponse(body=dict(merged))


@app.get(
    "/overlays/suggestions/{connection_name}/{prompt_type}",
    response_model=OverlaySuggestionResponse,
    tags=["overlays"],
)
async def overlay_suggestion(
    connection_name: str,
    prompt_type: PromptType,
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> OverlaySuggestionResponse:
    connection = _require_connection(registry, connection_name)
    return OverlaySuggestionResponse(
        connection_name=connection_name,
        type=prompt_type,
        suggestion=suggest_overlay(connection.type, prompt_type),
    )


@app.get(
    "/connections/eligible",
    response_model=list[ConnectionSummary],
    tags=["connections"],
)
async def eligible_connections(
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> list[ConnectionSummary]:
    """Return connections that can carry configuration overlays."""

    return [
        ConnectionSummary.from_connection(connection)
        for connection in registry.eligible_for_overlays()
    ]


@app.post(
    "/preferences/save",
    response_model=PreferencesStatusResponse,
    tags=["preferences"],
)
async def save_preferences(
    templates: TemplateStore = Depends(get_template_store),
    overlays: ConfigOverlayStore = Depends(get_overlay_store),
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> PreferencesStatusResponse:
    """Persist templates and overlays."""

    templates.save()
    overlays.save()
    return _status(templates, overlays, registry)


@app.post(
    "/preferences/reload",
    response_model=PreferencesStatusResponse,
    tags=["preferences"],
)
async def reload_preferences(
    templates: TemplateStore = Depends(get_template_store),
    overlays: ConfigOverlayStore = Depends(get_overlay_store),
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> PreferencesStatusResponse:
    """Discard unsaved edits and reload everything from storage."""

    templates.load()
    overlays.load()
    registry.load()
    return _status(templates, overlays, registry)


def get_app() -> FastAPI:
    """Return the FastAPI app instance."""

    return app


__all__ = ["app", "get_app"]
