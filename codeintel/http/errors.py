"""Problem details and custom exceptions for HTTP responses."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Mapping, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from codeintel.observability.logger import get_logger
from codeintel.prompting.errors import (
    ConfigParseError,
    DuplicateFallbackError,
    StorageError,
    TemplateSyntaxError,
)

__all__ = [
    "ConnectionNotFoundError",
    "DuplicateFallbackTemplateError",
    "InvalidOverlayError",
    "InvalidPromptTemplateError",
    "PreferenceStorageError",
    "ProblemDetails",
    "ProblemDetailsException",
    "PromptNotFoundError",
    "register_exception_handlers",
]

logger = get_logger(__name__)

_PROBLEM_BASE = "https://codeintel.dev/problems"
_PROBLEM_FIELDS = {"type", "title", "status", "detail", "instance"}


class ProblemDetails(BaseModel):
    """Representation of an RFC 7807 problem details payload."""

    type: str = Field(
        default="about:blank", description="URI identifying the error type"
    )
    title: str = Field(
        default="An error occurred", description="Short human-readable summary"
    )
    status: int = Field(default=status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail: str | None = Field(
        default=None, description="Detailed description of the error"
    )
    instance: str | None = Field(
        default=None, description="URI identifying the specific occurrence"
    )
    errors: list[Any] | None = Field(
        default=None, description="Detailed validation errors when applicable"
    )

    model_config = ConfigDict(extra="allow")


class ProblemDetailsException(RuntimeError):
    """Base exception carrying structured problem details metadata."""

    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_title = "Service Error"
    default_type = "about:blank"

    def __init__(
        self,
        detail: str | None = None,
        *,
        status_code: int | None = None,
        title: str | None = None,
        type_uri: str | None = None,
        instance: str | None = None,
        extensions: Mapping[str, Any] | None = None,
    ) -> None:
        message = detail or title or self.default_title
        super().__init__(message)
        self.detail = detail or message
        self.status_code = status_code or self.default_status_code
        self.title = title or self.default_title
        self.problem_type = type_uri or self.default_type
        self.instance = instance
        self.extensions = dict(extensions or {})

    def to_problem_details(self, *, instance: str | None = None) -> ProblemDetails:
        """Return a :class:`ProblemDetails` representation of the exception."""

        return ProblemDetails(
            type=self.problem_type,
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=instance or self.instance,
            **self.extensions,
        )


class PromptNotFoundError(ProblemDetailsException):
    """Raised when no prompt template exists at the requested position."""

    default_status_code = status.HTTP_404_NOT_FOUND
    default_title = "Prompt Template Not Found"
    default_type = f"{_PROBLEM_BASE}/prompt-not-found"

    def __init__(self, index: int, *, detail: str | None = None) -> None:
        self.index = index
        super().__init__(
            detail=detail or f"No prompt template at position {index}.",
            extensions={"index": index},
        )


class ConnectionNotFoundError(ProblemDetailsException):
    """Raised when a referenced API connection is not configured."""

    default_status_code = status.HTTP_404_NOT_FOUND
    default_title = "Connection Not Found"
    default_type = f"{_PROBLEM_BASE}/connection-not-found"

    def __init__(self, connection_name: str) -> None:
        self.connection_name = connection_name
        super().__init__(
            detail=f"API connection '{connection_name}' is not configured.",
            extensions={"connectionName": connection_name},
        )


class InvalidPromptTemplateError(ProblemDetailsException):
    """Raised when submitted template text does not parse."""

    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_title = "Invalid Prompt Template"
    default_type = f"{_PROBLEM_BASE}/invalid-prompt-template"

    @classmethod
    def from_syntax_error(
        cls, error: TemplateSyntaxError
    ) -> "InvalidPromptTemplateError":
        extensions: dict[str, Any] = {}
        if error.line is not None:
            extensions["line"] = error.line
        return cls(detail=error.message, extensions=extensions)


class DuplicateFallbackTemplateError(ProblemDetailsException):
    """Raised when a template would become a second enabled fallback of its type."""

    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_title = "Duplicate Fallback Template"
    default_type = f"{_PROBLEM_BASE}/duplicate-fallback"

    def __init__(self, prompt_type: str, existing: str) -> None:
        super().__init__(
            detail=(
                f"Only one enabled {prompt_type} template may apply to every "
                f"connection and model; '{existing}' already does"
            ),
            extensions={"promptType": prompt_type, "existing": existing},
        )


class InvalidOverlayError(ProblemDetailsException):
    """Raised when submitted overlay text is not a JSON object."""

    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_title = "Invalid Configuration Overlay"
    default_type = f"{_PROBLEM_BASE}/invalid-overlay"

    def __init__(self, connection_name: str, request_type: str, reason: str) -> None:
        super().__init__(
            detail=reason,
            extensions={"connectionName": connection_name, "requestType": request_type},
        )


class PreferenceStorageError(ProblemDetailsException):
    """Raised when persisted preferences cannot be read or written."""

    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_title = "Preference Storage Unavailable"
    default_type = f"{_PROBLEM_BASE}/storage-unavailable"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(detail=reason, extensions={"key": key})


def _problem_response(problem: ProblemDetails) -> JSONResponse:
    payload = problem.model_dump(mode="json", exclude_none=True)
    status_code = payload.get("status", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        payload, status_code=status_code, media_type="application/problem+json"
    )


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:  # pragma: no cover - defensive branch
        return "HTTP Error"


def _normalize_detail(detail: Any) -> tuple[str | None, dict[str, Any]]:
    if isinstance(detail, Mapping):
        detail_value = detail.get("detail") or detail.get("message")
        normalized = str(detail_value) if detail_value is not None else None
        extras = {k: v for k, v in detail.items() if k not in _PROBLEM_FIELDS}
        return normalized, extras
    if isinstance(detail, list):
        return None, {"errors": detail}
    if detail is None:
        return None, {}
    return str(detail), {}


def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)
    detail, extras = _normalize_detail(exc.detail)
    problem = ProblemDetails(
        title=_status_title(exc.status_code),
        status=exc.status_code,
        detail=detail,
        instance=str(request.url),
        **extras,
    )
    return _problem_response(problem)


def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    validation_error = cast(RequestValidationError, exc)
    problem = ProblemDetails(
        type=f"{_PROBLEM_BASE}/request-validation",
        title="Request Validation Failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail="One or more request parameters failed validation.",
        instance=str(request.url),
        errors=validation_error.errors(),
    )
    return _problem_response(problem)


def _problem_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    problem_exception = cast(ProblemDetailsException, exc)
    logger.info(
        "problem_response",
        status=problem_exception.status_code,
        title=problem_exception.title,
        path=str(request.url),
    )
    problem = problem_exception.to_problem_details(instance=str(request.url))
    return _problem_response(problem)


def _template_syntax_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(TemplateSyntaxError, exc)
    problem = InvalidPromptTemplateError.from_syntax_error(error)
    return _problem_exception_handler(request, problem)


def _config_parse_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(ConfigParseError, exc)
    problem = InvalidOverlayError(
        error.connection_name or "", error.request_type, error.reason
    )
    return _problem_exception_handler(request, problem)


def _duplicate_fallback_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(DuplicateFallbackError, exc)
    problem = DuplicateFallbackTemplateError(error.prompt_type, error.existing)
    return _problem_exception_handler(request, problem)


def _storage_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(StorageError, exc)
    logger.error("preference_storage_failed", key=error.key, reason=error.reason)
    problem = PreferenceStorageError(error.key, error.reason)
    return _problem_exception_handler(request, problem)


def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_exception",
        error=str(exc),
        path=str(request.url),
    )
    problem = ProblemDetails(
        type=f"{_PROBLEM_BASE}/internal-server-error",
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing the request.",
        instance=str(request.url),
    )
    return _problem_response(problem)


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers that emit RFC 7807 problem details."""

    app.add_exception_handler(ProblemDetailsException, _problem_exception_handler)
    app.add_exception_handler(TemplateSyntaxError, _template_syntax_handler)
    app.add_exception_handler(ConfigParseError, _config_parse_handler)
    app.add_exception_handler(DuplicateFallbackError, _duplicate_fallback_handler)
    app.add_exception_handler(StorageError, _storage_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
