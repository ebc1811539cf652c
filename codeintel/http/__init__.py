"""HTTP helpers and exception definitions used by the services."""

from .errors import (
    ConnectionNotFoundError,
    DuplicateFallbackTemplateError,
    InvalidOverlayError,
    InvalidPromptTemplateError,
    PreferenceStorageError,
    ProblemDetails,
    ProblemDetailsException,
    PromptNotFoundError,
    register_exception_handlers,
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
