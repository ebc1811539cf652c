"""Observability utilities shared by the prompt core and its services."""

from .logger import (
    configure_logging,
    generate_request_id,
    get_logger,
    get_request_id,
    log_prompt,
    request_context,
    set_prompt_logging,
)
from .middleware import CorrelationIdMiddleware, RequestTimingMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "RequestTimingMiddleware",
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "log_prompt",
    "request_context",
    "set_prompt_logging",
]
