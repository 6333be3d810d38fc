"""
Domain exceptions and HTTP mapping.

Every error the core raises derives from TechPulseError. Ingestion errors are
caught per source by the scheduler; conversation and bookmark errors propagate
to the caller and are turned into HTTP responses by the handler registered in
register_exception_handlers().
"""

import logging
from typing import TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TechPulseError(Exception):
    """Base class for all domain errors."""
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


# ─────────────────────────────────────────────────────────────
# Ingestion (recoverable, retried on the next tick)
# ─────────────────────────────────────────────────────────────

class SourceUnreachable(TechPulseError):
    """Feed endpoint could not be reached (network error, timeout, HTTP error)."""
    status_code = 502
    retryable = True


class MalformedFeed(TechPulseError):
    """Feed body could not be parsed into entries."""
    status_code = 502
    retryable = True


# ─────────────────────────────────────────────────────────────
# User-facing
# ─────────────────────────────────────────────────────────────

class DuplicateBookmark(TechPulseError):
    """Bookmark already exists for this (user, article) pair."""
    status_code = 409


class NotFound(TechPulseError):
    """Missing article, source or bookmark."""
    status_code = 404


class InvalidInput(TechPulseError, ValueError):
    """Malformed identifier or request argument."""
    status_code = 400


# ─────────────────────────────────────────────────────────────
# AI boundary
# ─────────────────────────────────────────────────────────────

class AIBoundaryError(TechPulseError):
    status_code = 502


class AIBoundaryTimeout(AIBoundaryError):
    """Completion did not arrive within the configured timeout."""
    status_code = 504
    retryable = True


class AIBoundaryRejected(AIBoundaryError):
    """Provider refused the request (quota, auth) or returned unusable output."""
    status_code = 502


class AIBoundaryUnavailable(AIBoundaryError):
    """No LLM provider is configured."""
    status_code = 503


# ─────────────────────────────────────────────────────────────
# Storage
# ─────────────────────────────────────────────────────────────

class RepositoryUnavailable(TechPulseError):
    """The SQLite store could not serve the operation."""
    status_code = 503
    retryable = True


def require_resource(resource: T | None, detail: str = "Resource not found") -> T:
    """
    Raise NotFound if resource is None, otherwise return the resource.

    Usage:
        article = require_resource(db.get_article(id), "Article not found")
    """
    if resource is None:
        raise NotFound(detail)
    return resource


def require_article(article: T | None) -> T:
    """Raise NotFound if article is None."""
    return require_resource(article, "Article not found")


def require_source(source: T | None) -> T:
    """Raise NotFound if source is None."""
    return require_resource(source, "Source not found")


async def _handle_domain_error(request: Request, exc: TechPulseError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.__class__.__name__}: {exc.message}")
    content = {"detail": exc.message, "error": exc.__class__.__name__, "retryable": exc.retryable}
    headers = {"Retry-After": "30"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to JSON responses."""
    app.add_exception_handler(TechPulseError, _handle_domain_error)
