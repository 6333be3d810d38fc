"""
Service layer for business logic.

Services encapsulate business logic, keeping routes as thin HTTP adapters.
Each service receives its dependencies via constructor injection and is
built once at startup (they hold per-key locks, so they are singletons).

Usage in routes:
    from ..services import ArticleServiceDep

    @router.get("/articles")
    async def list_articles(service: ArticleServiceDep):
        return service.list_articles()
"""

from typing import Annotated

from fastapi import Depends

from ..config import get_article_service, get_chat_service

from .article_service import ArticleDetail, ArticleFilter, ArticleService, UpsertResult
from .chat_service import ChatService, ComparisonResult
from .ingestion_service import CycleResult, IngestionService, SourceState

__all__ = [
    # Services
    "ArticleService",
    "ChatService",
    "IngestionService",
    # Results and filters
    "ArticleDetail",
    "ArticleFilter",
    "ComparisonResult",
    "CycleResult",
    "SourceState",
    "UpsertResult",
    # Type aliases for dependency injection
    "ArticleServiceDep",
    "ChatServiceDep",
]


ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
