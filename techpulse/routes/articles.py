"""
Article routes: list, detail and search.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import get_optional_user, verify_api_key
from ..classifier import Category
from ..schemas import ArticleDetailResponse, ArticleListResponse, ArticleResponse
from ..services import ArticleFilter, ArticleServiceDep

router = APIRouter(
    tags=["articles"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("/articles")
async def list_articles(
    service: ArticleServiceDep,
    category: Category | None = None,
    time_range: Literal["today", "week", "month", "all"] = "all",
    search: str | None = None,
    source_id: int | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> ArticleListResponse:
    """Get articles, newest first, optionally filtered by category, time range or text."""
    articles = service.list_articles(ArticleFilter(
        category=category.value if category else None,
        time_range=time_range,
        search=search,
        source_id=source_id,
        page=page,
        limit=limit,
    ))
    return ArticleListResponse(
        articles=[ArticleResponse.from_db(a) for a in articles],
        page=page,
        limit=limit,
    )


@router.get("/articles/{article_id}")
async def get_article(
    article_id: int,
    service: ArticleServiceDep,
    user_id: Annotated[str | None, Depends(get_optional_user)],
) -> ArticleDetailResponse:
    """Get a single article with its source and related articles. Counts as a view."""
    detail = service.get_article_detail(article_id, user_id)
    return ArticleDetailResponse.from_detail(
        detail.article,
        detail.source,
        detail.is_bookmarked,
        detail.related,
    )


@router.get("/search")
async def search(
    q: str,
    service: ArticleServiceDep,
    limit: int = Query(default=20, ge=1, le=100),
) -> list[ArticleResponse]:
    """Full-text search across titles, snippets and content."""
    if len(q.strip()) < 2:
        raise HTTPException(status_code=400, detail="Query too short")
    return [ArticleResponse.from_db(a) for a in service.search(q, limit=limit)]
