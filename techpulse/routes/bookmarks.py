"""
Bookmark routes: per-user saved articles.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import get_current_user, verify_api_key
from ..schemas import ArticleResponse, BookmarkRequest, BookmarkResponse
from ..services import ArticleServiceDep

router = APIRouter(
    prefix="/bookmarks",
    tags=["bookmarks"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("")
async def list_bookmarks(
    service: ArticleServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
    limit: int = Query(default=100, ge=1, le=500),
) -> list[ArticleResponse]:
    """Get the caller's bookmarked articles, most recently bookmarked first."""
    return [ArticleResponse.from_db(a) for a in service.list_bookmarks(user_id, limit)]


@router.post("", status_code=201)
async def add_bookmark(
    request: BookmarkRequest,
    service: ArticleServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> BookmarkResponse:
    """Bookmark an article. 409 if it is already bookmarked, 404 if it doesn't exist."""
    bookmark = service.add_bookmark(user_id, request.article_id)
    return BookmarkResponse(
        article_id=bookmark.article_id,
        is_bookmarked=True,
        created_at=bookmark.created_at.isoformat(),
    )


@router.get("/{article_id}")
async def get_bookmark_status(
    article_id: int,
    service: ArticleServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> BookmarkResponse:
    """Check whether the caller has bookmarked an article."""
    return BookmarkResponse(
        article_id=article_id,
        is_bookmarked=service.is_bookmarked(user_id, article_id),
    )


@router.delete("/{article_id}")
async def remove_bookmark(
    article_id: int,
    service: ArticleServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> dict:
    """Remove a bookmark. 404 if it doesn't exist."""
    service.remove_bookmark(user_id, article_id)
    return {"success": True, "article_id": article_id}
