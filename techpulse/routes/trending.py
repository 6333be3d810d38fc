"""
Trending routes: stored topic tallies per window.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..auth import verify_api_key
from ..config import get_db
from ..database import Database
from ..schemas import TrendingResponse, TrendingTopicResponse
from ..trending import TimeWindow

router = APIRouter(
    prefix="/trending",
    tags=["trending"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("")
async def get_trending(
    db: Annotated[Database, Depends(get_db)],
    range: TimeWindow = TimeWindow.TODAY,
    limit: int = Query(default=25, ge=1, le=100),
) -> TrendingResponse:
    """Get the most recently computed trending topics for a window."""
    topics = db.list_trending_topics(range.value, limit=limit)
    return TrendingResponse(
        range=range.value,
        topics=[TrendingTopicResponse.from_db(t) for t in topics],
    )
