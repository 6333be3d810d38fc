"""
Chat routes: per-article conversations, summaries and comparisons.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..auth import get_current_user, verify_api_key
from ..schemas import (
    ChatHistoryResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    CompareRequest,
    CompareResponse,
    SummarizeRequest,
)
from ..services import ChatServiceDep

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("/{article_id}/history")
async def get_chat_history(
    article_id: int,
    service: ChatServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> ChatHistoryResponse:
    """Get the caller's conversation about an article, oldest first.

    Returns an empty list if nothing was said yet. Works without an LLM provider.
    """
    messages = service.get_history(user_id, article_id)
    return ChatHistoryResponse(
        article_id=article_id,
        messages=[ChatMessageResponse.from_db(m) for m in messages],
    )


@router.post("/message")
async def send_message(
    request: ChatMessageRequest,
    service: ChatServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> ChatMessageResponse:
    """Send a message about an article and get the assistant's reply.

    504 when the provider times out, 502 when it refuses, 503 when none is configured.
    """
    reply = await service.append_user_message(user_id, request.article_id, request.message)
    return ChatMessageResponse.from_db(reply)


@router.post("/summarize")
async def summarize(
    request: SummarizeRequest,
    service: ChatServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> ChatMessageResponse:
    """Summarize an article (short, medium or long); stored in the conversation."""
    entry = await service.summarize(user_id, request.article_id, request.mode)
    return ChatMessageResponse.from_db(entry)


@router.post("/compare")
async def compare(
    request: CompareRequest,
    service: ChatServiceDep,
    user_id: Annotated[str, Depends(get_current_user)],
) -> CompareResponse:
    """Compare two or more articles. Not stored."""
    result = await service.compare_articles(user_id, request.article_ids)
    return CompareResponse(
        article_ids=result.article_ids,
        comparison=result.text,
        model_used=result.model,
    )
