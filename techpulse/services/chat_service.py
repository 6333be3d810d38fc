"""
Chat service: per-(user, article) conversations with the LLM provider.

History is append-only. Messages for one (user, article) pair are handled
one at a time in arrival order; different pairs run concurrently. A user
message and its reply are stored together once the provider answers; when
the provider fails nothing is written.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..database import Database
from ..database.models import DBArticle, DBChatMessage
from ..exceptions import (
    AIBoundaryError,
    AIBoundaryRejected,
    AIBoundaryTimeout,
    AIBoundaryUnavailable,
    InvalidInput,
    require_article,
)
from ..locks import KeyedLocks
from ..providers.base import LLMResponse, ModelTier
from .article_service import validate_article_id, validate_user_id

if TYPE_CHECKING:
    from ..providers.base import LLMProvider

logger = logging.getLogger(__name__)


# Maximum characters of article content in context
MAX_ARTICLE_CHARS = 32000
# Maximum number of messages to include in context
MAX_HISTORY_MESSAGES = 20
# Upper bound on articles in one comparison
MAX_COMPARE_ARTICLES = 5

CHAT_SYSTEM_PROMPT = """You are TechPulse's assistant. You answer questions about a technology news article and help the reader understand it.

You have access to the article's title, URL, publication date, category and content (which may be truncated for length).

- Base your answers on the article content provided
- If the article doesn't contain the information, say so
- Explain technical terms briefly when they matter
- Be concise but thorough"""

SUMMARY_SYSTEM_PROMPT = """You summarize technology news articles for busy readers.
Stay accurate to the article. Do not add facts that are not in it. Plain text, no preamble."""

COMPARE_SYSTEM_PROMPT = """You compare technology news articles covering related events.
Point out where they agree, where they differ in facts or framing, and what each adds. Stay accurate to the articles."""


@dataclass(frozen=True)
class SummaryMode:
    instruction: str
    tier: ModelTier
    max_tokens: int


SUMMARY_MODES: dict[str, SummaryMode] = {
    "short": SummaryMode(
        instruction="Summarize this article in 2-3 sentences.",
        tier=ModelTier.FAST,
        max_tokens=200,
    ),
    "medium": SummaryMode(
        instruction="Summarize this article in one paragraph followed by 3-5 key points as a bulleted list.",
        tier=ModelTier.FAST,
        max_tokens=600,
    ),
    "long": SummaryMode(
        instruction=(
            "Write a detailed summary of this article: the main story, important context, "
            "the key facts and figures, and why it matters for the industry."
        ),
        tier=ModelTier.STANDARD,
        max_tokens=1500,
    ),
}


@dataclass
class ComparisonResult:
    article_ids: list[int]
    text: str
    model: str


def _truncate_content(content: str, max_chars: int = MAX_ARTICLE_CHARS) -> str:
    """Truncate content to fit within context limits."""
    if not content or len(content) <= max_chars:
        return content or ""

    # Try to truncate at a sentence boundary
    truncated = content[:max_chars]
    last_period = truncated.rfind(". ")
    if last_period > max_chars * 0.8:
        truncated = truncated[:last_period + 1]

    return truncated + "\n\n[Content truncated for length]"


def _build_article_context(article: DBArticle, max_chars: int = MAX_ARTICLE_CHARS) -> str:
    """Build the article context string for the system prompt."""
    parts = [
        f"ARTICLE TITLE: {article.title}",
        f"URL: {article.url}",
    ]
    if article.published_at:
        parts.append(f"PUBLISHED: {article.published_at.strftime('%Y-%m-%d')}")
    parts.append(f"CATEGORY: {article.category}")

    body = article.content or article.snippet
    if body:
        parts.append(f"\nARTICLE CONTENT:\n{_truncate_content(body, max_chars)}")
    else:
        parts.append("\n[Article content not available]")

    return "\n".join(parts)


def _to_provider_messages(history: list[DBChatMessage], pending: str | None = None) -> list[dict]:
    """
    Shape stored history, plus an optional new user message, into
    alternating user/assistant turns.

    Leading assistant entries (e.g. a summary written before any question)
    are dropped and consecutive entries of the same role (e.g. a summary
    following a reply) are merged, since providers expect the conversation
    to start with and alternate from a user turn.
    """
    turns = [(entry.role, entry.content) for entry in history]
    if pending is not None:
        turns.append(("user", pending))

    messages: list[dict] = []
    for role, content in turns:
        if role not in ("user", "assistant"):
            continue
        if not messages and role != "user":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + content
        else:
            messages.append({"role": role, "content": content})
    return messages


class ChatService:
    """Service for article chat conversations."""

    def __init__(
        self,
        db: Database,
        provider: "LLMProvider | None" = None,
        timeout: float = 60.0,
    ):
        self.db = db
        self.provider = provider
        self.timeout = timeout
        self._pair_locks = KeyedLocks()

    @property
    def is_available(self) -> bool:
        return self.provider is not None

    # ─────────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────────

    def get_history(self, user_id: str, article_id: int) -> list[DBChatMessage]:
        """
        Get the conversation for a (user, article) pair, oldest first.

        Returns an empty list if nothing was said yet.

        Raises:
            InvalidInput: malformed identifiers
            NotFound: unknown article
        """
        user_id = validate_user_id(user_id)
        validate_article_id(article_id)
        require_article(self.db.get_article(article_id))
        return self.db.list_conversation_history(user_id, article_id)

    # ─────────────────────────────────────────────────────────────
    # Conversation
    # ─────────────────────────────────────────────────────────────

    async def append_user_message(
        self,
        user_id: str,
        article_id: int,
        text: str,
    ) -> DBChatMessage:
        """
        Send a user message and record it together with the assistant's reply.

        Both entries are appended only after the provider answers, so a
        failed call leaves the history untouched. Returns the assistant entry.

        Raises:
            AIBoundaryUnavailable: no provider configured
            AIBoundaryTimeout: provider did not answer in time (retryable)
            AIBoundaryRejected: provider refused or returned nothing usable
        """
        user_id = validate_user_id(user_id)
        validate_article_id(article_id)
        if not text or not text.strip():
            raise InvalidInput("Message must not be empty")
        provider = self._require_provider()

        async with self._pair_locks.hold((user_id, article_id)):
            article = require_article(self.db.get_article(article_id))
            text = text.strip()

            history = self.db.list_conversation_history(
                user_id, article_id, limit=MAX_HISTORY_MESSAGES - 1
            )
            system_prompt = f"{CHAT_SYSTEM_PROMPT}\n\n---\n\n{_build_article_context(article)}"

            response = await self._call(
                provider.complete_chat_async(
                    messages=_to_provider_messages(history, pending=text),
                    system_prompt=system_prompt,
                    max_tokens=2048,
                    temperature=0.7,
                    use_cache=True,  # Cache system prompt with article context
                )
            )

            self.db.append_conversation_entry(user_id, article_id, "user", text)
            return self.db.append_conversation_entry(
                user_id,
                article_id,
                "assistant",
                response.text,
                model_used=response.model,
            )

    async def summarize(
        self,
        user_id: str,
        article_id: int,
        mode: str = "medium",
    ) -> DBChatMessage:
        """
        Summarize an article and append the result as a summary entry.

        Args:
            mode: short, medium or long; selects prompt, model tier and length
        """
        user_id = validate_user_id(user_id)
        validate_article_id(article_id)
        summary_mode = SUMMARY_MODES.get(mode)
        if summary_mode is None:
            raise InvalidInput(f"Unknown summary mode: {mode}; expected one of {list(SUMMARY_MODES)}")
        provider = self._require_provider()

        async with self._pair_locks.hold((user_id, article_id)):
            article = require_article(self.db.get_article(article_id))

            response = await self._call(
                provider.complete_async(
                    user_prompt=f"{summary_mode.instruction}\n\n{_build_article_context(article)}",
                    system_prompt=SUMMARY_SYSTEM_PROMPT,
                    model=provider.get_model_for_tier(summary_mode.tier),
                    max_tokens=summary_mode.max_tokens,
                )
            )

            return self.db.append_conversation_entry(
                user_id,
                article_id,
                "assistant",
                response.text,
                kind="summary",
                model_used=response.model,
                metadata={"mode": mode},
            )

    async def compare_articles(self, user_id: str, article_ids: list[int]) -> ComparisonResult:
        """
        Compare two or more articles. The result is not stored.
        """
        validate_user_id(user_id)
        unique_ids = list(dict.fromkeys(article_ids))
        if len(unique_ids) < 2:
            raise InvalidInput("At least 2 distinct article IDs are required")
        if len(unique_ids) > MAX_COMPARE_ARTICLES:
            raise InvalidInput(f"At most {MAX_COMPARE_ARTICLES} articles can be compared")
        for article_id in unique_ids:
            validate_article_id(article_id)
        provider = self._require_provider()

        articles = [require_article(self.db.get_article(a)) for a in unique_ids]
        per_article = MAX_ARTICLE_CHARS // len(articles)
        context = "\n\n===\n\n".join(
            f"[{i}] {_build_article_context(a, per_article)}"
            for i, a in enumerate(articles, start=1)
        )

        response = await self._call(
            provider.complete_async(
                user_prompt=f"Compare these {len(articles)} articles.\n\n{context}",
                system_prompt=COMPARE_SYSTEM_PROMPT,
                model=provider.get_model_for_tier(ModelTier.STANDARD),
                max_tokens=1500,
            )
        )
        return ComparisonResult(article_ids=unique_ids, text=response.text, model=response.model)

    # ─────────────────────────────────────────────────────────────
    # Provider boundary
    # ─────────────────────────────────────────────────────────────

    def _require_provider(self) -> "LLMProvider":
        if not self.provider:
            raise AIBoundaryUnavailable("Chat unavailable: LLM provider not configured")
        return self.provider

    async def _call(self, request) -> LLMResponse:
        """Await a provider call with the configured timeout and validate the output."""
        try:
            response = await asyncio.wait_for(request, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise AIBoundaryTimeout(f"LLM provider did not answer within {self.timeout}s") from e
        except AIBoundaryError:
            raise
        except Exception as e:
            logger.warning(f"LLM provider call failed: {e}")
            raise AIBoundaryRejected(f"Failed to generate response: {e}") from e

        if not isinstance(response, LLMResponse) or not response.text or not response.text.strip():
            raise AIBoundaryRejected("LLM provider returned an empty response")
        return response
