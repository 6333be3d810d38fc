"""
Configuration and application state management.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

if TYPE_CHECKING:
    from .database import Database
    from .feeds import FeedParser
    from .classifier import Classifier
    from .notifier import LiveNotifier
    from .providers import LLMProvider
    from .scheduler import IngestionScheduler
    from .sources import SourceRegistry
    from .services.article_service import ArticleService
    from .services.chat_service import ChatService
    from .services.ingestion_service import IngestionService
    from .trending import TrendingAggregator

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


class Config:
    """Application configuration from environment."""
    # LLM Provider configuration
    # Set one of these API keys based on your preferred provider
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")

    # Preferred provider: "anthropic", "openai", or "google"
    # If not set, uses the first available key in order: Anthropic > OpenAI > Google
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "")

    # Optional: override the default model for the selected provider
    LLM_MODEL: str = os.getenv("LLM_MODEL", "")

    DB_PATH: Path = Path(os.getenv("DB_PATH", "./data/techpulse.db"))
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API access
    AUTH_API_KEY: str = os.getenv("AUTH_API_KEY", "")
    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))

    # Timeouts for external calls (seconds)
    FEED_TIMEOUT_SECONDS: float = float(os.getenv("FEED_TIMEOUT_SECONDS", "20"))
    AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))

    # Scheduling
    ENABLE_SCHEDULER: bool = _parse_bool(os.getenv("ENABLE_SCHEDULER"), default=True)
    DEFAULT_FETCH_INTERVAL_MINUTES: int = int(os.getenv("DEFAULT_FETCH_INTERVAL_MINUTES", "30"))
    TRENDING_INTERVAL_MINUTES: int = int(os.getenv("TRENDING_INTERVAL_MINUTES", "15"))
    HEARTBEAT_SECONDS: int = int(os.getenv("HEARTBEAT_SECONDS", "30"))

    # Trending policy
    TRENDING_MIN_MENTIONS: int = int(os.getenv("TRENDING_MIN_MENTIONS", "2"))
    TRENDING_MAX_TOPICS: int = int(os.getenv("TRENDING_MAX_TOPICS", "25"))

    # Optional OPML file used to seed the source registry
    SOURCES_OPML: str = os.getenv("SOURCES_OPML", "")

    @classmethod
    def has_llm_key(cls) -> bool:
        """Check if any LLM API key is configured."""
        return bool(cls.ANTHROPIC_API_KEY or cls.OPENAI_API_KEY or cls.GOOGLE_API_KEY)


config = Config()


class AppState:
    """Shared application state."""
    db: "Database | None" = None
    provider: "LLMProvider | None" = None  # LLM provider instance
    classifier: "Classifier | None" = None
    feed_parser: "FeedParser | None" = None
    registry: "SourceRegistry | None" = None
    notifier: "LiveNotifier | None" = None
    article_service: "ArticleService | None" = None
    chat_service: "ChatService | None" = None
    ingestion: "IngestionService | None" = None
    aggregator: "TrendingAggregator | None" = None
    scheduler: "IngestionScheduler | None" = None


state = AppState()


def get_db() -> "Database":
    """Dependency to get database instance."""
    if not state.db:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return state.db


def get_article_service() -> "ArticleService":
    """Dependency to get the article service."""
    if not state.article_service:
        raise HTTPException(status_code=500, detail="Article service not initialized")
    return state.article_service


def get_chat_service() -> "ChatService":
    """Dependency to get the chat service."""
    if not state.chat_service:
        raise HTTPException(status_code=500, detail="Chat service not initialized")
    return state.chat_service


def get_scheduler() -> "IngestionScheduler":
    """Dependency to get the ingestion scheduler."""
    if not state.scheduler:
        raise HTTPException(status_code=500, detail="Scheduler not initialized")
    return state.scheduler


def get_registry() -> "SourceRegistry":
    """Dependency to get the source registry."""
    if not state.registry:
        raise HTTPException(status_code=500, detail="Source registry not initialized")
    return state.registry
