"""
TechPulse API Server

FastAPI application providing endpoints for:
- Articles (list, detail, search) and bookmarks
- Per-article AI chat, summaries and comparisons
- Trending topics
- Source registry and manual refresh
- Live updates over WebSocket
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from .classifier import Classifier
from .config import config, state
from .database import Database
from .exceptions import register_exception_handlers
from .feeds import FeedParser
from .notifier import LiveNotifier
from .providers import LLMProvider, get_provider_from_env
from .rate_limit import setup_rate_limiting
from .routes import (
    articles_router,
    bookmarks_router,
    chat_router,
    live_router,
    misc_router,
    misc_public_router,
    sources_router,
    trending_router,
)
from .scheduler import IngestionScheduler
from .services import ArticleService, ChatService, IngestionService
from .sources import SourceRegistry
from .trending import TrendingAggregator

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def init_state(db_path: Path, provider: LLMProvider | None = None) -> None:
    """Build the application's long-lived objects into `state`."""
    state.db = Database(db_path)
    state.provider = provider
    state.classifier = Classifier()
    state.feed_parser = FeedParser(timeout=config.FEED_TIMEOUT_SECONDS)
    state.registry = SourceRegistry(
        state.db,
        default_interval_minutes=config.DEFAULT_FETCH_INTERVAL_MINUTES,
    )
    state.notifier = LiveNotifier()
    state.article_service = ArticleService(state.db)
    state.chat_service = ChatService(
        state.db,
        provider=provider,
        timeout=config.AI_TIMEOUT_SECONDS,
    )
    state.ingestion = IngestionService(
        state.db,
        feed_parser=state.feed_parser,
        classifier=state.classifier,
        article_service=state.article_service,
        notifier=state.notifier,
    )
    state.aggregator = TrendingAggregator(
        state.db,
        min_mentions=config.TRENDING_MIN_MENTIONS,
        max_topics=config.TRENDING_MAX_TOPICS,
    )
    state.scheduler = IngestionScheduler(
        state.db,
        ingestion=state.ingestion,
        aggregator=state.aggregator,
        notifier=state.notifier,
        trending_interval_minutes=config.TRENDING_INTERVAL_MINUTES,
        heartbeat_seconds=config.HEARTBEAT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if already initialized (e.g., by tests)
    if state.db is None:
        config.DB_PATH.parent.mkdir(parents=True, exist_ok=True)

        # Initialize LLM provider (supports Anthropic, OpenAI, Google)
        provider = get_provider_from_env(
            anthropic_key=config.ANTHROPIC_API_KEY or None,
            openai_key=config.OPENAI_API_KEY or None,
            google_key=config.GOOGLE_API_KEY or None,
            preferred_provider=config.LLM_PROVIDER or None,
            default_model=config.LLM_MODEL or None,
            timeout=config.AI_TIMEOUT_SECONDS,
        )
        if provider:
            logger.info(f"LLM provider initialized: {provider.name}")
        else:
            logger.warning(
                "No LLM API key configured. Set ANTHROPIC_API_KEY, OPENAI_API_KEY, "
                "or GOOGLE_API_KEY. Chat and summaries disabled."
            )

        init_state(config.DB_PATH, provider)
        state.registry.seed(config.SOURCES_OPML or None)

        if config.ENABLE_SCHEDULER:
            await state.scheduler.start()
        else:
            logger.info("Scheduler disabled (ENABLE_SCHEDULER=false); use POST /refresh")

    yield

    # Shutdown
    if state.scheduler and state.scheduler.is_running:
        await state.scheduler.stop()


app = FastAPI(
    title="TechPulse API",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)
setup_rate_limiting(app)

# Include routers
app.include_router(misc_public_router)
app.include_router(misc_router)
app.include_router(articles_router)
app.include_router(bookmarks_router)
app.include_router(chat_router)
app.include_router(trending_router)
app.include_router(sources_router)
app.include_router(live_router)


def main():
    """Run the API server with uvicorn."""
    uvicorn.run("techpulse.server:app", host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    main()
