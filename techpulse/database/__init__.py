"""
Database module - SQLite operations for sources, articles, bookmarks,
trending topics and conversations.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import (
    DBArticle,
    DBBookmark,
    DBChatMessage,
    DBSource,
    DBTrendingTopic,
    UpsertStatus,
)
from .article_repository import ArticleRepository
from .bookmark_repository import BookmarkRepository
from .chat_repository import ChatRepository
from .source_repository import SourceRepository
from .trending_repository import TrendingRepository, TrendingTopicRecord
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "DBArticle",
    "DBBookmark",
    "DBChatMessage",
    "DBSource",
    "DBTrendingTopic",
    "UpsertStatus",
    "ArticleRepository",
    "BookmarkRepository",
    "ChatRepository",
    "SourceRepository",
    "TrendingRepository",
    "TrendingTopicRecord",
]
