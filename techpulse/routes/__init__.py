"""
API route modules.
"""

from .articles import router as articles_router
from .bookmarks import router as bookmarks_router
from .chat import router as chat_router
from .live import router as live_router
from .misc import router as misc_router, public_router as misc_public_router
from .sources import router as sources_router
from .trending import router as trending_router

__all__ = [
    "articles_router",
    "bookmarks_router",
    "chat_router",
    "live_router",
    "misc_router",
    "misc_public_router",
    "sources_router",
    "trending_router",
]
