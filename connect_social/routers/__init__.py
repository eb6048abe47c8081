"""Aggregate router exports."""
from .conversations import router as conversations_router
from .follows import router as follows_router
from .groups import router as groups_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .read_status import router as read_status_router
from .realtime import router as realtime_router

__all__ = [
    "conversations_router",
    "follows_router",
    "groups_router",
    "posts_router",
    "profiles_router",
    "read_status_router",
    "realtime_router",
]
