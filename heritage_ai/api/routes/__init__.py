"""
Route modules for the Heritage AI API.

Each module defines a FastAPI APIRouter for a specific domain.
All routers are collected in ``all_routers`` for easy inclusion.
"""

from heritage_ai.api.routes.system import router as system_router
from heritage_ai.api.routes.ai import router as ai_router
from heritage_ai.api.routes.conversations import router as conversations_router

all_routers = [
    system_router,
    ai_router,
    conversations_router,
]

__all__ = ["all_routers"]
