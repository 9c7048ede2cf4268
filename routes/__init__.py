"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.auto_pick import router as auto_pick_router
from routes.auto_pick_admin import router as auto_pick_admin_router

__all__ = [
    "auto_pick_router",
    "auto_pick_admin_router",
]
