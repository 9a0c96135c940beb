"""
Warm Intro Graph API Routes Package.

This package contains all FastAPI route handlers organized by domain.
Use this module to import routers for registration with the FastAPI app.

Example:
    from api.routes import graph_router, admin_router

    app.include_router(graph_router)
    app.include_router(admin_router)
"""

from api.routes.graph import router as graph_router
from api.routes.admin import router as admin_router


__all__ = [
    "graph_router",
    "admin_router",
]
