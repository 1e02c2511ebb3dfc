"""
Routes module - contains all API route handlers
"""

from .projects import router as projects_router
from .pipeline import router as pipeline_router
from .timeline import router as timeline_router

__all__ = [
    "projects_router",
    "pipeline_router",
    "timeline_router",
]
