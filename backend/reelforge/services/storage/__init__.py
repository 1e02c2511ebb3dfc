"""
Storage - Project persistence
"""

from .project_repository import (
    FileBasedProjectRepository,
    ProjectRepository,
    get_project_repository,
)

__all__ = [
    "FileBasedProjectRepository",
    "ProjectRepository",
    "get_project_repository",
]
