"""
Project repository - Abstract data access for projects.

Implements the Repository pattern so stage operations never touch storage
directly. The file-based implementation keeps one JSON document per project
with a bounded in-memory cache, and guards every write with an optimistic
version check: a save based on a stale read raises ProjectConflictError
instead of silently overwriting a newer document.

Classes:
    ProjectRepository: Abstract interface for project data access
    FileBasedProjectRepository: JSON-file implementation
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Set

from ...config import PROJECT_DATA_DIR
from ...core import ProjectConflictError, get_logger, validate_project_id
from ...models import Project, ProjectStatus

logger = get_logger(__name__, component="project_repository")


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


class ProjectRepository(ABC):
    """
    Abstract repository for project data access.

    Implementations hand out independent copies: mutating a returned Project
    has no effect until it is passed to save().
    """

    @abstractmethod
    def create(self, project: Project) -> Project:
        """
        Persist a new project.

        Raises:
            ProjectConflictError: If a project with the same ID exists
        """
        pass

    @abstractmethod
    def get(self, project_id: str) -> Optional[Project]:
        """Retrieve a project by ID, or None."""
        pass

    @abstractmethod
    def save(self, project: Project) -> Project:
        """
        Write back a project loaded from this repository.

        Raises:
            ProjectConflictError: If the stored version changed since the project was loaded
        """
        pass

    @abstractmethod
    def delete(self, project_id: str) -> bool:
        """Delete a project. Returns False if it did not exist."""
        pass

    @abstractmethod
    def list(self, workspace_id: Optional[str] = None) -> List[Project]:
        """List projects, newest first, optionally limited to one workspace."""
        pass


class FileBasedProjectRepository(ProjectRepository):
    """Projects as JSON files with disk-first persistence and bounded RAM cache."""

    def __init__(self, storage_dir: Optional[Path] = None, cache_limit: Optional[int] = None):
        self._storage_dir = Path(storage_dir) if storage_dir else PROJECT_DATA_DIR
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._cache_limit = cache_limit if cache_limit is not None else _env_int("PROJECT_CACHE_LIMIT", 200, 25)

        self._projects: Dict[str, Project] = {}
        self._known_ids: Set[str] = set()
        self._lock = RLock()

        self._index_projects()

    def _index_projects(self) -> None:
        """Build an index of known projects from disk without loading full payloads."""
        with self._lock:
            self._known_ids = {path.stem for path in self._storage_dir.glob("*.json")}

    def _project_file(self, project_id: str) -> Path:
        return self._storage_dir / f"{project_id}.json"

    def _load_from_disk(self, project_id: str) -> Optional[Project]:
        path = self._project_file(project_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Project.from_document(json.load(f))
        except (OSError, ValueError) as e:
            logger.error("Error loading project", extra={"path": str(path), "error": str(e)})
            return None

    def _stored_version(self, project_id: str) -> Optional[int]:
        cached = self._projects.get(project_id)
        if cached is not None:
            return cached.version
        stored = self._load_from_disk(project_id)
        return stored.version if stored else None

    def _write(self, project: Project) -> None:
        path = self._project_file(project.id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(project.to_document(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
        self._known_ids.add(project.id)

    @staticmethod
    def _sort_key_updated(project: Project) -> float:
        try:
            return datetime.fromisoformat(project.updated_at.replace("Z", "+00:00")).timestamp()
        except ValueError:
            return 0.0

    def _prune_cache(self) -> None:
        if len(self._projects) <= self._cache_limit:
            return

        evictable_ids = [
            project_id
            for project_id, project in self._projects.items()
            if not project.status.is_in_progress()
        ]
        evictable_ids.sort(key=lambda p: self._sort_key_updated(self._projects[p]))

        while len(self._projects) > self._cache_limit and evictable_ids:
            self._projects.pop(evictable_ids.pop(0), None)

    def _cache(self, project: Project) -> None:
        self._projects[project.id] = project.model_copy(deep=True)
        self._prune_cache()

    def create(self, project: Project) -> Project:
        if not validate_project_id(project.id):
            raise ValueError(f"Invalid project ID: {project.id}")
        with self._lock:
            if project.id in self._known_ids:
                raise ProjectConflictError("Project already exists")
            project.version = 1
            self._write(project)
            self._cache(project)
            logger.info("Project created", extra={"project": project.id, "workspace_id": project.workspace_id})
            return project.model_copy(deep=True)

    def get(self, project_id: str) -> Optional[Project]:
        if not validate_project_id(project_id):
            return None
        with self._lock:
            cached = self._projects.get(project_id)
            if cached is not None:
                return cached.model_copy(deep=True)

            if project_id not in self._known_ids:
                return None

            project = self._load_from_disk(project_id)
            if project is None:
                self._known_ids.discard(project_id)
                return None

            self._cache(project)
            return project.model_copy(deep=True)

    def save(self, project: Project) -> Project:
        with self._lock:
            stored_version = self._stored_version(project.id)
            if stored_version is None:
                raise ProjectConflictError("Project no longer exists")
            if stored_version != project.version:
                logger.warning("Stale project write rejected", extra={
                    "project": project.id,
                    "stored_version": stored_version,
                    "attempted_version": project.version,
                })
                raise ProjectConflictError("Project was modified by another request; reload and retry")

            project.version = stored_version + 1
            project.touch()
            self._write(project)
            self._cache(project)
            return project.model_copy(deep=True)

    def delete(self, project_id: str) -> bool:
        if not validate_project_id(project_id):
            return False
        with self._lock:
            self._projects.pop(project_id, None)
            existed = project_id in self._known_ids
            self._known_ids.discard(project_id)
            path = self._project_file(project_id)
            if path.exists():
                path.unlink()
                existed = True
            return existed

    def list(self, workspace_id: Optional[str] = None) -> List[Project]:
        with self._lock:
            projects = []
            for project_id in list(self._known_ids):
                project = self.get(project_id)
                if project is None:
                    continue
                if workspace_id is not None and project.workspace_id != workspace_id:
                    continue
                projects.append(project)
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    def mark_interrupted_projects_failed(self) -> List[str]:
        """Fail projects left mid-stage by a server restart. Returns their IDs."""
        interrupted = []
        with self._lock:
            for project in self.list():
                if not project.status.is_in_progress():
                    continue
                project.status = ProjectStatus.FAILED
                project.error = "Interrupted by server restart"
                self.save(project)
                interrupted.append(project.id)
        if interrupted:
            logger.warning("Marked interrupted projects as failed", extra={"count": len(interrupted)})
        return interrupted


# Singleton instance - ensures all routes share the same repository
_repository_instance: Optional[FileBasedProjectRepository] = None


def get_project_repository() -> FileBasedProjectRepository:
    """Get the shared project repository (singleton pattern)."""
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = FileBasedProjectRepository()
    return _repository_instance
