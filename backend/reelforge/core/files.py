"""
File utilities - per-project storage layout

Layout:
    uploads/<workspace>/<project>/voiceover/...
    uploads/<workspace>/<project>/images/...
    uploads/<workspace>/<project>/videos/...
    outputs/<workspace>/<project>/output.mp4
"""

import shutil
from pathlib import Path
from typing import List, Optional

from ..config import UPLOAD_DIR, OUTPUT_DIR
from .logging import get_logger
from .security import secure_file_path

logger = get_logger(__name__, component="files")

PROJECT_ASSET_KINDS = ("voiceover", "images", "videos")
FINAL_VIDEO_NAME = "output.mp4"


def _project_dir(base_dir: Path, workspace_id: str, project_id: str, *parts: str) -> Path:
    path = secure_file_path(base_dir, workspace_id, project_id, *parts)
    if path is None:
        raise ValueError(f"Invalid storage path for project {project_id}")
    return path


def project_upload_dir(workspace_id: str, project_id: str, kind: str, base_dir: Optional[Path] = None) -> Path:
    """Directory for one kind of uploaded/acquired project asset, created on demand."""
    if kind not in PROJECT_ASSET_KINDS:
        raise ValueError(f"Unknown asset kind: {kind}")
    path = _project_dir(base_dir or UPLOAD_DIR, workspace_id, project_id, kind)
    return ensure_directory(path)


def project_output_dir(workspace_id: str, project_id: str, base_dir: Optional[Path] = None) -> Path:
    """Directory for the final video and assembly temp files, created on demand."""
    return ensure_directory(_project_dir(base_dir or OUTPUT_DIR, workspace_id, project_id))


def ensure_directory(dir_path: Path) -> Path:
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(file_path: Path) -> str:
    """Lower-case extension including the dot (e.g. '.mp3')"""
    return file_path.suffix.lower()


def remove_project_files(
    workspace_id: str,
    project_id: str,
    upload_dir: Optional[Path] = None,
    output_dir: Optional[Path] = None,
) -> List[str]:
    """Remove a project's upload and output directories.

    Best-effort: failures are logged, never raised.

    Returns:
        Directories that were removed
    """
    removed: List[str] = []
    for base in (upload_dir or UPLOAD_DIR, output_dir or OUTPUT_DIR):
        target = secure_file_path(base, workspace_id, project_id)
        if target is None or not target.exists():
            continue
        try:
            shutil.rmtree(target)
            removed.append(str(target))
        except OSError as e:
            logger.warning("Failed to remove project files", extra={
                "path": str(target),
                "error": str(e),
            })
    return removed
