"""
Security utilities for file handling

Every project artifact (voiceover, images, clips, output) lives under a
per-workspace, per-project directory. These helpers keep user-supplied names
and identifiers from escaping those directories.
"""

import os
import re
from pathlib import Path
from typing import Optional

from .logging import get_logger

logger = get_logger(__name__, component="security")

_UUID_PATTERN = re.compile(r'^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$', re.IGNORECASE)
_SEGMENT_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,128}$')


def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename

    Strips directory components, null bytes, leading dots, control characters
    and characters that are unsafe on common file systems.

    Raises:
        ValueError: If nothing usable is left after sanitization

    Example:
        >>> sanitize_filename("../../etc/voice.mp3")
        "voice.mp3"
    """
    original_filename = filename

    filename = os.path.basename(filename.replace('\\', '/'))
    filename = filename.replace('\x00', '')
    filename = filename.lstrip('.')
    filename = ''.join(char for char in filename if 31 < ord(char) != 127)
    for char in '<>:"|?*':
        filename = filename.replace(char, '')
    filename = filename.encode('ascii', 'ignore').decode('ascii')
    filename = filename[:255].strip()

    if not filename or filename.replace('.', '') == '':
        logger.warning("Filename sanitization resulted in empty string", extra={
            "original": original_filename
        })
        raise ValueError("Invalid filename after sanitization")

    if filename != original_filename:
        logger.info("Filename sanitized", extra={
            "original": original_filename,
            "sanitized": filename
        })

    return filename


def validate_project_id(project_id: str) -> bool:
    """Project IDs are UUIDs; anything else is rejected before touching disk."""
    is_valid = bool(_UUID_PATTERN.match(project_id or ""))
    if not is_valid:
        logger.warning("Invalid project ID format", extra={"project_id_value": project_id})
    return is_valid


def validate_path_segment(segment: str) -> bool:
    """Workspace IDs and other directory names: letters, digits, dash, underscore."""
    return bool(_SEGMENT_PATTERN.match(segment or ""))


def validate_path_within_directory(path: Path, allowed_directory: Path, resolve: bool = True) -> bool:
    """
    Validate that a path is within an allowed directory

    Always use resolve=True (default) for user-provided paths so symlinks and
    relative components cannot escape the directory.
    """
    if resolve:
        try:
            path = path.resolve()
            allowed_directory = allowed_directory.resolve()
        except (OSError, RuntimeError) as e:
            logger.warning("Path resolution failed", extra={
                "path": str(path),
                "error": str(e)
            })
            return False

    try:
        path.relative_to(allowed_directory)
        return True
    except ValueError:
        logger.warning("Path traversal attempt detected", extra={
            "path": str(path),
            "allowed_directory": str(allowed_directory)
        })
        return False


def secure_file_path(base_dir: Path, *path_parts: str, create_dirs: bool = False) -> Optional[Path]:
    """
    Safely construct a path within base_dir

    Returns:
        Validated Path, or None if any part attempts traversal

    Example:
        >>> secure_file_path(Path("/uploads"), "ws1", "proj", "voice.mp3")
        Path("/uploads/ws1/proj/voice.mp3")
        >>> secure_file_path(Path("/uploads"), "../etc", "passwd")
        None
    """
    sanitized_parts = []
    for part in path_parts:
        if '..' in part or '/' in part or '\\' in part or '\x00' in part:
            logger.warning("Path traversal attempt blocked", extra={
                "base_dir": str(base_dir),
                "suspicious_part": part
            })
            return None
        if part and part.replace('.', '') != '':
            sanitized_parts.append(part)

    if not sanitized_parts:
        return None

    path = base_dir.joinpath(*sanitized_parts)
    if not validate_path_within_directory(path, base_dir):
        return None

    if create_dirs:
        path.parent.mkdir(parents=True, exist_ok=True)

    return path
