"""
Runtime environment guards and dependency checks.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List

from ..config import FFMPEG_PATH, FFPROBE_PATH


REQUIRED_MEDIA_TOOLS = (FFMPEG_PATH, FFPROBE_PATH)


def parse_bool_env(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def missing_runtime_tools(tools: Iterable[str]) -> List[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def assert_directory_writable(path: Path, *, create: bool = True) -> None:
    if create:
        path.mkdir(parents=True, exist_ok=True)
    if not path.exists() or not path.is_dir():
        raise RuntimeError(f"Required directory is missing: {path}")

    probe = path / f".write_probe_{os.getpid()}.tmp"
    try:
        with open(probe, "w", encoding="utf-8") as f:
            f.write("ok")
        probe.unlink(missing_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Directory is not writable: {path}") from exc


def run_startup_runtime_checks(
    *,
    directories: Dict[str, Path],
    strict_tools: bool,
    strict_dirs: bool = True,
) -> Dict[str, object]:
    """Check storage directories and the encoder binaries.

    Raises:
        RuntimeError: When a strict check fails
    """
    report: Dict[str, object] = {
        "directories": {},
        "tools": {},
        "ok": True,
    }

    for dir_name, dir_path in directories.items():
        try:
            assert_directory_writable(dir_path)
            report["directories"][dir_name] = {"path": str(dir_path), "writable": True}
        except RuntimeError as exc:
            report["directories"][dir_name] = {
                "path": str(dir_path),
                "writable": False,
                "error": str(exc),
            }
            report["ok"] = False
            if strict_dirs:
                raise

    missing = missing_runtime_tools(REQUIRED_MEDIA_TOOLS)
    report["tools"] = {
        "required": list(REQUIRED_MEDIA_TOOLS),
        "missing": missing,
    }
    if missing:
        report["ok"] = False
        if strict_tools:
            raise RuntimeError("Missing required runtime tools: " + ", ".join(missing))

    return report
