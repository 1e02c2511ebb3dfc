"""
Paths configuration

Centralized directory paths for the application.
"""

import os
from pathlib import Path

# Base directories
APP_DIR = Path(__file__).parent.parent
BACKEND_DIR = APP_DIR.parent
UPLOAD_DIR = Path(os.getenv("REELFORGE_UPLOAD_DIR", str(BACKEND_DIR / "uploads")))
OUTPUT_DIR = Path(os.getenv("REELFORGE_OUTPUT_DIR", str(BACKEND_DIR / "outputs")))
PROJECT_DATA_DIR = Path(os.getenv("REELFORGE_PROJECT_DATA_DIR", str(BACKEND_DIR / "project_data")))

# Ensure directories exist
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
PROJECT_DATA_DIR.mkdir(parents=True, exist_ok=True)

__all__ = ["APP_DIR", "BACKEND_DIR", "UPLOAD_DIR", "OUTPUT_DIR", "PROJECT_DATA_DIR"]
