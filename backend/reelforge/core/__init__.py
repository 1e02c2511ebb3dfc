"""
Core Module - Cross-cutting concerns and shared infrastructure

Organization:
    - logging.py: Structured logging configuration and utilities
    - exceptions.py: Error hierarchy shared by stages, providers and routes
    - security.py: Filename sanitization and path containment
    - files.py: Per-project storage layout
    - media.py: Media duration probing
    - runtime.py: Startup checks for directories and encoder binaries

Usage:
    from reelforge.core import get_logger, PreconditionError, project_upload_dir
"""

# Logging
from .logging import (
    setup_logging,
    get_logger,
    set_request_id,
    set_project_id,
    clear_context,
    project_context,
    LogTimer,
)

# Exceptions
from .exceptions import (
    ReelForgeError,
    PipelineError,
    InfrastructureError,
    PreconditionError,
    PermissionDeniedError,
    NotFoundError,
    ProjectNotFoundError,
    SceneNotFoundError,
    ProjectConflictError,
    ProviderError,
    GenerationFormatError,
    NoProviderAvailableError,
    ProviderTimeoutError,
    AssemblyError,
    MissingAssetError,
    EncoderError,
    EncoderNotInstalledError,
)

# Security
from .security import (
    sanitize_filename,
    validate_project_id,
    validate_path_segment,
    validate_path_within_directory,
    secure_file_path,
)

# File operations
from .files import (
    FINAL_VIDEO_NAME,
    project_upload_dir,
    project_output_dir,
    ensure_directory,
    get_file_extension,
    remove_project_files,
)

# Media utilities
from .media import get_media_duration

# Runtime guards
from .runtime import (
    REQUIRED_MEDIA_TOOLS,
    parse_bool_env,
    missing_runtime_tools,
    assert_directory_writable,
    run_startup_runtime_checks,
)
