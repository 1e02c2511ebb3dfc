"""
Core Exceptions
Standardized exception hierarchy for the reel pipeline.

Stage operations distinguish three families that callers handle differently:
precondition failures (nothing was mutated, fix the input and retry),
provider failures (an external backend failed or returned garbage) and
assembly failures (local files or the encoder).
"""

from typing import List, Optional


class ReelForgeError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PipelineError(ReelForgeError):
    """Base exception for processing pipeline errors."""
    pass


class InfrastructureError(ReelForgeError):
    """Base exception for infrastructure errors (providers, storage, encoder)."""
    pass


# --- Precondition and lookup errors ---------------------------------------

class PreconditionError(ReelForgeError):
    """A required artifact or credential is missing; no state was changed."""

    status_code = 400


class PermissionDeniedError(PreconditionError):
    """The caller may not edit this project."""

    status_code = 403


class NotFoundError(ReelForgeError):
    status_code = 404


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str):
        super().__init__("Project not found")
        self.project_id = project_id


class SceneNotFoundError(NotFoundError):
    def __init__(self, scene_id: str):
        super().__init__("Scene not found")
        self.scene_id = scene_id


class ProjectConflictError(InfrastructureError):
    """The stored project changed since it was loaded."""

    status_code = 409


# --- Provider errors ------------------------------------------------------

class ProviderError(InfrastructureError):
    """An external capability provider failed."""

    status_code = 502

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message)
        self.backend = backend


class GenerationFormatError(ProviderError):
    """A text backend returned output that could not be parsed."""
    pass


class NoProviderAvailableError(ProviderError):
    """No backend is configured for a required capability."""
    pass


class ProviderTimeoutError(ProviderError):
    """A provider call or polling loop exceeded its time budget."""

    status_code = 504


# --- Assembly errors ------------------------------------------------------

class AssemblyError(PipelineError):
    """Base exception for final video assembly failures."""
    pass


class MissingAssetError(AssemblyError):
    """A local file expected before assembly does not exist."""

    def __init__(self, label: str, path: str):
        super().__init__(f"{label} not found: {path}")
        self.label = label
        self.path = path


class EncoderError(AssemblyError):
    """The external encoder exited with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr_tail: Optional[List[str]] = None):
        super().__init__(message)
        self.returncode = returncode
        self.stderr_tail = stderr_tail or []


class EncoderNotInstalledError(EncoderError):
    """The encoder binary could not be found or executed."""

    def __init__(self, binary: str):
        super().__init__(
            "FFmpeg is not installed or not available in PATH. "
            "Set FFMPEG_PATH or install ffmpeg."
        )
        self.binary = binary
