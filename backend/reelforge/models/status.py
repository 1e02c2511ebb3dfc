"""
Project status constants and enumerations.

A project walks the happy path
    draft -> researching -> script-ready -> voiceover-uploaded -> images-ready
          -> (videos-ready) -> processing -> completed
with `failed` reachable from the in-progress stages and an optional review
branch (pending-approval -> approved | rejected) entered at creation time.
"""

from enum import Enum


class ProjectStatus(str, Enum):
    """Enumeration of all possible project statuses."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending-approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESEARCHING = "researching"
    SCRIPT_READY = "script-ready"
    VOICEOVER_UPLOADED = "voiceover-uploaded"
    IMAGES_READY = "images-ready"
    VIDEOS_READY = "videos-ready"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """No further progress happens without a new user action."""
        return self in (ProjectStatus.COMPLETED, ProjectStatus.FAILED, ProjectStatus.REJECTED)

    def is_in_progress(self) -> bool:
        """A stage is currently running against this project."""
        return self in (ProjectStatus.RESEARCHING, ProjectStatus.PROCESSING)

    def is_review_state(self) -> bool:
        return self in (ProjectStatus.PENDING_APPROVAL, ProjectStatus.APPROVED, ProjectStatus.REJECTED)


# Human-readable stage names for UI/reporting
STATUS_TO_STAGE_MAP = {
    "draft": "idea",
    "pending-approval": "review",
    "approved": "idea",
    "rejected": "review",
    "researching": "research",
    "script-ready": "script",
    "voiceover-uploaded": "voiceover",
    "images-ready": "visuals",
    "videos-ready": "visuals",
    "processing": "rendering",
    "completed": "completed",
    "failed": "failed",
}


def get_stage_from_status(status: str) -> str:
    """Convert a project status to its stage name."""
    return STATUS_TO_STAGE_MAP.get(status, "unknown")


__all__ = [
    "ProjectStatus",
    "STATUS_TO_STAGE_MAP",
    "get_stage_from_status",
]
