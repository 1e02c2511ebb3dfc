"""
Shared route dependencies

The pipeline is a process-wide singleton; tests replace it through
app.dependency_overrides. The acting user comes from the X-User-Id header set
by the tenant/auth layer in front of this service.
"""

from typing import Optional

from fastapi import Header

from ..services.pipeline import ReelPipeline
from ..services.providers import CredentialStore, EnvCredentialStore

_pipeline_instance: Optional[ReelPipeline] = None


def get_pipeline() -> ReelPipeline:
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = ReelPipeline()
    return _pipeline_instance


def get_actor(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def get_credentials() -> CredentialStore:
    """Server-level credentials; per-user keys are resolved by the key store upstream."""
    return EnvCredentialStore()
