"""
Pipeline - stage operations and the project status state machine
"""

from .orchestrator import AccessPolicy, AllowAllPolicy, ReelPipeline

__all__ = [
    "AccessPolicy",
    "AllowAllPolicy",
    "ReelPipeline",
]
