"""Interface definitions for BOOTUP collaborators."""

from bootup.interfaces.git_service import GitService
from bootup.interfaces.gitops_provider import GitOpsProvider, MergeRequestInfo

__all__ = [
    "GitService",
    "GitOpsProvider",
    "MergeRequestInfo",
]
