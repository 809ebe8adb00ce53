"""Adapter implementations for external services."""

from bootup.adapters.gitlab_adapter import GitLabAdapter

__all__ = [
    "GitLabAdapter",
]
