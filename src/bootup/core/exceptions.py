"""Custom exceptions for BOOTUP."""

from enum import Enum


class BootUpError(Exception):
    """Base exception for all BOOTUP errors."""


class ConfigurationError(BootUpError):
    """Configuration-related errors."""


class ResolutionError(BootUpError):
    """A symbolic reference could not be resolved to a commit or version."""


class PersistenceError(BootUpError):
    """Requirements file missing, unreadable or unwritable."""


class ProviderError(BootUpError):
    """Code-hosting provider operation failed."""


class GitError(BootUpError):
    """A git command failed.

    Attributes:
        command: The git arguments that were run
        returncode: Process exit code
        stderr: Captured standard error
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class ConflictKind(str, Enum):
    """Classification of a failed cherry-pick."""

    MERGE_COMMIT_NO_PARENT_SELECTED = "merge-commit-no-parent-selected"
    OTHER = "other"


class ReplayConflict(GitError):
    """Cherry-pick of a single commit failed.

    Attributes:
        sha: Commit that could not be applied
        kind: Structured classification of the failure
    """

    def __init__(self, message: str, sha: str, kind: ConflictKind, stderr: str = ""):
        super().__init__(message, stderr=stderr)
        self.sha = sha
        self.kind = kind

    @property
    def is_merge_commit(self) -> bool:
        """True when the commit was skipped because it is a merge."""
        return self.kind == ConflictKind.MERGE_COMMIT_NO_PARENT_SELECTED


class ReplayFailure(BootUpError):
    """Replay aborted; the working branch is left in place for inspection."""


class KubernetesError(BootUpError):
    """Kubernetes operation failed."""


class SecretsError(BootUpError):
    """Secret retrieval failed."""
