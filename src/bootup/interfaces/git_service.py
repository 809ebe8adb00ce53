"""Git service interface for local repository operations."""

from abc import ABC, abstractmethod
from pathlib import Path

from bootup.core.models import CommitRecord, GitIdentity, RepositoryInfo


class GitService(ABC):
    """Abstract interface for the git operations an upgrade needs.

    Design Philosophy:
    - Plumbing only: no knowledge of version streams or upgrades
    - Failures raise GitError with the command and stderr attached
    - Cherry-pick failures are classified (ReplayConflict.kind), callers
      never inspect error text
    """

    @abstractmethod
    def with_identity(self, identity: GitIdentity) -> "GitService":
        """Return a service whose commits are authored as ``identity``."""

    @abstractmethod
    def clone(self, url: str, directory: Path) -> None:
        """Clone ``url`` into ``directory``.

        Raises:
            GitError: If the clone fails
        """

    @abstractmethod
    def clone_bare(self, directory: Path, url: str) -> None:
        """Bare-clone ``url`` into ``directory`` (tags included).

        Raises:
            GitError: If the clone fails
        """

    @abstractmethod
    def create_branch(self, directory: Path, branch: str) -> None:
        """Create ``branch`` at the current HEAD."""

    @abstractmethod
    def checkout(self, directory: Path, ref: str) -> None:
        """Check out a branch, tag or commit."""

    @abstractmethod
    def delete_local_branch(self, directory: Path, branch: str) -> None:
        """Delete a local branch (must not be checked out)."""

    @abstractmethod
    def fetch_branch(self, directory: Path, url: str, ref: str) -> None:
        """Fetch ``ref`` from ``url`` so its history is reachable locally."""

    @abstractmethod
    def get_commit_for_tag(self, directory: Path, tag: str) -> str:
        """Get the commit a tag points to (annotated tags are peeled).

        Raises:
            GitError: If the tag does not exist
        """

    @abstractmethod
    def rev_parse(self, directory: Path, ref: str) -> str:
        """Resolve any ref or abbreviated sha to a full commit sha.

        Raises:
            GitError: If the ref cannot be resolved
        """

    @abstractmethod
    def describe_exact_tag(self, directory: Path, sha: str) -> str | None:
        """Get a tag pointing exactly at ``sha``, or None."""

    @abstractmethod
    def get_commits_between(self, directory: Path, from_sha: str, to_sha: str) -> list[CommitRecord]:
        """List commits reachable from ``to_sha`` but not ``from_sha``, newest first."""

    @abstractmethod
    def cherry_pick(self, directory: Path, sha: str, strategy_option: str = "theirs") -> None:
        """Cherry-pick ``sha`` onto HEAD.

        Raises:
            ReplayConflict: If the commit cannot be applied; ``kind`` says why
        """

    @abstractmethod
    def checkout_paths_from_commit(self, directory: Path, sha: str, paths: list[str]) -> None:
        """Reset ``paths`` in the working tree and index to their state at ``sha``.

        A path missing at ``sha`` is removed.
        """

    @abstractmethod
    def commit_files(self, directory: Path, message: str, paths: list[str]) -> bool:
        """Stage ``paths`` and commit them.

        Returns:
            True if a commit was made, False if there was nothing to commit
        """

    @abstractmethod
    def head_sha(self, directory: Path) -> str:
        """Get the sha HEAD points to."""

    @abstractmethod
    def repository_info(self, directory: Path) -> RepositoryInfo:
        """Get organisation and name of the ``origin`` remote."""

    @abstractmethod
    def push(self, directory: Path, remote_branch: str, force: bool = False) -> None:
        """Push HEAD to ``remote_branch`` on ``origin``."""
