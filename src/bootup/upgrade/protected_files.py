"""Restore protected files after replay."""

from pathlib import Path

from bootup.core.exceptions import GitError, ReplayFailure
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger

logger = get_logger(__name__)

RESTORE_COMMIT_MESSAGE = "chore: exclude files from upgrade"


class ProtectedFileGuard:
    """Puts protected paths back to their pre-upgrade content."""

    def __init__(self, git: GitService):
        self.git = git

    def restore(self, target_repo_dir: Path, pre_upgrade_commit: str, protected_paths: list[str]) -> bool:
        """Reset protected paths and commit the restoration.

        Args:
            target_repo_dir: Clone holding the replayed branch
            pre_upgrade_commit: Commit whose content the paths must keep
            protected_paths: Repository-relative paths

        Returns:
            True if a restoration commit was made, False if replay left the
            paths untouched

        Raises:
            ReplayFailure: If checkout or commit fails
        """
        if not protected_paths:
            return False

        try:
            self.git.checkout_paths_from_commit(target_repo_dir, pre_upgrade_commit, protected_paths)
        except GitError as e:
            raise ReplayFailure(
                f"Failed to check out {protected_paths} from {pre_upgrade_commit}: {e}"
            ) from e

        try:
            committed = self.git.commit_files(target_repo_dir, RESTORE_COMMIT_MESSAGE, protected_paths)
        except GitError as e:
            raise ReplayFailure(f"Failed to commit excluded files {protected_paths}: {e}") from e

        logger.info(
            "protected_files_restored" if committed else "protected_files_unchanged",
            paths=protected_paths,
            commit=pre_upgrade_commit,
        )
        return committed
