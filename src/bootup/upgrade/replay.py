"""Replay an upgrade delta onto a working branch."""

from pathlib import Path

from bootup.core.exceptions import ReplayConflict, ReplayFailure
from bootup.core.models import ReplayAction, ReplayReport, ReplayStep, UpgradeDelta
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger

logger = get_logger(__name__)

CONFLICT_STRATEGY = "theirs"


class ReplayEngine:
    """Cherry-picks delta commits, oldest first, onto the checked-out branch.

    Merge commits cannot be cherry-picked without choosing a parent; those
    are skipped and replay carries on. Any other failure stops the replay and
    leaves the branch as it is.
    """

    def __init__(self, git: GitService):
        self.git = git

    def replay(self, target_repo_dir: Path, working_branch: str, delta: UpgradeDelta) -> ReplayReport:
        """Apply every commit in ``delta`` in order.

        Args:
            target_repo_dir: Clone with ``working_branch`` checked out
            working_branch: Branch receiving the commits
            delta: Commits to apply, oldest first

        Returns:
            ReplayReport with one step per commit

        Raises:
            ReplayFailure: On the first failure that is not a merge commit
        """
        report = ReplayReport(branch=working_branch)
        if delta.is_empty:
            return report

        logger.info(
            "cherry_picking_commits",
            range=f"{delta.from_revision.commit_id}..{delta.to_revision.commit_id}",
            count=len(delta.commits),
            branch=working_branch,
        )

        for commit in delta.commits:
            try:
                self.git.cherry_pick(target_repo_dir, commit.sha, strategy_option=CONFLICT_STRATEGY)
            except ReplayConflict as e:
                if not e.is_merge_commit:
                    logger.error(
                        "cherry_pick_failed",
                        sha=commit.sha,
                        subject=commit.subject,
                        applied=len(report.applied),
                    )
                    raise ReplayFailure(
                        f"Cherry-picking {commit.sha} onto {working_branch} in "
                        f"{target_repo_dir} failed: {e}"
                    ) from e

                logger.info("cherry_pick_skipped_merge", sha=commit.sha, subject=commit.subject)
                report.steps.append(
                    ReplayStep(
                        sha=commit.sha,
                        subject=commit.subject,
                        action=ReplayAction.SKIPPED,
                        reason=e.kind.value,
                    )
                )
                continue

            logger.info("cherry_pick_applied", sha=commit.sha, subject=commit.subject)
            report.steps.append(
                ReplayStep(sha=commit.sha, subject=commit.subject, action=ReplayAction.APPLIED)
            )

        return report
