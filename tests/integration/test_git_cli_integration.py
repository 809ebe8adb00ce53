"""Integration tests for GitCli against real repositories."""

from pathlib import Path

import pytest

from bootup.clients.git_cli import GitCli
from bootup.core.exceptions import ConflictKind, ReplayConflict
from bootup.core.models import ResolvedRevision, UpgradeDelta
from bootup.upgrade.protected_files import ProtectedFileGuard
from bootup.upgrade.replay import ReplayEngine

from .conftest import IDENTITY, commit_file, git


@pytest.fixture
def git_cli() -> GitCli:
    """GitCli committing as the test identity."""
    return GitCli(identity=IDENTITY)


@pytest.fixture
def working_clone(tmp_path: Path, boot_config_repo: dict[str, str], git_cli: GitCli) -> Path:
    """Clone of the boot config with branch ``work`` at v1.0.10."""
    clone = tmp_path / "environment-dev"
    git_cli.clone(boot_config_repo["path"], clone)
    git(clone, "checkout", "-q", "-b", "work", "v1.0.10")
    return clone


@pytest.mark.integration
class TestGitCliIntegration:
    """Integration tests for GitCli with the git binary."""

    def test_bare_clone_tags_and_history(
        self, tmp_path: Path, boot_config_repo: dict[str, str], git_cli: GitCli
    ):
        """Test annotated tags peel to commits and merges are detected."""
        bare = tmp_path / "bare"
        git_cli.clone_bare(bare, boot_config_repo["path"])

        base = git_cli.get_commit_for_tag(bare, "v1.0.10")
        release = git_cli.get_commit_for_tag(bare, "v1.0.12")
        commits = git_cli.get_commits_between(bare, base, release)

        assert base == boot_config_repo["base"]
        assert release == boot_config_repo["release"]
        assert [c.sha for c in commits] == [
            boot_config_repo["release"],
            boot_config_repo["merge"],
            boot_config_repo["side"],
            boot_config_repo["feature"],
        ]
        assert [c.is_merge for c in commits] == [False, True, False, False]
        assert commits[0].subject == "chore: release 1.0.12"

    def test_rev_parse_and_describe(self, working_clone: Path, boot_config_repo: dict[str, str], git_cli: GitCli):
        """Test remote-only branches, short shas and exact tags resolve."""
        assert git_cli.rev_parse(working_clone, "release") == boot_config_repo["release"]
        assert git_cli.rev_parse(working_clone, boot_config_repo["base"][:10]) == boot_config_repo["base"]
        assert git_cli.describe_exact_tag(working_clone, boot_config_repo["release"]) == "v1.0.12"
        assert git_cli.describe_exact_tag(working_clone, boot_config_repo["feature"]) is None

    def test_merge_commit_classified(self, working_clone: Path, boot_config_repo: dict[str, str], git_cli: GitCli):
        """Test cherry-picking a merge commit reports the merge kind."""
        with pytest.raises(ReplayConflict) as exc_info:
            git_cli.cherry_pick(working_clone, boot_config_repo["merge"])

        assert exc_info.value.kind == ConflictKind.MERGE_COMMIT_NO_PARENT_SELECTED

    def test_replay_and_restore(self, working_clone: Path, boot_config_repo: dict[str, str], git_cli: GitCli):
        """Test replay skips the merge and OWNERS keeps its pre-upgrade content."""
        pre_upgrade = git_cli.head_sha(working_clone)
        history = git_cli.get_commits_between(
            working_clone, boot_config_repo["base"], boot_config_repo["release"]
        )
        delta = UpgradeDelta(
            from_revision=ResolvedRevision(commit_id=boot_config_repo["base"], version_label="1.0.10"),
            to_revision=ResolvedRevision(commit_id=boot_config_repo["release"], version_label="1.0.12"),
            commits=list(reversed(history)),
        )

        report = ReplayEngine(git_cli).replay(working_clone, "work", delta)

        assert report.skipped == [boot_config_repo["merge"]]
        assert len(report.applied) == 3
        assert (working_clone / "env" / "extra.yaml").exists()
        assert "release-bot" in (working_clone / "OWNERS").read_text()

        guard = ProtectedFileGuard(git_cli)
        assert guard.restore(working_clone, pre_upgrade, ["OWNERS"]) is True
        assert (working_clone / "OWNERS").read_text() == "approvers:\n- upstream\n"
        assert git(working_clone, "status", "--porcelain") == ""
        assert guard.restore(working_clone, pre_upgrade, ["OWNERS"]) is False

    def test_restore_removes_added_file(self, working_clone: Path, git_cli: GitCli):
        """Test a protected path absent before the upgrade is removed."""
        pre_upgrade = git_cli.head_sha(working_clone)
        commit_file(working_clone, "OWNERS_ALIASES", "aliases: {}\n", "feat: add aliases")

        restored = ProtectedFileGuard(git_cli).restore(working_clone, pre_upgrade, ["OWNERS_ALIASES"])

        assert restored is True
        assert not (working_clone / "OWNERS_ALIASES").exists()
        assert git(working_clone, "status", "--porcelain") == ""

    def test_commit_files_nothing_to_commit(self, working_clone: Path, git_cli: GitCli):
        """Test unchanged paths produce no commit."""
        head = git_cli.head_sha(working_clone)

        assert git_cli.commit_files(working_clone, "chore: nothing", ["OWNERS"]) is False
        assert git_cli.head_sha(working_clone) == head
