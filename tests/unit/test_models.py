"""Unit tests for core data models."""

import pytest
from pydantic import ValidationError

from bootup.core.models import (
    CommitRecord,
    DevEnvironment,
    ReplayAction,
    ReplayReport,
    ReplayStep,
    RepositoryInfo,
    ResolvedRevision,
    UpgradeDelta,
    UpgradeResult,
    UpgradeState,
    VersionStreamReference,
)


class TestVersionStreamReference:
    """Tests for VersionStreamReference."""

    def test_complete_reference(self) -> None:
        """Test a reference with URL and ref is complete."""
        ref = VersionStreamReference(url="https://github.com/jenkins-x/jenkins-x-versions.git", ref="master")
        assert ref.is_complete()

    @pytest.mark.parametrize(
        ("url", "ref"),
        [("", "master"), ("https://example.com/versions.git", ""), ("  ", "  "), ("", "")],
    )
    def test_incomplete_reference(self, url: str, ref: str) -> None:
        """Test blank URL or ref makes the reference incomplete."""
        assert not VersionStreamReference(url=url, ref=ref).is_complete()


class TestResolvedRevision:
    """Tests for ResolvedRevision."""

    def test_same_commit_ignores_label(self) -> None:
        """Test two names for one commit compare equal by identity."""
        by_branch = ResolvedRevision(commit_id="abc123", version_label="master")
        by_tag = ResolvedRevision(commit_id="abc123", version_label="1.0.12")
        assert by_branch.same_commit(by_tag)

    def test_different_commits(self) -> None:
        """Test different commits are not the same revision."""
        a = ResolvedRevision(commit_id="abc123", version_label="1.0.12")
        b = ResolvedRevision(commit_id="def456", version_label="1.0.12")
        assert not a.same_commit(b)

    def test_commit_id_required(self) -> None:
        """Test empty commit id is rejected."""
        with pytest.raises(ValidationError):
            ResolvedRevision(commit_id="", version_label="1.0.0")


class TestUpgradeDelta:
    """Tests for UpgradeDelta."""

    def test_empty_delta_for_same_revision(self) -> None:
        """Test identical revisions with no commits is an empty delta."""
        rev = ResolvedRevision(commit_id="abc", version_label="1.0.0")
        delta = UpgradeDelta(from_revision=rev, to_revision=rev)
        assert delta.is_empty
        assert delta.commits == []

    def test_commits_for_same_revision_rejected(self) -> None:
        """Test a delta between one commit and itself cannot carry commits."""
        rev = ResolvedRevision(commit_id="abc", version_label="1.0.0")
        with pytest.raises(ValidationError) as exc_info:
            UpgradeDelta(from_revision=rev, to_revision=rev, commits=[CommitRecord(sha="x")])

        assert "must not contain commits" in str(exc_info.value)

    def test_non_empty_delta(self) -> None:
        """Test commits between different revisions are kept in order."""
        delta = UpgradeDelta(
            from_revision=ResolvedRevision(commit_id="a", version_label="1.0.0"),
            to_revision=ResolvedRevision(commit_id="d", version_label="1.0.2"),
            commits=[CommitRecord(sha="b"), CommitRecord(sha="c")],
        )
        assert not delta.is_empty
        assert [c.sha for c in delta.commits] == ["b", "c"]


class TestReplayReport:
    """Tests for ReplayReport."""

    def test_applied_and_skipped_in_order(self) -> None:
        """Test report partitions steps by action, preserving order."""
        report = ReplayReport(
            branch="work",
            steps=[
                ReplayStep(sha="a", action=ReplayAction.APPLIED),
                ReplayStep(sha="m", action=ReplayAction.SKIPPED, reason="merge-commit-no-parent-selected"),
                ReplayStep(sha="b", action=ReplayAction.APPLIED),
            ],
        )
        assert report.applied == ["a", "b"]
        assert report.skipped == ["m"]


class TestDevEnvironment:
    """Tests for DevEnvironment."""

    def test_identity(self, dev_environment: DevEnvironment) -> None:
        """Test the pipeline user becomes the git identity."""
        identity = dev_environment.identity
        assert identity.name == "jenkins-x-bot"
        assert identity.email == "jenkins-x@example.com"


def test_repository_full_name() -> None:
    """Test full name joins nested groups and project."""
    info = RepositoryInfo(organisation="platform/gitops", name="environment-dev")
    assert info.full_name == "platform/gitops/environment-dev"


class TestUpgradeState:
    """Tests for UpgradeState."""

    @pytest.mark.parametrize(
        "state",
        [UpgradeState.NO_UPGRADE, UpgradeState.BRANCH_CLEANED, UpgradeState.DRY_RUN_COMPLETE],
    )
    def test_terminal_states(self, state: UpgradeState) -> None:
        """Test the run stops in terminal states."""
        assert state.is_terminal

    def test_intermediate_states_not_terminal(self) -> None:
        """Test every other state has a successor."""
        terminal = {UpgradeState.NO_UPGRADE, UpgradeState.BRANCH_CLEANED, UpgradeState.DRY_RUN_COMPLETE}
        for state in UpgradeState:
            if state not in terminal:
                assert not state.is_terminal, state


def test_upgrade_result_upgraded() -> None:
    """Test a result is an upgrade only when a pull request was raised."""
    assert not UpgradeResult(state=UpgradeState.NO_UPGRADE).upgraded
    assert UpgradeResult(state=UpgradeState.BRANCH_CLEANED, pull_request_url="https://x/1").upgraded
