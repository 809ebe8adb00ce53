"""Core data models for BOOTUP."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class VersionStreamReference(BaseModel):
    """A version stream repository and a symbolic pointer into it."""

    url: str = Field("", description="Version stream git URL")
    ref: str = Field("", description="Branch, tag or commit")

    def is_complete(self) -> bool:
        """Check both URL and ref are set."""
        return bool(self.url.strip()) and bool(self.ref.strip())


class ResolvedRevision(BaseModel):
    """A symbolic reference resolved to a concrete commit."""

    commit_id: str = Field(..., min_length=1, description="Full commit sha")
    version_label: str = Field(..., description="Human-readable version")

    def same_commit(self, other: "ResolvedRevision") -> bool:
        """Compare by commit identity only."""
        return self.commit_id == other.commit_id


class CommitRecord(BaseModel):
    """One history entry between two revisions."""

    sha: str
    subject: str = ""
    is_merge: bool = False


class UpgradeDelta(BaseModel):
    """Commits separating two config revisions, ordered oldest to newest."""

    from_revision: ResolvedRevision
    to_revision: ResolvedRevision
    commits: list[CommitRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_no_commits_for_same_revision(self) -> "UpgradeDelta":
        """Same commit on both sides means nothing to replay.

        Raises:
            ValueError: If commits were supplied for identical revisions
        """
        if self.from_revision.same_commit(self.to_revision) and self.commits:
            raise ValueError(
                f"Delta from {self.from_revision.commit_id} to itself must not contain commits"
            )
        return self

    @property
    def is_empty(self) -> bool:
        """Check whether there is nothing to replay."""
        return not self.commits


class ReplayAction(str, Enum):
    """What the replay engine did with a commit."""

    APPLIED = "applied"
    SKIPPED = "skipped"


class ReplayStep(BaseModel):
    """Outcome for a single replayed commit."""

    sha: str
    subject: str = ""
    action: ReplayAction
    reason: str | None = None


class ReplayReport(BaseModel):
    """Per-commit outcome of a replay, in replay order."""

    branch: str
    steps: list[ReplayStep] = Field(default_factory=list)

    @property
    def applied(self) -> list[str]:
        """Shas applied, in order."""
        return [s.sha for s in self.steps if s.action == ReplayAction.APPLIED]

    @property
    def skipped(self) -> list[str]:
        """Shas skipped, in order."""
        return [s.sha for s in self.steps if s.action == ReplayAction.SKIPPED]


class GitIdentity(BaseModel):
    """Author identity used for commits made by a run."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)


class DevEnvironment(BaseModel):
    """Team settings read from the cluster's dev environment."""

    pipeline_username: str
    pipeline_user_email: str
    source_url: str = ""

    @property
    def identity(self) -> GitIdentity:
        """Git identity of the pipeline user."""
        return GitIdentity(name=self.pipeline_username, email=self.pipeline_user_email)


class RepositoryInfo(BaseModel):
    """Location of a repository on its code-hosting provider."""

    host: str = ""
    organisation: str
    name: str
    url: str = ""

    @property
    def full_name(self) -> str:
        """Path of the project, e.g. ``group/project``."""
        return f"{self.organisation}/{self.name}"


class UpgradeState(str, Enum):
    """States of an upgrade run."""

    INIT = "init"
    GIT_IDENTITY_CONFIGURED = "git-identity-configured"
    CLONED = "cloned"
    STREAM_UPGRADE_CHECKED = "stream-upgrade-checked"
    NO_UPGRADE = "no-upgrade"
    BRANCH_CREATED = "branch-created"
    CONFIG_DELTA_CHECKED = "config-delta-checked"
    NO_CONFIG_UPGRADE = "no-config-upgrade"
    REPLAYED = "replayed"
    GUARDED = "guarded"
    PINNED_REF_UPDATED = "pinned-ref-updated"
    PR_RAISED = "pr-raised"
    BRANCH_CLEANED = "branch-cleaned"
    DRY_RUN_COMPLETE = "dry-run-complete"

    @property
    def is_terminal(self) -> bool:
        """Check whether the run stops in this state."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {UpgradeState.NO_UPGRADE, UpgradeState.BRANCH_CLEANED, UpgradeState.DRY_RUN_COMPLETE}
)


class UpgradeResult(BaseModel):
    """Summary of an upgrade run."""

    state: UpgradeState
    states_visited: list[UpgradeState] = Field(default_factory=list)
    directory: str | None = None
    working_branch: str | None = None
    version_stream: VersionStreamReference | None = None
    upgrade_commit: str | None = None
    delta: UpgradeDelta | None = None
    replay_report: ReplayReport | None = None
    protected_files_restored: bool = False
    pinned_ref_committed: bool = False
    pull_request_url: str | None = None

    @property
    def upgraded(self) -> bool:
        """Check whether a pull request was raised."""
        return self.pull_request_url is not None
