"""Upgrade orchestrator: the state machine behind ``bootup upgrade``."""

import tempfile
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeVar

from bootup.clients.git_cli import create_authenticated_url
from bootup.core.config import UpgradeConfig
from bootup.core.exceptions import BootUpError, ConfigurationError, GitError, ReplayFailure
from bootup.core.models import (
    DevEnvironment,
    ReplayReport,
    UpgradeDelta,
    UpgradeResult,
    UpgradeState,
    VersionStreamReference,
)
from bootup.core.profiles import InstallProfile, defaults_for, profile_for_stream_url
from bootup.gitops.pull_request import (
    PullRequestDetails,
    PullRequestFilter,
    push_and_create_pull_request,
)
from bootup.gitops.requirements import RequirementsConfig
from bootup.interfaces.git_service import GitService
from bootup.interfaces.gitops_provider import GitOpsProvider
from bootup.upgrade.availability import UpgradeAvailabilityChecker
from bootup.upgrade.delta import ConfigDeltaComputer, ResolverFactory
from bootup.upgrade.protected_files import ProtectedFileGuard
from bootup.upgrade.replay import ReplayEngine
from bootup.utils.logging import bound_run, get_logger, log_error
from bootup.versionstream.reference import remove_clone

logger = get_logger(__name__)

VERSION_STREAM_COMMIT_MESSAGE = "feat: upgrade version stream"

T = TypeVar("T")


def _required(value: T | None, name: str) -> T:
    """``value``, or BootUpError when the step that sets ``name`` has not run."""
    if value is None:
        raise BootUpError(f"Upgrade step needs {name}, which no earlier step has set")
    return value


class IdentitySource(Protocol):
    """Anything that can describe the cluster's dev environment."""

    def get_dev_environment(self) -> DevEnvironment: ...


@dataclass
class UpgradeOptions:
    """Per-run overrides, usually from the command line."""

    directory: Path | None = None
    git_url: str | None = None
    versions_repo: str | None = None
    versions_ref: str | None = None
    dry_run: bool = False


@dataclass
class _Run:
    """Mutable state of one run, owned by the orchestrator."""

    options: UpgradeOptions
    states: list[UpgradeState] = field(default_factory=list)
    dev_environment: DevEnvironment | None = None
    directory: Path | None = None
    cloned_temp_dir: bool = False
    version_stream: VersionStreamReference | None = None
    upgrade_commit: str | None = None
    working_branch: str | None = None
    boot_config_url: str | None = None
    delta: UpgradeDelta | None = None
    pre_upgrade_commit: str | None = None
    replay_report: ReplayReport | None = None
    protected_files_restored: bool = False
    pinned_ref_committed: bool = False
    pull_request_url: str | None = None


class UpgradeOrchestrator:
    """Sequences an upgrade as an explicit state machine.

    Each non-terminal UpgradeState has one step method that does the state's
    work and returns the next state. A step raising stops the run where it
    is: in particular the working branch is kept for diagnosis.
    """

    def __init__(
        self,
        git: GitService,
        identity_source: IdentitySource,
        provider_factory: Callable[[], GitOpsProvider],
        settings: UpgradeConfig | None = None,
        profile: InstallProfile = InstallProfile.OSS,
        token_provider: Callable[[], str] | None = None,
        resolver_factory: ResolverFactory | None = None,
    ):
        """Initialize orchestrator.

        Args:
            git: Git service (rebound to the pipeline identity during the run)
            identity_source: Source of the pipeline user and GitOps repo URL
            provider_factory: Creates the code-hosting provider when a PR is raised
            settings: Upgrade settings
            profile: Active install profile, used for default version streams
            token_provider: Supplies the token for cloning the dev environment
            resolver_factory: Optional version resolution service factory
        """
        self.git = git
        self.identity_source = identity_source
        self.provider_factory = provider_factory
        self.settings = settings or UpgradeConfig()
        self.profile = profile
        self.token_provider = token_provider
        self.resolver_factory = resolver_factory

        self._steps: dict[UpgradeState, Callable[[_Run], UpgradeState]] = {
            UpgradeState.INIT: self._configure_identity,
            UpgradeState.GIT_IDENTITY_CONFIGURED: self._clone,
            UpgradeState.CLONED: self._check_stream_upgrade,
            UpgradeState.STREAM_UPGRADE_CHECKED: self._create_branch,
            UpgradeState.BRANCH_CREATED: self._check_config_delta,
            UpgradeState.CONFIG_DELTA_CHECKED: self._replay,
            UpgradeState.NO_CONFIG_UPGRADE: self._update_pinned_ref,
            UpgradeState.REPLAYED: self._guard_protected_files,
            UpgradeState.GUARDED: self._update_pinned_ref,
            UpgradeState.PINNED_REF_UPDATED: self._raise_pull_request,
            UpgradeState.PR_RAISED: self._clean_branch,
        }

    def step(self, state: UpgradeState, run: _Run) -> UpgradeState:
        """Perform the work of ``state`` and return the next state."""
        if state.is_terminal:
            raise ValueError(f"{state.value} is terminal")
        return self._steps[state](run)

    def run(self, options: UpgradeOptions | None = None) -> UpgradeResult:
        """Run an upgrade to completion.

        Returns:
            UpgradeResult with the terminal state and every state visited

        Raises:
            BootUpError: On any failure; nothing is rolled back
        """
        run = _Run(options=options or UpgradeOptions())
        state = UpgradeState.INIT
        run.states.append(state)

        with bound_run(run_id=uuid.uuid4().hex[:8]):
            while not state.is_terminal:
                try:
                    state = self.step(state, run)
                except BootUpError as e:
                    log_error(
                        logger,
                        e,
                        operation=state.value,
                        directory=str(run.directory) if run.directory else None,
                        working_branch=run.working_branch,
                    )
                    raise
                run.states.append(state)
                logger.debug("upgrade_state_changed", state=state.value)

            if run.cloned_temp_dir and run.directory is not None:
                remove_clone(run.directory)

            logger.info("upgrade_finished", state=state.value, pull_request=run.pull_request_url)
        return UpgradeResult(
            state=state,
            states_visited=run.states,
            directory=str(run.directory) if run.directory else None,
            working_branch=run.working_branch,
            version_stream=run.version_stream,
            upgrade_commit=run.upgrade_commit,
            delta=run.delta,
            replay_report=run.replay_report,
            protected_files_restored=run.protected_files_restored,
            pinned_ref_committed=run.pinned_ref_committed,
            pull_request_url=run.pull_request_url,
        )

    # Version stream and boot config selection

    def determine_version_stream(self, options: UpgradeOptions, directory: Path) -> VersionStreamReference:
        """Pick the version stream to upgrade from.

        Command-line overrides win over the requirements file. An incomplete
        reference falls back to the install profile's default stream.

        Raises:
            PersistenceError: If no override is given and the requirements
                file is missing
        """
        if options.versions_repo or options.versions_ref:
            stream = VersionStreamReference(
                url=options.versions_repo or "", ref=options.versions_ref or ""
            )
        else:
            requirements, _ = RequirementsConfig.load(directory, self.settings.requirements_file)
            stream = requirements.version_stream_reference

        if not stream.is_complete():
            logger.warning("incomplete_version_stream_reference", url=stream.url, ref=stream.ref)
            defaults = defaults_for(self.profile)
            stream = VersionStreamReference(
                url=defaults.version_stream_url, ref=defaults.version_stream_ref
            )
        return stream

    def determine_boot_config_url(self, options: UpgradeOptions, version_stream_url: str) -> str:
        """Pick the boot config repository.

        Raises:
            ConfigurationError: If there is no override and the version stream
                belongs to no known install profile
        """
        if options.git_url:
            return options.git_url
        boot_config_url = defaults_for(profile_for_stream_url(version_stream_url)).boot_config_url
        logger.info("using_default_boot_config", url=boot_config_url)
        return boot_config_url

    # Steps

    def _configure_identity(self, run: _Run) -> UpgradeState:
        run.dev_environment = self.identity_source.get_dev_environment()
        self.git = self.git.with_identity(run.dev_environment.identity)
        logger.info("git_identity_configured", username=run.dev_environment.pipeline_username)
        return UpgradeState.GIT_IDENTITY_CONFIGURED

    def _clone(self, run: _Run) -> UpgradeState:
        if run.options.directory is not None:
            run.directory = Path(run.options.directory)
            return UpgradeState.CLONED

        dev_environment = _required(run.dev_environment, "dev environment")
        source_url = dev_environment.source_url
        if not source_url:
            raise ConfigurationError("Dev environment has no source URL to clone; pass --dir")

        clone_url = source_url
        if self.token_provider is not None:
            clone_url = create_authenticated_url(
                source_url, dev_environment.pipeline_username, self.token_provider()
            )

        directory = Path(tempfile.mkdtemp(prefix="bootup-devenv-"))
        try:
            self.git.clone(clone_url, directory)
        except GitError as e:
            remove_clone(directory)
            raise GitError(f"Failed to clone dev environment repo {source_url}: {e}") from e

        run.directory = directory
        run.cloned_temp_dir = True
        logger.info("dev_environment_cloned", url=source_url, directory=str(directory))
        return UpgradeState.CLONED

    def _check_stream_upgrade(self, run: _Run) -> UpgradeState:
        directory = _required(run.directory, "directory")
        run.version_stream = self.determine_version_stream(run.options, directory)
        checker = UpgradeAvailabilityChecker(self.git)
        run.upgrade_commit = checker.check(run.version_stream, self.settings.candidate_ref)
        return UpgradeState.STREAM_UPGRADE_CHECKED

    def _create_branch(self, run: _Run) -> UpgradeState:
        if run.upgrade_commit is None:
            return UpgradeState.NO_UPGRADE

        if run.options.dry_run:
            self._compute_delta(run)
            return UpgradeState.DRY_RUN_COMPLETE

        directory = _required(run.directory, "directory")
        branch = str(uuid.uuid4())
        try:
            self.git.create_branch(directory, branch)
            run.working_branch = branch
            self.git.checkout(directory, branch)
        except GitError as e:
            raise GitError(f"Failed to checkout local branch {branch}: {e}") from e

        logger.info("working_branch_created", branch=branch)
        return UpgradeState.BRANCH_CREATED

    def _compute_delta(self, run: _Run) -> UpgradeDelta:
        version_stream = _required(run.version_stream, "version stream")
        upgrade_commit = _required(run.upgrade_commit, "upgrade commit")
        run.boot_config_url = self.determine_boot_config_url(run.options, version_stream.url)
        computer = ConfigDeltaComputer(self.git, resolver_factory=self.resolver_factory)
        run.delta = computer.compute_delta(
            run.boot_config_url,
            version_stream,
            VersionStreamReference(url=version_stream.url, ref=upgrade_commit),
        )
        return run.delta

    def _check_config_delta(self, run: _Run) -> UpgradeState:
        self._compute_delta(run)
        return UpgradeState.CONFIG_DELTA_CHECKED

    def _replay(self, run: _Run) -> UpgradeState:
        delta = _required(run.delta, "config delta")
        if delta.is_empty:
            return UpgradeState.NO_CONFIG_UPGRADE

        directory = _required(run.directory, "directory")
        working_branch = _required(run.working_branch, "working branch")
        boot_config_url = _required(run.boot_config_url, "boot config URL")
        boot_config_branch = self.settings.boot_config_branch

        logger.info(
            "upgrading_boot_config",
            from_version=delta.from_revision.version_label,
            to_version=delta.to_revision.version_label,
        )
        try:
            self.git.fetch_branch(directory, boot_config_url, boot_config_branch)
            run.pre_upgrade_commit = self.git.head_sha(directory)
        except GitError as e:
            raise ReplayFailure(f"Failed to fetch {boot_config_branch} of {boot_config_url}: {e}") from e

        run.replay_report = ReplayEngine(self.git).replay(directory, working_branch, delta)
        return UpgradeState.REPLAYED

    def _guard_protected_files(self, run: _Run) -> UpgradeState:
        run.protected_files_restored = ProtectedFileGuard(self.git).restore(
            _required(run.directory, "directory"),
            _required(run.pre_upgrade_commit, "pre-upgrade commit"),
            list(self.settings.protected_paths),
        )
        return UpgradeState.GUARDED

    def _update_pinned_ref(self, run: _Run) -> UpgradeState:
        directory = _required(run.directory, "directory")
        upgrade_commit = _required(run.upgrade_commit, "upgrade commit")
        version_stream = _required(run.version_stream, "version stream")
        requirements, path = RequirementsConfig.load(directory, self.settings.requirements_file)

        if requirements.version_stream.ref != upgrade_commit:
            logger.info("upgrading_version_stream_ref", ref=upgrade_commit)
            requirements.version_stream.ref = upgrade_commit
            if not requirements.version_stream.url:
                requirements.version_stream.url = version_stream.url
            requirements.save(path)
            try:
                run.pinned_ref_committed = self.git.commit_files(
                    directory, VERSION_STREAM_COMMIT_MESSAGE, [str(path)]
                )
            except GitError as e:
                raise GitError(f"Failed to commit requirements file {path}: {e}") from e

        return UpgradeState.PINNED_REF_UPDATED

    def _raise_pull_request(self, run: _Run) -> UpgradeState:
        directory = _required(run.directory, "directory")
        info = self.git.repository_info(directory)
        provider = self.provider_factory()
        repository = provider.get_repository(info.organisation, info.name)

        details = PullRequestDetails(
            branch_name=self.settings.pr_branch_name,
            title=self.settings.pr_title,
            message=self._pull_request_message(run),
        )
        mr = push_and_create_pull_request(
            directory,
            repository,
            self.settings.trunk_branch,
            details,
            PullRequestFilter(labels=list(self.settings.pr_labels)),
            self.git,
            provider,
        )
        run.pull_request_url = mr.web_url
        return UpgradeState.PR_RAISED

    def _pull_request_message(self, run: _Run) -> str:
        lines = [self.settings.pr_message]
        if run.version_stream is not None and run.upgrade_commit is not None:
            lines.append("")
            lines.append(
                f"Version stream {run.version_stream.url}: "
                f"{run.version_stream.ref} -> {run.upgrade_commit}"
            )
        if run.delta is not None and not run.delta.is_empty:
            lines.append(
                f"Boot config: v{run.delta.from_revision.version_label} -> "
                f"v{run.delta.to_revision.version_label}"
            )
        if run.replay_report is not None and run.replay_report.skipped:
            lines.append(f"Skipped merge commits: {', '.join(run.replay_report.skipped)}")
        return "\n".join(lines)

    def _clean_branch(self, run: _Run) -> UpgradeState:
        directory = _required(run.directory, "directory")
        working_branch = _required(run.working_branch, "working branch")
        trunk = self.settings.trunk_branch
        try:
            self.git.checkout(directory, trunk)
        except GitError as e:
            raise GitError(f"Failed to checkout {trunk} branch: {e}") from e
        try:
            self.git.delete_local_branch(directory, working_branch)
        except GitError as e:
            raise GitError(f"Failed to delete local branch {working_branch}: {e}") from e

        logger.info("working_branch_deleted", branch=working_branch)
        return UpgradeState.BRANCH_CLEANED
