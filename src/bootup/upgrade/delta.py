"""Compute the boot configuration commits between two version stream states."""

import tempfile
from collections.abc import Callable
from contextlib import AbstractContextManager
from pathlib import Path

from bootup.core.exceptions import GitError, ResolutionError
from bootup.core.models import ResolvedRevision, UpgradeDelta, VersionStreamReference
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger
from bootup.versionstream.components import VersionStreamResolver
from bootup.versionstream.reference import remove_clone, version_tag

logger = get_logger(__name__)

ResolverFactory = Callable[[str, str], AbstractContextManager[VersionStreamResolver]]


class ConfigDeltaComputer:
    """Resolves boot config versions through the version stream and lists the
    commits separating them.

    The boot config version is never read from the config repository
    directly: each stream state says which version it pins, and that version
    is then found as a ``v``-prefixed tag in a bare clone of the config repo.
    """

    def __init__(self, git: GitService, resolver_factory: ResolverFactory | None = None):
        """Initialize delta computer.

        Args:
            git: Git service
            resolver_factory: Builds a version resolution service for a
                ``(stream_url, stream_ref)`` pair (defaults to VersionStreamResolver)
        """
        self.git = git
        self.resolver_factory = resolver_factory or (
            lambda url, ref: VersionStreamResolver(git, url, ref)
        )

    def resolve_config_revision(
        self, clone_dir: Path, config_repo_url: str, stream: VersionStreamReference
    ) -> ResolvedRevision:
        """Resolve the boot config revision pinned by one stream state.

        Raises:
            ResolutionError: If the version or its tag cannot be found
        """
        with self.resolver_factory(stream.url, stream.ref) as resolver:
            version = resolver.resolve_git_component_version(config_repo_url)

        tag = version_tag(version)
        try:
            sha = self.git.get_commit_for_tag(clone_dir, tag)
        except GitError as e:
            raise ResolutionError(
                f"Failed to get commit pointed to by {tag} in {config_repo_url}: {e}"
            ) from e
        if not sha:
            raise ResolutionError(f"Tag {tag} not found in {config_repo_url}")

        return ResolvedRevision(commit_id=sha, version_label=version)

    def compute_delta(
        self,
        config_repo_url: str,
        from_stream: VersionStreamReference,
        to_stream: VersionStreamReference,
    ) -> UpgradeDelta:
        """Compute the boot config upgrade between two version stream states.

        Args:
            config_repo_url: Boot config repository URL
            from_stream: Currently pinned version stream
            to_stream: Candidate version stream (same URL, upgrade commit)

        Returns:
            UpgradeDelta with commits oldest first; empty when both states pin
            the same config commit

        Raises:
            ResolutionError: If either side cannot be resolved or history read
        """
        clone_dir = Path(tempfile.mkdtemp(prefix="bootup-config-"))
        try:
            try:
                self.git.clone_bare(clone_dir, config_repo_url)
            except GitError as e:
                raise ResolutionError(
                    f"Failed to clone boot config repo {config_repo_url}: {e}"
                ) from e

            current = self.resolve_config_revision(clone_dir, config_repo_url, from_stream)
            upgrade = self.resolve_config_revision(clone_dir, config_repo_url, to_stream)

            if current.same_commit(upgrade):
                logger.info(
                    "no_boot_config_upgrade_available",
                    config_repo=config_repo_url,
                    version=current.version_label,
                )
                return UpgradeDelta(from_revision=current, to_revision=upgrade)

            logger.info(
                "boot_config_upgrade_available",
                config_repo=config_repo_url,
                from_version=current.version_label,
                to_version=upgrade.version_label,
            )

            try:
                history = self.git.get_commits_between(
                    clone_dir, current.commit_id, upgrade.commit_id
                )
            except GitError as e:
                raise ResolutionError(
                    f"Failed to get commits {current.commit_id}..{upgrade.commit_id} "
                    f"from {config_repo_url}: {e}"
                ) from e

            return UpgradeDelta(
                from_revision=current,
                to_revision=upgrade,
                commits=list(reversed(history)),
            )
        finally:
            remove_clone(clone_dir)
