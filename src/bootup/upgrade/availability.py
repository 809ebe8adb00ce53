"""Decide whether a newer version stream is available."""

from bootup.core.models import VersionStreamReference
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger
from bootup.versionstream.reference import VersionReferenceResolver

logger = get_logger(__name__)


class UpgradeAvailabilityChecker:
    """Compares the pinned version stream with a candidate by commit identity."""

    def __init__(self, git: GitService):
        self.git = git

    def check(self, current: VersionStreamReference, candidate_symbol: str) -> str | None:
        """Check for a version stream upgrade.

        Both the pinned ref and ``candidate_symbol`` are resolved in the same
        clone of the stream; two different names for one commit mean no
        upgrade.

        Args:
            current: Pinned version stream
            candidate_symbol: Ref marking the latest release (usually ``master``)

        Returns:
            Candidate commit sha, or None when no upgrade is available

        Raises:
            ResolutionError: If either ref cannot be resolved
        """
        with VersionReferenceResolver(self.git) as resolver:
            candidate = resolver.resolve(current.url, candidate_symbol)
            pinned = resolver.resolve(current.url, current.ref)

        if pinned.same_commit(candidate):
            logger.info(
                "no_upgrade_available",
                version_stream=current.url,
                ref=current.ref,
                commit=pinned.commit_id,
            )
            return None

        logger.info(
            "upgrade_available",
            version_stream=current.url,
            current_commit=pinned.commit_id,
            upgrade_commit=candidate.commit_id,
        )
        return candidate.commit_id
