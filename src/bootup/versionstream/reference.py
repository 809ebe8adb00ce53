"""Resolve symbolic references in a catalog repository to commits."""

import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from bootup.core.exceptions import GitError, ResolutionError
from bootup.core.models import ResolvedRevision
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger

logger = get_logger(__name__)

VERSION_TAG_PREFIX = "v"


def version_tag(version_label: str) -> str:
    """Map a version label to its repository tag (``1.2.3`` -> ``v1.2.3``)."""
    label = version_label.strip()
    if label.startswith(VERSION_TAG_PREFIX) and label[1:2].isdigit():
        return label
    return f"{VERSION_TAG_PREFIX}{label}"


def strip_version_prefix(tag: str) -> str:
    """Map a tag to its version label (``v1.2.3`` -> ``1.2.3``)."""
    if tag.startswith(VERSION_TAG_PREFIX) and tag[1:2].isdigit():
        return tag[len(VERSION_TAG_PREFIX) :]
    return tag


def remove_clone(directory: Path) -> None:
    """Delete a temporary clone, logging rather than raising on failure."""
    try:
        shutil.rmtree(directory)
        logger.debug("clone_removed", directory=str(directory))
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("clone_removal_failed", directory=str(directory), error=str(e))


class VersionReferenceResolver:
    """Resolves ``(catalog_url, symbolic_ref)`` pairs to ResolvedRevision.

    Each catalog URL is cloned once into a temporary directory and reused for
    later lookups. The caller owns the clones: use the resolver as a context
    manager (or call ``cleanup``) so they are removed.
    """

    def __init__(self, git: GitService):
        """Initialize resolver.

        Args:
            git: Git service used for cloning and lookups
        """
        self.git = git
        self._clones: dict[str, Path] = {}

    def __enter__(self) -> "VersionReferenceResolver":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def clone_dir(self, catalog_url: str) -> Path:
        """Get (creating if needed) the local clone of ``catalog_url``.

        Raises:
            ResolutionError: If the catalog cannot be cloned
        """
        if catalog_url in self._clones:
            return self._clones[catalog_url]

        directory = Path(tempfile.mkdtemp(prefix="bootup-catalog-"))
        try:
            self.git.clone(catalog_url, directory)
        except GitError as e:
            remove_clone(directory)
            raise ResolutionError(f"Failed to clone versions repo {catalog_url}: {e}") from e

        self._clones[catalog_url] = directory
        return directory

    def resolve(self, catalog_url: str, symbolic_ref: str) -> ResolvedRevision:
        """Resolve a branch, tag or commit in a catalog to a concrete revision.

        Args:
            catalog_url: Catalog repository URL
            symbolic_ref: Branch, tag or (abbreviated) commit sha

        Returns:
            ResolvedRevision with the full commit sha and a version label

        Raises:
            ResolutionError: If the catalog cannot be fetched or the ref is unknown
        """
        directory = self.clone_dir(catalog_url)
        try:
            sha = self.git.rev_parse(directory, symbolic_ref)
        except GitError as e:
            raise ResolutionError(
                f"Failed to get commit pointed to by {symbolic_ref} in {catalog_url}: {e}"
            ) from e

        tag = self.git.describe_exact_tag(directory, sha)
        label = strip_version_prefix(tag) if tag else sha[:12]

        logger.debug(
            "reference_resolved",
            catalog_url=catalog_url,
            ref=symbolic_ref,
            commit=sha,
            version=label,
        )
        return ResolvedRevision(commit_id=sha, version_label=label)

    def cleanup(self) -> None:
        """Remove every clone this resolver created."""
        for directory in self._clones.values():
            remove_clone(directory)
        self._clones.clear()
