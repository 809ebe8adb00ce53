"""Look up pinned component versions in a version stream."""

import tempfile
from pathlib import Path
from types import TracebackType

import yaml

from bootup.clients.git_cli import parse_git_url
from bootup.core.exceptions import GitError, ResolutionError
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger
from bootup.utils.yaml_scalars import scalar_text
from bootup.versionstream.reference import remove_clone

logger = get_logger(__name__)

GIT_COMPONENTS_DIR = "git"


class VersionStreamResolver:
    """Version resolution service scoped to one version stream state.

    The stream is cloned at ``stream_ref`` on entry and removed on exit.
    Git components are pinned in ``git/<host>/<owner>/<repo>.yml`` under a
    ``version`` key.
    """

    def __init__(self, git: GitService, stream_url: str, stream_ref: str):
        self.git = git
        self.stream_url = stream_url
        self.stream_ref = stream_ref
        self._dir: Path | None = None

    def __enter__(self) -> "VersionStreamResolver":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def open(self) -> Path:
        """Clone the stream and check out ``stream_ref``.

        Raises:
            ResolutionError: If the stream cannot be cloned or the ref is unknown
        """
        if self._dir is not None:
            return self._dir

        directory = Path(tempfile.mkdtemp(prefix="bootup-stream-"))
        try:
            self.git.clone(self.stream_url, directory)
            self.git.checkout(directory, self.stream_ref)
        except GitError as e:
            remove_clone(directory)
            raise ResolutionError(
                f"Failed to create version resolver for {self.stream_url} @ {self.stream_ref}: {e}"
            ) from e

        self._dir = directory
        logger.debug("version_stream_opened", url=self.stream_url, ref=self.stream_ref)
        return directory

    def close(self) -> None:
        """Remove the stream clone."""
        if self._dir is not None:
            remove_clone(self._dir)
            self._dir = None

    def component_file(self, component_url: str) -> Path:
        """Path of the version file for a git component."""
        try:
            info = parse_git_url(component_url)
        except GitError as e:
            raise ResolutionError(f"Invalid component URL {component_url}: {e}") from e
        return (
            self.open()
            / GIT_COMPONENTS_DIR
            / info.host
            / Path(*info.organisation.split("/"))
            / f"{info.name}.yml"
        )

    def resolve_git_component_version(self, component_url: str) -> str:
        """Get the version the stream pins for a git repository.

        Args:
            component_url: Git URL of the component (e.g. the boot config)

        Returns:
            Version label, e.g. ``1.0.42``

        Raises:
            ResolutionError: If the stream has no version for the component
        """
        path = self.component_file(component_url)
        if not path.is_file():
            raise ResolutionError(
                f"Version stream {self.stream_url} @ {self.stream_ref} has no entry for "
                f"{component_url} (expected {path.relative_to(self.open())})"
            )

        try:
            text = path.read_text()
            data = yaml.safe_load(text) or {}
            version = data.get("version") if isinstance(data, dict) else None
            if version is not None and not isinstance(version, str):
                version = scalar_text(text, "version")
        except (OSError, yaml.YAMLError) as e:
            raise ResolutionError(f"Failed to read {path}: {e}") from e

        version = (version or "").strip()
        if not version:
            raise ResolutionError(f"No version for {component_url} in {path.name}")

        logger.debug(
            "component_version_resolved",
            component=component_url,
            version=version,
            stream_ref=self.stream_ref,
        )
        return version
