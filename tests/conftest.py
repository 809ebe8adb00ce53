"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from bootup.core.exceptions import ConflictKind, GitError, ReplayConflict, ResolutionError
from bootup.core.models import CommitRecord, DevEnvironment, GitIdentity, RepositoryInfo
from bootup.core.profiles import DEFAULT_BOOT_REPOSITORY, DEFAULT_VERSIONS_URL
from bootup.interfaces.git_service import GitService
from bootup.interfaces.gitops_provider import GitOpsProvider, MergeRequestInfo

PINNED_REF = "2367726d02b8c"
PINNED_SHA = "2367726d02b8c0f4a1e3b6d59e1c7f0a8b2d4e6f"
UPGRADE_SHA = "9c1d3e5f7a9b1c3d5e7f9a1b3c5d7e9f1a3b5c7d"
PRE_UPGRADE_SHA = "0f1e2d3c4b5a69788796a5b4c3d2e1f00f1e2d3c"


class FakeGitService(GitService):
    """In-memory GitService for tests.

    Clones are real temporary directories so callers can create and remove
    them, but no git process is run. Lookups are answered from the
    dictionaries passed in, keyed by the URL the directory was cloned from.

    Constructor Injection:
    - refs: (url, ref) -> sha for rev_parse
    - exact_tags: (url, sha) -> tag for describe_exact_tag
    - tags: (url, tag) -> sha for get_commit_for_tag
    - history: (from_sha, to_sha) -> commits, newest first
    - clone_files: url -> {relative path: content} written on clone
    - cherry_pick_failures: sha -> ConflictKind raised by cherry_pick
    - fail_clone: URLs whose clone raises GitError
    - commit_results: commit message -> value returned by commit_files

    Mutation Tracking:
    - calls: every mutating call, in order
    - cloned_dirs: every directory passed to clone or clone_bare
    - commits: messages of commits made
    """

    def __init__(
        self,
        refs: dict[tuple[str, str], str] | None = None,
        exact_tags: dict[tuple[str, str], str] | None = None,
        tags: dict[tuple[str, str], str] | None = None,
        history: dict[tuple[str, str], list[CommitRecord]] | None = None,
        clone_files: dict[str, dict[str, str]] | None = None,
        cherry_pick_failures: dict[str, ConflictKind] | None = None,
        fail_clone: set[str] | None = None,
        commit_results: dict[str, bool] | None = None,
        head: str = PRE_UPGRADE_SHA,
        repository: RepositoryInfo | None = None,
    ):
        self.refs = refs or {}
        self.exact_tags = exact_tags or {}
        self.tags = tags or {}
        self.history = history or {}
        self.clone_files = clone_files or {}
        self.cherry_pick_failures = cherry_pick_failures or {}
        self.fail_clone = fail_clone or set()
        self.commit_results = commit_results or {}
        self.head = head
        self.repository = repository or RepositoryInfo(
            host="gitlab.example.com", organisation="acme", name="environment-dev"
        )

        self.identity: GitIdentity | None = None
        self.calls: list[tuple] = []
        self.cloned_dirs: list[Path] = []
        self.commits: list[str] = []
        self.checked_out: str | None = None
        self.branches: set[str] = set()
        self._dir_urls: dict[Path, str] = {}

    def _url(self, directory: Path) -> str:
        return self._dir_urls.get(Path(directory), "")

    def with_identity(self, identity: GitIdentity) -> "FakeGitService":
        self.identity = identity
        return self

    def clone(self, url: str, directory: Path) -> None:
        self.calls.append(("clone", url))
        self.cloned_dirs.append(Path(directory))
        if url in self.fail_clone:
            raise GitError(f"fatal: repository '{url}' not found", returncode=128)
        self._dir_urls[Path(directory)] = url
        for relative, content in self.clone_files.get(url, {}).items():
            target = Path(directory) / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

    def clone_bare(self, directory: Path, url: str) -> None:
        self.calls.append(("clone_bare", url))
        self.cloned_dirs.append(Path(directory))
        if url in self.fail_clone:
            raise GitError(f"fatal: repository '{url}' not found", returncode=128)
        self._dir_urls[Path(directory)] = url

    def create_branch(self, directory: Path, branch: str) -> None:
        self.calls.append(("create_branch", branch))
        self.branches.add(branch)

    def checkout(self, directory: Path, ref: str) -> None:
        self.calls.append(("checkout", ref))
        self.checked_out = ref

    def delete_local_branch(self, directory: Path, branch: str) -> None:
        self.calls.append(("delete_local_branch", branch))
        if branch == self.checked_out:
            raise GitError(f"error: Cannot delete branch '{branch}' checked out")
        self.branches.discard(branch)

    def fetch_branch(self, directory: Path, url: str, ref: str) -> None:
        self.calls.append(("fetch_branch", url, ref))

    def get_commit_for_tag(self, directory: Path, tag: str) -> str:
        key = (self._url(directory), tag)
        if key not in self.tags:
            raise GitError(f"fatal: ambiguous argument 'refs/tags/{tag}'")
        return self.tags[key]

    def rev_parse(self, directory: Path, ref: str) -> str:
        key = (self._url(directory), ref)
        if key not in self.refs:
            raise GitError(f"Unknown revision {ref}")
        return self.refs[key]

    def describe_exact_tag(self, directory: Path, sha: str) -> str | None:
        return self.exact_tags.get((self._url(directory), sha))

    def get_commits_between(self, directory: Path, from_sha: str, to_sha: str) -> list[CommitRecord]:
        self.calls.append(("get_commits_between", from_sha, to_sha))
        return list(self.history.get((from_sha, to_sha), []))

    def cherry_pick(self, directory: Path, sha: str, strategy_option: str = "theirs") -> None:
        self.calls.append(("cherry_pick", sha, strategy_option))
        kind = self.cherry_pick_failures.get(sha)
        if kind is not None:
            raise ReplayConflict(f"cherry-pick of {sha} failed", sha=sha, kind=kind)

    def checkout_paths_from_commit(self, directory: Path, sha: str, paths: list[str]) -> None:
        self.calls.append(("checkout_paths", sha, tuple(paths)))

    def commit_files(self, directory: Path, message: str, paths: list[str]) -> bool:
        self.calls.append(("commit", message))
        committed = self.commit_results.get(message, True)
        if committed:
            self.commits.append(message)
        return committed

    def head_sha(self, directory: Path) -> str:
        return self.head

    def repository_info(self, directory: Path) -> RepositoryInfo:
        return self.repository

    def push(self, directory: Path, remote_branch: str, force: bool = False) -> None:
        self.calls.append(("push", remote_branch, force))

    def call_names(self) -> list[str]:
        """Names of the recorded calls, in order."""
        return [call[0] for call in self.calls]


class FakeVersionResolver:
    """Version resolution service answering from a (stream ref, component) table."""

    def __init__(self, versions: dict[tuple[str, str], str], stream_url: str, stream_ref: str):
        self.versions = versions
        self.stream_url = stream_url
        self.stream_ref = stream_ref
        self.closed = False

    def __enter__(self) -> "FakeVersionResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True

    def resolve_git_component_version(self, component_url: str) -> str:
        try:
            return self.versions[(self.stream_ref, component_url)]
        except KeyError as e:
            raise ResolutionError(f"No version for {component_url} at {self.stream_ref}") from e


@pytest.fixture
def fake_git() -> FakeGitService:
    """Provide an empty fake git service."""
    return FakeGitService()


@pytest.fixture
def dev_environment() -> DevEnvironment:
    """Provide a dev environment with a pipeline identity."""
    return DevEnvironment(
        pipeline_username="jenkins-x-bot",
        pipeline_user_email="jenkins-x@example.com",
        source_url="https://gitlab.example.com/acme/environment-dev.git",
    )


@pytest.fixture
def identity_source(dev_environment: DevEnvironment) -> MagicMock:
    """Provide an identity source returning the dev environment."""
    source = MagicMock()
    source.get_dev_environment.return_value = dev_environment
    return source


@pytest.fixture
def mock_provider() -> MagicMock:
    """Provide a code-hosting provider that creates merge request !7."""
    provider = MagicMock(spec=GitOpsProvider)
    provider.get_repository.return_value = RepositoryInfo(
        organisation="acme",
        name="environment-dev",
        url="https://gitlab.example.com/acme/environment-dev.git",
    )
    provider.find_merge_requests.return_value = []
    provider.create_merge_request.return_value = MergeRequestInfo(
        id=1007,
        iid=7,
        title="feat(config): upgrade configuration",
        description="Upgrade configuration",
        source_branch="bootup_upgrade",
        target_branch="master",
        state="opened",
        web_url="https://gitlab.example.com/acme/environment-dev/-/merge_requests/7",
        labels=["updatebot"],
    )
    return provider


def write_requirements(directory: Path, url: str = DEFAULT_VERSIONS_URL, ref: str = PINNED_REF) -> Path:
    """Write a requirements file pinning the version stream."""
    path = directory / "jx-requirements.yml"
    data = {
        "cluster": {"clusterName": "dev-cluster", "provider": "gke", "project": "acme-dev"},
        "environments": [{"key": "dev"}, {"key": "staging"}, {"key": "production"}],
        "versionStream": {"url": url, "ref": ref},
        "webhook": "lighthouse",
    }
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


@pytest.fixture
def gitops_dir(tmp_path: Path) -> Path:
    """Provide a GitOps clone directory with a requirements file."""
    repo = tmp_path / "environment-dev"
    repo.mkdir()
    write_requirements(repo)
    return repo


@pytest.fixture
def stream_versions() -> dict[tuple[str, str], str]:
    """Boot config versions pinned by the current and upgrade stream states."""
    return {
        (PINNED_REF, DEFAULT_BOOT_REPOSITORY): "1.0.10",
        (UPGRADE_SHA, DEFAULT_BOOT_REPOSITORY): "1.0.12",
    }


@pytest.fixture
def resolver_factory(stream_versions: dict[tuple[str, str], str]) -> Iterator:
    """Provide a factory building fake version resolution services."""
    created: list[FakeVersionResolver] = []

    def factory(url: str, ref: str) -> FakeVersionResolver:
        resolver = FakeVersionResolver(stream_versions, url, ref)
        created.append(resolver)
        return resolver

    factory.created = created  # type: ignore[attr-defined]
    yield factory
    assert all(r.closed for r in created)
