"""Code-hosting operations needed to raise an upgrade pull request."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from bootup.core.models import RepositoryInfo


@dataclass
class MergeRequestInfo:
    """A merge (pull) request as seen by the upgrade, independent of provider."""

    id: int
    iid: int
    title: str
    description: str
    source_branch: str
    target_branch: str
    state: str
    web_url: str
    labels: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GitOpsProvider(ABC):
    """Provider behind the PR-raising step.

    Implementations raise ProviderError for every failure.
    """

    @abstractmethod
    def get_repository(self, organisation: str, name: str) -> RepositoryInfo:
        """Resolve ``organisation/name`` (nested groups allowed) to a repository with its clone URL."""

    @abstractmethod
    def find_merge_requests(
        self, repository: RepositoryInfo, source_branch: str, labels: list[str]
    ) -> list[MergeRequestInfo]:
        """Open requests from ``source_branch`` that carry every label in ``labels``."""

    @abstractmethod
    def create_merge_request(
        self,
        repository: RepositoryInfo,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        labels: list[str] | None = None,
    ) -> MergeRequestInfo:
        """Open a new request from ``source_branch`` into ``target_branch``."""

    @abstractmethod
    def update_merge_request(
        self, repository: RepositoryInfo, iid: int, title: str, description: str
    ) -> MergeRequestInfo:
        """Replace the title and description of request ``iid``."""
