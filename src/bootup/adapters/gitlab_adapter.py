"""GitLab implementation of GitOpsProvider."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from bootup.clients.gitlab_client import GitLabClient
from bootup.core.exceptions import ProviderError
from bootup.core.models import RepositoryInfo
from bootup.interfaces.gitops_provider import GitOpsProvider, MergeRequestInfo
from bootup.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def _provider_call(action: str, **context: Any) -> Iterator[None]:
    """Re-raise anything escaping the block as ProviderError("Failed to <action>")."""
    try:
        yield
    except Exception as e:
        logger.error("gitlab_call_failed", action=action, error=str(e), **context)
        raise ProviderError(f"Failed to {action}: {e}") from e


def _timestamp(value: str | None) -> datetime | None:
    # GitLab returns ISO 8601 with a trailing Z
    return datetime.fromisoformat(value.replace("Z", "+00:00")) if value else None


def _merge_request(mr: Any) -> MergeRequestInfo:
    return MergeRequestInfo(
        id=mr.id,
        iid=mr.iid,
        title=mr.title,
        description=mr.description or "",
        source_branch=mr.source_branch,
        target_branch=mr.target_branch,
        state=mr.state,
        web_url=mr.web_url,
        labels=list(getattr(mr, "labels", None) or []),
        created_at=_timestamp(getattr(mr, "created_at", None)),
        updated_at=_timestamp(getattr(mr, "updated_at", None)),
    )


class GitLabAdapter(GitOpsProvider):
    """Raises upgrade merge requests against a GitLab-hosted dev environment.

    Repositories are addressed by their ``organisation/name`` path; nested
    groups stay in ``organisation``.
    """

    def __init__(self, url: str, token: str):
        with _provider_call("initialize GitLab adapter", url=url):
            self.client = GitLabClient(url=url, token=token)

    def get_repository(self, organisation: str, name: str) -> RepositoryInfo:
        path = f"{organisation}/{name}"
        with _provider_call(f"get repository {path}"):
            project = self.client.get_project(path)

        namespace, _, project_name = project.path_with_namespace.rpartition("/")
        return RepositoryInfo(
            host="",
            organisation=namespace,
            name=project_name,
            url=project.http_url_to_repo,
        )

    def find_merge_requests(
        self, repository: RepositoryInfo, source_branch: str, labels: list[str]
    ) -> list[MergeRequestInfo]:
        with _provider_call(f"find MRs from {source_branch} in {repository.full_name}"):
            found = self.client.list_merge_requests(
                repository.full_name,
                state="opened",
                source_branch=source_branch,
                labels=labels,
            )
        return [_merge_request(mr) for mr in found]

    def create_merge_request(
        self,
        repository: RepositoryInfo,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        labels: list[str] | None = None,
    ) -> MergeRequestInfo:
        with _provider_call(f"create MR from {source_branch}", repository=repository.full_name):
            created = self.client.create_merge_request(
                repository.full_name,
                source_branch,
                target_branch,
                title,
                description,
                labels=labels,
            )
        return _merge_request(created)

    def update_merge_request(
        self, repository: RepositoryInfo, iid: int, title: str, description: str
    ) -> MergeRequestInfo:
        with _provider_call(f"update MR {iid}", repository=repository.full_name):
            updated = self.client.update_merge_request(repository.full_name, iid, title, description)
        return _merge_request(updated)
