"""GitLab API client for the upgrade merge request."""

from typing import Any

import gitlab
from gitlab.exceptions import GitlabError

from bootup.core.exceptions import ProviderError
from bootup.utils.logging import get_logger
from bootup.utils.retry import is_transient_gitlab_error, retry_on_exception

logger = get_logger(__name__)


class GitLabClient:
    """Thin wrapper over python-gitlab.

    Projects are addressed by path (``group/subgroup/project``). Every
    GitlabError leaves this class as ProviderError; project lookups are
    retried on transient failures.
    """

    def __init__(self, url: str, token: str):
        """Connect and authenticate.

        Args:
            url: GitLab instance URL
            token: Private access token

        Raises:
            ProviderError: If the token is rejected
        """
        self.url = url
        self.gl = gitlab.Gitlab(url, private_token=token)

        try:
            self.gl.auth()
        except GitlabError as e:
            logger.error("gitlab_auth_failed", url=url, error=str(e))
            raise ProviderError(f"Failed to authenticate with GitLab: {e}") from e
        logger.debug("gitlab_client_initialized", url=url)

    @retry_on_exception(exceptions=(GitlabError,), max_attempts=3, when=is_transient_gitlab_error)
    def _fetch_project(self, project_path: str | int) -> Any:
        return self.gl.projects.get(project_path)

    def get_project(self, project_path: str | int) -> Any:
        """Look up a project by path or numeric id.

        Raises:
            ProviderError: If the project cannot be read
        """
        try:
            project = self._fetch_project(project_path)
        except GitlabError as e:
            logger.error("get_project_failed", project=project_path, error=str(e))
            raise ProviderError(f"Failed to get project {project_path}: {e}") from e
        logger.debug("project_retrieved", project=project_path)
        return project

    def list_merge_requests(
        self,
        project_path: str | int,
        state: str = "opened",
        source_branch: str | None = None,
        labels: list[str] | None = None,
    ) -> list[Any]:
        """List merge requests, optionally from one branch and carrying all ``labels``.

        Raises:
            ProviderError: If listing fails
        """
        project = self.get_project(project_path)

        query: dict[str, Any] = {"state": state, "get_all": True}
        if source_branch:
            query["source_branch"] = source_branch
        if labels:
            query["labels"] = labels

        try:
            mrs = project.mergerequests.list(**query)
        except GitlabError as e:
            logger.error("list_merge_requests_failed", project=project_path, error=str(e))
            raise ProviderError(f"Failed to list MRs for {project_path}: {e}") from e

        logger.debug(
            "merge_requests_listed",
            project=project_path,
            source_branch=source_branch,
            count=len(mrs),
        )
        return mrs

    def create_merge_request(
        self,
        project_path: str | int,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        labels: list[str] | None = None,
    ) -> Any:
        """Open a merge request.

        Raises:
            ProviderError: If creation fails (e.g. one is already open)
        """
        project = self.get_project(project_path)

        payload: dict[str, Any] = {
            "source_branch": source_branch,
            "target_branch": target_branch,
            "title": title,
            "description": description,
        }
        if labels:
            payload["labels"] = labels

        try:
            mr = project.mergerequests.create(payload)
        except GitlabError as e:
            logger.error("create_merge_request_failed", source_branch=source_branch, error=str(e))
            raise ProviderError(f"Failed to create MR from {source_branch}: {e}") from e

        logger.info("merge_request_created", mr_iid=mr.iid, mr_url=mr.web_url)
        return mr

    def update_merge_request(
        self, project_path: str | int, mr_iid: int, title: str, description: str
    ) -> Any:
        """Replace title and description of an open merge request.

        Raises:
            ProviderError: If the request cannot be read or saved
        """
        project = self.get_project(project_path)

        try:
            mr = project.mergerequests.get(mr_iid)
            mr.title = title
            mr.description = description
            mr.save()
        except GitlabError as e:
            logger.error("update_merge_request_failed", mr_iid=mr_iid, error=str(e))
            raise ProviderError(f"Failed to update MR {mr_iid}: {e}") from e

        logger.info("merge_request_updated", mr_iid=mr_iid, mr_url=mr.web_url)
        return mr
