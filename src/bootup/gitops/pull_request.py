"""Push a working tree and raise (or refresh) a merge request for it."""

from dataclasses import dataclass, field
from pathlib import Path

from bootup.core.exceptions import BootUpError, ProviderError
from bootup.core.models import RepositoryInfo
from bootup.interfaces.git_service import GitService
from bootup.interfaces.gitops_provider import GitOpsProvider, MergeRequestInfo
from bootup.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PullRequestDetails:
    """What the pull request should look like."""

    branch_name: str
    title: str
    message: str


@dataclass
class PullRequestFilter:
    """Identifies an existing pull request that may be reused."""

    labels: list[str] = field(default_factory=list)


def push_and_create_pull_request(
    directory: Path,
    repository: RepositoryInfo,
    base: str,
    details: PullRequestDetails,
    pr_filter: PullRequestFilter,
    git: GitService,
    provider: GitOpsProvider,
) -> MergeRequestInfo:
    """Push HEAD to ``details.branch_name`` and open a merge request into ``base``.

    If an open merge request from the same branch already carries every
    label in ``pr_filter``, the branch is force-pushed and that request is
    updated instead of opening a second one.

    Args:
        directory: Local clone to push from
        repository: Upstream repository
        base: Target branch
        details: Branch name, title and description
        pr_filter: Labels identifying a reusable request
        git: Git service
        provider: Code-hosting provider

    Returns:
        The created or updated merge request

    Raises:
        ProviderError: If pushing or the provider call fails
    """
    logger.info(
        "raising_pull_request",
        repository=repository.full_name,
        base=base,
        branch=details.branch_name,
    )

    existing = provider.find_merge_requests(repository, details.branch_name, pr_filter.labels)

    try:
        git.push(directory, details.branch_name, force=True)
    except BootUpError as e:
        raise ProviderError(
            f"Failed to push {details.branch_name} to {repository.full_name}: {e}"
        ) from e

    if existing:
        mr = provider.update_merge_request(
            repository, existing[0].iid, details.title, details.message
        )
        logger.info("pull_request_updated", mr_url=mr.web_url, mr_iid=mr.iid)
        return mr

    mr = provider.create_merge_request(
        repository,
        source_branch=details.branch_name,
        target_branch=base,
        title=details.title,
        description=details.message,
        labels=pr_filter.labels,
    )
    logger.info("pull_request_created", mr_url=mr.web_url, mr_iid=mr.iid)
    return mr
