"""Integration test fixtures and configuration."""

import shutil
import subprocess
from pathlib import Path

import pytest

from bootup.core.models import GitIdentity

IDENTITY = GitIdentity(name="jenkins-x-bot", email="jenkins-x@example.com")


@pytest.fixture
def skip_if_no_git():
    """Skip test if the git binary is not available."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")


def git(directory: Path, *args: str) -> str:
    """Run git in ``directory`` as the test identity and return stdout."""
    result = subprocess.run(
        [
            "git",
            "-c",
            f"user.name={IDENTITY.name}",
            "-c",
            f"user.email={IDENTITY.email}",
            "-c",
            "commit.gpgsign=false",
            "-c",
            "tag.gpgsign=false",
            *args,
        ],
        cwd=directory,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(directory: Path, path: str, content: str, message: str) -> str:
    """Write and commit one file, returning the new sha."""
    target = directory / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    git(directory, "add", path)
    git(directory, "commit", "-q", "-m", message)
    return git(directory, "rev-parse", "HEAD")


@pytest.fixture
def boot_config_repo(tmp_path: Path, skip_if_no_git) -> dict[str, str]:
    """Build a boot config repository with tags and a merge commit.

    History on master::

        base (v1.0.10) - feature - merge(feature2) - release (v1.0.12)

    Returns a mapping of commit names to shas plus the repository ``path``.
    """
    repo = tmp_path / "boot-config"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "master")

    shas = {"path": str(repo)}
    commit_file(repo, "env/values.yaml", "version: 1\n", "chore: initial config")
    shas["base"] = commit_file(repo, "OWNERS", "approvers:\n- upstream\n", "chore: add OWNERS")
    git(repo, "tag", "-a", "v1.0.10", "-m", "1.0.10")

    shas["feature"] = commit_file(repo, "env/values.yaml", "version: 2\n", "feat: bump values")

    git(repo, "checkout", "-q", "-b", "feature2")
    shas["side"] = commit_file(repo, "env/extra.yaml", "extra: true\n", "feat: add extra values")
    git(repo, "checkout", "-q", "master")
    git(repo, "merge", "-q", "--no-ff", "-m", "Merge branch feature2", "feature2")
    shas["merge"] = git(repo, "rev-parse", "HEAD")

    shas["release"] = commit_file(repo, "OWNERS", "approvers:\n- upstream\n- release-bot\n", "chore: release 1.0.12")
    git(repo, "tag", "-a", "v1.0.12", "-m", "1.0.12")
    git(repo, "branch", "release")
    return shas
