"""Git command-line wrapper implementing GitService."""

import os
import subprocess
from pathlib import Path
from urllib.parse import quote, urlparse, urlunparse

from bootup.core.exceptions import ConflictKind, GitError, ReplayConflict
from bootup.core.models import CommitRecord, GitIdentity, RepositoryInfo
from bootup.interfaces.git_service import GitService
from bootup.utils.logging import get_logger

logger = get_logger(__name__)

MERGE_WITHOUT_MAINLINE = "is a merge but no -m option was given"

_FIELD_SEP = "\x1f"


def parse_git_url(url: str) -> RepositoryInfo:
    """Parse a git remote URL into host, organisation and name.

    Supports ``https://host/org/name.git``, ``ssh://git@host/org/name.git``
    and scp-like ``git@host:org/name.git``. Nested groups stay in the
    organisation (``group/subgroup``). Credentials are dropped.

    Raises:
        GitError: If the URL has no organisation/name path
    """
    raw = url.strip()
    if "://" not in raw and ":" in raw:
        # scp-like syntax
        user_host, _, path = raw.partition(":")
        host = user_host.rpartition("@")[2]
        clean_url = raw
    else:
        parsed = urlparse(raw)
        host = parsed.hostname or ""
        path = parsed.path
        netloc = host if parsed.port is None else f"{host}:{parsed.port}"
        clean_url = urlunparse(parsed._replace(netloc=netloc))

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    organisation, _, name = path.rpartition("/")
    if not organisation or not name:
        raise GitError(f"Cannot determine organisation and name from git URL {url}")

    return RepositoryInfo(host=host, organisation=organisation, name=name, url=clean_url)


def create_authenticated_url(url: str, username: str, token: str) -> str:
    """Embed credentials in an https clone URL.

    Non-http URLs are returned unchanged.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not token:
        return url
    host = parsed.hostname or ""
    if parsed.port is not None:
        host = f"{host}:{parsed.port}"
    netloc = f"{quote(username, safe='')}:{quote(token, safe='')}@{host}"
    return urlunparse(parsed._replace(netloc=netloc))


def _redact(args: list[str]) -> str:
    """Render a command for logging without embedded credentials."""
    rendered = []
    for arg in args:
        parsed = urlparse(arg)
        if parsed.scheme in ("http", "https") and parsed.password:
            arg = urlunparse(parsed._replace(netloc=parsed.hostname or ""))
        rendered.append(arg)
    return " ".join(rendered)


class GitCli(GitService):
    """GitService backed by the ``git`` binary.

    Every invocation carries the run's identity via ``-c user.name`` and
    ``-c user.email``; no git config file is modified.
    """

    def __init__(self, identity: GitIdentity | None = None, git_binary: str = "git"):
        """Initialize git wrapper.

        Args:
            identity: Author identity for commits (optional for read-only use)
            git_binary: Path to the git executable
        """
        self.identity = identity
        self.git_binary = git_binary
        logger.debug("git_cli_initialized", identity=identity.name if identity else None)

    def with_identity(self, identity: GitIdentity) -> "GitCli":
        """Return a wrapper bound to ``identity``."""
        return GitCli(identity=identity, git_binary=self.git_binary)

    def _run_command(
        self,
        args: list[str],
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run git command.

        Args:
            args: Command arguments
            cwd: Working directory
            check: Raise exception on non-zero exit code

        Returns:
            CompletedProcess instance

        Raises:
            GitError: If command fails
        """
        cmd = [self.git_binary]
        if self.identity:
            cmd.extend(["-c", f"user.name={self.identity.name}"])
            cmd.extend(["-c", f"user.email={self.identity.email}"])
        cmd.extend(args)

        logger.debug("running_git_command", command=_redact(args), cwd=str(cwd) if cwd else None)

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=check,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
            return result

        except subprocess.CalledProcessError as e:
            logger.error(
                "git_command_failed",
                command=_redact(args),
                returncode=e.returncode,
                stderr=e.stderr,
            )
            raise GitError(
                f"git {_redact(args)} failed: {(e.stderr or e.stdout or '').strip()}",
                command=args,
                returncode=e.returncode,
                stderr=e.stderr or "",
            ) from e
        except FileNotFoundError as e:
            logger.error("git_not_found", git_binary=self.git_binary)
            raise GitError("git command not found. Please install git.") from e

    def clone(self, url: str, directory: Path) -> None:
        """Clone ``url`` into ``directory``."""
        self._run_command(["clone", url, str(directory)])
        logger.info("repository_cloned", directory=str(directory))

    def clone_bare(self, directory: Path, url: str) -> None:
        """Bare-clone ``url`` into ``directory``."""
        self._run_command(["clone", "--bare", url, str(directory)])
        logger.info("repository_cloned_bare", directory=str(directory))

    def create_branch(self, directory: Path, branch: str) -> None:
        """Create ``branch`` at HEAD."""
        self._run_command(["branch", branch], cwd=directory)

    def checkout(self, directory: Path, ref: str) -> None:
        """Check out ``ref``."""
        self._run_command(["checkout", ref], cwd=directory)

    def delete_local_branch(self, directory: Path, branch: str) -> None:
        """Force-delete a local branch."""
        self._run_command(["branch", "-D", branch], cwd=directory)

    def fetch_branch(self, directory: Path, url: str, ref: str) -> None:
        """Fetch ``ref`` from ``url``."""
        self._run_command(["fetch", url, ref], cwd=directory)

    def get_commit_for_tag(self, directory: Path, tag: str) -> str:
        """Get the commit a tag points to."""
        result = self._run_command(["rev-list", "-n", "1", f"refs/tags/{tag}"], cwd=directory)
        return result.stdout.strip()

    def rev_parse(self, directory: Path, ref: str) -> str:
        """Resolve ``ref`` to a full commit sha, trying ``origin/<ref>`` second."""
        for candidate in (ref, f"origin/{ref}"):
            result = self._run_command(
                ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"],
                cwd=directory,
                check=False,
            )
            if result.returncode == 0 and result.stdout.strip():
                return result.stdout.strip()
        raise GitError(f"Unknown revision {ref} in {directory}", command=["rev-parse", ref])

    def describe_exact_tag(self, directory: Path, sha: str) -> str | None:
        """Get the tag pointing at ``sha``, if any."""
        result = self._run_command(
            ["describe", "--tags", "--exact-match", sha], cwd=directory, check=False
        )
        tag = result.stdout.strip()
        return tag if result.returncode == 0 and tag else None

    def get_commits_between(self, directory: Path, from_sha: str, to_sha: str) -> list[CommitRecord]:
        """List commits in ``from_sha..to_sha``, newest first."""
        result = self._run_command(
            [
                "log",
                "--topo-order",
                f"--format=%H{_FIELD_SEP}%P{_FIELD_SEP}%s",
                f"{from_sha}..{to_sha}",
            ],
            cwd=directory,
        )
        commits = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            sha, parents, subject = (line.split(_FIELD_SEP, 2) + ["", ""])[:3]
            commits.append(
                CommitRecord(sha=sha, subject=subject, is_merge=len(parents.split()) > 1)
            )
        logger.debug("commits_listed", from_sha=from_sha, to_sha=to_sha, count=len(commits))
        return commits

    def _is_merge_commit(self, directory: Path, sha: str) -> bool:
        result = self._run_command(
            ["rev-list", "--parents", "-n", "1", sha], cwd=directory, check=False
        )
        # "<sha> <parent1> <parent2>..."
        return result.returncode == 0 and len(result.stdout.split()) > 2

    def cherry_pick(self, directory: Path, sha: str, strategy_option: str = "theirs") -> None:
        """Cherry-pick ``sha`` onto HEAD.

        Raises:
            ReplayConflict: With MERGE_COMMIT_NO_PARENT_SELECTED for merge
                commits, OTHER for anything else
        """
        result = self._run_command(
            ["cherry-pick", f"--strategy-option={strategy_option}", sha],
            cwd=directory,
            check=False,
        )
        if result.returncode == 0:
            return

        stderr = (result.stderr or result.stdout or "").strip()
        if self._is_merge_commit(directory, sha) or MERGE_WITHOUT_MAINLINE in stderr:
            kind = ConflictKind.MERGE_COMMIT_NO_PARENT_SELECTED
        else:
            kind = ConflictKind.OTHER
        raise ReplayConflict(f"cherry-pick of {sha} failed: {stderr}", sha=sha, kind=kind, stderr=stderr)

    def checkout_paths_from_commit(self, directory: Path, sha: str, paths: list[str]) -> None:
        """Reset ``paths`` to their state at ``sha``."""
        present = []
        for path in paths:
            exists = self._run_command(
                ["cat-file", "-e", f"{sha}:{path}"], cwd=directory, check=False
            )
            if exists.returncode == 0:
                present.append(path)
            else:
                self._run_command(
                    ["rm", "-r", "-f", "--quiet", "--ignore-unmatch", "--", path], cwd=directory
                )
        if present:
            self._run_command(["checkout", sha, "--", *present], cwd=directory)

    def commit_files(self, directory: Path, message: str, paths: list[str]) -> bool:
        """Stage and commit ``paths``; False when nothing changed."""
        on_disk = [p for p in paths if (directory / p).exists()]
        if on_disk:
            self._run_command(["add", "--", *on_disk], cwd=directory)

        staged = self._run_command(
            ["diff", "--cached", "--name-only", "--relative", "--", *paths], cwd=directory
        ).stdout.splitlines()
        if not staged:
            logger.debug("nothing_to_commit", paths=paths)
            return False

        self._run_command(["commit", "-m", message, "--", *staged], cwd=directory)
        logger.info("files_committed", message=message, paths=staged)
        return True

    def head_sha(self, directory: Path) -> str:
        """Get the sha of HEAD."""
        return self._run_command(["rev-parse", "HEAD"], cwd=directory).stdout.strip()

    def repository_info(self, directory: Path) -> RepositoryInfo:
        """Describe the ``origin`` remote."""
        url = self._run_command(["remote", "get-url", "origin"], cwd=directory).stdout.strip()
        return parse_git_url(url)

    def push(self, directory: Path, remote_branch: str, force: bool = False) -> None:
        """Push HEAD to ``origin/<remote_branch>``."""
        args = ["push", "origin", f"HEAD:refs/heads/{remote_branch}"]
        if force:
            args.insert(1, "--force")
        self._run_command(args, cwd=directory)
        logger.info("branch_pushed", remote_branch=remote_branch, force=force)
