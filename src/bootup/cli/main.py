"""Main CLI entry point for BOOTUP."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape

from bootup import __version__
from bootup.core.config import DEFAULT_CONFIG_PATH
from bootup.core.exceptions import BootUpError
from bootup.core.models import UpgradeResult, UpgradeState

if TYPE_CHECKING:
    from bootup.adapters.gitlab_adapter import GitLabAdapter
    from bootup.clients.kubernetes_client import DevEnvironmentSource
    from bootup.core.config import BootUpConfig
    from bootup.upgrade.orchestrator import UpgradeOrchestrator

console = Console(stderr=True)


class BootUpContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str):
        """Initialize context with config path.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self._config: BootUpConfig | None = None
        self._gitlab_token: str | None = None
        self._gitlab_adapter: GitLabAdapter | None = None
        self._dev_environment_source: DevEnvironmentSource | None = None

    @property
    def config(self) -> BootUpConfig:
        """Get or create config lazily."""
        if self._config is None:
            from bootup.core.config import BootUpConfig

            self._config = BootUpConfig.from_file(self.config_path)
        return self._config

    @property
    def gitlab_token(self) -> str:
        """Get GitLab token from the environment or AWS Secrets Manager (cached)."""
        if self._gitlab_token is None:
            from bootup.utils.secrets import resolve_gitlab_token

            self._gitlab_token = resolve_gitlab_token(self.config.gitlab)
        return self._gitlab_token

    @property
    def gitlab_adapter(self) -> GitLabAdapter:
        """Get or create GitLab adapter lazily."""
        if self._gitlab_adapter is None:
            from bootup.adapters.gitlab_adapter import GitLabAdapter

            self._gitlab_adapter = GitLabAdapter(
                url=self.config.gitlab.url,
                token=self.gitlab_token,
            )
        return self._gitlab_adapter

    @property
    def dev_environment_source(self) -> DevEnvironmentSource:
        """Get or create the dev environment reader lazily."""
        if self._dev_environment_source is None:
            from bootup.clients.kubernetes_client import DevEnvironmentSource

            k8s = self.config.kubernetes
            self._dev_environment_source = DevEnvironmentSource(
                namespace=k8s.dev_namespace,
                name=k8s.dev_environment,
                kubeconfig_path=k8s.kubeconfig,
                context=k8s.context,
            )
        return self._dev_environment_source

    def orchestrator(self) -> UpgradeOrchestrator:
        """Build an upgrade orchestrator wired to the real services."""
        from bootup.clients.git_cli import GitCli
        from bootup.upgrade.orchestrator import UpgradeOrchestrator

        return UpgradeOrchestrator(
            git=GitCli(),
            identity_source=self.dev_environment_source,
            provider_factory=lambda: self.gitlab_adapter,
            settings=self.config.upgrade,
            profile=self.config.profile,
            token_provider=lambda: self.gitlab_token,
        )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    help="Path to configuration file (defaults are used if it does not exist)",
)
@click.pass_context
def cli(ctx: click.Context, config: str) -> None:
    """Boot configuration UPgrader (BOOTUP) - upgrade GitOps boot config and version stream."""
    ctx.obj = BootUpContext(config_path=config)


def _print_result(result: UpgradeResult) -> None:
    if result.state == UpgradeState.NO_UPGRADE:
        console.print("[green]No upgrade available[/green]")
        return

    delta = result.delta
    if delta is not None and delta.is_empty:
        console.print("[yellow]No boot config upgrade available[/yellow]")
    elif delta is not None:
        console.print(
            f"Boot config upgrade v{delta.from_revision.version_label} -> "
            f"v{delta.to_revision.version_label} ({len(delta.commits)} commit(s))"
        )

    if result.state == UpgradeState.DRY_RUN_COMPLETE:
        console.print(f"Dry-run: version stream would move to {result.upgrade_commit}")
        for commit in delta.commits if delta is not None else []:
            marker = " (merge, will be skipped)" if commit.is_merge else ""
            console.print(f"  {commit.sha[:12]} {escape(commit.subject)}{marker}")
        return

    if result.replay_report is not None:
        for step in result.replay_report.steps:
            colour = "green" if step.action.value == "applied" else "yellow"
            console.print(f"  [{colour}]{step.action.value}[/{colour}] {step.sha[:12]} {escape(step.subject)}")

    console.print(f"[bold green]✓ Pull request raised:[/bold green] {result.pull_request_url}")


@cli.command()
@click.option(
    "--git-url",
    "-u",
    default=None,
    help="Override the Git URL of the boot config, ignoring the version stream defaults",
)
@click.option("--versions-repo", default=None, help="Version stream URL to upgrade from")
@click.option("--versions-ref", default=None, help="Version stream ref to upgrade from")
@click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(file_okay=False, exists=True),
    default=None,
    help="GitOps clone to upgrade (the dev environment repo is cloned if omitted)",
)
@click.option("--dry-run", is_flag=True, help="Report the upgrade without changing anything")
@click.pass_context
def upgrade(
    ctx: click.Context,
    git_url: str | None,
    versions_repo: str | None,
    versions_ref: str | None,
    directory: str | None,
    dry_run: bool,
) -> None:
    """Create a pull request upgrading the boot config and version stream ref."""
    from bootup.upgrade.orchestrator import UpgradeOptions
    from bootup.utils.logging import setup_logging

    bootup_ctx: BootUpContext = ctx.obj
    try:
        logging_config = bootup_ctx.config.logging
        setup_logging(
            level=logging_config.level,
            format=logging_config.format,
            output=logging_config.output,
        )

        options = UpgradeOptions(
            directory=Path(directory) if directory else None,
            git_url=git_url,
            versions_repo=versions_repo,
            versions_ref=versions_ref,
            dry_run=dry_run,
        )
        result = bootup_ctx.orchestrator().run(options)
    except BootUpError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    _print_result(result)


@cli.command("show-config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective configuration as YAML."""
    import yaml

    bootup_ctx: BootUpContext = ctx.obj
    try:
        data = bootup_ctx.config.to_dict()
    except BootUpError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
