"""Configuration management for BOOTUP."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from bootup.core.exceptions import ConfigurationError
from bootup.core.profiles import InstallProfile, parse_profile

DEFAULT_CONFIG_PATH = "~/.bootup/config.yaml"


class KubernetesConfig(BaseModel):
    """Kubernetes configuration used to read the dev environment."""

    kubeconfig: str | None = None
    context: str | None = None
    dev_namespace: str = "jx"
    dev_environment: str = "dev"


class GitLabConfig(BaseModel):
    """GitLab configuration."""

    url: str = "https://gitlab.com"
    token_env_var: str = "GITLAB_TOKEN"
    token_secret: str | None = None  # AWS Secrets Manager secret name
    aws_region: str = "us-east-1"


class UpgradeConfig(BaseModel):
    """Upgrade behaviour configuration."""

    trunk_branch: str = "master"
    # Branch of the boot config repository fetched before replay
    boot_config_branch: str = "master"
    candidate_ref: str = "master"
    protected_paths: list[str] = Field(default_factory=lambda: ["OWNERS"])
    pr_branch_name: str = "bootup_upgrade"
    pr_title: str = "feat(config): upgrade configuration"
    pr_message: str = "Upgrade configuration"
    pr_labels: list[str] = Field(default_factory=lambda: ["updatebot"])
    requirements_file: str = "jx-requirements.yml"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    output: str = "stderr"


class BootUpConfig(BaseModel):
    """Main BOOTUP configuration."""

    profile: InstallProfile = InstallProfile.OSS
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    gitlab: GitLabConfig = Field(default_factory=GitLabConfig)
    upgrade: UpgradeConfig = Field(default_factory=UpgradeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("profile", mode="before")
    @classmethod
    def validate_profile(cls, value: Any) -> InstallProfile:
        """Reject unknown install profiles instead of falling back."""
        try:
            return parse_profile(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e

    @classmethod
    def from_file(cls, path: str | Path, required: bool = False) -> "BootUpConfig":
        """Load configuration from a YAML file; defaults apply for missing keys.

        A missing file yields defaults unless ``required``.

        Raises:
            ConfigurationError: If the file is missing when required, unreadable,
                not YAML, or does not validate
        """
        config_path = Path(path).expanduser()
        if not config_path.exists():
            if required:
                raise ConfigurationError(f"Configuration file not found: {config_path}")
            return cls()

        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration: {config_path} must hold a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible dict (printed by `bootup show-config`)."""
        return self.model_dump(mode="json")
