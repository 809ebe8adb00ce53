"""Lookup of the GitLab token used to raise upgrade merge requests."""

import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bootup.core.config import GitLabConfig
from bootup.core.exceptions import ConfigurationError, SecretsError
from bootup.utils.logging import get_logger

logger = get_logger(__name__)


class SecretsManager:
    """Reads plain-text secrets from AWS Secrets Manager."""

    def __init__(self, region: str = "us-east-1"):
        self.region = region
        self.client = boto3.client("secretsmanager", region_name=region)

    def get_secret(self, secret_name: str) -> str:
        """Return the secret's value, decoding binary secrets as UTF-8.

        Raises:
            SecretsError: If the secret is missing or cannot be read
        """
        logger.debug("reading_secret", secret_name=secret_name, region=self.region)
        try:
            response = self.client.get_secret_value(SecretId=secret_name)
        except ClientError as e:
            code = e.response["Error"]["Code"]
            logger.error("secret_read_failed", secret_name=secret_name, error_code=code)
            if code == "ResourceNotFoundException":
                raise SecretsError(f"Secret not found: {secret_name}") from e
            raise SecretsError(f"Failed to retrieve secret {secret_name}: {code}") from e
        except BotoCoreError as e:
            logger.error("secret_read_failed", secret_name=secret_name, error=str(e))
            raise SecretsError(f"Failed to retrieve secret {secret_name}: {e}") from e

        value = response.get("SecretString")
        if value is None:
            value = response["SecretBinary"].decode("utf-8")
        logger.info("secret_read", secret_name=secret_name)
        return value


def resolve_gitlab_token(config: GitLabConfig) -> str:
    """Find the GitLab token.

    ``config.token_env_var`` wins when set and non-blank; otherwise
    ``config.token_secret`` is read from Secrets Manager in
    ``config.aws_region``. Surrounding whitespace is stripped either way.

    Raises:
        ConfigurationError: If neither source is configured
        SecretsError: If the configured secret cannot be read
    """
    from_env = os.environ.get(config.token_env_var, "").strip()
    if from_env:
        logger.debug("gitlab_token_from_env", env_var=config.token_env_var)
        return from_env

    if not config.token_secret:
        raise ConfigurationError(
            f"No GitLab token: set {config.token_env_var} or gitlab.token_secret in the config file"
        )

    logger.debug("gitlab_token_from_secret", secret_name=config.token_secret)
    return SecretsManager(region=config.aws_region).get_secret(config.token_secret).strip()
