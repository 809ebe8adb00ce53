"""Kubernetes client for reading the dev environment."""

from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from bootup.core.exceptions import KubernetesError
from bootup.core.models import DevEnvironment
from bootup.utils.logging import get_logger

logger = get_logger(__name__)

ENVIRONMENT_GROUP = "jenkins.io"
ENVIRONMENT_VERSION = "v1"
ENVIRONMENT_PLURAL = "environments"


class DevEnvironmentSource:
    """Reads the dev Environment custom resource of a GitOps cluster."""

    def __init__(
        self,
        namespace: str = "jx",
        name: str = "dev",
        kubeconfig_path: str | None = None,
        context: str | None = None,
    ):
        """Initialize Kubernetes client.

        Args:
            namespace: Namespace holding the dev environment
            name: Name of the dev Environment resource
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        self.namespace = namespace
        self.name = name
        try:
            if kubeconfig_path:
                config.load_kube_config(config_file=kubeconfig_path, context=context)
            else:
                # Try to load from default location or in-cluster config
                try:
                    config.load_kube_config(context=context)
                except config.ConfigException:
                    config.load_incluster_config()

            self.custom_objects = client.CustomObjectsApi()
            logger.debug("k8s_client_initialized", context=context, namespace=namespace)

        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError("Failed to initialize Kubernetes client") from e

    def get_dev_environment(self) -> DevEnvironment:
        """Get pipeline identity and source repository from the dev environment.

        Returns:
            DevEnvironment

        Raises:
            KubernetesError: If the resource cannot be read or lacks team settings
        """
        try:
            logger.debug("getting_dev_environment", namespace=self.namespace, name=self.name)
            resource: dict[str, Any] = self.custom_objects.get_namespaced_custom_object(
                group=ENVIRONMENT_GROUP,
                version=ENVIRONMENT_VERSION,
                namespace=self.namespace,
                plural=ENVIRONMENT_PLURAL,
                name=self.name,
            )
        except ApiException as e:
            logger.error(
                "get_dev_environment_failed",
                namespace=self.namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(
                f"Failed to get dev environment in namespace {self.namespace}: {e.reason}"
            ) from e

        spec = resource.get("spec") or {}
        team_settings = spec.get("teamSettings") or {}
        username = team_settings.get("pipelineUsername", "")
        email = team_settings.get("pipelineUserEmail", "")
        if not username or not email:
            raise KubernetesError(
                f"Dev environment in namespace {self.namespace} has no pipeline user identity"
            )

        env = DevEnvironment(
            pipeline_username=username,
            pipeline_user_email=email,
            source_url=(spec.get("source") or {}).get("url", ""),
        )
        logger.info(
            "dev_environment_retrieved",
            namespace=self.namespace,
            pipeline_username=env.pipeline_username,
            source_url=env.source_url,
        )
        return env
