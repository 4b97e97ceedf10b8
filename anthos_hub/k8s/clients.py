"""Kubernetes client construction and error translation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from kubernetes import client, config
from kubernetes.client import ApiException
from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import APIError, HubError, NotFoundError
from anthos_hub.utils.helpers import truncate_output

CURRENT_CONTEXT = "current"
CLUSTER_UUID_NAMESPACE = "kube-system"
DEFAULT_REQUEST_TIMEOUT_S = 60.0


@dataclass(frozen=True)
class KubeAuth:
    """Which kubeconfig file and context to talk to."""

    config_file: Optional[str] = None
    context: str = CURRENT_CONTEXT

    @property
    def context_name(self) -> Optional[str]:
        if not self.context or self.context == CURRENT_CONTEXT:
            return None
        return self.context


@dataclass(frozen=True)
class KubernetesClientSet:
    api_client: client.ApiClient
    core: client.CoreV1Api
    apps: client.AppsV1Api
    rbac: client.RbacAuthorizationV1Api
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_S


def load_clients(auth: KubeAuth, request_timeout: float = DEFAULT_REQUEST_TIMEOUT_S) -> KubernetesClientSet:
    """Create Kubernetes API clients for one kubeconfig/context.

    The configuration is private to the returned client set, so two workflows
    targeting different clusters never share global client state.
    """

    cfg = client.Configuration()
    config.load_kube_config(
        config_file=auth.config_file,
        context=auth.context_name,
        client_configuration=cfg,
    )
    logger.debug(f"Loaded kubeconfig {auth.config_file or '~/.kube/config'} (context: {auth.context})")

    api_client = client.ApiClient(configuration=cfg)
    return KubernetesClientSet(
        api_client=api_client,
        core=client.CoreV1Api(api_client),
        apps=client.AppsV1Api(api_client),
        rbac=client.RbacAuthorizationV1Api(api_client),
        request_timeout=request_timeout,
    )


def api_error(exc: ApiException, what: str) -> HubError:
    """Translate a Kubernetes ApiException into this package's taxonomy."""
    body = truncate_output(str(exc.body or exc.reason or ""), 2000)
    if exc.status == 404:
        return NotFoundError(f"{what} not found")
    return APIError(exc.status or 0, body, f"{what}: bad status code {exc.status}: {body}")


def get_cluster_uuid(clients: KubernetesClientSet, cancel: CancelToken) -> str:
    """The cluster's identity is the UID of its kube-system namespace."""
    try:
        namespace = clients.core.read_namespace(
            CLUSTER_UUID_NAMESPACE,
            _request_timeout=cancel.request_timeout(clients.request_timeout),
        )
    except ApiException as exc:
        raise api_error(exc, f"namespace {CLUSTER_UUID_NAMESPACE}") from exc
    return namespace.metadata.uid
