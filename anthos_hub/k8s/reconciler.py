"""Apply connect agent manifests to a live cluster."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import yaml
from kubernetes.client import ApiException
from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import DecodeError, step
from anthos_hub.hub.connect import DEFAULT_NAMESPACE
from anthos_hub.hub.types import ConnectAgentManifestSet, ConnectAgentResource
from anthos_hub.k8s.clients import KubernetesClientSet, api_error
from anthos_hub.utils.helpers import encode_secret_value

VERSION_LABEL = "version"
CREDENTIALS_SECRET_NAME = "creds-gcp"
CREDENTIALS_SECRET_KEY = "creds-gcp"

HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE = 422


class ObjectKind(str, Enum):
    """Kinds the reconciler knows how to apply."""

    NAMESPACE = "Namespace"
    SERVICE_ACCOUNT = "ServiceAccount"
    ROLE = "Role"
    ROLE_BINDING = "RoleBinding"
    CLUSTER_ROLE = "ClusterRole"
    CLUSTER_ROLE_BINDING = "ClusterRoleBinding"
    SERVICE = "Service"
    DEPLOYMENT = "Deployment"
    SECRET = "Secret"


class ReconcileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    RECREATED = "recreated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass
class KubeObject:
    """A decoded manifest: identity plus the body sent to the API server."""

    kind: str
    name: str
    namespace: Optional[str]
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def labels(self) -> dict[str, str]:
        return (self.body.get("metadata") or {}).get("labels") or {}

    @property
    def version(self) -> Optional[str]:
        return _label_value(self.labels.get(VERSION_LABEL))

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


@dataclass
class ReconcileResult:
    kind: str
    name: str
    namespace: Optional[str]
    action: ReconcileAction


@dataclass(frozen=True)
class KindStrategy:
    """
    How one kind maps onto the typed Kubernetes client.

    Method names follow the client's convention, e.g. ``read_namespace``
    or ``replace_namespaced_deployment`` on ``clients.apps``.
    """

    api: str
    resource: str
    namespaced: bool = True
    versioned: bool = True
    recreate_on_invalid: bool = False

    def _call(
        self,
        clients: KubernetesClientSet,
        verb: str,
        obj: KubeObject,
        cancel: CancelToken,
        with_name: bool = True,
        with_body: bool = False,
    ) -> Any:
        scope = "namespaced_" if self.namespaced else ""
        method = getattr(getattr(clients, self.api), f"{verb}_{scope}{self.resource}")
        kwargs: dict[str, Any] = {"_request_timeout": cancel.request_timeout(clients.request_timeout)}
        if with_name:
            kwargs["name"] = obj.name
        if self.namespaced:
            kwargs["namespace"] = obj.namespace
        if with_body:
            kwargs["body"] = obj.body
        return method(**kwargs)

    def read(self, clients: KubernetesClientSet, obj: KubeObject, cancel: CancelToken) -> Any:
        return self._call(clients, "read", obj, cancel)

    def create(self, clients: KubernetesClientSet, obj: KubeObject, cancel: CancelToken) -> Any:
        return self._call(clients, "create", obj, cancel, with_name=False, with_body=True)

    def replace(self, clients: KubernetesClientSet, obj: KubeObject, cancel: CancelToken) -> Any:
        return self._call(clients, "replace", obj, cancel, with_body=True)

    def delete(self, clients: KubernetesClientSet, obj: KubeObject, cancel: CancelToken) -> Any:
        return self._call(clients, "delete", obj, cancel)


STRATEGIES: dict[ObjectKind, KindStrategy] = {
    ObjectKind.NAMESPACE: KindStrategy("core", "namespace", namespaced=False),
    ObjectKind.SERVICE_ACCOUNT: KindStrategy("core", "service_account"),
    ObjectKind.ROLE: KindStrategy("rbac", "role"),
    ObjectKind.ROLE_BINDING: KindStrategy("rbac", "role_binding"),
    ObjectKind.CLUSTER_ROLE: KindStrategy("rbac", "cluster_role", namespaced=False),
    ObjectKind.CLUSTER_ROLE_BINDING: KindStrategy("rbac", "cluster_role_binding", namespaced=False),
    ObjectKind.SERVICE: KindStrategy("core", "service", recreate_on_invalid=True),
    ObjectKind.DEPLOYMENT: KindStrategy("apps", "deployment", recreate_on_invalid=True),
    ObjectKind.SECRET: KindStrategy("core", "secret", versioned=False),
}


def strategy_for(kind: str) -> Optional[KindStrategy]:
    try:
        return STRATEGIES[ObjectKind(kind)]
    except ValueError:
        return None


def decode_manifest(manifest: str, default_namespace: str) -> KubeObject:
    """Decode one manifest; raises DecodeError when it is not a usable object."""
    try:
        doc = yaml.safe_load(manifest)
    except yaml.YAMLError as exc:
        raise DecodeError(f"manifest is not valid YAML: {exc}") from exc

    if not isinstance(doc, dict):
        raise DecodeError("manifest is not a mapping")
    for key in ("apiVersion", "kind"):
        if not doc.get(key):
            raise DecodeError(f"Object '{key}' is missing in manifest")
    metadata = doc.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise DecodeError("Object 'metadata' is not a mapping")
    if not metadata.get("name"):
        raise DecodeError("Object 'metadata.name' is missing in manifest")

    labels = metadata.get("labels")
    if isinstance(labels, dict):
        metadata["labels"] = {key: _label_value(value) for key, value in labels.items()}

    kind = doc["kind"]
    namespace = metadata.get("namespace")
    strategy = strategy_for(kind)
    if strategy is not None and strategy.namespaced and not namespace:
        namespace = default_namespace
        metadata["namespace"] = namespace
        doc["metadata"] = metadata
    elif strategy is not None and not strategy.namespaced:
        namespace = None

    return KubeObject(kind=kind, name=metadata["name"], namespace=namespace, body=doc)


def credentials_secret(key_material: str, namespace: str) -> KubeObject:
    """The Secret carrying the service account key for the connect agent."""
    body = {
        "apiVersion": "v1",
        "kind": ObjectKind.SECRET.value,
        "metadata": {"name": CREDENTIALS_SECRET_NAME, "namespace": namespace},
        "data": {CREDENTIALS_SECRET_KEY: encode_secret_value(key_material)},
    }
    return KubeObject(
        kind=ObjectKind.SECRET.value,
        name=CREDENTIALS_SECRET_NAME,
        namespace=namespace,
        body=body,
    )


class ManifestReconciler:
    """
    Create-or-update connect agent objects in manifest order.

    The ``version`` label is the only staleness signal: a live object with
    the same label is left alone. Secrets carry no version and are always
    re-applied. Order is never changed since later objects depend on
    earlier ones (namespace before namespaced objects).
    """

    def __init__(
        self,
        clients: KubernetesClientSet,
        namespace: str = DEFAULT_NAMESPACE,
        service_account_key: str = "",
    ) -> None:
        self.clients = clients
        self.namespace = namespace
        self.service_account_key = service_account_key

    def reconcile(self, manifests: ConnectAgentManifestSet, cancel: CancelToken) -> list[ReconcileResult]:
        results: list[ReconcileResult] = []
        for index, resource in enumerate(manifests.manifest):
            with step(f"manifest {index} ({resource.kind or 'unknown kind'})"):
                obj = self.decode(resource)
                action = self.reconcile_object(obj, cancel)
            results.append(ReconcileResult(obj.kind, obj.name, obj.namespace, action))
        return results

    def decode(self, resource: ConnectAgentResource) -> KubeObject:
        """
        Decode a manifest, synthesising the credentials Secret for the
        placeholder the Hub emits in its place. Any other decode failure,
        including malformed Secret YAML, is raised.
        """
        try:
            return decode_manifest(resource.manifest, self.namespace)
        except DecodeError:
            if resource.kind != ObjectKind.SECRET.value or not is_placeholder_manifest(resource.manifest):
                raise
        if not self.service_account_key:
            raise DecodeError("placeholder Secret needs service account key material")
        logger.debug(f"Synthesising {CREDENTIALS_SECRET_NAME} secret in namespace {self.namespace}")
        return credentials_secret(self.service_account_key, self.namespace)

    def reconcile_object(self, obj: KubeObject, cancel: CancelToken) -> ReconcileAction:
        strategy = strategy_for(obj.kind)
        if strategy is None:
            logger.warning(f"Skipping {obj}: kind not handled")
            return ReconcileAction.SKIPPED

        try:
            live = strategy.read(self.clients, obj, cancel)
        except ApiException as exc:
            if exc.status != HTTP_NOT_FOUND:
                raise api_error(exc, f"getting {obj}") from exc
            self._create(strategy, obj, cancel)
            return ReconcileAction.CREATED

        if strategy.versioned and _live_version(live) == obj.version:
            logger.debug(f"{obj} is up to date (version {obj.version})")
            return ReconcileAction.UNCHANGED

        try:
            strategy.replace(self.clients, obj, cancel)
        except ApiException as exc:
            if not (strategy.recreate_on_invalid and exc.status == HTTP_UNPROCESSABLE):
                raise api_error(exc, f"updating {obj}") from exc
            logger.info(f"{obj} rejected update as invalid, recreating it")
            try:
                strategy.delete(self.clients, obj, cancel)
            except ApiException as delete_exc:
                raise api_error(delete_exc, f"deleting {obj}") from delete_exc
            self._create(strategy, obj, cancel)
            return ReconcileAction.RECREATED

        if strategy.versioned:
            logger.info(f"Updated {obj} (version {_live_version(live)} -> {obj.version})")
        else:
            logger.info(f"Updated {obj}")
        return ReconcileAction.UPDATED

    def _create(self, strategy: KindStrategy, obj: KubeObject, cancel: CancelToken) -> None:
        try:
            strategy.create(self.clients, obj, cancel)
        except ApiException as exc:
            raise api_error(exc, f"creating {obj}") from exc
        logger.info(f"Created {obj}")


def _live_version(live: Any) -> Optional[str]:
    metadata = getattr(live, "metadata", None)
    labels = getattr(metadata, "labels", None) or {}
    return _label_value(labels.get(VERSION_LABEL))


def _label_value(value: Any) -> Optional[str]:
    # unquoted YAML labels such as `version: 3` load as numbers
    return None if value is None else str(value)


def is_placeholder_manifest(manifest: str) -> bool:
    """True for a blank object, or one missing apiVersion, kind or metadata.name."""
    try:
        doc = yaml.safe_load(manifest)
    except yaml.YAMLError:
        return False
    if doc is None:
        return True
    if not isinstance(doc, dict):
        return False
    metadata = doc.get("metadata") or {}
    if not isinstance(metadata, dict):
        return False
    return not (doc.get("apiVersion") and doc.get("kind") and metadata.get("name"))
