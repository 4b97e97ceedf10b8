"""Raw access to the exclusivity CRD and CR installed in the cluster."""

from __future__ import annotations

from typing import Any

import yaml
from kubernetes.client import ApiException
from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import DecodeError, NotFoundError
from anthos_hub.hub.types import ExclusivityManifestPair
from anthos_hub.k8s.clients import KubernetesClientSet, api_error

CRD_COLLECTION = "/apis/apiextensions.k8s.io/v1/customresourcedefinitions"
CRD_PATH = f"{CRD_COLLECTION}/memberships.hub.gke.io"
CR_COLLECTION = "/apis/hub.gke.io/v1/memberships"
CR_PATH = f"{CR_COLLECTION}/membership"

FIELD_MANAGER = "anthos-hub"
APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"

# Server-populated metadata that an apply patch must not carry.
_SERVER_METADATA = ("resourceVersion", "uid", "creationTimestamp", "generation", "managedFields", "selfLink")


class ClusterArtifactStore:
    """
    Reads, installs and deletes the membership CRD and its CR.

    Objects are addressed by fixed absolute paths, so this talks to the
    API server through the generic ``ApiClient.call_api`` rather than a
    typed API class.
    """

    def __init__(self, clients: KubernetesClientSet) -> None:
        self.clients = clients

    def _call(
        self,
        method: str,
        path: str,
        cancel: CancelToken,
        body: Any = None,
        query: list[tuple[str, str]] | None = None,
        content_type: str = "application/json",
    ) -> str:
        try:
            response = self.clients.api_client.call_api(
                path,
                method,
                query_params=query or [],
                header_params={"Accept": "application/json", "Content-Type": content_type},
                body=body,
                auth_settings=["BearerToken"],
                _preload_content=False,
                _return_http_data_only=True,
                _request_timeout=cancel.request_timeout(self.clients.request_timeout),
            )
        except ApiException as exc:
            raise api_error(exc, f"{method} {path}") from exc

        data = response.data
        return data.decode("utf-8") if isinstance(data, bytes) else str(data or "")

    def _read(self, path: str, cancel: CancelToken) -> str:
        try:
            return self._call("GET", path, cancel)
        except NotFoundError:
            return ""

    def read_crd(self, cancel: CancelToken) -> str:
        """The membership CRD as raw JSON, or "" when the cluster has none."""
        return self._read(CRD_PATH, cancel)

    def read_cr(self, cancel: CancelToken) -> str:
        """The membership CR as raw JSON, or "" when it does not exist."""
        return self._read(CR_PATH, cancel)

    def read(self, cancel: CancelToken) -> ExclusivityManifestPair:
        """Read both artifacts; the CR is only looked up when the CRD exists."""
        crd = self.read_crd(cancel)
        cr = self.read_cr(cancel) if crd else ""
        logger.debug(f"Existing exclusivity artifacts: crd={'yes' if crd else 'no'} cr={'yes' if cr else 'no'}")
        return ExclusivityManifestPair(crd_manifest=crd, cr_manifest=cr)

    def install(self, crd_manifest: str, cr_manifest: str, cancel: CancelToken) -> None:
        """Create or server-side-apply each non-empty manifest, CRD first."""
        for what, manifest, path, collection in (
            ("CRD", crd_manifest, CRD_PATH, CRD_COLLECTION),
            ("CR", cr_manifest, CR_PATH, CR_COLLECTION),
        ):
            if not manifest:
                continue
            body = _parse_manifest(manifest, what)
            if self._read(path, cancel):
                self._call(
                    "PATCH",
                    path,
                    cancel,
                    body=body,
                    query=[("fieldManager", FIELD_MANAGER), ("force", "true")],
                    content_type=APPLY_PATCH_CONTENT_TYPE,
                )
                logger.info(f"Membership {what} patched")
            else:
                self._call("POST", collection, cancel, body=body)
                logger.info(f"Membership {what} created")

    def delete_if_present(self, cancel: CancelToken) -> None:
        """Best-effort removal of the CR and then the CRD; absence is fine."""
        for what, path in (("CR", CR_PATH), ("CRD", CRD_PATH)):
            try:
                self._call("DELETE", path, cancel)
                logger.info(f"Membership {what} deleted")
            except NotFoundError:
                logger.debug(f"Membership {what} already absent")


def _parse_manifest(manifest: str, what: str) -> dict[str, Any]:
    try:
        doc = yaml.safe_load(manifest)
    except yaml.YAMLError as exc:
        raise DecodeError(f"membership {what} manifest is not valid YAML: {exc}") from exc
    if not isinstance(doc, dict):
        raise DecodeError(f"membership {what} manifest is not a mapping")

    metadata = doc.get("metadata") or {}
    for key in _SERVER_METADATA:
        metadata.pop(key, None)
    doc.pop("status", None)
    return doc
