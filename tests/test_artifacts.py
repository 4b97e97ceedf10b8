"""Tests for the exclusivity artifact store."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import yaml
from kubernetes.client import ApiException

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import APIError, DecodeError
from anthos_hub.k8s.artifacts import (
    APPLY_PATCH_CONTENT_TYPE,
    CR_COLLECTION,
    CR_PATH,
    CRD_COLLECTION,
    CRD_PATH,
    ClusterArtifactStore,
)
from anthos_hub.k8s.clients import KubernetesClientSet

CRD_MANIFEST = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: memberships.hub.gke.io
spec:
  group: hub.gke.io
  scope: Cluster
"""

CR_MANIFEST = """\
apiVersion: hub.gke.io/v1
kind: Membership
metadata:
  name: membership
spec:
  owner:
    id: //gkehub.googleapis.com/projects/proj1/locations/global/memberships/cluster-a
"""


class FakeApiClient:
    """In-memory stand-in for ``ApiClient.call_api`` keyed by absolute path."""

    def __init__(self):
        self.objects = {}
        self.calls = []

    def call_api(self, path, method, query_params=None, header_params=None, body=None, **kwargs):
        self.calls.append((method, path, query_params, header_params, body))
        if method == "GET":
            if path not in self.objects:
                raise ApiException(status=404, reason="Not Found")
            return self._response(self.objects[path])
        if method == "POST":
            self.objects[f"{path}/{body['metadata']['name']}"] = body
            return self._response(body)
        if method == "PATCH":
            self.objects[path] = body
            return self._response(body)
        if method == "DELETE":
            if path not in self.objects:
                raise ApiException(status=404, reason="Not Found")
            del self.objects[path]
            return self._response({"status": "Success"})
        raise AssertionError(f"unexpected method {method}")

    @staticmethod
    def _response(obj):
        return SimpleNamespace(data=json.dumps(obj).encode("utf-8"))


@pytest.fixture
def api_client():
    return FakeApiClient()


@pytest.fixture
def store(api_client):
    clients = KubernetesClientSet(api_client=api_client, core=MagicMock(), apps=MagicMock(), rbac=MagicMock())
    return ClusterArtifactStore(clients)


def test_read_empty_cluster(store, api_client):
    """Test a cluster without the CRD reads as an empty pair and skips the CR."""
    pair = store.read(CancelToken())
    assert pair.empty is True
    assert [(method, path) for method, path, *_ in api_client.calls] == [("GET", CRD_PATH)]


def test_install_then_read_round_trip(store):
    """Test installed manifests read back equivalent after decoding."""
    cancel = CancelToken()
    store.install(CRD_MANIFEST, CR_MANIFEST, cancel)

    pair = store.read(cancel)
    assert json.loads(pair.crd_manifest) == yaml.safe_load(CRD_MANIFEST)
    assert json.loads(pair.cr_manifest) == yaml.safe_load(CR_MANIFEST)


def test_install_creates_crd_before_cr(store, api_client):
    """Test creation goes to the collections, CRD first."""
    store.install(CRD_MANIFEST, CR_MANIFEST, CancelToken())
    posts = [path for method, path, *_ in api_client.calls if method == "POST"]
    assert posts == [CRD_COLLECTION, CR_COLLECTION]


def test_install_existing_uses_apply_patch(store, api_client):
    """Test existing artifacts are server-side applied."""
    api_client.objects[CRD_PATH] = {"metadata": {"name": "memberships.hub.gke.io", "resourceVersion": "7"}}

    store.install(CRD_MANIFEST, "", CancelToken())

    method, path, query, headers, body = api_client.calls[-1]
    assert (method, path) == ("PATCH", CRD_PATH)
    assert ("fieldManager", "anthos-hub") in query
    assert ("force", "true") in query
    assert headers["Content-Type"] == APPLY_PATCH_CONTENT_TYPE
    assert body["spec"]["group"] == "hub.gke.io"
    assert not any(method == "POST" for method, *_ in api_client.calls)


def test_install_strips_server_metadata(store, api_client):
    """Test read-back fields never reach the apply body."""
    manifest = CR_MANIFEST.replace(
        "  name: membership\n",
        "  name: membership\n  resourceVersion: \"42\"\n  uid: abc\n",
    ) + "status:\n  phase: Ready\n"

    store.install("", manifest, CancelToken())

    body = api_client.objects[CR_PATH]
    assert "resourceVersion" not in body["metadata"]
    assert "uid" not in body["metadata"]
    assert "status" not in body


def test_install_skips_empty_manifests(store, api_client):
    """Test nothing is sent for an empty pair."""
    store.install("", "", CancelToken())
    assert api_client.calls == []


def test_install_rejects_non_mapping(store):
    """Test a scalar manifest is a DecodeError."""
    with pytest.raises(DecodeError):
        store.install("just a string", "", CancelToken())


def test_read_propagates_other_errors(store):
    """Test only a 404 is folded into an empty manifest."""
    store.clients.api_client.call_api = MagicMock(side_effect=ApiException(status=403, reason="Forbidden"))
    with pytest.raises(APIError) as exc_info:
        store.read_crd(CancelToken())
    assert exc_info.value.status_code == 403


def test_delete_if_present_removes_cr_then_crd(store, api_client):
    """Test teardown order and removal."""
    cancel = CancelToken()
    store.install(CRD_MANIFEST, CR_MANIFEST, cancel)

    store.delete_if_present(cancel)

    deletes = [path for method, path, *_ in api_client.calls if method == "DELETE"]
    assert deletes == [CR_PATH, CRD_PATH]
    assert api_client.objects == {}


def test_delete_if_present_tolerates_absence(store):
    """Test deleting from a clean cluster succeeds."""
    store.delete_if_present(CancelToken())
