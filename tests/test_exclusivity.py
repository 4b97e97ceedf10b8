"""Tests for exclusivity validation and manifest generation."""

import httpx
import pytest

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import APIError, ExclusivityConflictError
from anthos_hub.hub.client import MembershipAPIClient
from anthos_hub.hub.exclusivity import ExclusivityNegotiator

CR_MANIFEST = "apiVersion: hub.gke.io/v1\nkind: Membership\nmetadata:\n  name: membership\n"
CRD_MANIFEST = "apiVersion: apiextensions.k8s.io/v1\nkind: CustomResourceDefinition\n"


def make_negotiator(handler) -> ExclusivityNegotiator:
    client = MembershipAPIClient("proj1", transport=httpx.MockTransport(handler))
    return ExclusivityNegotiator(client)


@pytest.fixture
def cancel():
    return CancelToken()


def test_validate_skipped_without_cr(cancel):
    """Test no request is made when the cluster has no CR."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    make_negotiator(handler).validate("cluster-a", "", cancel)
    assert calls == []


def test_validate_ok(cancel):
    """Test status code 0 lets registration proceed."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"status": {"code": 0}})

    make_negotiator(handler).validate("cluster-a", CR_MANIFEST, cancel)

    assert seen["path"] == "/v1beta1/projects/proj1/locations/global/memberships:validateExclusivity"
    assert seen["params"]["crManifest"] == CR_MANIFEST
    assert seen["params"]["intendedMembership"] == "cluster-a"
    assert seen["params"]["alt"] == "json"


def test_validate_empty_status_is_ok(cancel):
    """Test a response without status defaults to OK."""
    make_negotiator(lambda request: httpx.Response(200, json={})).validate("cluster-a", CR_MANIFEST, cancel)


def test_validate_conflict_surfaces_message(cancel):
    """Test a nonzero code is a conflict carrying the server message verbatim."""
    response = {"status": {"code": 6, "message": "owned by hub proj0"}}
    negotiator = make_negotiator(lambda request: httpx.Response(200, json=response))

    with pytest.raises(ExclusivityConflictError) as exc_info:
        negotiator.validate("cluster-a", CR_MANIFEST, cancel)
    assert exc_info.value.code == 6
    assert exc_info.value.message == "owned by hub proj0"


def test_validate_bad_status(cancel):
    """Test a non-2xx validation response is an APIError."""
    negotiator = make_negotiator(lambda request: httpx.Response(500, text="internal"))
    with pytest.raises(APIError) as exc_info:
        negotiator.validate("cluster-a", CR_MANIFEST, cancel)
    assert exc_info.value.status_code == 500


def test_generate_returns_pair(cancel):
    """Test generated manifests are returned as received."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"crdManifest": CRD_MANIFEST, "crManifest": CR_MANIFEST})

    pair = make_negotiator(handler).generate("cluster-a", "", "", cancel)

    assert seen["path"] == (
        "/v1beta1/projects/proj1/locations/global/memberships/cluster-a:generateExclusivityManifest"
    )
    assert seen["params"]["crManifest"] == ""
    assert seen["params"]["crdManifest"] == ""
    assert pair.crd_manifest == CRD_MANIFEST
    assert pair.cr_manifest == CR_MANIFEST
    assert pair.empty is False


def test_generate_empty_pair_is_not_an_error(cancel):
    """Test both manifests may legitimately be empty."""
    pair = make_negotiator(lambda request: httpx.Response(200, json={})).generate("cluster-a", "", "", cancel)
    assert pair.empty is True


def test_generate_bad_status(cancel):
    """Test a non-2xx generation response is an APIError."""
    negotiator = make_negotiator(lambda request: httpx.Response(404, text="no membership"))
    with pytest.raises(APIError):
        negotiator.generate("cluster-a", "", "", cancel)
