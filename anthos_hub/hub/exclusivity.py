"""Exclusivity negotiation with the Hub: dry-run validation and manifest generation."""

from __future__ import annotations

from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import ExclusivityConflictError
from anthos_hub.hub.client import MembershipAPIClient
from anthos_hub.hub.types import ExclusivityManifestPair, ValidationResponse
from anthos_hub.utils.helpers import truncate_output

# google.rpc.Code.OK
STATUS_OK = 0


class ExclusivityNegotiator:
    """Ask the Hub whether a cluster may join and which CRD/CR to install."""

    def __init__(self, client: MembershipAPIClient) -> None:
        self.client = client

    def validate(self, membership_id: str, cr_manifest: str, cancel: CancelToken) -> None:
        """
        Dry-run the registration against the CR already in the cluster.

        Skipped when there is no CR (first registration). Any nonzero status
        code is a conflict; the server message is surfaced verbatim.
        """
        if not cr_manifest:
            logger.debug("No membership CR in the cluster, skipping exclusivity validation")
            return

        response = self.client.request(
            "GET",
            f"v1beta1/{self.client.parent}/memberships:validateExclusivity",
            cancel,
            params={"crManifest": cr_manifest, "intendedMembership": membership_id},
        )
        self.client.check(response)
        result = self.client.decode(response, ValidationResponse)

        if result.status.code != STATUS_OK:
            raise ExclusivityConflictError(result.status.message, code=result.status.code)
        logger.info(f"Exclusivity validated for membership {membership_id}")

    def generate(
        self,
        membership_id: str,
        cr_manifest: str,
        crd_manifest: str,
        cancel: CancelToken,
    ) -> ExclusivityManifestPair:
        """Request the canonical CRD/CR pair to apply to the cluster."""
        name = self.client.membership_name(membership_id)
        response = self.client.request(
            "GET",
            f"v1beta1/{name}:generateExclusivityManifest",
            cancel,
            params={"crManifest": cr_manifest, "crdManifest": crd_manifest},
        )
        logger.debug(f"generateExclusivityManifest response: {truncate_output(response.text, 1000)}")
        self.client.check(response)
        pair = self.client.decode(response, ExclusivityManifestPair)

        if pair.empty:
            logger.warning(f"Hub returned empty exclusivity manifests for {name}")
        return pair
