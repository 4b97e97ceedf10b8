"""Register, unregister and connect agent workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import APIError, DecodeError, NotFoundError, UnexpectedStateError, UnrecoverableError, step
from anthos_hub.hub.auth import resolve_auth
from anthos_hub.hub.client import MembershipAPIClient
from anthos_hub.hub.connect import ConnectAgentManifestFetcher, ConnectAgentOptions
from anthos_hub.hub.exclusivity import ExclusivityNegotiator
from anthos_hub.hub.poller import RetryPolicy, wait_until_done
from anthos_hub.hub.types import Membership, MembershipStateCode
from anthos_hub.k8s.artifacts import ClusterArtifactStore
from anthos_hub.k8s.clients import KubernetesClientSet, get_cluster_uuid, load_clients
from anthos_hub.k8s.reconciler import ManifestReconciler, ReconcileResult

if TYPE_CHECKING:
    from anthos_hub.config.schema import Config


class MembershipLifecycleOrchestrator:
    """
    Drives one membership through its lifecycle.

    Each workflow runs to completion or stops at the first failing step,
    leaving whatever the previous steps produced in place (no rollback).
    Failures are raised with the name of the step that failed.
    """

    def __init__(
        self,
        hub: MembershipAPIClient,
        clients: KubernetesClientSet,
        policy: RetryPolicy | None = None,
        negotiator: ExclusivityNegotiator | None = None,
        fetcher: ConnectAgentManifestFetcher | None = None,
        artifacts: ClusterArtifactStore | None = None,
    ) -> None:
        self.hub = hub
        self.clients = clients
        self.policy = policy or RetryPolicy()
        self.negotiator = negotiator or ExclusivityNegotiator(hub)
        self.fetcher = fetcher or ConnectAgentManifestFetcher(hub)
        self.artifacts = artifacts or ClusterArtifactStore(clients)

    @classmethod
    def from_config(cls, config: Config) -> MembershipLifecycleOrchestrator:
        """Build the Hub client and cluster clients from configuration."""
        hub = MembershipAPIClient(
            project=config.hub.project,
            auth=resolve_auth(config.hub.access_token, config.hub.scope),
            location=config.hub.location,
            api_base=config.hub.api_base,
            user_agent=config.hub.user_agent,
            timeout_s=config.hub.request_timeout,
        )
        clients = load_clients(config.cluster.to_auth(), request_timeout=config.hub.request_timeout)
        return cls(hub, clients, policy=config.polling.to_policy())

    def close(self) -> None:
        self.hub.close()

    def __enter__(self) -> MembershipLifecycleOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def register(
        self,
        membership_id: str,
        description: str = "",
        resource_link: str = "",
        cancel: CancelToken | None = None,
    ) -> Membership:
        """Create the membership and install the exclusivity CRD/CR."""
        cancel = cancel or CancelToken()
        logger.info(f"Registering cluster as membership {membership_id}")

        with step("reading cluster UUID"):
            cluster_uuid = get_cluster_uuid(self.clients, cancel)
        with step("reading exclusivity artifacts"):
            existing = self.artifacts.read(cancel)
        with step("checking membership does not exist"):
            self.hub.get(membership_id, cancel, expect_absent=True)
        with step("validating exclusivity"):
            self.negotiator.validate(membership_id, existing.cr_manifest, cancel)

        with step("creating membership"):
            operation = self.hub.create(
                membership_id,
                cancel,
                description=description or membership_id,
                external_id=cluster_uuid,
                resource_link=resource_link,
            )
            if not operation.done:
                wait_until_done(
                    lambda: self.hub.check_operation(operation.name, cancel),
                    self.policy,
                    cancel,
                    description=f"operation {operation.name}",
                )

        with step("confirming membership"):
            membership = self.hub.get(membership_id, cancel)
            _require_state(membership, MembershipStateCode.READY)

        with step("generating exclusivity manifests"):
            manifests = self.negotiator.generate(
                membership_id, existing.cr_manifest, existing.crd_manifest, cancel
            )
        with step("installing exclusivity manifests"):
            self.artifacts.install(manifests.crd_manifest, manifests.cr_manifest, cancel)

        logger.info(f"Membership {membership.name} registered (external ID {cluster_uuid})")
        return membership

    def unregister(
        self,
        membership_id: str,
        delete_artifacts: bool = False,
        cancel: CancelToken | None = None,
    ) -> None:
        """Delete the membership; optionally remove the exclusivity CRD/CR."""
        cancel = cancel or CancelToken()
        logger.info(f"Unregistering membership {membership_id}")

        with step("checking membership"):
            self.hub.get(membership_id, cancel)
        with step("deleting membership"):
            self.hub.delete(membership_id, cancel)
        with step("waiting for deletion"):
            wait_until_done(
                lambda: self._deletion_observed(membership_id, cancel),
                self.policy,
                cancel,
                description=f"deletion of {membership_id}",
            )

        if delete_artifacts:
            with step("deleting exclusivity artifacts"):
                self.artifacts.delete_if_present(cancel)

        logger.info(f"Membership {membership_id} unregistered")

    def install_connect_agent(
        self,
        membership_id: str,
        options: ConnectAgentOptions | None = None,
        service_account_key: str = "",
        cancel: CancelToken | None = None,
    ) -> list[ReconcileResult]:
        """Fetch the connect agent manifests and reconcile them into the cluster."""
        cancel = cancel or CancelToken()
        options = options or ConnectAgentOptions()

        with step("checking membership"):
            membership = self.hub.get(membership_id, cancel)
            _require_state(membership, MembershipStateCode.READY)
        with step("generating connect agent manifests"):
            manifests = self.fetcher.generate(membership.name, options, cancel)
        with step("applying connect agent manifests"):
            reconciler = ManifestReconciler(
                self.clients,
                namespace=options.namespace,
                service_account_key=service_account_key,
            )
            results = reconciler.reconcile(manifests, cancel)

        logger.info(f"Connect agent reconciled for {membership.name} ({len(results)} object(s))")
        return results

    def _deletion_observed(self, membership_id: str, cancel: CancelToken) -> bool:
        """Deletion has been accepted once the membership is DELETING or gone."""
        try:
            membership = self.hub.get(membership_id, cancel)
        except NotFoundError:
            return True
        except (APIError, DecodeError) as exc:
            raise UnrecoverableError(exc) from exc
        return membership.state_code == MembershipStateCode.DELETING


def _require_state(membership: Membership, expected: MembershipStateCode) -> None:
    if membership.state_code != expected:
        raise UnexpectedStateError(membership.name, membership.state_code.value, expected.value)
