"""Connect agent manifest generation."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from anthos_hub.cancellation import CancelToken
from anthos_hub.hub.client import MembershipAPIClient
from anthos_hub.hub.types import ConnectAgentManifestSet

DEFAULT_NAMESPACE = "gke-connect"


@dataclass
class ConnectAgentOptions:
    """Knobs for the generated connect agent; defaults defer to the Hub."""

    proxy: str = ""
    namespace: str = DEFAULT_NAMESPACE
    version: str = ""
    is_upgrade: bool = False
    registry: str = ""
    image_pull_secret_content: str = ""

    def to_params(self) -> dict[str, str]:
        """Only non-default values are sent; omission means server default."""
        params: dict[str, str] = {}
        if self.proxy:
            params["connectAgent.proxy"] = self.proxy
        if self.namespace and self.namespace != DEFAULT_NAMESPACE:
            params["connectAgent.namespace"] = self.namespace
        if self.version:
            params["version"] = self.version
        if self.is_upgrade:
            params["isUpgrade"] = "true"
        if self.registry:
            params["registry"] = self.registry
        if self.image_pull_secret_content:
            params["imagePullSecretContent"] = self.image_pull_secret_content
        return params


class ConnectAgentManifestFetcher:
    """Fetch the ordered list of manifests implementing the connect agent."""

    def __init__(self, client: MembershipAPIClient) -> None:
        self.client = client

    def generate(
        self,
        membership_name: str,
        options: ConnectAgentOptions,
        cancel: CancelToken,
    ) -> ConnectAgentManifestSet:
        response = self.client.request(
            "GET",
            f"v1beta1/{membership_name}:generateConnectManifest",
            cancel,
            params=options.to_params(),
        )
        self.client.check(response)
        manifests = self.client.decode(response, ConnectAgentManifestSet)
        logger.info(
            f"Received {len(manifests.manifest)} connect agent manifest(s): {', '.join(manifests.kinds)}"
        )
        return manifests
