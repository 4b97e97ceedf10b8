"""Hub REST API clients."""

from anthos_hub.hub.client import MembershipAPIClient
from anthos_hub.hub.connect import ConnectAgentManifestFetcher, ConnectAgentOptions
from anthos_hub.hub.exclusivity import ExclusivityNegotiator
from anthos_hub.hub.poller import RetryPolicy, wait_until_done

__all__ = [
    "MembershipAPIClient",
    "ConnectAgentManifestFetcher",
    "ConnectAgentOptions",
    "ExclusivityNegotiator",
    "RetryPolicy",
    "wait_until_done",
]
