"""Pydantic models for Hub membership resources and API payloads."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _HubModel(BaseModel):
    """Hub payloads use camelCase keys and grow new fields over time."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MembershipStateCode(str, Enum):
    """Server-assigned lifecycle state of a membership."""
    UNSPECIFIED = "CODE_UNSPECIFIED"
    CREATING = "CREATING"
    READY = "READY"
    DELETING = "DELETING"
    UPDATING = "UPDATING"
    SERVICE_UPDATING = "SERVICE_UPDATING"


class MembershipState(_HubModel):
    code: MembershipStateCode = Field(default=MembershipStateCode.UNSPECIFIED, description="Current state code.")
    description: str = Field(default="", description="Deprecated, never set by the Hub.")
    update_time: Optional[datetime] = Field(None, alias="updateTime")


class GKECluster(_HubModel):
    resource_link: str = Field(default="", alias="resourceLink", description="Self link of the underlying cluster.")


class MembershipEndpoint(_HubModel):
    gke_cluster: GKECluster = Field(default_factory=GKECluster, alias="gkeCluster")


class Authority(_HubModel):
    """Workload identity metadata, read-only from this package's side."""
    issuer: str = Field(default="", alias="issuer")
    identity_namespace: str = Field(default="", alias="identityNamespace")
    identity_provider: str = Field(default="", alias="identityProvider")


class Membership(_HubModel):
    """The Hub-side record of one registered cluster."""
    name: str = Field(..., description="projects/{project}/locations/{location}/memberships/{id}")
    description: str = Field(default="")
    external_id: str = Field(default="", alias="externalId", description="Cluster UUID supplied at creation.")
    endpoint: MembershipEndpoint = Field(default_factory=MembershipEndpoint)
    state: MembershipState = Field(default_factory=MembershipState)
    authority: Authority = Field(default_factory=Authority)
    create_time: Optional[datetime] = Field(None, alias="createTime")
    update_time: Optional[datetime] = Field(None, alias="updateTime")
    delete_time: Optional[datetime] = Field(None, alias="deleteTime")
    last_connection_time: Optional[datetime] = Field(None, alias="lastConnectionTime")

    @property
    def membership_id(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def state_code(self) -> MembershipStateCode:
        return self.state.code


class Operation(_HubModel):
    """A long-running operation handle returned by create and delete."""
    name: str = Field(..., description="Operation resource name to poll.")
    done: bool = Field(default=False)


class ValidationStatus(_HubModel):
    """google.rpc.Status subset returned by validateExclusivity; code 0 is OK."""
    code: int = Field(default=0)
    message: str = Field(default="")


class ValidationResponse(_HubModel):
    status: ValidationStatus = Field(default_factory=ValidationStatus)


class ExclusivityManifestPair(_HubModel):
    """CRD and CR manifests enforcing exclusivity; either may be empty."""
    crd_manifest: str = Field(default="", alias="crdManifest")
    cr_manifest: str = Field(default="", alias="crManifest")

    @property
    def empty(self) -> bool:
        return not self.crd_manifest and not self.cr_manifest


class ConnectAgentResourceType(_HubModel):
    kind: str = Field(default="")
    api_version: str = Field(default="", alias="apiVersion")


class ConnectAgentResource(_HubModel):
    """One manifest of the connect agent, tagged with its declared type."""
    type: ConnectAgentResourceType = Field(default_factory=ConnectAgentResourceType)
    manifest: str = Field(default="")

    @property
    def kind(self) -> str:
        return self.type.kind


class ConnectAgentManifestSet(_HubModel):
    """Ordered connect-agent manifests; order is meaningful and preserved."""
    manifest: List[ConnectAgentResource] = Field(default_factory=list)

    @property
    def kinds(self) -> List[str]:
        return [resource.kind for resource in self.manifest]
