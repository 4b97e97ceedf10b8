"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from anthos_hub.hub.auth import CLOUD_PLATFORM_SCOPE
from anthos_hub.hub.client import DEFAULT_API_BASE, DEFAULT_LOCATION, DEFAULT_USER_AGENT
from anthos_hub.hub.connect import DEFAULT_NAMESPACE, ConnectAgentOptions
from anthos_hub.hub.poller import DEFAULT_INTERVAL_S, DEFAULT_MAX_ATTEMPTS, RetryPolicy
from anthos_hub.k8s.clients import CURRENT_CONTEXT, KubeAuth


class HubConfig(BaseModel):
    """Hub API endpoint and credentials."""

    project: str = ""
    location: str = DEFAULT_LOCATION
    api_base: str = DEFAULT_API_BASE
    user_agent: str = DEFAULT_USER_AGENT
    scope: str = CLOUD_PLATFORM_SCOPE
    access_token: str = ""
    request_timeout: float = 60.0


class ClusterConfig(BaseModel):
    """Which cluster to register and reconcile."""

    kube_config_file: str | None = None
    kube_context: str = CURRENT_CONTEXT

    def to_auth(self) -> KubeAuth:
        return KubeAuth(config_file=self.kube_config_file, context=self.kube_context)


class MembershipConfig(BaseModel):
    """Membership identity and teardown behaviour."""

    membership_id: str = ""
    description: str = ""
    resource_link: str = ""
    delete_artifacts_on_destroy: bool = True


class ConnectAgentConfig(BaseModel):
    """Connect agent generation options."""

    namespace: str = DEFAULT_NAMESPACE
    proxy: str = ""
    version: str = ""
    is_upgrade: bool = False
    registry: str = ""
    image_pull_secret_content: str = ""
    service_account_key_file: str | None = None

    def to_options(self) -> ConnectAgentOptions:
        return ConnectAgentOptions(
            proxy=self.proxy,
            namespace=self.namespace,
            version=self.version,
            is_upgrade=self.is_upgrade,
            registry=self.registry,
            image_pull_secret_content=self.image_pull_secret_content,
        )

    def read_service_account_key(self) -> str:
        if not self.service_account_key_file:
            return ""
        return Path(self.service_account_key_file).expanduser().read_text(encoding="utf-8")


class PollingConfig(BaseModel):
    """Long-running operation polling."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval_seconds: float = DEFAULT_INTERVAL_S
    timeout_seconds: float | None = None

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_attempts, interval=self.interval_seconds)


class LoggingConfig(BaseModel):
    """Debug logging."""

    debug: bool = False
    log_file: str = "/tmp/anthos-hub.log"


class Config(BaseSettings):
    """Root configuration for anthos-hub."""

    model_config = SettingsConfigDict(
        env_prefix="ANTHOS_HUB_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    hub: HubConfig = Field(default_factory=HubConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    membership: MembershipConfig = Field(default_factory=MembershipConfig)
    connect_agent: ConnectAgentConfig = Field(default_factory=ConnectAgentConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def log_path(self) -> Path:
        """Get expanded debug log path."""
        return Path(self.logging.log_file).expanduser()
