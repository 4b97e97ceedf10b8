"""Bearer-credential auth flows for the Hub REST client."""

from __future__ import annotations

from typing import Generator

import httpx
from loguru import logger

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class BearerTokenAuth(httpx.Auth):
    """Attach a fixed access token to every request."""

    def __init__(self, token: str) -> None:
        self._token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token}"
        yield request


class GoogleCredentialsAuth(httpx.Auth):
    """
    Attach Google application-default credentials, refreshing when stale.

    Credential discovery itself is delegated to google-auth; this class only
    turns the resulting credentials into an Authorization header.
    """

    def __init__(self, scope: str = CLOUD_PLATFORM_SCOPE) -> None:
        import google.auth
        from google.auth.transport.requests import Request

        self._credentials, project = google.auth.default(scopes=[scope])
        self._refresh_request = Request()
        logger.debug(f"Loaded application default credentials (project: {project or 'unset'})")

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if not self._credentials.valid:
            self._credentials.refresh(self._refresh_request)
        request.headers["Authorization"] = f"Bearer {self._credentials.token}"
        yield request


def resolve_auth(access_token: str = "", scope: str = CLOUD_PLATFORM_SCOPE) -> httpx.Auth:
    """Prefer an explicit token, otherwise fall back to default credentials."""
    if access_token:
        return BearerTokenAuth(access_token)
    return GoogleCredentialsAuth(scope)
