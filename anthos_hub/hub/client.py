"""Authenticated client for the Hub membership REST resource."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from google.auth.exceptions import GoogleAuthError
from loguru import logger
from pydantic import BaseModel, ValidationError

from anthos_hub.cancellation import CancelToken
from anthos_hub.errors import (
    AlreadyExistsError,
    APIError,
    DecodeError,
    HubError,
    NotFoundError,
    OperationCancelledError,
    UnrecoverableError,
)
from anthos_hub.hub.types import Membership, Operation
from anthos_hub.utils.helpers import truncate_output

DEFAULT_API_BASE = "https://gkehub.googleapis.com/"
DEFAULT_USER_AGENT = "anthos-hub-python/0.1.0"
DEFAULT_LOCATION = "global"

ModelT = TypeVar("ModelT", bound=BaseModel)


class MembershipAPIClient:
    """
    Facade over the Hub membership API for one project and location.

    Create and delete only start long-running operations; waiting for them
    is the caller's job (see ``anthos_hub.hub.poller``). Every call takes a
    ``CancelToken`` so an outer deadline bounds each request.
    """

    def __init__(
        self,
        project: str,
        auth: httpx.Auth | None = None,
        location: str = DEFAULT_LOCATION,
        api_base: str = DEFAULT_API_BASE,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_s: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.project = project
        self.location = location
        self.api_base = api_base.rstrip("/") + "/"
        self.timeout_s = timeout_s
        self._http = httpx.Client(
            base_url=self.api_base,
            auth=auth,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> MembershipAPIClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def parent(self) -> str:
        return f"projects/{self.project}/locations/{self.location}"

    def membership_name(self, membership_id: str) -> str:
        return f"{self.parent}/memberships/{membership_id}"

    # ------------------------------------------------------------------
    # Transport helpers shared with the exclusivity and connect clients
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        cancel: CancelToken,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request with ``alt=json``; request and credential failures become APIError."""
        query = {"alt": "json", **(params or {})}
        timeout = cancel.request_timeout(self.timeout_s)
        logger.debug(f"Hub {method} {path} params={sorted(query)}")
        try:
            return self._http.request(method, path, params=query, json=body, timeout=timeout)
        except (httpx.RequestError, GoogleAuthError) as exc:
            cancel.raise_if_cancelled()
            raise APIError(0, "", f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def check(response: httpx.Response) -> None:
        if not response.is_success:
            raise APIError(response.status_code, truncate_output(response.text, 2000))

    @staticmethod
    def decode(response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise DecodeError(
                f"decoding {model.__name__} from response body: {truncate_output(response.text, 500)}"
            ) from exc

    # ------------------------------------------------------------------
    # Membership resource
    # ------------------------------------------------------------------

    def get(
        self,
        membership_id: str,
        cancel: CancelToken,
        expect_absent: bool = False,
    ) -> Membership | None:
        """
        Look up a membership.

        With ``expect_absent`` a 404 is the success path and returns None,
        while finding the membership raises AlreadyExistsError. Without it a
        404 raises NotFoundError.
        """
        name = self.membership_name(membership_id)
        response = self.request("GET", f"v1/{name}", cancel)

        if response.status_code == httpx.codes.NOT_FOUND:
            if expect_absent:
                logger.debug(f"Membership {name} does not exist, as expected")
                return None
            raise NotFoundError(f"membership {name} not found")

        self.check(response)
        if expect_absent:
            raise AlreadyExistsError(
                f"membership {name} already exists in the Hub: {truncate_output(response.text, 500)}"
            )
        return self.decode(response, Membership)

    def create(
        self,
        membership_id: str,
        cancel: CancelToken,
        description: str = "",
        external_id: str = "",
        resource_link: str = "",
    ) -> Operation:
        """Start creating a membership; returns the pending operation."""
        body: dict[str, Any] = {"description": description, "externalId": external_id}
        if resource_link:
            body["endpoint"] = {"gkeCluster": {"resourceLink": resource_link}}

        response = self.request(
            "POST",
            f"v1/{self.parent}/memberships",
            cancel,
            params={"membershipId": membership_id},
            body=body,
        )
        self.check(response)
        operation = self.decode(response, Operation)
        logger.info(f"Membership creation started: {operation.name}")
        return operation

    def delete(self, membership_id: str, cancel: CancelToken) -> Operation:
        """Start deleting a membership; returns the pending operation."""
        name = self.membership_name(membership_id)
        response = self.request("DELETE", f"v1/{name}", cancel)
        self.check(response)
        operation = self.decode(response, Operation)
        logger.info(f"Membership deletion started: {operation.name}")
        return operation

    def check_operation(self, operation_name: str, cancel: CancelToken) -> bool:
        """
        Poll one long-running operation once.

        Any failure here is permanent for the poller: bad status codes and
        malformed payloads are wrapped in UnrecoverableError.
        """
        try:
            response = self.request("GET", f"v1/{operation_name}", cancel)
            self.check(response)
            operation = self.decode(response, Operation)
        except OperationCancelledError:
            raise
        except HubError as exc:
            raise UnrecoverableError(exc) from exc

        logger.debug(f"Operation {operation_name} done={operation.done}")
        return operation.done
