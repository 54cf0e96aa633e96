"""Authenticated JSON client for the record / prescription API."""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from rx_workflow.config import settings
from rx_workflow.exceptions import RemoteFailure, Unauthorized

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERIC_FAILURE = "Request failed."


class ApiClient:
    """
    Executes REST calls with bearer-token auth.

    Every failure (transport error, non-2xx status, unparseable body) is
    raised as RemoteFailure carrying the best human-readable reason the
    server gave.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.api_base_url
        self.token = token
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        skip_auth: bool = False,
    ) -> Any:
        """
        Send a request and return the decoded body.

        JSON responses are decoded to Python objects, anything else is
        returned as text. An empty body decodes to None.
        """
        headers = {"Content-Type": "application/json"}
        if not skip_auth:
            if not self.token:
                raise Unauthorized("Login required.")
            headers["Authorization"] = f"Bearer {self.token}"

        logger.debug("%s %s", method, path)
        try:
            response = await self.client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning("Transport error on %s %s: %s", method, path, e)
            raise RemoteFailure(str(e) or GENERIC_FAILURE) from e

        payload, malformed = self._decode(response)

        if response.is_error:
            message = self._error_message(payload)
            logger.warning(
                "%s %s failed with %s: %s", method, path, response.status_code, message
            )
            raise RemoteFailure(message, status=response.status_code, payload=payload)

        if malformed:
            logger.warning("Unparseable JSON body from %s %s", method, path)
            raise RemoteFailure(
                "Malformed response from server.", status=response.status_code
            )
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> tuple[Any, bool]:
        """Return (payload, malformed)."""
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            if not response.content:
                return None, False
            try:
                return response.json(), False
            except ValueError:
                return None, True
        return response.text, False

    @staticmethod
    def _error_message(payload: Any) -> str:
        if isinstance(payload, str) and payload:
            return payload
        if isinstance(payload, dict) and "message" in payload:
            return str(payload["message"])
        return GENERIC_FAILURE


def parse_payload(model: type[T], payload: Any) -> T:
    """Validate a decoded body against `model`; a mismatch is a RemoteFailure."""
    try:
        return TypeAdapter(model).validate_python(payload)
    except ValidationError as e:
        logger.warning("Response did not match %s: %s", model, e)
        raise RemoteFailure(
            "Malformed response from server.",
            detail={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
