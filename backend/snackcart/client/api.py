"""
SnackCart Client — Snack API Transport
=======================================

What:  Async client for the four catalog endpoints the view-model consumes.
How:   Wraps `httpx.AsyncClient` with a bounded timeout and decodes every
       response into `Snack` values or into the shared exception hierarchy.
       No request is retried.

Error mapping:
    400                      → ValidationError (server message shown to the user)
    404                      → NotFoundError
    any other non-2xx        → StoreError
    timeout / connect error  → TransportError
    body is not the contract → TransportError
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from snackcart.client.state import ChosenFile, Snack
from snackcart.config import settings
from snackcart.middleware.request_id import REQUEST_ID_HEADER, new_request_id
from snackcart.exceptions import (
    NotFoundError,
    StoreError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return fallback


def _raise_for_status(response: httpx.Response, snack_id: Optional[str] = None) -> None:
    if response.is_success:
        return
    status = response.status_code
    if status == 400:
        raise ValidationError(
            message=_error_message(response, "The snack could not be saved. Check the fields."),
            context={"status": status},
        )
    if status == 404:
        raise NotFoundError(
            resource="snack",
            resource_id=snack_id,
            message=_error_message(response, "Snack not found"),
            context={"status": status},
        )
    raise StoreError(
        message=_error_message(response, "The snack service failed. Please try again."),
        context={"status": status},
    )


class SnackApiClient:
    """
    Talks to `/api/snacks` on behalf of CatalogViewModel.

    Usage:
        async with SnackApiClient("http://localhost:8000/api/snacks") as api:
            snacks = await api.list_snacks()

    An externally supplied `httpx.AsyncClient` (tests pass one built on
    `httpx.MockTransport` or `httpx.ASGITransport`) is used as-is and not
    closed by `aclose()`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = httpx.Timeout(timeout if timeout is not None else settings.client_timeout)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "SnackApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Operations ────────────────────────────────────────────────────────

    async def list_snacks(self) -> List[Snack]:
        """GET /api/snacks, newest first."""
        body = await self._request("GET", self.base_url)
        if not isinstance(body, list):
            raise TransportError(
                message="Unexpected response from the snack service.",
                context={"operation": "list"},
            )
        return [self._decode(item, "list") for item in body]

    async def create_snack(
        self,
        name: str,
        price: float,
        category: str,
        file: Optional[ChosenFile] = None,
        img_url: Optional[str] = None,
    ) -> Snack:
        """POST /api/snacks as multipart. Either `file` or `img_url` supplies the image."""
        data: Dict[str, str] = {"name": name, "price": str(price), "category": category}
        files = None
        if file is not None:
            files = {"img": (file.filename, file.content, file.content_type)}
        elif img_url is not None:
            data["img"] = img_url
        body = await self._request("POST", self.base_url, data=data, files=files)
        return self._decode(body, "create")

    async def update_snack(
        self,
        snack_id: str,
        fields: Mapping[str, Any],
        file: Optional[ChosenFile] = None,
    ) -> Snack:
        """
        PUT /api/snacks/{id}.

        Field-only updates go as JSON so numbers (including 0) keep their
        type; updates carrying a new photo go as multipart.
        """
        url = f"{self.base_url}/{snack_id}"
        if file is None:
            body = await self._request("PUT", url, snack_id=snack_id, json=dict(fields))
        else:
            data = {key: str(value) for key, value in fields.items() if value is not None}
            files = {"img": (file.filename, file.content, file.content_type)}
            body = await self._request("PUT", url, snack_id=snack_id, data=data, files=files)
        return self._decode(body, "update")

    async def delete_snack(self, snack_id: str) -> Dict[str, Any]:
        body = await self._request("DELETE", f"{self.base_url}/{snack_id}", snack_id=snack_id)
        if not isinstance(body, dict):
            raise TransportError(
                message="Unexpected response from the snack service.",
                context={"operation": "delete"},
            )
        return body

    # ── Plumbing ──────────────────────────────────────────────────────────

    async def _request(self, method: str, url: str, snack_id: Optional[str] = None, **kwargs) -> Any:
        # The server adopts this id, so both logs share it
        rid = new_request_id()
        headers = {REQUEST_ID_HEADER: rid}
        try:
            response = await self._client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            logger.error("[%s] %s %s timed out: %s", rid, method, url, str(e))
            raise TransportError(
                message="The snack service did not respond in time. Please try again.",
                context={"method": method, "url": url},
            )
        except httpx.HTTPError as e:
            logger.error("[%s] %s %s failed: %s", rid, method, url, str(e))
            raise TransportError(context={"method": method, "url": url, "error_type": type(e).__name__})

        if not response.is_success:
            logger.warning("[%s] %s %s returned %d", rid, method, url, response.status_code)
        _raise_for_status(response, snack_id)
        try:
            return response.json()
        except ValueError:
            raise TransportError(
                message="Unexpected response from the snack service.",
                context={"method": method, "url": url, "status": response.status_code},
            )

    @staticmethod
    def _decode(payload: Any, operation: str) -> Snack:
        try:
            return Snack.model_validate(payload)
        except PydanticValidationError as e:
            logger.error("Malformed snack in %s response: %s", operation, str(e))
            raise TransportError(
                message="Unexpected response from the snack service.",
                context={"operation": operation},
            )

