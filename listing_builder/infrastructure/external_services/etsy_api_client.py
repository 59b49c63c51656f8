"""HTTP client for the Etsy Open API v3 listing endpoints."""
from typing import Any

import httpx
import structlog

from listing_builder.application.interfaces.marketplace_api import (
    AccountInfo,
    EtsyApiConnectionError,
    EtsyApiError,
    MalformedResponseError,
    MarketplaceApi,
)
from listing_builder.config import settings
from listing_builder.domain.entities.listing_submission import UploadPayload

logger = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """The JSON body's "error" field, else the raw body, else the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    if response.text:
        return response.text
    return f"{response.status_code} {response.reason_phrase}".strip()


class EtsyApiClient(MarketplaceApi):
    """Thin bearer-authenticated wrapper around the Etsy REST API."""

    def __init__(
        self,
        base_url: str = settings.etsy_api_base_url,
        api_key: str = settings.etsy_client_id,
        timeout: float = settings.http_timeout,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def call(
        self,
        endpoint: str,
        method: str,
        token: str,
        *,
        json: dict[str, Any] | None = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
        data: dict[str, str] | None = None,
    ) -> Any:
        """
        Send one request and decode the answer.

        Returns the parsed JSON body, or None for 204 No Content.
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "x-api-key": self._api_key,
        }
        # Multipart bodies need httpx to pick the boundary
        if files is None:
            headers["Content-Type"] = "application/json"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self._base_url}{endpoint}",
                    headers=headers,
                    json=json,
                    files=files,
                    data=data,
                )
            except httpx.RequestError as exc:
                logger.error("etsy_connection_failed", endpoint=endpoint, error=str(exc))
                raise EtsyApiConnectionError(f"Failed to reach Etsy: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "etsy_request_failed",
                endpoint=endpoint,
                method=method,
                status_code=response.status_code,
                response=message,
            )
            raise EtsyApiError(response.status_code, message, response.reason_phrase)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(endpoint, response.status_code) from exc

    async def get_me(self, token: str) -> AccountInfo:
        """
        GET /application/users/me -> {"user_id": ..., "shop_id": ...}
        """
        body = await self.call("/application/users/me", "GET", token)
        if not isinstance(body, dict) or "user_id" not in body:
            raise MalformedResponseError("/application/users/me", 200)
        return AccountInfo(user_id=body["user_id"], shop_id=body.get("shop_id"))

    async def create_listing(
        self, shop_id: int, payload: dict[str, Any], token: str
    ) -> int:
        """
        POST /application/shops/{shop_id}/listings -> {"listing_id": ..., "state": "draft", ...}
        """
        endpoint = f"/application/shops/{shop_id}/listings"
        body = await self.call(endpoint, "POST", token, json=payload)
        if not isinstance(body, dict) or "listing_id" not in body:
            raise MalformedResponseError(endpoint, 201)
        return body["listing_id"]

    async def upload_image(
        self, listing_id: int, image: UploadPayload, rank: int, token: str
    ) -> None:
        await self.call(
            f"/application/listings/{listing_id}/images",
            "POST",
            token,
            files={"image": (image.filename, image.content, image.content_type)},
            data={"rank": str(rank)},
        )
        logger.info("image_uploaded", listing_id=listing_id, rank=rank)

    async def upload_file(
        self, listing_id: int, archive: UploadPayload, token: str
    ) -> None:
        await self.call(
            f"/application/listings/{listing_id}/files",
            "POST",
            token,
            files={"file": (archive.filename, archive.content, archive.content_type)},
            data={"name": archive.filename},
        )
        logger.info("file_uploaded", listing_id=listing_id, name=archive.filename)
