from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from listing_builder.domain.entities.listing_submission import UploadPayload


class EtsyApiError(Exception):
    """Non-success response from the resource API."""

    def __init__(
        self, status_code: int | None, message: str, reason: str = ""
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.reason = reason
        status_line = f"{status_code} {reason}".strip() if status_code else "request failed"
        super().__init__(f"Etsy API Error: {status_line} - {message}")


class EtsyApiConnectionError(EtsyApiError):
    """The API could not be reached at all."""

    def __init__(self, message: str) -> None:
        super().__init__(None, message)


class MalformedResponseError(Exception):
    """A success response whose body is not valid JSON."""

    def __init__(self, endpoint: str, status_code: int) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(
            f"Etsy returned {status_code} for {endpoint} with a body that is not valid JSON."
        )


@dataclass
class AccountInfo:
    user_id: int
    shop_id: int | None


class MarketplaceApi(ABC):
    """Port for the bearer-authenticated listing endpoints."""

    @abstractmethod
    async def get_me(self, token: str) -> AccountInfo:
        ...

    @abstractmethod
    async def create_listing(
        self, shop_id: int, payload: dict[str, Any], token: str
    ) -> int:
        """Create a draft listing and return its listing_id."""
        ...

    @abstractmethod
    async def upload_image(
        self, listing_id: int, image: UploadPayload, rank: int, token: str
    ) -> None:
        ...

    @abstractmethod
    async def upload_file(
        self, listing_id: int, archive: UploadPayload, token: str
    ) -> None:
        ...
