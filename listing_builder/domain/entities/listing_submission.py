import re
from dataclasses import dataclass, field
from typing import Any

MIN_TAGS = 1
MAX_TAGS = 13

# Sentinel id the form uses for "no color" / "no holiday"
NONE_ID = "0"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

INCOMPLETE_MESSAGE = "Please fill all required fields and upload all files."


class SubmissionValidationError(Exception):
    """Raised when the form is incomplete. Never reaches the network."""


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated tag string, trimming whitespace and dropping empty segments."""
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def derive_sku(title: str) -> str:
    """Lowercase the title and collapse runs of non-alphanumerics to one underscore."""
    return _NON_ALNUM.sub("_", title.lower()).strip("_")


def _is_valid_id(value: str) -> bool:
    return not value or (value.isascii() and value.isdigit())


def _optional_id(value: str) -> int | None:
    if not value or value == NONE_ID:
        return None
    return int(value)


@dataclass(frozen=True)
class UploadPayload:
    """One file part of the submission form."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class DraftListingDefaults:
    """Fixed fields every draft digital-download listing is created with."""

    quantity: int = 999
    price: float = 3.00
    who_made: str = "i_did"
    when_made: str = "2020_2029"
    taxonomy_id: int = 2078
    shop_section_id: int | None = 41824610
    listing_type: str = "digital"
    state: str = "draft"


@dataclass
class ListingSubmission:
    """
    The in-flight listing request, built from the form.

    Never persisted. Discarded once the workflow reaches a terminal state.
    """

    title: str = ""
    description: str = ""
    primary_color_id: str = "1"
    secondary_color_id: str = "10"
    holiday_id: str = "1"
    tags: list[str] = field(default_factory=list)
    image_1: UploadPayload | None = None
    image_2: UploadPayload | None = None
    archive: UploadPayload | None = None

    @property
    def sku(self) -> str:
        return derive_sku(self.title)

    def validate(self) -> None:
        """Raise SubmissionValidationError unless the form is complete."""
        if (
            not self.title.strip()
            or not self.description.strip()
            or self.image_1 is None
            or self.image_2 is None
            or self.archive is None
        ):
            raise SubmissionValidationError(INCOMPLETE_MESSAGE)
        if not MIN_TAGS <= len(self.tags) <= MAX_TAGS:
            raise SubmissionValidationError(
                f"Please provide between {MIN_TAGS} and {MAX_TAGS} tags."
            )
        for name, value in (
            ("primary color", self.primary_color_id),
            ("secondary color", self.secondary_color_id),
            ("holiday", self.holiday_id),
        ):
            if not _is_valid_id(value):
                raise SubmissionValidationError(f"Please choose a valid {name}.")

    def uploads(self) -> tuple[UploadPayload, UploadPayload, UploadPayload]:
        """The two preview images and the archive, in upload order."""
        if self.image_1 is None or self.image_2 is None or self.archive is None:
            raise SubmissionValidationError(INCOMPLETE_MESSAGE)
        return self.image_1, self.image_2, self.archive

    def to_draft_payload(self, defaults: DraftListingDefaults) -> dict[str, Any]:
        """JSON body for POST /application/shops/{shop_id}/listings."""
        return {
            "title": self.title,
            "description": self.description,
            "quantity": defaults.quantity,
            "price": defaults.price,
            "who_made": defaults.who_made,
            "when_made": defaults.when_made,
            "taxonomy_id": defaults.taxonomy_id,
            # Not needed for digital items
            "shipping_profile_id": None,
            "shop_section_id": defaults.shop_section_id,
            "is_supply": False,
            "type": defaults.listing_type,
            "state": defaults.state,
            "tags": list(self.tags),
            "sku": [self.sku],
            "primary_color_id": _optional_id(self.primary_color_id),
            "secondary_color_id": _optional_id(self.secondary_color_id),
            # Occasions and holidays are separate fields; only holiday is collected
            "occasion_id": None,
            "holiday_id": _optional_id(self.holiday_id),
            "is_personalizable": False,
        }
