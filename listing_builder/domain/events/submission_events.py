from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from listing_builder.domain.enums.submission_step import SubmissionStep


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SubmissionEvent:
    """Base class for all submission progress events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class SubmissionInProgress(SubmissionEvent):
    """Published on entry to each network step."""

    step: SubmissionStep = SubmissionStep.FETCHING_ACCOUNT
    label: str = ""


@dataclass(frozen=True)
class SubmissionSucceeded(SubmissionEvent):
    """Published once the archive is attached to the draft."""

    listing_id: int = 0
    message: str = ""


@dataclass(frozen=True)
class SubmissionFailed(SubmissionEvent):
    """
    Published when validation rejects the form or any step fails.

    draft_listing_id is set when the draft was created before the failure,
    so the partial draft can be finished or deleted by hand.
    """

    message: str = ""
    is_auth_expired: bool = False
    failed_step: SubmissionStep = SubmissionStep.IDLE
    draft_listing_id: int | None = None


SubmissionResult = SubmissionInProgress | SubmissionSucceeded | SubmissionFailed
