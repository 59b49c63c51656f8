from datetime import datetime

from pydantic import BaseModel

from listing_builder.domain.enums.submission_step import SubmissionStep
from listing_builder.domain.events.submission_events import (
    SubmissionEvent,
    SubmissionFailed,
    SubmissionInProgress,
    SubmissionSucceeded,
)


class SubmissionEventResponse(BaseModel):
    kind: str
    occurred_at: datetime
    step: SubmissionStep | None = None
    label: str | None = None
    message: str | None = None
    listing_id: int | None = None
    is_auth_expired: bool | None = None
    draft_listing_id: int | None = None


class SubmissionResultResponse(BaseModel):
    success: bool
    message: str
    listing_id: int | None = None
    is_auth_expired: bool = False
    failed_step: SubmissionStep | None = None
    draft_listing_id: int | None = None


class SubmissionProgressResponse(BaseModel):
    step: SubmissionStep
    label: str
    busy: bool
    events: list[SubmissionEventResponse]


def event_to_response(event: SubmissionEvent) -> SubmissionEventResponse:
    if isinstance(event, SubmissionInProgress):
        return SubmissionEventResponse(
            kind="in_progress",
            occurred_at=event.occurred_at,
            step=event.step,
            label=event.label,
        )
    if isinstance(event, SubmissionSucceeded):
        return SubmissionEventResponse(
            kind="succeeded",
            occurred_at=event.occurred_at,
            step=SubmissionStep.SUCCEEDED,
            message=event.message,
            listing_id=event.listing_id,
        )
    if isinstance(event, SubmissionFailed):
        return SubmissionEventResponse(
            kind="failed",
            occurred_at=event.occurred_at,
            step=event.failed_step,
            message=event.message,
            is_auth_expired=event.is_auth_expired,
            draft_listing_id=event.draft_listing_id,
        )
    return SubmissionEventResponse(kind=type(event).__name__, occurred_at=event.occurred_at)


def result_to_response(
    result: SubmissionSucceeded | SubmissionFailed,
) -> SubmissionResultResponse:
    if isinstance(result, SubmissionSucceeded):
        return SubmissionResultResponse(
            success=True, message=result.message, listing_id=result.listing_id
        )
    return SubmissionResultResponse(
        success=False,
        message=result.message,
        is_auth_expired=result.is_auth_expired,
        failed_step=result.failed_step,
        draft_listing_id=result.draft_listing_id,
    )
