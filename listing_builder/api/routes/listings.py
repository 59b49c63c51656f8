from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from listing_builder.api.dependencies import (
    get_progress_publisher,
    get_submit_listing_use_case,
)
from listing_builder.api.schemas.submission_responses import (
    SubmissionProgressResponse,
    SubmissionResultResponse,
    event_to_response,
    result_to_response,
)
from listing_builder.application.use_cases.submit_listing import (
    SubmissionInProgressError,
    SubmitListing,
)
from listing_builder.domain.entities.listing_submission import (
    ListingSubmission,
    UploadPayload,
    parse_tags,
)
from listing_builder.domain.enums.submission_step import SubmissionStep
from listing_builder.domain.events.submission_events import SubmissionSucceeded
from listing_builder.infrastructure.messaging.progress_publisher import (
    InMemoryProgressPublisher,
)

router = APIRouter(prefix="/listings", tags=["listings"])


async def _read_upload(upload: UploadFile | None) -> UploadPayload | None:
    if upload is None or not upload.filename:
        return None
    return UploadPayload(
        filename=upload.filename,
        content=await upload.read(),
        content_type=upload.content_type or "application/octet-stream",
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SubmissionResultResponse,
)
async def submit_listing(
    response: Response,
    title: str = Form(""),
    description: str = Form(""),
    primary_color_id: str = Form("1"),
    secondary_color_id: str = Form("10"),
    holiday_id: str = Form("1"),
    tags: str = Form(""),
    image_1: UploadFile | None = File(None),
    image_2: UploadFile | None = File(None),
    archive: UploadFile | None = File(None),
    use_case: SubmitListing = Depends(get_submit_listing_use_case),
) -> SubmissionResultResponse:
    """Create a draft listing, attach both preview images and the archive."""
    submission = ListingSubmission(
        title=title,
        description=description,
        primary_color_id=primary_color_id,
        secondary_color_id=secondary_color_id,
        holiday_id=holiday_id,
        tags=parse_tags(tags),
        image_1=await _read_upload(image_1),
        image_2=await _read_upload(image_2),
        archive=await _read_upload(archive),
    )

    try:
        result = await use_case.execute(submission)
    except SubmissionInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    if not isinstance(result, SubmissionSucceeded):
        if result.is_auth_expired:
            response.status_code = status.HTTP_401_UNAUTHORIZED
        elif result.failed_step is SubmissionStep.IDLE:
            response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        else:
            response.status_code = status.HTTP_502_BAD_GATEWAY
    return result_to_response(result)


@router.get("/progress", response_model=SubmissionProgressResponse)
async def submission_progress(
    use_case: SubmitListing = Depends(get_submit_listing_use_case),
    publisher: InMemoryProgressPublisher = Depends(get_progress_publisher),
) -> SubmissionProgressResponse:
    """Current step of the running (or latest) submission."""
    step = use_case.step
    return SubmissionProgressResponse(
        step=step,
        label=step.label,
        busy=step.is_busy,
        events=[event_to_response(event) for event in publisher.events],
    )
