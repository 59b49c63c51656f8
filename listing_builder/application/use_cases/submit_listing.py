from dataclasses import dataclass

import structlog

from listing_builder.application.interfaces.event_publisher import EventPublisher
from listing_builder.application.interfaces.marketplace_api import MarketplaceApi
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.domain.entities.listing_submission import (
    DraftListingDefaults,
    ListingSubmission,
    SubmissionValidationError,
    UploadPayload,
)
from listing_builder.domain.enums.submission_step import SubmissionStep
from listing_builder.domain.events.submission_events import (
    SubmissionFailed,
    SubmissionInProgress,
    SubmissionSucceeded,
)
from listing_builder.domain.state_machine.submission_state_machine import (
    SubmissionStateMachine,
)

logger = structlog.get_logger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log out and log in again."


class NoShopAssociatedError(Exception):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__("Could not find a shop associated with your account.")


class NotAuthenticatedError(Exception):
    def __init__(self) -> None:
        super().__init__("Authentication error. Please log in again.")


class SubmissionInProgressError(Exception):
    def __init__(self, step: SubmissionStep) -> None:
        self.step = step
        super().__init__(f"A submission is already running ({step.value}).")


def is_session_expired(exc: Exception) -> bool:
    """
    Heuristic carried over from the browser client: a 401, or any error whose
    text mentions a token, means the stored token is no longer usable.
    """
    if isinstance(exc, NotAuthenticatedError):
        return True
    if getattr(exc, "status_code", None) == 401:
        return True
    return "token" in str(exc).lower()


@dataclass
class _RunContext:
    listing_id: int | None = None


class SubmitListing:
    """
    Use case: publish one draft digital listing.

    Runs fetch account -> create draft -> image 1 -> image 2 -> archive
    strictly in order through SubmissionStateMachine, publishing a progress
    event on entry to every step. Every failure is caught here and turned
    into a SubmissionFailed result; nothing is retried.
    """

    def __init__(
        self,
        api: MarketplaceApi,
        credentials: CredentialStore,
        event_publisher: EventPublisher,
        defaults: DraftListingDefaults | None = None,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._event_publisher = event_publisher
        self._defaults = defaults or DraftListingDefaults()
        self._machine = SubmissionStateMachine()

    @property
    def step(self) -> SubmissionStep:
        return self._machine.step

    async def execute(
        self, submission: ListingSubmission
    ) -> SubmissionSucceeded | SubmissionFailed:
        if self._machine.step.is_busy:
            raise SubmissionInProgressError(self._machine.step)
        self._machine.reset()

        try:
            submission.validate()
            uploads = submission.uploads()
        except SubmissionValidationError as exc:
            logger.info("submission_rejected", reason=str(exc))
            failed = SubmissionFailed(message=str(exc))
            await self._event_publisher.publish(failed)
            return failed

        ctx = _RunContext()
        try:
            listing_id = await self._run_steps(submission, uploads, ctx)
        except Exception as exc:
            return await self._fail(exc, ctx)

        self._machine.transition_to(SubmissionStep.SUCCEEDED)
        logger.info("listing_submitted", listing_id=listing_id)
        succeeded = SubmissionSucceeded(
            listing_id=listing_id,
            message=f"Successfully created draft listing! Listing ID: {listing_id}",
        )
        await self._event_publisher.publish(succeeded)
        self._machine.reset()
        return succeeded

    async def _run_steps(
        self,
        submission: ListingSubmission,
        uploads: tuple[UploadPayload, UploadPayload, UploadPayload],
        ctx: _RunContext,
    ) -> int:
        image_1, image_2, archive = uploads

        token = await self._enter(SubmissionStep.FETCHING_ACCOUNT)
        account = await self._api.get_me(token)
        if not account.shop_id:
            raise NoShopAssociatedError(account.user_id)

        token = await self._enter(SubmissionStep.CREATING_DRAFT)
        ctx.listing_id = await self._api.create_listing(
            account.shop_id, submission.to_draft_payload(self._defaults), token
        )
        logger.info("draft_created", listing_id=ctx.listing_id, shop_id=account.shop_id)

        token = await self._enter(SubmissionStep.UPLOADING_IMAGE_1)
        await self._api.upload_image(ctx.listing_id, image_1, 1, token)

        token = await self._enter(SubmissionStep.UPLOADING_IMAGE_2)
        await self._api.upload_image(ctx.listing_id, image_2, 2, token)

        token = await self._enter(SubmissionStep.UPLOADING_ARCHIVE)
        await self._api.upload_file(ctx.listing_id, archive, token)

        return ctx.listing_id

    async def _enter(self, step: SubmissionStep) -> str:
        """Advance to step, announce it, and capture the token for its call."""
        self._machine.transition_to(step)
        await self._event_publisher.publish(SubmissionInProgress(step=step, label=step.label))
        token = self._credentials.token
        if token is None:
            raise NotAuthenticatedError()
        return token

    async def _fail(self, exc: Exception, ctx: _RunContext) -> SubmissionFailed:
        failed_step = self._machine.step
        self._machine.transition_to(SubmissionStep.FAILED)

        logger.exception(
            "submission_step_failed",
            step=failed_step.value,
            draft_listing_id=ctx.listing_id,
        )

        expired = is_session_expired(exc)
        if expired:
            self._credentials.clear()
            message = SESSION_EXPIRED_MESSAGE
        else:
            message = f"Failed to {failed_step.operation}: {exc}"

        if ctx.listing_id is not None:
            logger.warning(
                "partial_draft_left_behind",
                listing_id=ctx.listing_id,
                failed_step=failed_step.value,
            )

        failed = SubmissionFailed(
            message=message,
            is_auth_expired=expired,
            failed_step=failed_step,
            draft_listing_id=ctx.listing_id,
        )
        await self._event_publisher.publish(failed)
        return failed
