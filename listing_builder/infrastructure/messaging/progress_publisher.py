import structlog

from listing_builder.application.interfaces.event_publisher import EventPublisher
from listing_builder.domain.events.submission_events import (
    SubmissionEvent,
    SubmissionFailed,
    SubmissionInProgress,
    SubmissionSucceeded,
)

logger = structlog.get_logger(__name__)


class InMemoryProgressPublisher(EventPublisher):
    """
    Keeps the events of the latest submission so the UI can poll the current
    step. A new run starts when the first step is announced.
    """

    def __init__(self) -> None:
        self._events: list[SubmissionEvent] = []

    @property
    def events(self) -> list[SubmissionEvent]:
        return list(self._events)

    @property
    def latest(self) -> SubmissionEvent | None:
        return self._events[-1] if self._events else None

    async def publish(self, event: SubmissionEvent) -> None:
        if self._starts_new_run(event):
            self._events.clear()
        self._events.append(event)

        if isinstance(event, SubmissionInProgress):
            logger.info("submission_progress", step=event.step.value)
        elif isinstance(event, SubmissionSucceeded):
            logger.info("submission_succeeded", listing_id=event.listing_id)
        elif isinstance(event, SubmissionFailed):
            logger.info(
                "submission_failed",
                failed_step=event.failed_step.value,
                is_auth_expired=event.is_auth_expired,
            )

    def _starts_new_run(self, event: SubmissionEvent) -> bool:
        latest = self.latest
        if latest is None:
            return False
        # Anything after a terminal event belongs to the next run
        return isinstance(latest, (SubmissionSucceeded, SubmissionFailed))
