from abc import ABC, abstractmethod

from listing_builder.domain.events.submission_events import SubmissionEvent


class EventPublisher(ABC):
    """Port for reporting submission progress to whoever is watching."""

    @abstractmethod
    async def publish(self, event: SubmissionEvent) -> None:
        ...
