from enum import Enum


class SubmissionStep(str, Enum):
    """Every state a listing submission can be in."""

    IDLE = "IDLE"
    FETCHING_ACCOUNT = "FETCHING_ACCOUNT"
    CREATING_DRAFT = "CREATING_DRAFT"
    UPLOADING_IMAGE_1 = "UPLOADING_IMAGE_1"
    UPLOADING_IMAGE_2 = "UPLOADING_IMAGE_2"
    UPLOADING_ARCHIVE = "UPLOADING_ARCHIVE"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Terminal states only lead back to IDLE."""
        return self in (SubmissionStep.SUCCEEDED, SubmissionStep.FAILED)

    @property
    def is_busy(self) -> bool:
        """True while a network step is running."""
        return not self.is_terminal and self is not SubmissionStep.IDLE

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def operation(self) -> str:
        """Name of the logical operation, used to prefix failure messages."""
        return _OPERATIONS.get(self, "create listing")


_LABELS: dict[SubmissionStep, str] = {
    SubmissionStep.IDLE: "Ready.",
    SubmissionStep.FETCHING_ACCOUNT: "Fetching your shop information...",
    SubmissionStep.CREATING_DRAFT: "Creating draft listing...",
    SubmissionStep.UPLOADING_IMAGE_1: "Uploading preview image 1...",
    SubmissionStep.UPLOADING_IMAGE_2: "Uploading preview image 2...",
    SubmissionStep.UPLOADING_ARCHIVE: "Uploading product ZIP file...",
    SubmissionStep.SUCCEEDED: "Listing created.",
    SubmissionStep.FAILED: "Listing failed.",
}

_OPERATIONS: dict[SubmissionStep, str] = {
    SubmissionStep.FETCHING_ACCOUNT: "fetch shop information",
    SubmissionStep.CREATING_DRAFT: "create draft listing",
    SubmissionStep.UPLOADING_IMAGE_1: "upload preview image 1",
    SubmissionStep.UPLOADING_IMAGE_2: "upload preview image 2",
    SubmissionStep.UPLOADING_ARCHIVE: "upload product file",
}
