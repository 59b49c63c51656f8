from listing_builder.domain.enums.submission_step import SubmissionStep


# Mapping of valid transitions: from_step -> set of allowed to_steps
VALID_TRANSITIONS: dict[SubmissionStep, frozenset[SubmissionStep]] = {
    SubmissionStep.IDLE: frozenset({SubmissionStep.FETCHING_ACCOUNT}),
    SubmissionStep.FETCHING_ACCOUNT: frozenset(
        {SubmissionStep.CREATING_DRAFT, SubmissionStep.FAILED}
    ),
    SubmissionStep.CREATING_DRAFT: frozenset(
        {SubmissionStep.UPLOADING_IMAGE_1, SubmissionStep.FAILED}
    ),
    SubmissionStep.UPLOADING_IMAGE_1: frozenset(
        {SubmissionStep.UPLOADING_IMAGE_2, SubmissionStep.FAILED}
    ),
    SubmissionStep.UPLOADING_IMAGE_2: frozenset(
        {SubmissionStep.UPLOADING_ARCHIVE, SubmissionStep.FAILED}
    ),
    SubmissionStep.UPLOADING_ARCHIVE: frozenset(
        {SubmissionStep.SUCCEEDED, SubmissionStep.FAILED}
    ),
    # Terminal states only reset
    SubmissionStep.SUCCEEDED: frozenset({SubmissionStep.IDLE}),
    SubmissionStep.FAILED: frozenset({SubmissionStep.IDLE}),
}


class InvalidStepTransitionError(Exception):
    """Raised when the workflow tries to skip or reorder a step."""

    def __init__(self, from_step: SubmissionStep, to_step: SubmissionStep) -> None:
        self.from_step = from_step
        self.to_step = to_step
        super().__init__(
            f"Invalid transition from {from_step.value} to {to_step.value}. "
            f"Allowed transitions: {sorted(s.value for s in VALID_TRANSITIONS.get(from_step, frozenset()))}"
        )


class SubmissionStateMachine:
    """
    Tracks the current step of one submission and enforces the fixed order
    account -> draft -> image 1 -> image 2 -> archive.
    """

    def __init__(self) -> None:
        self._step = SubmissionStep.IDLE

    @property
    def step(self) -> SubmissionStep:
        return self._step

    def can_transition(self, to_step: SubmissionStep) -> bool:
        return to_step in VALID_TRANSITIONS.get(self._step, frozenset())

    def transition_to(self, to_step: SubmissionStep) -> None:
        """Move to to_step or raise InvalidStepTransitionError."""
        if not self.can_transition(to_step):
            raise InvalidStepTransitionError(self._step, to_step)
        self._step = to_step

    def reset(self) -> None:
        """Return a finished run to IDLE. No-op when already idle."""
        if self._step is not SubmissionStep.IDLE:
            self.transition_to(SubmissionStep.IDLE)
