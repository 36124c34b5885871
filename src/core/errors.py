# src/core/errors.py - v1
"""Error taxonomy shared by the orchestrator, its collaborators and entry points.

Domain errors (IllegalTransitionError, StepFailure, ExternalServiceError and
ConcurrentUpdateError) are turned into failed step results and ledgered.
NotFoundError propagates to the caller. Anything else is infrastructure and
propagates unrecorded.
"""

from __future__ import annotations


class ContentFlowError(Exception):
    """Base class for all contentflow errors."""


class NotFoundError(ContentFlowError):
    """Work item or publishing target does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class IllegalTransitionError(ContentFlowError):
    """Requested step (or rollback) is not allowed from the current status."""

    def __init__(self, message: str, status: str | None = None, step: str | None = None):
        self.status = status
        self.step = step
        super().__init__(message)


class ConcurrentUpdateError(ContentFlowError):
    """Conditional update lost a race: the item's status changed underneath."""

    def __init__(self, work_item_id: str, expected: str, actual: str):
        self.work_item_id = work_item_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"status changed concurrently for {work_item_id}: "
            f"expected {expected}, found {actual}"
        )


class StepFailure(ContentFlowError):
    """Domain failure raised by a step handler.

    Carries whatever usage was spent before failing so it can be ledgered.
    """

    def __init__(
        self,
        message: str,
        *,
        tokens_in: int = 0,
        tokens_out: int = 0,
        cost_usd: float = 0.0,
        model_used: str | None = None,
    ):
        self.tokens_in = tokens_in
        self.tokens_out = tokens_out
        self.cost_usd = cost_usd
        self.model_used = model_used
        super().__init__(message)


class ExternalServiceError(ContentFlowError):
    """A collaborator (LLM, publisher, search, image generator) failed."""

    service = "external"


class CompletionError(ExternalServiceError):
    service = "completion"


class PublishingError(ExternalServiceError):
    service = "publishing"


class SearchError(ExternalServiceError):
    service = "search"


class ImageGenerationError(ExternalServiceError):
    service = "image"
