"""
Exception taxonomy for the suggestion and impact engine.

ConfigurationError and InputTooLarge surface before any external call.
Model, parse and persistence failures inside a generation run are wrapped
in AnalysisFailed so callers get a single failure type carrying the cause.
"""

from typing import Optional


class PageAdvisorError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(PageAdvisorError):
    """Required credentials or settings are missing."""


class InputTooLarge(PageAdvisorError):
    """Prompt would exceed the model context budget."""

    def __init__(self, estimated_tokens: int, limit: int):
        self.estimated_tokens = estimated_tokens
        self.limit = limit
        super().__init__(
            f"Prompt too large: ~{estimated_tokens} tokens exceeds limit of {limit}"
        )


class ExternalModelError(PageAdvisorError):
    """The language model call failed (timeout, provider error, empty reply)."""


class ModelResponseParseError(ExternalModelError):
    """The model replied, but not with the JSON shape we asked for."""


class PersistenceError(PageAdvisorError):
    """A data-store read or write failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class NotFoundError(PageAdvisorError):
    """A suggestion or implementation id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStatusTransition(PageAdvisorError):
    """Suggestion status change not allowed from its current status."""

    def __init__(self, suggestion_id: str, current: str, target: str):
        self.suggestion_id = str(suggestion_id)
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move suggestion {suggestion_id} from '{current}' to '{target}'"
        )


class SnapshotReadError(PageAdvisorError):
    """Analytics summary could not be read for a page."""


class MissingBaselineError(PageAdvisorError):
    """Implementation has no before-snapshot, so impact cannot be measured."""


class AnalysisFailed(PageAdvisorError):
    """A suggestion generation run failed.

    Attributes:
        stage: Pipeline stage that failed (load_existing, generate, parse,
            save_session, save_suggestions).
        cause: Underlying exception.
        session_id: Set when the analysis session row was already saved,
            i.e. the failure left a partial side effect.
    """

    def __init__(
        self,
        stage: str,
        cause: Exception,
        session_id: Optional[str] = None,
    ):
        self.stage = stage
        self.cause = cause
        self.session_id = session_id
        super().__init__(f"AI analysis failed during {stage}: {cause}")

    @property
    def partial(self) -> bool:
        return self.session_id is not None
