"""Unified pipeline exception taxonomy.

Every failure raised by the conversion pipeline inherits from
``PipelineError`` and carries the stage it happened in plus a stable,
machine-readable code.

Taxonomy categories
-------------------
- ``ValidationError``: the input document was rejected (structural
  problems detected before any output is written). Never retryable.
- ``PermanentError``: processing failures after validation passed
  (output creation, metadata, indexing, archival). Not retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for the calling job framework and logging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"validating"``, ``"indexing"``).
        code: Machine-readable error code (e.g. ``"TOO_MANY_LAYERS"``).
        retryable: Whether the caller may retry the run.
        correlation_id: Caller-supplied correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        return "validation" if isinstance(self, ValidationError) else "permanent"

    @property
    def is_invalid_input(self) -> bool:
        """Whether the failure is a rejection of the input document itself."""
        return isinstance(self, ValidationError)

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """The input document is structurally unusable. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Processing failure after the input was accepted. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
