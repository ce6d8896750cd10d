"""
errors.py — Exception taxonomy for the progression engine
=========================================================
Every error is recoverable by the caller; none leaves a ProgressRecord in a
partially updated state.

  ProgressionError        base class
  NotFoundError           lesson / quiz / module ID absent from the catalog
  InvalidAnswerError      answer index outside a question's option range
  CatalogError            malformed catalog rejected at load time

An incomplete curriculum is not an exception: the Certification Gate returns
a ``Rejected`` value instead (see certification.py).
"""

from __future__ import annotations

from typing import Optional


class ProgressionError(Exception):
    """Base class for all engine errors."""


class NotFoundError(ProgressionError, LookupError):
    """A referenced catalog entity does not exist."""

    def __init__(self, kind: str, identifier: str, message: Optional[str] = None) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(message or f"Unknown {kind}: {identifier!r}")


class InvalidAnswerError(NotFoundError):
    """A submitted option index does not exist on the question."""

    def __init__(self, question_id: str, answer: object, option_count: int) -> None:
        self.question_id = question_id
        self.answer = answer
        self.option_count = option_count
        super().__init__(
            "option",
            str(answer),
            f"Answer {answer!r} is not a valid option for question {question_id!r} "
            f"({option_count} options)",
        )


class CatalogError(ProgressionError, ValueError):
    """Catalog data failed validation."""
