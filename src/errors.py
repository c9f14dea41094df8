# src/errors.py

"""Exception hierarchy for pharma_prices.

Only :class:`NotFoundError` (and request validation at the service surface)
ever reaches a caller.  The source and persistence errors are raised and
recovered inside the engine.
"""

from typing import Any


class PharmaPricesError(Exception):
    """Base exception carrying an optional structured ``context`` dict."""

    def __init__(
        self, message: str, context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.context = context or {}


class NotFoundError(PharmaPricesError):
    """No local catalog product matches the search term.

    Context keys:
        pharmacy_id: str
        term: str
    """


class InvalidRequestError(PharmaPricesError):
    """An analysis request payload failed validation.

    Context keys:
        field: str
    """


class SourceUnavailable(PharmaPricesError):
    """A source's network path failed after exhausting its retries.

    Recovered by the source itself with a synthetic result.

    Context keys:
        source: str
        attempts: int
    """


class MalformedResponse(SourceUnavailable):
    """A source answered with data that could not be normalised."""


class PersistenceFailure(PharmaPricesError):
    """Writing the analysis audit record failed.  Logged, never raised out."""
