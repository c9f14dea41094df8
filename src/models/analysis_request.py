# src/models/analysis_request.py

"""Validated input for one price analysis."""

import re
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings
from src.errors import InvalidRequestError

_REGION_RE = re.compile(r"^[A-Z]{2}$")


@dataclass(frozen=True)
class AnalysisRequest:
    """A drug search term and the region to price it in."""

    term: str
    region: str = Settings.DEFAULT_REGION

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AnalysisRequest":
        """Build a request from a loosely-typed payload.

        ``term`` is required and must be non-blank.  ``region`` defaults
        to ``Settings.DEFAULT_REGION`` and is upper-cased; any two-letter
        code is accepted.
        """
        raw_term = payload.get("term")
        if not isinstance(raw_term, str) or not raw_term.strip():
            raise InvalidRequestError(
                "term is required", context={"field": "term"},
            )

        raw_region = payload.get("region") or Settings.DEFAULT_REGION
        if not isinstance(raw_region, str):
            raise InvalidRequestError(
                "region must be a string", context={"field": "region"},
            )
        region = raw_region.strip().upper()
        if not _REGION_RE.match(region):
            raise InvalidRequestError(
                f"region must be a two-letter code, got {raw_region!r}",
                context={"field": "region"},
            )

        return cls(term=raw_term.strip(), region=region)
