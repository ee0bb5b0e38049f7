"""
Failure taxonomy for PVGIS resolution.

Only the terminal kinds escape resolve(). Per-candidate failures advance the
fallback loop and are kept as diagnostics.
"""

from app.models.pvgis import CandidateAttempt


class PvgisError(Exception):
    """Base class for all PVGIS query failures."""


class CoverageLookupFailed(PvgisError):
    """The coverage endpoint was unreachable or returned a malformed answer."""


class NoCoverageForLocation(PvgisError):
    """Coverage lookup succeeded but no candidate database covers the coordinate."""


class AllCandidatesExhausted(PvgisError):
    """Every covering candidate failed to produce a complete result."""

    def __init__(self, message: str, attempts: list[CandidateAttempt]):
        super().__init__(message)
        self.attempts = attempts


class ResolveDeadlineExceeded(AllCandidatesExhausted):
    """The overall deadline ran out before a candidate succeeded."""


class ResolveCancelled(PvgisError):
    """The caller abandoned the request."""


class CandidateFailure(PvgisError):
    """A single candidate database failed; the resolver moves on."""

    def __init__(self, database: str, message: str):
        super().__init__(f"{database}: {message}")
        self.database = database
        self.reason = message


class QueryTransportFailed(CandidateFailure):
    """Transport error, non-success status or empty body from the data query."""


class ParseIncomplete(CandidateFailure):
    """The response parsed, but required months or the yearly average were missing."""
