"""
PVGIS resolver: coverage lookup followed by a sequential fallback over the
covering candidate databases.

    SelectingDatabases
        -> TryingCandidate(0) -> TryingCandidate(1) -> ... -> ExhaustedFailure
                  |                    |
                  +--------------------+--> Parsed (first complete parse wins)

Candidates are tried one at a time, in priority order, each exactly once.
The order is a scientific preference, so a faster candidate never jumps the
queue.
"""

import logging
import threading
import time
from contextlib import closing
from typing import Callable, Optional

import requests

from app.config import (
    PVGIS_ENDPOINT,
    PVGIS_REQUEST_TIMEOUT,
    PVGIS_RESOLVE_DEADLINE,
)
from app.engine.aggregator import build_result_set
from app.engine.database_selector import select_databases
from app.engine.errors import (
    AllCandidatesExhausted,
    CandidateFailure,
    NoCoverageForLocation,
    ParseIncomplete,
    QueryTransportFailed,
    ResolveDeadlineExceeded,
)
from app.engine.pvgis_client import IrradiationClient, client_for
from app.engine.response_parser import ResponseParser, parser_for
from app.engine.transport import Budget
from app.models.pvgis import (
    CandidateAttempt,
    Coordinate,
    Resolution,
    ResultSet,
    SystemConfig,
)

log = logging.getLogger(__name__)

Selector = Callable[[Coordinate, requests.Session, Budget], list[str]]


class PvgisResolver:
    """Runs one resolve per call. Holds no per-request state between calls."""

    def __init__(
        self,
        client: Optional[IrradiationClient] = None,
        parser: Optional[ResponseParser] = None,
        selector: Selector = select_databases,
        request_timeout: float = PVGIS_REQUEST_TIMEOUT,
        deadline: float = PVGIS_RESOLVE_DEADLINE,
        session_factory: Callable[[], requests.Session] = requests.Session,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client or client_for(PVGIS_ENDPOINT)
        self.parser = parser or parser_for(self.client.dialect)
        if self.parser.dialect != self.client.dialect:
            raise ValueError(
                f"Parser dialect '{self.parser.dialect.value}' does not match "
                f"client dialect '{self.client.dialect.value}'."
            )
        self.selector = selector
        self.request_timeout = request_timeout
        self.deadline = deadline
        self.session_factory = session_factory
        self.clock = clock

    def resolve(
        self,
        coordinate: Coordinate,
        system: SystemConfig,
        cancel_event: Optional[threading.Event] = None,
    ) -> Resolution:
        """
        Resolve a coordinate and system into a fully populated result.

        The deadline bounds wall-clock time from the first connect to the last
        byte read. Setting cancel_event aborts the call in progress at its next
        chunk boundary.

        Raises:
            CoverageLookupFailed: coverage endpoint unreachable or malformed
            NoCoverageForLocation: no candidate covers the coordinate
            AllCandidatesExhausted: every candidate failed
            ResolveDeadlineExceeded: the deadline ran out first
            ResolveCancelled: cancel_event was set
        """
        budget = Budget.starting_now(self.deadline, self.clock, cancel_event)

        with closing(self.session_factory()) as session:
            budget.check_cancelled()
            candidates = self.selector(
                coordinate, session, budget.narrowed(self.request_timeout)
            )
            if not candidates:
                log.warning(
                    "no coverage lat=%s lon=%s",
                    coordinate.latitude, coordinate.longitude,
                )
                raise NoCoverageForLocation(
                    "No PVGIS database covers the requested location."
                )

            attempts: list[CandidateAttempt] = []
            for index, database in enumerate(candidates):
                budget.check_cancelled()

                if budget.expired():
                    attempts.extend(
                        CandidateAttempt(database=db, outcome="skipped", detail="deadline exceeded")
                        for db in candidates[index:]
                    )
                    log.warning("deadline exceeded before %s", database)
                    raise ResolveDeadlineExceeded(
                        "Deadline exceeded before a PVGIS database answered.",
                        attempts,
                    )

                started = self.clock()
                try:
                    result = self._try_candidate(
                        database, coordinate, system, session,
                        budget.narrowed(self.request_timeout),
                    )
                except CandidateFailure as exc:
                    outcome = (
                        "transport_failed"
                        if isinstance(exc, QueryTransportFailed)
                        else "parse_incomplete"
                    )
                    attempts.append(
                        CandidateAttempt(database=database, outcome=outcome, detail=exc.reason)
                    )
                    log.warning(
                        "attempt database=%s outcome=%s elapsed=%.2fs detail=%s",
                        database, outcome, self.clock() - started, exc.reason,
                    )
                    continue

                # a result that lands after cancellation is discarded
                budget.check_cancelled()

                attempts.append(CandidateAttempt(database=database, outcome="parsed"))
                log.info(
                    "attempt database=%s outcome=parsed elapsed=%.2fs",
                    database, self.clock() - started,
                )
                return Resolution(database=database, result=result, attempts=attempts)

        if budget.expired():
            log.warning("deadline exceeded during %s", candidates[-1])
            raise ResolveDeadlineExceeded(
                "Deadline exceeded before a PVGIS database answered.", attempts
            )

        log.warning("all candidates exhausted: %s", [a.database for a in attempts])
        raise AllCandidatesExhausted(
            "No PVGIS database returned a complete result.", attempts
        )

    def _try_candidate(
        self,
        database: str,
        coordinate: Coordinate,
        system: SystemConfig,
        session: requests.Session,
        budget: Budget,
    ) -> ResultSet:
        body = self.client.fetch(database, coordinate, system, session, budget)

        parsed = self.parser.parse(body)
        if not parsed.is_complete:
            reason = "missing " + ", ".join(parsed.missing_fields())
            if parsed.no_data:
                reason = "no valid daily radiation data; " + reason
            raise ParseIncomplete(database, reason)

        return build_result_set(parsed)


def resolve(
    coordinate: Coordinate,
    system: SystemConfig,
    cancel_event: Optional[threading.Event] = None,
) -> Resolution:
    """Resolve with the configured endpoint, timeout and deadline."""
    return PvgisResolver().resolve(coordinate, system, cancel_event)
