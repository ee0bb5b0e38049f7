"""
Coverage lookup: which candidate radiation databases have data for a site.

PVGIS's extent.php takes the comma-joined candidate list and answers with one
"0"/"1" flag per line, in request order.
"""

import logging

import requests

from app.config import (
    CANDIDATE_DATABASES,
    PVGIS_EXTENT_URL,
    PVGIS_USER_AGENT,
)
from app.engine.errors import CoverageLookupFailed
from app.engine.numbers import INVARIANT, format_number
from app.engine.transport import Budget, read_text
from app.models.pvgis import Coordinate

log = logging.getLogger(__name__)


def select_databases(
    coordinate: Coordinate,
    session: requests.Session,
    budget: Budget,
    candidates: tuple[str, ...] = CANDIDATE_DATABASES,
) -> list[str]:
    """
    Ask PVGIS which candidate databases cover the coordinate.

    Args:
        coordinate: Site location
        session: HTTP session owned by the current resolve call
        budget: Time left for the whole call (connect through last byte)
        candidates: Candidate identifiers in priority order

    Returns:
        Covering candidates in priority order. Empty when nothing covers the
        site, which is a valid answer rather than an error.

    Raises:
        CoverageLookupFailed: transport error, bad status, or a response that
            does not hold exactly one integer flag per candidate.
        ResolveCancelled: the budget's cancel event was set mid-read
    """
    params = {
        "lat": format_number(coordinate.latitude, INVARIANT),
        "lon": format_number(coordinate.longitude, INVARIANT),
        "database": ",".join(candidates),
    }

    try:
        response = session.get(
            PVGIS_EXTENT_URL,
            params=params,
            headers={"User-Agent": PVGIS_USER_AGENT},
            timeout=budget.timeout(),
            stream=True,
        )
        body = read_text(response, budget)
    except requests.RequestException as exc:
        raise CoverageLookupFailed(f"Coverage request failed: {exc}") from exc

    flags = parse_coverage_flags(body, len(candidates))
    selected = [db for db, flag in zip(candidates, flags) if flag != 0]

    log.info(
        "coverage lat=%s lon=%s flags=%s selected=%s",
        params["lat"], params["lon"], flags, selected,
    )
    return selected


def parse_coverage_flags(body: str, expected: int) -> list[int]:
    """Split the extent.php body into integer flags, one per candidate."""
    if not body or not body.strip():
        raise CoverageLookupFailed("Coverage endpoint returned an empty body.")

    lines = body.replace("\r", "").strip().split("\n")
    if len(lines) != expected:
        raise CoverageLookupFailed(
            f"Expected {expected} coverage flags, got {len(lines)}."
        )

    flags = []
    for line in lines:
        try:
            flags.append(int(line.strip()))
        except ValueError:
            raise CoverageLookupFailed(f"Malformed coverage flag: {line!r}")
    return flags
