"""
Data-query transports for the PVGIS calculator.

Two upstream calculators exist: the v5 PVcalc.php (query-string GET, answers
in tab-delimited plain text) and the classic apps4 PVcalc.php (form POST,
answers with an HTML fragment). Each client issues one bounded request and
never retries.
"""

import logging
from abc import ABC, abstractmethod

import requests

from app.config import (
    Dialect,
    PVGIS_V5_CALC_URL,
    PVGIS_CLASSIC_CALC_URL,
    PVGIS_V5_TEMPLATE,
    PVGIS_CLASSIC_TEMPLATE,
    PVGIS_USER_AGENT,
)
from app.engine.errors import QueryTransportFailed
from app.engine.numbers import INVARIANT, NumberFormat, format_number
from app.engine.transport import Budget, read_text
from app.models.pvgis import Coordinate, SystemConfig

log = logging.getLogger(__name__)


class IrradiationClient(ABC):
    """Base class for PVGIS data-query transports."""

    dialect: Dialect
    url: str

    def __init__(self, number_format: NumberFormat = INVARIANT):
        self.number_format = number_format

    @abstractmethod
    def build_fields(
        self, database: str, coordinate: Coordinate, system: SystemConfig
    ) -> dict[str, str]:
        """Return the full set of request fields for one candidate."""
        ...

    @abstractmethod
    def _send(
        self, session: requests.Session, fields: dict[str, str], timeout: float
    ) -> requests.Response:
        ...

    def fetch(
        self,
        database: str,
        coordinate: Coordinate,
        system: SystemConfig,
        session: requests.Session,
        budget: Budget,
    ) -> str:
        """
        Query one candidate database and return the raw response body.

        Raises:
            QueryTransportFailed: transport error, non-success status, empty
                body, or a body still arriving when the budget ran out.
            ResolveCancelled: the budget's cancel event was set mid-read
        """
        fields = self.build_fields(database, coordinate, system)
        try:
            response = self._send(session, fields, budget.timeout())
            body = read_text(response, budget)
        except requests.RequestException as exc:
            raise QueryTransportFailed(database, str(exc)) from exc

        if not body or not body.strip():
            raise QueryTransportFailed(database, "empty response body")
        return body

    def _num(self, value: float) -> str:
        return format_number(value, self.number_format)


class PVcalcClient(IrradiationClient):
    """PVGIS v5 calculator, GET with query string, tab-delimited answer."""

    dialect = Dialect.TAB_DELIMITED
    url = PVGIS_V5_CALC_URL

    def build_fields(self, database, coordinate, system):
        fields = {
            "lat": self._num(coordinate.latitude),
            "lon": self._num(coordinate.longitude),
            "raddatabase": database,
            "select_database_grid": database,
            "pvtechchoice": system.technology.value,
            "peakpower": self._num(system.peak_power_kw),
            "loss": self._num(system.system_loss_percent),
            "mountingplace": system.mounting.value,
            "angle": self._num(system.tilt_angle_deg),
            "aspect": self._num(system.azimuth_deg),
        }
        fields.update(PVGIS_V5_TEMPLATE)
        return fields

    def _send(self, session, fields, timeout):
        return session.get(
            self.url,
            params=fields,
            headers={"User-Agent": PVGIS_USER_AGENT},
            timeout=timeout,
            stream=True,
        )


class ClassicClient(IrradiationClient):
    """Legacy apps4 calculator, form-encoded POST, HTML answer."""

    dialect = Dialect.HTML
    url = PVGIS_CLASSIC_CALC_URL

    def build_fields(self, database, coordinate, system):
        fields = dict(PVGIS_CLASSIC_TEMPLATE)
        fields.update({
            "pv_database": database,
            "pvtechchoice": system.technology.value,
            "peakpower": self._num(system.peak_power_kw),
            "efficiency": self._num(system.system_loss_percent),
            "mountingplace": system.mounting.value,
            "angle": self._num(system.tilt_angle_deg),
            "aspectangle": self._num(system.azimuth_deg),
            "latitude": self._num(coordinate.latitude),
            "longitude": self._num(coordinate.longitude),
        })
        return fields

    def _send(self, session, fields, timeout):
        # requests sets the x-www-form-urlencoded content type for dict data
        return session.post(
            self.url,
            data=fields,
            headers={"User-Agent": PVGIS_USER_AGENT},
            timeout=timeout,
            stream=True,
        )


CLIENTS: dict[str, type[IrradiationClient]] = {
    "v5": PVcalcClient,
    "classic": ClassicClient,
}


def client_for(endpoint: str) -> IrradiationClient:
    """Build the client registered under an endpoint name ('v5' or 'classic')."""
    try:
        return CLIENTS[endpoint]()
    except KeyError:
        raise ValueError(
            f"Unknown PVGIS endpoint '{endpoint}'. Choose one of: {', '.join(CLIENTS)}."
        )
