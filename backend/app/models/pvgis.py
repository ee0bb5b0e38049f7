"""
Pydantic models for PVGIS queries: request input, the normalized result set,
and the API response envelope.
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.config import (
    Technology,
    Mounting,
    DEFAULT_PEAK_POWER_KW,
    DEFAULT_SYSTEM_LOSS_PERCENT,
    DEFAULT_TILT_ANGLE_DEG,
    DEFAULT_AZIMUTH_DEG,
)


class Coordinate(BaseModel):
    """Site location in decimal degrees. Range checks belong to the caller."""
    latitude: float
    longitude: float


class SystemConfig(BaseModel):
    """PV system parameters sent to PVGIS with every data query."""
    peak_power_kw: float = DEFAULT_PEAK_POWER_KW
    system_loss_percent: float = DEFAULT_SYSTEM_LOSS_PERCENT
    tilt_angle_deg: float = DEFAULT_TILT_ANGLE_DEG
    azimuth_deg: float = DEFAULT_AZIMUTH_DEG
    technology: Technology = Technology.CRYSTALLINE_SILICON
    mounting: Mounting = Mounting.FREE


class MonthlyRecord(BaseModel):
    """One month's (or the yearly average's) energy and irradiation figures."""

    month: Optional[int] = Field(
        default=None, ge=1, le=12,
        description="Calendar month 1-12; None for the yearly average row",
    )
    Ed: float = Field(..., description="Average daily energy production (kWh)")
    Em: float = Field(..., description="Average monthly energy production (kWh)")
    Hd: float = Field(..., description="Average daily irradiation (kWh/m²)")
    Hm: float = Field(..., description="Average monthly irradiation (kWh/m²)")
    SDm: Optional[float] = Field(
        default=None,
        description="Std. deviation of monthly energy (kWh); not reported by the HTML output",
    )


class YearlyTotal(BaseModel):
    """Per-field sum of the twelve monthly records."""
    Ed: float
    Em: float
    Hd: float
    Hm: float
    SDm: float


class FixedSystemLosses(BaseModel):
    """Loss breakdown from the 'Fixed system:' row (percent)."""
    aoi: float = Field(..., description="Angle-of-incidence loss (%)")
    spectral: float = Field(..., description="Spectral effects (%)")
    temperature: float = Field(..., description="Temperature and low irradiance loss (%)")
    combined: float = Field(..., description="Combined losses (%)")


class ReportedYearlyTotal(BaseModel):
    """Yearly totals as printed by the classic HTML output ('Total for year')."""
    e: float
    h: float


class ParsedResponse(BaseModel):
    """Parser output. Any field may be missing; the resolver judges completeness."""

    monthly: dict[int, Optional[MonthlyRecord]] = Field(default_factory=dict)
    yearly_average: Optional[MonthlyRecord] = None
    fixed_system_losses: Optional[FixedSystemLosses] = None
    reported_total: Optional[ReportedYearlyTotal] = None
    no_data: bool = False

    def missing_fields(self) -> list[str]:
        missing = [
            f"month {month}"
            for month in range(1, 13)
            if self.monthly.get(month) is None
        ]
        if self.yearly_average is None:
            missing.append("yearly average")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


class ResultSet(BaseModel):
    """Fully populated, normalized PVGIS result."""

    monthly: list[MonthlyRecord] = Field(..., min_length=12, max_length=12)
    yearly_average: MonthlyRecord
    yearly_total: YearlyTotal
    fixed_system_losses: Optional[FixedSystemLosses] = None
    reported_total: Optional[ReportedYearlyTotal] = None


class CandidateAttempt(BaseModel):
    """Diagnostic record of one candidate database attempt."""
    database: str
    outcome: str  # parsed | transport_failed | parse_incomplete | skipped
    detail: str = ""


class Resolution(BaseModel):
    """Successful outcome of resolve()."""
    database: str
    result: ResultSet
    attempts: list[CandidateAttempt]


# ---------------------------------------------------------------------------
# API envelopes
# ---------------------------------------------------------------------------

class PvgisQueryInput(BaseModel):
    """Input model for a PVGIS yield estimate."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude (decimal degrees)")
    lng: float = Field(..., ge=-180, le=180, description="Longitude (decimal degrees)")
    peakpower: float = Field(
        default=DEFAULT_PEAK_POWER_KW, ge=0,
        description="Nominal power of the PV system (kWp)",
    )
    loss: float = Field(
        default=DEFAULT_SYSTEM_LOSS_PERCENT, ge=0, le=100,
        description="System losses (%)",
    )
    angle: float = Field(
        default=DEFAULT_TILT_ANGLE_DEG, ge=0, le=90,
        description="Fixed slope of modules (deg.)",
    )
    aspect: float = Field(
        default=DEFAULT_AZIMUTH_DEG, ge=-180, le=180,
        description="Orientation (azimuth) of modules; 0 = south",
    )
    pvtech: Technology = Field(
        default=Technology.CRYSTALLINE_SILICON,
        description="PV technology: crystSi, CIS or CdTe (case sensitive)",
    )
    mounting: Mounting = Field(
        default=Mounting.FREE,
        description="Mounting position: free or building",
    )

    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lng)

    def system_config(self) -> SystemConfig:
        return SystemConfig(
            peak_power_kw=self.peakpower,
            system_loss_percent=self.loss,
            tilt_angle_deg=self.angle,
            azimuth_deg=self.aspect,
            technology=self.pvtech,
            mounting=self.mounting,
        )


class InputEcho(BaseModel):
    """One echoed input parameter with its display label."""
    info: str
    value: float | str


class PvgisQueryOutput(BaseModel):
    """API response: the database used, echoed inputs, the result set and field glossary."""

    database: str
    input: dict[str, InputEcho]
    data: ResultSet
    info: dict[str, str]
