"""
Battery profile definitions for SOHcast.

A ``BatteryProfile`` is the fully resolved input of the degradation engine.
Requests arrive with most fields optional; ``resolve_profile`` applies the
defaults once so that every engine function can assume a complete record:

    chargeCycles:       float, full equivalent cycles (default 0)
    avgTemperature:     float, average cell temperature in Celsius (default 25)
    nominalCapacity:    float, rated capacity, required and strictly positive
    currentCapacity:    float, measured capacity, optional
    dodPct:             float, depth of discharge in percent (default 80)
    cRate:              float, charge/discharge rate (default 0.8)
    calendarAgeMonths / calendarAgeYears: age since manufacture (default 0)
    unit:               one of Ah, kWh, Wh (default Ah)

The pydantic request models at the bottom of the module carry the range
limits enforced at the HTTP boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

CapacityUnit = Literal["Ah", "kWh", "Wh"]

DEFAULT_CHARGE_CYCLES = 0.0
DEFAULT_TEMPERATURE_C = 25.0
DEFAULT_DOD_PCT = 80.0
DEFAULT_C_RATE = 0.8
DEFAULT_UNIT = "Ah"
DEFAULT_SUMMARY_AGE_MONTHS = 12.0

# Accepted spellings of each profile field, API camelCase first.
_FIELD_ALIASES = {
    "charge_cycles": ("chargeCycles", "charge_cycles"),
    "avg_temperature": ("avgTemperature", "avg_temperature"),
    "nominal_capacity": ("nominalCapacity", "nominal_capacity"),
    "current_capacity": ("currentCapacity", "current_capacity"),
    "dod_pct": ("dodPct", "dod_pct"),
    "c_rate": ("cRate", "c_rate"),
    "calendar_age_months": ("calendarAgeMonths", "calendar_age_months"),
    "calendar_age_years": ("calendarAgeYears", "calendar_age_years"),
    "unit": ("unit",),
}


class InvalidProfile(ValueError):
    """Raised when a profile violates a hard precondition of the engine."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(frozen=True)
class BatteryProfile:
    """Resolved, immutable battery usage profile."""

    nominal_capacity: float
    charge_cycles: float = DEFAULT_CHARGE_CYCLES
    avg_temperature: float = DEFAULT_TEMPERATURE_C
    current_capacity: Optional[float] = None
    dod_pct: float = DEFAULT_DOD_PCT
    c_rate: float = DEFAULT_C_RATE
    calendar_age_years: float = 0.0
    unit: str = DEFAULT_UNIT

    @property
    def calendar_age_months(self) -> float:
        return self.calendar_age_years * 12

    @property
    def has_measurement(self) -> bool:
        return self.current_capacity is not None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    # pandas rows carry NaN for empty cells
    return isinstance(value, float) and value != value


def _lookup(payload: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if key in payload and not _is_missing(payload[key]):
            return payload[key]
    return None


def _number(value: Any, default: float) -> float:
    if value is None:
        return default
    return float(value)


def resolve_profile(payload: Mapping[str, Any]) -> BatteryProfile:
    """
    Build a BatteryProfile from a request-like mapping.

    Keys may be given in API camelCase or in snake_case.  Missing optional
    fields receive their defaults, negative counts are clamped to zero and
    calendar age given in months is converted to years (an explicit
    ``calendarAgeYears`` takes precedence).

    :raises InvalidProfile: if ``nominalCapacity`` is missing or not positive.
    """
    nominal = _lookup(payload, "nominal_capacity")
    if nominal is None:
        raise InvalidProfile("nominalCapacity is required", field="nominalCapacity")
    nominal = float(nominal)
    if nominal <= 0:
        raise InvalidProfile("nominalCapacity must be a positive number", field="nominalCapacity")

    years = _lookup(payload, "calendar_age_years")
    if years is not None:
        calendar_age_years = max(float(years), 0.0)
    else:
        calendar_age_years = max(_number(_lookup(payload, "calendar_age_months"), 0.0), 0.0) / 12

    current = _lookup(payload, "current_capacity")
    unit = _lookup(payload, "unit") or DEFAULT_UNIT

    return BatteryProfile(
        nominal_capacity=nominal,
        charge_cycles=max(_number(_lookup(payload, "charge_cycles"), DEFAULT_CHARGE_CYCLES), 0.0),
        avg_temperature=_number(_lookup(payload, "avg_temperature"), DEFAULT_TEMPERATURE_C),
        current_capacity=max(float(current), 0.0) if current is not None else None,
        dod_pct=_number(_lookup(payload, "dod_pct"), DEFAULT_DOD_PCT),
        c_rate=_number(_lookup(payload, "c_rate"), DEFAULT_C_RATE),
        calendar_age_years=calendar_age_years,
        unit=str(unit),
    )


# ---------------------------------------------------------------------------
# Request schemas

class AnalysisRequest(BaseModel):
    """Body of the full analysis and trend endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    charge_cycles: float = Field(DEFAULT_CHARGE_CYCLES, ge=0, le=10000, alias="chargeCycles")
    avg_temperature: float = Field(DEFAULT_TEMPERATURE_C, ge=-40, le=80, alias="avgTemperature")
    nominal_capacity: float = Field(..., ge=0.1, le=10000, alias="nominalCapacity")
    current_capacity: Optional[float] = Field(None, ge=0, le=10000, alias="currentCapacity")
    c_rate: float = Field(DEFAULT_C_RATE, ge=0.1, le=5, alias="cRate")
    dod_pct: float = Field(DEFAULT_DOD_PCT, ge=10, le=100, alias="dodPct")
    calendar_age_months: Optional[float] = Field(None, ge=0, le=360, alias="calendarAgeMonths")
    calendar_age_years: Optional[float] = Field(None, ge=0, le=30, alias="calendarAgeYears")
    unit: CapacityUnit = DEFAULT_UNIT

    def to_profile(self) -> BatteryProfile:
        return resolve_profile(self.model_dump())


class HealthRequest(BaseModel):
    """Body of the quick health summary endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nominal_capacity: float = Field(..., ge=0.1, le=10000, alias="nominalCapacity")
    current_capacity: Optional[float] = Field(None, ge=0, le=10000, alias="currentCapacity")
    charge_cycles: float = Field(DEFAULT_CHARGE_CYCLES, ge=0, le=10000, alias="chargeCycles")
    avg_temperature: float = Field(DEFAULT_TEMPERATURE_C, ge=-40, le=80, alias="avgTemperature")
    calendar_age_months: float = Field(
        DEFAULT_SUMMARY_AGE_MONTHS, ge=0, le=360, alias="calendarAgeMonths"
    )
    dod_pct: float = Field(DEFAULT_DOD_PCT, ge=10, le=100, alias="dodPct")
    unit: CapacityUnit = DEFAULT_UNIT

    @property
    def calendar_age_estimated(self) -> bool:
        """An explicit zero asks for the age to be estimated from cycles."""
        return self.calendar_age_months == 0

    def assumptions(self) -> dict:
        """Values filled in because the caller did not send them."""
        supplied = self.model_fields_set
        profile = self.to_profile()
        return {
            "estimatedCalendarAge": round(profile.calendar_age_months) if self.calendar_age_estimated else None,
            "defaultTemperature": None if "avg_temperature" in supplied else DEFAULT_TEMPERATURE_C,
            "defaultDoD": None if "dod_pct" in supplied else DEFAULT_DOD_PCT,
        }

    def to_profile(self) -> BatteryProfile:
        """Resolve the profile, estimating calendar age from cycles when it is zero."""
        payload = self.model_dump()
        if self.calendar_age_estimated:
            # roughly 20 cycles per month, never less than a year
            payload["calendar_age_months"] = max(12, int(self.charge_cycles // 20))
        return resolve_profile(payload)
