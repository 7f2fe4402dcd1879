"""
Battery degradation engine for SOHcast.

This module estimates a battery's state of health from its usage history
and projects the capacity fade curve.  Total fade is the sum of two
physics-inspired components:

* Cycle fade      = k_c * (DoD/100)^alpha * sqrt(cycles) * c_rate_accel
* Calendar fade   = k_t * exp(-Ea / (R * T)) * years^beta

Both coefficients ``k_c`` and ``k_t`` are scaled by a calibration factor.
When the caller supplies a measured capacity and enough cycle history, the
factor is derived by comparing the uncalibrated model against the
measurement, so predictions are pulled towards what the battery actually
shows.

Every function here is pure: the profile goes in, a fresh result comes out,
and nothing is cached between calls.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..data.profile import BatteryProfile, InvalidProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FadeCoefficients:
    """Tunable constants of the fade model and its calibration/trend helpers."""

    k_cycle: float = 0.015
    dod_exponent: float = 0.6
    k_calendar: float = 0.01
    activation_energy: float = 25000.0  # J/mol
    gas_constant: float = 8.314  # J/(mol*K)
    time_exponent: float = 0.7
    c_rate_knee: float = 1.0
    c_rate_slope: float = 0.5
    eol_threshold_pct: float = 70.0
    min_monthly_fade_pct: float = 0.05
    min_calibration_cycles: float = 50
    calibration_bounds: Tuple[float, float] = (0.1, 3.0)
    min_model_fade_pct: float = 0.1
    trend_samples: int = 20
    min_trend_step: int = 25


DEFAULT_COEFFICIENTS = FadeCoefficients()


@dataclass(frozen=True)
class FadeResult:
    """Single-point fade and health estimate."""

    cycle_fade_pct: float
    calendar_fade_pct: float
    model_health_pct: float
    observed_health_pct: float
    estimated_months_to_eol: int
    eol_threshold_pct: float

    @property
    def total_fade_pct(self) -> float:
        return self.cycle_fade_pct + self.calendar_fade_pct

    @property
    def soh(self) -> float:
        """State of health; the measured ratio when one was supplied."""
        return self.observed_health_pct


@dataclass(frozen=True)
class TrendPoint:
    cycle: int
    health_pct: float
    capacity: float

    def to_dict(self) -> dict:
        return {"cycle": self.cycle, "healthPct": self.health_pct, "capacity": self.capacity}


@dataclass(frozen=True)
class ConfidenceAssessment:
    """Reliability grade of a prediction with its expected accuracy band."""

    level: str
    accuracy: str
    description: str

    def to_dict(self) -> dict:
        return {"level": self.level, "description": self.description, "accuracy": self.accuracy}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _measured_health_pct(profile: BatteryProfile) -> Optional[float]:
    if profile.current_capacity is None:
        return None
    return profile.current_capacity / profile.nominal_capacity * 100


def arrhenius_factor(temperature_c: float, coefficients: FadeCoefficients = DEFAULT_COEFFICIENTS) -> float:
    """Thermal rate multiplier exp(-Ea / (R * T)) for a temperature in Celsius."""
    kelvin = temperature_c + 273.15
    return math.exp(-coefficients.activation_energy / (coefficients.gas_constant * kelvin))


def evaluate_fade(
    profile: BatteryProfile,
    calibration_factor: float = 1.0,
    coefficients: FadeCoefficients = DEFAULT_COEFFICIENTS,
) -> FadeResult:
    """
    Compute cycle fade, calendar fade and the resulting state of health.

    :param profile: Resolved battery profile.
    :param calibration_factor: Multiplier applied to both fade coefficients.
    :param coefficients: Model constants; defaults to ``DEFAULT_COEFFICIENTS``.
    :returns: A new FadeResult.
    :raises InvalidProfile: if the nominal capacity is missing or not positive.
    """
    if profile.nominal_capacity is None or profile.nominal_capacity <= 0:
        raise InvalidProfile(
            "nominalCapacity must be a positive number", field="nominalCapacity"
        )

    cycles = max(profile.charge_cycles, 0)
    years = max(profile.calendar_age_years, 0)

    k_c = coefficients.k_cycle * calibration_factor
    k_t = coefficients.k_calendar * calibration_factor

    c_rate_accel = 1 + max(0.0, profile.c_rate - coefficients.c_rate_knee) * coefficients.c_rate_slope
    dod_factor = (max(profile.dod_pct, 0) / 100) ** coefficients.dod_exponent
    cycle_fade = k_c * dod_factor * math.sqrt(cycles) * c_rate_accel

    if years > 0:
        calendar_fade = (
            k_t
            * arrhenius_factor(profile.avg_temperature, coefficients)
            * years ** coefficients.time_exponent
        )
    else:
        calendar_fade = 0.0

    cycle_fade_pct = max(0.0, cycle_fade * 100)
    calendar_fade_pct = max(0.0, calendar_fade * 100)

    model_health_pct = max(0.0, 100 - (cycle_fade_pct + calendar_fade_pct))
    measured = _measured_health_pct(profile)
    if measured is None:
        observed_health_pct = model_health_pct
    else:
        observed_health_pct = min(100.0, max(0.0, measured))

    # Naive remaining life: fade so far spread over the elapsed months.
    months_elapsed = max(1.0, max(years, 0.1) * 12)
    monthly_fade_rate = max(
        (100 - observed_health_pct) / months_elapsed, coefficients.min_monthly_fade_pct
    )
    months_to_eol = max(
        0.0, (observed_health_pct - coefficients.eol_threshold_pct) / monthly_fade_rate
    )

    return FadeResult(
        cycle_fade_pct=cycle_fade_pct,
        calendar_fade_pct=calendar_fade_pct,
        model_health_pct=model_health_pct,
        observed_health_pct=observed_health_pct,
        estimated_months_to_eol=_round_half_up(months_to_eol),
        eol_threshold_pct=coefficients.eol_threshold_pct,
    )


def _has_calibration_signal(profile: BatteryProfile, coefficients: FadeCoefficients) -> bool:
    return (
        profile.current_capacity is not None
        and profile.charge_cycles >= coefficients.min_calibration_cycles
    )


def calibrate(profile: BatteryProfile, coefficients: FadeCoefficients = DEFAULT_COEFFICIENTS) -> float:
    """
    Derive the calibration factor reconciling the model with a measurement.

    The factor is the ratio of measured fade to uncalibrated model fade,
    clamped to ``coefficients.calibration_bounds``.  Without a measurement,
    with too short a cycle history, or when the model predicts negligible
    fade, the neutral factor 1.0 is returned.
    """
    if not _has_calibration_signal(profile, coefficients):
        return 1.0

    uncalibrated = evaluate_fade(profile, 1.0, coefficients)
    model_fade_pct = 100 - uncalibrated.model_health_pct
    actual_fade_pct = 100 - _measured_health_pct(profile)

    if model_fade_pct < coefficients.min_model_fade_pct:
        logger.debug("Model fade %.4f%% too small to calibrate against", model_fade_pct)
        return 1.0

    low, high = coefficients.calibration_bounds
    factor = max(low, min(high, actual_fade_pct / model_fade_pct))
    logger.debug(
        "Calibration factor %.3f (measured fade %.2f%%, model fade %.2f%%)",
        factor,
        actual_fade_pct,
        model_fade_pct,
    )
    return factor


def _trend_point(
    profile: BatteryProfile,
    cycle: float,
    years: float,
    calibration_factor: float,
    coefficients: FadeCoefficients,
) -> TrendPoint:
    # Trend points are model-only; the measured capacity never enters the curve.
    sample = replace(profile, charge_cycles=cycle, calendar_age_years=years, current_capacity=None)
    health = evaluate_fade(sample, calibration_factor, coefficients).model_health_pct
    capacity = health / 100 * profile.nominal_capacity
    return TrendPoint(cycle=cycle, health_pct=round(health, 2), capacity=round(capacity, 2))


def build_trend(
    profile: BatteryProfile, coefficients: FadeCoefficients = DEFAULT_COEFFICIENTS
) -> List[TrendPoint]:
    """
    Build the capacity/health curve from cycle 0 up to the profile's cycle count.

    Roughly ``trend_samples`` evenly spaced points are generated, never
    closer together than ``min_trend_step`` cycles.  Calendar age is scaled
    proportionally to the cycle index.  The first point is always cycle 0 at
    100% health and the last point is always exactly ``charge_cycles``.
    """
    total_cycles = max(profile.charge_cycles, 0)
    total_years = max(profile.calendar_age_years, 0)
    step = max(coefficients.min_trend_step, int(total_cycles // coefficients.trend_samples))
    calibration_factor = calibrate(profile, coefficients)

    points: List[TrendPoint] = []
    for cycle in range(0, int(total_cycles) + 1, step):
        years_progress = total_years * (cycle / max(total_cycles, 1))
        points.append(_trend_point(profile, cycle, years_progress, calibration_factor, coefficients))

    if points[-1].cycle < total_cycles:
        end_cycle = int(total_cycles) if float(total_cycles).is_integer() else total_cycles
        points.append(_trend_point(profile, end_cycle, total_years, calibration_factor, coefficients))

    return points


def assess_confidence(
    profile: BatteryProfile, coefficients: FadeCoefficients = DEFAULT_COEFFICIENTS
) -> ConfidenceAssessment:
    """Grade prediction reliability from how far calibration had to move the model."""
    if not _has_calibration_signal(profile, coefficients):
        return ConfidenceAssessment(
            level="low",
            accuracy="±6 months",
            description="Insufficient cycle data for accurate prediction",
        )

    factor = calibrate(profile, coefficients)
    if 0.8 <= factor <= 1.2:
        return ConfidenceAssessment(
            level="high",
            accuracy="±2 months",
            description="Model closely matches measured performance",
        )
    if 0.5 <= factor <= 2.0:
        return ConfidenceAssessment(
            level="medium",
            accuracy="±4 months",
            description="Model adjusted based on actual measurements",
        )
    return ConfidenceAssessment(
        level="low",
        accuracy="±6 months",
        description="Significant deviation between model and measurements",
    )
