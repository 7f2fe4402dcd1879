"""
Result assembly for the SOHcast API.

The functions here combine the degradation engine outputs into the JSON
payloads served by the HTTP layer: the full analysis, the quick health
summary and the trend-only view.  Status labels and recommendations are
simple threshold mappings over the engine results.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .data.profile import BatteryProfile
from .model.degradation import (
    FadeResult,
    assess_confidence,
    build_trend,
    calibrate,
    evaluate_fade,
)

MODEL_VERSION = "v1.0-calibrated"

# (lower bound, status, description, color), highest band first
STATUS_BANDS = [
    (90, "Excellent", "Battery health is excellent", "green"),
    (80, "Good", "Battery health is good", "lightgreen"),
    (70, "Fair", "Battery health is fair - monitor closely", "yellow"),
    (60, "Poor", "Battery health is poor - consider replacement", "orange"),
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def determine_status(soh: float, measured: bool = False) -> Dict[str, str]:
    """Map a state of health percentage onto a status label."""
    source = "measured" if measured else "estimated"
    for lower, status, description, color in STATUS_BANDS:
        if soh >= lower:
            return {"status": status, "description": f"{description} ({source})", "color": color}
    return {
        "status": "Critical",
        "description": f"Battery health is critical - replacement needed ({source})",
        "color": "red",
    }


def generate_recommendations(profile: BatteryProfile, fade: FadeResult) -> List[Dict[str, str]]:
    """Return actionable recommendations for the usage pattern and current health."""
    recommendations: List[Dict[str, str]] = []
    temperature = profile.avg_temperature

    if temperature > 35:
        recommendations.append({
            "category": "Temperature Management",
            "priority": "High",
            "message": f"Operating temperature of {temperature:g}°C is high. "
                       "Consider improving cooling to extend battery life.",
            "impact": "High temperature significantly accelerates degradation",
        })
    elif temperature > 30:
        recommendations.append({
            "category": "Temperature Management",
            "priority": "Medium",
            "message": f"Operating temperature of {temperature:g}°C is elevated. "
                       "Monitor thermal management.",
            "impact": "Moderate temperature acceleration detected",
        })

    if profile.dod_pct > 90:
        recommendations.append({
            "category": "Usage Pattern",
            "priority": "Medium",
            "message": f"Depth of discharge ({profile.dod_pct:g}%) is high. "
                       "Consider reducing to 80-85% for longer life.",
            "impact": "Deep discharge cycles increase degradation rate",
        })

    if profile.c_rate > 1.5:
        recommendations.append({
            "category": "Charging Rate",
            "priority": "Medium",
            "message": f"Charge rate of {profile.c_rate:g}C is high. "
                       "Consider slower charging when time permits.",
            "impact": "High charge rates can accelerate capacity loss",
        })

    if fade.soh < 75:
        recommendations.append({
            "category": "Maintenance",
            "priority": "High",
            "message": "Battery health is declining. Plan for replacement within 6-12 months.",
            "impact": "Performance and reliability may be compromised",
        })

    if profile.charge_cycles > 1000:
        recommendations.append({
            "category": "Lifecycle Management",
            "priority": "Low",
            "message": "Battery has accumulated significant cycles. "
                       "Monitor performance trends closely.",
            "impact": "High cycle count batteries may degrade faster",
        })

    if not recommendations:
        recommendations.append({
            "category": "Maintenance",
            "priority": "Low",
            "message": "Battery is operating within optimal parameters. "
                       "Continue current usage patterns.",
            "impact": "Current conditions support good battery longevity",
        })
    return recommendations


def analyze_battery_health(profile: BatteryProfile) -> Dict[str, Any]:
    """
    Run the complete analysis for one battery.

    The fade estimate uses the calibration factor derived from the measured
    capacity (when present), so the remaining-life estimate and the trend
    share the same correction.
    """
    factor = calibrate(profile)
    fade = evaluate_fade(profile, factor)
    trend = build_trend(profile)
    confidence = assess_confidence(profile)
    status = determine_status(fade.soh, profile.has_measurement)

    cycle_fade = round(fade.cycle_fade_pct, 2)
    calendar_fade = round(fade.calendar_fade_pct, 2)

    return {
        "meta": {
            "unitCapacity": profile.unit,
            "modelVersion": MODEL_VERSION,
            "generatedAt": _now_iso(),
            "assumptions": {
                "calibrationApplied": profile.has_measurement,
                "calibrationFactor": round(factor, 4),
                "eolThresholdPct": fade.eol_threshold_pct,
            },
        },
        "input": {
            "chargeCycles": profile.charge_cycles,
            "avgTemperature": profile.avg_temperature,
            "nominalCapacity": profile.nominal_capacity,
            "currentCapacity": profile.current_capacity,
            "cRate": profile.c_rate,
            "dodPct": profile.dod_pct,
            "calendarAgeMonths": round(profile.calendar_age_months, 2),
            "unit": profile.unit,
        },
        "results": {
            "healthPercentage": fade.observed_health_pct,
            "stateOfHealthSOH": fade.soh,
            "modelHealthPct": round(fade.model_health_pct, 2),
            "endOfLifeThresholdPct": fade.eol_threshold_pct,
            "estimatedRemainingUsefulLifeMonths": fade.estimated_months_to_eol,
            "status": status["status"],
            "statusDescription": status["description"],
            "confidence": confidence.to_dict(),
            "degradationComponents": {
                "cycleFadePct": cycle_fade,
                "calendarFadePct": calendar_fade,
                "totalFadePct": round(cycle_fade + calendar_fade, 2),
            },
            "trend": [point.to_dict() for point in trend],
            "recommendations": generate_recommendations(profile, fade),
        },
    }


def health_summary(
    profile: BatteryProfile, assumptions: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Condensed health view; ``assumptions`` lists the inputs that were defaulted."""
    fade = evaluate_fade(profile, calibrate(profile))
    confidence = assess_confidence(profile)
    status = determine_status(fade.soh, profile.has_measurement)
    return {
        "healthPercentage": fade.observed_health_pct,
        "status": status["status"],
        "estimatedMonthsRemaining": fade.estimated_months_to_eol,
        "confidence": confidence.level,
        "dataSource": "measured" if profile.has_measurement else "estimated",
        "assumptions": dict(assumptions or {}),
    }


def trend_payload(profile: BatteryProfile) -> Dict[str, Any]:
    """Trend points plus the metadata a chart needs."""
    fade = evaluate_fade(profile, calibrate(profile))
    return {
        "trend": [point.to_dict() for point in build_trend(profile)],
        "metadata": {
            "totalCycles": profile.charge_cycles,
            "currentHealth": fade.observed_health_pct,
            "confidence": assess_confidence(profile).to_dict(),
        },
    }
