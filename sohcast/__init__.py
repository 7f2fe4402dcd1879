"""
SOHcast application package.

This package estimates a battery's state of health and projects its
capacity fade from charge cycles, temperature, depth of discharge, charge
rate and calendar age.  When a measured capacity is supplied the model
calibrates itself against it.

The package is laid out as follows:

* ``model.degradation`` holds the fade model, the self-calibration step,
  the trend generator and the confidence grading.
* ``data.profile`` resolves request payloads into immutable profiles and
  defines the request schemas; ``data.fleet`` runs the engine over a
  pandas DataFrame of many batteries.
* ``service`` assembles the JSON results, and ``main`` exposes them as a
  FastAPI application (``uvicorn sohcast.main:app``).
"""

from .data.profile import BatteryProfile, InvalidProfile, resolve_profile  # noqa: F401
from .model.degradation import (  # noqa: F401
    DEFAULT_COEFFICIENTS,
    ConfidenceAssessment,
    FadeCoefficients,
    FadeResult,
    TrendPoint,
    assess_confidence,
    build_trend,
    calibrate,
    evaluate_fade,
)
