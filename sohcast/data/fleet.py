"""
Batch analysis of battery fleets for SOHcast.

A fleet is a pandas DataFrame with one battery per row.  Columns may use
the API camelCase names or their snake_case equivalents:

    nominal_capacity:     float, rated capacity (required, > 0)
    current_capacity:     float, measured capacity (optional, empty = none)
    charge_cycles:        float, full equivalent cycles
    avg_temperature:      float, average temperature in Celsius
    dod_pct:              float, depth of discharge in percent
    c_rate:               float, charge/discharge rate
    calendar_age_months:  float, age in months (or calendar_age_years)
    unit:                 string, Ah / kWh / Wh

Any optional column may be missing entirely; the profile defaults apply.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd

from ..model.degradation import assess_confidence, calibrate, evaluate_fade
from ..service import STATUS_BANDS
from .profile import InvalidProfile, resolve_profile

NUMERIC_COLUMNS = [
    "nominal_capacity",
    "current_capacity",
    "charge_cycles",
    "avg_temperature",
    "dod_pct",
    "c_rate",
    "calendar_age_months",
    "calendar_age_years",
]

RESULT_COLUMNS = [
    "health_pct",
    "model_health_pct",
    "status",
    "months_to_eol",
    "calibration_factor",
    "confidence",
]


def _snake_case(name: str) -> str:
    cleaned = re.sub(r"(?<!^)(?=[A-Z])", "_", str(name).strip())
    return cleaned.replace(" ", "_").replace("-", "_").lower()


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with snake_case headers and numeric profile columns coerced."""
    out = df.rename(columns=_snake_case).copy()
    for col in NUMERIC_COLUMNS:
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def load_fleet_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a fleet CSV and normalise its headers."""
    return normalize_columns(pd.read_csv(path))


def status_labels(health_pct: pd.Series) -> pd.Series:
    """Vectorised status label for a series of SOH percentages."""
    conditions = [health_pct >= band[0] for band in STATUS_BANDS]
    labels = [band[1] for band in STATUS_BANDS]
    return pd.Series(np.select(conditions, labels, default="Critical"), index=health_pct.index)


def analyze_fleet(df: pd.DataFrame) -> pd.DataFrame:
    """
    Evaluate every battery in a fleet.

    :param df: One battery per row; see the module docstring for columns.
    :returns: A new DataFrame with the normalised input columns followed by
              the columns in ``RESULT_COLUMNS``.  The input is not modified.
    :raises InvalidProfile: if any row lacks a positive nominal capacity.
              The message names the offending row index.
    """
    frame = normalize_columns(df)
    if frame.empty:
        return frame.reindex(columns=list(frame.columns) + RESULT_COLUMNS)
    if "nominal_capacity" not in frame.columns:
        raise InvalidProfile("Fleet data missing required column: nominal_capacity", field="nominalCapacity")

    rows = []
    raw_health = []
    for index, record in frame.iterrows():
        try:
            profile = resolve_profile(record.to_dict())
        except InvalidProfile as exc:
            raise InvalidProfile(f"Row {index}: {exc.message}", field=exc.field) from exc
        factor = calibrate(profile)
        fade = evaluate_fade(profile, factor)
        raw_health.append(fade.observed_health_pct)
        rows.append({
            "health_pct": round(fade.observed_health_pct, 2),
            "model_health_pct": round(fade.model_health_pct, 2),
            "months_to_eol": fade.estimated_months_to_eol,
            "calibration_factor": round(factor, 4),
            "confidence": assess_confidence(profile).level,
        })

    results = pd.DataFrame(rows, index=frame.index)
    # label before rounding so band edges match determine_status
    results["status"] = status_labels(pd.Series(raw_health, index=frame.index))
    return pd.concat([frame, results[RESULT_COLUMNS]], axis=1)
