"""Unit tests for the degradation engine using unittest."""

import unittest

from sohcast.data.profile import BatteryProfile, InvalidProfile
from sohcast.model.degradation import (
    DEFAULT_COEFFICIENTS,
    FadeCoefficients,
    assess_confidence,
    build_trend,
    calibrate,
    evaluate_fade,
)

# 550 cycles at 80% DoD gives ~30.77% uncalibrated cycle fade; measured 84/100.
SCENARIO = BatteryProfile(
    nominal_capacity=100,
    current_capacity=84,
    charge_cycles=550,
    avg_temperature=32,
    dod_pct=80,
    c_rate=0.8,
    calendar_age_years=2.0,
)

# 100 cycles at 80% DoD and no calendar age: ~13.12% model fade.
HUNDRED_CYCLE_FADE_PCT = 0.015 * 0.8 ** 0.6 * 10 * 100


class TestEvaluateFade(unittest.TestCase):
    """Tests for evaluate_fade."""

    def test_zero_stress_baseline(self) -> None:
        """No cycles and no calendar age should mean no fade at all."""
        result = evaluate_fade(BatteryProfile(nominal_capacity=100), 1.0)
        self.assertEqual(result.total_fade_pct, 0)
        self.assertEqual(result.model_health_pct, 100)
        self.assertEqual(result.observed_health_pct, 100)
        # minimum monthly fade rate of 0.05% over the 30 points down to EOL
        self.assertEqual(result.estimated_months_to_eol, 600)

    def test_cycle_fade_formula(self) -> None:
        """Cycle fade should follow k_c * (DoD/100)^0.6 * sqrt(cycles)."""
        result = evaluate_fade(BatteryProfile(nominal_capacity=100, charge_cycles=100))
        self.assertAlmostEqual(result.cycle_fade_pct, HUNDRED_CYCLE_FADE_PCT, places=9)
        self.assertEqual(result.calendar_fade_pct, 0)

    def test_c_rate_acceleration(self) -> None:
        """C-rates above 1C should scale cycle fade linearly by half the excess."""
        base = evaluate_fade(BatteryProfile(nominal_capacity=100, charge_cycles=100, c_rate=1.0))
        fast = evaluate_fade(BatteryProfile(nominal_capacity=100, charge_cycles=100, c_rate=3.0))
        slow = evaluate_fade(BatteryProfile(nominal_capacity=100, charge_cycles=100, c_rate=0.2))
        self.assertAlmostEqual(fast.cycle_fade_pct, base.cycle_fade_pct * 2.0, places=9)
        self.assertAlmostEqual(slow.cycle_fade_pct, base.cycle_fade_pct, places=9)

    def test_calibration_factor_scales_both_components(self) -> None:
        profile = BatteryProfile(nominal_capacity=100, charge_cycles=400, calendar_age_years=3)
        plain = evaluate_fade(profile, 1.0)
        doubled = evaluate_fade(profile, 2.0)
        self.assertAlmostEqual(doubled.cycle_fade_pct, plain.cycle_fade_pct * 2, places=9)
        self.assertAlmostEqual(doubled.calendar_fade_pct, plain.calendar_fade_pct * 2, places=12)

    def test_monotonic_in_cycles(self) -> None:
        """Increasing the cycle count should never decrease cycle fade."""
        fades = [
            evaluate_fade(BatteryProfile(nominal_capacity=50, charge_cycles=n)).cycle_fade_pct
            for n in (0, 1, 10, 100, 500, 1000, 5000, 10000)
        ]
        self.assertEqual(fades, sorted(fades))

    def test_monotonic_in_temperature(self) -> None:
        """With calendar age present, warmer batteries should fade at least as fast."""
        fades = [
            evaluate_fade(
                BatteryProfile(nominal_capacity=50, avg_temperature=t, calendar_age_years=4)
            ).calendar_fade_pct
            for t in (-40, -10, 0, 25, 45, 80)
        ]
        self.assertEqual(fades, sorted(fades))
        self.assertGreater(fades[-1], fades[0])

    def test_measured_capacity_overrides_observed_health(self) -> None:
        result = evaluate_fade(SCENARIO)
        self.assertAlmostEqual(result.observed_health_pct, 84.0)
        self.assertEqual(result.soh, result.observed_health_pct)
        self.assertNotAlmostEqual(result.model_health_pct, 84.0, places=1)

    def test_measured_capacity_is_clamped(self) -> None:
        over = evaluate_fade(BatteryProfile(nominal_capacity=100, current_capacity=120))
        self.assertEqual(over.observed_health_pct, 100)
        dead = evaluate_fade(BatteryProfile(nominal_capacity=100, current_capacity=0))
        self.assertEqual(dead.observed_health_pct, 0)
        self.assertEqual(dead.estimated_months_to_eol, 0)

    def test_months_to_eol_from_observed_rate(self) -> None:
        """84% after 24 months is 0.667%/month, so 14 points take 21 months."""
        self.assertEqual(evaluate_fade(SCENARIO).estimated_months_to_eol, 21)

    def test_model_health_never_negative(self) -> None:
        profile = BatteryProfile(nominal_capacity=10, charge_cycles=10000, dod_pct=100, c_rate=5)
        result = evaluate_fade(profile, 3.0)
        self.assertEqual(result.model_health_pct, 0)
        self.assertGreaterEqual(result.estimated_months_to_eol, 0)

    def test_negative_inputs_are_clamped(self) -> None:
        result = evaluate_fade(
            BatteryProfile(nominal_capacity=100, charge_cycles=-20, calendar_age_years=-1)
        )
        self.assertEqual(result.cycle_fade_pct, 0)
        self.assertEqual(result.calendar_fade_pct, 0)

    def test_invalid_nominal_capacity(self) -> None:
        """A zero, negative or missing nominal capacity is a precondition failure."""
        for nominal in (0, -5, None):
            with self.subTest(nominal=nominal):
                with self.assertRaises(InvalidProfile) as ctx:
                    evaluate_fade(BatteryProfile(nominal_capacity=nominal), 1.0)
                self.assertEqual(ctx.exception.field, "nominalCapacity")

    def test_alternate_coefficients(self) -> None:
        """A custom EOL threshold should flow through to the result."""
        coefficients = FadeCoefficients(eol_threshold_pct=80.0)
        result = evaluate_fade(SCENARIO, coefficients=coefficients)
        self.assertEqual(result.eol_threshold_pct, 80.0)
        self.assertEqual(result.estimated_months_to_eol, 6)


class TestCalibrate(unittest.TestCase):
    """Tests for the self-calibration step."""

    def test_no_measurement_is_noop(self) -> None:
        self.assertEqual(calibrate(BatteryProfile(nominal_capacity=100, charge_cycles=800)), 1.0)

    def test_short_history_is_noop(self) -> None:
        profile = BatteryProfile(nominal_capacity=100, charge_cycles=49, current_capacity=60)
        self.assertEqual(calibrate(profile), 1.0)

    def test_ratio_of_measured_to_model_fade(self) -> None:
        expected = 16.0 / (100 - evaluate_fade(SCENARIO, 1.0).model_health_pct)
        self.assertAlmostEqual(calibrate(SCENARIO), expected, places=9)
        self.assertAlmostEqual(calibrate(SCENARIO), 0.52, places=2)

    def test_calibrated_model_matches_measurement(self) -> None:
        result = evaluate_fade(SCENARIO, calibrate(SCENARIO))
        self.assertAlmostEqual(result.model_health_pct, 84.0, places=6)

    def test_bounds(self) -> None:
        """The factor must stay within [0.1, 3.0] for any measurement."""
        for current in (0, 1, 50, 86.88, 99.9, 100, 150):
            with self.subTest(current=current):
                profile = BatteryProfile(nominal_capacity=100, charge_cycles=100, current_capacity=current)
                factor = calibrate(profile)
                self.assertGreaterEqual(factor, 0.1)
                self.assertLessEqual(factor, 3.0)
        healthy = BatteryProfile(nominal_capacity=100, charge_cycles=100, current_capacity=100)
        dead = BatteryProfile(nominal_capacity=100, charge_cycles=100, current_capacity=0)
        self.assertEqual(calibrate(healthy), 0.1)
        self.assertEqual(calibrate(dead), 3.0)

    def test_negligible_model_fade_is_noop(self) -> None:
        coefficients = FadeCoefficients(k_cycle=1e-6)
        profile = BatteryProfile(nominal_capacity=100, charge_cycles=100, current_capacity=70)
        self.assertEqual(calibrate(profile, coefficients), 1.0)


class TestBuildTrend(unittest.TestCase):
    """Tests for the trend generator."""

    def test_endpoint_anchoring(self) -> None:
        """First point is (0, 100%) and the last is exactly charge_cycles."""
        for cycles in (0, 1, 10, 24, 25, 26, 30, 499, 500, 501, 550, 1234, 10000):
            with self.subTest(cycles=cycles):
                trend = build_trend(BatteryProfile(nominal_capacity=80, charge_cycles=cycles))
                self.assertEqual(trend[0].cycle, 0)
                self.assertEqual(trend[0].health_pct, 100)
                self.assertEqual(trend[0].capacity, 80)
                self.assertEqual(trend[-1].cycle, cycles)

    def test_strictly_ascending_and_non_increasing(self) -> None:
        profile = BatteryProfile(
            nominal_capacity=60, charge_cycles=1777, calendar_age_years=5, avg_temperature=40
        )
        trend = build_trend(profile)
        cycles = [p.cycle for p in trend]
        health = [p.health_pct for p in trend]
        self.assertTrue(all(a < b for a, b in zip(cycles, cycles[1:])))
        self.assertTrue(all(a >= b for a, b in zip(health, health[1:])))

    def test_step_size(self) -> None:
        small = build_trend(BatteryProfile(nominal_capacity=100, charge_cycles=100))
        self.assertEqual([p.cycle for p in small], [0, 25, 50, 75, 100])
        large = build_trend(BatteryProfile(nominal_capacity=100, charge_cycles=1000))
        self.assertEqual(large[1].cycle, 50)
        self.assertEqual(len(large), 21)

    def test_terminal_point_appended(self) -> None:
        trend = build_trend(SCENARIO)
        self.assertEqual([p.cycle for p in trend[-2:]], [540, 550])
        self.assertEqual(len(trend), 22)

    def test_scenario_endpoints(self) -> None:
        trend = build_trend(SCENARIO)
        self.assertEqual(trend[0].to_dict(), {"cycle": 0, "healthPct": 100.0, "capacity": 100.0})
        self.assertEqual(trend[-1].to_dict(), {"cycle": 550, "healthPct": 84.0, "capacity": 84.0})

    def test_measurement_not_used_for_points(self) -> None:
        """Without calibration, the terminal point stays on the pure model curve."""
        profile = BatteryProfile(nominal_capacity=100, charge_cycles=40, current_capacity=50)
        trend = build_trend(profile)
        expected = round(evaluate_fade(profile).model_health_pct, 2)
        self.assertEqual(trend[-1].health_pct, expected)
        self.assertGreater(trend[-1].health_pct, 90)

    def test_capacity_follows_health(self) -> None:
        trend = build_trend(BatteryProfile(nominal_capacity=3.2, charge_cycles=800))
        for point in trend:
            self.assertAlmostEqual(point.capacity, point.health_pct / 100 * 3.2, delta=0.011)

    def test_invalid_profile(self) -> None:
        with self.assertRaises(InvalidProfile):
            build_trend(BatteryProfile(nominal_capacity=0, charge_cycles=100))


class TestAssessConfidence(unittest.TestCase):
    """Tests for the confidence grading."""

    def test_insufficient_data(self) -> None:
        for profile in (
            BatteryProfile(nominal_capacity=100, charge_cycles=500),
            BatteryProfile(nominal_capacity=100, charge_cycles=20, current_capacity=95),
        ):
            assessment = assess_confidence(profile)
            self.assertEqual(assessment.level, "low")
            self.assertEqual(assessment.accuracy, "±6 months")
            self.assertIn("Insufficient", assessment.description)

    def test_factor_near_one_is_high(self) -> None:
        profile = BatteryProfile(
            nominal_capacity=100, charge_cycles=100, current_capacity=100 - HUNDRED_CYCLE_FADE_PCT
        )
        self.assertAlmostEqual(calibrate(profile), 1.0, places=6)
        assessment = assess_confidence(profile)
        self.assertEqual(assessment.level, "high")
        self.assertEqual(assessment.accuracy, "±2 months")

    def test_moderate_factor_is_medium(self) -> None:
        assessment = assess_confidence(SCENARIO)
        self.assertEqual(assessment.level, "medium")
        self.assertEqual(assessment.accuracy, "±4 months")

    def test_large_deviation_is_low(self) -> None:
        profile = BatteryProfile(
            nominal_capacity=100, charge_cycles=100, current_capacity=100 - 0.3 * HUNDRED_CYCLE_FADE_PCT
        )
        self.assertAlmostEqual(calibrate(profile), 0.3, places=6)
        assessment = assess_confidence(profile)
        self.assertEqual(assessment.level, "low")
        self.assertIn("deviation", assessment.description)

    def test_uses_supplied_coefficients(self) -> None:
        coefficients = FadeCoefficients(min_calibration_cycles=1000)
        self.assertEqual(assess_confidence(SCENARIO, coefficients).level, "low")
        self.assertEqual(DEFAULT_COEFFICIENTS.min_calibration_cycles, 50)


if __name__ == "__main__":
    unittest.main()
