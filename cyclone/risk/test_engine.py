"""
Tests for the cyclone risk fuzzy engine.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from cyclone.risk import engine
from cyclone.risk.engine import Rule


# ── Membership function ─────────────────────────────────────────────────

@pytest.mark.parametrize("x", [-1.0, 9.99, 30.01, 1000.0])
def test_trimf_zero_outside_support(x):
    assert engine.trimf(x, 10.0, 20.0, 30.0) == 0.0


def test_trimf_peak_and_slopes():
    assert engine.trimf(20.0, 10.0, 20.0, 30.0) == 1.0
    assert engine.trimf(15.0, 10.0, 20.0, 30.0) == pytest.approx(0.5)
    assert engine.trimf(27.5, 10.0, 20.0, 30.0) == pytest.approx(0.25)
    assert engine.trimf(10.0, 10.0, 20.0, 30.0) == 0.0
    assert engine.trimf(30.0, 10.0, 20.0, 30.0) == 0.0


def test_trimf_zero_width_right_side_is_one_at_peak():
    assert engine.trimf(100.0, 75.0, 100.0, 100.0) == 1.0
    assert engine.trimf(87.5, 75.0, 100.0, 100.0) == pytest.approx(0.5)


def test_trimf_zero_width_left_side_is_one_at_peak():
    assert engine.trimf(0.0, 0.0, 0.0, 10.0) == 1.0
    assert engine.trimf(5.0, 0.0, 0.0, 10.0) == pytest.approx(0.5)


def test_trimf_single_point_triangle():
    assert engine.trimf(5.0, 5.0, 5.0, 5.0) == 1.0
    assert engine.trimf(5.1, 5.0, 5.0, 5.0) == 0.0


def test_trimf_malformed_breakpoints_give_zero():
    assert engine.trimf(15.0, 10.0, 5.0, 20.0) == 0.0
    assert engine.trimf(15.0, 10.0, 20.0, 15.0) == 0.0


@pytest.mark.parametrize("x", [math.nan, math.inf, -math.inf])
def test_trimf_non_finite_gives_zero(x):
    assert engine.trimf(x, 0.0, 10.0, 20.0) == 0.0


# ── Linguistic variables and rules ──────────────────────────────────────

def test_breakpoint_tables():
    assert engine.TEMPERATURE == {"low": (0, 10, 20), "medium": (15, 27.5, 40), "high": (30, 45, 50)}
    assert engine.HUMIDITY == {"low": (0, 25, 50), "medium": (40, 65, 90), "high": (75, 100, 100)}
    assert engine.WIND == {"low": (0, 20, 40), "medium": (30, 65, 100), "high": (80, 120, 150)}
    assert engine.RISK == {"low": (0, 20, 40), "medium": (30, 50, 70), "high": (60, 80, 100)}


def test_rule_base_shape():
    assert len(engine.RULES) == 8
    consequents = [rule.consequent for rule in engine.RULES]
    assert consequents.count("high") == 2
    assert consequents.count("medium") == 3
    assert consequents.count("low") == 3


def test_fuzzify_low_peaks():
    memberships = engine.fuzzify(5, 10, 5)
    assert memberships["temperature"]["low"] == pytest.approx(0.5)
    assert memberships["humidity"]["low"] == pytest.approx(0.4)
    assert memberships["wind"]["low"] == pytest.approx(0.25)
    for name in engine.INPUT_VARIABLES:
        assert memberships[name]["medium"] == 0.0
        assert memberships[name]["high"] == 0.0


def test_missing_antecedent_is_dont_care():
    memberships = engine.fuzzify(5, 10, 5)
    assert engine.firing_strength(Rule(None, None, None, "high"), memberships) == 1.0
    assert engine.firing_strength(Rule("low", None, None, "low"), memberships) == pytest.approx(0.5)


def test_fire_rules_takes_max_per_consequent():
    activations, trace = engine.fire_rules(engine.fuzzify(5, 10, 5))
    assert activations["low"] == pytest.approx(0.5)
    assert activations["medium"] == 0.0
    assert activations["high"] == 0.0
    assert [row["strength"] for row in trace[5:]] == pytest.approx([0.5, 0.4, 0.25])


def test_rule_order_does_not_change_activations():
    memberships = engine.fuzzify(35, 95, 110)
    forward, _ = engine.fire_rules(memberships)
    backward, _ = engine.fire_rules(memberships, tuple(reversed(engine.RULES)))
    assert forward == backward


# ── Aggregation and defuzzification ─────────────────────────────────────

def test_risk_universe_is_integer_grid():
    universe = engine.risk_universe()
    assert len(universe) == 101
    assert universe[0] == 0.0
    assert universe[-1] == 100.0
    assert np.all(np.diff(universe) == 1.0)


def test_no_activation_defuzzifies_to_zero():
    universe = engine.risk_universe()
    curve = engine.aggregate({"low": 0.0, "medium": 0.0, "high": 0.0}, universe)
    assert not curve.any()
    assert engine.defuzz_centroid(universe, curve) == 0.0


def test_aggregate_clips_at_activation():
    curve = engine.aggregate({"low": 0.5, "medium": 0.0, "high": 0.0})
    assert curve.max() == pytest.approx(0.5)
    assert curve[20] == pytest.approx(0.5)
    assert curve[10] == pytest.approx(0.5)
    assert curve[5] == pytest.approx(0.25)
    assert not curve[40:].any()


def _ascending_centroid(universe, curve):
    num = 0.0
    den = 0.0
    for i in range(len(universe)):
        num += float(universe[i]) * float(curve[i])
        den += float(curve[i])
    return num / den if den else 0.0


@pytest.mark.parametrize(
    "activations",
    [
        {"low": 0.3, "medium": 0.16, "high": 0.0},
        {"low": 0.0, "medium": 0.4, "high": 0.3333333333333333},
        {"low": 0.2, "medium": 0.0, "high": 0.9},
        {"low": 0.0, "medium": 0.0, "high": 0.0},
    ],
)
def test_centroid_sums_in_ascending_order(activations):
    universe = engine.risk_universe()
    curve = engine.aggregate(activations, universe)
    assert engine.defuzz_centroid(universe, curve) == _ascending_centroid(universe, curve)


def test_half_point_centroid_rounds_up():
    memberships = engine.fuzzify(30.5, 76, 8)
    activations, _ = engine.fire_rules(memberships)
    universe = engine.risk_universe()
    assert engine.defuzz_centroid(universe, engine.aggregate(activations, universe)) == 22.5
    assert engine.compute_risk(30.5, 76, 8) == 23.0
    assert engine.run_inference({"temperature": 30.5, "humidity": 76, "wind": 8})["risk_percentage"] == 23.0


def test_round_half_up():
    assert engine.round_half_up(79.5) == 80.0
    assert engine.round_half_up(80.49) == 80.0
    assert engine.round_half_up(0.5) == 1.0


@pytest.mark.parametrize(
    "readings",
    [(35, 100, 120), (17, 100, 120), (32, 88, 70), (28, 85, 15)],
)
def test_finer_discretisation_stays_close(readings):
    activations, _ = engine.fire_rules(engine.fuzzify(*readings))
    coarse = engine.risk_universe()
    fine = engine.risk_universe(0.1)
    coarse_centroid = engine.defuzz_centroid(coarse, engine.aggregate(activations, coarse))
    fine_centroid = engine.defuzz_centroid(fine, engine.aggregate(activations, fine))
    assert abs(coarse_centroid - fine_centroid) < 1.0


# ── compute_risk ────────────────────────────────────────────────────────

def test_all_high_peaks_score_80():
    assert engine.compute_risk(45, 100, 120) == 80.0


def test_all_low_inputs_score_20():
    assert engine.compute_risk(5, 10, 5) == 20.0


def test_far_out_of_range_scores_zero():
    assert engine.compute_risk(1000, 1000, 1000) == 0.0


def test_non_finite_inputs_score_zero():
    assert engine.compute_risk(math.nan, math.nan, math.nan) == 0.0
    assert engine.compute_risk(math.inf, -math.inf, math.inf) == 0.0


def test_negative_wind_does_not_raise():
    score = engine.compute_risk(45, 100, -10)
    assert 0.0 <= score <= 100.0


def test_compute_risk_is_deterministic():
    first = engine.compute_risk(33.3, 91.7, 88.8)
    second = engine.compute_risk(33.3, 91.7, 88.8)
    assert first == second
    assert float(first).is_integer()


def test_risk_non_decreasing_with_temperature_when_saturated():
    scores = [engine.compute_risk(t, 100, 120) for t in range(0, 46)]
    assert all(later >= earlier for earlier, later in zip(scores, scores[1:]))
    assert scores[-1] == 80.0


# ── run_inference ───────────────────────────────────────────────────────

def test_run_inference_result_format():
    result = engine.run_inference({"temperature": 45, "humidity": 100, "wind": 120})
    assert result["risk_percentage"] == 80.0
    assert result["risk_level"] == "high"
    assert result["alert"] == "high"
    assert result["activations"] == {"low": 0.0, "medium": 0.0, "high": 1.0}
    assert len(result["rule_trace"]) == 1
    assert result["rule_trace"][0]["rule"] == 1
    assert result["rule_trace"][0]["strength"] == 1.0


def test_run_inference_matches_compute_risk():
    user_data = {"temperature": 31, "humidity": 96, "wind": 115}
    result = engine.run_inference(user_data)
    assert result["risk_percentage"] == engine.compute_risk(31, 96, 115)


def test_run_inference_trace_sorted_by_strength():
    result = engine.run_inference({"temperature": 5, "humidity": 10, "wind": 5})
    strengths = [row["strength"] for row in result["rule_trace"]]
    assert strengths == sorted(strengths, reverse=True)
    assert result["rule_trace"][0]["temperature"] == "low"
    assert result["rule_trace"][0]["humidity"] == "any"


def test_get_inputs_names():
    assert [item["name"] for item in engine.get_inputs()] == ["temperature", "humidity", "wind"]
