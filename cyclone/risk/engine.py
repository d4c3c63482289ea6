"""
Cyclone risk fuzzy logic engine.
Scores cyclone likelihood from temperature, humidity and wind speed with a
Mamdani inference (min for AND, max for OR, centroid defuzzification).

Implements get_inputs() and run_inference(user_data) per engine contract.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import skfuzzy as fuzz

from cyclone.risk.bands import alert_level, classify_risk

logger = logging.getLogger(__name__)

LABELS: Tuple[str, ...] = ("low", "medium", "high")
INPUT_VARIABLES: Tuple[str, ...] = ("temperature", "humidity", "wind")


# ── Linguistic variables ────────────────────────────────────────────────

TEMPERATURE = {
    "low": (0.0, 10.0, 20.0),
    "medium": (15.0, 27.5, 40.0),
    "high": (30.0, 45.0, 50.0),
}

HUMIDITY = {
    "low": (0.0, 25.0, 50.0),
    "medium": (40.0, 65.0, 90.0),
    "high": (75.0, 100.0, 100.0),
}

WIND = {
    "low": (0.0, 20.0, 40.0),
    "medium": (30.0, 65.0, 100.0),
    "high": (80.0, 120.0, 150.0),
}

RISK = {
    "low": (0.0, 20.0, 40.0),
    "medium": (30.0, 50.0, 70.0),
    "high": (60.0, 80.0, 100.0),
}

VARIABLES = {
    "temperature": TEMPERATURE,
    "humidity": HUMIDITY,
    "wind": WIND,
}

RISK_MIN = 0.0
RISK_MAX = 100.0
RISK_STEP = 1.0


# ── Rule base ───────────────────────────────────────────────────────────

class Rule(NamedTuple):
    """One rule of the base. A None antecedent means "any" for that input."""

    temperature: Optional[str]
    humidity: Optional[str]
    wind: Optional[str]
    consequent: str


RULES: Tuple[Rule, ...] = (
    Rule("high", "high", "high", "high"),
    Rule("high", "high", "medium", "high"),
    Rule("medium", "high", "high", "medium"),
    Rule("high", "medium", "high", "medium"),
    Rule("high", "high", "low", "medium"),
    Rule("low", None, None, "low"),
    Rule(None, "low", None, "low"),
    Rule(None, None, "low", "low"),
)


def get_inputs() -> List[Dict]:
    return [
        {
            "type": "slider",
            "name": "temperature",
            "label": "Air temperature",
            "unit": "°C",
            "help": "Current air temperature.",
            "min": 0.0,
            "max": 50.0,
            "default": 28.0,
        },
        {
            "type": "slider",
            "name": "humidity",
            "label": "Relative humidity",
            "unit": "%",
            "help": "Current relative humidity.",
            "min": 0,
            "max": 100,
            "default": 85,
        },
        {
            "type": "slider",
            "name": "wind",
            "label": "Wind speed",
            "unit": "km/h",
            "help": "Sustained wind speed.",
            "min": 0,
            "max": 150,
            "default": 15,
        },
    ]


# ── Fuzzy helpers ───────────────────────────────────────────────────────

def trimf(x: float, a: float, b: float, c: float) -> float:
    """Degree of ``x`` in the triangle (a, b, c).

    A zero-width side counts as 1 on that side, so the peak stays at 1 for
    shoulders such as (75, 100, 100). Breakpoints that are not weakly
    increasing and non-finite ``x`` both give 0.
    """
    if not math.isfinite(x):
        return 0.0
    if x < a or x > c or b < a or c < b:
        return 0.0
    left = (x - a) / (b - a) if b != a else 1.0
    right = (c - x) / (c - b) if c != b else 1.0
    return max(0.0, min(left, right))


def fuzzify(temperature: float, humidity: float, wind: float) -> Dict[str, Dict[str, float]]:
    """Membership degree of each reading for each of its labels."""
    readings = {"temperature": temperature, "humidity": humidity, "wind": wind}
    return {
        name: {label: trimf(float(readings[name]), *VARIABLES[name][label]) for label in LABELS}
        for name in INPUT_VARIABLES
    }


def firing_strength(rule: Rule, memberships: Dict[str, Dict[str, float]]) -> float:
    degrees = []
    for name in INPUT_VARIABLES:
        label = getattr(rule, name)
        degrees.append(1.0 if label is None else memberships[name][label])
    return min(degrees)


def fire_rules(
    memberships: Dict[str, Dict[str, float]],
    rules: Sequence[Rule] = RULES,
) -> Tuple[Dict[str, float], List[Dict]]:
    """Return the activation per risk label and the strength of every rule."""
    activations = {label: 0.0 for label in LABELS}
    trace: List[Dict] = []
    for number, rule in enumerate(rules, start=1):
        strength = firing_strength(rule, memberships)
        activations[rule.consequent] = max(activations[rule.consequent], strength)
        trace.append(
            {
                "rule": number,
                "temperature": rule.temperature or "any",
                "humidity": rule.humidity or "any",
                "wind": rule.wind or "any",
                "risk": rule.consequent,
                "strength": strength,
            }
        )
    return activations, trace


def risk_universe(step: float = RISK_STEP) -> np.ndarray:
    count = int(round((RISK_MAX - RISK_MIN) / step)) + 1
    return np.linspace(RISK_MIN, RISK_MAX, count)


def aggregate(activations: Dict[str, float], universe: Optional[np.ndarray] = None) -> np.ndarray:
    """Clip each risk label at its activation and take the pointwise max."""
    if universe is None:
        universe = risk_universe()
    curve = np.zeros_like(universe, dtype=float)
    for label in LABELS:
        mf = fuzz.trimf(universe, list(RISK[label]))
        curve = np.fmax(curve, np.fmin(activations.get(label, 0.0), mf))
    return curve


def defuzz_centroid(universe: np.ndarray, curve: np.ndarray) -> float:
    """Discrete centroid of the aggregated curve; 0 when nothing fired.

    Sums run in ascending x, one sample at a time, so x.5 centroids round
    the same way on every call.
    """
    num = 0.0
    den = 0.0
    for x, weight in zip(universe.tolist(), curve.tolist()):
        num += x * weight
        den += weight
    if den == 0.0:
        return 0.0
    return num / den


def round_half_up(value: float) -> float:
    # Scores are never negative, so this is round-half-away-from-zero.
    return float(math.floor(value + 0.5))


# ── Core inference ──────────────────────────────────────────────────────

def compute_risk(temperature: float, humidity: float, wind: float) -> float:
    """Cyclone risk score in [0, 100] for one set of readings."""
    memberships = fuzzify(temperature, humidity, wind)
    activations, _ = fire_rules(memberships)
    universe = risk_universe()
    score = round_half_up(defuzz_centroid(universe, aggregate(activations, universe)))
    logger.debug(
        "cyclone risk t=%s h=%s w=%s activations=%s score=%s",
        temperature, humidity, wind, activations, score,
    )
    return score


# ── Public API ──────────────────────────────────────────────────────────

def run_inference(user_data: Dict) -> Dict:
    """Process weather readings through fuzzy inference. Returns standardised result dict."""
    temperature = float(user_data.get("temperature", 0.0))
    humidity = float(user_data.get("humidity", 0.0))
    wind = float(user_data.get("wind", 0.0))

    memberships = fuzzify(temperature, humidity, wind)
    logger.debug("memberships: %s", memberships)
    activations, trace = fire_rules(memberships)

    universe = risk_universe()
    curve = aggregate(activations, universe)
    centroid = defuzz_centroid(universe, curve)
    score = round_half_up(centroid)

    rule_trace = [row for row in trace if row["strength"] > 0]
    rule_trace.sort(key=lambda item: item["strength"], reverse=True)

    return {
        "risk_percentage": score,
        "risk_level": classify_risk(score),
        "alert": alert_level(score),
        "centroid": centroid,
        "memberships": memberships,
        "activations": activations,
        "rule_trace": rule_trace,
    }
