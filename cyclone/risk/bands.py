"""Risk bands and alert levels for cyclone risk scores."""

from __future__ import annotations

from typing import Optional

HIGH_THRESHOLD = 75
MEDIUM_THRESHOLD = 40
LOW_THRESHOLD = 10

ALERT_THRESHOLD = 50


def classify_risk(score: float) -> str:
    if score > HIGH_THRESHOLD:
        return "high"
    if score > MEDIUM_THRESHOLD:
        return "medium"
    if score > LOW_THRESHOLD:
        return "low"
    return "none"


def alert_level(score: float) -> Optional[str]:
    """Alert shown for the current conditions, or None below the alert threshold."""
    if score > HIGH_THRESHOLD:
        return "high"
    if score > ALERT_THRESHOLD:
        return "elevated"
    return None
