from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import yaml
from yaml.loader import SafeLoader

from cyclone.risk import engine
from cyclone.risk.bands import alert_level, classify_risk

logger = logging.getLogger(__name__)


BASE_DIR = Path(__file__).resolve().parent.parent
APP_DATA_DIR = BASE_DIR / "app_data"
DASHBOARD_CONFIG_PATH = APP_DATA_DIR / "dashboard_config.yaml"

MS_TO_KMH = 3.6

FORECAST_COLUMNS = ["time", "temperature", "humidity", "wind"]
RISK_COLUMNS = ["risk_score", "risk_level"]

# "10-15" and "10 - 15" are ranges; "5 -3" is a single reading followed by noise.
_RANGE_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)(?:-|\s+-\s+|\s*(?:–|to)\s*)(-?\d+(?:\.\d+)?)")
_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def _default_dashboard_config() -> Dict:
    return {
        "location": {"name": "Chennai coast", "lat": 13.0827, "lon": 80.2707, "coastal": True},
        "current": {"temperature": 28, "humidity": 85, "windSpeed": "15 km/h"},
        "forecast": [
            {"time": "Next 12 Hours", "temperature": "27-29°C", "humidity": 88, "windSpeed": "20-30 km/h"},
            {"time": "12-24 Hours", "temperature": "26-28°C", "humidity": 90, "windSpeed": "60-70 km/h"},
            {"time": "24-36 Hours", "temperature": "30-32°C", "humidity": 96, "windSpeed": "110-120 km/h"},
            {"time": "36-48 Hours", "temperature": "27-28°C", "humidity": 82, "windSpeed": "40-50 km/h"},
            {"time": "48-60 Hours", "temperature": "28-30°C", "humidity": 60, "windSpeed": "20-25 km/h"},
            {"time": "60-72 Hours", "temperature": "29-31°C", "humidity": 45, "windSpeed": "10-15 km/h"},
        ],
    }


def _ensure_data_files() -> None:
    APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
    if not DASHBOARD_CONFIG_PATH.exists():
        with DASHBOARD_CONFIG_PATH.open("w", encoding="utf-8") as file_obj:
            yaml.safe_dump(_default_dashboard_config(), file_obj, sort_keys=False, allow_unicode=True)
        logger.info("Wrote default dashboard config to %s", DASHBOARD_CONFIG_PATH)


def load_dashboard_config() -> Dict:
    _ensure_data_files()
    with DASHBOARD_CONFIG_PATH.open("r", encoding="utf-8") as file_obj:
        config = yaml.load(file_obj, Loader=SafeLoader) or {}
    if not isinstance(config, dict):
        config = {}
    defaults = _default_dashboard_config()
    for key, value in defaults.items():
        if not isinstance(config.get(key), type(value)):
            config[key] = value
    return config


def parse_reading(value) -> float:
    """Convert a reading such as 28, '15 km/h' or '25-28°C' to a float.

    Ranges resolve to their midpoint.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a weather reading: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Not a weather reading: {value!r}")

    match = _RANGE_RE.match(value)
    if match:
        low, high = float(match.group(1)), float(match.group(2))
        return (low + high) / 2.0
    match = _NUMBER_RE.match(value)
    if match:
        return float(match.group(1))
    raise ValueError(f"Could not parse weather reading: {value!r}")


def readings_from_openweather(payload: Dict) -> Dict[str, float]:
    """Engine inputs from an OpenWeather current-weather payload in metric units."""
    cod = payload.get("cod", 200)
    if str(cod) != "200":
        message = payload.get("message") or "unknown error"
        logger.warning("OpenWeather payload reported failure: %s", message)
        raise ValueError(f"Failed to fetch weather data: {message}")
    try:
        return {
            "temperature": float(payload["main"]["temp"]),
            "humidity": float(payload["main"]["humidity"]),
            "wind": float(payload["wind"]["speed"]) * MS_TO_KMH,
        }
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Incomplete weather payload, missing {exc}") from exc


def assess_conditions(temperature: float, humidity: float, wind: float) -> Dict:
    score = engine.compute_risk(temperature, humidity, wind)
    return {
        "score": score,
        "risk_level": classify_risk(score),
        "alert": alert_level(score),
    }


def _interval_readings(interval: Dict) -> Dict:
    if not isinstance(interval, dict):
        raise ValueError(f"Forecast interval is not a mapping: {interval!r}")
    for key in ("temperature", "humidity", "windSpeed"):
        if interval.get(key) is None or interval.get(key) == "":
            raise ValueError(f"Forecast interval '{interval.get('time', '?')}' is missing {key}")
    return {
        "time": str(interval.get("time", "")),
        "temperature": parse_reading(interval["temperature"]),
        "humidity": parse_reading(interval["humidity"]),
        "wind": parse_reading(interval["windSpeed"]),
    }


def forecast_risk_frame(intervals: List[Dict], include_risk: bool = True) -> pd.DataFrame:
    rows = [_interval_readings(item) for item in intervals]
    if not rows:
        columns = FORECAST_COLUMNS + (RISK_COLUMNS if include_risk else [])
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows, columns=FORECAST_COLUMNS)
    if include_risk:
        scores = [
            engine.compute_risk(row.temperature, row.humidity, row.wind)
            for row in df.itertuples(index=False)
        ]
        df["risk_score"] = scores
        df["risk_level"] = [classify_risk(score) for score in scores]
    return df


def analyze_location(current: Dict, forecast: List[Dict], is_coastal: bool) -> Dict:
    """Score current conditions and every forecast interval for one location.

    Landlocked locations get no cyclone fields at all.
    """
    if not isinstance(current, dict):
        raise ValueError(f"Current conditions are not a mapping: {current!r}")
    temperature = parse_reading(current.get("temperature"))
    humidity = parse_reading(current.get("humidity"))
    wind = parse_reading(current.get("wind", current.get("windSpeed")))

    probability: Optional[float] = None
    risk_level: Optional[str] = None
    alert: Optional[str] = None
    if is_coastal:
        assessment = assess_conditions(temperature, humidity, wind)
        probability = assessment["score"]
        risk_level = assessment["risk_level"]
        alert = assessment["alert"]

    return {
        "is_coastal": is_coastal,
        "temperature": temperature,
        "humidity": humidity,
        "wind": wind,
        "cyclone_probability": probability,
        "risk_level": risk_level,
        "alert": alert,
        "forecast": forecast_risk_frame(forecast, include_risk=is_coastal),
    }
