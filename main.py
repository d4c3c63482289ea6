from __future__ import annotations

import altair as alt
import numpy as np
import pandas as pd
import skfuzzy as fuzz
import streamlit as st

from cyclone.app_services import analyze_location, load_dashboard_config
from cyclone.risk import engine


LEVEL_COLORS = {
    "none": "#2a9d8f",
    "low": "#8ab17d",
    "medium": "#f4a261",
    "high": "#e63946",
}


def _label_with_unit(label, unit):
    return f"{label} ({unit})" if unit else label


def _coerce_slider_value(min_value, max_value):
    if isinstance(min_value, float) or isinstance(max_value, float):
        mid = (float(min_value) + float(max_value)) / 2.0
        return round(mid, 1)
    return int((min_value + max_value) / 2)


def _to_widget_key(name: str) -> str:
    return f"input_{name}"


def _render_input(item):
    label = _label_with_unit(item.get("label", ""), item.get("unit", ""))
    widget_key = _to_widget_key(item.get("name", "field"))
    min_value = item.get("min", 0)
    max_value = item.get("max", 100)
    value = item.get("default", _coerce_slider_value(min_value, max_value))
    if widget_key not in st.session_state:
        st.session_state[widget_key] = value
    step = item.get("step", 0.5 if isinstance(st.session_state[widget_key], float) else 1)
    return st.slider(
        label,
        min_value=min_value,
        max_value=max_value,
        step=step,
        key=widget_key,
        help=item.get("help", ""),
    )


def _membership_dataframe(terms, min_value, max_value):
    universe = np.linspace(min_value, max_value, 301)
    data = {"x": universe}
    for label in engine.LABELS:
        data[label.title()] = fuzz.trimf(universe, list(terms[label]))
    return pd.DataFrame(data)


def _membership_chart(title, terms, min_value, max_value, value=None):
    df_long = _membership_dataframe(terms, min_value, max_value).melt(
        "x", var_name="level", value_name="degree"
    )
    base = (
        alt.Chart(df_long)
        .mark_line()
        .encode(
            x=alt.X("x:Q", title=title),
            y=alt.Y("degree:Q", title="Membership"),
            color=alt.Color("level:N", title="Level"),
        )
    )

    if value is None:
        return base

    marker_df = pd.DataFrame({"x": [value], "label": [f"{value:.1f}"]})
    marker = (
        alt.Chart(marker_df)
        .mark_rule(color="#e63946", strokeDash=[4, 4], strokeWidth=2)
        .encode(x="x:Q")
    )
    label = (
        alt.Chart(marker_df)
        .mark_text(align="left", dx=6, dy=-6, color="#e63946")
        .encode(x="x:Q", y=alt.value(0), text="label:N")
    )
    return base + marker + label


def _aggregate_chart(result):
    universe = engine.risk_universe()
    curve = engine.aggregate(result["activations"], universe)
    df = pd.DataFrame({"risk": universe, "degree": curve})
    area = (
        alt.Chart(df)
        .mark_area(opacity=0.5, color="#457b9d")
        .encode(
            x=alt.X("risk:Q", title="Cyclone risk", scale=alt.Scale(domain=[0, 100])),
            y=alt.Y("degree:Q", title="Aggregated membership", scale=alt.Scale(domain=[0, 1])),
        )
    )
    if not result["activations"] or max(result["activations"].values()) == 0:
        return area
    centroid_df = pd.DataFrame({"risk": [result["centroid"]]})
    centroid = (
        alt.Chart(centroid_df)
        .mark_rule(color="#e63946", strokeWidth=2)
        .encode(x="risk:Q")
    )
    return area + centroid


def _render_result_block(result):
    st.markdown("### Cyclone Risk")

    score = result.get("risk_percentage", 0)
    level = result.get("risk_level", "none")
    alert = result.get("alert")

    m1, m2, m3 = st.columns(3)
    with m1:
        st.metric(label="Risk score", value=f"{score:.0f}%")
    with m2:
        st.metric(label="Risk band", value=level.title())
    with m3:
        st.metric(label="Alert", value=alert.title() if alert else "None")

    if alert == "high":
        st.error("High cyclone probability.")
    elif alert == "elevated":
        st.warning("Elevated cyclone risk.")

    st.markdown("#### Aggregated Output")
    st.altair_chart(_aggregate_chart(result), use_container_width=True)

    activation_df = pd.DataFrame(
        [{"Risk label": label.title(), "Activation": round(value, 3)} for label, value in result["activations"].items()]
    )
    st.dataframe(activation_df, use_container_width=True)

    trace_df = pd.DataFrame(result.get("rule_trace", []))
    if not trace_df.empty:
        trace_df["strength"] = trace_df["strength"].astype(float).round(3)
        st.markdown("#### Rule Trace (Fired Rules)")
        st.dataframe(trace_df, use_container_width=True)
    else:
        st.info("No rule fired for these readings.")


def _render_forecast_panel(config):
    location = config.get("location", {})
    st.subheader(f"Forecast: {location.get('name', 'Sample location')}")

    try:
        analysis = analyze_location(
            config.get("current", {}),
            config.get("forecast", []),
            bool(location.get("coastal", True)),
        )
    except ValueError as exc:
        st.error(f"Could not analyse configured forecast: {exc}")
        return

    if not analysis["is_coastal"]:
        st.info("Landlocked location: cyclone risk is not assessed.")
        st.dataframe(analysis["forecast"], use_container_width=True)
        return

    st.metric(
        label="Current cyclone probability",
        value=f"{analysis['cyclone_probability']:.0f}%",
        delta=f"{analysis['risk_level']} risk",
        delta_color="off",
    )

    forecast_df = analysis["forecast"]
    if forecast_df.empty:
        st.info("No forecast intervals configured.")
        return

    chart = (
        alt.Chart(forecast_df)
        .mark_bar(cornerRadiusEnd=4)
        .encode(
            x=alt.X("time:N", sort=None, title="Interval"),
            y=alt.Y("risk_score:Q", title="Risk score", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color(
                "risk_level:N",
                scale=alt.Scale(domain=list(LEVEL_COLORS), range=list(LEVEL_COLORS.values())),
                title="Band",
            ),
            tooltip=["time", "temperature", "humidity", "wind", "risk_score", "risk_level"],
        )
    )
    st.altair_chart(chart, use_container_width=True)
    st.dataframe(forecast_df, use_container_width=True)


def main():
    st.set_page_config(page_title="Cyclone Risk", layout="wide")
    st.title("Cyclone Risk Fuzzy Engine")

    input_schema = engine.get_inputs()
    with st.sidebar:
        st.header("Current readings")
        user_inputs = {item["name"]: _render_input(item) for item in input_schema}

    result = engine.run_inference(user_inputs)

    left_col, right_col = st.columns([1, 1])
    with left_col:
        _render_result_block(result)
    with right_col:
        st.markdown("### Memberships")
        for item in input_schema:
            name = item["name"]
            title = _label_with_unit(item["label"], item["unit"])
            st.altair_chart(
                _membership_chart(title, engine.VARIABLES[name], item["min"], item["max"], float(user_inputs[name])),
                use_container_width=True,
            )

    st.divider()
    _render_forecast_panel(load_dashboard_config())


if __name__ == "__main__":
    main()
