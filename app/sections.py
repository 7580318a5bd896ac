from __future__ import annotations

import html
import sys
from pathlib import Path
from typing import Any

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

try:
    from app.shared import format_count, format_pct
    from app.theme import CHOROPLETH_SCALE, apply_map_layout
except ModuleNotFoundError:
    from shared import format_count, format_pct
    from theme import CHOROPLETH_SCALE, apply_map_layout

try:
    from geo_insights.metrics import (
        Insight,
        MissingMetricError,
        build_country_table,
        calculate_color_max,
        choropleth_frame,
        derive_insights,
        is_placeholder_table,
    )
    from geo_insights.model import DEFAULT_METRIC, METRIC_LABELS, METRIC_OPTIONS, METRIC_PERCENTAGE_FIELDS
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    from geo_insights.metrics import (
        Insight,
        MissingMetricError,
        build_country_table,
        calculate_color_max,
        choropleth_frame,
        derive_insights,
        is_placeholder_table,
    )
    from geo_insights.model import DEFAULT_METRIC, METRIC_LABELS, METRIC_OPTIONS, METRIC_PERCENTAGE_FIELDS


GEO_TOOLTIP = (
    "Countries come from the locations contributors list on their profiles. "
    "Commits and contributors without a recognisable location are left off the map "
    "and the ranking."
)


def render_metric_toggle(key: str = "geo_metric") -> str:
    return st.radio(
        "Metric",
        METRIC_OPTIONS,
        index=METRIC_OPTIONS.index(DEFAULT_METRIC),
        format_func=lambda option: METRIC_LABELS.get(option, option),
        horizontal=True,
        key=key,
        label_visibility="collapsed",
    )


def build_geo_figure(stats: pd.DataFrame, features: list[dict[str, Any]], metric: str) -> go.Figure:
    map_data = choropleth_frame(stats, metric)
    domain_max = calculate_color_max(stats, metric)

    share_field = METRIC_PERCENTAGE_FIELDS[metric]
    if share_field in stats.columns and not map_data.empty:
        shares = stats.loc[stats["country"].notna(), share_field].reset_index(drop=True)
        map_data["share"] = shares.map(format_pct)
    else:
        map_data["share"] = pd.Series(dtype=object)

    # Without a bundled GeoJSON, plotly's own country shapes keyed by ISO-3 code are used.
    if features:
        location_args: dict[str, Any] = {
            "geojson": {"type": "FeatureCollection", "features": features},
            "featureidkey": "id",
        }
    else:
        location_args = {"locationmode": "ISO-3"}

    return px.choropleth(
        map_data,
        locations="id",
        color="value",
        color_continuous_scale=CHOROPLETH_SCALE,
        range_color=(0, domain_max if domain_max is not None else 1),
        hover_name="id",
        hover_data={"id": False, "value": ":,.0f", "share": True},
        labels={"value": METRIC_LABELS.get(metric, metric), "share": "Share"},
        **location_args,
    )


def render_geo_chart(stats: pd.DataFrame, features: list[dict[str, Any]], metric: str) -> None:
    fig = build_geo_figure(stats, features, metric)
    apply_map_layout(fig, show_legend=calculate_color_max(stats, metric) is not None)
    st.plotly_chart(fig, use_container_width=True)


def render_country_table(stats: pd.DataFrame, metric: str, column_name: str = "Top 5 Countries") -> None:
    table = build_country_table(stats, metric)

    st.markdown(f"**{column_name}**")
    if is_placeholder_table(table):
        st.markdown(
            f'<div class="geo-table-placeholder">{html.escape(table.iloc[0]["country"])}</div>',
            unsafe_allow_html=True,
        )
        return

    rows = "".join(
        '<div class="geo-table-row">'
        f"<span>{html.escape(str(row.country))}</span>"
        f"<span>{html.escape(format_count(row.value))}</span>"
        "</div>"
        for row in table.itertuples(index=False)
    )
    st.markdown(rows, unsafe_allow_html=True)


def render_insight_badge(insight: Insight) -> None:
    st.markdown(
        f'<div class="geo-insight geo-insight-{insight.color}">{html.escape(insight.message)}</div>',
        unsafe_allow_html=True,
    )


def render_geo_section(
    owner: str,
    repo: str,
    stats: pd.DataFrame,
    features: list[dict[str, Any]],
) -> None:
    st.markdown('<div class="geo-section-title">Diversity</div>', unsafe_allow_html=True)
    st.subheader("Geo Distribution")
    st.markdown(
        (
            '<div class="geo-section-subtitle">'
            f"Top locations by number of contributors and commits for "
            f"<strong>{html.escape(owner)}/{html.escape(repo)}</strong>"
            "</div>"
        ),
        unsafe_allow_html=True,
    )
    st.caption(GEO_TOOLTIP)

    metric = render_metric_toggle()

    try:
        map_col, table_col = st.columns((2, 1))
        with map_col:
            render_geo_chart(stats, features, metric)
        with table_col:
            render_country_table(stats, metric)

        for insight in derive_insights(stats):
            render_insight_badge(insight)
    except MissingMetricError as exc:
        st.error(f"Country statistics for this repository are incomplete. {exc}")
