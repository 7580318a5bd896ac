from __future__ import annotations

import plotly.graph_objects as go
import plotly.io as pio
import streamlit as st

BASE_FONT = "'Lato', sans-serif"
PLOTLY_DARK_TEMPLATE_NAME = "geo_dark"
PLOTLY_LIGHT_TEMPLATE_NAME = "geo_light"

DARK_THEME_COLORS = {
    "bg": "#0f141d",
    "surface_1": "#161d29",
    "surface_2": "#1c2431",
    "border": "#2d3a4d",
    "text": "#e6edf5",
    "muted": "#a8b4c6",
    "primary": "#f2b168",
    "graticule": "rgba(182, 198, 220, 0.22)",
    "country_border": "#8aa0bd",
    "unknown_country": "#1c2431",
    "positive_bg": "#163026",
    "positive_border": "#56c49a",
    "negative_bg": "#3a1d1d",
    "negative_border": "#ef7a6f",
}

LIGHT_THEME_COLORS = {
    "bg": "#f7f9fc",
    "surface_1": "#ffffff",
    "surface_2": "#f1f5fb",
    "border": "#d9e2f0",
    "text": "#1f2a3a",
    "muted": "#5f6f86",
    "primary": "#dc8e3e",
    "graticule": "#dddddd",
    "country_border": "#152538",
    "unknown_country": "#ffffff",
    "positive_bg": "#e9f8ee",
    "positive_border": "#4caf7f",
    "negative_bg": "#fdecea",
    "negative_border": "#d9534f",
}

CHOROPLETH_SCALE = "Oranges"


def _theme_type() -> str:
    try:
        raw = str(st.context.theme.get("type", "")).strip().lower()
        if raw in {"light", "dark"}:
            return raw
    except Exception:  # noqa: BLE001
        pass
    return "light"


def is_dark_theme() -> bool:
    return _theme_type() == "dark"


def get_theme_colors() -> dict[str, str]:
    return DARK_THEME_COLORS if is_dark_theme() else LIGHT_THEME_COLORS


def _build_plotly_template(theme_colors: dict[str, str]) -> go.layout.Template:
    return go.layout.Template(
        layout={
            "paper_bgcolor": "rgba(0,0,0,0)",
            "plot_bgcolor": "rgba(0,0,0,0)",
            "font": {"family": BASE_FONT, "size": 12, "color": theme_colors["text"]},
            "geo": {
                "bgcolor": "rgba(0,0,0,0)",
                "showframe": False,
                "showcoastlines": False,
                "landcolor": theme_colors["unknown_country"],
                "lataxis": {"showgrid": True, "gridcolor": theme_colors["graticule"]},
                "lonaxis": {"showgrid": True, "gridcolor": theme_colors["graticule"]},
            },
        }
    )


def _ensure_plotly_templates() -> None:
    if PLOTLY_DARK_TEMPLATE_NAME not in pio.templates:
        pio.templates[PLOTLY_DARK_TEMPLATE_NAME] = _build_plotly_template(DARK_THEME_COLORS)
    if PLOTLY_LIGHT_TEMPLATE_NAME not in pio.templates:
        pio.templates[PLOTLY_LIGHT_TEMPLATE_NAME] = _build_plotly_template(LIGHT_THEME_COLORS)


def apply_map_layout(fig: go.Figure, *, show_legend: bool) -> None:
    _ensure_plotly_templates()
    template_name = PLOTLY_DARK_TEMPLATE_NAME if is_dark_theme() else PLOTLY_LIGHT_TEMPLATE_NAME
    colors = get_theme_colors()

    fig.update_layout(
        template=template_name,
        margin={"t": 10, "b": 10, "l": 10, "r": 10},
        height=320,
        coloraxis_showscale=show_legend,
    )
    if show_legend:
        fig.update_layout(
            coloraxis_colorbar={
                "orientation": "v",
                "x": 0.02,
                "xanchor": "left",
                "y": 0.1,
                "yanchor": "bottom",
                "len": 0.6,
                "thickness": 14,
                "tickformat": ".0f",
            }
        )
    fig.update_geos(projection_type="natural earth", fitbounds=False)
    fig.update_traces(marker_line_width=0.5, marker_line_color=colors["country_border"])


def _build_global_css() -> str:
    light = LIGHT_THEME_COLORS
    dark = DARK_THEME_COLORS
    return f"""
<style>
@import url('https://fonts.googleapis.com/css2?family=Lato:wght@400;700;900&display=swap');

:root {{
  --bg: {light["bg"]};
  --surface-1: {light["surface_1"]};
  --border: {light["border"]};
  --text: {light["text"]};
  --muted: {light["muted"]};
  --primary: {light["primary"]};
  --positive-bg: {light["positive_bg"]};
  --positive-border: {light["positive_border"]};
  --negative-bg: {light["negative_bg"]};
  --negative-border: {light["negative_border"]};
}}

@media (prefers-color-scheme: dark) {{
  :root {{
    --bg: {dark["bg"]};
    --surface-1: {dark["surface_1"]};
    --border: {dark["border"]};
    --text: {dark["text"]};
    --muted: {dark["muted"]};
    --primary: {dark["primary"]};
    --positive-bg: {dark["positive_bg"]};
    --positive-border: {dark["positive_border"]};
    --negative-bg: {dark["negative_bg"]};
    --negative-border: {dark["negative_border"]};
  }}
}}

html, body, .stApp, .stMarkdown, .stCaption, .js-plotly-plot .plotly text {{
  font-family: {BASE_FONT} !important;
}}

.geo-section-title {{
  color: var(--primary);
  font-size: 1.9rem;
  font-weight: 900;
  text-align: center;
  margin-bottom: 0.2rem;
}}

.geo-section-subtitle {{
  color: var(--muted);
  text-align: center;
  margin-bottom: 1rem;
}}

.geo-table-row {{
  display: flex;
  justify-content: space-around;
  padding: 0.2rem 0;
  border-bottom: 1px solid var(--border);
}}

.geo-table-placeholder {{
  color: var(--muted);
  font-weight: 700;
  text-align: center;
  padding: 0.6rem 0;
}}

.geo-insight {{
  border: 1px solid var(--border);
  border-left-width: 4px;
  border-radius: 10px;
  color: var(--text);
  margin: 0.4rem auto;
  max-width: 22rem;
  padding: 0.6rem 0.9rem;
  text-align: center;
}}

.geo-insight-positive {{
  background: var(--positive-bg);
  border-left-color: var(--positive-border);
}}

.geo-insight-negative {{
  background: var(--negative-bg);
  border-left-color: var(--negative-border);
}}
</style>
"""


def apply_global_styles() -> None:
    _ensure_plotly_templates()

    if st.session_state.get("_geo_global_styles_injected", False):
        return

    css = _build_global_css()
    if hasattr(st, "html"):
        st.html(css)
    else:
        st.markdown(css, unsafe_allow_html=True)
    st.session_state["_geo_global_styles_injected"] = True
