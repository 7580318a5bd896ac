import streamlit as st

try:
    from app.sections import render_geo_section
    from app.shared import (
        load_country_stats_cached,
        load_world_features_cached,
        render_repository_selector,
    )
    from app.theme import apply_global_styles
except ModuleNotFoundError:
    from sections import render_geo_section
    from shared import (
        load_country_stats_cached,
        load_world_features_cached,
        render_repository_selector,
    )
    from theme import apply_global_styles

st.set_page_config(
    page_title="Repository Geo Distribution",
    layout="wide",
    initial_sidebar_state="expanded",
)
apply_global_styles()

selection = render_repository_selector()
if selection is None:
    st.info("Pick a repository in the sidebar to see where its contributors are.")
    st.stop()

owner, repo = selection
with st.spinner("Loading country statistics..."):
    stats, source = load_country_stats_cached(owner, repo)
    try:
        features = load_world_features_cached()
    except ValueError as exc:
        st.error(str(exc))
        features = []

render_geo_section(owner, repo, stats, features)
st.caption(f"Data source: {source}")
