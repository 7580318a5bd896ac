from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pandas as pd
import streamlit as st

try:
    from geo_insights.metrics import format_percentage
    from geo_insights.model import (
        list_repositories,
        load_country_stats_with_source,
        load_world_features,
    )
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    from geo_insights.metrics import format_percentage
    from geo_insights.model import (
        list_repositories,
        load_country_stats_with_source,
        load_world_features,
    )


@st.cache_data(show_spinner=False)
def load_country_stats_cached(owner: str, repo: str) -> tuple[pd.DataFrame, str]:
    return load_country_stats_with_source(owner, repo)


@st.cache_data(show_spinner=False)
def load_world_features_cached() -> list[dict[str, Any]]:
    return load_world_features()


@st.cache_data(show_spinner=False)
def list_repositories_cached() -> list[tuple[str, str]]:
    return list_repositories()


def format_pct(value: float | int | None) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return format_percentage(value)


def format_count(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value):,.0f}"


def _get_query_value(key: str) -> str | None:
    value = st.query_params.get(key, None)
    if isinstance(value, list):
        return str(value[0]) if value else None
    return str(value) if value else None


def render_repository_selector() -> tuple[str, str] | None:
    repositories = list_repositories_cached()
    query_owner = _get_query_value("owner")
    query_repo = _get_query_value("repo")

    st.sidebar.header("Repository")
    if not repositories:
        owner = st.sidebar.text_input("Owner", value=query_owner or "")
        repo = st.sidebar.text_input("Repository", value=query_repo or "")
    else:
        labels = [f"{owner}/{repo}" for owner, repo in repositories]
        default_index = 0
        if query_owner and query_repo:
            wanted = f"{query_owner}/{query_repo}".lower()
            matches = [index for index, label in enumerate(labels) if label.lower() == wanted]
            if matches:
                default_index = matches[0]
        selected = st.sidebar.selectbox("Repository", labels, index=default_index)
        owner, repo = repositories[labels.index(selected)]

    owner = owner.strip()
    repo = repo.strip()
    if not owner or not repo:
        return None

    st.query_params["owner"] = owner
    st.query_params["repo"] = repo
    return owner, repo
