from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import pandas as pd

from geo_insights.model import METRIC_PERCENTAGE_FIELDS

TOP_N = 5
NO_DATA_LABEL = "NO DATA FOR THIS REPO"
PERCENT_MARKER = "perc"

DOMINANCE_THRESHOLD = 0.5
SHARE_FLOOR = 0.03
MIN_SPREAD_COUNTRIES = 3

TABLE_COLUMNS = ["country", "value"]


class MissingMetricError(ValueError):
    def __init__(self, metric_key: str) -> None:
        super().__init__(f"Missing metric '{metric_key}' in country statistics.")
        self.metric_key = metric_key


@dataclass(slots=True, frozen=True)
class Insight:
    kind: str
    color: str
    message: str


def _as_frame(records: pd.DataFrame | list[dict]) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records
    return pd.DataFrame(list(records))


def _valid_countries(frame: pd.DataFrame) -> pd.DataFrame:
    if "country" not in frame.columns:
        return frame.iloc[0:0].assign(country=pd.Series(dtype=object))
    return frame.loc[frame["country"].notna()]


def _metric_series(frame: pd.DataFrame, metric_key: str) -> pd.Series:
    if metric_key not in frame.columns:
        raise MissingMetricError(metric_key)
    values = pd.to_numeric(frame[metric_key], errors="coerce")
    if values.isna().any():
        raise MissingMetricError(metric_key)
    return values.astype(float)


def _ranked(frame: pd.DataFrame, metric_key: str) -> pd.DataFrame:
    if frame.empty:
        return pd.DataFrame(columns=["country", "_metric"])
    if metric_key not in frame.columns:
        raise MissingMetricError(metric_key)

    valid = _valid_countries(frame)
    ranked = valid.assign(_metric=_metric_series(valid, metric_key))
    return ranked.sort_values("_metric", ascending=False, kind="stable").reset_index(drop=True)


def is_percentage_metric(metric_key: str) -> bool:
    return PERCENT_MARKER in metric_key


def format_percentage(value: float) -> str:
    """Render a [0, 1] share as an en-US percentage, halves rounded away from zero."""
    percent = Decimal(str(float(value) * 100)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{percent:,.1f}%"


def calculate_color_max(records: pd.DataFrame | list[dict], metric_key: str) -> float | None:
    """Upper bound of the choropleth colour scale.

    Records without a country are ignored. ``None`` means there is nothing to
    scale against and the legend should be left empty.
    """
    frame = _as_frame(records)
    if frame.empty:
        return None
    if metric_key not in frame.columns:
        raise MissingMetricError(metric_key)

    valid = _valid_countries(frame)
    if valid.empty:
        return None
    return float(_metric_series(valid, metric_key).max())


max_value = calculate_color_max


def top_n_table(
    records: pd.DataFrame | list[dict],
    metric_key: str,
    n: int = TOP_N,
) -> pd.DataFrame:
    """Top countries by ``metric_key`` for the ranked table.

    An empty input yields a single ``NO_DATA_LABEL`` row. Otherwise the first
    ``n + 1`` ranked rows are kept, which is one more than ``n``.
    """
    frame = _as_frame(records)
    if frame.empty:
        return pd.DataFrame([{"country": NO_DATA_LABEL, "value": ""}], columns=TABLE_COLUMNS)

    ranked = _ranked(frame, metric_key).head(n + 1)
    table = pd.DataFrame(
        {
            "country": ranked["country"].astype(str),
            "value": pd.to_numeric(ranked[metric_key]),
        },
        columns=TABLE_COLUMNS,
    )

    if is_percentage_metric(metric_key):
        table["value"] = table["value"].map(format_percentage).astype(object)

    return table.reset_index(drop=True)


def is_placeholder_table(table: pd.DataFrame) -> bool:
    return len(table) == 1 and table.iloc[0]["country"] == NO_DATA_LABEL


def build_country_table(
    records: pd.DataFrame | list[dict],
    metric: str,
    field_mapping: Mapping[str, str] = METRIC_PERCENTAGE_FIELDS,
    n: int = TOP_N,
) -> pd.DataFrame:
    return top_n_table(records, field_mapping.get(metric, metric), n=n)


def choropleth_frame(records: pd.DataFrame | list[dict], metric_key: str) -> pd.DataFrame:
    frame = _as_frame(records)
    if frame.empty:
        return pd.DataFrame({"id": pd.Series(dtype=object), "value": pd.Series(dtype=float)})
    if metric_key not in frame.columns:
        raise MissingMetricError(metric_key)

    valid = _valid_countries(frame)
    return pd.DataFrame(
        {
            "id": valid["country"].astype(str),
            "value": _metric_series(valid, metric_key),
        },
        columns=["id", "value"],
    ).reset_index(drop=True)


def concentration_insight(
    records: pd.DataFrame | list[dict],
    percentage_key: str = "commits_perc",
) -> Insight | None:
    ranked = _ranked(_as_frame(records), percentage_key)
    if ranked.empty:
        return None

    top = ranked.iloc[0]
    if top["_metric"] > DOMINANCE_THRESHOLD:
        return Insight(
            kind="concentration",
            color="negative",
            message=f"More than 50% of commits from one country ({top['country']})",
        )

    return Insight(
        kind="concentration",
        color="positive",
        message="None of the countries has more than 50% of commits",
    )


def spread_insight(
    records: pd.DataFrame | list[dict],
    percentage_key: str = "commits_perc",
) -> Insight | None:
    ranked = _ranked(_as_frame(records), percentage_key)
    if ranked.empty:
        return None

    countries_over_floor = int((ranked["_metric"] >= SHARE_FLOOR).sum())
    if countries_over_floor > MIN_SPREAD_COUNTRIES - 1:
        return Insight(
            kind="spread",
            color="positive",
            message="At least 3 countries have 3% or more of commits",
        )

    return Insight(
        kind="spread",
        color="negative",
        message="Fewer than 3 countries have 3% or more of commits",
    )


def derive_insights(
    records: pd.DataFrame | list[dict],
    percentage_key: str = "commits_perc",
) -> list[Insight]:
    verdicts = [
        concentration_insight(records, percentage_key),
        spread_insight(records, percentage_key),
    ]
    return [insight for insight in verdicts if insight is not None]
