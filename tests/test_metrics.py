from __future__ import annotations

import pandas as pd
import pytest

from geo_insights.metrics import (
    NO_DATA_LABEL,
    Insight,
    MissingMetricError,
    build_country_table,
    calculate_color_max,
    choropleth_frame,
    concentration_insight,
    derive_insights,
    format_percentage,
    is_placeholder_table,
    max_value,
    spread_insight,
    top_n_table,
)


def _stats(rows: list[tuple]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=["country", "commits_count", "commits_perc"])


def test_color_max_ignores_unknown_country_rows() -> None:
    frame = _stats(
        [
            ("USA", 40, 0.4),
            (None, 500, 0.9),
            ("DEU", 60, 0.6),
        ]
    )

    assert calculate_color_max(frame, "commits_count") == 60.0
    assert max_value(frame, "commits_perc") == 0.6


def test_color_max_returns_none_without_valid_countries() -> None:
    assert calculate_color_max(pd.DataFrame(), "commits_count") is None
    assert calculate_color_max([], "commits_count") is None
    assert calculate_color_max(_stats([(None, 10, 1.0)]), "commits_count") is None


def test_color_max_raises_on_missing_metric() -> None:
    with pytest.raises(MissingMetricError, match="contributors_count"):
        calculate_color_max(_stats([("USA", 1, 1.0)]), "contributors_count")


def test_top_n_table_placeholder_for_empty_input() -> None:
    table = top_n_table([], "commits_perc")

    assert len(table) == 1
    assert table.loc[0, "country"] == NO_DATA_LABEL
    assert table.loc[0, "value"] == ""
    assert is_placeholder_table(table)


def test_top_n_table_keeps_one_more_than_n() -> None:
    frame = _stats([(f"C{index}", index, index / 100) for index in range(10)])

    table = top_n_table(frame, "commits_count", n=5)

    assert len(table) == 6
    assert table["country"].tolist() == ["C9", "C8", "C7", "C6", "C5", "C4"]
    assert table["value"].tolist() == [9, 8, 7, 6, 5, 4]
    assert not is_placeholder_table(table)


def test_top_n_table_with_few_countries_returns_all_valid_rows() -> None:
    frame = _stats([("USA", 3, 0.3), (None, 9, 0.9), ("FRA", 7, 0.7)])

    table = top_n_table(frame, "commits_count")

    assert table["country"].tolist() == ["FRA", "USA"]
    assert table["value"].is_monotonic_decreasing


def test_top_n_table_formats_percentage_metrics() -> None:
    frame = _stats([("USA", 1, 0.033), ("BRA", 2, 0.5), ("IND", 3, 0.1234)])

    table = top_n_table(frame, "commits_perc")

    assert table["country"].tolist() == ["BRA", "IND", "USA"]
    assert table["value"].tolist() == ["50.0%", "12.3%", "3.3%"]


def test_top_n_table_ties_keep_original_order() -> None:
    frame = _stats([("AAA", 5, 0.2), ("BBB", 5, 0.2), ("CCC", 9, 0.6)])

    table = top_n_table(frame, "commits_count")

    assert table["country"].tolist() == ["CCC", "AAA", "BBB"]


def test_top_n_table_does_not_mutate_input() -> None:
    frame = _stats([("USA", 1, 0.1), ("DEU", 3, 0.3), ("JPN", 2, 0.2)])
    original = frame.copy()

    first = top_n_table(frame, "commits_count")
    second = top_n_table(frame, "commits_count")

    pd.testing.assert_frame_equal(frame, original)
    pd.testing.assert_frame_equal(first, second)


def test_top_n_table_raises_when_metric_is_missing() -> None:
    with pytest.raises(MissingMetricError):
        top_n_table(_stats([("USA", 1, 0.1)]), "contributors_perc")

    with pytest.raises(MissingMetricError):
        top_n_table(_stats([("USA", None, 0.1)]), "commits_count")


def test_build_country_table_uses_percentage_field_for_metric() -> None:
    frame = _stats([("USA", 10, 0.25), ("DEU", 30, 0.75)])

    table = build_country_table(frame, "commits_count")

    assert table["value"].tolist() == ["75.0%", "25.0%"]


def test_build_country_table_accepts_custom_mapping() -> None:
    frame = _stats([("USA", 10, 0.25), ("DEU", 30, 0.75)])

    table = build_country_table(frame, "commits_count", field_mapping={})

    assert table["value"].tolist() == [30, 10]


def test_choropleth_frame_exposes_id_and_value() -> None:
    frame = _stats([("USA", 10, 0.25), (None, 99, 0.5), ("DEU", 30, 0.75)])

    map_data = choropleth_frame(frame, "commits_count")

    assert map_data.columns.tolist() == ["id", "value"]
    assert map_data["id"].tolist() == ["USA", "DEU"]
    assert map_data["value"].tolist() == [10.0, 30.0]


def test_concentration_flags_dominant_country() -> None:
    frame = pd.DataFrame(
        [
            {"country": "A", "commits_perc": 0.6},
            {"country": "B", "commits_perc": 0.4},
        ]
    )

    insight = concentration_insight(frame)

    assert insight == Insight(
        kind="concentration",
        color="negative",
        message="More than 50% of commits from one country (A)",
    )


def test_concentration_positive_when_no_country_dominates() -> None:
    records = [
        {"country": "A", "commits_perc": 0.4},
        {"country": "B", "commits_perc": 0.3},
        {"country": "C", "commits_perc": 0.3},
    ]

    insight = concentration_insight(records)

    assert insight is not None
    assert insight.color == "positive"


def test_concentration_ignores_unknown_country_rows() -> None:
    records = [
        {"country": None, "commits_perc": 0.9},
        {"country": "A", "commits_perc": 0.05},
        {"country": "B", "commits_perc": 0.05},
    ]

    insight = concentration_insight(records)

    assert insight is not None
    assert insight.color == "positive"


def test_concentration_exactly_half_is_not_dominant() -> None:
    insight = concentration_insight([{"country": "A", "commits_perc": 0.5}])

    assert insight is not None
    assert insight.color == "positive"


def test_spread_counts_countries_at_or_over_three_percent() -> None:
    records = [
        {"country": "A", "commits_perc": 0.9},
        {"country": "B", "commits_perc": 0.03},
        {"country": "C", "commits_perc": 0.03},
        {"country": "D", "commits_perc": 0.01},
    ]

    insight = spread_insight(records)

    assert insight is not None
    assert insight.color == "positive"


def test_spread_negative_with_two_countries_over_threshold() -> None:
    records = [
        {"country": "A", "commits_perc": 0.9},
        {"country": "B", "commits_perc": 0.05},
        {"country": "C", "commits_perc": 0.029},
        {"country": None, "commits_perc": 0.5},
    ]

    insight = spread_insight(records)

    assert insight is not None
    assert insight.color == "negative"


def test_insights_are_empty_without_valid_countries() -> None:
    assert concentration_insight([]) is None
    assert spread_insight([]) is None
    assert derive_insights([]) == []
    assert derive_insights([{"country": None, "commits_perc": 0.7}]) == []


def test_derive_insights_returns_both_verdicts_in_order() -> None:
    records = [
        {"country": "A", "commits_perc": 0.6},
        {"country": "B", "commits_perc": 0.4},
    ]

    insights = derive_insights(records)

    assert [insight.kind for insight in insights] == ["concentration", "spread"]
    assert [insight.color for insight in insights] == ["negative", "negative"]
    assert derive_insights(records) == insights


def test_format_percentage_rounds_halves_up() -> None:
    assert format_percentage(0.0125) == "1.3%"
    assert format_percentage(0.0025) == "0.3%"
    assert format_percentage(0.0005) == "0.1%"
    assert format_percentage(0.033) == "3.3%"
    assert format_percentage(1.0) == "100.0%"


def test_color_max_does_not_mutate_input_and_is_repeatable() -> None:
    frame = _stats([("USA", 10, 0.1), (None, 90, 0.5), ("DEU", 30, 0.3), ("JPN", 20, 0.2)])
    original = frame.copy()

    first = calculate_color_max(frame, "commits_count")
    second = calculate_color_max(frame, "commits_count")

    assert first == second == 30.0
    pd.testing.assert_frame_equal(frame, original)


def test_insights_do_not_mutate_unsorted_input() -> None:
    frame = _stats([("USA", 10, 0.1), (None, 90, 0.5), ("DEU", 30, 0.6), ("JPN", 20, 0.2)])
    original = frame.copy()
    records = frame.to_dict(orient="records")
    original_records = [dict(record) for record in records]

    assert concentration_insight(frame) == concentration_insight(frame)
    assert spread_insight(frame) == spread_insight(frame)
    derive_insights(records)

    pd.testing.assert_frame_equal(frame, original)
    assert records == original_records


def test_insights_raise_when_share_is_missing() -> None:
    frame = pd.DataFrame({"country": ["USA", "DEU"], "commits_count": [3, 1]})

    with pytest.raises(MissingMetricError, match="commits_perc"):
        concentration_insight(frame)
    with pytest.raises(MissingMetricError, match="commits_perc"):
        spread_insight(frame)


def test_spread_messages() -> None:
    wide = spread_insight(
        [
            {"country": "A", "commits_perc": 0.5},
            {"country": "B", "commits_perc": 0.3},
            {"country": "C", "commits_perc": 0.2},
        ]
    )
    narrow = spread_insight([{"country": "A", "commits_perc": 1.0}])

    assert wide is not None and wide.message == "At least 3 countries have 3% or more of commits"
    assert narrow is not None
    assert narrow.message == "Fewer than 3 countries have 3% or more of commits"


def test_choropleth_frame_is_numeric_when_empty() -> None:
    map_data = choropleth_frame([], "commits_count")

    assert map_data.empty
    assert map_data["value"].dtype == float
