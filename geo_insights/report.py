from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import pandas as pd

from geo_insights.metrics import (
    TOP_N,
    MissingMetricError,
    build_country_table,
    calculate_color_max,
    derive_insights,
    is_placeholder_table,
)
from geo_insights.model import (
    DEFAULT_METRIC,
    DEFAULT_PROCESSED_DIR,
    METRIC_OPTIONS,
    load_country_stats,
)

logger = logging.getLogger(__name__)


def build_geo_summary(
    stats: pd.DataFrame,
    metric: str = DEFAULT_METRIC,
    top_n: int = TOP_N,
) -> dict[str, Any]:
    table = build_country_table(stats, metric, n=top_n)
    return {
        "metric": metric,
        "domain_max": calculate_color_max(stats, metric),
        "has_data": not is_placeholder_table(table),
        "table": table.to_dict(orient="records"),
        "insights": [asdict(insight) for insight in derive_insights(stats)],
    }


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Summarize the geographic distribution of a repository's commits and contributors"
    )
    parser.add_argument("--owner", required=True)
    parser.add_argument("--repo", required=True)
    parser.add_argument("--metric", choices=METRIC_OPTIONS, default=DEFAULT_METRIC)
    parser.add_argument("--top-n", type=int, default=TOP_N)
    parser.add_argument("--processed-dir", type=Path, default=DEFAULT_PROCESSED_DIR)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    stats = load_country_stats(args.owner, args.repo, processed_dir=args.processed_dir)
    try:
        summary = build_geo_summary(stats, metric=args.metric, top_n=args.top_n)
    except MissingMetricError as exc:
        logger.error("Country statistics for %s/%s are malformed: %s", args.owner, args.repo, exc)
        return 1

    logger.info(
        "Geo summary owner=%s repo=%s countries=%s insights=%s",
        args.owner,
        args.repo,
        len(summary["table"]) if summary["has_data"] else 0,
        len(summary["insights"]),
    )
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
