from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any

import pandas as pd

try:
    import duckdb
except ImportError:  # pragma: no cover
    duckdb = None

logger = logging.getLogger(__name__)

DEFAULT_PROCESSED_DIR = Path("data/processed")
DEFAULT_FEATURES_PATH = Path("data/static/world_countries.geojson")

KEY_FIELDS = ["owner", "repo", "country"]

METRIC_FIELDS = ["commits_count", "contributors_count"]

PERCENTAGE_FIELDS = ["commits_perc", "contributors_perc"]

COUNTRY_STAT_FIELDS = KEY_FIELDS + METRIC_FIELDS + PERCENTAGE_FIELDS

METRIC_OPTIONS = ("commits_count", "contributors_count")
DEFAULT_METRIC = "commits_count"

METRIC_PERCENTAGE_FIELDS = MappingProxyType(
    {
        "contributors_count": "contributors_perc",
        "commits_count": "commits_perc",
    }
)

METRIC_LABELS = MappingProxyType(
    {
        "commits_count": "Commits",
        "contributors_count": "Contributors",
    }
)


def _empty_country_stats() -> pd.DataFrame:
    return pd.DataFrame(columns=COUNTRY_STAT_FIELDS)


def coerce_country_stats_schema(frame: pd.DataFrame) -> pd.DataFrame:
    stats = frame.copy()

    for column in COUNTRY_STAT_FIELDS:
        if column not in stats.columns:
            stats[column] = pd.NA

    stats = stats.loc[:, COUNTRY_STAT_FIELDS]

    for column in KEY_FIELDS:
        stats[column] = stats[column].astype("string").str.strip().replace({"": pd.NA})

    for column in METRIC_FIELDS + PERCENTAGE_FIELDS:
        stats[column] = pd.to_numeric(stats[column], errors="coerce")

    for column in PERCENTAGE_FIELDS:
        out_of_range = stats[column].notna() & ~stats[column].between(0.0, 1.0)
        if out_of_range.any():
            logger.warning(
                "Percentage field=%s has %s values outside [0, 1]",
                column,
                int(out_of_range.sum()),
            )

    return stats


def _select_repository(stats: pd.DataFrame, owner: str, repo: str) -> pd.DataFrame:
    if stats.empty:
        return stats
    owner_mask = stats["owner"].str.lower().eq(owner.strip().lower()).fillna(False)
    repo_mask = stats["repo"].str.lower().eq(repo.strip().lower()).fillna(False)
    return stats.loc[owner_mask & repo_mask].reset_index(drop=True)


def _read_duckdb(db_path: Path, owner: str, repo: str) -> pd.DataFrame:
    connection = duckdb.connect(str(db_path), read_only=True)
    try:
        return connection.execute(
            "SELECT * FROM country_stats WHERE lower(owner) = lower(?) AND lower(repo) = lower(?)",
            [owner.strip(), repo.strip()],
        ).df()
    finally:
        connection.close()


def load_country_stats_with_source(
    owner: str,
    repo: str,
    processed_dir: Path = DEFAULT_PROCESSED_DIR,
) -> tuple[pd.DataFrame, str]:
    csv_path = processed_dir / "country_stats.csv"
    parquet_path = processed_dir / "country_stats.parquet"
    db_path = processed_dir / "country_stats.duckdb"

    if csv_path.exists():
        try:
            stats = coerce_country_stats_schema(pd.read_csv(csv_path))
            return _select_repository(stats, owner, repo), "csv"
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read source file=%s error=%s", csv_path.name, exc)

    if parquet_path.exists():
        try:
            stats = coerce_country_stats_schema(pd.read_parquet(parquet_path))
            return _select_repository(stats, owner, repo), "parquet"
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read source file=%s error=%s", parquet_path.name, exc)

    if db_path.exists() and duckdb is not None:
        try:
            stats = coerce_country_stats_schema(_read_duckdb(db_path, owner, repo))
            return stats, "duckdb"
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not read source file=%s error=%s", db_path.name, exc)

    return _empty_country_stats(), "empty"


def load_country_stats(
    owner: str,
    repo: str,
    processed_dir: Path = DEFAULT_PROCESSED_DIR,
) -> pd.DataFrame:
    stats, source = load_country_stats_with_source(owner, repo, processed_dir)
    logger.info(
        "Loaded country stats owner=%s repo=%s rows=%s source=%s",
        owner,
        repo,
        len(stats),
        source,
    )
    return stats


def list_repositories(processed_dir: Path = DEFAULT_PROCESSED_DIR) -> list[tuple[str, str]]:
    csv_path = processed_dir / "country_stats.csv"
    parquet_path = processed_dir / "country_stats.parquet"
    db_path = processed_dir / "country_stats.duckdb"

    frame: pd.DataFrame | None = None
    if csv_path.exists():
        try:
            frame = pd.read_csv(csv_path, usecols=["owner", "repo"])
        except (ValueError, OSError) as exc:
            logger.warning("Could not list repositories from file=%s error=%s", csv_path.name, exc)

    if frame is None and parquet_path.exists():
        try:
            frame = pd.read_parquet(parquet_path, columns=["owner", "repo"])
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Could not list repositories from file=%s error=%s", parquet_path.name, exc
            )

    if frame is None and db_path.exists() and duckdb is not None:
        try:
            connection = duckdb.connect(str(db_path), read_only=True)
            try:
                frame = connection.execute("SELECT DISTINCT owner, repo FROM country_stats").df()
            finally:
                connection.close()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not list repositories from file=%s error=%s", db_path.name, exc)

    if frame is None or frame.empty:
        return []

    pairs = (
        frame.astype("string")
        .apply(lambda column: column.str.strip())
        .replace({"": pd.NA})
        .dropna()
        .drop_duplicates()
        .sort_values(["owner", "repo"])
    )
    return [(str(owner), str(repo)) for owner, repo in pairs.itertuples(index=False)]


def load_world_features(path: Path = DEFAULT_FEATURES_PATH) -> list[dict[str, Any]]:
    if not path.exists():
        logger.warning("World geometry file=%s not found", path)
        return []

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not parse GeoJSON in {path.name}: {exc}") from exc

    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        raise ValueError(f"GeoJSON in {path.name} has no 'features' list.")
    return features
