"""
Data Preprocessing Module
=========================

Cleans and retypes the Play Store exports and turns them into modeling
observations.

Every step takes a DataFrame and returns a new one; inputs are never
modified in place.

Functions:
    - parse_installs / parse_size / parse_price / parse_count: column parsers
    - clean_apps: Deduplicate, retype and filter the apps table
    - aggregate_sentiment: Per-app mean review sentiment
    - merge_sentiment: Attach sentiment to apps
    - add_log_installs: Log-transform the install count
    - build_observations: Immutable modeling records
    - build_thresholds: Install-count bin edges on the log scale
    - preprocess_pipeline: All of the above in order
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .binning import validate_thresholds
from .exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)

TARGET_COLUMN = "log_installs"
DEFAULT_PREDICTORS = ["Rating", "average_polarity", "average_subjectivity"]


@dataclass(frozen=True)
class Observation:
    """
    One app: log install count plus its numeric predictors.

    ``predictors`` is stored as a read-only mapping, so an observation
    shared between folds cannot be changed by a trainer or predictor.
    """
    target: float
    predictors: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'predictors', MappingProxyType(dict(self.predictors)))

    def __reduce__(self):
        # mappingproxy cannot be pickled; rebuild from a plain dict
        return (self.__class__, (self.target, dict(self.predictors)))


def _to_numeric(series: pd.Series) -> pd.Series:
    return pd.to_numeric(series, errors='coerce').astype(float)


def parse_installs(series: pd.Series) -> pd.Series:
    """
    Convert install strings such as ``"10,000+"`` to floats.

    Args:
        series: Raw ``Installs`` column

    Returns:
        Float series, NaN where the value is not a number
    """
    cleaned = series.astype(str).str.replace(r'[+,\s]', '', regex=True)
    return _to_numeric(cleaned)


def parse_count(series: pd.Series) -> pd.Series:
    """Convert review counts to floats (``"3.0M"`` style values included)."""
    text = series.astype(str).str.strip()
    millions = text.str.endswith('M')
    values = _to_numeric(text.str.rstrip('M'))
    return values.where(~millions, values * 1_000_000)


def parse_size(series: pd.Series) -> pd.Series:
    """
    Convert size strings to megabytes.

    ``"19M"`` -> 19.0, ``"201k"`` -> 0.196..., ``"Varies with device"`` -> NaN.
    """
    text = series.astype(str).str.strip().str.replace(',', '', regex=False)
    unit = text.str[-1].str.lower()
    values = _to_numeric(text.str[:-1])

    megabytes = pd.Series(np.nan, index=series.index, dtype=float)
    is_mb = unit == 'm'
    is_kb = unit == 'k'
    megabytes.loc[is_mb] = values[is_mb]
    megabytes.loc[is_kb] = values[is_kb] / 1024
    return megabytes


def parse_price(series: pd.Series) -> pd.Series:
    """Convert prices such as ``"$4.99"`` to floats."""
    return _to_numeric(series.astype(str).str.replace('$', '', regex=False).str.strip())


def clean_apps(df: pd.DataFrame) -> pd.DataFrame:
    """
    Deduplicate and retype the apps table.

    Drops exact duplicate rows, repeated app names (first listing wins), rows
    whose install count cannot be parsed, and rows with a rating outside
    [1, 5]. The public export has one row shifted by a column that fails both
    checks.

    Args:
        df: Raw apps DataFrame

    Returns:
        New cleaned DataFrame with numeric Rating/Reviews/Size/Installs/Price
        and a datetime ``Last Updated``
    """
    n_raw = len(df)
    apps = df.drop_duplicates().drop_duplicates(subset=['App'], keep='first').copy()
    logger.info(f"Removed {n_raw - len(apps)} duplicate app rows")

    apps['Installs'] = parse_installs(apps['Installs'])
    apps['Rating'] = _to_numeric(apps['Rating'])
    if 'Reviews' in apps.columns:
        apps['Reviews'] = parse_count(apps['Reviews'])
    if 'Size' in apps.columns:
        apps['Size'] = parse_size(apps['Size'])
    if 'Price' in apps.columns:
        apps['Price'] = parse_price(apps['Price'])
    if 'Last Updated' in apps.columns:
        apps['Last Updated'] = pd.to_datetime(
            apps['Last Updated'], format='mixed', errors='coerce'
        )

    bad_installs = apps['Installs'].isna()
    bad_rating = apps['Rating'].notna() & ~apps['Rating'].between(1, 5)
    dropped = int((bad_installs | bad_rating).sum())
    if dropped:
        logger.warning(f"Dropping {dropped} malformed app rows")
    apps = apps[~(bad_installs | bad_rating)].reset_index(drop=True)

    logger.info(f"Cleaned apps table: {len(apps)} rows")
    return apps


def aggregate_sentiment(reviews: pd.DataFrame) -> pd.DataFrame:
    """
    Average review sentiment per app.

    Args:
        reviews: Raw reviews DataFrame

    Returns:
        One row per app with ``average_polarity``, ``average_subjectivity``
        and ``review_count``
    """
    scored = reviews.dropna(
        subset=['Translated_Review', 'Sentiment_Polarity', 'Sentiment_Subjectivity']
    ).drop_duplicates()
    logger.info(f"Kept {len(scored)} of {len(reviews)} reviews with sentiment scores")

    scored = scored.assign(
        Sentiment_Polarity=_to_numeric(scored['Sentiment_Polarity']),
        Sentiment_Subjectivity=_to_numeric(scored['Sentiment_Subjectivity'])
    )

    sentiment = (
        scored.groupby('App')
        .agg(
            average_polarity=('Sentiment_Polarity', 'mean'),
            average_subjectivity=('Sentiment_Subjectivity', 'mean'),
            review_count=('Translated_Review', 'size')
        )
        .reset_index()
    )
    return sentiment


def merge_sentiment(apps: pd.DataFrame, sentiment: pd.DataFrame) -> pd.DataFrame:
    """Inner-join per-app sentiment onto the apps table."""
    merged = apps.merge(sentiment, on='App', how='inner')
    logger.info(f"Merged sentiment: {len(merged)} apps have reviews")
    return merged


def add_log_installs(df: pd.DataFrame) -> pd.DataFrame:
    """
    Keep apps with at least one install and add the log install count.

    Args:
        df: DataFrame with a numeric ``Installs`` column

    Returns:
        New DataFrame with a ``log_installs`` column
    """
    installed = df[df['Installs'] > 0]
    if len(installed) < len(df):
        logger.info(f"Dropped {len(df) - len(installed)} apps with zero installs")
    return installed.assign(**{TARGET_COLUMN: np.log(installed['Installs'])}).reset_index(drop=True)


def select_modeling_frame(
    df: pd.DataFrame,
    predictors: Sequence[str],
    target: str = TARGET_COLUMN
) -> pd.DataFrame:
    """Rows with no missing values in the target or any predictor."""
    missing = [col for col in [target, *predictors] if col not in df.columns]
    if missing:
        raise ValueError(f"Missing modeling columns: {missing}")

    modeling = df.dropna(subset=[target, *predictors]).reset_index(drop=True)
    logger.info(f"Modeling frame: {len(modeling)} rows, predictors={list(predictors)}")
    return modeling


def build_observations(
    df: pd.DataFrame,
    predictors: Sequence[str],
    target: str = TARGET_COLUMN
) -> Tuple[Observation, ...]:
    """
    Convert a cleaned frame to Observation records.

    Args:
        df: Frame without missing values in the modeled columns
        predictors: Predictor column names
        target: Target column name

    Returns:
        Tuple of Observation, in row order
    """
    if df[[target, *predictors]].isna().any().any():
        raise ValueError("Modeled columns must not contain missing values")

    return tuple(
        Observation(
            target=float(row[target]),
            predictors={name: float(row[name]) for name in predictors}
        )
        for _, row in df[[target, *predictors]].iterrows()
    )


def build_thresholds(installs: Sequence[float]) -> np.ndarray:
    """
    Bin edges from the distinct non-zero install counts, log-transformed.

    The edges come from the full dataset, so held-out rows of a
    cross-validation run still shape the bins.

    Args:
        installs: Raw (untransformed) install counts

    Returns:
        Strictly increasing array of log install counts

    Raises:
        InvalidConfiguration: If fewer than 2 distinct non-zero counts exist
    """
    values = pd.Series(installs, dtype=float).dropna()
    distinct = np.unique(values[values > 0].to_numpy())

    if len(distinct) < 2:
        raise InvalidConfiguration(
            f"Need at least 2 distinct non-zero install counts, found {len(distinct)}"
        )

    return validate_thresholds(np.log(distinct))


def preprocess_pipeline(
    apps: pd.DataFrame,
    reviews: pd.DataFrame,
    predictors: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Complete cleaning pipeline from raw exports to observations.

    Args:
        apps: Raw apps DataFrame
        reviews: Raw reviews DataFrame
        predictors: Predictor columns (default: rating and sentiment)

    Returns:
        Dictionary containing:
            - apps: Cleaned apps table
            - sentiment: Per-app sentiment
            - merged: Apps with sentiment and log installs
            - modeling: Rows usable for modeling
            - observations: Tuple of Observation
            - thresholds: Bin edges for the binned accuracy metric
            - predictors: Predictor names used
    """
    predictors = list(predictors or DEFAULT_PREDICTORS)

    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING")
    logger.info("=" * 60)

    clean = clean_apps(apps)
    sentiment = aggregate_sentiment(reviews)
    merged = add_log_installs(merge_sentiment(clean, sentiment))
    modeling = select_modeling_frame(merged, predictors)

    observations = build_observations(modeling, predictors)
    thresholds = build_thresholds(clean['Installs'])

    result = {
        'apps': clean,
        'sentiment': sentiment,
        'merged': merged,
        'modeling': modeling,
        'observations': observations,
        'thresholds': thresholds,
        'predictors': predictors
    }

    logger.info("=" * 60)
    logger.info("PREPROCESSING COMPLETE")
    logger.info(f"  Observations: {len(observations)}")
    logger.info(f"  Bin edges: {len(thresholds)}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Cleaned apps: {len(result['apps'])}")
    print(f"Apps with review sentiment: {len(result['sentiment'])}")
    print(f"Merged rows: {len(result['merged'])}")
    print(f"Observations: {len(result['observations'])}")
    print(f"Predictors: {', '.join(result['predictors'])}")
    print(f"\nInstall bins ({len(result['thresholds'])} edges, log scale):")
    print("  " + ", ".join(f"{edge:.2f}" for edge in result['thresholds']))
    print("=" * 50 + "\n")
