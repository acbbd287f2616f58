"""Statistical functions using scipy for complex calculations."""

import math

import numpy as np
import polars as pl
from scipy import stats


def pearson_correlation(
    df: pl.DataFrame,
    col_x: str,
    col_y: str,
    min_samples: int = 3,
) -> float | None:
    """Calculate Pearson correlation coefficient.

    Args:
        df: DataFrame with the columns
        col_x: First column name
        col_y: Second column name
        min_samples: Minimum non-null pairs required

    Returns:
        Correlation coefficient or None if insufficient data.
    """
    if col_x not in df.columns or col_y not in df.columns:
        return None

    valid = df.select([col_x, col_y]).drop_nulls()

    if len(valid) < min_samples:
        return None

    x = valid[col_x].cast(pl.Float64).to_numpy()
    y = valid[col_y].cast(pl.Float64).to_numpy()

    # Handle edge case of zero variance
    if np.std(x) == 0 or np.std(y) == 0:
        return None

    corr, _ = stats.pearsonr(x, y)
    if not math.isfinite(corr):
        return None
    return float(corr)


def coefficient_of_variation(values: list[float] | np.ndarray) -> float:
    """Population standard deviation as a percentage of the mean.

    Returns:
        CV in percent (0 for empty input or a zero mean).
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0

    mean = np.mean(arr)
    if mean == 0:
        return 0.0

    return float(np.std(arr) / abs(mean) * 100)
