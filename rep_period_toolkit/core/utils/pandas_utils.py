from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

import numpy as np
import pandas as pd
from loguru import logger


def missing_columns(df: pd.DataFrame, required_columns: Iterable[str]) -> List[str]:
    """Returns the required columns that are not present in a data frame, in the order they were requested.

    Args:
        df: data frame to check
        required_columns: column names that must be present

    Returns:
        missing: list of column names not found in `df`
    """
    return [column for column in required_columns if column not in df.columns]


def _key_index(keys: pd.DataFrame) -> pd.Index:
    if len(keys.columns) == 1:
        return pd.Index(keys.iloc[:, 0], name=keys.columns[0])
    return pd.MultiIndex.from_frame(keys)


def df_to_matrix_and_keys(
    df: pd.DataFrame,
    key_columns: Sequence[str],
    period_column: str = "period",
    value_column: str = "value",
    periods: Optional[Iterable[int]] = None,
) -> Tuple[np.ndarray, pd.DataFrame]:
    """Pivots a long-format data frame into a (key rows x period columns) matrix.

    Every distinct combination of `key_columns` becomes one matrix row, in order of first appearance in `df`. Every
    period becomes a column, sorted by period number (or in the order given by `periods`). Rows that miss a value for
    any of the periods are dropped from both the matrix and the keys, and the drop is logged as a warning.

    Args:
        df: long-format data frame
        key_columns: columns identifying a matrix row
        period_column: column holding the period number
        value_column: column holding the values
        periods: optional explicit list of period columns; periods without any data produce all-NaN columns

    Returns:
        matrix: float matrix of shape (number of complete key rows, number of periods)
        keys: data frame with the key columns, row-aligned with `matrix`
    """
    key_columns = list(key_columns)
    keys = df[key_columns].drop_duplicates().reset_index(drop=True)

    wide_df = df.pivot(index=key_columns, columns=period_column, values=value_column).reindex(_key_index(keys))
    if periods is not None:
        wide_df = wide_df.reindex(columns=list(periods))

    is_complete = wide_df.notna().all(axis=1).to_numpy()
    if not is_complete.all():
        logger.warning(
            f"Dropping {(~is_complete).sum()} of {len(is_complete)} rows (keyed by {key_columns}) that do not have a "
            f"value for every period; they will not take part in the clustering."
        )

    matrix = wide_df.loc[is_complete].to_numpy(dtype=float)
    keys = keys.loc[is_complete].reset_index(drop=True)

    return matrix, keys
