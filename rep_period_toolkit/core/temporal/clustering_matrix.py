from typing import NamedTuple
from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.periods import AuxiliaryData
from rep_period_toolkit.core.temporal.periods import PERIOD
from rep_period_toolkit.core.temporal.periods import VALUE
from rep_period_toolkit.core.temporal.settings import ClusteringMethod
from rep_period_toolkit.core.utils.pandas_utils import df_to_matrix_and_keys


class ClusteringMatrix(NamedTuple):
    matrix: np.ndarray
    keys: pd.DataFrame
    n_seed_columns: int


def n_initial_representatives(initial_representatives: Optional[pd.DataFrame]) -> int:
    if initial_representatives is None or initial_representatives.empty:
        return 0
    return int(initial_representatives[PERIOD].max())


def build_clustering_matrix(
    df: pd.DataFrame,
    aux: AuxiliaryData,
    n_complete_periods: int,
    method: ClusteringMethod,
    initial_representatives: Optional[pd.DataFrame] = None,
) -> ClusteringMatrix:
    """Pivots the complete periods of `df` into a (features x periods) matrix.

    For the hull methods, initial representatives are prepended as the leading columns of the matrix (the periods of
    `df` are shifted accordingly) so the hull search can start from them. For k-means and k-medoids they are left out;
    they are appended to the result after the clustering instead.
    """
    columns = [PERIOD] + aux.key_columns + [VALUE]
    complete_periods_df = df.loc[df[PERIOD] <= n_complete_periods, columns]

    n_seed_columns = n_initial_representatives(initial_representatives) if method.is_hull else 0
    if n_seed_columns > 0:
        shifted_df = complete_periods_df.assign(**{PERIOD: complete_periods_df[PERIOD] + n_seed_columns})
        complete_periods_df = pd.concat([initial_representatives[columns], shifted_df], ignore_index=True)
        logger.debug(f"Prepending {n_seed_columns} initial representative(s) to the clustering matrix")

    n_columns = n_complete_periods + n_seed_columns
    matrix, keys = df_to_matrix_and_keys(complete_periods_df, aux.key_columns, periods=range(1, n_columns + 1))
    if matrix.shape[0] == 0:
        raise ArgumentError("No row of the clustering data has a value for every period; there is nothing to cluster")

    logger.debug(f"Built clustering matrix with {matrix.shape[0]} feature(s) and {matrix.shape[1]} column(s)")
    return ClusteringMatrix(matrix=matrix, keys=keys, n_seed_columns=n_seed_columns)
