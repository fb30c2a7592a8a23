from typing import Any
from typing import Optional
from typing import Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp
from pydantic import Field

from rep_period_toolkit.core.custom_model import CustomModel
from rep_period_toolkit.core.temporal.periods import AuxiliaryData
from rep_period_toolkit.core.temporal.periods import PERIOD
from rep_period_toolkit.core.temporal.periods import REP_PERIOD
from rep_period_toolkit.core.temporal.periods import TIMESTEP
from rep_period_toolkit.core.temporal.periods import VALUE
from rep_period_toolkit.core.temporal.weight_fitting import fit_rep_period_weights


def _profile_columns(key_columns: Sequence[str]) -> list[str]:
    time_columns = [REP_PERIOD] + ([TIMESTEP] if TIMESTEP in key_columns else [])
    return time_columns + [column for column in key_columns if column != TIMESTEP] + [VALUE]


def matrix_and_keys_to_df(matrix: np.ndarray, keys: pd.DataFrame) -> pd.DataFrame:
    """Converts a (features x representative periods) matrix back into a long-format profiles table.

    Representative period `j` (1-based) is column `j - 1` of `matrix`; `keys` is row-aligned with `matrix`.
    """
    n_rp = matrix.shape[1]
    wide_df = pd.concat(
        [keys.reset_index(drop=True), pd.DataFrame(matrix, columns=range(1, n_rp + 1))],
        axis=1,
    )
    long_df = wide_df.melt(id_vars=list(keys.columns), var_name=REP_PERIOD, value_name=VALUE)
    long_df[REP_PERIOD] = long_df[REP_PERIOD].astype(int)
    return long_df[_profile_columns(keys.columns)].reset_index(drop=True)


def append_period_as_rp(
    profiles: Optional[pd.DataFrame],
    source_df: pd.DataFrame,
    period: int,
    rp: int,
    key_columns: Sequence[str],
) -> pd.DataFrame:
    """Appends the rows of `period` in `source_df` to `profiles` as representative period `rp`."""
    key_columns = list(key_columns)
    period_df = source_df.loc[source_df[PERIOD] == period, key_columns + [VALUE]].assign(**{REP_PERIOD: rp})
    period_df = period_df[_profile_columns(key_columns)]
    if profiles is None or profiles.empty:
        return period_df.reset_index(drop=True)
    return pd.concat([profiles, period_df], ignore_index=True)


def initial_representative_vector(
    initial_representatives: pd.DataFrame, period: int, keys: pd.DataFrame
) -> np.ndarray:
    """Values of one initial representative period aligned with the rows of `keys`."""
    key_columns = list(keys.columns)
    period_df = initial_representatives.loc[initial_representatives[PERIOD] == period, key_columns + [VALUE]]
    return keys.merge(period_df, on=key_columns, how="left")[VALUE].to_numpy(dtype=float)


def weight_matrix_to_df(weight_matrix) -> pd.DataFrame:
    """Lists the nonzero entries of a weight matrix as (`period`, `rep_period`, `weight`) rows, both 1-based."""
    coo = sp.coo_matrix(weight_matrix)
    is_nonzero = coo.data != 0
    df = pd.DataFrame(
        {
            PERIOD: coo.row[is_nonzero] + 1,
            REP_PERIOD: coo.col[is_nonzero] + 1,
            "weight": coo.data[is_nonzero].astype(float),
        }
    )
    return df.sort_values([PERIOD, REP_PERIOD]).reset_index(drop=True)


class ClusteringResult(CustomModel):
    """Representative periods found by `find_representative_periods`.

    Attributes:
        profiles: long-format table (`rep_period`, `timestep`, other keys, `value`) of the representative periods
        weight_matrix: (periods x representative periods) scipy sparse or dense matrix; row `p` expresses period `p + 1`
            as a combination of representative periods
        clustering_matrix: (features x complete periods) matrix the representatives were selected from
        rp_matrix: (features x selected representative periods) matrix, excluding an incomplete last period kept as its
            own representative
        keys: key columns, row-aligned with `clustering_matrix` and `rp_matrix`
        auxiliary_data: period bookkeeping of the input table, including the selection metadata
        incomplete_rep_period: whether the last representative period is the incomplete last period of the input
    """

    profiles: pd.DataFrame
    weight_matrix: Any
    clustering_matrix: np.ndarray
    rp_matrix: np.ndarray
    keys: pd.DataFrame
    auxiliary_data: AuxiliaryData
    incomplete_rep_period: bool = Field(default=False)

    @property
    def n_rp(self) -> int:
        return self.weight_matrix.shape[1]

    @property
    def n_periods(self) -> int:
        return self.weight_matrix.shape[0]

    def fit_weights(self, weight_type="convex", **kwargs):
        """Fits the weights of the base periods in place; see `fit_rep_period_weights` for the options."""
        self.weight_matrix = fit_rep_period_weights(
            self.weight_matrix, self.clustering_matrix, self.rp_matrix, weight_type=weight_type, **kwargs
        )
        return self.weight_matrix

    def weight_matrix_to_df(self) -> pd.DataFrame:
        return weight_matrix_to_df(self.weight_matrix)

    def rep_periods_data(self) -> pd.DataFrame:
        """Number of time steps and resolution of every representative period."""
        aux = self.auxiliary_data
        num_timesteps = np.full(self.n_rp, aux.period_duration, dtype=int)
        if self.incomplete_rep_period:
            num_timesteps[-1] = aux.last_period_duration
        return pd.DataFrame(
            {
                REP_PERIOD: np.arange(1, self.n_rp + 1),
                "num_timesteps": num_timesteps,
                "resolution": 1.0,
            }
        )

    def timeframe_data(self) -> pd.DataFrame:
        """Number of time steps of every base period covered by the weight matrix."""
        aux = self.auxiliary_data
        num_timesteps = np.full(self.n_periods, aux.period_duration, dtype=int)
        if self.incomplete_rep_period:
            num_timesteps[-1] = aux.last_period_duration
        return pd.DataFrame({PERIOD: np.arange(1, self.n_periods + 1), "num_timesteps": num_timesteps})
