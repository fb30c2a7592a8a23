from typing import Optional
from typing import Sequence
from typing import Tuple

import pandas as pd
from pydantic import ConfigDict
from pydantic import Field

from rep_period_toolkit.core.custom_model import CustomModel
from rep_period_toolkit.core.exceptions import SchemaError
from rep_period_toolkit.core.utils.pandas_utils import missing_columns

PERIOD = "period"
TIMESTEP = "timestep"
VALUE = "value"
REP_PERIOD = "rep_period"

NON_KEY_COLUMNS = (PERIOD, VALUE)


def combine_periods(df: pd.DataFrame) -> pd.DataFrame:
    """Merges the `period` and `timestep` columns into a single column of global time steps.

    The period duration is inferred from the maximum time step, assuming periods start at time step 1. A frame without
    a `period` column is returned unchanged.

    Example:
        period  timestep  value            timestep  value
             1         1      1      ->           1      1
             1         2      2                   2      2
             2         1      3                   3      3
    """
    if TIMESTEP not in df.columns:
        raise SchemaError([TIMESTEP], message=f"Table does not contain a column `{TIMESTEP}`")

    df = df.copy()
    if PERIOD not in df.columns:
        return df

    max_timestep = df[TIMESTEP].max()
    df[TIMESTEP] = (df[PERIOD] - 1) * max_timestep + df[TIMESTEP]
    return df.drop(columns=PERIOD)


def split_into_periods(df: pd.DataFrame, period_duration: Optional[int] = None) -> pd.DataFrame:
    """Splits the `timestep` column into a `period` column and a `timestep` column local to the period.

    Existing periods are combined first. If `period_duration` is `None`, all time steps end up in period 1. The time
    columns are moved to the front of the returned frame.

    Example (period_duration=2):
        timestep  value            period  timestep  value
               1      5      ->         1         1      5
               2      6                 1         2      6
               3      7                 2         1      7
    """
    df = combine_periods(df)

    if period_duration is None:
        df[PERIOD] = 1
    else:
        zero_based = df[TIMESTEP] - 1
        df[PERIOD] = zero_based // period_duration + 1
        df[TIMESTEP] = zero_based % period_duration + 1

    return df[[PERIOD, TIMESTEP] + [column for column in df.columns if column not in (PERIOD, TIMESTEP)]]


class AuxiliaryData(CustomModel):
    """Bookkeeping about the periods in a clustering table.

    The record is immutable; the selection metadata (`medoids`) is attached with `with_medoids`, which returns a new
    record.
    """

    model_config = ConfigDict(frozen=True)

    key_columns: list[str]
    period_duration: int = Field(ge=1)
    last_period_duration: int = Field(ge=1)
    n_periods: int = Field(ge=1)
    medoids: Optional[list[Optional[int]]] = Field(
        default=None,
        description="0-based base period index behind every representative period (`None` for initial representatives)",
    )

    @property
    def has_incomplete_last_period(self) -> bool:
        return self.last_period_duration != self.period_duration

    def with_medoids(self, medoids: Sequence[Optional[int]]) -> "AuxiliaryData":
        return self.model_copy(update={"medoids": list(medoids)})


def validate_df_and_find_key_columns(df: pd.DataFrame) -> list[str]:
    """Checks that `df` has the period, time step and value columns and returns its key columns.

    Key columns are all columns other than `period` and `value` (so `timestep` is a key column), in table order.
    """
    missing = missing_columns(df, [PERIOD, TIMESTEP, VALUE])
    if missing:
        raise SchemaError(missing)
    return [column for column in df.columns if column not in NON_KEY_COLUMNS]


def find_auxiliary_data(df: pd.DataFrame) -> AuxiliaryData:
    """Calculates the auxiliary data of a clustering table.

    - `key_columns`: columns that identify a row within a period
    - `period_duration`: duration of the periods (in time steps)
    - `last_period_duration`: duration of the last period
    - `n_periods`: total number of periods

    All periods except the last one are assumed to have `period_duration` time steps.
    """
    key_columns = validate_df_and_find_key_columns(df)
    if df.empty:
        raise SchemaError([], message="Table does not contain any rows")

    n_periods = int(df[PERIOD].max())
    period_duration = int(df[TIMESTEP].max())
    last_period_duration = int(df.loc[df[PERIOD] == n_periods, TIMESTEP].max())

    return AuxiliaryData(
        key_columns=key_columns,
        period_duration=period_duration,
        last_period_duration=last_period_duration,
        n_periods=n_periods,
    )


def find_period_weights(
    period_duration: int,
    last_period_duration: int,
    n_periods: int,
    drop_incomplete_last_period: bool,
) -> Tuple[float, Optional[float]]:
    """Finds the weights of complete periods and of the (possibly) incomplete last period.

    - If the last period is complete, every period has weight 1 and there is no incomplete weight.
    - If the incomplete last period is dropped, its time steps are spread over the complete periods.
    - Otherwise the incomplete period keeps weight 1 and becomes its own representative.
    """
    if last_period_duration == period_duration:
        return 1.0, None
    elif drop_incomplete_last_period:
        full_period_timesteps = period_duration * (n_periods - 1)
        total_timesteps = full_period_timesteps + last_period_duration
        return total_timesteps / full_period_timesteps, None
    else:
        return 1.0, 1.0
