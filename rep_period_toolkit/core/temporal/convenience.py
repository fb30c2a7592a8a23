from typing import Any
from typing import Optional

import pandas as pd
from loguru import logger

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.clustering import find_representative_periods
from rep_period_toolkit.core.temporal.hull import Distance
from rep_period_toolkit.core.temporal.periods import combine_periods
from rep_period_toolkit.core.temporal.periods import PERIOD
from rep_period_toolkit.core.temporal.periods import split_into_periods
from rep_period_toolkit.core.temporal.periods import TIMESTEP
from rep_period_toolkit.core.temporal.results import ClusteringResult
from rep_period_toolkit.core.temporal.settings import ClusteringSettings


def cluster(
    df: pd.DataFrame,
    settings: Optional[ClusteringSettings] = None,
    *,
    initial_representatives: Optional[pd.DataFrame] = None,
    distance: Optional[Distance] = None,
    clustering_kwargs: Optional[dict[str, Any]] = None,
    **overrides,
) -> ClusteringResult:
    """Splits a profiles table into periods, finds representative periods and fits their weights.

    `df` is not modified. Settings are taken from `settings`, updated with `overrides`; e.g.
    `cluster(df, n_rp=4, period_duration=24, method="convex_hull")` works without a settings object.

    Args:
        df: long-format profiles with a `timestep` and a `value` column (and optionally a `period` column). Existing
            periods are kept when `settings.period_duration` is `None`, and re-split otherwise.
        settings: clustering settings
        initial_representatives: see `find_representative_periods`
        distance: custom distance function; overrides `settings.distance`
        clustering_kwargs: extra arguments for the k-means/k-medoids backend
        **overrides: settings fields

    Returns:
        The clustering result, with fitted weights unless `settings.weight_type` is `None`.
    """
    if settings is None:
        settings = ClusteringSettings(**overrides)
    elif overrides:
        settings = ClusteringSettings(**(settings.model_dump() | overrides))

    clustering_kwargs = dict(clustering_kwargs or {})
    if settings.random_state is not None and not settings.method.is_hull:
        clustering_kwargs.setdefault("random_state", settings.random_state)

    if settings.period_duration is None and PERIOD in df.columns:
        periods_df = df.copy()
    else:
        periods_df = split_into_periods(df, period_duration=settings.period_duration)
    result = find_representative_periods(
        periods_df,
        settings.n_rp,
        drop_incomplete_last_period=settings.drop_incomplete_last_period,
        method=settings.method,
        distance=settings.distance_function if distance is None else distance,
        initial_representatives=initial_representatives,
        distance_cache=settings.distance_cache,
        **clustering_kwargs,
    )

    if settings.weight_type is None:
        logger.info("Keeping the assignment weights of the clustering")
    else:
        result.fit_weights(
            weight_type=settings.weight_type,
            tol=settings.tol,
            niters=settings.niters,
            learning_rate=settings.learning_rate,
            adaptive_grad=settings.adaptive_grad,
            n_jobs=settings.n_jobs,
        )
    return result


def dummy_cluster(df: pd.DataFrame, **kwargs) -> ClusteringResult:
    """Single representative period spanning the whole profile, for runs that do not need clustering."""
    fixed = sorted({"n_rp", "period_duration"} & set(kwargs))
    if fixed:
        raise ArgumentError(f"dummy_cluster sets {', '.join(fixed)} itself; remove it from the arguments")

    period_duration = int(combine_periods(df)[TIMESTEP].max())
    return cluster(df, period_duration=period_duration, n_rp=1, **kwargs)
