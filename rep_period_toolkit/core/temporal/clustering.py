from typing import Callable
from typing import Optional
from typing import Union

import numpy as np
import pandas as pd
import scipy.sparse as sp
from loguru import logger
from scipy.spatial import distance as scipy_distance

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.exceptions import InitialRepresentativesError
from rep_period_toolkit.core.temporal.clustering_matrix import build_clustering_matrix
from rep_period_toolkit.core.temporal.hull import Distance
from rep_period_toolkit.core.temporal.periods import AuxiliaryData
from rep_period_toolkit.core.temporal.periods import find_auxiliary_data
from rep_period_toolkit.core.temporal.periods import find_period_weights
from rep_period_toolkit.core.temporal.results import append_period_as_rp
from rep_period_toolkit.core.temporal.results import ClusteringResult
from rep_period_toolkit.core.temporal.results import initial_representative_vector
from rep_period_toolkit.core.temporal.results import matrix_and_keys_to_df
from rep_period_toolkit.core.temporal.selection import assign_to_nearest
from rep_period_toolkit.core.temporal.selection import get_selector
from rep_period_toolkit.core.temporal.selection import kmeans_clustering
from rep_period_toolkit.core.temporal.selection import kmedoids_clustering
from rep_period_toolkit.core.temporal.selection import SelectionContext
from rep_period_toolkit.core.temporal.settings import ClusteringMethod
from rep_period_toolkit.core.temporal.settings import NAMED_DISTANCES
from rep_period_toolkit.core.utils.core_utils import timer


def resolve_distance(distance: Union[str, Distance]) -> Distance:
    if not isinstance(distance, str):
        return distance
    if distance not in NAMED_DISTANCES:
        raise ArgumentError(f"Unknown distance {distance!r}; choose one of: {', '.join(NAMED_DISTANCES)}")
    return NAMED_DISTANCES[distance]


def validate_initial_representatives(
    initial_representatives: pd.DataFrame,
    df: pd.DataFrame,
    aux: AuxiliaryData,
    is_last_period_excluded: bool,
    n_rp: int,
) -> int:
    """Checks that initial representatives can be used with `df` and returns how many there are."""
    initial_aux = find_auxiliary_data(initial_representatives)

    if initial_aux.key_columns != aux.key_columns:
        raise InitialRepresentativesError(
            f"Key columns of initial representatives do not match the clustering data; expected {aux.key_columns}, "
            f"found {initial_aux.key_columns}"
        )

    if initial_aux.has_incomplete_last_period:
        raise InitialRepresentativesError("Initial representatives have an incomplete last period; this is not allowed")

    initial_keys = initial_representatives[aux.key_columns].drop_duplicates()
    clustering_keys = df[aux.key_columns].drop_duplicates()
    merged_keys = initial_keys.merge(clustering_keys, on=aux.key_columns, how="outer", indicator=True)
    n_extra_initial = int((merged_keys["_merge"] == "left_only").sum())
    n_extra_clustering = int((merged_keys["_merge"] == "right_only").sum())
    if n_extra_initial > 0 or n_extra_clustering > 0:
        raise InitialRepresentativesError(
            f"Initial representatives and clustering data do not have the same keys: there are {n_extra_initial} extra "
            f"key(s) in the initial representatives and {n_extra_clustering} extra key(s) in the clustering data"
        )

    i_rp = initial_aux.n_periods
    min_n_rp = i_rp + 1 if is_last_period_excluded else i_rp
    if n_rp < min_n_rp:
        raise InitialRepresentativesError(
            f"The number of representative periods is {n_rp} but has to be at least {min_n_rp}"
        )
    return i_rp


@timer
def find_representative_periods(
    df: pd.DataFrame,
    n_rp: int,
    *,
    drop_incomplete_last_period: bool = False,
    method: Union[ClusteringMethod, str] = ClusteringMethod.K_MEANS,
    distance: Union[str, Distance] = scipy_distance.sqeuclidean,
    initial_representatives: Optional[pd.DataFrame] = None,
    distance_cache: Optional[bool] = None,
    kmeans_backend: Callable = kmeans_clustering,
    kmedoids_backend: Callable = kmedoids_clustering,
    **clustering_kwargs,
) -> ClusteringResult:
    """Finds representative periods of a long-format table with `period`, `timestep` and `value` columns.

    Every complete period is assigned to its nearest representative period with the period weight; call
    `ClusteringResult.fit_weights` afterwards to blend the weights.

    Args:
        df: clustering data; all columns other than `period` and `value` identify a row within a period
        n_rp: number of representative periods, between 1 and the number of periods
        drop_incomplete_last_period: spread an incomplete last period over the complete periods instead of keeping it
            as its own representative period
        method: one of `k_means`, `k_medoids`, `convex_hull`, `convex_hull_with_null`, `conical_hull`
        distance: `scipy.spatial.distance` function (or its name) measuring the distance between two periods
        initial_representatives: periods (numbered from 1, same key columns as `df`) that must be representatives
        distance_cache: use the hull distance cache; `None` enables it for Euclidean-like distances only
        kmeans_backend: callable `(matrix, k, distance, **kwargs) -> CentroidClustering`
        kmedoids_backend: callable `(matrix, k, distance, **kwargs) -> MedoidClustering`
        **clustering_kwargs: passed on to the k-means/k-medoids backend

    Returns:
        The representative periods, the weight matrix and the matrices needed to fit the weights.
    """
    if n_rp < 1:
        raise ArgumentError(f"The number of representative periods is {n_rp} but has to be at least 1")

    method = ClusteringMethod.parse(method)
    distance = resolve_distance(distance)
    aux = find_auxiliary_data(df)
    n_periods = aux.n_periods
    if n_rp > n_periods:
        raise ArgumentError(
            f"The number of representative periods exceeds the total number of periods, {n_rp} > {n_periods}"
        )

    has_incomplete_last_period = aux.has_incomplete_last_period
    is_last_period_excluded = has_incomplete_last_period and not drop_incomplete_last_period
    n_complete_periods = n_periods - 1 if has_incomplete_last_period else n_periods

    if initial_representatives is not None and not initial_representatives.empty:
        i_rp = validate_initial_representatives(initial_representatives, df, aux, is_last_period_excluded, n_rp)
    else:
        initial_representatives = None
        i_rp = 0

    if is_last_period_excluded and n_rp < 2:
        raise ArgumentError(
            "The incomplete last period takes one representative period of its own, so at least 2 are needed"
        )

    complete_period_weight, incomplete_period_weight = find_period_weights(
        aux.period_duration, aux.last_period_duration, n_periods, drop_incomplete_last_period
    )
    logger.info(
        f"Finding {n_rp} representative period(s) out of {n_periods} period(s) with {method.value} "
        f"({i_rp} initial representative(s))"
    )

    # The incomplete last period is its own representative, in the last column
    total_n_rp = n_rp
    if is_last_period_excluded:
        weight_matrix = sp.lil_matrix((n_periods, total_n_rp))
        weight_matrix[n_periods - 1, total_n_rp - 1] = incomplete_period_weight
        n_rp -= 1
    else:
        weight_matrix = sp.lil_matrix((n_complete_periods, total_n_rp))

    clustering_matrix, keys, n_seed_columns = build_clustering_matrix(
        df, aux, n_complete_periods, method, initial_representatives
    )

    n_clustered_rp = n_rp if method.is_hull else n_rp - i_rp
    if n_clustered_rp > 0:
        context = SelectionContext(
            clustering_matrix=clustering_matrix,
            n_rp=n_clustered_rp,
            distance=distance,
            n_seed_columns=n_seed_columns,
            distance_cache=distance_cache,
            clustering_kwargs=clustering_kwargs,
            kmeans_backend=kmeans_backend,
            kmedoids_backend=kmedoids_backend,
        )
        rp_matrix, clustering_matrix, medoids = get_selector(method).select(context)
    else:
        logger.info("Initial representatives fill all representative periods; skipping the clustering")
        rp_matrix = np.empty((clustering_matrix.shape[0], 0))
        medoids = [] if method is ClusteringMethod.K_MEDOIDS else None

    if not method.is_hull and i_rp > 0:
        initial_columns = [
            initial_representative_vector(initial_representatives, period, keys) for period in range(1, i_rp + 1)
        ]
        rp_matrix = np.column_stack([rp_matrix] + initial_columns)
        if medoids is not None:
            medoids = medoids + [None] * i_rp

    assignments = assign_to_nearest(clustering_matrix, rp_matrix, distance)
    for period, rp in enumerate(assignments):
        weight_matrix[period, rp] = complete_period_weight

    profiles = matrix_and_keys_to_df(rp_matrix, keys)
    if is_last_period_excluded:
        profiles = append_period_as_rp(profiles, df, n_periods, total_n_rp, aux.key_columns)
        if medoids is not None:
            medoids = medoids + [n_complete_periods]

    if medoids is not None:
        aux = aux.with_medoids(medoids)

    return ClusteringResult(
        profiles=profiles,
        weight_matrix=weight_matrix,
        clustering_matrix=clustering_matrix,
        rp_matrix=rp_matrix,
        keys=keys,
        auxiliary_data=aux,
        incomplete_rep_period=is_last_period_excluded,
    )
