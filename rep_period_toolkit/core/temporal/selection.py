"""Strategies that pick representative periods from a clustering matrix.

Every `ClusteringMethod` has one `RepresentativeSelector` subclass. A selector gets a `SelectionContext` and returns a
`SelectionOutcome` with the representative matrix, the clustering matrix of the base periods and the selection
metadata (the base period behind each representative, where there is one).

k-means and k-medoids are delegated to backends with the signature `(matrix, k, distance, **kwargs)`, where `matrix`
has one column per period. The default backends use scikit-learn and the `kmedoids` package.
"""
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import ClassVar
from typing import NamedTuple
from typing import Optional

import kmedoids
import numpy as np
from loguru import logger
from scipy.spatial import distance as scipy_distance
from sklearn.cluster import KMeans

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.hull import Distance
from rep_period_toolkit.core.temporal.hull import greedy_convex_hull
from rep_period_toolkit.core.temporal.hull import is_euclidean_like
from rep_period_toolkit.core.temporal.settings import ClusteringMethod


class CentroidClustering(NamedTuple):
    centers: np.ndarray
    assignments: np.ndarray


class MedoidClustering(NamedTuple):
    medoids: np.ndarray
    assignments: np.ndarray


def kmeans_clustering(
    matrix: np.ndarray, k: int, distance: Distance, random_state: Optional[int] = None, **kwargs
) -> CentroidClustering:
    """k-means clustering of the columns of `matrix` with scikit-learn.

    scikit-learn's `KMeans` always minimizes squared Euclidean distances, so `distance` only influences the final
    assignment of the periods to the centers.
    """
    if not is_euclidean_like(distance):
        logger.warning("k-means centers are fitted with squared Euclidean distances regardless of the chosen distance")

    kwargs.setdefault("n_init", "auto")
    model = KMeans(n_clusters=k, random_state=random_state, **kwargs).fit(matrix.T)
    return CentroidClustering(centers=model.cluster_centers_.T, assignments=model.labels_)


def kmedoids_clustering(
    matrix: np.ndarray, k: int, distance: Distance, random_state: Optional[int] = None, **kwargs
) -> MedoidClustering:
    """k-medoids clustering of the columns of `matrix` with FasterPAM on the pairwise distance matrix."""
    distance_matrix = scipy_distance.cdist(matrix.T, matrix.T, metric=distance)
    result = kmedoids.fasterpam(distance_matrix, k, random_state=random_state, **kwargs)
    return MedoidClustering(medoids=np.asarray(result.medoids), assignments=np.asarray(result.labels))


@dataclass
class SelectionContext:
    """Everything a selector needs; owned by a single `find_representative_periods` call."""

    clustering_matrix: np.ndarray
    n_rp: int
    distance: Distance
    n_seed_columns: int = 0
    distance_cache: Optional[bool] = None
    clustering_kwargs: dict[str, Any] = field(default_factory=dict)
    kmeans_backend: Callable[..., CentroidClustering] = kmeans_clustering
    kmedoids_backend: Callable[..., MedoidClustering] = kmedoids_clustering

    @property
    def seed_indices(self) -> Optional[list[int]]:
        return list(range(self.n_seed_columns)) if self.n_seed_columns > 0 else None


class SelectionOutcome(NamedTuple):
    rp_matrix: np.ndarray
    clustering_matrix: np.ndarray
    medoids: Optional[list[Optional[int]]]


class RepresentativeSelector:
    method: ClassVar[ClusteringMethod]

    def select(self, context: SelectionContext) -> SelectionOutcome:
        raise NotImplementedError


class KMeansSelector(RepresentativeSelector):
    method = ClusteringMethod.K_MEANS

    def select(self, context: SelectionContext) -> SelectionOutcome:
        result = context.kmeans_backend(
            context.clustering_matrix, context.n_rp, context.distance, **context.clustering_kwargs
        )
        return SelectionOutcome(
            rp_matrix=np.asarray(result.centers, dtype=float),
            clustering_matrix=context.clustering_matrix,
            medoids=None,
        )


class KMedoidsSelector(RepresentativeSelector):
    method = ClusteringMethod.K_MEDOIDS

    def select(self, context: SelectionContext) -> SelectionOutcome:
        result = context.kmedoids_backend(
            context.clustering_matrix, context.n_rp, context.distance, **context.clustering_kwargs
        )
        medoids = [int(medoid) for medoid in result.medoids]
        return SelectionOutcome(
            rp_matrix=context.clustering_matrix[:, medoids],
            clustering_matrix=context.clustering_matrix,
            medoids=medoids,
        )


class _HullSelector(RepresentativeSelector):
    def _outcome(self, context: SelectionContext, hull_indices: list[int]) -> SelectionOutcome:
        # Seed columns hold the initial representatives and are not base periods
        n_seed = context.n_seed_columns
        return SelectionOutcome(
            rp_matrix=context.clustering_matrix[:, hull_indices],
            clustering_matrix=context.clustering_matrix[:, n_seed:],
            medoids=[index - n_seed if index >= n_seed else None for index in hull_indices],
        )


class ConvexHullSelector(_HullSelector):
    method = ClusteringMethod.CONVEX_HULL

    def select(self, context: SelectionContext) -> SelectionOutcome:
        hull_indices = greedy_convex_hull(
            context.clustering_matrix,
            n_points=context.n_rp,
            distance=context.distance,
            initial_indices=context.seed_indices,
            use_cache=context.distance_cache,
        )
        return self._outcome(context, hull_indices)


class ConvexHullWithNullSelector(_HullSelector):
    """Convex hull that always contains the origin; the origin itself is never returned as a representative."""

    method = ClusteringMethod.CONVEX_HULL_WITH_NULL

    def select(self, context: SelectionContext) -> SelectionOutcome:
        matrix = context.clustering_matrix
        null_vector = np.zeros(matrix.shape[0])

        # The distance to the origin is undefined for some metrics, e.g. the cosine distance
        with np.errstate(divide="ignore", invalid="ignore"):
            distances_to_null = np.array([context.distance(null_vector, matrix[:, j]) for j in range(matrix.shape[1])])
        if np.isnan(distances_to_null).any():
            raise ArgumentError("Cannot add null to the clustering data because the distance to it is undefined")

        hull_indices = greedy_convex_hull(
            np.column_stack([null_vector, matrix]),
            n_points=context.n_rp + 1,
            distance=context.distance,
            initial_indices=list(range(context.n_seed_columns + 1)),
            use_cache=context.distance_cache,
        )
        return self._outcome(context, [index - 1 for index in hull_indices[1:]])


class ConicalHullSelector(_HullSelector):
    """Hull search on the gnomonic projection of the data, so that the selection is driven by directions only."""

    method = ClusteringMethod.CONICAL_HULL

    def select(self, context: SelectionContext) -> SelectionOutcome:
        matrix = context.clustering_matrix
        normal_vector = matrix.mean(axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            normal_vector = normal_vector / np.linalg.norm(normal_vector)
            heights = normal_vector @ matrix

        # NaN heights (a zero mean direction) are caught as well
        undefined = ~(heights > 0)
        if undefined.any():
            raise ArgumentError(
                f"Cannot project the clustering data on the mean direction: {int(undefined.sum())} period(s) "
                f"have no positive component along it, e.g. all-zero periods"
            )
        projected_matrix = matrix / heights

        hull_indices = greedy_convex_hull(
            projected_matrix,
            n_points=context.n_rp,
            distance=context.distance,
            initial_indices=context.seed_indices,
            mean_vector=normal_vector,
            use_cache=context.distance_cache,
        )
        return self._outcome(context, hull_indices)


SELECTORS: dict[ClusteringMethod, type[RepresentativeSelector]] = {
    selector.method: selector
    for selector in (
        KMeansSelector,
        KMedoidsSelector,
        ConvexHullSelector,
        ConvexHullWithNullSelector,
        ConicalHullSelector,
    )
}


def get_selector(method) -> RepresentativeSelector:
    return SELECTORS[ClusteringMethod.parse(method)]()


def assign_to_nearest(clustering_matrix: np.ndarray, rp_matrix: np.ndarray, distance: Distance) -> np.ndarray:
    """Index of the nearest representative (first one on ties) for every column of `clustering_matrix`."""
    return np.array(
        [
            int(np.argmin([distance(clustering_matrix[:, p], rp_matrix[:, r]) for r in range(rp_matrix.shape[1])]))
            for p in range(clustering_matrix.shape[1])
        ],
        dtype=int,
    )
