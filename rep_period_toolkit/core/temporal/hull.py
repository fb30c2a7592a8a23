from typing import Callable
from typing import Optional
from typing import Sequence

import numpy as np
from loguru import logger
from scipy.spatial import distance as scipy_distance

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.projections import project_onto_simplex
from rep_period_toolkit.core.temporal.projections import projected_subgradient_descent
from rep_period_toolkit.core.utils.core_utils import timer

Distance = Callable[[np.ndarray, np.ndarray], float]

# Metrics for which a point that is further from the last hull point than its cached hull distance is known to be at
# least as far from the grown hull.
EUCLIDEAN_LIKE_DISTANCES = (scipy_distance.euclidean, scipy_distance.sqeuclidean)


def is_euclidean_like(distance: Distance) -> bool:
    return any(distance is euclidean_like for euclidean_like in EUCLIDEAN_LIKE_DISTANCES)


def distance_to_hull(
    target_vector: np.ndarray,
    hull_matrix: np.ndarray,
    projection_matrix: np.ndarray,
    distance: Distance,
) -> float:
    """Distance from `target_vector` to its projection onto the convex hull of the columns of `hull_matrix`.

    The projection minimizes ||H x - target|| over the simplex, starting from the pseudo-inverse solution.
    """
    x = projected_subgradient_descent(
        projection_matrix @ target_vector,
        subgradient=lambda x: hull_matrix.T @ (hull_matrix @ x - target_vector),
        projection=project_onto_simplex,
    )
    return distance(hull_matrix @ x, target_vector)


@timer
def greedy_convex_hull(
    matrix: np.ndarray,
    n_points: int,
    distance: Distance,
    initial_indices: Optional[Sequence[int]] = None,
    mean_vector: Optional[np.ndarray] = None,
    use_cache: Optional[bool] = None,
) -> list[int]:
    """Greedily finds `n_points` columns of `matrix` spanning a hull of the data.

    Points are added one at a time; each step adds the column that is furthest away from the hull of the columns found
    so far.

    Args:
        matrix: clustering matrix, one column per data point
        n_points: number of hull points to find
        distance: semimetric used to measure distances between columns
        initial_indices: columns that must be in the hull, in order; they are always the first entries of the result
        mean_vector: reference vector used to pick the first point when `initial_indices` is not given (the point
            furthest away from it is chosen); defaults to the column mean
        use_cache: reuse previously computed hull distances when the distance to the last added point shows the hull
            distance cannot have changed enough to matter. `None` enables this only for Euclidean-like metrics.

    Returns:
        The 0-based column indices of the hull points, in the order they were added.
    """
    matrix = np.asarray(matrix, dtype=float)
    n_columns = matrix.shape[1]

    if initial_indices is None or len(initial_indices) == 0:
        reference_vector = matrix.mean(axis=1) if mean_vector is None else np.asarray(mean_vector, dtype=float)
        distances_from_reference = [distance(reference_vector, matrix[:, j]) for j in range(n_columns)]
        initial_indices = [int(np.argmax(distances_from_reference))]

    if len(initial_indices) >= n_points:
        return list(initial_indices[:n_points])

    if use_cache is None:
        use_cache = is_euclidean_like(distance)

    hull_indices = list(initial_indices)
    is_in_hull = np.zeros(n_columns, dtype=bool)
    is_in_hull[hull_indices] = True
    distances_cache = np.full(n_columns, np.inf)

    while len(hull_indices) < n_points:
        hull_matrix = matrix[:, hull_indices]
        projection_matrix = np.linalg.pinv(hull_matrix)
        last_added_vector = matrix[:, hull_indices[-1]]

        max_distance = -np.inf
        furthest_index = None
        n_recomputed = 0
        for column_index in np.flatnonzero(~is_in_hull):
            target_vector = matrix[:, column_index]
            if use_cache and distance(target_vector, last_added_vector) >= distances_cache[column_index]:
                d = distances_cache[column_index]
            else:
                d = distance_to_hull(target_vector, hull_matrix, projection_matrix, distance)
                distances_cache[column_index] = d
                n_recomputed += 1

            if d > max_distance:
                max_distance = d
                furthest_index = int(column_index)

        if furthest_index is None:
            raise ArgumentError(f"No point left to add to the hull after finding {len(hull_indices)} point(s)")

        logger.debug(
            f"Hull point {len(hull_indices) + 1}/{n_points}: column {furthest_index} at distance {max_distance:.6g} "
            f"({n_recomputed} hull distance(s) recomputed)"
        )
        hull_indices.append(furthest_index)
        is_in_hull[furthest_index] = True

    return hull_indices
