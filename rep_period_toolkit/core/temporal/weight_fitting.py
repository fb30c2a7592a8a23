from typing import Callable
from typing import Union

import numpy as np
import scipy.sparse as sp
from joblib import delayed
from joblib import Parallel
from loguru import logger

from rep_period_toolkit.core.exceptions import ArgumentError
from rep_period_toolkit.core.temporal.projections import project_onto_nonnegative_orthant
from rep_period_toolkit.core.temporal.projections import project_onto_simplex
from rep_period_toolkit.core.temporal.projections import projected_subgradient_descent
from rep_period_toolkit.core.temporal.settings import WeightType
from rep_period_toolkit.core.utils.core_utils import timer

WeightMatrix = Union[sp.spmatrix, np.ndarray]


def _fit_period_weights(
    x: np.ndarray,
    target_vector: np.ndarray,
    rp_matrix: np.ndarray,
    projection: Callable[[np.ndarray], np.ndarray],
    weight_type: WeightType,
    tol: float,
    **descent_kwargs,
) -> np.ndarray:
    x = projected_subgradient_descent(
        x,
        subgradient=lambda x: rp_matrix.T @ (rp_matrix @ x - target_vector),
        projection=projection,
        tol=tol * 0.01,
        **descent_kwargs,
    )
    x[x < tol] = 0.0

    # Dropping small weights breaks convexity, and in the bounded case floating point errors can push the sum a bit
    # over one; both are fixed by renormalizing.
    total = x.sum()
    if total > 0 and (weight_type is WeightType.CONVEX or (weight_type is WeightType.CONICAL_BOUNDED and total > 1.0)):
        x = x / total

    if weight_type is WeightType.CONICAL_BOUNDED:
        x = x[:-1]
    return x


@timer
def fit_rep_period_weights(
    weight_matrix: WeightMatrix,
    clustering_matrix: np.ndarray,
    rp_matrix: np.ndarray,
    *,
    weight_type: Union[WeightType, str] = WeightType.CONVEX,
    tol: float = 1e-2,
    niters: int = 100,
    learning_rate: float = 0.001,
    adaptive_grad: bool = False,
    n_jobs: int = 1,
) -> WeightMatrix:
    """Refines the weights of the base periods into convex or conical combinations of the representative periods.

    The weights of every base period are fitted independently with projected subgradient descent, starting from the
    current row of `weight_matrix` (usually the one-hot assignment found by the clustering), and written back into
    `weight_matrix` in place. Rows of `weight_matrix` beyond the columns of `clustering_matrix` (an incomplete last
    period kept as its own representative) and columns beyond those of `rp_matrix` are left untouched.

    Args:
        weight_matrix: (periods x representative periods) initial weights, dense or scipy sparse
        clustering_matrix: (features x periods) data of the base periods
        rp_matrix: (features x representative periods) data of the representative periods
        weight_type:
            - `convex`: nonnegative weights adding up to one
            - `conical`: nonnegative weights
            - `conical_bounded`: nonnegative weights adding up to at most one
        tol: weights below `tol` are dropped; the descent stops when no weight moves by more than `tol / 100`
        niters: maximum number of descent iterations per period
        learning_rate: descent step size
        adaptive_grad: use AdaGrad step sizes
        n_jobs: number of joblib workers; periods are independent of each other

    Returns:
        The updated `weight_matrix`.
    """
    weight_type = WeightType.parse(weight_type)
    clustering_matrix = np.asarray(clustering_matrix, dtype=float)
    rp_matrix = np.asarray(rp_matrix, dtype=float)

    n_features, n_periods = clustering_matrix.shape
    n_rp = rp_matrix.shape[1]
    if rp_matrix.shape[0] != n_features:
        raise ArgumentError(
            f"Representative periods have {rp_matrix.shape[0]} features but the clustering data has {n_features}"
        )
    if weight_matrix.shape[0] < n_periods or weight_matrix.shape[1] < n_rp:
        raise ArgumentError(
            f"Weight matrix of shape {weight_matrix.shape} cannot hold weights of {n_periods} periods for {n_rp} "
            f"representative periods"
        )

    if weight_type is WeightType.CONVEX:
        projection = project_onto_simplex
    elif weight_type is WeightType.CONICAL:
        projection = project_onto_nonnegative_orthant
    else:
        # Convex fitting with an extra all-zero representative; the weight put on it is discarded afterwards, which
        # leaves weights summing to at most one.
        projection = project_onto_simplex
        rp_matrix = np.column_stack([rp_matrix, np.zeros(n_features)])

    is_sparse = sp.issparse(weight_matrix)
    initial_weights = weight_matrix[:n_periods, :n_rp]
    initial_weights = initial_weights.toarray() if is_sparse else np.array(initial_weights, dtype=float)
    if weight_type is WeightType.CONICAL_BOUNDED:
        initial_weights = np.column_stack([initial_weights, np.zeros(n_periods)])

    logger.info(f"Fitting {weight_type.value} weights of {n_periods} period(s) on {n_rp} representative period(s)")
    descent_kwargs = dict(niters=niters, learning_rate=learning_rate, adaptive_grad=adaptive_grad)
    tasks = (
        (initial_weights[period], clustering_matrix[:, period], rp_matrix, projection, weight_type, tol)
        for period in range(n_periods)
    )
    if n_jobs == 1:
        fitted_weights = [_fit_period_weights(*task, **descent_kwargs) for task in tasks]
    else:
        fitted_weights = Parallel(n_jobs=n_jobs)(
            delayed(_fit_period_weights)(*task, **descent_kwargs) for task in tasks
        )

    for period, x in enumerate(fitted_weights):
        weight_matrix[period, :n_rp] = x

    return weight_matrix
