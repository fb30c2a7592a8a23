"""Projection operators and the projected subgradient descent used by the hull search and the weight fitting."""
from typing import Callable

import numpy as np


def project_onto_simplex(vector: np.ndarray) -> np.ndarray:
    """Projects `vector` onto the unit simplex {x >= 0, sum(x) = 1}.

    Uses Michelot's algorithm in Condat's accelerated form, see Figure 2 of
    [Condat, L. Fast projection onto the simplex and the l1 ball. Math. Program. 158, 575-585 (2016).]
    (https://doi.org/10.1007/s10107-015-0946-6). `active` holds the coordinates expected to stay positive, `rho` is
    the running threshold that is subtracted from every coordinate at the end.
    """
    vector = np.asarray(vector, dtype=float)
    if vector.size == 1:
        return np.ones(1)

    # Step 1
    active = [vector[0]]
    pending = []
    rho = vector[0] - 1.0

    # Step 2: single pass building the active set
    for y in vector[1:]:
        if y > rho:
            rho += (y - rho) / (len(active) + 1)
            if rho > y - 1.0:
                active.append(y)
            else:
                pending.extend(active)
                active = [y]
                rho = y - 1.0

    # Step 3: give the coordinates set aside in step 2 another chance
    for y in pending:
        if y > rho:
            active.append(y)
            rho += (y - rho) / len(active)

    # Step 4: evict coordinates that would become negative, until nothing changes
    while True:
        n_active = len(active)
        kept = []
        for y in active:
            if y <= rho:
                n_active -= 1
                rho += (rho - y) / n_active
            else:
                kept.append(y)
        if len(kept) == len(active):
            break
        active = kept

    return np.maximum(vector - rho, 0.0)


def project_onto_nonnegative_orthant(vector: np.ndarray) -> np.ndarray:
    """Replaces the negative components of `vector` with zeros."""
    return np.maximum(np.asarray(vector, dtype=float), 0.0)


def projected_subgradient_descent(
    x: np.ndarray,
    *,
    subgradient: Callable[[np.ndarray], np.ndarray],
    projection: Callable[[np.ndarray], np.ndarray],
    niters: int = 100,
    tol: float = 1e-5,
    learning_rate: float = 0.001,
    adaptive_grad: bool = False,
) -> np.ndarray:
    """Minimizes an implicit convex loss over the set described by `projection`.

    Args:
        x: initial guess; projected onto the feasible set before the first step
        subgradient: function returning a subgradient of the loss at a point
        projection: function returning the closest feasible point to its argument
        niters: maximum number of iterations
        tol: the descent stops once no component of `x` moves by more than `tol`
        learning_rate: (initial) step size
        adaptive_grad: scale the step per component with AdaGrad, see
            [Duchi, Hazan & Singer. Adaptive Subgradient Methods for Online Learning and Stochastic Optimization.
            J. Mach. Learn. Res. 12, 2121-2159 (2011).](https://dl.acm.org/doi/10.5555/1953048.2021068)

    Returns:
        The fitted point (a new array; `x` is not modified).
    """
    x = projection(np.asarray(x, dtype=float))

    if adaptive_grad:
        squared_gradient_sum = np.zeros_like(x)

    for _ in range(niters):
        g = subgradient(x)
        if adaptive_grad:
            squared_gradient_sum += g**2
            step = learning_rate / (1e-6 + np.sqrt(squared_gradient_sum))
        else:
            step = learning_rate
        x_new = projection(x - step * g)
        change = np.max(np.abs(x_new - x))
        x = x_new
        if change <= tol:
            break

    return x
