"""JIT-compiled neighbour counting for KSG algorithm 2.

Algorithm 2 counts points inside a box whose half-width differs per
subspace, which the sklearn trees cannot query directly.
"""

import numpy as np

from ..utils.jit import conditional_njit, prange


@conditional_njit(parallel=True, nogil=True)
def box_counts(a, b, eps_a, eps_b):
    """Count, for every point i, the other points j with
    ``max|a_j - a_i| <= eps_a[i]`` and ``max|b_j - b_i| <= eps_b[i]``.

    Parameters
    ----------
    a : ndarray of shape (n, d_a)
        First subspace, C-contiguous float64.
    b : ndarray of shape (n, d_b)
        Second subspace; ``d_b`` may be 0.
    eps_a, eps_b : ndarray of shape (n,)
        Per-point half-widths of the box in each subspace.

    Returns
    -------
    ndarray of int64, shape (n,)
    """
    n = a.shape[0]
    da = a.shape[1]
    db = b.shape[1]
    out = np.zeros(n, dtype=np.int64)
    for i in prange(n):
        count = 0
        for j in range(n):
            if j == i:
                continue
            inside = True
            for d in range(da):
                if abs(a[j, d] - a[i, d]) > eps_a[i]:
                    inside = False
                    break
            if inside:
                for d in range(db):
                    if abs(b[j, d] - b[i, d]) > eps_b[i]:
                        inside = False
                        break
            if inside:
                count += 1
        out[i] = count
    return out


def marginal_radii(x, neighbor_idx):
    """Largest Chebyshev distance, within subspace ``x``, to each point's neighbours.

    Parameters
    ----------
    x : ndarray of shape (n, d)
    neighbor_idx : ndarray of shape (n, k)

    Returns
    -------
    ndarray of shape (n,)
        Zeros when ``d == 0``.
    """
    if x.shape[1] == 0:
        return np.zeros(x.shape[0])
    diffs = np.abs(x[neighbor_idx] - x[:, None, :])
    return diffs.max(axis=(1, 2))
