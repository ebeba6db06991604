"""Nearest-neighbour machinery for the KSG estimators.

All searches use the Chebyshev (max-norm) metric, as required by the
Kraskov-Stögbauer-Grassberger estimators.

References:
    Kraskov, A., Stögbauer, H., & Grassberger, P. (2004).
    Estimating mutual information. Physical Review E, 69(6), 066138.
"""

import numpy as np
from sklearn.neighbors import BallTree, KDTree

from .errors import InsufficientDataError

DEFAULT_NN = 4


def add_noise(x, ampl=1e-8, rng=None):
    # small noise to break degeneracy of tied distances
    if ampl <= 0:
        return x
    if rng is None:
        rng = np.random.default_rng()
    return x + ampl * rng.standard_normal(x.shape)


def normalise_columns(x):
    """Return ``x`` with every column shifted to zero mean and unit std.

    Constant columns are only centred.
    """
    x = np.asarray(x, dtype=float)
    mean = x.mean(axis=0)
    std = x.std(axis=0)
    std[std == 0] = 1.0
    return (x - mean) / std


def build_tree(points, lf=5):
    if points.shape[1] >= 20:
        return BallTree(points, metric="chebyshev", leaf_size=lf)

    return KDTree(points, metric="chebyshev", leaf_size=lf)


def count_neighbors(tree, x, radii):
    """Number of indexed points within ``radii`` (inclusive) of each row of ``x``."""
    return tree.query_radius(x, radii, count_only=True)


class NearestNeighborIndex:
    """k-NN and range-count queries over a fixed point set.

    Parameters
    ----------
    points : array-like of shape (n_points, n_dims)
        Indexed points. 1D input is treated as a single column.
    leaf_size : int, default=5
        Leaf size of the underlying tree.
    """

    def __init__(self, points, leaf_size=5):
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            points = points.reshape(-1, 1)
        if points.shape[1] == 0:
            raise ValueError("Cannot index points with zero dimensions")
        self.points = points
        self.tree = build_tree(points, lf=leaf_size)

    @property
    def n_points(self):
        return self.points.shape[0]

    def knn(self, k):
        """k nearest neighbours of every indexed point, excluding the point itself.

        Returns
        -------
        distances : ndarray of shape (n_points, k)
            Chebyshev distances in ascending order.
        indices : ndarray of shape (n_points, k)
            Row indices of the neighbours.
        """
        n = self.n_points
        if n < k + 1:
            raise InsufficientDataError(
                f"Need at least {k + 1} points for {k} nearest neighbours, got {n}"
            )
        dist, idx = self.tree.query(self.points, k=k + 1)
        is_self = idx == np.arange(n)[:, None]
        # Exact duplicates can push the point itself out of the result set
        is_self[~is_self.any(axis=1), -1] = True
        keep = ~is_self
        return dist[keep].reshape(n, k), idx[keep].reshape(n, k)

    def count_within(self, radii, strict=True):
        """Count other indexed points within a per-point radius.

        Parameters
        ----------
        radii : ndarray of shape (n_points,)
            Radius around each indexed point.
        strict : bool, default=True
            Count points with distance ``< radius`` if True, ``<= radius`` otherwise.

        Returns
        -------
        ndarray of int
            Counts that exclude the point itself.
        """
        radii = np.asarray(radii, dtype=float)
        query_radii = np.nextafter(radii, 0.0) if strict else radii
        counts = count_neighbors(self.tree, self.points, query_radii) - 1
        counts = np.maximum(counts, 0)
        if strict:
            counts[radii <= 0] = 0
        return counts.astype(np.int64)
