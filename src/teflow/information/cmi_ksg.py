"""KSG estimators of conditional mutual information I(X; Y | Z).

Two variants are provided, following Kraskov et al. (2004) and their
conditional extensions (Frenzel & Pompe 2007 for algorithm 1, Vejmelka &
Paluš 2008 for algorithm 2). Both search neighbours in the full joint
space under the max-norm and combine digamma-corrected marginal counts;
they differ in how the neighbourhood in each marginal space is sized.

With an empty conditioning variable both estimators reduce to the
corresponding KSG mutual information estimator.

All values are in nats.
"""

import logging
from enum import IntEnum

import numpy as np
from scipy.special import digamma

from .errors import ConfigurationError, DimensionMismatchError, InsufficientDataError, LifecycleError
from .ksg import DEFAULT_NN, NearestNeighborIndex, add_noise, normalise_columns
from .ksg_jit import box_counts, marginal_radii
from .properties import (
    PROP_K,
    PROP_NOISE_LEVEL,
    PROP_NOISE_SEED,
    PROP_NORMALISE,
    canonical_name,
    parse_bool_property,
    parse_float_property,
    parse_int_property,
)

DEFAULT_NOISE_LEVEL = 1e-8
DEFAULT_NOISE_SEED = 0


class KSGAlgorithm(IntEnum):
    """Which KSG neighbour-counting scheme an estimator uses."""

    ALG_1 = 1
    ALG_2 = 2

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(int(str(value).strip()))
        except ValueError:
            raise ConfigurationError(
                f"KSG algorithm must be 1 or 2, got {value!r}"
            ) from None


def _as_columns(data, name):
    if data is None:
        return None
    arr = np.asarray(data, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DimensionMismatchError(f"{name} must be 1D or 2D, got {arr.ndim}D")
    return arr


class KSGConditionalMIBase:
    """Shared configuration and observation handling of the KSG CMI estimators.

    Usage::

        est = KSGConditionalMI1()
        est.set_property("k", "4")
        est.initialise(1, 1, 1)
        est.set_observations(x, y, z)
        cmi = est.compute_average()

    Parameters
    ----------
    logger : logging.Logger, optional
        Receives debug messages. Defaults to a logger named after the class.
    """

    algorithm = None

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.k = DEFAULT_NN
        self.normalise = True
        self.noise_level = DEFAULT_NOISE_LEVEL
        self.noise_seed = DEFAULT_NOISE_SEED
        self._raw_properties = {}
        self.initialise()

    # Properties

    def set_property(self, name, value):
        """Set an estimator property.

        Returns
        -------
        bool
            True if the name was recognised. Unknown names are ignored.

        Raises
        ------
        ConfigurationError
            If a recognised property gets an invalid value.
        """
        key = canonical_name(name)
        if key == PROP_K:
            self.k = parse_int_property(key, value, minimum=1)
        elif key == PROP_NORMALISE:
            self.normalise = parse_bool_property(key, value)
        elif key == PROP_NOISE_LEVEL:
            self.noise_level = parse_float_property(key, value, minimum=0.0)
        elif key == PROP_NOISE_SEED:
            text = str(value).strip().lower()
            self.noise_seed = None if text in ("", "none") else parse_int_property(key, value)
        else:
            self.logger.debug("Ignoring unknown property %s=%s", name, value)
            return False
        self._raw_properties[key] = value
        return True

    def get_property(self, name):
        key = canonical_name(name)
        if key in self._raw_properties:
            return self._raw_properties[key]
        defaults = {
            PROP_K: str(self.k),
            PROP_NORMALISE: str(self.normalise).lower(),
            PROP_NOISE_LEVEL: repr(self.noise_level),
            PROP_NOISE_SEED: str(self.noise_seed),
        }
        return defaults.get(key)

    # Observations

    def initialise(self, dim_var1=None, dim_var2=None, dim_cond=None):
        """Reset observations; optionally fix the expected column counts.

        Dimensions left as None are not checked by ``set_observations``.
        """
        self.dims = (dim_var1, dim_var2, dim_cond)
        self.var1 = self.var2 = self.cond = None
        self._locals = None
        self.last_average = None

    @property
    def n_observations(self):
        return 0 if self.var1 is None else self.var1.shape[0]

    def set_observations(self, var1, var2, cond=None):
        """Supply the joint samples.

        Parameters
        ----------
        var1, var2 : array-like of shape (n_samples,) or (n_samples, n_dims)
        cond : array-like, optional
            Conditioning variable; None or zero columns means plain MI.

        Raises
        ------
        DimensionMismatchError
            If the row counts differ or column counts disagree with ``initialise``.
        InsufficientDataError
            If there are fewer than ``k + 1`` samples.
        """
        x = _as_columns(var1, "var1")
        y = _as_columns(var2, "var2")
        z = _as_columns(cond, "cond")
        if z is None:
            z = np.empty((x.shape[0], 0))
        if not x.shape[0] == y.shape[0] == z.shape[0]:
            raise DimensionMismatchError(
                f"Row counts differ: var1={x.shape[0]}, var2={y.shape[0]}, cond={z.shape[0]}"
            )
        for expected, arr, name in zip(self.dims, (x, y, z), ("var1", "var2", "cond")):
            if expected is not None and arr.shape[1] != expected:
                raise DimensionMismatchError(
                    f"{name} has {arr.shape[1]} columns, expected {expected}"
                )
        n = x.shape[0]
        if n < self.k + 1:
            raise InsufficientDataError(
                f"Need at least k+1={self.k + 1} samples, got {n}"
            )

        blocks = [x, y, z]
        if self.normalise:
            blocks = [normalise_columns(b) if b.shape[1] else b for b in blocks]
        joint = np.hstack(blocks)
        rng = np.random.default_rng(self.noise_seed)
        joint = add_noise(joint, ampl=self.noise_level, rng=rng)

        d1, d2 = x.shape[1], y.shape[1]
        self.var1 = np.ascontiguousarray(joint[:, :d1])
        self.var2 = np.ascontiguousarray(joint[:, d1:d1 + d2])
        self.cond = np.ascontiguousarray(joint[:, d1 + d2:])
        self._locals = None
        self.last_average = None

    # Estimation

    def compute_local(self):
        """Local CMI value of every sample, in the order supplied."""
        if self.var1 is None:
            raise LifecycleError("No observations have been set")
        if self._locals is None:
            self._locals = self._local_values(self.var1, self.var2, self.cond, self.k)
            self.logger.debug(
                "%s: %d samples, k=%d, average=%.6f",
                self.__class__.__name__, self.n_observations, self.k, self._locals.mean(),
            )
        return self._locals.copy()

    def compute_average(self):
        """Average CMI of the supplied samples in nats."""
        self.last_average = float(np.mean(self.compute_local()))
        return self.last_average

    def _local_values(self, x, y, z, k):
        raise NotImplementedError


class KSGConditionalMI1(KSGConditionalMIBase):
    """KSG algorithm 1: one joint-space radius applied to every marginal.

    Marginal counts are strict (distance < eps) and the local value is
    ``psi(k) - psi(n_xz + 1) - psi(n_yz + 1) + psi(n_z + 1)``.
    """

    algorithm = KSGAlgorithm.ALG_1

    def _local_values(self, x, y, z, k):
        n = x.shape[0]
        joint = np.hstack((x, y, z))
        eps = NearestNeighborIndex(joint).knn(k)[0][:, -1]

        if z.shape[1] == 0:
            n_xz = NearestNeighborIndex(x).count_within(eps)
            n_yz = NearestNeighborIndex(y).count_within(eps)
            n_z = np.full(n, n - 1)
        else:
            n_xz = NearestNeighborIndex(np.hstack((x, z))).count_within(eps)
            n_yz = NearestNeighborIndex(np.hstack((y, z))).count_within(eps)
            n_z = NearestNeighborIndex(z).count_within(eps)

        return digamma(k) - digamma(n_xz + 1) - digamma(n_yz + 1) + digamma(n_z + 1)


class KSGConditionalMI2(KSGConditionalMIBase):
    """KSG algorithm 2: per-subspace radii from the k joint neighbours.

    Every marginal box is sized by the largest distance to the k joint
    neighbours within that subspace; counts are inclusive. The local value
    is ``psi(k) - 2/k + psi(n_z) - psi(n_xz) + 1/n_xz - psi(n_yz) + 1/n_yz``
    and ``psi(k) - 1/k + psi(N) - psi(n_x) - psi(n_y)`` without conditioning.
    """

    algorithm = KSGAlgorithm.ALG_2

    def _local_values(self, x, y, z, k):
        n = x.shape[0]
        joint = np.hstack((x, y, z))
        _, idx = NearestNeighborIndex(joint).knn(k)
        eps_x = marginal_radii(x, idx)
        eps_y = marginal_radii(y, idx)

        if z.shape[1] == 0:
            n_x = NearestNeighborIndex(x).count_within(eps_x, strict=False)
            n_y = NearestNeighborIndex(y).count_within(eps_y, strict=False)
            return digamma(k) - 1.0 / k + digamma(n) - digamma(n_x) - digamma(n_y)

        eps_z = marginal_radii(z, idx)
        n_xz = box_counts(x, z, eps_x, eps_z)
        n_yz = box_counts(y, z, eps_y, eps_z)
        n_z = NearestNeighborIndex(z).count_within(eps_z, strict=False)
        return (
            digamma(k) - 2.0 / k
            + digamma(n_z)
            - digamma(n_xz) + 1.0 / n_xz
            - digamma(n_yz) + 1.0 / n_yz
        )


_ESTIMATORS = {
    KSGAlgorithm.ALG_1: KSGConditionalMI1,
    KSGAlgorithm.ALG_2: KSGConditionalMI2,
}


def make_cmi_estimator(algorithm=KSGAlgorithm.ALG_1, logger=None):
    """Construct a fresh KSG CMI estimator for ``algorithm`` (1 or 2)."""
    return _ESTIMATORS[KSGAlgorithm.parse(algorithm)](logger=logger)
