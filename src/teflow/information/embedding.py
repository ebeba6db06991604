"""Delay embedding of time series into KSG observation sets."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..utils.data import check_integer, check_nonnegative, check_positive
from .errors import InitializationError, InsufficientDataError


@dataclass(frozen=True)
class EmbeddingParameters:
    """History lengths and delays of a transfer entropy embedding.

    ``k``/``k_tau`` embed the destination past, ``l``/``l_tau`` the source
    past, and ``delay`` is the source-destination lag: the most recent
    source value used to predict ``y[t+1]`` is ``x[t+1-delay]``.
    """

    k: int = 1
    k_tau: int = 1
    l: int = 1
    l_tau: int = 1
    delay: int = 1

    def __post_init__(self):
        try:
            check_integer(k=self.k, k_tau=self.k_tau, l=self.l, l_tau=self.l_tau, delay=self.delay)
            check_positive(k=self.k, k_tau=self.k_tau, l_tau=self.l_tau)
            check_nonnegative(l=self.l, delay=self.delay)
        except (TypeError, ValueError) as e:
            raise InitializationError(str(e)) from None
        for name in ("k", "k_tau", "l", "l_tau", "delay"):
            object.__setattr__(self, name, int(getattr(self, name)))

    @property
    def start_time(self):
        """First time index t for which y[t+1] and every history value exist."""
        start = (self.k - 1) * self.k_tau
        if self.l > 0:
            start = max(start, (self.l - 1) * self.l_tau + self.delay - 1)
        return max(start, 0)

    def replace(self, **changes):
        values = {
            "k": self.k, "k_tau": self.k_tau, "l": self.l,
            "l_tau": self.l_tau, "delay": self.delay,
        }
        values.update(changes)
        return EmbeddingParameters(**values)


@dataclass
class Trial:
    """One independent observation run: a destination and optionally a source."""

    destination: np.ndarray
    source: Optional[np.ndarray] = None

    @property
    def n_steps(self):
        return self.destination.shape[0]


def delay_embed(series, end_indices, length, tau):
    """Stack delay vectors ``series[e-(length-1)*tau], ..., series[e]``.

    Parameters
    ----------
    series : ndarray of shape (n_steps, n_dims)
    end_indices : ndarray of int
        Index of the most recent value of every vector.
    length : int
        Number of values per vector; 0 gives an empty block.
    tau : int
        Spacing between consecutive values.

    Returns
    -------
    ndarray of shape (len(end_indices), length * n_dims)
        Oldest value first.
    """
    end_indices = np.asarray(end_indices, dtype=int)
    n_dims = series.shape[1]
    if length == 0:
        return np.empty((len(end_indices), 0))
    lags = np.arange(length - 1, -1, -1) * tau
    rows = end_indices[:, None] - lags[None, :]
    return series[rows].reshape(len(end_indices), length * n_dims)


def te_observations(source, destination, params):
    """Embed one trial for transfer entropy.

    Returns
    -------
    dest_next, dest_past, source_past : ndarray
        One row per time index ``t`` in ``[params.start_time, n_steps - 2]``.

    Raises
    ------
    InsufficientDataError
        If the trial is too short for a single embedded point.
    """
    n_steps = destination.shape[0]
    times = np.arange(params.start_time, n_steps - 1)
    if times.size == 0:
        raise InsufficientDataError(
            f"Trial of length {n_steps} yields no observations for {params}"
        )
    dest_next = destination[times + 1]
    dest_past = delay_embed(destination, times, params.k, params.k_tau)
    source_past = delay_embed(source, times + 1 - params.delay, params.l, params.l_tau)
    return dest_next, dest_past, source_past


def ais_observations(series, k, tau):
    """Embed one series for active information storage.

    Returns
    -------
    past, next_values : ndarray
        ``past`` rows are k-length delay vectors ending at ``t``,
        ``next_values`` rows are ``series[t+1]``.
    """
    n_steps = series.shape[0]
    times = np.arange((k - 1) * tau, n_steps - 1)
    if times.size == 0:
        raise InsufficientDataError(
            f"Series of length {n_steps} yields no observations for k={k}, tau={tau}"
        )
    return delay_embed(series, times, k, tau), series[times + 1]
