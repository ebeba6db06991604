"""Automatic selection of delay-embedding parameters.

The search walks a (history length, delay) grid, k ascending and tau
ascending within each k, and keeps the first candidate whose criterion is
strictly better than everything before it. A history of length 1 has no
delay, so for k = 1 only tau = 1 is evaluated.

Criteria:

- Ragwitz: minimise the one-step prediction error of k-NN regression in
  the embedded space (Ragwitz & Kantz 2002).
- Max bias-corrected AIS: maximise the KSG active information storage
  (Garland et al. 2016).
- Max TE: for a fixed destination embedding, maximise the KSG transfer
  entropy over source embeddings.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np
import tqdm

from ..utils.data import check_positive
from ..utils.parallel import delayed, parallel_executor
from .embedding import ais_observations
from .errors import ConfigurationError
from .ksg import NearestNeighborIndex
from .properties import (
    PROP_AUTO_EMBED_METHOD,
    PROP_AUTO_EMBED_N_JOBS,
    PROP_K_SEARCH_MAX,
    PROP_RAGWITZ_NUM_NNS,
    PROP_TAU_SEARCH_MAX,
    AutoEmbedMethod,
)


def candidate_grid(k_search_max, tau_search_max):
    """Ordered (k, tau) candidates of an embedding search."""
    candidates = []
    for k in range(1, k_search_max + 1):
        for tau in range(1, tau_search_max + 1):
            candidates.append((k, tau))
            if k == 1:
                # tau is irrelevant for a single-value history
                break
    return candidates


@dataclass
class SearchResult:
    k: int
    tau: int
    score: float
    scores: Dict[Tuple[int, int], float] = field(default_factory=dict)


class EmbeddingSearchEngine:
    """Grid search over (k, tau) embedding candidates.

    Parameters
    ----------
    k_search_max : int, default=1
        Largest history length to try (inclusive).
    tau_search_max : int, default=1
        Largest delay to try (inclusive).
    n_jobs : int, default=1
        Number of joblib workers evaluating candidates; 1 runs in the
        calling thread.
    logger : logging.Logger, optional
        Receives per-candidate scores and the selection at debug level.
    verbose : bool, default=False
        Show a progress bar while evaluating candidates sequentially.
    """

    def __init__(self, k_search_max=1, tau_search_max=1, n_jobs=1, logger=None, verbose=False):
        check_positive(k_search_max=k_search_max, tau_search_max=tau_search_max)
        if n_jobs == 0:
            raise ConfigurationError("n_jobs must be non-zero")
        self.k_search_max = int(k_search_max)
        self.tau_search_max = int(tau_search_max)
        self.n_jobs = n_jobs
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.verbose = verbose

    def candidates(self):
        return candidate_grid(self.k_search_max, self.tau_search_max)

    def evaluate(self, criterion, label="embedding"):
        """Criterion value of every candidate, in candidate order."""
        candidates = self.candidates()
        if self.n_jobs == 1 or len(candidates) == 1:
            scores = [
                criterion(k, tau)
                for k, tau in tqdm.tqdm(candidates, desc=label, disable=not self.verbose)
            ]
        else:
            with parallel_executor(self.n_jobs, logger=self.logger) as parallel:
                scores = parallel(delayed(criterion)(k, tau) for k, tau in candidates)
        for (k, tau), score in zip(candidates, scores):
            self.logger.debug("%s: k=%d, tau=%d -> %.6f", label, k, tau, score)
        return [float(s) for s in scores]

    def search(self, criterion, maximise=True, label="embedding"):
        """Evaluate ``criterion(k, tau)`` on the grid and select the best candidate.

        Any exception raised by the criterion aborts the whole search.

        Returns
        -------
        SearchResult
            The first candidate (in grid order) with the strictly best score.
        """
        candidates = self.candidates()
        scores = self.evaluate(criterion, label=label)
        best_score = -np.inf if maximise else np.inf
        best = candidates[0]
        for candidate, score in zip(candidates, scores):
            if (maximise and score > best_score) or (not maximise and score < best_score):
                best, best_score = candidate, score
        self.logger.debug("%s: selected k=%d, tau=%d (score %.6f)", label, best[0], best[1], best_score)
        return SearchResult(k=best[0], tau=best[1], score=best_score, scores=dict(zip(candidates, scores)))


def ragwitz_prediction_error(series_list, k, tau, n_neighbors):
    """Mean squared one-step prediction error of k-NN regression.

    Every embedded past vector (pooled over all series) is predicted to be
    followed by the mean next value of its ``n_neighbors`` nearest other
    past vectors under the max-norm.

    Parameters
    ----------
    series_list : list of ndarray of shape (n_steps, n_dims)
    k, tau : int
        Embedding history length and delay.
    n_neighbors : int
        Number of neighbours averaged per prediction.

    Returns
    -------
    float
    """
    pasts, nexts = zip(*(ais_observations(series, k, tau) for series in series_list))
    past = np.vstack(pasts)
    next_values = np.vstack(nexts)
    _, idx = NearestNeighborIndex(past).knn(n_neighbors)
    prediction = next_values[idx].mean(axis=1)
    return float(np.mean(np.sum((next_values - prediction) ** 2, axis=1)))


def embed_series_by_ais(
    series_list,
    method,
    properties,
    algorithm,
    k_search_max,
    tau_search_max,
    ragwitz_num_nns=None,
    n_jobs=1,
    logger=None,
    verbose=False,
):
    """Choose (k, tau) for a set of trials of one variable.

    A fresh AIS calculator receives ``properties`` minus any
    auto-embedding setting, is switched to the single
    series criterion implied by ``method`` and run over all trials.

    Returns
    -------
    tuple of int
        Selected (k, tau).
    """
    # Import here to avoid circular dependency
    from .ais import ActiveInfoStorageKSG

    method = AutoEmbedMethod.parse(method)
    calc = ActiveInfoStorageKSG(algorithm=algorithm, logger=logger, verbose=verbose)
    properties.without(PROP_AUTO_EMBED_METHOD).replay(calc)
    if method.uses_ragwitz:
        calc.set_property(PROP_AUTO_EMBED_METHOD, AutoEmbedMethod.RAGWITZ.value)
        if ragwitz_num_nns is not None:
            calc.set_property(PROP_RAGWITZ_NUM_NNS, str(ragwitz_num_nns))
    else:
        calc.set_property(PROP_AUTO_EMBED_METHOD, AutoEmbedMethod.MAX_CORR_AIS.value)
    calc.set_property(PROP_K_SEARCH_MAX, str(k_search_max))
    calc.set_property(PROP_TAU_SEARCH_MAX, str(tau_search_max))
    calc.set_property(PROP_AUTO_EMBED_N_JOBS, str(n_jobs))

    calc.initialize()
    calc.start_observations()
    for series in series_list:
        calc.add_observations(series)
    calc.finalize_observations()
    return calc.k_history, calc.tau


def embed_source_by_te(
    sources,
    destinations,
    params,
    properties,
    algorithm,
    k_search_max,
    tau_search_max,
    n_jobs=1,
    logger=None,
    verbose=False,
):
    """Choose the source (l, l_tau) that maximises transfer entropy.

    The destination embedding and delay are taken from ``params``. Each
    candidate is measured by its own disposable TE calculator with
    auto-embedding switched off, so no state is shared between candidates
    or with the caller.

    Returns
    -------
    tuple of int
        Selected (l, l_tau).
    """
    # Import here to avoid circular dependency
    from .transfer_entropy import TransferEntropyKSG

    pairs = list(zip(sources, destinations))

    def te_for(l, l_tau):
        calc = TransferEntropyKSG(algorithm=algorithm, logger=logger)
        properties.without(PROP_AUTO_EMBED_METHOD).replay(calc)
        calc.set_property(PROP_AUTO_EMBED_METHOD, AutoEmbedMethod.NONE.value)
        calc.initialize(k=params.k, k_tau=params.k_tau, l=l, l_tau=l_tau, delay=params.delay)
        calc.start_observations()
        for source, destination in pairs:
            calc.add_observations(source, destination)
        calc.finalize_observations()
        return calc.compute_average()

    engine = EmbeddingSearchEngine(
        k_search_max=k_search_max,
        tau_search_max=tau_search_max,
        n_jobs=n_jobs,
        logger=logger,
        verbose=verbose,
    )
    result = engine.search(te_for, maximise=True, label="source (max TE)")
    return result.k, result.tau
