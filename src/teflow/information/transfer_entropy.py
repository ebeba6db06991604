"""Transfer entropy with the KSG conditional mutual information estimators.

TE from source X to destination Y is the conditional mutual information

    T = I(X_{t+1-delay}^(l, l_tau) ; Y_{t+1} | Y_t^(k, k_tau))

estimated in the full joint space (Frenzel & Pompe 2007; Gomez-Herrero et
al. 2010) by one of the two KSG algorithms. Values are in nats.

References:
    Schreiber, T. (2000). Measuring information transfer.
    Physical Review Letters, 85(2), 461.

    Lizier, J. T., Prokopenko, M., & Zomaya, A. Y. (2008). Local information
    transfer as a spatiotemporal filter for complex systems.
    Physical Review E, 77, 026110.
"""

import numpy as np

from .calc_base import CalculatorState, KSGCalculatorBase
from .cmi_ksg import KSGAlgorithm
from .embedding import EmbeddingParameters, Trial, te_observations
from .embedding_search import embed_series_by_ais, embed_source_by_te
from .errors import ConfigurationError, DimensionMismatchError, InitializationError, InsufficientDataError
from .properties import (
    PROP_DELAY,
    PROP_K_HISTORY,
    PROP_K_TAU,
    PROP_L_HISTORY,
    PROP_L_TAU,
    AutoEmbedMethod,
    parse_int_property,
)

_PARAMETER_PROPERTIES = {
    PROP_K_HISTORY: "k",
    PROP_K_TAU: "k_tau",
    PROP_L_HISTORY: "l",
    PROP_L_TAU: "l_tau",
    PROP_DELAY: "delay",
}


class TransferEntropyKSG(KSGCalculatorBase):
    """KSG transfer entropy calculator with automatic embedding.

    Lifecycle: configure with :meth:`set_property`, :meth:`initialize`, then
    :meth:`start_observations`, one :meth:`add_observations` call per trial
    and :meth:`finalize_observations`; finally :meth:`compute_average` or
    :meth:`compute_local` as often as needed. Calling :meth:`initialize`
    again discards the observations.

    Parameters
    ----------
    algorithm : int or KSGAlgorithm, default=1
        KSG algorithm of the initial estimator; change later through the
        ``algorithm-select`` property.
    logger : logging.Logger, optional
        Diagnostic sink. Defaults to a logger named after the class.
    verbose : bool, default=False
        Show progress bars during embedding searches.

    Examples
    --------
    >>> from teflow.utils import generate_coupled_series
    >>> source, dest = generate_coupled_series(n_samples=500, lag=1)
    >>> te = TransferEntropyKSG()
    >>> te.initialize(k=1, l=1, delay=1)
    >>> te.set_observations(source, dest)
    >>> te.compute_average() > 0.5
    True
    """

    def __init__(self, algorithm=KSGAlgorithm.ALG_1, logger=None, verbose=False):
        super().__init__(algorithm=algorithm, logger=logger, verbose=verbose)
        self.params = EmbeddingParameters()
        self._trial_counts = []
        self._source_free = False

    # Properties

    def _set_own_property(self, key, value):
        if key not in _PARAMETER_PROPERTIES:
            return False
        parsed = parse_int_property(key, value)
        try:
            self.params = self.params.replace(**{_PARAMETER_PROPERTIES[key]: parsed})
        except InitializationError as e:
            raise ConfigurationError(str(e)) from None
        return True

    def _get_own_property(self, key):
        if key in _PARAMETER_PROPERTIES:
            return str(getattr(self.params, _PARAMETER_PROPERTIES[key]))
        return None

    @property
    def embedding_parameters(self):
        return self.params

    @property
    def start_time(self):
        """First time index with a complete embedding in every trial."""
        return self.params.start_time

    # Lifecycle

    def initialize(self, k=None, k_tau=None, l=None, l_tau=None, delay=None):
        """Fix the embedding parameters and reset the observations.

        Omitted arguments keep their current values (all default to 1).
        If the KSG algorithm was changed since the last call, a new
        estimator is constructed here and all forwarded properties are
        replayed onto it.

        Raises
        ------
        InitializationError
            If ``k``, ``k_tau`` or ``l_tau`` is below 1, or ``l`` or
            ``delay`` is negative. The calculator is left unchanged.
        """
        changes = {
            name: value
            for name, value in (("k", k), ("k_tau", k_tau), ("l", l), ("l_tau", l_tau), ("delay", delay))
            if value is not None
        }
        params = self.params.replace(**changes)

        self._rebuild_estimator_if_needed()
        self.params = params
        self.cmi.initialise()
        self._trials = None
        self._trial_counts = []
        self._source_free = False
        self.last_average = None
        self._state = CalculatorState.INITIALISED

    def add_observations(self, source, destination, start_time=0, num_time_steps=None):
        """Add one trial.

        Parameters
        ----------
        source, destination : array-like of shape (n_steps,) or (n_steps, n_dims)
            Must have the same number of time steps.
        start_time : int, default=0
            First time step of both series to use.
        num_time_steps : int, optional
            Number of time steps to use; defaults to the rest of the series.

        Raises
        ------
        DimensionMismatchError
            If the lengths differ or the dimensionality differs from earlier trials.
        InsufficientDataError
            If the requested time window does not lie within the series.
        """
        self._require_state(CalculatorState.ACCUMULATING)
        first = self._trials[0] if self._trials else None
        src = self._prepare_series(
            source, "source", first.source.shape[1] if first else None, start_time, num_time_steps
        )
        dst = self._prepare_series(
            destination, "destination", first.destination.shape[1] if first else None,
            start_time, num_time_steps,
        )
        if src.shape[0] != dst.shape[0]:
            raise DimensionMismatchError(
                f"Source has {src.shape[0]} time steps, destination has {dst.shape[0]}"
            )
        self._trials.append(Trial(destination=dst, source=src))

    def set_observations(self, source, destination):
        """Use a single (source, destination) trial and finalise."""
        self.start_observations()
        self.add_observations(source, destination)
        self.finalize_observations()

    def finalize_observations(self):
        """Auto-embed if requested, then build the joint observation set.

        Raises
        ------
        InsufficientDataError
            If no trials were added, a trial is too short for the embedding,
            or there are fewer samples than the estimator's neighbour count
            requires.
        """
        self._require_state(CalculatorState.ACCUMULATING)
        if not self._trials:
            raise InsufficientDataError("No observations were added")

        if self.auto_embed_method is not AutoEmbedMethod.NONE:
            self._auto_embed()

        blocks = [te_observations(t.source, t.destination, self.params) for t in self._trials]
        dest_next, dest_past, source_past = (np.vstack(parts) for parts in zip(*blocks))
        self._trial_counts = [len(b[0]) for b in blocks]

        self._source_free = self.params.l == 0
        if self._source_free:
            self.logger.debug("l=0: no source conditioning, TE is zero")
        else:
            self.cmi.initialise(source_past.shape[1], dest_next.shape[1], dest_past.shape[1])
            self.cmi.set_observations(source_past, dest_next, dest_past)
        self.last_average = None
        self._state = CalculatorState.FINALISED

    def _auto_embed(self):
        method = self.auto_embed_method
        destinations = [t.destination for t in self._trials]
        sources = [t.source for t in self._trials]
        search_kwargs = dict(
            properties=self.properties,
            algorithm=self.algorithm,
            k_search_max=self.k_search_max,
            tau_search_max=self.tau_search_max,
            n_jobs=self.n_jobs,
            logger=self.logger,
            verbose=self.verbose,
        )
        ragwitz_nns = self.ragwitz_neighbor_count if method.uses_ragwitz else None

        self.logger.debug("Auto-embedding destination (%s)", method.value)
        k, k_tau = embed_series_by_ais(
            destinations, method, ragwitz_num_nns=ragwitz_nns, **search_kwargs
        )
        params = self.params.replace(k=k, k_tau=k_tau)

        if method in (AutoEmbedMethod.RAGWITZ, AutoEmbedMethod.MAX_CORR_AIS):
            self.logger.debug("Auto-embedding source (%s)", method.value)
            l, l_tau = embed_series_by_ais(
                sources, method, ragwitz_num_nns=ragwitz_nns, **search_kwargs
            )
            params = params.replace(l=l, l_tau=l_tau)
        elif method is AutoEmbedMethod.MAX_CORR_AIS_AND_TE:
            self.logger.debug("Auto-embedding source by maximum TE")
            l, l_tau = embed_source_by_te(sources, destinations, params, **search_kwargs)
            params = params.replace(l=l, l_tau=l_tau)

        self.params = params
        self.logger.debug(
            "Embedding set to k=%d, k_tau=%d, l=%d, l_tau=%d, delay=%d (start time %d)",
            params.k, params.k_tau, params.l, params.l_tau, params.delay, params.start_time,
        )

    # Results

    def compute_average(self):
        """Average transfer entropy of the observations, in nats."""
        self._require_state(CalculatorState.FINALISED)
        if self._source_free:
            self.last_average = 0.0
        else:
            self.last_average = self.cmi.compute_average()
        return self.last_average

    def compute_local(self, per_trial=False):
        """Local transfer entropy of every embedded time point.

        Values are in time order within each trial and trials follow the
        order they were added. With ``per_trial`` a list with one array per
        trial is returned instead.
        """
        self._require_state(CalculatorState.FINALISED)
        if self._source_free:
            local = np.zeros(self.get_num_observations())
        else:
            local = self.cmi.compute_local()
        if per_trial:
            return self._split_by_trial(local, self._trial_counts)
        return local

    def get_num_observations(self):
        return int(sum(self._trial_counts))

    def get_separate_num_observations(self):
        return list(self._trial_counts)
