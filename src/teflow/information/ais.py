"""Active information storage with the KSG estimators.

AIS is the mutual information between the embedded past of a series and
its next value, A = I(X_t^(k,tau) ; X_{t+1}), estimated here by the
conditional MI estimator with nothing to condition on.
"""

import numpy as np

from ..utils.data import check_integer
from .calc_base import CalculatorState, KSGCalculatorBase
from .cmi_ksg import KSGAlgorithm
from .embedding import ais_observations
from .embedding_search import ragwitz_prediction_error
from .errors import ConfigurationError, InitializationError, InsufficientDataError
from .properties import PROP_K_HISTORY, PROP_TAU, AutoEmbedMethod, parse_int_property


class ActiveInfoStorageKSG(KSGCalculatorBase):
    """KSG active information storage calculator.

    Usage::

        calc = ActiveInfoStorageKSG()
        calc.set_property("auto-embed-method", "MAX_CORR_AIS")
        calc.set_property("k-search-max", "4")
        calc.initialize()
        calc.set_observations(series)
        ais = calc.compute_average()
        k, tau = calc.k_history, calc.tau

    Properties handled here are ``k-history``, ``tau``, ``algorithm-select``,
    ``auto-embed-method`` (NONE, RAGWITZ or MAX_CORR_AIS), ``k-search-max``,
    ``tau-search-max``, ``ragwitz-neighbor-count`` and ``auto-embed-n-jobs``;
    everything else goes to the KSG estimator.
    """

    supported_auto_embed_methods = (
        AutoEmbedMethod.NONE,
        AutoEmbedMethod.RAGWITZ,
        AutoEmbedMethod.MAX_CORR_AIS,
    )

    def __init__(self, algorithm=KSGAlgorithm.ALG_1, logger=None, verbose=False):
        super().__init__(algorithm=algorithm, logger=logger, verbose=verbose)
        self.k_history = 1
        self.tau = 1
        self._trial_counts = []

    def _set_own_property(self, key, value):
        if key == PROP_K_HISTORY:
            self.k_history = parse_int_property(key, value, minimum=1)
        elif key == PROP_TAU:
            self.tau = parse_int_property(key, value, minimum=1)
        else:
            return False
        return True

    def _get_own_property(self, key):
        if key == PROP_K_HISTORY:
            return str(self.k_history)
        if key == PROP_TAU:
            return str(self.tau)
        return None

    def initialize(self, k=None, tau=None):
        """Fix the embedding (omitted values keep their current setting).

        Raises
        ------
        InitializationError
            If k or tau is smaller than 1.
        """
        k = self.k_history if k is None else k
        tau = self.tau if tau is None else tau
        try:
            check_integer(k=k, tau=tau)
        except TypeError as e:
            raise InitializationError(str(e)) from None
        if k < 1 or tau < 1:
            raise InitializationError(f"k and tau must be >= 1, got k={k}, tau={tau}")
        self._rebuild_estimator_if_needed()
        self.k_history, self.tau = int(k), int(tau)
        self.cmi.initialise()
        self._trials = None
        self._trial_counts = []
        self._state = CalculatorState.INITIALISED

    def add_observations(self, series, start_time=0, num_time_steps=None):
        """Add one trial of the series."""
        self._require_state(CalculatorState.ACCUMULATING)
        expected = self._trials[0].shape[1] if self._trials else None
        self._trials.append(
            self._prepare_series(series, "series", expected, start_time, num_time_steps)
        )

    def set_observations(self, series):
        """Use ``series`` as the single trial and finalise."""
        self.start_observations()
        self.add_observations(series)
        self.finalize_observations()

    def finalize_observations(self):
        """Auto-embed if requested, then hand the embedded samples to the estimator."""
        self._require_state(CalculatorState.ACCUMULATING)
        if not self._trials:
            raise InsufficientDataError("No observations were added")

        if self.auto_embed_method is not AutoEmbedMethod.NONE:
            self._auto_embed()

        pasts, nexts = zip(*(ais_observations(t, self.k_history, self.tau) for t in self._trials))
        self._trial_counts = [len(p) for p in pasts]
        dims = self._trials[0].shape[1]
        self.cmi.initialise(self.k_history * dims, dims, 0)
        self.cmi.set_observations(np.vstack(pasts), np.vstack(nexts))
        self._state = CalculatorState.FINALISED

    def _auto_embed(self):
        engine = self._search_engine()
        if self.auto_embed_method is AutoEmbedMethod.RAGWITZ:
            n_neighbors = self.ragwitz_neighbor_count
            trials = list(self._trials)
            result = engine.search(
                lambda k, tau: ragwitz_prediction_error(trials, k, tau, n_neighbors),
                maximise=False,
                label="Ragwitz prediction error",
            )
        elif self.auto_embed_method is AutoEmbedMethod.MAX_CORR_AIS:
            result = engine.search(self.compute_ais_for, maximise=True, label="bias-corrected AIS")
        else:
            raise ConfigurationError(f"Unsupported auto-embedding method {self.auto_embed_method}")
        self.k_history, self.tau = result.k, result.tau
        self.logger.debug("Auto-embedding selected k=%d, tau=%d", self.k_history, self.tau)

    def compute_ais_for(self, k, tau):
        """AIS of the accumulated trials for a candidate embedding.

        Uses a disposable calculator configured like this one, without
        auto-embedding.
        """
        calc = ActiveInfoStorageKSG(algorithm=self.algorithm, logger=self.logger)
        self.properties.replay(calc)
        calc.initialize(k=k, tau=tau)
        calc.start_observations()
        for trial in self._trials:
            calc.add_observations(trial)
        calc.finalize_observations()
        return calc.compute_average()

    def ragwitz_prediction_error(self, k, tau):
        """Ragwitz criterion of the accumulated trials for a candidate embedding."""
        return ragwitz_prediction_error(self._trials, k, tau, self.ragwitz_neighbor_count)

    def compute_average(self):
        """Average AIS in nats."""
        self._require_state(CalculatorState.FINALISED)
        self.last_average = self.cmi.compute_average()
        return self.last_average

    def compute_local(self, per_trial=False):
        """Local AIS values in time order (a list per trial if ``per_trial``)."""
        self._require_state(CalculatorState.FINALISED)
        local = self.cmi.compute_local()
        if per_trial:
            return self._split_by_trial(local, self._trial_counts)
        return local

    def get_num_observations(self):
        return int(sum(self._trial_counts))

    def get_separate_num_observations(self):
        return list(self._trial_counts)
