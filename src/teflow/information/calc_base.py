"""Configuration and lifecycle plumbing shared by the AIS and TE calculators."""

import logging
from enum import Enum

import numpy as np

from ..utils.data import as_2d_series
from .cmi_ksg import KSGAlgorithm, make_cmi_estimator
from .embedding_search import EmbeddingSearchEngine
from .errors import ConfigurationError, DimensionMismatchError, InsufficientDataError, LifecycleError
from .properties import (
    PROP_ALGORITHM,
    PROP_AUTO_EMBED_METHOD,
    PROP_AUTO_EMBED_N_JOBS,
    PROP_K,
    PROP_K_SEARCH_MAX,
    PROP_RAGWITZ_NUM_NNS,
    PROP_TAU_SEARCH_MAX,
    AutoEmbedMethod,
    PropertyBag,
    canonical_name,
    parse_int_property,
)


class CalculatorState(Enum):
    CONFIGURED = "configured"
    INITIALISED = "initialised"
    ACCUMULATING = "accumulating"
    FINALISED = "finalised"


class KSGCalculatorBase:
    """Property surface, algorithm hot swap and lifecycle checks.

    The calculator owns one active conditional MI estimator. Properties it
    does not handle itself are forwarded to that estimator and recorded in
    :attr:`properties`; when the algorithm is changed, the next
    ``initialize`` constructs a new estimator and replays the record onto it.

    Parameters
    ----------
    algorithm : int or KSGAlgorithm, default=1
        KSG algorithm of the initial estimator.
    logger : logging.Logger, optional
        Diagnostic sink shared with every estimator and sub-calculator this
        calculator creates. Defaults to a logger named after the class.
    verbose : bool, default=False
        Show progress bars during embedding searches.
    """

    supported_auto_embed_methods = tuple(AutoEmbedMethod)

    def __init__(self, algorithm=KSGAlgorithm.ALG_1, logger=None, verbose=False):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.verbose = verbose
        self.algorithm = KSGAlgorithm.parse(algorithm)
        self._algorithm_changed = False
        self.cmi = make_cmi_estimator(self.algorithm, logger=self.logger)
        self.properties = PropertyBag()
        self._raw_properties = {}

        self.auto_embed_method = AutoEmbedMethod.NONE
        self.k_search_max = 1
        self.tau_search_max = 1
        self.ragwitz_num_nns = None
        self.n_jobs = 1

        self._state = CalculatorState.CONFIGURED
        self._trials = None
        self.last_average = None

    # Properties

    def set_property(self, name, value):
        """Set a property by (case-insensitive) name.

        Names the calculator does not know are forwarded to the active
        estimator and recorded for replay onto future estimators.

        Raises
        ------
        ConfigurationError
            If the value is invalid. The calculator is left unchanged.
        """
        key = canonical_name(name)
        if key == PROP_ALGORITHM:
            algorithm = KSGAlgorithm.parse(value)
            if algorithm != self.algorithm:
                self.algorithm = algorithm
                self._algorithm_changed = True
                self.logger.debug("KSG algorithm %d staged for next initialize", algorithm)
        elif key == PROP_AUTO_EMBED_METHOD:
            method = AutoEmbedMethod.parse(value)
            if method not in self.supported_auto_embed_methods:
                raise ConfigurationError(
                    f"{self.__class__.__name__} does not support auto-embedding method {method.value}"
                )
            self.auto_embed_method = method
        elif key == PROP_K_SEARCH_MAX:
            self.k_search_max = parse_int_property(key, value, minimum=1)
        elif key == PROP_TAU_SEARCH_MAX:
            self.tau_search_max = parse_int_property(key, value, minimum=1)
        elif key == PROP_RAGWITZ_NUM_NNS:
            self.ragwitz_num_nns = parse_int_property(key, value, minimum=1)
        elif key == PROP_AUTO_EMBED_N_JOBS:
            self.n_jobs = parse_int_property(key, value, allow_zero=False)
        elif self._set_own_property(key, value):
            pass
        else:
            self.cmi.set_property(key, value)
            self.properties.set(key, value)
            return
        self._raw_properties[key] = value

    def get_property(self, name):
        """Current value of a property as a string, or None if unknown."""
        key = canonical_name(name)
        own = self._get_own_property(key)
        if own is not None:
            return own
        if key in self._raw_properties:
            return self._raw_properties[key]
        if key == PROP_ALGORITHM:
            return str(int(self.algorithm))
        if key == PROP_AUTO_EMBED_METHOD:
            return self.auto_embed_method.value
        if key == PROP_K_SEARCH_MAX:
            return str(self.k_search_max)
        if key == PROP_TAU_SEARCH_MAX:
            return str(self.tau_search_max)
        if key == PROP_RAGWITZ_NUM_NNS:
            return str(self.ragwitz_neighbor_count)
        if key == PROP_AUTO_EMBED_N_JOBS:
            return str(self.n_jobs)
        if key in self.properties:
            return self.properties.get(key)
        return self.cmi.get_property(key)

    def _set_own_property(self, key, value):
        return False

    def _get_own_property(self, key):
        return None

    @property
    def ragwitz_neighbor_count(self):
        """Neighbours used by the Ragwitz criterion; the estimator's k unless set."""
        if self.ragwitz_num_nns is not None:
            return self.ragwitz_num_nns
        return int(self.cmi.get_property(PROP_K))

    # Lifecycle helpers

    def _rebuild_estimator_if_needed(self):
        if not self._algorithm_changed:
            return
        cmi = make_cmi_estimator(self.algorithm, logger=self.logger)
        self.properties.replay(cmi)
        self.cmi = cmi
        self._algorithm_changed = False
        self.logger.debug(
            "Constructed KSG algorithm %d estimator, replayed %d properties",
            self.algorithm, len(self.properties),
        )

    def _require_state(self, *states):
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise LifecycleError(
                f"Operation requires state {allowed}; calculator is {self._state.value}"
            )

    def start_observations(self):
        """Begin a fresh set of trials."""
        self._require_state(
            CalculatorState.INITIALISED, CalculatorState.ACCUMULATING, CalculatorState.FINALISED
        )
        self._trials = []
        self._state = CalculatorState.ACCUMULATING

    def _search_engine(self):
        return EmbeddingSearchEngine(
            k_search_max=self.k_search_max,
            tau_search_max=self.tau_search_max,
            n_jobs=self.n_jobs,
            logger=self.logger,
            verbose=self.verbose,
        )

    @staticmethod
    def _prepare_series(data, name, expected_dims, start_time=0, num_time_steps=None):
        try:
            series = as_2d_series(data, name=name)
        except ValueError as e:
            raise DimensionMismatchError(str(e)) from None
        n_steps = series.shape[0]
        if start_time < 0 or start_time > n_steps:
            raise InsufficientDataError(
                f"{name}: start_time={start_time} is outside a series of {n_steps} steps"
            )
        if num_time_steps is not None and (
            num_time_steps < 0 or start_time + num_time_steps > n_steps
        ):
            raise InsufficientDataError(
                f"{name}: window of {num_time_steps} steps from {start_time} "
                f"exceeds a series of {n_steps} steps"
            )
        stop = None if num_time_steps is None else start_time + num_time_steps
        series = series[start_time:stop].copy()
        if expected_dims is not None and series.shape[1] != expected_dims:
            raise DimensionMismatchError(
                f"{name} has {series.shape[1]} dimensions, earlier trials had {expected_dims}"
            )
        series.flags.writeable = False
        return series

    @staticmethod
    def _split_by_trial(values, counts):
        return np.split(values, np.cumsum(counts)[:-1])
