"""Tests for the KSG transfer entropy calculator."""

import logging

import numpy as np
import pytest

from teflow.information.cmi_ksg import KSGConditionalMI1, KSGConditionalMI2
from teflow.information.errors import (
    ConfigurationError,
    DimensionMismatchError,
    InitializationError,
    InsufficientDataError,
    LifecycleError,
)
from teflow.information.properties import AutoEmbedMethod
from teflow.information.transfer_entropy import TransferEntropyKSG
from teflow.utils.data import generate_ar_process, generate_coupled_series


def _te(source, destination, algorithm=1, properties=(), **params):
    calc = TransferEntropyKSG(algorithm=algorithm)
    for name, value in properties:
        calc.set_property(name, value)
    calc.initialize(**params)
    calc.set_observations(source, destination)
    return calc


class TestTransferEntropyEstimates:
    """Estimates on processes with known coupling."""

    def test_coupled_lag_detected(self, coupled_pair):
        """TE at the coupling lag far exceeds TE at the wrong lag."""
        source, destination = coupled_pair
        te_lag1 = _te(source, destination, delay=1).compute_average()
        te_lag2 = _te(source, destination, delay=2).compute_average()
        assert te_lag1 > 1.0
        assert abs(te_lag2) < 0.1
        assert te_lag1 > te_lag2 + 0.5

    def test_reverse_direction_small(self, coupled_pair):
        """No TE flows against the coupling direction."""
        source, destination = coupled_pair
        assert abs(_te(destination, source).compute_average()) < 0.1

    @pytest.mark.parametrize("algorithm", [1, 2])
    def test_independent_near_zero(self, independent_pair, algorithm):
        """Independent noise gives TE near zero for both algorithms."""
        source, destination = independent_pair
        te = _te(source, destination, algorithm=algorithm, k=2).compute_average()
        assert abs(te) < 0.06

    def test_algorithms_agree(self):
        """Algorithms 1 and 2 converge on the analytic TE."""
        source, destination = generate_coupled_series(n_samples=2000, noise=1.0, seed=5)
        te1 = _te(source, destination, algorithm=1).compute_average()
        te2 = _te(source, destination, algorithm=2).compute_average()
        # True value is 0.5 * log(2)
        assert te1 == pytest.approx(0.5 * np.log(2), abs=0.08)
        assert abs(te1 - te2) < 0.06

    def test_deterministic(self, coupled_pair):
        """Identical inputs give identical TE."""
        source, destination = coupled_pair
        a = _te(source, destination, k=2, delay=1).compute_average()
        b = _te(source, destination, k=2, delay=1).compute_average()
        assert a == b

    def test_multivariate_source(self):
        """A driving column in a 2D source is detected."""
        rng = np.random.default_rng(9)
        source = rng.standard_normal((800, 2))
        destination = 0.2 * rng.standard_normal(800)
        destination[1:] += source[:-1, 0]
        assert _te(source, destination).compute_average() > 0.5

    def test_zero_source_history(self, coupled_pair):
        """l=0 gives zero TE and zero local values."""
        source, destination = coupled_pair
        calc = _te(source, destination, l=0)
        assert calc.compute_average() == 0.0
        local = calc.compute_local()
        assert local.shape == (999,)
        assert not np.any(local)


class TestLocalValues:

    def test_local_average(self, coupled_pair):
        """Local TE has one value per embedded point and averages to TE."""
        source, destination = coupled_pair
        calc = _te(source, destination, k=2, k_tau=2, l=2, delay=1)
        assert calc.start_time == 2
        local = calc.compute_local()
        assert local.shape == (1000 - 2 - 1,)
        assert calc.compute_average() == pytest.approx(local.mean())

    def test_multiple_trials(self, coupled_pair):
        """Per-trial local values follow trial order."""
        source, destination = coupled_pair
        calc = TransferEntropyKSG()
        calc.initialize(k=1, l=1, delay=1)
        calc.start_observations()
        calc.add_observations(source[:600], destination[:600])
        calc.add_observations(source[600:], destination[600:])
        calc.finalize_observations()
        assert calc.get_separate_num_observations() == [599, 399]
        assert calc.get_num_observations() == 998
        per_trial = calc.compute_local(per_trial=True)
        assert [len(p) for p in per_trial] == [599, 399]
        np.testing.assert_array_equal(np.concatenate(per_trial), calc.compute_local())

    def test_time_window(self, coupled_pair):
        """Only the requested window of a trial is used."""
        source, destination = coupled_pair
        calc = TransferEntropyKSG()
        calc.initialize()
        calc.start_observations()
        calc.add_observations(source, destination, start_time=100, num_time_steps=300)
        calc.finalize_observations()
        assert calc.get_num_observations() == 299


class TestAlgorithmSwap:
    """Changing the KSG algorithm rebuilds the estimator on initialize."""

    def test_swap_matches_fresh_instance(self, coupled_pair):
        """A hot-swapped estimator matches a fresh algorithm 2 calculator."""
        source, destination = coupled_pair
        calc = TransferEntropyKSG(algorithm=1)
        calc.set_property("k", "3")
        calc.set_property("noise-seed", "7")
        calc.initialize(k=2)
        calc.set_observations(source, destination)
        calc.compute_average()

        calc.set_property("ALG_NUM", "2")
        # Staged until the next initialize
        assert isinstance(calc.cmi, KSGConditionalMI1)
        calc.initialize()
        assert isinstance(calc.cmi, KSGConditionalMI2)
        assert calc.cmi.k == 3
        assert calc.cmi.noise_seed == 7
        calc.set_observations(source, destination)

        fresh = _te(source, destination, algorithm=2,
                    properties=[("k", "3"), ("noise-seed", "7")], k=2)
        assert calc.compute_average() == pytest.approx(fresh.compute_average(), abs=1e-12)

    def test_same_algorithm_keeps_estimator(self):
        """Re-selecting the current algorithm keeps the estimator."""
        calc = TransferEntropyKSG()
        cmi = calc.cmi
        calc.set_property("algorithm-select", "1")
        calc.initialize()
        assert calc.cmi is cmi

    def test_invalid_algorithm(self):
        """Invalid algorithm numbers raise and change nothing."""
        calc = TransferEntropyKSG()
        with pytest.raises(ConfigurationError):
            calc.set_property("algorithm-select", "3")
        assert calc.get_property("algorithm-select") == "1"


class TestProperties:

    def test_round_trip(self):
        """Properties set under any spelling read back."""
        calc = TransferEntropyKSG()
        calc.set_property("AUTO_EMBED_K_SEARCH_MAX", "3")
        calc.set_property("tau_search_max", "2")
        calc.set_property("auto-embed-method", "ragwitz")
        calc.set_property("k_history", "4")
        calc.set_property("DELAY", "2")
        assert calc.get_property("k-search-max") == "3"
        assert calc.get_property("TAU-SEARCH-MAX") == "2"
        assert calc.auto_embed_method is AutoEmbedMethod.RAGWITZ
        assert calc.get_property("k-history") == "4"
        assert calc.embedding_parameters.delay == 2

    def test_defaults(self):
        """Unset properties report their defaults."""
        calc = TransferEntropyKSG()
        assert calc.get_property("auto-embed-method") == "NONE"
        assert calc.get_property("k-search-max") == "1"
        assert calc.get_property("l-history") == "1"
        assert calc.get_property("ragwitz-neighbor-count") == "4"
        assert calc.get_property("k") == "4"

    def test_unknown_property_survives_swap(self):
        """Forwarded properties persist across an algorithm swap."""
        calc = TransferEntropyKSG()
        calc.set_property("my-custom", "abc")
        assert calc.get_property("MY_CUSTOM") == "abc"
        calc.set_property("algorithm-select", "2")
        calc.initialize()
        assert calc.get_property("my-custom") == "abc"

    @pytest.mark.parametrize("name,value", [
        ("k-search-max", "0"), ("tau-search-max", "x"), ("auto-embed-method", "BEST"),
        ("delay", "-1"), ("k-tau", "0"), ("k", "-2"), ("auto-embed-n-jobs", "0"),
    ])
    def test_invalid_values(self, name, value):
        """Invalid values raise and leave the property unchanged."""
        calc = TransferEntropyKSG()
        before = calc.get_property(name)
        with pytest.raises(ConfigurationError):
            calc.set_property(name, value)
        assert calc.get_property(name) == before


class TestErrors:

    def test_initialize_rejects_and_keeps_parameters(self):
        """A rejected initialize keeps the previous embedding."""
        calc = TransferEntropyKSG()
        calc.initialize(k=2, delay=3)
        for kwargs in ({"k": 0}, {"l_tau": 0}, {"delay": -1}, {"l": -1}):
            with pytest.raises(InitializationError):
                calc.initialize(**kwargs)
        assert (calc.params.k, calc.params.delay) == (2, 3)

    def test_length_mismatch(self):
        """Source and destination must be the same length."""
        calc = TransferEntropyKSG()
        calc.initialize()
        calc.start_observations()
        with pytest.raises(DimensionMismatchError):
            calc.add_observations(np.zeros(100), np.zeros(99))

    def test_inconsistent_dimensions(self):
        """All trials must share dimensionality."""
        rng = np.random.default_rng(0)
        calc = TransferEntropyKSG()
        calc.initialize()
        calc.start_observations()
        calc.add_observations(rng.standard_normal(50), rng.standard_normal(50))
        with pytest.raises(DimensionMismatchError):
            calc.add_observations(rng.standard_normal((50, 2)), rng.standard_normal(50))

    def test_series_shorter_than_embedding(self):
        """A trial shorter than the embedding raises."""
        calc = TransferEntropyKSG()
        calc.initialize(k=3)
        with pytest.raises(InsufficientDataError):
            calc.set_observations(np.arange(3.0), np.arange(3.0))

    def test_fewer_samples_than_neighbours(self):
        """Fewer than k+1 embedded points raises."""
        calc = TransferEntropyKSG()
        calc.initialize()
        with pytest.raises(InsufficientDataError):
            calc.set_observations(np.arange(5.0), np.arange(5.0))

    def test_lifecycle(self):
        """Out-of-order calls raise LifecycleError."""
        calc = TransferEntropyKSG()
        with pytest.raises(LifecycleError):
            calc.compute_average()
        with pytest.raises(LifecycleError):
            calc.start_observations()
        calc.initialize()
        with pytest.raises(LifecycleError):
            calc.add_observations(np.zeros(10), np.zeros(10))
        with pytest.raises(LifecycleError):
            calc.finalize_observations()

    def test_reinitialize_discards_observations(self, coupled_pair):
        """initialize discards finalised observations."""
        source, destination = coupled_pair
        calc = _te(source, destination)
        calc.initialize()
        with pytest.raises(LifecycleError):
            calc.compute_average()


class TestTimeWindow:
    """``start_time``/``num_time_steps`` must select a window inside the series."""

    @pytest.fixture
    def accumulating(self):
        calc = TransferEntropyKSG()
        calc.initialize()
        calc.start_observations()
        return calc

    @pytest.mark.parametrize("start_time,num_time_steps", [
        (-20, 10),
        (-1, None),
        (90, 50),
        (0, 101),
        (10, -5),
        (150, None),
    ])
    def test_out_of_range_window_rejected(self, accumulating, start_time, num_time_steps):
        """Negative, overlong or out-of-bounds windows raise instead of being clipped."""
        series = np.arange(100.0)
        with pytest.raises(InsufficientDataError):
            accumulating.add_observations(
                series, series, start_time=start_time, num_time_steps=num_time_steps
            )

    def test_window_ending_at_last_step(self, accumulating, coupled_pair):
        """A window that ends exactly on the final step is kept whole."""
        source, destination = coupled_pair
        accumulating.add_observations(source[:100], destination[:100], start_time=90, num_time_steps=10)
        accumulating.add_observations(source, destination)
        accumulating.finalize_observations()
        assert accumulating.get_separate_num_observations() == [9, 999]


@pytest.mark.integration
class TestAutoEmbedding:
    """Automatic selection of destination and source embeddings."""

    def test_ragwitz_destination(self, ar2_series):
        """Ragwitz embeds an AR(2) destination with k=2."""
        source = np.random.default_rng(1).standard_normal(len(ar2_series))
        calc = _te(source, ar2_series, properties=[
            ("AUTO_EMBED_METHOD", "RAGWITZ"),
            ("k-search-max", "2"),
            ("tau-search-max", "2"),
        ])
        params = calc.embedding_parameters
        assert (params.k, params.k_tau) == (2, 1)
        assert params.l in (1, 2)

    @pytest.mark.parametrize("method", ["RAGWITZ_DEST_ONLY", "MAX_CORR_AIS_DEST_ONLY"])
    def test_dest_only_keeps_source(self, ar2_series, method):
        """Destination-only modes keep the manual source embedding."""
        source = np.random.default_rng(2).standard_normal(len(ar2_series))
        calc = _te(source, ar2_series, properties=[
            ("auto-embed-method", method),
            ("k-search-max", "2"),
            ("tau-search-max", "2"),
        ], l=3, l_tau=2)
        params = calc.embedding_parameters
        assert (params.k, params.k_tau) == (2, 1)
        assert (params.l, params.l_tau) == (3, 2)
        assert calc.get_property("k-history") == "2"

    def test_single_history_length(self, ar2_series):
        """k-search-max=1 always gives k=1 and k_tau=1."""
        source = np.random.default_rng(3).standard_normal(len(ar2_series))
        calc = _te(source, ar2_series, properties=[
            ("auto-embed-method", "MAX_CORR_AIS_DEST_ONLY"),
            ("k-search-max", "1"),
            ("tau-search-max", "5"),
        ])
        assert (calc.params.k, calc.params.k_tau) == (1, 1)

    def test_max_corr_ais_and_te_selects_source(self):
        """Max-TE source search finds the driving history."""
        source, destination = generate_coupled_series(n_samples=600, lag=2, noise=0.3, seed=8)
        calc = _te(source, destination, properties=[
            ("auto-embed-method", "MAX_CORR_AIS_AND_TE"),
            ("k-search-max", "2"),
            ("tau-search-max", "2"),
        ], delay=1)
        assert (calc.params.l, calc.params.l_tau) == (2, 1)
        assert calc.compute_average() > 0.5

    def test_parallel_search_matches_sequential(self, ar2_series):
        """Parallel auto-embedding reproduces the sequential result."""
        source = np.random.default_rng(4).standard_normal(len(ar2_series))
        results = []
        for n_jobs in ("1", "2"):
            calc = _te(source, ar2_series, properties=[
                ("auto-embed-method", "MAX_CORR_AIS"),
                ("k-search-max", "2"),
                ("tau-search-max", "2"),
                ("auto-embed-n-jobs", n_jobs),
            ])
            results.append((calc.params, calc.compute_average()))
        assert results[0] == results[1]

    def test_logs_selected_embedding(self, ar2_series, caplog):
        """The chosen embedding is logged at debug level."""
        logger = logging.getLogger("te-test")
        source = np.random.default_rng(5).standard_normal(len(ar2_series))
        calc = TransferEntropyKSG(logger=logger)
        calc.set_property("auto-embed-method", "RAGWITZ_DEST_ONLY")
        calc.set_property("k-search-max", "2")
        calc.initialize()
        with caplog.at_level(logging.DEBUG, logger="te-test"):
            calc.set_observations(source, ar2_series)
        assert "Embedding set to k=2" in caplog.text


@pytest.mark.slow
class TestRepeatedDraws:
    """Statistical behaviour across independent realisations."""

    def test_ragwitz_prefers_second_order_history(self):
        """Across AR(2) draws the Ragwitz search picks k=2 more often than k=1."""
        chosen = []
        for seed in range(8):
            destination = generate_ar_process(n_samples=500, coefs=(0.0, 0.9), seed=seed)
            source = np.random.default_rng(100 + seed).standard_normal(500)
            calc = _te(source, destination, properties=[
                ("auto-embed-method", "RAGWITZ_DEST_ONLY"),
                ("k-search-max", "2"),
                ("tau-search-max", "1"),
            ])
            chosen.append(calc.params.k)
        assert chosen.count(2) > chosen.count(1)

    def test_independent_noise_shrinks_with_sample_size(self):
        """|TE| and its spread over seeds both decrease as N grows for independent noise."""
        summaries = {}
        for n_samples in (200, 2000):
            values = []
            for seed in range(8):
                rng = np.random.default_rng(seed)
                source = rng.standard_normal(n_samples)
                destination = rng.standard_normal(n_samples)
                values.append(_te(source, destination).compute_average())
            values = np.array(values)
            summaries[n_samples] = (np.mean(np.abs(values)), np.std(values))
        assert summaries[2000][0] < summaries[200][0]
        assert summaries[2000][1] < summaries[200][1]
