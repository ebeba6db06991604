"""Configuration for tests.

This module provides shared fixtures for the teflow test suite. Data is
produced by the generators in ``teflow.utils.data`` so tests and library
share one definition of the synthetic processes.
"""

import numpy as np
import pytest

from teflow.utils.data import generate_ar_process, generate_coupled_series


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


@pytest.fixture
def coupled_pair():
    """Source driving the destination with lag 1 and small noise (length 1000)."""
    return generate_coupled_series(n_samples=1000, lag=1, coupling=1.0, noise=0.1, seed=42)


@pytest.fixture
def independent_pair():
    """Two independent Gaussian noise series of length 1000."""
    rng = np.random.default_rng(7)
    return rng.standard_normal(1000), rng.standard_normal(1000)


@pytest.fixture
def ar2_series():
    """AR(2) process driven only by its value two steps back."""
    return generate_ar_process(n_samples=1000, coefs=(0.0, 0.9), noise=1.0, seed=3)


@pytest.fixture
def correlated_gaussians():
    """Bivariate Gaussian sample with correlation 0.8 (2000 points).

    The true mutual information is -0.5 * log(1 - 0.8**2) nats.
    """
    rng = np.random.default_rng(11)
    cov = [[1.0, 0.8], [0.8, 1.0]]
    data = rng.multivariate_normal([0.0, 0.0], cov, size=2000)
    return data[:, 0], data[:, 1], -0.5 * np.log(1 - 0.8 ** 2)
