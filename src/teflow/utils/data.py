import numpy as np


def _check_numeric(kwargs, is_valid, requirement):
    # None entries are optional arguments left unset
    for name, value in kwargs.items():
        if value is None:
            continue
        try:
            val = float(value)
        except (TypeError, ValueError):
            raise TypeError(f"{name} must be numeric, got {type(value).__name__}") from None
        if np.isnan(val):
            raise ValueError(f"{name} cannot be NaN")
        if np.isinf(val):
            raise ValueError(f"{name} cannot be infinite")
        if not is_valid(val):
            raise ValueError(f"{name} must be {requirement}, got {value}")


def check_nonnegative(**kwargs):
    """Check that all provided parameters are non-negative.

    Raises
    ------
    ValueError
        If any value is negative, NaN or infinite.
    TypeError
        If a value is not numeric.

    Examples
    --------
    >>> check_nonnegative(delay=0, l=1)
    >>> check_nonnegative(delay=-1)
    Traceback (most recent call last):
    ...
    ValueError: delay must be non-negative, got -1
    """
    _check_numeric(kwargs, lambda v: v >= 0, "non-negative")


def check_positive(**kwargs):
    """Check that all provided parameters are strictly positive.

    Raises
    ------
    ValueError
        If any value is zero or negative, NaN or infinite.
    TypeError
        If a value is not numeric.
    """
    _check_numeric(kwargs, lambda v: v > 0, "positive")


def check_integer(**kwargs):
    """Check that all provided parameters are integral numbers.

    ``bool`` values are rejected, as are floats with a fractional part.

    Raises
    ------
    TypeError
        If any parameter value is not an integer.
    """
    for name, value in kwargs.items():
        if value is None:
            continue
        if isinstance(value, (bool, np.bool_)):
            raise TypeError(f"{name} must be an integer, got bool")
        if isinstance(value, (int, np.integer)):
            continue
        if isinstance(value, (float, np.floating)) and float(value).is_integer():
            continue
        raise TypeError(f"{name} must be an integer, got {value!r}")


def as_2d_series(data, name="data"):
    """Return ``data`` as a float array of shape (n_steps, n_dims).

    1D input is treated as a univariate series.

    Raises
    ------
    ValueError
        If the input has more than two dimensions or contains NaN/inf.
    """
    arr = np.array(data, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    elif arr.ndim != 2:
        raise ValueError(f"{name} must be 1D or 2D, got {arr.ndim}D")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains NaN or infinite values")
    return arr


def generate_coupled_series(n_samples=1000, lag=1, coupling=1.0, noise=0.1, seed=42):
    """Generate a source/destination pair with lagged linear coupling.

    The source is i.i.d. standard Gaussian noise and
    ``destination[t] = coupling * source[t - lag] + noise * eps[t]``.
    The first ``lag`` destination values are pure noise.

    Parameters
    ----------
    n_samples : int
        Length of both series.
    lag : int
        Source-to-destination lag in time steps.
    coupling : float
        Coupling strength.
    noise : float
        Standard deviation of the destination's private noise.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    source, destination : np.ndarray
        Arrays of shape (n_samples,).
    """
    check_positive(n_samples=n_samples)
    check_nonnegative(lag=lag, noise=noise)
    rng = np.random.default_rng(seed)
    source = rng.standard_normal(n_samples)
    destination = noise * rng.standard_normal(n_samples)
    destination[lag:] += coupling * source[: n_samples - lag]
    return source, destination


def generate_ar_process(n_samples=1000, coefs=(0.0, 0.9), noise=1.0, burn_in=100, seed=42):
    """Generate an autoregressive process ``x[t] = sum_i coefs[i] * x[t-1-i] + eps``.

    Parameters
    ----------
    n_samples : int
        Number of returned samples.
    coefs : sequence of float
        AR coefficients, ``coefs[0]`` multiplies ``x[t-1]``.
    noise : float
        Standard deviation of the driving noise.
    burn_in : int
        Number of initial samples discarded to forget the zero start.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    np.ndarray
        Array of shape (n_samples,).
    """
    check_positive(n_samples=n_samples)
    check_nonnegative(burn_in=burn_in, noise=noise)
    coefs = np.asarray(coefs, dtype=float)
    order = len(coefs)
    rng = np.random.default_rng(seed)
    total = n_samples + burn_in + order
    eps = noise * rng.standard_normal(total)
    x = np.zeros(total)
    for t in range(order, total):
        x[t] = np.dot(coefs, x[t - order:t][::-1]) + eps[t]
    return x[-n_samples:]
