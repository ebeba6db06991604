"""JIT compilation utilities for teflow.

Provides conditional JIT compilation based on environment settings.
"""

import os

from numba import njit, prange

# Check if Numba should be disabled
TEFLOW_DISABLE_NUMBA = os.getenv("TEFLOW_DISABLE_NUMBA", "False").lower() in (
    "true",
    "1",
    "yes",
)


def conditional_njit(*args, **kwargs):
    """Conditionally apply numba JIT compilation based on environment settings.

    If the TEFLOW_DISABLE_NUMBA environment variable is set to 'true', '1'
    or 'yes', this returns the original function without JIT compilation.
    Otherwise, applies numba.njit with the given parameters.

    Parameters
    ----------
    *args
        Positional arguments passed to numba.njit. If a single function is
        passed, it will be decorated directly.
    **kwargs
        Keyword arguments passed to numba.njit (e.g., parallel=True, cache=True).

    Returns
    -------
    decorator or function
        If called with arguments: returns a decorator function.
        If called on a function directly: returns the (possibly JIT-compiled) function.

    Notes
    -----
    Kernels decorated with ``parallel=True`` iterate with :data:`prange`,
    which degrades to a plain ``range`` when the kernel runs uncompiled.

    Examples
    --------
    >>> @conditional_njit
    ... def fast_computation(x):
    ...     return x ** 2

    With numba parameters::

        @conditional_njit(parallel=True)
        def parallel_computation(x):
            return x ** 2
    """
    if TEFLOW_DISABLE_NUMBA:

        def decorator(func):
            return func

        return decorator if not args else args[0]

    return njit(*args, **kwargs)


__all__ = ["conditional_njit", "prange"]
