"""Parallel execution utilities for teflow.

Provides centralized parallel execution configuration that respects
the global teflow.PARALLEL_BACKEND setting.
"""

import logging
from contextlib import contextmanager

from joblib import Parallel, delayed, parallel_config


def get_parallel_backend():
    """Get the current parallel backend setting.

    Returns
    -------
    str
        Current backend: 'loky', 'threading', or 'multiprocessing'.
    """
    import teflow
    return teflow.PARALLEL_BACKEND


@contextmanager
def parallel_executor(n_jobs, backend=None, pre_dispatch=None, logger=None):
    """Context manager for parallel execution with backend-specific config.

    Used by the embedding search to evaluate grid candidates concurrently.
    Results come back from joblib in submission order, so reductions over
    them stay deterministic regardless of which worker finishes first.

    Parameters
    ----------
    n_jobs : int
        Number of parallel jobs. Use -1 for all available cores.
    backend : str, optional
        Override the global teflow.PARALLEL_BACKEND setting for this call.
        Options: 'loky', 'threading', 'multiprocessing'.
    pre_dispatch : str or int, optional
        Override the backend-specific pre_dispatch setting.
    logger : logging.Logger, optional
        Logger receiving the chosen configuration at debug level.

    Yields
    ------
    Parallel
        Configured joblib Parallel executor.

    Examples
    --------
    >>> from teflow.utils.parallel import parallel_executor, delayed
    >>> def square(x):
    ...     return x * x
    >>> with parallel_executor(n_jobs=2, backend='threading') as parallel:
    ...     results = parallel(delayed(square)(i) for i in range(4))
    >>> results
    [0, 1, 4, 9]
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if backend is None:
        backend = get_parallel_backend()

    config = {'backend': backend}
    parallel_kwargs = {'n_jobs': n_jobs, 'backend': backend}

    if pre_dispatch is not None:
        parallel_kwargs['pre_dispatch'] = pre_dispatch
    elif backend == 'threading':
        # Threading backend: conservative pre_dispatch to limit memory pressure
        parallel_kwargs['pre_dispatch'] = 'n_jobs'
    else:
        parallel_kwargs['pre_dispatch'] = '2*n_jobs'

    if backend == 'loky':
        config['idle_worker_timeout'] = 60

    logger.debug(
        "Parallel config: backend=%s, n_jobs=%s, pre_dispatch=%s",
        backend, n_jobs, parallel_kwargs['pre_dispatch'],
    )

    with parallel_config(**config):
        yield Parallel(**parallel_kwargs)


# Re-export delayed for convenience
__all__ = ['parallel_executor', 'get_parallel_backend', 'delayed']
