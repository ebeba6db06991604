"""Utility functions for teflow."""

from .data import (
    check_positive,
    check_nonnegative,
    check_integer,
    as_2d_series,
    generate_coupled_series,
    generate_ar_process,
)
from .jit import conditional_njit
from .parallel import parallel_executor, get_parallel_backend

__all__ = [
    "check_positive",
    "check_nonnegative",
    "check_integer",
    "as_2d_series",
    "generate_coupled_series",
    "generate_ar_process",
    "conditional_njit",
    "parallel_executor",
    "get_parallel_backend",
]
