"""
Utility decorators and context managers.
"""

import functools
import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


@contextmanager
def timer() -> Iterator[Dict[str, float]]:
    """
    Measure wall-clock time of a block in milliseconds.

    The elapsed time is written into the yielded dict when the block exits
    (also on exceptions), so read it after the ``with`` statement.

    Example:
        >>> with timer() as t:
        ...     run()
        >>> elapsed = t["ms"]
    """
    result = {"ms": 0.0}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["ms"] = (time.perf_counter() - start) * 1000.0


def log_timing(func):
    """Log how long the wrapped call took at DEBUG level."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with timer() as t:
            value = func(*args, **kwargs)
        logger.debug(f"{func.__qualname__} took {t['ms']:.2f} ms")
        return value

    return wrapper
