"""Retry helpers for source connectors.

Only the connection handshake is retried. A failing query is a job-level
error and is not retried here.
"""

import asyncio

from sqlalchemy import exc as sa_exc
from tenacity import retry_if_exception, stop_after_attempt, wait_exponential


def should_retry_on_connect_error(exception: BaseException) -> bool:
    """Check if a connect failure looks transient.

    Args:
        exception: Exception raised while opening a connection

    Returns:
        True for timeouts, refused connections and driver-level operational errors
    """
    if isinstance(exception, (asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(exception, (sa_exc.OperationalError, sa_exc.InterfaceError)):
        return True
    return isinstance(exception, OSError)


retry_if_connect_error = retry_if_exception(should_retry_on_connect_error)

# Shared policy: 3 attempts, 1s, 2s ... capped at 10s
connect_stop = stop_after_attempt(3)
connect_wait = wait_exponential(multiplier=1, min=1, max=10)
