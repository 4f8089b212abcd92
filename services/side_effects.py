"""Best-effort execution of calls whose failure must not fail the caller."""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 8

# Timed-out calls keep their worker until they return; size the pool for the
# number of calls that may hang at once.
_executor = ThreadPoolExecutor(max_workers=DEFAULT_WORKERS, thread_name_prefix="side-effect")


def configure_executor(max_workers: int) -> None:
    """Replace the worker pool used by ``attempt`` when a timeout is given.

    Calls already running on the old pool finish there; it is shut down
    without waiting for them.
    """
    global _executor
    if max_workers < 1:
        raise ValueError("max_workers must be positive")
    previous = _executor
    _executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="side-effect")
    previous.shutdown(wait=False)


@dataclass
class SideEffectOutcome:
    """Result of one best-effort call: either a value or the captured error."""
    label: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


def attempt(
    label: str,
    func: Callable[..., Any],
    *args: Any,
    timeout: Optional[float] = None,
    **kwargs: Any
) -> SideEffectOutcome:
    """
    Run ``func`` and capture its result or failure.

    With ``timeout`` set the call runs on a worker thread and the caller stops
    waiting after ``timeout`` seconds; the call itself is not interrupted.
    Errors and timeouts are logged, never raised.
    """
    try:
        if timeout is None:
            value = func(*args, **kwargs)
        else:
            value = _executor.submit(func, *args, **kwargs).result(timeout=timeout)
    except FutureTimeout as e:
        logger.warning(f"{label} timed out after {timeout}s")
        return SideEffectOutcome(label=label, ok=False, error=e)
    except Exception as e:
        logger.exception(f"{label} failed: {e}")
        return SideEffectOutcome(label=label, ok=False, error=e)
    return SideEffectOutcome(label=label, ok=True, value=value)
