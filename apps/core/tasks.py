"""
Best-effort background tasks.

A best-effort task is a side effect (webhook, notification) that runs after
the primary write has succeeded. Its outcome never reaches the caller that
scheduled it: failures are captured in the log with structured context and
cancellation is treated as benign.
"""
import logging
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class BestEffortOutcome:
    """Result of one best-effort task run."""
    name: str
    succeeded: bool
    cancelled: bool = False
    result: Any = None
    error: str | None = None


def run_best_effort(name: str, func: Callable[..., Any], *args, **kwargs) -> BestEffortOutcome:
    """
    Run func and capture any failure instead of raising it.

    Returns:
        BestEffortOutcome describing what happened
    """
    try:
        result = func(*args, **kwargs)
    except CancelledError:
        logger.debug(f'Best-effort task {name} cancelled')
        return BestEffortOutcome(name=name, succeeded=False, cancelled=True)
    except Exception as e:
        logger.warning(
            f'Best-effort task {name} failed: {e}',
            extra={'task': name, 'error_type': type(e).__name__},
            exc_info=True,
        )
        return BestEffortOutcome(name=name, succeeded=False, error=str(e))

    logger.debug(f'Best-effort task {name} completed')
    return BestEffortOutcome(name=name, succeeded=True, result=result)


class BestEffortRunner:
    """
    Runs best-effort tasks on a small thread pool.

    One runner is owned by the caller's context and closed with it;
    closing with cancel_pending=True drops tasks that have not started.
    """

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='best-effort')

    def submit(self, name: str, func: Callable[..., Any], *args, **kwargs) -> 'Future[BestEffortOutcome]':
        return self._executor.submit(run_best_effort, name, func, *args, **kwargs)

    def close(self, wait: bool = True, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
