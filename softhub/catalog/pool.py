# -*- coding: utf-8 -*-
"""
ThreadExecutorPool - Thread pool for background catalog operations.

Provides a managed thread pool for running catalog syncs, per-app
detail fetches and icon downloads without blocking the caller. Every
submitted job is tracked until it finishes so shutdown can wait for or
cancel outstanding work.

Author
------
SoftHub Contributors

License
-------
MIT License
Copyright (c) 2026 SoftHub Contributors
See LICENSE file for full text.

Created
-------
2026-10-18

Modified
--------
2026-10-18
"""

# Standard library
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


class ThreadExecutorPool:
    """Manages a pool of worker threads for background catalog operations.

    Parameters
    ----------
    max_workers : int
        Maximum number of concurrent threads. Default 4.
    name : str
        Thread name prefix, also used in log messages.
    """

    def __init__(self, max_workers: int = 4, name: str = "catalog") -> None:
        self._name = name
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=name
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Number of submitted jobs that have not finished yet."""
        with self._lock:
            return len(self._pending)

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> 'Future[R]':
        """Submit a job and track it until it completes.

        Exceptions raised by the job stay on the returned future and are
        also logged, so fire-and-forget callers never lose them silently.

        Returns
        -------
        Future
        """
        future = self._executor.submit(fn, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def fan_out(
        self,
        fn: Callable[[T], R],
        items: Iterable[T],
    ) -> List[Tuple[T, Optional[R], Optional[BaseException]]]:
        """Run ``fn`` on every item concurrently and wait for all of them.

        Parameters
        ----------
        fn : Callable
            Job applied to each item.
        items : Iterable
            Inputs.

        Returns
        -------
        List[Tuple[item, result, error]]
            One entry per item, in input order. Exactly one of
            ``result`` and ``error`` is meaningful.
        """
        items = list(items)
        futures = [self._executor.submit(fn, item) for item in items]
        wait(futures)
        outcomes = []
        for item, future in zip(items, futures):
            if future.cancelled():
                outcomes.append((item, None, RuntimeError("cancelled")))
                continue
            error = future.exception()
            outcomes.append((item, None if error else future.result(), error))
        return outcomes

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for every tracked job, including jobs submitted meanwhile.

        Parameters
        ----------
        timeout : Optional[float]
            Seconds to wait per round. None waits indefinitely.

        Returns
        -------
        bool
            True if nothing is left pending.
        """
        while True:
            with self._lock:
                snapshot = set(self._pending)
            if not snapshot:
                return True
            _, not_done = wait(snapshot, timeout=timeout)
            if not_done:
                return False

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Shut down the thread pool.

        Parameters
        ----------
        wait : bool
            If True, wait for running tasks to complete.
        cancel_pending : bool
            If True, drop queued tasks that have not started.
        """
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Background %s job failed: %s", self._name, error)
