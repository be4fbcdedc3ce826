"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling connection-handling tasks off one
queue:

    accept loop ──submit()──► [ queue.Queue ] ──get()──► Worker-0
                                                   ├───► Worker-1
                                                   └───► Worker-N

Each worker runs one connection at a time, from first request to close.
Shutdown puts one ``None`` (poison pill) per worker on the queue; a worker
that dequeues it exits.

=============================================================================
"""

import logging
import queue
import threading
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class Worker(threading.Thread):
    """Worker thread that runs tasks from the shared queue."""

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(*task)
            finally:
                self.task_queue.task_done()

        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, func: Callable[..., Any], args: tuple):
        try:
            func(*args)
        except Exception as e:
            # A failing task must not take the worker down with it
            logger.exception(f"Worker {self.worker_id} task failed: {e}")


class ThreadPool:
    """
    Fixed-size thread pool.

        pool = ThreadPool(num_workers=8)
        pool.start()
        pool.submit(handle_connection, conn)
        ...
        pool.shutdown()
    """

    def __init__(self, num_workers: int = 8, queue_size: int = 128):
        self.num_workers = num_workers
        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._started = False
        self._shutdown = False

    def start(self):
        if self._started:
            return

        logger.debug(f"Starting thread pool with {self.num_workers} workers")
        for worker_id in range(self.num_workers):
            worker = Worker(self._task_queue, worker_id)
            self._workers.append(worker)
            worker.start()

        self._started = True
        self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        *args: Any,
        block: bool = True,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue ``func(*args)`` for a worker.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put((func, args), block=block, timeout=timeout)
            return True
        except queue.Full:
            return False

    def shutdown(self, wait: bool = True, timeout: float = 5.0):
        """
        Stop all workers.

        Args:
            wait: Join the workers (each for up to ``timeout`` seconds).
        """
        if not self._started:
            return

        logger.debug("Shutting down thread pool...")
        self._shutdown = True

        for _ in self._workers:
            self._task_queue.put(None)

        if wait:
            for worker in self._workers:
                worker.join(timeout=timeout)

        self._workers.clear()
        self._started = False
