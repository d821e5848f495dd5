"""
Background task queue for post-commit side effects.

Work that must not hold up (or be able to fail) a committed transaction,
such as recomputing a user's stats after a flight is finalized, is
published here after commit and run on a daemon worker thread.

Failures are logged and never retried.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Any, Dict

logger = logging.getLogger(__name__)


@dataclass
class Task:
    """A queued call."""
    func: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return getattr(self.func, '__qualname__', repr(self.func))


_STOP = object()


class TaskQueue:
    """
    In-memory FIFO of fire-and-forget tasks.

    Tasks run on a background thread once start() is called. Without a
    running worker, run_pending() executes queued tasks synchronously,
    which is how the test suite drives it.
    """

    def __init__(self, name: str = 'logbook-tasks'):
        self.name = name
        self._queue: 'queue.Queue[Any]' = queue.Queue()
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self._processed = 0
        self._failed = 0

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Queue func(*args, **kwargs) for background execution."""
        task = Task(func, args, kwargs)
        self._queue.put(task)
        logger.debug(f'Queued {task.name}{args}')

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Task worker already running')
            return

        self._thread = threading.Thread(target=self._worker, name=self.name, daemon=True)
        self._thread.start()
        logger.info('Background task worker started')

    def stop(self, timeout: float = 5) -> None:
        """Let queued tasks finish, then stop the worker."""
        if not self.is_running:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info('Background task worker stopped')

    def run_pending(self) -> int:
        """Run every queued task in the calling thread. Returns count run."""
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return count
            try:
                if item is not _STOP:
                    self._run(item)
                    count += 1
            finally:
                self._queue.task_done()

    def join(self) -> None:
        """Block until every queued task has been processed."""
        self._queue.join()

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._run(item)
            finally:
                self._queue.task_done()

    def _run(self, task: Task) -> None:
        try:
            task.func(*task.args, **task.kwargs)
            self._processed += 1
        except Exception as e:
            self._failed += 1
            logger.error(f'Background task {task.name} failed: {e}')

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    @property
    def stats(self) -> dict:
        """Get task queue statistics."""
        return {
            'pending': self._queue.qsize(),
            'processed': self._processed,
            'failed': self._failed,
            'running': self.is_running,
        }


# Singleton instance
task_queue = TaskQueue()
