"""
Pending rebuild task queue.

Tasks are kept deduplicated and in ascending TaskKind order at insertion
time, so a drained batch is already in execution order.
"""

import logging
import threading
from typing import Callable, List

from build_watch.models import Task


logger = logging.getLogger(__name__)


class TaskQueue:
    """
    Ordered, deduplicated collection of pending tasks.

    A directory that changes several times between two ticks yields a single
    task. All mutation happens under one exclusive lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks: List[Task] = []

    def add(self, task: Task) -> bool:
        """
        Enqueue a task unless an equal one is already pending.

        The task is inserted before the first pending task of a strictly
        greater kind; tasks of the same kind keep arrival order.

        Args:
            task: Task to enqueue

        Returns:
            True if added, False if an equal task was already pending
        """
        with self._lock:
            insert_at = None
            for i, pending in enumerate(self._tasks):
                if pending == task:
                    return False
                if insert_at is None and pending.kind > task.kind:
                    insert_at = i

            if insert_at is None:
                self._tasks.append(task)
            else:
                self._tasks.insert(insert_at, task)

        logger.debug(f"Queued task: {task}")
        return True

    def drain_all(self) -> List[Task]:
        """
        Remove and return all pending tasks.

        Returns:
            Pending tasks in execution order (empty if none)
        """
        with self._lock:
            batch, self._tasks = self._tasks, []
        return batch

    def flush(self, dispatch: Callable[[List[Task]], None]) -> int:
        """
        Drain the queue and hand a non-empty batch to dispatch.

        The lock is held while dispatching, so no task can be added between
        the drain and the hand-off.

        Args:
            dispatch: Callable receiving the ordered batch

        Returns:
            Number of tasks dispatched
        """
        with self._lock:
            if not self._tasks:
                return 0
            batch, self._tasks = self._tasks, []
            dispatch(batch)
        return len(batch)

    def snapshot(self) -> List[Task]:
        """Get a copy of the pending tasks without draining."""
        with self._lock:
            return list(self._tasks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
