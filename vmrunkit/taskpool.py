"""A pool that runs keyed background tasks and rejects conflicting ones."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Callable

from .task import (
    Context,
    FuncTask,
    GenericTask,
    TaskAlreadyRunningError,
    TaskError,
    TaskNotRunningError,
    TaskStat,
)

_log = logging.getLogger(__name__)


class PoolClosedError(TaskError):
    """Raised when starting a task in a closed pool."""

    def __init__(self, message: str = "pool is closed") -> None:
        super().__init__(message)


class TaskPool:
    """Runs tasks in threads, keyed by ``namespace:field1:...:fieldN``.

    An empty key field acts as a wildcard when checking for conflicts.
    """

    def __init__(self, depth: int, cleanup_delay: float = 30.0) -> None:
        self.depth = depth
        self.cleanup_delay = cleanup_delay
        self._lock = threading.Lock()
        self._table: dict[str, GenericTask] = {}
        self._cond = threading.Condition()
        self._active = 0
        self._closed = False

    def _conflict(self, key1: str, key2: str) -> bool:
        fields1 = key1.split(":", self.depth)[1:]
        fields2 = key2.split(":", self.depth)[1:]
        if fields1 == fields2:
            return True
        for a, b in zip(fields1, fields2):
            if not a or not b:
                return True
            if a != b:
                break
        return False

    def _task_done(self) -> None:
        with self._cond:
            self._active -= 1
            if self._active == 0:
                self._cond.notify_all()

    def start_task(self, ctx: Context | None, task: GenericTask, resp: Any = None) -> str:
        """Start *task* and return its full key once its pre-start hook succeeds."""
        with self._cond:
            if self._closed:
                raise PoolClosedError()
            self._active += 1

        success = False
        try:
            if not isinstance(task, GenericTask):
                raise TypeError("invalid embedded interface")

            user_key = task.key()
            if len(user_key.split(":", self.depth - 1)) != self.depth:
                raise ValueError(f"invalid task key format: {user_key}")

            new_key = task.namespace() + ":" + user_key
            if ctx is None:
                ctx = Context()

            with self._lock:
                for key, other in self._table.items():
                    if other.is_running() and self._conflict(key, new_key):
                        raise TaskAlreadyRunningError(other.namespace(), key)
                # A leftover entry of a finished task with the same key
                self._table.pop(new_key, None)
                task._init(ctx, new_key)
                self._table[new_key] = task

            logger = logging.LoggerAdapter(
                _log, {"task-key": new_key, "task-tag": task._get_tag()}
            )

            try:
                task.before_start(resp)
            except Exception as err:
                logger.error("Pre-start function failed: %s", err)
                task._release(err)
                with self._lock:
                    self._table.pop(new_key, None)
                raise

            success = True
        finally:
            if not success:
                self._task_done()

        worker = threading.Thread(
            target=self._run, args=(task, new_key, logger), name=f"task-{new_key}", daemon=True
        )
        worker.start()
        return new_key

    def _run(self, task: GenericTask, key: str, logger: logging.LoggerAdapter) -> None:
        err: BaseException | None = None
        try:
            try:
                task.main()
            except Exception as exc:
                err = exc

            if err is None:
                logger.info("Successfully completed")
                try:
                    task.on_success()
                except Exception as exc:
                    err = exc
            else:
                logger.error("Fatal error: %s", err)
                with contextlib.suppress(Exception):
                    task.on_failure()
        finally:
            task._release(err)
            self._task_done()
            timer = threading.Timer(self.cleanup_delay, self._cleanup, args=(key,))
            timer.daemon = True
            timer.start()

    def _cleanup(self, key: str) -> None:
        with self._lock:
            task = self._table.get(key)
            if task is not None and not task.is_running():
                del self._table[key]

    def _lookup(self, key: str) -> GenericTask | None:
        with self._lock:
            return self._table.get(key)

    def stat(self, key: str) -> TaskStat | None:
        task = self._lookup(key)
        return task.stat() if task is not None else None

    def err(self, key: str) -> BaseException | None:
        task = self._lookup(key)
        return task.err() if task is not None else None

    def cancel(self, key: str) -> None:
        """Cancel the task with *key* if it is known."""
        task = self._lookup(key)
        if task is not None:
            with contextlib.suppress(TaskNotRunningError):
                task.cancel()

    def wait(self, key: str) -> None:
        """Wait for the task with *key* if it is known."""
        task = self._lookup(key)
        if task is not None:
            task.wait()

    def list(self) -> list[str]:
        with self._lock:
            return list(self._table)

    def wait_and_close(self) -> None:
        """Wait until every started task finishes, then refuse new ones."""
        with self._cond:
            self._cond.wait_for(lambda: self._active == 0)
            self._closed = True

    def run_func(
        self, ctx: Context | None, key: str, fn: Callable[[logging.LoggerAdapter], Any]
    ) -> str:
        """Run *fn* as a task, wait for it and return its key; its error is raised."""
        task = FuncTask(key, fn)
        new_key = self.start_task(ctx, task, None)
        task.wait()
        err = task.err()
        if err is not None:
            raise err
        return new_key