"""Background tasks with cancellation contexts and progress reporting."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable

_log = logging.getLogger(__name__)


class TaskState(IntEnum):
    """Lifecycle state of a task."""

    UNKNOWN = 0
    RUNNING = 1
    COMPLETED = 2
    FAILED = 3


@dataclass
class TaskStat:
    """A snapshot of a task's state."""

    key: str = ""
    state: TaskState = TaskState.UNKNOWN
    state_desc: str = ""
    progress: int = 0
    details: Any = None


class TaskError(Exception):
    """Base class for task errors."""


class TaskNotRunningError(TaskError):
    """Raised when an operation needs a running task."""

    def __init__(self, message: str = "process is not running") -> None:
        super().__init__(message)


class TaskInterruptedError(TaskError):
    """Raised when a task was interrupted."""

    def __init__(self, message: str = "process was interrupted") -> None:
        super().__init__(message)


class TaskAlreadyRunningError(TaskError):
    """Raised when a conflicting task is already running."""

    def __init__(self, namespace: str, key: str) -> None:
        super().__init__("another process is already running: " + key)
        self.namespace = namespace
        self.key = key


class CancelledError(TaskError):
    """The context was cancelled."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(TaskError):
    """The context's deadline passed."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class Context:
    """A cancellation signal with an optional deadline, propagated to children."""

    def __init__(
        self, parent: "Context | None" = None, timeout: float | None = None, tag: str | None = None
    ) -> None:
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._err: BaseException | None = None
        self._children: list[Context] = []
        self._timer: threading.Timer | None = None
        if tag is None and parent is not None:
            tag = parent.tag
        self.tag = tag

        if parent is not None:
            parent._add_child(self)

        if timeout is not None:
            if timeout <= 0:
                self._finish(DeadlineExceededError())
            else:
                timer: threading.Timer | None = threading.Timer(
                    timeout, self._finish, args=(DeadlineExceededError(),)
                )
                timer.daemon = True
                with self._lock:
                    if self._err is None:
                        self._timer = timer
                    else:
                        timer = None
                if timer is not None:
                    timer.start()

    def _add_child(self, child: "Context") -> None:
        with self._lock:
            if self._err is None:
                self._children.append(child)
                return
            err = self._err
        child._finish(err)

    def _discard_child(self, child: "Context") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _finish(self, err: BaseException) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            children, self._children = self._children, []
            timer, self._timer = self._timer, None
        self._event.set()
        if timer is not None:
            timer.cancel()
        for child in children:
            child._finish(err)
        if self._parent is not None:
            self._parent._discard_child(self)

    def cancel(self) -> None:
        """Cancel this context and all of its children."""
        self._finish(CancelledError())

    def done(self) -> bool:
        """Return True once the context is cancelled or expired."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or *timeout* passes; return whether it is done."""
        return self._event.wait(timeout)

    def err(self) -> BaseException | None:
        """Return why the context is done, or None while it is still live."""
        with self._lock:
            return self._err


class GenericTask:
    """Base task: subclasses override ``main`` and optionally the hooks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._key = ""
        self._tag = ""
        self._created_at: datetime | None = None
        self._modified_at: datetime | None = None
        self.logger: logging.LoggerAdapter = logging.LoggerAdapter(_log, {})
        self._ctx: Context | None = None
        self._running = False
        self._released = threading.Event()
        self._completed = False
        self._progress = 0
        self._err: BaseException | None = None

    def _init(self, ctx: Context, key: str) -> None:
        with self._lock:
            self._ctx = Context(parent=ctx)
            self._key = key
            self._released = threading.Event()
            self._running = True
            self._completed = False
            self._err = None
            extra = {"task-key": key}
            if ctx.tag:
                self._tag = ctx.tag
                extra["task-tag"] = ctx.tag
            self.logger = logging.LoggerAdapter(_log, extra)
            self._created_at = datetime.now()
            self._modified_at = self._created_at

    def _release(self, err: BaseException | None) -> None:
        with self._lock:
            if self._ctx is not None:
                self._ctx.cancel()
            self._running = False
            self._completed = True
            self._err = err
            released = self._released
        released.set()

    def _get_tag(self) -> str:
        with self._lock:
            return self._tag

    def main(self) -> None:
        """The task body; the base task does nothing."""

    def before_start(self, resp: Any) -> None:
        """Hook run before the task starts; raising aborts the start."""

    def on_success(self) -> None:
        """Hook run after ``main`` succeeds; raising marks the task failed."""

    def on_failure(self) -> None:
        """Hook run after ``main`` fails."""

    def wait(self) -> None:
        """Block until the task has finished."""
        self._released.wait()

    def cancel(self) -> None:
        """Ask a running task to stop."""
        with self._lock:
            if not self._running or self._ctx is None:
                raise TaskNotRunningError()
            ctx = self._ctx
        ctx.cancel()

    def is_running(self) -> bool:
        return self.stat().state == TaskState.RUNNING

    def is_completed(self) -> bool:
        return self.stat().state == TaskState.COMPLETED

    def is_failed(self) -> bool:
        return self.stat().state == TaskState.FAILED

    def err(self) -> BaseException | None:
        """Return the error the task finished with, if any."""
        with self._lock:
            return self._err

    def stat(self) -> TaskStat:
        with self._lock:
            st = TaskStat(key=self._key, progress=self._progress)
            if self._completed:
                if self._err is None:
                    st.state = TaskState.COMPLETED
                else:
                    st.state = TaskState.FAILED
                    st.state_desc = str(self._err)
            elif self._running:
                st.state = TaskState.RUNNING
            return st

    def set_progress(self, progress: int) -> None:
        """Record progress; non-positive values are ignored."""
        with self._lock:
            if progress > 0:
                self._progress = progress

    def ctx(self) -> Context | None:
        with self._lock:
            return self._ctx

    def namespace(self) -> str:
        return "default"

    def key(self) -> str:
        with self._lock:
            return self._key

    def created_at(self) -> datetime | None:
        with self._lock:
            return self._created_at

    def modified_at(self) -> datetime | None:
        with self._lock:
            return self._modified_at


class FuncTask(GenericTask):
    """A task whose body is a function taking the task's logger."""

    def __init__(self, key: str, fn: Callable[[logging.LoggerAdapter], Any]) -> None:
        super().__init__()
        self._func_key = key
        self._fn = fn

    def key(self) -> str:
        return self._func_key

    def main(self) -> None:
        self._fn(self.logger)


@dataclass
class DataTransferStat:
    """Progress of a data transfer."""

    total: int = 0
    remaining: int = 0
    transferred: int = 0
    progress: int = 0
    speed: int = 0


@dataclass
class MachineMigrationDetails:
    """Details of a machine migration task."""

    dst_server: str = ""
    vm_state: DataTransferStat | None = None
    disks: dict[str, DataTransferStat] = field(default_factory=dict)


@dataclass
class DiskBackupDetails:
    """Details of a disk backup task."""

    disk: DataTransferStat | None = None