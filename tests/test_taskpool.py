import random
import threading
import time

import pytest

from vmrunkit.task import (
    CancelledError,
    Context,
    DeadlineExceededError,
    GenericTask,
    TaskAlreadyRunningError,
    TaskState,
)
from vmrunkit.taskpool import PoolClosedError, TaskPool

UNIT = 0.2


class SuccessfullyFailed(Exception):
    pass


FAILURE = SuccessfullyFailed("function is failed")


class DummyTask(GenericTask):
    def __init__(
        self,
        task_id,
        timeout,
        sleep_before_start=False,
        fail_before_start=False,
        fail_on_success=False,
    ):
        super().__init__()
        self.task_id = task_id
        self.timeout = timeout
        self.sleep_before_start = sleep_before_start
        self.fail_before_start = fail_before_start
        self.fail_on_success = fail_on_success

    def key(self):
        return self.task_id

    def before_start(self, resp):
        if self.sleep_before_start:
            time.sleep(self.timeout * UNIT)
        if self.fail_before_start:
            raise FAILURE

    def on_success(self):
        if self.fail_on_success:
            raise FAILURE

    def main(self):
        if self.timeout > 0:
            ctx = self.ctx()
            if ctx.wait(self.timeout * UNIT):
                raise ctx.err()


def test_concurrent_tasks():
    pool = TaskPool(4)

    def try_start(task_id, timeout, must_ok):
        task = DummyTask(task_id, timeout)
        if must_ok:
            key = pool.start_task(Context(), task, None)
            assert key == "default:" + task_id
        else:
            with pytest.raises(TaskAlreadyRunningError):
                pool.start_task(Context(), task, None)

    for task_id in [
        "u221:vm123:20060102:",
        "u345:vm325:20060102:aabbccdd",
        "u876:vm224::",
        "u555:::",
    ]:
        try_start(task_id, 5, True)

    for task_id in ["u221:::", "u221:vm123::", "u221:vm123:20060102:", "u221:vm123:20060102:suffix"]:
        try_start(task_id, 0, False)

    for task_id in ["u345:vm123::", "u345:vm325:20060103:", "u345:vm325:20060102:suffix"]:
        try_start(task_id, 0, True)

    for task_id in ["u876:::", "u876:vm224::"]:
        try_start(task_id, 0, False)

    for task_id in ["u876:vm225:20060102:", "u876:vm225:20060103:suffix"]:
        try_start(task_id, 0, True)

    for task_id in ["u555:::", "u555:vm123::", "u555:vm124:20060102:", "u555:vm124:20060103:suffix"]:
        try_start(task_id, 0, False)


def test_task_waiting():
    pool = TaskPool(4)
    for _ in range(2):
        task = DummyTask("u202:::", 1, sleep_before_start=True)
        key = pool.start_task(Context(), task, None)
        assert key == "default:u202:::"
        pool.wait(key)
        assert pool.stat(key).state == TaskState.COMPLETED


def test_task_canceling_by_deadline():
    pool = TaskPool(4)
    ctx = Context(timeout=2 * UNIT)
    task = DummyTask("u232:::", 3)
    key = pool.start_task(ctx, task, None)
    pool.wait(key)
    assert isinstance(pool.err(key), DeadlineExceededError)
    assert pool.stat(key).state == TaskState.FAILED


def test_before_start_function_failure():
    pool = TaskPool(4)
    task = DummyTask("u262:::", 0, sleep_before_start=True, fail_before_start=True)
    with pytest.raises(SuccessfullyFailed) as info:
        pool.start_task(Context(), task, None)
    assert info.value is FAILURE
    assert pool.list() == []
    assert task.err() is FAILURE


def test_on_success_function_failure():
    pool = TaskPool(4)
    task = DummyTask("u282:::", 0, fail_on_success=True)
    key = pool.start_task(Context(), task, None)
    pool.wait(key)
    assert pool.err(key) is FAILURE
    assert pool.stat(key).state_desc == "function is failed"


def test_pool_closing():
    pool = TaskPool(4)

    def start(idx):
        return pool.start_task(
            Context(), DummyTask(f"{idx}:::", random.randint(0, 4)), None
        )

    for i in range(11):
        assert start(i) == f"default:{i}:::"

    closer = threading.Thread(target=pool.wait_and_close, daemon=True)
    closer.start()
    closer.join(10)
    assert not closer.is_alive()

    with pytest.raises(PoolClosedError):
        start(5000)


def test_cancel_running_task():
    pool = TaskPool(4)
    key = pool.start_task(None, DummyTask("u300:::", 50), None)
    assert pool.stat(key).state == TaskState.RUNNING
    pool.cancel(key)
    pool.wait(key)
    assert isinstance(pool.err(key), CancelledError)


def test_invalid_key_format():
    pool = TaskPool(4)
    with pytest.raises(ValueError):
        pool.start_task(None, DummyTask("u1:vm1", 0), None)
    assert pool.list() == []


def test_non_task_rejected():
    pool = TaskPool(4)
    with pytest.raises(TypeError):
        pool.start_task(None, object(), None)


def test_unknown_key_queries():
    pool = TaskPool(4)
    assert pool.stat("default:none:::") is None
    assert pool.err("default:none:::") is None


def test_run_func_success_and_logger():
    pool = TaskPool(4)
    seen = []
    key = pool.run_func(None, "u7:vm7::", lambda logger: seen.append(logger.extra["task-key"]))
    assert key == "default:u7:vm7::"
    assert seen == [key]


def test_run_func_raises_error():
    pool = TaskPool(4)

    def fail(logger):
        raise RuntimeError("broken")

    with pytest.raises(RuntimeError, match="broken"):
        pool.run_func(None, "u8:::", fail)


def test_finished_tasks_are_cleaned_up():
    pool = TaskPool(4, cleanup_delay=0.05)
    key = pool.run_func(None, "u9:::", lambda logger: None)
    assert key in pool.list() or pool.list() == []
    deadline = time.monotonic() + 2.0
    while pool.list() and time.monotonic() < deadline:
        time.sleep(0.02)
    assert pool.list() == []