import os
import subprocess
import sys
from datetime import datetime, timedelta

import pytest

from vmrunkit.ps import get_cmdline, get_create_time, get_life_time

CHILD_CODE = "import sys, time; print('ready', flush=True); time.sleep(30)"


@pytest.fixture
def child():
    proc = subprocess.Popen(
        [sys.executable, "-c", CHILD_CODE, "marker-arg"], stdout=subprocess.PIPE, text=True
    )
    proc.stdout.readline()
    yield proc
    proc.kill()
    proc.wait()
    proc.stdout.close()


def test_get_cmdline_of_child(child):
    assert get_cmdline(child.pid) == [sys.executable, "-c", CHILD_CODE, "marker-arg"]


def test_get_cmdline_missing_process():
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    with pytest.raises(FileNotFoundError):
        get_cmdline(proc.pid)


def test_life_time_of_fresh_child_is_short(child):
    life = get_life_time(child.pid)
    assert timedelta(0) <= life <= timedelta(seconds=10)


def test_parent_lives_at_least_as_long_as_child(child):
    assert get_life_time(os.getpid()) >= get_life_time(child.pid)


def test_create_time_is_recent(child):
    created = get_create_time(child.pid)
    now = datetime.now()
    assert now - timedelta(seconds=15) <= created <= now + timedelta(seconds=1)