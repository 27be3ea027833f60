"""Service unit properties as reported by the service manager."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Mapping, Sequence

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _from_usec(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return EPOCH + timedelta(microseconds=int(value or 0))


class ExecCode(IntEnum):
    """How the last run of a command ended."""

    UNDEFINED = 0
    EXITED = 1
    KILLED = 2
    DUMPED = 3


def _exec_code(value: int) -> ExecCode | int:
    try:
        return ExecCode(value)
    except ValueError:
        return value


@dataclass
class ExecCommandState:
    """State of one Exec* command of a unit."""

    path: str = ""
    arguments: list[str] = field(default_factory=list)
    fail: bool = False
    enter_time: datetime = EPOCH
    enter_time_mono: int = 0
    exit_time: datetime = EPOCH
    exit_time_mono: int = 0
    exec_pid: int = 0
    exec_code: ExecCode | int = ExecCode.UNDEFINED
    exec_status: int = 0

    @classmethod
    def from_json(cls, value: str | bytes | Sequence[Any] | None) -> "ExecCommandState":
        """Build from the positional array form (JSON text or an already decoded sequence)."""
        if isinstance(value, (str, bytes, bytearray)):
            if len(value) == 0:
                raise ValueError("input is too short")
            value = json.loads(value)
        if value is None:
            return cls()
        if isinstance(value, Mapping) or not isinstance(value, Sequence):
            raise ValueError(f"expected an array, got {type(value).__name__}")

        defaults: list[Any] = ["", [], False, 0, 0, 0, 0, 0, 0, 0]
        items = list(value[: len(defaults)]) + defaults[len(value) :]
        path, args, fail, enter, enter_mono, exit_, exit_mono, pid, code, status = items
        return cls(
            path=str(path),
            arguments=list(args or []),
            fail=bool(fail),
            enter_time=_from_usec(enter),
            enter_time_mono=int(enter_mono),
            exit_time=_from_usec(exit_),
            exit_time_mono=int(exit_mono),
            exec_pid=int(pid),
            exec_code=_exec_code(int(code)),
            exec_status=int(status),
        )


def _exec_list(raw: Mapping[str, Any], key: str) -> list[ExecCommandState]:
    return [ExecCommandState.from_json(item) for item in raw.get(key) or ()]


@dataclass
class UnitProperties:
    """Selected properties of a service unit."""

    name: str = ""
    load_state: str = ""
    active_state: str = ""
    sub_state: str = ""
    exec_main_pid: int = 0
    active_enter_time: datetime = EPOCH
    active_exit_time: datetime = EPOCH
    state_change_time: datetime = EPOCH
    exec_start: list[ExecCommandState] = field(default_factory=list)
    exec_start_post: list[ExecCommandState] = field(default_factory=list)
    exec_start_pre: list[ExecCommandState] = field(default_factory=list)
    exec_stop: list[ExecCommandState] = field(default_factory=list)
    exec_stop_post: list[ExecCommandState] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, raw: Mapping[str, Any]) -> "UnitProperties":
        """Build from the raw property map; timestamps are microseconds since the epoch."""
        return cls(
            name=name,
            load_state=str(raw.get("LoadState", "")),
            active_state=str(raw.get("ActiveState", "")),
            sub_state=str(raw.get("SubState", "")),
            exec_main_pid=int(raw.get("ExecMainPID", 0)),
            active_enter_time=_from_usec(raw.get("ActiveEnterTimestamp", 0)),
            active_exit_time=_from_usec(raw.get("ActiveExitTimestamp", 0)),
            state_change_time=_from_usec(raw.get("StateChangeTimestamp", 0)),
            exec_start=_exec_list(raw, "ExecStart"),
            exec_start_post=_exec_list(raw, "ExecStartPost"),
            exec_start_pre=_exec_list(raw, "ExecStartPre"),
            exec_stop=_exec_list(raw, "ExecStop"),
            exec_stop_post=_exec_list(raw, "ExecStopPost"),
        )