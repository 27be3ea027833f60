"""A small file-backed map from names to unique integers in a fixed range."""

from __future__ import annotations

import json
import os
from typing import Iterable

from .flock import FileLocker

MIN_VALUE = 200
MAX_VALUE = 65000

_LOCK_TIMEOUT = 10.0


class NoAvailableValuesError(LookupError):
    """Raised when every value in the range is already taken."""

    def __init__(self, message: str = "no available values") -> None:
        super().__init__(message)


def get_vacant_value(
    values: Iterable[int], min_value: int = MIN_VALUE, max_value: int = MAX_VALUE
) -> int:
    """Return the lowest free value not in *values*, extending past the highest taken one."""
    values = list(values)
    if not values:
        return min_value

    taken = sorted({v for v in values if min_value <= v <= max_value})

    if len(taken) == 1:
        return taken[0] + 1 if taken[0] == min_value else min_value

    if len(taken) > 1 and taken[0] == min_value:
        for current, following in zip(taken, taken[1:]):
            if current + 1 != following:
                return current + 1
        if taken[-1] == max_value:
            raise NoAvailableValuesError()
        return taken[-1] + 1

    return min_value


class MapDB:
    """Assigns each key a unique value and keeps the mapping in a JSON file."""

    def __init__(
        self, path: str | os.PathLike, min_value: int = MIN_VALUE, max_value: int = MAX_VALUE
    ) -> None:
        self.path = os.fspath(path)
        self.lockfile = self.path + ".lock"
        self.min_value = min_value
        self.max_value = max_value

    def _load(self) -> dict[str, int]:
        with open(self.path, "rb") as fh:
            data = json.loads(fh.read())
        return dict(data) if data else {}

    def _save(self, mapping: dict[str, int]) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            fh.write(json.dumps(mapping, indent=4, sort_keys=True))

    def get(self, key: str) -> int:
        """Return the value for *key*, allocating and storing a new one if needed."""
        os.makedirs(os.path.dirname(self.path) or ".", mode=0o755, exist_ok=True)
        with FileLocker(self.lockfile) as lock:
            lock.acquire(_LOCK_TIMEOUT)
            try:
                mapping = self._load()
            except FileNotFoundError:
                mapping = {}

            if key in mapping:
                return mapping[key]

            mapping[key] = get_vacant_value(mapping.values(), self.min_value, self.max_value)
            self._save(mapping)
            return mapping[key]

    def delete(self, key: str) -> int | None:
        """Remove *key* and return its value, or None if it was not stored."""
        with FileLocker(self.lockfile) as lock:
            lock.acquire(_LOCK_TIMEOUT)
            try:
                mapping = self._load()
            except FileNotFoundError:
                return None

            if key not in mapping:
                return None
            value = mapping.pop(key)
            self._save(mapping)
            return value