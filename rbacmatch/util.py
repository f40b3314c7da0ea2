"""General helpers for policy matching: comparisons, eval rules and an LRU cache."""

from __future__ import annotations

import json
import re
import threading
from collections import OrderedDict
from typing import Any, Hashable, Iterable, Mapping, Sequence

__all__ = [
    "json_to_map",
    "escape_assertion",
    "remove_comments",
    "array_equals",
    "array_2d_equals",
    "sort_array_2d",
    "sorted_array_2d_equals",
    "array_remove_duplicates",
    "array_to_string",
    "params_to_string",
    "set_equals",
    "set_equals_int",
    "set_2d_equals",
    "join_slice",
    "set_subtract",
    "has_eval",
    "replace_eval",
    "replace_eval_with_map",
    "get_eval_value",
    "remove_duplicate_element",
    "LRUCache",
    "SyncLRUCache",
]

_EVAL_RE = re.compile(r"\beval\((?P<rule>[^)]*)\)", re.ASCII)
_ESCAPE_ASSERTION_RE = re.compile(r"\b((r|p)[0-9]*)\.", re.ASCII)


def json_to_map(json_str: str) -> dict[str, Any]:
    """Decode a JSON object into a dict; raise ValueError otherwise."""
    result = json.loads(json_str)
    if not isinstance(result, dict):
        raise ValueError("JSON value is not an object")
    return result


def escape_assertion(s: str) -> str:
    """Replace the dot after r/p tokens (e.g. ``r.sub``) with an underscore."""
    return _ESCAPE_ASSERTION_RE.sub(lambda m: m.group(0).replace(".", "_", 1), s)


def remove_comments(s: str) -> str:
    """Strip a trailing ``#`` comment from a line."""
    pos = s.find("#")
    if pos == -1:
        return s
    return s[:pos].strip()


def array_equals(a: Sequence[str], b: Sequence[str]) -> bool:
    """Return True if both sequences hold the same items in the same order."""
    return list(a) == list(b)


def array_2d_equals(a: Sequence[Sequence[str]], b: Sequence[Sequence[str]]) -> bool:
    """Return True if both 2-D sequences are identical row by row."""
    return len(a) == len(b) and all(array_equals(x, y) for x, y in zip(a, b))


def _row_key(width: int):
    return lambda row: tuple(row[:width])


def sort_array_2d(arr: list[list[str]]) -> None:
    """Sort rows in place, comparing up to the length of the first row."""
    if arr:
        arr.sort(key=_row_key(len(arr[0])))


def sorted_array_2d_equals(a: Sequence[Sequence[str]], b: Sequence[Sequence[str]]) -> bool:
    """Return True if both 2-D sequences hold the same rows in any order."""
    if len(a) != len(b):
        return False
    copy_a = list(a)
    copy_b = list(b)
    sort_array_2d(copy_a)
    sort_array_2d(copy_b)
    return array_2d_equals(copy_a, copy_b)


def array_remove_duplicates(s: list[str]) -> None:
    """Remove repeated items from the list in place, keeping first occurrences."""
    s[:] = dict.fromkeys(s)


def array_to_string(s: Iterable[str]) -> str:
    """Join items with ``", "``."""
    return ", ".join(s)


def params_to_string(*args: str) -> str:
    """Join the arguments with ``", "``."""
    return ", ".join(args)


def set_equals(a: Sequence[str], b: Sequence[str]) -> bool:
    """Return True if both sequences hold the same items, ignoring order."""
    return len(a) == len(b) and sorted(a) == sorted(b)


def set_equals_int(a: Sequence[int], b: Sequence[int]) -> bool:
    """Return True if both integer sequences hold the same items, ignoring order."""
    return len(a) == len(b) and sorted(a) == sorted(b)


def set_2d_equals(a: Sequence[Sequence[str]], b: Sequence[Sequence[str]]) -> bool:
    """Return True if both collections hold the same rows, ignoring all order."""
    if len(a) != len(b):
        return False
    joined_a = [", ".join(sorted(row)) for row in a]
    joined_b = [", ".join(sorted(row)) for row in b]
    return set_equals(joined_a, joined_b)


def join_slice(a: str, *args: str) -> list[str]:
    """Return a new list holding ``a`` followed by the other arguments."""
    return [a, *args]


def set_subtract(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Return the items of ``a`` that are not in ``b``, in order."""
    excluded = set(b)
    return [x for x in a if x not in excluded]


def has_eval(s: str) -> bool:
    """Return True if the matcher text contains an ``eval(...)`` call."""
    return _EVAL_RE.search(s) is not None


def replace_eval(s: str, rule: str) -> str:
    """Replace every ``eval(...)`` call with the parenthesised rule."""
    replacement = f"({rule})"
    return _EVAL_RE.sub(lambda _m: replacement, s)


def replace_eval_with_map(src: str, sets: Mapping[str, str] | None) -> str:
    """Replace each ``eval(name)`` whose name is in ``sets`` with its value."""
    lookup = sets or {}

    def _substitute(match: re.Match[str]) -> str:
        return lookup.get(match.group("rule"), match.group(0))

    return _EVAL_RE.sub(_substitute, src)


def get_eval_value(s: str) -> list[str]:
    """Return the arguments of every ``eval(...)`` call, in order."""
    return [m.group("rule") for m in _EVAL_RE.finditer(s)]


def remove_duplicate_element(s: Iterable[str]) -> list[str]:
    """Return a new list without repeated items, keeping first occurrences."""
    return list(dict.fromkeys(s))


class LRUCache:
    """A fixed-capacity cache that evicts the least recently used entry.

    Putting a key that is already cached only marks it as most recently
    used; the stored value is kept.
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._data: OrderedDict[Hashable, Any] = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value and mark it as recently used, or ``default``."""
        if key not in self._data:
            return default
        self._data.move_to_end(key)
        return self._data[key]

    def put(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the least recently used entry when full."""
        if key in self._data:
            self._data.move_to_end(key)
            return
        if self._data and len(self._data) >= self.capacity:
            self._data.popitem(last=False)
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def values(self) -> list[Any]:
        """Return the cached values, least recently used first."""
        return list(self._data.values())


class SyncLRUCache(LRUCache):
    """An LRUCache whose reads and writes are guarded by a lock."""

    def __init__(self, capacity: int) -> None:
        super().__init__(capacity)
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            return super().get(key, default)

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            super().put(key, value)