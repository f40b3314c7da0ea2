"""Built-in matching functions for policy expressions.

Each matcher has a plain form (``key_match``) and a checked form for use
from expressions (``key_match_func``).  The checked form validates its
arguments and raises :class:`ArgumentError` when they are wrong.
"""

from __future__ import annotations

import calendar
import functools
import ipaddress
import re
from datetime import datetime, timezone
from typing import Any, Callable

__all__ = [
    "ArgumentError",
    "key_match",
    "key_match_func",
    "key_get",
    "key_get_func",
    "key_match2",
    "key_match2_func",
    "key_get2",
    "key_get2_func",
    "key_match3",
    "key_match3_func",
    "key_get3",
    "key_get3_func",
    "key_match4",
    "key_match4_func",
    "key_match5",
    "key_match5_func",
    "regex_match",
    "regex_match_func",
    "ip_match",
    "ip_match_func",
    "glob_match",
    "glob_match_func",
    "generate_g_function",
    "generate_conditional_g_function",
    "time_match",
    "time_match_func",
]

_KEY_MATCH2_RE = re.compile(r":[^/]+")
_BRACED_RE = re.compile(r"\{[^/]+\}")
_KEY_MATCH4_RE = re.compile(r"\{([^/]+)\}")
_KEY_GET3_RE = re.compile(r"\{[^/]+?\}")
_TIME_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2}) ([0-9]{2}):([0-9]{2}):([0-9]{2})")


class ArgumentError(ValueError):
    """Raised when a matcher function is called with the wrong arguments."""


def _validate_args(name: str, expected: int, args: tuple[Any, ...], strings: bool = True) -> None:
    if len(args) != expected:
        raise ArgumentError(f"{name}: expected {expected} arguments, but got {len(args)}")
    if strings and not all(isinstance(arg, str) for arg in args):
        raise ArgumentError(f"{name}: argument must be a string")


@functools.lru_cache(maxsize=None)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _anchored_match(key: str, body: str) -> bool:
    return _compile("^" + body + r"\Z").search(key) is not None


def key_match(key1: str, key2: str) -> bool:
    """Match ``key1`` against ``key2``, where a ``*`` in ``key2`` matches any suffix."""
    i = key2.find("*")
    if i == -1:
        return key1 == key2
    if len(key1) > i:
        return key1[:i] == key2[:i]
    return key1 == key2[:i]


def key_match_func(*args: Any) -> bool:
    _validate_args("keyMatch", 2, args)
    return key_match(args[0], args[1])


def key_get(key1: str, key2: str) -> str:
    """Return the part of ``key1`` matched by the ``*`` in ``key2``, or ``""``."""
    i = key2.find("*")
    if i == -1:
        return ""
    if len(key1) > i and key1[:i] == key2[:i]:
        return key1[i:]
    return ""


def key_get_func(*args: Any) -> str:
    _validate_args("keyGet", 2, args)
    return key_get(args[0], args[1])


def key_match2(key1: str, key2: str) -> bool:
    """Like :func:`key_match`, with ``:name`` path parameters in ``key2``."""
    key2 = key2.replace("/*", "/.*")
    key2 = _KEY_MATCH2_RE.sub(lambda _m: "[^/]+", key2)
    return _anchored_match(key1, key2)


def key_match2_func(*args: Any) -> bool:
    _validate_args("keyMatch2", 2, args)
    return key_match2(args[0], args[1])


def _extract(key1: str, pattern: str, keys: list[str], path_var: str) -> str:
    match = _compile("^" + pattern + r"\Z").search(key1)
    if match is None:
        return ""
    for position, name in enumerate(keys, start=1):
        if name == path_var:
            return match.group(position) or ""
    return ""


def key_get2(key1: str, key2: str, path_var: str) -> str:
    """Return the value in ``key1`` bound to the ``:path_var`` parameter of ``key2``."""
    key2 = key2.replace("/*", "/.*")
    keys = [token[1:] for token in _KEY_MATCH2_RE.findall(key2)]
    key2 = _KEY_MATCH2_RE.sub(lambda _m: "([^/]+)", key2)
    return _extract(key1, key2, keys, path_var)


def key_get2_func(*args: Any) -> str:
    _validate_args("keyGet2", 3, args)
    return key_get2(args[0], args[1], args[2])


def key_match3(key1: str, key2: str) -> bool:
    """Like :func:`key_match2`, with ``{name}`` path parameters."""
    key2 = key2.replace("/*", "/.*")
    key2 = _BRACED_RE.sub(lambda _m: "[^/]+", key2)
    return _anchored_match(key1, key2)


def key_match3_func(*args: Any) -> bool:
    _validate_args("keyMatch3", 2, args)
    return key_match3(args[0], args[1])


def key_get3(key1: str, key2: str, path_var: str) -> str:
    """Return the value in ``key1`` bound to the ``{path_var}`` parameter of ``key2``."""
    key2 = key2.replace("/*", "/.*")
    keys = [token[1:-1] for token in _KEY_GET3_RE.findall(key2)]
    key2 = _KEY_GET3_RE.sub(lambda _m: "([^/]+?)", key2)
    return _extract(key1, key2, keys, path_var)


def key_get3_func(*args: Any) -> str:
    _validate_args("keyGet3", 3, args)
    return key_get3(args[0], args[1], args[2])


def key_match4(key1: str, key2: str) -> bool:
    """Like :func:`key_match3`, but repeated ``{name}`` parameters must bind equal values."""
    key2 = key2.replace("/*", "/.*")
    tokens: list[str] = []

    def _capture(match: re.Match[str]) -> str:
        tokens.append(match.group(1))
        return "([^/]+)"

    key2 = _KEY_MATCH4_RE.sub(_capture, key2)
    match = _compile("^" + key2 + r"\Z").search(key1)
    if match is None:
        return False
    values = match.groups()
    if len(tokens) != len(values):
        raise ValueError("KeyMatch4: number of tokens is not equal to number of values")

    bound: dict[str, str | None] = {}
    for token, value in zip(tokens, values):
        if bound.setdefault(token, value) != value:
            return False
    return True


def key_match4_func(*args: Any) -> bool:
    _validate_args("keyMatch4", 2, args)
    return key_match4(args[0], args[1])


def key_match5(key1: str, key2: str) -> bool:
    """Like :func:`key_match3`, ignoring any query string in ``key1``."""
    key1 = key1.split("?", 1)[0]
    key2 = key2.replace("/*", "/.*")
    key2 = _BRACED_RE.sub(lambda _m: "[^/]+", key2)
    return _anchored_match(key1, key2)


def key_match5_func(*args: Any) -> bool:
    _validate_args("keyMatch5", 2, args)
    return key_match5(args[0], args[1])


def regex_match(key1: str, key2: str) -> bool:
    """Return True if the regular expression ``key2`` matches somewhere in ``key1``."""
    return _compile(key2).search(key1) is not None


def regex_match_func(*args: Any) -> bool:
    _validate_args("regexMatch", 2, args)
    return regex_match(args[0], args[1])


def _parse_ip(text: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    address = ipaddress.ip_address(text)
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def ip_match(ip1: str, ip2: str) -> bool:
    """Return True if ``ip1`` equals the address ``ip2`` or lies in the CIDR ``ip2``."""
    try:
        address = _parse_ip(ip1)
    except ValueError:
        raise ValueError("invalid argument: ip1 in IPMatch() function is not an IP address.") from None

    if "/" in ip2:
        try:
            network = ipaddress.ip_network(ip2, strict=False)
        except ValueError:
            pass
        else:
            if isinstance(network, ipaddress.IPv6Network) and isinstance(address, ipaddress.IPv4Address):
                return False
            return address in network

    try:
        other = _parse_ip(ip2)
    except ValueError:
        raise ValueError(
            "invalid argument: ip2 in IPMatch() function is neither an IP address nor a CIDR."
        ) from None
    return address == other


def ip_match_func(*args: Any) -> bool:
    _validate_args("ipMatch", 2, args)
    return ip_match(args[0], args[1])


# --- glob patterns -----------------------------------------------------------

_GLOB_ERROR = "syntax error in pattern"
_CLASS_SPECIAL = frozenset("\\]^[-&~|")


def _glob_error() -> ValueError:
    return ValueError(_GLOB_ERROR)


def _class_end(text: str, start: int) -> int:
    """Return the index of the ``]`` closing the class opened at ``start``."""
    j = start + 1
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == "]":
            return j
        j += 1
    raise _glob_error()


def _brace_end(text: str, start: int) -> int:
    """Return the index of the ``}`` closing the brace opened at ``start``."""
    depth = 0
    j = start
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "[":
            j = _class_end(text, j) + 1
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return j
        j += 1
    raise _glob_error()


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split on ``separator`` outside braces, classes and escapes."""
    parts: list[str] = []
    begin = 0
    j = 0
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            if j + 1 >= len(text):
                raise _glob_error()
            j += 2
            continue
        if ch == "[":
            j = _class_end(text, j) + 1
            continue
        if ch == "{":
            j = _brace_end(text, j) + 1
            continue
        if ch == separator:
            parts.append(text[begin:j])
            begin = j + 1
        j += 1
    parts.append(text[begin:])
    return parts


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    if not body:
        raise _glob_error()
    parts: list[str] = []
    chars = iter(body)
    for ch in chars:
        if ch == "\\":
            escaped = next(chars, None)
            if escaped is None:
                raise _glob_error()
            parts.append("\\" + escaped if escaped in _CLASS_SPECIAL else escaped)
        elif ch == "-":
            parts.append("-")
        else:
            parts.append("\\" + ch if ch in _CLASS_SPECIAL else ch)
    return "(?!/)[" + ("^" if negate else "") + "".join(parts) + "]"


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == "*":
            while i < len(segment) and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
            i += 1
        elif ch == "\\":
            if i + 1 >= len(segment):
                raise _glob_error()
            out.append(re.escape(segment[i + 1]))
            i += 2
        elif ch == "[":
            end = _class_end(segment, i)
            out.append(_translate_class(segment[i + 1 : end]))
            i = end + 1
        elif ch == "{":
            end = _brace_end(segment, i)
            alternatives = _split_top_level(segment[i + 1 : end], ",")
            out.append("(?:" + "|".join(_translate_segment(alt) for alt in alternatives) + ")")
            i = end + 1
        else:
            out.append(re.escape(ch))
            i += 1
    return "".join(out)


@functools.lru_cache(maxsize=None)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    segments: list[str] = []
    for segment in _split_top_level(pattern, "/"):
        if segment == "**" and segments and segments[-1] == "**":
            continue
        segments.append(segment)

    out: list[str] = []
    skip_separator = False
    last_index = len(segments) - 1
    for index, segment in enumerate(segments):
        last = index == last_index
        globstar = segment == "**"
        if globstar and last:
            out.append(".*" if index == 0 or skip_separator else "(?:/.*)?")
            break
        if index > 0 and not skip_separator:
            out.append("/")
        if globstar:
            out.append("(?:.*/)?")
        else:
            out.append(_translate_segment(segment))
        skip_separator = globstar

    try:
        return re.compile("".join(out), re.DOTALL)
    except re.error:
        raise _glob_error() from None


def glob_match(key1: str, key2: str) -> bool:
    """Return True if ``key1`` matches the glob pattern ``key2``.

    ``*`` and ``?`` never cross a ``/``; a path segment of ``**`` matches
    zero or more whole segments.  ``[...]`` classes, ``{a,b}`` alternatives
    and ``\\`` escapes are supported.  A malformed pattern raises ValueError.
    """
    return _compile_glob(key2).fullmatch(key1) is not None


def glob_match_func(*args: Any) -> bool:
    _validate_args("globMatch", 2, args)
    return glob_match(args[0], args[1])


# --- role functions ----------------------------------------------------------

def _has_link(rm: Any, name1: str, name2: str, domains: tuple[str, ...]) -> bool:
    try:
        return bool(rm.has_link(name1, name2, *domains))
    except Exception:  # a failing lookup counts as "no link"
        return False


def generate_g_function(rm: Any) -> Callable[..., bool]:
    """Build the memoised ``g(name1, name2[, domain])`` function over a role manager.

    ``rm`` needs a ``has_link(name1, name2, *domain)`` method; with ``None``
    the function reports whether the two names are equal.
    """
    memo: dict[tuple[str, ...], bool] = {}

    def g(*args: str) -> bool:
        key = tuple(args)
        try:
            return memo[key]
        except KeyError:
            pass
        name1, name2, *domains = args
        if rm is None:
            result = name1 == name2
        else:
            result = _has_link(rm, name1, name2, tuple(domains[:1]))
        memo[key] = result
        return result

    return g


def generate_conditional_g_function(crm: Any) -> Callable[..., bool]:
    """Build the ``g(name1, name2[, domain])`` function over a conditional role manager."""

    def g(*args: str) -> bool:
        name1, name2, *domains = args
        if crm is None:
            return name1 == name2
        return _has_link(crm, name1, name2, tuple(domains[:1]))

    return g


# --- time windows ------------------------------------------------------------

def _parse_time(text: str) -> tuple[int, int, int, int, int, int]:
    match = _TIME_RE.fullmatch(text)
    if match is None:
        raise ValueError(f'cannot parse "{text}" as "2006-01-02 15:04:05"')
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        raise ValueError(f'parsing time "{text}": month out of range')
    days = 29 if month == 2 and calendar.isleap(year) else (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)[month - 1]
    if not 1 <= day <= days:
        raise ValueError(f'parsing time "{text}": day out of range')
    if hour > 23:
        raise ValueError(f'parsing time "{text}": hour out of range')
    if minute > 59:
        raise ValueError(f'parsing time "{text}": minute out of range')
    if second > 59:
        raise ValueError(f'parsing time "{text}": second out of range')
    return year, month, day, hour, minute, second


def time_match(start_time: str, end_time: str) -> bool:
    """Return True if the current UTC time lies strictly between the two bounds.

    Bounds use the form ``YYYY-MM-DD HH:MM:SS``; ``"_"`` leaves a bound open.
    """
    now = datetime.now(timezone.utc)
    current = (now.year, now.month, now.day, now.hour, now.minute, now.second, now.microsecond)
    if start_time != "_" and not current > (*_parse_time(start_time), 0):
        return False
    if end_time != "_" and not current < (*_parse_time(end_time), 0):
        return False
    return True


def time_match_func(*args: str) -> bool:
    _validate_args("TimeMatch", 2, args, strings=False)
    return time_match(args[0], args[1])