"""Event-name validation and wildcard path matching."""

from __future__ import annotations

import re
from functools import lru_cache

WILDCARD = "*"
ANY_NODE = "*"
ALL_NODE = "**"

_GOOD_NAME_PATTERN = r"^[a-zA-Z][\w\-.*]*$"
_GOOD_NAME_RE = re.compile(r"[a-zA-Z][\w\-.*]*", re.ASCII)


class EventError(Exception):
    """Raised on invalid event names, listeners or registrations."""


class _BadPattern(ValueError):
    pass


def _take_char(pattern: str, pos: int) -> tuple[str, int]:
    """Read one (possibly escaped) character of a character class."""
    if pos >= len(pattern) or pattern[pos] in "-]":
        raise _BadPattern(pattern)
    if pattern[pos] == "\\":
        pos += 1
        if pos >= len(pattern):
            raise _BadPattern(pattern)
    char = pattern[pos]
    pos += 1
    if pos >= len(pattern):
        # a class must be closed by "]"
        raise _BadPattern(pattern)
    return char, pos


def _parse_class(pattern: str, pos: int) -> tuple[str, int]:
    negated = pos < len(pattern) and pattern[pos] == "^"
    if negated:
        pos += 1
    ranges: list[str] = []
    count = 0
    while True:
        if pos < len(pattern) and pattern[pos] == "]" and count > 0:
            pos += 1
            break
        low, pos = _take_char(pattern, pos)
        high = low
        if pattern[pos] == "-":
            high, pos = _take_char(pattern, pos + 1)
        if low <= high:
            ranges.append(f"{re.escape(low)}-{re.escape(high)}")
        count += 1
    if not ranges:
        return ("(?s:.)" if negated else "(?!)"), pos
    return "[" + ("^" if negated else "") + "".join(ranges) + "]", pos


@lru_cache(maxsize=512)
def _compile_path_pattern(pattern: str) -> re.Pattern[str] | None:
    parts: list[str] = []
    pos = 0
    try:
        while pos < len(pattern):
            char = pattern[pos]
            if char == "*":
                parts.append("[^/]*")
                pos += 1
            elif char == "?":
                parts.append("[^/]")
                pos += 1
            elif char == "\\":
                pos += 1
                if pos >= len(pattern):
                    raise _BadPattern(pattern)
                parts.append(re.escape(pattern[pos]))
                pos += 1
            elif char == "[":
                part, pos = _parse_class(pattern, pos + 1)
                parts.append(part)
            else:
                parts.append(re.escape(char))
                pos += 1
    except _BadPattern:
        return None
    return re.compile("".join(parts))


def match_node_path(pattern: str, s: str, sep: str) -> bool:
    """Match an event name against a node pattern.

    ``*`` matches any run of characters up to ``sep``; ``**`` matches
    everything to the end and is only honoured at the start or end.
    """
    if pattern == WILDCARD:
        return True

    pos = pattern.find(ALL_NODE)
    if pos >= 0:
        if pos == 0:
            return s.endswith(pattern[2:])
        return s.startswith(pattern[:-2])

    compiled = _compile_path_pattern(pattern.replace(sep, "/"))
    if compiled is None:
        return False
    return compiled.fullmatch(s.replace(sep, "/")) is not None


def good_name(name: str, is_reg: bool) -> str:
    """Validate and normalise an event name.

    ``is_reg`` is true when registering a listener, which additionally
    allows the bare wildcards and patterns starting with ``**``.
    """
    name = name.strip()
    if not name:
        raise EventError("event: the event name cannot be empty")

    if is_reg:
        if name in (ALL_NODE, WILDCARD):
            return WILDCARD
        if name.startswith(ALL_NODE):
            return name

    if _GOOD_NAME_RE.fullmatch(name) is None:
        raise EventError(f"event: name is invalid, must match regex:{_GOOD_NAME_PATTERN}")
    return name