"""
Pagination clamping for untrusted GraphQL variables.
"""

from __future__ import annotations

import math
from typing import Any, Set

FIRST_MIN, FIRST_MAX = 1, 200
SKIP_MIN, SKIP_MAX = 0, 100_000
MAX_IDS = 200


def clamp_number(value: Any, minimum: int, maximum: int) -> int:
    """Coerce ``value`` to an int within ``[minimum, maximum]``.

    Numeric strings are parsed. Anything non-finite or unparsable falls to
    ``minimum``.
    """
    number: Any = None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            number = None

    if number is None:
        return minimum
    if isinstance(number, float) and not math.isfinite(number):
        return minimum
    return min(max(int(number), minimum), maximum)


def _is_ids_key(key: Any) -> bool:
    return isinstance(key, str) and (key == "ids" or key.endswith("Ids"))


def clamp_pagination(variables: Any) -> Any:
    """Clamp ``first``, ``skip`` and ``ids``/``*Ids`` fields in place.

    Every mapping reachable from ``variables`` (through nested mappings and
    lists) is visited. Returns ``variables`` for convenience.
    """
    seen: Set[int] = set()

    def walk(node: Any) -> None:
        if isinstance(node, dict):
            if id(node) in seen:
                return
            seen.add(id(node))
            for key in list(node.keys()):
                if key == "first":
                    node[key] = clamp_number(node[key], FIRST_MIN, FIRST_MAX)
                elif key == "skip":
                    node[key] = clamp_number(node[key], SKIP_MIN, SKIP_MAX)
                elif _is_ids_key(key) and isinstance(node[key], list):
                    node[key] = node[key][:MAX_IDS]
                walk(node[key])
        elif isinstance(node, list):
            if id(node) in seen:
                return
            seen.add(id(node))
            for item in node:
                walk(item)

    walk(variables)
    return variables
