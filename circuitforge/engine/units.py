"""Parsing of component values written with SPICE-style SI suffixes."""

from __future__ import annotations

import re

SI_SUFFIXES = {
    "f": 1e-15,
    "p": 1e-12,
    "n": 1e-9,
    "u": 1e-6,
    "µ": 1e-6,
    "m": 1e-3,
    "k": 1e3,
    "meg": 1e6,
    "g": 1e9,
    "t": 1e12,
}

_VALUE_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([a-zA-Zµ]*)\s*$")


def parse_value(value: float | int | str) -> float:
    """
    Convert a component value to float.

    Numbers pass through. Strings may carry a scale suffix followed by
    an optional unit, e.g. "10k", "4.7uF", "1meg", "100nH".

    Raises:
        ValueError: if the string is not a number with an optional suffix
    """
    if isinstance(value, (int, float)):
        return float(value)

    match = _VALUE_RE.match(str(value))
    if match is None:
        raise ValueError(f"Cannot parse component value {value!r}")

    number, suffix = match.groups()
    scale = 1.0
    lowered = suffix.lower()
    # "meg" must win over "m"
    if lowered.startswith("meg"):
        scale = SI_SUFFIXES["meg"]
    elif lowered and lowered[0] in SI_SUFFIXES:
        scale = SI_SUFFIXES[lowered[0]]
    return float(number) * scale
