"""Parser for pace descriptors such as ``100,200:4,100:1,500:60``."""

from __future__ import annotations

import re

from pacebench._internal.errors import FormatError
from pacebench.pace.plan import PacePlan
from pacebench.pace.spec import DEFAULT_DURATION_SECONDS, PaceSpec

_DIGITS = re.compile(r"[0-9]+")


def _parse_field(token: str, value: str, name: str) -> int:
    """Parse one numeric field of a token as a strictly positive integer.

    Raises:
        FormatError: If *value* is not a run of ASCII digits or is zero.
    """
    if not _DIGITS.fullmatch(value):
        raise FormatError(token, f"{name} must be a non-negative integer, got {value!r}")
    number = int(value)
    if number == 0:
        raise FormatError(token, f"{name} must be greater than zero")
    return number


def parse_token(token: str) -> PaceSpec:
    """Parse a single ``rate[:durationSeconds]`` token.

    The default duration applies only when the token has no colon;
    ``"100:"`` is rejected rather than defaulted.

    Raises:
        FormatError: If the token is malformed.
    """
    stripped = token.strip()
    if not stripped:
        raise FormatError(token, "empty phase")

    fields = stripped.split(":")
    if len(fields) > 2:
        raise FormatError(token, "expected rate or rate:durationSeconds")

    rate = _parse_field(stripped, fields[0].strip(), "rate")
    duration = DEFAULT_DURATION_SECONDS
    if len(fields) == 2:
        duration = _parse_field(stripped, fields[1].strip(), "duration")

    return PaceSpec(rate=rate, duration=duration)


def parse_pace(descriptor: str) -> PacePlan:
    """Parse a comma-separated pace descriptor into a plan.

    Grammar: ``phase ("," phase)*`` with ``phase := rate (":" durationSeconds)?``.
    Surrounding whitespace is ignored. Parsing is purely syntactic.

    Example::

        plan = parse_pace("100,200:4")
        # [PaceSpec(rate=100, duration=10), PaceSpec(rate=200, duration=4)]

    Args:
        descriptor: The pace descriptor.

    Returns:
        The parsed, non-empty PacePlan.

    Raises:
        FormatError: On the first malformed token, including empty input.
    """
    if not descriptor.strip():
        raise FormatError(descriptor, "pace descriptor is empty")
    return PacePlan([parse_token(token) for token in descriptor.split(",")])
