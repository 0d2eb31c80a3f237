"""Pace descriptor model.

A pace descriptor such as ``100,200:4`` is parsed into a :class:`PacePlan`:
an ordered sequence of :class:`PaceSpec` phases, each with a target rate in
requests per second and a duration in seconds.
"""

from __future__ import annotations

from pacebench.pace.parser import parse_pace, parse_token
from pacebench.pace.plan import PacePlan
from pacebench.pace.spec import DEFAULT_DURATION_SECONDS, PaceSpec

__all__ = [
    "DEFAULT_DURATION_SECONDS",
    "PacePlan",
    "PaceSpec",
    "parse_pace",
    "parse_token",
]
