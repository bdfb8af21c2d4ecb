"""Main-feature detection and identity resolution."""

from __future__ import annotations

from autorip.analyze.aspects import aspects_of, filter_disc_info, score_aspects
from autorip.analyze.classify import (
    DEFAULT_DISTRIBUTIONS,
    Distribution,
    classify_duration,
    disc_likely_contains,
    parse_hhmmss,
)
from autorip.analyze.identify import Identifier, build_query

__all__ = [
    "aspects_of",
    "score_aspects",
    "filter_disc_info",
    "parse_hhmmss",
    "classify_duration",
    "disc_likely_contains",
    "Distribution",
    "DEFAULT_DISTRIBUTIONS",
    "build_query",
    "Identifier",
]
