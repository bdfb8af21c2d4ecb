from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType

from autorip.model import Score, TitleInfo

log = logging.getLogger(__name__)

_HHMMSS = re.compile(r"(\d+):(\d{1,2}):(\d{1,2})")


@dataclass(slots=True, frozen=True)
class Distribution:
    """Normal distribution of runtimes, in minutes."""

    mean: float
    stddev: float

    def pdf(self, minutes: float) -> float:
        return gaussian_pdf(minutes, self.mean, self.stddev)


# Fit on 2025-07-12 against the IMDb title.basics runtimes available then.
DEFAULT_DISTRIBUTIONS: Mapping[str, Distribution] = MappingProxyType(
    {
        "movie": Distribution(mean=88.96, stddev=27.35),
        "tvEpisode": Distribution(mean=39.04, stddev=29.34),
    }
)


def gaussian_pdf(sample: float, mean: float, stddev: float) -> float:
    z = (sample - mean) / stddev
    return math.exp(-z * z / 2) / (stddev * math.sqrt(2 * math.pi))


def parse_hhmmss(text: str) -> timedelta:
    """Parse ``h:mm:ss`` (hours unbounded) into a timedelta."""
    m = _HHMMSS.fullmatch(text.strip())
    if m is None:
        raise ValueError(f"invalid duration {text!r}, want h:mm:ss")
    hours, minutes, seconds = (int(g) for g in m.groups())
    if minutes >= 60 or seconds >= 60:
        raise ValueError(f"invalid duration {text!r}, minutes and seconds must be < 60")
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def classify_duration(
    duration: timedelta, distributions: Mapping[str, Distribution] = DEFAULT_DISTRIBUTIONS
) -> tuple[str, float]:
    """Return *(type, likelihood)* for a title of the given *duration*.

    The type is the distribution with the highest density at *duration*; the
    likelihood is the ratio of that density to the lowest one.
    """
    if not distributions:
        raise ValueError("no reference distributions")
    minutes = duration.total_seconds() / 60
    densities = sorted((dist.pdf(minutes), name) for name, dist in distributions.items())
    low, _ = densities[0]
    high, name = densities[-1]
    if low == 0.0:
        return name, math.inf
    return name, high / low


def disc_likely_contains(
    titles: Mapping[int, TitleInfo],
    distributions: Mapping[str, Distribution] = DEFAULT_DISTRIBUTIONS,
) -> list[Score]:
    """Score each title and return the scores best guess first.

    *titles* is the ``{index: title}`` mapping produced by
    :func:`~autorip.analyze.aspects.filter_disc_info`. Types are the ones of
    the content on the disc, so a TV disc yields ``tvEpisode``, never
    ``tvSeries``.

    Ordering: longest duration first, then highest likelihood, then lowest
    title index.
    """
    scores: list[Score] = []
    for index, title in titles.items():
        try:
            duration = parse_hhmmss(title.duration)
        except ValueError as e:
            raise ValueError(f"title {index}: {e}") from e
        kind, likelihood = classify_duration(duration, distributions)
        scores.append(
            Score(title_index=index, duration=duration, type=kind, likelihood=likelihood)
        )

    scores.sort(key=lambda s: (-s.duration, -s.likelihood, s.title_index))
    for s in scores:
        log.info(
            "title %d likely %s (score=%f) [%s]", s.title_index, s.type, s.likelihood, s.duration
        )
    return scores
