from __future__ import annotations

import logging
from collections.abc import Mapping

from autorip.analyze.aspects import filter_disc_info
from autorip.analyze.classify import DEFAULT_DISTRIBUTIONS, Distribution, disc_likely_contains
from autorip.imdb.catalog import SearchIndex
from autorip.model import CatalogTitle, DiscInfo, Plan, Score, TitleInfo

log = logging.getLogger(__name__)

# Runtime agreement needed to accept a catalog entry; tight enough to tell
# remakes apart.
_MIN_RUNTIME_RATIO = 0.975

# Series records group episodes; only top-level titles of the classified
# type can be accepted.
_CONTAINER_TYPE = "tvSeries"


def build_query(disc: DiscInfo) -> str:
    """Build a catalog query from the disc's name.

    Some discs have a name made entirely of spaces; those fall back to the
    volume name. Volume names use ``_`` where titles use spaces. ``:`` is a
    field selector and ``-`` a negation in the query syntax, so both are
    escaped.
    """
    name = disc.name.strip()
    if not name:
        name = disc.volume_name
    query = name.replace("_", " ")
    query = query.replace(":", "\\:")
    return query.replace("-", "\\-")


def runtime_ratio(runtime_minutes: int, best: Score) -> float:
    runtime_s = runtime_minutes * 60.0
    best_s = best.duration.total_seconds()
    low, high = sorted((runtime_s, best_s))
    if high == 0:
        return 0.0
    return low / high


class Identifier:
    """Resolves a disc to a catalog title and builds its rip plan."""

    def __init__(
        self,
        index: SearchIndex,
        distributions: Mapping[str, Distribution] = DEFAULT_DISTRIBUTIONS,
    ) -> None:
        self.index = index
        self.distributions = distributions

    def filter_disc_info(self, disc: DiscInfo) -> dict[int, TitleInfo]:
        return filter_disc_info(disc)

    def disc_likely_contains(self, titles: Mapping[int, TitleInfo]) -> list[Score]:
        return disc_likely_contains(titles, self.distributions)

    def xref(self, disc: DiscInfo, scores: list[Score]) -> CatalogTitle | None:
        """Find the catalog entry matching the best-guess score.

        Assumes the movie/episode classification is right and accepts the
        first result of that type whose runtime is close enough to the
        best-guess title. Returns None when nothing qualifies.
        """
        if not scores:
            log.info("No candidate titles, skipping catalog search")
            return None
        best = scores[0]
        query = build_query(disc)
        log.info("Searching %r", query)

        with self.index.search(query) as results:
            for result in results:
                entry = result.entry
                if entry.title_type == _CONTAINER_TYPE:
                    log.debug("Skipping series %s", entry.tconst)
                    continue
                if entry.title_type != best.type:
                    log.debug(
                        "Skipping %s (got %s, want %s)", entry.tconst, entry.title_type, best.type
                    )
                    continue
                ratio = runtime_ratio(entry.runtime_minutes, best)
                if ratio > _MIN_RUNTIME_RATIO:
                    log.info("Found [%s] %s", entry.tconst, entry.primary_title)
                    return entry
                log.debug("Skipping %s, bad ratio %f", entry.primary_title, ratio)
        log.info("No catalog match for %r", query)
        return None

    def make_plan(self, disc: DiscInfo) -> Plan:
        titles = self.filter_disc_info(disc)
        likely = self.disc_likely_contains(titles)
        identity = self.xref(disc, likely)
        rip_titles = likely
        if identity is not None and identity.title_type == "movie":
            # Only the best guess is ripped for a movie, even when the disc
            # carries several cuts of it.
            rip_titles = likely[:1]
        return Plan(identity=identity, disc_info=disc, rip_titles=tuple(rip_titles))
