"""Title catalog search.

The resolver only needs :class:`SearchIndex`: a query goes in, a lazy,
ranked, cancelable sequence of :class:`SearchResult` comes out.
:class:`CatalogIndex` is a small in-memory implementation over the IMDb
dataset files (``title.basics.tsv.gz``, ``title.episode.tsv.gz`` and
``title.ratings.tsv.gz``); :mod:`autorip.imdb.fetch` downloads them.
"""

from __future__ import annotations

import csv
import gzip
import logging
import re
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Protocol, Union

from autorip.model import CatalogTitle, Episode, SearchResult
from autorip.stream import Stream

log = logging.getLogger(__name__)

BASICS = "title.basics.tsv.gz"
EPISODES = "title.episode.tsv.gz"
RATINGS = "title.ratings.tsv.gz"
DATASETS = (BASICS, EPISODES, RATINGS)

# IMDb datasets use \N for missing values.
_NULL = "\\N"
_TOKEN = re.compile(r"\w+")

SearchResults = Stream[SearchResult]


class SearchIndex(Protocol):
    def search(self, query: str) -> SearchResults:
        """Return results ordered by relevance, then popularity."""
        ...


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens; backslash escapes in queries are dropped."""
    return _TOKEN.findall(text.replace("\\", " ").casefold())


def _opt_int(value: str) -> int | None:
    if value == _NULL or not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _tsv_rows(path: Path) -> Iterator[list[str]]:
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter="\t", quoting=csv.QUOTE_NONE)
        next(reader, None)  # header
        yield from reader


def read_basics(path: Union[str, Path]) -> Iterator[CatalogTitle]:
    for row in _tsv_rows(Path(path)):
        if len(row) != 9:
            raise ValueError(f"{path}: got {len(row)} columns, want 9: {row!r}")
        genres = () if row[8] == _NULL else tuple(row[8].split(","))
        yield CatalogTitle(
            tconst=row[0],
            title_type=row[1],
            primary_title=row[2],
            original_title=row[3],
            is_adult=row[4] == "1",
            start_year=_opt_int(row[5]),
            end_year=_opt_int(row[6]),
            runtime_minutes=_opt_int(row[7]) or 0,
            genres=genres,
        )


def read_ratings(path: Union[str, Path]) -> dict[str, tuple[float, int]]:
    result: dict[str, tuple[float, int]] = {}
    for row in _tsv_rows(Path(path)):
        if len(row) != 3:
            raise ValueError(f"{path}: got {len(row)} columns, want 3: {row!r}")
        result[row[0]] = (float(row[1]), int(row[2]))
    return result


def read_episodes(path: Union[str, Path]) -> Iterator[Episode]:
    for row in _tsv_rows(Path(path)):
        if len(row) != 4:
            raise ValueError(f"{path}: got {len(row)} columns, want 4: {row!r}")
        yield Episode(
            tconst=row[0],
            parent_tconst=row[1],
            season_number=_opt_int(row[2]),
            episode_number=_opt_int(row[3]),
        )


def _episode_order(e: Episode) -> tuple:
    # Unnumbered seasons and episodes sort first.
    return (
        e.season_number is not None,
        e.season_number or 0,
        e.episode_number is not None,
        e.episode_number or 0,
        e.tconst,
    )


class CatalogIndex:
    """In-memory title index.

    Relevance is the fraction of query tokens found in a title's primary or
    original title. Results with no matching token are dropped; the rest
    are ordered by relevance, then vote count, then tconst. Episode hits
    carry their parent series when it is indexed too.
    """

    def __init__(
        self,
        titles: Iterable[CatalogTitle],
        ratings: dict[str, tuple[float, int]] | None = None,
        episodes: Iterable[Episode] = (),
    ) -> None:
        self._ratings = ratings or {}
        self._entries: list[tuple[CatalogTitle, frozenset[str]]] = []
        self._by_tconst: dict[str, CatalogTitle] = {}
        for t in titles:
            tokens = frozenset(tokenize(t.primary_title)) | frozenset(tokenize(t.original_title))
            self._entries.append((t, tokens))
            self._by_tconst[t.tconst] = t
        self._parents: dict[str, str] = {}
        self._episodes: dict[str, list[Episode]] = {}
        for e in episodes:
            self._parents[e.tconst] = e.parent_tconst
            self._episodes.setdefault(e.parent_tconst, []).append(e)
        for children in self._episodes.values():
            children.sort(key=_episode_order)
        log.debug(
            "Catalog holds %d titles, %d series with episodes",
            len(self._entries),
            len(self._episodes),
        )

    @classmethod
    def from_dir(cls, directory: Union[str, Path]) -> CatalogIndex:
        """Load the IMDb dataset files from *directory*.

        Only rated titles are indexed, as upstream does. The episode file
        is optional; without it episodes are not linked to their series.
        """
        d = Path(directory)
        ratings = read_ratings(d / RATINGS)
        titles = (t for t in read_basics(d / BASICS) if t.tconst in ratings)
        episodes: Iterable[Episode] = ()
        if (d / EPISODES).exists():
            episodes = (e for e in read_episodes(d / EPISODES) if e.parent_tconst in ratings)
        else:
            log.warning("%s missing from %s; episodes will not be linked", EPISODES, d)
        return cls(titles, ratings, episodes)

    def __len__(self) -> int:
        return len(self._entries)

    def series_of(self, tconst: str) -> CatalogTitle | None:
        """Return the indexed series an episode belongs to, if any."""
        parent = self._parents.get(tconst)
        if parent is None:
            return None
        return self._by_tconst.get(parent)

    def episodes_of(self, series_tconst: str) -> list[Episode]:
        """Episodes of a series ordered by season, then episode number."""
        return list(self._episodes.get(series_tconst, ()))

    def rank(self, query: str) -> list[SearchResult]:
        wanted = set(tokenize(query))
        if not wanted:
            return []
        hits: list[SearchResult] = []
        for title, tokens in self._entries:
            matched = len(wanted & tokens)
            if not matched:
                continue
            rating, votes = self._ratings.get(title.tconst, (0.0, 0))
            hits.append(
                SearchResult(
                    entry=title,
                    score=matched / len(wanted),
                    num_votes=votes,
                    average_rating=rating,
                    series=self.series_of(title.tconst),
                )
            )
        hits.sort(key=lambda r: (-r.score, -r.num_votes, r.entry.tconst))
        return hits

    def search(self, query: str) -> SearchResults:
        def produce(emit: Callable[[SearchResult], None]) -> None:
            for hit in self.rank(query):
                emit(hit)

        return Stream(produce, name="catalog-search")
