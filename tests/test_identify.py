"""Tests for catalog cross-referencing and rip plans."""

from __future__ import annotations

from datetime import timedelta

from autorip.analyze import Identifier, build_query
from autorip.analyze.identify import runtime_ratio
from autorip.model import DiscInfo, Score

from builders import FakeIndex, build_catalog_title, build_disc, build_title


def _score(minutes: float, kind: str = "movie", index: int = 0) -> Score:
    return Score(
        title_index=index, duration=timedelta(minutes=minutes), type=kind, likelihood=2.0
    )


class TestBuildQuery:
    def test_uses_name(self) -> None:
        assert build_query(DiscInfo(name="Some Film", volume_name="SOME_FILM")) == "Some Film"

    def test_blank_name_falls_back_to_volume(self) -> None:
        assert build_query(DiscInfo(name="   ", volume_name="SOME_FILM")) == "SOME FILM"

    def test_escapes_query_syntax(self) -> None:
        disc = DiscInfo(name="Alien: Director's Cut - Disc 1")
        assert build_query(disc) == "Alien\\: Director's Cut \\- Disc 1"


class TestRuntimeRatio:
    def test_symmetric(self) -> None:
        assert runtime_ratio(100, _score(80)) == runtime_ratio(80, _score(100)) == 0.8

    def test_unknown_runtime(self) -> None:
        assert runtime_ratio(0, _score(90)) == 0.0
        assert runtime_ratio(0, _score(0)) == 0.0


class TestXref:
    def test_no_scores_skips_search(self) -> None:
        index = FakeIndex(build_catalog_title("tt1", "Film", runtime_minutes=90))
        assert Identifier(index).xref(DiscInfo(name="Film"), []) is None
        assert index.queries == []

    def test_first_matching_runtime_wins(self) -> None:
        """A remake with a different runtime is skipped for the right one."""
        index = FakeIndex(
            build_catalog_title("tt1", "Film", runtime_minutes=95, start_year=1962),
            build_catalog_title("tt2", "Film", runtime_minutes=121, start_year=2019),
            build_catalog_title("tt3", "Film", runtime_minutes=121, start_year=2020),
        )
        found = Identifier(index).xref(DiscInfo(name="Film"), [_score(121.5)])
        assert found is not None
        assert found.tconst == "tt2"
        assert index.queries == ["Film"]

    def test_wrong_type_skipped(self) -> None:
        index = FakeIndex(
            build_catalog_title("tt1", "Film", title_type="tvSeries", runtime_minutes=90),
            build_catalog_title("tt2", "Film", title_type="short", runtime_minutes=90),
            build_catalog_title("tt3", "Film", runtime_minutes=90),
        )
        assert Identifier(index).xref(DiscInfo(name="Film"), [_score(90)]).tconst == "tt3"

    def test_series_record_rejected_for_episode(self) -> None:
        """A series record never stands in for an episode guess."""
        index = FakeIndex(
            build_catalog_title("tt2", "Show", title_type="tvSeries", runtime_minutes=22),
        )
        assert Identifier(index).xref(DiscInfo(name="Show"), [_score(22, "tvEpisode")]) is None

    def test_episode_record_accepted(self) -> None:
        index = FakeIndex(
            build_catalog_title("tt2", "Show", title_type="tvSeries", runtime_minutes=22),
            build_catalog_title("tt1", "Pilot", title_type="tvEpisode", runtime_minutes=22),
        )
        found = Identifier(index).xref(DiscInfo(name="Show"), [_score(22, "tvEpisode")])
        assert found.tconst == "tt1"

    def test_movie_found_after_episode_and_series(self) -> None:
        """Mixed results are walked in order until the movie of matching length."""
        index = FakeIndex(
            build_catalog_title("tt1", "Film", title_type="tvEpisode", runtime_minutes=22),
            build_catalog_title("tt2", "Film", title_type="tvSeries", runtime_minutes=100),
            build_catalog_title("tt3", "Film", runtime_minutes=100),
        )
        found = Identifier(index).xref(DiscInfo(name="Film"), [_score(100)])
        assert found.tconst == "tt3"

    def test_ratio_must_exceed_threshold(self) -> None:
        index = FakeIndex(build_catalog_title("tt1", "Film", runtime_minutes=100))
        assert Identifier(index).xref(DiscInfo(name="Film"), [_score(97.5)]) is None
        assert Identifier(index).xref(DiscInfo(name="Film"), [_score(98)]).tconst == "tt1"

    def test_no_results(self) -> None:
        assert Identifier(FakeIndex()).xref(DiscInfo(name="Film"), [_score(90)]) is None


class TestMakePlan:
    def test_movie_rips_best_title_only(self) -> None:
        disc = build_disc(
            build_title("1:58:00"),
            build_title("2:01:00"),
            build_title("0:03:00", streams=("Video",)),
            name="Film",
        )
        index = FakeIndex(build_catalog_title("tt1", "Film", runtime_minutes=121))
        plan = Identifier(index).make_plan(disc)
        assert plan.identity.tconst == "tt1"
        assert [s.title_index for s in plan.rip_titles] == [1]
        assert plan.disc_info is disc

    def test_episode_identity_rips_every_title(self) -> None:
        disc = build_disc(
            build_title("0:22:30"),
            build_title("0:22:10"),
            build_title("0:22:40"),
            name="Show",
        )
        index = FakeIndex(
            build_catalog_title("tt9", "Show", title_type="tvEpisode", runtime_minutes=23)
        )
        plan = Identifier(index).make_plan(disc)
        assert plan.identity.tconst == "tt9"
        assert [s.title_index for s in plan.rip_titles] == [2, 0, 1]

    def test_unidentified_keeps_all_candidates(self) -> None:
        disc = build_disc(build_title("1:30:00"), build_title("1:45:00"), name="Mystery")
        plan = Identifier(FakeIndex()).make_plan(disc)
        assert plan.identity is None
        assert [s.title_index for s in plan.rip_titles] == [1, 0]

    def test_empty_disc(self) -> None:
        index = FakeIndex()
        plan = Identifier(index).make_plan(DiscInfo())
        assert plan.identity is None
        assert plan.rip_titles == ()
        assert index.queries == []
