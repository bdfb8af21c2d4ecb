"""Tests for duration classification and ordering."""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from autorip.analyze import (
    DEFAULT_DISTRIBUTIONS,
    Distribution,
    classify_duration,
    disc_likely_contains,
    parse_hhmmss,
)

from builders import build_title


class TestParseHhmmss:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1:00:00", timedelta(hours=1)),
            ("0:22:00", timedelta(minutes=22)),
            ("3:14:15", timedelta(hours=3, minutes=14, seconds=15)),
            ("00:00:01", timedelta(seconds=1)),
            ("120:00:00", timedelta(hours=120)),
        ],
    )
    def test_valid(self, text: str, expected: timedelta) -> None:
        assert parse_hhmmss(text) == expected

    @pytest.mark.parametrize("text", ["", "1:00", "abc", "1:60:00", "1:00:60", "-1:00:00"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_hhmmss(text)


class TestClassifyDuration:
    def test_long_title_is_movie(self) -> None:
        kind, likelihood = classify_duration(parse_hhmmss("3:14:15"))
        assert kind == "movie"
        assert likelihood > 1.0

    def test_short_title_is_episode(self) -> None:
        kind, likelihood = classify_duration(parse_hhmmss("0:22:00"))
        assert kind == "tvEpisode"
        assert likelihood > 1.0

    def test_zero_density_gives_infinite_likelihood(self) -> None:
        dists = {"a": Distribution(1.0, 0.001), "b": Distribution(1000.0, 0.001)}
        kind, likelihood = classify_duration(timedelta(minutes=1), dists)
        assert kind == "a"
        assert math.isinf(likelihood)

    def test_no_distributions(self) -> None:
        with pytest.raises(ValueError):
            classify_duration(timedelta(minutes=1), {})

    def test_defaults_are_read_only(self) -> None:
        with pytest.raises(TypeError):
            DEFAULT_DISTRIBUTIONS["movie"] = Distribution(1.0, 1.0)  # type: ignore[index]


class TestDiscLikelyContains:
    def test_longest_first(self) -> None:
        titles = {
            0: build_title("0:22:00"),
            1: build_title("3:14:15"),
            2: build_title("1:30:00"),
        }
        scores = disc_likely_contains(titles)
        assert [s.title_index for s in scores] == [1, 2, 0]
        assert [s.type for s in scores] == ["movie", "movie", "tvEpisode"]

    def test_two_shorts_and_a_feature(self) -> None:
        """The feature leads; the short titles follow, longer first."""
        titles = {
            0: build_title("0:05:00"),
            1: build_title("0:06:00"),
            2: build_title("3:14:15"),
        }
        scores = disc_likely_contains(titles)
        assert [s.type for s in scores] == ["movie", "tvEpisode", "tvEpisode"]
        assert [s.title_index for s in scores] == [2, 1, 0]

    def test_extended_cut_wins(self) -> None:
        """Of two cuts of a film the longer one is the best guess."""
        titles = {0: build_title("1:58:00"), 3: build_title("2:11:30")}
        assert disc_likely_contains(titles)[0].title_index == 3

    def test_equal_durations_ordered_by_index(self) -> None:
        titles = {5: build_title("0:22:00"), 2: build_title("0:22:00"), 9: build_title("0:22:00")}
        assert [s.title_index for s in disc_likely_contains(titles)] == [2, 5, 9]

    def test_empty(self) -> None:
        assert disc_likely_contains({}) == []

    def test_bad_duration_names_title(self) -> None:
        with pytest.raises(ValueError, match="title 4"):
            disc_likely_contains({4: build_title("soon")})

    def test_custom_distributions(self) -> None:
        dists = {"short": Distribution(5.0, 2.0), "long": Distribution(60.0, 10.0)}
        (score,) = disc_likely_contains({0: build_title("0:04:00")}, dists)
        assert score.type == "short"
        assert score.duration == timedelta(minutes=4)
