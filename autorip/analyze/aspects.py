from __future__ import annotations

import logging

from autorip.model import Aspect, DiscInfo, TitleInfo

log = logging.getLogger(__name__)

# Bit weights; each aspect occupies its own bit so sums never collide.
_VIDEO = Aspect(0x80, "has at least 1 video stream")
_AUDIO = Aspect(0x40, "has at least 1 audio stream")
_SUBTITLES = Aspect(0x20, "has at least 1 subtitle stream")
_CHAPTERS = Aspect(0x10, "has chapters")


def aspects_of(title: TitleInfo) -> list[Aspect]:
    """Return the structural aspects *title* exhibits."""
    stream_types = {si.type for si in title.streams}
    result: list[Aspect] = []
    if "Video" in stream_types:
        result.append(_VIDEO)
    if "Audio" in stream_types:
        result.append(_AUDIO)
    if "Subtitles" in stream_types:
        result.append(_SUBTITLES)
    if title.chapter_count:
        result.append(_CHAPTERS)
    return result


def score_aspects(aspects: list[Aspect]) -> int:
    return sum(a.score for a in aspects)


def filter_disc_info(disc: DiscInfo) -> dict[int, TitleInfo]:
    """Return ``{index: title}`` for the titles likely to hold main features.

    Every title is scored by its aspects (video, audio and subtitle streams,
    chapter markers) and only the titles with the highest score are kept.
    Ties are all kept: the episodes of a TV season score identically.
    """
    scores = {index: score_aspects(aspects_of(ti)) for index, ti in enumerate(disc.titles)}
    if not scores:
        return {}
    best = max(scores.values())
    result: dict[int, TitleInfo] = {}
    for index, score in scores.items():
        if score < best:
            log.debug("Removing title %d, score %d < %d", index, score, best)
            continue
        result[index] = disc.titles[index]
    return result
