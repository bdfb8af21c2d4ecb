"""Decoder for makemkvcon "robot mode" output.

Each line has the form ``TAG:field1,field2,...``. The part after the first
colon is a CSV record, except that makemkvcon escapes embedded quotes as
``\\"`` rather than ``""``. See https://www.makemkv.com/developers/usage.txt
for the (partial) upstream description of the format.

Message codes show up in most records. They are unique, language-neutral
identifiers, but no index of them is published, so they are decoded and
otherwise ignored.
"""

from __future__ import annotations

import copy
import csv
import logging
from collections.abc import Callable, Iterable, Iterator

from autorip.model import (
    DISC_INFO_TAG,
    DRIVE_TAG,
    INFO_SUFFIX,
    MESSAGE_TAG,
    PROGRESS_CURRENT,
    PROGRESS_CURRENT_TAG,
    PROGRESS_TITLE_TAG,
    PROGRESS_TOTAL,
    PROGRESS_UPDATE_TAG,
    STREAM_INFO_TAG,
    TITLE_COUNT_TAG,
    TITLE_INFO_TAG,
    DiscInfo,
    Drive,
    GenericInfo,
    Message,
    ProgressTitle,
    ProgressUpdate,
    RobotEvent,
    StreamInfo,
    TitleInfo,
)
from autorip.stream import Stream

log = logging.getLogger(__name__)

_MESSAGE_MIN_COLUMNS = 5
_PROGRESS_COLUMNS = 3
_DRIVE_COLUMNS = 7
_INFO_COLUMNS = 3


class DecodeError(ValueError):
    """A robot-mode line could not be decoded."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


EventStream = Stream[RobotEvent]

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{what} is not an integer: {value!r}") from None


def _require_columns(records: list[str], want: int, what: str, *, exact: bool = True) -> None:
    if len(records) < want or (exact and len(records) != want):
        qualifier = "" if exact else "at least "
        raise ValueError(
            f"unexpected number of columns for {what}: got {len(records)}, want {qualifier}{want}"
        )


def split_record(raw: str) -> tuple[str, list[str]]:
    """Split *raw* into its tag and CSV fields."""
    tag, sep, rest = raw.partition(":")
    if not sep:
        raise ValueError("invalid line, no ':' found")
    rest = rest.replace('\\"', '""')
    try:
        records = next(csv.reader([rest], strict=True), None)
    except csv.Error as exc:
        raise ValueError(f"unable to parse fields: {exc}") from None
    if not records:
        raise ValueError("no fields after tag")
    return tag, records


def ensure_titles(disc: DiscInfo, index: int) -> TitleInfo:
    """Grow ``disc.titles`` so *index* is addressable and return that title."""
    if index < 0:
        raise ValueError(f"negative title index {index}")
    while len(disc.titles) <= index:
        disc.titles.append(TitleInfo())
    return disc.titles[index]


def ensure_streams(disc: DiscInfo, title: int, index: int) -> StreamInfo:
    """Grow the title's stream list so *index* is addressable and return that stream."""
    if index < 0:
        raise ValueError(f"negative stream index {index}")
    ti = ensure_titles(disc, title)
    while len(ti.streams) <= index:
        ti.streams.append(StreamInfo())
    return ti.streams[index]


def update_generic_info(info: GenericInfo, records: list[str]) -> None:
    """Apply one ``(property id, message code, value)`` tuple to *info*."""
    _require_columns(records, _INFO_COLUMNS, "info record")
    prop_id = _int(records[0], "property id")
    _int(records[1], "message code")
    if not info.set_property(prop_id, records[2]):
        log.debug("Ignoring unknown property id %d", prop_id)


# ---------------------------------------------------------------------------
# Record parsers
# ---------------------------------------------------------------------------


def parse_message(records: list[str]) -> Message:
    _require_columns(records, _MESSAGE_MIN_COLUMNS, "message", exact=False)
    return Message(
        code=_int(records[0], "message code"),
        flags=_int(records[1], "message flags"),
        count=_int(records[2], "parameter count"),
        message=records[3],
        format=records[4],
        params=records[5:],
    )


def parse_progress(progress_type: int, records: list[str]) -> ProgressTitle:
    _require_columns(records, _PROGRESS_COLUMNS, "progress title")
    return ProgressTitle(
        type=progress_type,
        code=_int(records[0], "progress code"),
        id=_int(records[1], "progress id"),
        name=records[2],
    )


def parse_progress_update(records: list[str]) -> ProgressUpdate:
    _require_columns(records, _PROGRESS_COLUMNS, "progress update")
    return ProgressUpdate(
        current=_int(records[0], "progress current"),
        total=_int(records[1], "progress total"),
        max=_int(records[2], "progress max"),
    )


def parse_drive(records: list[str]) -> Drive:
    _require_columns(records, _DRIVE_COLUMNS, "drive")
    return Drive(
        index=_int(records[0], "drive index"),
        state=_int(records[1], "drive state"),
        unknown=_int(records[2], "drive field 3"),
        flags=_int(records[3], "drive flags"),
        drive_name=records[4],
        disc_name=records[5],
        drive_path=records[6],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class RobotParser:
    """Turns robot-mode lines into :class:`RobotEvent` objects.

    Info lines (``CINFO``/``TINFO``/``SINFO``) update a single
    :class:`DiscInfo` aggregate instead of producing events of their own. A
    snapshot of the aggregate is emitted right after the first non-info line
    that follows a run of info lines, and at end of input if info lines were
    seen since the last snapshot.
    """

    def __init__(
        self,
        source: Iterable[str | bytes],
        *,
        tee: Callable[[str], None] | None = None,
    ) -> None:
        self._source = source
        self._tee = tee
        self.disc_info = DiscInfo()
        self._consumed = False

    def parse_line(self, raw: str) -> RobotEvent | None:
        """Decode one line; return its event, or None for aggregate/ignored lines."""
        try:
            tag, records = split_record(raw)
            if tag == MESSAGE_TAG:
                return RobotEvent(tag, raw, parse_message(records))
            if tag == PROGRESS_TITLE_TAG:
                return RobotEvent(tag, raw, parse_progress(PROGRESS_TOTAL, records))
            if tag == PROGRESS_CURRENT_TAG:
                return RobotEvent(tag, raw, parse_progress(PROGRESS_CURRENT, records))
            if tag == PROGRESS_UPDATE_TAG:
                return RobotEvent(tag, raw, parse_progress_update(records))
            if tag == DRIVE_TAG:
                return RobotEvent(tag, raw, parse_drive(records))
            if tag == STREAM_INFO_TAG:
                _require_columns(records, 2 + _INFO_COLUMNS, "stream info")
                stream = ensure_streams(
                    self.disc_info,
                    _int(records[0], "title index"),
                    _int(records[1], "stream index"),
                )
                update_generic_info(stream, records[2:])
                return None
            if tag == TITLE_INFO_TAG:
                _require_columns(records, 1 + _INFO_COLUMNS, "title info")
                title = ensure_titles(self.disc_info, _int(records[0], "title index"))
                update_generic_info(title, records[1:])
                return None
            if tag == DISC_INFO_TAG:
                update_generic_info(self.disc_info, records)
                return None
            if tag == TITLE_COUNT_TAG:
                return None
            raise ValueError(f"unknown message type {tag!r}")
        except ValueError as exc:
            raise DecodeError(raw, str(exc)) from exc

    def _lines(self) -> Iterator[str]:
        for line in self._source:
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            yield line.rstrip("\r\n")

    def events(self) -> Iterator[RobotEvent]:
        """Decode the whole source synchronously, yielding events in order."""
        if self._consumed:
            raise RuntimeError("robot stream already consumed")
        self._consumed = True

        prev_tag = MESSAGE_TAG
        dirty = False
        for raw in self._lines():
            if self._tee is not None:
                self._tee(raw)
            event = self.parse_line(raw)
            tag = raw.partition(":")[0]
            if tag.endswith(INFO_SUFFIX):
                dirty = True
            if event is not None:
                yield event
            if prev_tag.endswith(INFO_SUFFIX) and not tag.endswith(INFO_SUFFIX):
                dirty = False
                yield self._snapshot()
            prev_tag = tag
        if dirty:
            yield self._snapshot()

    def _snapshot(self) -> RobotEvent:
        return RobotEvent("", "", copy.deepcopy(self.disc_info))

    def stream(self, *, maxsize: int = 1) -> EventStream:
        """Decode in a worker thread, handing events over a bounded queue."""

        def produce(emit: Callable[[RobotEvent], None]) -> None:
            for event in self.events():
                emit(event)

        return Stream(produce, maxsize=maxsize, name="robot-parser")
