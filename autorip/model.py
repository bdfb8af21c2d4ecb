from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

# Robot-mode line tags
MESSAGE_TAG = "MSG"
PROGRESS_CURRENT_TAG = "PRGC"
PROGRESS_TITLE_TAG = "PRGT"
PROGRESS_UPDATE_TAG = "PRGV"
DRIVE_TAG = "DRV"
STREAM_INFO_TAG = "SINFO"
TITLE_INFO_TAG = "TINFO"
DISC_INFO_TAG = "CINFO"
TITLE_COUNT_TAG = "TCOUNT"
INFO_SUFFIX = "INFO"

# Message flags. Box messages all end in 0x4 or 0x8 within MESSAGE_BOX_MASK.
MESSAGE_BOX_MASK = 0xF0E
MESSAGE_BOX_OK = 0x104
MESSAGE_BOX_ERROR = 0x204
MESSAGE_BOX_WARNING = 0x404
MESSAGE_BOX_YES_NO = 0x308
MESSAGE_BOX_YES_NO_ERR = 0x508
MESSAGE_BOX_YES_NO_REG = 0x608
MESSAGE_DEBUG = 0x20
MESSAGE_HIDDEN = 0x40
MESSAGE_EVENT = 0x80
MESSAGE_HAVE_URL = 0x20000

PROGRESS_TOTAL = 0
PROGRESS_CURRENT = 1

# Drive states are strict constants, not flags.
DRIVE_EMPTY_CLOSED = 0
DRIVE_EMPTY_OPEN = 1
DRIVE_INSERTED = 2
DRIVE_LOADING = 3
DRIVE_NO_DRIVE = 256
DRIVE_UNMOUNTING = 257

DRIVE_STATE_NAMES: dict[int, str] = {
    DRIVE_EMPTY_CLOSED: "empty (closed)",
    DRIVE_EMPTY_OPEN: "empty (open)",
    DRIVE_INSERTED: "inserted",
    DRIVE_LOADING: "loading",
    DRIVE_NO_DRIVE: "no drive",
    DRIVE_UNMOUNTING: "unmounting",
}

DISK_DVD_FILES_PRESENT = 0x1
DISK_HDVD_FILES_PRESENT = 0x2
DISK_BLURAY_FILES_PRESENT = 0x4
DISK_AACS_FILES_PRESENT = 0x8
DISK_BDSVM_FILES_PRESENT = 0x10


@dataclass(slots=True)
class Message:
    code: int
    flags: int
    count: int
    message: str
    format: str
    params: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProgressTitle:
    type: int
    code: int
    id: int
    name: str


@dataclass(slots=True)
class ProgressUpdate:
    current: int
    total: int
    max: int


@dataclass(slots=True)
class Drive:
    index: int
    state: int
    unknown: int = 999
    flags: int = 0
    drive_name: str = ""
    disc_name: str = ""
    drive_path: str = ""

    @property
    def state_name(self) -> str:
        return DRIVE_STATE_NAMES.get(self.state, f"unknown ({self.state})")


# Property id -> GenericInfo attribute. Ids are assigned by makemkvcon.
INFO_FIELDS: dict[int, str] = {
    0: "unknown",
    1: "type",
    2: "name",
    3: "lang_code",
    4: "lang_name",
    5: "codec_id",
    6: "codec_short",
    7: "codec_long",
    8: "chapter_count",
    9: "duration",
    10: "disk_size",
    11: "disk_size_bytes",
    12: "stream_type_extension",
    13: "bitrate",
    14: "audio_channels_count",
    15: "angle_info",
    16: "source_file_name",
    17: "audio_sample_rate",
    18: "audio_sample_size",
    19: "video_size",
    20: "video_aspect_ratio",
    21: "video_frame_rate",
    22: "stream_flags",
    23: "date_time",
    24: "original_title_id",
    25: "segments_count",
    26: "segments_map",
    27: "output_file_name",
    28: "metadata_language_code",
    29: "metadata_language_name",
    30: "tree_info",
    31: "panel_title",
    32: "volume_name",
    33: "order_weight",
    34: "output_format",
    35: "output_format_description",
    36: "seamless_info",
    37: "panel_text",
    38: "mkv_flags",
    39: "mkv_flags_text",
    40: "audio_channel_layout_name",
    41: "output_codec_short",
    42: "output_conversion_type",
    43: "output_audio_sample_rate",
    44: "output_audio_sample_size",
    45: "output_audio_channels_count",
    46: "output_audio_channel_layout_name",
    47: "output_audio_channel_layout",
    48: "output_audio_mix_description",
    49: "comment",
    50: "offset_sequence_id",
}


@dataclass(slots=True)
class GenericInfo:
    """Attribute bag shared by discs, titles and streams.

    Every attribute is a string exactly as makemkvcon reported it; an empty
    string means the attribute was never reported.
    """

    unknown: str = ""
    type: str = ""
    name: str = ""
    lang_code: str = ""
    lang_name: str = ""
    codec_id: str = ""
    codec_short: str = ""
    codec_long: str = ""
    chapter_count: str = ""
    duration: str = ""
    disk_size: str = ""
    disk_size_bytes: str = ""
    stream_type_extension: str = ""
    bitrate: str = ""
    audio_channels_count: str = ""
    angle_info: str = ""
    source_file_name: str = ""
    audio_sample_rate: str = ""
    audio_sample_size: str = ""
    video_size: str = ""
    video_aspect_ratio: str = ""
    video_frame_rate: str = ""
    stream_flags: str = ""
    date_time: str = ""
    original_title_id: str = ""
    segments_count: str = ""
    segments_map: str = ""
    output_file_name: str = ""
    metadata_language_code: str = ""
    metadata_language_name: str = ""
    tree_info: str = ""
    panel_title: str = ""
    volume_name: str = ""
    order_weight: str = ""
    output_format: str = ""
    output_format_description: str = ""
    seamless_info: str = ""
    panel_text: str = ""
    mkv_flags: str = ""
    mkv_flags_text: str = ""
    audio_channel_layout_name: str = ""
    output_codec_short: str = ""
    output_conversion_type: str = ""
    output_audio_sample_rate: str = ""
    output_audio_sample_size: str = ""
    output_audio_channels_count: str = ""
    output_audio_channel_layout_name: str = ""
    output_audio_channel_layout: str = ""
    output_audio_mix_description: str = ""
    comment: str = ""
    offset_sequence_id: str = ""

    def set_property(self, prop_id: int, value: str) -> bool:
        """Store *value* under the attribute for *prop_id*.

        Returns False (and changes nothing) for ids outside the table.
        """
        name = INFO_FIELDS.get(prop_id)
        if name is None:
            return False
        setattr(self, name, value)
        return True

    def reported(self) -> dict[str, str]:
        """Return only the attributes that carry a value."""
        return {
            name: getattr(self, name) for name in INFO_FIELDS.values() if getattr(self, name)
        }


@dataclass(slots=True)
class StreamInfo(GenericInfo):
    pass


@dataclass(slots=True)
class TitleInfo(GenericInfo):
    streams: list[StreamInfo] = field(default_factory=list)


@dataclass(slots=True)
class DiscInfo(GenericInfo):
    titles: list[TitleInfo] = field(default_factory=list)


@dataclass(slots=True)
class RobotEvent:
    """One decoded item handed to the consumer of a robot-mode stream.

    ``tag`` and ``raw`` are empty for disc-aggregate snapshots.
    """

    tag: str
    raw: str
    parsed: Message | ProgressTitle | ProgressUpdate | Drive | DiscInfo


@dataclass(slots=True, frozen=True)
class Aspect:
    score: int
    description: str


@dataclass(slots=True, frozen=True)
class Score:
    title_index: int
    duration: timedelta
    type: str
    likelihood: float


@dataclass(slots=True, frozen=True)
class CatalogTitle:
    """A title record from the metadata catalog (IMDb datasets)."""

    tconst: str
    title_type: str
    primary_title: str
    original_title: str = ""
    start_year: int | None = None
    end_year: int | None = None
    runtime_minutes: int = 0
    genres: tuple[str, ...] = ()
    is_adult: bool = False


@dataclass(slots=True, frozen=True)
class Episode:
    """Links a tvEpisode record to its parent series."""

    tconst: str
    parent_tconst: str
    season_number: int | None = None
    episode_number: int | None = None


@dataclass(slots=True, frozen=True)
class SearchResult:
    entry: CatalogTitle
    score: float = 0.0
    num_votes: int = 0
    average_rating: float = 0.0
    # Parent series, for episodes whose series is in the catalog.
    series: CatalogTitle | None = None


@dataclass(slots=True, frozen=True)
class Plan:
    identity: CatalogTitle | None
    disc_info: DiscInfo
    rip_titles: tuple[Score, ...]
