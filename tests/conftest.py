import functools
import os
import sys
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from autorip.db import Store, open_db
from builders import write_catalog

FIXTURE_DIR: Path = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_log() -> Path:
    """Robot-mode log covering every record kind the decoder emits."""
    return FIXTURE_DIR / "sample.log"


@pytest.fixture
def store() -> Store:
    """Store over a private in-memory database."""
    return Store(open_db(":memory:"))


@pytest.fixture
def fakemkv() -> str:
    """Shell script standing in for makemkvcon.

    AUTORIP_TEST_MAKEMKVCON may point at a real executable instead.
    """
    env: str | None = os.environ.get("AUTORIP_TEST_MAKEMKVCON")
    if env:
        return env
    if sys.platform == "win32":
        pytest.skip("fake makemkvcon needs a POSIX shell")
    return str(FIXTURE_DIR / "fakemkv.sh")


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Small IMDb-style catalog with two same-named movies and a series."""
    return write_catalog(
        tmp_path,
        basics=[
            ("tt0000001", "movie", "Some Disc", "Some Disc", "0", "1962", "\\N", "95", "Drama"),
            ("tt0000002", "movie", "Some Disc", "Some Disc", "0", "2019", "\\N", "121", "Drama"),
            ("tt0000003", "tvSeries", "Some Show", "Some Show", "0", "2001", "2004", "22",
             "Comedy"),
            ("tt0000004", "movie", "Unrated Disc", "Unrated Disc", "0", "2000", "\\N", "90",
             "\\N"),
        ],
        ratings=[
            ("tt0000001", "7.1", "5000"),
            ("tt0000002", "6.4", "900"),
            ("tt0000003", "8.0", "20000"),
        ],
    )


@pytest.fixture
def series_catalog_dir(tmp_path: Path) -> Path:
    """Catalog with one series, three of its episodes and an orphan episode."""
    return write_catalog(
        tmp_path,
        basics=[
            ("tt0100000", "tvSeries", "Harbour Lights", "Harbour Lights", "0", "1998", "2001",
             "45", "Drama"),
            ("tt0100001", "tvEpisode", "Pilot", "Pilot", "0", "1998", "\\N", "44", "Drama"),
            ("tt0100002", "tvEpisode", "Low Tide", "Low Tide", "0", "1998", "\\N", "45", "Drama"),
            ("tt0100003", "tvEpisode", "Lost Pilot", "Lost Pilot", "0", "\\N", "\\N", "40",
             "Drama"),
            ("tt0200001", "tvEpisode", "Pilot", "Pilot", "0", "2010", "\\N", "30", "Comedy"),
        ],
        ratings=[
            ("tt0100000", "8.2", "12000"),
            ("tt0100001", "7.9", "800"),
            ("tt0100002", "7.5", "600"),
            ("tt0100003", "6.0", "50"),
            ("tt0200001", "5.5", "40"),
        ],
        episodes=[
            ("tt0100002", "tt0100000", "1", "2"),
            ("tt0100001", "tt0100000", "1", "1"),
            ("tt0100003", "tt0100000", "\\N", "\\N"),
            ("tt0200001", "tt0299999", "1", "1"),
        ],
    )


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args) -> None:
        pass


@pytest.fixture
def upstream(tmp_path: Path):
    """Serve a small catalog over HTTP; yields (base URL, served directory)."""
    served = tmp_path / "upstream"
    served.mkdir()
    write_catalog(
        served,
        basics=[
            ("tt0100000", "tvSeries", "Harbour Lights", "Harbour Lights", "0", "1998", "2001",
             "45", "Drama"),
            ("tt0100001", "tvEpisode", "Pilot", "Pilot", "0", "1998", "\\N", "44", "Drama"),
        ],
        ratings=[("tt0100000", "8.2", "12000"), ("tt0100001", "7.9", "800")],
        episodes=[("tt0100001", "tt0100000", "1", "1")],
    )
    handler = functools.partial(_QuietHandler, directory=str(served))
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/", served
    finally:
        server.shutdown()
        server.server_close()
        thread.join()
