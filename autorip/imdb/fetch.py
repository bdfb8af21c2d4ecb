"""Download the IMDb dataset files the catalog is built from."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Union

import requests

from autorip.imdb.catalog import DATASETS

log = logging.getLogger(__name__)

DATASET_SOURCE = "https://datasets.imdbws.com/"

_CHUNK = 1 << 16
_TIMEOUT = 30

# Called as (filename, bytes so far, total bytes or None).
ProgressCallback = Callable[[str, int, Union[int, None]], None]


class FetchError(RuntimeError):
    """A dataset file could not be downloaded."""


def _download(
    session: requests.Session,
    url: str,
    dest: Path,
    on_progress: ProgressCallback | None,
) -> None:
    partial = dest.with_name(dest.name + ".part")
    # The CDN misbehaves when compression is negotiated; the files are
    # gzipped already.
    headers = {"Accept-Encoding": "identity"}
    try:
        with session.get(url, headers=headers, stream=True, timeout=_TIMEOUT) as r:
            r.raise_for_status()
            total = int(r.headers["Content-Length"]) if "Content-Length" in r.headers else None
            done = 0
            with open(partial, "wb") as f:
                for chunk in r.iter_content(chunk_size=_CHUNK):
                    f.write(chunk)
                    done += len(chunk)
                    if on_progress is not None:
                        on_progress(dest.name, done, total)
    except requests.exceptions.RequestException as e:
        partial.unlink(missing_ok=True)
        raise FetchError(f"{url}: {e}") from e
    os.replace(partial, dest)


def fetch(
    directory: Union[str, Path],
    *,
    base_url: str = DATASET_SOURCE,
    files: Sequence[str] = DATASETS,
    session: requests.Session | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[Path]:
    """Download *files* from *base_url* into *directory*.

    Existing files are replaced only once the new copy is complete.
    Returns the written paths in *files* order.
    """
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    if not base_url.endswith("/"):
        base_url += "/"
    own_session = session is None
    if session is None:
        session = requests.Session()
    written: list[Path] = []
    try:
        for name in files:
            url = base_url + name
            dest = d / name
            log.info("Downloading %s", url)
            _download(session, url, dest, on_progress)
            log.info("Downloaded %s to %s (%d bytes)", url, dest, dest.stat().st_size)
            written.append(dest)
    finally:
        if own_session:
            session.close()
    return written
