"""Content-derived disc fingerprints.

A disc is described in ASN.1 as::

    Disc ::= SEQUENCE {
      name    OCTET STRING,
      titles  SEQUENCE OF Title }

    Title ::= SEQUENCE {
      filename  OCTET STRING,
      size      INTEGER,
      duration  OCTET STRING }

and the fingerprint is the SHA-256 digest of its DER encoding. Titles are
encoded in sorted order so the fingerprint does not depend on the order
makemkvcon happened to list them in.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from asn1crypto.core import Integer, OctetString, Sequence, SequenceOf

from autorip.model import DiscInfo


class _TitleRecord(Sequence):
    _fields = [
        ("filename", OctetString),
        ("size", Integer),
        ("duration", OctetString),
    ]


class _TitleRecords(SequenceOf):
    _child_spec = _TitleRecord


class _DiscRecord(Sequence):
    _fields = [
        ("name", OctetString),
        ("titles", _TitleRecords),
    ]


@dataclass(slots=True, frozen=True, order=True)
class DiscTitle:
    # Name of the file on disc (for a Blu-ray, the .mpls playlist).
    filename: str
    size: int = 0
    # h:mm:ss as reported by makemkvcon.
    duration: str = ""


@dataclass(slots=True, frozen=True)
class Disc:
    """Identity of a disc (Video CD, DVD or Blu-ray), used only for fingerprinting."""

    # UDF volume label.
    name: str = ""
    titles: tuple[DiscTitle, ...] = ()


def disc_from_info(info: DiscInfo) -> Disc:
    titles = []
    for t in info.titles:
        try:
            size = int(t.disk_size_bytes)
        except ValueError:
            size = 0
        titles.append(DiscTitle(filename=t.source_file_name, size=size, duration=t.duration))
    return Disc(name=info.volume_name, titles=tuple(titles))


def serialize(disc: Disc | None) -> bytes:
    """Return the DER encoding of *disc*."""
    if disc is None:
        raise ValueError("disc must not be None")
    record = _DiscRecord(
        {
            "name": disc.name.encode("utf-8"),
            "titles": [
                {
                    "filename": t.filename.encode("utf-8"),
                    "size": t.size,
                    "duration": t.duration.encode("utf-8"),
                }
                for t in sorted(disc.titles)
            ],
        }
    )
    return record.dump()


def fingerprint(disc: Disc | None) -> bytes:
    """Return the SHA-256 fingerprint of *disc*."""
    return hashlib.sha256(serialize(disc)).digest()
