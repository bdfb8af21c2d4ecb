"""Session, raw-log and fingerprint persistence (SQLite via SQLAlchemy)."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy import JSON, DateTime, ForeignKey, LargeBinary, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class _Timestamped:
    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


class Session(_Timestamped, Base):
    """One run of the tool; may invoke makemkvcon several times."""

    __tablename__ = "sessions"

    disc_fingerprint_id: Mapped[Optional[int]] = mapped_column(ForeignKey("disc_fingerprints.id"))

    raw_logs: Mapped[List["MakeMkvLog"]] = relationship(
        back_populates="session", cascade="all, delete-orphan"
    )
    disc_fingerprint: Mapped[Optional["DiscFingerprint"]] = relationship()


class MakeMkvLog(_Timestamped, Base):
    """One makemkvcon invocation and its arguments."""

    __tablename__ = "makemkv_logs"

    session_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sessions.id"))
    args: Mapped[list] = mapped_column(JSON, default=list)
    # Last disc snapshot the invocation reported, as exported JSON.
    disc_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    session: Mapped[Optional[Session]] = relationship(back_populates="raw_logs")


class MakeMkvLogEntry(_Timestamped, Base):
    """One raw robot-mode line."""

    __tablename__ = "makemkv_log_entries"

    makemkv_log_id: Mapped[int] = mapped_column(ForeignKey("makemkv_logs.id"), index=True)
    entry: Mapped[str] = mapped_column(Text, nullable=False)


class DiscFingerprint(_Timestamped, Base):
    __tablename__ = "disc_fingerprints"

    fingerprint: Mapped[bytes] = mapped_column(LargeBinary(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    volume_name: Mapped[str] = mapped_column(String(255), default="")


def open_db(path: Union[str, Path] = "autorip.sqlite", *, echo: bool = False) -> Engine:
    """Open (creating if needed) the SQLite database at *path*.

    ``":memory:"`` gives a private in-memory database.
    """
    if str(path) == ":memory:":
        # One shared connection, so worker threads see the same database.
        engine = create_engine(
            "sqlite://",
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(f"sqlite:///{path}", echo=echo)
    Base.metadata.create_all(engine)
    return engine


class Store:
    """Thin persistence facade used by :mod:`autorip.ops` and the CLI.

    Every method runs in its own transaction; returned rows are detached
    but keep their loaded attributes.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def start_session(self) -> Session:
        with self._sessions.begin() as s:
            row = Session()
            s.add(row)
        log.debug("Started session %d", row.id)
        return row

    def start_log(self, session: Session, args: Sequence[str]) -> MakeMkvLog:
        with self._sessions.begin() as s:
            row = MakeMkvLog(session_id=session.id, args=list(args))
            s.add(row)
        return row

    def append_entry(self, raw_log: MakeMkvLog, raw: str) -> None:
        with self._sessions.begin() as s:
            s.add(MakeMkvLogEntry(makemkv_log_id=raw_log.id, entry=raw))

    def record_disc_info(self, raw_log: MakeMkvLog, disc_info: dict) -> None:
        with self._sessions.begin() as s:
            s.get(MakeMkvLog, raw_log.id).disc_info = disc_info
        raw_log.disc_info = disc_info

    def disc_info(self, log_id: int) -> Optional[dict]:
        """Return the disc snapshot stored with a log, or None."""
        with self._sessions() as s:
            row = s.get(MakeMkvLog, log_id)
            return row.disc_info if row is not None else None

    def find_or_create_fingerprint(
        self, fingerprint: bytes, name: str = "", volume_name: str = ""
    ) -> tuple[DiscFingerprint, bool]:
        """Return the row for *fingerprint* and whether it was just created."""
        stmt = select(DiscFingerprint).where(DiscFingerprint.fingerprint == fingerprint)
        with self._sessions() as s:
            existing = s.scalars(stmt).first()
            if existing is not None:
                return existing, False
        try:
            with self._sessions.begin() as s:
                row = DiscFingerprint(fingerprint=fingerprint, name=name, volume_name=volume_name)
                s.add(row)
        except IntegrityError:
            # Inserted concurrently by another process.
            with self._sessions() as s:
                return s.scalars(stmt).one(), False
        return row, True

    def attach_fingerprint(self, session: Session, row: DiscFingerprint) -> None:
        with self._sessions.begin() as s:
            s.get(Session, session.id).disc_fingerprint_id = row.id
        session.disc_fingerprint_id = row.id

    def log_lines(self, log_id: int) -> Iterator[str]:
        """Yield the raw lines of one stored log, in insertion order."""
        stmt = (
            select(MakeMkvLogEntry.entry)
            .where(MakeMkvLogEntry.makemkv_log_id == log_id)
            .order_by(MakeMkvLogEntry.id)
        )
        with self._sessions() as s:
            yield from s.scalars(stmt)

    def list_discs(self) -> list[DiscFingerprint]:
        with self._sessions() as s:
            return list(s.scalars(select(DiscFingerprint).order_by(DiscFingerprint.id)))
