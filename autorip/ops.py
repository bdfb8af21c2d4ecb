"""Drive discovery and disc analysis through makemkvcon."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from autorip.db import Session, Store
from autorip.discid.fingerprint import disc_from_info, fingerprint
from autorip.export.json_out import disc_to_dict
from autorip.model import DRIVE_INSERTED, DRIVE_NO_DRIVE, DiscInfo, Drive, RobotEvent
from autorip.robot.launch import MakeMkvProcess

log = logging.getLogger(__name__)

EventCallback = Callable[[RobotEvent], None]


class AnalysisError(RuntimeError):
    """Analysis of the inserted disc could not be carried out."""


class NoDrivesError(AnalysisError):
    def __init__(self) -> None:
        super().__init__("no disc drives found")


class NoDiscInsertedError(AnalysisError):
    def __init__(self, drives: Sequence[Drive]) -> None:
        super().__init__(f"no disc inserted in any of {len(drives)} drive(s)")
        self.drives = list(drives)


class DiscInfoMissingError(AnalysisError):
    def __init__(self, drive_index: int) -> None:
        super().__init__(f"makemkvcon reported no disc information for drive {drive_index}")
        self.drive_index = drive_index


@dataclass(slots=True)
class Analysis:
    drive_index: int
    new: bool
    disc_info: DiscInfo
    fingerprint: bytes


class MakeMkv:
    """Runs makemkvcon and records every invocation in the session log."""

    def __init__(self, store: Store, makemkvcon: str) -> None:
        self.store = store
        self.makemkvcon = makemkvcon
        self.session: Session | None = None

    def _session_if_needed(self) -> Session:
        if self.session is None:
            self.session = self.store.start_session()
        return self.session

    def run(self, args: Sequence[str], on_event: EventCallback | None = None) -> int:
        """Invoke makemkvcon with *args*, feeding decoded events to *on_event*.

        Every raw line, info lines included, is appended to a new raw log,
        along with the last disc snapshot decoded. Returns the process exit
        status.
        """
        session = self._session_if_needed()
        process = MakeMkvProcess(self.makemkvcon, args)
        raw_log = self.store.start_log(session, process.args)
        parser = process.start(tee=lambda raw: self.store.append_entry(raw_log, raw))
        events = parser.stream()
        last_disc: DiscInfo | None = None
        try:
            for event in events:
                if isinstance(event.parsed, DiscInfo):
                    last_disc = event.parsed
                if on_event is not None:
                    on_event(event)
        except BaseException:
            process.kill()
            process.wait()
            raise
        finally:
            events.cancel()
        code = process.wait()
        if last_disc is not None:
            self.store.record_disc_info(raw_log, disc_to_dict(last_disc))
        return code

    def scan_drives(self, on_event: EventCallback | None = None) -> list[Drive]:
        """Find all attached drives and their state.

        Calling this may perturb what other processes are doing with their
        own drives.
        """
        log.info("Looking for disc drives")
        result: list[Drive] = []

        def collect(event: RobotEvent) -> None:
            if on_event is not None:
                on_event(event)
            if isinstance(event.parsed, Drive) and event.parsed.state != DRIVE_NO_DRIVE:
                result.append(event.parsed)

        # "invalid" is not a makemkvcon command, but it still prints the
        # drive list before failing; the exit status is meaningless here.
        self.run(["invalid"], collect)
        return result

    def analyze(
        self, drives: Sequence[Drive], on_event: EventCallback | None = None
    ) -> Analysis:
        """Analyze the disc in the first drive with one inserted.

        Only ``index`` and ``state`` of each drive are looked at, so
        *drives* can be built by hand as well as by :meth:`scan_drives`.
        """
        session = self._session_if_needed()
        if not drives:
            raise NoDrivesError()
        target = next((d for d in drives if d.state == DRIVE_INSERTED), None)
        if target is None:
            raise NoDiscInsertedError(drives)

        disc_info: DiscInfo | None = None

        def collect(event: RobotEvent) -> None:
            nonlocal disc_info
            if on_event is not None:
                on_event(event)
            if isinstance(event.parsed, DiscInfo):
                disc_info = event.parsed

        log.info("Analyzing drive %d", target.index)
        # --noscan keeps makemkvcon away from the other drives.
        code = self.run(["--noscan", "info", f"disc:{target.index}"], collect)
        if code != 0:
            raise AnalysisError(f"makemkvcon exited with status {code}")
        if disc_info is None:
            raise DiscInfoMissingError(target.index)

        fp = fingerprint(disc_from_info(disc_info))
        row, created = self.store.find_or_create_fingerprint(
            fp, name=disc_info.name, volume_name=disc_info.volume_name
        )
        self.store.attach_fingerprint(session, row)
        log.info(
            "Found disc %s (%s) = %s [%s]",
            row.volume_name,
            row.name,
            fp.hex(),
            "new" if created else "seen before",
        )
        return Analysis(drive_index=target.index, new=created, disc_info=disc_info, fingerprint=fp)
