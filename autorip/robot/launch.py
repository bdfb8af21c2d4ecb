"""makemkvcon process management."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence

from autorip.robot.parse import RobotParser

log = logging.getLogger(__name__)

DEFAULT_ARGS: tuple[str, ...] = (
    # Fingerprints are computed over the detected playlists, so the minimum
    # playlist length must be identical across invocations. 120s is the
    # makemkvcon default but can be changed in its settings; pin it.
    "--minlength=120",
    # Machine-readable output.
    "--robot",
    # Messages and progress both go to stdout for capture.
    "--messages=-stdout",
    "--progress=-same",
)


def find_makemkvcon() -> str | None:
    """Return path to makemkvcon if found, else None."""
    found = shutil.which("makemkvcon")
    if found:
        return found
    for candidate in (
        "/Applications/MakeMKV.app/Contents/MacOS/makemkvcon",
        r"C:\Program Files (x86)\MakeMKV\makemkvcon64.exe",
    ):
        if shutil.which(candidate):
            return candidate
    return None


class MakeMkvProcess:
    """A single makemkvcon invocation with robot-mode output on stdout."""

    def __init__(self, makemkvcon: str, args: Sequence[str]) -> None:
        self.makemkvcon = makemkvcon
        # Full argument list, baseline arguments included.
        self.args: list[str] = [*DEFAULT_ARGS, *args]
        self._proc: subprocess.Popen[bytes] | None = None

    def start(self, *, tee: Callable[[str], None] | None = None) -> RobotParser:
        if self._proc is not None:
            raise RuntimeError("makemkvcon already started")
        log.debug("Running %s %s", self.makemkvcon, " ".join(self.args))
        try:
            self._proc = subprocess.Popen(
                [self.makemkvcon, *self.args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise RuntimeError(f"cannot run {self.makemkvcon}: {e}") from e
        assert self._proc.stdout is not None
        return RobotParser(self._proc.stdout, tee=tee)

    def wait(self) -> int:
        if self._proc is None:
            raise RuntimeError("makemkvcon was never started")
        code = self._proc.wait()
        if self._proc.stdout is not None:
            self._proc.stdout.close()
        return code

    def kill(self) -> None:
        if self._proc is not None and self._proc.poll() is None:
            self._proc.kill()
