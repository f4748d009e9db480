"""
Subprocess helper with hard wall-clock timeouts.

Every command runs in its own session so that a timeout can kill the whole
process group (compiler drivers, shells and their children) rather than
only the direct child. Output is drained by reader threads that keep at most
``max_output_chars`` per stream, so a snippet printing in a loop cannot grow
the harness's memory before its timeout fires.
"""

from __future__ import annotations

import codecs
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from ..core.logging import get_logger

logger = get_logger(__name__)

# Seconds to wait for a killed process group to be reaped.
REAP_TIMEOUT_SECONDS = 5.0
# Bytes requested from a pipe per read.
READ_CHUNK_BYTES = 65536


@dataclass(slots=True)
class ProcessResult:
    """Normalized subprocess outcome."""

    return_code: int | None
    stdout: str
    stderr: str
    duration_seconds: float
    timed_out: bool = False
    stdout_dropped: int = 0
    stderr_dropped: int = 0


class _BoundedReader(threading.Thread):
    """Drains one pipe, keeping at most ``limit`` characters (0 keeps everything)."""

    def __init__(self, stream: IO[bytes], limit: int):
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.dropped = 0
        self._parts: list[str] = []
        self._kept = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def run(self) -> None:
        try:
            while True:
                chunk = self.stream.read1(READ_CHUNK_BYTES)
                if not chunk:
                    break
                self._keep(self._decoder.decode(chunk))
            self._keep(self._decoder.decode(b"", final=True))
        except OSError as exc:
            logger.debug(f"Output pipe closed while reading: {exc}")

    def _keep(self, text: str) -> None:
        if not text:
            return
        if self.limit <= 0:
            self._parts.append(text)
            return
        room = max(self.limit - self._kept, 0)
        if room:
            kept = text[:room]
            self._parts.append(kept)
            self._kept += len(kept)
        self.dropped += len(text) - min(room, len(text))


def run_process(
    cmd: list[str],
    *,
    cwd: Path,
    env: dict[str, str],
    timeout_seconds: float,
    max_output_chars: int = 0,
) -> ProcessResult:
    """
    Run a command to completion or until the timeout expires.

    Whatever the outcome, the command's process group is killed before
    returning, so background children never outlive the call.

    Raises:
        FileNotFoundError: when the executable does not exist
    """
    start = time.perf_counter()
    proc = subprocess.Popen(
        cmd,
        cwd=str(cwd),
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=os.name == "posix",
    )
    readers = (
        _BoundedReader(proc.stdout, max_output_chars),
        _BoundedReader(proc.stderr, max_output_chars),
    )
    for reader in readers:
        reader.start()

    timed_out = False
    try:
        proc.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        logger.debug(f"Timeout after {timeout_seconds}s, killing: {cmd[0]}")
        timed_out = True
    except BaseException:
        # Interrupted while waiting (e.g. KeyboardInterrupt): never leave the child behind.
        _kill_and_reap(proc, readers)
        raise

    _kill_and_reap(proc, readers)
    stdout_reader, stderr_reader = readers
    return ProcessResult(
        return_code=proc.returncode,
        stdout=stdout_reader.text,
        stderr=stderr_reader.text,
        duration_seconds=time.perf_counter() - start,
        timed_out=timed_out,
        stdout_dropped=stdout_reader.dropped,
        stderr_dropped=stderr_reader.dropped,
    )


def _kill_and_reap(proc: subprocess.Popen, readers: tuple[_BoundedReader, ...]) -> None:
    _kill_process_group(proc)
    try:
        proc.wait(timeout=REAP_TIMEOUT_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {proc.pid} was not reaped after SIGKILL")

    for reader in readers:
        reader.join(timeout=REAP_TIMEOUT_SECONDS)
        if reader.is_alive():
            # A grandchild left the group and still holds the pipe open.
            logger.debug(f"Abandoning output pipe of process {proc.pid}")
            continue
        reader.stream.close()


def _kill_process_group(proc: subprocess.Popen) -> None:
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            logger.debug(f"Could not signal process group {proc.pid}; killing child only")
    if proc.poll() is None:
        proc.kill()


def truncate_output(text: str, max_chars: int, dropped: int = 0) -> str:
    """
    Cap captured output, keeping the head and noting how much was dropped.

    ``dropped`` counts characters already discarded while reading the pipe.
    """
    if max_chars > 0 and len(text) > max_chars:
        dropped += len(text) - max_chars
        text = text[:max_chars]
    if not dropped:
        return text
    return f"{text}\n... [truncated {dropped} chars]"
