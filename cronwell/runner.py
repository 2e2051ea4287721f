import logging
import subprocess
import sys
from typing import Protocol

from .errors import ApiError, SpawnError
from .linebuffer import LineRingBuffer
from .logstream import OutputMultiplexer, Stream
from .utils import to_timestamp

logger = logging.getLogger(__name__)

MAX_LINES = 200
SIGNAL_EXIT_BASE = 128
UNKNOWN_EXIT_STATUS = 255


class Reporter(Protocol):
    def notify_start(self, command, args, timestamp, from_cron): ...

    def notify_failure(self, exit_code, timestamp, output): ...

    def notify_complete(self, timestamp): ...


def normalize_exit_status(returncode: int | None) -> int:
    """
    Map a Popen return code to a shell-style exit code: killed by signal N
    becomes 128 + N, an unknown status becomes 255.
    """
    if returncode is None:
        return UNKNOWN_EXIT_STATUS
    if returncode < 0:
        return SIGNAL_EXIT_BASE - returncode
    return returncode


class ProcessRunner:
    """
    Runs a command with both output streams piped through cronwell, echoes
    them as they arrive, keeps the last `max_lines` lines, and reports the
    outcome to `reporter`.
    """

    def __init__(self, reporter: Reporter, *, max_lines: int = MAX_LINES,
                 from_cron: bool = False, stdout=None, stderr=None):
        self.reporter = reporter
        self.max_lines = max_lines
        self.from_cron = from_cron
        self.stdout = stdout
        self.stderr = stderr

    def _report(self, what, fn, *args):
        try:
            fn(*args)
        except ApiError as e:
            logger.warning("could not report %s: %s", what, e)

    def _echo(self, chunk):
        if chunk.origin is Stream.STDOUT:
            out = self.stdout or sys.stdout.buffer
        else:
            out = self.stderr or sys.stderr.buffer
        try:
            out.write(chunk.data)
            out.flush()
        except (OSError, ValueError):
            pass

    def run(self, command: str, args: list[str], echo: bool = True) -> int:
        args = list(args)
        self._report("start", self.reporter.notify_start,
                     command, args, to_timestamp(), self.from_cron)

        buf = LineRingBuffer(self.max_lines)
        try:
            proc = subprocess.Popen(
                [command, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(f"could not start {command}: {e}") from e

        logger.debug("started pid=%d argv=%r", proc.pid, [command, *args])

        with proc:
            for chunk in OutputMultiplexer.for_process(proc):
                if echo:
                    self._echo(chunk)
                buf.append_chunk(chunk)
            try:
                returncode = proc.wait()
            except OSError as e:
                logger.warning("could not wait for pid=%d: %s", proc.pid, e)
                returncode = None

        status = normalize_exit_status(returncode)
        logger.debug("pid=%d exited with %r, status %d", proc.pid, returncode, status)

        if status == 0:
            self._report("completion", self.reporter.notify_complete, to_timestamp())
        else:
            output = "\n".join(buf.into_sequence())
            self._report("failure", self.reporter.notify_failure,
                         status, to_timestamp(), output)
        return status
