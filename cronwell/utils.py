import logging
import os
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def _process_name(pid: int) -> str | None:
    if sys.platform.startswith("linux"):
        try:
            return Path(os.readlink(f"/proc/{pid}/exe")).name
        except OSError:
            pass
        # exe is unreadable for processes of other users, comm is not
        try:
            return Path(f"/proc/{pid}/comm").read_text().strip() or None
        except OSError:
            return None
    if sys.platform == "darwin":
        try:
            out = subprocess.run(
                ["ps", "-o", "comm=", "-p", str(pid)],
                check=True, capture_output=True, text=True,
            ).stdout.strip()
        except (OSError, subprocess.CalledProcessError):
            return None
        return Path(out).name or None
    return None


def run_from_cron() -> bool:
    """True when our parent process is the cron daemon."""
    ppid = os.getppid()
    if ppid <= 0:
        return False
    name = _process_name(ppid)
    logger.debug("parent process %d is %r", ppid, name)
    return name == "cron"


def to_timestamp(dt: datetime | None = None) -> float:
    if dt is None:
        dt = datetime.now(timezone.utc)
    return dt.timestamp()
