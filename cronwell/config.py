import os
from dataclasses import dataclass

from .errors import CronwellError

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_HTTP_TIMEOUT = 20.0


@dataclass(frozen=True)
class Settings:
    monitor: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        raw_timeout = env.get("CRONWELL_HTTP_TIMEOUT")
        timeout = DEFAULT_HTTP_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise CronwellError(f"Invalid CRONWELL_HTTP_TIMEOUT: {raw_timeout!r}")
            if timeout <= 0:
                raise CronwellError(f"Invalid CRONWELL_HTTP_TIMEOUT: {raw_timeout!r}")

        return cls(
            monitor=env.get("CRONWELL_MONITOR") or None,
            log_level=env.get("CRONWELL_LOG_LEVEL") or DEFAULT_LOG_LEVEL,
            http_timeout=timeout,
        )
