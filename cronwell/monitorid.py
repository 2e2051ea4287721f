import base64
import binascii
from urllib.parse import urlsplit

from .api import Api, MonitorStatus
from .errors import CronwellError


def _decode_token(token: str) -> str | None:
    """
    A monitor token is either the endpoint URL itself or the URL encoded
    as base64, usually with its "=" padding stripped.
    """
    if token.startswith(("http://", "https://")):
        return token
    padded = token + "=" * (-len(token) % 4)
    try:
        return base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


class MonitorId:
    def __init__(self, url: str, timeout: float = 20):
        self.url = url if url.endswith("/") else url + "/"
        self.timeout = timeout
        self._api = None

    @classmethod
    def parse(cls, token: str, timeout: float = 20) -> "MonitorId":
        url = _decode_token(token.strip())
        if url is None:
            raise CronwellError("Malformed monitor token")
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise CronwellError("Malformed monitor token")
        if parts.scheme not in ("http", "https"):
            raise CronwellError(f"Unsupported monitor token: bad scheme {parts.scheme}")
        return cls(url, timeout=timeout)

    def __repr__(self):
        return f"MonitorId({self.url!r})"

    @property
    def api_url(self) -> str:
        return self.url

    @property
    def is_secure(self) -> bool:
        return self.url.startswith("https://")

    @property
    def token(self) -> str:
        return base64.b64encode(self.url.encode("utf-8")).decode("ascii").rstrip("=")

    def api(self) -> Api:
        if self._api is None:
            self._api = Api(self, timeout=self.timeout)
        return self._api

    def close(self):
        if self._api is not None:
            self._api.close()
            self._api = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # Reporting interface used by ProcessRunner and the CLI.

    def notify_start(self, command: str | None, args: list[str] | None,
                     timestamp: float, from_cron: bool | None) -> MonitorStatus:
        return self.api().send_start(timestamp, command=command,
                                     args=list(args) if args is not None else None,
                                     from_cron=from_cron)

    def notify_failure(self, exit_code: int, timestamp: float, output: str) -> MonitorStatus:
        return self.api().send_failure(exit_code, timestamp, output=output)

    def notify_complete(self, timestamp: float) -> MonitorStatus:
        return self.api().send_complete(timestamp)
