import logging
from dataclasses import dataclass

import requests

from .errors import ApiError

logger = logging.getLogger(__name__)

USER_AGENT = "sentry-cronwell"


@dataclass(frozen=True)
class MonitorStatus:
    status: int


class Api:
    """
    Thin client for the monitor endpoint. One session per Api, reused for
    every report of a run.
    """

    def __init__(self, monitor_id, timeout: float = 20, session=None):
        self.monitor_id = monitor_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def post(self, path: str, body: dict) -> dict:
        url = f"{self.monitor_id.api_url}{path}"
        logger.debug("POST %s", url)
        try:
            r = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(f"http error: {e}") from e

        if 400 <= r.status_code <= 600:
            raise ApiError(_error_detail(r), status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise ApiError(f"bad json: {e}") from e

    def _status(self, path, body) -> MonitorStatus:
        data = self.post(path, body)
        try:
            return MonitorStatus(status=int(data["status"]))
        except (TypeError, KeyError, ValueError) as e:
            raise ApiError(f"bad json: unexpected response {data!r}") from e

    def send_start(self, timestamp: float, command: str | None = None,
                   args: list[str] | None = None, from_cron: bool | None = None) -> MonitorStatus:
        return self._status("start/", {
            "timestamp": timestamp,
            "command": command,
            "args": args,
            "from_cron": from_cron,
        })

    def send_failure(self, status: int, timestamp: float, output: str | None = None) -> MonitorStatus:
        return self._status("fail/", {
            "status": status,
            "timestamp": timestamp,
            "output": output,
        })

    def send_complete(self, timestamp: float) -> MonitorStatus:
        return self._status("complete/", {"timestamp": timestamp})


def _error_detail(r) -> str:
    try:
        info = r.json()
    except ValueError:
        return "generic error"
    if isinstance(info, dict):
        detail = info.get("detail") or info.get("error")
        if detail:
            return str(detail)
    return "generic error"
