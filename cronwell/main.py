import argparse
import logging
import sys

from .config import Settings
from .errors import ApiError, CronwellError
from .logconfig import configure_logging
from .monitorid import MonitorId
from .runner import ProcessRunner
from .utils import run_from_cron, to_timestamp

logger = logging.getLogger(__name__)


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cronwell",
        description="Sentry cron monitoring utility",
    )
    parser.add_argument("-m", "--monitor", metavar="MONITOR", dest="monitor_id",
                        help="The monitor identifier")
    parser.add_argument("--info", action="store_true",
                        help="Print basic information about the monitor and quit")
    parser.add_argument("--start", action="store_true",
                        help="Report the start of a monitor job")
    parser.add_argument("--complete", action="store_true",
                        help="Report a successful completion for this monitor")
    parser.add_argument("--fail", action="store_true",
                        help="Report a fail for this monitor")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Disable output from the process")
    parser.add_argument("command", nargs=argparse.REMAINDER,
                        help="The command to run, followed by its arguments")
    return parser


def get_monitor_id(value: str | None, settings: Settings) -> MonitorId:
    token = value or settings.monitor
    if not token:
        raise CronwellError("No monitor token provided.")
    return MonitorId.parse(token, timeout=settings.http_timeout)


def print_monitor_info(monitor: MonitorId):
    print(f"API Endpoint: {monitor.api_url}")
    print(f"Token: {monitor.token}")
    print(f"Secure reporting: {'yes' if monitor.is_secure else 'no'}")


def report_only(monitor: MonitorId, opts) -> None:
    ts = to_timestamp()
    try:
        if opts.start:
            monitor.notify_start(None, None, ts, run_from_cron())
        elif opts.complete:
            monitor.notify_complete(ts)
        else:
            monitor.notify_failure(1, ts, "")
    except ApiError as e:
        raise CronwellError(f"could not perform API request: {e}")


def run_command(monitor: MonitorId, command: list[str], quiet: bool) -> int:
    runner = ProcessRunner(monitor, from_cron=run_from_cron())
    return runner.run(command[0], command[1:], echo=not quiet)


def execute(argv=None) -> int:
    opts = make_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    with get_monitor_id(opts.monitor_id, settings) as monitor:
        return dispatch(monitor, opts)


def dispatch(monitor: MonitorId, opts) -> int:
    if opts.info:
        print_monitor_info(monitor)
        return 0
    if opts.start or opts.complete or opts.fail:
        report_only(monitor, opts)
        return 0

    command = list(opts.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        make_parser().print_usage()
        return 0
    return run_command(monitor, command, opts.quiet)


def main(argv=None):
    try:
        rc = execute(argv)
    except CronwellError as e:
        print(f"error: {e}", file=sys.stderr, flush=True)
        sys.exit(e.exit_code)
    sys.exit(rc)


if __name__ == "__main__":
    main()
