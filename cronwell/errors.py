class CronwellError(Exception):
    """A fatal error; the CLI prints it and exits with `exit_code`."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self):
        return self.message


class SpawnError(CronwellError):
    pass


class ApiError(Exception):
    """
    A failed report to the monitoring endpoint. `status` is the HTTP status
    when the server answered, None for transport or decoding failures.
    """

    def __init__(self, detail: str, status: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status = status

    def __str__(self):
        if self.status is not None:
            return f"http error: {self.detail} ({self.status})"
        return self.detail
