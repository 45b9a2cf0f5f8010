"""Errors raised while talking to Jira.

Every failure the adapter raises derives from JiraError so callers can tell
known, describable failures apart from programming errors.
"""

MAX_ERROR_BODY_CHARS: int = 4_000


class JiraError(Exception):
    """Base class for adapter failures."""

    def describe(self) -> str:
        """Return the caller-facing text for this failure."""
        return str(self)


class JiraApiError(JiraError):
    """Jira answered with a non-2xx status."""

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        reason: str = "",
        body: str = "",
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.reason = reason
        self.body = body[:MAX_ERROR_BODY_CHARS]
        super().__init__(
            f"{method} {path} failed with {status_code} {reason}".rstrip()
        )

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_bad_request(self) -> bool:
        return self.status_code == 400

    def describe(self) -> str:
        body = self.body.strip()
        if body:
            return f"{self}\nJira response body: {body}"
        return str(self)


class JiraTimeoutError(JiraError):
    """A request exceeded the configured deadline."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Jira API request timed out after {timeout_ms}ms.")


class JiraTransportError(JiraError):
    """The request never produced an HTTP response."""


class JiraValidationError(JiraError, ValueError):
    """Caller input is structurally invalid; nothing was sent to Jira."""


class JiraResolutionError(JiraError, ValueError):
    """A caller-supplied identifier does not match any known Jira value."""

    def __init__(self, message: str, valid_values: list[str] | None = None) -> None:
        self.valid_values = list(valid_values or [])
        super().__init__(message)


def to_error_message(error: BaseException) -> str:
    """Render an error on a single line, as used in baseline notes."""
    if isinstance(error, JiraApiError):
        body = error.body.strip()
        if body:
            return f"{error}; body: {body}"
    return str(error)
