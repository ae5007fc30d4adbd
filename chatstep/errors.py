from __future__ import annotations

from typing import Optional


class ChatstepError(Exception):
    """Base class for errors that end a chatstep command."""


class ConfigurationError(ChatstepError):
    """Missing or malformed profile, alias, scenario or config file."""


class NetworkError(ChatstepError):
    """The completion endpoint could not be reached or timed out."""


class ProtocolError(ChatstepError):
    """The completion endpoint answered with something we cannot use.

    The raw response body is kept on the exception so it can be shown to
    the user for diagnosis.
    """

    def __init__(self, message: str, raw_body: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw_body = raw_body
        self.status_code = status_code

    def __str__(self) -> str:
        status = f" (HTTP {self.status_code})" if self.status_code is not None else ""
        return f"{self.message}{status}\n<<<{self.raw_body}>>>"


class RepairLimitReached(ChatstepError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"gave up after {limit} repair attempt(s)")
        self.limit = limit
