from typing import Optional


class RelayError(Exception):
    """Base class for everything that can go wrong while relaying a change."""


class AuthFailure(RelayError):
    """The caller key does not match the configured hash."""


class ValidationFailure(RelayError):
    """The body or the path of the inbound request is malformed."""


class RenderFailure(RelayError):
    """The Slack message could not be built or serialized."""


class DispatchFailure(RelayError):
    """The outbound webhook call failed or returned a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
