"""Failures of the sign-in and timeline steps.

Every error knows which step produced it so the page can show
"Registration failed: ..." instead of a bare message.
"""

from __future__ import annotations


class FlowError(Exception):
    step = "Session"

    def __init__(self, message: str, step: str | None = None) -> None:
        super().__init__(message)
        if step is not None:
            self.step = step

    @property
    def user_message(self) -> str:
        return f"{self.step} failed: {self}"


class EndpointError(FlowError):
    step = "Server"


class RegistrationError(FlowError):
    step = "Registration"


class FlowStateError(FlowError):
    """No staged app registration exists for the code being submitted."""

    step = "Code exchange"


class InvalidTransition(FlowStateError):
    step = "Session"


class CorruptStateError(FlowError):
    """The staged app registration could not be read back.

    The staged data is discarded when this is raised; the user has to
    register again.
    """

    step = "Code exchange"


class TokenExchangeError(FlowError):
    step = "Code exchange"


class FeedFetchError(FlowError):
    step = "Timeline"


class TransportError(FlowError):
    """Network-level failure (DNS, connect, read) of any step."""

    step = "Network"
