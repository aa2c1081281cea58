"""Error taxonomy shared by the wire clients, handlers and orchestrator.

Every error raised while answering a turn derives from :class:`NeoChatError`.
The orchestrator converts those into assistant messages; anything else is a
bug and propagates.
"""

from __future__ import annotations


class NeoChatError(Exception):
    """Base class for every recoverable pipeline failure."""


class NetworkError(NeoChatError):
    """The request never produced an HTTP response (DNS, refused, timeout)."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


class UpstreamError(NeoChatError):
    """An endpoint answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ProtocolError(NeoChatError):
    """A response body was not valid JSON or did not have the expected shape."""


class MissingFieldError(NeoChatError):
    """An expected JSON path was absent (or empty) in a response."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Missing field '{path}' in response")


class MissingToolCallError(MissingFieldError):
    """``message.tool_calls`` was absent from a tool-call completion."""

    def __init__(self, model: str):
        self.model = model
        super().__init__(
            "message.tool_calls",
            f"No tool call returned by model '{model}' "
            "(does it support structured tool output?)",
        )


class PersonaConfigError(Exception):
    """A persona document is missing or malformed.  Fatal at startup."""


class TurnInProgressError(RuntimeError):
    """A user turn was submitted while another one is still being handled."""
