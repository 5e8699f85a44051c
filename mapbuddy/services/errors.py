"""Failures of the delegated reasoning path and of persisted state."""


class ReasoningError(Exception):
    """Base class for failures of a delegated reasoning call.

    ``summary`` describes the category in words safe to show in the chat.
    ``detail`` carries the remote service's own diagnostic when it sent one.
    """

    summary = "Something went wrong while talking to the assistant."

    def __init__(self, detail: str | None = None, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.detail:
            return f"{self.summary} ({self.detail})"
        return self.summary


class MissingCredential(ReasoningError):
    summary = "OpenRouter API key not configured. Please add your API key in the settings."


class InvalidCredential(ReasoningError):
    summary = "Invalid API key. Please check your OpenRouter API key."


class RateLimited(ReasoningError):
    summary = "Rate limit exceeded. Please try again later."


class NetworkFailure(ReasoningError):
    summary = "Could not reach the assistant service. Check your connection and try again."


class MalformedRemoteResponse(ReasoningError):
    summary = "The assistant sent back a reply without any content."


class RemoteServiceError(ReasoningError):
    """Any other non-ok response from the reasoning service."""

    summary = "The assistant service returned an error."


class PreferencesFormatError(ValueError):
    """A stored preference record exists but cannot be parsed."""
