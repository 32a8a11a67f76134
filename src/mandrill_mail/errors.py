"""Exceptions raised while composing and delivering mail."""


class MailError(Exception):
    """Base class for all mandrill_mail errors."""


class ConfigurationError(MailError):
    """A required setting is missing or a transport name is unknown."""


class EnvelopeError(MailError):
    """A delivery envelope could not be built (no sender or no recipients)."""


class ShapeError(MailError):
    """The message does not have the structure the selected send path needs."""


class TransportError(MailError):
    """The remote API reported a request-level failure.

    Carries the provider's error message and status code.
    """

    def __init__(self, message: str, code: int | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"
