"""Exception hierarchy for formrelay.

Every error raised by the relay, the proxy server and the sheet handler
derives from ``FormRelayError`` so callers can catch the whole family.
"""


class FormRelayError(Exception):
    """Base class for formrelay errors"""

    pass


class SubmissionValidationError(FormRelayError):
    """A submission failed presence or format checks"""

    pass


class MissingFieldsError(SubmissionValidationError):
    """One or more required fields are absent or blank"""

    def __init__(self, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__("Missing required fields: name, email, and message are required")


class InvalidEmailError(SubmissionValidationError):
    """The email address does not look like local@domain.tld"""

    def __init__(self, email: str = "") -> None:
        self.email = email
        super().__init__("Invalid email format")


class ConfigurationError(FormRelayError):
    """No destination is configured"""

    pass


class TransportError(FormRelayError):
    """A single transport attempt failed and the chain should move on

    Attributes:
        transport: Name of the transport that failed
    """

    def __init__(self, transport: str, message: str) -> None:
        self.transport = transport
        super().__init__(f"{transport}: {message}")


class ForwardingError(FormRelayError):
    """The proxy could not deliver a submission to the destination

    Attributes:
        status_code: HTTP status returned by the destination, if any
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
