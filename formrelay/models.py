"""Submission data model shared by the relay, the proxy and the sheet handler.

Field names on the wire follow the camelCase keys the destination expects
(``userAgent``, ``scriptUrl``), so models use aliases and accept both forms.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SHEET_HEADERS: list[str] = [
    "Timestamp",
    "Name",
    "Email",
    "Phone",
    "Company",
    "Message",
    "User Agent",
    "IP Address",
]


def utc_now_iso() -> str:
    """Current time as ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    return format_iso(datetime.now(timezone.utc))


def format_iso(value: datetime) -> str:
    """Format ``value`` the way a JavaScript ``Date.toISOString()`` does.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class Submission(BaseModel):
    """A validated contact form submission.

    Attributes:
        name: Submitter's name
        email: Submitter's email address
        phone: Optional phone number, blank when not given
        company: Optional company name, blank when not given
        message: Message content
        timestamp: ISO-8601 submission time
        user_agent: User agent observed by the proxy
        ip: Client address observed by the proxy
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Submitter's name", examples=["Jane"])
    email: str = Field(..., description="Submitter's email", examples=["jane@x.com"])
    phone: str = Field(default="", description="Phone number")
    company: str = Field(default="", description="Company name")
    message: str = Field(..., description="Message content", examples=["hi"])
    timestamp: str = Field(
        default_factory=utc_now_iso,
        description="ISO 8601 formatted submission time",
    )
    user_agent: str | None = Field(default=None, alias="userAgent")
    ip: str | None = Field(default=None)

    def to_payload(self) -> dict[str, Any]:
        """Wire representation, dropping proxy-observed fields that are unset."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_form_fields(self) -> dict[str, str]:
        """Flat string mapping suitable for a form-encoded body."""
        return {key: str(value) for key, value in self.to_payload().items()}
