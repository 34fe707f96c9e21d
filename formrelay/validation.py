"""Presence and format checks for contact form submissions.

These checks run before any network call in the relay and before any
forwarding in the proxy.
"""

import re
from typing import Any, Mapping

from formrelay.exceptions import InvalidEmailError, MissingFieldsError
from formrelay.models import Submission

REQUIRED_FIELDS: tuple[str, ...] = ("name", "email", "message")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return not str(value).strip()


def check_required_fields(data: Mapping[str, Any]) -> None:
    """Ensure name, email and message are present and non-blank.

    Raises:
        MissingFieldsError: Listing every missing field
    """
    missing = [field for field in REQUIRED_FIELDS if _is_blank(data.get(field))]
    if missing:
        raise MissingFieldsError(missing)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def check_email_format(email: str) -> None:
    """Raise ``InvalidEmailError`` unless ``email`` looks like local@domain.tld."""
    if not is_valid_email(email):
        raise InvalidEmailError(email)


def validate_submission(data: Mapping[str, Any]) -> Submission:
    """Validate raw form data and build a ``Submission``.

    Blank optional fields become empty strings and a missing timestamp
    defaults to the current time.

    Args:
        data: Raw field mapping (JSON body, form fields or CLI input)

    Returns:
        The validated submission

    Raises:
        MissingFieldsError: If a required field is missing
        InvalidEmailError: If the email format is wrong
    """
    check_required_fields(data)
    email = str(data["email"])
    check_email_format(email)

    fields: dict[str, Any] = {
        "name": str(data["name"]).strip(),
        "email": email,
        "phone": str(data.get("phone") or ""),
        "company": str(data.get("company") or ""),
        "message": str(data["message"]).strip(),
    }
    if not _is_blank(data.get("timestamp")):
        fields["timestamp"] = str(data["timestamp"])
    user_agent = data.get("userAgent", data.get("user_agent"))
    if user_agent:
        fields["userAgent"] = str(user_agent)
    if data.get("ip"):
        fields["ip"] = str(data["ip"])

    return Submission(**fields)
