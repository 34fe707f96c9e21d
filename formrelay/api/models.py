"""Data models for the proxy API endpoints.

This module defines Pydantic models for request/response bodies. Request
models accept every field as optional so that presence and format checks
produce the proxy's own 400 envelope instead of a framework 422.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    """Contact form submission forwarded by the proxy.

    Attributes:
        name: Full name of the submitter
        email: Email address
        phone: Optional phone number
        company: Optional company name
        message: Message content
        timestamp: Optional ISO 8601 submission time
        script_url: Optional destination URL overriding the configured one
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = Field(default=None, examples=["Jane"])
    email: str | None = Field(default=None, examples=["jane@x.com"])
    phone: str | None = Field(default=None, examples=["+1234567890"])
    company: str | None = Field(default=None, examples=["Example Ltd"])
    message: str | None = Field(default=None, examples=["hi"])
    timestamp: str | None = Field(default=None, examples=["2026-02-02T12:34:56.789Z"])
    script_url: str | None = Field(
        default=None,
        alias="scriptUrl",
        description="Destination URL override",
    )

    def form_fields(self) -> dict[str, Any]:
        """Submission fields without the destination override."""
        return self.model_dump(exclude={"script_url"}, exclude_none=True)


class TestConnectionRequest(BaseModel):
    """Connectivity test request.

    Attributes:
        script_url: Candidate destination URL
    """

    model_config = ConfigDict(populate_by_name=True)

    script_url: str | None = Field(default=None, alias="scriptUrl")


class RelayResponse(BaseModel):
    """Uniform proxy response envelope.

    Attributes:
        success: Whether the operation succeeded
        message: Human-readable message on success
        error: Human-readable message on failure
        data: Destination response body, when there is one
        details: Raw error text, only in development mode
    """

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str | None = Field(default=None, examples=["Form submitted successfully"])
    error: str | None = Field(default=None)
    data: Any = Field(default=None)
    details: str | None = Field(default=None)

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ConnectionReport(BaseModel):
    """Result of probing a destination URL.

    Attributes:
        success: Whether the destination answered with a 2xx status
        status: HTTP status code
        status_text: HTTP reason phrase
        data: Parsed JSON body, or the raw text when it is not JSON
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    status: int
    status_text: str = Field(default="", alias="statusText")
    data: Any = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
