"""Submission relay endpoints.

This module implements the proxy's submission endpoints, which validate a
contact form and forward it to the spreadsheet append handler, plus the
connectivity test used by the configuration UI.
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from formrelay.api.forwarding import DestinationForwarder
from formrelay.api.models import RelayResponse, SubmitRequest, TestConnectionRequest
from formrelay.config.settings import Settings
from formrelay.exceptions import ConfigurationError, ForwardingError
from formrelay.models import utc_now_iso
from formrelay.validation import validate_submission

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["submit"])

GENERIC_FAILURE = "Failed to submit form. Please try again later."


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _forwarder(request: Request) -> DestinationForwarder:
    return request.app.state.forwarder


def resolve_destination(request: Request, override: str | None) -> str:
    """Pick the destination URL for a submission.

    Args:
        request: Incoming request (for the configured URL)
        override: ``scriptUrl`` from the request body

    Returns:
        Destination URL

    Raises:
        ConfigurationError: If neither an override nor a configured URL exists
    """
    url = override or _settings(request).google_script_url
    if not url:
        raise ConfigurationError("Destination URL is not configured")
    return url


def failure_response(request: Request, error: Exception, status_code: int) -> JSONResponse:
    """Generic failure envelope; raw error text only in development mode."""
    details = str(error) if _settings(request).is_development else None
    return JSONResponse(
        status_code=status_code,
        content=RelayResponse(success=False, error=GENERIC_FAILURE, details=details).to_content(),
    )


@router.post(
    "/submit",
    response_model=RelayResponse,
    response_model_exclude_none=True,
    responses={
        200: {
            "description": "Submission forwarded successfully",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "Form submitted successfully",
                        "data": {"success": True, "row": 2},
                    }
                }
            },
        },
        400: {
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {"success": False, "error": "Invalid email format"}
                }
            },
        },
        500: {
            "description": "Destination failure or timeout",
            "content": {
                "application/json": {
                    "example": {"success": False, "error": GENERIC_FAILURE}
                }
            },
        },
    },
    summary="Submit a contact form",
    description="""
    Validate a contact form and forward it to the spreadsheet append handler.

    **Validation Rules:**
    - name, email and message are required and non-blank
    - email must look like `local@domain.tld`

    **Forwarding:**
    - `scriptUrl` in the body overrides the configured destination
    - The destination gets the form plus `timestamp`, `userAgent` and `ip`
    - Resubmitting identical data appends a second row
    """,
)
async def submit(request: Request, form_data: SubmitRequest) -> JSONResponse:
    """Forward a JSON contact form submission.

    Args:
        request: FastAPI request object (for client address and user agent)
        form_data: Submission body

    Returns:
        JSONResponse with the uniform relay envelope

    Raises:
        SubmissionValidationError: On missing fields or a malformed email
        ConfigurationError: If no destination URL is available
    """
    logger.info("Received form submission", extra={"email": form_data.email})

    fields = form_data.form_fields()
    fields["userAgent"] = request.headers.get("user-agent")
    fields["ip"] = request.client.host if request.client else None
    submission = validate_submission(fields)
    destination = resolve_destination(request, form_data.script_url)

    try:
        result = await _forwarder(request).forward_json(destination, submission.to_payload())
    except ForwardingError as e:
        logger.error(
            "Error submitting to destination",
            extra={"error": str(e), "status_code": e.status_code},
            exc_info=True,
        )
        return failure_response(request, e, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(
        content=RelayResponse(
            success=True,
            message="Form submitted successfully",
            data=result,
        ).to_content()
    )


@router.post(
    "/submit-form",
    response_model=RelayResponse,
    response_model_exclude_none=True,
    summary="Submit a form-encoded contact form",
    description="Form-encoded variant of `/api/submit`, forwarded form-encoded.",
)
async def submit_form(request: Request) -> JSONResponse:
    """Forward a form-encoded contact form submission.

    The submission time is always the time the proxy received it.
    """
    form = await request.form()
    fields = {key: value for key, value in form.items() if isinstance(value, str)}
    logger.info("Received form submission (URL-encoded)", extra={"email": fields.get("email")})

    submission = validate_submission(
        {
            "name": fields.get("name"),
            "email": fields.get("email"),
            "phone": fields.get("phone") or "",
            "company": fields.get("company") or "",
            "message": fields.get("message"),
            "timestamp": utc_now_iso(),
            "userAgent": request.headers.get("user-agent"),
            "ip": request.client.host if request.client else None,
        }
    )
    destination = resolve_destination(request, fields.get("scriptUrl"))

    try:
        await _forwarder(request).forward_form(destination, submission.to_form_fields())
    except ForwardingError as e:
        logger.error("Error submitting form data", extra={"error": str(e)}, exc_info=True)
        return failure_response(request, e, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(
        content=RelayResponse(success=True, message="Form submitted successfully").to_content()
    )


@router.post(
    "/test-connection",
    summary="Test a destination URL",
    description="Issue a GET to a candidate destination and report what came back.",
)
async def test_connection(request: Request, body: TestConnectionRequest) -> JSONResponse:
    """Probe a candidate destination URL.

    Args:
        request: FastAPI request object
        body: Request carrying ``scriptUrl``

    Returns:
        JSONResponse with ``success``, ``status``, ``statusText`` and ``data``
    """
    if not body.script_url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=RelayResponse(success=False, error="scriptUrl is required").to_content(),
        )

    try:
        report = await _forwarder(request).probe(body.script_url)
    except ForwardingError as e:
        logger.warning("Connection test failed", extra={"url": body.script_url, "error": str(e)})
        details = str(e) if _settings(request).is_development else None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=RelayResponse(
                success=False,
                error="Connection test failed",
                details=details,
            ).to_content(),
        )

    return JSONResponse(content=report.to_content())
