"""Spreadsheet append handler.

A local stand-in for the hosted spreadsheet web app: ``POST /`` appends a
submission row, ``GET /`` is a health probe. Like the hosted platform it
always answers HTTP 200 and reports failures in the JSON body.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from formrelay.exceptions import MissingFieldsError
from formrelay.models import format_iso, parse_iso, utc_now_iso
from formrelay.sheet.backends import InMemorySheetBackend, SheetBackend
from formrelay.validation import check_required_fields

logger = logging.getLogger(__name__)

HANDLER_VERSION = "1.0.0"

CELL_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


async def read_payload(request: Request) -> dict[str, Any]:
    """Read a submission from either a JSON or a form-encoded body.

    Anything that is not declared as JSON is read as form parameters, so a
    body sent with another content type yields no fields.

    Args:
        request: Incoming request

    Returns:
        Field mapping, possibly empty
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.body()
        data = json.loads(body) if body else {}
        return data if isinstance(data, dict) else {}

    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    return dict(request.query_params)


def build_row(data: dict[str, Any], timestamp: str) -> list[str]:
    """Lay out the eight sheet columns for one submission."""
    return [
        timestamp,
        str(data.get("name", "")),
        str(data.get("email", "")),
        str(data.get("phone") or ""),
        str(data.get("company") or ""),
        str(data.get("message", "")),
        str(data.get("userAgent") or ""),
        str(data.get("ip") or ""),
    ]


def create_router(backend: SheetBackend) -> APIRouter:
    """Create the handler routes bound to ``backend``.

    Args:
        backend: Sheet that receives appended rows

    Returns:
        Router exposing ``GET`` and ``POST`` on ``/`` and ``/exec``
    """
    router = APIRouter(tags=["sheet"])

    @router.post("/", summary="Append a submission row")
    @router.post("/exec", include_in_schema=False)
    async def do_post(request: Request) -> JSONResponse:
        try:
            data = await read_payload(request)

            try:
                check_required_fields(data)
            except MissingFieldsError as e:
                return JSONResponse(content={"success": False, "error": str(e)})

            raw_timestamp = data.get("timestamp")
            moment = parse_iso(str(raw_timestamp)) if raw_timestamp else datetime.now(timezone.utc)
            if moment.tzinfo is not None:
                moment = moment.astimezone(timezone.utc)

            row = await backend.append_row(
                build_row(data, moment.strftime(CELL_TIME_FORMAT))
            )
            normalized = format_iso(moment)

            logger.info("Appended submission", extra={"row": row, "email": data.get("email")})

            return JSONResponse(
                content={
                    "success": True,
                    "message": "Form submitted successfully",
                    "row": row,
                    "timestamp": normalized,
                }
            )

        except Exception as e:
            logger.error("Error processing form submission", exc_info=True)
            return JSONResponse(
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {e}",
                    "message": "Failed to process form submission",
                }
            )

    @router.get("/", summary="Health probe")
    @router.get("/exec", include_in_schema=False)
    async def do_get() -> JSONResponse:
        return JSONResponse(
            content={
                "status": "OK",
                "message": "Form handler is running",
                "timestamp": utc_now_iso(),
                "version": HANDLER_VERSION,
            }
        )

    return router


def create_sheet_app(backend: SheetBackend | None = None) -> FastAPI:
    """Create the spreadsheet handler application.

    Args:
        backend: Sheet backend, in-memory when omitted

    Returns:
        Configured FastAPI application; the backend is kept on ``app.state``
    """
    backend = backend if backend is not None else InMemorySheetBackend()
    app = FastAPI(
        title="formrelay sheet handler",
        description="Appends contact form submissions to a sheet",
        version=HANDLER_VERSION,
    )
    app.state.backend = backend
    app.include_router(create_router(backend))
    return app
