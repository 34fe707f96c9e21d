"""Forwarding of submissions from the proxy to the destination.

Each call opens its own ``httpx.AsyncClient``; nothing is shared between
requests.
"""

import json
import logging
from typing import Any

import httpx

from formrelay.api.models import ConnectionReport
from formrelay.exceptions import ForwardingError

logger = logging.getLogger(__name__)

IMPLIED_SUCCESS = {"success": True, "message": "Form submitted successfully"}


def parse_body(response: httpx.Response) -> Any:
    """Parse a response body as JSON, falling back to the raw text."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class DestinationForwarder:
    """Sends submissions to the spreadsheet append handler.

    Attributes:
        timeout: Timeout in seconds for submission forwarding
        test_timeout: Timeout in seconds for connectivity probes
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        timeout: float = 30.0,
        test_timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.test_timeout = test_timeout
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        # The hosted destination answers POSTs with a redirect to the result
        return httpx.AsyncClient(
            timeout=timeout,
            transport=self.transport,
            follow_redirects=True,
        )

    async def forward_json(self, url: str, payload: dict[str, Any]) -> Any:
        """POST ``payload`` as JSON and normalize the destination response.

        A body that is not JSON (including an empty one) counts as success
        when the status is OK. A JSON body reporting ``success: false``
        counts as a failure whatever the status.

        Args:
            url: Destination URL
            payload: Submission fields

        Returns:
            Parsed destination response, or an implied-success envelope

        Raises:
            ForwardingError: On network failure, timeout or rejection
        """
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise ForwardingError(f"Destination timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ForwardingError(f"Destination request failed: {e}") from e

        try:
            result = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            if response.is_success:
                return dict(IMPLIED_SUCCESS)
            raise ForwardingError(
                f"Destination returned {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            ) from e

        logger.info("Destination response", extra={"status": response.status_code, "result": result})

        if not response.is_success:
            error = result.get("error") if isinstance(result, dict) else None
            raise ForwardingError(
                f"Destination error: {error or 'Unknown error'}",
                status_code=response.status_code,
            )
        if isinstance(result, dict) and result.get("success") is False:
            raise ForwardingError(
                f"Destination rejected submission: {result.get('error') or 'Unknown error'}",
                status_code=response.status_code,
            )
        return result

    async def forward_form(self, url: str, fields: dict[str, str]) -> None:
        """POST ``fields`` form-encoded; only the status is checked.

        Raises:
            ForwardingError: On network failure, timeout or non-OK status
        """
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(url, data=fields)
        except httpx.TimeoutException as e:
            raise ForwardingError(f"Destination timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ForwardingError(f"Destination request failed: {e}") from e

        if not response.is_success:
            raise ForwardingError(
                f"Destination returned {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

    async def probe(self, url: str) -> ConnectionReport:
        """GET ``url`` and report reachability.

        Raises:
            ForwardingError: If the destination cannot be reached
        """
        try:
            async with self._client(self.test_timeout) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise ForwardingError(f"Destination timed out after {self.test_timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ForwardingError(f"Destination request failed: {e}") from e

        return ConnectionReport(
            success=response.is_success,
            status=response.status_code,
            status_text=response.reason_phrase,
            data=parse_body(response),
        )
