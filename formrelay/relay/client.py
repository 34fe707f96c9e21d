"""Submission relay.

Validates a contact form and walks the transport chain one attempt at a
time until a transport produces an outcome.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import httpx

from formrelay.config.client_store import RelayConfig
from formrelay.exceptions import ConfigurationError, TransportError
from formrelay.models import Submission
from formrelay.relay.transports import Transport, default_transports
from formrelay.validation import validate_submission

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Submission failed. Please try again later."


def parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


@dataclass
class RelayResult:
    """Outcome of a relayed submission.

    Attributes:
        success: Whether the submission is considered delivered
        confirmed: False when success was assumed from an unobservable send
        transport: Name of the transport that produced the outcome
        message: Human-readable detail
        data: Response body, when one was read
        errors: Failures from transports tried before this outcome
    """

    success: bool
    confirmed: bool
    transport: str | None
    message: str
    data: Any = None
    errors: list[str] | None = None

    @property
    def assumed(self) -> bool:
        return self.success and not self.confirmed


@dataclass
class ConnectionCheck:
    """Result of a connectivity test from the client side."""

    success: bool
    via: str
    status: int | None = None
    status_text: str = ""
    data: Any = None
    error: str | None = None


class SubmissionRelay:
    """Delivers submissions using an injected ``RelayConfig``.

    Attributes:
        config: Destination and proxy settings
        transports: Ordered transport chain
    """

    def __init__(
        self,
        config: RelayConfig,
        transports: Sequence[Transport] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            config: Destination and proxy settings
            transports: Transport chain, the standard four when omitted
            client: Shared httpx client; one is opened per call when omitted
            timeout: Per-attempt timeout in seconds
        """
        self.config = config
        self.transports = list(transports) if transports is not None else default_transports(timeout)
        self.timeout = timeout
        self._client = client

    def _open_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout)

    async def submit(self, data: Mapping[str, Any]) -> RelayResult:
        """Validate ``data`` and deliver it.

        Args:
            data: Raw form fields

        Returns:
            RelayResult describing how (and whether) the submission went out

        Raises:
            SubmissionValidationError: Before any request, on bad input
            ConfigurationError: Before any request, when nothing is configured
        """
        submission = validate_submission(data)

        chain = [transport for transport in self.transports if transport.applies(self.config)]
        if not chain:
            raise ConfigurationError(
                "No destination configured. Set a destination URL or enable the proxy server."
            )

        errors: list[str] = []
        if self._client is not None:
            return await self._run_chain(self._client, chain, submission, errors)
        async with self._open_client() as client:
            return await self._run_chain(client, chain, submission, errors)

    async def _run_chain(
        self,
        client: httpx.AsyncClient,
        chain: list[Transport],
        submission: Submission,
        errors: list[str],
    ) -> RelayResult:
        for transport in chain:
            try:
                outcome = await transport.send(client, self.config, submission)
            except TransportError as e:
                logger.warning("Transport failed, trying next: %s", e)
                errors.append(str(e))
                continue

            if outcome.success and not outcome.confirmed:
                logger.warning(
                    "Delivery via %s was assumed, not acknowledged by the destination",
                    transport.name,
                )
            elif outcome.success:
                logger.info("Submission delivered via %s", transport.name)
            else:
                logger.error("Submission rejected via %s: %s", transport.name, outcome.message)

            return RelayResult(
                success=outcome.success,
                confirmed=outcome.confirmed,
                transport=transport.name,
                message=outcome.message,
                data=outcome.data,
                errors=errors or None,
            )

        logger.error("All transports failed", extra={"errors": errors})
        return RelayResult(
            success=False,
            confirmed=False,
            transport=None,
            message=FAILURE_MESSAGE,
            errors=errors,
        )

    async def test_connection(self) -> ConnectionCheck:
        """Check that the configured destination answers.

        Goes through the proxy's connectivity test when the proxy is enabled,
        otherwise issues a GET to the destination directly.

        Raises:
            ConfigurationError: If no destination URL is configured
        """
        if not self.config.script_url:
            raise ConfigurationError("Destination URL is not configured")

        if self._client is not None:
            return await self._probe(self._client)
        async with httpx.AsyncClient(timeout=15.0) as client:
            return await self._probe(client)

    async def _probe(self, client: httpx.AsyncClient) -> ConnectionCheck:
        via = "proxy" if self.config.proxy_enabled else "direct"
        try:
            if self.config.proxy_enabled:
                response = await client.post(
                    self.config.test_endpoint,
                    json={"scriptUrl": self.config.script_url},
                    timeout=15.0,
                )
                body = parse_body(response)
                if isinstance(body, dict) and "status" in body:
                    return ConnectionCheck(
                        success=bool(body.get("success")),
                        via=via,
                        status=body.get("status"),
                        status_text=body.get("statusText", ""),
                        data=body.get("data"),
                    )
                return ConnectionCheck(
                    success=False,
                    via=via,
                    status=response.status_code,
                    status_text=response.reason_phrase,
                    data=body,
                    error=body.get("error") if isinstance(body, dict) else None,
                )

            response = await client.get(
                self.config.script_url, timeout=15.0, follow_redirects=True
            )
        except httpx.HTTPError as e:
            logger.warning("Connection test failed: %r", e)
            return ConnectionCheck(success=False, via=via, error=repr(e))

        return ConnectionCheck(
            success=response.is_success,
            via=via,
            status=response.status_code,
            status_text=response.reason_phrase,
            data=parse_body(response),
        )
