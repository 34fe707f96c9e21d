"""Transport strategies used by the submission relay.

Each transport makes one delivery attempt. A transport either returns a
``TransportOutcome`` or raises ``TransportError`` to hand over to the next
one in the chain. Outcomes from transports that never read the response
are marked unconfirmed.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from formrelay.config.client_store import RelayConfig
from formrelay.exceptions import TransportError
from formrelay.models import Submission

logger = logging.getLogger(__name__)


@dataclass
class TransportOutcome:
    """Result of a single transport attempt.

    Attributes:
        success: Whether the submission is considered delivered
        confirmed: Whether the destination actually acknowledged it
        message: Human-readable detail
        data: Response body, when one was read
    """

    success: bool
    confirmed: bool
    message: str = ""
    data: Any = None


class Transport(Protocol):
    """Protocol for relay transports."""

    name: str

    def applies(self, config: RelayConfig) -> bool:
        """Whether this transport can run with ``config``."""
        ...

    async def send(
        self, client: httpx.AsyncClient, config: RelayConfig, submission: Submission
    ) -> TransportOutcome:
        """Make one delivery attempt.

        Raises:
            TransportError: To fall through to the next transport
        """
        ...


class ProxyTransport:
    """POST JSON to the proxy server's ``/api/submit``."""

    name = "proxy"

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def applies(self, config: RelayConfig) -> bool:
        return config.proxy_enabled

    async def send(
        self, client: httpx.AsyncClient, config: RelayConfig, submission: Submission
    ) -> TransportOutcome:
        payload = submission.to_payload()
        if config.script_url:
            payload["scriptUrl"] = config.script_url

        try:
            response = await client.post(config.submit_endpoint, json=payload, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise TransportError(self.name, f"request failed: {e!r}") from e

        if not response.is_success:
            raise TransportError(self.name, f"server error: {response.status_code}")

        try:
            result = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransportError(self.name, "server returned a non-JSON body") from e

        if not (isinstance(result, dict) and result.get("success") is True):
            raise TransportError(self.name, "server did not report success")

        return TransportOutcome(
            success=True,
            confirmed=True,
            message=result.get("message") or "Form submitted successfully",
            data=result.get("data"),
        )


class DirectTransport:
    """POST JSON straight to the destination and read its answer.

    An answer that reports ``success: false`` is a real rejection and is
    returned as a failed outcome instead of falling through.
    """

    name = "direct"

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def applies(self, config: RelayConfig) -> bool:
        return bool(config.script_url)

    async def send(
        self, client: httpx.AsyncClient, config: RelayConfig, submission: Submission
    ) -> TransportOutcome:
        try:
            response = await client.post(
                config.script_url,
                json=submission.to_payload(),
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise TransportError(self.name, f"request failed: {e!r}") from e

        if not response.is_success:
            raise TransportError(self.name, f"destination returned {response.status_code}")

        try:
            result = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransportError(self.name, "destination returned an unreadable body") from e

        if not isinstance(result, dict):
            raise TransportError(self.name, "destination returned an unexpected body")

        if result.get("success"):
            return TransportOutcome(
                success=True,
                confirmed=True,
                message=result.get("message") or "Form submitted successfully",
                data=result,
            )
        return TransportOutcome(
            success=False,
            confirmed=True,
            message=result.get("error") or "Destination rejected the submission",
            data=result,
        )


class FireAndForgetTransport:
    """Send the JSON payload as a simple ``text/plain`` request.

    The response is never inspected, so success is assumed once the send
    completes.
    """

    name = "fire-and-forget"

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def applies(self, config: RelayConfig) -> bool:
        return bool(config.script_url)

    async def send(
        self, client: httpx.AsyncClient, config: RelayConfig, submission: Submission
    ) -> TransportOutcome:
        try:
            await client.post(
                config.script_url,
                content=json.dumps(submission.to_payload()),
                headers={"Content-Type": "text/plain;charset=UTF-8"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(self.name, f"send failed: {e!r}") from e

        return TransportOutcome(
            success=True,
            confirmed=False,
            message="Submission sent; the destination response cannot be observed",
        )


class FormPostTransport:
    """Submit the fields form-encoded, like a transient hidden HTML form.

    Redirects are followed and the final response is ignored, so success is
    assumed once the send completes.
    """

    name = "form-post"

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def applies(self, config: RelayConfig) -> bool:
        return bool(config.script_url)

    async def send(
        self, client: httpx.AsyncClient, config: RelayConfig, submission: Submission
    ) -> TransportOutcome:
        try:
            await client.post(
                config.script_url,
                data=submission.to_form_fields(),
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise TransportError(self.name, f"form submission failed: {e!r}") from e

        return TransportOutcome(
            success=True,
            confirmed=False,
            message="Form posted; the destination response cannot be observed",
        )


def default_transports(timeout: float = 30.0) -> list[Transport]:
    """The standard chain: proxy, direct, fire-and-forget, hidden form."""
    return [
        ProxyTransport(timeout),
        DirectTransport(timeout),
        FireAndForgetTransport(timeout),
        FormPostTransport(timeout),
    ]
