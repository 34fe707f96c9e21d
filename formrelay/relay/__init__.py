"""Client-side submission relay with its transport fallback chain."""

from formrelay.relay.client import ConnectionCheck, RelayResult, SubmissionRelay
from formrelay.relay.transports import (
    DirectTransport,
    FireAndForgetTransport,
    FormPostTransport,
    ProxyTransport,
    TransportOutcome,
    default_transports,
)

__all__ = [
    "ConnectionCheck",
    "DirectTransport",
    "FireAndForgetTransport",
    "FormPostTransport",
    "ProxyTransport",
    "RelayResult",
    "SubmissionRelay",
    "TransportOutcome",
    "default_transports",
]
