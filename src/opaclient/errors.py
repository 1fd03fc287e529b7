"""Typed errors raised by the OPA query client."""

from __future__ import annotations

__all__ = [
    "OPAError",
    "UrlConstructionError",
    "EncodingError",
    "RequestConstructionError",
    "TransportError",
    "PolicyServiceError",
    "DecodingError",
    "UndefinedDocumentError",
]


class OPAError(Exception):
    """Base class for every failure surfaced by a policy query."""


class UrlConstructionError(OPAError):
    """Base URL, data prefix and rule path could not be joined."""


class EncodingError(OPAError):
    """The input value could not be serialised to JSON."""


class RequestConstructionError(OPAError):
    """The HTTP request itself could not be built."""


class TransportError(OPAError):
    """The request executor failed (network error, timeout, cancellation)."""


class PolicyServiceError(OPAError):
    """OPA answered with a status other than 200."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"request to OPA failed with status code {status_code}")


class DecodingError(OPAError):
    """A 200 response body did not match the ``{"result": ...}`` envelope."""


class UndefinedDocumentError(OPAError):
    """OPA returned no ``result``: the rule path is undefined."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"OPA result is undefined for path {path!r}")
