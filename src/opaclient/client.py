"""Typed query client for the OPA data API.

A query is one POST to ``{base_url}/v1/data{path}`` carrying
``{"input": value}``; the decision comes back as ``{"result": value}``.

Usage:
    with httpx.Client(timeout=5.0) as http:
        client = new_client("http://opa:8181", http)
        allowed = query(client, "/example/allow", {"age": 17}, bool)
"""

from __future__ import annotations

import inspect
import json
import posixpath
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol, TypeVar, overload

import httpx
import pydantic_core
from pydantic import TypeAdapter, ValidationError

from opaclient.errors import (
    DecodingError,
    EncodingError,
    PolicyServiceError,
    RequestConstructionError,
    TransportError,
    UndefinedDocumentError,
    UrlConstructionError,
)
from opaclient.settings import Settings

__all__ = [
    "DATA_API_PREFIX",
    "AsyncRequestExecutor",
    "PolicyClient",
    "RequestExecutor",
    "aquery",
    "build_request",
    "build_url",
    "create_async_client",
    "create_client",
    "new_client",
    "query",
]

DATA_API_PREFIX = "/v1/data"

_JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

T = TypeVar("T")

TimeoutTypes = float | httpx.Timeout | None


class RequestExecutor(Protocol):
    """Anything that can send a prepared request — ``httpx.Client`` fits."""

    def send(self, request: httpx.Request) -> httpx.Response: ...


class AsyncRequestExecutor(Protocol):
    """Awaitable twin of :class:`RequestExecutor` — ``httpx.AsyncClient`` fits."""

    async def send(self, request: httpx.Request) -> httpx.Response: ...


@dataclass(frozen=True)
class PolicyClient:
    """Base URL of an OPA instance plus the executor that talks to it."""

    base_url: str
    executor: RequestExecutor | AsyncRequestExecutor


def new_client(
    base_url: str, executor: RequestExecutor | AsyncRequestExecutor
) -> PolicyClient:
    """Create a client; ``base_url`` is only checked when a query joins it."""
    return PolicyClient(base_url=base_url, executor=executor)


def create_client(settings: Settings | None = None) -> PolicyClient:
    """Build a client over a fresh ``httpx.Client``. The caller closes it."""
    settings = settings or Settings()
    http = httpx.Client(timeout=settings.timeout_s)
    return new_client(settings.url, http)


def create_async_client(settings: Settings | None = None) -> PolicyClient:
    """Build a client over a fresh ``httpx.AsyncClient``. The caller closes it."""
    settings = settings or Settings()
    http = httpx.AsyncClient(timeout=settings.timeout_s)
    return new_client(settings.url, http)


# ── Request side ─────────────────────────────────────────


def build_url(base_url: str, path: str) -> httpx.URL:
    """Join ``base_url``, ``/v1/data`` and ``path`` into one clean URL.

    Empty segments are dropped and ``.``/``..`` resolved, so slashes on
    either side of each part never duplicate or go missing. A trailing
    slash on ``path`` is kept.
    """
    try:
        base = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise UrlConstructionError(f"could not create request url: {exc}") from exc

    parts = (base.path, DATA_API_PREFIX, path)
    segments = [s for part in parts for s in part.split("/") if s]
    joined = posixpath.normpath("/" + "/".join(segments))
    if path.endswith("/") and not joined.endswith("/"):
        joined += "/"

    try:
        return base.copy_with(path=joined)
    except httpx.InvalidURL as exc:
        raise UrlConstructionError(f"could not create request url: {exc}") from exc


def _encode_input(value: Any) -> bytes:
    try:
        document = pydantic_core.to_jsonable_python({"input": value})
        return json.dumps(document, separators=(",", ":"), allow_nan=False).encode()
    except (ValueError, TypeError) as exc:
        # Unserialisable types, circular references and NaN/Infinity are ValueErrors
        raise EncodingError(f"could not encode OPA request: {exc}") from exc


def build_request(
    url: httpx.URL, input_value: Any, timeout: TimeoutTypes = None
) -> httpx.Request:
    """Prepare the POST carrying ``{"input": input_value}``."""
    content = _encode_input(input_value)

    if not url.is_absolute_url:
        raise RequestConstructionError(
            f"error while creating request: URL {str(url)!r} has no scheme or host"
        )

    extensions: dict[str, Any] = {}
    if timeout is not None:
        extensions["timeout"] = httpx.Timeout(timeout).as_dict()

    try:
        return httpx.Request(
            "POST",
            url,
            headers=_JSON_HEADERS,
            content=content,
            extensions=extensions,
        )
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise RequestConstructionError(f"error while creating request: {exc}") from exc


def _require_executor(client: PolicyClient, *, is_async: bool) -> None:
    if inspect.iscoroutinefunction(getattr(client.executor, "send", None)) != is_async:
        expected = "an async" if is_async else "a sync"
        other = "query" if is_async else "aquery"
        raise RequestConstructionError(
            f"error while creating request: {type(client.executor).__name__} is not "
            f"{expected} request executor; use {other}()"
        )


def _prepare(
    client: PolicyClient, path: str, input_value: Any, timeout: TimeoutTypes
) -> httpx.Request:
    url = build_url(client.base_url, path)
    if timeout is None:
        # Carry the executor's own deadline; hand-built requests have none.
        executor_timeout = getattr(client.executor, "timeout", None)
        if isinstance(executor_timeout, httpx.Timeout):
            timeout = executor_timeout
    return build_request(url, input_value, timeout)


# ── Response side ────────────────────────────────────────


@lru_cache(maxsize=128)
def _adapter(result_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(result_type)


def _decode_result(content: bytes, path: str, result_type: Any) -> Any:
    try:
        envelope = pydantic_core.from_json(content)
    except ValueError as exc:
        raise DecodingError(f"could not decode OPA response: {exc}") from exc

    if not isinstance(envelope, dict):
        raise DecodingError(
            f"could not decode OPA response: expected a JSON object, "
            f"got {type(envelope).__name__}"
        )
    if "result" not in envelope:
        raise UndefinedDocumentError(path)

    try:
        # Strict JSON mode: "yes" or 1 is not a bool, "3" is not an int.
        raw = pydantic_core.to_json(envelope["result"])
        return _adapter(result_type).validate_json(raw, strict=True)
    except ValidationError as exc:
        raise DecodingError(f"could not decode OPA response: {exc}") from exc


# ── Query ────────────────────────────────────────────────


@overload
def query(
    client: PolicyClient,
    path: str,
    input_value: Any,
    result_type: type[T],
    *,
    timeout: TimeoutTypes = ...,
) -> T: ...


@overload
def query(
    client: PolicyClient,
    path: str,
    input_value: Any,
    *,
    timeout: TimeoutTypes = ...,
) -> Any: ...


def query(
    client: PolicyClient,
    path: str,
    input_value: Any,
    result_type: Any = Any,
    *,
    timeout: TimeoutTypes = None,
) -> Any:
    """Evaluate the rule at ``path`` with ``input_value`` as OPA input.

    ``path = "/example/allow"`` reads rule ``allow`` in package ``example``.
    The ``result`` field is validated strictly into ``result_type``. ``timeout``
    (seconds or ``httpx.Timeout``) is handed to the transport, which alone
    enforces it.

    Exactly one request is sent; every failure raises an
    :class:`~opaclient.errors.OPAError` subclass.
    """
    _require_executor(client, is_async=False)
    request = _prepare(client, path, input_value, timeout)

    try:
        response = client.executor.send(request)  # type: ignore[union-attr]
    except (httpx.HTTPError, OSError) as exc:
        raise TransportError(f"error while performing request: {exc}") from exc

    try:
        if response.status_code != httpx.codes.OK:
            raise PolicyServiceError(response.status_code)
        try:
            content = response.read()
        except httpx.HTTPError as exc:
            raise TransportError(f"error while performing request: {exc}") from exc
        return _decode_result(content, path, result_type)
    finally:
        response.close()


@overload
async def aquery(
    client: PolicyClient,
    path: str,
    input_value: Any,
    result_type: type[T],
    *,
    timeout: TimeoutTypes = ...,
) -> T: ...


@overload
async def aquery(
    client: PolicyClient,
    path: str,
    input_value: Any,
    *,
    timeout: TimeoutTypes = ...,
) -> Any: ...


async def aquery(
    client: PolicyClient,
    path: str,
    input_value: Any,
    result_type: Any = Any,
    *,
    timeout: TimeoutTypes = None,
) -> Any:
    """Async :func:`query` over an :class:`AsyncRequestExecutor`."""
    _require_executor(client, is_async=True)
    request = _prepare(client, path, input_value, timeout)

    try:
        response = await client.executor.send(request)  # type: ignore[misc]
    except (httpx.HTTPError, OSError) as exc:
        raise TransportError(f"error while performing request: {exc}") from exc

    try:
        if response.status_code != httpx.codes.OK:
            raise PolicyServiceError(response.status_code)
        try:
            content = await response.aread()
        except httpx.HTTPError as exc:
            raise TransportError(f"error while performing request: {exc}") from exc
        return _decode_result(content, path, result_type)
    finally:
        await response.aclose()
