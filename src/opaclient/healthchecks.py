"""Readiness probes for an OPA instance."""

from __future__ import annotations

from opaclient.client import PolicyClient, aquery, query
from opaclient.errors import OPAError
from opaclient.logging import get_logger
from opaclient.settings import Settings

__all__ = ["check_opa", "acheck_opa"]

_TIMEOUT = 2  # seconds — fast-fail for readiness


def _health_path(path: str | None) -> str:
    return path if path is not None else Settings().health_path


def _report_failure(client: PolicyClient, rule: str, exc: OPAError) -> None:
    get_logger(client.base_url, probe="opa").warning(
        "opa_health_check_failed", path=rule, error=str(exc), kind=type(exc).__name__
    )


def check_opa(client: PolicyClient, path: str | None = None) -> bool:
    """Query the readiness rule with an empty input. Returns False on any failure.

    Any decodable ``result`` counts as healthy. An OPA that answers ``{}``
    because the readiness rule is not loaded (undefined document) counts as
    a failure, like a non-200 status or an unreachable server.
    """
    rule = _health_path(path)
    try:
        query(client, rule, {}, timeout=_TIMEOUT)
    except OPAError as exc:
        _report_failure(client, rule, exc)
        return False
    return True


async def acheck_opa(client: PolicyClient, path: str | None = None) -> bool:
    """Async :func:`check_opa` for clients over an ``httpx.AsyncClient``.

    Same rules: an undefined readiness rule is reported unhealthy.
    """
    rule = _health_path(path)
    try:
        await aquery(client, rule, {}, timeout=_TIMEOUT)
    except OPAError as exc:
        _report_failure(client, rule, exc)
        return False
    return True
