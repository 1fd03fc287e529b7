"""Shared fixtures: an in-process OPA stand-in served through httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from opaclient.client import PolicyClient, new_client

Rule = Callable[[Any], Any]


class FakeOPA:
    """Answers POST /v1/data/<package>/<rule> the way OPA does.

    Known rules return ``{"result": rule(input)}``; unknown rules return
    ``{}`` (undefined document). Every request is recorded.
    """

    def __init__(self, rules: dict[str, Rule] | None = None) -> None:
        self.rules: dict[str, Rule] = dict(rules or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method != "POST" or not request.url.path.startswith("/v1/data/"):
            return httpx.Response(404, json={"code": "resource_not_found"})
        try:
            body = json.loads(request.content)
        except ValueError:
            return httpx.Response(400, json={"code": "invalid_parameter"})

        rule = self.rules.get(request.url.path.removeprefix("/v1/data"))
        if rule is None:
            return httpx.Response(200, json={})
        return httpx.Response(200, json={"result": rule(body.get("input"))})


@pytest.fixture()
def fake_opa() -> FakeOPA:
    return FakeOPA(
        {
            "/example/allow": lambda inp: {"valid": inp.get("age", 0) >= 18},
            "/health": lambda inp: True,
        }
    )


@pytest.fixture()
def opa_client(fake_opa: FakeOPA) -> PolicyClient:
    return new_client("http://opa.test", httpx.Client(transport=httpx.MockTransport(fake_opa)))


@pytest.fixture()
def async_opa_client(fake_opa: FakeOPA) -> PolicyClient:
    return new_client(
        "http://opa.test", httpx.AsyncClient(transport=httpx.MockTransport(fake_opa))
    )


@pytest.fixture()
def make_client() -> Callable[..., PolicyClient]:
    """Factory for a sync client whose every request is answered by a handler."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        base_url: str = "http://opa.test",
    ) -> PolicyClient:
        return new_client(base_url, httpx.Client(transport=httpx.MockTransport(handler)))

    return _make
