"""Tests for the library logger."""

from __future__ import annotations

from structlog.testing import capture_logs

from opaclient.logging import LOGGER_NAME, get_logger


def test_binds_component() -> None:
    with capture_logs() as logs:
        get_logger().info("policy_checked", path="/example/allow")

    assert logs == [
        {
            "event": "policy_checked",
            "path": "/example/allow",
            "component": LOGGER_NAME,
            "log_level": "info",
        }
    ]


def test_binds_opa_url_and_extra_context() -> None:
    with capture_logs() as logs:
        get_logger("http://opa:8181", probe="opa").warning("unreachable")

    assert logs[0]["opa_url"] == "http://opa:8181"
    assert logs[0]["probe"] == "opa"
    assert logs[0]["log_level"] == "warning"


def test_no_opa_url_without_base_url() -> None:
    with capture_logs() as logs:
        get_logger().debug("quiet")

    assert "opa_url" not in logs[0]
