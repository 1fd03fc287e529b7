"""structlog loggers for the OPA client.

The library never configures structlog; the host application does. Entries
carry the emitting component and the OPA instance they concern, so they
merge cleanly into whatever processor chain the application installs.
"""

from __future__ import annotations

from typing import Any

import structlog

__all__ = ["LOGGER_NAME", "get_logger"]

LOGGER_NAME = "opaclient"


def get_logger(base_url: str | None = None, **kwargs: Any) -> structlog.BoundLogger:
    """Return a logger bound to ``component`` and, when given, ``opa_url``."""
    context: dict[str, Any] = {"component": LOGGER_NAME, **kwargs}
    if base_url is not None:
        context["opa_url"] = base_url
    return structlog.get_logger(LOGGER_NAME).bind(**context)  # type: ignore[no-any-return]
