"""Command-line launcher for the promptforge MCP server.

Serves the configuration authoring and template tools over Streamable HTTP.
Run ``promptforge`` (installed script) or ``python -m promptforge.core.server.main``;
host, port and provider come from ``PROMPTFORGE_*`` / ``LLM_*`` environment
variables.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from promptforge.core.config.settings import Settings, get_settings
from promptforge.core.server.app import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def is_local_address(host: str) -> bool:
    """True for ``localhost`` and any loopback IP literal."""
    if host.lower() == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_address(settings: Settings) -> None:
    """Refuse a public bind unless explicitly allowed.

    The tools spend model credits and rewrite the template catalog, and
    nothing in front of them checks who is calling.

    Raises:
        RuntimeError: ``promptforge_host`` is not local and
            ``PROMPTFORGE_ALLOW_INSECURE_BIND`` is not set.
    """
    if settings.promptforge_allow_insecure_bind or is_local_address(settings.promptforge_host):
        return
    raise RuntimeError(
        f"promptforge will not listen on {settings.promptforge_host!r}: the MCP tools are "
        "unauthenticated. Use a loopback host, or set PROMPTFORGE_ALLOW_INSECURE_BIND=true "
        "if something else guards the port."
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.promptforge_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    check_bind_address(settings)

    if settings.promptforge_allow_insecure_bind and not is_local_address(settings.promptforge_host):
        logger.warning("Listening on non-local host %s without authentication", settings.promptforge_host)
    logger.info(
        "promptforge listening on %s:%d, model provider %s",
        settings.promptforge_host,
        settings.promptforge_port,
        settings.llm_provider,
    )

    create_app().run(
        transport="streamable-http",
        host=settings.promptforge_host,
        port=settings.promptforge_port,
    )


if __name__ == "__main__":
    run()
