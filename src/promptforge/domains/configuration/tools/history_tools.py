"""MCP tools for viewing the interaction log."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import FastMCP

if TYPE_CHECKING:
    from promptforge.core.audit.logger import InteractionLog

logger = logging.getLogger(__name__)


def register_history_tools(mcp: FastMCP, interaction_log: InteractionLog) -> None:
    """Register interaction history tools on the MCP server."""

    @mcp.tool
    def interaction_history(days: int = 7, limit: int = 20) -> str:
        """Review recent generate/edit calls and how often they produced valid JSON.

        Args:
            days: Number of days to look back (default: 7).
            limit: Maximum number of events to list.
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        events = interaction_log.get_events(since=since, limit=limit)
        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "operation": event.get("operation"),
                "template_name": event.get("template_name"),
                "model": event.get("model"),
                "is_valid": bool(event.get("is_valid")),
                "outcome": event.get("outcome"),
                "card_count": event.get("card_count"),
                "status": event.get("status"),
                "duration_ms": event.get("duration_ms"),
            }
            for event in events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": interaction_log.count_events(since=since),
            "validity_rate": interaction_log.validity_rate(since=since),
            "recent_events": display_events,
        }, indent=2)
