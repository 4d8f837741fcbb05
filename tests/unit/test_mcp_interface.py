"""MCP interface contract tests.

All tests use ``fastmcp.Client`` to exercise the full MCP protocol
(serialization, validation) against an in-memory ledger.
"""

from __future__ import annotations

import json
import re

import pytest

from auditmcp.observability import latency_metrics_snapshot

ACTOR = {"user_id": "USR-001", "username": "admin.santos", "role": "OperationsManager"}
RESOURCE = {"type": "driver", "id": "DRV-001", "display_name": "Juan Santos"}


def _parse(result) -> dict:
    """Extract the JSON payload from a CallToolResult."""
    return json.loads(result.content[0].text)


async def _record(client, **overrides) -> dict:
    args = {"actor": ACTOR, "action": "update", "resource": RESOURCE}
    args.update(overrides)
    return _parse(await client.call_tool("record_event", args))


# -----------------------------------------------------------------------
# Registration
# -----------------------------------------------------------------------


class TestRegistration:
    async def test_lists_all_tools(self, mcp_client):
        tools = await mcp_client.list_tools()
        assert {t.name for t in tools} == {
            "record_event",
            "get_events",
            "get_event_by_id",
            "get_stats",
            "export_events",
            "subscribe_events",
        }


# -----------------------------------------------------------------------
# record_event
# -----------------------------------------------------------------------


class TestRecordEvent:
    async def test_accepts_valid_event(self, mcp_client):
        data = await _record(mcp_client)
        assert data["status"] == "accepted"
        assert data["event_id"] == "AUD-000001"

    async def test_rejects_missing_actor(self, mcp_client):
        with pytest.raises(Exception):
            await mcp_client.call_tool(
                "record_event", {"action": "update", "resource": RESOURCE}
            )

    async def test_unknown_action_is_validation_error(self, mcp_client):
        data = await _record(mcp_client, action="teleport")
        assert data["status"] == "rejected"
        assert data["error_code"] == "validation_error"
        assert data["message"].startswith("action")

    async def test_policy_violation_reports_reason(self, mcp_client):
        data = await _record(
            mcp_client,
            dual_control_approver={
                "user_id": "USR-001",
                "username": "admin.santos",
                "role": "OperationsManager",
                "timestamp": "2026-03-01T12:00:00Z",
            },
        )
        assert data["status"] == "rejected"
        assert data["error_code"] == "dual_control_self_approval"
        assert data["event_id"] == ""

    async def test_tampered_changes_rejected(self, mcp_client):
        data = await _record(
            mcp_client,
            before_state={"status": "pending"},
            after_state={"status": "approved"},
            changes=[
                {
                    "field": "status",
                    "old_value": "pending",
                    "new_value": "rejected",
                    "change_type": "modified",
                }
            ],
        )
        assert data["error_code"] == "diff_tampering"

    async def test_blank_actor_is_invalid_event(self, mcp_client):
        data = await _record(mcp_client, actor={**ACTOR, "user_id": " "})
        assert data["error_code"] == "invalid_event"


# -----------------------------------------------------------------------
# get_events / get_event_by_id
# -----------------------------------------------------------------------


class TestReads:
    async def test_get_events_filters_and_pages(self, mcp_client):
        await _record(mcp_client)
        await _record(mcp_client, success=False, error_message="Timeout")
        await _record(mcp_client, action="approve")

        data = _parse(
            await mcp_client.call_tool(
                "get_events", {"success": False, "page": 1, "page_size": 10}
            )
        )
        assert data["status"] == "ok"
        assert data["total"] == 1
        assert data["total_pages"] == 1
        assert data["items"][0]["error_message"] == "Timeout"

        everything = _parse(await mcp_client.call_tool("get_events", {"page_size": 2}))
        assert everything["total"] == 3
        assert everything["total_pages"] == 2
        assert len(everything["items"]) == 2

    async def test_get_events_invalid_enum(self, mcp_client):
        data = _parse(await mcp_client.call_tool("get_events", {"role": "Pirate"}))
        assert data["status"] == "error"
        assert data["error_code"] == "validation_error"
        assert data["items"] == []

    async def test_get_event_by_id_includes_changes(self, mcp_client):
        recorded = await _record(
            mcp_client,
            before_state={"status": "active"},
            after_state={"status": "suspended"},
        )
        data = _parse(
            await mcp_client.call_tool(
                "get_event_by_id", {"event_id": recorded["event_id"]}
            )
        )
        assert data["status"] == "ok"
        assert data["event"]["changes"][0]["new_value"] == "suspended"

    async def test_get_event_by_id_not_found(self, mcp_client):
        data = _parse(
            await mcp_client.call_tool("get_event_by_id", {"event_id": "AUD-404"})
        )
        assert data["status"] == "not_found"
        assert data["event"] is None


# -----------------------------------------------------------------------
# get_stats / export_events / subscribe_events
# -----------------------------------------------------------------------


class TestStatsAndExport:
    async def test_get_stats(self, mcp_client):
        await _record(mcp_client)
        await _record(mcp_client, success=False, error_message="Timeout")
        data = _parse(await mcp_client.call_tool("get_stats", {"time_range": "24h"}))
        assert data["status"] == "ok"
        assert data["stats"]["total_events"] == 2
        assert data["stats"]["failed_actions"] == 1

    async def test_get_stats_invalid_window(self, mcp_client):
        data = _parse(await mcp_client.call_tool("get_stats", {"time_range": "1y"}))
        assert data["status"] == "error"
        assert data["error_code"] == "invalid_window"

    async def test_export_empty_csv(self, mcp_client):
        data = _parse(
            await mcp_client.call_tool(
                "export_events", {"format": "csv", "resource_id": "NONE"}
            )
        )
        assert data["status"] == "ok"
        assert data["event_count"] == 0
        assert re.match(r"^audit-log-\d{4}-\d{2}-\d{2}\.csv$", data["filename"])

    async def test_export_invalid_format(self, mcp_client):
        data = _parse(await mcp_client.call_tool("export_events", {"format": "xlsx"}))
        assert data["status"] == "error"
        assert data["error_code"] == "invalid_format"

    async def test_subscribe_is_unavailable(self, mcp_client):
        data = _parse(await mcp_client.call_tool("subscribe_events", {}))
        assert data["status"] == "unavailable"


# -----------------------------------------------------------------------
# Latency
# -----------------------------------------------------------------------


class TestLatency:
    async def test_every_read_tool_records_latency(self, mcp_client):
        await _record(mcp_client)
        await mcp_client.call_tool("get_events", {})
        await mcp_client.call_tool("get_event_by_id", {"event_id": "AUD-000001"})
        await mcp_client.call_tool("get_event_by_id", {"event_id": "AUD-404"})
        await mcp_client.call_tool("get_stats", {})

        metrics = latency_metrics_snapshot()
        assert metrics["mcp.get_event_by_id"]["count"] == 2
        assert metrics["mcp.get_event_by_id"]["error_count"] == 0
        for name in ("mcp.record_event", "mcp.get_events", "mcp.get_stats"):
            assert metrics[name]["count"] == 1
