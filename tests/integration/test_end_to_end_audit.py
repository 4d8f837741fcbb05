"""End-to-end flow through the MCP server over a durable JSONL ledger.

Records events, restarts the server on the same file, then reads,
aggregates and exports what survived.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from fastmcp import Client

from auditmcp.config import AppConfig
from auditmcp.config import ExportConfig
from auditmcp.config import LedgerConfig
from auditmcp.config import ReasonCatalogConfig
from auditmcp.observability import rejection_counts_snapshot
from auditmcp.observability import reset_metrics
from auditmcp.server import configure
from auditmcp.server import mcp
from auditmcp.server import shutdown

SUPERVISOR = {"user_id": "USR-010", "username": "supervisor.chen", "role": "OperationsDirector"}
AGENT = {"user_id": "USR-020", "username": "support.cruz", "role": "SupportAgent"}


def _parse(result) -> dict:
    return json.loads(result.content[0].text)


def _app_config(tmp_path: Path) -> AppConfig:
    reasons = tmp_path / "reasons.json"
    reasons.write_text(
        json.dumps(
            {
                "EMERGENCY_OVERRIDE": {"label": "Emergency Override", "category": "Emergency"},
                "CUSTOMER_REQUEST": {"label": "Customer Request", "category": "Support"},
            }
        ),
        encoding="utf-8",
    )
    return AppConfig(
        ledger=LedgerConfig(backend="jsonl", file_path=str(tmp_path / "ledger.jsonl")),
        export=ExportConfig(output_dir=str(tmp_path / "exports")),
        reasons=ReasonCatalogConfig(file_path=str(reasons)),
    )


class TestEndToEndAudit:
    async def test_record_restart_query_export(self, tmp_path):
        reset_metrics()
        config = _app_config(tmp_path)

        await configure(config)
        async with Client(mcp) as client:
            override = _parse(
                await client.call_tool(
                    "record_event",
                    {
                        "actor": SUPERVISOR,
                        "action": "break_glass",
                        "resource": {"type": "driver", "id": "DRV-042"},
                        "before_state": {"status": "suspended"},
                        "after_state": {"status": "active"},
                        "reason_code": "EMERGENCY_OVERRIDE",
                        "break_glass": {
                            "used": True,
                            "justification": "Driver stranded with passenger",
                            "approved_by": "director.reyes",
                            "emergency_contact_notified": True,
                        },
                    },
                )
            )
            assert override["status"] == "accepted"

            refund = _parse(
                await client.call_tool(
                    "record_event",
                    {
                        "actor": AGENT,
                        "action": "approve",
                        "resource": {"type": "refund", "id": "REF-007"},
                        "reason_code": "CUSTOMER_REQUEST",
                        "success": False,
                        "error_message": "Insufficient permissions for this operation",
                    },
                )
            )
            assert refund["status"] == "accepted"

            rejected = _parse(
                await client.call_tool(
                    "record_event",
                    {
                        "actor": AGENT,
                        "action": "approve",
                        "resource": {"type": "refund", "id": "REF-008"},
                        "dual_control_approver": {
                            **AGENT,
                            "timestamp": "2026-03-01T12:00:00Z",
                        },
                    },
                )
            )
            assert rejected["error_code"] == "dual_control_self_approval"
        await shutdown()

        # A fresh server on the same file sees exactly the accepted events.
        await configure(config)
        try:
            async with Client(mcp) as client:
                page = _parse(await client.call_tool("get_events", {}))
                assert page["total"] == 2
                assert [e["id"] for e in page["items"]] == [
                    refund["event_id"],
                    override["event_id"],
                ]

                fetched = _parse(
                    await client.call_tool(
                        "get_event_by_id", {"event_id": override["event_id"]}
                    )
                )
                assert fetched["event"]["break_glass"]["used"] is True
                assert fetched["event"]["changes"][0]["change_type"] == "modified"

                stats = _parse(await client.call_tool("get_stats", {"time_range": "24h"}))
                assert stats["stats"]["total_events"] == 2
                assert stats["stats"]["break_glass_used"] == 1
                assert stats["stats"]["failed_actions"] == 1

                exported = _parse(
                    await client.call_tool(
                        "export_events", {"format": "csv", "success": False}
                    )
                )
                assert exported["status"] == "ok"
                assert exported["event_count"] == 1
                artifact = Path(url2pathname(urlparse(exported["url"]).path))
                rows = list(csv.DictReader(io.StringIO(artifact.read_text(encoding="utf-8"))))
                assert [row["resource_id"] for row in rows] == ["REF-007"]
                assert rows[0]["reason_label"] == "Customer Request"
                assert rows[0]["action"] == "Approve"
        finally:
            await shutdown()

        ledger_lines = (tmp_path / "ledger.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(ledger_lines) == 2
        assert rejection_counts_snapshot() == {"dual_control_self_approval": 1}
