"""Pydantic models for the MCP interface.

Input models validate tool arguments; output models shape responses.
FastMCP serializes these automatically.  Failures are reported through
``status``/``error_code`` fields rather than raised to the client.
"""

from __future__ import annotations

from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import Field

from auditmcp.models.enums import AuditAction
from auditmcp.models.enums import ExportFormat
from auditmcp.models.events import Actor
from auditmcp.models.events import AuditEvent
from auditmcp.models.events import BreakGlassDetails
from auditmcp.models.events import ChangeDiff
from auditmcp.models.events import DualControlApprover
from auditmcp.models.events import EventMetadata
from auditmcp.models.events import Resource
from auditmcp.models.queries import EventPage
from auditmcp.models.queries import StatsSummary

# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class RecordEventInput(BaseModel):
    """Input for the record_event tool (the producer write boundary)."""

    actor: Actor
    action: AuditAction
    resource: Resource
    before_state: dict[str, Any] | None = None
    after_state: dict[str, Any] | None = None
    changes: list[ChangeDiff] | None = None
    reason_code: str | None = None
    reason_text: str | None = None
    success: bool = True
    error_message: str | None = None
    break_glass: BreakGlassDetails | None = None
    dual_control_approver: DualControlApprover | None = None
    metadata: EventMetadata | None = None


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------


class RecordEventResult(BaseModel):
    """Output of record_event."""

    event_id: str = ""
    status: Literal["accepted", "rejected"] = "accepted"
    error_code: str | None = Field(
        default=None,
        description=(
            "validation_error, invalid_event, or the violated policy "
            "(e.g. dual_control_self_approval)."
        ),
    )
    message: str | None = None


class GetEventsResult(EventPage):
    """Output of get_events: one page plus a status envelope."""

    status: Literal["ok", "error"] = "ok"
    error_code: str | None = None
    message: str | None = None


class GetEventResult(BaseModel):
    """Output of get_event_by_id."""

    status: Literal["ok", "not_found"] = "ok"
    event: AuditEvent | None = None


class StatsResult(BaseModel):
    """Output of get_stats."""

    status: Literal["ok", "error"] = "ok"
    stats: StatsSummary | None = None
    error_code: str | None = None
    message: str | None = None


class ExportEventsResult(BaseModel):
    """Output of export_events."""

    status: Literal["ok", "error"] = "ok"
    url: str | None = None
    filename: str | None = None
    format: ExportFormat | None = None
    event_count: int = 0
    error_code: str | None = None
    message: str | None = None


class SubscribeResult(BaseModel):
    """Output of subscribe_events; streaming is not offered yet."""

    status: Literal["unavailable"] = "unavailable"
    message: str = (
        "Live audit streaming is not yet available; poll get_events instead."
    )
