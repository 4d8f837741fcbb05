"""Serializers turning a list of audit events into export artifact bytes."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Callable
from collections.abc import Sequence
from datetime import datetime

from pydantic import TypeAdapter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.pagesizes import landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph
from reportlab.platypus import SimpleDocTemplate
from reportlab.platypus import Spacer
from reportlab.platypus import Table
from reportlab.platypus import TableStyle

from auditmcp.models.enums import ExportFormat
from auditmcp.models.enums import format_action
from auditmcp.models.enums import format_resource_type
from auditmcp.models.events import AuditEvent
from auditmcp.models.events import ChangeDiff
from auditmcp.models.reasons import ReasonCatalog

Renderer = Callable[[Sequence[AuditEvent], ReasonCatalog, datetime], bytes]

CSV_COLUMNS = [
    "id",
    "timestamp",
    "actor_user_id",
    "actor_username",
    "actor_role",
    "actor_seat",
    "action",
    "resource_type",
    "resource_id",
    "resource_name",
    "success",
    "error_message",
    "reason_code",
    "reason_label",
    "reason_text",
    "break_glass_used",
    "break_glass_approved_by",
    "dual_control_approver",
    "changes",
]

_PDF_COLUMNS = [
    "Timestamp (UTC)",
    "Event",
    "Actor",
    "Action",
    "Resource",
    "Result",
    "Reason",
    "Overlays",
]

_EVENT_LIST_ADAPTER = TypeAdapter(list[AuditEvent])


def _value_text(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def summarize_changes(changes: Sequence[ChangeDiff] | None) -> str:
    """One-line summary, e.g. ``status: pending -> approved; note: + "x"``."""
    if not changes:
        return ""
    parts = []
    for change in changes:
        if change.change_type.value == "added":
            parts.append(f"{change.field}: + {_value_text(change.new_value)}")
        elif change.change_type.value == "removed":
            parts.append(f"{change.field}: - {_value_text(change.old_value)}")
        else:
            parts.append(
                f"{change.field}: {_value_text(change.old_value)}"
                f" -> {_value_text(change.new_value)}"
            )
    return "; ".join(parts)


def csv_row(event: AuditEvent, catalog: ReasonCatalog) -> dict[str, str]:
    break_glass = event.break_glass
    approver = event.dual_control_approver
    return {
        "id": event.id,
        "timestamp": event.timestamp.isoformat(),
        "actor_user_id": event.actor.user_id,
        "actor_username": event.actor.username,
        "actor_role": event.actor.role.value,
        "actor_seat": event.actor.seat or "",
        "action": format_action(event.action),
        "resource_type": format_resource_type(event.resource.type),
        "resource_id": event.resource.id,
        "resource_name": event.resource.display_name or "",
        "success": "true" if event.success else "false",
        "error_message": event.error_message or "",
        "reason_code": event.reason_code or "",
        "reason_label": catalog.label_for(event.reason_code) or "",
        "reason_text": event.reason_text or "",
        "break_glass_used": "true" if break_glass and break_glass.used else "false",
        "break_glass_approved_by": (break_glass.approved_by or "") if break_glass else "",
        "dual_control_approver": approver.username if approver else "",
        "changes": summarize_changes(event.changes),
    }


def render_csv(
    events: Sequence[AuditEvent], catalog: ReasonCatalog, generated_at: datetime
) -> bytes:
    del generated_at
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for event in events:
        writer.writerow(csv_row(event, catalog))
    return buffer.getvalue().encode("utf-8")


def render_json(
    events: Sequence[AuditEvent], catalog: ReasonCatalog, generated_at: datetime
) -> bytes:
    del catalog
    payload = {
        "generated_at": generated_at.isoformat(),
        "count": len(events),
        "events": _EVENT_LIST_ADAPTER.dump_python(list(events), mode="json"),
    }
    return json.dumps(payload, indent=2).encode("utf-8")


def _pdf_row(event: AuditEvent, catalog: ReasonCatalog) -> list[str]:
    overlays = []
    if event.break_glass is not None and event.break_glass.used:
        overlays.append(f"Break glass ({event.break_glass.approved_by})")
    if event.dual_control_approver is not None:
        overlays.append(f"Dual control ({event.dual_control_approver.username})")
    return [
        event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        event.id,
        f"{event.actor.username} ({event.actor.role.value})",
        format_action(event.action),
        f"{format_resource_type(event.resource.type)} {event.resource.id}",
        "OK" if event.success else f"FAILED: {event.error_message}",
        catalog.label_for(event.reason_code) or "",
        ", ".join(overlays),
    ]


def render_pdf(
    events: Sequence[AuditEvent], catalog: ReasonCatalog, generated_at: datetime
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        title="Audit log export",
        leftMargin=24,
        rightMargin=24,
        topMargin=24,
        bottomMargin=24,
    )
    styles = getSampleStyleSheet()
    rows = [_PDF_COLUMNS] + [_pdf_row(event, catalog) for event in events]
    table = Table(rows, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 7),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    story = [
        Paragraph("Audit log export", styles["Title"]),
        Paragraph(
            f"Generated {generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC, "
            f"{len(events)} event(s)",
            styles["Normal"],
        ),
        Spacer(1, 12),
        table,
    ]
    doc.build(story)
    return buffer.getvalue()


RENDERERS: dict[ExportFormat, Renderer] = {
    ExportFormat.csv: render_csv,
    ExportFormat.json: render_json,
    ExportFormat.pdf: render_pdf,
}
