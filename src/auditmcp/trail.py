"""Audit trail facade — the write boundary and the read/query boundary.

Producers call ``record_event`` once per completed privileged action; the
compliance console reads through ``get_events``, ``get_event_by_id``,
``get_stats`` and ``export_events``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from auditmcp.config import ExportConfig
from auditmcp.config import QueryConfig
from auditmcp.export.pipeline import ExportPipeline
from auditmcp.ledger.diff import diff
from auditmcp.ledger.store import EventStore
from auditmcp.models.enums import AuditAction
from auditmcp.models.enums import ExportFormat
from auditmcp.models.enums import StatsWindow
from auditmcp.models.events import Actor
from auditmcp.models.events import AuditEvent
from auditmcp.models.events import BreakGlassDetails
from auditmcp.models.events import ChangeDiff
from auditmcp.models.events import DualControlApprover
from auditmcp.models.events import EventMetadata
from auditmcp.models.events import Resource
from auditmcp.models.events import utc_now
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import EventPage
from auditmcp.models.queries import ExportResult
from auditmcp.models.queries import Pagination
from auditmcp.models.queries import StatsSummary
from auditmcp.models.reasons import ReasonCatalog
from auditmcp.models.reasons import ReasonCode
from auditmcp.observability import timed
from auditmcp.query.engine import QueryEngine
from auditmcp.query.stats import StatsAggregator

logger = logging.getLogger(__name__)


class AuditTrail:
    """Wires store, query engine, stats aggregator and export pipeline together."""

    def __init__(
        self,
        store: EventStore,
        *,
        query_config: QueryConfig | None = None,
        export_config: ExportConfig | None = None,
        catalog: ReasonCatalog | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog or ReasonCatalog()
        self.query = QueryEngine(store, query_config)
        self.stats = StatsAggregator(self.query)
        self.exporter = ExportPipeline(self.query, export_config, catalog=self.catalog)

    # ------------------------------------------------------------------
    # Write boundary
    # ------------------------------------------------------------------

    async def record_event(
        self,
        actor: Actor,
        action: AuditAction,
        resource: Resource,
        *,
        before_state: dict[str, Any] | None = None,
        after_state: dict[str, Any] | None = None,
        changes: list[ChangeDiff] | None = None,
        reason_code: str | None = None,
        reason_text: str | None = None,
        success: bool = True,
        error_message: str | None = None,
        break_glass: BreakGlassDetails | None = None,
        dual_control_approver: DualControlApprover | None = None,
        metadata: EventMetadata | None = None,
        timestamp: datetime | None = None,
        precompute_changes: bool = True,
    ) -> str:
        """Build, validate and append one event; return its id.

        When both snapshots are given and *changes* is not, the change set
        is computed here so the stored record is self-describing.  Raises
        ``InvalidEvent`` / ``PolicyViolation`` on rejection.
        """
        with timed("ledger.record_event"):
            if (
                precompute_changes
                and changes is None
                and before_state is not None
                and after_state is not None
            ):
                changes = diff(before_state, after_state)
            event = AuditEvent(
                id=await self.store.next_event_id(),
                timestamp=timestamp or utc_now(),
                actor=actor,
                action=action,
                resource=resource,
                before_state=before_state,
                after_state=after_state,
                changes=changes,
                reason_code=reason_code,
                reason_text=reason_text,
                success=success,
                error_message=error_message,
                break_glass=break_glass,
                dual_control_approver=dual_control_approver,
                metadata=metadata,
            )
            event_id = await self.store.append(event)
        logger.info(
            "Recorded %s on %s/%s by %s (success=%s) as %s",
            action.value,
            resource.type.value,
            resource.id,
            actor.user_id,
            success,
            event_id,
        )
        return event_id

    async def append(self, event: AuditEvent) -> str:
        """Append a fully formed event (imports, replays with known ids)."""
        with timed("ledger.append"):
            return await self.store.append(event)

    # ------------------------------------------------------------------
    # Read boundary
    # ------------------------------------------------------------------

    async def get_events(
        self,
        audit_filter: AuditFilter | None = None,
        pagination: Pagination | None = None,
    ) -> EventPage:
        return await self.query.find(audit_filter, pagination)

    async def get_event_by_id(self, event_id: str) -> AuditEvent | None:
        return await self.query.get(event_id)

    async def get_stats(
        self,
        window: StatsWindow | str = StatsWindow.last_7d,
        *,
        now: datetime | None = None,
    ) -> StatsSummary:
        return await self.stats.stats(StatsWindow(window), now=now)

    async def export_events(
        self,
        audit_filter: AuditFilter | None,
        fmt: ExportFormat | str,
        *,
        now: datetime | None = None,
    ) -> ExportResult:
        return await self.exporter.export(audit_filter, fmt, now=now)

    def describe_reason(self, code: str | None) -> ReasonCode | None:
        return self.catalog.get(code)

    async def close(self) -> None:
        await self.store.close()
