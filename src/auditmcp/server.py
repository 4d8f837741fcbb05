"""AuditMCP — FastMCP server exposing the compliance audit trail.

Tools delegate to an ``AuditTrail`` built by ``configure()``; call it
(or ``main()``) before using the server.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from time import perf_counter

from dotenv import load_dotenv
from fastmcp import FastMCP
from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]

from auditmcp.config import AppConfig
from auditmcp.config import config_from_env
from auditmcp.config import LedgerConfig
from auditmcp.errors import ExportFailed
from auditmcp.errors import InvalidEvent
from auditmcp.errors import PolicyViolation
from auditmcp.ledger import EventStore
from auditmcp.ledger import InMemoryEventStore
from auditmcp.ledger import JsonlEventStore
from auditmcp.ledger import RedisEventStore
from auditmcp.models.enums import StatsWindow
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import Pagination
from auditmcp.models.reasons import ReasonCatalog
from auditmcp.models.schemas import ExportEventsResult
from auditmcp.models.schemas import GetEventResult
from auditmcp.models.schemas import GetEventsResult
from auditmcp.models.schemas import RecordEventInput
from auditmcp.models.schemas import RecordEventResult
from auditmcp.models.schemas import StatsResult
from auditmcp.models.schemas import SubscribeResult
from auditmcp.observability import record_latency
from auditmcp.trail import AuditTrail

logger = logging.getLogger(__name__)

mcp = FastMCP("AuditMCP")

# ---------------------------------------------------------------------------
# Audit trail instance (set via configure())
# ---------------------------------------------------------------------------

_trail: AuditTrail | None = None


def build_store(config: LedgerConfig) -> EventStore:
    """Instantiate the ledger backend named by *config*."""
    if config.backend == "memory":
        return InMemoryEventStore()
    if config.backend == "redis":
        return RedisEventStore(
            Redis.from_url(config.redis_url), key_prefix=config.key_prefix
        )
    return JsonlEventStore(config.file_path)


async def configure(
    config: AppConfig | None = None,
    *,
    store: EventStore | None = None,
) -> AuditTrail:
    """Initialize the audit trail backing the MCP tools.

    An explicit *store* takes precedence over ``config.ledger``.
    """
    global _trail
    if _trail is not None:
        try:
            await _trail.close()
        except RuntimeError:
            # Tests may reconfigure across event loops.
            pass

    cfg = config or AppConfig()
    catalog = (
        ReasonCatalog.from_file(cfg.reasons.file_path)
        if cfg.reasons.file_path
        else ReasonCatalog()
    )
    _trail = AuditTrail(
        store or build_store(cfg.ledger),
        query_config=cfg.query,
        export_config=cfg.export,
        catalog=catalog,
    )
    logger.info("Audit trail configured (backend=%s)", cfg.ledger.backend)
    return _trail


async def shutdown() -> None:
    """Close backend clients and release server resources."""
    global _trail
    if _trail is not None:
        await _trail.close()
        _trail = None


def _get_trail() -> AuditTrail:
    """Return the audit trail instance or raise."""
    if _trail is None:
        raise RuntimeError("Audit trail not configured. Call configure() first.")
    return _trail


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in err.get("loc", ()))
    msg = str(err.get("msg", "Invalid input"))
    return f"{location}: {msg}" if location else msg


def _build_filter(
    *,
    start_date: str | None,
    end_date: str | None,
    user_id: str | None,
    username: str | None,
    role: str | None,
    action: str | None,
    resource_type: str | None,
    resource_id: str | None,
    success: bool | None,
    search_query: str | None,
) -> AuditFilter:
    return AuditFilter.model_validate(
        {
            "start_date": start_date,
            "end_date": end_date,
            "user_id": user_id,
            "username": username,
            "role": role,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "success": success,
            "search_query": search_query,
        }
    )


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool
async def record_event(
    actor: dict,
    action: str,
    resource: dict,
    before_state: dict | None = None,
    after_state: dict | None = None,
    changes: list[dict] | None = None,
    reason_code: str | None = None,
    reason_text: str | None = None,
    success: bool = True,
    error_message: str | None = None,
    break_glass: dict | None = None,
    dual_control_approver: dict | None = None,
    metadata: dict | None = None,
) -> RecordEventResult:
    """Record one completed privileged action in the audit ledger.

    Args:
        actor: Operator performing the action (user_id, username, role, ...).
        action: Audited action, e.g. "update" or "break_glass".
        resource: Target object (type, id, optional display_name).
        before_state: Snapshot before the action.
        after_state: Snapshot after the action.
        changes: Precomputed field changes; must match the snapshots.
        reason_code: Code from the reason catalog.
        reason_text: Free-text justification.
        success: Whether the action succeeded.
        error_message: Required when success is false.
        break_glass: Emergency override details.
        dual_control_approver: Second approver for dual-control actions.
        metadata: Session/request provenance.
    """
    start = perf_counter()
    ok = False
    try:
        trail = _get_trail()
        try:
            validated = RecordEventInput.model_validate(
                {
                    "actor": actor,
                    "action": action,
                    "resource": resource,
                    "before_state": before_state,
                    "after_state": after_state,
                    "changes": changes,
                    "reason_code": reason_code,
                    "reason_text": reason_text,
                    "success": success,
                    "error_message": error_message,
                    "break_glass": break_glass,
                    "dual_control_approver": dual_control_approver,
                    "metadata": metadata,
                }
            )
        except ValidationError as exc:
            return RecordEventResult(
                status="rejected",
                error_code="validation_error",
                message=_validation_message(exc),
            )

        try:
            event_id = await trail.record_event(
                validated.actor,
                validated.action,
                validated.resource,
                before_state=validated.before_state,
                after_state=validated.after_state,
                changes=validated.changes,
                reason_code=validated.reason_code,
                reason_text=validated.reason_text,
                success=validated.success,
                error_message=validated.error_message,
                break_glass=validated.break_glass,
                dual_control_approver=validated.dual_control_approver,
                metadata=validated.metadata,
            )
        except PolicyViolation as exc:
            return RecordEventResult(
                status="rejected",
                error_code=exc.reason.value,
                message=exc.message,
            )
        except InvalidEvent as exc:
            return RecordEventResult(
                status="rejected",
                error_code="invalid_event",
                message=str(exc),
            )
        ok = True
        return RecordEventResult(event_id=event_id)
    finally:
        record_latency(
            operation="mcp.record_event",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def get_events(
    start_date: str | None = None,
    end_date: str | None = None,
    user_id: str | None = None,
    username: str | None = None,
    role: str | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    success: bool | None = None,
    search_query: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> GetEventsResult:
    """Search the audit ledger, newest first.

    Args:
        start_date: ISO-8601 inclusive lower bound.
        end_date: ISO-8601 inclusive upper bound.
        user_id: Exact actor id.
        username: Case-insensitive substring of the actor username.
        role: Exact actor role.
        action: Exact action.
        resource_type: Exact resource type.
        resource_id: Exact resource id.
        success: Restrict to successful (true) or failed (false) actions.
        search_query: Free text over id, username, resource and action.
        page: 1-based page number (values below 1 are clamped).
        page_size: Items per page (clamped to the configured maximum).
    """
    start = perf_counter()
    ok = False
    try:
        trail = _get_trail()
        try:
            audit_filter = _build_filter(
                start_date=start_date,
                end_date=end_date,
                user_id=user_id,
                username=username,
                role=role,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                success=success,
                search_query=search_query,
            )
        except ValidationError as exc:
            return GetEventsResult(
                status="error",
                error_code="validation_error",
                message=_validation_message(exc),
                page=max(page, 1),
                page_size=max(page_size, 1),
            )

        result = await trail.get_events(
            audit_filter, Pagination(page=page, page_size=page_size)
        )
        ok = True
        return GetEventsResult(**result.model_dump())
    finally:
        record_latency(
            operation="mcp.get_events",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def get_event_by_id(event_id: str) -> GetEventResult:
    """Fetch a single audit event, with its field-level changes.

    Args:
        event_id: Identifier such as "AUD-000042".
    """
    start = perf_counter()
    ok = False
    try:
        event = await _get_trail().get_event_by_id(event_id)
        ok = True
        if event is None:
            return GetEventResult(status="not_found")
        return GetEventResult(event=event)
    finally:
        record_latency(
            operation="mcp.get_event_by_id",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def get_stats(time_range: str = "7d") -> StatsResult:
    """Summarize ledger activity over a look-back window.

    Args:
        time_range: One of "24h", "7d", "30d", "90d".
    """
    start = perf_counter()
    ok = False
    try:
        trail = _get_trail()
        try:
            window = StatsWindow(time_range)
        except ValueError:
            allowed = ", ".join(w.value for w in StatsWindow)
            return StatsResult(
                status="error",
                error_code="invalid_window",
                message=f"time_range must be one of: {allowed}.",
            )
        stats = await trail.get_stats(window)
        ok = True
        return StatsResult(stats=stats)
    finally:
        record_latency(
            operation="mcp.get_stats",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def export_events(
    format: str = "csv",
    start_date: str | None = None,
    end_date: str | None = None,
    user_id: str | None = None,
    username: str | None = None,
    role: str | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    success: bool | None = None,
    search_query: str | None = None,
) -> ExportEventsResult:
    """Export every event matching the filters as csv, pdf or json.

    Args:
        format: "csv", "pdf" or "json".
        start_date: ISO-8601 inclusive lower bound.
        end_date: ISO-8601 inclusive upper bound.
        user_id: Exact actor id.
        username: Case-insensitive substring of the actor username.
        role: Exact actor role.
        action: Exact action.
        resource_type: Exact resource type.
        resource_id: Exact resource id.
        success: Restrict to successful (true) or failed (false) actions.
        search_query: Free text over id, username, resource and action.
    """
    start = perf_counter()
    ok = False
    try:
        trail = _get_trail()
        try:
            audit_filter = _build_filter(
                start_date=start_date,
                end_date=end_date,
                user_id=user_id,
                username=username,
                role=role,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                success=success,
                search_query=search_query,
            )
        except ValidationError as exc:
            return ExportEventsResult(
                status="error",
                error_code="validation_error",
                message=_validation_message(exc),
            )
        if format not in {"csv", "pdf", "json"}:
            return ExportEventsResult(
                status="error",
                error_code="invalid_format",
                message="format must be one of: csv, pdf, json.",
            )

        try:
            exported = await trail.export_events(audit_filter, format)
        except ExportFailed as exc:
            return ExportEventsResult(
                status="error",
                error_code="export_failed",
                message=str(exc),
            )
        ok = True
        return ExportEventsResult(**exported.model_dump())
    finally:
        record_latency(
            operation="mcp.export_events",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def subscribe_events() -> SubscribeResult:
    """Live event stream (not yet available; poll get_events instead)."""
    return SubscribeResult()


def main() -> None:
    """Run the server with configuration from the environment / ``.env``."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    logging.basicConfig(level=logging.INFO)
    asyncio.run(configure(config_from_env()))
    mcp.run()


if __name__ == "__main__":
    main()
