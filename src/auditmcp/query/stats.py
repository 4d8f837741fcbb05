"""Windowed statistics over the ledger."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from auditmcp.models.enums import StatsWindow
from auditmcp.models.events import as_utc
from auditmcp.models.events import utc_now
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import StatsSummary
from auditmcp.observability import timed
from auditmcp.query.engine import QueryEngine


def window_bounds(
    window: StatsWindow, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` covering *window* and ending at *now*."""
    end = as_utc(now) if now is not None else utc_now()
    return end - timedelta(days=window.days), end


def day_key(timestamp: datetime) -> str:
    return timestamp.astimezone(timezone.utc).date().isoformat()


class StatsAggregator:
    """Counts outcomes, policy overlays and per-action/per-day histograms."""

    def __init__(self, query_engine: QueryEngine) -> None:
        self._query = query_engine

    async def stats(
        self,
        window: StatsWindow = StatsWindow.last_7d,
        *,
        now: datetime | None = None,
    ) -> StatsSummary:
        with timed("stats.aggregate"):
            start, end = window_bounds(window, now)
            events = await self._query.find_all(
                AuditFilter(start_date=start, end_date=end), with_changes=False
            )

            successful = 0
            break_glass = 0
            dual_control = 0
            by_action: Counter[str] = Counter()
            by_day: Counter[str] = Counter()
            for event in events:
                if event.success:
                    successful += 1
                if event.break_glass is not None and event.break_glass.used:
                    break_glass += 1
                if event.dual_control_approver is not None:
                    dual_control += 1
                by_action[event.action.value] += 1
                by_day[day_key(event.timestamp)] += 1

            return StatsSummary(
                time_range=window,
                total_events=len(events),
                successful_actions=successful,
                failed_actions=len(events) - successful,
                break_glass_used=break_glass,
                dual_control_actions=dual_control,
                actions_by_type=dict(sorted(by_action.items())),
                events_by_day=dict(sorted(by_day.items())),
            )
