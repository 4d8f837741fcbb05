"""Query engine: filtered, sorted, paginated reads over the ledger."""

from __future__ import annotations

import logging

from auditmcp.config import QueryConfig
from auditmcp.ledger.store import EventStore
from auditmcp.models.events import AuditEvent
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import EventPage
from auditmcp.models.queries import Pagination
from auditmcp.models.queries import total_pages
from auditmcp.observability import timed

logger = logging.getLogger(__name__)


class QueryEngine:
    """Read-only view over an ``EventStore``.

    Change sets are computed on read for events that carry both snapshots
    but no precomputed ``changes``; the stored record is never modified.
    """

    def __init__(self, store: EventStore, config: QueryConfig | None = None) -> None:
        self._store = store
        self.config = config or QueryConfig()

    @property
    def store(self) -> EventStore:
        return self._store

    def normalize_pagination(self, pagination: Pagination | None) -> Pagination:
        """Fill defaults and clamp ``page_size`` to the configured maximum."""
        if pagination is None:
            return Pagination(page=1, page_size=self.config.default_page_size)
        if pagination.page_size > self.config.max_page_size:
            logger.debug(
                "Clamping page_size %d to %d",
                pagination.page_size,
                self.config.max_page_size,
            )
            return Pagination(
                page=pagination.page, page_size=self.config.max_page_size
            )
        return pagination

    async def find(
        self,
        audit_filter: AuditFilter | None = None,
        pagination: Pagination | None = None,
    ) -> EventPage:
        """Return one page of events matching every predicate in *audit_filter*."""
        with timed("query.find"):
            page_req = self.normalize_pagination(pagination)
            matched = await self.find_all(audit_filter, with_changes=False)
            total = len(matched)
            window = matched[page_req.offset : page_req.offset + page_req.page_size]
            return EventPage(
                items=[event.with_changes() for event in window],
                total=total,
                page=page_req.page,
                page_size=page_req.page_size,
                total_pages=total_pages(total, page_req.page_size),
            )

    async def find_all(
        self,
        audit_filter: AuditFilter | None = None,
        *,
        with_changes: bool = True,
    ) -> list[AuditEvent]:
        """Every matching event, newest first, without pagination."""
        predicate = audit_filter.matches if audit_filter is not None else None
        events = await self._store.scan(predicate)
        if with_changes:
            return [event.with_changes() for event in events]
        return events

    async def get(self, event_id: str) -> AuditEvent | None:
        """Look up a single event; ``None`` when no event has that id."""
        event = await self._store.get(event_id)
        return event.with_changes() if event is not None else None
