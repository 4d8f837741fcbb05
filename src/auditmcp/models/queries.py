"""Read-side request and response models (filters, pages, stats, exports)."""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

from auditmcp.models.enums import AuditAction
from auditmcp.models.enums import ExportFormat
from auditmcp.models.enums import ResourceType
from auditmcp.models.enums import Role
from auditmcp.models.enums import StatsWindow
from auditmcp.models.events import as_utc
from auditmcp.models.events import AuditEvent


class AuditFilter(BaseModel):
    """Independently optional predicates, combined with logical AND."""

    model_config = {"frozen": True}

    start_date: datetime | None = Field(
        default=None, description="Inclusive lower bound on the event timestamp."
    )
    end_date: datetime | None = Field(
        default=None, description="Inclusive upper bound on the event timestamp."
    )
    user_id: str | None = Field(default=None, description="Exact actor user id.")
    username: str | None = Field(
        default=None,
        description="Case-insensitive substring of the actor username.",
    )
    role: Role | None = None
    action: AuditAction | None = None
    resource_type: ResourceType | None = None
    resource_id: str | None = Field(default=None, description="Exact resource id.")
    success: bool | None = Field(
        default=None, description="True/False to restrict, None for any outcome."
    )
    search_query: str | None = Field(
        default=None,
        description=(
            "Case-insensitive text matched against event id, actor username, "
            "resource id, resource display name and action."
        ),
    )

    @field_validator("start_date", "end_date")
    @classmethod
    def _bounds_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    def matches(self, event: AuditEvent) -> bool:
        """Return True when every predicate set on this filter holds for *event*."""
        if self.start_date is not None and event.timestamp < self.start_date:
            return False
        if self.end_date is not None and event.timestamp > self.end_date:
            return False
        if self.user_id and event.actor.user_id != self.user_id:
            return False
        if self.username and (
            self.username.lower() not in event.actor.username.lower()
        ):
            return False
        if self.role is not None and event.actor.role != self.role:
            return False
        if self.action is not None and event.action != self.action:
            return False
        if self.resource_type is not None and event.resource.type != self.resource_type:
            return False
        if self.resource_id and event.resource.id != self.resource_id:
            return False
        if self.success is not None and event.success != self.success:
            return False
        if self.search_query and not _matches_search(event, self.search_query):
            return False
        return True


def _matches_search(event: AuditEvent, query: str) -> bool:
    needle = query.lower()
    haystack = (
        event.id,
        event.actor.username,
        event.resource.id,
        event.resource.display_name or "",
        event.action.value,
    )
    return any(needle in value.lower() for value in haystack)


class Pagination(BaseModel):
    """1-based page request.  Out-of-range values are clamped, not rejected."""

    model_config = {"frozen": True}

    page: int = 1
    page_size: int = 20

    @field_validator("page", "page_size", mode="before")
    @classmethod
    def _at_least_one(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool) and value < 1:
            return 1
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


class EventPage(BaseModel):
    """One page of query results."""

    items: list[AuditEvent] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20
    total_pages: int = 0


class StatsSummary(BaseModel):
    """Windowed counts over the ledger."""

    time_range: StatsWindow
    total_events: int = 0
    successful_actions: int = 0
    failed_actions: int = 0
    break_glass_used: int = 0
    dual_control_actions: int = 0
    actions_by_type: dict[str, int] = Field(default_factory=dict)
    events_by_day: dict[str, int] = Field(
        default_factory=dict,
        description="Event counts keyed by UTC calendar date (YYYY-MM-DD).",
    )


class ExportResult(BaseModel):
    """Reference to a produced export artifact."""

    url: str
    filename: str
    format: ExportFormat
    event_count: int = 0
