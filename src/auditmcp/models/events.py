"""Audit event record and its nested value objects.

Every model here is frozen: once an ``AuditEvent`` has been appended to
the ledger it is never mutated.  Ledger invariants (success/error
consistency, break-glass completeness, approver distinctness, diff
integrity) are deliberately *not* enforced at construction; the policy
guard checks them at append time so that violations surface as
``PolicyViolation`` rather than schema errors.
"""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

from auditmcp.models.enums import AuditAction
from auditmcp.models.enums import ChangeType
from auditmcp.models.enums import ResourceType
from auditmcp.models.enums import Role


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Actor(BaseModel):
    """Identity that performed the audited action."""

    model_config = {"frozen": True}

    user_id: str = Field(description="Stable identifier of the operator.")
    username: str = Field(description="Display/login name of the operator.")
    role: Role = Field(description="Operator role at the time of the action.")
    email: str | None = Field(default=None, description="Contact address.")
    seat: str | None = Field(
        default=None,
        description="Seat or workstation tag, e.g. 'OPS-001'.",
    )
    ip_address: str | None = Field(default=None, description="Client IP address.")
    user_agent: str | None = Field(default=None, description="Client user agent.")


class Resource(BaseModel):
    """Object the action was performed on."""

    model_config = {"frozen": True}

    type: ResourceType
    id: str
    display_name: str | None = Field(
        default=None,
        description="Human-readable label, e.g. 'Order #1234'.",
    )


class ChangeDiff(BaseModel):
    """One field-level change between two state snapshots."""

    model_config = {"frozen": True}

    field: str
    old_value: Any = None
    new_value: Any = None
    change_type: ChangeType


class BreakGlassDetails(BaseModel):
    """Emergency access override attached to an event."""

    model_config = {"frozen": True}

    used: bool
    justification: str | None = None
    approved_by: str | None = None
    approval_timestamp: datetime | None = None
    emergency_contact_notified: bool = False

    @field_validator("approval_timestamp")
    @classmethod
    def _approval_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class DualControlApprover(BaseModel):
    """Second operator who co-approved a sensitive action."""

    model_config = {"frozen": True}

    user_id: str
    username: str
    role: Role
    seat: str | None = None
    timestamp: datetime
    justification: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class EventMetadata(BaseModel):
    """Request provenance captured alongside an event."""

    model_config = {"frozen": True}

    session_id: str | None = None
    request_id: str | None = None
    api_endpoint: str | None = None
    client_version: str | None = None


class AuditEvent(BaseModel):
    """A single immutable audit ledger entry."""

    model_config = {"frozen": True}

    id: str = Field(description="Unique, monotonically orderable identifier.")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="UTC instant at which the action completed.",
    )
    actor: Actor
    action: AuditAction
    resource: Resource
    before_state: dict[str, Any] | None = Field(
        default=None,
        description="Snapshot of the resource before the action.",
    )
    after_state: dict[str, Any] | None = Field(
        default=None,
        description="Snapshot of the resource after the action.",
    )
    changes: list[ChangeDiff] | None = Field(
        default=None,
        description="Precomputed field-level diff of the two snapshots.",
    )
    reason_code: str | None = Field(
        default=None,
        description="Code from the reason catalog; unknown codes are kept as-is.",
    )
    reason_text: str | None = None
    success: bool
    error_message: str | None = Field(
        default=None,
        description="Required when success is false, forbidden otherwise.",
    )
    break_glass: BreakGlassDetails | None = None
    dual_control_approver: DualControlApprover | None = None
    metadata: EventMetadata | None = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def has_snapshots(self) -> bool:
        return self.before_state is not None and self.after_state is not None

    def with_changes(self) -> AuditEvent:
        """Return this event with ``changes`` filled in from its snapshots.

        The stored record is untouched; when there is nothing to compute
        the same instance is returned.
        """
        if self.changes is not None or not self.has_snapshots:
            return self
        from auditmcp.ledger.diff import diff

        return self.model_copy(
            update={"changes": diff(self.before_state, self.after_state)}
        )
