"""Builders for audit records shared across test suites."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone

from auditmcp.models import Actor
from auditmcp.models import AuditAction
from auditmcp.models import AuditEvent
from auditmcp.models import Resource
from auditmcp.models import ResourceType
from auditmcp.models import Role

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_actor(
    user_id: str = "USR-001",
    username: str = "admin.santos",
    role: Role = Role.OperationsManager,
    **kwargs,
) -> Actor:
    return Actor(user_id=user_id, username=username, role=role, **kwargs)


def make_resource(
    resource_type: ResourceType = ResourceType.driver,
    resource_id: str = "DRV-001",
    display_name: str | None = "Juan Santos",
) -> Resource:
    return Resource(type=resource_type, id=resource_id, display_name=display_name)


def make_event(
    event_id: str = "AUD-000001",
    *,
    timestamp: datetime = T0,
    actor: Actor | None = None,
    action: AuditAction = AuditAction.update,
    resource: Resource | None = None,
    success: bool = True,
    error_message: str | None = None,
    **kwargs,
) -> AuditEvent:
    """Build a valid event; failed events get a default error message."""
    if not success and error_message is None:
        error_message = "Insufficient permissions for this operation"
    return AuditEvent(
        id=event_id,
        timestamp=timestamp,
        actor=actor or make_actor(),
        action=action,
        resource=resource or make_resource(),
        success=success,
        error_message=error_message,
        **kwargs,
    )


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)
