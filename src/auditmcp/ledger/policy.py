"""Append-time policy checks for audit events.

Checks run in a fixed order and stop at the first failure:

1. required actor/resource fields are present
2. ``success`` and ``error_message`` agree
3. break-glass details are complete and approved no earlier than the event
4. a dual-control approver is not the actor
5. supplied ``changes`` match the diff of the supplied snapshots

Read-side consumers trust stored events and never re-run these checks.
"""

from __future__ import annotations

import logging

from auditmcp.errors import InvalidEvent
from auditmcp.errors import PolicyViolation
from auditmcp.errors import ViolationReason
from auditmcp.ledger.diff import changes_equal
from auditmcp.ledger.diff import diff
from auditmcp.models.events import AuditEvent
from auditmcp.observability import record_rejection

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class PolicyGuard:
    """Validates an ``AuditEvent`` before it is committed to the ledger."""

    def validate(self, event: AuditEvent) -> None:
        """Raise ``InvalidEvent`` or ``PolicyViolation`` if *event* may not be stored."""
        try:
            self._check_required_fields(event)
            self._check_outcome(event)
            self._check_break_glass(event)
            self._check_dual_control(event)
            self._check_changes(event)
        except PolicyViolation as exc:
            record_rejection(exc.reason.value)
            logger.info("Rejected audit event %s: %s", event.id, exc)
            raise
        except InvalidEvent as exc:
            record_rejection("invalid_event")
            logger.info("Rejected malformed audit event %s: %s", event.id, exc)
            raise

    @staticmethod
    def _check_required_fields(event: AuditEvent) -> None:
        if _blank(event.id):
            raise InvalidEvent("event id is required")
        if _blank(event.actor.user_id):
            raise InvalidEvent("actor.user_id is required")
        if _blank(event.actor.username):
            raise InvalidEvent("actor.username is required")
        if _blank(event.resource.id):
            raise InvalidEvent("resource.id is required")

    @staticmethod
    def _check_outcome(event: AuditEvent) -> None:
        if not event.success and _blank(event.error_message):
            raise PolicyViolation(
                ViolationReason.SUCCESS_ERROR_MISMATCH,
                "failed actions must carry a non-empty error_message",
            )
        if event.success and event.error_message is not None:
            raise PolicyViolation(
                ViolationReason.SUCCESS_ERROR_MISMATCH,
                "successful actions must not carry an error_message",
            )

    @staticmethod
    def _check_break_glass(event: AuditEvent) -> None:
        details = event.break_glass
        if details is None or not details.used:
            return
        if _blank(details.justification) or _blank(details.approved_by):
            raise PolicyViolation(
                ViolationReason.BREAK_GLASS_INCOMPLETE,
                "break-glass use requires a justification and an approver",
            )
        if (
            details.approval_timestamp is not None
            and details.approval_timestamp < event.timestamp
        ):
            raise PolicyViolation(
                ViolationReason.BREAK_GLASS_APPROVAL_BEFORE_EVENT,
                "break-glass approval cannot predate the event",
            )

    @staticmethod
    def _check_dual_control(event: AuditEvent) -> None:
        approver = event.dual_control_approver
        if approver is not None and approver.user_id == event.actor.user_id:
            raise PolicyViolation(
                ViolationReason.DUAL_CONTROL_SELF_APPROVAL,
                f"actor {event.actor.user_id} cannot co-approve their own action",
            )

    @staticmethod
    def _check_changes(event: AuditEvent) -> None:
        if event.changes is None or not event.has_snapshots:
            return
        expected = diff(event.before_state, event.after_state)
        if not changes_equal(event.changes, expected):
            raise PolicyViolation(
                ViolationReason.DIFF_TAMPERING,
                "supplied changes do not match the before/after snapshots",
            )


_DEFAULT_GUARD = PolicyGuard()


def validate_event(event: AuditEvent) -> None:
    """Validate *event* with the default guard."""
    _DEFAULT_GUARD.validate(event)
