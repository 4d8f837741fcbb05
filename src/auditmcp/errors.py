"""Error taxonomy for the audit trail core."""

from __future__ import annotations

from enum import Enum


class ViolationReason(str, Enum):
    """Which ledger invariant an event failed at append time."""

    SUCCESS_ERROR_MISMATCH = "success_error_mismatch"
    BREAK_GLASS_INCOMPLETE = "break_glass_incomplete"
    BREAK_GLASS_APPROVAL_BEFORE_EVENT = "break_glass_approval_before_event"
    DUAL_CONTROL_SELF_APPROVAL = "dual_control_self_approval"
    DIFF_TAMPERING = "diff_tampering"


class AuditError(Exception):
    """Base class for audit trail errors."""


class InvalidEvent(AuditError):
    """Raised when an event is structurally malformed and cannot be appended."""


class PolicyViolation(InvalidEvent):
    """Raised when an event breaks one of the ledger policy invariants."""

    def __init__(self, reason: ViolationReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class ExportFailed(AuditError):
    """Raised when an export artifact could not be produced."""

    def __init__(self, format: str, cause: BaseException | str) -> None:
        super().__init__(f"Export to {format} failed: {cause}")
        self.format = format
        self.cause = cause
