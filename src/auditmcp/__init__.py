"""AuditMCP — append-only compliance audit trail with an MCP query surface."""

from auditmcp.errors import AuditError
from auditmcp.errors import ExportFailed
from auditmcp.errors import InvalidEvent
from auditmcp.errors import PolicyViolation
from auditmcp.errors import ViolationReason
from auditmcp.trail import AuditTrail

__all__ = [
    "AuditError",
    "AuditTrail",
    "ExportFailed",
    "InvalidEvent",
    "PolicyViolation",
    "ViolationReason",
]
