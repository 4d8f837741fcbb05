"""Models domain — audit records, enumerations, and read-side schemas."""

from auditmcp.models.enums import AuditAction
from auditmcp.models.enums import ChangeType
from auditmcp.models.enums import ExportFormat
from auditmcp.models.enums import format_action
from auditmcp.models.enums import format_resource_type
from auditmcp.models.enums import ResourceType
from auditmcp.models.enums import Role
from auditmcp.models.enums import StatsWindow
from auditmcp.models.events import Actor
from auditmcp.models.events import AuditEvent
from auditmcp.models.events import BreakGlassDetails
from auditmcp.models.events import ChangeDiff
from auditmcp.models.events import DualControlApprover
from auditmcp.models.events import EventMetadata
from auditmcp.models.events import Resource
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import EventPage
from auditmcp.models.queries import ExportResult
from auditmcp.models.queries import Pagination
from auditmcp.models.queries import StatsSummary
from auditmcp.models.reasons import REASON_CODES
from auditmcp.models.reasons import ReasonCatalog
from auditmcp.models.reasons import ReasonCode

__all__ = [
    "Actor",
    "AuditAction",
    "AuditEvent",
    "AuditFilter",
    "BreakGlassDetails",
    "ChangeDiff",
    "ChangeType",
    "DualControlApprover",
    "EventMetadata",
    "EventPage",
    "ExportFormat",
    "ExportResult",
    "format_action",
    "format_resource_type",
    "Pagination",
    "REASON_CODES",
    "ReasonCatalog",
    "ReasonCode",
    "Resource",
    "ResourceType",
    "Role",
    "StatsSummary",
    "StatsWindow",
]
