"""Closed enumerations for actors, actions, and resources."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Operator roles, declared from least to most privileged."""

    Viewer = "Viewer"
    SupportAgent = "SupportAgent"
    FinanceManager = "FinanceManager"
    FleetManager = "FleetManager"
    OperationsManager = "OperationsManager"
    OperationsDirector = "OperationsDirector"
    SuperAdmin = "SuperAdmin"

    @property
    def rank(self) -> int:
        """Privilege rank; higher means more privileged."""
        return list(Role).index(self)

    def at_least(self, other: Role) -> bool:
        return self.rank >= other.rank


class ResourceType(str, Enum):
    """Kinds of objects an audited action can target."""

    driver = "driver"
    order = "order"
    booking = "booking"
    payment = "payment"
    refund = "refund"
    incident = "incident"
    shift = "shift"
    vehicle = "vehicle"
    user = "user"
    customer = "customer"
    fare = "fare"
    commission = "commission"
    payout = "payout"
    adjustment = "adjustment"
    zone = "zone"
    promo = "promo"
    setting = "setting"


class AuditAction(str, Enum):
    """Privileged actions recorded in the ledger."""

    create = "create"
    update = "update"
    delete = "delete"
    view = "view"
    approve = "approve"
    reject = "reject"
    suspend = "suspend"
    reactivate = "reactivate"
    override = "override"
    break_glass = "break_glass"
    dual_control = "dual_control"
    batch_update = "batch_update"
    export = "export"
    login = "login"
    logout = "logout"
    assign = "assign"
    unassign = "unassign"
    verify = "verify"
    cancel = "cancel"
    mass_action = "mass_action"


class ChangeType(str, Enum):
    """Kind of a single field-level change."""

    added = "added"
    modified = "modified"
    removed = "removed"


class StatsWindow(str, Enum):
    """Look-back windows supported by the stats aggregator."""

    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"
    last_90d = "90d"

    @property
    def days(self) -> int:
        return {"24h": 1, "7d": 7, "30d": 30, "90d": 90}[self.value]


class ExportFormat(str, Enum):
    """Interchange formats for exported result sets."""

    csv = "csv"
    pdf = "pdf"
    json = "json"


def _title_words(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in value.split("_"))


def format_action(action: AuditAction) -> str:
    """Human-readable action label, e.g. ``break_glass`` -> ``Break Glass``."""
    return _title_words(action.value)


def format_resource_type(resource_type: ResourceType) -> str:
    """Human-readable resource type label."""
    return _title_words(resource_type.value)
