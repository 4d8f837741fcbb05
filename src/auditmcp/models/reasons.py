"""Reason-code catalog.

The catalog is an externally configured lookup table mapping a code to a
display label and category.  The ledger stores whatever code a producer
supplies; the catalog is only consulted for display, falling back to the
raw code when it is unknown.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel
from pydantic import TypeAdapter

logger = logging.getLogger(__name__)


class ReasonCode(BaseModel):
    """Display metadata for one reason code."""

    model_config = {"frozen": True}

    label: str
    category: str


def _rc(label: str, category: str) -> ReasonCode:
    return ReasonCode(label=label, category=category)


REASON_CODES: dict[str, ReasonCode] = {
    "PAYMENT_DISPUTE": _rc("Payment Dispute", "Payment"),
    "REFUND_REQUESTED": _rc("Refund Request", "Payment"),
    "ADJUSTMENT_ERROR": _rc("Error Correction", "Data"),
    "FARE_OVERRIDE": _rc("Fare Override", "Fare"),
    "BONUS_ADJUSTMENT": _rc("Bonus Adjustment", "Payment"),
    "DEDUCTION_REVERSAL": _rc("Deduction Reversal", "Payment"),
    "DRIVER_SUSPENDED": _rc("Driver Suspended", "Driver"),
    "DRIVER_REACTIVATED": _rc("Driver Reactivated", "Driver"),
    "DRIVER_TERMINATED": _rc("Driver Terminated", "Driver"),
    "DRIVER_WARNING": _rc("Driver Warning", "Driver"),
    "RATING_ADJUSTMENT": _rc("Rating Adjustment", "Driver"),
    "EMERGENCY_OVERRIDE": _rc("Emergency Override", "Emergency"),
    "SAFETY_CONCERN": _rc("Safety Concern", "Safety"),
    "ACCIDENT_RESPONSE": _rc("Accident Response", "Safety"),
    "SECURITY_INCIDENT": _rc("Security Incident", "Security"),
    "REGULATORY_COMPLIANCE": _rc("Regulatory Compliance", "Compliance"),
    "AUDIT_REQUEST": _rc("Audit Request", "Audit"),
    "DATA_CORRECTION": _rc("Data Correction", "Data"),
    "MANUAL_CORRECTION": _rc("Manual Correction", "Data"),
    "BULK_UPDATE": _rc("Bulk Update", "Data"),
    "SYSTEM_MIGRATION": _rc("System Migration", "System"),
    "TEST_DATA": _rc("Test Data", "System"),
    "POLICY_OVERRIDE": _rc("Policy Override", "Policy"),
    "SPECIAL_EXCEPTION": _rc("Special Exception", "Policy"),
    "CUSTOMER_REQUEST": _rc("Customer Request", "Support"),
    "DRIVER_REQUEST": _rc("Driver Request", "Support"),
    "FRAUD_DETECTED": _rc("Fraud Detected", "Security"),
    "TRUST_SCORE_ADJUSTMENT": _rc("Trust Score Adjustment", "Driver"),
    "INCIDENT_RESOLUTION": _rc("Incident Resolution", "Incident"),
    "SHIFT_CHANGE": _rc("Shift Change", "Shift"),
    "VEHICLE_MAINTENANCE": _rc("Vehicle Maintenance", "Vehicle"),
}

_CATALOG_ADAPTER = TypeAdapter(dict[str, ReasonCode])


class ReasonCatalog:
    """Read-only lookup over a code -> ``ReasonCode`` table."""

    def __init__(self, codes: Mapping[str, ReasonCode] | None = None) -> None:
        self._codes = dict(REASON_CODES if codes is None else codes)

    @classmethod
    def from_file(cls, path: str | Path) -> ReasonCatalog:
        """Load a catalog from a JSON object of ``{code: {label, category}}``."""
        raw = Path(path).read_text(encoding="utf-8")
        codes = _CATALOG_ADAPTER.validate_python(json.loads(raw))
        logger.info("Loaded %d reason codes from %s", len(codes), path)
        return cls(codes)

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    def get(self, code: str | None) -> ReasonCode | None:
        if code is None:
            return None
        return self._codes.get(code)

    def label_for(self, code: str | None) -> str | None:
        """Display label for *code*, or the raw code when it is not catalogued."""
        if code is None:
            return None
        entry = self._codes.get(code)
        return entry.label if entry is not None else code

    def category_for(self, code: str | None) -> str | None:
        entry = self.get(code)
        return entry.category if entry is not None else None

    def categories(self) -> list[str]:
        return sorted({entry.category for entry in self._codes.values()})
