"""Ledger domain — append-only event stores, policy guard, and diff engine."""

from auditmcp.ledger.diff import changes_equal
from auditmcp.ledger.diff import diff
from auditmcp.ledger.policy import PolicyGuard
from auditmcp.ledger.policy import validate_event
from auditmcp.ledger.redis_store import RedisEventStore
from auditmcp.ledger.store import EventPredicate
from auditmcp.ledger.store import EventStore
from auditmcp.ledger.store import InMemoryEventStore
from auditmcp.ledger.store import JsonlEventStore

__all__ = [
    "changes_equal",
    "diff",
    "EventPredicate",
    "EventStore",
    "InMemoryEventStore",
    "JsonlEventStore",
    "PolicyGuard",
    "RedisEventStore",
    "validate_event",
]
