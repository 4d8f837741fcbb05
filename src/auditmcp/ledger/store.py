"""Append-only event stores.

Every store shares the same write path: the policy guard runs first, then
the event is committed under an ``asyncio.Lock`` so appends are serialized
(single writer) while reads work on snapshots and never wait on each
other.  There is no update or delete operation.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from functools import partial
from pathlib import Path

from pydantic import ValidationError

from auditmcp.errors import InvalidEvent
from auditmcp.ledger.policy import PolicyGuard
from auditmcp.models.events import AuditEvent

logger = logging.getLogger(__name__)

EventPredicate = Callable[[AuditEvent], bool]

_EVENT_ID_PREFIX = "AUD-"
_EVENT_ID_RE = re.compile(r"^AUD-(\d+)$")


def format_event_id(sequence: int) -> str:
    return f"{_EVENT_ID_PREFIX}{sequence:06d}"


def parse_event_sequence(event_id: str) -> int | None:
    """Return the numeric part of a generated id, or ``None`` for foreign ids."""
    match = _EVENT_ID_RE.match(event_id)
    return int(match.group(1)) if match else None


def order_newest_first(entries: list[tuple[int, AuditEvent]]) -> list[AuditEvent]:
    """Sort ``(insertion_seq, event)`` pairs by timestamp, then insertion, descending."""
    entries.sort(key=lambda entry: (entry[1].timestamp, entry[0]), reverse=True)
    return [event for _, event in entries]


class EventStore(ABC):
    """Append-only ledger contract."""

    def __init__(self, guard: PolicyGuard | None = None) -> None:
        self._guard = guard or PolicyGuard()
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def append(self, event: AuditEvent) -> str:
        """Validate and commit *event*; return its id.

        Raises ``InvalidEvent`` (or its ``PolicyViolation`` subtype) and
        leaves the ledger untouched when the event is rejected.
        """
        self._guard.validate(event)
        async with self._write_lock:
            if await self._contains(event.id):
                raise InvalidEvent(f"duplicate event id {event.id}")
            await self._commit(event)
        logger.debug("Appended audit event %s", event.id)
        return event.id

    @abstractmethod
    async def _contains(self, event_id: str) -> bool: ...

    @abstractmethod
    async def _commit(self, event: AuditEvent) -> None: ...

    @abstractmethod
    async def next_event_id(self) -> str:
        """Reserve the next generated identifier (``AUD-000001``, ...)."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @abstractmethod
    async def get(self, event_id: str) -> AuditEvent | None: ...

    @abstractmethod
    async def scan(self, predicate: EventPredicate | None = None) -> list[AuditEvent]:
        """Return matching events, newest first (ties: latest insertion first)."""

    @abstractmethod
    async def count(self) -> int: ...

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""


class InMemoryEventStore(EventStore):
    """Process-local ledger backed by a list and an id index."""

    def __init__(self, guard: PolicyGuard | None = None) -> None:
        super().__init__(guard)
        self._events: list[AuditEvent] = []
        self._index: dict[str, int] = {}
        self._last_sequence = 0

    def _remember(self, event: AuditEvent) -> None:
        self._index[event.id] = len(self._events)
        self._events.append(event)
        sequence = parse_event_sequence(event.id)
        if sequence is not None:
            self._last_sequence = max(self._last_sequence, sequence)

    async def _contains(self, event_id: str) -> bool:
        return event_id in self._index

    async def _commit(self, event: AuditEvent) -> None:
        self._remember(event)

    async def next_event_id(self) -> str:
        self._last_sequence += 1
        while format_event_id(self._last_sequence) in self._index:
            self._last_sequence += 1
        return format_event_id(self._last_sequence)

    async def get(self, event_id: str) -> AuditEvent | None:
        position = self._index.get(event_id)
        return self._events[position] if position is not None else None

    async def scan(self, predicate: EventPredicate | None = None) -> list[AuditEvent]:
        snapshot = list(enumerate(self._events))
        if predicate is not None:
            snapshot = [entry for entry in snapshot if predicate(entry[1])]
        return order_newest_first(snapshot)

    async def count(self) -> int:
        return len(self._events)


class JsonlEventStore(InMemoryEventStore):
    """Durable ledger persisted as one JSON line per event.

    File I/O goes through ``asyncio.to_thread``.  The file is read once,
    lazily, and kept mirrored in memory; every append is written to disk
    before it becomes visible to readers.
    A write that fails part way is truncated back off the file, so the
    ledger only ever holds whole lines.
    """

    def __init__(self, file_path: str | Path, guard: PolicyGuard | None = None) -> None:
        super().__init__(guard)
        self.file_path = Path(file_path)
        self._loaded = False
        self._load_lock = asyncio.Lock()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            for event in await asyncio.to_thread(self._read_file, self.file_path):
                if event.id in self._index:
                    logger.warning(
                        "Skipping duplicate audit event %s in %s",
                        event.id,
                        self.file_path,
                    )
                    continue
                self._remember(event)
            self._loaded = True

    @staticmethod
    def _read_file(path: Path) -> list[AuditEvent]:
        if not path.exists():
            return []
        events: list[AuditEvent] = []
        with path.open("r", encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except ValidationError:
                    logger.warning(
                        "Skipping malformed audit event line %d in %s",
                        line_no,
                        path,
                    )
        return events

    @staticmethod
    def _append_line(path: Path, line: str) -> None:
        """Append one line durably, or leave the file exactly as it was."""
        data = line.encode("utf-8")
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a+b", buffering=0) as fh:
            offset = fh.seek(0, os.SEEK_END)
            if offset:
                fh.seek(offset - 1)
                if fh.read(1) != b"\n":
                    # Terminate a torn line left by an earlier crash.
                    data = b"\n" + data
            try:
                view = memoryview(data)
                while view:
                    view = view[fh.write(view) :]
                os.fsync(fh.fileno())
            except BaseException:
                fh.truncate(offset)
                raise

    async def _contains(self, event_id: str) -> bool:
        await self._ensure_loaded()
        return event_id in self._index

    async def _commit(self, event: AuditEvent) -> None:
        line = event.model_dump_json() + "\n"
        write = asyncio.ensure_future(
            asyncio.to_thread(partial(self._append_line, self.file_path, line))
        )
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            # The line may already be on disk; keep memory in step with it.
            await asyncio.gather(write, return_exceptions=True)
            if not write.cancelled() and write.exception() is None:
                self._remember(event)
            raise
        self._remember(event)

    async def next_event_id(self) -> str:
        await self._ensure_loaded()
        return await super().next_event_id()

    async def get(self, event_id: str) -> AuditEvent | None:
        await self._ensure_loaded()
        return await super().get(event_id)

    async def scan(self, predicate: EventPredicate | None = None) -> list[AuditEvent]:
        await self._ensure_loaded()
        return await super().scan(predicate)

    async def count(self) -> int:
        await self._ensure_loaded()
        return await super().count()
