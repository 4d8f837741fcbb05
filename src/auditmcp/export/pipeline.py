"""Export pipeline: filtered result set -> artifact on disk -> retrievable URL."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import uuid
from datetime import datetime
from pathlib import Path

from auditmcp.config import ExportConfig
from auditmcp.errors import ExportFailed
from auditmcp.export.renderers import Renderer
from auditmcp.export.renderers import RENDERERS
from auditmcp.models.enums import ExportFormat
from auditmcp.models.events import as_utc
from auditmcp.models.events import utc_now
from auditmcp.models.queries import AuditFilter
from auditmcp.models.queries import ExportResult
from auditmcp.models.reasons import ReasonCatalog
from auditmcp.observability import timed
from auditmcp.query.engine import QueryEngine

logger = logging.getLogger(__name__)


def export_filename(fmt: ExportFormat, generated_at: datetime) -> str:
    """``audit-log-<YYYY-MM-DD>.<ext>`` using the UTC date of *generated_at*."""
    return f"audit-log-{as_utc(generated_at).date().isoformat()}.{fmt.value}"


def _write_artifact(target: Path, payload: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(target.name + ".part")
    partial.write_bytes(payload)
    os.replace(partial, target)


class ExportPipeline:
    """Renders every event matching a filter into a single artifact.

    Each export gets its own directory under ``ExportConfig.output_dir`` so
    two exports on the same day never overwrite each other.  A failed or
    cancelled export leaves nothing behind and never touches the ledger.
    """

    def __init__(
        self,
        query_engine: QueryEngine,
        config: ExportConfig | None = None,
        *,
        catalog: ReasonCatalog | None = None,
        renderers: dict[ExportFormat, Renderer] | None = None,
    ) -> None:
        self._query = query_engine
        self.config = config or ExportConfig()
        self._catalog = catalog or ReasonCatalog()
        self._renderers = renderers or RENDERERS

    def _url_for(self, export_id: str, target: Path) -> str:
        if self.config.base_url:
            return f"{self.config.base_url.rstrip('/')}/{export_id}/{target.name}"
        return target.resolve().as_uri()

    async def export(
        self,
        audit_filter: AuditFilter | None,
        fmt: ExportFormat | str,
        *,
        now: datetime | None = None,
    ) -> ExportResult:
        fmt = ExportFormat(fmt)
        generated_at = as_utc(now) if now is not None else utc_now()
        export_id = uuid.uuid4().hex
        target = Path(self.config.output_dir) / export_id / export_filename(
            fmt, generated_at
        )

        with timed(f"export.{fmt.value}"):
            events = await self._query.find_all(audit_filter)
            renderer = self._renderers[fmt]
            try:
                payload = await asyncio.to_thread(
                    renderer, events, self._catalog, generated_at
                )
                write = asyncio.ensure_future(
                    asyncio.to_thread(_write_artifact, target, payload)
                )
                try:
                    await asyncio.shield(write)
                except asyncio.CancelledError:
                    # Let the worker thread finish before removing its output.
                    await asyncio.gather(write, return_exceptions=True)
                    raise
            except asyncio.CancelledError:
                shutil.rmtree(target.parent, ignore_errors=True)
                logger.info("Export %s (%s) cancelled", export_id, fmt.value)
                raise
            except Exception as exc:
                shutil.rmtree(target.parent, ignore_errors=True)
                logger.exception("Export %s (%s) failed", export_id, fmt.value)
                raise ExportFailed(fmt.value, exc) from exc

        logger.info(
            "Exported %d audit events to %s (%s)", len(events), target, fmt.value
        )
        return ExportResult(
            url=self._url_for(export_id, target),
            filename=target.name,
            format=fmt,
            event_count=len(events),
        )
