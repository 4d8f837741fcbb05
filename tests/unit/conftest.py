"""Unit test fixtures — in-memory audit trail and a FastMCP client."""

from __future__ import annotations

import pytest
from fastmcp import Client

from auditmcp.config import AppConfig
from auditmcp.config import ExportConfig
from auditmcp.config import LedgerConfig
from auditmcp.ledger import InMemoryEventStore
from auditmcp.observability import reset_metrics
from auditmcp.trail import AuditTrail


@pytest.fixture()
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture()
def trail(store, tmp_path) -> AuditTrail:
    """An audit trail over an in-memory ledger, exporting under ``tmp_path``."""
    return AuditTrail(
        store, export_config=ExportConfig(output_dir=str(tmp_path / "exports"))
    )


@pytest.fixture()
async def mcp_client(tmp_path):
    """Yield a FastMCP Client wired to a freshly configured AuditMCP server."""
    from auditmcp.server import configure
    from auditmcp.server import mcp
    from auditmcp.server import shutdown

    await configure(
        AppConfig(
            ledger=LedgerConfig(backend="memory"),
            export=ExportConfig(output_dir=str(tmp_path / "exports")),
        )
    )
    async with Client(mcp) as client:
        yield client
    await shutdown()


@pytest.fixture(autouse=True)
def clean_metrics():
    """Reset in-process metrics between tests."""
    reset_metrics()
    yield
    reset_metrics()
