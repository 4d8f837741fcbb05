"""Application configuration dataclasses.

Frozen dataclasses with sensible defaults for each subsystem.
``config_from_env`` maps ``AUDITMCP_*`` environment variables onto them
for the server entry point; everything else constructs them directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field

_BACKENDS = ("memory", "jsonl", "redis")


@dataclass(frozen=True)
class LedgerConfig:
    """Storage backend for the append-only ledger."""

    backend: str = "jsonl"
    file_path: str = "auditmcp_ledger.jsonl"
    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "auditmcp"

    def __post_init__(self) -> None:
        if self.backend not in _BACKENDS:
            raise ValueError(
                f"Unknown ledger backend {self.backend!r}; "
                f"expected one of {', '.join(_BACKENDS)}"
            )


@dataclass(frozen=True)
class QueryConfig:
    """Pagination bounds for the query engine."""

    default_page_size: int = 20
    max_page_size: int = 200


@dataclass(frozen=True)
class ExportConfig:
    """Where export artifacts are written and how they are addressed."""

    output_dir: str = "exports"
    # When set, artifact URLs are ``{base_url}/{export_id}/{filename}``.
    base_url: str | None = None


@dataclass(frozen=True)
class ReasonCatalogConfig:
    """Optional JSON file overriding the built-in reason-code table."""

    file_path: str | None = None


@dataclass(frozen=True)
class AppConfig:
    """Bundle of every subsystem config, as consumed by ``server.configure``."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    reasons: ReasonCatalogConfig = field(default_factory=ReasonCatalogConfig)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped if stripped else None


def config_from_env() -> AppConfig:
    """Build an ``AppConfig`` from ``AUDITMCP_*`` environment variables."""
    ledger_defaults = LedgerConfig()
    query_defaults = QueryConfig()
    export_defaults = ExportConfig()
    return AppConfig(
        ledger=LedgerConfig(
            backend=_env_str("AUDITMCP_LEDGER_BACKEND") or ledger_defaults.backend,
            file_path=_env_str("AUDITMCP_LEDGER_FILE") or ledger_defaults.file_path,
            redis_url=_env_str("AUDITMCP_REDIS_URL") or ledger_defaults.redis_url,
            key_prefix=_env_str("AUDITMCP_REDIS_PREFIX") or ledger_defaults.key_prefix,
        ),
        query=QueryConfig(
            default_page_size=_env_int(
                "AUDITMCP_DEFAULT_PAGE_SIZE", query_defaults.default_page_size
            ),
            max_page_size=_env_int(
                "AUDITMCP_MAX_PAGE_SIZE", query_defaults.max_page_size
            ),
        ),
        export=ExportConfig(
            output_dir=_env_str("AUDITMCP_EXPORT_DIR") or export_defaults.output_dir,
            base_url=_env_str("AUDITMCP_EXPORT_BASE_URL"),
        ),
        reasons=ReasonCatalogConfig(
            file_path=_env_str("AUDITMCP_REASON_CODES_FILE"),
        ),
    )
