"""Export domain — CSV/JSON/PDF rendering of filtered result sets."""

from auditmcp.export.pipeline import export_filename
from auditmcp.export.pipeline import ExportPipeline
from auditmcp.export.renderers import CSV_COLUMNS
from auditmcp.export.renderers import RENDERERS
from auditmcp.export.renderers import summarize_changes

__all__ = [
    "CSV_COLUMNS",
    "export_filename",
    "ExportPipeline",
    "RENDERERS",
    "summarize_changes",
]
