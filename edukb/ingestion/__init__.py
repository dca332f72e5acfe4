"""Ingestion core: value codec, column resolution, entity cache and upserts.

Rows flow header-first through ``resolve_columns`` and a ``RowOrchestrator``;
``ingest`` is the entry point.
"""

from edukb.ingestion.cache import EntityCache, PropertyResolver, Resolution
from edukb.ingestion.codec import Precision, decode, encode, values_equal
from edukb.ingestion.columns import ColumnLayout, RoleColumns, clean_cell, resolve_columns
from edukb.ingestion.execution_log import ExecutionLog
from edukb.ingestion.orchestrator import IngestOptions, RowOrchestrator, RunSummary, ingest
from edukb.ingestion.rows import RowSource, read_rows
from edukb.ingestion.upsert import StatementUpsertEngine, UpsertResult

__all__ = [
    "ColumnLayout",
    "EntityCache",
    "ExecutionLog",
    "IngestOptions",
    "Precision",
    "PropertyResolver",
    "Resolution",
    "RoleColumns",
    "RowOrchestrator",
    "RowSource",
    "RunSummary",
    "StatementUpsertEngine",
    "UpsertResult",
    "clean_cell",
    "decode",
    "encode",
    "ingest",
    "read_rows",
    "resolve_columns",
    "values_equal",
]
