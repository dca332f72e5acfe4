"""Per-row ingestion: roles, class statements, property fields and links.

``ingest`` drives a decoded row stream (header first) through a
``RowOrchestrator`` and returns a ``RunSummary``. Field-level failures are
logged and counted; ``RemoteStoreError`` aborts the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from edukb.catalogs import Catalogs, Role
from edukb.ingestion.cache import EntityCache, PropertyResolver
from edukb.ingestion.codec import encode
from edukb.ingestion.columns import ColumnLayout, clean_cell, resolve_columns
from edukb.ingestion.execution_log import ExecutionLog
from edukb.ingestion.upsert import StatementUpsertEngine, encode_qualifier
from edukb.utils import MalformedValueError, RowsExhaustedError, UnknownPropertyError
from edukb.wikibase.client import RemoteStore
from edukb.wikibase.models import Datatype

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestOptions:
    """Run policy.

    ``level_gated_roles`` lists the roles dropped from a row whose
    education-level code is not catalogued.
    """

    level_gated_roles: frozenset[Role] = frozenset({Role.establishment})


@dataclass
class RunSummary:
    rows_processed: int = 0
    rows_skipped: int = 0
    entities_created: int = 0
    statements_created: int = 0
    qualifiers_created: int = 0
    fields_skipped: int = 0
    exhausted: bool = False

    @property
    def rows_read(self) -> int:
        return self.rows_processed + self.rows_skipped

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "rows_read": self.rows_read,
            "rows_processed": self.rows_processed,
            "rows_skipped": self.rows_skipped,
            "entities_created": self.entities_created,
            "statements_created": self.statements_created,
            "qualifiers_created": self.qualifiers_created,
            "fields_skipped": self.fields_skipped,
            "exhausted": self.exhausted,
        }


def _cell(row: Sequence[str], position: int | None) -> str:
    if position is None or position >= len(row):
        return ""
    return clean_cell(row[position])


class RowOrchestrator:
    """Applies one data row to the knowledge base.

    Owns the run-scoped entity cache, property resolver and upsert engine.
    """

    def __init__(
        self,
        client: RemoteStore,
        catalogs: Catalogs,
        layout: ColumnLayout,
        options: IngestOptions | None = None,
    ) -> None:
        self.catalogs = catalogs
        self.layout = layout
        self.options = options or IngestOptions()
        self.properties = PropertyResolver(client)
        self.cache = EntityCache(client, catalogs, self.properties)
        self.engine = StatementUpsertEngine(client)
        self.fields_skipped = 0

    # -- Row -------------------------------------------------------------------

    def process_row(self, row: Sequence[str]) -> bool:
        """Apply *row*; False when no role could be resolved for it."""
        year = _cell(row, self.layout.year_position)
        level_item = None
        gated: frozenset[Role] = frozenset()
        if self.layout.education_level_position is not None:
            level_code = _cell(row, self.layout.education_level_position)
            level_item = self.catalogs.education_levels.get(level_code)
            if level_item is None:
                gated = self.options.level_gated_roles

        entities: dict[Role, str] = {}
        for role in self.layout.available_roles:
            if role in gated:
                continue
            entity_id = self._resolve_role(role, row)
            if entity_id is not None:
                entities[role] = entity_id

        if not entities:
            return False

        for role, entity_id in entities.items():
            self._write_fields(role, entity_id, row, year, level_item)
        self._write_links(entities, year)
        return True

    def _resolve_role(self, role: Role, row: Sequence[str]) -> str | None:
        spec = self.catalogs.role_spec(role)
        columns = self.layout.for_role(role)
        label = columns.label_from(row, spec.label_prefix)
        name = columns.name_from(row) if role == Role.establishment else None

        resolution = self.cache.resolve(label, role, name=name)
        if resolution.is_absent:
            return None
        if resolution.first_seen:
            self._ensure_classes(role, resolution.entity_id, label)
        return resolution.entity_id

    def _ensure_classes(self, role: Role, entity_id: str, label: str) -> None:
        if role == Role.establishment:
            classes = self.catalogs.classify(label)
        else:
            class_item = self.catalogs.role_spec(role).class_item
            classes = [class_item] if class_item else []

        for class_item in classes:
            with self._field(entity_id, self.catalogs.instance_of_property, class_item):
                property_id = self.properties.resolve(self.catalogs.instance_of_property)
                self.engine.ensure_statement(entity_id, property_id, class_item, Datatype.item)

    # -- Fields ----------------------------------------------------------------

    def _write_fields(
        self,
        role: Role,
        entity_id: str,
        row: Sequence[str],
        year: str,
        level_item: str | None,
    ) -> None:
        coordinates: dict[str, str] = {}
        for position in self.layout.for_role(role).property_positions:
            column = self.layout.column_name(position)
            raw = _cell(row, position)
            if not raw:
                continue
            if column in self.catalogs.coordinate_columns:
                coordinates[column] = raw
                continue
            self._write_field(entity_id, column, raw, year, level_item)

        if coordinates:
            lat_column, lon_column = self.catalogs.coordinate_columns
            if lat_column in coordinates and lon_column in coordinates:
                combined = f"{coordinates[lat_column]};{coordinates[lon_column]}"
                self._write_field(entity_id, lat_column, combined, year, level_item)
            else:
                self.fields_skipped += 1
                logger.warning("Incomplete coordinates on %s: %s", entity_id, coordinates)

    def _translate(self, column: str, raw: str) -> str | None:
        if column in self.catalogs.value_maps:
            return self.catalogs.value_maps[column].get(raw)
        if column == self.catalogs.education_level_column:
            return self.catalogs.education_levels.get(raw)
        return raw

    def _write_field(
        self,
        entity_id: str,
        column: str,
        raw: str,
        year: str,
        level_item: str | None,
    ) -> None:
        catalogs = self.catalogs
        property_name = catalogs.column_properties.get(column)
        if property_name is None:
            return

        value = self._translate(column, raw)
        if value is None:
            self.fields_skipped += 1
            logger.warning("Unknown code %r in column %s for %s", raw, column, entity_id)
            return

        with self._field(entity_id, column, raw):
            datatype = catalogs.datatype_for(property_name)
            if datatype is None:
                raise UnknownPropertyError(property_name)
            property_id = self.properties.resolve(property_name)

            qualifiers: list[tuple[str, str, Datatype]] = []
            if year and catalogs.is_year_qualified(property_name):
                qualifiers.append((catalogs.year_property, year, Datatype.time))
            sex_item = catalogs.sex_categories.get(column)
            if sex_item:
                qualifiers.append((catalogs.sex_qualifier_property, sex_item, Datatype.item))
            if level_item and column in catalogs.level_qualified_columns:
                qualifiers.append((catalogs.level_qualifier_property, level_item, Datatype.item))

            # Nothing is written unless the value and every qualifier are usable
            encode(value, datatype)
            resolved = []
            for qualifier_property, qualifier_raw, qualifier_datatype in qualifiers:
                encode_qualifier(qualifier_raw, qualifier_datatype)
                resolved.append(
                    (self.properties.resolve(qualifier_property), qualifier_raw, qualifier_datatype)
                )

            self.engine.ensure_statement(entity_id, property_id, value, datatype)
            for qualifier_property_id, qualifier_raw, qualifier_datatype in resolved:
                self.engine.ensure_qualifier(
                    entity_id, property_id, value, datatype,
                    qualifier_property_id, qualifier_raw, qualifier_datatype,
                )

    # -- Links -----------------------------------------------------------------

    def _write_links(self, entities: dict[Role, str], year: str) -> None:
        for link in self.catalogs.links:
            source_id = entities.get(link.source)
            target_id = entities.get(link.target)
            if source_id is None or target_id is None:
                continue
            with self._field(source_id, link.property_id, target_id):
                property_id = self.properties.resolve(link.property_id)
                year_property_id = None
                if link.year_qualified and year:
                    encode_qualifier(year, Datatype.time)
                    year_property_id = self.properties.resolve(self.catalogs.year_property)
                self.engine.ensure_statement(source_id, property_id, target_id, Datatype.item)
                if year_property_id is not None:
                    self.engine.ensure_qualifier(
                        source_id, property_id, target_id, Datatype.item,
                        year_property_id, year, Datatype.time,
                    )

    # -- Errors ----------------------------------------------------------------

    def _field(self, entity_id: str, what: str, raw: str) -> "_FieldGuard":
        return _FieldGuard(self, entity_id, what, raw)


class _FieldGuard:
    """Context manager turning field-level errors into a skipped field."""

    def __init__(self, owner: RowOrchestrator, entity_id: str, what: str, raw: str) -> None:
        self.owner = owner
        self.entity_id = entity_id
        self.what = what
        self.raw = raw

    def __enter__(self) -> "_FieldGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None or not issubclass(exc_type, (MalformedValueError, UnknownPropertyError)):
            return False
        self.owner.fields_skipped += 1
        logger.warning("Skipping %s=%r on %s: %s", self.what, self.raw, self.entity_id, exc)
        return True


def ingest(
    rows: Iterable[Sequence[str]],
    catalogs: Catalogs,
    client: RemoteStore,
    *,
    limit: int | None = None,
    options: IngestOptions | None = None,
    execution_log: ExecutionLog | None = None,
    strict: bool = False,
    on_row: Callable[[RunSummary], None] | None = None,
) -> RunSummary:
    """Ingest *rows* (header first) into the knowledge base behind *client*.

    Args:
        rows: Decoded rows; the first one is the header.
        catalogs: Static catalogs for this knowledge base.
        client: Store implementing ``RemoteStore``.
        limit: Maximum number of data rows to read.
        options: Run policy (education-level gating).
        execution_log: Receives one timing line per row.
        strict: Raise ``RowsExhaustedError`` when fewer than *limit* rows exist.
        on_row: Called with the running summary after every row.

    Returns:
        RunSummary with row, entity, statement and qualifier counts.
    """
    summary = RunSummary()
    iterator = iter(rows)
    header = next(iterator, None)

    if header is not None:
        layout = resolve_columns(header, catalogs)
        orchestrator = RowOrchestrator(client, catalogs, layout, options)

        for row in iterator:
            if limit is not None and summary.rows_read >= limit:
                break
            started = time.monotonic()
            if orchestrator.process_row(row):
                summary.rows_processed += 1
            else:
                summary.rows_skipped += 1
                logger.info("Row %d skipped: no role resolved", summary.rows_read)

            summary.entities_created = orchestrator.cache.created
            summary.statements_created = orchestrator.engine.statements_created
            summary.qualifiers_created = orchestrator.engine.qualifiers_created
            summary.fields_skipped = orchestrator.fields_skipped
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info("Row %d done in %d ms", summary.rows_read, duration_ms)
            if execution_log is not None:
                execution_log.record(duration_ms, summary.rows_read)
            if on_row is not None:
                on_row(summary)
    else:
        logger.warning("Row source is empty; no header")

    summary.exhausted = limit is not None and summary.rows_read < limit
    logger.info(
        "Run finished: %d rows processed, %d skipped, %d entities, %d statements, %d qualifiers",
        summary.rows_processed, summary.rows_skipped, summary.entities_created,
        summary.statements_created, summary.qualifiers_created,
    )
    if strict and summary.exhausted:
        raise RowsExhaustedError(summary, limit)
    return summary
