"""Get-or-create for statements and qualifiers.

A statement is identified by (subject, property, semantic value) and a
qualifier by (statement, qualifier property, semantic value). Existing ones
are reused without any write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from edukb.ingestion.codec import Precision, decode, encode, values_equal
from edukb.wikibase.client import RemoteStore
from edukb.wikibase.models import Datatype, Statement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertResult:
    statement_id: str
    created: bool


def _qualifier_precision(datatype: Datatype) -> Precision:
    # Temporal qualifiers carry the year only
    return Precision.YEAR if datatype == Datatype.time else Precision.MONTH


def encode_qualifier(raw: str, datatype: Datatype) -> Any:
    """Qualifier payload for *raw*; raises ``MalformedValueError`` like ``encode``."""
    return encode(raw, datatype, _qualifier_precision(datatype))


class StatementUpsertEngine:
    """Idempotent statement and qualifier writes against a ``RemoteStore``."""

    def __init__(self, client: RemoteStore) -> None:
        self._client = client
        self.statements_created = 0
        self.qualifiers_created = 0

    def _find(
        self,
        subject_id: str,
        property_id: str,
        raw: str,
        datatype: Datatype,
    ) -> Statement | None:
        for statement in self._client.get_statements(subject_id, property_id):
            if statement.property_id != property_id:
                continue
            if values_equal(statement.value, raw, datatype):
                return statement
        return None

    def upsert_statement(
        self,
        subject_id: str,
        property_id: str,
        raw: str,
        datatype: Datatype,
    ) -> UpsertResult:
        existing = self._find(subject_id, property_id, raw, datatype)
        if existing is not None:
            logger.debug("Statement %s already holds %s=%r", existing.id, property_id, raw)
            return UpsertResult(statement_id=existing.id, created=False)

        value = encode(raw, datatype)
        statement_id = self._client.create_statement(subject_id, property_id, value)
        self.statements_created += 1
        logger.debug("Created statement %s: %s %s=%r", statement_id, subject_id, property_id, raw)
        return UpsertResult(statement_id=statement_id, created=True)

    def ensure_statement(
        self,
        subject_id: str,
        property_id: str,
        raw: str,
        datatype: Datatype,
    ) -> str:
        """Id of the statement holding *raw*, creating it when absent.

        Raises:
            MalformedValueError: if *raw* cannot be encoded (nothing is written).
        """
        return self.upsert_statement(subject_id, property_id, raw, datatype).statement_id

    def ensure_qualifier(
        self,
        subject_id: str,
        property_id: str,
        raw: str,
        datatype: Datatype,
        qualifier_property_id: str,
        qualifier_raw: str,
        qualifier_datatype: Datatype,
    ) -> bool:
        """Attach a qualifier to the statement holding *raw*.

        The statement is located again by value. Returns True only when a
        qualifier was written.
        """
        precision = _qualifier_precision(qualifier_datatype)
        qualifier_value = encode_qualifier(qualifier_raw, qualifier_datatype)

        statement = self._find(subject_id, property_id, raw, datatype)
        if statement is None:
            logger.warning(
                "No %s statement on %s with value %r; qualifier %s not added",
                property_id, subject_id, raw, qualifier_property_id,
            )
            return False

        for existing in statement.qualifier_values(qualifier_property_id):
            if values_equal(existing, qualifier_raw, qualifier_datatype, precision):
                return False

        self._client.add_qualifier(statement.id, qualifier_property_id, qualifier_value)
        self.qualifiers_created += 1
        logger.debug(
            "Qualified %s with %s=%s",
            statement.id, qualifier_property_id, decode(qualifier_value, qualifier_datatype),
        )
        return True
