"""In-memory knowledge base for tests and dry runs."""

from __future__ import annotations

import copy
from collections import Counter
from typing import Any

from edukb.utils import RemoteStoreError
from edukb.wikibase.models import Statement

_ID_PREFIX = {"item": "Q", "property": "P"}


class InMemoryStore:
    """Dict-backed ``RemoteStore``.

    Entities are keyed by id; statements are kept per subject in creation
    order. Every write is counted in ``calls`` so tests can assert how many
    remote writes a run issued. Returned statements are deep copies.
    """

    def __init__(self, first_id: int = 1000) -> None:
        self._entities: dict[str, dict[str, Any]] = {}
        self._statements: dict[str, list[dict[str, Any]]] = {}
        self._next_id = {"item": first_id, "property": first_id}
        self._next_statement = 0
        self.calls: Counter[str] = Counter()

    # -- RemoteStore -----------------------------------------------------------

    def find_entity_ids(self, label: str, kind: str = "item") -> list[str]:
        self.calls["find_entity_ids"] += 1
        wanted = label.casefold()
        ids = []
        for entity_id, entity in self._entities.items():
            if entity["kind"] != kind:
                continue
            names = [entity["label"], *entity["aliases"]]
            if any(name.casefold() == wanted for name in names):
                ids.append(entity_id)
        return ids

    def find_entity_id(self, label: str, kind: str = "item") -> str | None:
        ids = self.find_entity_ids(label, kind)
        return ids[0] if ids else None

    def create_entity(
        self,
        label: str,
        description: str = "",
        *,
        kind: str = "item",
        datatype: str | None = None,
    ) -> str:
        if kind not in _ID_PREFIX:
            raise RemoteStoreError(f"Unknown entity type: {kind}", code="invalid-entity-type")
        if kind == "property" and not datatype:
            raise ValueError("Properties need a datatype")
        self.calls["create_entity"] += 1
        entity_id = f"{_ID_PREFIX[kind]}{self._next_id[kind]}"
        self._next_id[kind] += 1
        self._entities[entity_id] = {
            "kind": kind,
            "label": label,
            "description": description,
            "aliases": [],
            "datatype": datatype,
        }
        return entity_id

    def add_alias(self, entity_id: str, alias: str) -> None:
        self.calls["add_alias"] += 1
        entity = self._entity(entity_id)
        if alias not in entity["aliases"]:
            entity["aliases"].append(alias)

    def get_statements(self, subject_id: str, property_id: str | None = None) -> list[Statement]:
        self.calls["get_statements"] += 1
        return [
            Statement(**copy.deepcopy(record))
            for record in self._statements.get(subject_id, [])
            if property_id is None or record["property_id"] == property_id
        ]

    def create_statement(self, subject_id: str, property_id: str, value: Any) -> str:
        self._entity(subject_id)
        self.calls["create_statement"] += 1
        self._next_statement += 1
        statement_id = f"{subject_id}$S{self._next_statement}"
        self._statements.setdefault(subject_id, []).append({
            "id": statement_id,
            "property_id": property_id,
            "value": copy.deepcopy(value),
            "qualifiers": {},
        })
        return statement_id

    def add_qualifier(self, statement_id: str, property_id: str, value: Any) -> None:
        subject_id = statement_id.split("$", 1)[0]
        for record in self._statements.get(subject_id, []):
            if record["id"] == statement_id:
                self.calls["add_qualifier"] += 1
                record["qualifiers"].setdefault(property_id, []).append(copy.deepcopy(value))
                return
        raise RemoteStoreError(f"No statement {statement_id}", code="no-such-claim")

    # -- Inspection ------------------------------------------------------------

    def _entity(self, entity_id: str) -> dict[str, Any]:
        try:
            return self._entities[entity_id]
        except KeyError:
            raise RemoteStoreError(f"No entity {entity_id}", code="no-such-entity") from None

    def entity(self, entity_id: str) -> dict[str, Any] | None:
        """Copy of an entity record, or None if not found."""
        record = self._entities.get(entity_id)
        return copy.deepcopy(record) if record is not None else None

    def count(self, kind: str | None = None) -> int:
        """Count entities, optionally filtered by kind."""
        if kind is None:
            return len(self._entities)
        return sum(1 for e in self._entities.values() if e["kind"] == kind)

    def statement_count(self) -> int:
        return sum(len(records) for records in self._statements.values())

    @property
    def writes(self) -> int:
        """Total write calls issued so far."""
        return sum(
            self.calls[name]
            for name in ("create_entity", "add_alias", "create_statement", "add_qualifier")
        )
