"""Run-scoped entity and property resolution.

The cache is consulted first, the store second, and an entity is created only
when both miss, so one run never creates two entities for the same label.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from edukb.catalogs import Catalogs, Role
from edukb.ingestion.codec import decode
from edukb.utils import UnknownPropertyError, is_blank, looks_like_entity_id
from edukb.wikibase.client import RemoteStore
from edukb.wikibase.models import Datatype, EntityKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one label.

    ``first_seen`` is True the first time an entity is resolved in a run,
    whether it was found in the store or created.
    """

    entity_id: str | None
    created: bool = False
    first_seen: bool = False

    @classmethod
    def absent(cls) -> "Resolution":
        return cls(entity_id=None)

    @property
    def is_absent(self) -> bool:
        return self.entity_id is None


class EntityCache:
    """Memoized label -> item id mapping for one ingestion run.

    With *catalogs*, a store hit that is an instance of another role's class
    (a region named like a comuna) is passed over, so each role keeps its
    own item.
    """

    def __init__(
        self,
        client: RemoteStore,
        catalogs: Catalogs | None = None,
        properties: "PropertyResolver | None" = None,
    ) -> None:
        self._client = client
        self._ids: dict[tuple[Role, str], str] = {}
        self._catalogs = catalogs
        self._properties = properties or PropertyResolver(client)
        self._foreign_classes: dict[Role, frozenset[str]] = {}
        if catalogs is not None:
            classes = {spec.class_item for spec in catalogs.roles if spec.class_item}
            for spec in catalogs.roles:
                self._foreign_classes[spec.role] = frozenset(classes - {spec.class_item})
        self.created = 0

    def __contains__(self, key: tuple[Role, str]) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def resolve(self, label: str, role: Role, *, name: str | None = None) -> Resolution:
        """Get or create the item for *label*.

        Args:
            label: Composite label identifying the entity.
            role: Role the label was built for.
            name: Label to create the item with when it differs from the
                lookup label (establishments). The lookup label is then
                stored as an alias.
        """
        if is_blank(label):
            return Resolution.absent()

        key = (role, label)
        cached = self._ids.get(key)
        if cached is not None:
            return Resolution(entity_id=cached)

        found = self._pick(role, self._client.find_entity_ids(label, EntityKind.item.value))
        if found is not None:
            logger.debug("Reusing %s for %s %r", found, role.value, label)
            self._ids[key] = found
            return Resolution(entity_id=found, first_seen=True)

        entity_id = self._client.create_entity(name or label, "")
        if name and name != label:
            self._client.add_alias(entity_id, label)
        self.created += 1
        self._ids[key] = entity_id
        logger.debug("Created %s for %s %r", entity_id, role.value, label)
        return Resolution(entity_id=entity_id, created=True, first_seen=True)

    def _pick(self, role: Role, candidates: list[str]) -> str | None:
        """First candidate not classed as another role's entity."""
        if not candidates:
            return None
        foreign = self._foreign_classes.get(role)
        if not foreign:
            return candidates[0]

        try:
            instance_of = self._properties.resolve(self._catalogs.instance_of_property)
        except UnknownPropertyError:
            return candidates[0]
        for candidate in candidates:
            classes = {
                decode(statement.value, Datatype.item)
                for statement in self._client.get_statements(candidate, instance_of)
            }
            if classes & foreign:
                logger.debug("Passing over %s for %s: classed as %s", candidate, role.value, classes)
                continue
            return candidate
        return None


class PropertyResolver:
    """Memoized property name -> property id lookups.

    Misses are remembered too; an unknown name raises every time without
    querying the store again.
    """

    def __init__(self, client: RemoteStore) -> None:
        self._client = client
        self._ids: dict[str, str | None] = {}

    def resolve(self, name: str) -> str:
        if looks_like_entity_id(name, "P"):
            return name
        if name not in self._ids:
            self._ids[name] = self._client.find_entity_id(name, EntityKind.property.value)
            if self._ids[name] is None:
                logger.warning("Property %r not found in the knowledge base", name)
        property_id = self._ids[name]
        if property_id is None:
            raise UnknownPropertyError(name)
        return property_id
