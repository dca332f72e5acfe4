"""Knowledge-base bootstrap: properties, class items and regions.

Every step is get-or-create, so bootstrapping an instance twice is safe.
"""

from __future__ import annotations

import logging

from edukb.catalogs import Catalogs
from edukb.ingestion.cache import PropertyResolver
from edukb.ingestion.upsert import StatementUpsertEngine
from edukb.wikibase.client import RemoteStore
from edukb.wikibase.models import Datatype, EntityKind

logger = logging.getLogger(__name__)

_CLASS_ROOT = "CLASE"
_REGION_CLASS = "REGION"
_REGION_DESCRIPTION = "Región de Chile"


def _get_or_create(
    client: RemoteStore,
    label: str,
    description: str,
    kind: EntityKind = EntityKind.item,
    datatype: Datatype | None = None,
) -> tuple[str, bool]:
    entity_id = client.find_entity_id(label, kind.value)
    if entity_id is not None:
        return entity_id, False
    entity_id = client.create_entity(
        label,
        description,
        kind=kind.value,
        datatype=datatype.value if datatype else None,
    )
    return entity_id, True


def bootstrap_schema(client: RemoteStore, catalogs: Catalogs) -> dict[str, str]:
    """Make sure every catalogued property and seed item exists.

    Class items get an instance-of statement pointing at the root class and
    regions get their abbreviation as an alias.

    Returns:
        Mapping of label to entity id for everything bootstrapped.
    """
    ids: dict[str, str] = {}
    created = 0

    for prop in catalogs.property_definitions:
        ids[prop.label], was_created = _get_or_create(
            client, prop.label, prop.description, EntityKind.property, prop.datatype,
        )
        created += was_created

    for item in catalogs.seed_items:
        ids[item.label], was_created = _get_or_create(client, item.label, item.description)
        created += was_created
        if was_created:
            for alias in item.aliases:
                client.add_alias(ids[item.label], alias)

    region_class = ids.get(_REGION_CLASS)
    for label, alias in catalogs.region_aliases.items():
        ids[label], was_created = _get_or_create(client, label, _REGION_DESCRIPTION)
        created += was_created
        if was_created:
            client.add_alias(ids[label], alias)

    instance_of = PropertyResolver(client).resolve(catalogs.instance_of_property)
    engine = StatementUpsertEngine(client)
    for item in catalogs.seed_items:
        target = item.instance_of or (_CLASS_ROOT if item.is_class else None)
        target_id = ids.get(target) if target else None
        if target_id is None or target_id == ids[item.label]:
            continue
        engine.ensure_statement(ids[item.label], instance_of, target_id, Datatype.item)

    if region_class is not None:
        for label in catalogs.region_aliases:
            engine.ensure_statement(ids[label], instance_of, region_class, Datatype.item)

    logger.info(
        "Bootstrap complete: %d entities checked, %d created, %d instance-of statements added",
        len(ids), created, engine.statements_created,
    )
    return ids
