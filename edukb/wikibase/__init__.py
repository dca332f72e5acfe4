"""Knowledge-base access: statement model, HTTP client and in-memory store."""

from edukb.wikibase.client import RemoteStore, WikibaseClient
from edukb.wikibase.memory import InMemoryStore
from edukb.wikibase.models import (
    Datatype,
    EntityKind,
    ItemDefinition,
    PropertyDefinition,
    Statement,
)

__all__ = [
    "Datatype",
    "EntityKind",
    "InMemoryStore",
    "ItemDefinition",
    "PropertyDefinition",
    "RemoteStore",
    "Statement",
    "WikibaseClient",
]
