"""Pydantic v2 models for the knowledge-base statement model."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Datatype(str, Enum):
    """Property datatypes understood by the value codec.

    Values are the Wikibase datatype identifiers.
    """
    string = "string"
    quantity = "quantity"
    time = "time"
    coordinate = "globe-coordinate"
    item = "wikibase-item"


class EntityKind(str, Enum):
    item = "item"
    property = "property"


class Statement(BaseModel):
    """A stored claim on an entity.

    ``value`` is the datavalue payload as the store returns it (a plain string
    for ``string`` properties, a dict for the other datatypes) or ``None`` for
    ``somevalue``/``novalue`` snaks. ``qualifiers`` maps a qualifier property
    id to the payloads attached under it.
    """

    id: str
    property_id: str
    value: Any = None
    qualifiers: dict[str, list[Any]] = Field(default_factory=dict)

    def qualifier_values(self, property_id: str) -> list[Any]:
        return self.qualifiers.get(property_id, [])


class PropertyDefinition(BaseModel):
    """A property the bootstrap step makes sure exists."""

    label: str
    description: str = ""
    datatype: Datatype


class ItemDefinition(BaseModel):
    """A class or catalog item the bootstrap step makes sure exists."""

    label: str
    description: str = ""
    is_class: bool = False
    aliases: list[str] = Field(default_factory=list)
    instance_of: str | None = None
