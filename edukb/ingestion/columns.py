"""Header analysis: which roles a dataset can identify, and where their cells are."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from edukb.catalogs import Catalogs, Role

logger = logging.getLogger(__name__)


def clean_cell(text: str | None) -> str:
    """Trim a cell, dropping non-printable characters and double quotes."""
    if text is None:
        return ""
    return "".join(ch for ch in text if ch.isprintable() and ch != '"').strip()


@dataclass(frozen=True)
class RoleColumns:
    """Where one role's cells live in the header."""

    role: Role
    available: bool
    ordered_positions: tuple[int, ...] = ()
    property_positions: tuple[int, ...] = ()
    missing: tuple[str, ...] = ()

    def label_from(self, row: Sequence[str], prefix: str = "") -> str:
        """Composite label for *row*, or ``""`` when any part is blank."""
        parts = []
        for position in self.ordered_positions:
            value = clean_cell(row[position]) if position < len(row) else ""
            if not value:
                return ""
            parts.append(value)
        return f"{prefix}{' '.join(parts)}"

    def name_from(self, row: Sequence[str]) -> str:
        """The role's own name: the first identifying cell."""
        if not self.ordered_positions:
            return ""
        position = self.ordered_positions[0]
        return clean_cell(row[position]) if position < len(row) else ""


@dataclass(frozen=True)
class ColumnLayout:
    """Result of resolving a header row against the catalogs."""

    header: tuple[str, ...]
    roles: dict[Role, RoleColumns] = field(default_factory=dict)
    year_position: int = 1
    education_level_position: int | None = None

    def for_role(self, role: Role) -> RoleColumns:
        return self.roles.get(role, RoleColumns(role=role, available=False))

    @property
    def available_roles(self) -> list[Role]:
        return [role for role, columns in self.roles.items() if columns.available]

    def column_name(self, position: int) -> str:
        return self.header[position]


def resolve_columns(header: Sequence[str], catalogs: Catalogs) -> ColumnLayout:
    """Analyse *header* once for the whole run.

    A role is available only when each of its identifying columns appears
    exactly once. Missing optional columns never fail.
    """
    names = tuple(clean_cell(name) for name in header)
    counts = Counter(names)
    index = {name: i for i, name in enumerate(names)}

    roles: dict[Role, RoleColumns] = {}
    for spec in catalogs.roles:
        missing = tuple(c for c in spec.identifying_columns if counts[c] != 1)
        if missing:
            logger.warning(
                "Role %s disabled: identifying columns missing or repeated: %s",
                spec.role.value, ", ".join(missing),
            )
            roles[spec.role] = RoleColumns(role=spec.role, available=False, missing=missing)
            continue

        roles[spec.role] = RoleColumns(
            role=spec.role,
            available=True,
            ordered_positions=tuple(index[c] for c in spec.identifying_columns),
            property_positions=tuple(
                i for i, name in enumerate(names) if name in spec.property_columns
            ),
        )

    year_position = index.get(catalogs.year_column, catalogs.default_year_index)
    if catalogs.year_column not in index:
        logger.warning(
            "Year column %s not in header; using position %d",
            catalogs.year_column, year_position,
        )

    layout = ColumnLayout(
        header=names,
        roles=roles,
        year_position=year_position,
        education_level_position=index.get(catalogs.education_level_column),
    )
    logger.info(
        "Header resolved: %d columns, roles available: %s",
        len(names), ", ".join(r.value for r in layout.available_roles) or "none",
    )
    return layout
