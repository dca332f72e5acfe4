"""Static catalogs: column mappings, code tables, and fixed entity ids.

Everything here is configuration for one Wikibase instance. The defaults
mirror the production school-data instance; ``Catalogs.from_yaml`` overlays a
YAML file on top of them for other instances. A ``Catalogs`` value is built
once at startup and passed by reference into the ingestion core; every map
is read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from edukb.wikibase.models import Datatype, ItemDefinition, PropertyDefinition


class Role(str, Enum):
    """Semantic entity kinds a row can contribute to."""
    establishment = "establishment"
    region = "region"
    comuna = "comuna"
    teacher = "teacher"


@dataclass(frozen=True)
class RoleSpec:
    """How a role is identified and which columns describe it.

    ``identifying_columns`` is in canonical order: the composite label joins
    the cell values in this order whatever the header order is.
    """

    role: Role
    identifying_columns: tuple[str, ...]
    property_columns: frozenset[str] = frozenset()
    label_prefix: str = ""
    class_item: str | None = None


@dataclass(frozen=True)
class Link:
    """A relationship statement written from one role's entity to another's."""

    source: Role
    target: Role
    property_id: str
    year_qualified: bool = False


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


# ---------------------------------------------------------------------------
# Default data
# ---------------------------------------------------------------------------

_COLUMN_PROPERTIES = {
    "DC_TOT": "empleados",
    "LATITUD": "ubicacion",
    "LONGITUD": "ubicacion",
    "MAT_TOTAL": "matrículados total",
    "DOC_FEC_NAC": "fecha de nacimiento",
    "DOC_GENERO": "género del Docente",
    "NOM_SUBSECTOR": "asignatura",
    "ESTADO_ESTAB": "P37",
    "COD_ENSE": "nivel de enseñanza",
    "PROM_ASIS": "promedio de asistencia",
    "CUR_SIM_TOT": "total de cursos simples",
    "CUR_COMB_TOT": "total de cursos combinados",
    "COD_DEPE": "P36",
    "RURAL_RBD": "P38",
    "ORI_RELIGIOSA": "P40",
    "MAT_HOM_TOT": "personas matrículadas",
    "MAT_MUJ_TOT": "personas matrículadas",
    "MAT_SI_TOT": "personas matrículadas",
    "APR_HOM_TO": "personas aprobadas",
    "APR_MUJ_TO": "personas aprobadas",
    "APR_SI_TO": "personas aprobadas",
    "APR_NB": "personas aprobadas",
    "REP_HOM_TO": "personas reprobadas",
    "REP_MUJ_TO": "personas reprobadas",
    "REP_SI_TO": "personas reprobadas",
    "RET_HOM_TO": "personas retiradas",
    "RET_MUJ_TO": "personas retiradas",
    "RET_SI_TO": "personas retiradas",
    "TRA_HOM_TO": "personas transferidas",
    "TRA_MUJ_TO": "personas transferidas",
    "TRA_SI_TO": "personas transferidas",
    "SI_HOM_TO": "personas situacion final desconocida",
    "SI_MUJ_TO": "personas situacion final desconocida",
    "SI_SI_TO": "personas situacion final desconocida",
}

# Properties whose statements carry a year qualifier.
_QUALIFIED_DATATYPES = {
    "empleados": Datatype.quantity,
    "matrículados total": Datatype.quantity,
    "asignatura": Datatype.string,
    "nivel de enseñanza": Datatype.item,
    "promedio de asistencia": Datatype.quantity,
    "total de cursos simples": Datatype.quantity,
    "total de cursos combinados": Datatype.quantity,
    "personas matrículadas": Datatype.quantity,
    "personas aprobadas": Datatype.quantity,
    "personas reprobadas": Datatype.quantity,
    "personas retiradas": Datatype.quantity,
    "personas transferidas": Datatype.quantity,
    "personas situacion final desconocida": Datatype.quantity,
}

_UNQUALIFIED_DATATYPES = {
    "ubicacion": Datatype.coordinate,
    "fecha de nacimiento": Datatype.time,
    "género del Docente": Datatype.string,
    "P36": Datatype.item,
    "P37": Datatype.item,
    "P38": Datatype.item,
    "P40": Datatype.item,
}

_EDUCATION_LEVELS = {
    "110": "Q17346",  # ENSEÑANZA BÁSICA
    "160": "Q17347",  # EDUCACIÓN BÁSICA COMÚN ADULTOS (DECRETO 77/1982)
    "161": "Q17348",  # EDUCACIÓN BÁSICA ESPECIAL ADULTOS
    "163": "Q17349",  # ESCUELAS CÁRCELES
    "165": "Q17350",  # EDUCACIÓN DE ADULTOS SIN OFICIOS
    "167": "Q17351",  # EDUCACIÓN DE ADULTOS CON OFICIOS
    "310": "Q17352",  # ENSEÑANZA MEDIA H-C NIÑOS Y JÓVENES
    "360": "Q17353",  # EDUCACIÓN MEDIA H-C ADULTOS (DECRETO N°190/1975)
    "361": "Q17354",  # EDUCACIÓN MEDIA H-C ADULTOS (DECRETO N°12/1987)
    "363": "Q17355",  # EDUCACIÓN MEDIA H-C ADULTOS (DECRETO N°239/2004)
    "410": "Q17356",  # ENSEÑANZA MEDIA T-P COMERCIAL NIÑOS
    "460": "Q17357",
    "461": "Q17357",
    "463": "Q17358",
    "510": "Q17359",  # ENSEÑANZA MEDIA T-P INDUSTRIAL NIÑOS
    "560": "Q17360",
    "561": "Q17360",
    "563": "Q17361",
    "610": "Q17362",  # ENSEÑANZA MEDIA T-P TÉCNICA NIÑOS
    "660": "Q17363",
    "661": "Q17363",
    "663": "Q17364",
    "710": "Q17365",  # ENSEÑANZA MEDIA T-P AGRÍCOLA NIÑOS
    "760": "Q17366",
    "761": "Q17366",
    "763": "Q17367",
    "810": "Q17368",  # ENSEÑANZA MEDIA T-P MARÍTIMA NIÑOS
    "860": "Q17369",
    "861": "Q17369",
    "863": "Q17370",
    "910": "Q17371",  # ENSEÑANZA MEDIA ARTÍSTICA NIÑOS Y JÓVENES
    "963": "Q17372",  # EDUCACIÓN MEDIA ARTÍSTICA ADULTOS
}

# Code columns whose cell is translated before it is stored.
_VALUE_MAPS = {
    "COD_DEPE": {
        "1": "Q18723", "2": "Q18724", "3": "Q18725",
        "4": "Q18726", "5": "Q18727", "6": "Q18728",
    },
    "RURAL_RBD": {"0": "Q18714", "1": "Q18715"},
    "ORI_RELIGIOSA": {
        "1": "Q18716", "2": "Q18717", "3": "Q18718", "4": "Q18719",
        "5": "Q18720", "6": "Q18721", "7": "Q18722", "9": "Q2406",
    },
    "ESTADO_ESTAB": {"1": "Q18729", "2": "Q18730", "3": "Q18731", "4": "Q18732"},
    "DOC_GENERO": {"1": "HOMBRE", "2": "MUJER"},
}

_MALE, _FEMALE, _NON_BINARY, _UNSPECIFIED = "Q2403", "Q2404", "Q2405", "Q2406"

_SEX_CATEGORIES = {
    "MAT_HOM_TOT": _MALE, "APR_HOM_TO": _MALE, "REP_HOM_TO": _MALE,
    "RET_HOM_TO": _MALE, "TRA_HOM_TO": _MALE, "SI_HOM_TO": _MALE,
    "MAT_MUJ_TOT": _FEMALE, "APR_MUJ_TO": _FEMALE, "REP_MUJ_TO": _FEMALE,
    "RET_MUJ_TO": _FEMALE, "TRA_MUJ_TO": _FEMALE, "SI_MUJ_TO": _FEMALE,
    "APR_NB": _NON_BINARY,
    "MAT_SI_TOT": _UNSPECIFIED, "APR_SI_TO": _UNSPECIFIED, "REP_SI_TO": _UNSPECIFIED,
    "RET_SI_TO": _UNSPECIFIED, "TRA_SI_TO": _UNSPECIFIED, "SI_SI_TO": _UNSPECIFIED,
}

# Evaluated in order; every matching set adds its classification.
_CLASSIFICATIONS = (
    (frozenset({"col.", "colegio"}), "Q17305"),
    (frozenset({"escuela", "school", "esc.", "skola", "es."}), "Q17306"),
    (frozenset({"liceo", "l.", "lic."}), "Q17307"),
    (frozenset({"universidad", "college"}), "Q17308"),
    (frozenset({"instituto", "ins."}), "Q17309"),
    (frozenset({"centro"}), "Q17310"),
    (frozenset({"complejo"}), "Q17311"),
)

_ESTABLISHMENT_PROPERTIES = frozenset({
    "DC_TOT", "LATITUD", "LONGITUD", "MAT_TOTAL", "ESTADO_ESTAB", "COD_ENSE",
    "PROM_ASIS", "CUR_SIM_TOT", "CUR_COMB_TOT", "MAT_HOM_TOT", "MAT_MUJ_TOT",
    "MAT_SI_TOT", "APR_HOM_TO", "APR_MUJ_TO", "APR_SI_TO", "APR_NB", "REP_HOM_TO",
    "REP_MUJ_TO", "REP_SI_TO", "RET_HOM_TO", "RET_MUJ_TO", "RET_SI_TO",
    "TRA_HOM_TO", "TRA_SI_TO", "TRA_MUJ_TO", "SI_HOM_TO", "SI_MUJ_TO",
    "SI_SI_TO", "COD_DEPE", "RURAL_RBD", "ORI_RELIGIOSA",
})

_ROLES = (
    RoleSpec(
        role=Role.establishment,
        identifying_columns=("NOM_RBD", "NOM_REG_RBD_A", "NOM_COM_RBD"),
        property_columns=_ESTABLISHMENT_PROPERTIES,
    ),
    RoleSpec(role=Role.region, identifying_columns=("NOM_REG_RBD_A",), class_item="Q2"),
    RoleSpec(role=Role.comuna, identifying_columns=("NOM_COM_RBD",), class_item="Q1"),
    RoleSpec(
        role=Role.teacher,
        identifying_columns=("MRUN",),
        property_columns=frozenset({"DOC_FEC_NAC", "DOC_GENERO", "NOM_SUBSECTOR"}),
        label_prefix="MRUN: ",
        class_item="Q4",
    ),
)

_REGION_P, _COMUNA_P, _ESTABLISHMENTS_P = "P1", "P2", "P6"
_WORK_ESTABLISHMENT_P, _WORK_REGION_P, _WORK_COMUNA_P = "P8", "P9", "P10"

_LINKS = (
    Link(Role.establishment, Role.region, _REGION_P),
    Link(Role.establishment, Role.comuna, _COMUNA_P),
    Link(Role.region, Role.establishment, _ESTABLISHMENTS_P),
    Link(Role.region, Role.comuna, _COMUNA_P),
    Link(Role.comuna, Role.establishment, _ESTABLISHMENTS_P),
    Link(Role.comuna, Role.region, _REGION_P),
    Link(Role.teacher, Role.region, _WORK_REGION_P, year_qualified=True),
    Link(Role.teacher, Role.comuna, _WORK_COMUNA_P, year_qualified=True),
    Link(Role.teacher, Role.establishment, _WORK_ESTABLISHMENT_P, year_qualified=True),
)

_P = PropertyDefinition
_PROPERTY_DEFINITIONS = (
    _P(label="región", description="Nombre de la región donde se ubica la entidad", datatype=Datatype.item),
    _P(label="comuna", description="Nombre de la comuna donde se ubica la entidad", datatype=Datatype.item),
    _P(label="empleados", description="Empleados de una organización", datatype=Datatype.quantity),
    _P(label="ubicacion", description="Coordenadas de un lugar o establecimiento", datatype=Datatype.coordinate),
    _P(label="matrículados total", description="Número de estudiantes matriculados en un establecimiento", datatype=Datatype.quantity),
    _P(label="tipo de establecimiento", description="Tipos de Establecimientos Educacionales según el tipo de financiamiento", datatype=Datatype.item),
    _P(label="ruralidad", description="Ruralidad de un establecimiento", datatype=Datatype.item),
    _P(label="orientacion religiosa", description="Orientación religiosa de la entidad", datatype=Datatype.item),
    _P(label="establecimientos en la zona", description="Establecimientos educativos en la región", datatype=Datatype.item),
    _P(label="docentes en la Región", description="Docentes que trabajan en la región", datatype=Datatype.item),
    _P(label="establecimiento de Trabajo", description="Establecimiento donde trabaja una persona", datatype=Datatype.item),
    _P(label="región de trabajo", description="Región donde trabaja la entidad", datatype=Datatype.item),
    _P(label="comuna de trabajo", description="Comuna donde trabaja la entidad", datatype=Datatype.item),
    _P(label="fecha de nacimiento", description="Fecha de nacimiento del docente", datatype=Datatype.time),
    _P(label="género del Docente", description="Género del docente", datatype=Datatype.string),
    _P(label="asignatura", description="Asignatura que imparte el docente", datatype=Datatype.string),
    _P(label="año", description="Fecha asociada a un evento", datatype=Datatype.time),
    _P(label="instancia de", description="Instancia de un objeto o entidad", datatype=Datatype.item),
    _P(label="identificador género", description="Género asignado a una estadística o valor", datatype=Datatype.item),
    _P(label="estado del establecimiento", description="Estado del establecimiento", datatype=Datatype.item),
    _P(label="personas matrículadas", description="Cantidad de personas matrículadas en un establecimiento", datatype=Datatype.quantity),
    _P(label="personas aprobadas", description="Cantidad de personas aprobados en un establecimiento", datatype=Datatype.quantity),
    _P(label="personas reprobadas", description="Cantidad de personas reprobadas en un establecimiento", datatype=Datatype.quantity),
    _P(label="personas retiradas", description="Cantidad de personas retiradas en un establecimiento", datatype=Datatype.quantity),
    _P(label="personas transferidas", description="Cantidad de personas trasferidas en un establecimiento", datatype=Datatype.quantity),
    _P(label="personas situacion final desconocida", description="Cantidad de personas sin informacion de su situacion final en un establecimiento", datatype=Datatype.quantity),
    _P(label="nivel de enseñanza", description="Niveles de enseñanza agrupados", datatype=Datatype.item),
    _P(label="total de cursos simples", description="Total de cursos simples en el establecimiento", datatype=Datatype.quantity),
    _P(label="total de cursos combinados", description="Total de cursos combinados en el establecimiento", datatype=Datatype.quantity),
    _P(label="promedio de asistencia", description="Porcentaje promedio de Asistencia de los alumnos de un mismo nivel de Enseñanza", datatype=Datatype.quantity),
    _P(label="identificador de nivel de educacion", description="Identificador utilizado para separa datos por el nivel de educacion correspondiente", datatype=Datatype.item),
)

_I = ItemDefinition
_SEED_ITEMS = (
    _I(label="CLASE", description="Instancia de una clase."),
    _I(label="COMUNA", description="Una subdivisión administrativa menor.", is_class=True),
    _I(label="REGION", description="Porción de territorio con características comunes.", is_class=True),
    _I(label="ESTABLECIMIENTO", description="Unidad física diferenciada que ejerce actividades.", is_class=True),
    _I(label="PERSONA", description="Individuo de la especie humana.", is_class=True),
    _I(label="HOMBRE", description="Género masculino", is_class=True),
    _I(label="MUJER", description="Género femenino", is_class=True),
    _I(label="NO BINARIO", description="Género no binario", is_class=True),
    _I(label="SIN INFORMACION", description="Sin información de género", is_class=True),
    _I(label="RURAL", description="Establecimiento ubicado en una zona rural."),
    _I(label="URBANO", description="Establecimiento ubicado en una zona urbana."),
    _I(label="FUNCIONANDO", description="Establecimiento en funcionamiento activo."),
    _I(label="EN RECESO", description="Establecimiento temporalmente inactivo."),
    _I(label="CERRADO", description="Establecimiento cerrado permanentemente."),
    _I(label="AUTORIZADO SIN MATRICULA", description="Establecimiento autorizado pero sin matrícula activa."),
    _I(label="COLEGIO", description="Establecimiento público donde se da a los niños la instrucción primaria."),
    _I(label="ESCUELA", description="Lugar donde se imparte educación o formación."),
    _I(label="LICEO", description="Establecimiento de enseñanza secundaria."),
    _I(label="UNIVERSIDAD", description="Institución de enseñanza superior e investigación."),
    _I(label="INSTITUTO", description="Centro dedicado a la enseñanza o a la investigación."),
    _I(label="CENTRO", description="Lugar donde se desarrollan actividades específicas."),
    _I(label="COMPLEJO", description="Conjunto de instalaciones o edificios destinados a un fin común."),
)

_REGION_ALIASES = {
    "REGIÓN DE TARAPACÁ": "TPCA",
    "REGIÓN DE ANTOFAGASTA": "ANTOF",
    "REGIÓN DE ATACAMA": "ATCMA",
    "REGIÓN DE COQUIMBO": "COQ",
    "REGIÓN DE VALPARAÍSO": "VALPO",
    "REGIÓN DEL LIBERTADOR GRAL. BERNARDO O’HIGGINS": "LGBO",
    "REGIÓN DEL MAULE": "MAULE",
    "REGIÓN DEL BIOBÍO": "BBIO",
    "REGIÓN DE LA ARAUCANÍA": "ARAUC",
    "REGIÓN DE LOS LAGOS": "LAGOS",
    "REGIÓN DE AYSÉN DEL GRAL. CARLOS IBÁÑEZ DEL CAMPO": "AYSEN",
    "REGIÓN DE MAGALLANES Y DE LA ANTÁRTICA CHILENA": "MAG",
    "REGIÓN METROPOLITANA DE SANTIAGO": "RM",
    "REGIÓN DE LOS RÍOS": "RIOS",
    "REGIÓN DE ARICA Y PARINACOTA": "AYP",
    "REGIÓN DE ÑUBLE": "NUBLE",
}


# ---------------------------------------------------------------------------
# Catalogs value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Catalogs:
    """Read-only configuration consumed by the ingestion core."""

    roles: tuple[RoleSpec, ...] = _ROLES
    column_properties: Mapping[str, str] = field(default_factory=lambda: _freeze(_COLUMN_PROPERTIES))
    qualified_datatypes: Mapping[str, Datatype] = field(default_factory=lambda: _freeze(_QUALIFIED_DATATYPES))
    unqualified_datatypes: Mapping[str, Datatype] = field(default_factory=lambda: _freeze(_UNQUALIFIED_DATATYPES))
    education_levels: Mapping[str, str] = field(default_factory=lambda: _freeze(_EDUCATION_LEVELS))
    value_maps: Mapping[str, Mapping[str, str]] = field(
        default_factory=lambda: _freeze({k: _freeze(v) for k, v in _VALUE_MAPS.items()})
    )
    sex_categories: Mapping[str, str] = field(default_factory=lambda: _freeze(_SEX_CATEGORIES))
    level_qualified_columns: frozenset[str] = frozenset(_SEX_CATEGORIES) | {"PROM_ASIS"}
    classifications: tuple[tuple[frozenset[str], str], ...] = _CLASSIFICATIONS
    fallback_classification: str = "Q3"
    links: tuple[Link, ...] = _LINKS
    instance_of_property: str = "P15"
    sex_qualifier_property: str = "P28"
    level_qualifier_property: str = "P29"
    year_property: str = "año"
    year_column: str = "AGNO"
    default_year_index: int = 1
    education_level_column: str = "COD_ENSE"
    coordinate_columns: tuple[str, str] = ("LATITUD", "LONGITUD")
    property_definitions: tuple[PropertyDefinition, ...] = _PROPERTY_DEFINITIONS
    seed_items: tuple[ItemDefinition, ...] = _SEED_ITEMS
    region_aliases: Mapping[str, str] = field(default_factory=lambda: _freeze(_REGION_ALIASES))

    # -- Lookups ----------------------------------------------------------------

    def role_spec(self, role: Role) -> RoleSpec | None:
        for spec in self.roles:
            if spec.role == role:
                return spec
        return None

    def datatype_for(self, property_name: str) -> Datatype | None:
        """Datatype of a property name, or None when it is not catalogued."""
        if property_name in self.qualified_datatypes:
            return self.qualified_datatypes[property_name]
        return self.unqualified_datatypes.get(property_name)

    def is_year_qualified(self, property_name: str) -> bool:
        return property_name in self.qualified_datatypes

    def classify(self, label: str) -> list[str]:
        """Classification items for an establishment label.

        Every keyword set is evaluated; the fallback is returned only when
        none matches.
        """
        text = label.casefold()
        matches = [
            item for keywords, item in self.classifications
            if any(keyword.casefold() in text for keyword in keywords)
        ]
        return matches or [self.fallback_classification]

    # -- Construction -----------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: "Catalogs | None" = None) -> "Catalogs":
        """Overlay plain data (as loaded from YAML) onto *base*.

        Only the keys present in *data* are replaced.
        """
        base = base or DEFAULT_CATALOGS
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown catalog keys: {sorted(unknown)}")

        changes: dict[str, Any] = {}
        for key, value in data.items():
            converter = _CONVERTERS.get(key)
            changes[key] = converter(value) if converter else value
        return replace(base, **changes)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path, base: "Catalogs | None" = None) -> "Catalogs":
        """Load catalog overrides from a YAML file"""
        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Catalog file must contain a mapping: {yaml_path}")
        return cls.from_mapping(data, base=base)


def _datatype_map(value: Mapping[str, str]) -> Mapping[str, Datatype]:
    return _freeze({name: Datatype(dt) for name, dt in value.items()})


def _role_specs(value: list[dict[str, Any]]) -> tuple[RoleSpec, ...]:
    return tuple(
        RoleSpec(
            role=Role(entry["role"]),
            identifying_columns=tuple(entry["identifying_columns"]),
            property_columns=frozenset(entry.get("property_columns", ())),
            label_prefix=entry.get("label_prefix", ""),
            class_item=entry.get("class_item"),
        )
        for entry in value
    )


def _links(value: list[dict[str, Any]]) -> tuple[Link, ...]:
    return tuple(
        Link(
            source=Role(entry["source"]),
            target=Role(entry["target"]),
            property_id=entry["property_id"],
            year_qualified=bool(entry.get("year_qualified", False)),
        )
        for entry in value
    )


def _classifications(value: list[dict[str, Any]]) -> tuple[tuple[frozenset[str], str], ...]:
    return tuple((frozenset(entry["keywords"]), entry["item"]) for entry in value)


_CONVERTERS = {
    "roles": _role_specs,
    "column_properties": _freeze,
    "qualified_datatypes": _datatype_map,
    "unqualified_datatypes": _datatype_map,
    "education_levels": lambda v: _freeze({str(k): i for k, i in v.items()}),
    "value_maps": lambda v: _freeze({c: _freeze({str(k): i for k, i in m.items()}) for c, m in v.items()}),
    "sex_categories": _freeze,
    "level_qualified_columns": frozenset,
    "classifications": _classifications,
    "links": _links,
    "coordinate_columns": tuple,
    "property_definitions": lambda v: tuple(PropertyDefinition(**p) for p in v),
    "seed_items": lambda v: tuple(ItemDefinition(**i) for i in v),
    "region_aliases": _freeze,
}

DEFAULT_CATALOGS = Catalogs()


def load_catalogs(path: str | Path | None = None) -> Catalogs:
    """Default catalogs, overlaid with *path* when given."""
    if path is None:
        return DEFAULT_CATALOGS
    return Catalogs.from_yaml(path)
