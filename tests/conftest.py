"""Shared test fixtures for the edukb test suite."""

import os

import pytest

from edukb.catalogs import DEFAULT_CATALOGS
from edukb.wikibase.bootstrap import bootstrap_schema
from edukb.wikibase.memory import InMemoryStore


# Keep tests away from any real knowledge base before settings are read
os.environ.setdefault("EDUKB_API_URL", "https://wikibase.test/w/api.php")
os.environ.setdefault("EDUKB_USERNAME", "")
os.environ.setdefault("EDUKB_PASSWORD", "")


@pytest.fixture
def catalogs():
    """The built-in catalogs."""
    return DEFAULT_CATALOGS


@pytest.fixture
def bare_store():
    """An empty in-memory knowledge base."""
    return InMemoryStore()


@pytest.fixture
def store(catalogs):
    """An in-memory knowledge base with every catalogued property and class item.

    Call counters are reset after bootstrapping.
    """
    kb = InMemoryStore()
    bootstrap_schema(kb, catalogs)
    kb.calls.clear()
    return kb


@pytest.fixture
def prop(store):
    """Look up a bootstrapped property id by label."""
    def _lookup(name: str) -> str:
        pid = store.find_entity_id(name, "property")
        assert pid is not None, f"property {name!r} not bootstrapped"
        return pid
    return _lookup


@pytest.fixture
def establishment_rows():
    """Header plus one row for 'Liceo A' in Los Lagos / Osorno."""
    return [
        ["NOM_RBD", "NOM_REG_RBD_A", "NOM_COM_RBD", "AGNO", "DC_TOT"],
        ["Liceo A", "Los Lagos", "Osorno", "2023", "15"],
    ]
