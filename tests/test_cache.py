"""Tests for run-scoped entity and property resolution in edukb/ingestion/cache.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from edukb.catalogs import Role
from edukb.ingestion.cache import EntityCache, PropertyResolver, Resolution
from edukb.utils import RemoteUnavailableError, UnknownPropertyError


class TestEntityCache:
    def test_blank_label_is_absent_without_remote_calls(self) -> None:
        client = MagicMock()
        cache = EntityCache(client)

        result = cache.resolve("   ", Role.region)

        assert result == Resolution.absent()
        assert result.is_absent
        client.find_entity_ids.assert_not_called()
        client.create_entity.assert_not_called()

    def test_double_miss_creates_once(self, bare_store) -> None:
        cache = EntityCache(bare_store)

        first = cache.resolve("Los Lagos", Role.region)
        second = cache.resolve("Los Lagos", Role.region)

        assert first.created and first.first_seen
        assert second.entity_id == first.entity_id
        assert not second.created and not second.first_seen
        assert bare_store.calls["create_entity"] == 1
        assert bare_store.calls["find_entity_ids"] == 1
        assert cache.created == 1

    def test_remote_hit_is_reused(self, bare_store) -> None:
        existing = bare_store.create_entity("Osorno")
        cache = EntityCache(bare_store)

        result = cache.resolve("OSORNO", Role.comuna)

        assert result.entity_id == existing
        assert result.first_seen and not result.created
        assert bare_store.calls["create_entity"] == 1
        assert cache.created == 0

    def test_establishment_named_by_its_own_name_with_alias(self, bare_store) -> None:
        cache = EntityCache(bare_store)

        result = cache.resolve("Liceo A Los Lagos Osorno", Role.establishment, name="Liceo A")

        entity = bare_store.entity(result.entity_id)
        assert entity["label"] == "Liceo A"
        assert entity["aliases"] == ["Liceo A Los Lagos Osorno"]

    def test_alias_found_by_a_later_run(self, bare_store) -> None:
        label = "Liceo A Los Lagos Osorno"
        first = EntityCache(bare_store).resolve(label, Role.establishment, name="Liceo A")
        second = EntityCache(bare_store).resolve(label, Role.establishment, name="Liceo A")

        assert second.entity_id == first.entity_id
        assert not second.created
        assert bare_store.calls["create_entity"] == 1

    def test_same_label_in_other_role_is_separate_cache_entry(self, bare_store) -> None:
        cache = EntityCache(bare_store)
        cache.resolve("Valdivia", Role.comuna)
        cache.resolve("Valdivia", Role.region)

        assert (Role.comuna, "Valdivia") in cache
        assert (Role.region, "Valdivia") in cache
        # without catalogs any exact hit is reused
        assert bare_store.calls["create_entity"] == 1

    def test_hit_classed_for_another_role_is_passed_over(self, bare_store, catalogs) -> None:
        region = bare_store.create_entity("Maule")
        bare_store.create_statement(region, "P15", {"entity-type": "item", "numeric-id": 2, "id": "Q2"})
        cache = EntityCache(bare_store, catalogs)

        comuna = cache.resolve("MAULE", Role.comuna)
        same_region = cache.resolve("MAULE", Role.region)

        assert comuna.created
        assert comuna.entity_id != region
        assert same_region.entity_id == region
        assert not same_region.created

    def test_later_run_picks_the_matching_candidate(self, bare_store, catalogs) -> None:
        region = bare_store.create_entity("Maule")
        bare_store.create_statement(region, "P15", {"entity-type": "item", "numeric-id": 2, "id": "Q2"})
        comuna = bare_store.create_entity("Maule")
        bare_store.create_statement(comuna, "P15", {"entity-type": "item", "numeric-id": 1, "id": "Q1"})
        cache = EntityCache(bare_store, catalogs)

        assert cache.resolve("Maule", Role.comuna).entity_id == comuna
        assert cache.resolve("Maule", Role.region).entity_id == region
        assert cache.created == 0

    def test_unclassed_hit_is_reused_by_any_role(self, bare_store, catalogs) -> None:
        existing = bare_store.create_entity("Osorno")
        cache = EntityCache(bare_store, catalogs)

        assert cache.resolve("Osorno", Role.comuna).entity_id == existing
        assert cache.created == 0

    def test_remote_errors_propagate(self) -> None:
        client = MagicMock()
        client.find_entity_ids.side_effect = RemoteUnavailableError("down")
        cache = EntityCache(client)

        with pytest.raises(RemoteUnavailableError):
            cache.resolve("Los Lagos", Role.region)
        assert len(cache) == 0


class TestPropertyResolver:
    def test_property_id_used_verbatim(self) -> None:
        client = MagicMock()
        assert PropertyResolver(client).resolve("P37") == "P37"
        client.find_entity_id.assert_not_called()

    def test_hits_are_memoized(self) -> None:
        client = MagicMock()
        client.find_entity_id.return_value = "P4"
        resolver = PropertyResolver(client)

        assert resolver.resolve("empleados") == "P4"
        assert resolver.resolve("empleados") == "P4"
        client.find_entity_id.assert_called_once_with("empleados", "property")

    def test_misses_are_memoized_and_raise_every_time(self) -> None:
        client = MagicMock()
        client.find_entity_id.return_value = None
        resolver = PropertyResolver(client)

        for _ in range(2):
            with pytest.raises(UnknownPropertyError) as exc_info:
                resolver.resolve("no existe")
            assert exc_info.value.name == "no existe"
        client.find_entity_id.assert_called_once()
