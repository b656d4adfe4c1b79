from __future__ import annotations

from viking_legacy.world.config import RegionType
from viking_legacy.world.graph import regions_touch
from viking_legacy.world.regions import Region, RegionRegistry, Settlement, SettlementMilitary


def _coast() -> list[Region]:
    return [
        Region("vestfold", "Vestfold", RegionType.FJORD, (0, 0)),
        Region("agder", "Agder", RegionType.COASTAL, (12, 0)),
        Region("rogaland", "Rogaland", RegionType.PLAINS, (24, 0)),
        Region("kent", "Kent", RegionType.PLAINS, (12, 0), landmass="britain"),
    ]


def test_neighbouring_regions_touch_within_width_threshold() -> None:
    vestfold, agder, rogaland, _ = _coast()

    assert regions_touch(vestfold, agder)
    assert regions_touch(agder, rogaland)
    assert not regions_touch(vestfold, rogaland)
    assert not regions_touch(vestfold, vestfold)


def test_regions_on_different_landmasses_never_touch() -> None:
    registry = RegionRegistry(_coast())

    assert not registry.are_adjacent("agder", "kent")
    assert "kent" not in registry.get_adjacent_regions("vestfold")
    assert registry.get_adjacent_regions("kent") == []


def test_find_path_routes_through_intermediate_regions() -> None:
    registry = RegionRegistry(_coast())

    assert list(registry.find_path("vestfold", "rogaland")) == ["agder", "rogaland"]
    assert list(registry.find_path("vestfold", "vestfold")) == []
    assert list(registry.find_path("vestfold", "kent")) == []
    assert list(registry.find_path("vestfold", "atlantis")) == []


def test_explicit_connections_replace_the_distance_heuristic() -> None:
    registry = RegionRegistry(
        _coast(),
        connections={"vestfold": ["rogaland"], "rogaland": ["kent"]},
    )

    assert registry.are_adjacent("vestfold", "rogaland")
    assert registry.are_adjacent("rogaland", "kent")
    assert not registry.are_adjacent("vestfold", "agder")


def test_adjust_settlement_warriors_clamps_at_zero() -> None:
    registry = RegionRegistry(
        _coast(),
        [Settlement("arendal", "Arendal", "agder", SettlementMilitary(warriors=12), faction_id="jarls")],
    )

    assert registry.adjust_settlement_warriors("arendal", 8) == 8
    assert registry.adjust_settlement_warriors("arendal", -50) == -20
    assert registry.get_settlement("arendal").military.warriors == 0
    assert registry.adjust_settlement_warriors("nowhere", 5) == 0


def test_faction_territories_and_discovery() -> None:
    registry = RegionRegistry(
        _coast(),
        [
            Settlement("arendal", "Arendal", "agder", faction_id="jarls"),
            Settlement("mandal", "Mandal", "agder", faction_id="jarls"),
            Settlement("stavanger", "Stavanger", "rogaland", faction_id="jarls"),
            Settlement("hearth", "Skiringssal", "vestfold", is_player=True),
        ],
    )

    assert registry.faction_territories("jarls") == ["agder", "rogaland"]
    assert registry.get_player_settlement().identifier == "hearth"
    assert [s.identifier for s in registry.settlements_in_region("agder")] == ["arendal", "mandal"]
    assert registry.discover_region("agder") is True
    assert registry.discover_region("agder") is False
    assert registry.get_region("agder").discovered
    assert registry.discover_settlement("mandal") is True
    assert registry.discover_settlement("mandal") is False
    assert registry.discover_settlement("nowhere") is False
    assert Settlement.from_dict(registry.get_settlement("mandal").to_dict()).discovered


def test_region_round_trips_through_dict_payload() -> None:
    region = Region(
        "telemark",
        "Telemark",
        RegionType.FOREST,
        (0, 12),
        resource_modifiers={"wood": 1.5},
    )

    restored = Region.from_dict(region.to_dict())

    assert restored == region
