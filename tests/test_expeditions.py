from __future__ import annotations

from viking_legacy.military.conflict import ConflictResolver
from viking_legacy.military.expeditions import ExpeditionManager, ExpeditionStatus
from viking_legacy.military.forces import ForceIndex, OwnerKind
from viking_legacy.ui.channels import NotificationChannel
from viking_legacy.world.config import RegionType, SimulationConfig
from viking_legacy.world.holdings import PlayerHoldings
from viking_legacy.world.regions import Region, RegionRegistry, Settlement, SettlementMilitary
from viking_legacy.world.rng import WorldRandomness


def _registry() -> RegionRegistry:
    regions = [
        Region("vestfold", "Vestfold", RegionType.FJORD, (0, 0)),
        Region("agder", "Agder", RegionType.PLAINS, (12, 0)),
        Region("telemark", "Telemark", RegionType.FOREST, (0, 12)),
        Region("finnmark", "Finnmark", RegionType.FOREST, (0, 60)),
        Region("kent", "Kent", RegionType.PLAINS, (200, 0), landmass="britain"),
    ]
    settlements = [
        Settlement("hearth", "Skiringssal", "vestfold", SettlementMilitary(20, 2), is_player=True),
        Settlement(
            "arendal",
            "Arendal",
            "agder",
            SettlementMilitary(30, 1),
            faction_id="jarls",
        ),
    ]
    return RegionRegistry(regions, settlements)


def _manager(
    config: SimulationConfig | None = None,
    warriors: int = 100,
) -> tuple[ExpeditionManager, PlayerHoldings, NotificationChannel]:
    holdings = PlayerHoldings(population={"warriors": warriors})
    notifications = NotificationChannel()
    manager = ExpeditionManager(
        _registry(),
        holdings,
        config=config or SimulationConfig(),
        rng=WorldRandomness(seed=0).generator("expeditions"),
        notifications=notifications,
    )
    return manager, holdings, notifications


def test_player_expedition_debits_home_warriors() -> None:
    manager, holdings, notifications = _manager()

    expedition = manager.create_player_expedition(40, name="Sea Wolves")

    assert expedition is not None
    assert expedition.status is ExpeditionStatus.MUSTERING
    assert expedition.owner_kind is OwnerKind.PLAYER
    assert expedition.current_region == "vestfold"
    assert expedition.warriors == 40
    assert holdings.population_of("warriors") == 60
    assert notifications.by_category("expedition")


def test_expedition_creation_rejects_bad_requests() -> None:
    manager, holdings, notifications = _manager(warriors=10)

    assert manager.create_player_expedition(0) is None
    assert manager.create_player_expedition(-5) is None
    assert manager.create_player_expedition(11) is None
    assert manager.create_player_expedition(5, region_id="atlantis") is None
    assert holdings.population_of("warriors") == 10
    assert manager.get_expeditions() == []
    assert notifications.by_category("warning")


def test_march_to_adjacent_plains_takes_four_ticks() -> None:
    manager, _, _ = _manager()
    expedition = manager.create_player_expedition(30)
    assert manager.start_expedition(expedition.identifier, target_region_id="agder")
    assert expedition.path == ["agder"]

    for _ in range(3):
        manager.process_tick({"day": 0}, 1.0)
    assert expedition.status is ExpeditionStatus.MARCHING
    assert expedition.current_region == "vestfold"
    assert expedition.movement_progress == 75.0

    manager.process_tick({"day": 3}, 1.0)
    assert expedition.current_region == "agder"
    assert expedition.status is ExpeditionStatus.RAIDING
    assert expedition.path == []


def test_travel_days_by_terrain_adjacency_and_sea() -> None:
    manager, _, _ = _manager()

    assert manager.travel_days("vestfold", "agder") == 4
    assert manager.travel_days("vestfold", "telemark") == 7
    assert manager.travel_days("vestfold", "finnmark") == 21
    assert manager.travel_days("vestfold", "kent") == 20
    assert manager.travel_days("vestfold", "nowhere") == 5


def test_start_expedition_validates_targets() -> None:
    manager, _, _ = _manager()
    expedition = manager.create_player_expedition(10)

    assert not manager.start_expedition("expedition-99", target_region_id="agder")
    assert not manager.start_expedition(expedition.identifier)
    assert not manager.start_expedition(expedition.identifier, target_settlement_id="nowhere")
    assert not manager.start_expedition(expedition.identifier, target_region_id="atlantis")
    assert expedition.status is ExpeditionStatus.MUSTERING

    assert manager.start_expedition(expedition.identifier, target_settlement_id="arendal")
    assert expedition.target_region == "agder"
    assert expedition.target_settlement == "arendal"


def test_disband_returns_warriors_loot_and_fame_once() -> None:
    manager, holdings, _ = _manager()
    expedition = manager.create_player_expedition(40)
    expedition.apply_casualties(5)
    expedition.credit(fame=12, loot={"food": 9, "silver": 2})

    assert manager.disband_expedition(expedition.identifier)
    assert expedition.status is ExpeditionStatus.DISBANDED
    assert holdings.population_of("warriors") == 95
    assert holdings.resources == {"food": 9, "silver": 2}
    assert holdings.fame == 12

    assert not manager.disband_expedition(expedition.identifier)
    assert holdings.population_of("warriors") == 95
    assert holdings.fame == 12
    assert not manager.recall_expedition(expedition.identifier)
    assert expedition.status is ExpeditionStatus.DISBANDED


def test_ai_expedition_draws_and_returns_garrison() -> None:
    manager, _, _ = _manager()
    arendal = manager.registry.get_settlement("arendal")

    expedition = manager.create_ai_expedition("arendal", 50)

    assert expedition is not None
    assert expedition.owner_kind is OwnerKind.AI
    assert expedition.faction_id == "jarls"
    assert expedition.warriors == 30
    assert arendal.military.warriors == 0
    assert manager.create_ai_expedition("arendal", 10) is None

    expedition.apply_casualties(4)
    manager.disband_expedition(expedition.identifier)
    assert arendal.military.warriors == 26
    assert manager.get_expeditions(OwnerKind.AI) == []


def test_casualties_never_exceed_initial_warriors() -> None:
    manager, _, _ = _manager()
    expedition = manager.create_player_expedition(10, bonuses={"axes": 1.25})

    assert expedition.strength == 12
    assert expedition.apply_casualties(4) == 4
    assert expedition.apply_casualties(40) == 6
    assert expedition.warriors == 0
    assert expedition.casualties == expedition.initial_warriors
    assert expedition.strength == 0


def test_battle_overlay_reports_battling_until_cleared() -> None:
    manager, _, _ = _manager()
    expedition = manager.create_player_expedition(10)
    manager.start_expedition(expedition.identifier, target_region_id="agder")

    expedition.engaged_battle = "battle-1"
    assert expedition.status is ExpeditionStatus.BATTLING
    manager.process_tick(None, 1.0)
    assert expedition.movement_progress == 0.0

    expedition.engaged_battle = None
    assert expedition.status is ExpeditionStatus.MARCHING


def test_heavy_retaliation_sends_raiders_home() -> None:
    config = SimulationConfig(
        raids={
            "loot_chance_per_strength": 0.0,
            "retaliation_chance": 100.0,
            "retaliation_fraction": 1.0,
        }
    )
    manager, holdings, notifications = _manager(config)
    expedition = manager.create_player_expedition(40)
    manager.start_expedition(expedition.identifier, target_region_id="vestfold")

    manager.process_tick(None, 1.0)
    assert expedition.status is ExpeditionStatus.RAIDING

    manager.process_tick(None, 1.0)
    assert expedition.status is ExpeditionStatus.RETURNING
    assert expedition.warriors == 0
    assert expedition.warriors + expedition.casualties == expedition.initial_warriors
    assert notifications.by_category("danger")

    manager.process_tick(None, 1.0)
    assert expedition.status is ExpeditionStatus.DISBANDED
    assert holdings.population_of("warriors") == 60


def test_raiding_gathers_plunder_and_fame() -> None:
    config = SimulationConfig(raids={"loot_chance_per_strength": 10.0, "retaliation_chance": 0.0})
    manager, _, _ = _manager(config)
    expedition = manager.create_player_expedition(50)
    manager.start_expedition(expedition.identifier, target_region_id="vestfold")

    manager.process_tick(None, 1.0)
    manager.process_tick(None, 1.0)

    assert expedition.total_loot > 0
    assert expedition.fame > 0
    assert set(expedition.loot) >= {"food", "wood", "stone", "metal"}
    assert manager.registry.get_region("vestfold").discovered


def test_disbanded_expeditions_are_pruned_after_grace() -> None:
    manager, _, _ = _manager()
    expedition = manager.create_player_expedition(10)
    manager.disband_expedition(expedition.identifier)

    assert manager.get_expeditions() == []
    for _ in range(3):
        manager.process_tick(None, 1.0)
    assert manager.get_expedition(expedition.identifier) is expedition
    assert manager.lookup_force(expedition.identifier) is None

    manager.process_tick(None, 1.0)
    assert manager.get_expedition(expedition.identifier) is None


def test_arrival_at_target_settlement_begins_siege() -> None:
    manager, _, notifications = _manager()
    resolver = ConflictResolver(
        manager.registry,
        ForceIndex([manager]),
        rng=WorldRandomness(seed=0).generator("conflict"),
    )
    manager.attach_conflicts(resolver)
    expedition = manager.create_player_expedition(60)
    manager.start_expedition(expedition.identifier, target_settlement_id="arendal")

    for _ in range(4):
        manager.process_tick(None, 1.0)

    assert expedition.status is ExpeditionStatus.SIEGING
    siege = resolver.find_siege_for(expedition.identifier)
    assert siege is not None
    assert siege.settlement_id == "arendal"
    assert notifications.by_category("siege")

    assert manager.recall_expedition(expedition.identifier)
    assert resolver.find_siege_for(expedition.identifier) is None
    assert expedition.status is ExpeditionStatus.RETURNING


def test_expedition_falls_back_to_raiding_without_a_siege() -> None:
    manager, _, _ = _manager()
    resolver = ConflictResolver(
        manager.registry,
        ForceIndex([manager]),
        rng=WorldRandomness(seed=0).generator("conflict"),
    )
    manager.attach_conflicts(resolver)
    expedition = manager.create_player_expedition(10)
    expedition.base_status = ExpeditionStatus.SIEGING

    manager.process_tick(None, 1.0)

    assert expedition.status is ExpeditionStatus.RAIDING


def test_player_and_ai_expeditions_in_one_region_start_a_battle() -> None:
    manager, _, _ = _manager()
    resolver = ConflictResolver(
        manager.registry,
        ForceIndex([manager]),
        rng=WorldRandomness(seed=0).generator("conflict"),
    )
    manager.attach_conflicts(resolver)
    raiders = manager.create_player_expedition(30, region_id="agder")
    manager.start_expedition(raiders.identifier, target_region_id="agder")
    defenders = manager.create_ai_expedition("arendal", 30)
    manager.start_expedition(defenders.identifier, target_region_id="agder")

    manager.process_tick(None, 1.0)

    battle = resolver.find_battle_for(raiders.identifier)
    assert battle is not None
    assert battle.attackers == [raiders.identifier]
    assert battle.defenders == [defenders.identifier]
    assert raiders.status is ExpeditionStatus.BATTLING
    assert defenders.status is ExpeditionStatus.BATTLING


def test_raiding_scouts_hidden_settlements_and_neighbouring_regions() -> None:
    config = SimulationConfig(
        raids={
            "loot_chance_per_strength": 0.0,
            "retaliation_chance": 0.0,
            "settlement_discovery_chance": 100.0,
            "region_discovery_chance": 100.0,
        }
    )
    manager, _, notifications = _manager(config)
    registry = manager.registry
    expedition = manager.create_player_expedition(30, region_id="agder")
    manager.start_expedition(expedition.identifier, target_region_id="agder")

    manager.process_tick(None, 1.0)
    assert not registry.get_settlement("arendal").discovered

    manager.process_tick(None, 1.0)
    assert registry.get_region("agder").discovered
    assert registry.get_settlement("arendal").discovered
    assert registry.get_region("vestfold").discovered
    assert not registry.get_region("telemark").discovered
    assert not registry.get_settlement("hearth").discovered
    found = [record.payload for record in notifications.by_category("discovery")]
    assert found == [{"settlement": "arendal"}, {"region": "vestfold"}]

    manager.process_tick(None, 1.0)
    assert len(notifications.by_category("discovery")) == 2


def test_raiding_without_luck_scouts_nothing_new() -> None:
    config = SimulationConfig(
        raids={
            "loot_chance_per_strength": 0.0,
            "retaliation_chance": 0.0,
            "settlement_discovery_chance": 0.0,
            "region_discovery_chance": 0.0,
        }
    )
    manager, _, notifications = _manager(config)
    expedition = manager.create_player_expedition(30, region_id="agder")
    manager.start_expedition(expedition.identifier, target_region_id="agder")

    for _ in range(3):
        manager.process_tick(None, 1.0)

    assert manager.registry.get_region("agder").discovered
    assert not manager.registry.get_settlement("arendal").discovered
    assert not manager.registry.get_region("vestfold").discovered
    assert notifications.by_category("discovery") == []
