from __future__ import annotations

import math

from viking_legacy.military.conflict import (
    BattleOutcome,
    BattlePhase,
    ConflictResolver,
    SiegeOutcome,
    SiegePhase,
)
from viking_legacy.military.expeditions import ExpeditionManager, ExpeditionStatus
from viking_legacy.military.forces import ForceIndex
from viking_legacy.ui.channels import NotificationChannel
from viking_legacy.world.config import RegionType, SimulationConfig
from viking_legacy.world.holdings import PlayerHoldings
from viking_legacy.world.regions import Region, RegionRegistry, Settlement, SettlementMilitary
from viking_legacy.world.rng import WorldRandomness, round_half_up


def _setup(
    config: SimulationConfig | None = None,
    *,
    garrison: int = 100,
    defenses: int = 0,
    rank: int = 0,
    seed: int = 0,
) -> tuple[ExpeditionManager, ConflictResolver, NotificationChannel]:
    config = config or SimulationConfig()
    registry = RegionRegistry(
        [
            Region("vestfold", "Vestfold", RegionType.FJORD, (0, 0)),
            Region("agder", "Agder", RegionType.COASTAL, (12, 0)),
        ],
        [
            Settlement("hearth", "Skiringssal", "vestfold", is_player=True),
            Settlement(
                "arendal",
                "Arendal",
                "agder",
                SettlementMilitary(garrison, defenses),
                resources={"fish": 40},
                rank=rank,
                population=20,
                faction_id="jarls",
            ),
        ],
    )
    randomness = WorldRandomness(seed=seed)
    notifications = NotificationChannel()
    manager = ExpeditionManager(
        registry,
        PlayerHoldings(population={"warriors": 1000}),
        config=config,
        rng=randomness.generator("expeditions"),
        notifications=notifications,
    )
    resolver = ConflictResolver(
        registry,
        ForceIndex([manager]),
        config=config,
        rng=randomness.generator("conflict"),
        notifications=notifications,
    )
    manager.attach_conflicts(resolver)
    return manager, resolver, notifications


def _run(resolver: ConflictResolver, ticks: int) -> None:
    for _ in range(ticks):
        resolver.process_tick(None, 1.0)


def test_enum_accessors_expose_wire_values() -> None:
    assert ConflictResolver.battle_phases()["MELEE"] == "melee"
    assert ConflictResolver.battle_outcomes()["DEVASTATING_DEFEAT"] == "devastating_defeat"
    assert ConflictResolver.siege_phases()["BOMBARDMENT"] == "bombardment"
    assert ConflictResolver.siege_outcomes()["ABANDONED"] == "abandoned"


def test_battle_needs_combatants_on_both_sides() -> None:
    manager, resolver, _ = _setup()
    raiders = manager.create_player_expedition(50, region_id="agder")

    assert resolver.initiate_battle("agder", attackers=[raiders]) is None
    assert resolver.initiate_battle("agder", attackers=[raiders], defenders=["ghost"]) is None
    assert resolver.get_active_battles() == []
    assert raiders.engaged_battle is None


def test_engaged_forces_cannot_join_a_second_battle() -> None:
    manager, resolver, _ = _setup(garrison=200)
    raiders = manager.create_player_expedition(50, region_id="agder")
    first = manager.create_ai_expedition("arendal", 40)
    second = manager.create_ai_expedition("arendal", 40)

    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[first])
    assert battle is not None
    assert battle.region_name == "Agder"
    assert resolver.has_active_battle("agder")
    assert resolver.initiate_battle("agder", attackers=[raiders], defenders=[second]) is None
    assert second.engaged_battle is None


def test_stronger_attackers_carry_the_field() -> None:
    manager, resolver, notifications = _setup(garrison=100)
    raiders = manager.create_player_expedition(200, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 100)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])

    seen_phases = [battle.phase]
    for _ in range(20):
        resolver.process_tick(None, 1.0)
        assert -100.0 <= battle.advantage <= 100.0
        if battle.phase is not seen_phases[-1]:
            seen_phases.append(battle.phase)
        if battle.concluded:
            break

    assert battle.concluded
    assert battle.outcome.attacker_won
    order = list(BattlePhase)
    assert [order.index(phase) for phase in seen_phases] == sorted(
        order.index(phase) for phase in seen_phases
    )
    assert raiders.engaged_battle is None
    assert raiders.status is ExpeditionStatus.MUSTERING
    assert locals_.status is ExpeditionStatus.RETURNING
    assert raiders.warriors + raiders.casualties == 200
    assert battle.attacker_losses == raiders.casualties
    assert battle.defender_losses == locals_.casualties
    assert notifications.by_category("battle")


def test_battle_advances_at_most_one_phase_per_tick() -> None:
    manager, resolver, _ = _setup(garrison=100)
    raiders = manager.create_player_expedition(100, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 100)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])
    order = list(BattlePhase)

    previous = order.index(battle.phase)
    while not battle.concluded:
        resolver.process_tick(None, 1.0)
        current = order.index(battle.phase)
        if not battle.concluded:
            assert current - previous <= 1
        previous = current
        assert battle.turn <= 30


def test_defenders_without_warriors_lose_immediately() -> None:
    manager, resolver, _ = _setup(garrison=10)
    raiders = manager.create_player_expedition(20, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 10)
    locals_.apply_casualties(10)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])

    assert battle.defender_strength == 0
    resolver.process_tick(None, 1.0)

    assert battle.concluded
    assert battle.outcome is BattleOutcome.VICTORY
    assert raiders.casualties == 0


def test_zero_strength_defenders_push_advantage_to_the_cap() -> None:
    manager, resolver, _ = _setup(garrison=10)
    raiders = manager.create_player_expedition(50, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 10, bonuses={"starving": 0.0})
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])

    resolver.process_tick(None, 1.0)

    assert battle.defender_strength == 0
    assert battle.advantage == 100.0


def test_concluded_battles_stay_readable_for_retention_window() -> None:
    manager, resolver, _ = _setup(garrison=10)
    raiders = manager.create_player_expedition(20, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 10)
    locals_.apply_casualties(10)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])
    resolver.process_tick(None, 1.0)
    assert battle.concluded

    _run(resolver, 5)
    assert resolver.find_battle_for(raiders.identifier) is battle
    assert resolver.get_active_battles() == []
    assert resolver.get_active_battles(include_completed=True) == [battle]

    _run(resolver, 1)
    assert resolver.get_battle(battle.identifier) is None
    assert resolver.find_battle_for(raiders.identifier) is None


def test_siege_of_weak_settlement_takes_ten_ticks() -> None:
    config = SimulationConfig(sieges={"casualty_chance": 0.0})
    manager, resolver, notifications = _setup(config, garrison=50, rank=2)
    raiders = manager.create_player_expedition(500, region_id="agder")
    captured: list[tuple[str, str]] = []
    resolver.add_capture_listener(lambda settlement, force: captured.append((settlement, force)))

    siege = resolver.initiate_siege("arendal", raiders.identifier)
    assert siege.defense_strength == 50
    assert resolver.initiate_siege("arendal", raiders.identifier) is siege

    _run(resolver, 9)
    assert siege.progress == 90.0
    assert siege.phase is SiegePhase.ASSAULT
    assert not siege.concluded

    _run(resolver, 1)
    arendal = manager.registry.get_settlement("arendal")
    assert siege.outcome is SiegeOutcome.VICTORY
    assert arendal.is_captured
    assert arendal.faction_id == "player"
    assert arendal.military.warriors == 0
    assert captured == [("arendal", raiders.identifier)]
    assert raiders.fame == 50 + 2 * 20
    assert raiders.loot["silver"] > 0
    assert 0 < raiders.loot["fish"] <= 40
    assert arendal.resources["fish"] == 40 - raiders.loot["fish"]
    assert raiders.status is ExpeditionStatus.RETURNING
    assert notifications.by_category("success")


def test_undefended_settlement_falls_in_one_tick() -> None:
    manager, resolver, _ = _setup(garrison=0, defenses=0)
    raiders = manager.create_player_expedition(5, region_id="agder")
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    assert siege.defense_strength == 0
    resolver.process_tick(None, 1.0)

    assert siege.outcome is SiegeOutcome.VICTORY
    assert siege.progress == 100.0


def test_defense_buildings_weigh_into_siege_strength() -> None:
    manager, resolver, _ = _setup(garrison=30, defenses=4)
    raiders = manager.create_player_expedition(10, region_id="agder")

    siege = resolver.initiate_siege("arendal", raiders.identifier)

    assert siege.defense_strength == 4 * 3 + 30


def test_siege_progress_rate_is_clamped() -> None:
    config = SimulationConfig(sieges={"casualty_chance": 0.0})
    manager, resolver, _ = _setup(config, garrison=1000)
    raiders = manager.create_player_expedition(10, region_id="agder")
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    _run(resolver, 3)

    assert siege.progress == 3.0
    assert siege.phase is SiegePhase.ENCIRCLEMENT


def test_withdraw_siege_abandons_without_recalling() -> None:
    manager, resolver, _ = _setup()
    raiders = manager.create_player_expedition(50, region_id="agder")
    raiders.base_status = ExpeditionStatus.SIEGING
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    assert resolver.withdraw_siege(raiders.identifier)
    assert siege.outcome is SiegeOutcome.ABANDONED
    assert resolver.find_siege_for(raiders.identifier) is None
    assert raiders.status is ExpeditionStatus.SIEGING
    assert not resolver.withdraw_siege(raiders.identifier)


def test_siege_is_abandoned_when_the_attacker_disbands() -> None:
    manager, resolver, _ = _setup()
    raiders = manager.create_player_expedition(50, region_id="agder")
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    manager.disband_expedition(raiders.identifier)
    resolver.process_tick(None, 1.0)

    assert siege.outcome is SiegeOutcome.ABANDONED


def test_siege_of_unknown_settlement_or_force_is_refused() -> None:
    manager, resolver, _ = _setup()
    raiders = manager.create_player_expedition(50, region_id="agder")

    assert resolver.initiate_siege("nowhere", raiders.identifier) is None
    assert resolver.initiate_siege("arendal", "expedition-404") is None
    assert resolver.get_active_sieges() == []


def test_wiping_out_the_defenders_still_earns_fame_and_shared_loot() -> None:
    manager, resolver, _ = _setup(garrison=100)
    first = manager.create_player_expedition(500, region_id="agder")
    second = manager.create_player_expedition(500, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 100)
    battle = resolver.initiate_battle("agder", attackers=[first, second], defenders=[locals_])

    resolver.process_tick(None, 100.0)

    assert battle.outcome is BattleOutcome.VICTORY
    assert locals_.warriors == 0
    assert battle.defender_strength == 100
    assert first.fame == second.fame == round_half_up(30 * math.sqrt(100) / 5) == 60

    total = sum(battle.loot.values())
    assert total in (100, 200, 300)
    assert battle.loot == {"food": total // 2, "wood": total * 3 // 10, "metal": total // 5}
    shares = {resource: amount // 2 for resource, amount in battle.loot.items()}
    assert dict(first.loot) == dict(second.loot) == shares
    assert locals_.status is ExpeditionStatus.RETURNING


def test_decisive_victory_uses_the_larger_fame_base() -> None:
    manager, resolver, _ = _setup(garrison=100)
    raiders = manager.create_player_expedition(300, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 100)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])

    for _ in range(20):
        resolver.process_tick(None, 1.0)
        if battle.concluded:
            break

    assert battle.outcome is BattleOutcome.DECISIVE_VICTORY
    assert battle.defender_strength > 0
    assert raiders.fame == round_half_up(50 * math.sqrt(battle.defender_strength) / 5)
    losses = battle.defender_losses
    assert losses - 2 <= sum(raiders.loot.values()) <= 3 * losses + 2


def test_mutual_annihilation_is_a_draw_without_loot() -> None:
    manager, resolver, _ = _setup(garrison=10)
    raiders = manager.create_player_expedition(10, region_id="agder")
    locals_ = manager.create_ai_expedition("arendal", 10)
    battle = resolver.initiate_battle("agder", attackers=[raiders], defenders=[locals_])

    resolver.process_tick(None, 1000.0)

    assert battle.outcome is BattleOutcome.DRAW
    assert raiders.fame == 10
    assert locals_.fame == 0
    assert battle.loot == {}
    assert dict(raiders.loot) == {}
    assert raiders.status is ExpeditionStatus.RETURNING
    assert locals_.status is ExpeditionStatus.RETURNING
    assert raiders.engaged_battle is None and locals_.engaged_battle is None


def test_siege_is_abandoned_after_ruinous_casualties() -> None:
    config = SimulationConfig(
        sieges={"casualty_chance": 100.0, "casualty_factors": {"encirclement": 0.1}}
    )
    manager, resolver, notifications = _setup(config, garrison=1000)
    raiders = manager.create_player_expedition(100, region_id="agder")
    raiders.base_status = ExpeditionStatus.SIEGING
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    resolver.process_tick(None, 1.0)

    assert siege.outcome is SiegeOutcome.ABANDONED
    assert raiders.casualties > 1.5 * raiders.warriors
    assert raiders.status is ExpeditionStatus.RETURNING
    assert not manager.registry.get_settlement("arendal").is_captured
    assert notifications.by_category("danger")


def test_siege_is_abandoned_when_the_settlement_vanishes() -> None:
    manager, resolver, _ = _setup()
    raiders = manager.create_player_expedition(50, region_id="agder")
    raiders.base_status = ExpeditionStatus.SIEGING
    siege = resolver.initiate_siege("arendal", raiders.identifier)

    manager.registry.remove_settlement("arendal")
    resolver.process_tick(None, 1.0)

    assert siege.outcome is SiegeOutcome.ABANDONED
    assert siege.progress == 0.0
    assert raiders.status is ExpeditionStatus.RETURNING
    assert resolver.find_siege_for(raiders.identifier) is None
