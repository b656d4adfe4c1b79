"""Command line entry point running a seeded demo campaign."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from rich.console import Console
from rich.table import Table

from .engine.simulation import Simulation, demo_simulation


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="viking-legacy", description=__doc__)
    parser.add_argument("--seed", type=int, default=7, help="seed for every random stream")
    parser.add_argument("--days", type=float, default=40.0, help="days to simulate")
    parser.add_argument("--tick", type=float, default=1.0, help="days per tick")
    parser.add_argument("--warriors", type=int, default=100, help="size of the player's war-band")
    parser.add_argument(
        "--target",
        default="arendal",
        help="settlement the player's expedition besieges",
    )
    parser.add_argument("--force-response", action="store_true", help="factions always answer")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def _expedition_table(simulation: Simulation) -> Table:
    table = Table(title="Expeditions", expand=True)
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Region")
    table.add_column("Warriors", justify="right")
    table.add_column("Loot", justify="right")
    table.add_column("Fame", justify="right")
    for expedition in simulation.expeditions.get_expeditions():
        table.add_row(
            expedition.name,
            expedition.status.value,
            expedition.current_region,
            str(expedition.warriors),
            str(expedition.total_loot),
            str(expedition.fame),
        )
    return table


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    console = Console()

    simulation = demo_simulation(args.seed, force_response=args.force_response)
    expedition = simulation.expeditions.create_player_expedition(args.warriors)
    if expedition is None:
        console.print("[red]Could not muster the war-band.[/red]")
        return 1
    if not simulation.expeditions.start_expedition(
        expedition.identifier, target_settlement_id=args.target
    ):
        console.print(f"[red]Unknown target settlement {args.target!r}.[/red]")
        return 1

    simulation.run(args.days, args.tick)

    console.print(simulation.turn_log.render_table(limit=10))
    console.print(simulation.notifications.render_panel(title="Saga", limit=25))
    console.print(_expedition_table(simulation))
    console.print(simulation.armies.strength_report())
    holdings = simulation.holdings
    console.print(
        f"Day {simulation.day:g}: fame {holdings.fame}, "
        f"warriors at home {holdings.population_of('warriors')}, "
        f"stores {dict(holdings.resources)}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - module entry point
    raise SystemExit(main())
