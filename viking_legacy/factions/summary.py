"""Columnar summaries of faction military power."""

from __future__ import annotations

from collections.abc import Iterable

import polars as pl
from polars._typing import PolarsDataType

from ..world.regions import Settlement

_GARRISON_SCHEMA: dict[str, PolarsDataType] = {
    "faction": pl.String,
    "settlement": pl.String,
    "region": pl.String,
    "warriors": pl.Int64,
    "defenses": pl.Int64,
}
_ARMY_SCHEMA: dict[str, PolarsDataType] = {
    "faction": pl.String,
    "army": pl.String,
    "warriors": pl.Int64,
}


def _garrison_frame(settlements: Iterable[Settlement]) -> pl.DataFrame:
    rows = [
        {
            "faction": settlement.faction_id,
            "settlement": settlement.identifier,
            "region": settlement.region,
            "warriors": int(settlement.military.warriors),
            "defenses": int(settlement.military.defenses),
        }
        for settlement in settlements
        if settlement.faction_id is not None and not settlement.is_player
    ]
    if not rows:
        return pl.DataFrame(schema=_GARRISON_SCHEMA)
    return pl.DataFrame(rows, schema=_GARRISON_SCHEMA)


def faction_warrior_totals(settlements: Iterable[Settlement]) -> dict[str, int]:
    """Return garrisoned warriors per faction."""

    frame = _garrison_frame(settlements)
    if frame.is_empty():
        return {}
    grouped = frame.group_by("faction").agg(pl.col("warriors").sum().alias("warriors"))
    return {
        str(row["faction"]): int(row["warriors"])
        for row in grouped.iter_rows(named=True)
    }


def faction_strength_frame(
    settlements: Iterable[Settlement],
    armies: Iterable[tuple[str, str, int]] = (),
) -> pl.DataFrame:
    """Return one row per faction with garrison, field army and territory counts.

    ``armies`` yields ``(faction_id, army_id, warriors)`` tuples for live armies.
    """

    garrisons = _garrison_frame(settlements)
    army_rows = [
        {"faction": faction, "army": army, "warriors": int(warriors)}
        for faction, army, warriors in armies
    ]
    army_frame = (
        pl.DataFrame(army_rows, schema=_ARMY_SCHEMA)
        if army_rows
        else pl.DataFrame(schema=_ARMY_SCHEMA)
    )

    garrison_summary = garrisons.group_by("faction").agg(
        pl.col("warriors").sum().alias("garrison_warriors"),
        pl.col("defenses").sum().alias("defenses"),
        pl.col("settlement").count().alias("settlements"),
        pl.col("region").n_unique().alias("territories"),
    )
    army_summary = army_frame.group_by("faction").agg(
        pl.col("warriors").sum().alias("army_warriors"),
        pl.col("army").count().alias("armies"),
    )
    combined = garrison_summary.join(army_summary, on="faction", how="full", coalesce=True)
    return (
        combined.with_columns(
            pl.col("garrison_warriors").fill_null(0),
            pl.col("defenses").fill_null(0),
            pl.col("settlements").fill_null(0),
            pl.col("territories").fill_null(0),
            pl.col("army_warriors").fill_null(0),
            pl.col("armies").fill_null(0),
        )
        .with_columns(
            (pl.col("garrison_warriors") + pl.col("army_warriors")).alias("total_warriors")
        )
        .sort("faction")
    )


__all__ = ["faction_strength_frame", "faction_warrior_totals"]
