"""Tests for ensuring project packaging metadata stays consistent."""

from __future__ import annotations

import tomllib
from pathlib import Path

import viking_legacy

meta: dict[str, str] = {}


def _load_pyproject() -> dict:
    with Path("pyproject.toml").open("rb") as handle:
        return tomllib.load(handle)


def test_pyproject_declares_expected_metadata() -> None:
    pyproject = _load_pyproject()
    poetry = pyproject["tool"]["poetry"]

    assert poetry["name"] == "viking-legacy"
    assert poetry["version"] == viking_legacy.__version__
    assert poetry["scripts"]["viking-legacy"] == "viking_legacy.__main__:main"

    dependencies = poetry["dependencies"]
    for dependency in ("numpy", "networkx", "pydantic", "polars", "esper", "rich"):
        assert dependency in dependencies, f"missing dependency declaration for {dependency}"
