"""Centralised factories for the simulation's random number streams."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import math
from typing import Callable, Dict, Sequence, TypeVar

from numpy.random import BitGenerator, Generator, PCG64

BitGeneratorFactory = Callable[[int], BitGenerator]

T = TypeVar("T")


def _default_bit_generator(seed: int) -> BitGenerator:
    return PCG64(seed)


_BITGEN_MODULUS = 2**128


def _stable_hash(value: str, *, modulo: int) -> int:
    """Return a deterministic hash of ``value`` bounded by ``modulo``."""

    digest = hashlib.blake2b(value.encode("utf-8"), digest_size=16).digest()
    return int.from_bytes(digest, "big") % modulo


@dataclass
class WorldRandomness:
    """Provides seeded RNG streams keyed by subsystem name."""

    seed: int
    bit_generator_factory: BitGeneratorFactory = _default_bit_generator
    _generators: Dict[str, Generator] = field(default_factory=dict)

    def _derive_seed(self, namespace: str, *, modulo: int) -> int:
        token = f"{self.seed}:{namespace}"
        derived = _stable_hash(token, modulo=modulo)
        # Ensure the derived seed is not zero where zero has special meaning.
        return derived or 1

    def generator(self, stream: str = "default") -> Generator:
        """Return (and cache) a ``numpy.random.Generator`` for ``stream``."""

        if stream not in self._generators:
            derived_seed = self._derive_seed(f"rng:{stream}", modulo=_BITGEN_MODULUS)
            bit_gen = self.bit_generator_factory(int(derived_seed))
            self._generators[stream] = Generator(bit_gen)
        return self._generators[stream]


# ---------------------------------------------------------------------------
# Small draw helpers shared by the military systems.


def chance_of(rng: Generator, percentage: float) -> bool:
    """Return ``True`` with ``percentage`` (0-100, may exceed 100) probability."""

    if percentage <= 0:
        return False
    return float(rng.random()) * 100.0 < percentage


def random_between(rng: Generator, minimum: int, maximum: int) -> int:
    """Return an integer uniformly drawn from ``[minimum, maximum]``."""

    return int(rng.integers(minimum, maximum + 1))


def uniform(rng: Generator, low: float, high: float) -> float:
    return float(rng.uniform(low, high))


def choose(rng: Generator, options: Sequence[T]) -> T:
    if not options:
        raise ValueError("options must not be empty")
    return options[int(rng.integers(0, len(options)))]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""

    return int(math.floor(value + 0.5))


__all__ = [
    "WorldRandomness",
    "chance_of",
    "choose",
    "random_between",
    "round_half_up",
    "uniform",
]
