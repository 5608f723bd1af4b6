"""Genome store collaborator interface and an in-memory reference store."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
import logging
import random
from typing import Protocol

from .errors import StoreUnavailable
from .genome import Genome

__all__ = ["GenomeStats", "GenomeStore", "InMemoryGenomeStore"]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenomeStats:
    total_genomes: int
    average_score: float = 0.0
    total_mutations: int = 0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class GenomeStore(Protocol):
    """Persistence boundary; implementations raise :class:`StoreUnavailable` on failure."""

    async def store(self, genome: Genome) -> int: ...

    async def get_by_id(self, genome_id: int) -> Genome | None: ...

    async def random(self) -> Genome: ...

    async def count(self) -> int: ...

    async def stats(self) -> GenomeStats: ...


class InMemoryGenomeStore:
    """Keeps snapshots in a dict; ``offline`` simulates an unreachable backend."""

    def __init__(self, *, rng: random.Random | None = None, latency: float = 0.0) -> None:
        self._records: dict[int, dict[str, object]] = {}
        self._next_id = 1
        self._rng = rng or random.Random()
        self.latency = latency
        self.offline = False

    async def _round_trip(self, operation: str) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        if self.offline:
            LOGGER.warning("genome store offline during %s", operation)
            raise StoreUnavailable(f"genome store unavailable for {operation}")

    async def store(self, genome: Genome) -> int:
        await self._round_trip("store")
        genome_id = self._next_id
        self._next_id += 1
        genome.db_id = genome_id
        self._records[genome_id] = genome.to_dict()
        LOGGER.debug("stored genome #%s (%s)", genome_id, genome.to_dna_string())
        return genome_id

    async def get_by_id(self, genome_id: int) -> Genome | None:
        await self._round_trip("get_by_id")
        snapshot = self._records.get(genome_id)
        return Genome.from_dict(snapshot) if snapshot is not None else None

    async def random(self) -> Genome:
        await self._round_trip("random")
        if not self._records:
            raise StoreUnavailable("genome store is empty")
        genome_id = self._rng.choice(sorted(self._records))
        return Genome.from_dict(self._records[genome_id])

    async def count(self) -> int:
        await self._round_trip("count")
        return len(self._records)

    async def stats(self) -> GenomeStats:
        await self._round_trip("stats")
        total = len(self._records)
        if not total:
            return GenomeStats(total_genomes=0)
        scores = [int(row["consciousness"]) for row in self._records.values()]  # type: ignore[call-overload]
        mutations = sum(int(row["mutations"]) for row in self._records.values())  # type: ignore[call-overload]
        return GenomeStats(total_genomes=total, average_score=sum(scores) / total, total_mutations=mutations)
