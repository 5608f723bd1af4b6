from __future__ import annotations

import asyncio
import random

import pytest

from genomeos.archive import MultiChainArchiver
from genomeos.config import GenomeConfig
from genomeos.consensus import ProofOfConsciousness
from genomeos.errors import PhaseNotEligible, StoreUnavailable
from genomeos.genome import GenomeBuilder
from genomeos.phases import Phase
from genomeos.pipeline import randomize_top_site, run_lifecycle
from genomeos.rotation import RotationEngine
from genomeos.store import InMemoryGenomeStore

DNA = "ATGCATGCATGCATGCATGCATGCATG"


def test_store_assigns_ids_and_snapshots() -> None:
    store = InMemoryGenomeStore()
    genome = GenomeBuilder(DNA).build_storage()
    other = GenomeBuilder("G" * 27).build_storage()

    async def scenario() -> None:
        first = await store.store(genome)
        second = await store.store(other)
        assert (first, second) == (1, 2)
        assert genome.db_id == 1

        loaded = await store.get_by_id(first)
        assert loaded is not None
        assert loaded.to_dna_string() == DNA
        assert loaded.score() == genome.score()
        assert loaded.db_id == 1
        assert await store.get_by_id(99) is None
        assert await store.count() == 2

        picked = await store.random()
        assert picked.db_id in {1, 2}

        stats = await store.stats()
        assert stats.total_genomes == 2
        assert stats.average_score == pytest.approx((genome.score() + other.score()) / 2)
        assert stats.total_mutations == 0

    asyncio.run(scenario())


def test_empty_store_stats_and_random() -> None:
    store = InMemoryGenomeStore()

    async def scenario() -> None:
        stats = await store.stats()
        assert stats.total_genomes == 0
        assert stats.average_score == 0.0
        with pytest.raises(StoreUnavailable):
            await store.random()

    asyncio.run(scenario())


def test_offline_store_raises() -> None:
    store = InMemoryGenomeStore()
    store.offline = True
    genome = GenomeBuilder(DNA).build_storage()

    async def scenario() -> None:
        with pytest.raises(StoreUnavailable):
            await store.store(genome)
        with pytest.raises(StoreUnavailable):
            await store.get_by_id(1)
        with pytest.raises(StoreUnavailable):
            await store.count()
        with pytest.raises(StoreUnavailable):
            await store.stats()

    asyncio.run(scenario())
    assert genome.db_id is None


def _collaborators(config: GenomeConfig | None = None):
    return {
        "engine": RotationEngine(),
        "store": InMemoryGenomeStore(),
        "chain": ProofOfConsciousness(config),
        "archiver": MultiChainArchiver(config),
    }


def test_lifecycle_admits_and_archives() -> None:
    parts = _collaborators()
    genome = GenomeBuilder(DNA).build_storage()

    report = asyncio.run(run_lifecycle(genome, **parts))

    assert report.phases == [Phase.ACTIVE, Phase.MUTATION, Phase.BALANCED, Phase.STORAGE]
    assert report.genome.phase is Phase.STORAGE
    assert report.genome_id == 1
    assert report.shadow_link_count == 159
    assert report.refusal is None
    assert report.block is not None
    assert report.block.genome_id == 1
    assert report.block.score == genome.score()
    assert len(parts["chain"]) == 2
    assert parts["chain"].validate()
    assert report.archive.genome_id == 1
    assert len(parts["archiver"]) == 1
    assert parts["engine"].stats()["total"] == 4
    assert report.to_dict()["phases"] == ["active", "mutation", "balanced", "storage"]


def test_lifecycle_records_refusal() -> None:
    parts = _collaborators(GenomeConfig(min_score=1_000_000))
    report = asyncio.run(run_lifecycle(GenomeBuilder(DNA).build_storage(), **parts))

    assert report.block is None
    assert report.refusal is not None
    assert "below minimum" in report.refusal
    assert len(parts["chain"]) == 1
    assert len(parts["archiver"]) == 1


def test_lifecycle_edit_hook_runs_in_mutation_phase() -> None:
    parts = _collaborators()
    genome = GenomeBuilder(DNA).build_storage()
    seen = []

    def hook(current, links) -> None:
        seen.append((current.phase, links.total_links()))
        randomize_top_site(random.Random(5))(current, links)

    report = asyncio.run(run_lifecycle(genome, edit_hook=hook, **parts))

    assert seen == [(Phase.MUTATION, 159)]
    assert report.genome.mutations == 1
    assert genome.mutations == 0
    assert report.block is not None
    assert report.block.score == report.genome.score()


def test_lifecycle_requires_storage_phase() -> None:
    parts = _collaborators()
    with pytest.raises(PhaseNotEligible):
        asyncio.run(run_lifecycle(GenomeBuilder(DNA).build_active(), **parts))
    assert parts["engine"].stats()["total"] == 0


def test_lifecycle_stops_when_store_is_offline() -> None:
    parts = _collaborators()
    parts["store"].offline = True
    with pytest.raises(StoreUnavailable):
        asyncio.run(run_lifecycle(GenomeBuilder(DNA).build_storage(), **parts))
    assert len(parts["chain"]) == 1
    assert len(parts["archiver"]) == 0
