"""End-to-end lifecycle: rotate, persist, admit and archive one genome."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import random
from typing import Callable

from .archive import ArchiveEntry, MultiChainArchiver
from .consensus import ConsensusBlock, ProofOfConsciousness
from .errors import BelowThreshold, PhaseNotEligible
from .genome import Genome
from .phases import Phase
from .rotation import RotationEngine, ShadowLinks, mutation_sites, shadow_links
from .store import GenomeStore

__all__ = ["EditHook", "LifecycleReport", "randomize_top_site", "run_lifecycle"]

LOGGER = logging.getLogger(__name__)

EditHook = Callable[[Genome, ShadowLinks], None]


@dataclass
class LifecycleReport:
    genome: Genome
    genome_id: int
    phases: list[Phase]
    shadow_link_count: int
    block: ConsensusBlock | None
    refusal: str | None
    archive: ArchiveEntry

    def to_dict(self) -> dict[str, object]:
        return {
            "genome": self.genome.to_dict(),
            "genome_id": self.genome_id,
            "phases": [phase.label for phase in self.phases],
            "shadow_link_count": self.shadow_link_count,
            "block": self.block.to_dict() if self.block is not None else None,
            "refusal": self.refusal,
            "archive": self.archive.to_dict(),
        }


def randomize_top_site(rng: random.Random | None = None) -> EditHook:
    """Edit hook that re-rolls the most connected shadow-link position."""

    def hook(genome: Genome, links: ShadowLinks) -> None:
        site = mutation_sites(genome)[0]
        genome.randomize(site, rng)
        LOGGER.debug("randomized site %s across %s shadow links", site, links.total_links())

    return hook


async def run_lifecycle(
    genome: Genome,
    *,
    engine: RotationEngine,
    store: GenomeStore,
    chain: ProofOfConsciousness,
    archiver: MultiChainArchiver,
    edit_hook: EditHook | None = None,
) -> LifecycleReport:
    if genome.phase is not Phase.STORAGE:
        raise PhaseNotEligible("lifecycle", genome.phase, (Phase.STORAGE,))

    active = engine.transition(genome, Phase.ACTIVE)
    LOGGER.info(
        "Active phase metrics: complexity=%.4f gc=%.2f%% signal=%.2f",
        active.complexity(),
        active.gc_fraction() * 100.0,
        active.structural_signal(),
    )

    mutation = engine.transition(active, Phase.MUTATION)
    links = shadow_links(mutation)
    if edit_hook is not None:
        edit_hook(mutation, links)

    balanced = engine.transition(mutation, Phase.BALANCED)
    stored = engine.transition(balanced, Phase.STORAGE)

    genome_id = await store.store(stored)

    block: ConsensusBlock | None = None
    refusal: str | None = None
    try:
        block = await asyncio.to_thread(chain.admit, genome_id, stored.score(), stored.structural_signal())
    except BelowThreshold as exc:
        refusal = str(exc)

    entry = archiver.archive(stored)
    return LifecycleReport(
        genome=stored,
        genome_id=genome_id,
        phases=[active.phase, mutation.phase, balanced.phase, stored.phase],
        shadow_link_count=links.total_links(),
        block=block,
        refusal=refusal,
        archive=entry,
    )
