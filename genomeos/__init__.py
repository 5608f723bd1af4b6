"""genomeos core package."""

from __future__ import annotations

__version__: str = "15.0.0"

from .archive import ArchiveEntry, Backend, MultiChainArchiver
from .config import GenomeConfig, load_config
from .consensus import ConsensusBlock, ProofOfConsciousness
from .errors import (
    AuthenticationFailed,
    BelowThreshold,
    GenomeError,
    IllegalTransition,
    InvalidLength,
    InvalidPosition,
    InvalidSymbol,
    MiningExhausted,
    PhaseNotEligible,
    StoreUnavailable,
    UnknownPhase,
)
from .genome import Genome, GenomeBuilder, Tetrad, build
from .phases import Phase
from .rotation import RotationEngine, ShadowLinks, shadow_links
from .store import GenomeStats, GenomeStore, InMemoryGenomeStore
from .vault import HybridSignature, KeyVault

__all__ = [
    "__version__",
    "ArchiveEntry",
    "AuthenticationFailed",
    "Backend",
    "BelowThreshold",
    "ConsensusBlock",
    "Genome",
    "GenomeBuilder",
    "GenomeConfig",
    "GenomeError",
    "GenomeStats",
    "GenomeStore",
    "HybridSignature",
    "IllegalTransition",
    "InMemoryGenomeStore",
    "InvalidLength",
    "InvalidPosition",
    "InvalidSymbol",
    "KeyVault",
    "MiningExhausted",
    "MultiChainArchiver",
    "Phase",
    "PhaseNotEligible",
    "ProofOfConsciousness",
    "RotationEngine",
    "ShadowLinks",
    "StoreUnavailable",
    "Tetrad",
    "UnknownPhase",
    "build",
    "load_config",
    "shadow_links",
]
