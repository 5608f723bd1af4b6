"""Archival routing across simulated chain backends.

Routing is a deterministic threshold policy over score and structural signal.
Alongside it the router keeps a probability per ordered backend pair that
halves every ``half_life_seconds`` since the pair was last touched.
Submission itself is simulated: each archive call only synthesises a
backend-shaped reference and records it in memory.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
import hashlib
import logging
import struct
import threading
import time
from typing import Callable

from .config import GenomeConfig
from .genome import Genome, hash_dna

__all__ = ["ArchiveEntry", "Backend", "MultiChainArchiver"]

LOGGER = logging.getLogger(__name__)


class Backend(Enum):
    LIGHTNING = "lightning"
    SOLANA = "solana"
    ETHEREUM = "ethereum"
    BITCOIN = "bitcoin"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def role(self) -> str:
        return _ROLES[self]


_ROLES = {
    Backend.LIGHTNING: "fast",
    Backend.SOLANA: "economical",
    Backend.ETHEREUM: "balanced",
    Backend.BITCOIN: "durable",
}


@dataclass(frozen=True)
class ArchiveEntry:
    destination: Backend
    genome_id: int
    score: int
    structural_signal: float
    dna_hash: str
    reference: str
    timestamp: int

    def to_dict(self) -> dict[str, object]:
        return {
            "destination": self.destination.value,
            "genome_id": self.genome_id,
            "score": self.score,
            "structural_signal": self.structural_signal,
            "dna_hash": self.dna_hash,
            "reference": self.reference,
            "timestamp": self.timestamp,
        }


@dataclass
class _RoutePair:
    probability: float
    last_update: float


class MultiChainArchiver:
    def __init__(
        self,
        config: GenomeConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        max_entries: int | None = None,
    ) -> None:
        self.config = config or GenomeConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: deque[ArchiveEntry] = deque(maxlen=max_entries)
        self._pairs: dict[tuple[Backend, Backend], _RoutePair] = {}
        self._reference_counter = 0
        LOGGER.info("Multi-chain archiver ready (half-life %.0fs)", self.config.half_life_seconds)

    def __len__(self) -> int:
        return len(self._entries)

    def select_backend(self, score: int, structural_signal: float) -> Backend:
        cfg = self.config
        if score > cfg.router_score_cutoff:
            if structural_signal > cfg.signal_high:
                return Backend.LIGHTNING
            if structural_signal < cfg.signal_low:
                return Backend.BITCOIN
            return Backend.ETHEREUM
        return Backend.SOLANA

    def probability(self, source: Backend, target: Backend) -> float:
        """Decay the pair's probability by the time since its last update and return it."""

        with self._lock:
            now = self._clock()
            pair = self._pairs.setdefault((source, target), _RoutePair(self.config.default_probability, now))
            elapsed = max(0.0, now - pair.last_update)
            pair.probability *= 2.0 ** (-elapsed / self.config.half_life_seconds)
            pair.last_update = now
            return pair.probability

    def reinforce(self, source: Backend, target: Backend) -> None:
        """Reset a pair to the default probability, as after a confirmed route."""

        with self._lock:
            self._pairs[(source, target)] = _RoutePair(self.config.default_probability, self._clock())

    def _reference(self, dna: str, backend: Backend, stamp_ns: int) -> str:
        self._reference_counter += 1
        hasher = hashlib.sha256()
        hasher.update(dna.encode("ascii"))
        hasher.update(backend.display_name.encode("ascii"))
        hasher.update(struct.pack("<q", stamp_ns))
        hasher.update(struct.pack("<Q", self._reference_counter))
        digest = hasher.digest()
        if backend is Backend.LIGHTNING:
            return "ln_" + digest[:8].hex()
        if backend is Backend.SOLANA:
            return "sol_" + digest.hex()
        return "0x" + digest.hex()

    def archive(self, genome: Genome) -> ArchiveEntry:
        dna = genome.to_dna_string()
        score = genome.score()
        signal = genome.structural_signal()
        backend = self.select_backend(score, signal)
        with self._lock:
            now = self._clock()
            reference = self._reference(dna, backend, int(now * 1_000_000_000))
            entry = ArchiveEntry(
                destination=backend,
                genome_id=genome.db_id or 0,
                score=score,
                structural_signal=signal,
                dna_hash="0x" + hash_dna(dna).hex(),
                reference=reference,
                timestamp=int(now),
            )
            self._entries.append(entry)
        LOGGER.info(
            "Archive: genome #%s -> %s | consciousness %s | T/G %.2f | ref %s",
            entry.genome_id,
            backend.display_name,
            score,
            signal,
            reference,
        )
        return entry

    def recent(self, limit: int = 10) -> list[ArchiveEntry]:
        if limit <= 0:
            return []
        with self._lock:
            entries = list(self._entries)
        return entries[::-1][:limit]
