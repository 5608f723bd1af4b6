"""Proof-of-consciousness chain.

Blocks are admitted only for scores at or above ``min_score``. Each admitted
block is mined by bumping its nonce until the hex digest starts with
``difficulty`` zeros; scores above ``high_score_threshold`` mine one digit
cheaper (never below one). Mining and linking are sequential, so every chain
instance serialises ``admit`` behind its own lock.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import hashlib
import logging
from pathlib import Path
import struct
import threading
import time
from typing import Callable

from .attestation import read_jsonl, write_jsonl_atomic
from .config import GenomeConfig
from .errors import BelowThreshold, MiningExhausted

__all__ = [
    "GENESIS_PREVIOUS_HASH",
    "ChainBreak",
    "ChainVerification",
    "ConsensusBlock",
    "ProofOfConsciousness",
]

LOGGER = logging.getLogger(__name__)

GENESIS_PREVIOUS_HASH = "0" * 64
_U32_MAX = 0xFFFFFFFF


@dataclass
class ConsensusBlock:
    index: int
    timestamp: int
    genome_id: int
    score: int
    structural_signal: float
    previous_hash: str
    nonce: int = 0
    hash: str = ""

    def calculate_hash(self) -> str:
        hasher = hashlib.sha256()
        hasher.update(struct.pack("<Q", self.index))
        hasher.update(struct.pack("<q", self.timestamp))
        hasher.update(struct.pack("<q", self.genome_id))
        hasher.update(struct.pack("<I", self.score))
        hasher.update(struct.pack("<d", self.structural_signal))
        hasher.update(self.previous_hash.encode("utf-8"))
        hasher.update(struct.pack("<Q", self.nonce))
        return "0x" + hasher.hexdigest()

    def meets(self, difficulty: int) -> bool:
        return self.hash.startswith("0x" + "0" * difficulty)

    def mine(self, difficulty: int, max_attempts: int | None = None) -> int:
        """Search nonces until the hash meets *difficulty*; returns attempts used.

        Without *max_attempts* the search is unbounded.
        """

        attempts = 0
        self.hash = self.calculate_hash()
        while not self.meets(difficulty):
            if max_attempts is not None and attempts >= max_attempts:
                raise MiningExhausted(attempts, difficulty)
            self.nonce += 1
            attempts += 1
            self.hash = self.calculate_hash()
        return attempts

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "ConsensusBlock":
        return cls(
            index=int(payload["index"]),  # type: ignore[arg-type]
            timestamp=int(payload["timestamp"]),  # type: ignore[arg-type]
            genome_id=int(payload["genome_id"]),  # type: ignore[arg-type]
            score=int(payload["score"]),  # type: ignore[arg-type]
            structural_signal=float(payload["structural_signal"]),  # type: ignore[arg-type]
            previous_hash=str(payload["previous_hash"]),
            nonce=int(payload.get("nonce", 0)),  # type: ignore[arg-type]
            hash=str(payload.get("hash", "")),
        )


@dataclass(slots=True)
class ChainBreak:
    index: int
    reason: str
    expected: str | None = None
    found: str | None = None


@dataclass(slots=True)
class ChainVerification:
    status: str
    checked_count: int
    break_info: ChainBreak | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"status": self.status, "checked_count": self.checked_count}
        if self.break_info is not None:
            payload["break"] = {
                "index": self.break_info.index,
                "reason": self.break_info.reason,
                "expected": self.break_info.expected,
                "found": self.break_info.found,
            }
        return payload


class ProofOfConsciousness:
    def __init__(
        self,
        config: GenomeConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        blocks: list[ConsensusBlock] | None = None,
    ) -> None:
        self.config = config or GenomeConfig()
        self._clock = clock
        self._lock = threading.Lock()
        if blocks:
            self._chain = list(blocks)
        else:
            genesis = ConsensusBlock(0, int(clock()), 0, 0, 1.0, GENESIS_PREVIOUS_HASH)
            genesis.hash = genesis.calculate_hash()
            self._chain = [genesis]

    def __len__(self) -> int:
        return len(self._chain)

    @property
    def blocks(self) -> tuple[ConsensusBlock, ...]:
        return tuple(self._chain)

    def latest_block(self) -> ConsensusBlock:
        return self._chain[-1]

    def total_score(self) -> int:
        return sum(block.score for block in self._chain)

    def difficulty_for(self, score: int) -> int:
        base = self.config.base_difficulty
        if score > self.config.high_score_threshold:
            return max(base - 1, 1)
        return base

    def admit(self, record_id: int, score: int, structural_signal: float) -> ConsensusBlock:
        """Mine and append a block for *record_id*; refuses low scores with BelowThreshold."""

        if not 0 <= score <= _U32_MAX:
            raise ValueError(f"score {score} outside u32 range")
        if score < self.config.min_score:
            LOGGER.warning("Consciousness %s below minimum %s", score, self.config.min_score)
            raise BelowThreshold(score, self.config.min_score)

        difficulty = self.difficulty_for(score)
        with self._lock:
            previous = self._chain[-1]
            block = ConsensusBlock(
                index=previous.index + 1,
                timestamp=int(self._clock()),
                genome_id=int(record_id),
                score=int(score),
                structural_signal=float(structural_signal),
                previous_hash=previous.hash,
            )
            attempts = block.mine(difficulty, self.config.max_mining_attempts)
            self._chain.append(block)

        LOGGER.info(
            "Block #%s mined: genome #%s, consciousness %s, T/G %.2f, difficulty %s, %s attempts",
            block.index,
            record_id,
            score,
            structural_signal,
            difficulty,
            attempts,
        )
        return block

    def verify(self) -> ChainVerification:
        chain = list(self._chain)
        genesis = chain[0]
        if genesis.index != 0:
            return ChainVerification(
                status="broken",
                checked_count=0,
                break_info=ChainBreak(genesis.index, "genesis_index", "0", str(genesis.index)),
            )
        if genesis.previous_hash != GENESIS_PREVIOUS_HASH:
            return ChainVerification(
                status="broken",
                checked_count=0,
                break_info=ChainBreak(0, "previous_hash_mismatch", GENESIS_PREVIOUS_HASH, genesis.previous_hash),
            )
        genesis_hash = genesis.calculate_hash()
        if genesis.hash != genesis_hash:
            return ChainVerification(
                status="broken",
                checked_count=0,
                break_info=ChainBreak(0, "hash_mismatch", genesis_hash, genesis.hash),
            )
        for position in range(1, len(chain)):
            current = chain[position]
            previous = chain[position - 1]
            expected_hash = current.calculate_hash()
            if current.hash != expected_hash:
                return ChainVerification(
                    status="broken",
                    checked_count=position,
                    break_info=ChainBreak(current.index, "hash_mismatch", expected_hash, current.hash),
                )
            if current.previous_hash != previous.hash:
                return ChainVerification(
                    status="broken",
                    checked_count=position,
                    break_info=ChainBreak(current.index, "previous_hash_mismatch", previous.hash, current.previous_hash),
                )
        return ChainVerification(status="ok", checked_count=max(len(chain) - 1, 0))

    def validate(self) -> bool:
        return self.verify().ok

    def export_jsonl(self, path: Path) -> Path:
        write_jsonl_atomic(path, (block.to_dict() for block in self.blocks))
        return path

    @classmethod
    def load_jsonl(cls, path: Path, config: GenomeConfig | None = None) -> "ProofOfConsciousness":
        """Rebuild a chain from an export.

        Unparseable rows raise ValueError rather than being skipped; hash and
        linkage problems are reported by :meth:`verify`, never repaired.
        """

        rows = read_jsonl(path)
        if not rows:
            raise ValueError(f"no blocks found in {path}")
        blocks: list[ConsensusBlock] = []
        for position, row in enumerate(rows):
            try:
                blocks.append(ConsensusBlock.from_dict(row))
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"{path}: block {position} is malformed: {exc}") from exc
        return cls(config, blocks=blocks)
