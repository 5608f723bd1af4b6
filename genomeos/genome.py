"""Phase-tagged 27-symbol genome record and its derived metrics.

A genome is a 3x3x3 cube of tetrads (A, T, G, C). Its SHA-256 digest covers
the symbols, the mutation counter and the p53 redundancy counter; the score
("consciousness") is an additive function of that digest and of the symbol
composition, so recomputing it from identical inputs always gives the same
value.

T symbols are dynamic markers and G symbols archival markers; their ratio is
the structural signal used by routing and phase suggestion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import hashlib
import random
import struct
import sys
import time
from typing import Any, Iterable, Sequence

from .errors import InvalidLength, InvalidPosition, InvalidSymbol
from .phases import Phase, require_eligible

__all__ = [
    "GENOME_SIZE",
    "TELOMERE_MAX",
    "HAYFLICK_LIMIT",
    "DEFAULT_P53_COPIES",
    "SIGNAL_SENTINEL",
    "EditKind",
    "Genome",
    "GenomeBuilder",
    "Tetrad",
    "build",
    "cube_coordinates",
    "hash_dna",
    "parse_symbols",
    "score_from_components",
]

GENOME_SIZE = 27
TELOMERE_MAX = 15000
HAYFLICK_LIMIT = 50
DEFAULT_P53_COPIES = 20
MIN_DIVISION_TELOMERE = 100
DIVISION_LOSS_RANGE = (50, 150)
SIGNAL_SENTINEL = sys.float_info.max


class Tetrad(Enum):
    A = 0
    T = 1
    G = 2
    C = 3

    @classmethod
    def from_char(cls, char: str) -> "Tetrad | None":
        try:
            return cls[char.upper()]
        except KeyError:
            return None

    @classmethod
    def random(cls, rng: random.Random | None = None) -> "Tetrad":
        return cls((rng or random).randrange(4))

    @property
    def char(self) -> str:
        return self.name

    def complement(self) -> "Tetrad":
        return _COMPLEMENTS[self]

    @property
    def is_dynamic(self) -> bool:
        return self is Tetrad.T

    @property
    def is_archival(self) -> bool:
        return self is Tetrad.G


_COMPLEMENTS = {Tetrad.A: Tetrad.T, Tetrad.T: Tetrad.A, Tetrad.G: Tetrad.C, Tetrad.C: Tetrad.G}


class EditKind(Enum):
    SPLICE = "splice"
    SWAP = "swap"
    RANDOMIZE = "randomize"


def parse_symbols(symbols: str | Iterable[Tetrad | str]) -> list[Tetrad]:
    """Validate *symbols* and return exactly ``GENOME_SIZE`` tetrads."""

    items = list(symbols)
    if len(items) != GENOME_SIZE:
        raise InvalidLength(len(items), GENOME_SIZE)
    out: list[Tetrad] = []
    for position, item in enumerate(items):
        if isinstance(item, Tetrad):
            out.append(item)
            continue
        tetrad = Tetrad.from_char(item) if isinstance(item, str) and len(item) == 1 else None
        if tetrad is None:
            raise InvalidSymbol(str(item), position)
        out.append(tetrad)
    return out


def cube_coordinates(index: int) -> tuple[int, int, int]:
    """Map a genome index onto its ``(x, y, z)`` cell in the 3x3x3 cube."""

    if not 0 <= index < GENOME_SIZE:
        raise InvalidPosition(index, GENOME_SIZE)
    return index % 3, (index // 3) % 3, index // 9


def hash_dna(text: str) -> bytes:
    return hashlib.sha256(text.encode("ascii")).digest()


def score_from_components(
    digest: bytes,
    gc_fraction: float,
    complexity: float,
    balance: float,
    p53_copies: int,
) -> int:
    base = (sum(digest) % 500) + 500
    gc_bonus = int(gc_fraction * 100.0)
    complexity_bonus = int(complexity * 50.0)
    balance_bonus = int(balance * 100.0)
    p53_bonus = p53_copies * 5
    return base + gc_bonus + complexity_bonus + balance_bonus + p53_bonus


@dataclass
class Genome:
    data: list[Tetrad]
    p53_copies: int = DEFAULT_P53_COPIES
    telomere_length: int = TELOMERE_MAX
    phase: Phase = Phase.STORAGE
    mutations: int = 0
    division_count: int = 0
    sequencing_errors: int = 0
    created_at: int = field(default_factory=lambda: int(time.time()))
    db_id: int | None = None
    digest: bytes = field(default=b"", repr=False)
    consciousness: int = 0

    def __post_init__(self) -> None:
        self.data = list(self.data)
        if len(self.data) != GENOME_SIZE:
            raise InvalidLength(len(self.data), GENOME_SIZE)
        if not 0 <= self.telomere_length <= TELOMERE_MAX:
            raise ValueError(f"telomere length must be within 0..{TELOMERE_MAX}, got {self.telomere_length}")
        if not 0 <= self.p53_copies <= 0xFF:
            raise ValueError(f"p53 copies must fit in one byte, got {self.p53_copies}")
        if not 0 <= self.division_count <= HAYFLICK_LIMIT:
            raise ValueError(f"division count must be within 0..{HAYFLICK_LIMIT}, got {self.division_count}")
        if not self.digest:
            self.rehash()
            self.recalculate_score()

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "phase" and "phase" in self.__dict__:
            raise AttributeError("phase changes only through RotationEngine.transition")
        object.__setattr__(self, name, value)

    def __str__(self) -> str:
        return self.to_dna_string()

    # -- identity ---------------------------------------------------------

    def to_dna_string(self) -> str:
        return "".join(t.char for t in self.data)

    @property
    def hash_hex(self) -> str:
        return "0x" + self.digest.hex()

    def rehash(self) -> None:
        hasher = hashlib.sha256()
        for tetrad in self.data:
            hasher.update(bytes([tetrad.value]))
        hasher.update(struct.pack("<Q", self.mutations))
        hasher.update(struct.pack("<B", self.p53_copies))
        self.digest = hasher.digest()

    def recalculate_score(self) -> None:
        self.consciousness = score_from_components(
            self.digest,
            self.gc_fraction(),
            self.complexity(),
            self.structural_balance(),
            self.p53_copies,
        )

    def score(self) -> int:
        return self.consciousness

    # -- T/G signal -------------------------------------------------------

    def tg_counts(self) -> tuple[int, int]:
        t = sum(1 for base in self.data if base is Tetrad.T)
        g = sum(1 for base in self.data if base is Tetrad.G)
        return t, g

    def structural_signal(self) -> float:
        """T/G ratio: above 1.0 leans dynamic, below 1.0 leans archival."""

        t, g = self.tg_counts()
        if g == 0:
            return SIGNAL_SENTINEL
        return t / g

    def structural_balance(self) -> float:
        """1.0 when T and G are equally frequent, 0.0 when only one is present."""

        t, g = self.tg_counts()
        total = t + g
        if total == 0:
            return 0.5
        ratio = t / total
        return 1.0 - abs(ratio - 0.5) * 2.0

    def suggested_phase(self) -> Phase:
        signal = self.structural_signal()
        if signal > 1.5:
            return Phase.ACTIVE
        if signal > 0.8:
            return Phase.BALANCED
        if signal < 0.5:
            return Phase.STORAGE
        return Phase.MUTATION

    def archival_score(self) -> float:
        _, g = self.tg_counts()
        return (g / GENOME_SIZE) * 0.5 + (self.consciousness / 1000.0) * 0.5

    # -- composition ------------------------------------------------------

    def gc_fraction(self) -> float:
        gc = sum(1 for base in self.data if base in (Tetrad.G, Tetrad.C))
        return gc / GENOME_SIZE

    def complexity(self) -> float:
        transitions = sum(1 for i in range(1, GENOME_SIZE) if self.data[i] != self.data[i - 1])
        return transitions / (GENOME_SIZE - 1)

    def vitality_fraction(self) -> float:
        return self.telomere_length / TELOMERE_MAX

    def biological_age(self) -> float:
        return 1.0 - self.vitality_fraction()

    # -- editing ----------------------------------------------------------

    def _check_position(self, position: int) -> None:
        if not 0 <= position < GENOME_SIZE:
            raise InvalidPosition(position, GENOME_SIZE)

    def _after_edit(self) -> None:
        self.mutations += 1
        self.rehash()
        self.recalculate_score()

    def splice(self, position: int, tetrad: Tetrad) -> None:
        require_eligible(self.phase, "edit")
        self._check_position(position)
        self.data[position] = tetrad
        self._after_edit()

    def swap(self, first: int, second: int) -> None:
        require_eligible(self.phase, "edit")
        self._check_position(first)
        self._check_position(second)
        self.data[first], self.data[second] = self.data[second], self.data[first]
        self._after_edit()

    def randomize(self, position: int, rng: random.Random | None = None) -> None:
        require_eligible(self.phase, "edit")
        self._check_position(position)
        self.data[position] = Tetrad.random(rng)
        self._after_edit()

    def edit(
        self,
        kind: EditKind | str,
        positions: Sequence[int],
        tetrad: Tetrad | str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        kind = EditKind(kind)
        expected = 2 if kind is EditKind.SWAP else 1
        if len(positions) != expected:
            raise ValueError(f"{kind.value} takes {expected} position(s), got {len(positions)}")
        if kind is EditKind.SWAP:
            self.swap(positions[0], positions[1])
        elif kind is EditKind.RANDOMIZE:
            self.randomize(positions[0], rng)
        else:
            if tetrad is None:
                raise ValueError("splice requires a replacement tetrad")
            if isinstance(tetrad, str):
                parsed = Tetrad.from_char(tetrad) if len(tetrad) == 1 else None
                if parsed is None:
                    raise InvalidSymbol(tetrad, positions[0])
                tetrad = parsed
            self.splice(positions[0], tetrad)

    def increment_mutations(self) -> None:
        self._after_edit()

    # -- lifespan ---------------------------------------------------------

    def divide(self, rng: random.Random | None = None) -> bool:
        """Spend telomere budget on a division; returns False once senescent."""

        require_eligible(self.phase, "divide")
        if self.telomere_length < MIN_DIVISION_TELOMERE or self.division_count >= HAYFLICK_LIMIT:
            return False
        loss = (rng or random).randrange(*DIVISION_LOSS_RANGE)
        self.telomere_length = max(0, self.telomere_length - loss)
        self.division_count += 1
        return True

    def rejuvenate(self) -> None:
        require_eligible(self.phase, "rejuvenate")
        self.telomere_length = TELOMERE_MAX
        self.division_count = 0

    # -- snapshots --------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        return {
            "dna": self.to_dna_string(),
            "phase": self.phase.label,
            "hash": self.hash_hex,
            "consciousness": self.consciousness,
            "mutations": self.mutations,
            "p53_copies": self.p53_copies,
            "telomere_length": self.telomere_length,
            "division_count": self.division_count,
            "sequencing_errors": self.sequencing_errors,
            "created_at": self.created_at,
            "db_id": self.db_id,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Genome":
        """Rebuild a genome from :meth:`to_dict` output.

        Hash and score are always recomputed from the symbols and counters; a
        stored ``hash`` or ``consciousness`` that disagrees raises ValueError.
        """

        genome = cls(
            data=parse_symbols(str(payload["dna"])),
            p53_copies=int(payload.get("p53_copies", DEFAULT_P53_COPIES)),
            telomere_length=int(payload.get("telomere_length", TELOMERE_MAX)),
            phase=Phase.parse(payload.get("phase", Phase.STORAGE.label)),
            mutations=int(payload.get("mutations", 0)),
            division_count=int(payload.get("division_count", 0)),
            sequencing_errors=int(payload.get("sequencing_errors", 0)),
            created_at=int(payload.get("created_at", time.time())),
            db_id=payload.get("db_id"),
        )
        stored_hash = payload.get("hash")
        if stored_hash is not None and str(stored_hash) != genome.hash_hex:
            raise ValueError(f"snapshot hash {stored_hash} does not match recomputed {genome.hash_hex}")
        stored_score = payload.get("consciousness")
        if stored_score is not None and int(stored_score) != genome.consciousness:
            raise ValueError(f"snapshot score {stored_score} does not match recomputed {genome.consciousness}")
        return genome


class GenomeBuilder:
    """Fluent constructor fixing redundancy and vitality before hashing."""

    def __init__(
        self,
        symbols: str | Iterable[Tetrad | str] | None = None,
        *,
        p53_copies: int = DEFAULT_P53_COPIES,
        telomere_length: int = TELOMERE_MAX,
    ) -> None:
        self._data = parse_symbols(symbols) if symbols is not None else [Tetrad.A] * GENOME_SIZE
        self._p53_copies = DEFAULT_P53_COPIES
        self._telomere_length = TELOMERE_MAX
        self.p53_copies(p53_copies)
        self.telomere_length(telomere_length)

    @classmethod
    def random(cls, rng: random.Random | None = None, **options: int) -> "GenomeBuilder":
        return cls([Tetrad.random(rng) for _ in range(GENOME_SIZE)], **options)

    @classmethod
    def from_dna(cls, text: str, **options: int) -> "GenomeBuilder":
        return cls(text, **options)

    def p53_copies(self, copies: int) -> "GenomeBuilder":
        if not 0 <= copies <= 0xFF:
            raise ValueError(f"p53 copies must fit in one byte, got {copies}")
        self._p53_copies = copies
        return self

    def telomere_length(self, length: int) -> "GenomeBuilder":
        if not 0 <= length <= TELOMERE_MAX:
            raise ValueError(f"telomere length must be within 0..{TELOMERE_MAX}, got {length}")
        self._telomere_length = length
        return self

    def elephant_mode(self) -> "GenomeBuilder":
        return self.p53_copies(20)

    def whale_mode(self) -> "GenomeBuilder":
        return self.p53_copies(40)

    def build(self, phase: Phase = Phase.STORAGE) -> Genome:
        return Genome(
            data=list(self._data),
            p53_copies=self._p53_copies,
            telomere_length=self._telomere_length,
            phase=phase,
        )

    def build_storage(self) -> Genome:
        return self.build(Phase.STORAGE)

    def build_active(self) -> Genome:
        return self.build(Phase.ACTIVE)

    def build_mutation(self) -> Genome:
        return self.build(Phase.MUTATION)


def build(symbols: str | Iterable[Tetrad | str]) -> Genome:
    """Validate *symbols* and return a Storage-phase genome."""

    return GenomeBuilder(symbols).build_storage()
