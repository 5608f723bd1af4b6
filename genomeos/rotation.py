"""Rotation state machine and the Mutation-phase shadow-link topology."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
import logging
import threading

from .errors import IllegalTransition
from .genome import GENOME_SIZE, Genome, cube_coordinates
from .phases import Phase, TRANSITIONS, require_eligible, successor

__all__ = ["RotationEngine", "ShadowLinks", "mutation_sites", "shadow_links"]

LOGGER = logging.getLogger(__name__)

Link = tuple[int, int]

# Outward spiral over one 3x3 layer, as (x, y) cells.
_LAYER_SPIRAL: tuple[tuple[int, int], ...] = (
    (1, 1),
    (1, 0),
    (2, 0),
    (2, 1),
    (2, 2),
    (1, 2),
    (0, 2),
    (0, 1),
    (0, 0),
)


@dataclass(frozen=True)
class ShadowLinks:
    diagonal: tuple[Link, ...]
    cross_layer: tuple[Link, ...]
    spiral: tuple[Link, ...]

    def total_links(self) -> int:
        return len(self.diagonal) + len(self.cross_layer) + len(self.spiral)

    def all_links(self) -> tuple[Link, ...]:
        return self.diagonal + self.cross_layer + self.spiral

    def to_dict(self) -> dict[str, object]:
        return {
            "diagonal": [list(link) for link in self.diagonal],
            "cross_layer": [list(link) for link in self.cross_layer],
            "spiral": [list(link) for link in self.spiral],
            "total": self.total_links(),
        }


def _index(x: int, y: int, z: int) -> int:
    return x + 3 * y + 9 * z


def _topology() -> ShadowLinks:
    diagonal: list[Link] = []
    cross_layer: list[Link] = []
    for i in range(GENOME_SIZE):
        xi, yi, zi = cube_coordinates(i)
        for j in range(i + 1, GENOME_SIZE):
            xj, yj, zj = cube_coordinates(j)
            if xi != xj and yi != yj and zi != zj:
                diagonal.append((i, j))
            elif (xi, yi) == (xj, yj):
                cross_layer.append((i, j))
    spiral: list[Link] = []
    for z in range(3):
        cells = [_index(x, y, z) for x, y in _LAYER_SPIRAL]
        spiral.extend(zip(cells, cells[1:]))
    return ShadowLinks(tuple(diagonal), tuple(cross_layer), tuple(spiral))


def shadow_links(genome: Genome) -> ShadowLinks:
    """Return the shadow topology; only a Mutation-phase genome exposes it.

    The topology depends on cube geometry alone, so it is rebuilt on each call
    rather than cached on the genome.
    """

    require_eligible(genome.phase, "shadow_links")
    return _topology()


def mutation_sites(genome: Genome) -> list[int]:
    """Positions ordered by shadow-link degree, most connected first."""

    links = shadow_links(genome)
    degree: Counter[int] = Counter()
    for a, b in links.all_links():
        degree[a] += 1
        degree[b] += 1
    return sorted(range(GENOME_SIZE), key=lambda pos: (-degree[pos], pos))


class RotationEngine:
    """Validates phase transitions and produces re-tagged genome values."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transitions: Counter[tuple[Phase, Phase]] = Counter()

    def transition(self, genome: Genome, requested: Phase | str | int) -> Genome:
        target = Phase.parse(requested)
        expected = successor(genome.phase)
        if target is not expected:
            raise IllegalTransition(genome.phase, target, expected)
        rotated = replace(genome, data=list(genome.data), phase=target)
        with self._lock:
            self._transitions[(genome.phase, target)] += 1
        LOGGER.debug("rotated genome %s: %s -> %s", genome.hash_hex[:18], genome.phase, target)
        return rotated

    def advance(self, genome: Genome) -> Genome:
        return self.transition(genome, successor(genome.phase))

    def cycle(self, genome: Genome) -> list[Genome]:
        """Rotate through all four phases; the last value is back where it began."""

        values: list[Genome] = []
        current = genome
        for _ in range(len(TRANSITIONS)):
            current = self.advance(current)
            values.append(current)
        return values

    def stats(self) -> dict[str, int]:
        with self._lock:
            counts = dict(self._transitions)
        payload = {f"{src.label}->{dst.label}": n for (src, dst), n in counts.items()}
        payload["total"] = sum(counts.values())
        return payload
