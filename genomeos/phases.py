"""Rotation phases and the central transition/eligibility tables."""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from .errors import PhaseNotEligible, UnknownPhase

__all__ = [
    "Phase",
    "TRANSITIONS",
    "ELIGIBLE_OPERATIONS",
    "successor",
    "allowed_phases",
    "require_eligible",
]


class Phase(Enum):
    ACTIVE = 0
    BALANCED = 90
    STORAGE = 180
    MUTATION = 270

    @property
    def angle(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()

    def __str__(self) -> str:
        return f"{self.label}({self.angle}°)"

    @classmethod
    def from_angle(cls, angle: int) -> "Phase":
        for phase in cls:
            if phase.value == angle:
                return phase
        raise UnknownPhase(f"no phase at angle {angle}")

    @classmethod
    def parse(cls, value: "Phase | str | int") -> "Phase":
        """Resolve a phase from an enum member, a name or an angle."""

        if isinstance(value, Phase):
            return value
        if isinstance(value, int):
            return cls.from_angle(value)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return cls.from_angle(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise UnknownPhase(f"unknown phase {value!r}") from None


# Storage -> Active -> Mutation -> Balanced -> Storage
TRANSITIONS: Mapping[Phase, Phase] = {
    Phase.STORAGE: Phase.ACTIVE,
    Phase.ACTIVE: Phase.MUTATION,
    Phase.MUTATION: Phase.BALANCED,
    Phase.BALANCED: Phase.STORAGE,
}

_EVERY_PHASE = frozenset(Phase)

ELIGIBLE_OPERATIONS: Mapping[str, frozenset[Phase]] = {
    "edit": frozenset({Phase.MUTATION}),
    "shadow_links": frozenset({Phase.MUTATION}),
    "divide": _EVERY_PHASE,
    "rejuvenate": _EVERY_PHASE,
    "metrics": _EVERY_PHASE,
}


def successor(phase: Phase) -> Phase:
    return TRANSITIONS[phase]


def allowed_phases(operation: str) -> frozenset[Phase]:
    try:
        return ELIGIBLE_OPERATIONS[operation]
    except KeyError:
        raise KeyError(f"unregistered operation {operation!r}") from None


def require_eligible(phase: Phase, operation: str) -> None:
    allowed = allowed_phases(operation)
    if phase not in allowed:
        ordered = tuple(p for p in Phase if p in allowed)
        raise PhaseNotEligible(operation, phase, ordered)
