"""Recoverable error taxonomy shared by every genomeos engine."""

from __future__ import annotations

__all__ = [
    "GenomeError",
    "InvalidLength",
    "InvalidSymbol",
    "InvalidPosition",
    "UnknownPhase",
    "IllegalTransition",
    "PhaseNotEligible",
    "AuthenticationFailed",
    "BelowThreshold",
    "MiningExhausted",
    "StoreUnavailable",
]


class GenomeError(RuntimeError):
    """Base class for conditions a caller is expected to handle."""


class InvalidLength(GenomeError, ValueError):
    """Raised when a genome is built from other than 27 symbols."""

    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"genome requires exactly {expected} symbols, got {length}")
        self.length = length
        self.expected = expected


class InvalidSymbol(GenomeError, ValueError):
    """Raised when a symbol outside {A, T, G, C} is supplied."""

    def __init__(self, symbol: str, position: int) -> None:
        super().__init__(f"invalid symbol {symbol!r} at position {position}")
        self.symbol = symbol
        self.position = position


class InvalidPosition(GenomeError, IndexError):
    """Raised when an edit targets a position outside the genome."""

    def __init__(self, position: int, size: int) -> None:
        super().__init__(f"position {position} outside 0..{size - 1}")
        self.position = position
        self.size = size


class UnknownPhase(GenomeError, ValueError):
    """Raised when a phase name or angle cannot be resolved."""


class IllegalTransition(GenomeError):
    """Raised when a requested phase is not the successor of the current one."""

    def __init__(self, source: object, requested: object, expected: object) -> None:
        super().__init__(f"cannot rotate {source} -> {requested}; next phase is {expected}")
        self.source = source
        self.requested = requested
        self.expected = expected


class PhaseNotEligible(GenomeError):
    """Raised when an operation is invoked from a phase that does not allow it."""

    def __init__(self, operation: str, phase: object, allowed: tuple[object, ...] = ()) -> None:
        detail = f"; allowed in {', '.join(str(p) for p in allowed)}" if allowed else ""
        super().__init__(f"{operation} not available in phase {phase}{detail}")
        self.operation = operation
        self.phase = phase
        self.allowed = allowed


class AuthenticationFailed(GenomeError):
    """Raised when ciphertext or a signature does not verify for a phase."""


class BelowThreshold(GenomeError):
    """Raised when a score is too low for consensus admission."""

    def __init__(self, score: int, minimum: int) -> None:
        super().__init__(f"score {score} below minimum {minimum}")
        self.score = score
        self.minimum = minimum


class MiningExhausted(GenomeError):
    """Raised when the proof-of-work search exceeds its attempt budget."""

    def __init__(self, attempts: int, difficulty: int) -> None:
        super().__init__(f"no hash with {difficulty} leading zeros after {attempts} attempts")
        self.attempts = attempts
        self.difficulty = difficulty


class StoreUnavailable(GenomeError):
    """Raised when the genome store collaborator cannot serve a call."""
