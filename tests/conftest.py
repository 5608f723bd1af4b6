"""Shared fixtures for genomeos tests."""
from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

# Ensure the repository root is on sys.path before importing project modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from genomeos.vault import KeyVault

VAULT_SEED = bytes([42]) * 64


class FakeClock:
    def __init__(self, start: float = 1_767_225_600.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def vault() -> KeyVault:
    return KeyVault.from_seed(VAULT_SEED)
