from __future__ import annotations

import os
from pathlib import Path

__all__ = ["DATA_DIR_ENV", "chain_export_path", "data_dir"]

DATA_DIR_ENV = "GENOMEOS_DATA_DIR"
DEFAULT_CHAIN_EXPORT = "chain.jsonl"


def data_dir() -> Path:
    """Directory for chain exports: ``GENOMEOS_DATA_DIR`` or ``./genomeos_data``, created on demand."""

    configured = os.environ.get(DATA_DIR_ENV)
    root = Path(configured) if configured else Path.cwd() / "genomeos_data"
    root.mkdir(parents=True, exist_ok=True)
    return root


def chain_export_path(name: str = DEFAULT_CHAIN_EXPORT) -> Path:
    return data_dir() / name
