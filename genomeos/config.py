from __future__ import annotations

from dataclasses import dataclass, fields, replace
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

_CONFIG_ENV = "GENOMEOS_CONFIG"
_ENV_PREFIX = "GENOMEOS_"

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenomeConfig:
    """Tunable thresholds for the consensus chain and the archival router."""

    min_score: int = 100
    base_difficulty: int = 2
    high_score_threshold: int = 800
    max_mining_attempts: int = 10_000_000
    router_score_cutoff: int = 1200
    signal_high: float = 1.5
    signal_low: float = 0.5
    half_life_seconds: float = 3600.0
    default_probability: float = 0.95
    default_p53_copies: int = 20

    def __post_init__(self) -> None:
        if self.base_difficulty < 1 or self.base_difficulty > 64:
            raise ValueError("base_difficulty must be within 1..64")
        if self.max_mining_attempts < 1:
            raise ValueError("max_mining_attempts must be positive")
        if self.half_life_seconds <= 0:
            raise ValueError("half_life_seconds must be positive")
        if not 0.0 <= self.default_probability <= 1.0:
            raise ValueError("default_probability must be within 0..1")
        if self.signal_low > self.signal_high:
            raise ValueError("signal_low must not exceed signal_high")

    def to_dict(self) -> dict[str, object]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def _coerce(raw: object, template: object) -> object:
    if isinstance(template, int):
        return int(str(raw).replace("_", ""))
    if isinstance(template, float):
        return float(raw)  # type: ignore[arg-type]
    return raw


def _apply(config: GenomeConfig, overrides: Mapping[str, Any], *, source: str) -> GenomeConfig:
    known = {item.name for item in fields(config)}
    for key, raw in overrides.items():
        if key not in known:
            LOGGER.warning("Ignoring unknown setting %s from %s", key, source)
            continue
        try:
            value = _coerce(raw, getattr(config, key))
            config = replace(config, **{key: value})
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Invalid value %r for %s from %s: %s", raw, key, source, exc)
    return config


def _read_file(path: Path) -> Mapping[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        LOGGER.warning("Invalid configuration file %s: %s", path, exc)
        return {}
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        LOGGER.warning("Configuration file %s must hold a mapping", path)
        return {}
    return raw


def load_config(environ: Mapping[str, str] | None = None) -> GenomeConfig:
    """Load settings from ``GENOMEOS_CONFIG`` then ``GENOMEOS_*`` overrides."""

    env = os.environ if environ is None else environ
    config = GenomeConfig()
    config_path = env.get(_CONFIG_ENV)
    if config_path:
        path = Path(config_path)
        if path.exists():
            config = _apply(config, _read_file(path), source=str(path))
        else:
            LOGGER.warning("Configuration file %s does not exist", path)

    overrides = {
        item.name: env[_ENV_PREFIX + item.name.upper()]
        for item in fields(config)
        if _ENV_PREFIX + item.name.upper() in env
    }
    return _apply(config, overrides, source="environment")
