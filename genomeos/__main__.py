"""genomeos command line entrypoint."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
from pathlib import Path
from typing import Sequence

from .archive import MultiChainArchiver
from .config import load_config
from .consensus import ProofOfConsciousness
from .errors import GenomeError
from .genome import GenomeBuilder
from .logging_config import configure_logging
from .pipeline import randomize_top_site, run_lifecycle
from .rotation import RotationEngine
from .storage import chain_export_path
from .store import InMemoryGenomeStore
from .vault import KeyVault

LOGGER = logging.getLogger("genomeos.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="genomeos", description="Rotation genome toolkit")
    parser.add_argument("--version", action="store_true", help="Show the genomeos version and exit.")
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level for the genomeos logger.",
    )
    parser.add_argument("--log-file", action="store_true", help="Also write logs under GENOMEOS_LOG_DIR.")
    subparsers = parser.add_subparsers(dest="command")

    inspect = subparsers.add_parser("inspect", help="Show metrics for a 27-symbol genome.")
    inspect.add_argument("dna", help="27 characters from A, T, G, C (case-insensitive).")

    addresses = subparsers.add_parser("addresses", help="Show the four phase addresses of a vault.")
    addresses.add_argument("--seed", help="Hex seed for a reproducible vault (at least 16 bytes).")

    demo = subparsers.add_parser("demo", help="Run genomes through the full lifecycle.")
    demo.add_argument("--seed", type=int, default=None, help="Seed for the random genomes.")
    demo.add_argument("--count", type=int, default=1, help="Number of genomes to process.")
    demo.add_argument("--export", nargs="?", const="", default=None, help="Export the chain as JSONL.")
    return parser


def _emit(payload: dict[str, object], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, sort_keys=True, default=str))
        return
    for key, value in payload.items():
        print(f"{key}: {value}")


def _inspect(dna: str, as_json: bool) -> int:
    genome = GenomeBuilder.from_dna(dna).build_storage()
    payload = genome.to_dict()
    payload.update(
        {
            "gc_fraction": round(genome.gc_fraction(), 4),
            "complexity": round(genome.complexity(), 4),
            "structural_balance": round(genome.structural_balance(), 4),
            "structural_signal": genome.structural_signal(),
            "suggested_phase": genome.suggested_phase().label,
            "archival_score": round(genome.archival_score(), 4),
        }
    )
    _emit(payload, as_json)
    return 0


def _addresses(seed_hex: str | None, as_json: bool) -> int:
    if seed_hex:
        try:
            seed = bytes.fromhex(seed_hex)
        except ValueError:
            print("error: --seed must be hexadecimal", file=sys.stderr)
            return 2
        vault = KeyVault.from_seed(seed)
    else:
        vault = KeyVault()
    _emit({phase.label: address for phase, address in vault.addresses().items()}, as_json)
    return 0


async def _demo(seed: int | None, count: int, export: str | None, as_json: bool) -> int:
    config = load_config()
    rng = random.Random(seed)
    engine = RotationEngine()
    store = InMemoryGenomeStore(rng=rng)
    chain = ProofOfConsciousness(config)
    archiver = MultiChainArchiver(config)
    reports = []
    for _ in range(max(count, 1)):
        genome = GenomeBuilder.random(rng, p53_copies=config.default_p53_copies).build_storage()
        report = await run_lifecycle(
            genome,
            engine=engine,
            store=store,
            chain=chain,
            archiver=archiver,
            edit_hook=randomize_top_site(rng),
        )
        reports.append(report.to_dict())

    stats = await store.stats()
    summary: dict[str, object] = {
        "processed": len(reports),
        "chain_length": len(chain),
        "chain_valid": chain.validate(),
        "store": stats.to_dict(),
        "rotations": engine.stats(),
    }
    if export is not None:
        path = Path(export) if export else chain_export_path()
        summary["exported"] = str(chain.export_jsonl(path))
    if as_json:
        summary["reports"] = reports
    _emit(summary, as_json)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the genomeos package."""

    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__

        print(f"genomeos {__version__}")
        return 0

    configure_logging(args.log_level, to_file=args.log_file)
    try:
        if args.command == "inspect":
            return _inspect(args.dna, args.json)
        if args.command == "addresses":
            return _addresses(args.seed, args.json)
        if args.command == "demo":
            return asyncio.run(_demo(args.seed, args.count, args.export, args.json))
    except (GenomeError, ValueError) as exc:
        LOGGER.debug("command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
