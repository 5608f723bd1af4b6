from __future__ import annotations

import random

import pytest

from genomeos.errors import InvalidLength, InvalidPosition, InvalidSymbol, PhaseNotEligible
from genomeos.genome import (
    GENOME_SIZE,
    HAYFLICK_LIMIT,
    SIGNAL_SENTINEL,
    TELOMERE_MAX,
    EditKind,
    Genome,
    GenomeBuilder,
    Tetrad,
    build,
    cube_coordinates,
    score_from_components,
)
from genomeos.phases import Phase

DNA = "ATGCATGCATGCATGCATGCATGCATG"


def test_build_round_trips_text() -> None:
    genome = build(DNA)
    assert genome.to_dna_string() == DNA
    assert str(genome) == DNA
    assert genome.phase is Phase.STORAGE


def test_lowercase_input_is_uppercased() -> None:
    assert build(DNA.lower()).to_dna_string() == DNA


def test_random_genomes_round_trip(rng: random.Random) -> None:
    for _ in range(20):
        text = GenomeBuilder.random(rng).build_storage().to_dna_string()
        assert build(text).to_dna_string() == text


@pytest.mark.parametrize("text", ["", DNA[:-1], DNA + "A"])
def test_wrong_length_rejected(text: str) -> None:
    with pytest.raises(InvalidLength) as excinfo:
        build(text)
    assert excinfo.value.length == len(text)


def test_unknown_symbol_rejected() -> None:
    with pytest.raises(InvalidSymbol) as excinfo:
        build("ATGCX" + "A" * 22)
    assert excinfo.value.symbol == "X"
    assert excinfo.value.position == 4


def test_builder_accepts_tetrad_sequence() -> None:
    genome = GenomeBuilder([Tetrad.G] * GENOME_SIZE).build_storage()
    assert genome.to_dna_string() == "G" * GENOME_SIZE


def test_hash_and_score_are_deterministic() -> None:
    first = build(DNA)
    second = build(DNA)
    assert first.digest == second.digest
    assert first.score() == second.score()
    assert first.hash_hex.startswith("0x")
    assert len(first.hash_hex) == 66


def test_score_matches_components() -> None:
    genome = build(DNA)
    expected = score_from_components(
        genome.digest,
        genome.gc_fraction(),
        genome.complexity(),
        genome.structural_balance(),
        genome.p53_copies,
    )
    assert genome.score() == expected


def test_score_is_monotonic_in_each_contributor() -> None:
    digest = build(DNA).digest
    steps = [i / 10 for i in range(11)]
    baseline = {"gc_fraction": 0.5, "complexity": 0.5, "balance": 0.5, "p53_copies": 20}
    for name in ("gc_fraction", "complexity", "balance"):
        scores = [score_from_components(digest, **{**baseline, name: value}) for value in steps]
        assert scores == sorted(scores)
    copies = [score_from_components(digest, **{**baseline, "p53_copies": n}) for n in range(0, 60, 5)]
    assert copies == sorted(copies)


def test_redundancy_changes_hash() -> None:
    elephant = GenomeBuilder(DNA).elephant_mode().build_storage()
    whale = GenomeBuilder(DNA).whale_mode().build_storage()
    assert whale.p53_copies == 40
    assert elephant.digest != whale.digest
    before = whale.digest
    whale.rehash()
    assert whale.digest == before


def test_structural_metrics() -> None:
    balanced = build("TTTGGG" + "A" * 21)
    assert balanced.tg_counts() == (3, 3)
    assert balanced.structural_signal() == pytest.approx(1.0)
    assert balanced.structural_balance() == pytest.approx(1.0)

    only_t = build("T" * GENOME_SIZE)
    assert only_t.structural_signal() == SIGNAL_SENTINEL
    assert only_t.structural_balance() == pytest.approx(0.0)
    assert only_t.suggested_phase() is Phase.ACTIVE

    neither = build("A" * GENOME_SIZE)
    assert neither.structural_balance() == pytest.approx(0.5)
    assert neither.complexity() == 0.0
    assert neither.gc_fraction() == 0.0

    only_g = build("G" * GENOME_SIZE)
    assert only_g.structural_signal() == 0.0
    assert only_g.gc_fraction() == 1.0
    assert only_g.suggested_phase() is Phase.STORAGE


def test_complexity_counts_transitions() -> None:
    alternating = build("AT" * 13 + "A")
    assert alternating.complexity() == pytest.approx(1.0)
    assert build("A" * 26 + "T").complexity() == pytest.approx(1 / 26)


def test_cube_coordinates() -> None:
    assert cube_coordinates(0) == (0, 0, 0)
    assert cube_coordinates(5) == (2, 1, 0)
    assert cube_coordinates(26) == (2, 2, 2)
    with pytest.raises(InvalidPosition):
        cube_coordinates(27)


def test_edits_require_mutation_phase() -> None:
    genome = build(DNA)
    with pytest.raises(PhaseNotEligible):
        genome.splice(0, Tetrad.G)
    assert genome.mutations == 0
    assert genome.to_dna_string() == DNA


def test_splice_recomputes_hash_and_counts_mutation() -> None:
    genome = GenomeBuilder(DNA).build_mutation()
    digest = genome.digest
    genome.splice(0, Tetrad.A)  # same symbol still counts as an edit
    assert genome.mutations == 1
    assert genome.digest != digest
    assert genome.to_dna_string() == DNA

    genome.splice(0, Tetrad.C)
    assert genome.to_dna_string()[0] == "C"
    assert genome.mutations == 2


def test_swap_and_randomize(rng: random.Random) -> None:
    genome = GenomeBuilder(DNA).build_mutation()
    genome.swap(0, 1)
    assert genome.to_dna_string()[:2] == "TA"
    genome.randomize(5, rng)
    assert genome.mutations == 2
    assert len(genome.to_dna_string()) == GENOME_SIZE


def test_edit_dispatcher() -> None:
    genome = GenomeBuilder(DNA).build_mutation()
    genome.edit(EditKind.SWAP, [0, 2])
    assert genome.to_dna_string()[:3] == "GTA"
    genome.edit("splice", [1], "c")
    assert genome.to_dna_string()[1] == "C"
    genome.edit("randomize", [3], rng=random.Random(0))
    assert genome.mutations == 3

    with pytest.raises(ValueError):
        genome.edit("splice", [1])
    with pytest.raises(ValueError):
        genome.edit("swap", [1])
    with pytest.raises(InvalidSymbol):
        genome.edit("splice", [1], "x")
    with pytest.raises(InvalidPosition):
        genome.edit("randomize", [GENOME_SIZE])
    assert genome.mutations == 3


def test_divide_spends_telomere(rng: random.Random) -> None:
    genome = build(DNA)
    assert genome.divide(rng) is True
    assert genome.division_count == 1
    assert TELOMERE_MAX - 150 < genome.telomere_length <= TELOMERE_MAX - 50
    assert genome.vitality_fraction() < 1.0
    assert genome.biological_age() > 0.0


def test_divide_fails_closed_when_short() -> None:
    genome = GenomeBuilder(DNA).telomere_length(99).build_storage()
    assert genome.divide() is False
    assert genome.telomere_length == 99
    assert genome.division_count == 0


def test_divide_stops_at_lifetime_limit(rng: random.Random) -> None:
    genome = build(DNA)
    results = [genome.divide(rng) for _ in range(HAYFLICK_LIMIT + 10)]
    assert results.count(True) == HAYFLICK_LIMIT
    assert genome.division_count == HAYFLICK_LIMIT
    remaining = genome.telomere_length
    assert genome.divide(rng) is False
    assert genome.telomere_length == remaining


def test_rejuvenate_resets_budget(rng: random.Random) -> None:
    genome = build(DNA)
    genome.divide(rng)
    genome.rejuvenate()
    assert genome.telomere_length == TELOMERE_MAX
    assert genome.division_count == 0


def test_telomere_bound_enforced() -> None:
    with pytest.raises(ValueError):
        GenomeBuilder(DNA).telomere_length(TELOMERE_MAX + 1)


def test_phase_is_read_only() -> None:
    genome = build(DNA)
    with pytest.raises(AttributeError):
        genome.phase = Phase.MUTATION  # type: ignore[misc]
    assert genome.phase is Phase.STORAGE


def test_snapshot_round_trip() -> None:
    genome = GenomeBuilder(DNA).whale_mode().build_active()
    genome.db_id = 17
    restored = Genome.from_dict(genome.to_dict())
    assert restored.to_dna_string() == DNA
    assert restored.phase is Phase.ACTIVE
    assert restored.digest == genome.digest
    assert restored.score() == genome.score()
    assert restored.db_id == 17


def test_tetrad_helpers() -> None:
    assert Tetrad.from_char("g") is Tetrad.G
    assert Tetrad.from_char("N") is None
    assert Tetrad.A.complement() is Tetrad.T
    assert Tetrad.C.complement() is Tetrad.G
    assert Tetrad.T.is_dynamic and not Tetrad.G.is_dynamic
    assert Tetrad.G.is_archival


@pytest.mark.parametrize(
    "overrides",
    [
        {"telomere_length": TELOMERE_MAX + 1},
        {"telomere_length": -1},
        {"p53_copies": 256},
        {"division_count": HAYFLICK_LIMIT + 1},
    ],
)
def test_constructor_enforces_bounds(overrides: dict[str, int]) -> None:
    with pytest.raises(ValueError):
        Genome([Tetrad.A] * GENOME_SIZE, **overrides)


def test_edited_snapshot_rejected() -> None:
    payload = GenomeBuilder(DNA).build_storage().to_dict()

    forged_dna = dict(payload, dna="G" + DNA[1:])
    with pytest.raises(ValueError, match="hash"):
        Genome.from_dict(forged_dna)

    forged_score = dict(payload, consciousness=int(payload["consciousness"]) + 1)  # type: ignore[call-overload]
    with pytest.raises(ValueError, match="score"):
        Genome.from_dict(forged_score)

    without_derived = {k: v for k, v in payload.items() if k not in ("hash", "consciousness")}
    assert Genome.from_dict(without_derived).hash_hex == payload["hash"]
