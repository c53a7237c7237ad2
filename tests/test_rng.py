import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from escape_room import Action, PcgStream  # noqa: E402
from escape_room.rng import seed_state  # noqa: E402


def test_same_seed_same_sequence():
    a = PcgStream(42)
    b = PcgStream(42)
    assert [a.random() for _ in range(100)] == [b.random() for _ in range(100)]
    assert [a.random_action() for _ in range(100)] == [b.random_action() for _ in range(100)]


def test_floats_in_unit_interval():
    stream = PcgStream(7)
    draws = [stream.random() for _ in range(10_000)]
    assert all(0.0 <= d < 1.0 for d in draws)
    # not degenerate
    assert len(set(draws)) > 9_000


def test_reseeding_restarts_stream():
    stream = PcgStream(3)
    first = [stream.random() for _ in range(5)]
    stream.seed(3)
    assert [stream.random() for _ in range(5)] == first
    assert stream.state != seed_state(3)


def test_different_seeds_diverge():
    assert [PcgStream(1).random() for _ in range(3)] != [PcgStream(2).random() for _ in range(3)]


def test_random_action_covers_all_actions():
    stream = PcgStream(42)
    seen = {stream.random_action() for _ in range(500)}
    assert seen == set(Action)


def test_seed_state_is_64_bit():
    for seed in (0, 1, 42, -1, 2**40):
        assert 0 <= seed_state(seed) < 2**64
    # negative seeds wrap like a 32-bit unsigned cast
    assert seed_state(-1) == seed_state(2**32 - 1)


# First raw 32-bit outputs of the reference generator for a few seeds.
REFERENCE_OUTPUTS = {
    42: [3270867926, 1795671209, 1924641435, 1143034755, 4121910957, 1757328946],
    0: [3894649422, 2055130073, 2315086854, 2925816488, 3443325253, 1644475139],
    -7: [406832727, 423420733, 3150329647, 3965410949, 2120636663, 4216278566],
}


def test_seed_state_matches_reference():
    assert seed_state(42) == 10915315373440060052
    assert seed_state(0) == 1876011003808476466
    assert seed_state(-7) == 18185746407672247031


@pytest.mark.parametrize("seed", sorted(REFERENCE_OUTPUTS))
def test_random_matches_reference_outputs(seed):
    stream = PcgStream(seed)
    expected = [y / 2**32 for y in REFERENCE_OUTPUTS[seed]]
    assert [stream.random() for _ in expected] == expected


def test_random_action_matches_reference():
    stream = PcgStream(42)
    assert [stream.random_action().value for _ in range(8)] == [3, 2, 2, 1, 4, 2, 3, 4]
    stream.seed(-7)
    assert [stream.random_action().value for _ in range(8)] == [0, 0, 3, 4, 2, 4, 1, 0]
