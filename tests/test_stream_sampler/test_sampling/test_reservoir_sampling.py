"""
Purpose
-------
Unit tests for `stream_sampler.sampling.reservoir_sampling`.

Key behaviors
-------------
- Exact sampler: fill phase, replacement index arithmetic, state reporting,
  partial samples and validation of the sample size.
- Fast sampler: equivalence with the exact sampler below the threshold,
  skip carry across chunk boundaries (including the final-character case),
  skip distance draws and their saturation.
- Diagnostics are emitted through an injected logger.

Conventions
-----------
- Replacement decisions are scripted with `ScriptedRandom` or by patching
  `draw_skip`, so every expected reservoir is derived by hand.
"""

from typing import cast

import pytest

from stream_sampler.sampling.java_random import JavaRandom
from stream_sampler.sampling.reservoir_sampling import (
    ExactReservoirSampler,
    FastReservoirSampler,
    SamplingState,
)
from stream_sampler.sampling.sampler_config import INT32_MAX
from tests.test_stream_sampler.test_sampling.sampler_testing_utils import (
    ScriptedRandom,
)


def scripted(**draws) -> JavaRandom:
    return cast(JavaRandom, ScriptedRandom(**draws))


@pytest.mark.parametrize("cap", [0, -1, -10])
def test_non_positive_cap_is_rejected(cap: int) -> None:
    with pytest.raises(ValueError, match="Sample size must be positive"):
        ExactReservoirSampler(cap=cap, rng=JavaRandom(0))
    with pytest.raises(ValueError, match="Sample size must be positive"):
        FastReservoirSampler(cap=cap, rng=JavaRandom(0))


def test_fill_phase_copies_characters_without_draws() -> None:
    """
    Validate that the first `cap` characters are stored in order without
    consuming any random draws.

    Returns
    -------
    None

    Notes
    -----
    - `ScriptedRandom()` has no draws scripted, so any draw would raise.
    """

    sampler = ExactReservoirSampler(cap=5, rng=scripted())

    sampler.consider_chunk("abc")

    assert sampler.partial_sample() == "abc"
    assert sampler.count == 3
    assert sampler.state is SamplingState.FILLING


def test_replacement_uses_absolute_remainder() -> None:
    """
    Validate the replacement index `|r| mod (count + 1)` for negative and
    positive draws.

    Returns
    -------
    None

    Notes
    -----
    - count=2: |-4| mod 3 = 1, so "c" replaces slot 1.
    - count=3: 8 mod 4 = 0, so "d" replaces slot 0.
    """

    sampler = ExactReservoirSampler(cap=2, rng=scripted(longs=[-4, 8]))

    sample, total = sampler.sample(["abcd"])

    assert sample == "dc"
    assert total == 4
    assert sampler.state is SamplingState.EXACT_EVALUATION


def test_draw_beyond_reservoir_keeps_samples() -> None:
    sampler = ExactReservoirSampler(cap=2, rng=scripted(longs=[2, 3, 4]))

    sample, total = sampler.sample(["ab", "cde"])

    assert sample == "ab"
    assert total == 5


def test_chunking_does_not_affect_exact_sampler() -> None:
    """
    Validate that the exact sampler's output depends only on the character
    sequence, not on how it is split into chunks.

    Returns
    -------
    None
    """

    text = "the quick brown fox jumps over the lazy dog" * 20
    whole = ExactReservoirSampler(cap=7, rng=JavaRandom(11)).sample([text])
    singles = ExactReservoirSampler(cap=7, rng=JavaRandom(11)).sample(list(text))

    assert whole == singles


def test_partial_sample_is_available_mid_stream() -> None:
    sampler = ExactReservoirSampler(cap=4, rng=JavaRandom(0))

    sampler.consider_chunk("xy")
    assert sampler.partial_sample() == "xy"

    sampler.consider_chunk("z" * 100)
    assert len(sampler.partial_sample()) == 4


def test_empty_chunks_are_ignored() -> None:
    sampler = ExactReservoirSampler(cap=3, rng=JavaRandom(0))

    sample, total = sampler.sample(["", "ab", ""])

    assert sample == "ab"
    assert total == 2


def test_consume_logs_stream_exhaustion(mocker) -> None:
    """
    Validate that `consume` reports exhaustion through the injected logger.

    Parameters
    ----------
    mocker : pytest_mock.MockerFixture
        Supplies a mock logger.

    Returns
    -------
    None
    """

    logger = mocker.Mock()
    sampler = ExactReservoirSampler(cap=3, rng=JavaRandom(0), logger=logger)

    sampler.consume(["abcdef"])

    logger.debug.assert_called_once_with(
        "stream_exhausted",
        msg="Character source exhausted",
        context={"count": 6, "cap": 3, "state": "exact_evaluation"},
    )


def test_fast_matches_exact_below_threshold() -> None:
    """
    Validate that the fast sampler is draw-for-draw identical to the exact
    sampler while `count < 4 * cap`.

    Returns
    -------
    None
    """

    text = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklm"
    exact = ExactReservoirSampler(cap=10, rng=JavaRandom(3)).sample([text])
    fast_sampler = FastReservoirSampler(cap=10, rng=JavaRandom(3))
    fast = fast_sampler.sample([text])

    assert len(text) == 39
    assert fast == exact
    assert fast_sampler.skip == -1
    assert fast_sampler.state is SamplingState.EXACT_EVALUATION


def test_fast_threshold_is_four_times_cap() -> None:
    assert FastReservoirSampler(cap=25, rng=JavaRandom(0)).threshold == 100


def test_skip_landing_on_last_character_of_chunk(mocker) -> None:
    """
    Validate the carry arithmetic when a skip ends exactly on the final
    character of a chunk.

    Parameters
    ----------
    mocker : pytest_mock.MockerFixture
        Used to script skip distances.

    Returns
    -------
    None

    Notes
    -----
    - cap=1, threshold=4. Characters a-d are filled/evaluated (no
      replacements since the scripted long is 1), then at "e" a skip of 3 is
      drawn with 3 characters remaining. "e", "f" and "g" are passed over and
      "h", the final character, replaces slot 0 and is counted.
    """

    sampler = FastReservoirSampler(cap=1, rng=scripted(longs=[1] * 10, ints=[0]))
    mocker.patch.object(sampler, "draw_skip", return_value=3)

    sampler.consider_chunk("abcdefgh")

    assert sampler.partial_sample() == "h"
    assert sampler.count == 8
    assert sampler.skip == -1
    assert sampler.state is SamplingState.SKIP_PENDING


def test_skip_carries_into_next_chunk(mocker) -> None:
    """
    Validate skip draws, replacements and carry across two chunks.

    Parameters
    ----------
    mocker : pytest_mock.MockerFixture
        Used to script skip distances.

    Returns
    -------
    None

    Notes
    -----
    - Chunk 1: skip 2 drawn at "e" passes over "e" and "f"; "g" replaces
      slot 0; skip 5 drawn at "h" carries 4 into the next chunk.
    - Chunk 2: "i" through "l" are passed over, "m" replaces slot 0, and the
      skip of 0 drawn at "n" leaves a replacement due.
    """

    sampler = FastReservoirSampler(cap=1, rng=scripted(longs=[1] * 10, ints=[0, 0]))
    draw_skip = mocker.patch.object(sampler, "draw_skip", side_effect=[2, 5, 0])

    sampler.consider_chunk("abcdefgh")

    assert sampler.partial_sample() == "g"
    assert sampler.count == 8
    assert sampler.skip == 4
    assert sampler.state is SamplingState.SKIPPING

    sampler.consider_chunk("ijklmn")

    assert sampler.partial_sample() == "m"
    assert sampler.count == 14
    assert sampler.skip == 0
    assert sampler.state is SamplingState.REPLACE_DUE
    assert draw_skip.call_count == 3


def test_fast_sampler_one_character_chunks_skip_one_at_a_time(mocker) -> None:
    """
    Validate that single-character chunks pass over exactly `skip` characters
    before replacing.

    Parameters
    ----------
    mocker : pytest_mock.MockerFixture
        Used to script skip distances.

    Returns
    -------
    None
    """

    sampler = FastReservoirSampler(cap=1, rng=scripted(longs=[1] * 10, ints=[0]))
    mocker.patch.object(sampler, "draw_skip", side_effect=[2, 100])

    sample, total = sampler.sample(list("abcdefghij"))

    assert sample == "g"
    assert total == 10


def test_draw_skip_uses_next_double() -> None:
    """
    Validate skip distances for the first `next_double()` of seed 0.

    Returns
    -------
    None

    Notes
    -----
    - r = 0.73096...; log(r) / log(1 - 10/40) = 1.089 and
      log(r) / log(1 - 10/4000) = 125.198.
    """

    sampler = FastReservoirSampler(cap=10, rng=JavaRandom(0))
    sampler.count = 40
    assert sampler.draw_skip() == 1

    sampler = FastReservoirSampler(cap=10, rng=JavaRandom(0))
    sampler.count = 4000
    assert sampler.draw_skip() == 125


@pytest.mark.parametrize(
    "count, uniform, expected",
    [
        (2**60, 0.5, INT32_MAX),
        (2**40, 1e-300, INT32_MAX),
        (100, 0.0, 0),
    ],
)
def test_draw_skip_edge_values(count: int, uniform: float, expected: int) -> None:
    """
    Validate saturation at the signed 32-bit maximum and the zero draw.

    Parameters
    ----------
    count : int
        Characters consumed so far.
    uniform : float
        Scripted `next_double()` value.
    expected : int
        Expected skip distance.

    Returns
    -------
    None
    """

    sampler = FastReservoirSampler(cap=1, rng=scripted(doubles=[uniform]))
    sampler.count = count

    assert sampler.draw_skip() == expected


def test_skip_mode_entry_is_logged_once(mocker) -> None:
    logger = mocker.Mock()
    sampler = FastReservoirSampler(cap=2, rng=JavaRandom(0), logger=logger)

    sampler.consider_chunk("abcdefghij")
    sampler.consider_chunk("klmnopqrst")

    skip_events = [
        c for c in logger.debug.call_args_list if c.args == ("skip_mode_entered",)
    ]
    assert len(skip_events) == 1


def test_sampler_state_values() -> None:
    assert {state.value for state in SamplingState} == {
        "filling",
        "exact_evaluation",
        "skip_pending",
        "skipping",
        "replace_due",
    }


def test_snapshot_reports_counters_and_state(mocker) -> None:
    """
    Validate the snapshot attached to log entries for both samplers.

    Parameters
    ----------
    mocker : pytest_mock.MockerFixture
        Used to script a skip distance.

    Returns
    -------
    None
    """

    exact = ExactReservoirSampler(cap=3, rng=JavaRandom(0))
    exact.consider_chunk("ab")
    fast = FastReservoirSampler(cap=1, rng=scripted(longs=[1] * 10))
    mocker.patch.object(fast, "draw_skip", return_value=9)
    fast.consider_chunk("abcdef")

    assert exact.snapshot() == {"count": 2, "cap": 3, "state": "filling"}
    assert fast.snapshot() == {
        "count": 6,
        "cap": 1,
        "state": "skipping",
        "skip": 7,
        "threshold": 4,
    }


def test_skip_mode_entry_logs_snapshot(mocker) -> None:
    logger = mocker.Mock()
    sampler = FastReservoirSampler(cap=1, rng=scripted(longs=[1] * 10), logger=logger)
    mocker.patch.object(sampler, "draw_skip", return_value=50)

    sampler.consider_chunk("abcdef")

    logger.debug.assert_called_once_with(
        "skip_mode_entered",
        msg="Switched from per-character draws to skip distances",
        context={"count": 6, "cap": 1, "state": "skipping", "skip": 48, "threshold": 4},
    )
