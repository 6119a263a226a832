"""
Purpose
-------
Provide single-pass, fixed-capacity reservoir samplers over streams of
decoded characters: an exact sampler that evaluates every character and a
fast sampler that switches to geometric skip distances once the stream is
much larger than the sample.

Key behaviors
-------------
- `ExactReservoirSampler` implements the classic algorithm (Algorithm R): the
  first `cap` characters fill the reservoir, later characters replace a
  random slot with probability `cap / (count + 1)`.
- `FastReservoirSampler` behaves identically up to `THRESHOLD_FACTOR * cap`
  characters, then draws how many characters to pass over before the next
  replacement, so random draws grow with `cap * log(n / cap)` instead of `n`.
- Both expose their progress through `count`, `state` and
  `partial_sample()`, so an interrupted run can still report its sample.

Conventions
-----------
- Input arrives as chunks of decoded text; every character, skipped or not,
  advances `count`.
- The reservoir is a numpy object array of `str` of length `cap`, so every
  code point (U+0000 included) is stored as-is; slots at or beyond `count`
  hold "" and are never exposed.
- All draws come from the injected `JavaRandom`, so a fixed seed and identical
  chunking reproduce the sample exactly.

Downstream usage
----------------
Construct one sampler per run, feed it chunks, then read the sample:

    sampler = FastReservoirSampler(cap=10, rng=JavaRandom(0))
    sample, total = sampler.sample(Utf8ChunkReader(stream))
"""

import enum
import math
from dataclasses import dataclass, field

import numpy as np

from stream_sampler.logging.sampler_logger import SamplerLogger
from stream_sampler.sampling.java_random import JavaRandom
from stream_sampler.sampling.sampler_config import (
    INT32_MAX,
    SAMPLE_SIZE_ERROR,
    THRESHOLD_FACTOR,
)
from stream_sampler.sampling.sampler_types import (
    ChunkSource,
    ReservoirBuffer,
    SamplerSnapshot,
)


class SamplingState(enum.Enum):
    """Phase of a sampling run, derived from `count` and the pending skip."""

    FILLING = "filling"
    EXACT_EVALUATION = "exact_evaluation"
    SKIP_PENDING = "skip_pending"
    SKIPPING = "skipping"
    REPLACE_DUE = "replace_due"


@dataclass(eq=False)
class ExactReservoirSampler:
    """
    Purpose
    -------
    Maintain a uniform random sample of `cap` characters from a character
    stream using the classic reservoir algorithm.

    Key behaviors
    -------------
    - Accepts decoded text chunks via `consider_chunk(...)` / `consume(...)`.
    - After `n >= cap` characters, each of them occupies a reservoir slot with
      probability `cap / n`.

    Parameters
    ----------
    cap : int
        Requested sample size; must be positive.
    rng : JavaRandom
        Generator owned by this run.
    logger : SamplerLogger or None, optional
        Receives diagnostic events; None disables logging.

    Attributes
    ----------
    count : int
        Number of characters consumed so far.
    samples : numpy.ndarray
        Reservoir buffer of length `cap`, mutated in place.

    Raises
    ------
    ValueError
        If `cap` is not positive.

    Notes
    -----
    - The replacement index is `|next_long() rem (count + 1)|` using a
      truncated remainder, which for a positive modulus equals
      `abs(r) % (count + 1)`.
    - Not thread-safe; one instance per run.
    """

    cap: int
    rng: JavaRandom
    logger: SamplerLogger | None = None
    count: int = 0
    samples: ReservoirBuffer = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.cap <= 0:
            raise ValueError(SAMPLE_SIZE_ERROR)
        self.samples = np.full(self.cap, "", dtype=object)

    @property
    def state(self) -> SamplingState:
        if self.count < self.cap:
            return SamplingState.FILLING
        return SamplingState.EXACT_EVALUATION

    def snapshot(self) -> SamplerSnapshot:
        """Return the counters and phase attached to this sampler's log entries."""

        return {"count": self.count, "cap": self.cap, "state": self.state.value}

    def evaluate(self, character: str) -> None:
        """Replace a random slot with `character` with probability `cap / (count + 1)`."""

        position: int = abs(self.rng.next_long()) % (self.count + 1)
        if position < self.cap:
            self.samples[position] = character

    def consider_chunk(self, chunk: str) -> None:
        """
        Consider every character of one decoded chunk, in order.

        Parameters
        ----------
        chunk : str
            Decoded characters; may be empty.

        Returns
        -------
        None
        """

        for character in chunk:
            if self.count < self.cap:
                self.samples[self.count] = character
            else:
                self.evaluate(character)
            self.count += 1

    def consume(self, chunks: ChunkSource) -> int:
        """
        Consider every chunk of a source until it is exhausted.

        Parameters
        ----------
        chunks : Iterable[str]
            Decoded chunk source, e.g. a `Utf8ChunkReader`.

        Returns
        -------
        int
            Total number of characters consumed by this sampler.

        Raises
        ------
        OSError
            Propagated unchanged from the source.
        """

        for chunk in chunks:
            self.consider_chunk(chunk)
        if self.logger is not None:
            self.logger.debug(
                "stream_exhausted",
                msg="Character source exhausted",
                context=self.snapshot(),
            )
        return self.count

    def partial_sample(self) -> str:
        """Return the current reservoir truncated to `min(cap, count)` characters."""

        return "".join(self.samples[: min(self.cap, self.count)].tolist())

    def sample(self, chunks: ChunkSource) -> tuple[str, int]:
        """
        Consume `chunks` and return `(sample, total_count)`.

        Parameters
        ----------
        chunks : Iterable[str]
            Decoded chunk source.

        Returns
        -------
        tuple[str, int]
            The reservoir in index order truncated to `min(cap, count)`, and
            the number of characters consumed.
        """

        total: int = self.consume(chunks)
        return self.partial_sample(), total


@dataclass(eq=False)
class FastReservoirSampler(ExactReservoirSampler):
    """
    Purpose
    -------
    Approximate reservoir sampler that replaces per-character draws with
    geometric skip distances once `count` reaches `THRESHOLD_FACTOR * cap`.

    Key behaviors
    -------------
    - Below the threshold, identical to `ExactReservoirSampler`.
    - At or past the threshold, alternates between drawing a skip distance,
      passing over characters, and replacing a uniformly chosen slot.

    Parameters
    ----------
    cap : int
        Requested sample size; must be positive.
    rng : JavaRandom
        Generator owned by this run.
    logger : SamplerLogger or None, optional
        Receives a DEBUG event when skip mode starts.

    Attributes
    ----------
    skip : int
        -1 when no skip distance is pending, 0 when the next character
        replaces a slot, positive while characters are being passed over.
    threshold : int
        `THRESHOLD_FACTOR * cap`; fixed for the life of the sampler.

    Notes
    -----
    - Skips are applied within the current chunk and carried into the next
      one. A skip that ends on the final character of a chunk replaces a
      slot with that character; every character advances `count` by one.
    - A chunk of one character makes the carry arithmetic equivalent to
      skipping characters one at a time.
    """

    skip: int = -1
    threshold: int = field(init=False)
    _skip_mode_logged: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        self.threshold = THRESHOLD_FACTOR * self.cap

    @property
    def state(self) -> SamplingState:
        if self.count < self.cap:
            return SamplingState.FILLING
        if self.count < self.threshold:
            return SamplingState.EXACT_EVALUATION
        if self.skip == -1:
            return SamplingState.SKIP_PENDING
        if self.skip == 0:
            return SamplingState.REPLACE_DUE
        return SamplingState.SKIPPING

    def snapshot(self) -> SamplerSnapshot:
        snapshot = super().snapshot()
        snapshot["skip"] = self.skip
        snapshot["threshold"] = self.threshold
        return snapshot

    def draw_skip(self) -> int:
        """
        Draw the number of characters to pass over before the next replacement.

        Returns
        -------
        int
            `floor(log(r) / log(1 - cap / count))` for `r = next_double()`,
            clamped to the signed 32-bit range.

        Notes
        -----
        - `r == 0.0` cannot come out of `next_double()` in practice; if it does
          the skip is 0 (replace the next character).
        - When `cap / count` is too small for `1 - p` to differ from 1.0 the
          distance saturates at `INT32_MAX`.
        """

        probability: float = self.cap / self.count
        uniform: float = self.rng.next_double()
        if uniform == 0.0:
            return 0
        denominator: float = math.log(1 - probability)
        if denominator == 0.0:
            return INT32_MAX
        return min(math.floor(math.log(uniform) / denominator), INT32_MAX)

    def consider_chunk(self, chunk: str) -> None:
        """
        Consider one decoded chunk, skipping characters where a skip is pending.

        Parameters
        ----------
        chunk : str
            Decoded characters; may be empty.

        Returns
        -------
        None
        """

        length: int = len(chunk)
        i: int = 0
        while i < length:
            if self.count < self.cap:
                self.samples[self.count] = chunk[i]
            elif self.count < self.threshold:
                self.evaluate(chunk[i])
            else:
                if self.skip == -1:
                    self.skip = self.draw_skip()
                elif self.skip == 0:
                    self.samples[self.rng.next_int(self.cap)] = chunk[i]
                    self.skip = -1

                if self.skip > 0:
                    remaining: int = length - i - 1
                    self.count += min(self.skip - 1, remaining)
                    if self.skip <= remaining:
                        i += self.skip - 1
                        self.skip = 0
                    else:
                        self.skip -= length - i
                        i = length
            self.count += 1
            i += 1

        if not self._skip_mode_logged and self.count >= self.threshold:
            self._skip_mode_logged = True
            if self.logger is not None:
                self.logger.debug(
                    "skip_mode_entered",
                    msg="Switched from per-character draws to skip distances",
                    context=self.snapshot(),
                )
