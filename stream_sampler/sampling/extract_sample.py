"""
Purpose
-------
Assemble final samples from the reservoir samplers: validate the requested
sample size, adapt the input into decoded chunks, run the chosen algorithm
and return the truncated sample.

Key behaviors
-------------
- `sample_text` / `fast_sample_text` return just the sample string, for the
  exact and fast algorithms respectively.
- `run_sampler` returns a `SampleResult` carrying the total character count
  alongside the sample, for diagnostics and tests.
- `build_sampler` selects an algorithm by name ("exact" or "fast").
- Sample sizes are validated before the source is touched.

Conventions
-----------
- A `str` source is encoded as UTF-8 and read through `Utf8ChunkReader`, so
  it is chunked exactly like the same text arriving on a byte stream.
- Any object with a `read` method is treated as a binary stream.
- Any other iterable is taken as an already-decoded chunk source.

Downstream usage
----------------
    sample = fast_sample_text(sys.stdin.buffer, 10, seed=0)
    result = run_sampler("some text", 3, algorithm="exact", seed=0)
    result.sample, result.total_count
"""

import io
from dataclasses import dataclass

from stream_sampler.logging.sampler_logger import SamplerLogger
from stream_sampler.sampling.chunk_reader import Utf8ChunkReader
from stream_sampler.sampling.java_random import JavaRandom
from stream_sampler.sampling.reservoir_sampling import (
    ExactReservoirSampler,
    FastReservoirSampler,
)
from stream_sampler.sampling.sampler_config import (
    ALGORITHMS,
    EXACT_ALGORITHM,
    FAST_ALGORITHM,
    SAMPLE_SIZE_ERROR,
    STREAM_ENCODING,
)
from stream_sampler.sampling.sampler_types import ChunkSource, SampleSource


@dataclass(frozen=True)
class SampleResult:
    """
    Purpose
    -------
    Outcome of one sampling run.

    Attributes
    ----------
    sample : str
        Reservoir contents in index order, `min(cap, total_count)` characters.
    total_count : int
        Number of characters the sampler consumed.
    """

    sample: str
    total_count: int


def validate_sample_size(cap: int) -> None:
    if cap <= 0:
        raise ValueError(SAMPLE_SIZE_ERROR)


def as_chunk_source(source: SampleSource) -> ChunkSource:
    """
    Adapt a sampling input into an iterable of decoded chunks.

    Parameters
    ----------
    source : str, BinaryIO or Iterable[str]
        Decoded text, a binary stream of UTF-8 bytes, or a chunk iterable.

    Returns
    -------
    Iterable[str]
        Chunks ready for a sampler's `consume(...)`.
    """

    if isinstance(source, str):
        return Utf8ChunkReader(io.BytesIO(source.encode(STREAM_ENCODING)))
    if hasattr(source, "read"):
        return Utf8ChunkReader(source)
    return source


def build_sampler(
    algorithm: str,
    cap: int,
    rng: JavaRandom,
    logger: SamplerLogger | None = None,
) -> ExactReservoirSampler:
    """
    Construct the sampler registered under `algorithm`.

    Parameters
    ----------
    algorithm : str
        "exact" or "fast".
    cap : int
        Requested sample size.
    rng : JavaRandom
        Generator owned by the new sampler.
    logger : SamplerLogger or None, optional
        Passed through to the sampler.

    Returns
    -------
    ExactReservoirSampler
        An `ExactReservoirSampler` or `FastReservoirSampler`.

    Raises
    ------
    ValueError
        If `algorithm` is unknown or `cap` is not positive.
    """

    if algorithm not in ALGORITHMS:
        raise ValueError(
            f"Unknown sampling algorithm {algorithm!r}; expected one of {sorted(ALGORITHMS)}"
        )
    validate_sample_size(cap)
    if algorithm == FAST_ALGORITHM:
        return FastReservoirSampler(cap=cap, rng=rng, logger=logger)
    return ExactReservoirSampler(cap=cap, rng=rng, logger=logger)


def run_sampler(
    source: SampleSource,
    cap: int,
    algorithm: str = EXACT_ALGORITHM,
    seed: int | None = None,
    rng: JavaRandom | None = None,
    logger: SamplerLogger | None = None,
) -> SampleResult:
    """
    Sample `cap` characters from `source` with the named algorithm.

    Parameters
    ----------
    source : str, BinaryIO or Iterable[str]
        Sampling input; see `as_chunk_source`.
    cap : int
        Requested sample size; must be positive.
    algorithm : str, default="exact"
        "exact" or "fast".
    seed : int or None, optional
        Seed for a fresh `JavaRandom`; ignored when `rng` is given.
    rng : JavaRandom or None, optional
        Generator to use instead of seeding a new one.
    logger : SamplerLogger or None, optional
        Receives sampler diagnostics and an INFO completion event.

    Returns
    -------
    SampleResult
        The truncated sample and the total character count.

    Raises
    ------
    ValueError
        If `cap` is not positive (before `source` is read) or `algorithm`
        is unknown.
    OSError
        Propagated unchanged from the source; no partial sample is returned.
    """

    validate_sample_size(cap)
    if rng is None:
        rng = JavaRandom(seed)
    sampler: ExactReservoirSampler = build_sampler(algorithm, cap, rng, logger)
    sample, total_count = sampler.sample(as_chunk_source(source))
    if logger is not None:
        logger.info(
            "sampling_finished",
            msg="Sample extracted",
            context={"algorithm": algorithm, "cap": cap, "total_count": total_count},
        )
    return SampleResult(sample=sample, total_count=total_count)


def sample_text(source: SampleSource, cap: int, seed: int | None = None) -> str:
    """Return an exact reservoir sample of at most `cap` characters of `source`."""

    return run_sampler(source, cap, algorithm=EXACT_ALGORITHM, seed=seed).sample


def fast_sample_text(source: SampleSource, cap: int, seed: int | None = None) -> str:
    """Return a skip-optimized reservoir sample of at most `cap` characters of `source`."""

    return run_sampler(source, cap, algorithm=FAST_ALGORITHM, seed=seed).sample
