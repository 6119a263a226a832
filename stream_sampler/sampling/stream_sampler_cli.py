"""
Purpose
-------
Command-line entry point: sample `n` characters from standard input and print
the sample when the process shuts down.

Key behaviors
-------------
- Parses exactly one positional argument, the sample size.
- Loads optional configuration from the environment (and a `.env` file via
  `python-dotenv`): seed, algorithm and the logger's LOG_* variables.
- Streams raw bytes from STDIN through `Utf8ChunkReader` into the chosen
  sampler until end of input.
- Prints the sample to STDOUT at shutdown, both after normal exhaustion and
  when interrupted by SIGINT or SIGTERM (the partial sample so far).
- On a bad argument prints an error line and the usage banner to STDERR and
  exits with status 1 without reading STDIN.

Conventions
-----------
- STDOUT carries only the sample; all diagnostics go through `SamplerLogger`
  (STDERR by default).
- Exit statuses: 0 on success, 1 on argument/configuration errors, 130 when
  interrupted.
- The default algorithm is the fast sampler; STREAM_SAMPLER_ALGORITHM=exact
  selects the exact one.

Downstream usage
----------------
    cat abc.txt | stream-sampler 10
    cat abc.txt | python -m stream_sampler.sampling.stream_sampler_cli 10
"""

import os
import signal
import sys
from types import FrameType
from typing import BinaryIO, TextIO

from dotenv import load_dotenv

from stream_sampler.logging.sampler_logger import SamplerLogger, initialize_logger
from stream_sampler.sampling.chunk_reader import Utf8ChunkReader
from stream_sampler.sampling.extract_sample import build_sampler, validate_sample_size
from stream_sampler.sampling.java_random import JavaRandom
from stream_sampler.sampling.reservoir_sampling import ExactReservoirSampler
from stream_sampler.sampling.sampler_config import (
    ALGORITHM_ENV_VAR,
    ALGORITHMS,
    ARGUMENT_COUNT_ERROR,
    DEFAULT_ALGORITHM,
    SEED_ENV_VAR,
    USAGE_MESSAGE,
)

EXIT_OK: int = 0
EXIT_USAGE: int = 1
EXIT_INTERRUPTED: int = 130


def main(
    argv: list[str] | None = None,
    stdin: BinaryIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """
    Run the stream sampler CLI.

    Parameters
    ----------
    argv : list[str] or None, optional
        Arguments without the program name; defaults to `sys.argv[1:]`.
    stdin : BinaryIO or None, optional
        Byte stream to sample; defaults to `sys.stdin.buffer`.
    stdout : TextIO or None, optional
        Receives the sample; defaults to `sys.stdout`.
    stderr : TextIO or None, optional
        Receives error and usage text; defaults to `sys.stderr`.

    Returns
    -------
    int
        Process exit status.

    Raises
    ------
    OSError
        If reading STDIN fails. Nothing is printed in that case.

    Notes
    -----
    - Streams are injectable so the CLI can be exercised in-process by tests.
    """

    load_dotenv()
    args: list[str] = sys.argv[1:] if argv is None else argv
    stdin = sys.stdin.buffer if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr

    try:
        sample_size: int = extract_cli_args(args)
        seed, algorithm = extract_env_config()
    except ValueError as exc:
        write_usage_error(str(exc), stderr)
        return EXIT_USAGE

    logger: SamplerLogger = initialize_logger(
        component_name="stream_sampler.cli",
        run_meta={"sample_size": sample_size, "algorithm": algorithm, "seed": seed},
    )
    sampler: ExactReservoirSampler = build_sampler(
        algorithm, sample_size, JavaRandom(seed), logger.child("stream_sampler.sampling")
    )
    logger.info("sampling_started", msg=f"Sampling {sample_size} characters from stdin")

    status: int = run_until_shutdown(sampler, stdin, logger)
    stdout.write(sampler.partial_sample() + "\n")
    stdout.flush()
    return status


def extract_cli_args(args: list[str]) -> int:
    """
    Parse the single positional sample-size argument.

    Parameters
    ----------
    args : list[str]
        Command-line arguments without the program name.

    Returns
    -------
    int
        The requested sample size.

    Raises
    ------
    ValueError
        With the argument-count message if there is not exactly one argument
        or it is not an integer, or with the sample-size message if it is
        not positive.
    """

    if len(args) != 1:
        raise ValueError(ARGUMENT_COUNT_ERROR)
    try:
        sample_size: int = int(args[0])
    except ValueError:
        raise ValueError(ARGUMENT_COUNT_ERROR) from None
    validate_sample_size(sample_size)
    return sample_size


def extract_env_config() -> tuple[int | None, str]:
    """
    Read the optional seed and algorithm from the environment.

    Returns
    -------
    tuple[int | None, str]
        `(seed, algorithm)`; seed is None when STREAM_SAMPLER_SEED is unset
        or empty.

    Raises
    ------
    ValueError
        If STREAM_SAMPLER_SEED is not an integer or STREAM_SAMPLER_ALGORITHM
        names an unknown algorithm.
    """

    raw_seed: str = os.environ.get(SEED_ENV_VAR, "").strip()
    algorithm: str = os.environ.get(ALGORITHM_ENV_VAR, DEFAULT_ALGORITHM).strip().lower()

    seed: int | None = None
    if raw_seed:
        try:
            seed = int(raw_seed)
        except ValueError:
            raise ValueError(f"{SEED_ENV_VAR} must be an integer, got {raw_seed!r}") from None
    if algorithm not in ALGORITHMS:
        raise ValueError(
            f"{ALGORITHM_ENV_VAR} must be one of {sorted(ALGORITHMS)}, got {algorithm!r}"
        )
    return seed, algorithm


def run_until_shutdown(
    sampler: ExactReservoirSampler,
    stdin: BinaryIO,
    logger: SamplerLogger,
) -> int:
    """
    Feed STDIN to `sampler` until end of input or an interrupt.

    Parameters
    ----------
    sampler : ExactReservoirSampler
        Sampler to drive; keeps its partial state when interrupted.
    stdin : BinaryIO
        Byte stream to read.
    logger : SamplerLogger
        Receives completion, interruption and read-failure events.

    Returns
    -------
    int
        `EXIT_OK` after end of input, `EXIT_INTERRUPTED` after SIGINT/SIGTERM.

    Raises
    ------
    OSError
        Re-raised after logging when the stream fails.

    Notes
    -----
    - SIGTERM is routed to `KeyboardInterrupt` for the duration of the run so
      both signals leave the sampler's partial sample available. The previous
      handler is restored afterwards.
    """

    previous_handler = signal.signal(signal.SIGTERM, raise_interrupt)
    try:
        sampler.consume(Utf8ChunkReader(stdin))
    except KeyboardInterrupt:
        logger.warning(
            "sampling_interrupted",
            msg="Interrupted; emitting partial sample",
            context=sampler.snapshot(),
        )
        return EXIT_INTERRUPTED
    except OSError as exc:
        logger.error("stdin_read_failed", msg=str(exc), context=sampler.snapshot())
        raise
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    logger.info("sampling_finished", context=sampler.snapshot())
    return EXIT_OK


def raise_interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt


def write_usage_error(message: str, stderr: TextIO) -> None:
    stderr.write(f"Error: {message}\n{USAGE_MESSAGE}\n")
    stderr.flush()


def run() -> None:
    """Console-script wrapper around `main`."""

    sys.exit(main())


if __name__ == "__main__":
    run()
