"""
Purpose
-------
Provide shared configuration constants for stream decoding, reservoir
thresholds and the command-line surface of the stream sampler.

Key behaviors
-------------
- Fixes the byte block size and character chunk size used when decoding a
  raw byte stream into character chunks (`READ_BLOCK_BYTES`, `CHUNK_CHARS`).
- Pins the stream encoding to UTF-8 for both sampling algorithms.
- Defines the multiple of the sample size at which the fast sampler switches
  to skip-distance evaluation (`THRESHOLD_FACTOR`).
- Holds the verbatim CLI error and usage text and the environment variable
  names read by the CLI.

Conventions
-----------
- `READ_BLOCK_BYTES` and `CHUNK_CHARS` fix the block and chunk layout the
  golden samples were produced with; seeded fast-sampler output depends on them.
- Algorithm names are the lowercase strings "exact" and "fast".

Downstream usage
----------------
Import these constants as read-only configuration:

    from stream_sampler.sampling.sampler_config import CHUNK_CHARS, THRESHOLD_FACTOR

Treat them as immutable at runtime; adjust them here to change behavior
consistently across the package.
"""

READ_BLOCK_BYTES: int = 8192
CHUNK_CHARS: int = 1000
STREAM_ENCODING: str = "utf-8"
DECODE_ERRORS: str = "replace"

THRESHOLD_FACTOR: int = 4
INT32_MAX: int = 2**31 - 1

EXACT_ALGORITHM: str = "exact"
FAST_ALGORITHM: str = "fast"
ALGORITHMS: set[str] = {EXACT_ALGORITHM, FAST_ALGORITHM}
DEFAULT_ALGORITHM: str = FAST_ALGORITHM

SEED_ENV_VAR: str = "STREAM_SAMPLER_SEED"
ALGORITHM_ENV_VAR: str = "STREAM_SAMPLER_ALGORITHM"

ARGUMENT_COUNT_ERROR: str = "Too few or too many arguments passed"
SAMPLE_SIZE_ERROR: str = "Sample size must be positive"
USAGE_MESSAGE: str = (
    "StreamSampler Usage:\n"
    "===================\n"
    "cat abc.txt | stream-sampler n\n"
    'This samples "n" characters from the piped input'
)
