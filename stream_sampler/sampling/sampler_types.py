"""
Purpose
-------
Provide shared type aliases for the stream sampling components.

Key behaviors
-------------
- Capture the shapes accepted as sampling input in a single place.
- Name the reservoir buffer type so signatures stay concise.
- Describe the sampler snapshot attached to diagnostic log entries.

Conventions
-----------
- A `ChunkSource` yields decoded text chunks; an empty string is never
  required to terminate it, exhaustion of the iterable is the end of stream.
- A `SampleSource` is either raw UTF-8 bytes behind a binary stream, decoded
  text, or an already-chunked `ChunkSource`.

Downstream usage
----------------
Import these aliases in `reservoir_sampling`, `extract_sample` and
`stream_sampler_cli` to keep function signatures consistent.
"""

from typing import BinaryIO, Iterable, TypeAlias, TypedDict

import numpy as np

ChunkSource: TypeAlias = Iterable[str]
SampleSource: TypeAlias = str | BinaryIO | ChunkSource
ReservoirBuffer: TypeAlias = np.ndarray


class SamplerSnapshot(TypedDict, total=False):
    """Counters and phase of a sampler, as attached to log entries."""

    count: int
    cap: int
    state: str
    skip: int
    threshold: int
