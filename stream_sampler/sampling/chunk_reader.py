"""
Purpose
-------
Turn a raw binary stream into a sequence of decoded UTF-8 character chunks,
the input shape consumed by the reservoir samplers.

Key behaviors
-------------
- Reads fixed-size byte blocks, looping on short reads until a block is full
  or the stream is exhausted.
- Decodes blocks incrementally, carrying an incomplete multi-byte sequence
  over to the next block instead of splitting a character.
- Hands out decoded text in chunks of at most `CHUNK_CHARS` characters; a
  chunk never spans two blocks.
- Signals exhaustion with an empty string from `read_chunk()`.

Conventions
-----------
- A block is `READ_BLOCK_BYTES` bytes minus the bytes of an incomplete
  character still buffered in the decoder, so every decode step works on at
  most `READ_BLOCK_BYTES` bytes.
- Malformed input decodes to U+FFFD; a truncated final character is flushed
  as a single U+FFFD at end of stream.
- Read failures (`OSError`) raised by the stream propagate unchanged; the
  reader performs no retries.

Downstream usage
----------------
Wrap a binary stream and pass the reader to a sampler:

    reader = Utf8ChunkReader(sys.stdin.buffer)
    sampler.consume(reader)
"""

import codecs
from typing import BinaryIO, Iterator

from stream_sampler.sampling.sampler_config import (
    CHUNK_CHARS,
    DECODE_ERRORS,
    READ_BLOCK_BYTES,
    STREAM_ENCODING,
)


class Utf8ChunkReader:
    """
    Purpose
    -------
    Pull-based decoded-character source over a binary stream.

    Key behaviors
    -------------
    - `read_chunk()` returns the next chunk of decoded characters, or "" once
      the stream is exhausted.
    - Iterating the reader yields chunks until exhaustion.

    Parameters
    ----------
    stream : BinaryIO
        Object exposing `read(n) -> bytes`; `b""` signals end of stream.
    block_bytes : int, default=READ_BLOCK_BYTES
        Byte budget of one decode step.
    chunk_chars : int, default=CHUNK_CHARS
        Maximum number of characters per returned chunk.

    Attributes
    ----------
    stream : BinaryIO
        Underlying byte stream; never closed by the reader.
    exhausted : bool
        True once the stream has reported end of input and the decoder has
        been flushed.

    Notes
    -----
    - Chunk boundaries are observable by the fast sampler, so the block and
      chunk sizes must stay fixed for seeded runs to be reproducible.
    """

    def __init__(
        self,
        stream: BinaryIO,
        block_bytes: int = READ_BLOCK_BYTES,
        chunk_chars: int = CHUNK_CHARS,
    ) -> None:
        self.stream = stream
        self.block_bytes = block_bytes
        self.chunk_chars = chunk_chars
        self.exhausted: bool = False
        self._decoder = codecs.getincrementaldecoder(STREAM_ENCODING)(errors=DECODE_ERRORS)
        self._block_text: str = ""
        self._offset: int = 0

    def __iter__(self) -> Iterator[str]:
        while True:
            chunk: str = self.read_chunk()
            if not chunk:
                return
            yield chunk

    def read_chunk(self) -> str:
        """
        Return the next decoded chunk.

        Returns
        -------
        str
            Between 1 and `chunk_chars` characters, or "" when the stream is
            exhausted.

        Raises
        ------
        OSError
            Propagated from the underlying stream's `read`.

        Notes
        -----
        - A new block is only read once the current block's text has been
          fully handed out.
        """

        while self._offset >= len(self._block_text):
            if self.exhausted:
                return ""
            self._block_text = self.read_block()
            self._offset = 0
        end: int = self._offset + self.chunk_chars
        chunk: str = self._block_text[self._offset : end]
        self._offset = end
        return chunk

    def read_block(self) -> str:
        """
        Read and decode one block of bytes.

        Returns
        -------
        str
            Decoded text of the block; may be empty if the block only
            completed a buffered partial character or at end of stream.

        Notes
        -----
        - Sets `exhausted` and flushes the decoder when the stream yields no
          further bytes.
        """

        carried: int = len(self._decoder.getstate()[0])
        raw: bytes = self.read_fully(self.block_bytes - carried)
        if not raw:
            self.exhausted = True
            return self._decoder.decode(b"", final=True)
        return self._decoder.decode(raw)

    def read_fully(self, size: int) -> bytes:
        """
        Read up to `size` bytes, looping on short reads until the stream ends.

        Parameters
        ----------
        size : int
            Number of bytes wanted.

        Returns
        -------
        bytes
            Exactly `size` bytes, or fewer only when the stream is exhausted.
        """

        buffer = bytearray()
        while len(buffer) < size:
            data: bytes = self.stream.read(size - len(buffer))
            if not data:
                break
            buffer += data
        return bytes(buffer)
