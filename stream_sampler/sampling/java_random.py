"""
Purpose
-------
Provide a deterministic 48-bit linear congruential generator whose draws are
bit-for-bit identical to the classic `java.util.Random` sequence, so seeded
samples are reproducible across implementations.

Key behaviors
-------------
- Scrambles the seed with the LCG multiplier before the first draw.
- Advances a 48-bit state as `state = (state * 0x5DEECE66D + 0xB) mod 2**48`.
- Derives `next_int32`, `next_long`, `next_double` and the rejection-sampled
  `next_int(bound)` from the top bits of each new state.

Conventions
-----------
- `next_bits(32)` and `next_long()` return signed values in the 32-bit and
  64-bit two's complement ranges respectively.
- `next_double()` returns a float in [0.0, 1.0) with 53 bits of randomness.
- Each instance owns its state; there is no module-level generator.

Downstream usage
----------------
Construct one `JavaRandom(seed)` per sampling run and hand it to a sampler:

    rng = JavaRandom(0)
    sampler = ExactReservoirSampler(cap=10, rng=rng)
"""

import numpy as np

MULTIPLIER: int = 0x5DEECE66D
ADDEND: int = 0xB
STATE_MASK: int = (1 << 48) - 1
DOUBLE_UNIT: float = 1.0 / (1 << 53)


def to_signed(value: int, bits: int) -> int:
    """
    Reinterpret the low `bits` bits of `value` as a two's complement integer.

    Parameters
    ----------
    value : int
        Arbitrary Python integer.
    bits : int
        Width of the target integer type (32 or 64).

    Returns
    -------
    int
        Value in `[-2**(bits-1), 2**(bits-1))`.
    """

    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def default_seed() -> int:
    """Draw a fresh seed from numpy's OS entropy source."""

    return int(np.random.SeedSequence().entropy)


class JavaRandom:
    """
    Purpose
    -------
    Seeded pseudo-random generator reproducing the `java.util.Random` LCG.

    Key behaviors
    -------------
    - Exposes the primitive `next_bits(bits)` draw and the derived
      `next_int32`, `next_long`, `next_int(bound)` and `next_double`.
    - Supports re-seeding via `set_seed(...)` and inspection of the raw
      48-bit state via `seed`.

    Parameters
    ----------
    seed : int or None, optional
        Initial seed. Any Python int is accepted; only its low 48 bits
        affect the sequence. When None, a seed is drawn from OS entropy.

    Attributes
    ----------
    seed : int
        Current 48-bit internal state (read-only property).

    Notes
    -----
    - The class is not thread-safe. Give every concurrent sampling run its
      own instance.
    """

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = default_seed()
        self._state: int = 0
        self.set_seed(seed)

    @property
    def seed(self) -> int:
        return self._state

    def set_seed(self, seed: int) -> None:
        """
        Reset the generator to the sequence determined by `seed`.

        Parameters
        ----------
        seed : int
            New seed; scrambled as `(seed ^ MULTIPLIER) & STATE_MASK`.

        Returns
        -------
        None
        """

        self._state = (seed ^ MULTIPLIER) & STATE_MASK

    def next_bits(self, bits: int) -> int:
        """
        Advance the state once and return its top `bits` bits.

        Parameters
        ----------
        bits : int
            Number of bits to return, 1 through 32.

        Returns
        -------
        int
            The top `bits` bits of the new state. For `bits == 32` the value is
            reinterpreted as a signed 32-bit integer; narrower draws are always
            non-negative.
        """

        self._state = (self._state * MULTIPLIER + ADDEND) & STATE_MASK
        return to_signed(self._state >> (48 - bits), 32)

    def next_int32(self) -> int:
        return self.next_bits(32)

    def next_long(self) -> int:
        """
        Combine two consecutive 32-bit draws into one signed 64-bit value.

        Returns
        -------
        int
            `(next_int32() << 32) + next_int32()` wrapped to 64 bits.

        Notes
        -----
        - The low half is sign-extended before the addition, so a negative
          second draw borrows from the high half exactly as 64-bit integer
          arithmetic would.
        """

        high: int = self.next_int32()
        low: int = self.next_int32()
        return to_signed((high << 32) + low, 64)

    def next_double(self) -> float:
        """Return a float in [0.0, 1.0) built from a 26-bit and a 27-bit draw."""

        return ((self.next_bits(26) << 27) + self.next_bits(27)) * DOUBLE_UNIT

    def next_int(self, bound: int) -> int:
        """
        Draw an integer uniformly from `[0, bound)`.

        Parameters
        ----------
        bound : int
            Exclusive upper bound; must be positive.

        Returns
        -------
        int
            Uniformly distributed integer in `[0, bound)`.

        Raises
        ------
        ValueError
            If `bound` is not positive.

        Notes
        -----
        - Powers of two take the top bits of a single 31-bit draw.
        - Other bounds reduce a 31-bit draw modulo `bound` and redraw whenever
          the draw falls in the incomplete final bucket, detected as
          `u - r + (bound - 1)` overflowing a signed 32-bit integer.
        """

        if bound <= 0:
            raise ValueError("bound must be positive")

        r: int = self.next_bits(31)
        m: int = bound - 1
        if bound & m == 0:
            return (bound * r) >> 31

        u: int = r
        r = u % bound
        while u - r + m > 2**31 - 1:
            u = self.next_bits(31)
            r = u % bound
        return r
