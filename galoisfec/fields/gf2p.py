"""Galois fields GF(2^p) for p from 1 to 31.

Field values are polynomials with coefficients in GF(2), packed into an
integer with the constant term in the lowest bit. So x^3 + x + 1 is 0b1011
(11). Addition is XOR; multiplication is carry-less multiplication reduced
modulo an irreducible ("prime") polynomial.

The non-zero values are the powers g^0 .. g^(order-2) of a generator g.
For fields up to GF(2^8) the powers and their logarithms are tabulated at
construction so multiply/divide become table lookups. Building a field is
therefore comparatively expensive; create one and share it.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

import numpy as np

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_POWER = 31
MAX_TABLE_POWER = 8  # log/exp tables are built up to GF(2^8)

# Default irreducible polynomial for each power 1..31
DEFAULT_PRIMES = (
    3, 7, 11, 19, 37, 67, 131, 285, 529, 1033, 2053, 4179, 8219, 16427, 32771,
    65581, 131081, 262183, 524327, 1048585, 2097157, 4194307, 8388641,
    16777243, 33554441, 67108935, 134217767, 268435465, 536870917,
    1432791463, 2415919105,
)


def _make_square_table() -> list[int]:
    """Squares of every byte as GF(2) polynomials, before reduction.

    (a0 + a1*x + a2*x^2)^2 = a0 + a1*x^2 + a2*x^4 because the cross terms
    appear twice and cancel, so squaring just inserts a 0 between the bits.
    """
    table = [0] * 256
    for i in range(1, 16):
        value = 0
        for j in range(4):
            value |= (i & (1 << j)) << j
        table[i] = value
    for i in range(16, 256):
        table[i] = table[i & 15] | (table[i >> 4] << 8)
    return table


SQUARE_TABLE = _make_square_table()

# Polynomial text such as "1 + x + x^3" or "7 + 2x - 4 x^2"
_TERM = r"\d*\s*x(?:\^\d+)?|\d+"
_POLY_RE = re.compile(
    rf"^\s*[+-]?\s*(?:{_TERM})(?:\s*[+-]\s*(?:{_TERM}))*\s*$")
_TERM_RE = re.compile(r"(\d*)\s*x(?:\^(\d+))?|(\d+)")


def parse_terms(text: str) -> Iterator[tuple[int, int]]:
    """Yield (coefficient, power) pairs from polynomial text.

    Raises ValueError if *text* is not a well-formed polynomial.
    """
    if not _POLY_RE.match(text):
        raise ValueError(f"Malformed polynomial: {text!r}")
    for m in _TERM_RE.finditer(text):
        coef_str, power_str, const_str = m.groups()
        if const_str is not None:
            yield int(const_str), 0
        else:
            coefficient = int(coef_str) if coef_str else 1
            power = int(power_str) if power_str else 1
            yield coefficient, power


def _slow_multiply(a: int, b: int, prime: int, max_value: int) -> int:
    """Shift-and-add multiply, used before the lookup tables exist."""
    product = 0
    while b:
        if b & 1:
            product ^= a
        b >>= 1
        a <<= 1
        # keep a inside the field: clear the power'th bit by subtracting prime
        if a > max_value:
            a ^= prime
    return product


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------

class GF2pField:
    """The Galois field GF(2^power).

    *prime* is the irreducible polynomial defining the field (0 selects the
    default for *power*). *generator* is the base whose powers enumerate
    the non-zero values; it must be 1 for GF(2) and at least 2 otherwise.
    """

    def __init__(self, power: int, prime: int = 0, generator: int = 2):
        if not 1 <= power <= MAX_POWER:
            raise ValueError(f"power must be from 1 to {MAX_POWER}, got {power}")
        if prime < 0 or (prime != 0 and prime < (1 << power)):
            raise ValueError("prime must be at least 2^power")
        if prime >= (1 << (power + 1)):
            raise ValueError("prime must have degree equal to power")
        if power > 1 and generator <= 1:
            raise ValueError("generator must be at least 2")
        if not 0 <= generator < (1 << power):
            raise ValueError("generator must be within the field")

        self.power = power
        self.order = 1 << power
        self.max_value = self.order - 1
        self.prime = prime or DEFAULT_PRIMES[power - 1]
        self.generator = generator

        self.log_table: Optional[np.ndarray] = None
        self.exp_table: Optional[np.ndarray] = None
        # plain-list mirrors for scalar hot paths, int64 copies for fancy indexing
        self._log: Optional[list[int]] = None
        self._exp: Optional[list[int]] = None
        self._log_index: Optional[np.ndarray] = None
        self._exp_index: Optional[np.ndarray] = None
        if power <= MAX_TABLE_POWER:
            self._build_tables()
        else:
            logger.debug("GF(2^%d): no lookup tables, using bitwise arithmetic", power)

    def _build_tables(self) -> None:
        max_value = self.max_value
        logs = [0] * (max_value + 1)  # logs[0] is unused
        exps = [0] * (2 * max_value)
        x = 1
        for i in range(max_value):
            logs[x] = i
            exps[i] = x
            x = _slow_multiply(x, self.generator, self.prime, max_value)
        # doubled so exp[log a + log b] never runs off the end
        for i in range(max_value, 2 * max_value):
            exps[i] = exps[i - max_value]

        self._log = logs
        self._exp = exps
        self.log_table = np.array(logs, dtype=np.uint8)
        self.exp_table = np.array(exps, dtype=np.uint8)
        self.log_table.flags.writeable = False
        self.exp_table.flags.writeable = False
        self._log_index = self.log_table.astype(np.int64)
        self._exp_index = self.exp_table.astype(np.int64)

    @property
    def has_tables(self) -> bool:
        return self._log is not None

    def __repr__(self) -> str:
        return (f"GF2pField(power={self.power}, prime={self.prime}, "
                f"generator={self.generator})")

    def contains(self, value: int) -> bool:
        return 0 <= value <= self.max_value

    # -- arithmetic ---------------------------------------------------------

    def add(self, a: int, b: int) -> int:
        return a ^ b

    def subtract(self, a: int, b: int) -> int:
        """Same as add in characteristic 2."""
        return a ^ b

    def negate(self, n: int) -> int:
        return n

    def multiply(self, a: int, b: int) -> int:
        if a == 0 or b == 0:
            return 0
        if self._log is not None:
            return self._exp[self._log[a] + self._log[b]]
        if a == b:
            return self.square(a)
        return _slow_multiply(a, b, self.prime, self.max_value)

    def multiply_array(self, values, factor: int) -> np.ndarray:
        """Multiply every element of *values* by *factor*.

        Returns a new int64 array. Uses the lookup tables when present.
        """
        values = np.asarray(values, dtype=np.int64)
        if factor == 0 or values.size == 0:
            return np.zeros_like(values)
        if factor == 1:
            return values.copy()
        if self._log is None:
            return np.array([self.multiply(int(v), factor) for v in values],
                            dtype=np.int64)
        out = np.zeros_like(values)
        nonzero = values != 0
        out[nonzero] = self._exp_index[self._log_index[values[nonzero]] + self._log[factor]]
        return out

    def square(self, value: int) -> int:
        """Square *value*; cheaper than multiply(value, value) without tables."""
        if self._log is not None:
            return self._exp[self._log[value] * 2] if value else 0
        spread = 0
        shift = 0
        while value:
            spread |= SQUARE_TABLE[value & 0xFF] << shift
            value >>= 8
            shift += 16
        return self._reduce(spread)

    def divide(self, numerator: int, denominator: int) -> int:
        if denominator == 0:
            raise ZeroDivisionError("GF(2^p) division by zero")
        if self._log is not None:
            if numerator == 0:
                return 0
            return self._exp[self._log[numerator] + self.max_value - self._log[denominator]]
        return self.multiply(numerator, self.invert(denominator))

    def invert(self, n: int) -> int:
        """Return 1/n. Raises ZeroDivisionError for zero."""
        if n == 0:
            raise ZeroDivisionError("zero has no inverse")
        if self._log is not None:
            return self._exp[self.max_value - self._log[n]]

        # extended Euclid on GF(2) polynomials, stepping by degree difference.
        # invariant: b*n0 == n and c*n0 == m (mod prime)
        b, c, m = 1, 0, self.prime
        while n > 1:
            j = n.bit_length() - m.bit_length()
            if j < 0:
                j = -j
                n, m = m, n
                b, c = c, b
            n ^= m << j
            b ^= c << j
        return b

    def pow(self, value: int, exponent: int) -> int:
        """Raise *value* to any integer power, including negative ones."""
        if value == 0:
            if exponent < 0:
                raise ZeroDivisionError("zero cannot be raised to a negative power")
            return 1 if exponent == 0 else 0
        if exponent < 0 or exponent >= self.max_value:
            # non-zero values form a cyclic group of order max_value
            exponent %= self.max_value

        if self._exp is not None:
            if value == self.generator:
                return self._exp[exponent]
            return self._exp[(self._log[value] * exponent) % self.max_value]

        if exponent <= 1:
            return 1 if exponent == 0 else value
        if value == 1:
            return 1
        result = 1
        while True:
            if exponent & 1:
                result = self.multiply(result, value)
            exponent >>= 1
            if not exponent:
                return result
            value = self.square(value)

    def exp(self, n: int) -> int:
        """Return generator^n."""
        if self._exp is not None and 0 <= n < len(self._exp):
            return self._exp[n]
        return self.pow(self.generator, n)

    def log(self, n: int) -> int:
        """Discrete logarithm of *n* base generator (fields up to GF(2^8))."""
        if n <= 0:
            raise ValueError("logarithm argument must be positive")
        if not self.contains(n):
            raise ValueError(f"{n} is not an element of GF(2^{self.power})")
        if self._log is None:
            raise NotImplementedError(
                f"Logarithms are only supported for fields up to GF(2^{MAX_TABLE_POWER}).")
        return self._log[n]

    def _reduce(self, value: int) -> int:
        """Reduce a product of degree < 2*power-1 back into the field."""
        if value > self.max_value:
            for shift in range(self.power - 2, -1, -1):
                if value & (1 << (shift + self.power)):
                    value ^= self.prime << shift
                    if value <= self.max_value:
                        break
        return value

    # -- text form ----------------------------------------------------------

    def format_value(self, value: int) -> str:
        """Render a field value as a GF(2) polynomial, e.g. "1 + x + x^3"."""
        if value == 0:
            return "0"
        terms = []
        i = 0
        while value:
            if value & 1:
                terms.append("1" if i == 0 else "x" if i == 1 else f"x^{i}")
            value >>= 1
            i += 1
        return " + ".join(terms)

    def parse_value(self, text: str) -> int:
        """Parse the form produced by format_value.

        Coefficients are taken mod 2 and repeated terms cancel.
        """
        value = 0
        for coefficient, power in parse_terms(text):
            if power >= self.power:
                raise ValueError(f"term x^{power} is outside GF(2^{self.power})")
            if coefficient & 1:
                value ^= 1 << power
        return value
