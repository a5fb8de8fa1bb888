"""Polynomials whose coefficients lie in a GF(2^p) field.

Coefficients are stored lowest power first, so 1 + 2x + 5x^3 is (1, 2, 0, 5).
Values are immutable and always canonical: there are no trailing zero
coefficients, and the zero polynomial has no coefficients at all (degree -1).
Operators between two polynomials require fields with the same prime.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Union

import numpy as np

from .gf2p import GF2pField, parse_terms


def _check_primes(a: GF2pField, b: GF2pField) -> None:
    if a is not b and a.prime != b.prime:
        raise ValueError("The polynomial fields must use the same prime.")


def _trim(coefficients: list[int]) -> tuple[int, ...]:
    length = len(coefficients)
    while length and coefficients[length - 1] == 0:
        length -= 1
    return tuple(coefficients[:length])


def _div_rem(field: GF2pField, numerator: tuple[int, ...],
             denominator: tuple[int, ...]) -> list[int]:
    """Synthetic division.

    Returns one list holding the remainder (len(denominator)-1 values)
    followed by the quotient.
    """
    result = list(numerator)
    normi = len(denominator) - 1  # index of the leading term, also the remainder length
    norm_inv = field.invert(denominator[normi])
    multiply = field.multiply
    for i in range(len(numerator) - 1 - normi, -1, -1):
        nv = result[i + normi]
        if nv:
            if norm_inv != 1:
                nv = multiply(nv, norm_inv)
                result[i + normi] = nv
            for j in range(normi):
                dv = denominator[j]
                if dv:
                    result[i + j] ^= multiply(nv, dv)
    return result


class GF2pPolynomial:
    """A polynomial over a GF2pField."""

    __slots__ = ("_field", "_coefficients")

    def __init__(self, field: GF2pField, coefficients: Iterable[int] = ()):
        if field is None:
            raise ValueError("field is required")
        coefficients = [int(c) for c in coefficients]
        for c in coefficients:
            if not 0 <= c <= field.max_value:
                raise ValueError("The coefficients must be within the field.")
        self._field = field
        self._coefficients = _trim(coefficients)

    @classmethod
    def constant(cls, field: GF2pField, value: int) -> "GF2pPolynomial":
        return cls(field, (value,))

    @classmethod
    def _wrap(cls, field: GF2pField, coefficients) -> "GF2pPolynomial":
        """Build from coefficients already known to lie in the field."""
        poly = cls.__new__(cls)
        poly._field = field
        poly._coefficients = _trim(list(coefficients))
        return poly

    @classmethod
    def parse(cls, field: GF2pField, text: str) -> "GF2pPolynomial":
        """Parse text such as "7 + 2x + x^2 + 4x^4".

        Repeated powers are combined with field addition (XOR), so signs
        have no effect.
        """
        terms = list(parse_terms(text))
        length = max(power for _, power in terms) + 1
        coefficients = [0] * length
        for coefficient, power in terms:
            if coefficient > field.max_value:
                raise ValueError(f"coefficient {coefficient} is outside the field")
            coefficients[power] ^= coefficient
        return cls._wrap(field, coefficients)

    # -- properties ---------------------------------------------------------

    @property
    def field(self) -> GF2pField:
        return self._field

    @property
    def coefficients(self) -> tuple[int, ...]:
        return self._coefficients

    @property
    def degree(self) -> int:
        """len(self) - 1, which is -1 for the zero polynomial."""
        return len(self._coefficients) - 1

    @property
    def is_zero(self) -> bool:
        return not self._coefficients

    def __len__(self) -> int:
        return len(self._coefficients)

    def __getitem__(self, index: int) -> int:
        return self._coefficients[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._coefficients)

    def __bool__(self) -> bool:
        return bool(self._coefficients)

    def to_array(self) -> np.ndarray:
        return np.array(self._coefficients, dtype=np.int64)

    # -- evaluation ---------------------------------------------------------

    def evaluate(self, x: int) -> int:
        """Evaluate at *x* with Horner's method."""
        field = self._field
        if not field.contains(x):
            raise ValueError("x must lie in the polynomial's field")
        data = self._coefficients
        if not data:
            return 0
        if x == 0:
            return data[0]

        y = data[-1]
        if field.has_tables:
            exp, log = field._exp, field._log
            log_x = log[x]
            for i in range(len(data) - 2, -1, -1):
                y = data[i] ^ exp[log_x + log[y]] if y else data[i]
        else:
            for i in range(len(data) - 2, -1, -1):
                y = data[i] ^ field.multiply(x, y)
        return y

    def multiply_at(self, other: "GF2pPolynomial", index: int) -> int:
        """Coefficient *index* of self * other, without the full product."""
        if index < 0:
            raise ValueError("index must be non-negative")
        a, b = self, other
        if index >= len(a) + len(b) - 1:
            return 0
        if len(a) < len(b):
            a, b = b, a
        if b.is_zero:
            return 0
        _check_primes(a._field, b._field)

        ad, bd = a._coefficients, b._coefficients
        multiply = a._field.multiply
        result = 0
        for i in range(max(0, index + 1 - len(ad)), min(index + 1, len(bd))):
            bv = bd[i]
            if bv:
                result ^= multiply(ad[index - i], bv)
        return result

    def truncate(self, length: int) -> "GF2pPolynomial":
        """Keep only the lowest *length* coefficients."""
        if length < 0:
            raise ValueError("length must be non-negative")
        if length >= len(self):
            return self
        return GF2pPolynomial._wrap(self._field, self._coefficients[:length])

    def div_rem(self, divisor: "GF2pPolynomial"
                ) -> tuple["GF2pPolynomial", "GF2pPolynomial"]:
        """Return (quotient, remainder)."""
        if divisor.is_zero:
            raise ZeroDivisionError("polynomial division by zero")
        _check_primes(self._field, divisor._field)
        field = divisor._field
        index = divisor.degree
        if index >= len(self):
            return GF2pPolynomial(field), self
        result = _div_rem(field, self._coefficients, divisor._coefficients)
        return (GF2pPolynomial._wrap(field, result[index:]),
                GF2pPolynomial._wrap(field, result[:index]))

    # -- operators ----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GF2pPolynomial):
            return NotImplemented
        if not self._coefficients:
            return not other._coefficients
        return (self._field.prime == other._field.prime
                and self._coefficients == other._coefficients)

    def __hash__(self) -> int:
        if not self._coefficients:
            return hash(())
        return hash((self._field.prime, self._coefficients))

    def __add__(self, other: "GF2pPolynomial") -> "GF2pPolynomial":
        if not isinstance(other, GF2pPolynomial):
            return NotImplemented
        _check_primes(self._field, other._field)
        a, b = self, other
        if len(a) < len(b):
            a, b = b, a
        if b.is_zero:
            return a
        result = list(a._coefficients)
        for i, bv in enumerate(b._coefficients):
            result[i] ^= bv
        return GF2pPolynomial._wrap(a._field, result)

    # subtraction is addition in characteristic 2
    __sub__ = __add__

    def __neg__(self) -> "GF2pPolynomial":
        return self

    def __mul__(self, other: Union["GF2pPolynomial", int]) -> "GF2pPolynomial":
        if isinstance(other, GF2pPolynomial):
            return self._multiply(other)
        if isinstance(other, (int, np.integer)):
            return self._scale(int(other))
        return NotImplemented

    def __rmul__(self, other: int) -> "GF2pPolynomial":
        if isinstance(other, (int, np.integer)):
            return self._scale(int(other))
        return NotImplemented

    def _multiply(self, other: "GF2pPolynomial") -> "GF2pPolynomial":
        _check_primes(self._field, other._field)
        a, b = self, other
        if len(a) < len(b):
            a, b = b, a
        if b.is_zero:
            return GF2pPolynomial(a._field)
        if len(b) == 1:
            return a._scale(b[0])

        field = a._field
        # convolve: each non-zero coefficient of b adds a scaled, shifted copy of a
        a_values = a.to_array()
        result = np.zeros(len(a) + len(b) - 1, dtype=np.int64)
        for i, bv in enumerate(b._coefficients):
            if bv:
                result[i:i + len(a)] ^= field.multiply_array(a_values, bv)
        return GF2pPolynomial._wrap(field, result.tolist())

    def _scale(self, factor: int) -> "GF2pPolynomial":
        if not self._field.contains(factor):
            raise ValueError("scalar must lie in the polynomial's field")
        if self.is_zero or factor == 0:
            return GF2pPolynomial(self._field)
        if factor == 1:
            return self
        scaled = self._field.multiply_array(self.to_array(), factor)
        return GF2pPolynomial._wrap(self._field, scaled.tolist())

    def __truediv__(self, other: Union["GF2pPolynomial", int]) -> "GF2pPolynomial":
        if isinstance(other, (int, np.integer)):
            if other == 0:
                raise ZeroDivisionError("polynomial division by zero")
            if not self._field.contains(int(other)):
                raise ValueError("scalar must lie in the polynomial's field")
            if self.is_zero:
                return self
            return self._scale(self._field.invert(int(other)))
        if not isinstance(other, GF2pPolynomial):
            return NotImplemented
        if other.is_zero:
            raise ZeroDivisionError("polynomial division by zero")
        if len(other) == 1:
            _check_primes(self._field, other._field)
            return self / other[0]
        return self.div_rem(other)[0]

    __floordiv__ = __truediv__

    def __mod__(self, other: "GF2pPolynomial") -> "GF2pPolynomial":
        if not isinstance(other, GF2pPolynomial):
            return NotImplemented
        return self.div_rem(other)[1]

    def __divmod__(self, other: "GF2pPolynomial"
                   ) -> tuple["GF2pPolynomial", "GF2pPolynomial"]:
        if not isinstance(other, GF2pPolynomial):
            return NotImplemented
        return self.div_rem(other)

    def __lshift__(self, shift: int) -> "GF2pPolynomial":
        """Multiply by x^shift (a negative shift divides)."""
        if shift < 0:
            return self >> -shift
        if self.is_zero or shift == 0:
            return self
        return GF2pPolynomial._wrap(self._field, (0,) * shift + self._coefficients)

    def __rshift__(self, shift: int) -> "GF2pPolynomial":
        """Divide by x^shift, dropping the low-order terms."""
        if shift < 0:
            return self << -shift
        if self.is_zero or shift == 0:
            return self
        return GF2pPolynomial._wrap(self._field, self._coefficients[shift:])

    # -- text ---------------------------------------------------------------

    def __str__(self) -> str:
        if self.is_zero:
            return "0"
        terms = []
        for i, c in enumerate(self._coefficients):
            if not c:
                continue
            term = str(c) if i == 0 or c > 1 else ""
            if i:
                term += "x" if i == 1 else f"x^{i}"
            terms.append(term)
        return " + ".join(terms)

    def __repr__(self) -> str:
        return f"GF2pPolynomial({self._field!r}, {list(self._coefficients)})"
