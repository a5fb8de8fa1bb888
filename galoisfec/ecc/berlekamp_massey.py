"""Reed-Solomon decoding algebra.

The pieces the decoder chains together, each usable on its own:

  1. calculate_syndromes   S_i = r(g^i), i = 1..n (first consecutive root 1)
  2. erasure_locator       Gamma(x) = prod (1 + g^pos x) over known positions
  3. LFSRState / berlekamp_massey
                           shortest LFSR (errata locator) consistent with S,
                           seeded with Gamma so erasures count once
  4. find_errors           positions whose inverse power is a locator root
  5. forney                error magnitudes from the evaluator polynomial

Block position i corresponds to x^i, so an error at position i has locator
X = g^i and contributes the root g^-i.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..fields.gf2p import GF2pField
from ..fields.polynomial import GF2pPolynomial


def calculate_syndromes(message: GF2pPolynomial, ecc_length: int) -> GF2pPolynomial:
    """Syndrome polynomial: coefficient i holds message(g^(i+1))."""
    field = message.field
    return GF2pPolynomial._wrap(
        field, [message.evaluate(field.exp(i + 1)) for i in range(ecc_length)])


def erasure_locator(positions: Iterable[int], field: GF2pField) -> GF2pPolynomial:
    """prod (1 + g^pos x) over the erased *positions*."""
    locator = GF2pPolynomial.constant(field, 1)
    for position in positions:
        locator *= GF2pPolynomial._wrap(field, (1, field.exp(position)))
    return locator


def error_evaluator(syndromes: GF2pPolynomial, locator: GF2pPolynomial,
                    ecc_length: int) -> GF2pPolynomial:
    """x * ((S * locator) mod x^n), the form the Forney step expects.

    *ecc_length* is n. It is passed explicitly because trailing zero
    syndromes are trimmed from the polynomial.
    """
    return (syndromes * locator).truncate(ecc_length) << 1


def generator_polynomial(field: GF2pField, ecc_length: int) -> GF2pPolynomial:
    """prod_{i=1}^{ecc_length} (x - g^i)."""
    poly = GF2pPolynomial.constant(field, 1)
    for i in range(1, ecc_length + 1):
        poly *= GF2pPolynomial._wrap(field, (field.exp(i), 1))
    return poly


# ---------------------------------------------------------------------------
# Berlekamp-Massey
# ---------------------------------------------------------------------------

@dataclass
class LFSRState:
    """Working state of the Berlekamp-Massey iteration.

    The evaluators track (S * locator) mod x^n alongside each locator, so
    the key equation holds for the current and backup pair at every step.
    *length* is the LFSR length L, counting erasures. *syndrome_count* is n,
    which may exceed len(syndromes) when the last syndromes are zero.
    """
    locator: GF2pPolynomial
    evaluator: GF2pPolynomial
    backup_locator: GF2pPolynomial
    backup_evaluator: GF2pPolynomial
    syndrome_count: int
    length: int = 0
    erasure_count: int = 0

    @classmethod
    def initial(cls, syndromes: GF2pPolynomial, ecc_length: int,
                erasures: Optional[GF2pPolynomial] = None,
                erasure_count: int = 0) -> "LFSRState":
        if erasures is None or erasure_count == 0:
            erasures = GF2pPolynomial.constant(syndromes.field, 1)
            erasure_count = 0
        evaluator = (syndromes * erasures).truncate(ecc_length)
        return cls(locator=erasures, evaluator=evaluator,
                   backup_locator=erasures, backup_evaluator=evaluator,
                   syndrome_count=ecc_length,
                   length=erasure_count, erasure_count=erasure_count)

    def discrepancy(self, syndromes: GF2pPolynomial, k: int) -> int:
        """Coefficient k of S * locator; zero when the LFSR predicts S_k."""
        return syndromes.multiply_at(self.locator, k)

    def step(self, syndromes: GF2pPolynomial, k: int) -> int:
        """Absorb syndrome k. Returns the discrepancy that was found."""
        delta = self.discrepancy(syndromes, k)
        n = self.syndrome_count
        shifted_locator = self.backup_locator << 1
        shifted_evaluator = (self.backup_evaluator << 1).truncate(n)
        if delta == 0:
            self.backup_locator = shifted_locator
            self.backup_evaluator = shifted_evaluator
            return delta

        prev_locator, prev_evaluator = self.locator, self.evaluator
        self.locator = prev_locator + shifted_locator * delta
        self.evaluator = prev_evaluator + shifted_evaluator * delta
        if 2 * self.length <= k + self.erasure_count:
            self.backup_locator = prev_locator / delta
            self.backup_evaluator = prev_evaluator / delta
            self.length = k + 1 + self.erasure_count - self.length
        else:
            self.backup_locator = shifted_locator
            self.backup_evaluator = shifted_evaluator
        return delta

    def run(self, syndromes: GF2pPolynomial) -> "LFSRState":
        for k in range(self.erasure_count, self.syndrome_count):
            self.step(syndromes, k)
        return self

    def errata_evaluator(self) -> GF2pPolynomial:
        return self.evaluator << 1


def berlekamp_massey(syndromes: GF2pPolynomial, ecc_length: int,
                     erasures: Optional[GF2pPolynomial] = None,
                     erasure_count: int = 0
                     ) -> tuple[GF2pPolynomial, GF2pPolynomial]:
    """Return the (locator, evaluator) pair for errors and erasures."""
    state = LFSRState.initial(syndromes, ecc_length, erasures, erasure_count).run(syndromes)
    return state.locator, state.errata_evaluator()


# ---------------------------------------------------------------------------
# Root finding and magnitudes
# ---------------------------------------------------------------------------

def find_errors(locator: GF2pPolynomial, length: int) -> Optional[list[int]]:
    """Positions in [0, length) whose inverse power is a root of *locator*.

    A plain scan over the block rather than Chien's search. Returns None
    unless exactly locator.degree roots are found.
    """
    field = locator.field
    expected = locator.degree
    positions: list[int] = []
    for position in range(length):
        if locator.evaluate(field.exp(field.max_value - position)) == 0:
            if len(positions) == expected:
                return None
            positions.append(position)
    return positions if len(positions) == expected else None


def forney(evaluator: GF2pPolynomial, positions: list[int]) -> list[int]:
    """Error magnitude for each of *positions*."""
    field = evaluator.field
    powers = [field.exp(p) for p in positions]
    magnitudes = []
    for i, power in enumerate(powers):
        inv_power = field.invert(power)
        divisor = 1
        for j, other in enumerate(powers):
            if j != i:
                divisor = field.multiply(divisor, field.multiply(other, inv_power) ^ 1)
        magnitudes.append(field.divide(evaluator.evaluate(inv_power), divisor))
    return magnitudes
