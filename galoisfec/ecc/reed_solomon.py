"""Reed-Solomon block codec over GF(2^8).

A code with n error-correction symbols can repair up to n erased bytes
(positions known), up to n/2 errors at unknown positions, or any mix where
2 * errors + erasures <= n. Blocks hold at most 255 symbols.

Encoded block layout (systematic)::

    [ecc_length parity bytes][data bytes]

Byte i of a block is the coefficient of x^i, so the data occupies the
high-order terms and the parity is (data * x^ecc_length) mod generator.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..fields.gf2p import GF2pField
from ..fields.polynomial import GF2pPolynomial
from .berlekamp_massey import (
    berlekamp_massey,
    calculate_syndromes,
    erasure_locator,
    error_evaluator,
    find_errors,
    forney,
    generator_polynomial,
)

logger = logging.getLogger(__name__)

MAX_BLOCK_SIZE = 255
MAX_ECC_LENGTH = 254
DECODE_FAILURE = -1


def _validate_range(buffer, offset: int, length: int, name: str = "buffer") -> None:
    if offset < 0 or length < 0 or offset + length > len(buffer):
        raise ValueError(
            f"{name} range [{offset}, {offset + length}) is outside a buffer of {len(buffer)} bytes")


class ReedSolomon:
    """Reed-Solomon encoder/decoder with *ecc_length* parity symbols per block."""

    def __init__(self, ecc_length: int, field: Optional[GF2pField] = None):
        if not 0 <= ecc_length <= MAX_ECC_LENGTH:
            raise ValueError(f"ecc_length must be from 0-{MAX_ECC_LENGTH}, got {ecc_length}")
        if field is None:
            field = GF2pField(8)
        if field.power != 8:
            raise ValueError("field.power must equal 8")
        self.ecc_length = ecc_length
        self.field = field
        self.generator_polynomial = generator_polynomial(field, ecc_length)

    def __repr__(self) -> str:
        return f"ReedSolomon(ecc_length={self.ecc_length}, field={self.field!r})"

    @property
    def max_data_length(self) -> int:
        """Largest data block that fits in one codeword."""
        return MAX_BLOCK_SIZE - self.ecc_length

    # -- encoding -----------------------------------------------------------

    def encode(self, data, offset: int = 0, length: Optional[int] = None) -> bytes:
        """Return *data* (or the given slice of it) prefixed with its parity."""
        if length is None:
            length = len(data) - offset
        if not 0 <= length <= self.max_data_length:
            raise ValueError(
                f"The data length must be from 0 to {self.max_data_length}, got {length}")
        destination = bytearray(length + self.ecc_length)
        self.encode_into(data, offset, length, destination, 0)
        return bytes(destination)

    def encode_into(self, source, offset: int, length: int,
                    destination, dest_offset: int) -> int:
        """Encode into *destination*; returns the bytes written."""
        _validate_range(source, offset, length, "source")
        _validate_range(destination, dest_offset, length + self.ecc_length, "destination")
        if length > self.max_data_length:
            raise ValueError(
                f"The source length can be at most {self.max_data_length}, got {length}")

        ecc = self.ecc_length
        data = bytes(source[offset:offset + length])
        if ecc:
            shifted = GF2pPolynomial._wrap(self.field, bytes(ecc) + data)
            parity = (shifted % self.generator_polynomial).coefficients
            # the remainder drops trailing zeros, so pad it back out
            destination[dest_offset:dest_offset + ecc] = bytes(parity) + bytes(ecc - len(parity))
        destination[dest_offset + ecc:dest_offset + ecc + length] = data
        return length + ecc

    # -- checking / decoding ------------------------------------------------

    def check(self, source, offset: int = 0, length: Optional[int] = None) -> bool:
        """True if the block's syndromes are all zero (no detectable errors)."""
        if length is None:
            length = len(source) - offset
        self._validate_block(source, offset, length)
        return calculate_syndromes(self._to_polynomial(source, offset, length),
                                   self.ecc_length).is_zero

    def decode(self, source, offset: int = 0, length: Optional[int] = None,
               error_positions: Optional[Sequence[int]] = None,
               all_errors_known: bool = False) -> Optional[bytes]:
        """Return the corrected data bytes, or None if the block is uncorrectable.

        *error_positions* are indexes (relative to *offset*) known to be
        wrong. With *all_errors_known* the decoder trusts that list and does
        not search for further errors.
        """
        if length is None:
            length = len(source) - offset
        self._validate_block(source, offset, length)
        destination = bytearray(length - self.ecc_length)
        written = self.decode_into(source, offset, length, destination, 0,
                                   error_positions, all_errors_known)
        return bytes(destination) if written != DECODE_FAILURE else None

    def decode_into(self, source, offset: int, length: int, destination,
                    dest_offset: int,
                    error_positions: Optional[Sequence[int]] = None,
                    all_errors_known: bool = False) -> int:
        """Decode into *destination*.

        Returns the number of data bytes written, or DECODE_FAILURE if the
        block has more errors than the code can correct. Bad arguments raise
        ValueError.
        """
        self._validate_block(source, offset, length)
        ecc = self.ecc_length
        data_length = length - ecc
        _validate_range(destination, dest_offset, data_length, "destination")

        positions: list[int] = []
        if error_positions is not None and len(error_positions):
            for position in error_positions:
                if not 0 <= position < length:
                    raise ValueError(
                        f"error position {position} is outside the block of {length} bytes")
            positions = sorted({int(p) for p in error_positions})

        block = list(bytes(source[offset:offset + length]))
        message = GF2pPolynomial._wrap(self.field, block)
        syndromes = calculate_syndromes(message, ecc)
        if syndromes.is_zero:
            destination[dest_offset:dest_offset + data_length] = bytes(block[ecc:])
            return data_length

        if len(positions) > ecc:
            logger.debug("Uncorrectable block: %d erasures exceed %d ECC symbols",
                         len(positions), ecc)
            return DECODE_FAILURE

        if positions:
            locator = erasure_locator(positions, self.field)
            evaluator = error_evaluator(syndromes, locator, ecc)
        elif all_errors_known:
            logger.debug("Uncorrectable block: corrupt but no error positions given")
            return DECODE_FAILURE
        else:
            locator = evaluator = None

        if not all_errors_known:
            locator, evaluator = berlekamp_massey(syndromes, ecc, locator, len(positions))

        found = find_errors(locator, length)
        if found is None or len(found) > ecc:
            logger.debug("Uncorrectable block: locator of degree %d has %s roots in %d positions",
                         locator.degree, "mismatched" if found is None else len(found), length)
            return DECODE_FAILURE

        for position, magnitude in zip(found, forney(evaluator, found)):
            block[position] ^= magnitude

        # an over-capacity block can still yield a consistent root set;
        # only accept the result if it is a codeword
        corrected = GF2pPolynomial._wrap(self.field, block)
        if not calculate_syndromes(corrected, ecc).is_zero:
            logger.debug("Uncorrectable block: correction of %d positions is not a codeword",
                         len(found))
            return DECODE_FAILURE

        logger.debug("Corrected %d symbol(s) in a %d byte block", len(found), length)
        destination[dest_offset:dest_offset + data_length] = bytes(block[ecc:])
        return data_length

    def _validate_block(self, source, offset: int, length: int) -> None:
        if length < self.ecc_length:
            raise ValueError(f"length must be at least ecc_length ({self.ecc_length}), got {length}")
        if length > MAX_BLOCK_SIZE:
            raise ValueError(f"length can be at most {MAX_BLOCK_SIZE}, got {length}")
        _validate_range(source, offset, length, "source")

    def _to_polynomial(self, source, offset: int, length: int) -> GF2pPolynomial:
        return GF2pPolynomial._wrap(self.field, bytes(source[offset:offset + length]))
