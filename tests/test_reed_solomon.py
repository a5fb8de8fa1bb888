"""Tests for the Reed-Solomon block codec and its decoding algebra."""

import numpy as np
import pytest

from galoisfec.ecc.berlekamp_massey import (
    LFSRState,
    berlekamp_massey,
    calculate_syndromes,
    erasure_locator,
    error_evaluator,
    find_errors,
    forney,
    generator_polynomial,
)
from galoisfec.ecc.reed_solomon import DECODE_FAILURE, ReedSolomon
from galoisfec.fields.gf2p import GF2pField
from galoisfec.fields.polynomial import GF2pPolynomial

MESSAGE = (b"Hello, world! Velit omnis consequatur nobis. "
           b"Cum omnis ipsam rerum ut velit minus. Bye!")


def _corrupt(block, positions, rng):
    """XOR a random non-zero value into each of *positions*."""
    block = bytearray(block)
    for pos in positions:
        block[pos] ^= int(rng.randint(1, 256))
    return block


def _zero_last_syndrome(field, ecc_length, positions, rng):
    """Random error values at *positions* whose last syndrome cancels to zero."""
    root = field.exp(ecc_length)
    values = [int(rng.randint(1, 256)) for _ in positions[:-1]]
    total = 0
    for pos, value in zip(positions, values):
        total ^= field.multiply(value, field.pow(root, pos))
    values.append(field.divide(total, field.pow(root, positions[-1])))
    return values


def _apply(block, positions, values):
    block = bytearray(block)
    for pos, value in zip(positions, values):
        block[pos] ^= value
    return block


class TestEncode:
    def test_layout(self):
        rs = ReedSolomon(8)
        encoded = rs.encode(MESSAGE)
        assert len(MESSAGE) == 87
        assert len(encoded) == 95
        assert encoded[rs.ecc_length:] == MESSAGE
        assert rs.check(encoded)

    def test_hello(self):
        rs = ReedSolomon(4)
        encoded = rs.encode(bytes([72, 101, 108, 108, 111]))
        assert len(encoded) == 9
        assert encoded[4:] == b"Hello"
        assert rs.check(encoded)

    def test_codeword_has_generator_roots(self):
        rs = ReedSolomon(10)
        encoded = rs.encode(b"roots of the generator")
        codeword = GF2pPolynomial(rs.field, encoded)
        for i in range(1, 11):
            assert codeword.evaluate(rs.field.exp(i)) == 0

    def test_empty_data(self):
        rs = ReedSolomon(6)
        assert rs.encode(b"") == bytes(6)
        assert rs.decode(bytes(6)) == b""

    def test_offset(self):
        rs = ReedSolomon(8)
        destination = bytearray(70)
        written = rs.encode_into(MESSAGE, 5, 20, destination, 30)
        assert written == 28
        assert destination[30:58] == rs.encode(MESSAGE[5:25])
        assert destination[:30] == bytes(30)
        assert rs.encode(MESSAGE, 5, 20) == rs.encode(MESSAGE[5:25])

    def test_numpy_input(self):
        rs = ReedSolomon(8)
        data = np.frombuffer(MESSAGE, dtype=np.uint8)
        encoded = rs.encode(data)
        assert encoded == rs.encode(MESSAGE)
        assert rs.decode(np.frombuffer(encoded, dtype=np.uint8)) == MESSAGE

    def test_max_length(self):
        rs = ReedSolomon(20)
        assert rs.max_data_length == 235
        assert len(rs.encode(bytes(235))) == 255
        with pytest.raises(ValueError):
            rs.encode(bytes(236))

    @pytest.mark.parametrize("nsym", [1, 2, 8, 10, 32, 64])
    def test_matches_reedsolo(self, nsym):
        reedsolo = pytest.importorskip("reedsolo")
        codec = reedsolo.RSCodec(nsym, fcr=1, prim=0x11D, generator=2, c_exp=8)
        rs = ReedSolomon(nsym)
        rng = np.random.RandomState(nsym)
        for length in (1, 17, 255 - nsym):
            data = rng.randint(0, 256, length, dtype=np.uint8).tobytes()
            # reedsolo lists coefficients highest power first
            expected = bytes(codec.encode(data[::-1]))[::-1]
            assert rs.encode(data) == expected


class TestDecode:
    def test_scenario(self):
        rs = ReedSolomon(8)
        encoded = bytearray(rs.encode(MESSAGE))
        assert rs.decode(encoded) == MESSAGE

        # four unknown errors are within capacity
        encoded[7] = 77
        encoded[22] = 44
        encoded[62] = 11
        encoded[81] = 0
        assert not rs.check(encoded)
        assert rs.decode(encoded) == MESSAGE

        # five are not
        encoded[2] = 1
        assert rs.decode(encoded) is None

        # unless the positions are known
        assert rs.decode(encoded, error_positions=[2, 7, 22, 62, 81],
                         all_errors_known=True) == MESSAGE
        encoded[12] = 2
        assert rs.decode(encoded, error_positions=[2, 7, 12, 22, 62]) == MESSAGE

        # eight erasures fill the whole budget
        encoded[23] = 3
        encoded[40] = 4
        positions = [2, 7, 12, 22, 23, 40, 62, 81]
        assert rs.decode(encoded, error_positions=positions, all_errors_known=True) == MESSAGE
        assert rs.decode(encoded, error_positions=positions, all_errors_known=False) == MESSAGE

        encoded[70] = 5
        positions = [2, 7, 12, 22, 23, 40, 62, 70, 81]
        assert rs.decode(encoded, error_positions=positions, all_errors_known=True) is None

    def test_offset_scenario(self):
        rs = ReedSolomon(8)
        encoded = bytearray(rs.encode(MESSAGE))
        half = MESSAGE[:43]
        encoded_length = 43 + rs.ecc_length
        rs.encode_into(MESSAGE, 0, 43, encoded, 10)

        assert rs.check(encoded, 10, encoded_length)
        assert rs.decode(encoded, 10, encoded_length) == half
        decoded = bytearray(43 + 30)
        assert rs.decode_into(encoded, 10, encoded_length, decoded, 20) == 43
        assert decoded[20:63] == half

        # four errors at unknown positions
        encoded[11] = 77
        encoded[17] = 44
        encoded[23] = 11
        encoded[34] = 0
        decoded = bytearray(73)
        assert rs.decode_into(encoded, 10, encoded_length, decoded, 20) == 43
        assert decoded[20:63] == half

        # eight errors need their positions, given relative to the offset
        encoded[13] = 1
        encoded[19] = 2
        encoded[27] = 3
        encoded[31] = 4
        assert rs.decode_into(encoded, 10, encoded_length, decoded, 20) == DECODE_FAILURE
        decoded = bytearray(73)
        assert rs.decode_into(encoded, 10, encoded_length, decoded, 20,
                              [1, 3, 7, 9, 13, 17, 21, 24]) == 43
        assert decoded[20:63] == half

    def test_hello_scenario(self):
        rs = ReedSolomon(4)
        encoded = bytearray(rs.encode(b"Hello"))
        two = bytearray(encoded)
        two[1] ^= 0x55
        two[6] ^= 0x0F
        assert rs.decode(two) == b"Hello"

        five = bytearray(encoded)
        for pos in (0, 2, 4, 6, 8):
            five[pos] ^= 0xA5
        assert rs.decode(five) is None

    def test_no_parity(self):
        rs = ReedSolomon(0)
        assert rs.encode(b"abc") == b"abc"
        assert rs.check(b"abc")
        assert rs.decode(b"xyz") == b"xyz"
        assert rs.decode(b"") == b""

    @pytest.mark.parametrize("nsym", [2, 5, 8, 16, 32])
    def test_random_errors(self, nsym):
        rs = ReedSolomon(nsym)
        rng = np.random.RandomState(1000 + nsym)
        for _ in range(20):
            length = int(rng.randint(0, 256 - nsym))
            data = rng.randint(0, 256, length, dtype=np.uint8).tobytes()
            encoded = rs.encode(data)
            count = int(rng.randint(0, nsym // 2 + 1))
            positions = rng.choice(len(encoded), count, replace=False)
            assert rs.decode(_corrupt(encoded, positions, rng)) == data

    @pytest.mark.parametrize("nsym", [4, 9, 16])
    def test_random_errors_and_erasures(self, nsym):
        rs = ReedSolomon(nsym)
        rng = np.random.RandomState(2000 + nsym)
        for _ in range(20):
            data = rng.randint(0, 256, int(rng.randint(1, 200)), dtype=np.uint8).tobytes()
            encoded = rs.encode(data)
            erasures = int(rng.randint(0, nsym + 1))
            errors = int(rng.randint(0, (nsym - erasures) // 2 + 1))
            positions = [int(p) for p in
                         rng.choice(len(encoded), erasures + errors, replace=False)]
            corrupted = _corrupt(encoded, positions, rng)
            assert rs.decode(corrupted, error_positions=positions[:erasures]) == data
            assert rs.decode(corrupted, error_positions=positions,
                             all_errors_known=True) == data

    def test_erasure_with_correct_value(self):
        rs = ReedSolomon(6)
        encoded = bytearray(rs.encode(b"erasures may be right"))
        encoded[3] ^= 9
        # position 10 is flagged but holds the right byte
        assert rs.decode(encoded, error_positions=[3, 10]) == b"erasures may be right"

    def test_duplicate_erasures(self):
        rs = ReedSolomon(4)
        encoded = bytearray(rs.encode(b"duplicates"))
        encoded[5] ^= 1
        encoded[9] ^= 2
        assert rs.decode(encoded, error_positions=[5, 5, 9, 9, 5, 9, 5]) == b"duplicates"

    def test_all_errors_known_without_positions(self):
        rs = ReedSolomon(4)
        encoded = bytearray(rs.encode(b"Hello"))
        assert rs.decode(encoded, all_errors_known=True) == b"Hello"
        encoded[0] ^= 1
        assert rs.decode(encoded, all_errors_known=True) is None

    def test_too_many_erasures(self):
        rs = ReedSolomon(4)
        encoded = bytearray(rs.encode(b"Hello"))
        encoded[0] ^= 1
        assert rs.decode(encoded, error_positions=[0, 1, 2, 3, 4]) is None

    def test_trailing_zero_syndrome(self):
        rs = ReedSolomon(8)
        data = bytes(np.random.RandomState(0).randint(0, 256, 247).tolist())
        corrupted = _apply(rs.encode(data), [250, 115, 91, 202], [168, 213, 187, 138])
        syndromes = calculate_syndromes(GF2pPolynomial(rs.field, corrupted), 8)
        assert len(syndromes) < 8
        assert rs.decode(corrupted) == data

    @pytest.mark.parametrize("nsym", [4, 8, 16])
    def test_last_syndrome_zero_at_capacity(self, nsym):
        rs = ReedSolomon(nsym)
        rng = np.random.RandomState(3000 + nsym)
        for _ in range(25):
            data = rng.randint(0, 256, int(rng.randint(1, 256 - nsym)), dtype=np.uint8).tobytes()
            encoded = rs.encode(data)

            positions = [int(p) for p in rng.choice(len(encoded), nsym // 2, replace=False)]
            corrupted = _apply(encoded, positions, _zero_last_syndrome(rs.field, nsym, positions, rng))
            assert len(calculate_syndromes(GF2pPolynomial(rs.field, corrupted), nsym)) < nsym
            assert rs.decode(corrupted) == data

            positions = [int(p) for p in rng.choice(len(encoded), nsym, replace=False)]
            corrupted = _apply(encoded, positions, _zero_last_syndrome(rs.field, nsym, positions, rng))
            assert rs.decode(corrupted, error_positions=positions, all_errors_known=True) == data
            assert rs.decode(corrupted, error_positions=positions) == data

    @pytest.mark.parametrize("nsym", [4, 8])
    def test_full_capacity_sweep(self, nsym):
        rs = ReedSolomon(nsym)
        rng = np.random.RandomState(4000 + nsym)
        for _ in range(300):
            data = rng.randint(0, 256, int(rng.randint(1, 256 - nsym)), dtype=np.uint8).tobytes()
            encoded = rs.encode(data)
            positions = rng.choice(len(encoded), nsym // 2, replace=False)
            assert rs.decode(_corrupt(encoded, positions, rng)) == data
            erased = [int(p) for p in rng.choice(len(encoded), nsym, replace=False)]
            corrupted = _corrupt(encoded, erased, rng)
            assert rs.decode(corrupted, error_positions=erased, all_errors_known=True) == data

    def test_maximum_ecc_length(self):
        rs = ReedSolomon(254)
        encoded = rs.encode(b"\x5a")
        assert len(encoded) == 255
        assert rs.check(encoded)
        assert rs.decode(encoded) == b"\x5a"

        rng = np.random.RandomState(254)
        errors = rng.choice(255, 127, replace=False)
        assert rs.decode(_corrupt(encoded, errors, rng)) == b"\x5a"

        erased = [int(p) for p in rng.choice(255, 254, replace=False)]
        corrupted = _corrupt(encoded, erased, rng)
        assert rs.decode(corrupted, error_positions=erased, all_errors_known=True) == b"\x5a"
        assert rs.decode(corrupted, error_positions=erased) == b"\x5a"

    def test_numpy_error_positions(self):
        rs = ReedSolomon(4)
        encoded = bytearray(rs.encode(b"array positions"))
        encoded[5] ^= 0x21
        encoded[6] ^= 0x42
        assert rs.decode(encoded, error_positions=np.array([5, 6])) == b"array positions"
        assert rs.decode(encoded, error_positions=np.array([6, 5, 5]),
                         all_errors_known=True) == b"array positions"
        assert rs.decode(encoded, error_positions=np.array([], dtype=np.int64)) == b"array positions"


class TestArguments:
    @pytest.mark.parametrize("ecc_length", [-1, 255, 300])
    def test_ecc_length(self, ecc_length):
        with pytest.raises(ValueError):
            ReedSolomon(ecc_length)

    def test_field_power(self):
        with pytest.raises(ValueError, match="power must equal 8"):
            ReedSolomon(4, GF2pField(7))

    def test_custom_field(self):
        rs = ReedSolomon(6, GF2pField(8, 0x12D))
        encoded = bytearray(rs.encode(b"another prime"))
        encoded[2] ^= 0x40
        assert rs.decode(encoded) == b"another prime"
        assert rs.encode(b"another prime") != ReedSolomon(6).encode(b"another prime")

    def test_block_too_short(self):
        rs = ReedSolomon(8)
        with pytest.raises(ValueError, match="at least ecc_length"):
            rs.decode(bytes(7))
        with pytest.raises(ValueError):
            rs.check(bytes(7))

    def test_block_too_long(self):
        rs = ReedSolomon(8)
        with pytest.raises(ValueError, match="at most 255"):
            rs.decode(bytes(256))

    def test_range_outside_buffer(self):
        rs = ReedSolomon(8)
        encoded = rs.encode(MESSAGE)
        with pytest.raises(ValueError):
            rs.decode(encoded, 10, 90)
        with pytest.raises(ValueError):
            rs.check(encoded, -1, 20)
        with pytest.raises(ValueError):
            rs.encode(MESSAGE, 80, 10)

    def test_destination_too_small(self):
        rs = ReedSolomon(8)
        encoded = rs.encode(MESSAGE)
        with pytest.raises(ValueError):
            rs.encode_into(MESSAGE, 0, 10, bytearray(17), 0)
        with pytest.raises(ValueError):
            rs.decode_into(encoded, 0, len(encoded), bytearray(90), 5)

    def test_error_position_outside_block(self):
        rs = ReedSolomon(8)
        encoded = rs.encode(b"short")
        with pytest.raises(ValueError, match="outside the block"):
            rs.decode(encoded, error_positions=[len(encoded)])
        with pytest.raises(ValueError):
            rs.decode(encoded, error_positions=[-1])

    def test_repr(self):
        assert repr(ReedSolomon(4)).startswith("ReedSolomon(ecc_length=4")


class TestDecoderAlgebra:
    @pytest.fixture
    def field(self):
        return GF2pField(8)

    def test_generator_polynomial(self, field):
        gen = generator_polynomial(field, 8)
        assert gen.degree == 8
        assert gen[8] == 1
        for i in range(1, 9):
            assert gen.evaluate(field.exp(i)) == 0
        assert gen.evaluate(1) != 0
        assert generator_polynomial(field, 0) == GF2pPolynomial(field, [1])

    def test_syndromes(self, field):
        rs = ReedSolomon(6)
        encoded = bytearray(rs.encode(b"syndromes"))
        assert calculate_syndromes(GF2pPolynomial(field, encoded), 6).is_zero
        encoded[4] ^= 0x21
        syndromes = calculate_syndromes(GF2pPolynomial(field, encoded), 6)
        # a single error e at position p gives S_i = e * g^(p*(i+1))
        for i in range(6):
            assert syndromes[i] == field.multiply(0x21, field.exp(4 * (i + 1)))

    def test_erasure_locator_roots(self, field):
        locator = erasure_locator([3, 10], field)
        assert locator.degree == 2
        assert locator[0] == 1
        assert find_errors(locator, 20) == [3, 10]
        # the root for position 10 lies outside a 5 byte block
        assert find_errors(locator, 5) is None
        assert find_errors(GF2pPolynomial(field, [1]), 20) == []

    def test_forney(self, field):
        rs = ReedSolomon(8)
        encoded = rs.encode(b"magnitudes")
        magnitudes = {1: 0x11, 6: 0xFE, 12: 0x03}
        corrupted = bytearray(encoded)
        for pos, value in magnitudes.items():
            corrupted[pos] ^= value
        syndromes = calculate_syndromes(GF2pPolynomial(field, corrupted), 8)
        locator = erasure_locator(magnitudes, field)
        evaluator = error_evaluator(syndromes, locator, 8)
        assert forney(evaluator, list(magnitudes)) == list(magnitudes.values())

    def test_berlekamp_massey_finds_errors(self, field):
        rs = ReedSolomon(10)
        encoded = rs.encode(b"locate these errors please")
        corrupted = bytearray(encoded)
        for pos in (0, 9, 17, 30):
            corrupted[pos] ^= 0x5A
        syndromes = calculate_syndromes(GF2pPolynomial(field, corrupted), 10)
        locator, evaluator = berlekamp_massey(syndromes, 10)
        assert locator.degree == 4
        assert find_errors(locator, len(corrupted)) == [0, 9, 17, 30]
        assert forney(evaluator, [0, 9, 17, 30]) == [0x5A] * 4

    def test_lfsr_state_with_only_erasures(self, field):
        rs = ReedSolomon(6)
        corrupted = bytearray(rs.encode(b"all erased"))
        positions = [0, 2, 4, 6, 8, 10]
        for pos in positions:
            corrupted[pos] ^= 0x77
        syndromes = calculate_syndromes(GF2pPolynomial(field, corrupted), 6)
        gamma = erasure_locator(positions, field)
        state = LFSRState.initial(syndromes, 6, gamma, len(positions)).run(syndromes)
        assert state.locator == gamma
        assert state.length == 6
        assert state.errata_evaluator() == error_evaluator(syndromes, gamma, 6)

    def test_lfsr_state_key_equation(self, field):
        rs = ReedSolomon(12)
        corrupted = bytearray(rs.encode(b"errors and erasures together"))
        erased = [3, 14]
        for pos in erased + [7, 20, 25]:
            corrupted[pos] ^= 0x3C
        syndromes = calculate_syndromes(GF2pPolynomial(field, corrupted), 12)
        state = LFSRState.initial(syndromes, 12, erasure_locator(erased, field), len(erased))
        for k in range(len(erased), 12):
            state.step(syndromes, k)
            assert state.evaluator == (syndromes * state.locator).truncate(12)
        assert state.length == 5
        assert find_errors(state.locator, len(corrupted)) == [3, 7, 14, 20, 25]

    def test_lfsr_initial_without_erasures(self, field):
        syndromes = GF2pPolynomial(field, [1, 2, 3, 4])
        state = LFSRState.initial(syndromes, 4)
        assert state.locator == GF2pPolynomial(field, [1])
        assert state.length == 0
        assert state.erasure_count == 0
        assert state.evaluator == syndromes

    def test_lfsr_state_runs_every_syndrome(self, field):
        rs = ReedSolomon(8)
        rng = np.random.RandomState(8)
        encoded = rs.encode(b"the last syndrome cancels")
        positions = [2, 11, 19, 27]
        values = _zero_last_syndrome(field, 8, positions, rng)
        syndromes = calculate_syndromes(GF2pPolynomial(field, _apply(encoded, positions, values)), 8)
        assert len(syndromes) < 8

        state = LFSRState.initial(syndromes, 8).run(syndromes)
        assert state.syndrome_count == 8
        assert state.evaluator == (syndromes * state.locator).truncate(8)
        errors = {pos: value for pos, value in zip(positions, values) if value}
        assert state.length == len(errors)
        assert find_errors(state.locator, len(encoded)) == list(errors)
        assert forney(state.errata_evaluator(), list(errors)) == list(errors.values())
