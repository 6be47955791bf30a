"""Tests for curve operations and hash-to-curve."""
import pytest

from zkcds.shared.curve import (
    GENERATOR,
    ORDER,
    P,
    deserialize_point,
    expand_message_xmd,
    hash_to_curve,
    hash_to_scalar,
    multiply,
    random_scalar,
    scalar_from_bytes,
    scalar_inverse,
    scalar_to_bytes,
    serialize_point,
    sha256,
)
from zkcds.shared.errors import ConfigurationError, MalformedPointError


class TestHashToCurve:
    """Test RFC 9380 hashing onto P-256."""

    def test_expand_message_xmd_vector(self):
        """RFC 9380 K.1, SHA-256, empty message, 32 bytes."""
        out = expand_message_xmd(b"", b"QUUX-V01-CS02-with-expander-SHA256-128", 0x20)
        assert out.hex() == "68a985b87eb6b46952128911f2a4412bbc302a9d759667f87f7a21d803f07235"

    def test_hash_to_curve_vector(self):
        """RFC 9380 J.1.1, P256_XMD:SHA-256_SSWU_RO_, empty message."""
        point = hash_to_curve(b"", b"QUUX-V01-CS02-with-P256_XMD:SHA-256_SSWU_RO_")
        assert "%064x" % point.x() == (
            "2c15230b26dbc6fc9a37051158c95b79656e17a1a920b11394ca91c44247d3e4"
        )

    def test_expand_message_xmd_length(self):
        out = expand_message_xmd(b"abc", b"tag", 96)
        assert len(out) == 96

    def test_deterministic(self):
        a = serialize_point(hash_to_curve(b"+15551234567"))
        b = serialize_point(hash_to_curve(b"+15551234567"))
        assert a == b

    def test_distinct_inputs(self):
        a = serialize_point(hash_to_curve(b"+15551234567"))
        b = serialize_point(hash_to_curve(b"+15551234568"))
        assert a != b

    def test_domain_separation(self):
        a = serialize_point(hash_to_curve(b"+15551234567", b"tag-one"))
        b = serialize_point(hash_to_curve(b"+15551234567", b"tag-two"))
        assert a != b

    def test_output_on_curve(self):
        """Serialized output must parse back through the validating decoder."""
        for msg in (b"", b"a", b"+15551234567"):
            data = serialize_point(hash_to_curve(msg))
            assert serialize_point(deserialize_point(data)) == data


class TestBlinding:
    """Test the algebra the protocol relies on."""

    def test_unblinding_identity(self):
        """[1/d_C]·[d_S]·[d_C]·P == [d_S]·P"""
        point = hash_to_curve(b"+15551234567")
        for _ in range(3):
            d_c, d_s = random_scalar(), random_scalar()
            blinded = multiply(multiply(point, d_c), d_s)
            unblinded = multiply(blinded, scalar_inverse(d_c))
            assert serialize_point(unblinded) == serialize_point(multiply(point, d_s))

    def test_hash_exponent_cancels(self):
        """[1/h]·[h·d_S]·U == [d_S]·U"""
        point = hash_to_curve(b"user point stand-in")
        d_s = random_scalar()
        h = hash_to_scalar(sha256(b"+15551234567"))
        blinded = multiply(point, h * d_s % ORDER)
        assert serialize_point(multiply(blinded, scalar_inverse(h))) == \
            serialize_point(multiply(point, d_s))

    def test_hash_to_scalar_nonzero(self):
        assert hash_to_scalar(b"\x00" * 32) == 1
        assert 0 < hash_to_scalar(b"\xff" * 32) < ORDER


class TestSerialization:
    """Test point and scalar encodings."""

    def test_point_round_trip(self):
        point = multiply(GENERATOR, 12345)
        data = serialize_point(point)
        assert len(data) == 33
        assert data[0] in (2, 3)
        assert serialize_point(deserialize_point(data)) == data

    @pytest.mark.parametrize("data", [
        b"",
        b"\x02" * 32,
        b"\x04" + b"\x01" * 32,
        b"\x00" * 33,
        b"\x02" + b"\xff" * 32,
    ])
    def test_malformed_points(self, data):
        with pytest.raises(MalformedPointError):
            deserialize_point(data)

    def test_x_not_on_curve(self):
        """Roughly half of all x values have no point; some must be rejected."""
        rejected = 0
        for x in range(1, 40):
            try:
                deserialize_point(b"\x02" + x.to_bytes(32, "big"))
            except MalformedPointError:
                rejected += 1
        assert rejected > 0

    def test_non_canonical_x(self):
        """x >= p is rejected even if x - p is a valid coordinate."""
        valid = []
        for x in range(1, 40):
            try:
                deserialize_point(b"\x02" + x.to_bytes(32, "big"))
                valid.append(x)
            except MalformedPointError:
                pass
        assert valid

        shifted = valid[0] + P
        with pytest.raises(MalformedPointError):
            deserialize_point(b"\x02" + shifted.to_bytes(32, "big"))

    def test_scalar_round_trip(self):
        k = random_scalar()
        assert scalar_from_bytes(scalar_to_bytes(k)) == k

    @pytest.mark.parametrize("k", [0, ORDER, ORDER + 1, -1])
    def test_invalid_scalars(self, k):
        with pytest.raises(ConfigurationError):
            scalar_to_bytes(k)

    def test_zero_scalar_has_no_inverse(self):
        with pytest.raises(ConfigurationError):
            scalar_inverse(0)
