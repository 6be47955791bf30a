"""
P-256 group operations used by the protocol.

Point arithmetic and SEC1 parsing come from the ``ecdsa`` package.
Hash-to-curve is RFC 9380 P256_XMD:SHA-256_SSWU_RO_.
"""
import hashlib
import secrets
from typing import List, Tuple

from ecdsa import NIST256p
from ecdsa import errors as ecdsa_errors
from ecdsa import numbertheory
from ecdsa.ellipticcurve import INFINITY, PointJacobi

from zkcds.shared.config import DEFAULT_DST
from zkcds.shared.errors import ConfigurationError, MalformedPointError

CURVE = NIST256p.curve
ORDER = NIST256p.order
GENERATOR = NIST256p.generator

P = CURVE.p()
A = CURVE.a() % P
B = CURVE.b() % P

POINT_SIZE = 33  # SEC1 compressed
SCALAR_SIZE = 32

# RFC 9380 section 8.2 suite parameters for P-256
SSWU_Z = P - 10
FIELD_ELEMENT_LEN = 48  # L = ceil((ceil(log2(p)) + k) / 8), k = 128


# -----------------------------------------------------------------------------
# Scalars
# -----------------------------------------------------------------------------


def random_scalar() -> int:
    """Uniform non-zero scalar."""
    return secrets.randbelow(ORDER - 1) + 1


def validate_scalar(k: int) -> int:
    """Return k if it is a usable secret scalar, else raise ConfigurationError."""
    if not isinstance(k, int) or not 0 < k < ORDER:
        raise ConfigurationError("Secret scalar must be in [1, n-1]")
    return k


def scalar_inverse(k: int) -> int:
    """Inverse of k modulo the group order."""
    if k % ORDER == 0:
        raise ConfigurationError("Zero scalar has no inverse")
    return pow(k, -1, ORDER)


def scalar_to_bytes(k: int) -> bytes:
    return validate_scalar(k).to_bytes(SCALAR_SIZE, "big")


def scalar_from_bytes(data: bytes) -> int:
    if len(data) != SCALAR_SIZE:
        raise ConfigurationError("Serialized scalar must be 32 bytes")
    return validate_scalar(int.from_bytes(data, "big"))


def sha256(data: bytes) -> bytes:
    """The digest used both for bucketing and as the blinding exponent."""
    return hashlib.sha256(data).digest()


def hash_to_scalar(h: bytes) -> int:
    """
    Reduce a digest to a non-zero scalar.

    Maps into [1, n-1] so the result is always invertible.
    """
    return int.from_bytes(h, "big") % (ORDER - 1) + 1


# -----------------------------------------------------------------------------
# Points
# -----------------------------------------------------------------------------


def multiply(point: PointJacobi, k: int) -> PointJacobi:
    """Compute [k]·point."""
    return point * (k % ORDER)


def serialize_point(point: PointJacobi) -> bytes:
    """33-byte SEC1 compressed encoding."""
    if point == INFINITY:
        raise MalformedPointError("Cannot serialize the point at infinity")
    return point.to_bytes("compressed")


def deserialize_point(data: bytes) -> PointJacobi:
    """
    Parse a SEC1 compressed point.

    Raises:
        MalformedPointError: wrong length or tag, non-canonical x, or
            x not on the curve. P-256 has cofactor 1, so every point on
            the curve is in the prime-order group.
    """
    if not isinstance(data, (bytes, bytearray)) or len(data) != POINT_SIZE:
        raise MalformedPointError()
    if data[0] not in (0x02, 0x03):
        raise MalformedPointError()
    if int.from_bytes(data[1:], "big") >= P:
        raise MalformedPointError()

    try:
        return PointJacobi.from_bytes(
            CURVE, bytes(data), valid_encodings=("compressed",), order=ORDER
        )
    except (ecdsa_errors.MalformedPointError, numbertheory.Error) as e:
        raise MalformedPointError(cause=e)


def point_from_affine(x: int, y: int) -> PointJacobi:
    return PointJacobi(CURVE, x, y, 1, ORDER)


# -----------------------------------------------------------------------------
# Hash-to-curve (RFC 9380)
# -----------------------------------------------------------------------------


def expand_message_xmd(msg: bytes, dst: bytes, len_in_bytes: int) -> bytes:
    """RFC 9380 section 5.3.1 with SHA-256."""
    b_in_bytes = 32
    s_in_bytes = 64
    ell = (len_in_bytes + b_in_bytes - 1) // b_in_bytes
    if ell > 255 or len_in_bytes > 65535 or len(dst) > 255:
        raise ValueError("expand_message_xmd: requested length or dst too large")

    dst_prime = dst + bytes([len(dst)])
    z_pad = b"\x00" * s_in_bytes
    l_i_b_str = len_in_bytes.to_bytes(2, "big")

    b_0 = sha256(z_pad + msg + l_i_b_str + b"\x00" + dst_prime)
    b_i = sha256(b_0 + b"\x01" + dst_prime)
    uniform_bytes = [b_i]
    for i in range(2, ell + 1):
        mixed = bytes(x ^ y for x, y in zip(b_0, b_i))
        b_i = sha256(mixed + bytes([i]) + dst_prime)
        uniform_bytes.append(b_i)

    return b"".join(uniform_bytes)[:len_in_bytes]


def hash_to_field(msg: bytes, count: int, dst: bytes) -> List[int]:
    """Hash msg to count elements of GF(p)."""
    pseudo_random_bytes = expand_message_xmd(msg, dst, count * FIELD_ELEMENT_LEN)
    return [
        int.from_bytes(
            pseudo_random_bytes[i * FIELD_ELEMENT_LEN:(i + 1) * FIELD_ELEMENT_LEN], "big"
        ) % P
        for i in range(count)
    ]


def _is_square(x: int) -> bool:
    return pow(x, (P - 1) // 2, P) in (0, 1)


def _sqrt(x: int) -> int:
    # p = 3 mod 4
    return pow(x, (P + 1) // 4, P)


def _sgn0(x: int) -> int:
    return x % 2


def map_to_curve_simple_swu(u: int) -> Tuple[int, int]:
    """Simplified SWU map for A != 0, B != 0 (RFC 9380 section 6.6.2)."""
    z_u2 = SSWU_Z * u * u % P
    denom = (z_u2 * z_u2 + z_u2) % P
    tv1 = pow(denom, -1, P) if denom else 0

    if tv1 == 0:
        x1 = B * pow(SSWU_Z * A % P, -1, P) % P
    else:
        x1 = (P - B) * pow(A, -1, P) * (1 + tv1) % P
    gx1 = (x1 * x1 * x1 + A * x1 + B) % P
    x2 = z_u2 * x1 % P
    gx2 = (x2 * x2 * x2 + A * x2 + B) % P

    if _is_square(gx1):
        x, y = x1, _sqrt(gx1)
    else:
        x, y = x2, _sqrt(gx2)

    if _sgn0(u) != _sgn0(y):
        y = (P - y) % P
    return x, y


def hash_to_curve(msg: bytes, dst: bytes = DEFAULT_DST) -> PointJacobi:
    """
    Hash arbitrary bytes to a P-256 point (random-oracle variant).

    Deterministic, with no known discrete-log relation to the input.
    """
    u0, u1 = hash_to_field(msg, 2, dst)
    q0 = point_from_affine(*map_to_curve_simple_swu(u0))
    q1 = point_from_affine(*map_to_curve_simple_swu(u1))
    # Cofactor is 1, clear_cofactor is the identity
    r = q0 + q1
    if r == INFINITY:
        raise MalformedPointError("hash_to_curve produced the identity")
    return r
