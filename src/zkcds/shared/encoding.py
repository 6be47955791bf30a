"""
Bijective encoding of user IDs as curve points (try-and-increment).

The x-coordinate of the encoded point is laid out as

    length (1 byte) || user ID, zero padded (16 bytes) || counter, little endian (15 bytes)

and the point is always the one with even y (SEC1 tag 0x02). The counter
starts at zero and is bumped until x lands on the curve, so about half of
all candidates succeed on the first try.

This is variable time, which is acceptable because encoding only happens
offline while building the index.
"""
from ecdsa.ellipticcurve import PointJacobi

from zkcds.shared.curve import deserialize_point, serialize_point
from zkcds.shared.errors import DecodeError, EncodingError, MalformedPointError

MAX_USER_ID_BYTES = 16
COUNTER_BYTES = 15
EVEN_Y_TAG = 0x02


def user_id_to_bytes(user_id: str) -> bytes:
    payload = user_id.encode("utf-8")
    if len(payload) > MAX_USER_ID_BYTES:
        raise EncodingError(
            f"User ID longer than {MAX_USER_ID_BYTES} bytes",
            details={"length": len(payload)},
        )
    return payload


def _candidate(payload: bytes, counter: int) -> bytes:
    return (
        bytes([EVEN_Y_TAG, len(payload)])
        + payload.ljust(MAX_USER_ID_BYTES, b"\x00")
        + counter.to_bytes(COUNTER_BYTES, "little")
    )


def _try_candidate(payload: bytes, counter: int):
    try:
        return deserialize_point(_candidate(payload, counter))
    except MalformedPointError:
        return None


def encode_user_id(user_id: str, max_attempts: int) -> PointJacobi:
    """
    Encode a user ID as a curve point.

    Raises:
        EncodingError: if the ID is too long or none of the first
            max_attempts counters yields a point on the curve
    """
    payload = user_id_to_bytes(user_id)

    for counter in range(max_attempts):
        point = _try_candidate(payload, counter)
        if point is not None:
            return point

    raise EncodingError(
        "Try-and-increment exhausted its attempts",
        details={"max_attempts": max_attempts},
    )


def decode_user_id(point: PointJacobi, max_attempts: int) -> str:
    """
    Recover the user ID from its encoded point.

    Only the canonical encoding decodes: even y, valid length, zero
    padding, counter below max_attempts and no smaller counter that
    would also have produced a point.

    Raises:
        DecodeError: if the point is not the encoding of any user ID
    """
    try:
        data = serialize_point(point)
    except MalformedPointError as e:
        raise DecodeError(cause=e)

    if data[0] != EVEN_Y_TAG:
        raise DecodeError()

    length = data[1]
    if length > MAX_USER_ID_BYTES:
        raise DecodeError()

    padded = data[2:2 + MAX_USER_ID_BYTES]
    if any(padded[length:]):
        raise DecodeError()
    payload = padded[:length]

    counter = int.from_bytes(data[2 + MAX_USER_ID_BYTES:], "little")
    if counter >= max_attempts:
        raise DecodeError()
    for earlier in range(counter):
        if _try_candidate(payload, earlier) is not None:
            raise DecodeError()

    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(cause=e)
