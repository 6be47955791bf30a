"""
Client half of the blind query protocol.

The client secret d_C lives in CryptoClient for the client session. Each
phone number is resolved by its own QuerySession, which carries p, h and
cP across the network gap between the two round trips.
"""
from typing import Iterable, Optional

from zkcds.shared.bucketing import bucket_prefix
from zkcds.shared.config import ProtocolConfig
from zkcds.shared.curve import (
    deserialize_point,
    hash_to_curve,
    hash_to_scalar,
    multiply,
    random_scalar,
    scalar_inverse,
    serialize_point,
    sha256,
    validate_scalar,
)
from zkcds.shared.errors import MalformedPointError
from zkcds.shared.protocol import (
    BlindRequest,
    IndexEntry,
    QueryOutcome,
    QueryState,
    RevealRequest,
)
from zkcds.shared.utils import PhoneNumber, phone_to_bytes


class CryptoClient:
    """
    Client-side cryptographic operations.

    Responsible for:
    - Holding the client secret d_C (never sent anywhere)
    - Blinding phone numbers: cP = [d_C]·hash2curve(p)
    - Starting one QuerySession per phone number
    """

    def __init__(self, config: Optional[ProtocolConfig] = None, scalar: Optional[int] = None):
        """
        Initialize crypto client.

        Args:
            config: Protocol parameters, must match the server's
            scalar: Pre-existing d_C (random if omitted)

        Raises:
            ConfigurationError: if scalar is zero or out of range
        """
        self.config = config or ProtocolConfig()
        self._d_c = validate_scalar(scalar) if scalar is not None else random_scalar()
        self._d_c_inv = scalar_inverse(self._d_c)

    def begin_query(self, phone_number: PhoneNumber) -> "QuerySession":
        """Hash and blind a phone number."""
        p = phone_to_bytes(phone_number)
        h = sha256(p)
        c_p = multiply(hash_to_curve(p, self.config.dst), self._d_c)
        return QuerySession(self, p, h, serialize_point(c_p))

    def unblind(self, sc_p: bytes) -> bytes:
        """sP = [1/d_C]·scP, serialized."""
        return serialize_point(multiply(deserialize_point(sc_p), self._d_c_inv))


class QuerySession:
    """
    Transient state for resolving one phone number.

    INIT -> BLINDED_POINT_SENT -> AWAITING_BUCKET -> MATCHING
         -> MATCHED | NO_MATCH -> (SENDING_REVEAL) -> DONE

    Any state may move to ABORTED. Abandoning a session needs no server
    cleanup.
    """

    def __init__(self, client: CryptoClient, p: bytes, h: bytes, c_p: bytes):
        self._client = client
        self.phone_number = p
        self.h = h
        self.c_p = c_p
        self.prefix = bucket_prefix(h, client.config.prefix_bits)
        self.state = QueryState.INIT
        self.su: Optional[bytes] = None

    def _require(self, *states: QueryState) -> None:
        if self.state not in states:
            raise RuntimeError(f"Invalid query state transition from {self.state.value}")

    @property
    def outcome(self) -> Optional[QueryOutcome]:
        if self.su is not None:
            return QueryOutcome.MATCHED
        if self.state in (QueryState.NO_MATCH, QueryState.DONE):
            return QueryOutcome.NO_MATCH
        return None

    def blind_request(self) -> BlindRequest:
        """The only request payload: the N-bit prefix and cP."""
        self._require(QueryState.INIT)
        self.state = QueryState.BLINDED_POINT_SENT
        return BlindRequest(prefix=self.prefix, point=self.c_p)

    def mark_awaiting(self) -> None:
        self._require(QueryState.BLINDED_POINT_SENT)
        self.state = QueryState.AWAITING_BUCKET

    def resolve_bucket(self, sc_p: bytes, bucket: Iterable[IndexEntry]) -> Optional[bytes]:
        """
        Look for our entry in the bucket the server returned.

        Computes sP = [1/d_C]·scP and scans the bucket for an entry whose
        sP is exactly equal. On a hit the user point is unblinded with 1/h.

        Args:
            sc_p: [d_S]·cP from the server
            bucket: All (sP_i, hsU_i) entries for our prefix

        Returns:
            sU = [1/h]·hsU_i to send back, or None on no match
        """
        self._require(QueryState.BLINDED_POINT_SENT, QueryState.AWAITING_BUCKET)
        self.state = QueryState.MATCHING

        try:
            s_p = self._client.unblind(sc_p)
        except MalformedPointError:
            self.state = QueryState.NO_MATCH
            return None

        for entry in bucket:
            if entry.sp != s_p:
                continue
            try:
                hs_u = deserialize_point(entry.hsu)
            except MalformedPointError:
                break
            s_u = multiply(hs_u, scalar_inverse(hash_to_scalar(self.h)))
            self.su = serialize_point(s_u)
            self.state = QueryState.MATCHED
            return self.su

        self.state = QueryState.NO_MATCH
        return None

    def reveal_request(self) -> RevealRequest:
        self._require(QueryState.MATCHED)
        self.state = QueryState.SENDING_REVEAL
        return RevealRequest(su=self.su)

    def complete(self) -> None:
        self._require(QueryState.MATCHED, QueryState.NO_MATCH, QueryState.SENDING_REVEAL)
        self.state = QueryState.DONE

    def abort(self) -> None:
        self.state = QueryState.ABORTED
