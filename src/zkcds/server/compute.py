"""
Server half of the blind query protocol.

The server never sees the phone number:
- blind() only raises the client's blinded point to d_S and hands back
  the bucket for the client's prefix; it cannot correlate cP with any
  stored entry because it lacks d_C
- reveal() learns u only when the client has proved knowledge of p by
  unblinding the right hsU

No per-client state is kept between the two calls.
"""
import logging
from typing import Callable, Optional

from zkcds.server.store import ServerStore
from zkcds.shared.curve import deserialize_point, multiply, scalar_inverse, serialize_point
from zkcds.shared.encoding import decode_user_id
from zkcds.shared.errors import DecodeError, InvalidRequestError, MalformedPointError
from zkcds.shared.protocol import BlindRequest, BlindResponse, RevealRequest, RevealResponse

logger = logging.getLogger(__name__)

RevealHook = Callable[[str], None]


class QueryEngine:
    """
    Stateless request handlers over a ServerStore.

    Safe to call concurrently: the store's secret and index are read-only
    while serving.
    """

    def __init__(self, store: ServerStore, on_reveal: Optional[RevealHook] = None):
        """
        Initialize the engine.

        Args:
            store: Holds d_S and the index
            on_reveal: Called with the recovered user ID after a successful
                       reveal (e.g. to connect the two users)
        """
        self.store = store
        self.on_reveal = on_reveal

    def blind(self, request: BlindRequest) -> BlindResponse:
        """
        Compute scP = [d_S]·cP and return it with the bucket for the prefix.

        Raises:
            MalformedPointError: cP does not parse
            InvalidRequestError: prefix outside [0, 2^N)
        """
        index = self.store.index
        if not 0 <= request.prefix < (1 << index.prefix_bits):
            raise InvalidRequestError("Prefix out of range")

        c_p = deserialize_point(request.point)
        sc_p = multiply(c_p, self.store.get_secret_scalar())

        return BlindResponse(scp=serialize_point(sc_p), bucket=index.bucket(request.prefix))

    def reveal(self, request: RevealRequest) -> RevealResponse:
        """
        Unblind sU with 1/d_S and decode the user ID.

        Every failure, a raising on_reveal hook included, yields the same
        RevealResponse(accepted=False), so a client cannot tell a malformed
        point from a failed decode.
        """
        try:
            s_u = deserialize_point(request.su)
            u_point = multiply(s_u, scalar_inverse(self.store.get_secret_scalar()))
            user_id = decode_user_id(u_point, self.store.config.max_encoding_attempts)
        except (MalformedPointError, DecodeError) as e:
            logger.debug("Rejected reveal request: %s", e.to_dict()["code"])
            return RevealResponse(accepted=False)

        if self.on_reveal is not None:
            try:
                self.on_reveal(user_id)
            except Exception as e:
                # Exception text may name the user
                logger.error("Reveal hook failed with %s", type(e).__name__)
                return RevealResponse(accepted=False)
        return RevealResponse(accepted=True)
