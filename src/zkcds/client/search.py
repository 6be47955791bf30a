"""
Client-side discovery orchestration.

Coordinates the full flow for each phone number:
1. Blind the phone number and send (prefix, cP)
2. Receive (scP, bucket) and look for a match locally
3. On a match, send sU back so the server can reveal the user
"""
from typing import Callable, Iterable, List, Tuple

from zkcds.client.crypto import CryptoClient
from zkcds.shared.protocol import (
    BlindRequest,
    BlindResponse,
    DiscoveryResult,
    QueryOutcome,
    RevealRequest,
    RevealResponse,
)
from zkcds.shared.utils import PhoneNumber, Timer, phone_to_bytes

BlindFn = Callable[[BlindRequest], BlindResponse]
RevealFn = Callable[[RevealRequest], RevealResponse]


class DiscoveryClient:
    """
    Client-side contact discovery coordinator.

    The transport is supplied as two callables so the same flow runs
    in-process, over HTTP, or against a test double.
    """

    def __init__(self, crypto_client: CryptoClient):
        """
        Initialize discovery client.

        Args:
            crypto_client: Holds d_C for this client session
        """
        self.crypto = crypto_client

    def resolve(
        self,
        phone_number: PhoneNumber,
        blind_fn: BlindFn,
        reveal_fn: RevealFn,
    ) -> DiscoveryResult:
        """Run both round trips for one phone number."""
        session = self.crypto.begin_query(phone_number)
        label = phone_to_bytes(phone_number).decode("utf-8", "replace")

        try:
            response = blind_fn(session.blind_request())
            session.mark_awaiting()
            s_u = session.resolve_bucket(response.scp, response.bucket)

            if s_u is None:
                session.complete()
                return DiscoveryResult(phone_number=label, outcome=QueryOutcome.NO_MATCH)

            ack = reveal_fn(session.reveal_request())
            session.complete()
        except BaseException:
            session.abort()
            raise

        return DiscoveryResult(
            phone_number=label,
            outcome=QueryOutcome.MATCHED,
            acknowledged=ack.accepted,
        )

    def discover(
        self,
        phone_numbers: Iterable[PhoneNumber],
        blind_fn: BlindFn,
        reveal_fn: RevealFn,
        verbose: bool = False,
    ) -> Tuple[List[DiscoveryResult], dict]:
        """
        Resolve every number in an address book.

        Args:
            phone_numbers: Numbers to look up
            blind_fn: Sends round trip 1, signature (BlindRequest) -> BlindResponse
            reveal_fn: Sends round trip 2, signature (RevealRequest) -> RevealResponse
            verbose: Print progress

        Returns:
            Tuple of (results, timing info)
        """
        results = []

        with Timer() as t:
            for phone_number in phone_numbers:
                result = self.resolve(phone_number, blind_fn, reveal_fn)
                results.append(result)
                if verbose:
                    print(f"  {result.phone_number}: {result.outcome.value}")

        matched = sum(1 for r in results if r.outcome is QueryOutcome.MATCHED)
        timing = {
            "total_ms": t.elapsed_ms,
            "per_query_ms": t.elapsed_ms / len(results) if results else 0.0,
            "queries": len(results),
            "matched": matched,
        }

        if verbose:
            print(f"\nMatched {matched}/{len(results)} in {timing['total_ms']:.2f}ms")

        return results, timing
