"""
Protocol definitions for client-server communication.

Two round trips:
1. BlindRequest (prefix, cP) -> BlindResponse (scP, bucket)
2. RevealRequest (sU) -> RevealResponse (ack only), sent only on match

Every point is carried as its 33-byte SEC1 compressed encoding.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True, order=True)
class IndexEntry:
    """One blinded (sP, hsU) row. Never holds a phone number or user ID."""
    sp: bytes  # [d_S]·hash2curve(p)
    hsu: bytes  # [h·d_S]·encode2curve(u)


Bucket = Tuple[IndexEntry, ...]


@dataclass(frozen=True)
class BlindRequest:
    """Request 1: bucket prefix and client-blinded phone point."""
    prefix: int
    point: bytes  # cP = [d_C]·hash2curve(p)


@dataclass(frozen=True)
class BlindResponse:
    """Response 1: double-blinded phone point and the full bucket."""
    scp: bytes  # [d_S]·cP
    bucket: Bucket


@dataclass(frozen=True)
class RevealRequest:
    """Request 2: server-blinded user point recovered by the client."""
    su: bytes  # [d_S]·encode2curve(u)


@dataclass(frozen=True)
class RevealResponse:
    """Response 2: acknowledgment only, never carries the user ID."""
    accepted: bool


class QueryState(Enum):
    """Client-side state of one phone number resolution."""
    INIT = "init"
    BLINDED_POINT_SENT = "blinded_point_sent"
    AWAITING_BUCKET = "awaiting_bucket"
    MATCHING = "matching"
    MATCHED = "matched"
    NO_MATCH = "no_match"
    SENDING_REVEAL = "sending_reveal"
    DONE = "done"
    ABORTED = "aborted"


class QueryOutcome(Enum):
    """Client-visible outcome of a query."""
    MATCHED = "matched"
    NO_MATCH = "no_match"


@dataclass
class DiscoveryResult:
    """Result of resolving one phone number."""
    phone_number: str
    outcome: QueryOutcome
    acknowledged: Optional[bool] = None  # server ack of the reveal, if sent
