"""
Blinded, prefix-bucketed index of the server's address book.

For every (p, u) in the source map:

    h   = SHA-256(p)
    sP  = [d_S]·hash2curve(p)
    hsU = [h·d_S]·encode2curve(u)

and (sP, hsU) goes into the bucket keyed by the top N bits of h. The index
never holds p or u, only blinded points.
"""
import base64
import logging
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from zkcds.shared.bucketing import BucketStats, bucket_prefix, bucket_stats
from zkcds.shared.config import EncodingPolicy, ProtocolConfig
from zkcds.shared.curve import (
    ORDER,
    hash_to_curve,
    hash_to_scalar,
    multiply,
    serialize_point,
    sha256,
)
from zkcds.shared.encoding import encode_user_id
from zkcds.shared.errors import ConfigurationError, EncodingError
from zkcds.shared.protocol import Bucket, IndexEntry
from zkcds.shared.utils import PhoneNumber, Timer, phone_to_bytes

logger = logging.getLogger(__name__)


class Index:
    """
    Read-only prefix -> Bucket mapping.

    Entries within a bucket are sorted by sP bytes, so two indexes built
    from the same map and secret compare equal bucket for bucket.
    """

    def __init__(
        self,
        prefix_bits: int,
        buckets: Mapping[int, Bucket],
        skipped: int = 0,
    ):
        self.prefix_bits = prefix_bits
        self._buckets: Dict[int, Bucket] = {
            prefix: tuple(sorted(entries))
            for prefix, entries in buckets.items()
            if entries
        }
        self.skipped = skipped

    def bucket(self, prefix: int) -> Bucket:
        """Bucket for prefix, empty if nothing hashes there."""
        return self._buckets.get(prefix, ())

    def prefixes(self) -> Iterator[int]:
        return iter(sorted(self._buckets))

    @property
    def num_entries(self) -> int:
        return sum(len(b) for b in self._buckets.values())

    @property
    def num_buckets(self) -> int:
        return len(self._buckets)

    def stats(self) -> BucketStats:
        return bucket_stats((len(b) for b in self._buckets.values()), self.prefix_bits)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Index):
            return NotImplemented
        return self.prefix_bits == other.prefix_bits and self._buckets == other._buckets

    def __repr__(self) -> str:
        return (
            f"Index(prefix_bits={self.prefix_bits}, "
            f"num_entries={self.num_entries}, num_buckets={self.num_buckets})"
        )

    def to_dict(self) -> dict:
        """JSON-ready form. Points are base64 encoded."""
        return {
            "prefix_bits": self.prefix_bits,
            "skipped": self.skipped,
            "buckets": {
                str(prefix): [
                    [
                        base64.b64encode(e.sp).decode("ascii"),
                        base64.b64encode(e.hsu).decode("ascii"),
                    ]
                    for e in entries
                ]
                for prefix, entries in self._buckets.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Index":
        buckets = {
            int(prefix): tuple(
                IndexEntry(sp=base64.b64decode(sp), hsu=base64.b64decode(hsu))
                for sp, hsu in entries
            )
            for prefix, entries in data["buckets"].items()
        }
        return cls(
            prefix_bits=int(data["prefix_bits"]),
            buckets=buckets,
            skipped=int(data.get("skipped", 0)),
        )


class IndexBuilder:
    """
    Builds an Index from the plaintext phone number -> user ID map.

    Output is deterministic given the map and d_S. The source map is
    not retained.
    """

    def __init__(self, secret_scalar: int, config: Optional[ProtocolConfig] = None):
        """
        Args:
            secret_scalar: Server secret d_S
            config: Protocol parameters (prefix width, hash-to-curve tag,
                    encoding retry bound and failure policy)
        """
        if not 0 < secret_scalar < ORDER:
            raise ConfigurationError("Server secret must be in [1, n-1]")
        self._d_s = secret_scalar
        self.config = config or ProtocolConfig()

    def blind_entry(self, phone_number: PhoneNumber, user_id: str) -> Tuple[int, IndexEntry]:
        """
        Blind one (p, u) pair.

        Returns:
            Tuple of (bucket prefix, entry)

        Raises:
            EncodingError: if u cannot be encoded as a point
        """
        p = phone_to_bytes(phone_number)
        h = sha256(p)

        s_p = multiply(hash_to_curve(p, self.config.dst), self._d_s)

        u_point = encode_user_id(user_id, self.config.max_encoding_attempts)
        hs_u = multiply(u_point, hash_to_scalar(h) * self._d_s % ORDER)

        entry = IndexEntry(sp=serialize_point(s_p), hsu=serialize_point(hs_u))
        return bucket_prefix(h, self.config.prefix_bits), entry

    def build(self, users: Mapping[PhoneNumber, str]) -> Index:
        """
        Blind the whole map and group it into buckets by hash prefix.

        Raises:
            EncodingError: on the first unencodable user ID when the
                policy is ABORT
        """
        buckets: Dict[int, List[IndexEntry]] = {}
        skipped = 0

        with Timer() as t:
            for phone_number, user_id in users.items():
                try:
                    prefix, entry = self.blind_entry(phone_number, user_id)
                except EncodingError:
                    if self.config.encoding_policy is EncodingPolicy.ABORT:
                        raise
                    skipped += 1
                    logger.warning("Skipping entry whose user ID cannot be encoded")
                    continue
                buckets.setdefault(prefix, []).append(entry)

        index = Index(self.config.prefix_bits, buckets, skipped=skipped)
        logger.info(
            "Built index: %d entries in %d buckets (N=%d, skipped=%d) in %.0fms",
            index.num_entries,
            index.num_buckets,
            index.prefix_bits,
            skipped,
            t.elapsed_ms,
        )
        return index
