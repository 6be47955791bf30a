"""
Protocol and server configuration.

Key parameters:
- prefix_bits (N): width of the bucket prefix taken from SHA-256(phone)
- dst: domain separation tag for hash-to-curve
- max_encoding_attempts: try-and-increment counter bound for user IDs
- encoding_policy: what the index builder does with an unencodable user ID

Tradeoffs for prefix_bits:
- Expected bucket size (response cardinality) = map_size / 2^N
- The server learns N bits of SHA-256(p): each query is hidden among
  phone_space / 2^N candidate numbers
- N = 0 returns the whole index on every query; N = 256 gives buckets of
  size ~1 and the least query privacy
"""
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from zkcds.shared.errors import ConfigurationError

HASH_BITS = 256  # SHA-256 digest width
DEFAULT_DST = b"zk-cds-prototype"


class EncodingPolicy(str, Enum):
    """Index-build behaviour when a user ID cannot be encoded."""
    ABORT = "abort"
    SKIP = "skip"


@dataclass(frozen=True)
class ProtocolConfig:
    """Parameters shared by client and server. Both sides must agree on them."""

    prefix_bits: int = 16
    dst: bytes = DEFAULT_DST
    max_encoding_attempts: int = 256
    encoding_policy: EncodingPolicy = EncodingPolicy.ABORT

    def __post_init__(self):
        if not 0 <= self.prefix_bits <= HASH_BITS:
            raise ConfigurationError(
                f"prefix_bits must be between 0 and {HASH_BITS}",
                details={"prefix_bits": self.prefix_bits},
            )
        if not self.dst or len(self.dst) > 255:
            raise ConfigurationError("dst must be 1 to 255 bytes long")
        # The counter occupies 15 bytes of the x-coordinate.
        if not 1 <= self.max_encoding_attempts <= 2 ** 64:
            raise ConfigurationError(
                "max_encoding_attempts must be between 1 and 2^64",
                details={"max_encoding_attempts": self.max_encoding_attempts},
            )
        if not isinstance(self.encoding_policy, EncodingPolicy):
            try:
                object.__setattr__(
                    self, "encoding_policy", EncodingPolicy(self.encoding_policy)
                )
            except ValueError as e:
                raise ConfigurationError(
                    "encoding_policy must be 'abort' or 'skip'", cause=e
                )


@dataclass
class ServerSettings:
    """
    Process-level settings for a served instance.

    prefix_bits is None unless ZKCDS_PREFIX_BITS is set. With a persisted
    state file the stored width is used and an explicit, different value
    is an error.
    """

    state_path: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8000
    prefix_bits: Optional[int] = None

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Read settings from ZKCDS_* environment variables."""
        raw_prefix_bits = os.environ.get("ZKCDS_PREFIX_BITS")
        try:
            port = int(os.environ.get("ZKCDS_PORT", "8000"))
            prefix_bits = int(raw_prefix_bits) if raw_prefix_bits else None
        except ValueError as e:
            raise ConfigurationError("ZKCDS_PORT and ZKCDS_PREFIX_BITS must be integers", cause=e)

        return cls(
            state_path=os.environ.get("ZKCDS_STATE_PATH") or None,
            host=os.environ.get("ZKCDS_HOST", "127.0.0.1"),
            port=port,
            prefix_bits=prefix_bits,
        )

    def protocol_config(self) -> ProtocolConfig:
        if self.prefix_bits is None:
            return ProtocolConfig()
        return ProtocolConfig(prefix_bits=self.prefix_bits)
