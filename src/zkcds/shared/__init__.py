"""Shared utilities and protocol definitions."""
from zkcds.shared.protocol import (
    IndexEntry,
    Bucket,
    BlindRequest,
    BlindResponse,
    RevealRequest,
    RevealResponse,
    QueryState,
    QueryOutcome,
    DiscoveryResult,
)
from zkcds.shared.config import EncodingPolicy, ProtocolConfig, ServerSettings
from zkcds.shared.errors import (
    CDSError,
    ConfigurationError,
    DecodeError,
    EncodingError,
    InvalidRequestError,
    MalformedPointError,
)
from zkcds.shared.bucketing import (
    bucket_prefix,
    expected_bucket_size,
    anonymity_set_size,
    BucketStats,
)
from zkcds.shared.utils import generate_address_book, Timer

__all__ = [
    "IndexEntry",
    "Bucket",
    "BlindRequest",
    "BlindResponse",
    "RevealRequest",
    "RevealResponse",
    "QueryState",
    "QueryOutcome",
    "DiscoveryResult",
    "EncodingPolicy",
    "ProtocolConfig",
    "ServerSettings",
    "CDSError",
    "ConfigurationError",
    "DecodeError",
    "EncodingError",
    "InvalidRequestError",
    "MalformedPointError",
    "bucket_prefix",
    "expected_bucket_size",
    "anonymity_set_size",
    "BucketStats",
    "generate_address_book",
    "Timer",
]
