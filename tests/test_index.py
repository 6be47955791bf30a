"""Tests for server-side index construction."""
import json

import pytest

from zkcds.server.index import Index, IndexBuilder
from zkcds.shared.bucketing import bucket_prefix
from zkcds.shared.config import EncodingPolicy, ProtocolConfig
from zkcds.shared.curve import hash_to_curve, multiply, serialize_point, sha256
from zkcds.shared.errors import ConfigurationError, EncodingError
from zkcds.shared.utils import generate_address_book

SECRET = 0x1234567890ABCDEF


class TestIndexBuilder:
    """Test IndexBuilder.build()."""

    def test_entry_placement(self):
        users = {"+15551234567": "user-42"}
        index = IndexBuilder(SECRET, ProtocolConfig(prefix_bits=8)).build(users)

        prefix = bucket_prefix(sha256(b"+15551234567"), 8)
        bucket = index.bucket(prefix)
        assert len(bucket) == 1
        assert bucket[0].sp == serialize_point(multiply(hash_to_curve(b"+15551234567"), SECRET))
        assert index.num_entries == 1
        assert index.num_buckets == 1

    def test_missing_bucket_is_empty(self):
        index = IndexBuilder(SECRET, ProtocolConfig(prefix_bits=8)).build({})
        assert index.bucket(7) == ()
        assert index.num_entries == 0

    def test_deterministic(self):
        users = generate_address_book(30, seed=1)
        config = ProtocolConfig(prefix_bits=4)
        a = IndexBuilder(SECRET, config).build(users)
        b = IndexBuilder(SECRET, config).build(users)
        assert a == b
        assert json.dumps(a.to_dict(), sort_keys=True) == json.dumps(b.to_dict(), sort_keys=True)

    def test_insertion_order_irrelevant(self):
        users = generate_address_book(20, seed=2)
        reordered = dict(reversed(list(users.items())))
        config = ProtocolConfig(prefix_bits=2)
        assert IndexBuilder(SECRET, config).build(users) == \
            IndexBuilder(SECRET, config).build(reordered)

    def test_different_secret_differs(self):
        users = {"+15551234567": "user-42"}
        config = ProtocolConfig(prefix_bits=8)
        assert IndexBuilder(SECRET, config).build(users) != \
            IndexBuilder(SECRET + 1, config).build(users)

    def test_no_plaintext_stored(self):
        users = {"+15551234567": "user-42"}
        dumped = json.dumps(IndexBuilder(SECRET).build(users).to_dict())
        assert "user-42" not in dumped
        assert "15551234567" not in dumped

    def test_zero_prefix_bits_single_bucket(self):
        users = generate_address_book(10, seed=3)
        index = IndexBuilder(SECRET, ProtocolConfig(prefix_bits=0)).build(users)
        assert index.num_buckets == 1
        assert len(index.bucket(0)) == 10

    @pytest.mark.parametrize("secret", [0, -5])
    def test_invalid_secret(self, secret):
        with pytest.raises(ConfigurationError):
            IndexBuilder(secret)


class TestEncodingPolicy:
    """Test handling of unencodable user IDs."""

    USERS = {
        "+15550000001": "user-1",
        "+15550000002": "a-user-id-that-is-far-too-long",
        "+15550000003": "user-3",
    }

    def test_abort(self):
        builder = IndexBuilder(SECRET, ProtocolConfig(encoding_policy=EncodingPolicy.ABORT))
        with pytest.raises(EncodingError):
            builder.build(self.USERS)

    def test_skip(self, caplog):
        builder = IndexBuilder(SECRET, ProtocolConfig(encoding_policy="skip"))
        with caplog.at_level("WARNING"):
            index = builder.build(self.USERS)
        assert index.num_entries == 2
        assert index.skipped == 1
        assert "cannot be encoded" in caplog.text
        assert "far-too-long" not in caplog.text


class TestIndexSerialization:
    """Test Index.to_dict() / from_dict()."""

    def test_round_trip(self):
        index = IndexBuilder(SECRET, ProtocolConfig(prefix_bits=3)).build(
            generate_address_book(15, seed=4)
        )
        restored = Index.from_dict(json.loads(json.dumps(index.to_dict())))
        assert restored == index
        assert restored.prefix_bits == 3
        assert list(restored.prefixes()) == list(index.prefixes())

    def test_stats(self):
        index = IndexBuilder(SECRET, ProtocolConfig(prefix_bits=1)).build(
            generate_address_book(8, seed=5)
        )
        stats = index.stats()
        assert stats.num_entries == 8
        assert stats.expected_size == 4.0
        assert 1 <= stats.occupied_buckets <= 2
