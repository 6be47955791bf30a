"""Tests for prefix bucketing."""
import pytest

from zkcds.shared.bucketing import (
    anonymity_set_size,
    bucket_prefix,
    bucket_stats,
    expected_bucket_size,
    prefix_space,
)
from zkcds.shared.curve import sha256


class TestBucketPrefix:
    """Test bucket_prefix()."""

    def test_zero_bits(self):
        assert bucket_prefix(sha256(b"+15551234567"), 0) == 0

    def test_eight_bits_is_first_byte(self):
        h = sha256(b"+15551234567")
        assert bucket_prefix(h, 8) == h[0]

    def test_full_width(self):
        h = sha256(b"+15551234567")
        assert bucket_prefix(h, 256) == int.from_bytes(h, "big")

    def test_partial_byte(self):
        h = bytes([0b10110011]) + b"\x00" * 31
        assert bucket_prefix(h, 3) == 0b101
        assert bucket_prefix(h, 12) == 0b101100110000

    def test_range(self):
        for n_bits in (1, 5, 16, 31):
            for i in range(20):
                prefix = bucket_prefix(sha256(str(i).encode()), n_bits)
                assert 0 <= prefix < prefix_space(n_bits)

    def test_deterministic(self):
        h = sha256(b"+15551234567")
        assert bucket_prefix(h, 13) == bucket_prefix(h, 13)

    @pytest.mark.parametrize("n_bits", [-1, 257])
    def test_invalid_width(self, n_bits):
        with pytest.raises(ValueError):
            bucket_prefix(sha256(b"x"), n_bits)

    def test_wrong_digest_size(self):
        with pytest.raises(ValueError):
            bucket_prefix(b"\x00" * 16, 8)


class TestSizing:
    """Test the N / map size / anonymity set relationships."""

    def test_expected_bucket_size(self):
        assert expected_bucket_size(1024, 0) == 1024
        assert expected_bucket_size(1024, 8) == 4
        assert expected_bucket_size(1024, 10) == 1

    def test_anonymity_set(self):
        assert anonymity_set_size(0, 10 ** 10) == 10 ** 10
        assert anonymity_set_size(10, 1024) == 1

    def test_bucket_stats(self):
        stats = bucket_stats([1, 2, 3, 6], prefix_bits=2)
        assert stats.num_entries == 12
        assert stats.occupied_buckets == 4
        assert stats.mean_size == 3.0
        assert stats.max_size == 6
        assert stats.expected_size == 3.0

    def test_bucket_stats_empty(self):
        stats = bucket_stats([], prefix_bits=8)
        assert stats.num_entries == 0
        assert stats.max_size == 0
        assert "Buckets (N=8)" in str(stats)
