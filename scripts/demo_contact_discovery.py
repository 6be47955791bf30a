#!/usr/bin/env python3
"""
End-to-end private contact discovery demo.

1. Server blinds its address book into prefix buckets
2. Client blinds each phone number and asks for its bucket
3. Client finds its match locally and proves it back to the server
"""
import sys
import argparse
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from zkcds.client.crypto import CryptoClient
from zkcds.client.search import DiscoveryClient
from zkcds.server.compute import QueryEngine
from zkcds.server.store import ServerStore
from zkcds.shared.bucketing import expected_bucket_size
from zkcds.shared.config import ProtocolConfig
from zkcds.shared.utils import Timer, generate_address_book


def run_demo(num_users: int = 50, prefix_bits: int = 4, verbose: bool = True):
    print("=" * 70)
    print("zkcds - Private Contact Discovery")
    print("=" * 70)
    print(f"\nConfiguration:")
    print(f"  Server users:   {num_users}")
    print(f"  Prefix bits:    {prefix_bits}")
    print(f"  Expected bucket size: {expected_bucket_size(num_users + 1, prefix_bits):.2f}")

    config = ProtocolConfig(prefix_bits=prefix_bits)

    users = generate_address_book(num_users, seed=42)
    users["+15551234567"] = "user-42"

    print("\n[1] Building server index...")
    with Timer() as t:
        store = ServerStore.build(users, config)
    print(f"    {store.index.num_entries} entries in {store.index.num_buckets} buckets ({t.elapsed_ms:.0f}ms)")

    revealed = []
    engine = QueryEngine(store, on_reveal=revealed.append)

    print("\n[2] Client address book lookups...")
    address_book = ["+15551234567", "+15559999999"] + list(users)[:3]
    client = DiscoveryClient(CryptoClient(config))
    results, timing = client.discover(address_book, engine.blind, engine.reveal, verbose=verbose)

    print("\n[3] Server side")
    print(f"    Users revealed to the server: {revealed}")
    print(f"    Average per query: {timing['per_query_ms']:.2f}ms")

    return results


def main():
    parser = argparse.ArgumentParser(description="Private contact discovery demo")
    parser.add_argument("--num-users", type=int, default=50)
    parser.add_argument("--prefix-bits", type=int, default=4)
    args = parser.parse_args()
    run_demo(args.num_users, args.prefix_bits)


if __name__ == "__main__":
    main()
