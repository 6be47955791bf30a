#!/usr/bin/env python3
"""
Benchmark index build and per-query lookup cost.
"""
import sys
import argparse
import numpy as np
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from zkcds.client.crypto import CryptoClient
from zkcds.server.compute import QueryEngine
from zkcds.server.store import ServerStore
from zkcds.shared.config import ProtocolConfig
from zkcds.shared.utils import Timer, generate_address_book


def main():
    parser = argparse.ArgumentParser(description="Benchmark contact discovery")
    parser.add_argument("--num-users", type=int, default=100)
    parser.add_argument("--num-queries", type=int, default=20)
    parser.add_argument("--prefix-bits", type=int, default=4)
    args = parser.parse_args()

    print("=" * 60)
    print(f"Contact discovery benchmark: {args.num_users} users, N={args.prefix_bits}")
    print("=" * 60)

    users = generate_address_book(args.num_users, seed=42)
    config = ProtocolConfig(prefix_bits=args.prefix_bits)

    # 1. Build
    print("\n[1/3] Building index...")
    with Timer() as t:
        store = ServerStore.build(users, config)
    print(f"   Built in {t.elapsed_ms:.0f}ms ({t.elapsed_ms / args.num_users:.2f}ms per entry)")
    print(f"   {store.index.stats()}")

    engine = QueryEngine(store)
    client = CryptoClient(config)
    numbers = list(users)[:args.num_queries]

    # 2. Lookup (client blind + server blind + client resolve)
    print("\n[2/3] Benchmarking lookups...")
    lookup_times = []
    sessions = []
    for phone_number in numbers:
        with Timer() as t:
            session = client.begin_query(phone_number)
            response = engine.blind(session.blind_request())
            session.resolve_bucket(response.scp, response.bucket)
        lookup_times.append(t.elapsed_ms)
        sessions.append(session)

    # 3. Reveal
    print("\n[3/3] Benchmarking reveals...")
    reveal_times = []
    for session in sessions:
        request = session.reveal_request()
        with Timer() as t:
            engine.reveal(request)
        reveal_times.append(t.elapsed_ms)

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print(f"   Lookup: mean {np.mean(lookup_times):.2f}ms, p95 {np.percentile(lookup_times, 95):.2f}ms")
    print(f"   Reveal: mean {np.mean(reveal_times):.2f}ms, p95 {np.percentile(reveal_times, 95):.2f}ms")
    print(f"   Estimated QPS (single core): {1000 / (np.mean(lookup_times) + np.mean(reveal_times)):.1f}")


if __name__ == "__main__":
    main()
