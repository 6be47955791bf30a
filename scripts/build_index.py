#!/usr/bin/env python3
"""
Build and persist server state from a CSV address book.

Input rows are `phone,user_id` (no header). The output JSON holds the
server secret d_S and the blinded index; keep it private.

    python scripts/build_index.py users.csv state.json --prefix-bits 16
"""
import sys
import csv
import argparse
import logging
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from zkcds.server.store import ServerStore
from zkcds.shared.bucketing import anonymity_set_size
from zkcds.shared.config import EncodingPolicy, ProtocolConfig
from zkcds.shared.utils import Timer


def read_address_book(path: Path) -> dict:
    users = {}
    with open(path, newline="") as f:
        for row in csv.reader(f):
            if len(row) < 2:
                continue
            phone_number, user_id = row[0].strip(), row[1].strip()
            users[phone_number] = user_id
    return users


def main():
    parser = argparse.ArgumentParser(description="Build a blinded contact discovery index")
    parser.add_argument("source", type=Path, help="CSV of phone,user_id rows")
    parser.add_argument("output", type=Path, help="Where to write server state")
    parser.add_argument("--prefix-bits", type=int, default=16)
    parser.add_argument("--max-attempts", type=int, default=256)
    parser.add_argument(
        "--skip-unencodable",
        action="store_true",
        help="Skip user IDs that cannot be encoded instead of aborting",
    )
    parser.add_argument(
        "--phone-space",
        type=int,
        default=10 ** 10,
        help="Size of the phone number universe, for the anonymity estimate",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = ProtocolConfig(
        prefix_bits=args.prefix_bits,
        max_encoding_attempts=args.max_attempts,
        encoding_policy=EncodingPolicy.SKIP if args.skip_unencodable else EncodingPolicy.ABORT,
    )

    users = read_address_book(args.source)
    print(f"Read {len(users):,} entries from {args.source}")

    with Timer() as t:
        store = ServerStore.build(users, config)
    print(f"Built index in {t.elapsed_ms:.0f}ms")
    print(store.index.stats())
    print(
        f"  Anonymity set per query: ~{anonymity_set_size(args.prefix_bits, args.phone_space):,.0f} "
        f"of {args.phone_space:,} numbers"
    )

    store.save(args.output)
    print(f"Saved server state to {args.output}")


if __name__ == "__main__":
    main()
