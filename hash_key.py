#!/usr/bin/env python3
"""
Print the bcrypt hash of a caller key, to be used as KEY_HASH.

Usage:
  python hash_key.py <key> [--rounds N]
"""

import argparse
import sys

from app.auth.keys import DEFAULT_ROUNDS, MAX_KEY_BYTES, hash_key


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Hash a caller key for KEY_HASH.")
    parser.add_argument("key", help="plaintext key callers put in the URL")
    parser.add_argument("--rounds", type=int, default=DEFAULT_ROUNDS, help="bcrypt cost factor (4-31)")
    args = parser.parse_args(argv)

    if not 4 <= args.rounds <= 31:
        parser.error("--rounds must be between 4 and 31")
    if len(args.key.encode("utf-8")) > MAX_KEY_BYTES:
        parser.error(f"key must not be longer than {MAX_KEY_BYTES} bytes")

    print(hash_key(args.key, rounds=args.rounds))
    return 0


if __name__ == "__main__":
    sys.exit(main())
