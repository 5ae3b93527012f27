#!/usr/bin/env python3
"""
Decode or encode LNURL strings when debugging withdrawal QR codes.

Usage:
    ./scripts/decode_lnurl.py LNURL1DP68GURN8GHJ7...
    ./scripts/decode_lnurl.py --encode https://btcpay.example.com/BTC/UILNURL/withdraw/pp/abc
"""

import argparse
import sys

from island_rewards.services.lnurl import Bech32Error, decode_lnurl, encode_lnurl


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("value", help="LNURL to decode, or URL with --encode")
    parser.add_argument("--encode", action="store_true", help="Encode a URL instead")
    args = parser.parse_args(argv)

    if args.encode:
        print(encode_lnurl(args.value))
        return 0

    try:
        print(decode_lnurl(args.value))
    except (Bech32Error, UnicodeDecodeError) as e:
        print(f"Invalid LNURL: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
