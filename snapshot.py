#!/usr/bin/env python3
import argparse
import asyncio
import logging
import sys

from web3 import Web3

from holder_snapshot.config import SnapshotConfig
from holder_snapshot.errors import SnapshotError
from holder_snapshot.export import write_snapshot_csvs
from holder_snapshot.orchestrator import snapshot_contract

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Snapshot the current holders of an ERC-721 collection")
    parser.add_argument("contract", help="ERC-721 contract address")
    parser.add_argument("--out", default=".", help="directory for the CSV files (default: .)")
    parser.add_argument("--detailed", action="store_true", help="also write the CSV with token IDs")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: $RPC_URL)")
    parser.add_argument(
        "--lookback",
        type=int,
        help="blocks of Transfer history to scan in the last-resort method; 0 scans from deployment",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def print_progress(percent, message):
    print(f"  [{percent:3d}%] {message}")


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not Web3.is_address(args.contract):
        print(f"❌ Not a contract address: {args.contract!r}")
        return 2

    config = SnapshotConfig.from_env().with_overrides(
        rpc_url=args.rpc_url, event_lookback_blocks=args.lookback
    )
    print(f"🔍 Snapshotting {args.contract} via {config.rpc_url}...")

    try:
        result = asyncio.run(snapshot_contract(args.contract, config, print_progress))
    except SnapshotError as e:
        print(f"❌ {e}")
        return 1

    for path in write_snapshot_csvs(result, args.out, detailed=args.detailed):
        print(f"📄 Saved '{path}'")
    print(
        f"🏆 {result.name} ({result.symbol}): {result.total_holders} holders, "
        f"{result.total_tokens} tokens, using {', '.join(result.strategies)}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
