#!/usr/bin/env python3
"""
Check that every configured contract address holds bytecode.

Usage:
    python scripts/check_contracts.py [--rpc-url URL]

Environment Variables:
    RPC_URL: JSON-RPC endpoint
    VOTING_ADDRESS, AUCTION_ADDRESS, NFT_MINTER_ADDRESS, TREASURY_ADDRESS,
    GOVERNOR_ADDRESS, CANDIDATE_ADDRESS, WORLD_NFT_ADDRESS: contracts to check
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Check contract deployments on-chain')
    parser.add_argument(
        '--rpc-url',
        default=settings.RPC_URL,
        help='JSON-RPC endpoint (default: $RPC_URL)'
    )
    args = parser.parse_args()

    inspector = ChainInspector(settings.model_copy(update={'RPC_URL': args.rpc_url}))

    addresses = dict(settings.contract_addresses)
    addresses['nftMinter'] = settings.NFT_MINTER_ADDRESS

    print("Checking WorldDAO contract deployments")
    print("=" * 50)

    results = inspector.check_contracts(addresses)
    missing = 0
    for name, result in results.items():
        if result['error']:
            print(f"✗ {name:<15} {result['error']}")
            missing += 1
        elif result['deployed']:
            print(f"✓ {name:<15} DEPLOYED ({result['size']:,} bytes)")
        else:
            print(f"✗ {name:<15} NOT DEPLOYED")
            missing += 1

    print(f"\nNetwork chain id: {settings.CHAIN_ID}")
    print(f"RPC: {args.rpc_url}")

    if missing:
        sys.exit(1)


if __name__ == '__main__':
    main()
