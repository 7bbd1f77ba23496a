#!/usr/bin/env python3
"""
Check whether the auction needs upkeep and, with --execute, perform it.

performUpkeep is signed with the relayer key and finalizes an ended
auction (transfers the NFT to the highest bidder).

Usage:
    python scripts/auction_upkeep.py [--execute]

Environment Variables:
    RPC_URL: JSON-RPC endpoint
    AUCTION_ADDRESS: NFTAuction contract address
    RELAYER_PRIVATE_KEY: Key used to sign performUpkeep
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainError, ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Auction upkeep check and execution')
    parser.add_argument(
        '--execute',
        action='store_true',
        help='Send performUpkeep when upkeep is needed'
    )
    args = parser.parse_args()

    inspector = ChainInspector(settings)

    try:
        relayer = inspector.relayer_address()
        if relayer:
            print(f"Using relayer: {relayer}")

        status = inspector.auction_status()
        print(f"Auction Active: {status['active']}")
        print(f"Highest Bid: {status['highestBidEth']} ETH")
        print(f"Highest Bidder: {status['highestBidder']}")
        print(f"Upkeep needed: {status['upkeepNeeded']}")

        if not status['upkeepNeeded']:
            owner = (status['nftOwner'] or '').lower()
            if owner and owner != settings.AUCTION_ADDRESS.lower():
                print(f"✓ Auction already finalized, NFT owner: {status['nftOwner']}")
            else:
                print("✓ No upkeep needed")
            return

        if not args.execute:
            print("Run again with --execute to call performUpkeep")
            return

        tx_hash = inspector.perform_upkeep()
        if tx_hash:
            print(f"✓ Auction finalized, tx: {tx_hash}")
        else:
            print("✓ Upkeep no longer needed")

    except ChainError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Upkeep failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
