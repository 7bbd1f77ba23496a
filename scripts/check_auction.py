#!/usr/bin/env python3
"""
Report the voting phase, on-chain slot tallies and auction status.

Usage:
    python scripts/check_auction.py [--top N]

Environment Variables:
    RPC_URL: JSON-RPC endpoint
    VOTING_ADDRESS: Voting contract address
    AUCTION_ADDRESS: NFTAuction contract address
    VOTING_SLOTS: Number of candidate slots (default: 20)
"""

import argparse
import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainError, ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def print_voting(inspector: ChainInspector, top: int):
    status = inspector.voting_status()
    print("VOTING CONTRACT STATUS:")
    print(f"  Phase: {status['phaseName']} ({status['phase']})")
    print(f"  Phase End Time: {datetime.fromtimestamp(status['phaseEnd'])}")
    print(f"  Time Left: {status['timeLeft']} seconds")

    if not status['votingEnded']:
        return

    print("  Voting has ended, auction should start")
    winner = inspector.onchain_winner()
    ranked = sorted(winner['counts'].items(), key=lambda kv: kv[1], reverse=True)
    if not ranked:
        print("  No votes found")
        return

    print("  Top voted slots:")
    for index, votes in ranked[:top]:
        print(f"    Slot {index}: {votes} votes")
    print(f"  Winner: Slot {winner['index']} with {winner['votes']} votes")


def print_auction(inspector: ChainInspector):
    status = inspector.auction_status()
    print("\nAUCTION CONTRACT STATUS:")
    print(f"  Auction Active: {status['active']}")
    print(f"  Token ID: {status['tokenId']}")
    print(f"  Highest Bid: {status['highestBidEth']} ETH")
    print(f"  Highest Bidder: {status['highestBidder']}")
    print(f"  Auction End: {datetime.fromtimestamp(status['endTime'])}")
    state = 'ENDED' if status['timeLeft'] < 0 else 'ACTIVE'
    print(f"  Time Left: {status['timeLeft']} seconds ({state})")
    print(f"  NFT Contract: {status['nft']}")
    print(f"  NFT Owner: {status['nftOwner']}")
    print(f"  Upkeep Needed: {status['upkeepNeeded']}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Check voting and auction status')
    parser.add_argument(
        '--top',
        type=int,
        default=5,
        help='Number of top slots to list (default: 5)'
    )
    args = parser.parse_args()

    inspector = ChainInspector(settings)

    try:
        print_voting(inspector, args.top)
        print_auction(inspector)
    except ChainError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Error checking status: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
