#!/usr/bin/env python3
"""
Advance the Voting contract's phase when the current one has expired.

Uploading moves to Voting, Bidding starts a new cycle. An ended Voting
phase is left for the relayer's finalizeWithWinner.

Usage:
    python scripts/trigger_phase.py [--execute]

Environment Variables:
    RPC_URL: JSON-RPC endpoint
    VOTING_ADDRESS: Voting contract address
    RELAYER_PRIVATE_KEY: Key used to sign performUpkeep
"""

import argparse
import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainError, ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Voting phase trigger')
    parser.add_argument(
        '--execute',
        action='store_true',
        help='Send performUpkeep when the phase has expired'
    )
    args = parser.parse_args()

    inspector = ChainInspector(settings)

    try:
        relayer = inspector.relayer_address()
        if relayer:
            print(f"Using relayer: {relayer}")

        if not args.execute:
            status = inspector.voting_status()
            print(f"Phase: {status['phaseName']} ({status['phase']})")
            print(f"Phase end: {datetime.fromtimestamp(status['phaseEnd'])}")
            print(f"Expired: {status['timeLeft'] == 0}")
            print("Run again with --execute to advance an expired phase")
            return

        result = inspector.trigger_phase()
        print(f"Phase: {result['phaseName']} ({result['phase']})")
        print(f"Phase end: {datetime.fromtimestamp(result['phaseEnd'])}")
        print(f"Expired: {result['expired']}")

        if result['txHash']:
            print(f"✓ Phase advanced, tx: {result['txHash']}")
            status = inspector.voting_status()
            print(f"New phase: {status['phaseName']}, ends {datetime.fromtimestamp(status['phaseEnd'])}")
        else:
            print(f"✓ No transaction sent: {result['action']}")

    except ChainError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Phase trigger failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
