#!/usr/bin/env python3
"""
Show the Voting contract's operator and admin, and whether the relayer
key configured locally is the operator.

Usage:
    python scripts/check_operator.py

Environment Variables:
    RPC_URL: JSON-RPC endpoint
    VOTING_ADDRESS: Voting contract address
    RELAYER_PRIVATE_KEY: Relayer key to compare against the operator (optional)
"""

import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainError, ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def main():
    """Main entry point."""
    inspector = ChainInspector(settings)

    print(f"Voting contract: {settings.VOTING_ADDRESS}")
    print(f"RPC URL: {settings.RPC_URL}")

    try:
        status = inspector.voting_status()
    except ChainError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Error checking operator: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Current operator: {status['operator']}")
    print(f"Admin: {status['admin']}")
    if status['relayer']:
        print(f"Relayer address: {status['relayer']}")
        print(f"Operator matches relayer: {status['operatorMatchesRelayer']}")

    print(f"Current phase: {status['phaseName']} ({status['phase']})")
    print(f"Phase end time: {datetime.fromtimestamp(status['phaseEnd'])}")


if __name__ == '__main__':
    main()
