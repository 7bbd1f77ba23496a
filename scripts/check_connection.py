#!/usr/bin/env python3
"""
Check that the configured JSON-RPC endpoint answers.

Prints the chain id and latest block number.

Usage:
    python scripts/check_connection.py [--rpc-url URL]

Environment Variables:
    RPC_URL: JSON-RPC endpoint (default: World Chain Sepolia public RPC)
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.chain import ChainError, ChainInspector  # noqa: E402
from services.vote_api.config import settings  # noqa: E402


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Check JSON-RPC connectivity')
    parser.add_argument(
        '--rpc-url',
        default=settings.RPC_URL,
        help='JSON-RPC endpoint (default: $RPC_URL)'
    )
    args = parser.parse_args()

    inspector = ChainInspector(settings.model_copy(update={'RPC_URL': args.rpc_url}))

    print(f"Testing RPC: {args.rpc_url}")
    try:
        info = inspector.check_connection()
    except ChainError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ RPC test failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Chain ID: {info['chainId']}")
    print(f"✓ Latest block: {info['blockNumber']:,}")


if __name__ == '__main__':
    main()
