#!/usr/bin/env python3
"""
Compare configured contract addresses with the newest local deployment
records and list the ones that need updating.

Usage:
    python scripts/check_deployments.py [--deployments-dir DIR]

Environment Variables:
    DEPLOYMENTS_DIR: Root of the contract deployment records
    CHAIN_ID: Chain whose foundry broadcasts are read
    *_ADDRESS: Configured contract addresses
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

from services.vote_api.config import settings  # noqa: E402
from services.vote_api.deployments import (  # noqa: E402
    compare_deployments,
    read_latest_deployments,
)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Deployment address check')
    parser.add_argument(
        '--deployments-dir',
        default=settings.DEPLOYMENTS_DIR,
        help=f'Deployment records root (default: {settings.DEPLOYMENTS_DIR})'
    )
    args = parser.parse_args()

    latest = read_latest_deployments(args.deployments_dir, settings.CHAIN_ID)
    if not latest:
        print(f"✗ No deployment records found under {args.deployments_dir}", file=sys.stderr)
        sys.exit(1)

    comparison = compare_deployments(settings.contract_addresses, latest)
    outdated = []
    for name, entry in comparison.items():
        mark = "✓" if entry['isUpToDate'] else "✗"
        print(f"{mark} {name}: current={entry['current']} latest={entry['latest']}")
        if entry['needsUpdate']:
            outdated.append(name)

    if outdated:
        print(f"\nUpdate needed: {', '.join(outdated)}")
    else:
        print("\n✓ All deployed contracts match the configuration")


if __name__ == '__main__':
    main()
