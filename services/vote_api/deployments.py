"""Read local contract deployment records and compare them with configured addresses."""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Not configured"
NOT_FOUND = "Not found in deployments"

# Foundry broadcast contract names mapped to configuration keys
BROADCAST_CONTRACTS = {
    "Voting": "voting",
    "DailyAuction": "auction",
    "Auction": "auction",
    "NFTMinter": "worldNft",
}


def _latest_file(directory: Path, prefix: str = "") -> Optional[Path]:
    """Return the lexically last ``<prefix>*.json`` file in a directory."""
    files = sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.name.startswith(prefix) and p.suffix == ".json"
    )
    return files[-1] if files else None


def _load_latest(directory: Path, prefix: str = "") -> Optional[dict]:
    latest = _latest_file(directory, prefix)
    if latest is None:
        return None
    with open(latest, "r", encoding="utf-8") as f:
        return json.load(f)


def read_latest_deployments(deployments_dir: str, chain_id: int) -> Dict[str, str]:
    """
    Collect the newest deployed addresses from the contract projects.

    Sources that are missing or unreadable are logged and skipped.

    Args:
        deployments_dir: Root directory of the contract projects
        chain_id: Chain id of the foundry broadcast to read

    Returns:
        Mapping of configuration key to deployed address
    """
    root = Path(deployments_dir)
    latest: Dict[str, str] = {}

    try:
        governor = _load_latest(root / "world-governor" / "deployments")
        if governor:
            for key in ("governor", "candidate"):
                if governor.get(key):
                    latest[key] = governor[key]
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read governor deployments: {e}")

    try:
        treasury = _load_latest(root / "world-treasure" / "deployments")
        if treasury and treasury.get("treasury"):
            latest["treasury"] = treasury["treasury"]
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read treasury deployments: {e}")

    try:
        broadcast_dir = root / "Auction" / "broadcast" / "DeployVoting.s.sol" / str(chain_id)
        broadcast = _load_latest(broadcast_dir, prefix="run-")
        for tx in (broadcast or {}).get("transactions", []):
            key = BROADCAST_CONTRACTS.get(tx.get("contractName"))
            if key and tx.get("contractAddress"):
                latest[key] = tx["contractAddress"]
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read auction deployments: {e}")

    return latest


def compare_deployments(
    current: Dict[str, Optional[str]],
    latest: Dict[str, str]
) -> Dict[str, dict]:
    """
    Compare configured addresses with the latest deployments.

    Addresses are compared case-insensitively.
    """
    comparison = {}
    for key, current_addr in current.items():
        latest_addr = latest.get(key)
        same = bool(current_addr and latest_addr) and current_addr.lower() == latest_addr.lower()
        comparison[key] = {
            "current": current_addr or NOT_CONFIGURED,
            "latest": latest_addr or NOT_FOUND,
            "isUpToDate": same,
            "needsUpdate": latest_addr is not None and not same,
        }
    return comparison
