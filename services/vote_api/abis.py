"""Minimal ABI fragments for the contract calls the operator tools make."""

def _view(name, outputs, inputs=None):
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": inputs or [],
        "outputs": outputs,
    }

_UINT = {"name": "", "type": "uint256"}
_ADDRESS = {"name": "", "type": "address"}
_BOOL = {"name": "", "type": "bool"}
_SLOT = [{"name": "index", "type": "uint256"}]

_CHECK_UPKEEP = _view("checkUpkeep", [
    {"name": "upkeepNeeded", "type": "bool"},
    {"name": "performData", "type": "bytes"},
], [{"name": "checkData", "type": "bytes"}])

_PERFORM_UPKEEP = {
    "type": "function",
    "name": "performUpkeep",
    "stateMutability": "nonpayable",
    "inputs": [{"name": "performData", "type": "bytes"}],
    "outputs": [],
}

VOTING_ABI = [
    _view("currentPhaseInfo", [
        {"name": "phase", "type": "uint8"},
        {"name": "endTime", "type": "uint256"},
    ]),
    _view("operator", [_ADDRESS]),
    _view("admin", [_ADDRESS]),
    _view("slotVotes", [_UINT], _SLOT),
    _view("lastVoteTime", [_UINT], _SLOT),
    _CHECK_UPKEEP,
    _PERFORM_UPKEEP,
]

AUCTION_ABI = [
    _view("auctionActive", [_BOOL]),
    _view("highestBid", [_UINT]),
    _view("highestBidder", [_ADDRESS]),
    _view("auctionEndTime", [_UINT]),
    _view("nft", [_ADDRESS]),
    _view("tokenId", [_UINT]),
    _CHECK_UPKEEP,
    _PERFORM_UPKEEP,
]

NFT_ABI = [
    _view("ownerOf", [_ADDRESS], [{"name": "tokenId", "type": "uint256"}]),
]

PHASE_NAMES = ["Uploading", "Voting", "Bidding"]
