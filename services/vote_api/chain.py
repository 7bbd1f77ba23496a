"""
On-chain inspection helpers used by the operator scripts.

Wraps web3.py calls against the Voting and NFTAuction contracts: RPC
connectivity, bytecode presence, phase and operator state, slot tallies,
auction status, auction upkeep and phase transitions.
"""
import logging
import time
from typing import Dict, List, Optional, Tuple

from eth_account import Account
from web3 import Web3

from services.vote_api.abis import VOTING_ABI, AUCTION_ABI, NFT_ABI, PHASE_NAMES

logger = logging.getLogger(__name__)


class ChainError(Exception):
    """Raised when the RPC endpoint or a required setting is unavailable."""


def pick_onchain_winner(counts: List[int], last_vote_times: List[int]) -> Tuple[int, int, int]:
    """
    Pick the winning slot the way the Voting contract does.

    Highest count wins; on a tie the slot whose last vote came earliest
    wins. A last vote time of zero means the slot never received a vote.

    Returns:
        (winner index, winner votes, winner last vote time)
    """
    never = float("inf")
    times = [t if t else never for t in last_vote_times]

    winner = 0
    max_votes = counts[0] if counts else 0
    earliest = times[0] if times else never
    for i in range(1, len(counts)):
        if counts[i] > max_votes:
            winner, max_votes, earliest = i, counts[i], times[i]
        elif counts[i] == max_votes and times[i] < earliest:
            winner, earliest = i, times[i]

    return winner, max_votes, 0 if earliest == never else int(earliest)


class ChainInspector:
    """Read contract state over JSON-RPC."""

    def __init__(self, settings, web3: Optional[Web3] = None):
        self.settings = settings
        self.w3 = web3 or Web3(Web3.HTTPProvider(settings.RPC_URL))

    def _require(self, value: Optional[str], name: str) -> str:
        if not value:
            raise ChainError(f"{name} is not configured")
        return value

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def _voting(self):
        return self._contract(self._require(self.settings.VOTING_ADDRESS, "VOTING_ADDRESS"), VOTING_ABI)

    def _auction(self):
        return self._contract(self._require(self.settings.AUCTION_ADDRESS, "AUCTION_ADDRESS"), AUCTION_ABI)

    def check_connection(self) -> Dict:
        """
        Verify the RPC endpoint answers.

        Returns:
            Dictionary with rpcUrl, chainId and blockNumber

        Raises:
            ChainError: If the endpoint is unreachable
        """
        if not self.w3.is_connected():
            raise ChainError(f"RPC connection failed: {self.settings.RPC_URL}")

        chain_id = self.w3.eth.chain_id
        block_number = self.w3.eth.block_number
        logger.info(f"RPC connected: chain_id={chain_id}, block={block_number}")

        return {
            "rpcUrl": self.settings.RPC_URL,
            "chainId": chain_id,
            "blockNumber": block_number,
        }

    def check_contracts(self, addresses: Dict[str, Optional[str]]) -> Dict[str, Dict]:
        """
        Check that bytecode exists at each address.

        Per-contract failures are reported in the result instead of raised.
        """
        results = {}
        for name, address in addresses.items():
            if not address:
                results[name] = {"address": None, "deployed": False, "size": 0, "error": "not configured"}
                continue
            try:
                code = self.w3.eth.get_code(Web3.to_checksum_address(address))
                results[name] = {
                    "address": address,
                    "deployed": len(code) > 0,
                    "size": len(code),
                    "error": None,
                }
            except Exception as e:
                logger.error(f"Error checking {name} at {address}: {e}")
                results[name] = {"address": address, "deployed": False, "size": 0, "error": str(e)}
        return results

    def relayer_address(self) -> Optional[str]:
        key = self.settings.RELAYER_PRIVATE_KEY
        if not key:
            return None
        return Account.from_key(key).address

    def voting_status(self, now: Optional[int] = None) -> Dict:
        """Phase, phase end, operator and admin of the Voting contract."""
        voting = self._voting()
        now = int(time.time()) if now is None else now

        phase, end_time = voting.functions.currentPhaseInfo().call()
        operator = voting.functions.operator().call()
        admin = voting.functions.admin().call()
        relayer = self.relayer_address()

        return {
            "phase": int(phase),
            "phaseName": PHASE_NAMES[phase] if 0 <= phase < len(PHASE_NAMES) else "Unknown",
            "phaseEnd": int(end_time),
            "timeLeft": max(0, int(end_time) - now),
            "votingEnded": int(phase) == 1 and now >= int(end_time),
            "operator": operator,
            "admin": admin,
            "relayer": relayer,
            "operatorMatchesRelayer": (
                relayer is not None and operator.lower() == relayer.lower()
            ),
        }

    def slot_tallies(self) -> Tuple[List[int], List[int]]:
        """Read vote counts and last vote times for every slot."""
        voting = self._voting()
        counts, last_times = [], []
        for i in range(self.settings.VOTING_SLOTS):
            counts.append(int(voting.functions.slotVotes(i).call()))
            last_times.append(int(voting.functions.lastVoteTime(i).call()))
        return counts, last_times

    def onchain_winner(self) -> Dict:
        counts, last_times = self.slot_tallies()
        index, votes, last_vote = pick_onchain_winner(counts, last_times)
        return {
            "index": index,
            "votes": votes,
            "lastVoteTime": last_vote,
            "counts": {i: c for i, c in enumerate(counts) if c > 0},
        }

    def auction_status(self, now: Optional[int] = None) -> Dict:
        """Current state of the NFTAuction contract."""
        auction = self._auction()
        now = int(time.time()) if now is None else now

        active = auction.functions.auctionActive().call()
        highest_bid = auction.functions.highestBid().call()
        end_time = int(auction.functions.auctionEndTime().call())
        upkeep_needed, _ = auction.functions.checkUpkeep(b"").call()

        status = {
            "active": bool(active),
            "highestBidWei": int(highest_bid),
            "highestBidEth": str(Web3.from_wei(highest_bid, "ether")),
            "highestBidder": auction.functions.highestBidder().call(),
            "endTime": end_time,
            "timeLeft": end_time - now,
            "nft": auction.functions.nft().call(),
            "tokenId": int(auction.functions.tokenId().call()),
            "upkeepNeeded": bool(upkeep_needed),
        }

        try:
            nft = self._contract(status["nft"], NFT_ABI)
            status["nftOwner"] = nft.functions.ownerOf(status["tokenId"]).call()
        except Exception as e:
            logger.warning(f"Could not read NFT owner: {e}")
            status["nftOwner"] = None

        return status

    def _relayer_account(self):
        return Account.from_key(self._require(self.settings.RELAYER_PRIVATE_KEY, "RELAYER_PRIVATE_KEY"))

    def _send_upkeep(self, contract, account, label: str) -> str:
        """Sign and send performUpkeep on a contract, wait for the receipt."""
        tx = contract.functions.performUpkeep(b"").build_transaction({
            "from": account.address,
            "nonce": self.w3.eth.get_transaction_count(account.address),
            "chainId": self.settings.CHAIN_ID,
        })
        signed = account.sign_transaction(tx)
        tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        logger.info(f"{label} performUpkeep mined: tx={tx_hash}, gas_used={receipt['gasUsed']}")
        return tx_hash

    def perform_upkeep(self) -> Optional[str]:
        """
        Finalize an ended auction.

        Returns:
            Transaction hash, or None when the contract reports no upkeep needed

        Raises:
            ChainError: If RELAYER_PRIVATE_KEY is not configured
        """
        account = self._relayer_account()
        auction = self._auction()

        upkeep_needed, _ = auction.functions.checkUpkeep(b"").call()
        if not upkeep_needed:
            logger.info("Auction does not need upkeep")
            return None

        return self._send_upkeep(auction, account, "Auction")

    def trigger_phase(self, now: Optional[int] = None) -> Dict:
        """
        Advance the Voting contract to its next phase.

        Uploading moves to Voting and Bidding starts a new cycle. An ended
        Voting phase is closed by finalizeWithWinner on the relayer, so it
        is reported and left alone.

        Returns:
            Dictionary with phase, phaseName, expired, action and txHash
            (None unless a transaction was sent)

        Raises:
            ChainError: If RELAYER_PRIVATE_KEY or VOTING_ADDRESS is not configured
        """
        account = self._relayer_account()
        voting = self._voting()
        now = int(time.time()) if now is None else now

        phase, end_time = voting.functions.currentPhaseInfo().call()
        phase, end_time = int(phase), int(end_time)
        result = {
            "phase": phase,
            "phaseName": PHASE_NAMES[phase] if 0 <= phase < len(PHASE_NAMES) else "Unknown",
            "phaseEnd": end_time,
            "expired": now >= end_time,
            "action": None,
            "txHash": None,
        }

        if not result["expired"]:
            result["action"] = "phase still active"
            return result

        upkeep_needed, _ = voting.functions.checkUpkeep(b"").call()
        if not upkeep_needed:
            result["action"] = "upkeep not needed"
            return result

        if phase == 1:
            result["action"] = "voting ended, awaiting finalizeWithWinner"
            return result

        result["action"] = "advanced"
        result["txHash"] = self._send_upkeep(voting, account, f"Voting ({result['phaseName']})")
        return result
