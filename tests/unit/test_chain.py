"""Tests for on-chain inspection helpers against mocked Web3 objects."""

from unittest.mock import MagicMock, patch

import pytest

from services.vote_api.chain import ChainError, ChainInspector, pick_onchain_winner
from services.vote_api.config import Settings

VOTING = "0x" + "11" * 20
AUCTION = "0x" + "22" * 20
NFT = "0x" + "33" * 20
OPERATOR = "0x" + "44" * 20
BIDDER = "0x" + "55" * 20


def call_returning(value):
    """Mock a contract function: fn(*args).call() -> value."""
    return MagicMock(return_value=MagicMock(call=MagicMock(return_value=value)))


@pytest.fixture
def chain_settings():
    return Settings(
        LEDGER_BACKEND="memory",
        RPC_URL="http://rpc.test",
        VOTING_ADDRESS=VOTING,
        AUCTION_ADDRESS=AUCTION,
        VOTING_SLOTS=4,
    )


@pytest.fixture
def contract():
    return MagicMock()


@pytest.fixture
def w3(contract):
    web3 = MagicMock()
    web3.eth.contract.return_value = contract
    return web3


@pytest.fixture
def inspector(chain_settings, w3):
    return ChainInspector(chain_settings, web3=w3)


class TestPickOnchainWinner:
    """Tests for the contract tie-break rule."""

    def test_highest_count_wins(self):
        assert pick_onchain_winner([1, 5, 2], [10, 20, 30]) == (1, 5, 20)

    def test_tie_goes_to_earliest_last_vote(self):
        assert pick_onchain_winner([3, 3, 1], [50, 40, 10]) == (1, 3, 40)

    def test_zero_time_means_never_voted(self):
        winner, votes, last_vote = pick_onchain_winner([0, 0, 0], [0, 0, 0])

        assert (winner, votes, last_vote) == (0, 0, 0)

    def test_slot_zero_without_votes_loses_to_any_vote(self):
        assert pick_onchain_winner([0, 1], [0, 99])[0] == 1


class TestCheckConnection:
    """Tests for check_connection()."""

    def test_connected(self, inspector, w3):
        w3.is_connected.return_value = True
        w3.eth.chain_id = 4801
        w3.eth.block_number = 123456

        info = inspector.check_connection()

        assert info == {"rpcUrl": "http://rpc.test", "chainId": 4801, "blockNumber": 123456}

    def test_unreachable(self, inspector, w3):
        w3.is_connected.return_value = False

        with pytest.raises(ChainError):
            inspector.check_connection()


class TestCheckContracts:
    """Tests for check_contracts()."""

    def test_reports_bytecode_presence(self, inspector, w3):
        w3.eth.get_code.side_effect = lambda addr: b"\x60\x80\x60\x40" if addr.lower() == VOTING else b""

        results = inspector.check_contracts({"voting": VOTING, "auction": AUCTION, "treasury": None})

        assert results["voting"]["deployed"] is True
        assert results["voting"]["size"] == 4
        assert results["auction"]["deployed"] is False
        assert results["treasury"]["error"] == "not configured"

    def test_rpc_error_is_captured_per_contract(self, inspector, w3):
        w3.eth.get_code.side_effect = ConnectionError("timeout")

        results = inspector.check_contracts({"voting": VOTING})

        assert results["voting"]["deployed"] is False
        assert "timeout" in results["voting"]["error"]


class TestVotingStatus:
    """Tests for voting_status()."""

    def test_voting_ended(self, inspector, contract):
        contract.functions.currentPhaseInfo = call_returning((1, 1000))
        contract.functions.operator = call_returning(OPERATOR)
        contract.functions.admin = call_returning(VOTING)

        status = inspector.voting_status(now=2000)

        assert status["phaseName"] == "Voting"
        assert status["votingEnded"] is True
        assert status["timeLeft"] == 0
        assert status["relayer"] is None
        assert status["operatorMatchesRelayer"] is False

    def test_operator_matches_relayer(self, chain_settings, w3, contract):
        key = "0x" + "01" * 32
        with patch("services.vote_api.chain.Account") as account_cls:
            account_cls.from_key.return_value.address = OPERATOR.upper().replace("0X", "0x")
            contract.functions.currentPhaseInfo = call_returning((0, 5000))
            contract.functions.operator = call_returning(OPERATOR)
            contract.functions.admin = call_returning(VOTING)
            inspector = ChainInspector(chain_settings.model_copy(update={"RELAYER_PRIVATE_KEY": key}), web3=w3)

            status = inspector.voting_status(now=1000)

        assert status["phaseName"] == "Uploading"
        assert status["timeLeft"] == 4000
        assert status["votingEnded"] is False
        assert status["operatorMatchesRelayer"] is True

    def test_missing_voting_address(self, chain_settings, w3):
        inspector = ChainInspector(chain_settings.model_copy(update={"VOTING_ADDRESS": None}), web3=w3)

        with pytest.raises(ChainError):
            inspector.voting_status()


class TestOnchainWinner:
    """Tests for slot_tallies() and onchain_winner()."""

    def test_reads_every_slot(self, inspector, contract):
        counts = [0, 2, 2, 1]
        last_times = [0, 300, 200, 100]
        contract.functions.slotVotes.side_effect = lambda i: MagicMock(call=MagicMock(return_value=counts[i]))
        contract.functions.lastVoteTime.side_effect = lambda i: MagicMock(call=MagicMock(return_value=last_times[i]))

        winner = inspector.onchain_winner()

        assert winner["index"] == 2
        assert winner["votes"] == 2
        assert winner["lastVoteTime"] == 200
        assert winner["counts"] == {1: 2, 2: 2, 3: 1}


class TestAuction:
    """Tests for auction_status() and perform_upkeep()."""

    @pytest.fixture
    def auction_contract(self, contract):
        contract.functions.auctionActive = call_returning(True)
        contract.functions.highestBid = call_returning(10 ** 18)
        contract.functions.highestBidder = call_returning(BIDDER)
        contract.functions.auctionEndTime = call_returning(1500)
        contract.functions.nft = call_returning(NFT)
        contract.functions.tokenId = call_returning(7)
        contract.functions.checkUpkeep = call_returning((False, b""))
        contract.functions.ownerOf = call_returning(AUCTION)
        return contract

    def test_status(self, inspector, auction_contract):
        status = inspector.auction_status(now=1000)

        assert status["active"] is True
        assert status["highestBidEth"] == "1"
        assert status["highestBidder"] == BIDDER
        assert status["timeLeft"] == 500
        assert status["tokenId"] == 7
        assert status["nftOwner"] == AUCTION
        assert status["upkeepNeeded"] is False

    def test_owner_lookup_failure_is_tolerated(self, inspector, auction_contract):
        auction_contract.functions.ownerOf.side_effect = ValueError("execution reverted")

        assert inspector.auction_status(now=1000)["nftOwner"] is None

    def test_upkeep_requires_relayer_key(self, inspector, auction_contract):
        with pytest.raises(ChainError):
            inspector.perform_upkeep()

    def test_no_upkeep_needed(self, chain_settings, w3, auction_contract):
        inspector = ChainInspector(
            chain_settings.model_copy(update={"RELAYER_PRIVATE_KEY": "0x" + "01" * 32}),
            web3=w3
        )

        with patch("services.vote_api.chain.Account"):
            assert inspector.perform_upkeep() is None

        w3.eth.send_raw_transaction.assert_not_called()

    def test_performs_upkeep(self, chain_settings, w3, auction_contract):
        auction_contract.functions.checkUpkeep = call_returning((True, b""))
        auction_contract.functions.performUpkeep.return_value.build_transaction.return_value = {"to": AUCTION}
        w3.eth.get_transaction_count.return_value = 3
        w3.eth.send_raw_transaction.return_value = bytes.fromhex("feed")
        w3.eth.wait_for_transaction_receipt.return_value = {"gasUsed": 21000}
        inspector = ChainInspector(
            chain_settings.model_copy(update={"RELAYER_PRIVATE_KEY": "0x" + "01" * 32}),
            web3=w3
        )

        with patch("services.vote_api.chain.Account") as account_cls:
            account = account_cls.from_key.return_value
            account.address = OPERATOR
            account.sign_transaction.return_value.raw_transaction = b"signed"

            tx_hash = inspector.perform_upkeep()

        assert tx_hash == "0xfeed"
        w3.eth.wait_for_transaction_receipt.assert_called_once_with("0xfeed")
        auction_contract.functions.performUpkeep.return_value.build_transaction.assert_called_once_with({
            "from": OPERATOR,
            "nonce": 3,
            "chainId": 4801,
        })
        w3.eth.send_raw_transaction.assert_called_once_with(b"signed")


class TestTriggerPhase:
    """Tests for trigger_phase()."""

    @pytest.fixture
    def relayer_inspector(self, chain_settings, w3):
        return ChainInspector(
            chain_settings.model_copy(update={"RELAYER_PRIVATE_KEY": "0x" + "01" * 32}),
            web3=w3
        )

    @pytest.fixture
    def account(self):
        with patch("services.vote_api.chain.Account") as account_cls:
            account = account_cls.from_key.return_value
            account.address = OPERATOR
            account.sign_transaction.return_value.raw_transaction = b"signed"
            yield account

    @pytest.fixture
    def voting_contract(self, contract, w3):
        contract.functions.checkUpkeep = call_returning((True, b""))
        contract.functions.performUpkeep.return_value.build_transaction.return_value = {"to": VOTING}
        w3.eth.get_transaction_count.return_value = 9
        w3.eth.send_raw_transaction.return_value = bytes.fromhex("beef")
        w3.eth.wait_for_transaction_receipt.return_value = {"gasUsed": 50000}
        return contract

    def test_requires_relayer_key(self, inspector, voting_contract):
        with pytest.raises(ChainError):
            inspector.trigger_phase(now=2000)

    def test_active_phase_is_left_alone(self, relayer_inspector, voting_contract, account, w3):
        voting_contract.functions.currentPhaseInfo = call_returning((0, 5000))

        result = relayer_inspector.trigger_phase(now=1000)

        assert result["expired"] is False
        assert result["txHash"] is None
        voting_contract.functions.checkUpkeep.assert_not_called()
        w3.eth.send_raw_transaction.assert_not_called()

    def test_uploading_advances_to_voting(self, relayer_inspector, voting_contract, account, w3):
        voting_contract.functions.currentPhaseInfo = call_returning((0, 1000))

        result = relayer_inspector.trigger_phase(now=2000)

        assert result["phaseName"] == "Uploading"
        assert result["action"] == "advanced"
        assert result["txHash"] == "0xbeef"
        voting_contract.functions.performUpkeep.return_value.build_transaction.assert_called_once_with({
            "from": OPERATOR,
            "nonce": 9,
            "chainId": 4801,
        })
        w3.eth.send_raw_transaction.assert_called_once_with(b"signed")

    def test_bidding_starts_new_cycle(self, relayer_inspector, voting_contract, account):
        voting_contract.functions.currentPhaseInfo = call_returning((2, 1000))

        result = relayer_inspector.trigger_phase(now=1000)

        assert result["phaseName"] == "Bidding"
        assert result["txHash"] == "0xbeef"

    def test_ended_voting_waits_for_finalize(self, relayer_inspector, voting_contract, account, w3):
        voting_contract.functions.currentPhaseInfo = call_returning((1, 1000))

        result = relayer_inspector.trigger_phase(now=2000)

        assert result["expired"] is True
        assert result["txHash"] is None
        assert "finalizeWithWinner" in result["action"]
        w3.eth.send_raw_transaction.assert_not_called()

    def test_upkeep_not_needed(self, relayer_inspector, voting_contract, account, w3):
        voting_contract.functions.currentPhaseInfo = call_returning((0, 1000))
        voting_contract.functions.checkUpkeep = call_returning((False, b""))

        result = relayer_inspector.trigger_phase(now=2000)

        assert result["action"] == "upkeep not needed"
        w3.eth.send_raw_transaction.assert_not_called()
