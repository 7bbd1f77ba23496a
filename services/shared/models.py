"""
Shared data models and utilities for the WorldDAO vote service.

This module contains:
- Vote: a single recorded vote for a session
- WinnerResult: the outcome of tallying a session
- Tally and address normalization utilities
- Redis key helpers used by the redis-backed ledger
"""

import json
import re
import time
from dataclasses import dataclass, asdict, field
from typing import Optional, Dict, Any, Iterable


ADDRESS_PATTERN = re.compile(r'^0x[0-9a-f]{40}$')


@dataclass
class Vote:
    """
    A single vote, created once and never mutated.

    Attributes:
        session_id: Voting round identifier
        voter_address: Lowercased wallet address of the voter
        chosen_index: Candidate slot the voter picked
        timestamp: Unix seconds when the vote was recorded
    """
    session_id: int
    voter_address: str
    chosen_index: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert to JSON string for storage."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vote':
        """Create Vote from dictionary."""
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> 'Vote':
        """Create Vote from JSON string."""
        data = json.loads(json_str)
        return cls.from_dict(data)


@dataclass
class WinnerResult:
    """
    Result of tallying one session.

    Attributes:
        session_id: Voting round identifier
        winning_index: Leading candidate index, None when nobody voted
        votes: Vote count of the leading index
        counts: Vote count per candidate index
        tie_break_ts: Earliest vote timestamp of the leading index
    """
    session_id: int
    winning_index: Optional[int] = None
    votes: int = 0
    counts: Dict[int, int] = field(default_factory=dict)
    tie_break_ts: int = 0

    @property
    def is_empty(self) -> bool:
        return self.winning_index is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase shape returned by the API."""
        return {
            "sessionId": self.session_id,
            "winningIndex": self.winning_index,
            "votes": self.votes,
            "counts": {str(k): v for k, v in sorted(self.counts.items())},
            "tieBreakTs": self.tie_break_ts,
        }


def tally_votes(session_id: int, votes: Iterable[Vote]) -> WinnerResult:
    """
    Count votes per index and pick the leader.

    Ties go to the index whose earliest vote came first, then to the
    lower index.

    Args:
        session_id: Session the votes belong to
        votes: Votes recorded for that session

    Returns:
        WinnerResult: Tally and leader, or an empty result if there are no votes
    """
    counts: Dict[int, int] = {}
    first_seen: Dict[int, int] = {}

    for vote in votes:
        idx = vote.chosen_index
        counts[idx] = counts.get(idx, 0) + 1
        if idx not in first_seen or vote.timestamp < first_seen[idx]:
            first_seen[idx] = vote.timestamp

    if not counts:
        return WinnerResult(session_id=session_id)

    winner = min(counts, key=lambda idx: (-counts[idx], first_seen[idx], idx))

    return WinnerResult(
        session_id=session_id,
        winning_index=winner,
        votes=counts[winner],
        counts=counts,
        tie_break_ts=first_seen[winner]
    )


def normalize_address(address: str) -> str:
    """
    Normalize a wallet address for use as a ledger key.

    Args:
        address: Address as submitted by the client

    Returns:
        str: Stripped, lowercased address
    """
    return str(address).strip().lower()


def validate_address_format(address: str) -> bool:
    """
    Validate an EVM address (0x followed by 40 hex characters).

    Args:
        address: Address to validate

    Returns:
        bool: True if valid format
    """
    return bool(ADDRESS_PATTERN.match(normalize_address(address)))


def get_current_timestamp() -> int:
    """
    Get current time in Unix seconds.

    Returns:
        int: Seconds since the epoch
    """
    return int(time.time())


# Redis key templates for the redis-backed ledger
REDIS_KEYS = {
    'voters': 'votes:{}:voters',    # HASH address -> chosen index
    'counts': 'votes:{}:counts',    # HASH chosen index -> count
    'events': 'votes:{}:events',    # LIST of Vote JSON documents
    'sessions': 'votes:sessions',   # SET of session ids with votes
}


def get_redis_key(key_type: str, *args) -> str:
    """
    Get formatted Redis key.

    Args:
        key_type: Type of key from REDIS_KEYS
        *args: Arguments to format into key

    Returns:
        str: Formatted Redis key
    """
    key_template = REDIS_KEYS.get(key_type)
    if key_template and '{}' in key_template:
        return key_template.format(*args)
    return key_template
