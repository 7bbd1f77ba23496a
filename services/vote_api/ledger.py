"""Vote ledger backends: in-memory, JSON file and Redis."""
import asyncio
import json
import logging
import os
from typing import Optional, Dict, List

import redis.asyncio as redis

from services.shared.models import (
    Vote,
    WinnerResult,
    tally_votes,
    normalize_address,
    get_current_timestamp,
    get_redis_key,
)

logger = logging.getLogger(__name__)

# KEYS: voters hash, counts hash, events list, sessions set
# ARGV: address, index, event JSON, session id
RECORD_VOTE_SCRIPT = """
if redis.call('HSETNX', KEYS[1], ARGV[1], ARGV[2]) == 0 then
    return 0
end
redis.call('HINCRBY', KEYS[2], ARGV[2], 1)
redis.call('RPUSH', KEYS[3], ARGV[3])
redis.call('SADD', KEYS[4], ARGV[4])
return 1
"""


class LedgerError(Exception):
    """Raised when the ledger cannot be configured or reached."""


class VoteLedger:
    """
    Base class for vote ledgers.

    A ledger accepts at most one vote per (session, address) pair and
    answers winner queries over the votes it holds.
    """

    name = "base"

    async def initialize(self):
        """Prepare the backend for use."""

    async def close(self):
        """Release backend resources."""

    async def check_health(self) -> bool:
        return True

    async def record_vote(
        self,
        session_id: int,
        index: int,
        address: str,
        timestamp: Optional[int] = None
    ) -> bool:
        """
        Record a vote.

        Args:
            session_id: Voting round identifier
            index: Chosen candidate index
            address: Voter wallet address (normalized to lowercase)
            timestamp: Unix seconds, defaults to now

        Returns:
            True if recorded, False if the address already voted in the session
        """
        vote = Vote(
            session_id=int(session_id),
            voter_address=normalize_address(address),
            chosen_index=int(index),
            timestamp=get_current_timestamp() if timestamp is None else int(timestamp)
        )
        recorded = await self._store(vote)
        if recorded:
            logger.info(
                f"Vote recorded: session={vote.session_id}, "
                f"address={vote.voter_address}, index={vote.chosen_index}"
            )
        else:
            logger.warning(
                f"Duplicate vote rejected: session={vote.session_id}, "
                f"address={vote.voter_address}"
            )
        return recorded

    async def compute_winner(self, session_id: int) -> WinnerResult:
        """
        Tally a session and pick the winner.

        Returns an empty WinnerResult when the session has no votes.
        """
        votes = await self.session_votes(session_id)
        return tally_votes(int(session_id), votes)

    async def session_votes(self, session_id: int) -> List[Vote]:
        """Return the votes recorded for a session in insertion order."""
        raise NotImplementedError

    async def _store(self, vote: Vote) -> bool:
        raise NotImplementedError


class MemoryLedger(VoteLedger):
    """Ledger kept in process memory. Contents are lost on restart."""

    name = "memory"

    def __init__(self):
        self._sessions: Dict[int, Dict[str, Vote]] = {}
        self._lock = asyncio.Lock()

    async def _store(self, vote: Vote) -> bool:
        async with self._lock:
            voters = self._sessions.setdefault(vote.session_id, {})
            if vote.voter_address in voters:
                return False
            voters[vote.voter_address] = vote
            return True

    async def session_votes(self, session_id: int) -> List[Vote]:
        async with self._lock:
            return list(self._sessions.get(int(session_id), {}).values())


class FileLedger(VoteLedger):
    """
    Ledger persisted as a single JSON document.

    Layout per session key::

        {"byAddress": {address: index},
         "counts": {index: count},
         "events": [{"address": ..., "index": ..., "timestamp": ...}]}

    File access runs in the default executor so it doesn't block the
    event loop.
    """

    name = "file"

    def __init__(self, path: str):
        self.path = path
        self._lock = asyncio.Lock()

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def initialize(self):
        await self._run(self._ensure_file)
        logger.info(f"File ledger ready at {self.path}")

    async def check_health(self) -> bool:
        try:
            await self._run(self._ensure_file)
            return os.access(self.path, os.R_OK | os.W_OK)
        except OSError as e:
            logger.error(f"File ledger health check failed: {e}")
            return False

    def _ensure_file(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.path):
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({}, f)

    def _read(self) -> dict:
        self._ensure_file()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
            data = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            logger.warning(f"Unreadable ledger file {self.path}, treating as empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(
                f"Ledger file {self.path} holds {type(data).__name__}, not an object; treating as empty"
            )
            return {}
        return data

    def _write(self, data: dict):
        self._ensure_file()
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    async def _store(self, vote: Vote) -> bool:
        async with self._lock:
            try:
                data = await self._run(self._read)
                key = str(vote.session_id)
                session = data.setdefault(key, {"byAddress": {}, "counts": {}, "events": []})
                if vote.voter_address in session["byAddress"]:
                    return False

                index_key = str(vote.chosen_index)
                session["byAddress"][vote.voter_address] = vote.chosen_index
                session["counts"][index_key] = session["counts"].get(index_key, 0) + 1
                session["events"].append({
                    "address": vote.voter_address,
                    "index": vote.chosen_index,
                    "timestamp": vote.timestamp,
                })
                await self._run(self._write, data)
                return True
            except OSError as e:
                logger.error(f"Error writing ledger file {self.path}: {e}")
                raise

    async def session_votes(self, session_id: int) -> List[Vote]:
        async with self._lock:
            data = await self._run(self._read)
        session = data.get(str(int(session_id)))

        if not session:
            return []

        return [
            Vote(
                session_id=int(session_id),
                voter_address=event["address"],
                chosen_index=int(event["index"]),
                timestamp=int(event["timestamp"])
            )
            for event in session.get("events", [])
        ]


class RedisLedger(VoteLedger):
    """
    Ledger stored in Redis.

    A vote is written by one Lua script: HSETNX on the per-session voters
    hash, then the count, event and session index. Redis runs the script
    atomically, so a voter is never marked without the vote being counted.
    """

    name = "redis"

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.client = client
        self._script = None

    @property
    def _record_script(self):
        if self._script is None:
            self._script = self.client.register_script(RECORD_VOTE_SCRIPT)
        return self._script

    async def initialize(self):
        """Initialize Redis connection."""
        try:
            if self.client is None:
                self.client = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
            await self.client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def close(self):
        """Close Redis connection."""
        try:
            if self.client:
                await self.client.aclose()
                logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")

    async def check_health(self) -> bool:
        try:
            if not self.client:
                return False
            await self.client.ping()
            return True
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def _store(self, vote: Vote) -> bool:
        try:
            added = await self._record_script(
                keys=[
                    get_redis_key('voters', vote.session_id),
                    get_redis_key('counts', vote.session_id),
                    get_redis_key('events', vote.session_id),
                    get_redis_key('sessions'),
                ],
                args=[
                    vote.voter_address,
                    vote.chosen_index,
                    vote.to_json(),
                    vote.session_id,
                ]
            )
            return bool(added)
        except redis.RedisError as e:
            logger.error(f"Redis error recording vote: {e}")
            raise

    async def session_votes(self, session_id: int) -> List[Vote]:
        try:
            events = await self.client.lrange(get_redis_key('events', int(session_id)), 0, -1)
            return [Vote.from_json(event) for event in events]
        except redis.RedisError as e:
            logger.error(f"Redis error reading votes for session {session_id}: {e}")
            raise


def create_ledger(settings) -> VoteLedger:
    """
    Build the ledger selected by LEDGER_BACKEND.

    Raises:
        LedgerError: If the backend name is unknown
    """
    backend = settings.LEDGER_BACKEND.lower()
    if backend == "memory":
        return MemoryLedger()
    if backend == "file":
        return FileLedger(settings.LEDGER_FILE)
    if backend == "redis":
        return RedisLedger(settings.redis_url)
    raise LedgerError(f"Unknown ledger backend: {settings.LEDGER_BACKEND}")
