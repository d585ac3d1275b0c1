# pirate_game/commit_reveal.py
# Per-(session, round, participant) vote commitments.
import hmac
import logging
import threading
from typing import Dict, Optional, Tuple

from pirate_game import codec, errors, storage
from pirate_game.models import VoteCommitment

log = logging.getLogger(__name__)

Key = Tuple[int, str]  # (round, address) inside one session's bucket


class CommitRevealStore:
    """Holds commitment hashes and, once revealed, the choice.

    A reveal drops the raw hash and keeps only the choice, so a second
    reveal finds no commitment and a second commit still sees the record.
    Each session owns its bucket; callers hold that session's lock, so only
    bucket creation and removal touch shared state.
    """

    def __init__(self):
        self._sessions: Dict[int, Dict[Key, VoteCommitment]] = {}
        self._guard = threading.Lock()

    def _bucket(self, session_id: int) -> Dict[Key, VoteCommitment]:
        with self._guard:
            return self._sessions.setdefault(session_id, {})

    def get(self, session_id: int, round_: int, address: str) -> Optional[VoteCommitment]:
        with self._guard:
            bucket = self._sessions.get(session_id)
        if bucket is None:
            return None
        return bucket.get((round_, address))

    def commit(self, session_id: int, round_: int, address: str, commitment: bytes) -> None:
        if len(commitment) != storage.HASH_SIZE:
            raise errors.ValidationError(errors.BAD_HASH_LENGTH)
        bucket = self._bucket(session_id)
        if (round_, address) in bucket:
            raise errors.StateConflictError(errors.ALREADY_VOTED)
        bucket[(round_, address)] = VoteCommitment(hash=bytes(commitment))
        log.debug("commit session=%d round=%d %s", session_id, round_, address)

    def reveal(self, session_id: int, round_: int, address: str, choice: int, salt: bytes) -> int:
        record = self.get(session_id, round_, address)
        if record is None or record.revealed_choice is not None:
            raise errors.StateConflictError(errors.NO_COMMIT)
        if not hmac.compare_digest(codec.commitment_hash(choice, salt), record.hash):
            raise errors.IntegrityError(errors.HASH_MISMATCH)
        record.revealed_choice = choice
        record.hash = b""
        log.debug("reveal session=%d round=%d %s choice=%d", session_id, round_, address, choice)
        return choice

    def drop_round(self, session_id: int, round_: int) -> None:
        with self._guard:
            bucket = self._sessions.get(session_id)
        if bucket is None:
            return
        for key in [k for k in bucket if k[0] == round_]:
            del bucket[key]

    def drop_session(self, session_id: int) -> None:
        with self._guard:
            self._sessions.pop(session_id, None)
