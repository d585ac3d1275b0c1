"""
Pirate Game App: in-process host for the split-the-pot protocol.

Mirrors the on-ledger application in ``contract.py`` call for call:
- every public method is one app call; ``sender`` plays ``Txn.sender``;
- calls on the same session are serialized by a per-session lock, and a
  rejected call leaves no trace (checks run before any write);
- ``events`` mirrors the app's log output, ``payouts`` its inner payments.
"""
import copy
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pirate_game import errors, storage
from pirate_game.claims import ClaimLedger, final_share
from pirate_game.clock import RoundClock
from pirate_game.commit_reveal import CommitRevealStore
from pirate_game.engine import BargainingEngine, observed_phase
from pirate_game.models import ParticipantRecord, Proposal, SessionConfig, SessionState
from pirate_game.registry import SessionRegistry

log = logging.getLogger(__name__)


class PirateGameApp:
    def __init__(self, clock: Optional[RoundClock] = None):
        self.clock = clock or RoundClock()
        self.registry = SessionRegistry(self.clock)
        self.votes = CommitRevealStore()
        self.engine = BargainingEngine(self.registry, self.votes)
        self.claims = ClaimLedger(self.registry)

        self.events: List[Tuple[str, int, str]] = []
        self.payouts: List[Tuple[str, int]] = []
        self.deposits = 0

        self._locks: Dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    @contextmanager
    def _session(self, session_id: int):
        session = self.registry.get(session_id)
        with self._locks_guard:
            lock = self._locks[session_id]
        with lock:
            yield session

    def _emit(self, event: str, session_id: int, sender: str) -> None:
        log.info("%s session=%d sender=%s", event, session_id, sender)
        self.events.append((event, session_id, sender))

    def _pay(self, receiver: str, amount: int) -> None:
        self.payouts.append((receiver, amount))

    def _collect(self, deposit: int) -> None:
        with self._locks_guard:
            self.deposits += deposit

    # ---- Methods ----

    def get_required_deposit(self, command: str) -> int:
        return storage.required_deposit(command)

    def create_session(self, sender: str, config: SessionConfig, deposit: int) -> int:
        session_id = self.registry.create_session(config, deposit)
        self._collect(deposit)
        self._emit("new", session_id, sender)
        return session_id

    def register(self, sender: str, session_id: int, payment: int, deposit: int) -> int:
        """Join during the registration window; returns the pirate's seniority."""
        with self._session(session_id):
            record = self.registry.register(session_id, sender, payment, deposit)
            self._collect(deposit)
            self._emit("reg", session_id, sender)
            return record.seniority

    def start_game(self, sender: str, session_id: int) -> None:
        with self._session(session_id):
            self.registry.start_game(session_id)
            self._emit("start", session_id, sender)

    def propose_distribution(self, sender: str, session_id: int, distribution: Union[Sequence[int], bytes]) -> None:
        with self._session(session_id):
            self.engine.propose(session_id, sender, distribution)
            self._emit("propose", session_id, sender)

    def commit_vote(self, sender: str, session_id: int, vote_hash: bytes, deposit: int) -> None:
        with self._session(session_id):
            self.engine.commit_vote(session_id, sender, vote_hash, deposit)
            self._collect(deposit)
            self._emit("commit", session_id, sender)

    def reveal_vote(self, sender: str, session_id: int, choice: int, salt: bytes) -> None:
        with self._session(session_id):
            self.engine.reveal_vote(session_id, sender, choice, salt)
            self._emit("reveal", session_id, sender)

    def execute_round(self, sender: str, session_id: int) -> bool:
        with self._session(session_id):
            passed = self.engine.execute_round(session_id)
            self._emit("exec", session_id, sender)
            return passed

    def time_out(self, sender: str, session_id: int) -> int:
        with self._session(session_id):
            refund = self.engine.time_out(session_id, sender)
            if refund:
                self._pay(sender, refund)
                self._emit("refund", session_id, sender)
            else:
                self._emit("timeout", session_id, sender)
            return refund

    def claim_winnings(self, sender: str, session_id: int) -> int:
        with self._session(session_id):
            amount = self.claims.claim_winnings(session_id, sender)
            self._pay(sender, amount)
            self._emit("claim", session_id, sender)
            return amount

    # ---- Reads ----

    def get_session(self, session_id: int) -> SessionConfig:
        return self.registry.get(session_id).config

    def get_state(self, session_id: int) -> SessionState:
        with self._session(session_id) as session:
            state = copy.copy(session.state)
            state.phase = observed_phase(state, self.clock.now())
            return state

    def get_pot_balance(self, session_id: int) -> int:
        with self._session(session_id) as session:
            return session.pot

    def get_participant(self, session_id: int, address: str) -> ParticipantRecord:
        with self._session(session_id) as session:
            record = session.participant(address)
            if record is None:
                raise errors.AuthorizationError(errors.NOT_A_PIRATE)
            return copy.copy(record)

    def get_participant_at(self, session_id: int, seniority: int) -> ParticipantRecord:
        with self._session(session_id) as session:
            if not 0 <= seniority < len(session.roster):
                raise errors.AuthorizationError(errors.NOT_A_PIRATE)
            return copy.copy(session.roster[seniority])

    def get_proposal(self, session_id: int) -> Optional[Proposal]:
        with self._session(session_id) as session:
            return copy.deepcopy(session.proposal)

    def final_share(self, session_id: int, address: str) -> int:
        with self._session(session_id) as session:
            record = session.participant(address)
            if record is None:
                raise errors.AuthorizationError(errors.NOT_A_PIRATE)
            return final_share(session, record.seniority)
