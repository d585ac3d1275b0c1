# pirate_game/registry.py
# Session creation, registration window, game start and the registration refund.
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pirate_game import errors, storage
from pirate_game.clock import RoundClock
from pirate_game.models import (
    ParticipantRecord,
    Phase,
    Proposal,
    SessionConfig,
    SessionState,
)

log = logging.getLogger(__name__)


@dataclass
class Session:
    session_id: int
    config: SessionConfig
    state: SessionState = field(default_factory=SessionState)
    pot: int = 0
    roster: List[ParticipantRecord] = field(default_factory=list)  # by seniority
    proposal: Optional[Proposal] = None

    def participant(self, address: str) -> Optional[ParticipantRecord]:
        for p in self.roster:
            if p.address == address:
                return p
        return None


class SessionRegistry:
    def __init__(self, clock: RoundClock):
        self.clock = clock
        self._sessions: Dict[int, Session] = {}
        self._ids = itertools.count()
        self._ids_lock = threading.Lock()

    def get(self, session_id: int) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise errors.ValidationError(errors.SESSION_NOT_FOUND) from None

    def create_session(self, config: SessionConfig, deposit: int) -> int:
        if not storage.MIN_PIRATES <= config.max_participants <= storage.MAX_PIRATES:
            raise errors.ValidationError(errors.PIRATES_OUT_OF_RANGE)
        if config.entry_fee < storage.MIN_ENTRY_FEE:
            raise errors.ValidationError(errors.FEE_TOO_LOW)
        if config.registration_deadline <= self.clock.now():
            raise errors.ValidationError(errors.START_IN_PAST)
        if config.round_duration < 1:
            raise errors.ValidationError(errors.BAD_ROUND_DURATION)
        storage.check_deposit(deposit, "newSession")

        with self._ids_lock:
            session_id = next(self._ids)
        self._sessions[session_id] = Session(session_id=session_id, config=config)
        log.info(
            "session %d created: fee=%d deadline=%d max=%d",
            session_id, config.entry_fee, config.registration_deadline, config.max_participants,
        )
        return session_id

    def register(self, session_id: int, address: str, payment: int, deposit: int) -> ParticipantRecord:
        session = self.get(session_id)
        state = session.state
        if state.phase != Phase.REGISTRATION:
            raise errors.StateConflictError(errors.REGISTRATION_ENDED)
        if self.clock.now() >= session.config.registration_deadline:
            raise errors.TimingError(errors.REGISTRATION_CLOSED)
        if session.participant(address) is not None:
            raise errors.StateConflictError(errors.ALREADY_REGISTERED)
        if state.total_participants >= session.config.max_participants:
            raise errors.StateConflictError(errors.GAME_FULL)
        if payment != session.config.entry_fee:
            raise errors.ValidationError(errors.WRONG_FEE)
        storage.check_deposit(deposit, "join")

        record = ParticipantRecord(address=address, seniority=state.total_participants)
        session.roster.append(record)
        state.total_participants += 1
        state.alive_participants += 1
        session.pot += payment
        log.info("session %d: %s registered with seniority %d", session_id, address, record.seniority)
        return record

    def start_game(self, session_id: int) -> None:
        session = self.get(session_id)
        state = session.state
        if state.phase != Phase.REGISTRATION:
            raise errors.StateConflictError(errors.GAME_STARTED)
        now = self.clock.now()
        if now < session.config.registration_deadline:
            raise errors.TimingError(errors.REGISTRATION_ACTIVE)
        if state.total_participants < storage.MIN_PIRATES:
            raise errors.ValidationError(errors.NOT_ENOUGH_PIRATES)

        state.phase = Phase.PROPOSAL
        state.round = 0
        state.current_proposer_seniority = 0
        state.proposal_deadline = now + session.config.round_duration
        log.info("session %d started with %d pirates", session_id, state.total_participants)

    def refund(self, session_id: int, address: str) -> int:
        """Return the entry fee of a session that never reached three pirates."""
        session = self.get(session_id)
        if self.clock.now() < session.config.registration_deadline:
            raise errors.TimingError(errors.REGISTRATION_ACTIVE)
        record = session.participant(address)
        if record is None:
            raise errors.AuthorizationError(errors.NOT_A_PIRATE)
        if record.claimed:
            raise errors.StateConflictError(errors.ALREADY_REFUNDED)

        record.claimed = True
        session.pot -= session.config.entry_fee
        log.info("session %d: refunded %d to %s", session_id, session.config.entry_fee, address)
        return session.config.entry_fee
