# pirate_game/engine.py
# Proposer rotation, vote tally, elimination and timeout adjudication.
#
# Round lifecycle (phase codes as stored in the gst box):
#   PROPOSAL(1) -propose-> VOTE_COMMIT(2) -first reveal-> VOTE_REVEAL(3)
#   VOTE_COMMIT/VOTE_REVEAL -executeRound-> ENDED(4) on a majority,
#   otherwise the proposer is eliminated and the next senior pirate
#   gets a fresh PROPOSAL round (or the last survivor takes the pot).
import logging
from typing import Sequence, Union

from pirate_game import codec, errors, storage
from pirate_game.commit_reveal import CommitRevealStore
from pirate_game.models import ParticipantRecord, Phase, Proposal, SessionState
from pirate_game.registry import Session, SessionRegistry

log = logging.getLogger(__name__)

UINT64_MAX = 2 ** 64 - 1


def majority_threshold(alive: int) -> int:
    return alive // 2 + 1


def observed_phase(state: SessionState, now: int) -> Phase:
    """Stored phase, reported as VOTE_REVEAL once the commit window has closed."""
    if state.phase == Phase.VOTE_COMMIT and now > state.vote_deadline:
        return Phase.VOTE_REVEAL
    return state.phase


class BargainingEngine:
    def __init__(self, registry: SessionRegistry, votes: CommitRevealStore):
        self.registry = registry
        self.votes = votes

    @property
    def clock(self):
        return self.registry.clock

    # ---- Methods ----

    def propose(self, session_id: int, address: str, distribution: Union[Sequence[int], bytes]) -> Proposal:
        session = self.registry.get(session_id)
        state = session.state
        if state.phase != Phase.PROPOSAL:
            raise errors.StateConflictError(errors.NOT_PROPOSAL_PHASE)
        pirate = self._live_member(session, address)
        if pirate.seniority != state.current_proposer_seniority:
            raise errors.AuthorizationError(errors.NOT_YOUR_TURN)
        now = self.clock.now()
        if now > state.proposal_deadline:
            raise errors.TimingError(errors.PROPOSAL_DEADLINE_PASSED)

        if isinstance(distribution, (bytes, bytearray)):
            amounts = codec.decode_distribution(bytes(distribution), state.total_participants)
        else:
            amounts = list(distribution)
        if len(amounts) != state.total_participants:
            raise errors.ValidationError(errors.BAD_DISTRIBUTION_LENGTH)
        if any(a < 0 or a > UINT64_MAX for a in amounts):
            raise errors.ValidationError(errors.BAD_DISTRIBUTION_AMOUNT)
        if sum(amounts) != session.pot:
            raise errors.ValidationError(errors.BAD_DISTRIBUTION_SUM)

        session.proposal = Proposal(proposer_seniority=pirate.seniority, distribution=amounts)
        state.phase = Phase.VOTE_COMMIT
        state.vote_deadline = now + session.config.round_duration
        state.reveal_deadline = state.vote_deadline + session.config.round_duration
        log.info("session %d round %d: pirate %d proposed %s", session_id, state.round, pirate.seniority, amounts)
        return session.proposal

    def commit_vote(self, session_id: int, address: str, commitment: bytes, deposit: int) -> None:
        session = self.registry.get(session_id)
        state = session.state
        if state.phase != Phase.VOTE_COMMIT:
            raise errors.StateConflictError(errors.NOT_VOTING_PHASE)
        if self.clock.now() > state.vote_deadline:
            raise errors.TimingError(errors.VOTING_DEADLINE_PASSED)
        self._live_member(session, address)
        storage.check_deposit(deposit, "commitVote")
        self.votes.commit(session_id, state.round, address, commitment)

    def reveal_vote(self, session_id: int, address: str, choice: int, salt: bytes) -> None:
        if choice not in (0, 1):
            raise errors.ValidationError(errors.BAD_VOTE)
        session = self.registry.get(session_id)
        state = session.state
        if state.phase not in (Phase.VOTE_COMMIT, Phase.VOTE_REVEAL):
            raise errors.StateConflictError(errors.NOT_REVEAL_PHASE)
        now = self.clock.now()
        if now <= state.vote_deadline:
            raise errors.TimingError(errors.VOTING_OPEN)
        if now > state.reveal_deadline:
            raise errors.TimingError(errors.REVEAL_DEADLINE_PASSED)
        self._live_member(session, address)

        self.votes.reveal(session_id, state.round, address, choice, salt)
        if choice == 1:
            session.proposal.votes_for += 1
        else:
            session.proposal.votes_against += 1
        state.phase = Phase.VOTE_REVEAL

    def execute_round(self, session_id: int) -> bool:
        """Settle the round. True when the proposal passed."""
        session = self.registry.get(session_id)
        state = session.state
        if state.phase not in (Phase.VOTE_COMMIT, Phase.VOTE_REVEAL):
            raise errors.StateConflictError(errors.NOT_EXECUTION_PHASE)
        if self.clock.now() <= state.reveal_deadline:
            raise errors.TimingError(errors.REVEAL_NOT_ENDED)

        # unrevealed commitments never reach votes_for
        votes_for = session.proposal.votes_for
        if votes_for >= majority_threshold(state.alive_participants):
            state.phase = Phase.ENDED
            self.votes.drop_session(session_id)
            log.info(
                "session %d round %d: proposal passed %d/%d",
                session_id, state.round, votes_for, state.alive_participants,
            )
            return True
        log.info(
            "session %d round %d: proposal rejected %d/%d",
            session_id, state.round, votes_for, state.alive_participants,
        )
        self._eliminate_proposer(session)
        return False

    def time_out(self, session_id: int, address: str) -> int:
        """Unlock a stalled session. Returns the refund paid to ``address`` (0 if none)."""
        session = self.registry.get(session_id)
        state = session.state
        if state.phase == Phase.REGISTRATION and state.total_participants < storage.MIN_PIRATES:
            return self.registry.refund(session_id, address)
        if state.phase != Phase.PROPOSAL:
            raise errors.StateConflictError(errors.NOTHING_TO_UNLOCK)
        if self.clock.now() <= state.proposal_deadline:
            raise errors.TimingError(errors.PROPOSAL_DEADLINE_NOT_PASSED)
        log.info("session %d round %d: proposer %d timed out", session_id, state.round, state.current_proposer_seniority)
        self._eliminate_proposer(session)
        return 0

    # ---- Helpers ----

    def _live_member(self, session: Session, address: str) -> ParticipantRecord:
        pirate = session.participant(address)
        if pirate is None:
            raise errors.AuthorizationError(errors.NOT_REGISTERED)
        if not pirate.alive:
            raise errors.AuthorizationError(errors.ELIMINATED)
        return pirate

    def _next_alive(self, session: Session, start: int) -> int:
        total = session.state.total_participants
        for i in list(range(start, total)) + list(range(0, min(start, total))):
            if session.roster[i].alive:
                return i
        raise AssertionError("no alive pirate")

    def _eliminate_proposer(self, session: Session) -> None:
        state = session.state
        session.roster[state.current_proposer_seniority].alive = False
        state.alive_participants -= 1
        self.votes.drop_round(session.session_id, state.round)

        if state.alive_participants == 1:
            survivor = self._next_alive(session, 0)
            distribution = [0] * state.total_participants
            distribution[survivor] = session.pot
            session.proposal = Proposal(
                proposer_seniority=survivor,
                distribution=distribution,
                votes_for=1,
            )
            state.phase = Phase.ENDED
            self.votes.drop_session(session.session_id)
            log.info("session %d: pirate %d is the last survivor", session.session_id, survivor)
            return

        now = self.clock.now()
        state.current_proposer_seniority = self._next_alive(session, state.current_proposer_seniority + 1)
        state.round += 1
        state.phase = Phase.PROPOSAL
        state.proposal_deadline = now + session.config.round_duration
        state.vote_deadline = 0
        state.reveal_deadline = 0
        session.proposal = None
