# pirate_game/claims.py
# One-shot withdrawal of a pirate's final share.
import logging

from pirate_game import errors
from pirate_game.models import Phase
from pirate_game.registry import Session, SessionRegistry

log = logging.getLogger(__name__)


def final_share(session: Session, seniority: int) -> int:
    if session.state.phase != Phase.ENDED or session.proposal is None:
        return 0
    return session.proposal.distribution[seniority]


class ClaimLedger:
    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def claim_winnings(self, session_id: int, address: str) -> int:
        session = self.registry.get(session_id)
        if session.state.phase != Phase.ENDED:
            raise errors.StateConflictError(errors.GAME_NOT_FINISHED)
        pirate = session.participant(address)
        if pirate is None:
            raise errors.AuthorizationError(errors.NOT_A_PIRATE)
        if pirate.claimed:
            raise errors.StateConflictError(errors.ALREADY_CLAIMED)
        share = final_share(session, pirate.seniority)
        if share == 0:
            raise errors.ValidationError(errors.NO_WINNINGS)

        pirate.claimed = True
        session.pot -= share
        log.info("session %d: pirate %d claimed %d", session_id, pirate.seniority, share)
        return share
