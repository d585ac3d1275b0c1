# pirate_game/models.py
# Records held per session. Field order matches the box layouts in codec.py.
import enum
from dataclasses import dataclass, field
from typing import List, Optional


class Phase(enum.IntEnum):
    # uint stored in the gst box
    REGISTRATION = 0
    PROPOSAL = 1
    VOTE_COMMIT = 2
    VOTE_REVEAL = 3
    ENDED = 4


@dataclass(frozen=True)
class SessionConfig:
    entry_fee: int
    registration_deadline: int
    round_duration: int
    max_participants: int


@dataclass
class SessionState:
    phase: Phase = Phase.REGISTRATION
    round: int = 0
    total_participants: int = 0
    alive_participants: int = 0
    current_proposer_seniority: int = 0
    proposal_deadline: int = 0
    vote_deadline: int = 0
    reveal_deadline: int = 0


@dataclass
class ParticipantRecord:
    address: str
    seniority: int
    alive: bool = True
    claimed: bool = False


@dataclass
class Proposal:
    proposer_seniority: int
    distribution: List[int] = field(default_factory=list)
    votes_for: int = 0
    votes_against: int = 0


@dataclass
class VoteCommitment:
    hash: bytes
    revealed_choice: Optional[int] = None
