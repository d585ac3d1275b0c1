# pirate_game/errors.py
# Error taxonomy shared by the in-process app, the contract asserts and the client.


class PirateGameError(Exception):
    """Base class. ``message`` is the stable text surfaced to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PirateGameError):
    pass


class AuthorizationError(PirateGameError):
    pass


class TimingError(PirateGameError):
    pass


class StateConflictError(PirateGameError):
    pass


class IntegrityError(PirateGameError):
    pass


# -------- Messages --------
SESSION_NOT_FOUND = "Session does not exist"
INVALID_COMMAND = "Invalid command"
PIRATES_OUT_OF_RANGE = "Pirates must be between 3 and 20"
FEE_TOO_LOW = "Minimum participation is 1 ALGO"
START_IN_PAST = "Invalid start time: cannot start in the past"
BAD_ROUND_DURATION = "Invalid timeline: round duration must be positive"
INSUFFICIENT_DEPOSIT = "Insufficient deposit"
DEPOSIT_RECEIVER = "Deposit receiver must be the contract"
FEE_RECEIVER = "Entry fee receiver must be the contract"
WRONG_FEE = "Incorrect participation fee amount"
REGISTRATION_CLOSED = "Registration closed"
REGISTRATION_ENDED = "Registration phase has ended"
GAME_FULL = "Game is full"
ALREADY_REGISTERED = "Already registered"
REGISTRATION_ACTIVE = "Registration still active"
NOT_ENOUGH_PIRATES = "Need at least 3 pirates"
GAME_STARTED = "Game already started"
NOT_PROPOSAL_PHASE = "Not in proposal phase"
NOT_REGISTERED = "Not registered"
ELIMINATED = "You are eliminated"
NOT_YOUR_TURN = "Not your turn to propose"
PROPOSAL_DEADLINE_PASSED = "Proposal deadline passed"
BAD_DISTRIBUTION_LENGTH = "Invalid distribution length"
BAD_DISTRIBUTION_SUM = "Distribution must sum to pot"
BAD_DISTRIBUTION_AMOUNT = "Distribution amounts must be uint64"
NOT_VOTING_PHASE = "Not in voting phase"
VOTING_DEADLINE_PASSED = "Voting deadline passed"
BAD_HASH_LENGTH = "Vote hash must be 32 bytes"
ALREADY_VOTED = "Already voted this round"
BAD_VOTE = "Vote must be 0 or 1"
VOTING_OPEN = "Voting still open"
REVEAL_DEADLINE_PASSED = "Reveal deadline passed"
NOT_REVEAL_PHASE = "Not in reveal phase"
NO_COMMIT = "No commit found for this player"
HASH_MISMATCH = "Invalid reveal: hash mismatch"
NOT_EXECUTION_PHASE = "Not in execution phase"
REVEAL_NOT_ENDED = "Reveal phase not ended"
PROPOSAL_DEADLINE_NOT_PASSED = "Proposal deadline not passed yet"
NOTHING_TO_UNLOCK = "Nothing to unlock in this phase"
NOT_A_PIRATE = "Not a pirate"
ALREADY_REFUNDED = "Already refunded"
GAME_NOT_FINISHED = "Game not finished"
ALREADY_CLAIMED = "Already claimed"
NO_WINNINGS = "No winnings"

CATALOGUE = {
    SESSION_NOT_FOUND: ValidationError,
    INVALID_COMMAND: ValidationError,
    PIRATES_OUT_OF_RANGE: ValidationError,
    FEE_TOO_LOW: ValidationError,
    START_IN_PAST: ValidationError,
    BAD_ROUND_DURATION: ValidationError,
    INSUFFICIENT_DEPOSIT: ValidationError,
    DEPOSIT_RECEIVER: ValidationError,
    FEE_RECEIVER: ValidationError,
    WRONG_FEE: ValidationError,
    NOT_ENOUGH_PIRATES: ValidationError,
    BAD_DISTRIBUTION_LENGTH: ValidationError,
    BAD_DISTRIBUTION_SUM: ValidationError,
    BAD_DISTRIBUTION_AMOUNT: ValidationError,
    BAD_HASH_LENGTH: ValidationError,
    BAD_VOTE: ValidationError,
    NO_WINNINGS: ValidationError,
    NOT_REGISTERED: AuthorizationError,
    ELIMINATED: AuthorizationError,
    NOT_YOUR_TURN: AuthorizationError,
    NOT_A_PIRATE: AuthorizationError,
    REGISTRATION_CLOSED: TimingError,
    REGISTRATION_ACTIVE: TimingError,
    PROPOSAL_DEADLINE_PASSED: TimingError,
    VOTING_DEADLINE_PASSED: TimingError,
    VOTING_OPEN: TimingError,
    REVEAL_DEADLINE_PASSED: TimingError,
    REVEAL_NOT_ENDED: TimingError,
    PROPOSAL_DEADLINE_NOT_PASSED: TimingError,
    REGISTRATION_ENDED: StateConflictError,
    GAME_FULL: StateConflictError,
    ALREADY_REGISTERED: StateConflictError,
    GAME_STARTED: StateConflictError,
    NOT_PROPOSAL_PHASE: StateConflictError,
    NOT_VOTING_PHASE: StateConflictError,
    ALREADY_VOTED: StateConflictError,
    NOT_REVEAL_PHASE: StateConflictError,
    NO_COMMIT: StateConflictError,
    NOT_EXECUTION_PHASE: StateConflictError,
    NOTHING_TO_UNLOCK: StateConflictError,
    ALREADY_REFUNDED: StateConflictError,
    GAME_NOT_FINISHED: StateConflictError,
    ALREADY_CLAIMED: StateConflictError,
    HASH_MISMATCH: IntegrityError,
}


def error_for(message: str) -> PirateGameError:
    """Build the typed exception for a catalogued message (base class otherwise)."""
    return CATALOGUE.get(message, PirateGameError)(message)
