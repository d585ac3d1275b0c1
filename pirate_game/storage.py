# pirate_game/storage.py
# Box storage accounting: key/value sizes of every box the app allocates and
# the deposit (minimum balance) a caller attaches to cover them.
from pirate_game import errors

# MBR = BOX_FLAT_MIN_BALANCE + BOX_BYTE_MIN_BALANCE * (key + value)
BOX_FLAT_MIN_BALANCE = 2500
BOX_BYTE_MIN_BALANCE = 400

MIN_PIRATES = 3
MAX_PIRATES = 20
MIN_ENTRY_FEE = 1_000_000  # microAlgos

UINT64_SIZE = 8
ADDRESS_SIZE = 32
HASH_SIZE = 32
PREFIX_SIZE = 3

# -------- Key sizes --------
SESSION_KEY_SIZE = PREFIX_SIZE + UINT64_SIZE  # prefix | itob(session_id)
DIGEST_KEY_SIZE = PREFIX_SIZE + HASH_SIZE     # prefix | sha256(...)

# -------- Value sizes --------
CONFIG_SIZE = 4 * UINT64_SIZE        # entry_fee, registration_deadline, round_duration, max_participants
STATE_SIZE = 8 * UINT64_SIZE         # phase .. reveal_deadline
POT_SIZE = UINT64_SIZE
ROSTER_SLOT_SIZE = ADDRESS_SIZE + 1  # address | alive
PROPOSAL_HEADER_SIZE = 3 * UINT64_SIZE  # proposer, votes_for, votes_against
PIRATE_SIZE = UINT64_SIZE + 1        # seniority | claimed
COMMIT_SIZE = HASH_SIZE
REVEAL_SIZE = UINT64_SIZE

COMMANDS = ("newSession", "join", "commitVote")


def box_mbr(key_size: int, value_size: int) -> int:
    return BOX_FLAT_MIN_BALANCE + BOX_BYTE_MIN_BALANCE * (key_size + value_size)


def roster_size(max_participants: int) -> int:
    return ROSTER_SLOT_SIZE * max_participants


def proposal_size(max_participants: int) -> int:
    return PROPOSAL_HEADER_SIZE + UINT64_SIZE * max_participants


def required_deposit(command: str) -> int:
    """Deposit a caller must attach for the boxes allocated by ``command``."""
    if command == "newSession":
        return (
            box_mbr(SESSION_KEY_SIZE, CONFIG_SIZE)
            + box_mbr(SESSION_KEY_SIZE, STATE_SIZE)
            + box_mbr(SESSION_KEY_SIZE, POT_SIZE)
            + box_mbr(SESSION_KEY_SIZE, roster_size(MAX_PIRATES))
            + box_mbr(SESSION_KEY_SIZE, proposal_size(MAX_PIRATES))
        )
    if command == "join":
        return box_mbr(DIGEST_KEY_SIZE, PIRATE_SIZE)
    if command == "commitVote":
        # also covers the smaller reveal box that replaces the commitment
        return box_mbr(DIGEST_KEY_SIZE, COMMIT_SIZE)
    raise errors.ValidationError(errors.INVALID_COMMAND)


def check_deposit(amount: int, command: str) -> None:
    # excess is accepted and kept
    if amount < required_deposit(command):
        raise errors.ValidationError(errors.INSUFFICIENT_DEPOSIT)
