# pirate_game/codec.py
# Fixed-width big-endian box layouts, box keys and the vote commitment hash.
import hashlib
from typing import List, Sequence

from algosdk import encoding

from pirate_game import errors, storage
from pirate_game.models import (
    ParticipantRecord,
    Phase,
    Proposal,
    SessionConfig,
    SessionState,
)

# -------- Box prefixes --------
CONFIG_PREFIX = b"cfg"
STATE_PREFIX = b"gst"
POT_PREFIX = b"pot"
ROSTER_PREFIX = b"pls"
PROPOSAL_PREFIX = b"prp"
PIRATE_PREFIX = b"pir"
COMMIT_PREFIX = b"vcm"
REVEAL_PREFIX = b"vrv"

W = storage.UINT64_SIZE


def itob(n: int) -> bytes:
    return n.to_bytes(W, "big")


def btoi(b: bytes) -> int:
    return int.from_bytes(b, "big")


def _uints(raw: bytes, count: int) -> List[int]:
    return [btoi(raw[i * W:(i + 1) * W]) for i in range(count)]


# -------- Distribution --------

def encode_distribution(amounts: Sequence[int]) -> bytes:
    out = b""
    for a in amounts:
        if a < 0 or a >= 2 ** 64:
            raise errors.ValidationError(errors.BAD_DISTRIBUTION_AMOUNT)
        out += itob(a)
    return out


def decode_distribution(raw: bytes, participants: int) -> List[int]:
    """Read ``participants`` contiguous uint64 shares.

    The payload must be an exact multiple of the element width and hold
    exactly one share per registered participant.
    """
    if len(raw) % W or len(raw) // W != participants:
        raise errors.ValidationError(errors.BAD_DISTRIBUTION_LENGTH)
    return _uints(raw, participants)


# -------- Commit-reveal --------

def commitment_hash(choice: int, salt: bytes) -> bytes:
    """sha256(itob(choice) | salt), the value committed by ``commitVote``."""
    return hashlib.sha256(itob(choice) + salt).digest()


# -------- Keys --------

def session_box(prefix: bytes, session_id: int) -> bytes:
    return prefix + itob(session_id)


def pirate_box(session_id: int, address: str) -> bytes:
    digest = hashlib.sha256(itob(session_id) + encoding.decode_address(address)).digest()
    return PIRATE_PREFIX + digest


def vote_digest(session_id: int, round_: int, address: str) -> bytes:
    return hashlib.sha256(
        itob(session_id) + itob(round_) + encoding.decode_address(address)
    ).digest()


def commit_box(session_id: int, round_: int, address: str) -> bytes:
    return COMMIT_PREFIX + vote_digest(session_id, round_, address)


def reveal_box(session_id: int, round_: int, address: str) -> bytes:
    return REVEAL_PREFIX + vote_digest(session_id, round_, address)


# -------- Records --------

def encode_config(config: SessionConfig) -> bytes:
    return b"".join(
        itob(v)
        for v in (
            config.entry_fee,
            config.registration_deadline,
            config.round_duration,
            config.max_participants,
        )
    )


def decode_config(raw: bytes) -> SessionConfig:
    return SessionConfig(*_uints(raw, 4))


def encode_state(state: SessionState) -> bytes:
    return b"".join(
        itob(int(v))
        for v in (
            state.phase,
            state.round,
            state.total_participants,
            state.alive_participants,
            state.current_proposer_seniority,
            state.proposal_deadline,
            state.vote_deadline,
            state.reveal_deadline,
        )
    )


def decode_state(raw: bytes) -> SessionState:
    values = _uints(raw, 8)
    return SessionState(Phase(values[0]), *values[1:])


def decode_roster(raw: bytes, participants: int) -> List[tuple]:
    """[(address, alive)] in seniority order for the first ``participants`` slots."""
    slot = storage.ROSTER_SLOT_SIZE
    roster = []
    for i in range(participants):
        chunk = raw[i * slot:(i + 1) * slot]
        roster.append((encoding.encode_address(chunk[:storage.ADDRESS_SIZE]), chunk[-1] == 1))
    return roster


def decode_pirate(raw: bytes, address: str, alive: bool) -> ParticipantRecord:
    return ParticipantRecord(
        address=address,
        seniority=btoi(raw[:W]),
        alive=alive,
        claimed=raw[W] == 1,
    )


def decode_proposal(raw: bytes, participants: int) -> Proposal:
    proposer, votes_for, votes_against = _uints(raw, 3)
    header = storage.PROPOSAL_HEADER_SIZE
    body = raw[header:header + participants * W]
    return Proposal(
        proposer_seniority=proposer,
        distribution=decode_distribution(body, participants),
        votes_for=votes_for,
        votes_against=votes_against,
    )
