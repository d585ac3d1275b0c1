# pirate_game/client.py
# Thin algod client for the deployed Pirate Game app: one method per app call,
# box reads decoded through codec, and logic errors mapped back to typed errors.
import base64
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from algosdk import logic
from algosdk.error import AlgodHTTPError
from algosdk.source_map import SourceMap
from algosdk.transaction import (
    ApplicationCreateTxn,
    ApplicationNoOpTxn,
    OnComplete,
    PaymentTxn,
    StateSchema,
    assign_group_id,
    wait_for_confirmation,
)
from algosdk.v2client.algod import AlgodClient

from pirate_game import codec, errors
from pirate_game.engine import observed_phase
from pirate_game.localnet import Account, pay
from pirate_game.models import (
    ParticipantRecord,
    Phase,
    Proposal,
    SessionConfig,
    SessionState,
)

log = logging.getLogger(__name__)

PC_PATTERN = re.compile(r"pc=(\d+)")
APP_FUNDING = 1_000_000  # app account minimum balance plus headroom
BASE_FEE = 1000
OPUP_FEE = 4 * BASE_FEE  # outer call plus the budget-increasing inner calls
PAYOUT_FEE = 2 * BASE_FEE  # outer call plus one inner payment

SESSION_BOXES = {
    "new": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.ROSTER_PREFIX, codec.PROPOSAL_PREFIX),
    "reg": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.ROSTER_PREFIX),
    "start": (codec.CONFIG_PREFIX, codec.STATE_PREFIX),
    "propose": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.ROSTER_PREFIX, codec.PROPOSAL_PREFIX),
    "commit": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.ROSTER_PREFIX),
    "reveal": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.ROSTER_PREFIX, codec.PROPOSAL_PREFIX),
    "exec": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.ROSTER_PREFIX, codec.PROPOSAL_PREFIX),
    "timeout": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.ROSTER_PREFIX, codec.PROPOSAL_PREFIX),
    "claim": (codec.CONFIG_PREFIX, codec.STATE_PREFIX, codec.POT_PREFIX, codec.PROPOSAL_PREFIX),
}


def translate_logic_error(message: str, source_map: Optional[SourceMap], teal_lines: Sequence[str]) -> errors.PirateGameError:
    """Map a rejected call back to the ``// comment`` on the failing TEAL line."""
    match = PC_PATTERN.search(message)
    if match is None or source_map is None:
        return errors.PirateGameError(message)
    line = source_map.get_line_for_pc(int(match.group(1)))
    if line is None or not 0 <= line < len(teal_lines):
        return errors.PirateGameError(message)
    _, sep, comment = teal_lines[line].partition("//")
    if not sep:
        return errors.PirateGameError(message)
    return errors.error_for(comment.strip())


def _logs(result: Dict) -> List[bytes]:
    return [base64.b64decode(entry) for entry in result.get("logs", [])]


class PirateGameClient:
    def __init__(self, algod: AlgodClient, app_id: int, approval_teal: str = "", source_map: Optional[SourceMap] = None):
        self.algod = algod
        self.app_id = app_id
        self.app_address = logic.get_application_address(app_id)
        self.teal_lines = approval_teal.splitlines()
        self.source_map = source_map

    @classmethod
    def deploy(cls, algod: AlgodClient, creator: Account, approval_teal: str, clear_teal: str) -> "PirateGameClient":
        compiled = algod.compile(approval_teal, source_map=True)
        approval = base64.b64decode(compiled["result"])
        clear = base64.b64decode(algod.compile(clear_teal)["result"])

        create = ApplicationCreateTxn(
            sender=creator[0],
            sp=algod.suggested_params(),
            on_complete=OnComplete.NoOpOC,
            approval_program=approval,
            clear_program=clear,
            global_schema=StateSchema(num_uints=1, num_byte_slices=0),
            local_schema=StateSchema(num_uints=0, num_byte_slices=0),
            note=b"pirate game localnet create",
        )
        txid = algod.send_transaction(create.sign(creator[1]))
        app_id = wait_for_confirmation(algod, txid, 20)["application-index"]
        log.info("created app %d", app_id)

        client = cls(algod, app_id, approval_teal, SourceMap(compiled["sourcemap"]))
        pay(algod, creator, client.app_address, APP_FUNDING)
        return client

    # ---- Plumbing ----

    def _boxes(self, method: str, session_id: int, extra: Iterable[bytes] = ()) -> List[Tuple[int, bytes]]:
        names = [codec.session_box(p, session_id) for p in SESSION_BOXES.get(method, ())]
        names.extend(extra)
        return [(0, name) for name in names]

    def _payment(self, sender: Account, amount: int) -> PaymentTxn:
        return PaymentTxn(sender=sender[0], sp=self.algod.suggested_params(), receiver=self.app_address, amt=amount)

    def _call(
        self,
        sender: Account,
        args: List[bytes],
        boxes: List[Tuple[int, bytes]] = (),
        payments: Sequence[int] = (),
        fee: int = BASE_FEE,
    ) -> Dict:
        sp = self.algod.suggested_params()
        sp.flat_fee = True
        sp.fee = fee
        call = ApplicationNoOpTxn(sender=sender[0], sp=sp, index=self.app_id, app_args=args, boxes=list(boxes))
        txns = [self._payment(sender, amount) for amount in payments] + [call]
        if len(txns) > 1:
            assign_group_id(txns)
        signed = [t.sign(sender[1]) for t in txns]
        try:
            txid = self.algod.send_transactions(signed)
        except AlgodHTTPError as e:
            raise translate_logic_error(str(e), self.source_map, self.teal_lines) from e
        return wait_for_confirmation(self.algod, txid, 10)

    def _box(self, name: bytes) -> bytes:
        return base64.b64decode(self.algod.application_box_by_name(self.app_id, name)["value"])

    # ---- Methods ----

    def get_required_deposit(self, sender: Account, command: str) -> int:
        result = self._call(sender, [b"deposit", command.encode()])
        return codec.btoi(_logs(result)[-1])

    def create_session(self, sender: Account, config: SessionConfig, deposit: int) -> int:
        session_id = self.algod.application_info(self.app_id)["params"].get("global-state", [])
        session_id = next((kv["value"].get("uint", 0) for kv in session_id if base64.b64decode(kv["key"]) == b"sid"), 0)
        args = [b"new"] + [codec.itob(v) for v in (
            config.entry_fee, config.registration_deadline, config.round_duration, config.max_participants,
        )]
        result = self._call(sender, args, self._boxes("new", session_id), payments=[deposit])
        for entry in _logs(result):
            if entry.startswith(b"new"):
                return codec.btoi(entry[3:])
        raise errors.IntegrityError("missing session id in create log")

    def register(self, sender: Account, session_id: int, payment: int, deposit: int) -> int:
        pirate = codec.pirate_box(session_id, sender[0])
        self._call(sender, [b"reg", codec.itob(session_id)], self._boxes("reg", session_id, [pirate]), payments=[payment, deposit])
        return self.get_participant(session_id, sender[0]).seniority

    def start_game(self, sender: Account, session_id: int) -> None:
        self._call(sender, [b"start", codec.itob(session_id)], self._boxes("start", session_id))

    def propose_distribution(self, sender: Account, session_id: int, distribution: Sequence[int]) -> None:
        pirate = codec.pirate_box(session_id, sender[0])
        self._call(
            sender,
            [b"propose", codec.itob(session_id), codec.encode_distribution(distribution)],
            self._boxes("propose", session_id, [pirate]),
            fee=OPUP_FEE,
        )

    def _vote_boxes(self, method: str, session_id: int, address: str) -> List[Tuple[int, bytes]]:
        round_ = self.get_state(session_id).round
        return self._boxes(method, session_id, [
            codec.pirate_box(session_id, address),
            codec.commit_box(session_id, round_, address),
            codec.reveal_box(session_id, round_, address),
        ])

    def commit_vote(self, sender: Account, session_id: int, vote_hash: bytes, deposit: int) -> None:
        self._call(
            sender,
            [b"commit", codec.itob(session_id), vote_hash],
            self._vote_boxes("commit", session_id, sender[0]),
            payments=[deposit],
        )

    def reveal_vote(self, sender: Account, session_id: int, choice: int, salt: bytes) -> None:
        self._call(
            sender,
            [b"reveal", codec.itob(session_id), codec.itob(choice), salt],
            self._vote_boxes("reveal", session_id, sender[0]),
        )

    def execute_round(self, sender: Account, session_id: int) -> bool:
        alive = self.get_state(session_id).alive_participants
        self._call(sender, [b"exec", codec.itob(session_id)], self._boxes("exec", session_id), fee=OPUP_FEE)
        # a failed round always removes the proposer
        return self.get_state(session_id).alive_participants == alive

    def time_out(self, sender: Account, session_id: int) -> int:
        pirate = codec.pirate_box(session_id, sender[0])
        result = self._call(sender, [b"timeout", codec.itob(session_id)], self._boxes("timeout", session_id, [pirate]), fee=OPUP_FEE)
        if b"refund" in _logs(result):
            return self.get_session(session_id).entry_fee
        return 0

    def claim_winnings(self, sender: Account, session_id: int) -> int:
        pirate = codec.pirate_box(session_id, sender[0])
        result = self._call(sender, [b"claim", codec.itob(session_id)], self._boxes("claim", session_id, [pirate]), fee=PAYOUT_FEE)
        for entry in _logs(result):
            if entry.startswith(b"claim"):
                return codec.btoi(entry[5:])
        raise errors.IntegrityError("missing amount in claim log")

    # ---- Reads ----

    def _session_box(self, prefix: bytes, session_id: int) -> bytes:
        try:
            return self._box(codec.session_box(prefix, session_id))
        except AlgodHTTPError as e:
            raise errors.ValidationError(errors.SESSION_NOT_FOUND) from e

    def get_session(self, session_id: int) -> SessionConfig:
        return codec.decode_config(self._session_box(codec.CONFIG_PREFIX, session_id))

    def get_state(self, session_id: int) -> SessionState:
        state = codec.decode_state(self._session_box(codec.STATE_PREFIX, session_id))
        state.phase = observed_phase(state, self.algod.status()["last-round"])
        return state

    def get_pot_balance(self, session_id: int) -> int:
        return codec.btoi(self._session_box(codec.POT_PREFIX, session_id))

    def get_participant(self, session_id: int, address: str) -> ParticipantRecord:
        try:
            raw = self._box(codec.pirate_box(session_id, address))
        except AlgodHTTPError as e:
            raise errors.AuthorizationError(errors.NOT_A_PIRATE) from e
        state = self.get_state(session_id)
        roster = codec.decode_roster(self._session_box(codec.ROSTER_PREFIX, session_id), state.total_participants)
        seniority = codec.btoi(raw[:codec.W])
        return codec.decode_pirate(raw, address, roster[seniority][1])

    def get_proposal(self, session_id: int) -> Optional[Proposal]:
        state = self.get_state(session_id)
        if state.phase in (Phase.REGISTRATION, Phase.PROPOSAL):
            return None
        raw = self._session_box(codec.PROPOSAL_PREFIX, session_id)
        return codec.decode_proposal(raw, state.total_participants)
