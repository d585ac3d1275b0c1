# pirate_game/contract.py
# Pirate Game app: sessions, registration, proposer rotation,
# commit/reveal votes, elimination, timeouts and claims.
from pyteal import *

from pirate_game import codec, errors, storage
from pirate_game.models import Phase

TEAL_VERSION = 8

# -------- Global keys --------
SESSION_COUNTER_KEY = Bytes("sid")  # uint: next session id

# -------- Box prefixes --------
CONFIG = Bytes(codec.CONFIG_PREFIX)
STATE = Bytes(codec.STATE_PREFIX)
POT = Bytes(codec.POT_PREFIX)
ROSTER = Bytes(codec.ROSTER_PREFIX)
PROPOSAL = Bytes(codec.PROPOSAL_PREFIX)
PIRATE = Bytes(codec.PIRATE_PREFIX)
COMMIT = Bytes(codec.COMMIT_PREFIX)
REVEAL = Bytes(codec.REVEAL_PREFIX)

# -------- Phases --------
REGISTRATION = int(Phase.REGISTRATION)
PROPOSING = int(Phase.PROPOSAL)
VOTE_COMMIT = int(Phase.VOTE_COMMIT)
VOTE_REVEAL = int(Phase.VOTE_REVEAL)
ENDED = int(Phase.ENDED)

# -------- Offsets --------
# cfg: entry_fee | registration_deadline | round_duration | max_participants
CFG_FEE, CFG_DEADLINE, CFG_DURATION, CFG_MAX = 0, 8, 16, 24
# gst: phase | round | total | alive | proposer | proposal_dl | vote_dl | reveal_dl
ST_PHASE, ST_ROUND, ST_TOTAL, ST_ALIVE, ST_PROPOSER, ST_PROPOSAL_DL, ST_VOTE_DL, ST_REVEAL_DL = range(0, 64, 8)
# prp: proposer | votes_for | votes_against | distribution
PR_PROPOSER, PR_FOR, PR_AGAINST, PR_DIST = 0, 8, 16, 24
# pir: seniority | claimed
PIR_CLAIMED = 8
SLOT = storage.ROSTER_SLOT_SIZE
ALIVE_BYTE = storage.ADDRESS_SIZE

FALSE = Bytes(b"\x00")
TRUE = Bytes(b"\x01")

EXEC_BUDGET = 1400


def box_exists(name: Expr) -> Expr:
    length = App.box_length(name)
    return Seq(length, length.hasValue())


def slot_alive(roster: Expr, slot: Expr) -> Expr:
    return GetByte(App.box_extract(roster, slot * Int(SLOT) + Int(ALIVE_BYTE), Int(1)), Int(0))


def pay(receiver: Expr, amount: Expr) -> Expr:
    return Seq(
        InnerTxnBuilder.Begin(),
        InnerTxnBuilder.SetFields({
            TxnField.type_enum: TxnType.Payment,
            TxnField.receiver: receiver,
            TxnField.amount: amount,
            TxnField.fee: Int(0),  # covered by the outer call
        }),
        InnerTxnBuilder.Submit(),
    )


def deposit_paid(back: int, command: str) -> Expr:
    """The payment ``back`` slots before this call covers ``command``'s boxes."""
    txn = Gtxn[Txn.group_index() - Int(back)]
    return Seq(
        Assert(Txn.group_index() >= Int(back), comment=errors.INSUFFICIENT_DEPOSIT),
        Assert(txn.type_enum() == TxnType.Payment, comment=errors.INSUFFICIENT_DEPOSIT),
        Assert(txn.receiver() == Global.current_application_address(), comment=errors.DEPOSIT_RECEIVER),
        Assert(txn.amount() >= Int(storage.required_deposit(command)), comment=errors.INSUFFICIENT_DEPOSIT),
    )


@Subroutine(TealType.uint64)
def next_alive(roster, start, total):
    # first alive slot at or after start, wrapping to 0
    i = ScratchVar(TealType.uint64)
    found = ScratchVar(TealType.uint64)
    return Seq(
        found.store(total),
        For(i.store(start), And(i.load() < total, found.load() == total), i.store(i.load() + Int(1))).Do(
            If(slot_alive(roster, i.load())).Then(found.store(i.load()))
        ),
        For(i.store(Int(0)), And(i.load() < start, found.load() == total), i.store(i.load() + Int(1))).Do(
            If(slot_alive(roster, i.load())).Then(found.store(i.load()))
        ),
        Assert(found.load() < total),
        found.load(),
    )


def approval_program() -> Expr:
    sid = ScratchVar(TealType.uint64)
    cfg = ScratchVar(TealType.bytes)
    gst = ScratchVar(TealType.bytes)
    pot = ScratchVar(TealType.bytes)
    pls = ScratchVar(TealType.bytes)
    prp = ScratchVar(TealType.bytes)
    pir = ScratchVar(TealType.bytes)
    vcm = ScratchVar(TealType.bytes)
    vrv = ScratchVar(TealType.bytes)
    digest = ScratchVar(TealType.bytes)
    phase = ScratchVar(TealType.uint64)
    total = ScratchVar(TealType.uint64)
    acc = ScratchVar(TealType.uint64)
    i = ScratchVar(TealType.uint64)
    survivor = ScratchVar(TealType.uint64)

    def cfg_get(offset: int) -> Expr:
        return Btoi(App.box_extract(cfg.load(), Int(offset), Int(8)))

    def state_get(offset: int) -> Expr:
        return Btoi(App.box_extract(gst.load(), Int(offset), Int(8)))

    def state_put(offset: int, value: Expr) -> Expr:
        return App.box_replace(gst.load(), Int(offset), Itob(value))

    def prp_get(offset: int) -> Expr:
        return Btoi(App.box_extract(prp.load(), Int(offset), Int(8)))

    def prp_put(offset: int, value: Expr) -> Expr:
        return App.box_replace(prp.load(), Int(offset), Itob(value))

    def pot_get() -> Expr:
        return Btoi(App.box_extract(pot.load(), Int(0), Int(8)))

    def pot_put(value: Expr) -> Expr:
        return App.box_replace(pot.load(), Int(0), Itob(value))

    def seniority() -> Expr:
        return Btoi(App.box_extract(pir.load(), Int(0), Int(8)))

    def claimed() -> Expr:
        return GetByte(App.box_extract(pir.load(), Int(PIR_CLAIMED), Int(1)), Int(0))

    def keys_for(session_id: Expr) -> Expr:
        return Seq(
            sid.store(session_id),
            cfg.store(Concat(CONFIG, Itob(sid.load()))),
            gst.store(Concat(STATE, Itob(sid.load()))),
            pot.store(Concat(POT, Itob(sid.load()))),
            pls.store(Concat(ROSTER, Itob(sid.load()))),
            prp.store(Concat(PROPOSAL, Itob(sid.load()))),
        )

    def load_session() -> Expr:
        return Seq(
            keys_for(Btoi(Txn.application_args[1])),
            Assert(box_exists(cfg.load()), comment=errors.SESSION_NOT_FOUND),
        )

    def load_pirate() -> Expr:
        return pir.store(Concat(PIRATE, Sha256(Concat(Itob(sid.load()), Txn.sender()))))

    def live_pirate() -> Expr:
        return Seq(
            load_pirate(),
            Assert(box_exists(pir.load()), comment=errors.NOT_REGISTERED),
            Assert(slot_alive(pls.load(), seniority()), comment=errors.ELIMINATED),
        )

    def load_vote() -> Expr:
        return Seq(
            digest.store(Sha256(Concat(Itob(sid.load()), Itob(state_get(ST_ROUND)), Txn.sender()))),
            vcm.store(Concat(COMMIT, digest.load())),
            vrv.store(Concat(REVEAL, digest.load())),
        )

    def eliminate_proposer() -> Expr:
        return Seq(
            App.box_replace(pls.load(), state_get(ST_PROPOSER) * Int(SLOT) + Int(ALIVE_BYTE), FALSE),
            state_put(ST_ALIVE, state_get(ST_ALIVE) - Int(1)),
            total.store(state_get(ST_TOTAL)),
            If(state_get(ST_ALIVE) == Int(1))
            .Then(Seq(
                # last survivor takes the whole pot
                survivor.store(next_alive(pls.load(), Int(0), total.load())),
                App.box_replace(
                    prp.load(),
                    Int(0),
                    Concat(Itob(survivor.load()), Itob(Int(1)), Itob(Int(0)), BytesZero(total.load() * Int(8))),
                ),
                App.box_replace(prp.load(), Int(PR_DIST) + survivor.load() * Int(8), Itob(pot_get())),
                state_put(ST_PHASE, Int(ENDED)),
            ))
            .Else(Seq(
                state_put(ST_PROPOSER, next_alive(pls.load(), state_get(ST_PROPOSER) + Int(1), total.load())),
                state_put(ST_ROUND, state_get(ST_ROUND) + Int(1)),
                state_put(ST_PHASE, Int(PROPOSING)),
                state_put(ST_PROPOSAL_DL, Global.round() + cfg_get(CFG_DURATION)),
                state_put(ST_VOTE_DL, Int(0)),
                state_put(ST_REVEAL_DL, Int(0)),
                App.box_replace(prp.load(), Int(0), BytesZero(Int(PR_DIST) + total.load() * Int(8))),
            )),
        )

    on_create = Seq(
        App.globalPut(SESSION_COUNTER_KEY, Int(0)),
        Approve(),
    )

    # ---- Methods ----

    # deposit(command) -> log itob(amount)
    command = Txn.application_args[1]
    do_deposit = Seq(
        Assert(
            Or(command == Bytes("newSession"), command == Bytes("join"), command == Bytes("commitVote")),
            comment=errors.INVALID_COMMAND,
        ),
        Log(Itob(Cond(
            [command == Bytes("newSession"), Int(storage.required_deposit("newSession"))],
            [command == Bytes("join"), Int(storage.required_deposit("join"))],
            [command == Bytes("commitVote"), Int(storage.required_deposit("commitVote"))],
        ))),
        Approve(),
    )

    # new(entry_fee, registration_deadline, round_duration, max_participants)  [gtxn -1: deposit]
    entry_fee = Btoi(Txn.application_args[1])
    deadline = Btoi(Txn.application_args[2])
    duration = Btoi(Txn.application_args[3])
    max_pirates = Btoi(Txn.application_args[4])
    do_create = Seq(
        Assert(max_pirates >= Int(storage.MIN_PIRATES), comment=errors.PIRATES_OUT_OF_RANGE),
        Assert(max_pirates <= Int(storage.MAX_PIRATES), comment=errors.PIRATES_OUT_OF_RANGE),
        Assert(entry_fee >= Int(storage.MIN_ENTRY_FEE), comment=errors.FEE_TOO_LOW),
        Assert(deadline > Global.round(), comment=errors.START_IN_PAST),
        Assert(duration >= Int(1), comment=errors.BAD_ROUND_DURATION),
        deposit_paid(1, "newSession"),
        keys_for(App.globalGet(SESSION_COUNTER_KEY)),
        App.globalPut(SESSION_COUNTER_KEY, sid.load() + Int(1)),
        App.box_put(cfg.load(), Concat(Itob(entry_fee), Itob(deadline), Itob(duration), Itob(max_pirates))),
        # zeroed state is phase REGISTRATION, round 0, no pirates
        Assert(App.box_create(gst.load(), Int(storage.STATE_SIZE))),
        Assert(App.box_create(pot.load(), Int(storage.POT_SIZE))),
        Assert(App.box_create(pls.load(), max_pirates * Int(SLOT))),
        Assert(App.box_create(prp.load(), Int(storage.PROPOSAL_HEADER_SIZE) + max_pirates * Int(8))),
        Log(Concat(Bytes("new"), Itob(sid.load()))),
        Approve(),
    )

    # reg(sid)  [gtxn -2: entry fee, gtxn -1: deposit]
    fee_txn = Gtxn[Txn.group_index() - Int(2)]
    do_register = Seq(
        load_session(),
        Assert(state_get(ST_PHASE) == Int(REGISTRATION), comment=errors.REGISTRATION_ENDED),
        Assert(Global.round() < cfg_get(CFG_DEADLINE), comment=errors.REGISTRATION_CLOSED),
        load_pirate(),
        Assert(Not(box_exists(pir.load())), comment=errors.ALREADY_REGISTERED),
        total.store(state_get(ST_TOTAL)),
        Assert(total.load() < cfg_get(CFG_MAX), comment=errors.GAME_FULL),
        Assert(Txn.group_index() >= Int(2), comment=errors.WRONG_FEE),
        Assert(fee_txn.type_enum() == TxnType.Payment, comment=errors.WRONG_FEE),
        Assert(fee_txn.receiver() == Global.current_application_address(), comment=errors.FEE_RECEIVER),
        Assert(fee_txn.amount() == cfg_get(CFG_FEE), comment=errors.WRONG_FEE),
        deposit_paid(1, "join"),
        App.box_put(pir.load(), Concat(Itob(total.load()), FALSE)),
        App.box_replace(pls.load(), total.load() * Int(SLOT), Concat(Txn.sender(), TRUE)),
        state_put(ST_TOTAL, total.load() + Int(1)),
        state_put(ST_ALIVE, state_get(ST_ALIVE) + Int(1)),
        pot_put(pot_get() + fee_txn.amount()),
        Log(Bytes("reg")),
        Approve(),
    )

    # start(sid)
    do_start = Seq(
        load_session(),
        Assert(state_get(ST_PHASE) == Int(REGISTRATION), comment=errors.GAME_STARTED),
        Assert(Global.round() >= cfg_get(CFG_DEADLINE), comment=errors.REGISTRATION_ACTIVE),
        Assert(state_get(ST_TOTAL) >= Int(storage.MIN_PIRATES), comment=errors.NOT_ENOUGH_PIRATES),
        state_put(ST_PHASE, Int(PROPOSING)),
        state_put(ST_ROUND, Int(0)),
        state_put(ST_PROPOSER, Int(0)),
        state_put(ST_PROPOSAL_DL, Global.round() + cfg_get(CFG_DURATION)),
        Log(Bytes("start")),
        Approve(),
    )

    # propose(sid, distribution: uint64[total])
    distribution = Txn.application_args[2]
    do_propose = Seq(
        load_session(),
        Assert(state_get(ST_PHASE) == Int(PROPOSING), comment=errors.NOT_PROPOSAL_PHASE),
        live_pirate(),
        Assert(seniority() == state_get(ST_PROPOSER), comment=errors.NOT_YOUR_TURN),
        Assert(Global.round() <= state_get(ST_PROPOSAL_DL), comment=errors.PROPOSAL_DEADLINE_PASSED),
        total.store(state_get(ST_TOTAL)),
        Assert(Len(distribution) == total.load() * Int(8), comment=errors.BAD_DISTRIBUTION_LENGTH),
        OpUp(OpUpMode.OnCall).ensure_budget(Int(EXEC_BUDGET)),
        acc.store(Int(0)),
        For(i.store(Int(0)), i.load() < total.load(), i.store(i.load() + Int(1))).Do(
            acc.store(acc.load() + ExtractUint64(distribution, i.load() * Int(8)))
        ),
        Assert(acc.load() == pot_get(), comment=errors.BAD_DISTRIBUTION_SUM),
        App.box_replace(prp.load(), Int(PR_PROPOSER), Concat(Itob(seniority()), Itob(Int(0)), Itob(Int(0)), distribution)),
        state_put(ST_PHASE, Int(VOTE_COMMIT)),
        state_put(ST_VOTE_DL, Global.round() + cfg_get(CFG_DURATION)),
        state_put(ST_REVEAL_DL, state_get(ST_VOTE_DL) + cfg_get(CFG_DURATION)),
        Log(Bytes("propose")),
        Approve(),
    )

    # commit(sid, hash32)  [gtxn -1: deposit]
    vote_hash = Txn.application_args[2]
    do_commit = Seq(
        load_session(),
        Assert(state_get(ST_PHASE) == Int(VOTE_COMMIT), comment=errors.NOT_VOTING_PHASE),
        Assert(Global.round() <= state_get(ST_VOTE_DL), comment=errors.VOTING_DEADLINE_PASSED),
        live_pirate(),
        deposit_paid(1, "commitVote"),
        Assert(Len(vote_hash) == Int(storage.HASH_SIZE), comment=errors.BAD_HASH_LENGTH),
        load_vote(),
        Assert(Not(box_exists(vcm.load())), comment=errors.ALREADY_VOTED),
        Assert(Not(box_exists(vrv.load())), comment=errors.ALREADY_VOTED),
        App.box_put(vcm.load(), vote_hash),
        Log(Bytes("commit")),
        Approve(),
    )

    # reveal(sid, itob(choice), salt)
    choice = Btoi(Txn.application_args[2])
    salt = Txn.application_args[3]
    do_reveal = Seq(
        Assert(Or(choice == Int(0), choice == Int(1)), comment=errors.BAD_VOTE),
        load_session(),
        phase.store(state_get(ST_PHASE)),
        Assert(Or(phase.load() == Int(VOTE_COMMIT), phase.load() == Int(VOTE_REVEAL)), comment=errors.NOT_REVEAL_PHASE),
        Assert(Global.round() > state_get(ST_VOTE_DL), comment=errors.VOTING_OPEN),
        Assert(Global.round() <= state_get(ST_REVEAL_DL), comment=errors.REVEAL_DEADLINE_PASSED),
        live_pirate(),
        load_vote(),
        Assert(box_exists(vcm.load()), comment=errors.NO_COMMIT),
        Assert(
            App.box_extract(vcm.load(), Int(0), Int(storage.HASH_SIZE)) == Sha256(Concat(Itob(choice), salt)),
            comment=errors.HASH_MISMATCH,
        ),
        # keep only the choice so the vote cannot be revealed twice
        Assert(App.box_delete(vcm.load())),
        App.box_put(vrv.load(), Itob(choice)),
        If(choice == Int(1))
        .Then(prp_put(PR_FOR, prp_get(PR_FOR) + Int(1)))
        .Else(prp_put(PR_AGAINST, prp_get(PR_AGAINST) + Int(1))),
        state_put(ST_PHASE, Int(VOTE_REVEAL)),
        Log(Bytes("reveal")),
        Approve(),
    )

    # exec(sid)  [anyone, after the reveal deadline]
    do_execute = Seq(
        load_session(),
        phase.store(state_get(ST_PHASE)),
        Assert(Or(phase.load() == Int(VOTE_COMMIT), phase.load() == Int(VOTE_REVEAL)), comment=errors.NOT_EXECUTION_PHASE),
        Assert(Global.round() > state_get(ST_REVEAL_DL), comment=errors.REVEAL_NOT_ENDED),
        OpUp(OpUpMode.OnCall).ensure_budget(Int(EXEC_BUDGET)),
        # unrevealed votes never reach votes_for
        If(prp_get(PR_FOR) >= state_get(ST_ALIVE) / Int(2) + Int(1))
        .Then(state_put(ST_PHASE, Int(ENDED)))
        .Else(eliminate_proposer()),
        Log(Bytes("exec")),
        Approve(),
    )

    # timeout(sid)  [anyone]
    do_refund = Seq(
        Assert(Global.round() >= cfg_get(CFG_DEADLINE), comment=errors.REGISTRATION_ACTIVE),
        load_pirate(),
        Assert(box_exists(pir.load()), comment=errors.NOT_A_PIRATE),
        Assert(claimed() == Int(0), comment=errors.ALREADY_REFUNDED),
        App.box_replace(pir.load(), Int(PIR_CLAIMED), TRUE),
        pot_put(pot_get() - cfg_get(CFG_FEE)),
        pay(Txn.sender(), cfg_get(CFG_FEE)),
        Log(Bytes("refund")),
        Approve(),
    )
    do_timeout = Seq(
        load_session(),
        phase.store(state_get(ST_PHASE)),
        If(And(phase.load() == Int(REGISTRATION), state_get(ST_TOTAL) < Int(storage.MIN_PIRATES)))
        .Then(do_refund)
        .Else(Seq(
            Assert(phase.load() == Int(PROPOSING), comment=errors.NOTHING_TO_UNLOCK),
            Assert(Global.round() > state_get(ST_PROPOSAL_DL), comment=errors.PROPOSAL_DEADLINE_NOT_PASSED),
            OpUp(OpUpMode.OnCall).ensure_budget(Int(EXEC_BUDGET)),
            eliminate_proposer(),
            Log(Bytes("timeout")),
            Approve(),
        )),
    )

    # claim(sid) -> log "claim" | itob(share)
    share = ScratchVar(TealType.uint64)
    do_claim = Seq(
        load_session(),
        Assert(state_get(ST_PHASE) == Int(ENDED), comment=errors.GAME_NOT_FINISHED),
        load_pirate(),
        Assert(box_exists(pir.load()), comment=errors.NOT_A_PIRATE),
        Assert(claimed() == Int(0), comment=errors.ALREADY_CLAIMED),
        share.store(Btoi(App.box_extract(prp.load(), Int(PR_DIST) + seniority() * Int(8), Int(8)))),
        Assert(share.load() > Int(0), comment=errors.NO_WINNINGS),
        App.box_replace(pir.load(), Int(PIR_CLAIMED), TRUE),
        pot_put(pot_get() - share.load()),
        pay(Txn.sender(), share.load()),
        Log(Concat(Bytes("claim"), Itob(share.load()))),
        Approve(),
    )

    method = Txn.application_args[0]
    on_noop = Cond(
        [method == Bytes("deposit"), do_deposit],
        [method == Bytes("new"), do_create],
        [method == Bytes("reg"), do_register],
        [method == Bytes("start"), do_start],
        [method == Bytes("propose"), do_propose],
        [method == Bytes("commit"), do_commit],
        [method == Bytes("reveal"), do_reveal],
        [method == Bytes("exec"), do_execute],
        [method == Bytes("timeout"), do_timeout],
        [method == Bytes("claim"), do_claim],
    )

    program = Cond(
        [Txn.application_id() == Int(0), on_create],
        [Txn.on_completion() == OnComplete.NoOp, on_noop],
        [Int(1), Reject()],
    )
    return program


def clear_state_program() -> Expr:
    return Approve()


if __name__ == "__main__":
    print(compileTeal(approval_program(), mode=Mode.Application, version=TEAL_VERSION))
