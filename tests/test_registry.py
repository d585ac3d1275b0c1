import dataclasses

import pytest

from pirate_game import errors
from pirate_game.models import Phase

from helpers import ENTRY_FEE, JOIN, NEW, REGISTRATION_DEADLINE, ROUND_DURATION


def test_session_ids_count_from_zero(app, pirates, config):
    assert app.create_session(pirates[0], config, NEW) == 0
    assert app.create_session(pirates[1], config, NEW) == 1
    state = app.get_state(1)
    assert state.phase is Phase.REGISTRATION
    assert (state.round, state.total_participants, state.alive_participants) == (0, 0, 0)
    assert app.get_pot_balance(1) == 0


@pytest.mark.parametrize(
    "change,message",
    [
        ({"max_participants": 2}, errors.PIRATES_OUT_OF_RANGE),
        ({"max_participants": 21}, errors.PIRATES_OUT_OF_RANGE),
        ({"entry_fee": 999_999}, errors.FEE_TOO_LOW),
        ({"registration_deadline": 1}, errors.START_IN_PAST),
        ({"round_duration": 0}, errors.BAD_ROUND_DURATION),
    ],
)
def test_create_session_bounds(app, pirates, config, change, message):
    with pytest.raises(errors.ValidationError, match=message):
        app.create_session(pirates[0], dataclasses.replace(config, **change), NEW)


def test_create_session_requires_deposit(app, pirates, config):
    with pytest.raises(errors.ValidationError, match=errors.INSUFFICIENT_DEPOSIT):
        app.create_session(pirates[0], config, NEW - 1)


def test_unknown_session(app, pirates):
    with pytest.raises(errors.ValidationError, match=errors.SESSION_NOT_FOUND):
        app.register(pirates[0], 42, ENTRY_FEE, JOIN)


def test_seniority_follows_registration_order(app, session, pirates):
    seniorities = [app.register(p, session, ENTRY_FEE, JOIN) for p in pirates[:4]]
    assert seniorities == [0, 1, 2, 3]
    assert [app.get_participant_at(session, i).address for i in range(4)] == pirates[:4]
    state = app.get_state(session)
    assert state.total_participants == state.alive_participants == 4
    assert app.get_pot_balance(session) == 4 * ENTRY_FEE


def test_register_rejections(app, clock, session, pirates):
    app.register(pirates[0], session, ENTRY_FEE, JOIN)
    with pytest.raises(errors.StateConflictError, match=errors.ALREADY_REGISTERED):
        app.register(pirates[0], session, ENTRY_FEE, JOIN)
    with pytest.raises(errors.ValidationError, match=errors.WRONG_FEE):
        app.register(pirates[1], session, ENTRY_FEE + 1, JOIN)
    with pytest.raises(errors.ValidationError, match=errors.INSUFFICIENT_DEPOSIT):
        app.register(pirates[1], session, ENTRY_FEE, JOIN - 1)

    clock.advance_to(REGISTRATION_DEADLINE)
    with pytest.raises(errors.TimingError, match=errors.REGISTRATION_CLOSED):
        app.register(pirates[1], session, ENTRY_FEE, JOIN)
    assert app.get_state(session).total_participants == 1


def test_game_full(app, session, pirates):
    for p in pirates[:5]:
        app.register(p, session, ENTRY_FEE, JOIN)
    with pytest.raises(errors.StateConflictError, match=errors.GAME_FULL):
        app.register(pirates[5], session, ENTRY_FEE, JOIN)


def test_start_game(app, clock, session, pirates):
    for p in pirates[:3]:
        app.register(p, session, ENTRY_FEE, JOIN)
    with pytest.raises(errors.TimingError, match=errors.REGISTRATION_ACTIVE):
        app.start_game(pirates[0], session)

    clock.advance_to(REGISTRATION_DEADLINE)
    app.start_game(pirates[4], session)
    state = app.get_state(session)
    assert state.phase is Phase.PROPOSAL
    assert state.round == 0
    assert state.current_proposer_seniority == 0
    assert state.proposal_deadline == REGISTRATION_DEADLINE + ROUND_DURATION

    with pytest.raises(errors.StateConflictError, match=errors.GAME_STARTED):
        app.start_game(pirates[0], session)
    with pytest.raises(errors.StateConflictError, match=errors.REGISTRATION_ENDED):
        app.register(pirates[3], session, ENTRY_FEE, JOIN)


def test_start_needs_three_pirates(app, clock, session, pirates):
    for p in pirates[:2]:
        app.register(p, session, ENTRY_FEE, JOIN)
    clock.advance_to(REGISTRATION_DEADLINE)
    with pytest.raises(errors.ValidationError, match=errors.NOT_ENOUGH_PIRATES):
        app.start_game(pirates[0], session)
    assert app.get_state(session).phase is Phase.REGISTRATION


def test_refund_when_session_never_fills(app, clock, session, pirates):
    for p in pirates[:2]:
        app.register(p, session, ENTRY_FEE, JOIN)
    with pytest.raises(errors.TimingError, match=errors.REGISTRATION_ACTIVE):
        app.time_out(pirates[0], session)

    clock.advance_to(REGISTRATION_DEADLINE)
    assert app.time_out(pirates[0], session) == ENTRY_FEE
    assert app.get_pot_balance(session) == ENTRY_FEE
    assert app.payouts == [(pirates[0], ENTRY_FEE)]

    with pytest.raises(errors.StateConflictError, match=errors.ALREADY_REFUNDED):
        app.time_out(pirates[0], session)
    with pytest.raises(errors.AuthorizationError, match=errors.NOT_A_PIRATE):
        app.time_out(pirates[3], session)


def test_no_refund_once_session_is_viable(app, clock, session, pirates):
    for p in pirates[:3]:
        app.register(p, session, ENTRY_FEE, JOIN)
    clock.advance_to(REGISTRATION_DEADLINE)
    with pytest.raises(errors.StateConflictError, match=errors.NOTHING_TO_UNLOCK):
        app.time_out(pirates[0], session)
