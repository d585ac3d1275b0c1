import pytest

from pirate_game import codec, errors
from pirate_game.engine import majority_threshold
from pirate_game.models import Phase

from helpers import ALGO, ENTRY_FEE, ROUND_DURATION, VOTE, salt_for, vote_round


@pytest.mark.parametrize("alive,threshold", [(1, 1), (2, 2), (3, 2), (4, 3), (5, 3), (20, 11)])
def test_majority_threshold(alive, threshold):
    assert majority_threshold(alive) == threshold


def test_three_pirates_split_passes(app, clock, make_game, pirates):
    sid = make_game(3)
    voters = pirates[:3]
    app.propose_distribution(voters[0], sid, [29 * ALGO, 0, 1 * ALGO])
    state = app.get_state(sid)
    assert state.phase is Phase.VOTE_COMMIT
    assert state.reveal_deadline == state.vote_deadline + ROUND_DURATION

    vote_round(app, clock, sid, voters, [1, 0, 1])
    proposal = app.get_proposal(sid)
    assert (proposal.votes_for, proposal.votes_against) == (2, 1)
    assert app.get_state(sid).phase is Phase.VOTE_REVEAL

    assert app.execute_round(voters[1], sid) is True
    assert app.get_state(sid).phase is Phase.ENDED
    assert app.final_share(sid, voters[0]) == 29 * ALGO

    assert app.claim_winnings(voters[0], sid) == 29 * ALGO
    assert app.claim_winnings(voters[2], sid) == 1 * ALGO
    with pytest.raises(errors.ValidationError, match=errors.NO_WINNINGS):
        app.claim_winnings(voters[1], sid)
    assert app.get_pot_balance(sid) == 0


def test_four_pirates_all_no_eliminates_proposer(app, clock, make_game, pirates):
    sid = make_game(4)
    voters = pirates[:4]
    app.propose_distribution(voters[0], sid, [40 * ALGO, 0, 0, 0])
    vote_round(app, clock, sid, voters, [0, 0, 0, 0])

    assert app.execute_round(voters[2], sid) is False
    state = app.get_state(sid)
    assert state.phase is Phase.PROPOSAL
    assert state.round == 1
    assert state.alive_participants == 3
    assert state.current_proposer_seniority == 1
    assert state.proposal_deadline == clock.now() + ROUND_DURATION
    assert (state.vote_deadline, state.reveal_deadline) == (0, 0)
    assert app.get_proposal(sid) is None
    assert not app.get_participant(sid, voters[0]).alive
    # pot is untouched by a failed round
    assert app.get_pot_balance(sid) == 4 * ENTRY_FEE


def test_eliminated_pirate_cannot_act_again(app, clock, make_game, pirates):
    sid = make_game(4)
    voters = pirates[:4]
    app.propose_distribution(voters[0], sid, [40 * ALGO, 0, 0, 0])
    vote_round(app, clock, sid, voters, [0, 0, 0, 0])
    app.execute_round(voters[0], sid)

    with pytest.raises(errors.AuthorizationError, match=errors.ELIMINATED):
        app.propose_distribution(voters[0], sid, [0, 40 * ALGO, 0, 0])
    app.propose_distribution(voters[1], sid, [0, 20 * ALGO, 10 * ALGO, 10 * ALGO])
    with pytest.raises(errors.AuthorizationError, match=errors.ELIMINATED):
        app.commit_vote(voters[0], sid, codec.commitment_hash(1, b"x"), VOTE)


@pytest.mark.parametrize("yes,passed", [(3, True), (2, False)])
def test_five_alive_majority(app, clock, make_game, pirates, yes, passed):
    sid = make_game(5)
    voters = pirates[:5]
    app.propose_distribution(voters[0], sid, [10 * ALGO] * 5)
    vote_round(app, clock, sid, voters, [1] * yes + [0] * (5 - yes))
    assert app.execute_round(voters[0], sid) is passed
    assert app.get_state(sid).alive_participants == (5 if passed else 4)


def test_unrevealed_vote_counts_as_no(app, clock, make_game, pirates):
    sid = make_game(3)
    voters = pirates[:3]
    app.propose_distribution(voters[0], sid, [30 * ALGO, 0, 0])
    vote_round(app, clock, sid, voters, [1, 1, 1], reveal=[voters[0]])
    assert app.get_proposal(sid).votes_for == 1
    assert app.execute_round(voters[0], sid) is False
    state = app.get_state(sid)
    assert state.alive_participants == 2
    assert state.current_proposer_seniority == 1


def test_no_reveals_still_executes(app, clock, make_game, pirates):
    sid = make_game(3)
    app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])
    clock.advance_to(app.get_state(sid).reveal_deadline + 1)
    assert app.execute_round(pirates[0], sid) is False


def test_proposal_validation(app, clock, make_game, pirates):
    sid = make_game(3)
    pot = app.get_pot_balance(sid)
    with pytest.raises(errors.AuthorizationError, match=errors.NOT_YOUR_TURN):
        app.propose_distribution(pirates[1], sid, [0, pot, 0])
    with pytest.raises(errors.AuthorizationError, match=errors.NOT_REGISTERED):
        app.propose_distribution(pirates[5], sid, [0, pot, 0])
    with pytest.raises(errors.ValidationError, match=errors.BAD_DISTRIBUTION_SUM):
        app.propose_distribution(pirates[0], sid, [pot - 1, 0, 0])
    with pytest.raises(errors.ValidationError, match=errors.BAD_DISTRIBUTION_SUM):
        app.propose_distribution(pirates[0], sid, [pot + 1, 0, 0])
    with pytest.raises(errors.ValidationError, match=errors.BAD_DISTRIBUTION_LENGTH):
        app.propose_distribution(pirates[0], sid, [pot, 0])
    with pytest.raises(errors.ValidationError, match=errors.BAD_DISTRIBUTION_LENGTH):
        app.propose_distribution(pirates[0], sid, codec.encode_distribution([pot, 0, 0])[:-3])
    assert app.get_state(sid).phase is Phase.PROPOSAL

    app.propose_distribution(pirates[0], sid, codec.encode_distribution([pot, 0, 0]))
    assert app.get_proposal(sid).distribution == [pot, 0, 0]
    with pytest.raises(errors.StateConflictError, match=errors.NOT_PROPOSAL_PHASE):
        app.propose_distribution(pirates[0], sid, [pot, 0, 0])


def test_proposal_after_deadline(app, clock, make_game, pirates):
    sid = make_game(3)
    clock.advance_to(app.get_state(sid).proposal_deadline + 1)
    with pytest.raises(errors.TimingError, match=errors.PROPOSAL_DEADLINE_PASSED):
        app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])


def test_vote_windows(app, clock, make_game, pirates):
    sid = make_game(3)
    with pytest.raises(errors.StateConflictError, match=errors.NOT_VOTING_PHASE):
        app.commit_vote(pirates[1], sid, codec.commitment_hash(1, b"s"), VOTE)
    app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])
    state = app.get_state(sid)

    app.commit_vote(pirates[1], sid, codec.commitment_hash(1, b"s"), VOTE)
    with pytest.raises(errors.StateConflictError, match=errors.ALREADY_VOTED):
        app.commit_vote(pirates[1], sid, codec.commitment_hash(0, b"t"), VOTE)
    with pytest.raises(errors.ValidationError, match=errors.INSUFFICIENT_DEPOSIT):
        app.commit_vote(pirates[2], sid, codec.commitment_hash(0, b"t"), VOTE - 1)
    with pytest.raises(errors.TimingError, match=errors.VOTING_OPEN):
        app.reveal_vote(pirates[1], sid, 1, b"s")

    clock.advance_to(state.vote_deadline + 1)
    with pytest.raises(errors.TimingError, match=errors.VOTING_DEADLINE_PASSED):
        app.commit_vote(pirates[2], sid, codec.commitment_hash(0, b"t"), VOTE)
    with pytest.raises(errors.ValidationError, match=errors.BAD_VOTE):
        app.reveal_vote(pirates[1], sid, 2, b"s")
    with pytest.raises(errors.StateConflictError, match=errors.NO_COMMIT):
        app.reveal_vote(pirates[2], sid, 1, b"s")
    with pytest.raises(errors.IntegrityError, match=errors.HASH_MISMATCH):
        app.reveal_vote(pirates[1], sid, 0, b"s")
    with pytest.raises(errors.TimingError, match=errors.REVEAL_NOT_ENDED):
        app.execute_round(pirates[0], sid)

    clock.advance_to(state.reveal_deadline + 1)
    with pytest.raises(errors.TimingError, match=errors.REVEAL_DEADLINE_PASSED):
        app.reveal_vote(pirates[1], sid, 1, b"s")


def test_timeout_eliminates_silent_proposer(app, clock, make_game, pirates):
    sid = make_game(4)
    with pytest.raises(errors.TimingError, match=errors.PROPOSAL_DEADLINE_NOT_PASSED):
        app.time_out(pirates[3], sid)

    clock.advance_to(app.get_state(sid).proposal_deadline + 1)
    assert app.time_out(pirates[3], sid) == 0
    state = app.get_state(sid)
    assert state.round == 1
    assert state.alive_participants == 3
    assert state.current_proposer_seniority == 1
    assert state.proposal_deadline == clock.now() + ROUND_DURATION
    assert app.events[-1] == ("timeout", sid, pirates[3])


def test_timeout_outside_proposal_phase(app, clock, make_game, pirates):
    sid = make_game(3)
    app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])
    clock.advance(100)
    with pytest.raises(errors.StateConflictError, match=errors.NOTHING_TO_UNLOCK):
        app.time_out(pirates[1], sid)


def test_repeated_timeouts_leave_one_survivor(app, clock, make_game, pirates):
    sid = make_game(4)
    for expected in (1, 2):
        clock.advance_to(app.get_state(sid).proposal_deadline + 1)
        app.time_out(pirates[0], sid)
        assert app.get_state(sid).current_proposer_seniority == expected
    pot = app.get_pot_balance(sid)
    clock.advance_to(app.get_state(sid).proposal_deadline + 1)
    app.time_out(pirates[0], sid)
    state = app.get_state(sid)
    assert state.phase is Phase.ENDED
    assert app.final_share(sid, pirates[3]) == pot


def test_last_survivor_takes_the_pot(app, clock, make_game, pirates):
    sid = make_game(3)
    pot = app.get_pot_balance(sid)
    app.propose_distribution(pirates[0], sid, [pot, 0, 0])
    vote_round(app, clock, sid, pirates[:3], [0, 0, 0])
    app.execute_round(pirates[0], sid)

    clock.advance_to(app.get_state(sid).proposal_deadline + 1)
    app.time_out(pirates[0], sid)
    state = app.get_state(sid)
    assert state.phase is Phase.ENDED
    assert state.alive_participants == 1
    proposal = app.get_proposal(sid)
    assert proposal.proposer_seniority == 2
    assert proposal.distribution == [0, 0, pot]
    assert app.claim_winnings(pirates[2], sid) == pot
    with pytest.raises(errors.ValidationError, match=errors.NO_WINNINGS):
        app.claim_winnings(pirates[0], sid)


def test_failed_round_discards_its_votes(app, clock, make_game, pirates):
    sid = make_game(4)
    app.propose_distribution(pirates[0], sid, [40 * ALGO, 0, 0, 0])
    vote_round(app, clock, sid, pirates[:4], [0, 0, 0, 0], reveal=pirates[:2])
    assert app.votes.get(sid, 0, pirates[3]) is not None
    app.execute_round(pirates[0], sid)
    assert all(app.votes.get(sid, 0, p) is None for p in pirates[:4])


def test_ended_session_discards_its_votes(app, clock, make_game, pirates):
    sid = make_game(3)
    app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])
    vote_round(app, clock, sid, pirates[:3], [1, 1, 0])
    assert app.execute_round(pirates[0], sid) is True
    assert all(app.votes.get(sid, 0, p) is None for p in pirates[:3])


def test_phase_reads_as_reveal_once_commit_window_closes(app, clock, make_game, pirates):
    sid = make_game(3)
    app.propose_distribution(pirates[0], sid, [30 * ALGO, 0, 0])
    state = app.get_state(sid)
    assert state.phase is Phase.VOTE_COMMIT
    clock.advance_to(state.vote_deadline)
    assert app.get_state(sid).phase is Phase.VOTE_COMMIT
    clock.advance()
    assert app.get_state(sid).phase is Phase.VOTE_REVEAL
