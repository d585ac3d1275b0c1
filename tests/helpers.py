from pirate_game import storage
from pirate_game.codec import commitment_hash

ALGO = 1_000_000
ENTRY_FEE = 10 * ALGO
REGISTRATION_DEADLINE = 100
ROUND_DURATION = 10

JOIN = storage.required_deposit("join")
NEW = storage.required_deposit("newSession")
VOTE = storage.required_deposit("commitVote")


def salt_for(address: str) -> bytes:
    return ("salt-" + address[:8]).encode()


def vote_round(app, clock, sid, voters, choices, reveal=None):
    """Commit every choice, close the commit window and reveal the ``reveal`` subset."""
    for voter, choice in zip(voters, choices):
        app.commit_vote(voter, sid, commitment_hash(choice, salt_for(voter)), VOTE)
    state = app.get_state(sid)
    clock.advance_to(state.vote_deadline + 1)
    revealing = voters if reveal is None else reveal
    for voter, choice in zip(voters, choices):
        if voter in revealing:
            app.reveal_vote(voter, sid, choice, salt_for(voter))
    clock.advance_to(state.reveal_deadline + 1)
