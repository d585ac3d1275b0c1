import pytest
from algosdk import account

from pirate_game.app import PirateGameApp
from pirate_game.clock import RoundClock
from pirate_game.models import SessionConfig

from helpers import ENTRY_FEE, JOIN, NEW, REGISTRATION_DEADLINE, ROUND_DURATION


@pytest.fixture
def clock():
    return RoundClock(start=1)


@pytest.fixture
def app(clock):
    return PirateGameApp(clock)


@pytest.fixture
def pirates():
    return [account.generate_account()[1] for _ in range(6)]


@pytest.fixture
def config():
    return SessionConfig(
        entry_fee=ENTRY_FEE,
        registration_deadline=REGISTRATION_DEADLINE,
        round_duration=ROUND_DURATION,
        max_participants=5,
    )


@pytest.fixture
def session(app, pirates, config):
    return app.create_session(pirates[0], config, NEW)


@pytest.fixture
def make_game(app, clock, pirates, config):
    """Create, fill with ``n`` pirates and start a session; returns its id."""

    def _make(n=3):
        sid = app.create_session(pirates[0], config, NEW)
        for p in pirates[:n]:
            app.register(p, sid, ENTRY_FEE, JOIN)
        clock.advance_to(REGISTRATION_DEADLINE)
        app.start_game(pirates[0], sid)
        return sid

    return _make
