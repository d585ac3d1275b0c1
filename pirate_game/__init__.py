"""N-pirate split-the-pot bargaining game: an Algorand app plus an in-process host."""
from pirate_game.app import PirateGameApp
from pirate_game.clock import RoundClock
from pirate_game.models import Phase, SessionConfig

__all__ = ["PirateGameApp", "RoundClock", "Phase", "SessionConfig"]
