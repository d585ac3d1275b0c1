# pirate_game/clock.py
# Logical round clock. Deadlines are plain comparisons against now().
import threading


class RoundClock:
    """Monotonic round counter standing in for the ledger's block round."""

    def __init__(self, start: int = 0):
        self._round = start
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._round

    def advance(self, rounds: int = 1) -> int:
        if rounds < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._round += rounds
            return self._round

    def advance_to(self, target: int) -> int:
        with self._lock:
            if target > self._round:
                self._round = target
            return self._round
