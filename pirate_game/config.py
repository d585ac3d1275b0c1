# pirate_game/config.py
# LocalNet endpoints and artifact location, read from the environment.
import os
from dataclasses import dataclass
from pathlib import Path

REPO = Path(__file__).resolve().parents[1]
DEFAULT_TOKEN = "a" * 64  # AlgoKit LocalNet


@dataclass(frozen=True)
class LocalNetSettings:
    algod_address: str
    algod_token: str
    kmd_address: str
    kmd_token: str
    indexer_address: str
    artifacts: Path

    @classmethod
    def from_env(cls) -> "LocalNetSettings":
        algod_token = os.getenv("ALGOD_LOCAL_TOKEN", DEFAULT_TOKEN)
        return cls(
            algod_address=os.getenv("ALGOD_LOCAL", "http://localhost:4001"),
            algod_token=algod_token,
            kmd_address=os.getenv("KMD_LOCAL", "http://localhost:4002"),
            kmd_token=os.getenv("KMD_LOCAL_TOKEN", algod_token),  # usually same in sandbox
            indexer_address=os.getenv("INDEXER_LOCAL", "http://localhost:8980"),
            artifacts=Path(os.getenv("PIRATE_GAME_ARTIFACTS", str(REPO / "artifacts"))),
        )
