# pirate_game/build.py
import json, hashlib
from pathlib import Path
from typing import Optional

from pyteal import compileTeal, Mode

from pirate_game.config import LocalNetSettings
from pirate_game.contract import TEAL_VERSION, approval_program, clear_state_program


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def compile_programs():
    approval_teal = compileTeal(approval_program(), mode=Mode.Application, version=TEAL_VERSION)
    clear_teal = compileTeal(clear_state_program(), mode=Mode.Application, version=TEAL_VERSION)
    return approval_teal, clear_teal


def build(artifacts: Optional[Path] = None) -> Path:
    artifacts = artifacts or LocalNetSettings.from_env().artifacts
    artifacts.mkdir(parents=True, exist_ok=True)
    approval_teal, clear_teal = compile_programs()

    (artifacts / "approval.teal").write_text(approval_teal, encoding="utf-8")
    (artifacts / "clear.teal").write_text(clear_teal, encoding="utf-8")

    manifest = {
        "contract": "Pirate Game (N-pirate split-the-pot)",
        "teal_version": TEAL_VERSION,
        "artifacts": {
            "approval": {"file": "approval.teal", "sha256": sha256_hex(approval_teal)},
            "clear": {"file": "clear.teal", "sha256": sha256_hex(clear_teal)},
        },
    }
    (artifacts / "contract.manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return artifacts


def main():
    print("Wrote artifacts to", build())


if __name__ == "__main__":
    main()
