# pirate_game/deploy.py
# Build the TEAL artifacts and create the app on LocalNet.
import logging

from pirate_game.build import build
from pirate_game.client import PirateGameClient
from pirate_game.localnet import funded_account, get_algod


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    artifacts = build()
    algod = get_algod()
    client = PirateGameClient.deploy(
        algod,
        funded_account(),
        (artifacts / "approval.teal").read_text(encoding="utf-8"),
        (artifacts / "clear.teal").read_text(encoding="utf-8"),
    )
    print("LocalNet App ID:", client.app_id)
    print("App address:", client.app_address)


if __name__ == "__main__":
    main()
