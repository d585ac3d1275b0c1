# pirate_game/localnet.py
# LocalNet helpers: clients, a funded KMD key, fresh accounts and round advancement.
from typing import Optional, Tuple

import requests
from algosdk import account
from algosdk.error import KMDHTTPError
from algosdk.kmd import KMDClient
from algosdk.transaction import PaymentTxn, wait_for_confirmation
from algosdk.v2client.algod import AlgodClient

from pirate_game.config import LocalNetSettings

Account = Tuple[str, str]  # (address, private key)


def get_algod(settings: Optional[LocalNetSettings] = None) -> AlgodClient:
    s = settings or LocalNetSettings.from_env()
    return AlgodClient(s.algod_token, s.algod_address, headers={"X-Algo-API-Token": s.algod_token})


def get_kmd(settings: Optional[LocalNetSettings] = None) -> KMDClient:
    s = settings or LocalNetSettings.from_env()
    return KMDClient(s.kmd_token, s.kmd_address)


def is_up(settings: Optional[LocalNetSettings] = None) -> bool:
    s = settings or LocalNetSettings.from_env()
    try:
        return requests.get(f"{s.algod_address}/health", timeout=3).status_code == 200
    except requests.RequestException:
        return False


def funded_account(settings: Optional[LocalNetSettings] = None) -> Account:
    """Richest key of the first KMD wallet that unlocks with a LocalNet password."""
    kmd = get_kmd(settings)
    algod = get_algod(settings)
    # algosdk versions differ: some return {"wallets": [...]}, others return a plain list
    wl = kmd.list_wallets()
    wallets = wl.get("wallets", []) if isinstance(wl, dict) else wl
    assert wallets, "No KMD wallets found in LocalNet"
    wallet_id = wallets[0]["id"]
    for pw in ["", "a", "testpassword"]:
        try:
            handle = kmd.init_wallet_handle(wallet_id, pw)
        except KMDHTTPError:
            continue
        try:
            keys = kmd.list_keys(handle)
            addr = max(keys, key=lambda a: algod.account_info(a).get("amount", 0))
            return addr, kmd.export_key(handle, pw, addr)
        finally:
            kmd.release_wallet_handle(handle)
    raise AssertionError("Could not unlock KMD wallet with '', 'a', or 'testpassword'")


def pay(algod: AlgodClient, sender: Account, receiver: str, amount: int) -> None:
    sp = algod.suggested_params()
    txn = PaymentTxn(sender=sender[0], sp=sp, receiver=receiver, amt=amount)
    txid = algod.send_transaction(txn.sign(sender[1]))
    wait_for_confirmation(algod, txid, 10)


def new_account(algod: AlgodClient, funder: Account, amount: int = 100_000_000) -> Account:
    sk, addr = account.generate_account()
    pay(algod, funder, addr, amount)
    return addr, sk


def advance_to(algod: AlgodClient, sender: Account, target_round: int) -> int:
    """Dev-mode LocalNet only closes a block per transaction; self-pay until ``target_round``."""
    last = algod.status()["last-round"]
    while last < target_round:
        pay(algod, sender, sender[0], 0)
        last = algod.status()["last-round"]
    return last
