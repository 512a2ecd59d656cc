from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from state.models import SessionState, WalletAccount, WalletId, WalletState
from state.storage import MemoryStorage
from state.store import (
    LOCAL_STORAGE_KEY,
    SessionStore,
    add_wallet,
    dump_persisted_state,
    load_persisted_state,
    remove_wallet,
    set_accounts,
    set_active_account,
    set_active_network,
    set_active_wallet,
)


def _acct(n: int) -> WalletAccount:
    return WalletAccount(name=f"Account {n}", address=f"ADDR{n}")


def _wallet(*ns: int) -> WalletState:
    accounts = [_acct(n) for n in ns]
    return WalletState(accounts=accounts, active_account=accounts[0] if accounts else None)


def test_add_wallet_sets_active_and_copies():
    wallet = _wallet(1, 2)
    state = add_wallet(SessionState.empty(), WalletId.KMD, wallet)

    assert state.active_wallet == WalletId.KMD
    assert state.wallets[WalletId.KMD] == wallet
    assert state.wallets[WalletId.KMD].accounts[0] is not wallet.accounts[0]


def test_add_wallet_does_not_touch_previous_state():
    before = SessionState.empty()
    after = add_wallet(before, WalletId.PERA, _wallet(1))
    assert before.wallets == {}
    assert before.active_wallet is None
    assert after is not before


def test_remove_non_active_wallet_keeps_active():
    state = add_wallet(SessionState.empty(), WalletId.PERA, _wallet(1))
    state = add_wallet(state, WalletId.DEFLY, _wallet(2))
    assert state.active_wallet == WalletId.DEFLY

    state = remove_wallet(state, WalletId.PERA)
    assert WalletId.PERA not in state.wallets
    assert state.active_wallet == WalletId.DEFLY


def test_remove_active_wallet_clears_active():
    state = add_wallet(SessionState.empty(), WalletId.PERA, _wallet(1))
    state = remove_wallet(state, WalletId.PERA)
    assert state.wallets == {}
    assert state.active_wallet is None


def test_remove_missing_wallet_is_noop():
    state = add_wallet(SessionState.empty(), WalletId.PERA, _wallet(1))
    assert remove_wallet(state, WalletId.KMD) is state
    assert remove_wallet(state, "not-a-wallet") is state


def test_set_active_wallet_and_clear():
    state = add_wallet(SessionState.empty(), WalletId.PERA, _wallet(1))
    state = add_wallet(state, WalletId.KMD, _wallet(2))
    state = set_active_wallet(state, WalletId.PERA)
    assert state.active_wallet == WalletId.PERA
    state = set_active_wallet(state, None)
    assert state.active_wallet is None


def test_set_active_wallet_not_connected_is_noop(caplog):
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1))
    with caplog.at_level(logging.WARNING):
        after = set_active_wallet(state, WalletId.PERA)
    assert after is state
    assert after.active_wallet == WalletId.KMD
    assert 'Wallet with id "pera" not found' in caplog.text


def test_active_wallet_change_survives_reload():
    storage = MemoryStorage()
    store = SessionStore.from_storage(storage)
    store.add_wallet(WalletId.KMD, _wallet(1))
    store.add_wallet(WalletId.PERA, _wallet(2))
    store.set_active_wallet(WalletId.KMD)
    store.set_active_wallet(WalletId.DEFLY)

    reloaded = SessionStore.from_storage(storage)
    assert set(reloaded.state.wallets) == {WalletId.KMD, WalletId.PERA}
    assert reloaded.state.active_wallet == WalletId.KMD


def test_set_active_account_switches_within_wallet():
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1, 2))
    state = set_active_account(state, WalletId.KMD, "ADDR2")
    assert state.wallets[WalletId.KMD].active_account == _acct(2)


def test_set_active_account_unknown_address_is_noop(caplog):
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1, 2))
    with caplog.at_level(logging.WARNING):
        after = set_active_account(state, WalletId.KMD, "NOPE")
    assert after is state
    assert "Account with address NOPE not found" in caplog.text


def test_set_active_account_unknown_wallet_is_noop(caplog):
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1))
    with caplog.at_level(logging.WARNING):
        after = set_active_account(state, WalletId.PERA, "ADDR1")
    assert after is state
    assert 'Wallet with id "pera" not found' in caplog.text


def test_set_accounts_keeps_active_when_still_present():
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1, 2))
    state = set_active_account(state, WalletId.KMD, "ADDR2")
    state = set_accounts(state, WalletId.KMD, [_acct(2), _acct(3)])
    wallet = state.wallets[WalletId.KMD]
    assert wallet.addresses == ["ADDR2", "ADDR3"]
    assert wallet.active_account.address == "ADDR2"


def test_set_accounts_drops_duplicate_addresses(caplog):
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1))
    with caplog.at_level(logging.WARNING):
        state = set_accounts(state, WalletId.KMD, [_acct(1), _acct(2), _acct(1)])
    assert state.wallets[WalletId.KMD].addresses == ["ADDR1", "ADDR2"]
    assert "Duplicate account ADDR1" in caplog.text


def test_set_accounts_falls_back_to_first_then_none():
    state = add_wallet(SessionState.empty(), WalletId.KMD, _wallet(1))
    state = set_accounts(state, WalletId.KMD, [_acct(5), _acct(6)])
    assert state.wallets[WalletId.KMD].active_account.address == "ADDR5"

    state = set_accounts(state, WalletId.KMD, [])
    assert state.wallets[WalletId.KMD].accounts == []
    assert state.wallets[WalletId.KMD].active_account is None


def test_set_active_network():
    state = set_active_network(SessionState.empty(), "mainnet")
    assert state.active_network == "mainnet"


def test_models_reject_inconsistent_states():
    with pytest.raises(ValidationError):
        WalletState(accounts=[_acct(1), _acct(1)])
    with pytest.raises(ValidationError):
        WalletState(accounts=[_acct(1)], active_account=_acct(2))
    with pytest.raises(ValidationError):
        SessionState(wallets={}, active_wallet=WalletId.KMD)


def test_persisted_shape_round_trip():
    state = add_wallet(SessionState.empty("localnet"), WalletId.KMD, _wallet(1, 2))
    raw = json.loads(dump_persisted_state(state))

    assert raw == {
        "wallets": {
            "kmd": {
                "accounts": [
                    {"name": "Account 1", "address": "ADDR1"},
                    {"name": "Account 2", "address": "ADDR2"},
                ],
                "activeAccount": {"name": "Account 1", "address": "ADDR1"},
            }
        },
        "activeWallet": "kmd",
        "activeNetwork": "localnet",
    }

    storage = MemoryStorage({LOCAL_STORAGE_KEY: dump_persisted_state(state)})
    assert load_persisted_state(storage) == state


def test_load_rejects_unknown_wallet_id_wholesale(caplog):
    payload = {
        "wallets": {
            "kmd": {"accounts": [{"name": "A", "address": "ADDR1"}], "activeAccount": None},
            "unknown-wallet": {"accounts": [], "activeAccount": None},
        },
        "activeWallet": "kmd",
        "activeNetwork": "testnet",
    }
    storage = MemoryStorage({LOCAL_STORAGE_KEY: json.dumps(payload)})

    with caplog.at_level(logging.WARNING):
        assert load_persisted_state(storage) is None
    assert "Could not load state from storage" in caplog.text

    store = SessionStore.from_storage(storage, network="betanet")
    assert store.state == SessionState.empty("betanet")


@pytest.mark.parametrize(
    "serialized",
    [
        "not json",
        "[]",
        json.dumps({"wallets": {}, "activeWallet": None}),
        json.dumps({"wallets": {}, "activeWallet": None, "activeNetwork": "testnet", "extra": 1}),
        json.dumps({"wallets": {}, "activeWallet": None, "activeNetwork": 5}),
        json.dumps({"wallets": {"kmd": {}}, "activeWallet": None, "activeNetwork": "testnet"}),
        json.dumps({"wallets": {"kmd": {"accounts": []}}, "activeWallet": None, "activeNetwork": "testnet"}),
        json.dumps(
            {"wallets": {"kmd": {"activeAccount": None}}, "activeWallet": "kmd", "activeNetwork": "testnet"}
        ),
    ],
)
def test_load_invalid_values_return_none(serialized):
    storage = MemoryStorage({LOCAL_STORAGE_KEY: serialized})
    assert load_persisted_state(storage) is None


def test_load_missing_returns_none():
    assert load_persisted_state(MemoryStorage()) is None


class _BrokenStorage(MemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


def test_store_commit_survives_persist_failure(caplog):
    store = SessionStore(_BrokenStorage())
    with caplog.at_level(logging.ERROR):
        store.add_wallet(WalletId.KMD, _wallet(1))
    assert store.state.active_wallet == WalletId.KMD
    assert "Could not save state to storage" in caplog.text


def test_store_persists_each_commit():
    storage = MemoryStorage()
    store = SessionStore.from_storage(storage)
    assert json.loads(storage.get_item(LOCAL_STORAGE_KEY))["activeWallet"] is None

    store.add_wallet(WalletId.KMD, _wallet(1))
    assert json.loads(storage.get_item(LOCAL_STORAGE_KEY))["activeWallet"] == "kmd"

    store.remove_wallet(WalletId.KMD)
    assert json.loads(storage.get_item(LOCAL_STORAGE_KEY))["wallets"] == {}


def test_store_subscribe_and_unsubscribe():
    store = SessionStore(MemoryStorage())
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.add_wallet(WalletId.KMD, _wallet(1))
    store.set_active_network("fnet", algod_client=object())
    unsubscribe()
    store.remove_wallet(WalletId.KMD)

    assert [s.active_network for s in seen] == ["testnet", "fnet"]
    assert seen[-1].active_wallet == WalletId.KMD
    assert store.state.active_wallet is None


def test_store_listener_error_does_not_abort_commit():
    store = SessionStore(MemoryStorage())

    def boom(_state):
        raise RuntimeError("listener failed")

    store.subscribe(boom)
    store.add_wallet(WalletId.KMD, _wallet(1))
    assert store.state.active_wallet == WalletId.KMD


def test_store_read_helpers():
    store = SessionStore(MemoryStorage())
    assert store.connected_addresses(WalletId.KMD) == []
    assert store.active_account is None

    store.add_wallet(WalletId.KMD, _wallet(1, 2))
    assert store.connected_addresses(WalletId.KMD) == ["ADDR1", "ADDR2"]
    assert store.connected_addresses("bogus") == []
    assert store.active_account == _acct(1)
    assert store.active_wallet_state.addresses == ["ADDR1", "ADDR2"]


def test_store_keeps_algod_client_out_of_persisted_state():
    storage = MemoryStorage()
    store = SessionStore(storage)
    client = object()
    store.set_active_network("mainnet", algod_client=client)
    assert store.algod_client is client
    assert json.loads(storage.get_item(LOCAL_STORAGE_KEY)) == {
        "wallets": {},
        "activeWallet": None,
        "activeNetwork": "mainnet",
    }
