from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from common.config import Settings
from common.logging_config import setup_logging
from state.storage import FileStorage, MemoryStorage
from state.store import LOCAL_STORAGE_KEY


_ENV = (
    "USE_WALLET_NETWORK",
    "USE_WALLET_STORAGE",
    "USE_WALLET_STORAGE_KEY",
    "USE_WALLET_STORAGE_PATH",
    "USE_WALLET_LOG_LEVEL",
    "KMD_TOKEN",
    "KMD_SERVER",
    "KMD_PORT",
    "KMD_WALLET",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = Settings.from_env()
    assert s.network == "testnet"
    assert s.storage == "file"
    assert s.storage_key == LOCAL_STORAGE_KEY
    assert s.log_level == "WARNING"
    assert s.kmd_port == "4002"


def test_env_overrides_and_empty_values(monkeypatch, tmp_path):
    monkeypatch.setenv("USE_WALLET_NETWORK", "localnet")
    monkeypatch.setenv("USE_WALLET_STORAGE", "MEMORY")
    monkeypatch.setenv("USE_WALLET_LOG_LEVEL", "debug")
    monkeypatch.setenv("KMD_WALLET", "")
    monkeypatch.setenv("KMD_PORT", "7833")

    s = Settings.from_env()
    assert s.network == "localnet"
    assert s.storage == "memory"
    assert s.log_level == "DEBUG"
    assert s.kmd_wallet == "unencrypted-default-wallet"
    assert s.kmd_port == "7833"
    assert isinstance(s.create_storage(), MemoryStorage)


def test_unknown_network_rejected(monkeypatch):
    monkeypatch.setenv("USE_WALLET_NETWORK", "moonnet")
    with pytest.raises(ValidationError):
        Settings.from_env()


def test_unknown_storage_rejected():
    with pytest.raises(ValidationError):
        Settings(storage="redis")


def test_file_storage_path(tmp_path):
    storage = Settings(storage_path=str(tmp_path / "x.json")).create_storage()
    assert isinstance(storage, FileStorage)
    assert storage.path == tmp_path / "x.json"


def test_s3_storage_requires_env(monkeypatch):
    monkeypatch.delenv("USE_WALLET_STATE_BUCKET", raising=False)
    monkeypatch.delenv("USE_WALLET_FERNET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        Settings(storage="s3").create_storage()


def test_setup_logging_sets_root_level(restore_logging):
    setup_logging("info")
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_renders_json_lines(restore_logging, capsys):
    setup_logging("info")
    logging.getLogger("wallets.kmd").info("[kmd] Connected with %d account(s)", 2)
    logging.getLogger("wallets.kmd").debug("hidden")

    lines = capsys.readouterr().err.strip().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "[kmd] Connected with 2 account(s)"
    assert record["level"] == "info"
    assert record["logger"] == "wallets.kmd"
    assert "timestamp" in record


def test_setup_logging_level_from_env(restore_logging, monkeypatch, capsys):
    monkeypatch.setenv("USE_WALLET_LOG_LEVEL", "debug")
    setup_logging()
    assert logging.getLogger().level == logging.DEBUG

    logging.getLogger("state.store").debug("console line")
    err = capsys.readouterr().err
    assert "console line" in err
    assert not err.lstrip().startswith("{")
