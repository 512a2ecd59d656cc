import base64
import os
import sys

import pytest
from algosdk import account, encoding, transaction


def pytest_configure():
    # Ensure `src/` is importable as top-level for `state.*`, `signing.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


TESTNET_GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="


def _suggested_params():
    return transaction.SuggestedParams(
        fee=1000,
        first=1000,
        last=2000,
        gh=TESTNET_GENESIS_HASH,
        gen="testnet-v1.0",
        flat_fee=True,
    )


@pytest.fixture
def make_account():
    """Return a factory producing fresh (private_key, address) pairs."""
    return account.generate_account


@pytest.fixture
def make_payment():
    """Return a factory for unsigned payment transactions from `sender`."""
    def _make(sender, receiver=None, amount=1000, note=b""):
        return transaction.PaymentTxn(sender, _suggested_params(), receiver or sender, amount, note=note or None)

    return _make


@pytest.fixture
def encode_txn():
    """msgpack-encode a transaction (signed or unsigned) to raw bytes."""
    def _encode(txn):
        return base64.b64decode(encoding.msgpack_encode(txn))

    return _encode


@pytest.fixture
def restore_logging():
    """Undo root-logger and structlog changes made by `setup_logging`."""
    import logging

    import structlog

    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    structlog.reset_defaults()
