from __future__ import annotations

import base64
from typing import Iterable

from state.models import WalletAccount


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


def compare_accounts(accounts: Iterable[WalletAccount], compare_to: Iterable[WalletAccount]) -> bool:
    """True when both lists hold the same set of addresses (order and names ignored)."""
    return {a.address for a in accounts} == {a.address for a in compare_to}
