from __future__ import annotations

import pytest
from algosdk import encoding, mnemonic

from signing.errors import SignTxnsError
from signing.merger import ResponseLayout
from signing.requests import WalletTransaction
from state.models import WalletAccount
from wallets.errors import WalletConnectError
from wallets.mnemonic import MnemonicProvider


@pytest.mark.asyncio
async def test_connect_derives_single_account(make_account):
    sk, addr = make_account()
    provider = MnemonicProvider(mnemonic_prompt=lambda: mnemonic.from_private_key(sk))

    assert await provider.connect() == [WalletAccount(name="Mnemonic Account", address=addr)]
    assert provider.address == addr


@pytest.mark.asyncio
async def test_refuses_mainnet(make_account):
    sk, _ = make_account()
    provider = MnemonicProvider(
        mnemonic_prompt=lambda: mnemonic.from_private_key(sk), network_getter=lambda: "mainnet"
    )
    with pytest.raises(WalletConnectError, match="MainNet"):
        await provider.connect()
    with pytest.raises(SignTxnsError):
        await provider.sign_txns([WalletTransaction(txn="AA==")])


@pytest.mark.asyncio
async def test_invalid_mnemonic_raises():
    provider = MnemonicProvider(mnemonic_prompt=lambda: "abandon " * 3)
    with pytest.raises(WalletConnectError, match="Invalid mnemonic"):
        await provider.connect()


@pytest.mark.asyncio
async def test_sign_returns_full_layout(make_account, make_payment):
    sk, addr = make_account()
    _, other = make_account()
    provider = MnemonicProvider(mnemonic_prompt=lambda: mnemonic.from_private_key(sk))
    await provider.connect()

    mine = make_payment(addr)
    request = [
        WalletTransaction(txn=encoding.msgpack_encode(mine)),
        WalletTransaction(txn=encoding.msgpack_encode(make_payment(addr, note=b"x")), signers=[]),
        WalletTransaction(txn=encoding.msgpack_encode(make_payment(other))),
    ]
    result = await provider.sign_txns(request)

    assert provider.response_layout is ResponseLayout.FULL
    assert result == [encoding.msgpack_encode(mine.sign(sk)), None, None]


@pytest.mark.asyncio
async def test_disconnect_forgets_key(make_account):
    sk, _ = make_account()
    prompts = []

    def prompt():
        prompts.append(1)
        return mnemonic.from_private_key(sk)

    provider = MnemonicProvider(mnemonic_prompt=prompt)
    await provider.connect()
    await provider.disconnect()
    assert provider.address is None
    await provider.connect()
    assert len(prompts) == 2
    assert await provider.resume_session(None) is None
