"""Core tx fixtures (transfers + failed-tx semantics)."""

from __future__ import annotations

import pytest

from htlc_spec.config import CHAIN_ID_EVM_MAINNET
from htlc_spec.errors import ErrorCode
from htlc_spec.state_digest import compute_state_digest
from htlc_spec.state_transition import apply_tx
from htlc_spec.test_accounts import EVE, MAKER, RELAYER, TAKER, TON_MAKER
from htlc_spec.tx.core import MAX_TRANSFER_COUNT
from htlc_spec.types import Transaction, TransactionType, TransferPayload
from tools.fixtures_io import state_to_json

from helpers import ETH, evm_state, evm_tx, ton_state, ton_tx

_PATH = "transactions/core/transfers.json"


def _transfer(sender: int, receiver: int, amount: int, fee: int = 0) -> Transaction:
    return evm_tx(sender, TransactionType.TRANSFERS, [TransferPayload(receiver, amount)], fee=fee)


def test_transfer_success(state_test_group) -> None:
    state = evm_state()
    post, result = state_test_group(_PATH, "transfer_success", state, _transfer(TAKER, MAKER, ETH, fee=1000))
    assert result.ok
    assert post.balance_of(MAKER) == ETH
    assert post.balance_of(TAKER) == state.balance_of(TAKER) - ETH - 1000
    assert post.global_state.total_fees == 1000


def test_transfer_creates_recipient(state_test_group) -> None:
    state = evm_state()
    fresh = 0xABCDEF
    post, result = state_test_group(_PATH, "transfer_creates_recipient", state, _transfer(TAKER, fresh, 5))
    assert result.ok
    assert post.balance_of(fresh) == 5


def test_transfer_insufficient_balance(state_test_group) -> None:
    state = evm_state()
    post, result = state_test_group(
        _PATH, "transfer_insufficient_balance", state, _transfer(RELAYER, MAKER, 11 * ETH)
    )
    assert result.error.code == ErrorCode.INSUFFICIENT_BALANCE
    assert post is state


def test_transfer_to_self(state_test_group) -> None:
    _, result = state_test_group(_PATH, "transfer_to_self", evm_state(), _transfer(TAKER, TAKER, 1))
    assert result.error.code == ErrorCode.INVALID_ADDRESS


def test_transfer_empty(state_test_group) -> None:
    tx = evm_tx(TAKER, TransactionType.TRANSFERS, [])
    _, result = state_test_group(_PATH, "transfer_empty", evm_state(), tx)
    assert result.error.code == ErrorCode.INVALID_FORMAT


def test_transfer_too_many(state_test_group) -> None:
    payload = [TransferPayload(MAKER, 1)] * (MAX_TRANSFER_COUNT + 1)
    tx = evm_tx(TAKER, TransactionType.TRANSFERS, payload)
    _, result = state_test_group(_PATH, "transfer_too_many", evm_state(), tx)
    assert result.error.code == ErrorCode.INVALID_FORMAT


def test_transfer_with_value_rejected(state_test_group) -> None:
    tx = evm_tx(TAKER, TransactionType.TRANSFERS, [TransferPayload(MAKER, 1)], value=1)
    _, result = state_test_group(_PATH, "transfer_with_value", evm_state(), tx)
    assert result.error.code == ErrorCode.INVALID_PAYLOAD


def test_sender_not_found(state_test_group) -> None:
    _, result = state_test_group(_PATH, "sender_not_found", evm_state(), _transfer(0x1234, MAKER, 1))
    assert result.error.code == ErrorCode.ACCOUNT_NOT_FOUND


def test_chain_id_mismatch(state_test_group) -> None:
    tx = _transfer(TAKER, MAKER, 1)
    tx.chain_id = CHAIN_ID_EVM_MAINNET
    _, result = state_test_group(_PATH, "chain_id_mismatch", evm_state(), tx)
    assert result.error.code == ErrorCode.CHAIN_MISMATCH


def test_negative_fee(state_test_group) -> None:
    _, result = state_test_group(_PATH, "negative_fee", evm_state(), _transfer(TAKER, MAKER, 1, fee=-1))
    assert result.error.code == ErrorCode.INVALID_AMOUNT


def test_fee_exceeds_balance(state_test_group) -> None:
    state = evm_state()
    tx = _transfer(EVE, MAKER, 0, fee=state.balance_of(EVE) + 1)
    _, result = state_test_group(_PATH, "fee_exceeds_balance", state, tx)
    assert result.error.code == ErrorCode.INSUFFICIENT_BALANCE


def test_transfer_on_ton_ledger(state_test_group) -> None:
    state = ton_state()
    tx = ton_tx(TON_MAKER, TransactionType.TRANSFERS, [TransferPayload(0x77, 9)])
    post, result = state_test_group(_PATH, "transfer_on_ton_ledger", state, tx)
    assert result.ok
    assert post.balance_of(0x77) == 9


def test_failed_tx_leaves_digest_unchanged() -> None:
    state = evm_state()
    before = compute_state_digest(state_to_json(state))
    post, result = apply_tx(state, _transfer(RELAYER, MAKER, 100 * ETH))
    assert not result.ok
    assert compute_state_digest(state_to_json(post)) == before
    assert compute_state_digest(state_to_json(state)) == before


@pytest.mark.parametrize(
    "transfer,code",
    [
        (TransferPayload(MAKER, "5"), ErrorCode.INVALID_AMOUNT),
        (TransferPayload(MAKER, 1.5), ErrorCode.INVALID_AMOUNT),
        (TransferPayload("maker", 5), ErrorCode.INVALID_ADDRESS),
    ],
)
def test_transfer_malformed_entry(transfer, code) -> None:
    state = evm_state()
    post, result = apply_tx(state, evm_tx(TAKER, TransactionType.TRANSFERS, [transfer]))
    assert result.error.code == code
    assert post is state
