"""Fungible token tx fixtures."""

from __future__ import annotations

from htlc_spec.errors import ErrorCode
from htlc_spec.state_transition import apply_tx
from htlc_spec.test_accounts import EVE, MAKER, OWNER, TAKER
from htlc_spec.tx.token import token_address
from htlc_spec.types import TransactionType

from helpers import deploy_token, evm_state, evm_tx, mint

_PATH = "transactions/token/token.json"


def test_deploy_token(state_test_group) -> None:
    state = evm_state()
    tx = evm_tx(OWNER, TransactionType.DEPLOY_TOKEN, {"symbol": "USDC"})
    post, result = state_test_group(_PATH, "deploy_token", state, tx)
    assert result.ok
    token = post.tokens[token_address(post, OWNER, "USDC")]
    assert token.owner == OWNER
    assert token.total_supply == 0


def test_deploy_token_twice(state_test_group) -> None:
    state, _ = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(OWNER, TransactionType.DEPLOY_TOKEN, {"symbol": "USDC"})
    _, result = state_test_group(_PATH, "deploy_token_twice", state, tx)
    assert result.error.code == ErrorCode.TOKEN_EXISTS


def test_deploy_token_without_symbol(state_test_group) -> None:
    tx = evm_tx(OWNER, TransactionType.DEPLOY_TOKEN, {"symbol": ""})
    _, result = state_test_group(_PATH, "deploy_token_without_symbol", evm_state(), tx)
    assert result.error.code == ErrorCode.INVALID_PAYLOAD


def test_mint_by_owner(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(OWNER, TransactionType.MINT_TOKEN, {"to": TAKER, "amount": 500}, to=token)
    post, result = state_test_group(_PATH, "mint_by_owner", state, tx)
    assert result.ok
    assert post.tokens[token].balance_of(TAKER) == 500
    assert post.tokens[token].total_supply == 500


def test_mint_by_stranger(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(EVE, TransactionType.MINT_TOKEN, {"to": EVE, "amount": 500}, to=token)
    _, result = state_test_group(_PATH, "mint_by_stranger", state, tx)
    assert result.error.code == ErrorCode.NOT_OWNER


def test_mint_unknown_token(state_test_group) -> None:
    tx = evm_tx(OWNER, TransactionType.MINT_TOKEN, {"to": TAKER, "amount": 1}, to=0xDEAD)
    _, result = state_test_group(_PATH, "mint_unknown_token", evm_state(), tx)
    assert result.error.code == ErrorCode.TOKEN_NOT_FOUND


def test_transfer_token(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    state = mint(state, token, OWNER, TAKER, 500)
    tx = evm_tx(TAKER, TransactionType.TRANSFER_TOKEN, {"to": MAKER, "amount": 200}, to=token)
    post, result = state_test_group(_PATH, "transfer_token", state, tx)
    assert result.ok
    assert post.tokens[token].balance_of(TAKER) == 300
    assert post.tokens[token].balance_of(MAKER) == 200
    assert state.tokens[token].balance_of(TAKER) == 500


def test_transfer_token_insufficient(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    state = mint(state, token, OWNER, TAKER, 5)
    tx = evm_tx(TAKER, TransactionType.TRANSFER_TOKEN, {"to": MAKER, "amount": 6}, to=token)
    _, result = state_test_group(_PATH, "transfer_token_insufficient", state, tx)
    assert result.error.code == ErrorCode.INSUFFICIENT_BALANCE


def test_token_call_with_value(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(OWNER, TransactionType.MINT_TOKEN, {"to": TAKER, "amount": 1}, to=token, value=1)
    _, result = state_test_group(_PATH, "token_call_with_value", state, tx)
    assert result.error.code == ErrorCode.INVALID_PAYLOAD


def test_approve_token(state_test_group) -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(TAKER, TransactionType.APPROVE_TOKEN, {"spender": MAKER, "amount": 77}, to=token)
    post, result = state_test_group(_PATH, "approve_token", state, tx)
    assert result.ok
    assert post.tokens[token].allowance(TAKER, MAKER) == 77

    tx = evm_tx(TAKER, TransactionType.APPROVE_TOKEN, {"spender": MAKER, "amount": 0}, to=token)
    post, result = state_test_group(_PATH, "approve_token_reset", post, tx)
    assert result.ok
    assert post.tokens[token].allowance(TAKER, MAKER) == 0


def test_mint_to_malformed_recipient() -> None:
    state, token = deploy_token(evm_state(), OWNER, "USDC")
    tx = evm_tx(OWNER, TransactionType.MINT_TOKEN, {"to": "taker", "amount": 1}, to=token)
    post, result = apply_tx(state, tx)
    assert result.error.code == ErrorCode.INVALID_ADDRESS
    assert post.tokens[token].total_supply == 0
