"""Fungible token specs (DeployToken, MintToken, TransferToken, ApproveToken).

A minimal ERC-20 / jetton ledger: owner-only mint, transfer, approve. Used for
token-denominated escrows and for the access credential.
"""

from __future__ import annotations

from copy import deepcopy

from ..account_model import apply_balance_change, get_token, transfer_token
from ..config import U256_MAX
from ..crypto.hash_algorithms import blake3_hash
from ..errors import ErrorCode, SpecError
from ..types import ChainState, ChainKind, TokenState, Transaction, TransactionType

_TOKEN_CODE = b"htlc-spec/fungible-token/v1"


def token_address(state: ChainState, deployer: int, symbol: str) -> int:
    digest = blake3_hash(_TOKEN_CODE + deployer.to_bytes(32, "big") + symbol.encode())
    if state.chain_kind == ChainKind.EVM:
        return int.from_bytes(digest[12:], "big")
    return int.from_bytes(digest, "big")


def _address(p: dict, key: str, default=None) -> int:
    value = p.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value > U256_MAX:
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"{key} must be an address")
    return value


def verify(state: ChainState, tx: Transaction) -> None:
    p = tx.payload
    if not isinstance(p, dict):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "token payload must be dict")
    if tx.value != 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "token calls are not payable")

    tt = tx.tx_type
    if tt == TransactionType.DEPLOY_TOKEN:
        symbol = p.get("symbol", "")
        if not isinstance(symbol, str) or not symbol:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "token symbol required")
        if token_address(state, tx.source, symbol) in state.tokens:
            raise SpecError(ErrorCode.TOKEN_EXISTS, "token already deployed")
        return

    token = get_token(state, tx.to)
    amount = p.get("amount", 0)
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0 or amount > U256_MAX:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "token amount must be a uint256")

    if tt == TransactionType.MINT_TOKEN:
        if tx.source != token.owner:
            raise SpecError(ErrorCode.NOT_OWNER, "only the token owner can mint")
        _address(p, "to", tx.source)
        if token.total_supply + amount > U256_MAX:
            raise SpecError(ErrorCode.OVERFLOW, "total supply overflow")
    elif tt == TransactionType.TRANSFER_TOKEN:
        _address(p, "to")
        if token.balance_of(tx.source) < amount:
            raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient token balance")
    elif tt == TransactionType.APPROVE_TOKEN:
        _address(p, "spender")
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported token tx type: {tt}")


def apply(state: ChainState, tx: Transaction) -> ChainState:
    ns = deepcopy(state)
    p = tx.payload
    tt = tx.tx_type

    if tt == TransactionType.DEPLOY_TOKEN:
        address = token_address(ns, tx.source, p["symbol"])
        ns.tokens[address] = TokenState(address=address, symbol=p["symbol"], owner=tx.source)
        return ns

    token = get_token(ns, tx.to)
    amount = p.get("amount", 0)

    if tt == TransactionType.MINT_TOKEN:
        to = _address(p, "to", tx.source)
        token.balances[to] = apply_balance_change(token.balance_of(to), amount)
        token.total_supply += amount
    elif tt == TransactionType.TRANSFER_TOKEN:
        transfer_token(ns, tx.to, tx.source, _address(p, "to"), amount)
    elif tt == TransactionType.APPROVE_TOKEN:
        token.allowances[(tx.source, _address(p, "spender"))] = amount
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported token tx type: {tt}")
    return ns
