"""Balance accounting shared by every transaction family.

Native value lives on `AccountState` (contracts are accounts too: an escrow's
native balance is the balance of its address). Token value lives in the
token's own ledger. All helpers mutate the state they are given; callers work
on a copy so a failure leaves the original untouched.
"""

from __future__ import annotations

from .config import NATIVE_ASSET, U256_MAX
from .errors import ErrorCode, SpecError
from .types import AccountState, ChainState, TokenState


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u256 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "negative balance")
    if new_balance > U256_MAX:
        raise SpecError(ErrorCode.OVERFLOW, "balance overflow")
    return new_balance


def get_or_create_account(state: ChainState, address: int) -> AccountState:
    acct = state.accounts.get(address)
    if acct is None:
        acct = AccountState(address=address, balance=0)
        state.accounts[address] = acct
    return acct


def debit(state: ChainState, address: int, amount: int) -> None:
    acct = state.accounts.get(address)
    if acct is None:
        if amount == 0:
            return
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "account has no balance")
    acct.balance = apply_balance_change(acct.balance, -amount)


def credit(state: ChainState, address: int, amount: int) -> None:
    acct = get_or_create_account(state, address)
    acct.balance = apply_balance_change(acct.balance, amount)


def transfer_native(state: ChainState, source: int, destination: int, amount: int) -> None:
    if amount < 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "transfer amount must be >= 0")
    debit(state, source, amount)
    credit(state, destination, amount)


def get_token(state: ChainState, token: int) -> TokenState:
    t = state.tokens.get(token)
    if t is None:
        raise SpecError(ErrorCode.TOKEN_NOT_FOUND, f"token {token:#x} not deployed")
    return t


def transfer_token(state: ChainState, token: int, source: int, destination: int, amount: int) -> None:
    if amount < 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "transfer amount must be >= 0")
    t = get_token(state, token)
    held = t.balance_of(source)
    if held < amount:
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient token balance")
    t.balances[source] = held - amount
    t.balances[destination] = apply_balance_change(t.balance_of(destination), amount)


def transfer_asset(state: ChainState, asset: int, source: int, destination: int, amount: int) -> None:
    """Move `amount` of native currency (asset 0) or of a token."""
    if asset == NATIVE_ASSET:
        transfer_native(state, source, destination, amount)
    else:
        transfer_token(state, asset, source, destination, amount)


def asset_balance(state: ChainState, asset: int, holder: int) -> int:
    if asset == NATIVE_ASSET:
        return state.balance_of(holder)
    t = state.tokens.get(asset)
    return t.balance_of(holder) if t is not None else 0


def spend_allowance(state: ChainState, token: int, holder: int, spender: int, amount: int) -> None:
    t = get_token(state, token)
    allowed = t.allowance(holder, spender)
    if allowed < amount:
        raise SpecError(ErrorCode.INSUFFICIENT_ALLOWANCE, "insufficient token allowance")
    t.allowances[(holder, spender)] = allowed - amount
