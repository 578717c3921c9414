"""Core transaction specs (native Transfers)."""

from __future__ import annotations

from copy import deepcopy

from ..account_model import credit, debit
from ..config import U256_MAX
from ..errors import ErrorCode, SpecError
from ..types import ChainState, Transaction, TransactionType, TransferPayload

MAX_TRANSFER_COUNT = 500


def verify(state: ChainState, tx: Transaction) -> None:
    if tx.tx_type != TransactionType.TRANSFERS:
        raise SpecError(ErrorCode.INVALID_TYPE, "unsupported core tx type")

    if not isinstance(tx.payload, list) or not tx.payload:
        raise SpecError(ErrorCode.INVALID_FORMAT, "transfers list empty")

    if len(tx.payload) > MAX_TRANSFER_COUNT:
        raise SpecError(ErrorCode.INVALID_FORMAT, "too many transfers")

    if tx.value != 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "transfers carry value in their payload")

    total_amount = 0
    for t in tx.payload:
        if not isinstance(t, TransferPayload):
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "invalid transfer payload")
        if not isinstance(t.destination, int) or isinstance(t.destination, bool):
            raise SpecError(ErrorCode.INVALID_ADDRESS, "transfer destination must be an address")
        if not isinstance(t.amount, int) or isinstance(t.amount, bool):
            raise SpecError(ErrorCode.INVALID_AMOUNT, "transfer amount must be an integer")
        if t.destination == tx.source:
            raise SpecError(ErrorCode.INVALID_ADDRESS, "sender cannot be receiver")
        if t.amount < 0:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "transfer amount invalid")
        total_amount += t.amount
        if total_amount > U256_MAX:
            raise SpecError(ErrorCode.OVERFLOW, "total transfer amount overflow")

    sender = state.accounts.get(tx.source)
    if sender is not None and sender.balance < total_amount + tx.fee:
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance for transfers")


def apply(state: ChainState, tx: Transaction) -> ChainState:
    next_state = deepcopy(state)
    if tx.source not in next_state.accounts:
        raise SpecError(ErrorCode.ACCOUNT_NOT_FOUND, "sender not found")

    # Plain value transfers may land on contract addresses (stray funds an
    # escrow or factory can later sweep).
    for t in tx.payload:
        debit(next_state, tx.source, t.amount)
        credit(next_state, t.destination, t.amount)

    return next_state
