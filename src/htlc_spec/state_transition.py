"""State transition entrypoints for HTLC Python specs."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import replace
from typing import Optional

from .account_model import apply_balance_change
from .errors import ErrorCode, SpecError
from .types import ChainKind, ChainState, Transaction, TransactionType
from .tx import core as tx_core
from .tx import escrow_dst as tx_escrow_dst
from .tx import factory as tx_factory
from .tx import order as tx_order
from .tx import token as tx_token

logger = logging.getLogger(__name__)

_TOKEN_TYPES = frozenset({
    TransactionType.DEPLOY_TOKEN,
    TransactionType.MINT_TOKEN,
    TransactionType.TRANSFER_TOKEN,
    TransactionType.APPROVE_TOKEN,
})

_FACTORY_TYPES = frozenset({
    TransactionType.DEPLOY_DST_FACTORY,
    TransactionType.CREATE_DST_ESCROW,
    TransactionType.SET_CREATION_FEE,
    TransactionType.SET_TREASURY,
    TransactionType.EMERGENCY_WITHDRAW,
})

_ESCROW_DST_TYPES = frozenset({
    TransactionType.DST_WITHDRAW,
    TransactionType.DST_PUBLIC_WITHDRAW,
    TransactionType.DST_CANCEL,
    TransactionType.DST_RESCUE_FUNDS,
})

_ORDER_TYPES = frozenset({
    TransactionType.DEPLOY_ORDER_FACTORY,
    TransactionType.CREATE_ORDER,
    TransactionType.CLAIM_ORDER,
    TransactionType.WITHDRAW_ORDER,
})

# Contract families that exist on one ledger only.
_EVM_ONLY = _FACTORY_TYPES | _ESCROW_DST_TYPES
_TON_ONLY = _ORDER_TYPES


class TransitionResult:
    """Thin wrapper for verify/apply results."""

    def __init__(self, ok: bool, error: Optional[SpecError] = None):
        self.ok = ok
        self.error = error

    @classmethod
    def success(cls) -> "TransitionResult":
        return cls(True, None)

    @classmethod
    def failure(cls, error: SpecError) -> "TransitionResult":
        return cls(False, error)

    def __repr__(self) -> str:
        if self.ok:
            return "TransitionResult(ok)"
        return f"TransitionResult({self.error})"


def _module_for(tx: Transaction):
    tt = tx.tx_type
    if tt == TransactionType.TRANSFERS:
        return tx_core
    if tt in _TOKEN_TYPES:
        return tx_token
    if tt in _FACTORY_TYPES:
        return tx_factory
    if tt in _ESCROW_DST_TYPES:
        return tx_escrow_dst
    if tt in _ORDER_TYPES:
        return tx_order
    raise SpecError(ErrorCode.NOT_IMPLEMENTED, f"no handler for {tt}")


def _dispatch_verify(state: ChainState, tx: Transaction) -> None:
    _module_for(tx).verify(state, tx)


def _dispatch_apply(state: ChainState, tx: Transaction) -> ChainState:
    return _module_for(tx).apply(state, tx)


def _verify_common(state: ChainState, tx: Transaction) -> None:
    if tx.chain_id != state.network_chain_id:
        raise SpecError(ErrorCode.CHAIN_MISMATCH, "chain_id mismatch")

    if not isinstance(tx.tx_type, TransactionType):
        raise SpecError(ErrorCode.INVALID_TYPE, "unknown transaction type")
    if state.chain_kind == ChainKind.EVM and tx.tx_type in _TON_ONLY:
        raise SpecError(ErrorCode.INVALID_TYPE, f"{tx.tx_type.value} is not an EVM transaction")
    if state.chain_kind == ChainKind.TON and tx.tx_type in _EVM_ONLY:
        raise SpecError(ErrorCode.INVALID_TYPE, f"{tx.tx_type.value} is not a TON transaction")

    if tx.source not in state.accounts:
        raise SpecError(ErrorCode.ACCOUNT_NOT_FOUND, "sender not found")

    if tx.fee < 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "fee negative")
    if tx.value < 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "value negative")


def _check_fee_availability(state: ChainState, tx: Transaction) -> None:
    """Check sender can cover the attached value plus the fee.

    Called after type-specific validation so that protocol violations
    (funding mismatch, payload errors) take precedence over a short balance.
    """
    sender = state.accounts[tx.source]
    if sender.balance < tx.fee:
        raise SpecError(ErrorCode.INSUFFICIENT_FEE, "insufficient fee")
    if sender.balance < tx.value + tx.fee:
        raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance for value and fee")


def verify_tx(state: ChainState, tx: Transaction) -> TransitionResult:
    """Stateless + stateful verification for a single tx."""
    try:
        _verify_common(state, tx)
        _dispatch_verify(state, tx)
        _check_fee_availability(state, tx)
        return TransitionResult.success()
    except SpecError as exc:
        return TransitionResult.failure(exc)


def apply_tx(state: ChainState, tx: Transaction) -> tuple[ChainState, TransitionResult]:
    """Apply tx to state after verification.

    Failed-tx semantics:
    - Pre-validation failure: no fee, state unchanged
    - Execution failure: no fee, state unchanged
    """
    result = verify_tx(state, tx)
    if not result.ok:
        logger.debug("rejected %s from %#x: %s", tx.tx_type, tx.source, result.error)
        return state, result

    try:
        working = _dispatch_apply(state, tx)
        # Success: charge the fee
        sender = working.accounts[tx.source]
        sender.balance = apply_balance_change(sender.balance, -tx.fee)
    except SpecError as exc:
        logger.debug("execution of %s from %#x failed: %s", tx.tx_type, tx.source, exc)
        return state, TransitionResult.failure(exc)

    working.global_state.total_fees += tx.fee
    logger.debug("applied %s from %#x", tx.tx_type.value, tx.source)
    return working, TransitionResult.success()


def advance_time(state: ChainState, timestamp: int) -> ChainState:
    """Move the chain clock forward; timestamps never decrease."""
    if timestamp < state.global_state.timestamp:
        raise SpecError(ErrorCode.INVALID_TIME, "chain clock cannot move backwards")
    ns = deepcopy(state)
    ns.global_state.timestamp = timestamp
    return ns


def apply_block(
    state: ChainState,
    txs: list[Transaction],
    timestamp: Optional[int] = None,
) -> tuple[ChainState, TransitionResult]:
    """Apply a block worth of transactions in order (block-atomic semantics).

    The block is stamped with `timestamp` (default: the current chain time)
    before any transaction runs, so every transaction in it observes the same
    clock. If any transaction fails, the entire block is rejected and the
    state is unchanged.
    """
    gs = state.global_state
    working = deepcopy(state)
    working.global_state = replace(
        gs,
        block_height=gs.block_height + 1,
        timestamp=gs.timestamp if timestamp is None else timestamp,
    )
    if working.global_state.timestamp < gs.timestamp:
        return state, TransitionResult.failure(
            SpecError(ErrorCode.INVALID_TIME, "block timestamp before parent")
        )

    for tx in txs:
        working, result = apply_tx(working, tx)
        if not result.ok:
            return state, result

    return working, TransitionResult.success()
