"""Destination-leg escrow specs.

Withdraw, PublicWithdraw, Cancel and RescueFunds. Every call carries the
escrow's full immutables record; the record is re-hashed into the CREATE2
address and must land on the escrow being called.
"""

from __future__ import annotations

import logging
from copy import deepcopy

from ..access import gate_for
from ..account_model import asset_balance, transfer_asset, transfer_native
from ..config import NATIVE_ASSET
from ..errors import ErrorCode, SpecError
from ..events import ESCROW_CANCELLED, ESCROW_WITHDRAWAL, FUNDS_RESCUED, emit
from ..hashlock import require_secret
from ..immutables import Immutables
from ..types import ChainState, DstEscrowState, EscrowStatus, Transaction, TransactionType
from .factory import address_of_escrow_dst, get_factory

logger = logging.getLogger(__name__)


def get_escrow(state: ChainState, address: int) -> DstEscrowState:
    escrow = state.dst_escrows.get(address)
    if escrow is None:
        raise SpecError(ErrorCode.ESCROW_NOT_FOUND, f"no escrow at {address:#x}")
    return escrow


def _record(p: dict) -> Immutables:
    imm = p.get("immutables")
    if not isinstance(imm, Immutables):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "immutables required")
    return imm


def _check_caller(tx: Transaction, imm: Immutables) -> None:
    if tx.source != imm.taker:
        raise SpecError(ErrorCode.INVALID_CALLER, "caller is not the taker")


def _check_immutables(state: ChainState, escrow: DstEscrowState, imm: Immutables) -> None:
    factory = get_factory(state, escrow.factory)
    if address_of_escrow_dst(factory, imm) != escrow.address:
        raise SpecError(ErrorCode.INVALID_IMMUTABLES, "record does not match this escrow")


def _check_pending(escrow: DstEscrowState) -> None:
    if escrow.status != EscrowStatus.PENDING:
        raise SpecError(ErrorCode.ESCROW_WRONG_STATE, f"escrow already {escrow.status.value}")


def verify(state: ChainState, tx: Transaction) -> None:
    p = tx.payload
    if not isinstance(p, dict):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "escrow payload must be dict")
    if tx.value != 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "escrow calls are not payable")

    escrow = get_escrow(state, tx.to)
    imm = _record(p)
    now = state.global_state.timestamp
    tt = tx.tx_type

    if tt == TransactionType.DST_WITHDRAW:
        _check_caller(tx, imm)
        _check_immutables(state, escrow, imm)
        if not imm.schedule.in_private_window(now):
            raise SpecError(ErrorCode.INVALID_TIME, "outside private withdrawal window")
        require_secret(p.get("secret"), imm.hashlock)
        _check_pending(escrow)
    elif tt == TransactionType.DST_PUBLIC_WITHDRAW:
        if not gate_for(escrow.access_token).has_access(state, tx.source):
            raise SpecError(ErrorCode.INVALID_CALLER, "caller holds no access credential")
        _check_immutables(state, escrow, imm)
        if not imm.schedule.in_public_window(now):
            raise SpecError(ErrorCode.INVALID_TIME, "outside public withdrawal window")
        require_secret(p.get("secret"), imm.hashlock)
        _check_pending(escrow)
    elif tt == TransactionType.DST_CANCEL:
        _check_caller(tx, imm)
        _check_immutables(state, escrow, imm)
        if not imm.schedule.in_cancel_window(now):
            raise SpecError(ErrorCode.INVALID_TIME, "cancellation window not open")
        _check_pending(escrow)
    elif tt == TransactionType.DST_RESCUE_FUNDS:
        _check_caller(tx, imm)
        _check_immutables(state, escrow, imm)
        if not imm.schedule.in_rescue_window(now, escrow.rescue_delay):
            raise SpecError(ErrorCode.INVALID_TIME, "rescue delay not elapsed")
        token = p.get("token", NATIVE_ASSET)
        amount = p.get("amount", 0)
        if not isinstance(token, int) or not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "invalid rescue token or amount")
        if token != NATIVE_ASSET and token not in state.tokens:
            raise SpecError(ErrorCode.TOKEN_NOT_FOUND, "rescue token not deployed")
        if asset_balance(state, token, escrow.address) < amount:
            raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "escrow balance too low")
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported escrow tx type: {tt}")


def apply(state: ChainState, tx: Transaction) -> ChainState:
    ns = deepcopy(state)
    escrow = get_escrow(ns, tx.to)
    p = tx.payload
    tt = tx.tx_type

    if tt in (TransactionType.DST_WITHDRAW, TransactionType.DST_PUBLIC_WITHDRAW):
        secret = require_secret(p["secret"], escrow.hashlock)
        transfer_asset(ns, escrow.token, escrow.address, escrow.maker, escrow.amount)
        transfer_native(ns, escrow.address, tx.source, escrow.safety_deposit)
        escrow.status = EscrowStatus.WITHDRAWN
        escrow.secret = secret
        emit(ns, escrow.address, ESCROW_WITHDRAWAL, secret=secret)
        logger.debug("escrow %#x withdrawn by %#x", escrow.address, tx.source)
    elif tt == TransactionType.DST_CANCEL:
        transfer_asset(ns, escrow.token, escrow.address, escrow.taker, escrow.amount)
        transfer_native(ns, escrow.address, tx.source, escrow.safety_deposit)
        escrow.status = EscrowStatus.CANCELLED
        emit(ns, escrow.address, ESCROW_CANCELLED)
        logger.debug("escrow %#x cancelled", escrow.address)
    elif tt == TransactionType.DST_RESCUE_FUNDS:
        token = p.get("token", NATIVE_ASSET)
        amount = p.get("amount", 0)
        transfer_asset(ns, token, escrow.address, tx.source, amount)
        emit(ns, escrow.address, FUNDS_RESCUED, token=token, amount=amount)
        logger.debug("rescued %d of asset %#x from escrow %#x", amount, token, escrow.address)
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported escrow tx type: {tt}")
    return ns
