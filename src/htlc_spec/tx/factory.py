"""Destination-leg factory specs.

DeployDstFactory, CreateDstEscrow and the owner-gated setters
(SetCreationFee, SetTreasury, EmergencyWithdraw).

Escrows are clones at CREATE2 addresses: the salt is the hash of the escrow's
immutables with the real deployment timestamp filled in, the init code hash is
the minimal-proxy bytecode hash of the factory's escrow implementation. The
factory keeps no index of escrows; an address is either occupied or not.
"""

from __future__ import annotations

import logging
from copy import deepcopy

from ..account_model import asset_balance, spend_allowance, transfer_asset, transfer_native, transfer_token
from ..config import NATIVE_ASSET, U256_MAX
from ..crypto.hash_algorithms import (
    create2_address,
    evm_address_bytes,
    keccak256,
    proxy_bytecode_hash,
    u256_be,
)
from ..errors import ErrorCode, SpecError
from ..events import (
    CREATION_FEE_UPDATED,
    DST_ESCROW_CREATED,
    EMERGENCY_WITHDRAWAL,
    TREASURY_UPDATED,
    emit,
)
from ..immutables import Immutables
from ..types import (
    ChainState,
    DstEscrowState,
    DstFactoryState,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

_FACTORY_CODE = b"htlc-spec/EscrowFactory/v1"
_ESCROW_DST_CODE = b"htlc-spec/EscrowDst/v1"
_IMPLEMENTATION_SALT = keccak256(b"ESCROW_DST_IMPLEMENTATION")

_ADMIN_TYPES = frozenset({
    TransactionType.SET_CREATION_FEE,
    TransactionType.SET_TREASURY,
    TransactionType.EMERGENCY_WITHDRAW,
})


# --- addressing ---


def factory_address(
    deployer: int,
    access_token: int,
    owner: int,
    rescue_delay: int,
    creation_fee: int,
    treasury: int,
) -> int:
    args = b"".join(u256_be(v) for v in (access_token, owner, rescue_delay, creation_fee, treasury))
    init_code_hash = keccak256(_FACTORY_CODE + args)
    digest = keccak256(b"\xff" + evm_address_bytes(deployer) + init_code_hash)
    return int.from_bytes(digest[12:], "big")


def implementation_address(factory: int, rescue_delay: int, access_token: int) -> int:
    init_code_hash = keccak256(_ESCROW_DST_CODE + u256_be(rescue_delay) + u256_be(access_token))
    return create2_address(factory, _IMPLEMENTATION_SALT, init_code_hash)


def address_of_escrow_dst(factory: DstFactoryState, immutables: Immutables) -> int:
    """Deterministic escrow address for `immutables` as given.

    Matches the address `createDstEscrow` uses when the record's deployed_at
    equals the creation block's timestamp.
    """
    return create2_address(factory.address, immutables.hash(), factory.proxy_bytecode_hash)


def get_factory(state: ChainState, address: int) -> DstFactoryState:
    factory = state.dst_factories.get(address)
    if factory is None:
        raise SpecError(ErrorCode.FACTORY_NOT_FOUND, f"no escrow factory at {address:#x}")
    return factory


def required_native_value(factory: DstFactoryState, immutables: Immutables) -> int:
    native = immutables.safety_deposit + factory.creation_fee
    if immutables.token == NATIVE_ASSET:
        native += immutables.amount
    return native


# --- dispatch ---


def verify(state: ChainState, tx: Transaction) -> None:
    p = tx.payload
    if not isinstance(p, dict):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "factory payload must be dict")

    tt = tx.tx_type
    if tt == TransactionType.DEPLOY_DST_FACTORY:
        _verify_deploy(state, tx, p)
    elif tt == TransactionType.CREATE_DST_ESCROW:
        _verify_create(state, tx, p)
    elif tt in _ADMIN_TYPES:
        _verify_admin(state, tx, p)
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported factory tx type: {tt}")


def apply(state: ChainState, tx: Transaction) -> ChainState:
    p = tx.payload
    tt = tx.tx_type
    if tt == TransactionType.DEPLOY_DST_FACTORY:
        return _apply_deploy(state, tx, p)
    elif tt == TransactionType.CREATE_DST_ESCROW:
        return _apply_create(state, tx, p)
    elif tt == TransactionType.SET_CREATION_FEE:
        return _apply_set_creation_fee(state, tx, p)
    elif tt == TransactionType.SET_TREASURY:
        return _apply_set_treasury(state, tx, p)
    elif tt == TransactionType.EMERGENCY_WITHDRAW:
        return _apply_emergency_withdraw(state, tx, p)
    raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported factory tx type: {tt}")


# --- DEPLOY_DST_FACTORY ---


def _uint_field(p: dict, key: str, default: int) -> int:
    value = p.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value > U256_MAX:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, f"{key} must be a uint256")
    return value


def _deploy_args(tx: Transaction, p: dict) -> tuple[int, int, int, int, int]:
    return (
        _uint_field(p, "access_token", 0),
        _uint_field(p, "owner", tx.source),
        _uint_field(p, "rescue_delay", 0),
        _uint_field(p, "creation_fee", 0),
        _uint_field(p, "treasury", 0),
    )


def _verify_deploy(state: ChainState, tx: Transaction, p: dict) -> None:
    if tx.value != 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "factory deployment is not payable")
    access_token, owner, rescue_delay, creation_fee, treasury = _deploy_args(tx, p)
    if access_token not in state.tokens:
        raise SpecError(ErrorCode.TOKEN_NOT_FOUND, "access token not deployed")
    if rescue_delay <= 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "rescue_delay must be > 0")
    if creation_fee < 0 or creation_fee > U256_MAX:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "invalid creation_fee")
    if treasury == 0 or owner == 0:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "owner and treasury must be non-zero")
    address = factory_address(tx.source, access_token, owner, rescue_delay, creation_fee, treasury)
    if state.is_deployed(address):
        raise SpecError(ErrorCode.FACTORY_EXISTS, "factory already deployed")


def _apply_deploy(state: ChainState, tx: Transaction, p: dict) -> ChainState:
    ns = deepcopy(state)
    access_token, owner, rescue_delay, creation_fee, treasury = _deploy_args(tx, p)
    address = factory_address(tx.source, access_token, owner, rescue_delay, creation_fee, treasury)
    implementation = implementation_address(address, rescue_delay, access_token)
    ns.dst_factories[address] = DstFactoryState(
        address=address,
        owner=owner,
        access_token=access_token,
        rescue_delay=rescue_delay,
        creation_fee=creation_fee,
        treasury=treasury,
        implementation=implementation,
        proxy_bytecode_hash=proxy_bytecode_hash(implementation),
    )
    logger.debug("deployed escrow factory %#x (implementation %#x)", address, implementation)
    return ns


# --- CREATE_DST_ESCROW ---


def _immutables(p: dict) -> Immutables:
    imm = p.get("immutables")
    if not isinstance(imm, Immutables):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "immutables required")
    return imm


def _finalized(state: ChainState, imm: Immutables) -> Immutables:
    return imm.with_deployed_at(state.global_state.timestamp)


def _verify_create(state: ChainState, tx: Transaction, p: dict) -> None:
    factory = get_factory(state, tx.to)
    imm = _immutables(p)

    # Parties and token must be 20-byte addresses on this ledger.
    for party in (imm.maker, imm.taker, imm.token):
        evm_address_bytes(party)

    imm.schedule.validate()

    if imm.amount <= 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "escrow amount must be > 0")

    if tx.value != required_native_value(factory, imm):
        raise SpecError(ErrorCode.INSUFFICIENT_ESCROW_BALANCE, "native value does not match required funding")

    if imm.token != NATIVE_ASSET:
        token = state.tokens.get(imm.token)
        if token is None:
            raise SpecError(ErrorCode.TOKEN_NOT_FOUND, "escrow token not deployed")
        if token.allowance(tx.source, factory.address) < imm.amount:
            raise SpecError(ErrorCode.INSUFFICIENT_ALLOWANCE, "insufficient token allowance")
        if token.balance_of(tx.source) < imm.amount:
            raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient token balance")

    address = address_of_escrow_dst(factory, _finalized(state, imm))
    if state.is_deployed(address):
        raise SpecError(ErrorCode.ESCROW_EXISTS, "escrow already deployed at this address")


def _apply_create(state: ChainState, tx: Transaction, p: dict) -> ChainState:
    ns = deepcopy(state)
    factory = get_factory(ns, tx.to)
    imm = _finalized(ns, _immutables(p))
    address = address_of_escrow_dst(factory, imm)

    # Value enters the factory, which keeps nothing past this transaction.
    transfer_native(ns, tx.source, factory.address, tx.value)
    transfer_native(ns, factory.address, factory.treasury, factory.creation_fee)
    transfer_native(ns, factory.address, address, tx.value - factory.creation_fee)

    if imm.token != NATIVE_ASSET:
        spend_allowance(ns, imm.token, tx.source, factory.address, imm.amount)
        transfer_token(ns, imm.token, tx.source, address, imm.amount)

    ns.dst_escrows[address] = DstEscrowState(
        address=address,
        factory=factory.address,
        immutables_hash=imm.hash(),
        order_hash=bytes(imm.order_hash),
        hashlock=bytes(imm.hashlock),
        maker=imm.maker,
        taker=imm.taker,
        token=imm.token,
        amount=imm.amount,
        safety_deposit=imm.safety_deposit,
        timelocks=imm.timelocks,
        rescue_delay=factory.rescue_delay,
        access_token=factory.access_token,
    )
    emit(ns, factory.address, DST_ESCROW_CREATED, escrow=address, hashlock=bytes(imm.hashlock), taker=imm.taker)
    logger.debug("created dst escrow %#x for hashlock %s", address, bytes(imm.hashlock).hex())
    return ns


# --- owner-gated setters ---


def _verify_admin(state: ChainState, tx: Transaction, p: dict) -> None:
    factory = get_factory(state, tx.to)
    if tx.value != 0:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "admin calls are not payable")
    if tx.source != factory.owner:
        raise SpecError(ErrorCode.NOT_OWNER, "caller is not the factory owner")

    tt = tx.tx_type
    if tt == TransactionType.SET_CREATION_FEE:
        fee = p.get("creation_fee")
        if not isinstance(fee, int) or isinstance(fee, bool) or fee < 0 or fee > U256_MAX:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "invalid creation_fee")
    elif tt == TransactionType.SET_TREASURY:
        treasury = p.get("treasury")
        if not isinstance(treasury, int) or treasury == 0:
            raise SpecError(ErrorCode.INVALID_ADDRESS, "treasury must be non-zero")
    elif tt == TransactionType.EMERGENCY_WITHDRAW:
        amount = p.get("amount", 0)
        to = p.get("to")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "withdraw amount must be > 0")
        if not isinstance(to, int) or to == 0:
            raise SpecError(ErrorCode.INVALID_ADDRESS, "recipient must be non-zero")
        if asset_balance(state, _uint_field(p, "token", NATIVE_ASSET), factory.address) < amount:
            raise SpecError(ErrorCode.INSUFFICIENT_BALANCE, "factory balance too low")


def _apply_set_creation_fee(state: ChainState, tx: Transaction, p: dict) -> ChainState:
    ns = deepcopy(state)
    factory = get_factory(ns, tx.to)
    old = factory.creation_fee
    factory.creation_fee = p["creation_fee"]
    emit(ns, factory.address, CREATION_FEE_UPDATED, old_fee=old, new_fee=factory.creation_fee)
    return ns


def _apply_set_treasury(state: ChainState, tx: Transaction, p: dict) -> ChainState:
    ns = deepcopy(state)
    factory = get_factory(ns, tx.to)
    old = factory.treasury
    factory.treasury = p["treasury"]
    emit(ns, factory.address, TREASURY_UPDATED, old_treasury=old, new_treasury=factory.treasury)
    return ns


def _apply_emergency_withdraw(state: ChainState, tx: Transaction, p: dict) -> ChainState:
    ns = deepcopy(state)
    factory = get_factory(ns, tx.to)
    token = p.get("token", NATIVE_ASSET)
    transfer_asset(ns, token, factory.address, p["to"], p["amount"])
    emit(ns, factory.address, EMERGENCY_WITHDRAWAL, token=token, amount=p["amount"], to=p["to"])
    logger.info("emergency withdrawal of %d from factory %#x", p["amount"], factory.address)
    return ns
