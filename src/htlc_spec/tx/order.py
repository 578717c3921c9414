"""Source-leg order specs (TON).

DeployOrderFactory, CreateOrder, ClaimOrder and WithdrawOrder.

The maker sends `create_order` to the order factory; the factory deploys one
order contract per `(maker, order_id)` at an address derived from its state
init, forwards `from_amount` to it and returns any surplus value. A resolver
reserves the order with `claim`, then releases the locked value to itself by
revealing the secret. There is no cancel or timeout path on this leg.
"""

from __future__ import annotations

import logging
from copy import deepcopy

from ..account_model import transfer_native
from ..config import (
    HASH_KEY_BITS,
    HASH_SIZE,
    ORDER_ID_BITS,
    QUERY_ID_BITS,
    TO_ADDRESS_BITS,
    TO_AMOUNT_BITS,
    TO_NETWORK_BITS,
    TO_TOKEN_BITS,
    U128_MAX,
)
from ..crypto.hash_algorithms import blake3_hash, compute_deterministic_contract_address, ton_address_bytes
from ..errors import ErrorCode, SpecError
from ..events import ORDER_CLAIMED, ORDER_CREATED, ORDER_WITHDRAWN, emit
from ..hashlock import require_secret
from ..types import (
    ChainState,
    OrderFactoryState,
    OrderState,
    OrderStatus,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

_ORDER_FACTORY_CODE = b"htlc-spec/ton/EscrowFactory/v1"
_ORDER_CODE = b"htlc-spec/ton/UserEscrow/v1"

# (payload key, bit width) of the create_order message body after the opcode.
CREATE_ORDER_FIELDS = (
    ("query_id", QUERY_ID_BITS),
    ("order_id", ORDER_ID_BITS),
    ("from_amount", TO_AMOUNT_BITS),
    ("to_network", TO_NETWORK_BITS),
    ("to_token", TO_TOKEN_BITS),
    ("to_address", TO_ADDRESS_BITS),
    ("to_amount", TO_AMOUNT_BITS),
    ("hash_key", HASH_KEY_BITS),
)


# --- addressing ---


def order_factory_address(admin: int) -> int:
    return compute_deterministic_contract_address(admin, _ORDER_FACTORY_CODE)


def order_address(factory: int, maker: int, order_id: int) -> int:
    """Address of the order `maker` opened under `order_id` through `factory`."""
    if order_id < 0 or order_id >> ORDER_ID_BITS:
        raise SpecError(ErrorCode.INVALID_FORMAT, "order_id must fit in uint32")
    data = ton_address_bytes(maker) + ton_address_bytes(factory) + order_id.to_bytes(4, "big")
    return compute_deterministic_contract_address(factory, _ORDER_CODE, data)


def get_order_factory(state: ChainState, address: int) -> OrderFactoryState:
    factory = state.order_factories.get(address)
    if factory is None:
        raise SpecError(ErrorCode.FACTORY_NOT_FOUND, f"no order factory at {address:#x}")
    return factory


def get_order(state: ChainState, address: int) -> OrderState:
    order = state.orders.get(address)
    if order is None:
        raise SpecError(ErrorCode.ORDER_NOT_FOUND, f"no order at {address:#x}")
    return order


def _hash_key_bytes(value) -> bytes:
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0 or value >> HASH_KEY_BITS:
            raise SpecError(ErrorCode.INVALID_FORMAT, "hash_key must fit in uint256")
        return value.to_bytes(HASH_SIZE, "big")
    if isinstance(value, (bytes, bytearray)) and len(value) == HASH_SIZE:
        return bytes(value)
    raise SpecError(ErrorCode.INVALID_FORMAT, "hash_key must be uint256 or 32 bytes")


# --- dispatch ---


def verify(state: ChainState, tx: Transaction) -> None:
    p = tx.payload
    if not isinstance(p, dict):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "order payload must be dict")

    tt = tx.tx_type
    if tt == TransactionType.DEPLOY_ORDER_FACTORY:
        if tx.value != 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "factory deployment is not payable")
        if order_factory_address(tx.source) in state.order_factories:
            raise SpecError(ErrorCode.FACTORY_EXISTS, "order factory already deployed")
    elif tt == TransactionType.CREATE_ORDER:
        _verify_create(state, tx, p)
    elif tt == TransactionType.CLAIM_ORDER:
        order = get_order(state, tx.to)
        if tx.value != 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "claim is not payable")
        if order.resolver is not None:
            raise SpecError(ErrorCode.FORBIDDEN, "order already claimed")
    elif tt == TransactionType.WITHDRAW_ORDER:
        order = get_order(state, tx.to)
        if tx.value != 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "withdraw is not payable")
        if order.resolver is None or tx.source != order.resolver:
            raise SpecError(ErrorCode.INVALID_CALLER, "caller is not the order's resolver")
        require_secret(p.get("secret"), order.hash_key)
        if order.status == OrderStatus.WITHDRAWN:
            raise SpecError(ErrorCode.ESCROW_WRONG_STATE, "order already withdrawn")
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported order tx type: {tt}")


def _verify_create(state: ChainState, tx: Transaction, p: dict) -> None:
    factory = get_order_factory(state, tx.to)
    for key, bits in CREATE_ORDER_FIELDS:
        value = p.get(key, 0)
        if key == "hash_key":
            _hash_key_bytes(value)
            continue
        if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value >> bits:
            raise SpecError(ErrorCode.INVALID_FORMAT, f"{key} must fit in {bits} bits")
    from_amount = p.get("from_amount", 0)
    if from_amount <= 0 or from_amount > U128_MAX:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "from_amount must be > 0")
    if tx.value < from_amount:
        raise SpecError(ErrorCode.INSUFFICIENT_ESCROW_BALANCE, "attached value does not cover from_amount")
    address = order_address(factory.address, tx.source, p.get("order_id", 0))
    if state.is_deployed(address):
        raise SpecError(ErrorCode.ORDER_EXISTS, "order already exists")


def apply(state: ChainState, tx: Transaction) -> ChainState:
    ns = deepcopy(state)
    p = tx.payload
    tt = tx.tx_type

    if tt == TransactionType.DEPLOY_ORDER_FACTORY:
        address = order_factory_address(tx.source)
        ns.order_factories[address] = OrderFactoryState(
            address=address,
            admin=tx.source,
            order_code_hash=blake3_hash(_ORDER_CODE),
        )
        logger.debug("deployed order factory %#x", address)
    elif tt == TransactionType.CREATE_ORDER:
        factory = get_order_factory(ns, tx.to)
        order_id = p.get("order_id", 0)
        address = order_address(factory.address, tx.source, order_id)
        from_amount = p["from_amount"]

        transfer_native(ns, tx.source, factory.address, tx.value)
        transfer_native(ns, factory.address, address, from_amount)
        transfer_native(ns, factory.address, tx.source, tx.value - from_amount)

        ns.orders[address] = OrderState(
            address=address,
            factory=factory.address,
            maker=tx.source,
            order_id=order_id,
            from_amount=from_amount,
            to_network=p.get("to_network", 0),
            to_token=p.get("to_token", 0),
            to_address=p.get("to_address", 0),
            to_amount=p.get("to_amount", 0),
            hash_key=_hash_key_bytes(p.get("hash_key", 0)),
        )
        emit(ns, factory.address, ORDER_CREATED, order=address, maker=tx.source, order_id=order_id)
        logger.debug("created order %#x (maker %#x, id %d)", address, tx.source, order_id)
    elif tt == TransactionType.CLAIM_ORDER:
        order = get_order(ns, tx.to)
        order.resolver = tx.source
        order.status = OrderStatus.CLAIMED
        emit(ns, order.address, ORDER_CLAIMED, resolver=tx.source)
    elif tt == TransactionType.WITHDRAW_ORDER:
        order = get_order(ns, tx.to)
        secret = require_secret(p["secret"], order.hash_key)
        transfer_native(ns, order.address, tx.source, ns.balance_of(order.address))
        order.status = OrderStatus.WITHDRAWN
        order.secret = secret
        emit(ns, order.address, ORDER_WITHDRAWN, secret=secret)
        logger.debug("order %#x withdrawn by %#x", order.address, tx.source)
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported order tx type: {tt}")
    return ns
