"""Read-only views over chain state.

Mirrors the order contract's get-methods (`get_escrow_data`, `getHash`,
`getSecretValid`), the factory's `get_order_address`, and the status records
an off-chain indexer serves for both legs. Nothing here mutates state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .config import TON_FALSE, TON_TRUE
from .errors import ErrorCode, SpecError
from .events import ESCROW_WITHDRAWAL, ORDER_WITHDRAWN
from .hashlock import SecretLike, hashlock_of, verify_secret
from .tx.escrow_dst import get_escrow
from .tx.order import get_order, get_order_factory, order_address
from .types import ChainState, OrderState


# --- order get-methods ---


def get_escrow_data(state: ChainState, address: int) -> Dict[str, Any]:
    """Stored fields of an order; `resolver_address` is '' until claimed."""
    order = get_order(state, address)
    return {
        "order_id": order.order_id,
        "from_address": order.maker,
        "from_amount": order.from_amount,
        "to_network": order.to_network,
        "to_token": order.to_token,
        "to_address": order.to_address,
        "to_amount": order.to_amount,
        "hash_key": int.from_bytes(order.hash_key, "big"),
        "resolver_address": order.resolver if order.resolver is not None else "",
    }


def get_hash(secret: SecretLike) -> int:
    return int.from_bytes(hashlock_of(secret), "big")


def get_secret_valid(state: ChainState, address: int, secret: SecretLike) -> int:
    order = get_order(state, address)
    return TON_TRUE if verify_secret(secret, order.hash_key) else TON_FALSE


def get_order_address(state: ChainState, factory: int, maker: int, order_id: int) -> int:
    get_order_factory(state, factory)
    return order_address(factory, maker, order_id)


# --- indexer views ---


def _order_view(order: OrderState) -> Dict[str, Any]:
    return {
        "escrow_address": order.address,
        "maker": order.maker,
        "taker": order.resolver,
        "amount": order.from_amount,
        "hashlock": order.hash_key.hex(),
        "status": order.status.value,
        "resolver": order.resolver,
    }


def order_status(
    state: ChainState,
    maker: int,
    order_id: int,
    factory: Optional[int] = None,
) -> Dict[str, Any]:
    """Status of the order `maker` opened as `order_id`.

    With no `factory` given, every order factory on the ledger is searched.
    """
    factories = [factory] if factory is not None else sorted(state.order_factories)
    for f in factories:
        order = state.orders.get(order_address(f, maker, order_id))
        if order is not None:
            return _order_view(order)
    raise SpecError(ErrorCode.ORDER_NOT_FOUND, f"no order {order_id} for maker {maker:#x}")


def find_orders_by_hashlock(state: ChainState, hashlock: bytes) -> List[Dict[str, Any]]:
    return [
        _order_view(o)
        for _, o in sorted(state.orders.items())
        if o.hash_key == bytes(hashlock)
    ]


def escrow_status(state: ChainState, address: int) -> Dict[str, Any]:
    escrow = get_escrow(state, address)
    return {
        "escrow_address": escrow.address,
        "maker": escrow.maker,
        "taker": escrow.taker,
        "amount": escrow.amount,
        "hashlock": escrow.hashlock.hex(),
        "status": escrow.status.value,
        "balance": state.balance_of(escrow.address),
    }


def find_escrows_by_hashlock(state: ChainState, hashlock: bytes) -> List[Dict[str, Any]]:
    return [
        escrow_status(state, addr)
        for addr, e in sorted(state.dst_escrows.items())
        if e.hashlock == bytes(hashlock)
    ]


def revealed_secrets(state: ChainState) -> Dict[bytes, bytes]:
    """hashlock -> secret for every secret published by a withdrawal event."""
    out: Dict[bytes, bytes] = {}
    for event in state.events:
        if event.name not in (ESCROW_WITHDRAWAL, ORDER_WITHDRAWN):
            continue
        secret = event.data["secret"]
        out[hashlock_of(secret)] = secret
    return out
