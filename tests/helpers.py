"""Shared chain builders for the escrow specs."""

from __future__ import annotations

from typing import Any

from htlc_spec.config import (
    CHAIN_ID_EVM_LOCAL,
    CHAIN_ID_TON_TESTNET,
    DEFAULT_CREATION_FEE,
    NANO_PER_TON,
    NATIVE_ASSET,
    NETWORK_EVM,
    RESCUE_DELAY,
    WEI_PER_ETHER,
)
from htlc_spec.hashlock import hashlock_of
from htlc_spec.immutables import Immutables
from htlc_spec.state_transition import advance_time, apply_tx
from htlc_spec.test_accounts import (
    DEPLOYER,
    EVE,
    MAKER,
    OWNER,
    RELAYER,
    TAKER,
    TON_ADMIN,
    TON_EVE,
    TON_MAKER,
    TON_RESOLVER,
    TON_RESOLVER_2,
    TREASURY,
)
from htlc_spec.timelocks import Timelocks
from htlc_spec.tx.factory import address_of_escrow_dst, factory_address, required_native_value
from htlc_spec.tx.order import order_address, order_factory_address
from htlc_spec.tx.token import token_address
from htlc_spec.types import (
    AccountState,
    ChainKind,
    ChainState,
    Transaction,
    TransactionType,
)

ETH = WEI_PER_ETHER
TON = NANO_PER_TON
START_TIME = 1_700_000_000

SECRET = 0x5EC7E7_0F_7E57_C0FFEE
HASHLOCK = hashlock_of(SECRET)
ORDER_HASH = bytes([0x0D]) * 32

# Offsets from deployment: private at +60s, public at +600s, cancel at +3600s.
SCHEDULE = Timelocks(deployed_at=0, private_opens_after=60, public_opens_after=600, cancel_opens_after=3600)


# --- EVM (destination leg) ---


def evm_state() -> ChainState:
    state = ChainState(chain_kind=ChainKind.EVM, network_chain_id=CHAIN_ID_EVM_LOCAL)
    state.global_state.timestamp = START_TIME
    for addr, balance in (
        (DEPLOYER, 10 * ETH),
        (OWNER, 10 * ETH),
        (TREASURY, 0),
        (MAKER, 0),
        (TAKER, 100 * ETH),
        (RELAYER, 10 * ETH),
        (EVE, 10 * ETH),
    ):
        state.accounts[addr] = AccountState(address=addr, balance=balance)
    return state


def evm_tx(
    source: int,
    tx_type: TransactionType,
    payload: Any,
    *,
    to: int = 0,
    value: int = 0,
    fee: int = 0,
) -> Transaction:
    return Transaction(
        chain_id=CHAIN_ID_EVM_LOCAL,
        source=source,
        tx_type=tx_type,
        payload=payload,
        to=to,
        value=value,
        fee=fee,
    )


def run(state: ChainState, tx: Transaction) -> ChainState:
    post, result = apply_tx(state, tx)
    assert result.ok, result.error
    return post


def at(state: ChainState, offset: int) -> ChainState:
    """State with the clock at `offset` seconds after START_TIME."""
    return advance_time(state, START_TIME + offset)


def deploy_token(state: ChainState, owner: int, symbol: str) -> tuple[ChainState, int]:
    state = run(state, evm_tx(owner, TransactionType.DEPLOY_TOKEN, {"symbol": symbol}))
    return state, token_address(state, owner, symbol)


def mint(state: ChainState, token: int, owner: int, to: int, amount: int) -> ChainState:
    return run(state, evm_tx(owner, TransactionType.MINT_TOKEN, {"to": to, "amount": amount}, to=token))


def deploy_factory(
    state: ChainState, access_token: int, creation_fee: int = DEFAULT_CREATION_FEE
) -> tuple[ChainState, int]:
    payload = {
        "access_token": access_token,
        "owner": OWNER,
        "rescue_delay": RESCUE_DELAY,
        "creation_fee": creation_fee,
        "treasury": TREASURY,
    }
    state = run(state, evm_tx(DEPLOYER, TransactionType.DEPLOY_DST_FACTORY, payload))
    return state, factory_address(DEPLOYER, access_token, OWNER, RESCUE_DELAY, creation_fee, TREASURY)


def evm_with_factory(creation_fee: int = DEFAULT_CREATION_FEE) -> tuple[ChainState, int, int]:
    """EVM ledger with an access token (held by RELAYER) and a factory."""
    state, access = deploy_token(evm_state(), OWNER, "ACCESS")
    state = mint(state, access, OWNER, RELAYER, 1)
    state, factory = deploy_factory(state, access, creation_fee)
    return state, factory, access


def make_immutables(**overrides: Any) -> Immutables:
    fields: dict[str, Any] = {
        "order_hash": ORDER_HASH,
        "hashlock": HASHLOCK,
        "maker": MAKER,
        "taker": TAKER,
        "token": NATIVE_ASSET,
        "amount": ETH,
        "safety_deposit": ETH // 10,
        "timelocks": SCHEDULE.pack(),
    }
    fields.update(overrides)
    return Immutables(**fields)


def create_tx(state: ChainState, factory: int, imm: Immutables, *, source: int = TAKER, delta: int = 0) -> Transaction:
    value = required_native_value(state.dst_factories[factory], imm) + delta
    return evm_tx(source, TransactionType.CREATE_DST_ESCROW, {"immutables": imm}, to=factory, value=value)


def create_escrow(
    state: ChainState, factory: int, imm: Immutables, *, source: int = TAKER
) -> tuple[ChainState, int, Immutables]:
    """Deploy an escrow; return the state, its address and the finalized record."""
    state = run(state, create_tx(state, factory, imm, source=source))
    final = imm.with_deployed_at(state.global_state.timestamp)
    return state, address_of_escrow_dst(state.dst_factories[factory], final), final


def escrow_tx(
    source: int,
    tx_type: TransactionType,
    escrow: int,
    imm: Immutables,
    **payload: Any,
) -> Transaction:
    return evm_tx(source, tx_type, {"immutables": imm, **payload}, to=escrow)


# --- TON (source leg) ---


def ton_state() -> ChainState:
    state = ChainState(chain_kind=ChainKind.TON, network_chain_id=CHAIN_ID_TON_TESTNET)
    state.global_state.timestamp = START_TIME
    for addr, balance in (
        (TON_ADMIN, 10 * TON),
        (TON_MAKER, 1000 * TON),
        (TON_RESOLVER, 10 * TON),
        (TON_RESOLVER_2, 10 * TON),
        (TON_EVE, 10 * TON),
    ):
        state.accounts[addr] = AccountState(address=addr, balance=balance)
    return state


def ton_tx(
    source: int,
    tx_type: TransactionType,
    payload: Any,
    *,
    to: int = 0,
    value: int = 0,
    fee: int = 0,
) -> Transaction:
    return Transaction(
        chain_id=CHAIN_ID_TON_TESTNET,
        source=source,
        tx_type=tx_type,
        payload=payload,
        to=to,
        value=value,
        fee=fee,
    )


def ton_with_factory() -> tuple[ChainState, int]:
    state = run(ton_state(), ton_tx(TON_ADMIN, TransactionType.DEPLOY_ORDER_FACTORY, {}))
    return state, order_factory_address(TON_ADMIN)


def order_payload(order_id: int = 1, from_amount: int = 100 * TON, /, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "query_id": 0,
        "order_id": order_id,
        "from_amount": from_amount,
        "to_network": NETWORK_EVM,
        "to_token": NATIVE_ASSET,
        "to_address": MAKER,
        "to_amount": ETH,
        "hash_key": int.from_bytes(HASHLOCK, "big"),
    }
    payload.update(overrides)
    return payload


def create_order(
    state: ChainState,
    factory: int,
    order_id: int = 1,
    from_amount: int = 100 * TON,
    *,
    value: int | None = None,
    maker: int = TON_MAKER,
) -> tuple[ChainState, int]:
    tx = ton_tx(
        maker,
        TransactionType.CREATE_ORDER,
        order_payload(order_id, from_amount),
        to=factory,
        value=from_amount if value is None else value,
    )
    return run(state, tx), order_address(factory, maker, order_id)
