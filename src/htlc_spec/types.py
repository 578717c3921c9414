"""Core types for HTLC Python specs.

Two ledgers are modeled with the same `ChainState` shape:
the EVM chain hosts the destination-leg escrows and their factory, the TON
chain hosts the maker's source-leg orders and the order factory. Addresses on
both chains are unsigned integers (160-bit on EVM, 256-bit account ids on TON)
so one record shape can name parties on either side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ChainKind(Enum):
    EVM = "evm"
    TON = "ton"


class TransactionType(Enum):
    TRANSFERS = "transfers"

    # Fungible token ledger (ERC-20 / jetton style)
    DEPLOY_TOKEN = "deploy_token"
    MINT_TOKEN = "mint_token"
    TRANSFER_TOKEN = "transfer_token"
    APPROVE_TOKEN = "approve_token"

    # Destination leg (EVM)
    DEPLOY_DST_FACTORY = "deploy_dst_factory"
    CREATE_DST_ESCROW = "create_dst_escrow"
    SET_CREATION_FEE = "set_creation_fee"
    SET_TREASURY = "set_treasury"
    EMERGENCY_WITHDRAW = "emergency_withdraw"
    DST_WITHDRAW = "dst_withdraw"
    DST_PUBLIC_WITHDRAW = "dst_public_withdraw"
    DST_CANCEL = "dst_cancel"
    DST_RESCUE_FUNDS = "dst_rescue_funds"

    # Source leg (TON)
    DEPLOY_ORDER_FACTORY = "deploy_order_factory"
    CREATE_ORDER = "create_order"
    CLAIM_ORDER = "claim_order"
    WITHDRAW_ORDER = "withdraw_order"


@dataclass
class TransferPayload:
    destination: int
    amount: int


@dataclass
class Transaction:
    chain_id: int
    source: int
    tx_type: TransactionType
    payload: Any
    # Contract the message is addressed to (factory, escrow, order, token).
    to: int = 0
    # Native value attached to the call.
    value: int = 0
    # Flat execution cost, charged to the sender on success only.
    fee: int = 0


@dataclass
class AccountState:
    address: int
    balance: int = 0


@dataclass
class TokenState:
    address: int
    symbol: str
    owner: int
    total_supply: int = 0
    balances: Dict[int, int] = field(default_factory=dict)
    allowances: Dict[Tuple[int, int], int] = field(default_factory=dict)

    def balance_of(self, holder: int) -> int:
        return self.balances.get(holder, 0)

    def allowance(self, holder: int, spender: int) -> int:
        return self.allowances.get((holder, spender), 0)


# --- Destination leg (EVM) ---


@dataclass
class DstFactoryState:
    address: int
    owner: int
    access_token: int
    rescue_delay: int
    creation_fee: int
    treasury: int
    implementation: int
    proxy_bytecode_hash: bytes


class EscrowStatus(Enum):
    PENDING = "pending"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"


@dataclass
class DstEscrowState:
    address: int
    factory: int
    immutables_hash: bytes
    order_hash: bytes
    hashlock: bytes
    maker: int
    taker: int
    token: int
    amount: int
    safety_deposit: int
    timelocks: int
    rescue_delay: int
    access_token: int
    status: EscrowStatus = EscrowStatus.PENDING
    secret: Optional[bytes] = None


# --- Source leg (TON) ---


@dataclass
class OrderFactoryState:
    address: int
    admin: int
    order_code_hash: bytes


class OrderStatus(Enum):
    CREATED = "created"
    CLAIMED = "claimed"
    WITHDRAWN = "withdrawn"


@dataclass
class OrderState:
    address: int
    factory: int
    maker: int
    order_id: int
    from_amount: int
    to_network: int
    to_token: int
    to_address: int
    to_amount: int
    hash_key: bytes
    resolver: Optional[int] = None
    status: OrderStatus = OrderStatus.CREATED
    secret: Optional[bytes] = None


# --- Events / chain ---


@dataclass
class Event:
    address: int
    name: str
    data: Dict[str, Any]
    block_height: int = 0
    timestamp: int = 0


@dataclass
class GlobalState:
    block_height: int = 0
    timestamp: int = 0
    total_fees: int = 0


@dataclass
class ChainState:
    chain_kind: ChainKind = ChainKind.EVM
    network_chain_id: int = 0
    accounts: dict[int, AccountState] = field(default_factory=dict)
    tokens: dict[int, TokenState] = field(default_factory=dict)
    global_state: GlobalState = field(default_factory=GlobalState)
    dst_factories: dict[int, DstFactoryState] = field(default_factory=dict)
    dst_escrows: dict[int, DstEscrowState] = field(default_factory=dict)
    order_factories: dict[int, OrderFactoryState] = field(default_factory=dict)
    orders: dict[int, OrderState] = field(default_factory=dict)
    events: List[Event] = field(default_factory=list)

    def balance_of(self, address: int) -> int:
        acct = self.accounts.get(address)
        return acct.balance if acct is not None else 0

    def is_deployed(self, address: int) -> bool:
        return (
            address in self.dst_factories
            or address in self.dst_escrows
            or address in self.order_factories
            or address in self.orders
            or address in self.tokens
        )
