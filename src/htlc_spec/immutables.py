"""Escrow immutables: the content-addressed record of one swap leg."""

from __future__ import annotations

from dataclasses import dataclass, replace

from .config import HASH_SIZE, U256_MAX
from .crypto.hash_algorithms import keccak256, u256_be
from .errors import ErrorCode, SpecError
from .timelocks import Timelocks, set_deployed_at
from .types import OrderState

_FIELDS = (
    "order_hash",
    "hashlock",
    "maker",
    "taker",
    "token",
    "amount",
    "safety_deposit",
    "timelocks",
)


@dataclass(frozen=True)
class Immutables:
    order_hash: bytes
    hashlock: bytes
    maker: int
    taker: int
    token: int
    amount: int
    safety_deposit: int
    timelocks: int

    def __post_init__(self) -> None:
        for name in ("order_hash", "hashlock"):
            value = getattr(self, name)
            if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_SIZE:
                raise SpecError(ErrorCode.INVALID_FORMAT, f"{name} must be {HASH_SIZE} bytes")
        for name in ("maker", "taker", "token", "amount", "safety_deposit", "timelocks"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0 or value > U256_MAX:
                raise SpecError(ErrorCode.INVALID_FORMAT, f"{name} must be a uint256")

    def encode(self) -> bytes:
        """ABI encoding: eight 32-byte words in declaration order."""
        buf = bytearray()
        buf += bytes(self.order_hash)
        buf += bytes(self.hashlock)
        for name in _FIELDS[2:]:
            buf += u256_be(getattr(self, name))
        return bytes(buf)

    def hash(self) -> bytes:
        return keccak256(self.encode())

    @property
    def schedule(self) -> Timelocks:
        return Timelocks.unpack(self.timelocks)

    def with_deployed_at(self, timestamp: int) -> "Immutables":
        return replace(self, timelocks=set_deployed_at(self.timelocks, timestamp))

    def to_dict(self) -> dict:
        return {
            "order_hash": bytes(self.order_hash).hex(),
            "hashlock": bytes(self.hashlock).hex(),
            "maker": self.maker,
            "taker": self.taker,
            "token": self.token,
            "amount": self.amount,
            "safety_deposit": self.safety_deposit,
            "timelocks": self.timelocks,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Immutables":
        return cls(
            order_hash=bytes.fromhex(data["order_hash"]),
            hashlock=bytes.fromhex(data["hashlock"]),
            maker=int(data["maker"]),
            taker=int(data["taker"]),
            token=int(data.get("token", 0)),
            amount=int(data["amount"]),
            safety_deposit=int(data.get("safety_deposit", 0)),
            timelocks=int(data["timelocks"]),
        )


def dst_immutables_from_order(
    order: OrderState,
    taker: int,
    timelocks: Timelocks,
    safety_deposit: int,
    order_hash: bytes,
) -> Immutables:
    """Mirror a source order into the destination-leg record a resolver deploys.

    The order's `to_address` receives the funds on the destination chain, so it
    becomes the record's maker; `to_token` / `to_amount` / `hash_key` carry over.
    """
    return Immutables(
        order_hash=order_hash,
        hashlock=order.hash_key,
        maker=order.to_address,
        taker=taker,
        token=order.to_token,
        amount=order.to_amount,
        safety_deposit=safety_deposit,
        timelocks=timelocks.pack(),
    )
