"""Timelocks word: deployment timestamp plus three stage offsets.

Layout of the packed uint256 (see `config`):

    bits   0..31   private withdrawal opens after (seconds)
    bits  32..63   public withdrawal opens after
    bits  64..95   cancellation opens after
    bits  96..223  reserved, zero
    bits 224..255  deployed_at (unix seconds)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum

from .config import (
    DEPLOYED_AT_OFFSET,
    DST_CANCELLATION_OFFSET,
    DST_PUBLIC_WITHDRAWAL_OFFSET,
    DST_WITHDRAWAL_OFFSET,
    TIMELOCK_RESERVED_MASK,
    U32_MAX,
    U256_MAX,
)
from .errors import ErrorCode, SpecError


class Stage(IntEnum):
    DST_WITHDRAWAL = DST_WITHDRAWAL_OFFSET
    DST_PUBLIC_WITHDRAWAL = DST_PUBLIC_WITHDRAWAL_OFFSET
    DST_CANCELLATION = DST_CANCELLATION_OFFSET


@dataclass(frozen=True)
class Timelocks:
    deployed_at: int
    private_opens_after: int
    public_opens_after: int
    cancel_opens_after: int

    def __post_init__(self) -> None:
        for name in ("deployed_at", "private_opens_after", "public_opens_after", "cancel_opens_after"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0 or value > U32_MAX:
                raise SpecError(ErrorCode.INVALID_TIMELOCKS, f"{name} must fit in uint32")

    # --- packing ---

    def pack(self) -> int:
        return (
            (self.deployed_at << DEPLOYED_AT_OFFSET)
            | (self.cancel_opens_after << DST_CANCELLATION_OFFSET)
            | (self.public_opens_after << DST_PUBLIC_WITHDRAWAL_OFFSET)
            | (self.private_opens_after << DST_WITHDRAWAL_OFFSET)
        )

    @classmethod
    def unpack(cls, word: int) -> "Timelocks":
        if word < 0 or word > U256_MAX:
            raise SpecError(ErrorCode.INVALID_TIMELOCKS, "timelocks must fit in uint256")
        if word & TIMELOCK_RESERVED_MASK:
            raise SpecError(ErrorCode.INVALID_TIMELOCKS, "reserved timelock bits must be zero")
        return cls(
            deployed_at=word >> DEPLOYED_AT_OFFSET,
            private_opens_after=(word >> DST_WITHDRAWAL_OFFSET) & U32_MAX,
            public_opens_after=(word >> DST_PUBLIC_WITHDRAWAL_OFFSET) & U32_MAX,
            cancel_opens_after=(word >> DST_CANCELLATION_OFFSET) & U32_MAX,
        )

    def with_deployed_at(self, timestamp: int) -> "Timelocks":
        return replace(self, deployed_at=timestamp)

    # --- ordering ---

    def validate(self) -> None:
        if not (self.private_opens_after <= self.public_opens_after <= self.cancel_opens_after):
            raise SpecError(
                ErrorCode.INVALID_TIMELOCKS,
                "stages must satisfy private <= public <= cancel",
            )

    # --- windows ---

    def get(self, stage: Stage) -> int:
        """Absolute timestamp at which `stage` opens."""
        if stage == Stage.DST_WITHDRAWAL:
            return self.deployed_at + self.private_opens_after
        if stage == Stage.DST_PUBLIC_WITHDRAWAL:
            return self.deployed_at + self.public_opens_after
        return self.deployed_at + self.cancel_opens_after

    def rescue_start(self, rescue_delay: int) -> int:
        return self.deployed_at + rescue_delay

    def in_private_window(self, now: int) -> bool:
        return self.get(Stage.DST_WITHDRAWAL) <= now < self.get(Stage.DST_CANCELLATION)

    def in_public_window(self, now: int) -> bool:
        return self.get(Stage.DST_PUBLIC_WITHDRAWAL) <= now < self.get(Stage.DST_CANCELLATION)

    def in_cancel_window(self, now: int) -> bool:
        return now >= self.get(Stage.DST_CANCELLATION)

    def in_rescue_window(self, now: int, rescue_delay: int) -> bool:
        return now >= self.rescue_start(rescue_delay)


def set_deployed_at(word: int, timestamp: int) -> int:
    """Replace the deployment timestamp of a packed word, keeping the offsets."""
    return Timelocks.unpack(word).with_deployed_at(timestamp).pack()
