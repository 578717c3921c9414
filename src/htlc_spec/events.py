"""Event log helpers."""

from __future__ import annotations

from typing import Any, List, Optional

from .types import ChainState, Event

# Event names
DST_ESCROW_CREATED = "DstEscrowCreated"
ESCROW_WITHDRAWAL = "EscrowWithdrawal"
ESCROW_CANCELLED = "EscrowCancelled"
FUNDS_RESCUED = "FundsRescued"
CREATION_FEE_UPDATED = "CreationFeeUpdated"
TREASURY_UPDATED = "TreasuryUpdated"
EMERGENCY_WITHDRAWAL = "EmergencyWithdrawal"
ORDER_CREATED = "OrderCreated"
ORDER_CLAIMED = "OrderClaimed"
ORDER_WITHDRAWN = "OrderWithdrawn"


def emit(state: ChainState, address: int, name: str, **data: Any) -> Event:
    gs = state.global_state
    event = Event(
        address=address,
        name=name,
        data=data,
        block_height=gs.block_height,
        timestamp=gs.timestamp,
    )
    state.events.append(event)
    return event


def events_named(state: ChainState, name: str, address: Optional[int] = None) -> List[Event]:
    return [
        e for e in state.events
        if e.name == name and (address is None or e.address == address)
    ]
