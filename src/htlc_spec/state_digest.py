"""Canonical state digest implementation (v1)."""
from __future__ import annotations

import json
from typing import Any

from blake3 import blake3

# Contract sections of the state export, digested in this order.
_SECTIONS = ("tokens", "dst_factories", "dst_escrows", "order_factories", "orders", "events")


def _hex_to_int(value: str | None) -> int:
    if value is None:
        return 0
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    return int(v, 16) if v else 0


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _u256_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u256 must be non-negative")
    return int(value).to_bytes(32, "big", signed=False)


def _canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode()


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported state.

    Global fields and native balances are encoded as fixed-width integers in
    address order; contract sections are hashed as canonical JSON. The
    result is hashed with BLAKE3-256.
    """
    if not isinstance(post_state, dict):
        raise TypeError("post_state must be a dict")
    gs = post_state.get("global_state", {})
    buf = bytearray()
    buf += str(post_state.get("chain_kind", "")).encode()
    # Chain ids are signed (TON uses negative workchain-style ids).
    buf += int(post_state.get("network_chain_id", 0)).to_bytes(8, "big", signed=True)
    for field in ("block_height", "timestamp"):
        buf += _u64_be(int(gs.get(field, 0)))
    buf += _u256_be(int(gs.get("total_fees", 0)))

    sortable = []
    for acc in post_state.get("accounts", []):
        sortable.append((_hex_to_int(acc.get("address")), acc))
    sortable.sort(key=lambda x: x[0])

    for addr, acc in sortable:
        buf += _u256_be(addr)
        buf += _u256_be(int(acc.get("balance", 0)))

    for section in _SECTIONS:
        payload = _canonical(post_state.get(section, []))
        buf += _u64_be(len(payload))
        buf += payload

    return blake3(bytes(buf)).hexdigest()
