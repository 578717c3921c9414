"""Helpers to serialize/deserialize fixtures for HTLC specs."""

from __future__ import annotations

from typing import Any

from htlc_spec.immutables import Immutables
from htlc_spec.types import (
    AccountState,
    ChainKind,
    ChainState,
    DstEscrowState,
    DstFactoryState,
    EscrowStatus,
    Event,
    OrderFactoryState,
    OrderState,
    OrderStatus,
    TokenState,
    Transaction,
    TransactionType,
    TransferPayload,
)


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def _addr_to_hex(v: int) -> str:
    return f"{v:#x}"


def _hex_to_addr(v: str) -> int:
    return int(v, 16)


def _opt_addr(v: int | None) -> str | None:
    return _addr_to_hex(v) if v is not None else None


def _opt_bytes(v: bytes | None) -> str | None:
    return _bytes_to_hex(v) if v is not None else None


# Event data keys carrying raw bytes.
_EVENT_BYTES_FIELDS: set[str] = {"secret", "hashlock"}


def _event_to_json(e: Event) -> dict[str, Any]:
    data = {
        k: _bytes_to_hex(bytes(v)) if isinstance(v, (bytes, bytearray)) else v
        for k, v in e.data.items()
    }
    return {
        "address": _addr_to_hex(e.address),
        "name": e.name,
        "data": data,
        "block_height": e.block_height,
        "timestamp": e.timestamp,
    }


def _event_from_json(e: dict[str, Any]) -> Event:
    data = {
        k: _hex_to_bytes(v) if k in _EVENT_BYTES_FIELDS and isinstance(v, str) else v
        for k, v in e.get("data", {}).items()
    }
    return Event(
        address=_hex_to_addr(e["address"]),
        name=e["name"],
        data=data,
        block_height=e.get("block_height", 0),
        timestamp=e.get("timestamp", 0),
    )


def state_to_json(state: ChainState) -> dict[str, Any]:
    result: dict[str, Any] = {
        "chain_kind": state.chain_kind.value,
        "network_chain_id": state.network_chain_id,
        "global_state": {
            "block_height": state.global_state.block_height,
            "timestamp": state.global_state.timestamp,
            "total_fees": state.global_state.total_fees,
        },
        "accounts": [
            {"address": _addr_to_hex(a.address), "balance": a.balance}
            for _, a in sorted(state.accounts.items())
        ],
    }

    if state.tokens:
        result["tokens"] = [
            {
                "address": _addr_to_hex(t.address),
                "symbol": t.symbol,
                "owner": _addr_to_hex(t.owner),
                "total_supply": t.total_supply,
                "balances": [
                    {"holder": _addr_to_hex(h), "amount": amt}
                    for h, amt in sorted(t.balances.items())
                ],
                "allowances": [
                    {"holder": _addr_to_hex(h), "spender": _addr_to_hex(s), "amount": amt}
                    for (h, s), amt in sorted(t.allowances.items())
                ],
            }
            for _, t in sorted(state.tokens.items())
        ]

    if state.dst_factories:
        result["dst_factories"] = [
            {
                "address": _addr_to_hex(f.address),
                "owner": _addr_to_hex(f.owner),
                "access_token": _addr_to_hex(f.access_token),
                "rescue_delay": f.rescue_delay,
                "creation_fee": f.creation_fee,
                "treasury": _addr_to_hex(f.treasury),
                "implementation": _addr_to_hex(f.implementation),
                "proxy_bytecode_hash": _bytes_to_hex(f.proxy_bytecode_hash),
            }
            for _, f in sorted(state.dst_factories.items())
        ]

    if state.dst_escrows:
        result["dst_escrows"] = [
            {
                "address": _addr_to_hex(e.address),
                "factory": _addr_to_hex(e.factory),
                "immutables_hash": _bytes_to_hex(e.immutables_hash),
                "order_hash": _bytes_to_hex(e.order_hash),
                "hashlock": _bytes_to_hex(e.hashlock),
                "maker": _addr_to_hex(e.maker),
                "taker": _addr_to_hex(e.taker),
                "token": _addr_to_hex(e.token),
                "amount": e.amount,
                "safety_deposit": e.safety_deposit,
                "timelocks": e.timelocks,
                "rescue_delay": e.rescue_delay,
                "access_token": _addr_to_hex(e.access_token),
                "status": e.status.value,
                "secret": _opt_bytes(e.secret),
            }
            for _, e in sorted(state.dst_escrows.items())
        ]

    if state.order_factories:
        result["order_factories"] = [
            {
                "address": _addr_to_hex(f.address),
                "admin": _addr_to_hex(f.admin),
                "order_code_hash": _bytes_to_hex(f.order_code_hash),
            }
            for _, f in sorted(state.order_factories.items())
        ]

    if state.orders:
        result["orders"] = [
            {
                "address": _addr_to_hex(o.address),
                "factory": _addr_to_hex(o.factory),
                "maker": _addr_to_hex(o.maker),
                "order_id": o.order_id,
                "from_amount": o.from_amount,
                "to_network": o.to_network,
                "to_token": _addr_to_hex(o.to_token),
                "to_address": _addr_to_hex(o.to_address),
                "to_amount": o.to_amount,
                "hash_key": _bytes_to_hex(o.hash_key),
                "resolver": _opt_addr(o.resolver),
                "status": o.status.value,
                "secret": _opt_bytes(o.secret),
            }
            for _, o in sorted(state.orders.items())
        ]

    if state.events:
        result["events"] = [_event_to_json(e) for e in state.events]

    return result


def state_from_json(data: dict[str, Any]) -> ChainState:
    state = ChainState(
        chain_kind=ChainKind(data.get("chain_kind", ChainKind.EVM.value)),
        network_chain_id=data["network_chain_id"],
    )
    gs = data.get("global_state", {})
    state.global_state.block_height = gs.get("block_height", 0)
    state.global_state.timestamp = gs.get("timestamp", 0)
    state.global_state.total_fees = gs.get("total_fees", 0)

    for a in data.get("accounts", []):
        acct = AccountState(address=_hex_to_addr(a["address"]), balance=a.get("balance", 0))
        state.accounts[acct.address] = acct

    for t in data.get("tokens", []):
        token = TokenState(
            address=_hex_to_addr(t["address"]),
            symbol=t["symbol"],
            owner=_hex_to_addr(t["owner"]),
            total_supply=t.get("total_supply", 0),
        )
        for b in t.get("balances", []):
            token.balances[_hex_to_addr(b["holder"])] = b["amount"]
        for al in t.get("allowances", []):
            token.allowances[(_hex_to_addr(al["holder"]), _hex_to_addr(al["spender"]))] = al["amount"]
        state.tokens[token.address] = token

    for f in data.get("dst_factories", []):
        factory = DstFactoryState(
            address=_hex_to_addr(f["address"]),
            owner=_hex_to_addr(f["owner"]),
            access_token=_hex_to_addr(f["access_token"]),
            rescue_delay=f["rescue_delay"],
            creation_fee=f["creation_fee"],
            treasury=_hex_to_addr(f["treasury"]),
            implementation=_hex_to_addr(f["implementation"]),
            proxy_bytecode_hash=_hex_to_bytes(f["proxy_bytecode_hash"]),
        )
        state.dst_factories[factory.address] = factory

    for e in data.get("dst_escrows", []):
        escrow = DstEscrowState(
            address=_hex_to_addr(e["address"]),
            factory=_hex_to_addr(e["factory"]),
            immutables_hash=_hex_to_bytes(e["immutables_hash"]),
            order_hash=_hex_to_bytes(e["order_hash"]),
            hashlock=_hex_to_bytes(e["hashlock"]),
            maker=_hex_to_addr(e["maker"]),
            taker=_hex_to_addr(e["taker"]),
            token=_hex_to_addr(e["token"]),
            amount=e["amount"],
            safety_deposit=e["safety_deposit"],
            timelocks=e["timelocks"],
            rescue_delay=e["rescue_delay"],
            access_token=_hex_to_addr(e["access_token"]),
            status=EscrowStatus(e.get("status", EscrowStatus.PENDING.value)),
            secret=_hex_to_bytes(e["secret"]) if e.get("secret") else None,
        )
        state.dst_escrows[escrow.address] = escrow

    for f in data.get("order_factories", []):
        of = OrderFactoryState(
            address=_hex_to_addr(f["address"]),
            admin=_hex_to_addr(f["admin"]),
            order_code_hash=_hex_to_bytes(f["order_code_hash"]),
        )
        state.order_factories[of.address] = of

    for o in data.get("orders", []):
        order = OrderState(
            address=_hex_to_addr(o["address"]),
            factory=_hex_to_addr(o["factory"]),
            maker=_hex_to_addr(o["maker"]),
            order_id=o["order_id"],
            from_amount=o["from_amount"],
            to_network=o["to_network"],
            to_token=_hex_to_addr(o["to_token"]),
            to_address=_hex_to_addr(o["to_address"]),
            to_amount=o["to_amount"],
            hash_key=_hex_to_bytes(o["hash_key"]),
            resolver=_hex_to_addr(o["resolver"]) if o.get("resolver") else None,
            status=OrderStatus(o.get("status", OrderStatus.CREATED.value)),
            secret=_hex_to_bytes(o["secret"]) if o.get("secret") else None,
        )
        state.orders[order.address] = order

    state.events = [_event_from_json(e) for e in data.get("events", [])]
    return state


# Payload keys whose hex-string values decode to raw bytes.
_BYTES_FIELDS: set[str] = {"secret", "hash_key", "hashlock", "order_hash"}


def _payload_to_json(payload: Any) -> Any:
    """Recursively convert a payload value, turning bytes into hex strings."""
    if payload is None:
        return None
    if isinstance(payload, Immutables):
        return payload.to_dict()
    if isinstance(payload, (bytes, bytearray)):
        return _bytes_to_hex(bytes(payload))
    if isinstance(payload, dict):
        return {k: _payload_to_json(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_payload_to_json(item) for item in payload]
    return payload


def _json_to_payload(payload: Any) -> Any:
    """Recursively convert hex string fields and records back from JSON."""
    if payload is None:
        return None
    if isinstance(payload, dict):
        result: dict[str, Any] = {}
        for key, value in payload.items():
            if key == "immutables" and isinstance(value, dict):
                result[key] = Immutables.from_dict(value)
            elif key in _BYTES_FIELDS and isinstance(value, str):
                result[key] = _hex_to_bytes(value)
            elif isinstance(value, (dict, list)):
                result[key] = _json_to_payload(value)
            else:
                result[key] = value
        return result
    if isinstance(payload, list):
        return [_json_to_payload(item) for item in payload]
    return payload


def tx_to_json(tx: Transaction) -> dict[str, Any]:
    payload: Any
    if tx.tx_type == TransactionType.TRANSFERS:
        payload = [
            {"destination": _addr_to_hex(p.destination), "amount": p.amount}
            for p in tx.payload
        ]
    else:
        payload = _payload_to_json(tx.payload)

    return {
        "chain_id": tx.chain_id,
        "source": _addr_to_hex(tx.source),
        "tx_type": tx.tx_type.value,
        "payload": payload,
        "to": _addr_to_hex(tx.to),
        "value": tx.value,
        "fee": tx.fee,
    }


def tx_from_json(data: dict[str, Any]) -> Transaction:
    tx_type = TransactionType(data["tx_type"])

    if tx_type == TransactionType.TRANSFERS:
        payload = [
            TransferPayload(destination=_hex_to_addr(p["destination"]), amount=p["amount"])
            for p in data.get("payload", [])
        ]
    else:
        payload = _json_to_payload(data.get("payload"))

    return Transaction(
        chain_id=data["chain_id"],
        source=_hex_to_addr(data["source"]),
        tx_type=tx_type,
        payload=payload,
        to=_hex_to_addr(data.get("to", "0x0")),
        value=data.get("value", 0),
        fee=data.get("fee", 0),
    )
