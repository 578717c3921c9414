"""Hash algorithm assignments for both ledgers."""

from __future__ import annotations

from dataclasses import dataclass

from blake3 import blake3
from Cryptodome.Hash import keccak

from ..config import EVM_ADDRESS_SIZE, HASH_SIZE, TON_ADDRESS_SIZE
from ..errors import ErrorCode, SpecError


@dataclass(frozen=True)
class HashAssignment:
    purpose: str
    algorithm: str
    output_size: int
    input_spec: str


ASSIGNMENTS = [
    HashAssignment("hashlock", "KECCAK-256", 32, "secret as uint256 big-endian (32 bytes)"),
    HashAssignment("immutables_hash", "KECCAK-256", 32, "abi-encoded immutables (8 words)"),
    HashAssignment("evm_escrow_address", "KECCAK-256", 20, "0xff || factory || salt || proxy_bytecode_hash"),
    HashAssignment("ton_order_address", "BLAKE3", 32, "0xff || factory || code_hash || state_init_data"),
    HashAssignment("state_digest", "BLAKE3", 32, "canonical state export bytes"),
]

# EIP-1167 minimal proxy, split around the 20-byte implementation address.
_PROXY_PREFIX = bytes.fromhex("3d602d80600a3d3981f3363d3d373d3d3d363d73")
_PROXY_SUFFIX = bytes.fromhex("5af43d82803e903d91602b57fd5bf3")


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def blake3_hash(data: bytes) -> bytes:
    return blake3(data).digest()


def u256_be(value: int) -> bytes:
    if value < 0 or value >> 256:
        raise SpecError(ErrorCode.OVERFLOW, "value does not fit in uint256")
    return int(value).to_bytes(32, "big", signed=False)


def evm_address_bytes(address: int) -> bytes:
    if address < 0 or address >> (8 * EVM_ADDRESS_SIZE):
        raise SpecError(ErrorCode.INVALID_ADDRESS, "evm address must fit in 160 bits")
    return int(address).to_bytes(EVM_ADDRESS_SIZE, "big")


def ton_address_bytes(address: int) -> bytes:
    if address < 0 or address >> (8 * TON_ADDRESS_SIZE):
        raise SpecError(ErrorCode.INVALID_ADDRESS, "ton account id must fit in 256 bits")
    return int(address).to_bytes(TON_ADDRESS_SIZE, "big")


def proxy_bytecode_hash(implementation: int) -> bytes:
    """Code identity of every escrow clone a factory deploys."""
    return keccak256(_PROXY_PREFIX + evm_address_bytes(implementation) + _PROXY_SUFFIX)


def create2_address(deployer: int, salt: bytes, init_code_hash: bytes) -> int:
    if len(salt) != HASH_SIZE or len(init_code_hash) != HASH_SIZE:
        raise SpecError(ErrorCode.INVALID_FORMAT, "salt and init code hash must be 32 bytes")
    digest = keccak256(b"\xff" + evm_address_bytes(deployer) + salt + init_code_hash)
    return int.from_bytes(digest[12:], "big")


def compute_deterministic_contract_address(deployer: int, code: bytes, data: bytes = b"") -> int:
    """TON-style address: hash of the state init (code identity + initial data)."""
    code_hash = blake3_hash(code)
    return int.from_bytes(blake3_hash(b"\xff" + ton_address_bytes(deployer) + code_hash + data), "big")
