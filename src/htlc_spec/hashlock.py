"""Hashlock commitment shared by both ledgers.

Both legs of a swap hash the secret the same way: the secret is read as an
unsigned 256-bit integer, written big-endian into exactly 32 bytes (zero padded
on the left) and hashed with Keccak-256. The EVM escrow receives the secret as
`bytes32`, the TON order as `uint256`; with this encoding both produce the same
hashlock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .config import HASH_SIZE, SECRET_SIZE
from .crypto.hash_algorithms import keccak256
from .errors import ErrorCode, SpecError

SecretLike = Union[int, bytes, bytearray]


def encode_secret(secret: SecretLike) -> bytes:
    """Canonical 32-byte encoding of a secret."""
    if isinstance(secret, bool):
        raise SpecError(ErrorCode.INVALID_FORMAT, "secret must be int or bytes")
    if isinstance(secret, int):
        if secret < 0 or secret >> (8 * SECRET_SIZE):
            raise SpecError(ErrorCode.INVALID_FORMAT, "secret must fit in uint256")
        return secret.to_bytes(SECRET_SIZE, "big")
    if isinstance(secret, (bytes, bytearray)):
        if len(secret) > SECRET_SIZE:
            raise SpecError(ErrorCode.INVALID_FORMAT, f"secret wider than {SECRET_SIZE} bytes")
        return bytes(secret).rjust(SECRET_SIZE, b"\x00")
    raise SpecError(ErrorCode.INVALID_FORMAT, "secret must be int or bytes")


def hashlock_of(secret: SecretLike) -> bytes:
    return keccak256(encode_secret(secret))


def verify_secret(secret: SecretLike, hashlock: bytes) -> bool:
    if len(hashlock) != HASH_SIZE:
        return False
    return hashlock_of(secret) == bytes(hashlock)


def require_secret(secret: SecretLike, hashlock: bytes) -> bytes:
    """Return the canonical secret, or raise INVALID_SECRET."""
    encoded = encode_secret(secret)
    if keccak256(encoded) != bytes(hashlock):
        raise SpecError(ErrorCode.INVALID_SECRET, "secret does not match hashlock")
    return encoded


@dataclass(frozen=True)
class HashCommitment:
    secret: bytes
    hashlock: bytes

    @classmethod
    def from_secret(cls, secret: SecretLike) -> "HashCommitment":
        encoded = encode_secret(secret)
        return cls(secret=encoded, hashlock=keccak256(encoded))

    @property
    def secret_int(self) -> int:
        return int.from_bytes(self.secret, "big")

    @property
    def hashlock_int(self) -> int:
        return int.from_bytes(self.hashlock, "big")

    def matches(self, hashlock: bytes) -> bool:
        return self.hashlock == bytes(hashlock)
