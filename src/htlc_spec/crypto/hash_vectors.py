"""Hashlock test vector generators.

Both ledgers must derive the same hashlock from the same secret. The vectors
below cover secrets of several raw widths; each one records the raw secret,
its canonical 32-byte encoding and the expected Keccak-256 hashlock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..hashlock import encode_secret
from .hash_algorithms import blake3_hash, keccak256

# keccak256 of uint256(1), as produced by both legs' unit tests.
SECRET_ONE_HASHLOCK = "b10e2d527612073b26eecdfd717e6a320cf44b4afac2b0732d9fcbe2b7fa0cf6"

SECRET_WIDTHS = (1, 8, 16, 31, 32)


@dataclass
class HashVector:
    name: str
    description: Optional[str]
    input_hex: str
    input_length: int
    encoded_hex: str
    expected_hex: str


def _vector(name: str, raw: bytes, description: Optional[str] = None) -> HashVector:
    encoded = encode_secret(raw)
    return HashVector(
        name=name,
        description=description,
        input_hex=raw.hex(),
        input_length=len(raw),
        encoded_hex=encoded.hex(),
        expected_hex=keccak256(encoded).hex(),
    )


def hashlock_vectors() -> Dict[str, Any]:
    vectors: List[HashVector] = []

    vectors.append(_vector("secret_one", b"\x01", "uint256(1)"))
    vectors.append(_vector("secret_zero", b"", "empty secret pads to 32 zero bytes"))

    for width in SECRET_WIDTHS:
        raw = bytes((0xA0 + i) & 0xFF for i in range(width))
        vectors.append(_vector(f"width_{width}", raw, f"{width}-byte secret, left padded"))

    # Leading zero bytes are not significant.
    vectors.append(_vector("leading_zeros", b"\x00\x00\x00\x2a", "same hashlock as uint256(42)"))
    vectors.append(_vector("all_ones", b"\xff" * 32, "uint256 max"))

    return {
        "algorithm": "KECCAK-256",
        "output_size": 32,
        "secret_size": 32,
        "test_vectors": [v.__dict__ for v in vectors],
    }


def keccak256_vectors() -> Dict[str, Any]:
    inputs = [
        ("empty_string", b""),
        ("abc", b"abc"),
        ("135_bytes_a", bytes([0x61] * 135)),
        ("136_bytes_a", bytes([0x61] * 136)),
    ]
    return {
        "algorithm": "KECCAK-256",
        "output_size": 32,
        "block_size": 136,
        "test_vectors": [
            {"name": name, "input_hex": data.hex(), "input_length": len(data), "expected_hex": keccak256(data).hex()}
            for name, data in inputs
        ],
    }


def blake3_vectors() -> Dict[str, Any]:
    inputs = [
        ("empty_string", b""),
        ("abc", b"abc"),
        ("1024_bytes_counter", bytes(i % 251 for i in range(1024))),
    ]
    return {
        "algorithm": "BLAKE3",
        "output_size": 32,
        "test_vectors": [
            {"name": name, "input_hex": data.hex(), "input_length": len(data), "expected_hex": blake3_hash(data).hex()}
            for name, data in inputs
        ],
    }
